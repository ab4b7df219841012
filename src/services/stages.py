"""Construction stages, their checklists, stage budgets and material usage.

Stages are created with a project. Each stage maps onto one BOQ category,
so stage budgets and usage are read from the project's items.
"""

import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from estimation.boq import STAGES
from models.project import BOQItem
from models.stage import (
    ItemUsage,
    MaterialUsage,
    ProjectStage,
    StageBudgetStats,
    StageProgress,
    StageSavingsPlan,
    StageStatus,
    StageTask,
    UsageSummary,
)
from persistence import StateStore
from services.result import ServiceResult, run_store_call
from utils.clock import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


def stage_budget_stats(items: list[BOQItem], category: str) -> StageBudgetStats:
    """Planned against actual spend for the items in one BOQ category."""
    stats = StageBudgetStats()
    for item in items:
        if item.category != category:
            continue
        stats.item_count += 1
        stats.total_budget += item.total_usd
        if item.is_purchased:
            stats.purchased_count += 1
            stats.total_spent += item.actual_spent_usd
    return stats


def usage_by_item(records: list[MaterialUsage]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for record in records:
        totals[record.boq_item_id] = totals.get(record.boq_item_id, 0.0) + record.quantity_used
    return totals


def savings_plan(stats: StageBudgetStats, end_date: str | None, now: datetime) -> StageSavingsPlan:
    """Split a stage's remaining cost into weekly and monthly amounts.

    Whole weeks and months are counted up to the end date, with at least
    one of each. Without an end date there is nothing to plan against.
    """
    if not end_date:
        return StageSavingsPlan(target_date=None, total_remaining=stats.remaining)

    days = math.ceil((datetime.fromisoformat(end_date) - now).total_seconds() / 86400)
    weeks = max(1, math.ceil(days / 7))
    months = max(1, math.ceil(days / 30))
    return StageSavingsPlan(
        target_date=end_date,
        total_remaining=stats.remaining,
        weeks_remaining=weeks,
        weekly_target=stats.remaining / weeks,
        monthly_target=stats.remaining / months,
    )


class StageService:
    """Stage, task and usage operations for a project's build."""

    def __init__(self, store: StateStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self._clock = clock

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> ServiceResult[T]:
        return await run_store_call(operation, awaitable)

    # Stages

    async def get_project_stages(self, project_id: str) -> ServiceResult[list[ProjectStage]]:
        return await self._run("get_project_stages", self.store.get_project_stages(project_id))

    async def get_stage(self, stage_id: str) -> ServiceResult[ProjectStage]:
        result = await self._run("get_stage", self.store.get_stage(stage_id))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Stage", stage_id)
        return result

    async def update_stage(self, stage_id: str, **updates: Any) -> ServiceResult[ProjectStage]:
        if "status" in updates:
            updates["status"] = StageStatus(updates["status"])
        result = await self._run("update_stage", self.store.update_stage(stage_id, **updates))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Stage", stage_id)
        return result

    async def get_active_stage(self, project_id: str) -> ServiceResult[ProjectStage | None]:
        """The applicable stage in progress, else the first applicable stage."""
        stages = await self.get_project_stages(project_id)
        if not stages.ok:
            return stages.passthrough()
        applicable = [s for s in stages.data if s.is_applicable]
        active = next((s for s in applicable if s.status == StageStatus.IN_PROGRESS), None)
        return ServiceResult(data=active or (applicable[0] if applicable else None))

    async def get_stage_by_category(self, project_id: str, category: str) -> ServiceResult[ProjectStage]:
        stages = await self.get_project_stages(project_id)
        if not stages.ok:
            return stages.passthrough()
        stage = next((s for s in stages.data if s.boq_category == category), None)
        if stage is None:
            return ServiceResult.not_found("Stage", f"{project_id}/{category}")
        return ServiceResult(data=stage)

    async def set_stage_applicability(self, project_id: str, categories: list[str]) -> ServiceResult[int]:
        """Make exactly the given stages part of the project.

        An empty selection changes nothing. The project's stage selection
        is saved with the stage flags.
        """
        unknown = set(categories) - set(STAGES)
        if unknown:
            raise ValueError(f"Unknown stages: {', '.join(sorted(unknown))}")
        if not categories:
            return ServiceResult(data=0)
        result = await self._run(
            "set_stage_applicability",
            self.store.set_stage_applicability(project_id, list(dict.fromkeys(categories))),
        )
        if result.ok and result.data is None:
            return ServiceResult.not_found("Project", project_id)
        return result

    # Tasks

    async def create_stage_task(
        self,
        stage_id: str,
        title: str,
        description: str | None = None,
        assigned_to: str | None = None,
    ) -> ServiceResult[StageTask]:
        if not title or not title.strip():
            raise ValueError("Task title is required")
        stage = await self.get_stage(stage_id)
        if not stage.ok:
            return stage.passthrough()
        return await self._run(
            "create_stage_task",
            self.store.create_stage_task(stage_id, title.strip(), description, assigned_to),
        )

    async def update_stage_task(self, task_id: str, **updates: Any) -> ServiceResult[StageTask]:
        result = await self._run("update_stage_task", self.store.update_stage_task(task_id, **updates))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Task", task_id)
        return result

    async def toggle_stage_task(self, task_id: str, is_completed: bool) -> ServiceResult[StageTask]:
        """Tick or untick a task, stamping when it was completed."""
        completed_at = self._clock().isoformat() if is_completed else None
        return await self.update_stage_task(task_id, is_completed=is_completed, completed_at=completed_at)

    async def delete_stage_task(self, task_id: str) -> ServiceResult[bool]:
        result = await self._run("delete_stage_task", self.store.delete_stage_task(task_id))
        if result.ok and not result.data:
            return ServiceResult.not_found("Task", task_id)
        return result

    # Budgets

    async def get_stage_budget_stats(self, project_id: str, category: str) -> ServiceResult[StageBudgetStats]:
        items = await self._run("get_boq_items", self.store.get_boq_items(project_id))
        if not items.ok:
            return items.passthrough()
        return ServiceResult(data=stage_budget_stats(items.data, category))

    async def get_all_stages_progress(self, project_id: str) -> ServiceResult[list[StageProgress]]:
        """Task completion and spend for every stage of a project."""
        stages = await self.get_project_stages(project_id)
        if not stages.ok:
            return stages.passthrough()
        items = await self._run("get_boq_items", self.store.get_boq_items(project_id))
        if not items.ok:
            return items.passthrough()

        progress = []
        for stage in stages.data:
            stats = stage_budget_stats(items.data, stage.boq_category)
            progress.append(StageProgress(
                stage_id=stage.id,
                boq_category=stage.boq_category,
                name=stage.name,
                status=stage.status,
                tasks_completed=stage.completed_tasks,
                tasks_total=len(stage.tasks),
                spent=stats.total_spent,
                budget=stats.total_budget,
                is_applicable=stage.is_applicable,
            ))
        return ServiceResult(data=progress)

    async def calculate_stage_savings_plan(self, stage_id: str) -> ServiceResult[StageSavingsPlan]:
        stage = await self.get_stage(stage_id)
        if not stage.ok:
            return stage.passthrough()
        stats = await self.get_stage_budget_stats(stage.data.project_id, stage.data.boq_category)
        if not stats.ok:
            return stats.passthrough()
        return ServiceResult(data=savings_plan(stats.data, stage.data.end_date, self._clock()))

    # Material usage

    async def get_usage_history(self, project_id: str) -> ServiceResult[list[MaterialUsage]]:
        return await self._run("get_material_usage", self.store.get_material_usage(project_id))

    async def get_usage_summary(self, project_id: str, category: str | None = None) -> ServiceResult[UsageSummary]:
        """Used and remaining quantities per item, optionally for one stage."""
        project = await self._run("get_project", self.store.get_project(project_id))
        if not project.ok:
            return project.passthrough()
        if project.data is None:
            return ServiceResult.not_found("Project", project_id)
        items = await self._run("get_boq_items", self.store.get_boq_items(project_id))
        if not items.ok:
            return items.passthrough()
        history = await self.get_usage_history(project_id)
        if not history.ok:
            return history.passthrough()

        used = usage_by_item(history.data)
        return ServiceResult(data=UsageSummary(
            items=[
                ItemUsage(item=item, used=used.get(item.id, 0.0))
                for item in items.data
                if category is None or item.category == category
            ],
            threshold=project.data.usage_low_stock_threshold,
            alerts_enabled=project.data.usage_tracking_enabled,
        ))

    async def record_material_usage(
        self,
        project_id: str,
        item_id: str,
        quantity_used: float,
        usage_date: str | None = None,
        notes: str | None = None,
    ) -> ServiceResult[dict[str, Any]]:
        """Log material used on site.

        When usage tracking is on and this entry takes the item to the
        project's low-stock threshold, the result carries an alert.
        """
        if quantity_used is None or quantity_used <= 0:
            raise ValueError("Quantity used must be greater than zero")
        summary = await self.get_usage_summary(project_id)
        if not summary.ok:
            return summary.passthrough()
        before = next((u for u in summary.data.items if u.item.id == item_id), None)
        if before is None:
            return ServiceResult.not_found("BOQ item", item_id)

        record = await self._run("record_material_usage", self.store.record_material_usage(
            project_id,
            item_id,
            quantity_used,
            usage_date or self._clock().date().isoformat(),
            notes,
        ))
        if not record.ok:
            return record.passthrough()

        after = ItemUsage(item=before.item, used=before.used + quantity_used)
        threshold = summary.data.threshold
        alert = None
        if summary.data.alerts_enabled and after.is_low_stock(threshold) and not before.is_low_stock(threshold):
            alert = (
                f"{after.item.material_name} is at {after.remaining_percent:.0f}% remaining "
                f"({after.remaining:.2f} {after.item.unit})."
            )
            logger.info(f"Low stock on project {project_id}: {alert}")

        return ServiceResult(data={"usage": record.data, "item": after, "low_stock_alert": alert, "threshold": threshold})
