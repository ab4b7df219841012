"""Project, bill of quantities, reminder and share operations.

Each operation is one store call or one store transaction. Store failures
come back as ServiceResult errors instead of exceptions.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar
from urllib.parse import quote

from config import AppConfig
from models.project import (
    AccessLevel,
    BOQItem,
    Project,
    ProjectShare,
    ProjectStatus,
    PurchaseStats,
    Reminder,
    ReminderType,
)
from persistence import StateStore
from services.result import ServiceResult, run_store_call
from utils.clock import utc_now
from utils.errors import ErrorCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNLIMITED_TIERS = ("pro", "admin")
WHATSAPP_URL = "https://wa.me/{phone}?text={text}"


def whatsapp_reminder_link(phone_number: str, message: str) -> str:
    """Build a wa.me link that opens a chat with the message filled in."""
    phone = re.sub(r"[\s\-()]", "", phone_number)
    # Match encodeURIComponent, which leaves these unescaped
    return WHATSAPP_URL.format(phone=phone, text=quote(message, safe="!~*'()"))


class ProjectService:
    """CRUD operations on projects for a single owner."""

    def __init__(
        self,
        store: StateStore,
        config: AppConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.config = config or AppConfig()
        self.owner_id = self.config.owner_id
        self._clock = clock

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> ServiceResult[T]:
        return await run_store_call(operation, awaitable)

    # Projects

    async def can_create_project(self, tier: str | None = None) -> ServiceResult[bool]:
        """Pro and admin users are unlimited; others have a small quota."""
        tier = tier or self.config.tier
        if tier in UNLIMITED_TIERS:
            return ServiceResult(data=True)
        count = await self._run("count_open_projects", self.store.count_open_projects(self.owner_id))
        if not count.ok:
            return count.passthrough()
        return ServiceResult(data=count.data < self.config.projects.free_project_limit)

    async def create_project(
        self,
        name: str,
        location: str | None = None,
        description: str | None = None,
        scope: str = "entire_house",
        labor_preference: str = "materials_only",
        selected_stages: list[str] | None = None,
        target_date: str | None = None,
        enforce_quota: bool = True,
    ) -> ServiceResult[Project]:
        if not name or not name.strip():
            raise ValueError("Project name is required")
        if enforce_quota:
            allowed = await self.can_create_project()
            if not allowed.ok:
                return allowed.passthrough()
            if not allowed.data:
                return ServiceResult.failure(
                    f"Project limit of {self.config.projects.free_project_limit} reached for tier "
                    f"'{self.config.tier}'. Archive a project first.",
                    ErrorCategory.INVALID_INPUT,
                )
        return await self._run("create_project", self.store.create_project(
            owner_id=self.owner_id,
            name=name.strip(),
            location=location,
            description=description,
            scope=scope,
            labor_preference=labor_preference,
            selected_stages=selected_stages,
            target_date=target_date,
        ))

    async def get_project(self, project_id: str) -> ServiceResult[Project]:
        result = await self._run("get_project", self.store.get_project(project_id))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Project", project_id)
        return result

    async def list_projects(
        self,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ServiceResult[list[Project]]:
        if status is not None:
            status = ProjectStatus(status).value
        return await self._run(
            "list_projects",
            self.store.list_projects(self.owner_id, status=status, limit=limit, offset=offset),
        )

    async def update_project(self, project_id: str, **updates: Any) -> ServiceResult[Project]:
        result = await self._run("update_project", self.store.update_project(project_id, **updates))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Project", project_id)
        return result

    async def delete_project(self, project_id: str) -> ServiceResult[bool]:
        """Delete a project and everything attached to it."""
        result = await self._run("delete_project", self.store.delete_project(project_id))
        if result.ok and not result.data:
            return ServiceResult.not_found("Project", project_id)
        return result

    async def archive_project(self, project_id: str) -> ServiceResult[Project]:
        return await self.update_project(project_id, status=ProjectStatus.ARCHIVED)

    async def unarchive_project(self, project_id: str) -> ServiceResult[Project]:
        return await self.update_project(project_id, status=ProjectStatus.DRAFT)

    # BOQ items

    async def get_boq_items(self, project_id: str) -> ServiceResult[list[BOQItem]]:
        return await self._run("get_boq_items", self.store.get_boq_items(project_id))

    async def add_boq_item(self, project_id: str, item: dict[str, Any]) -> ServiceResult[BOQItem]:
        result = await self.add_boq_items(project_id, [item])
        if not result.ok:
            return result.passthrough()
        return ServiceResult(data=result.data[0])

    async def add_boq_items(self, project_id: str, items: list[dict[str, Any]]) -> ServiceResult[list[BOQItem]]:
        if not items:
            return ServiceResult(data=[])
        return await self._run("add_boq_items", self.store.add_boq_items(project_id, items))

    async def update_boq_item(self, item_id: str, **updates: Any) -> ServiceResult[BOQItem]:
        result = await self._run("update_boq_item", self.store.update_boq_item(item_id, **updates))
        if result.ok and result.data is None:
            return ServiceResult.not_found("BOQ item", item_id)
        return result

    async def delete_boq_item(self, item_id: str) -> ServiceResult[bool]:
        result = await self._run("delete_boq_item", self.store.delete_boq_items([item_id]))
        if result.ok and not result.data:
            return ServiceResult.not_found("BOQ item", item_id)
        return ServiceResult(data=True) if result.ok else result

    async def delete_boq_items(self, project_id: str) -> ServiceResult[int]:
        """Delete every item of a project."""
        return await self._run("delete_boq_items", self.store.delete_project_items(project_id))

    # Combined operations

    async def get_project_with_items(self, project_id: str) -> ServiceResult[dict[str, Any]]:
        project = await self.get_project(project_id)
        if not project.ok:
            return project.passthrough()
        items = await self.get_boq_items(project_id)
        if not items.ok:
            return items.passthrough()
        return ServiceResult(data={"project": project.data, "items": items.data})

    async def save_project_with_items(
        self,
        project_id: str,
        project_updates: dict[str, Any],
        items: list[dict[str, Any]],
    ) -> ServiceResult[dict[str, Any]]:
        """Update a project and replace its items in one transaction.

        Items are renumbered in list order. Totals are recomputed from the
        items unless the updates set them.
        """
        updates = dict(project_updates)
        updates.setdefault(
            "total_usd",
            round(sum(float(i["quantity"]) * float(i.get("unit_price_usd") or 0) for i in items), 2),
        )
        updates.setdefault(
            "total_zwg",
            round(sum(float(i["quantity"]) * float(i.get("unit_price_zwg") or 0) for i in items), 2),
        )

        saved = await self._run(
            "save_project_with_items",
            self.store.replace_project_items(project_id, updates, items),
        )
        if not saved.ok:
            return saved.passthrough()
        if not saved.data:
            return ServiceResult.not_found("Project", project_id)
        return await self.get_project_with_items(project_id)

    async def duplicate_project(self, project_id: str, new_name: str | None = None) -> ServiceResult[Project]:
        """Copy a project and its items. Nothing is kept if any write fails."""
        source = await self.get_project(project_id)
        if not source.ok:
            return source
        name = new_name or f"{source.data.name} (Copy)"
        result = await self._run("duplicate_project", self.store.duplicate_project(project_id, name))
        if result.ok and result.data is None:
            return ServiceResult.not_found("Project", project_id)
        return result

    # Purchases

    async def update_item_purchase(
        self,
        item_id: str,
        is_purchased: bool | None = None,
        actual_quantity: float | None = None,
        actual_price_usd: float | None = None,
    ) -> ServiceResult[BOQItem]:
        updates: dict[str, Any] = {}
        if is_purchased is not None:
            updates["is_purchased"] = is_purchased
            updates["purchased_date"] = self._clock().isoformat() if is_purchased else None
        if actual_quantity is not None:
            updates["actual_quantity"] = actual_quantity
        if actual_price_usd is not None:
            updates["actual_price_usd"] = actual_price_usd
        return await self.update_boq_item(item_id, **updates)

    async def mark_items_purchased(
        self,
        item_ids: list[str],
        actual_quantity: float | None = None,
        actual_price_usd: float | None = None,
    ) -> ServiceResult[int]:
        return await self._run(
            "mark_items_purchased",
            self.store.mark_items_purchased(
                item_ids,
                self._clock().isoformat(),
                actual_quantity=actual_quantity,
                actual_price_usd=actual_price_usd,
            ),
        )

    async def get_project_purchase_stats(self, project_id: str) -> ServiceResult[PurchaseStats]:
        """Planned total against what purchased items actually cost."""
        items = await self.get_boq_items(project_id)
        if not items.ok:
            return ServiceResult(data=PurchaseStats(), error=items.error, category=items.category)

        stats = PurchaseStats(total_items=len(items.data))
        for item in items.data:
            stats.estimated_total += item.total_usd
            if item.is_purchased:
                stats.purchased_items += 1
                stats.actual_spent += item.actual_spent_usd
        return ServiceResult(data=stats)

    # Reminders

    async def create_reminder(
        self,
        project_id: str,
        reminder_type: str,
        message: str,
        scheduled_date: str,
        phone_number: str,
        item_id: str | None = None,
    ) -> ServiceResult[Reminder]:
        return await self._run("create_reminder", self.store.create_reminder(
            project_id=project_id,
            reminder_type=ReminderType(reminder_type),
            message=message,
            scheduled_date=scheduled_date,
            phone_number=phone_number,
            item_id=item_id,
        ))

    async def get_reminders(self, project_id: str) -> ServiceResult[list[Reminder]]:
        return await self._run("get_reminders", self.store.get_reminders(project_id))

    async def delete_reminder(self, reminder_id: str) -> ServiceResult[bool]:
        result = await self._run("delete_reminder", self.store.delete_reminder(reminder_id))
        if result.ok and not result.data:
            return ServiceResult.not_found("Reminder", reminder_id)
        return result

    # Shares

    async def share_project(self, project_id: str, email: str, access_level: str = "view") -> ServiceResult[ProjectShare]:
        if "@" not in email:
            raise ValueError(f"Invalid email address: {email}")
        project = await self.get_project(project_id)
        if not project.ok:
            return project.passthrough()
        return await self._run(
            "share_project",
            self.store.add_share(project_id, email, AccessLevel(access_level)),
        )

    async def list_shares(self, project_id: str) -> ServiceResult[list[ProjectShare]]:
        return await self._run("list_shares", self.store.list_shares(project_id))

    async def remove_share(self, project_id: str, email: str) -> ServiceResult[bool]:
        result = await self._run("remove_share", self.store.remove_share(project_id, email))
        if result.ok and not result.data:
            return ServiceResult.not_found("Share", email)
        return result
