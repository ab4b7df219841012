"""Construction stage, stage task and material usage models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from models.project import BOQItem


class StageStatus(Enum):
    PLANNING = "planning"
    PENDING_APPROVAL = "pending_approval"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


@dataclass(frozen=True)
class DefaultStage:
    """Template for a stage every new project starts with."""

    boq_category: str
    name: str
    description: str
    tasks: tuple[tuple[str, str], ...]


DEFAULT_STAGES: tuple[DefaultStage, ...] = (
    DefaultStage(
        "substructure",
        "Substructure",
        "Foundation, trenches, and groundwork",
        (
            ("Ensure inspector approves building plan", "Get official approval before breaking ground"),
            ("Obtain building permit", "Secure necessary permits from local authority"),
            ("Clear and level site", "Prepare land for construction"),
            ("Mark foundation layout", "Set out foundation dimensions with pegs and strings"),
        ),
    ),
    DefaultStage(
        "superstructure",
        "Superstructure",
        "Walls, columns, and structural elements",
        (
            ("Verify foundation curing complete", "Ensure foundation has properly cured before building"),
            ("Inspect material delivery", "Check bricks, cement, and steel quality"),
            ("Set up scaffolding safely", "Ensure proper scaffolding for wall construction"),
        ),
    ),
    DefaultStage(
        "roofing",
        "Roofing",
        "Roof structure, trusses, and covering",
        (
            ("Verify wall plate installation", "Ensure wall plates are level and secure"),
            ("Schedule truss delivery", "Coordinate roof truss delivery and installation"),
            ("Arrange roofing material inspection", "Check IBR sheets or tiles before installation"),
        ),
    ),
    DefaultStage(
        "finishing",
        "Finishing",
        "Plastering, painting, and interior work",
        (
            ("Complete electrical rough-in", "Install wiring before plastering"),
            ("Complete plumbing rough-in", "Install pipes before wall finishing"),
            ("Schedule paint color selection", "Finalize interior and exterior colors"),
        ),
    ),
    DefaultStage(
        "exterior",
        "Exterior",
        "Fencing, gates, paving, and landscaping",
        (
            ("Plan boundary wall layout", "Mark fence/wall positions"),
            ("Order gate and security fixtures", "Select and order gates, locks"),
            ("Schedule driveway construction", "Plan paving or concrete work"),
        ),
    ),
)


def stage_applies(category: str, scope: str, selected_stages: list[str] | None = None) -> bool:
    """Whether a stage is part of a project.

    An explicit stage selection wins; otherwise a whole-house project uses
    every stage and a single-stage project only its own.
    """
    if selected_stages:
        return category in selected_stages
    return scope == "entire_house" or scope == category


@dataclass
class StageTask:
    """A checklist entry within a stage."""

    id: str
    stage_id: str
    title: str
    description: str | None = None
    assigned_to: str | None = None
    verification_note: str | None = None
    is_completed: bool = False
    completed_at: str | None = None
    sort_order: int = 0
    is_default: bool = False
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stage_id": self.stage_id,
            "title": self.title,
            "description": self.description,
            "assigned_to": self.assigned_to,
            "verification_note": self.verification_note,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "sort_order": self.sort_order,
            "is_default": self.is_default,
        }


@dataclass
class ProjectStage:
    """One construction stage of a project, tied to a BOQ category."""

    id: str
    project_id: str
    boq_category: str
    name: str
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    status: StageStatus = StageStatus.PLANNING
    sort_order: int = 0
    is_applicable: bool = True
    tasks: list[StageTask] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def completed_tasks(self) -> int:
        return sum(1 for task in self.tasks if task.is_completed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "boq_category": self.boq_category,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "status": self.status.value,
            "sort_order": self.sort_order,
            "is_applicable": self.is_applicable,
            "tasks": [task.to_dict() for task in self.tasks],
            "updated_at": self.updated_at,
        }


@dataclass
class MaterialUsage:
    """Quantity of a BOQ item used on site on one day."""

    id: str
    project_id: str
    boq_item_id: str
    quantity_used: float
    usage_date: str
    notes: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "boq_item_id": self.boq_item_id,
            "quantity_used": self.quantity_used,
            "usage_date": self.usage_date,
            "notes": self.notes,
            "created_at": self.created_at,
        }


@dataclass
class StageBudgetStats:
    """Planned cost of a stage's items against what purchases cost."""

    total_budget: float = 0.0
    total_spent: float = 0.0
    item_count: int = 0
    purchased_count: int = 0

    @property
    def remaining(self) -> float:
        return self.total_budget - self.total_spent

    @property
    def usage_percent(self) -> float:
        if self.total_budget <= 0:
            return 0.0
        return self.total_spent / self.total_budget * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_budget": round(self.total_budget, 2),
            "total_spent": round(self.total_spent, 2),
            "remaining": round(self.remaining, 2),
            "item_count": self.item_count,
            "purchased_count": self.purchased_count,
            "usage_percent": round(self.usage_percent, 1),
        }


@dataclass
class StageProgress:
    stage_id: str
    boq_category: str
    name: str
    status: StageStatus
    tasks_completed: int
    tasks_total: int
    spent: float
    budget: float
    is_applicable: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "boq_category": self.boq_category,
            "name": self.name,
            "status": self.status.value,
            "task_progress": {"completed": self.tasks_completed, "total": self.tasks_total},
            "budget_progress": {"spent": round(self.spent, 2), "total": round(self.budget, 2)},
            "is_applicable": self.is_applicable,
        }


@dataclass
class StageSavingsPlan:
    """How much to put aside to fund a stage's remaining purchases by its end date."""

    target_date: str | None
    total_remaining: float
    weeks_remaining: int = 0
    weekly_target: float = 0.0
    monthly_target: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_date": self.target_date,
            "total_remaining": round(self.total_remaining, 2),
            "weeks_remaining": self.weeks_remaining,
            "weekly_target": round(self.weekly_target, 2),
            "monthly_target": round(self.monthly_target, 2),
        }


@dataclass
class ItemUsage:
    """How much of one BOQ item is left on site."""

    item: BOQItem
    used: float = 0.0

    @property
    def available(self) -> float:
        if self.item.actual_quantity is not None:
            return self.item.actual_quantity
        return self.item.quantity

    @property
    def remaining(self) -> float:
        return max(self.available - self.used, 0.0)

    @property
    def usage_percent(self) -> float:
        return self.used / self.available * 100 if self.available > 0 else 0.0

    @property
    def remaining_percent(self) -> float:
        return self.remaining / self.available * 100 if self.available > 0 else 0.0

    def is_low_stock(self, threshold: float) -> bool:
        return self.available > 0 and self.remaining_percent <= threshold

    def to_dict(self, threshold: float) -> dict[str, Any]:
        return {
            "item_id": self.item.id,
            "material_name": self.item.material_name,
            "category": self.item.category,
            "unit": self.item.unit,
            "available": self.available,
            "used": round(self.used, 3),
            "remaining": round(self.remaining, 3),
            "usage_percent": round(self.usage_percent, 1),
            "low_stock": self.is_low_stock(threshold),
        }


@dataclass
class UsageSummary:
    """Material usage across a project's items."""

    items: list[ItemUsage]
    threshold: float = 20
    alerts_enabled: bool = False

    @property
    def total_available(self) -> float:
        return sum(u.available for u in self.items)

    @property
    def total_used(self) -> float:
        return sum(u.used for u in self.items)

    @property
    def total_remaining(self) -> float:
        return sum(u.remaining for u in self.items)

    @property
    def overall_percent(self) -> float:
        total = self.total_available
        return self.total_used / total * 100 if total > 0 else 0.0

    @property
    def low_stock(self) -> list[ItemUsage]:
        return [u for u in self.items if u.is_low_stock(self.threshold)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "threshold_percent": self.threshold,
            "alerts_enabled": self.alerts_enabled,
            "total_available": round(self.total_available, 3),
            "total_used": round(self.total_used, 3),
            "total_remaining": round(self.total_remaining, 3),
            "overall_percent": round(self.overall_percent, 1),
            "low_stock_count": len(self.low_stock),
            "items": [u.to_dict(self.threshold) for u in self.items],
        }
