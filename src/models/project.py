"""Project and bill of quantities models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProjectScope(Enum):
    """Which part of the house a project covers."""

    ENTIRE_HOUSE = "entire_house"
    SUBSTRUCTURE = "substructure"
    SUPERSTRUCTURE = "superstructure"
    ROOFING = "roofing"
    FINISHING = "finishing"
    EXTERIOR = "exterior"


class LaborPreference(Enum):
    MATERIALS_ONLY = "materials_only"
    MATERIALS_LABOR = "materials_labor"


class ProjectStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ReminderType(Enum):
    MATERIAL = "material"
    SAVINGS = "savings"
    DEADLINE = "deadline"


class AccessLevel(Enum):
    VIEW = "view"
    EDIT = "edit"


@dataclass
class Project:
    """A construction project owned by a single user."""

    id: str
    owner_id: str
    name: str
    location: str | None = None
    description: str | None = None
    scope: ProjectScope = ProjectScope.ENTIRE_HOUSE
    labor_preference: LaborPreference = LaborPreference.MATERIALS_ONLY
    status: ProjectStatus = ProjectStatus.DRAFT
    total_usd: float = 0.0
    total_zwg: float = 0.0
    selected_stages: list[str] = field(default_factory=list)
    usage_tracking_enabled: bool = False
    usage_low_stock_threshold: int = 20
    target_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "location": self.location,
            "description": self.description,
            "scope": self.scope.value,
            "labor_preference": self.labor_preference.value,
            "status": self.status.value,
            "total_usd": self.total_usd,
            "total_zwg": self.total_zwg,
            "selected_stages": self.selected_stages,
            "usage_tracking_enabled": self.usage_tracking_enabled,
            "usage_low_stock_threshold": self.usage_low_stock_threshold,
            "target_date": self.target_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_summary_dict(self) -> dict[str, Any]:
        """Convert to summary dictionary for list responses."""
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "status": self.status.value,
            "total_usd": self.total_usd,
            "updated_at": self.updated_at,
        }


@dataclass
class BOQItem:
    """A line in a project's bill of quantities."""

    id: str
    project_id: str
    material_id: str
    material_name: str
    category: str
    quantity: float
    unit: str
    unit_price_usd: float = 0.0
    unit_price_zwg: float = 0.0
    notes: str | None = None
    sort_order: int = 0
    actual_quantity: float | None = None
    actual_price_usd: float | None = None
    is_purchased: bool = False
    purchased_date: str | None = None

    @property
    def total_usd(self) -> float:
        return self.quantity * self.unit_price_usd

    @property
    def actual_spent_usd(self) -> float:
        quantity = self.actual_quantity if self.actual_quantity is not None else self.quantity
        price = self.actual_price_usd if self.actual_price_usd is not None else self.unit_price_usd
        return quantity * price

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "material_id": self.material_id,
            "material_name": self.material_name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price_usd": self.unit_price_usd,
            "unit_price_zwg": self.unit_price_zwg,
            "total_usd": round(self.total_usd, 2),
            "notes": self.notes,
            "sort_order": self.sort_order,
            "actual_quantity": self.actual_quantity,
            "actual_price_usd": self.actual_price_usd,
            "is_purchased": self.is_purchased,
            "purchased_date": self.purchased_date,
        }


@dataclass
class Reminder:
    """A scheduled WhatsApp reminder for a project."""

    id: str
    project_id: str
    reminder_type: ReminderType
    message: str
    scheduled_date: str
    phone_number: str
    item_id: str | None = None
    is_sent: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "item_id": self.item_id,
            "reminder_type": self.reminder_type.value,
            "message": self.message,
            "scheduled_date": self.scheduled_date,
            "phone_number": self.phone_number,
            "is_sent": self.is_sent,
        }


@dataclass
class ProjectShare:
    """Access granted to another user by email."""

    id: str
    project_id: str
    email: str
    access_level: AccessLevel = AccessLevel.VIEW
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "email": self.email,
            "access_level": self.access_level.value,
            "created_at": self.created_at,
        }


@dataclass
class PurchaseStats:
    """Spend summary for a project's bill of quantities."""

    total_items: int = 0
    purchased_items: int = 0
    estimated_total: float = 0.0
    actual_spent: float = 0.0

    @property
    def remaining_budget(self) -> float:
        return self.estimated_total - self.actual_spent

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "purchased_items": self.purchased_items,
            "estimated_total": round(self.estimated_total, 2),
            "actual_spent": round(self.actual_spent, 2),
            "remaining_budget": round(self.remaining_budget, 2),
        }
