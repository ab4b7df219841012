"""Data models for ZimEstimate MCP."""

from models.price import (
    LivePrice,
    PriceAggregation,
    PriceComparison,
    PriceObservation,
    PricePoint,
    PriceSource,
    PriceTrend,
    PriceWithTrend,
    ReviewStatus,
    WeeklyPrice,
)
from models.project import (
    AccessLevel,
    BOQItem,
    LaborPreference,
    Project,
    ProjectScope,
    ProjectShare,
    ProjectStatus,
    PurchaseStats,
    Reminder,
    ReminderType,
)
from models.room import (
    ENSUITE_TYPES,
    ROOM_TYPES,
    WALL_MATERIALS,
    RoomInstance,
    RoomType,
    RoomWalls,
    WallFeature,
    WallMaterial,
)
from models.stage import (
    DEFAULT_STAGES,
    MaterialUsage,
    ProjectStage,
    StageStatus,
    StageTask,
)

__all__ = [
    "AccessLevel",
    "BOQItem",
    "DEFAULT_STAGES",
    "ENSUITE_TYPES",
    "LaborPreference",
    "LivePrice",
    "MaterialUsage",
    "PriceAggregation",
    "PriceComparison",
    "PriceObservation",
    "PricePoint",
    "PriceSource",
    "PriceTrend",
    "PriceWithTrend",
    "Project",
    "ProjectScope",
    "ProjectShare",
    "ProjectStage",
    "ProjectStatus",
    "PurchaseStats",
    "ROOM_TYPES",
    "Reminder",
    "ReminderType",
    "ReviewStatus",
    "RoomInstance",
    "RoomType",
    "RoomWalls",
    "StageStatus",
    "StageTask",
    "WALL_MATERIALS",
    "WallFeature",
    "WallMaterial",
]
