"""Room layout models for ZimEstimate MCP."""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class WallFeature(Enum):
    """Treatment of a single side of a room."""

    SOLID = "solid"
    OPENING = "opening"
    DOOR = "door"
    WINDOW = "window"


WALL_SIDES = ("top", "right", "bottom", "left")


@dataclass(frozen=True)
class RoomType:
    """Catalog entry describing a kind of room."""

    key: str
    label: str
    default_length: float
    default_width: float
    color: str
    bg_color: str
    is_en_suite: bool = False


ROOM_TYPES: dict[str, RoomType] = {
    t.key: t
    for t in (
        RoomType("bedrooms", "Bedroom", 4.0, 3.5, "#3b82f6", "#eff6ff"),
        RoomType("diningRoom", "Dining Room", 5.0, 4.0, "#8b5cf6", "#f5f3ff"),
        RoomType("veranda", "Veranda", 4.0, 2.0, "#22c55e", "#f0fdf4"),
        RoomType("bathrooms", "Bathroom", 2.5, 2.0, "#06b6d4", "#ecfeff"),
        RoomType("kitchen", "Kitchen", 4.0, 3.0, "#f97316", "#fff7ed"),
        RoomType("pantry", "Pantry", 2.0, 1.5, "#eab308", "#fefce8"),
        RoomType("livingRoom", "Living Room", 6.0, 5.0, "#ec4899", "#fdf2f8"),
        RoomType("garage1", "Single Garage", 6.0, 3.0, "#64748b", "#f8fafc"),
        RoomType("garage2", "Double Garage", 6.0, 6.0, "#64748b", "#f8fafc"),
        RoomType("passage", "Hallway", 5.0, 1.2, "#a855f7", "#faf5ff"),
    )
}

ENSUITE_TYPES: dict[str, RoomType] = {
    t.key: t
    for t in (
        RoomType("ensuite-toilet", "En-suite Toilet", 1.5, 1.0, "#06b6d4", "#ecfeff", True),
        RoomType("ensuite-bathroom", "En-suite Bath", 2.0, 1.5, "#06b6d4", "#ecfeff", True),
        RoomType("walkin-closet", "Walk-in Closet", 2.0, 1.5, "#a855f7", "#faf5ff", True),
    )
}

FALLBACK_COLORS = ("#94a3b8", "#f8fafc")


def get_room_type(type_key: str) -> RoomType | None:
    """Look up a base or en-suite room type."""
    return ROOM_TYPES.get(type_key) or ENSUITE_TYPES.get(type_key)


def get_room_type_colors(type_key: str) -> tuple[str, str]:
    """Return (stroke color, fill color) for a room type."""
    room_type = get_room_type(type_key)
    if room_type:
        return room_type.color, room_type.bg_color
    return FALLBACK_COLORS


@dataclass(frozen=True)
class WallMaterial:
    """Wall material with its laying rate in units per square meter."""

    id: str
    label: str
    rate: float
    color: str


WALL_MATERIALS: dict[str, WallMaterial] = {
    m.id: m
    for m in (
        WallMaterial("brick-common", "Common Bricks", 52, "#dc2626"),
        WallMaterial("block-6inch", '6" Hollow Blocks', 13, "#64748b"),
        WallMaterial("brick-face-red", "Face Bricks (Red)", 52, "#b91c1c"),
        WallMaterial("farm-brick", "Farm Bricks", 55, "#ea580c"),
    )
}

DEFAULT_MATERIAL_ID = "brick-common"


def get_wall_material(material_id: str | None) -> WallMaterial:
    """Return the wall material, falling back to common bricks."""
    return WALL_MATERIALS.get(material_id or DEFAULT_MATERIAL_ID, WALL_MATERIALS[DEFAULT_MATERIAL_ID])


@dataclass(frozen=True)
class RoomWalls:
    """Feature on each of the four sides of a room."""

    top: WallFeature = WallFeature.SOLID
    right: WallFeature = WallFeature.SOLID
    bottom: WallFeature = WallFeature.SOLID
    left: WallFeature = WallFeature.SOLID

    def __post_init__(self) -> None:
        for side in WALL_SIDES:
            value = getattr(self, side)
            if not isinstance(value, WallFeature):
                # Accept raw strings from stored drafts and tool arguments
                object.__setattr__(self, side, WallFeature(value))

    def get(self, side: str) -> WallFeature:
        if side not in WALL_SIDES:
            raise ValueError(f"Invalid wall side: {side}")
        return getattr(self, side)

    def with_side(self, side: str, feature: WallFeature) -> "RoomWalls":
        """Return a copy with one side changed."""
        if side not in WALL_SIDES:
            raise ValueError(f"Invalid wall side: {side}")
        return replace(self, **{side: feature})

    def rotated(self) -> "RoomWalls":
        """Return the walls after a 90 degree clockwise rotation."""
        return RoomWalls(top=self.left, right=self.top, bottom=self.right, left=self.bottom)

    def to_dict(self) -> dict[str, str]:
        return {side: getattr(self, side).value for side in WALL_SIDES}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RoomWalls":
        if not data:
            return cls()
        return cls(**{side: WallFeature(data.get(side, "solid")) for side in WALL_SIDES})


def generate_room_id(type_key: str) -> str:
    """Generate a session-stable room id."""
    return f"{type_key}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class RoomInstance:
    """A single room in a floor plan.

    Dimensions and positions are in meters. Instances are immutable; edits
    produce new instances so history snapshots never share state.
    """

    id: str
    type: str
    label: str
    width: float
    length: float
    x: float = 0.0
    y: float = 0.0
    walls: RoomWalls = field(default_factory=RoomWalls)
    doors: int = 1
    windows: int = 1
    material_id: str = DEFAULT_MATERIAL_ID
    is_en_suite: bool = False
    parent_room_id: str | None = None
    rotation: int = 0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.length <= 0:
            raise ValueError(
                f"Room {self.id} must have positive dimensions "
                f"(width={self.width}, length={self.length})"
            )
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Room {self.id} position must be non-negative (x={self.x}, y={self.y})")
        if self.doors < 0 or self.windows < 0:
            raise ValueError(f"Room {self.id} door and window counts must be non-negative")
        if self.rotation not in (0, 90, 180, 270):
            raise ValueError(f"Room {self.id} rotation must be 0, 90, 180 or 270")
        if not isinstance(self.walls, RoomWalls):
            object.__setattr__(self, "walls", RoomWalls.from_dict(self.walls))

    @property
    def floor_area(self) -> float:
        return self.width * self.length

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.length

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "width": self.width,
            "length": self.length,
            "x": self.x,
            "y": self.y,
            "walls": self.walls.to_dict(),
            "doors": self.doors,
            "windows": self.windows,
            "material_id": self.material_id,
            "is_en_suite": self.is_en_suite,
            "parent_room_id": self.parent_room_id,
            "rotation": self.rotation,
        }

    def to_summary_dict(self, has_collision: bool = False) -> dict[str, Any]:
        """Convert to summary dictionary for list responses."""
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "size": f"{self.length}m x {self.width}m",
            "position": [self.x, self.y],
            "floor_area": round(self.floor_area, 2),
            "has_collision": has_collision,
            "parent_room_id": self.parent_room_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoomInstance":
        return cls(
            id=data["id"],
            type=data["type"],
            label=data.get("label", data["type"]),
            width=float(data["width"]),
            length=float(data["length"]),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            walls=RoomWalls.from_dict(data.get("walls")),
            doors=int(data.get("doors", 1)),
            windows=int(data.get("windows", 1)),
            material_id=data.get("material_id") or DEFAULT_MATERIAL_ID,
            is_en_suite=bool(data.get("is_en_suite", False)),
            parent_room_id=data.get("parent_room_id"),
            rotation=int(data.get("rotation", 0)),
        )
