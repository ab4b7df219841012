"""Snap, drag, resize and collision geometry for floor plan rooms.

All values are in meters unless a name says otherwise.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from models.room import RoomInstance, get_room_type_colors

MIN_ROOM_DIMENSION = 0.5
DEFAULT_COLLISION_MARGIN = 0.1
DEFAULT_ALIGNMENT_THRESHOLD = 0.25

MIN_ZOOM = 0.5
MAX_ZOOM = 2.0
ZOOM_STEP = 0.1

COLLISION_FILL = "#fef2f2"
COLLISION_STROKE = "#ef4444"
SELECTED_FILL = "#dcfce7"
ACTIVE_STROKE = "#22c55e"


def snap(value: float, grid: float) -> float:
    """Snap a value to the nearest multiple of grid, rounding halves up."""
    if grid <= 0:
        raise ValueError(f"Grid size must be positive, got {grid}")
    # Round the step count so float noise cannot move an already snapped value
    steps = math.floor(round(value / grid, 9) + 0.5)
    return round(steps * grid, 6)


def drag_position(
    x: float,
    y: float,
    grid: float,
    snap_to_grid: bool = True,
) -> tuple[float, float]:
    """Translate a raw drag position into a model position.

    Both coordinates are clamped at zero, then snapped when enabled.
    """
    x = max(0.0, x)
    y = max(0.0, y)
    if snap_to_grid:
        x = snap(x, grid)
        y = snap(y, grid)
    return x, y


def resize_dimensions(
    width: float,
    length: float,
    scale_x: float,
    scale_y: float,
    minimum: float = MIN_ROOM_DIMENSION,
) -> tuple[float, float]:
    """Apply resize scale factors to stored dimensions.

    Each dimension is rounded to one decimal and floored at minimum. Zero or
    negative scale factors therefore land on the minimum.
    """
    new_width = max(minimum, round(width * scale_x, 1))
    new_length = max(minimum, round(length * scale_y, 1))
    return new_width, new_length


def rooms_overlap(
    a: RoomInstance,
    b: RoomInstance,
    margin: float = DEFAULT_COLLISION_MARGIN,
) -> bool:
    """Bounding-box overlap test with an inward tolerance margin.

    Rooms that share an edge, or overlap by less than the margin, do not
    collide.
    """
    return not (
        a.right <= b.x + margin
        or a.x >= b.right - margin
        or a.bottom <= b.y + margin
        or a.y >= b.bottom - margin
    )


def detect_collisions(
    rooms: Iterable[RoomInstance],
    margin: float = DEFAULT_COLLISION_MARGIN,
) -> dict[str, bool]:
    """Return a collision flag for every room id."""
    room_list = list(rooms)
    collisions: dict[str, bool] = {}
    for room in room_list:
        collisions[room.id] = any(
            other.id != room.id and rooms_overlap(room, other, margin) for other in room_list
        )
    return collisions


@dataclass
class AlignmentGuides:
    """Coordinates of guide lines to show while dragging."""

    vertical: list[float] = field(default_factory=list)
    horizontal: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"vertical": self.vertical, "horizontal": self.horizontal}


def _add_unique(values: list[float], value: float) -> None:
    value = round(value, 6)
    if value not in values:
        values.append(value)


def alignment_guides(
    dragged: RoomInstance,
    rooms: Iterable[RoomInstance],
    threshold: float = DEFAULT_ALIGNMENT_THRESHOLD,
) -> AlignmentGuides:
    """Find edges of other rooms within threshold of the dragged room's edges."""
    guides = AlignmentGuides()
    dragged_x_edges = (dragged.x, dragged.right)
    dragged_y_edges = (dragged.y, dragged.bottom)

    for other in rooms:
        if other.id == dragged.id:
            continue
        for edge in (other.x, other.right):
            if any(abs(edge - d) < threshold for d in dragged_x_edges):
                _add_unique(guides.vertical, edge)
        for edge in (other.y, other.bottom):
            if any(abs(edge - d) < threshold for d in dragged_y_edges):
                _add_unique(guides.horizontal, edge)

    return guides


def clamp_zoom(zoom: float) -> float:
    return round(min(MAX_ZOOM, max(MIN_ZOOM, zoom)), 2)


def zoom_in(zoom: float) -> float:
    return clamp_zoom(zoom + ZOOM_STEP)


def zoom_out(zoom: float) -> float:
    return clamp_zoom(zoom - ZOOM_STEP)


@dataclass(frozen=True)
class RoomStyle:
    fill: str
    stroke: str
    stroke_width: int


def room_style(
    room: RoomInstance,
    has_collision: bool = False,
    is_selected: bool = False,
    is_dragging: bool = False,
) -> RoomStyle:
    """Pick fill and stroke for a room.

    Collision wins over dragging, which wins over selection.
    """
    color, bg_color = get_room_type_colors(room.type)
    if has_collision:
        return RoomStyle(COLLISION_FILL, COLLISION_STROKE, 3)
    if is_dragging:
        return RoomStyle(bg_color, ACTIVE_STROKE, 3)
    if is_selected:
        return RoomStyle(SELECTED_FILL, ACTIVE_STROKE, 2)
    # Unselected rooms are outlined by their wall segments only
    return RoomStyle(bg_color, color, 0)
