"""Editor session owning the room list of one floor plan.

Every mutation records the previous room list for undo and returns the new
list. Rooms are immutable, so history entries never share mutable state.
"""

import logging
import math
from dataclasses import fields, replace
from typing import Any

from config import EditorConfig, EstimatorConfig
from estimation.walls import LayoutTotals, layout_totals
from floorplan.geometry import (
    AlignmentGuides,
    alignment_guides,
    detect_collisions,
    drag_position,
    resize_dimensions,
)
from floorplan.walls import next_wall_feature
from models.room import (
    DEFAULT_MATERIAL_ID,
    ENSUITE_TYPES,
    ROOM_TYPES,
    RoomInstance,
    RoomWalls,
    WallFeature,
    generate_room_id,
)
from utils.errors import RoomNotFoundError

logger = logging.getLogger(__name__)

# Placement of new rooms, in meters
LAYOUT_ORIGIN = 0.5
LAYOUT_CELL_WIDTH = 4.0
LAYOUT_CELL_HEIGHT = 3.5
ENSUITE_INSET = 0.25
COPY_OFFSET = 1.0

_IMMUTABLE_FIELDS = {"id"}
_ROOM_FIELDS = {f.name for f in fields(RoomInstance)}


class EditorSession:
    """Room list, selection, clipboard and undo history for one layout."""

    def __init__(
        self,
        layout_id: str = "default",
        config: EditorConfig | None = None,
        estimator: EstimatorConfig | None = None,
        target_floor_area: float = 0.0,
        rooms: list[RoomInstance] | None = None,
    ):
        self.layout_id = layout_id
        self.config = config or EditorConfig()
        self.estimator = estimator or EstimatorConfig()
        self.target_floor_area = target_floor_area
        self._rooms: list[RoomInstance] = list(rooms or [])
        self.selected_room_id: str | None = None
        self.clipboard: RoomInstance | None = None
        self._past: list[list[RoomInstance]] = []
        self._future: list[list[RoomInstance]] = []

    @property
    def rooms(self) -> list[RoomInstance]:
        return list(self._rooms)

    @property
    def selected_room(self) -> RoomInstance | None:
        if self.selected_room_id is None:
            return None
        return next((r for r in self._rooms if r.id == self.selected_room_id), None)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def get_room(self, room_id: str) -> RoomInstance:
        for room in self._rooms:
            if room.id == room_id:
                return room
        raise RoomNotFoundError(room_id)

    def _resolve(self, room_id: str | None) -> RoomInstance:
        """Return the given room, or the selected one when no id is given."""
        target = room_id or self.selected_room_id
        if target is None:
            raise ValueError("No room selected")
        return self.get_room(target)

    def _commit(self, rooms: list[RoomInstance]) -> list[RoomInstance]:
        self._past.append(self._rooms)
        if len(self._past) > self.config.history_limit:
            self._past.pop(0)
        self._future.clear()
        self._rooms = rooms
        return self.rooms

    def _replace_room(self, updated: RoomInstance) -> list[RoomInstance]:
        return self._commit([updated if r.id == updated.id else r for r in self._rooms])

    # History

    def undo(self) -> list[RoomInstance]:
        if not self._past:
            return self.rooms
        self._future.insert(0, self._rooms)
        self._rooms = self._past.pop()
        self._fix_selection()
        return self.rooms

    def redo(self) -> list[RoomInstance]:
        if not self._future:
            return self.rooms
        self._past.append(self._rooms)
        self._rooms = self._future.pop(0)
        self._fix_selection()
        return self.rooms

    def _fix_selection(self) -> None:
        if self.selected_room_id and self.selected_room is None:
            self.selected_room_id = None

    # Selection

    def select(self, room_id: str | None) -> RoomInstance | None:
        if room_id is not None:
            self.get_room(room_id)
        self.selected_room_id = room_id
        return self.selected_room

    # Adding and removing rooms

    def _next_grid_position(self) -> tuple[float, float]:
        columns = self.config.layout_columns
        count = len(self._rooms)
        row, col = divmod(count, columns)
        return LAYOUT_ORIGIN + col * LAYOUT_CELL_WIDTH, LAYOUT_ORIGIN + row * LAYOUT_CELL_HEIGHT

    def add_room(self, type_key: str) -> list[RoomInstance]:
        """Add a room of a base type in the next free grid cell and select it."""
        room_type = ROOM_TYPES.get(type_key)
        if room_type is None:
            raise ValueError(f"Unknown room type: {type_key}")

        existing = sum(1 for r in self._rooms if r.type == type_key)
        x, y = self._next_grid_position()
        room = RoomInstance(
            id=generate_room_id(type_key),
            type=type_key,
            label=f"{room_type.label} {existing + 1}",
            width=room_type.default_width,
            length=room_type.default_length,
            x=x,
            y=y,
            doors=1,
            windows=1,
            material_id=DEFAULT_MATERIAL_ID,
        )
        rooms = self._commit([*self._rooms, room])
        self.selected_room_id = room.id
        logger.debug(f"Added room {room.id} to layout {self.layout_id}")
        return rooms

    def add_ensuite(self, type_key: str, parent_room_id: str | None = None) -> list[RoomInstance]:
        """Attach an en-suite inside the parent's top-right corner.

        Further en-suites of the same parent stack downwards.
        """
        room_type = ENSUITE_TYPES.get(type_key)
        if room_type is None:
            raise ValueError(f"Unknown en-suite type: {type_key}")
        parent = self._resolve(parent_room_id)

        siblings = sum(1 for r in self._rooms if r.parent_room_id == parent.id)
        x = max(0.0, parent.x + parent.width - room_type.default_width - ENSUITE_INSET)
        y = parent.y + ENSUITE_INSET + siblings * (room_type.default_length + ENSUITE_INSET)
        room = RoomInstance(
            id=generate_room_id(type_key),
            type=type_key,
            label=room_type.label,
            width=room_type.default_width,
            length=room_type.default_length,
            x=round(x, 6),
            y=round(y, 6),
            doors=1,
            windows=0,
            material_id=DEFAULT_MATERIAL_ID,
            is_en_suite=True,
            parent_room_id=parent.id,
        )
        return self._commit([*self._rooms, room])

    def remove_room(self, room_id: str | None = None) -> list[RoomInstance]:
        """Remove a room together with its en-suites."""
        room = self._resolve(room_id)
        remaining = [r for r in self._rooms if r.id != room.id and r.parent_room_id != room.id]
        rooms = self._commit(remaining)
        if self.selected_room is None:
            self.selected_room_id = remaining[0].id if remaining else None
        return rooms

    # Editing

    def update_room(self, room_id: str, **changes: Any) -> list[RoomInstance]:
        """Replace fields of a room. Invalid values raise ValueError."""
        room = self.get_room(room_id)
        unknown = set(changes) - _ROOM_FIELDS
        if unknown:
            raise ValueError(f"Unknown room fields: {', '.join(sorted(unknown))}")
        if _IMMUTABLE_FIELDS & set(changes):
            raise ValueError("Room id cannot be changed")
        if "walls" in changes and not isinstance(changes["walls"], RoomWalls):
            changes["walls"] = RoomWalls.from_dict(changes["walls"])
        return self._replace_room(replace(room, **changes))

    def move_room(self, room_id: str, x: float, y: float) -> list[RoomInstance]:
        """Move a room as a drag would: clamp at zero, then snap."""
        room = self.get_room(room_id)
        new_x, new_y = drag_position(x, y, self.config.grid_snap_size, self.config.snap_to_grid)
        return self._replace_room(replace(room, x=new_x, y=new_y))

    def nudge_room(self, room_id: str, dx: float, dy: float) -> list[RoomInstance]:
        room = self.get_room(room_id)
        return self.move_room(room_id, room.x + dx, room.y + dy)

    def resize_room(
        self,
        room_id: str,
        scale_x: float,
        scale_y: float,
        x: float | None = None,
        y: float | None = None,
    ) -> list[RoomInstance]:
        """Apply resize scale factors and an optional new position in one step."""
        room = self.get_room(room_id)
        width, length = resize_dimensions(
            room.width, room.length, scale_x, scale_y, self.config.min_dimension
        )
        new_x, new_y = room.x, room.y
        if x is not None or y is not None:
            new_x, new_y = drag_position(
                room.x if x is None else x,
                room.y if y is None else y,
                self.config.grid_snap_size,
                self.config.snap_to_grid,
            )
        return self._replace_room(replace(room, width=width, length=length, x=new_x, y=new_y))

    def rotate_room(self, room_id: str | None = None) -> list[RoomInstance]:
        """Rotate 90 degrees clockwise, swapping dimensions and walls."""
        room = self._resolve(room_id)
        rotated = replace(
            room,
            width=room.length,
            length=room.width,
            rotation=(room.rotation + 90) % 360,
            walls=room.walls.rotated(),
        )
        return self._replace_room(rotated)

    def toggle_wall(self, room_id: str, side: str) -> list[RoomInstance]:
        """Cycle the feature of one side and select the room."""
        room = self.get_room(room_id)
        feature = next_wall_feature(room.walls.get(side))
        rooms = self._replace_room(replace(room, walls=room.walls.with_side(side, feature)))
        self.selected_room_id = room_id
        return rooms

    def set_wall(self, room_id: str, side: str, feature: WallFeature | str) -> list[RoomInstance]:
        room = self.get_room(room_id)
        walls = room.walls.with_side(side, WallFeature(feature))
        return self._replace_room(replace(room, walls=walls))

    # Clipboard

    def copy_room(self, room_id: str | None = None) -> RoomInstance:
        self.clipboard = self._resolve(room_id)
        return self.clipboard

    def _clone(self, source: RoomInstance) -> RoomInstance:
        return replace(
            source,
            id=generate_room_id(source.type),
            label=f"{source.label} (Copy)",
            x=source.x + COPY_OFFSET,
            y=source.y + COPY_OFFSET,
            is_en_suite=False,
            parent_room_id=None,
        )

    def paste_room(self) -> list[RoomInstance]:
        if self.clipboard is None:
            raise ValueError("Clipboard is empty")
        room = self._clone(self.clipboard)
        rooms = self._commit([*self._rooms, room])
        self.selected_room_id = room.id
        return rooms

    def duplicate_room(self, room_id: str | None = None) -> list[RoomInstance]:
        room = self._clone(self._resolve(room_id))
        rooms = self._commit([*self._rooms, room])
        self.selected_room_id = room.id
        return rooms

    # Whole layout

    def auto_adjust(self, target_floor_area: float | None = None) -> list[RoomInstance]:
        """Scale every room uniformly so the total area approaches the target."""
        target = target_floor_area if target_floor_area is not None else self.target_floor_area
        if target <= 0:
            raise ValueError(f"Target floor area must be positive, got {target}")
        current = sum(r.floor_area for r in self._rooms)
        if current == 0:
            return self.rooms

        scale = math.sqrt(target / current)
        minimum = self.config.min_dimension
        return self._commit([
            replace(
                r,
                width=max(minimum, round(r.width * scale, 1)),
                length=max(minimum, round(r.length * scale, 1)),
            )
            for r in self._rooms
        ])

    def init_from_counts(self, room_counts: dict[str, int]) -> list[RoomInstance]:
        """Replace the layout with default rooms for each type count.

        Rooms are laid left to right and wrap after the configured number of
        columns. Unknown types and non-positive counts are skipped.
        """
        columns = self.config.layout_columns
        rooms: list[RoomInstance] = []
        x = y = LAYOUT_ORIGIN
        for type_key, count in room_counts.items():
            room_type = ROOM_TYPES.get(type_key)
            if room_type is None or count <= 0:
                continue
            for i in range(count):
                rooms.append(RoomInstance(
                    id=generate_room_id(type_key),
                    type=type_key,
                    label=f"{room_type.label} {i + 1}" if count > 1 else room_type.label,
                    width=room_type.default_width,
                    length=room_type.default_length,
                    x=x,
                    y=y,
                ))
                x += LAYOUT_CELL_WIDTH
                if x > LAYOUT_CELL_WIDTH * columns:
                    x = LAYOUT_ORIGIN
                    y += LAYOUT_CELL_HEIGHT

        result = self._commit(rooms)
        self.selected_room_id = rooms[0].id if rooms else None
        return result

    # Derived views

    def totals(self) -> LayoutTotals:
        return layout_totals(self._rooms, self.estimator)

    def collisions(self) -> dict[str, bool]:
        return detect_collisions(self._rooms, self.config.collision_margin)

    def guides_for(self, room_id: str) -> AlignmentGuides:
        return alignment_guides(self.get_room(room_id), self._rooms, self.config.alignment_threshold)

    def to_dict(self) -> dict[str, Any]:
        collisions = self.collisions()
        return {
            "layout_id": self.layout_id,
            "target_floor_area": self.target_floor_area,
            "selected_room_id": self.selected_room_id,
            "rooms": [r.to_dict() | {"has_collision": collisions[r.id]} for r in self._rooms],
            "totals": self.totals().to_dict(),
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
        }

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "layout_id": self.layout_id,
            "room_count": len(self._rooms),
            "target_floor_area": self.target_floor_area,
            "totals": self.totals().to_dict(),
        }
