"""Layout of wall segments and feature glyphs for each side of a room.

Coordinates are room-local pixels with the origin at the room's top-left
corner.
"""

from dataclasses import dataclass, field
from typing import Any

from models.room import RoomInstance, WallFeature, get_room_type_colors

MAX_FEATURE_SIZE = 60.0
FEATURE_RATIO = 0.6
HIT_AREA_WIDTH = 20
WALL_STROKE_WIDTH = 4
WINDOW_THICKNESS = 8
WINDOW_FILL = "#bfdbfe"
WINDOW_STROKE = "#3b82f6"
DOOR_RADIUS_RATIO = 0.8

FEATURE_CYCLE = (WallFeature.SOLID, WallFeature.OPENING, WallFeature.DOOR, WallFeature.WINDOW)

Point = tuple[float, float]


def next_wall_feature(feature: WallFeature) -> WallFeature:
    """Cycle solid -> opening -> door -> window -> solid."""
    index = FEATURE_CYCLE.index(feature)
    return FEATURE_CYCLE[(index + 1) % len(FEATURE_CYCLE)]


@dataclass
class Line:
    start: Point
    end: Point
    stroke_width: float = WALL_STROKE_WIDTH
    dash: tuple[int, int] | None = None
    opacity: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "points": [*self.start, *self.end],
            "stroke_width": self.stroke_width,
        }
        if self.dash:
            result["dash"] = list(self.dash)
        if self.opacity != 1.0:
            result["opacity"] = self.opacity
        return result


@dataclass
class DoorArc:
    """Quarter circle door swing anchored at the start of the gap."""

    center: Point
    radius: float
    angle: float = 90.0
    dash: tuple[int, int] = (3, 3)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "door",
            "center": list(self.center),
            "radius": self.radius,
            "angle": self.angle,
            "dash": list(self.dash),
        }


@dataclass
class WindowRect:
    x: float
    y: float
    width: float
    height: float
    fill: str = WINDOW_FILL
    stroke: str = WINDOW_STROKE

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "window",
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "fill": self.fill,
            "stroke": self.stroke,
        }


@dataclass
class WallSegmentLayout:
    """Everything needed to draw and hit-test one side of a room."""

    side: str
    feature: WallFeature
    color: str
    hit_area: Line
    segments: list[Line] = field(default_factory=list)
    glyph: DoorArc | WindowRect | Line | None = None
    gap: tuple[Point, Point] | None = None

    def to_dict(self) -> dict[str, Any]:
        glyph: dict[str, Any] | None = None
        if isinstance(self.glyph, Line):
            glyph = {"kind": "opening", **self.glyph.to_dict()}
        elif self.glyph is not None:
            glyph = self.glyph.to_dict()
        return {
            "side": self.side,
            "feature": self.feature.value,
            "color": self.color,
            "hit_area": self.hit_area.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "glyph": glyph,
        }


def feature_size(total_length: float) -> float:
    """Width of the gap cut into a side for a non-solid feature."""
    return min(total_length * FEATURE_RATIO, MAX_FEATURE_SIZE)


def _lerp(start: Point, end: Point, t: float) -> Point:
    return (start[0] + (end[0] - start[0]) * t, start[1] + (end[1] - start[1]) * t)


def layout_wall_segment(
    start: Point,
    end: Point,
    feature: WallFeature,
    vertical: bool = False,
    side: str = "",
    color: str = "#94a3b8",
) -> WallSegmentLayout:
    """Lay out one side running from start to end.

    Solid sides are a single line. Other features split the side into two
    lines around a centered gap and draw their glyph in the gap.
    """
    total = abs(end[1] - start[1]) if vertical else abs(end[0] - start[0])
    layout = WallSegmentLayout(
        side=side,
        feature=feature,
        color=color,
        hit_area=Line(start, end, stroke_width=HIT_AREA_WIDTH),
    )

    if feature == WallFeature.SOLID or total <= 0:
        layout.segments.append(Line(start, end))
        return layout

    size = feature_size(total)
    t0 = (total - size) / 2 / total
    t1 = 1 - t0
    gap_start = _lerp(start, end, t0)
    gap_end = _lerp(start, end, t1)
    layout.gap = (gap_start, gap_end)
    layout.segments.append(Line(start, gap_start))
    layout.segments.append(Line(gap_end, end))

    if feature == WallFeature.WINDOW:
        left = min(gap_start[0], gap_end[0])
        top = min(gap_start[1], gap_end[1])
        half = WINDOW_THICKNESS / 2
        if vertical:
            layout.glyph = WindowRect(left - half, top, WINDOW_THICKNESS, size)
        else:
            layout.glyph = WindowRect(left, top - half, size, WINDOW_THICKNESS)
    elif feature == WallFeature.DOOR:
        layout.glyph = DoorArc(center=gap_start, radius=size * DOOR_RADIUS_RATIO)
    elif feature == WallFeature.OPENING:
        layout.glyph = Line(gap_start, gap_end, stroke_width=1.5, dash=(4, 4), opacity=0.6)

    return layout


def layout_room_walls(room: RoomInstance, pixels_per_meter: float = 40.0) -> list[WallSegmentLayout]:
    """Lay out all four sides of a room in clockwise order."""
    w = room.width * pixels_per_meter
    h = room.length * pixels_per_meter
    color, _ = get_room_type_colors(room.type)
    walls = room.walls
    return [
        layout_wall_segment((0, 0), (w, 0), walls.top, side="top", color=color),
        layout_wall_segment((w, 0), (w, h), walls.right, vertical=True, side="right", color=color),
        layout_wall_segment((w, h), (0, h), walls.bottom, side="bottom", color=color),
        layout_wall_segment((0, h), (0, 0), walls.left, vertical=True, side="left", color=color),
    ]
