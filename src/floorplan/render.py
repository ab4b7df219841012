"""SVG rendering of a floor plan.

The renderer is a pure view over the room list: it reads rooms and editor
flags and never changes them.
"""

import xml.etree.ElementTree as ET
from collections.abc import Sequence

from floorplan.geometry import detect_collisions, room_style
from floorplan.walls import DoorArc, Line, WindowRect, layout_room_walls
from models.room import RoomInstance

SVG_NS = "http://www.w3.org/2000/svg"
GRID_COLOR = "#e2e8f0"
LABEL_COLOR = "#1e293b"
DIMENSION_COLOR = "#64748b"
CANVAS_PADDING = 40


def _tag(name: str) -> str:
    return "{%s}%s" % (SVG_NS, name)


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _fmt_meters(value: float) -> str:
    return f"{value:g}m"


def canvas_size(rooms: Sequence[RoomInstance], pixels_per_meter: float) -> tuple[float, float]:
    """Pixel size that fits every room plus padding."""
    max_x = max((r.right for r in rooms), default=0.0) * pixels_per_meter
    max_y = max((r.bottom for r in rooms), default=0.0) * pixels_per_meter
    return max_x + CANVAS_PADDING, max_y + CANVAS_PADDING


def _draw_grid(svg: ET.Element, width: float, height: float, step: float) -> None:
    grid = ET.SubElement(svg, _tag("g"), attrib={"class": "grid", "stroke": GRID_COLOR, "stroke-width": "1"})
    x = 0.0
    while x <= width:
        ET.SubElement(grid, _tag("line"), attrib={"x1": _fmt(x), "y1": "0", "x2": _fmt(x), "y2": _fmt(height)})
        x += step
    y = 0.0
    while y <= height:
        ET.SubElement(grid, _tag("line"), attrib={"x1": "0", "y1": _fmt(y), "x2": _fmt(width), "y2": _fmt(y)})
        y += step


def _line_attrib(line: Line, color: str) -> dict[str, str]:
    attrib = {
        "x1": _fmt(line.start[0]),
        "y1": _fmt(line.start[1]),
        "x2": _fmt(line.end[0]),
        "y2": _fmt(line.end[1]),
        "stroke": color,
        "stroke-width": _fmt(line.stroke_width),
        "stroke-linecap": "round",
    }
    if line.dash:
        attrib["stroke-dasharray"] = ",".join(str(d) for d in line.dash)
    if line.opacity != 1.0:
        attrib["opacity"] = _fmt(line.opacity)
    return attrib


def _draw_room(
    parent: ET.Element,
    room: RoomInstance,
    pixels_per_meter: float,
    has_collision: bool,
    is_selected: bool,
) -> None:
    width_px = room.width * pixels_per_meter
    length_px = room.length * pixels_per_meter
    style = room_style(room, has_collision=has_collision, is_selected=is_selected)

    group = ET.SubElement(parent, _tag("g"), attrib={
        "id": room.id,
        "class": "room",
        "transform": f"translate({_fmt(room.x * pixels_per_meter)},{_fmt(room.y * pixels_per_meter)})",
    })

    rect_attrib = {
        "width": _fmt(width_px),
        "height": _fmt(length_px),
        "rx": "2",
        "fill": style.fill,
    }
    if style.stroke_width > 0:
        rect_attrib["stroke"] = style.stroke
        rect_attrib["stroke-width"] = str(style.stroke_width)
    ET.SubElement(group, _tag("rect"), attrib=rect_attrib)

    for wall in layout_room_walls(room, pixels_per_meter):
        wall_group = ET.SubElement(group, _tag("g"), attrib={
            "class": f"wall wall-{wall.side}",
            "data-feature": wall.feature.value,
        })
        hit = _line_attrib(wall.hit_area, "transparent")
        hit["pointer-events"] = "stroke"
        ET.SubElement(wall_group, _tag("line"), attrib=hit)
        for segment in wall.segments:
            ET.SubElement(wall_group, _tag("line"), attrib=_line_attrib(segment, wall.color))

        glyph = wall.glyph
        if isinstance(glyph, WindowRect):
            ET.SubElement(wall_group, _tag("rect"), attrib={
                "x": _fmt(glyph.x),
                "y": _fmt(glyph.y),
                "width": _fmt(glyph.width),
                "height": _fmt(glyph.height),
                "rx": "1",
                "fill": glyph.fill,
                "stroke": glyph.stroke,
                "stroke-width": "1",
            })
        elif isinstance(glyph, DoorArc):
            cx, cy = glyph.center
            r = glyph.radius
            ET.SubElement(wall_group, _tag("path"), attrib={
                "d": f"M {_fmt(cx)} {_fmt(cy)} L {_fmt(cx + r)} {_fmt(cy)} "
                     f"A {_fmt(r)} {_fmt(r)} 0 0 1 {_fmt(cx)} {_fmt(cy + r)} Z",
                "fill": "none",
                "stroke": wall.color,
                "stroke-width": "1.5",
                "stroke-dasharray": ",".join(str(d) for d in glyph.dash),
            })
        elif isinstance(glyph, Line):
            ET.SubElement(wall_group, _tag("line"), attrib=_line_attrib(glyph, wall.color))

    label = ET.SubElement(group, _tag("text"), attrib={
        "x": _fmt(width_px / 2),
        "y": _fmt(length_px / 2 - 4),
        "text-anchor": "middle",
        "font-size": "12",
        "font-weight": "bold",
        "fill": LABEL_COLOR,
    })
    label.text = room.label
    dims = ET.SubElement(group, _tag("text"), attrib={
        "x": _fmt(width_px / 2),
        "y": _fmt(length_px / 2 + 12),
        "text-anchor": "middle",
        "font-size": "10",
        "fill": DIMENSION_COLOR,
    })
    dims.text = f"{_fmt_meters(room.length)} x {_fmt_meters(room.width)}"


def render_floor_plan(
    rooms: Sequence[RoomInstance],
    pixels_per_meter: float = 40.0,
    grid_size: float | None = 0.5,
    selected_room_id: str | None = None,
    collision_margin: float = 0.1,
) -> str:
    """Render rooms, walls and labels as an SVG document string."""
    width, height = canvas_size(rooms, pixels_per_meter)
    collisions = detect_collisions(rooms, collision_margin)

    ET.register_namespace("", SVG_NS)
    svg = ET.Element(_tag("svg"), attrib={
        "version": "1.1",
        "width": _fmt(width),
        "height": _fmt(height),
        "viewBox": f"0 0 {_fmt(width)} {_fmt(height)}",
    })
    ET.SubElement(svg, _tag("rect"), attrib={
        "x": "0",
        "y": "0",
        "width": _fmt(width),
        "height": _fmt(height),
        "fill": "#FFFFFF",
    })

    if grid_size:
        _draw_grid(svg, width, height, grid_size * pixels_per_meter)

    plan = ET.SubElement(svg, _tag("g"), attrib={"class": "rooms"})
    for room in rooms:
        _draw_room(
            plan,
            room,
            pixels_per_meter,
            has_collision=collisions.get(room.id, False),
            is_selected=room.id == selected_room_id,
        )

    return ET.tostring(svg, encoding="unicode")
