"""Tests for wall segment layout and SVG rendering."""

import xml.etree.ElementTree as ET

import pytest

from conftest import make_room
from floorplan.render import SVG_NS, canvas_size, render_floor_plan
from floorplan.walls import (
    DoorArc,
    Line,
    WindowRect,
    feature_size,
    layout_room_walls,
    layout_wall_segment,
    next_wall_feature,
)
from models.room import RoomWalls, WallFeature


class TestWallFeatures:
    """Tests for wall feature cycling."""

    def test_cycle_order(self):
        """Test features cycle solid, opening, door, window and back."""
        feature = WallFeature.SOLID
        seen = []
        for _ in range(4):
            feature = next_wall_feature(feature)
            seen.append(feature)
        assert seen == [WallFeature.OPENING, WallFeature.DOOR, WallFeature.WINDOW, WallFeature.SOLID]

    def test_feature_size_is_capped(self):
        """Test gaps take 60% of a side up to 60 pixels."""
        assert feature_size(50) == 30
        assert feature_size(200) == 60


class TestLayoutWallSegment:
    """Tests for single side layout."""

    def test_solid_side(self):
        """Test a solid side is one line without a glyph."""
        layout = layout_wall_segment((0, 0), (160, 0), WallFeature.SOLID, side="top")
        assert len(layout.segments) == 1
        assert layout.glyph is None
        assert layout.gap is None

    def test_door_splits_side(self):
        """Test a door leaves a centered gap with a swing arc."""
        layout = layout_wall_segment((0, 0), (160, 0), WallFeature.DOOR, side="top")

        assert layout.gap == ((50.0, 0.0), (110.0, 0.0))
        assert [s.end for s in layout.segments] == [(50.0, 0.0), (160, 0)]
        assert isinstance(layout.glyph, DoorArc)
        assert layout.glyph.center == (50.0, 0.0)
        assert layout.glyph.radius == pytest.approx(48.0)

    def test_vertical_window(self):
        """Test a window on a vertical side is drawn across the wall."""
        layout = layout_wall_segment((160, 0), (160, 120), WallFeature.WINDOW, vertical=True)

        assert isinstance(layout.glyph, WindowRect)
        assert layout.glyph.x == 156
        assert layout.glyph.y == 30
        assert layout.glyph.width == 8
        assert layout.glyph.height == 60

    def test_opening_is_dashed(self):
        """Test an opening is shown as a faint dashed line."""
        layout = layout_wall_segment((0, 0), (160, 0), WallFeature.OPENING)
        assert isinstance(layout.glyph, Line)
        assert layout.glyph.dash == (4, 4)
        assert layout.to_dict()["glyph"]["kind"] == "opening"

    def test_hit_area_spans_side(self):
        """Test the hit area covers the whole side."""
        layout = layout_wall_segment((0, 0), (160, 0), WallFeature.WINDOW)
        assert layout.hit_area.start == (0, 0)
        assert layout.hit_area.end == (160, 0)
        assert layout.hit_area.stroke_width == 20


class TestLayoutRoomWalls:
    """Tests for whole room wall layout."""

    def test_sides_in_clockwise_order(self):
        """Test sides are laid out top, right, bottom, left."""
        room = make_room(walls=RoomWalls(right=WallFeature.DOOR))
        layouts = layout_room_walls(room, pixels_per_meter=40)

        assert [w.side for w in layouts] == ["top", "right", "bottom", "left"]
        assert layouts[1].feature == WallFeature.DOOR
        assert layouts[0].segments[0].end == (160.0, 0)
        assert layouts[1].color == "#3b82f6"


class TestRenderFloorPlan:
    """Tests for SVG rendering."""

    def _rooms(self, svg: str) -> list[ET.Element]:
        root = ET.fromstring(svg)
        return root.findall(f".//{{{SVG_NS}}}g[@class='room']")

    def test_canvas_fits_rooms(self):
        """Test the canvas covers every room plus padding."""
        rooms = [make_room("a"), make_room("b", x=4.0, y=3.0)]
        assert canvas_size(rooms, 40) == (360.0, 280.0)
        assert canvas_size([], 40) == (40.0, 40.0)

    def test_renders_each_room(self):
        """Test every room is drawn with its label and dimensions."""
        rooms = [make_room("a", label="Bedroom 1"), make_room("b", x=5.0, label="Kitchen")]
        svg = render_floor_plan(rooms)

        assert svg.startswith("<svg")
        assert [g.get("id") for g in self._rooms(svg)] == ["a", "b"]
        assert "Bedroom 1" in svg
        assert "3m x 4m" in svg

    def test_collisions_are_highlighted(self):
        """Test overlapping rooms are filled red."""
        rooms = [make_room("a"), make_room("b", x=2.0)]
        svg = render_floor_plan(rooms)
        assert svg.count('fill="#fef2f2"') == 2

    def test_render_does_not_change_rooms(self):
        """Test rendering leaves the room list untouched."""
        rooms = [make_room("a"), make_room("b", x=2.0)]
        before = [r.to_dict() for r in rooms]
        render_floor_plan(rooms, selected_room_id="a")
        assert [r.to_dict() for r in rooms] == before

    def test_grid_can_be_disabled(self):
        """Test no grid group is drawn without a grid size."""
        svg = render_floor_plan([make_room()], grid_size=None)
        assert 'class="grid"' not in svg
