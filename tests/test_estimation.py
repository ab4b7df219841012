"""Tests for wall area and walling material estimates."""

import pytest

from config import EstimatorConfig
from conftest import make_room
from estimation import estimate_layout, estimate_room, layout_totals, net_wall_area, quick_estimate


class TestNetWallArea:
    """Tests for net wall area."""

    def test_subtracts_openings(self):
        """Test doors and windows are taken off the gross wall area."""
        # 14m perimeter at 2.7m, less one door and one window
        assert net_wall_area(4.0, 3.0, 1, 1) == pytest.approx(34.3)

    def test_never_negative(self):
        """Test many openings floor the area at zero."""
        assert net_wall_area(0.5, 0.5, 10, 10) == 0.0

    def test_uses_config(self):
        """Test wall height and opening sizes come from config."""
        config = EstimatorConfig(wall_height=3.0, door_area=0, window_area=0)
        assert net_wall_area(4.0, 3.0, 1, 1, config) == pytest.approx(42.0)


class TestEstimateRoom:
    """Tests for single room estimates."""

    def test_common_brick_room(self):
        """Test units, cement and sand for a brick room with wastage."""
        estimate = estimate_room(make_room(width=4.0, length=3.0), wastage_percent=10)

        assert estimate.perimeter == 14.0
        assert estimate.units == 1962
        assert estimate.cement_bags == 18
        assert estimate.sand_m3 == 0.69
        assert estimate.material_id == "brick-common"

    def test_block_room(self):
        """Test hollow blocks use their own laying rate."""
        room = make_room(width=4.0, length=3.0, material_id="block-6inch")
        assert estimate_room(room).units == 446

    def test_unknown_material_falls_back(self):
        """Test an unknown material is estimated as common brick."""
        room = make_room(material_id="straw-bale")
        assert estimate_room(room).material_id == "brick-common"

    def test_negative_wastage(self):
        """Test negative wastage is rejected."""
        with pytest.raises(ValueError):
            estimate_room(make_room(), wastage_percent=-5)


class TestEstimateLayout:
    """Tests for whole layout estimates."""

    def test_groups_units_by_material(self):
        """Test raw units are summed per material before rounding."""
        rooms = [
            make_room("a"),
            make_room("b", x=5.0),
            make_room("c", x=10.0, material_id="block-6inch"),
        ]
        estimate = estimate_layout(rooms, wastage_percent=10)

        assert set(estimate.units_by_material) == {"brick-common", "block-6inch"}
        assert estimate.units_by_material["brick-common"] == 3924
        assert estimate.floor_area == 36.0
        assert len(estimate.to_dict()["rooms"]) == 3

    def test_wastage_never_reduces_units(self):
        """Test more wastage never gives fewer units."""
        rooms = [make_room("a", width=3.7, length=2.9), make_room("b", x=5.0, width=6.1, length=4.4)]
        totals = [estimate_layout(rooms, w).total_units for w in (5, 10, 15)]
        assert totals == sorted(totals)

    def test_estimate_is_repeatable(self):
        """Test the same rooms always give the same estimate."""
        rooms = [make_room("a", width=3.3, length=2.7), make_room("b", x=5.0)]
        assert estimate_layout(rooms).to_dict() == estimate_layout(list(rooms)).to_dict()

    def test_empty_layout(self):
        """Test an empty layout estimates nothing."""
        estimate = estimate_layout([])
        assert estimate.total_units == 0
        assert estimate.cement_bags == 0

    def test_layout_totals(self):
        """Test editing totals leave out wastage."""
        totals = layout_totals([make_room("a"), make_room("b", x=5.0)])
        assert totals.to_dict() == {"area": 24.0, "walls": 68.6, "bricks": 3568}


class TestQuickEstimate:
    """Tests for area based quick estimates."""

    def test_quick_estimate(self):
        """Test bricks, cement and sand from area and room count."""
        estimate = quick_estimate(100, 4, windows=5, doors=3, wastage_percent=10)

        assert estimate.internal_wall_length == 12.0
        assert estimate.openings_area == 13.5
        assert estimate.bricks == 7064
        assert estimate.cement_bags == 57
        assert estimate.sand_m3 == 4

    def test_single_room_has_no_internal_walls(self):
        """Test one room adds no internal wall length."""
        assert quick_estimate(50, 1).internal_wall_length == 0

    def test_invalid_area(self):
        """Test a non-positive area is rejected."""
        with pytest.raises(ValueError):
            quick_estimate(0, 3)
