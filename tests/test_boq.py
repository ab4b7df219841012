"""Tests for bill of quantities generation."""

import pytest

from estimation.boq import (
    FULL_HOUSE,
    STAGES,
    BuilderConfig,
    BuilderRoom,
    GeneratedBOQItem,
    calculate_totals,
    generate_boq_from_basics,
)


def _item(item_id, category, quantity, usd, zwg, note=""):
    return GeneratedBOQItem(
        id=item_id,
        material_id=f"mat-{item_id}",
        material_name=item_id,
        category=category,
        quantity=quantity,
        unit="each",
        unit_price_usd=usd,
        unit_price_zwg=zwg,
        calculation_note=note,
    )


class TestBuilderConfig:
    """Tests for generator input validation."""

    def test_scope_string_becomes_tuple(self):
        """Test a single scope may be given as a string."""
        assert BuilderConfig(floor_area=80, room_count=3, scope="roofing").scope == ("roofing",)

    def test_entire_house_alias(self):
        """Test the project scope name maps to the full house."""
        config = BuilderConfig(floor_area=80, room_count=3, scope=("entire_house",))
        assert config.scope == (FULL_HOUSE,)
        assert all(config.has_scope(stage) for stage in STAGES)

    def test_rejects_unknown_values(self):
        """Test unknown brick, cement and scope values are rejected."""
        with pytest.raises(ValueError):
            BuilderConfig(floor_area=80, room_count=3, brick_type="adobe")
        with pytest.raises(ValueError):
            BuilderConfig(floor_area=80, room_count=3, cement_type="cement_999")
        with pytest.raises(ValueError):
            BuilderConfig(floor_area=80, room_count=3, scope=("landscaping",))


class TestGenerateBOQ:
    """Tests for BOQ generation."""

    def test_requires_floor_area(self, catalog):
        """Test a non-positive floor area is rejected."""
        with pytest.raises(ValueError):
            generate_boq_from_basics(BuilderConfig(floor_area=0, room_count=1), catalog)

    def test_roofing_only(self, catalog):
        """Test roofing quantities and prices for a 100m² plan."""
        items = generate_boq_from_basics(
            BuilderConfig(floor_area=100, room_count=4, scope=("roofing",)), catalog
        )
        by_material = {item.material_id: item for item in items}

        assert {item.category for item in items} == {"roofing"}
        assert by_material["ibr-05-3m"].quantity == 60
        assert by_material["ibr-05-3m"].total_usd == 1320
        assert by_material["screws-roof"].quantity == 5
        assert by_material["timber-50x76"].quantity == 20
        assert by_material["timber-38x38"].quantity == 29
        assert by_material["fascia-pvc"].quantity == 8

    def test_item_ids_are_sequential(self, catalog):
        """Test generated items are numbered in order."""
        items = generate_boq_from_basics(BuilderConfig(floor_area=100, room_count=4), catalog)
        assert [item.id for item in items] == [f"boq-{i}" for i in range(1, len(items) + 1)]

    def test_full_house_without_labor(self, catalog):
        """Test a full house covers the stages and has no labour lines."""
        items = generate_boq_from_basics(BuilderConfig(floor_area=100, room_count=4), catalog)
        categories = {item.category for item in items}

        assert categories <= set(STAGES)
        assert {"substructure", "superstructure", "roofing", "finishing"} <= categories
        assert all(isinstance(item.quantity, int) for item in items)

    def test_unpriced_material_costs_nothing(self, catalog):
        """Test materials without a static price are listed at zero."""
        items = generate_boq_from_basics(
            BuilderConfig(floor_area=100, room_count=4, scope=("finishing",)), catalog
        )
        assert items[0].material_id == "window-sill-brick"
        assert items[0].unit_price_usd == 0.0

    def test_labor(self, catalog):
        """Test labour days scale with floor area for the scope."""
        items = generate_boq_from_basics(
            BuilderConfig(floor_area=100, room_count=4, scope=("superstructure",), include_labor=True),
            catalog,
        )
        labor = {item.material_id: item.quantity for item in items if item.category == "labor"}

        assert labor == {
            "labor-builder": 50,
            "labor-assistant": 75,
            "labor-foreman": 5,
            "service-food": 130,
        }

    def test_rooms_split_walls_by_material(self, catalog):
        """Test layout rooms split superstructure walls between materials."""
        config = BuilderConfig(
            floor_area=24,
            room_count=2,
            scope=("superstructure",),
            rooms=[
                BuilderRoom(length=4, width=3, windows=2),
                BuilderRoom(length=4, width=3, windows=1, material_id="block-6inch"),
            ],
        )
        items = generate_boq_from_basics(config, catalog)
        walls = [item for item in items if item.calculation_note.startswith("Walls")]

        assert [item.material_id for item in walls] == ["brick-common", "block-6inch"]
        assert all("50% of plan" in item.calculation_note for item in walls)
        assert walls[0].quantity > walls[1].quantity

    def test_rooms_drive_window_count(self, catalog):
        """Test window sills follow the layout's window count."""
        config = BuilderConfig(
            floor_area=24,
            room_count=2,
            scope=("finishing",),
            rooms=[BuilderRoom(length=4, width=3, windows=2), BuilderRoom(length=4, width=3, windows=1)],
        )
        sill = generate_boq_from_basics(config, catalog)[0]
        assert sill.quantity == 5
        assert sill.calculation_note == "3 windows"


class TestTotals:
    """Tests for BOQ totals."""

    def test_calculate_totals(self):
        """Test totals per currency and category."""
        items = [
            _item("a", "substructure", 10, 2.5, 75),
            _item("b", "substructure", 1, 5, 150),
            _item("c", "roofing", 2, 10, 300),
        ]
        totals = calculate_totals(items).to_dict()

        assert totals["total_usd"] == 50
        assert totals["total_zwg"] == 1500
        assert totals["item_count"] == 3
        assert totals["by_category"]["substructure"] == {"usd": 30, "zwg": 900, "count": 2}

    def test_empty_totals(self):
        """Test an empty BOQ totals to zero."""
        assert calculate_totals([]).to_dict()["total_usd"] == 0

    def test_to_item_dict(self):
        """Test stored items keep the note only when there is one."""
        assert _item("a", "roofing", 1, 1, 30).to_item_dict()["notes"] is None
        assert _item("b", "roofing", 1, 1, 30, note="Ring beam").to_item_dict()["notes"] == "Ring beam"
