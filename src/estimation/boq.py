"""Bill of quantities generated from basic building inputs.

Every stage works off an estimated plan: the external perimeter assumes a
1.4:1 rectangle and each room past the first adds 4m of internal wall.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from catalog import BRICK_INFO, CEMENT_INFO, StaticCatalog, get_brick_info_by_material, get_catalog
from models.room import DEFAULT_MATERIAL_ID

STAGES = ("substructure", "superstructure", "roofing", "finishing", "exterior")
FULL_HOUSE = "full_house"

MORTAR_M3_PER_1000_BRICKS = 0.5
SAND_M3_PER_M3_MORTAR = 1.2
WASTAGE_FACTOR = 1.05

HARDCORE_M3_PER_SQM = 0.15
DPM_SHEETS_PER_SQM = 1.1
DPM_SHEETS_PER_ROLL = 50
CONCRETE_M3_PER_LM_FOUNDATION = 0.18
CONCRETE_CEMENT_BAGS_PER_M3 = 7
CONCRETE_SAND_PER_M3 = 0.5
CONCRETE_STONE_PER_M3 = 0.8
SUBSTRUCTURE_WALL_HEIGHT = 1.0
MESH_SHEETS_PER_SQM = 0.07

BRICKFORCE_M_PER_ROLL = 15
REBAR_BARS_PER_LM = 4
STIRRUPS_PER_LM = 4
REBAR_LENGTH = 6

ROOF_PITCH_FACTOR = 1.15
IBR_SHEETS_PER_SQM = 0.49
ROOF_SCREWS_PER_SHEET = 8

SQM_PER_WINDOW = 15
SILL_M_PER_WINDOW = 1.5

LABOR_DAYS_PER_SQM = {
    FULL_HOUSE: 1.2,
    "substructure": 0.3,
    "superstructure": 0.5,
    "roofing": 0.2,
    "finishing": 0.2,
    "exterior": 0.15,
}


@dataclass
class BuilderRoom:
    """A room as seen by the BOQ generator."""

    length: float
    width: float
    windows: int = 0
    material_id: str = DEFAULT_MATERIAL_ID

    @property
    def area(self) -> float:
        return self.length * self.width


@dataclass
class BuilderConfig:
    floor_area: float
    room_count: int
    wall_height: float = 2.7
    brick_type: str = "common"
    cement_type: str = "cement_325"
    scope: Sequence[str] = (FULL_HOUSE,)
    include_labor: bool = False
    rooms: list[BuilderRoom] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.scope, str):
            self.scope = (self.scope,)
        # Projects call the whole build "entire_house"
        self.scope = tuple(FULL_HOUSE if s == "entire_house" else s for s in self.scope)
        if self.brick_type not in BRICK_INFO:
            raise ValueError(f"Unknown brick type: {self.brick_type}")
        if self.cement_type not in CEMENT_INFO:
            raise ValueError(f"Unknown cement type: {self.cement_type}")
        for scope in self.scope:
            if scope not in LABOR_DAYS_PER_SQM:
                raise ValueError(f"Unknown scope: {scope}")

    def has_scope(self, stage: str) -> bool:
        return stage in self.scope or FULL_HOUSE in self.scope


@dataclass
class GeneratedBOQItem:
    id: str
    material_id: str
    material_name: str
    category: str
    quantity: int
    unit: str
    unit_price_usd: float
    unit_price_zwg: float
    calculation_note: str = ""
    is_edited: bool = False

    @property
    def total_usd(self) -> float:
        return self.quantity * self.unit_price_usd

    @property
    def total_zwg(self) -> float:
        return self.quantity * self.unit_price_zwg

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "material_name": self.material_name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price_usd": self.unit_price_usd,
            "unit_price_zwg": self.unit_price_zwg,
            "total_usd": round(self.total_usd, 2),
            "total_zwg": round(self.total_zwg, 2),
            "calculation_note": self.calculation_note,
        }

    def to_item_dict(self) -> dict[str, Any]:
        """Fields for storing the line as a project BOQ item."""
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price_usd": self.unit_price_usd,
            "unit_price_zwg": self.unit_price_zwg,
            "notes": self.calculation_note or None,
        }


def estimate_dimensions(floor_area: float, room_count: int) -> tuple[float, float]:
    """Return (external perimeter, internal wall length) for a floor area."""
    length = math.sqrt(floor_area * 1.4)
    width = floor_area / length
    return 2 * (length + width), max(0, (room_count - 1) * 4)


class _ItemBuilder:
    """Collects priced items with sequential ids."""

    def __init__(self, catalog: StaticCatalog):
        self.catalog = catalog
        self.items: list[GeneratedBOQItem] = []

    def add(
        self,
        material_id: str,
        name: str,
        category: str,
        quantity: float,
        unit: str,
        note: str = "",
    ) -> None:
        price = self.catalog.get_best_price(material_id)
        self.items.append(GeneratedBOQItem(
            id=f"boq-{len(self.items) + 1}",
            material_id=material_id,
            material_name=name,
            category=category,
            quantity=math.ceil(quantity),
            unit=unit,
            unit_price_usd=price.price_usd if price else 0.0,
            unit_price_zwg=price.price_zwg if price else 0.0,
            calculation_note=note,
        ))


def _substructure(builder: _ItemBuilder, config: BuilderConfig, perimeter: float) -> None:
    brick = BRICK_INFO[config.brick_type]
    cement = CEMENT_INFO[config.cement_type]
    area = config.floor_area

    builder.add("hardcore", "Hardcore (Filling)", "substructure",
                area * HARDCORE_M3_PER_SQM, "per cube", f"{area:g}m² floor")
    builder.add("dpm", "DPM (Damp Proof Membrane)", "substructure",
                area * DPM_SHEETS_PER_SQM / DPM_SHEETS_PER_ROLL, "per roll", "Floor membrane")

    concrete = perimeter * CONCRETE_M3_PER_LM_FOUNDATION
    builder.add(cement.material_id, cement.name, "substructure",
                concrete * CONCRETE_CEMENT_BAGS_PER_M3, "per 50kg bag", "Foundation concrete")
    builder.add("sand-river", "River Sand", "substructure",
                concrete * CONCRETE_SAND_PER_M3, "per cube", "Foundation concrete")
    builder.add("stone-19mm", "Crushed Stone 19mm", "substructure",
                concrete * CONCRETE_STONE_PER_M3, "per cube", "Foundation concrete")

    bricks = math.ceil(perimeter * SUBSTRUCTURE_WALL_HEIGHT * brick.bricks_per_sqm * WASTAGE_FACTOR)
    builder.add(brick.material_id, brick.name, "substructure", bricks, "each", "Substructure walls")

    mortar = bricks / 1000 * MORTAR_M3_PER_1000_BRICKS
    builder.add(cement.material_id, cement.name, "substructure",
                mortar * cement.bags_per_m3_mortar, "per 50kg bag", "Substructure mortar")
    builder.add("sand-bricks", "Brick Sand", "substructure",
                mortar * SAND_M3_PER_M3_MORTAR, "per cube", "Substructure mortar")

    builder.add("mesh-ref193", "Welded Mesh Ref 193", "substructure",
                area * MESH_SHEETS_PER_SQM, "per sheet", "Slab reinforcement")


def _superstructure_from_rooms(
    builder: _ItemBuilder,
    config: BuilderConfig,
    total_wall_length: float,
) -> None:
    """Split wall length between materials in proportion to room floor area."""
    cement = CEMENT_INFO[config.cement_type]
    total_area = config.floor_area or sum(r.area for r in config.rooms)

    groups: dict[str, float] = {}
    for room in config.rooms:
        material_id = room.material_id or DEFAULT_MATERIAL_ID
        groups[material_id] = groups.get(material_id, 0.0) + room.area

    height = max(1.0, config.wall_height - 1.0)
    for material_id, group_area in groups.items():
        ratio = group_area / total_area
        wall_area = total_wall_length * ratio * height
        info = get_brick_info_by_material(material_id)

        bricks = math.ceil(wall_area * info.bricks_per_sqm * WASTAGE_FACTOR)
        builder.add(info.material_id, info.name, "superstructure", bricks, "each",
                    f"Walls ({ratio * 100:.0f}% of plan): {wall_area:.1f}m²")

        mortar = bricks / 1000 * MORTAR_M3_PER_1000_BRICKS
        builder.add(cement.material_id, cement.name, "superstructure",
                    mortar * cement.bags_per_m3_mortar * WASTAGE_FACTOR, "per 50kg bag",
                    f"Mortar for {info.name}")
        sand = math.ceil(mortar * SAND_M3_PER_M3_MORTAR * 10) / 10
        builder.add("sand-bricks", "Brick Sand", "superstructure", sand, "per cube",
                    f"Mortar for {info.name}")

    builder.add("brickforce", "Brickforce", "superstructure",
                total_wall_length / BRICKFORCE_M_PER_ROLL, "per roll", "Wall reinforcement")
    builder.add("rebar-12", "Rebar Y12", "superstructure",
                total_wall_length * REBAR_BARS_PER_LM / REBAR_LENGTH, "per length", "Ring beam")
    builder.add("rebar-10", "Rebar Y10", "superstructure",
                total_wall_length * STIRRUPS_PER_LM / REBAR_LENGTH, "per length", "Stirrups")


def _superstructure_estimated(
    builder: _ItemBuilder,
    config: BuilderConfig,
    perimeter: float,
    internal: float,
) -> None:
    brick = BRICK_INFO[config.brick_type]
    cement = CEMENT_INFO[config.cement_type]

    external = math.ceil(perimeter * (config.wall_height - 1.0) * brick.bricks_per_sqm * WASTAGE_FACTOR)
    builder.add(brick.material_id, brick.name, "superstructure", external, "each", "External walls")
    internal_bricks = math.ceil(internal * config.wall_height * brick.bricks_per_sqm * WASTAGE_FACTOR)
    builder.add(brick.material_id, brick.name, "superstructure", internal_bricks, "each", "Internal walls")

    mortar = (external + internal_bricks) / 1000 * MORTAR_M3_PER_1000_BRICKS
    builder.add(cement.material_id, cement.name, "superstructure",
                mortar * cement.bags_per_m3_mortar, "per 50kg bag", "Superstructure mortar")
    builder.add("sand-bricks", "Brick Sand", "superstructure",
                mortar * SAND_M3_PER_M3_MORTAR, "per cube", "Superstructure mortar")

    total_length = perimeter + internal
    builder.add("brickforce", "Brickforce", "superstructure",
                total_length / BRICKFORCE_M_PER_ROLL, "per roll")
    builder.add("rebar-12", "Rebar Y12", "superstructure",
                total_length * REBAR_BARS_PER_LM / REBAR_LENGTH, "per length")


def _roofing(builder: _ItemBuilder, floor_area: float) -> None:
    roof_area = floor_area * ROOF_PITCH_FACTOR
    sheets = math.ceil(roof_area * IBR_SHEETS_PER_SQM * WASTAGE_FACTOR)
    builder.add("ibr-05-3m", "IBR Sheets 0.5mm x 3m", "roofing", sheets, "per sheet",
                f"Roof area: {roof_area:.1f}m²")
    builder.add("screws-roof", "Roof Screws 65mm", "roofing",
                sheets * ROOF_SCREWS_PER_SHEET / 100, "per 100",
                f"{sheets} sheets @ {ROOF_SCREWS_PER_SHEET} screws each")
    builder.add("timber-50x76", "Timber 50x76mm", "roofing", roof_area / 6, "per 6m length",
                "Roof rafters @ 600mm spacing")
    builder.add("timber-38x38", "Timber 38x38mm", "roofing", roof_area / 4, "per 6m length",
                "Brandering @ 400mm spacing")
    builder.add("fascia-pvc", "PVC Fascia Board", "roofing", math.sqrt(roof_area) * 4 / 6,
                "per 6m length", "Perimeter fascia")


def _finishing(builder: _ItemBuilder, config: BuilderConfig) -> None:
    if config.rooms:
        windows = sum(r.windows for r in config.rooms)
    else:
        windows = math.ceil(config.floor_area / SQM_PER_WINDOW)
    builder.add("window-sill-brick", "Window Sill (Brick)", "finishing",
                windows * SILL_M_PER_WINDOW, "per meter", f"{windows} windows")


def _labor(builder: _ItemBuilder, config: BuilderConfig) -> None:
    scope = config.scope[0] if config.scope else FULL_HOUSE
    rate = LABOR_DAYS_PER_SQM[scope]
    builder_days = math.ceil(config.floor_area * rate)
    assistant_days = math.ceil(builder_days * 1.5)
    foreman_days = math.ceil(builder_days / 10)

    builder.add("labor-builder", "Builder (Daily Rate)", "labor", builder_days, "per day",
                f"{config.floor_area:g}m² @ {rate} days/m²")
    builder.add("labor-assistant", "General Hand (Daily Rate)", "labor", assistant_days, "per day",
                "1.5 assistants per builder")
    if foreman_days > 0:
        builder.add("labor-foreman", "Foreman (Daily Rate)", "labor", foreman_days, "per day",
                    "Site supervision")
    food_days = builder_days + assistant_days + foreman_days
    builder.add("service-food", "Builder's Food Allowance", "labor", food_days, "per day",
                f"{food_days} person-days")


def generate_boq_from_basics(
    config: BuilderConfig,
    catalog: StaticCatalog | None = None,
) -> list[GeneratedBOQItem]:
    """Generate priced BOQ items for the selected stages.

    Superstructure walls are split by room material when rooms are given,
    otherwise they come from the perimeter estimate.
    """
    if config.floor_area <= 0:
        raise ValueError(f"Floor area must be positive, got {config.floor_area}")

    builder = _ItemBuilder(catalog or get_catalog())
    perimeter, internal = estimate_dimensions(config.floor_area, config.room_count)

    if config.has_scope("substructure"):
        _substructure(builder, config, perimeter)
    if config.has_scope("superstructure"):
        if config.rooms:
            _superstructure_from_rooms(builder, config, perimeter + internal)
        else:
            _superstructure_estimated(builder, config, perimeter, internal)
    if config.has_scope("roofing"):
        _roofing(builder, config.floor_area)
    if config.has_scope("finishing"):
        _finishing(builder, config)
    if config.include_labor:
        _labor(builder, config)

    return builder.items


@dataclass
class BOQTotals:
    total_usd: float = 0.0
    total_zwg: float = 0.0
    item_count: int = 0
    by_category: dict[str, dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_usd": round(self.total_usd, 2),
            "total_zwg": round(self.total_zwg, 2),
            "item_count": self.item_count,
            "by_category": {
                name: {"usd": round(c["usd"], 2), "zwg": round(c["zwg"], 2), "count": int(c["count"])}
                for name, c in self.by_category.items()
            },
        }


def calculate_totals(items: Sequence[GeneratedBOQItem]) -> BOQTotals:
    totals = BOQTotals(item_count=len(items))
    for item in items:
        totals.total_usd += item.total_usd
        totals.total_zwg += item.total_zwg
        category = totals.by_category.setdefault(item.category, {"usd": 0.0, "zwg": 0.0, "count": 0})
        category["usd"] += item.total_usd
        category["zwg"] += item.total_zwg
        category["count"] += 1
    return totals
