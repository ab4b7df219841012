"""Static material catalog, supplier list and reference prices.

The catalog is the fallback price source when no recent observation exists
and the reference list that imported price feeds are matched against.
"""

import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any


@dataclass(frozen=True)
class Material:
    id: str
    name: str
    category: str
    subcategory: str
    unit: str
    milestones: tuple[str, ...] = ()
    specifications: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "subcategory": self.subcategory,
            "unit": self.unit,
            "milestones": list(self.milestones),
            "specifications": self.specifications,
        }


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    location: str
    phone: str
    is_trusted: bool = True
    rating: float = 0.0
    delivery_areas: tuple[str, ...] = ()


@dataclass(frozen=True)
class StaticPrice:
    material_id: str
    supplier_id: str
    price_usd: float
    price_zwg: float
    last_updated: str
    in_stock: bool = True


@dataclass(frozen=True)
class BrickInfo:
    name: str
    material_id: str
    bricks_per_sqm: float


@dataclass(frozen=True)
class CementInfo:
    name: str
    material_id: str
    bags_per_m3_mortar: float


BRICK_INFO: dict[str, BrickInfo] = {
    "common": BrickInfo("Red Common Brick", "brick-common", 50),
    "farm": BrickInfo("Farm Brick", "farm-brick", 55),
    "semi_common": BrickInfo("Semi-Common Brick", "brick-semi", 50),
    "blocks_6inch": BrickInfo('6" Cement Block', "block-6inch", 12),
    "blocks_8inch": BrickInfo('8" Cement Block', "block-8inch", 10),
    "face_brick": BrickInfo("Face Brick", "brick-face-red", 48),
}

CEMENT_INFO: dict[str, CementInfo] = {
    "cement_325": CementInfo("Standard Cement 32.5N", "cement-325", 8),
    "cement_425": CementInfo("Rapid Cement 42.5R", "cement-425", 7),
}


def get_brick_info_by_material(material_id: str) -> BrickInfo:
    """Find brick info for a wall material id, defaulting to common bricks."""
    for info in BRICK_INFO.values():
        if info.material_id == material_id:
            return info
    return BRICK_INFO["common"]


MATERIALS: tuple[Material, ...] = (
    # Bricks & blocks
    Material("brick-common", "Common Cement Brick", "bricks", "Cement Bricks", "each", ("substructure", "superstructure")),
    Material("brick-face-red", "Face Brick (Red)", "bricks", "Face Bricks", "per 1000", ("superstructure",), "Standard red face brick"),
    Material("farm-brick", "Farm Brick", "bricks", "Clay Bricks", "each", ("superstructure",), "Locally made clay brick"),
    Material("block-6inch", 'Hollow Block 6"', "bricks", "Blocks", "each", ("substructure", "superstructure", "exterior"), "150mm hollow concrete block"),
    Material("block-8inch", 'Hollow Block 8"', "bricks", "Blocks", "each", ("substructure", "superstructure", "exterior"), "200mm hollow concrete block"),
    # Cement
    Material("cement-325", "Standard Cement 32.5N", "cement", "Portland", "per 50kg bag", ("substructure", "superstructure", "finishing", "exterior"), "PPC/Lafarge 32.5N"),
    Material("cement-425", "Rapid Cement 42.5R", "cement", "Portland", "per 50kg bag", ("substructure", "superstructure"), "PPC/Lafarge 42.5R rapid setting"),
    # Sand & aggregates
    Material("sand-river", "River Sand (Concrete)", "sand", "Concrete Sand", "per cube", ("substructure", "superstructure", "exterior")),
    Material("sand-pit", "Pit Sand (Plastering)", "sand", "Plaster Sand", "per cube", ("finishing",)),
    Material("sand-bricks", "Brick Sand", "sand", "Mortar Sand", "per cube", ("substructure", "superstructure")),
    Material("stone-19mm", "Crushed Stone 19mm", "aggregates", "Crushed Stone", "per cube", ("substructure",), "19mm aggregate for concrete"),
    Material("hardcore", "Hardcore (Filling)", "aggregates", "Filling", "per cube", ("substructure",)),
    # Steel
    Material("rebar-10", "Rebar Y10 (6m)", "steel", "Reinforcement", "per length", ("substructure", "superstructure")),
    Material("rebar-12", "Rebar Y12 (6m)", "steel", "Reinforcement", "per length", ("substructure", "superstructure")),
    Material("mesh-ref193", "Mesh Ref 193", "steel", "Mesh", "per sheet", ("substructure",), "2.4m x 6m welded mesh"),
    Material("brickforce", "Brickforce", "steel", "Reinforcement", "per roll", ("substructure", "superstructure")),
    # Roofing & timber
    Material("ibr-04-3m", "IBR Sheet 0.4mm (3m)", "roofing", "IBR Sheets", "per sheet", ("roofing",)),
    Material("ibr-05-3m", "IBR Sheet 0.5mm (3m)", "roofing", "IBR Sheets", "per sheet", ("roofing",)),
    Material("fascia-pvc", "PVC Fascia Board", "roofing", "Accessories", "per 6m length", ("roofing",)),
    Material("timber-50x76", "Timber 50x76mm (Rafters)", "timber", "Structural", "per 6m length", ("roofing",)),
    Material("timber-38x38", "Timber 38x38mm (Brandering)", "timber", "Structural", "per 6m length", ("roofing",)),
    Material("screws-roof", "Roof Screws", "hardware", "Fasteners", "per 100", ("roofing",)),
    # Finishes
    Material("dpc", "DPC (Damp Proof Course)", "finishes", "Waterproofing", "per roll", ("substructure",)),
    Material("dpm", "DPM (Damp Proof Membrane)", "finishes", "Waterproofing", "per roll", ("substructure",)),
    Material("window-sill-brick", "Window Sill (Brick)", "finishes", "Sills", "per meter", ("finishing",)),
    Material("paint-pva", "PVA Paint (White)", "finishes", "Paint", "per 20L", ("finishing",)),
    Material("tiles-floor-ceramic", "Floor Tiles (Ceramic)", "finishes", "Tiles", "per m²", ("finishing",)),
    Material("cable-25", "Cable 2.5mm T&E", "electrical", "Wiring", "per 100m roll", ("finishing",)),
    Material("db-8way", "Distribution Board 8-Way", "electrical", "Distribution", "each", ("finishing",)),
    # Labor
    Material("labor-builder", "Builder (Daily Rate)", "labor", "Labor", "per day", ("substructure", "superstructure", "finishing")),
    Material("labor-assistant", "General Hand (Daily Rate)", "labor", "Labor", "per day", ("substructure", "superstructure", "finishing")),
    Material("labor-foreman", "Foreman (Daily Rate)", "labor", "Labor", "per day", ("substructure", "superstructure")),
    Material("service-food", "Builder's Food Allowance", "labor", "Services", "per day", ("substructure", "superstructure", "finishing")),
)

SUPPLIERS: tuple[Supplier, ...] = (
    Supplier("sup-1", "Halsteds Hardware", "Harare CBD", "+263 242 700 123", True, 4.8, ("Harare", "Chitungwiza", "Norton")),
    Supplier("sup-2", "Baines Building Supplies", "Graniteside, Harare", "+263 242 751 234", True, 4.6, ("Harare", "Chitungwiza")),
    Supplier("sup-3", "PPC Zimbabwe", "Colleen Bawn", "+263 242 885 100", True, 4.9, ("Nationwide",)),
    Supplier("sup-4", "Radar Holdings", "Msasa, Harare", "+263 242 487 001", True, 4.5, ("Harare", "Bulawayo", "Gweru")),
    Supplier("sup-5", "ZimSteel", "Kwekwe", "+263 55 23456", True, 4.7, ("Nationwide",)),
    Supplier("sup-6", "Mukuru Hardware", "Borrowdale, Harare", "+263 772 123 456", False, 4.2, ("Harare North",)),
)

STATIC_PRICES: tuple[StaticPrice, ...] = (
    StaticPrice("brick-common", "sup-2", 0.075, 2.25, "2026-01-30"),
    StaticPrice("brick-face-red", "sup-2", 180, 5400, "2026-01-30"),
    StaticPrice("cement-325", "sup-3", 10, 300, "2026-01-31"),
    StaticPrice("cement-325", "sup-2", 10.50, 315, "2026-01-30"),
    StaticPrice("cement-425", "sup-3", 12, 360, "2026-01-31"),
    StaticPrice("sand-river", "sup-2", 45, 1350, "2026-01-29"),
    StaticPrice("sand-pit", "sup-2", 35, 1050, "2026-01-29"),
    StaticPrice("stone-19mm", "sup-2", 55, 1650, "2026-01-28"),
    StaticPrice("rebar-12", "sup-4", 8, 240, "2026-01-30"),
    StaticPrice("rebar-12", "sup-5", 7.80, 234, "2026-01-31"),
    StaticPrice("ibr-04-3m", "sup-4", 18, 540, "2026-01-30"),
    StaticPrice("ibr-05-3m", "sup-4", 22, 660, "2026-01-30"),
    StaticPrice("cable-25", "sup-1", 85, 2550, "2026-01-29"),
    StaticPrice("db-8way", "sup-1", 65, 1950, "2026-01-29"),
    StaticPrice("paint-pva", "sup-1", 35, 1050, "2026-01-28"),
    StaticPrice("tiles-floor-ceramic", "sup-1", 12, 360, "2026-01-27"),
    StaticPrice("hardcore", "sup-2", 25, 750, "2026-01-31"),
    StaticPrice("brickforce", "sup-4", 3.50, 105, "2026-01-31"),
    StaticPrice("dpc", "sup-1", 5, 150, "2026-01-31"),
    StaticPrice("dpm", "sup-1", 15, 450, "2026-01-31"),
    StaticPrice("labor-builder", "sup-6", 25, 750, "2026-01-31"),
    StaticPrice("labor-assistant", "sup-6", 10, 300, "2026-01-31"),
    StaticPrice("labor-foreman", "sup-6", 40, 1200, "2026-01-31"),
    StaticPrice("service-food", "sup-6", 5, 150, "2026-01-31"),
)

# Name similarity thresholds for matching feed entries to materials
AUTO_MATCH_SCORE = 0.9
REVIEW_MATCH_SCORE = 0.7


def normalize_name(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    text = re.sub(r"[^a-z0-9 ]", "", text.lower())
    return re.sub(r"\s+", " ", text).strip()


@dataclass
class MaterialMatch:
    material_id: str | None
    score: float
    needs_review: bool


@dataclass
class StaticCatalog:
    """Queryable view over static materials, suppliers and prices."""

    materials: tuple[Material, ...] = MATERIALS
    suppliers: tuple[Supplier, ...] = SUPPLIERS
    prices: tuple[StaticPrice, ...] = STATIC_PRICES
    _materials_by_id: dict[str, Material] = field(init=False, repr=False)
    _suppliers_by_id: dict[str, Supplier] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._materials_by_id = {m.id: m for m in self.materials}
        self._suppliers_by_id = {s.id: s for s in self.suppliers}

    def get_material(self, material_id: str) -> Material | None:
        return self._materials_by_id.get(material_id)

    def get_supplier(self, supplier_id: str) -> Supplier | None:
        return self._suppliers_by_id.get(supplier_id)

    def get_best_price(self, material_id: str) -> StaticPrice | None:
        """Cheapest in-stock static price for a material."""
        candidates = [p for p in self.prices if p.material_id == material_id and p.in_stock]
        if not candidates:
            return None
        return min(candidates, key=lambda p: p.price_usd)

    def get_prices_for_material(self, material_id: str) -> list[tuple[StaticPrice, Supplier]]:
        """All static prices for a material with their supplier, cheapest first."""
        result = []
        for price in self.prices:
            if price.material_id != material_id:
                continue
            supplier = self.get_supplier(price.supplier_id)
            if supplier:
                result.append((price, supplier))
        return sorted(result, key=lambda pair: pair[0].price_usd)

    def get_materials_by_category(self, category: str) -> list[Material]:
        return [m for m in self.materials if m.category == category]

    def get_materials_by_milestone(self, milestone: str) -> list[Material]:
        return [m for m in self.materials if milestone in m.milestones]

    def search(self, query: str) -> list[Material]:
        q = query.lower()
        return [
            m
            for m in self.materials
            if q in m.name.lower()
            or q in m.category.lower()
            or q in m.subcategory.lower()
            or (m.specifications and q in m.specifications.lower())
        ]

    def match_material(self, key: str | None, name: str | None) -> MaterialMatch:
        """Match a feed entry to a catalog material.

        An exact id wins. Otherwise the closest material name is used: above
        AUTO_MATCH_SCORE it is accepted, above REVIEW_MATCH_SCORE it is
        accepted but flagged for review, below that nothing matches.
        """
        if key and key in self._materials_by_id:
            return MaterialMatch(key, 1.0, False)
        if not name:
            return MaterialMatch(None, 0.0, True)

        target = normalize_name(name)
        best_id, best_score = None, 0.0
        for material in self.materials:
            score = SequenceMatcher(None, target, normalize_name(material.name)).ratio()
            if score > best_score:
                best_id, best_score = material.id, score

        if best_score > AUTO_MATCH_SCORE:
            return MaterialMatch(best_id, best_score, False)
        if best_score > REVIEW_MATCH_SCORE:
            return MaterialMatch(best_id, best_score, True)
        return MaterialMatch(None, best_score, True)


_default_catalog: StaticCatalog | None = None


def get_catalog() -> StaticCatalog:
    """Get the shared default catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = StaticCatalog()
    return _default_catalog
