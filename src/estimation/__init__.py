"""Material, BOQ and budget estimation."""

from estimation.boq import (
    BOQTotals,
    BuilderConfig,
    BuilderRoom,
    GeneratedBOQItem,
    calculate_totals,
    generate_boq_from_basics,
)
from estimation.budget import (
    ItemPricing,
    PlanMode,
    StageReachInput,
    apply_average_price_update,
    calculate_variance,
    estimate_stage_reach,
    get_scaled_price_zwg,
    plan_savings,
)
from estimation.walls import (
    estimate_layout,
    estimate_room,
    layout_totals,
    net_wall_area,
    quick_estimate,
)

__all__ = [
    "BOQTotals",
    "BuilderConfig",
    "BuilderRoom",
    "GeneratedBOQItem",
    "ItemPricing",
    "PlanMode",
    "StageReachInput",
    "apply_average_price_update",
    "calculate_totals",
    "calculate_variance",
    "estimate_layout",
    "estimate_room",
    "estimate_stage_reach",
    "generate_boq_from_basics",
    "get_scaled_price_zwg",
    "layout_totals",
    "net_wall_area",
    "plan_savings",
    "quick_estimate",
]
