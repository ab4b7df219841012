"""Budget planning: how far a budget goes, savings plans and price variance."""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from catalog import StaticCatalog
from estimation.boq import BuilderConfig, generate_boq_from_basics

STAGE_ORDER: tuple[tuple[str, str], ...] = (
    ("substructure", "Site Preparation & Foundation"),
    ("superstructure", "Structural Walls & Frame"),
    ("roofing", "Roofing"),
    ("finishing", "Interior & Finishing"),
    ("exterior", "External Work"),
)

# Share of the total cost assumed for stages the generator does not price
STAGE_WEIGHT_FALLBACK = {
    "substructure": 0.22,
    "superstructure": 0.30,
    "roofing": 0.20,
    "finishing": 0.20,
    "exterior": 0.08,
}

DEFAULT_FLOOR_AREA = 120.0
SQM_PER_ROOM = 28
EXTERIOR_MIN_SHARE = 0.08
EXTERIOR_MIN_PER_SQM = 18
FALLBACK_COST_PER_SQM = 250
NO_STAGE_LABEL = "No stage completed"


def _positive(value: float | None, fallback: float) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return fallback
    return value


@dataclass
class StageReachInput:
    budget_usd: float
    floor_area_m2: float
    room_count: int | None = None
    wall_height_m: float | None = None
    brick_type: str = "common"
    cement_type: str = "cement_325"


@dataclass
class StageReachRow:
    id: str
    label: str
    stage_cost_usd: float
    cumulative_cost_usd: float
    affordable: bool
    coverage_percent: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "stage_cost_usd": round(self.stage_cost_usd, 2),
            "cumulative_cost_usd": round(self.cumulative_cost_usd, 2),
            "affordable": self.affordable,
            "coverage_percent": round(self.coverage_percent, 1),
        }


@dataclass
class StageReachResult:
    estimated_total_usd: float
    budget_usd: float
    coverage_percent: float
    reachable_stage_id: str | None
    reachable_stage_label: str
    rows: list[StageReachRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimated_total_usd": round(self.estimated_total_usd, 2),
            "budget_usd": self.budget_usd,
            "coverage_percent": round(self.coverage_percent, 1),
            "reachable_stage_id": self.reachable_stage_id,
            "reachable_stage_label": self.reachable_stage_label,
            "rows": [r.to_dict() for r in self.rows],
        }


def estimate_stage_reach(
    data: StageReachInput,
    catalog: StaticCatalog | None = None,
) -> StageReachResult:
    """Work out which construction stage a budget reaches.

    Stage costs come from a full-house BOQ without labour. Stages the BOQ
    leaves unpriced are filled in from fallback weights, and exterior work
    always gets a minimum cost.
    """
    budget = _positive(data.budget_usd, 0.0)
    floor_area = _positive(data.floor_area_m2, DEFAULT_FLOOR_AREA)
    room_count = int(_positive(
        data.room_count if data.room_count is not None else round(floor_area / SQM_PER_ROOM), 4
    ))
    wall_height = _positive(data.wall_height_m, 2.7)

    items = generate_boq_from_basics(
        BuilderConfig(
            floor_area=floor_area,
            room_count=room_count,
            wall_height=wall_height,
            brick_type=data.brick_type,
            cement_type=data.cement_type,
            include_labor=False,
        ),
        catalog,
    )

    stage_costs = {stage_id: 0.0 for stage_id, _ in STAGE_ORDER}
    for item in items:
        if item.category in stage_costs:
            stage_costs[item.category] += item.total_usd

    computed_total = sum(stage_costs.values())
    missing = [stage_id for stage_id, cost in stage_costs.items() if cost <= 0]
    missing_weight = sum(STAGE_WEIGHT_FALLBACK[stage_id] for stage_id in missing)
    if computed_total > 0 and 0 < missing_weight < 1:
        implied_total = computed_total / (1 - missing_weight)
        for stage_id in missing:
            stage_costs[stage_id] = implied_total * STAGE_WEIGHT_FALLBACK[stage_id]

    if stage_costs["exterior"] <= 0:
        stage_costs["exterior"] = max(computed_total * EXTERIOR_MIN_SHARE, floor_area * EXTERIOR_MIN_PER_SQM)

    total = _positive(sum(stage_costs.values()), floor_area * FALLBACK_COST_PER_SQM)
    coverage = min(100.0, budget / total * 100)

    rows: list[StageReachRow] = []
    cumulative = 0.0
    reachable: str | None = None
    for stage_id, label in STAGE_ORDER:
        cost = stage_costs[stage_id]
        start = cumulative
        cumulative += cost
        affordable = budget >= cumulative
        if affordable:
            reachable = stage_id
        stage_coverage = min(100.0, max(0.0, (budget - start) / cost * 100)) if cost > 0 else 0.0
        rows.append(StageReachRow(stage_id, label, cost, cumulative, affordable, stage_coverage))

    labels = dict(STAGE_ORDER)
    return StageReachResult(
        estimated_total_usd=total,
        budget_usd=budget,
        coverage_percent=coverage,
        reachable_stage_id=reachable,
        reachable_stage_label=labels[reachable] if reachable else NO_STAGE_LABEL,
        rows=rows,
    )


class PlanMode(Enum):
    ALL = "all"
    CRITICAL = "critical"
    CUSTOM = "custom"


@dataclass
class SavingsPlan:
    remaining_budget: float
    percent_complete: float
    target_amount: float
    days_until_target: int
    savings_per_day: float
    savings_per_week: float
    savings_per_month: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "remaining_budget": round(self.remaining_budget, 2),
            "percent_complete": round(self.percent_complete, 1),
            "target_amount": round(self.target_amount, 2),
            "days_until_target": self.days_until_target,
            "savings_per_day": round(self.savings_per_day, 2),
            "savings_per_week": round(self.savings_per_week, 2),
            "savings_per_month": round(self.savings_per_month, 2),
        }


def plan_savings(
    total_budget_usd: float,
    amount_spent_usd: float,
    target_date: date | str | None,
    mode: PlanMode | str = PlanMode.ALL,
    critical_items_usd: float = 0.0,
    custom_amount_usd: float | None = None,
    today: date | None = None,
) -> SavingsPlan:
    """Savings needed per day, week and month to reach a target by a date."""
    mode = PlanMode(mode)
    remaining = total_budget_usd - amount_spent_usd
    percent = amount_spent_usd / total_budget_usd * 100 if total_budget_usd > 0 else 0.0

    if mode == PlanMode.CRITICAL:
        target_amount = critical_items_usd
    elif mode == PlanMode.CUSTOM:
        target_amount = custom_amount_usd or 0.0
    else:
        target_amount = remaining

    days = 0
    if target_date:
        if isinstance(target_date, str):
            target_date = date.fromisoformat(target_date[:10])
        days = max(0, (target_date - (today or date.today())).days)

    per_day = target_amount / days if days > 0 else 0.0
    return SavingsPlan(
        remaining_budget=remaining,
        percent_complete=percent,
        target_amount=target_amount,
        days_until_target=days,
        savings_per_day=per_day,
        savings_per_week=per_day * 7,
        savings_per_month=per_day * 30,
    )


def get_scaled_price_zwg(
    actual_usd: float,
    average_usd: float,
    average_zwg: float,
    exchange_rate: float,
) -> float:
    """ZWG price that keeps the actual price in step with the average."""
    if average_usd and average_zwg:
        return actual_usd / average_usd * average_zwg
    return actual_usd * exchange_rate


def calculate_variance(average_usd: float, actual_usd: float) -> tuple[float, float | None]:
    """Return (variance, variance percent). The percent is None without an average."""
    variance = actual_usd - average_usd
    variance_pct = variance / average_usd * 100 if average_usd else None
    return variance, variance_pct


@dataclass
class ItemPricing:
    average_price_usd: float
    average_price_zwg: float
    actual_price_usd: float
    actual_price_zwg: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "average_price_usd": self.average_price_usd,
            "average_price_zwg": self.average_price_zwg,
            "actual_price_usd": self.actual_price_usd,
            "actual_price_zwg": round(self.actual_price_zwg, 2),
        }


def apply_average_price_update(
    item: ItemPricing,
    next_average_usd: float,
    next_average_zwg: float,
    exchange_rate: float,
) -> ItemPricing:
    """Move an item to a new average price.

    An actual price that still equals the old average follows the new one.
    A price the user changed is kept.
    """
    actual_was_average = item.actual_price_usd == item.average_price_usd
    next_actual = next_average_usd if actual_was_average else item.actual_price_usd
    return ItemPricing(
        average_price_usd=next_average_usd,
        average_price_zwg=next_average_zwg,
        actual_price_usd=next_actual,
        actual_price_zwg=get_scaled_price_zwg(next_actual, next_average_usd, next_average_zwg, exchange_rate),
    )
