"""Material estimate and budget handlers for ZimEstimate MCP."""

from typing import Any

from catalog import StaticCatalog
from config import AppConfig
from estimation import (
    BuilderConfig,
    BuilderRoom,
    StageReachInput,
    calculate_totals,
    calculate_variance,
    estimate_layout,
    estimate_room,
    estimate_stage_reach,
    generate_boq_from_basics,
    plan_savings,
    quick_estimate,
)
from estimation.boq import FULL_HOUSE
from floorplan.manager import LayoutManager
from models.room import DEFAULT_MATERIAL_ID, RoomInstance


def builder_config_from_args(args: dict[str, Any], layouts: LayoutManager) -> BuilderConfig:
    """Build a BOQ generator config from tool arguments.

    When a layout id is given its rooms drive the superstructure walls.
    """
    rooms: list[BuilderRoom] = []
    if args.get("layout_id"):
        session = layouts.get(args["layout_id"])
        rooms = [
            BuilderRoom(length=r.length, width=r.width, windows=r.windows, material_id=r.material_id)
            for r in session.rooms
        ]

    return BuilderConfig(
        floor_area=float(args["floor_area"]),
        room_count=int(args["room_count"]),
        wall_height=float(args.get("wall_height", 2.7)),
        brick_type=args.get("brick_type", "common"),
        cement_type=args.get("cement_type", "cement_325"),
        scope=tuple(args.get("scope") or (FULL_HOUSE,)),
        include_labor=bool(args.get("include_labor", False)),
        rooms=rooms,
    )


class EstimateHandlers:
    """Handlers for estimate and budget tools."""

    def __init__(self, config: AppConfig, layouts: LayoutManager, catalog: StaticCatalog):
        self.config = config
        self.layouts = layouts
        self.catalog = catalog

    def _wastage(self, args: dict[str, Any]) -> float:
        return float(args.get("wastage_percent", self.config.estimator.default_wastage_percent))

    async def estimate_room(self, args: dict[str, Any]) -> dict[str, Any]:
        room = RoomInstance(
            id="room",
            type="custom",
            label="Room",
            width=float(args["width"]),
            length=float(args["length"]),
            doors=int(args.get("doors", 1)),
            windows=int(args.get("windows", 1)),
            material_id=args.get("material_id") or DEFAULT_MATERIAL_ID,
        )
        wastage = self._wastage(args)
        result = estimate_room(room, wastage, self.config.estimator).to_dict()
        result["wastage_percent"] = wastage
        return result

    async def estimate_layout(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self.layouts.get(args.get("layout_id") or "default")
        if not session.rooms:
            return {"error": f"Layout {session.layout_id} has no rooms", "error_category": "invalid_input"}
        estimate = estimate_layout(session.rooms, self._wastage(args), self.config.estimator)
        return {"layout_id": session.layout_id, **estimate.to_dict()}

    async def quick_estimate(self, args: dict[str, Any]) -> dict[str, Any]:
        return quick_estimate(
            float(args["total_area"]),
            int(args["room_count"]),
            windows=int(args.get("windows", 0)),
            doors=int(args.get("doors", 0)),
            wastage_percent=self._wastage(args),
            config=self.config.estimator,
        ).to_dict()

    async def generate_boq(self, args: dict[str, Any]) -> dict[str, Any]:
        builder_config = builder_config_from_args(args, self.layouts)
        items = generate_boq_from_basics(builder_config, self.catalog)
        return {
            "scope": list(builder_config.scope),
            "from_layout": bool(builder_config.rooms),
            "items": [item.to_dict() for item in items],
            "totals": calculate_totals(items).to_dict(),
        }

    async def estimate_stage_reach(self, args: dict[str, Any]) -> dict[str, Any]:
        data = StageReachInput(
            budget_usd=float(args["budget_usd"]),
            floor_area_m2=float(args["floor_area_m2"]),
            room_count=args.get("room_count"),
            wall_height_m=args.get("wall_height_m"),
            brick_type=args.get("brick_type", "common"),
            cement_type=args.get("cement_type", "cement_325"),
        )
        return estimate_stage_reach(data, self.catalog).to_dict()

    async def plan_savings(self, args: dict[str, Any]) -> dict[str, Any]:
        plan = plan_savings(
            total_budget_usd=float(args["total_budget_usd"]),
            amount_spent_usd=float(args.get("amount_spent_usd", 0.0)),
            target_date=args.get("target_date"),
            mode=args.get("mode", "all"),
            critical_items_usd=float(args.get("critical_items_usd", 0.0)),
            custom_amount_usd=args.get("custom_amount_usd"),
        )
        return plan.to_dict()

    async def calculate_variance(self, args: dict[str, Any]) -> dict[str, Any]:
        average = float(args["average_usd"])
        actual = float(args["actual_usd"])
        variance, variance_pct = calculate_variance(average, actual)
        return {
            "average_usd": average,
            "actual_usd": actual,
            "variance_usd": round(variance, 2),
            "variance_percent": round(variance_pct, 1) if variance_pct is not None else None,
            "above_average": variance > 0,
        }
