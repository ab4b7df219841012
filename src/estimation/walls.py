"""Wall area and walling material estimates.

Quantities are computed in declaration order and rounded up only at the end,
so a room list always yields the same estimate.
"""

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from config import EstimatorConfig
from models.room import RoomInstance, get_wall_material

WASTAGE_OPTIONS = (5, 10, 15)

# Quick estimates from floor area alone
QUICK_ASPECT_RATIO = 1.4
INTERNAL_WALL_PER_ROOM = 4.0
QUICK_BRICKS_PER_SQM = 50
CEMENT_BAGS_PER_1000_BRICKS = 8
SAND_M3_PER_1000_BRICKS = 0.5


def _check_wastage(wastage_percent: float) -> None:
    if wastage_percent < 0:
        raise ValueError(f"Wastage percent must be non-negative, got {wastage_percent}")


def net_wall_area(
    width: float,
    length: float,
    doors: int,
    windows: int,
    config: EstimatorConfig | None = None,
) -> float:
    """Wall area of a rectangular room less its openings, never negative."""
    config = config or EstimatorConfig()
    perimeter = 2 * (length + width)
    gross = perimeter * config.wall_height
    return max(0.0, gross - doors * config.door_area - windows * config.window_area)


@dataclass
class RoomEstimate:
    """Material quantities for a single room."""

    room_id: str
    floor_area: float
    perimeter: float
    gross_wall_area: float
    net_wall_area: float
    material_id: str
    units: int
    cement_bags: int
    sand_m3: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "floor_area": round(self.floor_area, 2),
            "perimeter": round(self.perimeter, 2),
            "gross_wall_area": round(self.gross_wall_area, 2),
            "net_wall_area": round(self.net_wall_area, 2),
            "material_id": self.material_id,
            "units": self.units,
            "cement_bags": self.cement_bags,
            "sand_m3": self.sand_m3,
        }


def estimate_room(
    room: RoomInstance,
    wastage_percent: float = 0.0,
    config: EstimatorConfig | None = None,
) -> RoomEstimate:
    """Estimate walling for one room.

    Wastage multiplies the raw unit count before it is rounded up.
    """
    _check_wastage(wastage_percent)
    config = config or EstimatorConfig()
    material = get_wall_material(room.material_id)

    perimeter = 2 * (room.length + room.width)
    gross = perimeter * config.wall_height
    net = net_wall_area(room.width, room.length, room.doors, room.windows, config)

    return RoomEstimate(
        room_id=room.id,
        floor_area=room.floor_area,
        perimeter=perimeter,
        gross_wall_area=gross,
        net_wall_area=net,
        material_id=material.id,
        units=math.ceil(net * material.rate * (1 + wastage_percent / 100)),
        cement_bags=math.ceil(net * config.cement_bags_per_sqm),
        sand_m3=round(net * config.sand_m3_per_sqm, 2),
    )


@dataclass
class LayoutEstimate:
    """Material quantities for a whole floor plan."""

    floor_area: float = 0.0
    net_wall_area: float = 0.0
    wastage_percent: float = 0.0
    units_by_material: dict[str, int] = field(default_factory=dict)
    cement_bags: int = 0
    sand_m3: float = 0.0
    rooms: list[RoomEstimate] = field(default_factory=list)

    @property
    def total_units(self) -> int:
        return sum(self.units_by_material.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "floor_area": round(self.floor_area, 2),
            "net_wall_area": round(self.net_wall_area, 2),
            "wastage_percent": self.wastage_percent,
            "total_units": self.total_units,
            "units_by_material": self.units_by_material,
            "cement_bags": self.cement_bags,
            "sand_m3": self.sand_m3,
            "rooms": [r.to_dict() for r in self.rooms],
        }


def estimate_layout(
    rooms: Iterable[RoomInstance],
    wastage_percent: float = 10.0,
    config: EstimatorConfig | None = None,
) -> LayoutEstimate:
    """Estimate walling for a set of rooms.

    Raw units are summed per material and wastage is applied to each sum
    before rounding up, so a higher wastage never yields fewer units.
    """
    _check_wastage(wastage_percent)
    config = config or EstimatorConfig()
    estimate = LayoutEstimate(wastage_percent=wastage_percent)
    raw_units: dict[str, float] = defaultdict(float)

    for room in rooms:
        room_estimate = estimate_room(room, wastage_percent, config)
        estimate.rooms.append(room_estimate)
        estimate.floor_area += room_estimate.floor_area
        estimate.net_wall_area += room_estimate.net_wall_area
        raw_units[room_estimate.material_id] += (
            room_estimate.net_wall_area * get_wall_material(room_estimate.material_id).rate
        )

    multiplier = 1 + wastage_percent / 100
    estimate.units_by_material = {
        material_id: math.ceil(raw * multiplier) for material_id, raw in raw_units.items()
    }
    estimate.cement_bags = math.ceil(estimate.net_wall_area * config.cement_bags_per_sqm)
    estimate.sand_m3 = round(estimate.net_wall_area * config.sand_m3_per_sqm, 2)
    return estimate


@dataclass
class LayoutTotals:
    """Running totals shown while editing."""

    area: float
    walls: float
    bricks: int

    def to_dict(self) -> dict[str, Any]:
        return {"area": round(self.area, 2), "walls": round(self.walls, 2), "bricks": self.bricks}


def layout_totals(rooms: Iterable[RoomInstance], config: EstimatorConfig | None = None) -> LayoutTotals:
    """Sum floor area, net wall area and units without wastage."""
    config = config or EstimatorConfig()
    area = walls = bricks = 0.0
    for room in rooms:
        net = net_wall_area(room.width, room.length, room.doors, room.windows, config)
        area += room.floor_area
        walls += net
        bricks += net * get_wall_material(room.material_id).rate
    return LayoutTotals(area=area, walls=walls, bricks=math.ceil(bricks))


@dataclass
class QuickEstimate:
    total_area: float
    external_perimeter: float
    internal_wall_length: float
    gross_wall_area: float
    openings_area: float
    net_wall_area: float
    bricks: int
    cement_bags: int
    sand_m3: int
    wastage_percent: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_area": round(self.total_area, 2),
            "external_perimeter": round(self.external_perimeter, 2),
            "internal_wall_length": self.internal_wall_length,
            "gross_wall_area": round(self.gross_wall_area),
            "openings_area": round(self.openings_area, 1),
            "net_wall_area": round(self.net_wall_area),
            "bricks": self.bricks,
            "cement_bags": self.cement_bags,
            "sand_m3": self.sand_m3,
            "wastage_percent": self.wastage_percent,
        }


def quick_estimate(
    total_area: float,
    room_count: int,
    windows: int = 0,
    doors: int = 0,
    wastage_percent: float = 10.0,
    config: EstimatorConfig | None = None,
) -> QuickEstimate:
    """Estimate bricks, cement and sand from floor area and room count.

    The external perimeter assumes a 1.4:1 plan and internal walls add 4m
    for every room beyond the first.
    """
    _check_wastage(wastage_percent)
    if total_area <= 0:
        raise ValueError(f"Floor area must be positive, got {total_area}")
    config = config or EstimatorConfig()

    length = math.sqrt(total_area * QUICK_ASPECT_RATIO)
    width = total_area / length
    external_perimeter = 2 * (length + width)
    internal = max(0, room_count - 1) * INTERNAL_WALL_PER_ROOM

    gross = (external_perimeter + internal) * config.wall_height
    openings = windows * config.window_area + doors * config.door_area
    net = max(0.0, gross - openings)

    bricks = math.ceil(net * QUICK_BRICKS_PER_SQM * (1 + wastage_percent / 100))
    return QuickEstimate(
        total_area=total_area,
        external_perimeter=external_perimeter,
        internal_wall_length=internal,
        gross_wall_area=gross,
        openings_area=openings,
        net_wall_area=net,
        bricks=bricks,
        cement_bags=math.ceil(bricks / 1000 * CEMENT_BAGS_PER_1000_BRICKS),
        sand_m3=math.ceil(bricks / 1000 * SAND_M3_PER_1000_BRICKS),
        wastage_percent=wastage_percent,
    )
