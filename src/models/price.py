"""Price models for ZimEstimate MCP."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class PriceSource(Enum):
    SCRAPED = "scraped"
    STATIC = "static"


class PriceTrend(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ReviewStatus(Enum):
    """Moderation state of a scraped observation."""

    AUTO = "auto"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


# Only these observations are trusted for pricing
TRUSTED_REVIEW_STATUSES = (ReviewStatus.AUTO.value, ReviewStatus.CONFIRMED.value)


@dataclass
class PriceObservation:
    """A single scraped or imported price point."""

    material_key: str
    price_usd: float | None
    scraped_at: datetime
    material_name: str | None = None
    unit: str | None = None
    price_zwg: float | None = None
    currency: str = "USD"
    location: str | None = None
    supplier_name: str | None = None
    source_name: str | None = None
    url: str | None = None
    confidence: int = 2
    review_status: ReviewStatus = ReviewStatus.AUTO
    id: int | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.confidence <= 5:
            raise ValueError(f"Confidence must be between 1 and 5, got {self.confidence}")


@dataclass
class WeeklyPrice:
    """Aggregated prices for one material over one week."""

    material_key: str
    week_start: str
    avg_price_usd: float | None
    avg_price_zwg: float | None = None
    median_price_usd: float | None = None
    min_price_usd: float | None = None
    max_price_usd: float | None = None
    sample_count: int = 0
    last_scraped_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "material_key": self.material_key,
            "week_start": self.week_start,
            "avg_price_usd": self.avg_price_usd,
            "avg_price_zwg": self.avg_price_zwg,
            "median_price_usd": self.median_price_usd,
            "min_price_usd": self.min_price_usd,
            "max_price_usd": self.max_price_usd,
            "sample_count": self.sample_count,
            "last_scraped_at": self.last_scraped_at,
        }


@dataclass
class LivePrice:
    """Current price for a material and where it came from."""

    material_key: str
    price_usd: float
    price_zwg: float
    source: PriceSource
    confidence: int
    last_updated: datetime
    supplier_name: str | None = None
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "material_key": self.material_key,
            "price_usd": self.price_usd,
            "price_zwg": self.price_zwg,
            "source": self.source.value,
            "confidence": self.confidence,
            "last_updated": self.last_updated.isoformat(),
            "supplier_name": self.supplier_name,
            "location": self.location,
        }


@dataclass
class PricePoint:
    date: datetime
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.date().isoformat(), "price": self.price}


@dataclass
class PriceWithTrend:
    """A live price plus its recent weekly movement."""

    price: LivePrice
    trend: PriceTrend = PriceTrend.STABLE
    change_percent: float = 0.0
    history: list[PricePoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result = self.price.to_dict()
        result.update({
            "trend": self.trend.value,
            "change_percent": self.change_percent,
            "price_history": [p.to_dict() for p in self.history],
        })
        return result


@dataclass
class PriceAggregation:
    material_key: str
    current: PriceWithTrend
    lowest: LivePrice | None
    highest: LivePrice | None
    avg_price_usd: float
    price_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "material_key": self.material_key,
            "current_price": self.current.to_dict(),
            "lowest_price": self.lowest.to_dict() if self.lowest else None,
            "highest_price": self.highest.to_dict() if self.highest else None,
            "avg_price_usd": round(self.avg_price_usd, 2),
            "price_count": self.price_count,
            "trend": self.current.trend.value,
            "change_percent": self.current.change_percent,
        }


@dataclass
class PriceComparison:
    """One supplier's price for a material."""

    supplier_name: str
    price_usd: float
    price_zwg: float
    last_updated: datetime
    confidence: int
    source: PriceSource
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "supplier_name": self.supplier_name,
            "price_usd": self.price_usd,
            "price_zwg": self.price_zwg,
            "last_updated": self.last_updated.isoformat(),
            "confidence": self.confidence,
            "source": self.source.value,
            "location": self.location,
        }
