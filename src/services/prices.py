"""Live material prices with a static catalog fallback.

Scraped observations from the lookback window win over catalog prices.
Observations awaiting review or rejected are never used.
"""

import logging
import sqlite3
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TypeVar

from catalog import StaticCatalog, get_catalog
from config import PricingConfig
from models.price import (
    LivePrice,
    PriceAggregation,
    PriceComparison,
    PriceObservation,
    PricePoint,
    PriceSource,
    PriceTrend,
    PriceWithTrend,
)
from persistence import StateStore
from utils.clock import utc_now
from utils.errors import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATIC_CONFIDENCE = 3
DEFAULT_SUPPLIER_NAME = "Supplier"


def confidence_label(confidence: int) -> str:
    if confidence >= 4:
        return "High"
    if confidence >= 3:
        return "Medium"
    if confidence >= 2:
        return "Low"
    return "Very Low"


def confidence_color(confidence: int) -> str:
    if confidence >= 4:
        return "#16a34a"
    if confidence >= 3:
        return "#eab308"
    if confidence >= 2:
        return "#f97316"
    return "#ef4444"


def format_last_updated(when: datetime, now: datetime | None = None) -> str:
    """Relative age such as "5m ago", or a short date after a month."""
    now = now or utc_now()
    elapsed = now - when
    minutes = int(elapsed.total_seconds() // 60)
    hours = int(elapsed.total_seconds() // 3600)
    days = elapsed.days

    if minutes < 60:
        return "Just now" if minutes <= 1 else f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    if days < 30:
        return f"{days // 7}w ago"
    return f"{when.strftime('%b')} {when.day}"


class PriceService:
    """Resolves current prices, trends and supplier comparisons."""

    def __init__(
        self,
        store: StateStore | None,
        catalog: StaticCatalog | None = None,
        config: PricingConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.catalog = catalog or get_catalog()
        self.config = config or PricingConfig()
        self._clock = clock
        self._monotonic = monotonic
        self._cache: dict[str, tuple[LivePrice, float]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cached(self, material_key: str) -> LivePrice | None:
        entry = self._cache.get(material_key)
        if entry and self._monotonic() - entry[1] < self.config.cache_ttl_seconds:
            return entry[0]
        return None

    def _remember(self, price: LivePrice) -> LivePrice:
        self._cache[price.material_key] = (price, self._monotonic())
        return price

    def _since(self) -> datetime:
        return self._clock() - timedelta(days=self.config.lookback_days)

    async def _read(
        self,
        operation: str,
        read: Callable[[StateStore], Awaitable[T]],
        default: T,
    ) -> T:
        """Read from the store, treating failures and a missing store as no data."""
        if self.store is None:
            return default
        try:
            return await read(self.store)
        except (StoreError, sqlite3.Error) as e:
            logger.warning(f"{operation} failed, using fallback: {e}")
            return default

    def _from_observation(self, obs: PriceObservation) -> LivePrice:
        price_usd = obs.price_usd or 0.0
        return LivePrice(
            material_key=obs.material_key,
            price_usd=price_usd,
            price_zwg=obs.price_zwg or price_usd * self.config.zwg_rate,
            source=PriceSource.SCRAPED,
            confidence=obs.confidence,
            last_updated=obs.scraped_at,
            supplier_name=obs.supplier_name,
            location=obs.location,
        )

    def _from_catalog(self, material_key: str) -> LivePrice | None:
        static = self.catalog.get_best_price(material_key)
        if not static:
            return None
        return LivePrice(
            material_key=material_key,
            price_usd=static.price_usd,
            price_zwg=static.price_zwg,
            source=PriceSource.STATIC,
            confidence=STATIC_CONFIDENCE,
            last_updated=datetime.fromisoformat(static.last_updated),
        )

    async def get_latest_price(self, material_key: str) -> LivePrice | None:
        """Newest trusted scraped price, else the best static price, else None."""
        cached = self._cached(material_key)
        if cached:
            return cached

        observations = await self._read(
            "get_latest_price",
            lambda store: store.get_observations(material_key, since=self._since(), limit=1),
            [],
        )
        if observations:
            return self._remember(self._from_observation(observations[0]))

        static = self._from_catalog(material_key)
        if static:
            return self._remember(static)
        return None

    async def get_price_with_trend(self, material_key: str) -> PriceWithTrend | None:
        """Current price plus the week-over-week movement of weekly averages."""
        current = await self.get_latest_price(material_key)
        if not current:
            return None

        weekly = await self._read(
            "get_price_with_trend",
            lambda store: store.get_weekly_prices(material_key, limit=self.config.history_weeks),
            [],
        )
        result = PriceWithTrend(price=current)
        if len(weekly) < 2:
            return result

        chronological = list(reversed(weekly))
        result.history = [
            PricePoint(date=datetime.fromisoformat(w.week_start), price=w.avg_price_usd)
            for w in chronological
            if w.avg_price_usd is not None
        ]

        latest, previous = chronological[-1], chronological[-2]
        if latest.avg_price_usd is not None and previous.avg_price_usd:
            change = (latest.avg_price_usd - previous.avg_price_usd) / previous.avg_price_usd * 100
            threshold = self.config.trend_threshold_percent
            if change > threshold:
                result.trend = PriceTrend.UP
            elif change < -threshold:
                result.trend = PriceTrend.DOWN
            result.change_percent = round(change, 1)

        return result

    async def get_price_aggregation(self, material_key: str) -> PriceAggregation | None:
        current = await self.get_price_with_trend(material_key)
        if not current:
            return None

        observations = await self._read(
            "get_price_aggregation",
            lambda store: store.get_observations(material_key, since=self._since()),
            [],
        )
        lowest: LivePrice | None = None
        highest: LivePrice | None = None
        total = 0.0
        for obs in observations:
            price = self._from_observation(obs)
            total += price.price_usd
            if lowest is None or price.price_usd < lowest.price_usd:
                lowest = price
            if highest is None or price.price_usd > highest.price_usd:
                highest = price

        count = len(observations)
        return PriceAggregation(
            material_key=material_key,
            current=current,
            lowest=lowest,
            highest=highest,
            avg_price_usd=total / count if count else current.price.price_usd,
            price_count=count,
        )

    async def get_price_comparisons(self, material_key: str) -> list[PriceComparison]:
        """Supplier prices, cheapest first. Static prices are used only without scraped ones."""
        observations = await self._read(
            "get_price_comparisons",
            lambda store: store.get_observations(material_key, since=self._since(), order="cheapest"),
            [],
        )
        if observations:
            return [
                PriceComparison(
                    supplier_name=obs.supplier_name or DEFAULT_SUPPLIER_NAME,
                    price_usd=obs.price_usd or 0.0,
                    price_zwg=obs.price_zwg or (obs.price_usd or 0.0) * self.config.zwg_rate,
                    last_updated=obs.scraped_at,
                    confidence=obs.confidence or STATIC_CONFIDENCE,
                    source=PriceSource.SCRAPED,
                    location=obs.location,
                )
                for obs in observations
            ]

        return [
            PriceComparison(
                supplier_name=supplier.name,
                price_usd=price.price_usd,
                price_zwg=price.price_zwg,
                last_updated=datetime.fromisoformat(price.last_updated),
                confidence=STATIC_CONFIDENCE,
                source=PriceSource.STATIC,
                location=supplier.location,
            )
            for price, supplier in self.catalog.get_prices_for_material(material_key)
        ]

    async def get_batch_prices(self, material_keys: list[str]) -> dict[str, LivePrice]:
        """Prices for many materials with at most one store query.

        Keys with neither a scraped nor a static price are left out.
        """
        result: dict[str, LivePrice] = {}
        uncached: list[str] = []
        for key in dict.fromkeys(material_keys):
            cached = self._cached(key)
            if cached:
                result[key] = cached
            else:
                uncached.append(key)

        if not uncached:
            return result

        latest = await self._read(
            "get_batch_prices",
            lambda store: store.get_latest_observations(uncached, since=self._since()),
            {},
        )
        for key in uncached:
            obs = latest.get(key)
            price = self._from_observation(obs) if obs else self._from_catalog(key)
            if price:
                result[key] = self._remember(price)

        return result
