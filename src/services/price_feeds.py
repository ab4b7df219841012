"""Price feed importer.

A feed is a URL returning a JSON list of entries such as::

    [{"name": "Portland Cement 32.5N", "price": "$12.50", "unit": "bag",
      "supplier": "Halsteds", "location": "Harare"}]

Entries may also carry "material_key", "currency", "url" and "confidence".
"""

import logging
import re
import statistics
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

import httpx

from catalog import StaticCatalog, get_catalog
from config import PriceFeedConfig, PricingConfig, SecretsConfig, get_feed_secret
from models.price import PriceObservation, ReviewStatus, WeeklyPrice
from persistence import StateStore
from utils.clock import utc_now
from utils.errors import FEED_REQUEST_TIMEOUT, PriceFeedError, execute_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_FEED_CONFIDENCE = 2
_NUMBER = re.compile(r"([0-9]+(?:\.[0-9]+)?)")


def parse_price(value: Any) -> tuple[float | None, str | None]:
    """Extract a price and its currency from text like "ZWG 1,250.00".

    Returns (None, None) when there is no number. Currency is None when the
    text names neither USD nor ZWG.
    """
    if value is None or value == "":
        return None, None
    if isinstance(value, (int, float)):
        return float(value), None

    raw = str(value).replace(",", "")
    match = _NUMBER.search(raw)
    if not match:
        return None, None

    upper = raw.upper()
    currency = None
    if "USD" in upper or "$" in upper:
        currency = "USD"
    if "ZWG" in upper or "ZWL" in upper or "ZIG" in upper:
        currency = "ZWG"
    return float(match.group(1)), currency


def week_start(when: datetime) -> date:
    """Monday of the week containing when."""
    return when.date() - timedelta(days=when.weekday())


def _rounded(values: list[float], fn: Callable[[list[float]], float]) -> float | None:
    return round(fn(values), 2) if values else None


@dataclass
class FeedImportResult:
    feed_id: str
    fetched: int = 0
    recorded: int = 0
    pending_review: int = 0
    skipped: int = 0
    weeks_updated: int = 0
    materials: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "feed_id": self.feed_id,
            "fetched": self.fetched,
            "recorded": self.recorded,
            "pending_review": self.pending_review,
            "skipped": self.skipped,
            "weeks_updated": self.weeks_updated,
            "materials": self.materials,
        }


class PriceFeedClient:
    """Fetches configured feeds and records their prices."""

    def __init__(
        self,
        store: StateStore,
        config: PricingConfig | None = None,
        secrets: SecretsConfig | None = None,
        catalog: StaticCatalog | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.config = config or PricingConfig()
        self.secrets = secrets or SecretsConfig()
        self.catalog = catalog or get_catalog()
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=min(FEED_REQUEST_TIMEOUT, self.config.feed_timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def get_feed(self, feed_id: str) -> PriceFeedConfig:
        for feed in self.config.feeds:
            if feed.id == feed_id:
                return feed
        raise PriceFeedError(feed_id, "Feed is not configured")

    async def fetch(self, feed: PriceFeedConfig) -> list[dict[str, Any]]:
        """GET a feed and return its entries.

        Raises:
            PriceFeedError: On connection failure, HTTP error or a body
                that is not a JSON list
        """
        client = await self._get_client()
        headers = {"Accept": "application/json"}
        token = get_feed_secret(self.secrets, feed.id, "token")
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await client.get(feed.url, headers=headers)
        except httpx.HTTPError as e:
            raise PriceFeedError(feed.id, f"Connection failed: {e}") from e

        if response.status_code != 200:
            raise PriceFeedError(feed.id, f"HTTP error {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise PriceFeedError(feed.id, "Response is not valid JSON") from e

        if not isinstance(payload, list):
            raise PriceFeedError(feed.id, "Expected a JSON list of prices")
        return [entry for entry in payload if isinstance(entry, dict)]

    def build_observation(
        self,
        feed: PriceFeedConfig,
        entry: dict[str, Any],
        scraped_at: datetime,
    ) -> PriceObservation | None:
        """Turn a feed entry into an observation, or None if it cannot be used."""
        name = entry.get("name")
        match = self.catalog.match_material(entry.get("material_key"), name)
        if not match.material_id:
            return None

        price, currency = parse_price(entry.get("price"))
        if not price:
            return None
        currency = currency or (entry.get("currency") or feed.currency).upper()

        rate = self.config.zwg_rate
        if currency == "ZWG":
            price_usd, price_zwg = round(price / rate, 2), price
        else:
            price_usd, price_zwg = price, round(price * rate, 2)

        url = entry.get("url")
        return PriceObservation(
            material_key=match.material_id,
            material_name=name,
            unit=entry.get("unit"),
            price_usd=price_usd,
            price_zwg=price_zwg,
            currency=currency,
            location=entry.get("location") or feed.location,
            supplier_name=entry.get("supplier"),
            source_name=feed.name,
            url=url if url and str(url).startswith("http") else None,
            confidence=int(entry.get("confidence") or DEFAULT_FEED_CONFIDENCE),
            review_status=ReviewStatus.PENDING if match.needs_review else ReviewStatus.AUTO,
            scraped_at=scraped_at,
        )

    async def import_feed(self, feed: PriceFeedConfig) -> FeedImportResult:
        """Fetch a feed, record its observations and refresh weekly aggregates.

        Entries whose name only loosely matches a material are recorded for
        review and do not affect prices until confirmed.
        """
        entries = await self.fetch(feed)
        scraped_at = self._clock()
        result = FeedImportResult(feed_id=feed.id, fetched=len(entries))

        observations = []
        for entry in entries:
            try:
                obs = self.build_observation(feed, entry, scraped_at)
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed entry in {feed.id}: {e}")
                obs = None
            if obs is None:
                result.skipped += 1
                continue
            if obs.review_status == ReviewStatus.PENDING:
                result.pending_review += 1
            observations.append(obs)

        result.recorded = await self.store.record_price_observations(observations)

        affected = sorted({
            (o.material_key, week_start(o.scraped_at))
            for o in observations
            if o.review_status == ReviewStatus.AUTO
        })
        for material_key, start in affected:
            if await self.refresh_weekly(material_key, start):
                result.weeks_updated += 1
        result.materials = sorted({key for key, _ in affected})

        logger.info(
            f"Imported feed {feed.id}: {result.recorded} recorded, "
            f"{result.pending_review} pending review, {result.skipped} skipped"
        )
        return result

    async def refresh_weekly(self, material_key: str, start: date) -> bool:
        """Recompute one week's aggregate from trusted observations.

        A week left with no trusted observations loses its aggregate row.
        """
        since = datetime.combine(start, datetime.min.time())
        observations = await self.store.get_observations(
            material_key, since=since, until=since + timedelta(days=7)
        )
        if not observations:
            await self.store.delete_weekly_price(material_key, start.isoformat())
            return False

        usd = [o.price_usd for o in observations if o.price_usd is not None]
        zwg = [o.price_zwg for o in observations if o.price_zwg is not None]
        await self.store.upsert_weekly_price(WeeklyPrice(
            material_key=material_key,
            week_start=start.isoformat(),
            avg_price_usd=_rounded(usd, statistics.fmean),
            avg_price_zwg=_rounded(zwg, statistics.fmean),
            median_price_usd=_rounded(usd, statistics.median),
            min_price_usd=min(usd) if usd else None,
            max_price_usd=max(usd) if usd else None,
            sample_count=max(len(usd), len(zwg)),
            last_scraped_at=max(o.scraped_at for o in observations).isoformat(),
        ))
        return True

    async def review_observation(self, observation_id: int, status: ReviewStatus | str) -> PriceObservation | None:
        """Confirm or reject an observation and recompute its week.

        Returns None when the observation does not exist.
        """
        if not await self.store.set_review_status(observation_id, status):
            return None
        observation = await self.store.get_observation(observation_id)
        await self.refresh_weekly(observation.material_key, week_start(observation.scraped_at))
        return observation

    def import_budget(self) -> float:
        """Longest time importing every configured feed may take."""
        return self.config.feed_timeout * len(self.config.feeds)

    async def import_one(self, feed_id: str) -> FeedImportResult:
        """Import one feed, bounded by the per-feed timeout."""
        return await self._import_bounded(self.get_feed(feed_id))

    async def _import_bounded(self, feed: PriceFeedConfig) -> FeedImportResult:
        return await execute_with_timeout(self.import_feed(feed), timeout=self.config.feed_timeout, feed_id=feed.id)

    async def import_all(self) -> list[dict[str, Any]]:
        """Import every configured feed. A failing feed does not stop the rest."""
        results = []
        for feed in self.config.feeds:
            try:
                result = await self._import_bounded(feed)
                results.append(result.to_dict())
            except PriceFeedError as e:
                logger.error(str(e))
                results.append({"feed_id": feed.id, "error": str(e)})
        return results
