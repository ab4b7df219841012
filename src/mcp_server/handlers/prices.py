"""Material price handlers for ZimEstimate MCP."""

import logging
from typing import Any

from catalog import StaticCatalog
from mcp_server.handlers.results import not_found
from models.price import LivePrice, ReviewStatus
from services.price_feeds import PriceFeedClient
from services.prices import PriceService, confidence_color, confidence_label, format_last_updated

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (ReviewStatus.CONFIRMED.value, ReviewStatus.REJECTED.value)


def _price_dict(price: LivePrice) -> dict[str, Any]:
    return price.to_dict() | {
        "confidence_label": confidence_label(price.confidence),
        "confidence_color": confidence_color(price.confidence),
        "age": format_last_updated(price.last_updated),
    }


class PriceHandlers:
    """Handlers for price tools."""

    def __init__(
        self,
        prices: PriceService,
        catalog: StaticCatalog,
        feeds: PriceFeedClient | None = None,
    ):
        self.prices = prices
        self.catalog = catalog
        self.feeds = feeds

    async def get_material_price(self, args: dict[str, Any]) -> dict[str, Any]:
        key = args["material_key"]
        price = await self.prices.get_latest_price(key)
        if price is None:
            return not_found("Price for material", key)
        material = self.catalog.get_material(key)
        result = _price_dict(price)
        if material:
            result["material_name"] = material.name
            result["unit"] = material.unit
        return result

    async def get_price_trend(self, args: dict[str, Any]) -> dict[str, Any]:
        key = args["material_key"]
        trend = await self.prices.get_price_with_trend(key)
        if trend is None:
            return not_found("Price for material", key)
        return trend.to_dict()

    async def get_price_aggregation(self, args: dict[str, Any]) -> dict[str, Any]:
        key = args["material_key"]
        aggregation = await self.prices.get_price_aggregation(key)
        if aggregation is None:
            return not_found("Price for material", key)
        return aggregation.to_dict()

    async def compare_prices(self, args: dict[str, Any]) -> dict[str, Any]:
        key = args["material_key"]
        comparisons = await self.prices.get_price_comparisons(key)
        result: dict[str, Any] = {
            "material_key": key,
            "count": len(comparisons),
            "suppliers": [c.to_dict() for c in comparisons],
        }
        if len(comparisons) > 1:
            spread = comparisons[-1].price_usd - comparisons[0].price_usd
            result["cheapest_supplier"] = comparisons[0].supplier_name
            result["spread_usd"] = round(spread, 2)
        return result

    async def get_batch_prices(self, args: dict[str, Any]) -> dict[str, Any]:
        keys = args["material_keys"]
        prices = await self.prices.get_batch_prices(keys)
        return {
            "prices": {key: price.to_dict() for key, price in prices.items()},
            "missing": [key for key in keys if key not in prices],
        }

    async def search_materials(self, args: dict[str, Any]) -> dict[str, Any]:
        if args.get("query"):
            materials = self.catalog.search(args["query"])
        else:
            materials = list(self.catalog.materials)
        if args.get("category"):
            materials = [m for m in materials if m.category == args["category"]]
        if args.get("milestone"):
            materials = [m for m in materials if args["milestone"] in m.milestones]
        return {"count": len(materials), "materials": [m.to_dict() for m in materials]}

    async def import_price_feed(self, args: dict[str, Any]) -> dict[str, Any]:
        if self.feeds is None:
            return {"error": "Price feeds not available (store not initialized)", "error_category": "store_error"}

        feed_id = args.get("feed_id")
        if feed_id:
            result = await self.feeds.import_one(feed_id)
            results = [result.to_dict()]
        else:
            results = await self.feeds.import_all()
        if not results:
            return {"success": False, "message": "No price feeds configured"}

        # New observations change what the cache should return
        self.prices.clear_cache()
        return {"success": all("error" not in r for r in results), "feeds": results}

    async def review_price_observation(self, args: dict[str, Any]) -> dict[str, Any]:
        if self.feeds is None:
            return {"error": "Review not available (store not initialized)", "error_category": "store_error"}

        status = args["status"]
        if status not in REVIEW_DECISIONS:
            raise ValueError(f"Status must be one of {', '.join(REVIEW_DECISIONS)}")
        observation_id = int(args["observation_id"])
        observation = await self.feeds.review_observation(observation_id, status)
        if observation is None:
            return not_found("Price observation", str(observation_id))

        self.prices.clear_cache()
        logger.info(f"Price observation {observation_id} marked {status}")
        return {
            "success": True,
            "observation_id": observation_id,
            "material_key": observation.material_key,
            "review_status": status,
        }
