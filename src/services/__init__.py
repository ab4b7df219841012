"""Service layer for ZimEstimate MCP.

Services sit between the MCP handlers and the state store.
"""

from services.price_feeds import PriceFeedClient, parse_price
from services.prices import PriceService
from services.projects import ProjectService, whatsapp_reminder_link
from services.result import ServiceResult
from services.stages import StageService

__all__ = [
    "PriceFeedClient",
    "PriceService",
    "ProjectService",
    "ServiceResult",
    "StageService",
    "parse_price",
    "whatsapp_reminder_link",
]
