"""MCP tool handlers for ZimEstimate."""

from mcp_server.handlers.discovery import handle_discover_tools, handle_get_system_status
from mcp_server.handlers.estimates import EstimateHandlers
from mcp_server.handlers.floorplan import FloorplanHandlers
from mcp_server.handlers.prices import PriceHandlers
from mcp_server.handlers.projects import ProjectHandlers
from mcp_server.handlers.stages import StageHandlers

__all__ = [
    "handle_discover_tools",
    "handle_get_system_status",
    "EstimateHandlers",
    "FloorplanHandlers",
    "PriceHandlers",
    "ProjectHandlers",
    "StageHandlers",
]
