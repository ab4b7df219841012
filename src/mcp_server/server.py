"""MCP server implementation for ZimEstimate."""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent

from catalog import StaticCatalog, get_catalog
from config import AppConfig, SecretsConfig
from floorplan.manager import LayoutManager
from mcp_server.handlers import (
    EstimateHandlers,
    FloorplanHandlers,
    PriceHandlers,
    ProjectHandlers,
    StageHandlers,
    handle_discover_tools,
    handle_get_system_status,
)
from mcp_server.tools import TOOL_CATEGORIES, get_all_tools
from persistence import StateStore
from services.price_feeds import PriceFeedClient
from services.prices import PriceService
from services.projects import ProjectService
from services.stages import StageService
from utils.errors import (
    DEFAULT_HANDLER_TIMEOUT,
    ErrorCategory,
    ToolError,
    classify_exception,
    generate_request_id,
    get_recovery_suggestion,
)

logger = logging.getLogger(__name__)

# Timeout for tool handler execution
TOOL_TIMEOUT = DEFAULT_HANDLER_TIMEOUT

# Arguments that identify the record a call is about, for logs and errors
ENTITY_ARGS = ("project_id", "stage_id", "task_id", "room_id", "item_id", "material_key", "layout_id")


class ZimEstimateMcpServer:
    """MCP server for construction estimates."""

    def __init__(
        self,
        config: AppConfig,
        secrets: SecretsConfig,
        store: StateStore | None = None,
        catalog: StaticCatalog | None = None,
    ):
        self.config = config
        self.store = store
        self.catalog = catalog or get_catalog()

        self.layouts = LayoutManager(store, config.editor, config.estimator)
        self.floorplan = FloorplanHandlers(self.layouts)
        self.estimates = EstimateHandlers(config, self.layouts, self.catalog)

        # Store-backed tools are off without a database; prices fall back to the catalog
        self.prices = PriceService(store, self.catalog, config.pricing)
        if store:
            self.feeds = PriceFeedClient(store, config.pricing, secrets, self.catalog)
            self.projects = ProjectHandlers(ProjectService(store, config), self.layouts, self.catalog)
            self.stages = StageHandlers(StageService(store))
        else:
            self.feeds = None
            self.projects = None
            self.stages = None
        self.price_handlers = PriceHandlers(self.prices, self.catalog, self.feeds)

        # Set up MCP server
        self.server = Server("zimestimate")
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Set up MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list:
            return get_all_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            return await self.call_tool(name, arguments)

    def _timeout_for(self, name: str) -> float:
        """Feed imports get each feed's own timeout on top of the handler timeout."""
        if name == "import_price_feed" and self.feeds:
            return TOOL_TIMEOUT + self.feeds.import_budget()
        return TOOL_TIMEOUT

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Run one tool call with a timeout and structured errors."""
        arguments = arguments or {}
        request_id = generate_request_id()
        entity_id = next((arguments[k] for k in ENTITY_ARGS if arguments.get(k)), None)

        logger.info(f"[{request_id}] Tool call: {name} (entity={entity_id or 'N/A'})")

        try:
            # Execute with timeout protection
            timeout = self._timeout_for(name)
            async with asyncio.timeout(timeout):
                result = await self._handle_tool(name, arguments)

            # Add request_id to responses for tracing
            if isinstance(result, dict):
                result["request_id"] = request_id

            logger.info(f"[{request_id}] Tool {name} completed")
            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

        except asyncio.TimeoutError:
            logger.error(f"[{request_id}] Tool {name} timed out after {timeout}s")
            error = ToolError(
                category=ErrorCategory.TIMEOUT,
                message=f"Operation timed out after {timeout} seconds",
                entity_id=entity_id,
                request_id=request_id,
                recovery=get_recovery_suggestion(ErrorCategory.TIMEOUT),
            )
            return [TextContent(type="text", text=json.dumps(error.to_dict(), indent=2))]

        except Exception as e:
            logger.exception(f"[{request_id}] Error handling tool {name}: {e}")
            error = classify_exception(e, entity_id)
            error.request_id = request_id
            return [TextContent(type="text", text=json.dumps(error.to_dict(), indent=2))]

    async def _handle_tool(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """Route tool calls to appropriate handlers.

        Handler methods are named after the tools they serve.
        """
        # Discovery tools
        if name == "discover_tools":
            return await handle_discover_tools(args)
        elif name == "get_system_status":
            return await handle_get_system_status(args, self.config, self.layouts, self.store)

        # Floor plan tools
        elif name in TOOL_CATEGORIES["floorplan"]["tools"]:
            return await getattr(self.floorplan, name)(args)

        # Estimate tools
        elif name in TOOL_CATEGORIES["estimates"]["tools"]:
            return await getattr(self.estimates, name)(args)

        # Project tools
        elif name in TOOL_CATEGORIES["projects"]["tools"]:
            if not self.projects:
                return {"error": "Projects not available (store not initialized)", "error_category": "store_error"}
            return await getattr(self.projects, name)(args)

        # Stage and usage tools
        elif name in TOOL_CATEGORIES["stages"]["tools"]:
            if not self.stages:
                return {"error": "Stages not available (store not initialized)", "error_category": "store_error"}
            return await getattr(self.stages, name)(args)

        # Price tools
        elif name in TOOL_CATEGORIES["prices"]["tools"]:
            return await getattr(self.price_handlers, name)(args)

        return {"error": f"Unknown tool: {name}", "error_category": "invalid_input"}

    async def close(self) -> None:
        if self.feeds:
            await self.feeds.close()

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream, write_stream, self.server.create_initialization_options()
            )


def create_server(
    config: AppConfig,
    secrets: SecretsConfig,
    store: StateStore | None = None,
    catalog: StaticCatalog | None = None,
) -> ZimEstimateMcpServer:
    """Create a new ZimEstimate MCP server instance."""
    return ZimEstimateMcpServer(config, secrets, store, catalog)
