"""Discovery and system status handlers."""

from typing import Any

from config import AppConfig
from floorplan.manager import LayoutManager
from mcp_server.tools import TOOL_CATEGORIES, get_all_tools, search_tools
from persistence import StateStore


async def handle_discover_tools(args: dict[str, Any]) -> dict[str, Any]:
    """Handle the discover_tools tool.

    Returns organized information about all available tools.
    """
    category_filter = args.get("category")
    query = args.get("query")
    all_tools = get_all_tools()
    matching = set(search_tools(query)) if query else None

    # Build tool lookup by name
    tool_lookup = {tool.name: tool for tool in all_tools}

    result: dict[str, Any] = {
        "message": "Available construction estimation tools",
        "categories": [],
    }

    for cat_id, cat_info in TOOL_CATEGORIES.items():
        if category_filter and cat_id != category_filter:
            continue

        cat_tools = []
        for tool_name in cat_info["tools"]:
            tool = tool_lookup.get(tool_name)
            if not tool or (matching is not None and tool_name not in matching):
                continue

            schema = tool.inputSchema
            required = schema.get("required", [])
            properties = schema.get("properties", {})

            params = []
            for prop_name, prop_info in properties.items():
                param: dict[str, Any] = {
                    "name": prop_name,
                    "type": prop_info.get("type", "any"),
                    "description": prop_info.get("description", ""),
                    "required": prop_name in required,
                }
                if "enum" in prop_info:
                    param["options"] = prop_info["enum"]
                if "default" in prop_info:
                    param["default"] = prop_info["default"]
                params.append(param)

            cat_tools.append({
                "name": tool.name,
                "description": tool.description,
                "parameters": params,
            })

        if matching is not None and not cat_tools:
            continue
        result["categories"].append({
            "id": cat_id,
            "name": cat_info["name"],
            "description": cat_info["description"],
            "tools": cat_tools,
        })

    result["hints"] = {
        "getting_started": [
            "Use 'open_layout' with room_counts to lay out a house",
            "Use 'quick_estimate' for a brick count from floor area alone",
            "Use 'generate_boq' for a priced bill of quantities",
        ],
        "common_actions": [
            "Resize a room: 'resize_room' with scale_x and scale_y",
            "Add a door: 'set_wall' with feature='door'",
            "Save an estimate: 'create_project' then 'save_project_with_items' with generate",
            "Track a build: 'get_project_stages', then 'toggle_stage_task' and 'record_material_usage'",
        ],
    }

    return result


async def handle_get_system_status(
    args: dict[str, Any],
    config: AppConfig,
    layouts: LayoutManager,
    store: StateStore | None = None,
) -> dict[str, Any]:
    """Handle the get_system_status tool."""
    layout_status = layouts.get_status()

    if store is None:
        return {
            "status": "degraded",
            "status_text": "Database not initialized; projects, drafts and live prices are unavailable",
            "layouts": layout_status,
            "suggested_actions": ["Check storage.db_path in config.yaml and restart the server"],
        }

    stats = await store.get_stats()
    status: dict[str, Any] = {
        "status": "healthy",
        "status_text": (
            f"{stats.get('projects', 0)} projects, "
            f"{layout_status['open_layouts']} open layouts"
        ),
        "owner_id": config.owner_id,
        "tier": config.tier,
        "database": stats,
        "layouts": layout_status,
        "price_feeds": [feed.id for feed in config.pricing.feeds],
    }

    suggestions = []
    if not config.pricing.feeds:
        suggestions.append("No price feeds configured; prices come from the static catalog")
    if stats.get("pending_observations"):
        suggestions.append(
            f"{stats['pending_observations']} scraped prices await review "
            "(use 'review_price_observation')"
        )
    if suggestions:
        status["suggested_actions"] = suggestions

    return status
