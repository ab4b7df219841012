"""MCP tool definitions for ZimEstimate.

Tools are organized by category: discovery, floorplan, estimates, projects, stages, prices.
Each category carries tags so clients can search tools without loading every
definition.
"""

from mcp.types import Tool

from models.room import ENSUITE_TYPES, ROOM_TYPES, WALL_SIDES, WallFeature

# Tool category metadata for tool search
TOOL_CATEGORIES = {
    "discovery": {
        "name": "Discovery & Help",
        "description": "Tools for discovering available capabilities and checking system status",
        "tags": ["help", "discover", "status", "system"],
        "tools": ["discover_tools", "get_system_status"],
    },
    "floorplan": {
        "name": "Floor Plan Editor",
        "description": "Tools for laying out rooms, walls, doors and windows on a floor plan",
        "tags": ["floorplan", "layout", "rooms", "walls", "doors", "windows", "ensuite", "undo", "svg"],
        "tools": ["open_layout", "get_layout", "add_room", "add_ensuite", "remove_room",
                  "update_room", "move_room", "resize_room", "rotate_room", "set_wall",
                  "toggle_wall", "copy_room", "paste_room", "duplicate_room", "undo", "redo",
                  "auto_adjust_layout", "get_alignment_guides", "render_floor_plan",
                  "save_layout_draft", "close_layout"],
    },
    "estimates": {
        "name": "Material Estimates",
        "description": "Tools for estimating bricks, cement, sand, a full bill of quantities and budgets",
        "tags": ["estimate", "bricks", "cement", "sand", "wastage", "boq", "budget", "savings", "variance"],
        "tools": ["estimate_room", "estimate_layout", "quick_estimate", "generate_boq",
                  "estimate_stage_reach", "plan_savings", "calculate_variance"],
    },
    "projects": {
        "name": "Projects & Purchases",
        "description": "Tools for saving projects, their BOQ items, purchases, reminders and shares",
        "tags": ["project", "boq", "items", "purchase", "reminder", "whatsapp", "share", "archive"],
        "tools": ["create_project", "list_projects", "get_project", "update_project",
                  "delete_project", "archive_project", "unarchive_project", "duplicate_project",
                  "add_boq_items", "update_boq_item", "delete_boq_item", "save_project_with_items",
                  "update_item_purchase", "mark_items_purchased", "get_purchase_stats",
                  "create_reminder", "list_reminders", "delete_reminder",
                  "share_project", "list_shares", "remove_share"],
    },
    "stages": {
        "name": "Build Stages & Site Usage",
        "description": "Tools for stage checklists, stage budgets and savings, and materials used on site",
        "tags": ["stage", "stages", "task", "checklist", "progress", "usage", "stock", "low-stock", "site"],
        "tools": ["get_project_stages", "get_stage", "get_active_stage", "update_stage",
                  "set_stage_applicability", "create_stage_task", "update_stage_task",
                  "toggle_stage_task", "delete_stage_task", "get_stage_budget_stats",
                  "get_stages_progress", "calculate_stage_savings_plan",
                  "record_material_usage", "get_usage_summary", "get_usage_history"],
    },
    "prices": {
        "name": "Material Prices",
        "description": "Tools for live material prices, trends, supplier comparisons and price feeds",
        "tags": ["price", "prices", "supplier", "trend", "market", "materials", "feed", "zwg", "usd"],
        "tools": ["get_material_price", "get_price_trend", "get_price_aggregation",
                  "compare_prices", "get_batch_prices", "search_materials",
                  "import_price_feed", "review_price_observation"],
    },
}

LAYOUT_ID = {
    "type": "string",
    "description": "Layout identifier (defaults to 'default')",
    "default": "default",
}

ROOM_ID = {
    "type": "string",
    "description": "Room identifier (e.g., 'bedrooms-1a2b3c4d')",
}

PROJECT_ID = {
    "type": "string",
    "description": "Project identifier",
}

STAGE_ID = {
    "type": "string",
    "description": "Stage identifier",
}

TASK_ID = {
    "type": "string",
    "description": "Stage task identifier",
}

STAGE_CATEGORY = {
    "type": "string",
    "enum": ["substructure", "superstructure", "roofing", "finishing", "exterior"],
}

MATERIAL_KEY = {
    "type": "string",
    "description": "Catalog material id (e.g., 'cement-325', 'brick-common')",
}

WASTAGE = {
    "type": "number",
    "description": "Wastage allowance percent (usually 5, 10 or 15)",
    "minimum": 0,
    "default": 10,
}

BOQ_ITEM = {
    "type": "object",
    "properties": {
        "material_id": {"type": "string"},
        "material_name": {"type": "string"},
        "category": {"type": "string"},
        "quantity": {"type": "number", "minimum": 0},
        "unit": {"type": "string"},
        "unit_price_usd": {"type": "number", "minimum": 0},
        "unit_price_zwg": {"type": "number", "minimum": 0},
        "notes": {"type": "string"},
    },
    "required": ["material_id", "material_name", "quantity", "unit"],
}


def _add_examples(schema: dict, examples: list[dict]) -> dict:
    """Add input examples to a tool schema."""
    schema["examples"] = examples
    return schema


def get_discovery_tools() -> list[Tool]:
    """Get discovery and help tool definitions."""
    return [
        Tool(
            name="discover_tools",
            description=(
                "List all available estimation tools organized by category. "
                "Use this first to understand what actions are possible. "
                "Returns tool names, descriptions, and parameters for each category."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "enum": list(TOOL_CATEGORIES.keys()),
                        "description": "Filter to a specific category (optional)",
                    },
                    "query": {
                        "type": "string",
                        "description": "Keyword to search tool names, descriptions and tags (optional)",
                    },
                },
            },
        ),
        Tool(
            name="get_system_status",
            description=(
                "Get overall system status: database record counts, open floor plan "
                "layouts and configured price feeds."
            ),
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
    ]


def get_floorplan_tools() -> list[Tool]:
    """Get floor plan editor tool definitions."""
    return [
        Tool(
            name="open_layout",
            description=(
                "Open a floor plan layout for editing. Restores a saved draft younger than "
                "24 hours for the same target floor area, otherwise lays out default rooms "
                "from room_counts."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "layout_id": LAYOUT_ID,
                        "target_floor_area": {
                            "type": "number",
                            "description": "Target total floor area in m²",
                            "minimum": 0,
                        },
                        "room_counts": {
                            "type": "object",
                            "description": f"Rooms per type. Types: {', '.join(ROOM_TYPES)}",
                            "additionalProperties": {"type": "integer", "minimum": 0},
                        },
                    },
                },
                [
                    {"layout_id": "house-a", "target_floor_area": 120,
                     "room_counts": {"bedrooms": 3, "kitchen": 1, "livingRoom": 1, "bathrooms": 1}},
                    {"layout_id": "house-a"},
                ],
            ),
        ),
        Tool(
            name="get_layout",
            description="Get all rooms of a layout with collisions, running totals and undo state.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="add_room",
            description="Add a room of a base type in the next free grid cell and select it.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "layout_id": LAYOUT_ID,
                        "type": {"type": "string", "enum": list(ROOM_TYPES), "description": "Room type"},
                    },
                    "required": ["type"],
                },
                [{"type": "bedrooms"}, {"layout_id": "house-a", "type": "garage2"}],
            ),
        ),
        Tool(
            name="add_ensuite",
            description=(
                "Attach an en-suite toilet, bathroom or walk-in closet to a parent room. "
                "Uses the selected room when room_id is omitted."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "type": {"type": "string", "enum": list(ENSUITE_TYPES), "description": "En-suite type"},
                    "room_id": {**ROOM_ID, "description": "Parent room (defaults to the selected room)"},
                },
                "required": ["type"],
            },
        ),
        Tool(
            name="remove_room",
            description="Remove a room and any en-suites attached to it.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "room_id": ROOM_ID},
            },
        ),
        Tool(
            name="update_room",
            description=(
                "Change room fields such as label, width, length, doors, windows or material_id. "
                "Dimensions must stay positive."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "layout_id": LAYOUT_ID,
                        "room_id": ROOM_ID,
                        "label": {"type": "string"},
                        "width": {"type": "number", "exclusiveMinimum": 0},
                        "length": {"type": "number", "exclusiveMinimum": 0},
                        "doors": {"type": "integer", "minimum": 0},
                        "windows": {"type": "integer", "minimum": 0},
                        "material_id": {
                            "type": "string",
                            "enum": ["brick-common", "block-6inch", "brick-face-red", "farm-brick"],
                        },
                    },
                    "required": ["room_id"],
                },
                [{"room_id": "bedrooms-1a2b3c4d", "label": "Main Bedroom", "width": 4.0, "windows": 2}],
            ),
        ),
        Tool(
            name="move_room",
            description="Move a room to a position in meters. Negative values clamp to 0 and the result snaps to the grid.",
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "room_id": ROOM_ID,
                    "x": {"type": "number"},
                    "y": {"type": "number"},
                },
                "required": ["room_id", "x", "y"],
            },
        ),
        Tool(
            name="resize_room",
            description=(
                "Scale a room's width and length, optionally moving it in the same step. "
                "Dimensions never drop below 0.5 m."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "layout_id": LAYOUT_ID,
                        "room_id": ROOM_ID,
                        "scale_x": {"type": "number", "default": 1.0},
                        "scale_y": {"type": "number", "default": 1.0},
                        "x": {"type": "number"},
                        "y": {"type": "number"},
                    },
                    "required": ["room_id"],
                },
                [{"room_id": "kitchen-0f9e8d7c", "scale_x": 1.25, "scale_y": 1.0}],
            ),
        ),
        Tool(
            name="rotate_room",
            description="Rotate a room 90 degrees clockwise, swapping its width and length.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "room_id": ROOM_ID},
            },
        ),
        Tool(
            name="set_wall",
            description="Set the feature of one wall side: solid, opening, door or window.",
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "room_id": ROOM_ID,
                    "side": {"type": "string", "enum": list(WALL_SIDES)},
                    "feature": {"type": "string", "enum": [f.value for f in WallFeature]},
                },
                "required": ["room_id", "side", "feature"],
            },
        ),
        Tool(
            name="toggle_wall",
            description="Cycle one wall side through solid, opening, door and window.",
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "room_id": ROOM_ID,
                    "side": {"type": "string", "enum": list(WALL_SIDES)},
                },
                "required": ["room_id", "side"],
            },
        ),
        Tool(
            name="copy_room",
            description="Copy a room to the layout clipboard.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "room_id": ROOM_ID},
            },
        ),
        Tool(
            name="paste_room",
            description="Paste the clipboard room offset by 1 m, as a standalone room.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="duplicate_room",
            description="Duplicate a room offset by 1 m and select the copy.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "room_id": ROOM_ID},
            },
        ),
        Tool(
            name="undo",
            description="Undo the last layout change.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="redo",
            description="Redo the last undone layout change.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="auto_adjust_layout",
            description="Scale every room uniformly so the total floor area approaches the target.",
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "target_floor_area": {
                        "type": "number",
                        "exclusiveMinimum": 0,
                        "description": "Target area in m² (defaults to the layout's target)",
                    },
                },
            },
        ),
        Tool(
            name="get_alignment_guides",
            description="Get the guide lines a room's edges align with while it is being dragged.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "room_id": ROOM_ID},
                "required": ["room_id"],
            },
        ),
        Tool(
            name="render_floor_plan",
            description="Render the layout as an SVG document with walls, doors, windows and labels.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="save_layout_draft",
            description="Save the layout as a draft so it can be restored later.",
            inputSchema={"type": "object", "properties": {"layout_id": LAYOUT_ID}},
        ),
        Tool(
            name="close_layout",
            description="Close an open layout. Optionally discard its saved draft.",
            inputSchema={
                "type": "object",
                "properties": {
                    "layout_id": LAYOUT_ID,
                    "discard_draft": {"type": "boolean", "default": False},
                },
            },
        ),
    ]


def get_estimate_tools() -> list[Tool]:
    """Get material estimate tool definitions."""
    return [
        Tool(
            name="estimate_room",
            description=(
                "Estimate bricks, cement and sand for a single rectangular room. "
                "Door and window openings are subtracted from the wall area."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "width": {"type": "number", "exclusiveMinimum": 0},
                        "length": {"type": "number", "exclusiveMinimum": 0},
                        "doors": {"type": "integer", "minimum": 0, "default": 1},
                        "windows": {"type": "integer", "minimum": 0, "default": 1},
                        "material_id": {"type": "string", "default": "brick-common"},
                        "wastage_percent": WASTAGE,
                    },
                    "required": ["width", "length"],
                },
                [{"width": 4, "length": 5, "doors": 1, "windows": 2, "wastage_percent": 10}],
            ),
        ),
        Tool(
            name="estimate_layout",
            description="Estimate walling materials for every room in a layout, grouped by material.",
            inputSchema={
                "type": "object",
                "properties": {"layout_id": LAYOUT_ID, "wastage_percent": WASTAGE},
            },
        ),
        Tool(
            name="quick_estimate",
            description="Estimate bricks, cement and sand from total floor area and room count alone.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "total_area": {"type": "number", "exclusiveMinimum": 0},
                        "room_count": {"type": "integer", "minimum": 1},
                        "windows": {"type": "integer", "minimum": 0, "default": 0},
                        "doors": {"type": "integer", "minimum": 0, "default": 0},
                        "wastage_percent": WASTAGE,
                    },
                    "required": ["total_area", "room_count"],
                },
                [{"total_area": 120, "room_count": 6, "windows": 8, "doors": 6}],
            ),
        ),
        Tool(
            name="generate_boq",
            description=(
                "Generate a priced bill of quantities for the selected build stages. "
                "Uses the rooms of a layout when layout_id is given."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "floor_area": {"type": "number", "exclusiveMinimum": 0},
                        "room_count": {"type": "integer", "minimum": 1},
                        "wall_height": {"type": "number", "default": 2.7},
                        "brick_type": {
                            "type": "string",
                            "enum": ["common", "farm", "semi_common", "blocks_6inch", "blocks_8inch", "face_brick"],
                            "default": "common",
                        },
                        "cement_type": {"type": "string", "enum": ["cement_325", "cement_425"], "default": "cement_325"},
                        "scope": {
                            "type": "array",
                            "items": {
                                "type": "string",
                                "enum": ["full_house", "substructure", "superstructure", "roofing", "finishing", "exterior"],
                            },
                            "default": ["full_house"],
                        },
                        "include_labor": {"type": "boolean", "default": False},
                        "layout_id": {"type": "string", "description": "Use rooms from this open layout (optional)"},
                    },
                    "required": ["floor_area", "room_count"],
                },
                [
                    {"floor_area": 120, "room_count": 6},
                    {"floor_area": 90, "room_count": 4, "scope": ["substructure"], "include_labor": True},
                ],
            ),
        ),
        Tool(
            name="estimate_stage_reach",
            description="Work out which build stage a budget reaches for a house of a given size.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "budget_usd": {"type": "number", "minimum": 0},
                        "floor_area_m2": {"type": "number", "exclusiveMinimum": 0},
                        "room_count": {"type": "integer", "minimum": 1},
                        "wall_height_m": {"type": "number", "exclusiveMinimum": 0},
                        "brick_type": {"type": "string", "default": "common"},
                        "cement_type": {"type": "string", "default": "cement_325"},
                    },
                    "required": ["budget_usd", "floor_area_m2"],
                },
                [{"budget_usd": 15000, "floor_area_m2": 120}],
            ),
        ),
        Tool(
            name="plan_savings",
            description="Savings needed per day, week and month to fund the remaining budget by a target date.",
            inputSchema={
                "type": "object",
                "properties": {
                    "total_budget_usd": {"type": "number", "minimum": 0},
                    "amount_spent_usd": {"type": "number", "minimum": 0, "default": 0},
                    "target_date": {"type": "string", "description": "ISO date (YYYY-MM-DD)"},
                    "mode": {"type": "string", "enum": ["all", "critical", "custom"], "default": "all"},
                    "critical_items_usd": {"type": "number", "minimum": 0},
                    "custom_amount_usd": {"type": "number", "minimum": 0},
                },
                "required": ["total_budget_usd"],
            },
        ),
        Tool(
            name="calculate_variance",
            description="Compare an actual price with the market average in USD and percent.",
            inputSchema={
                "type": "object",
                "properties": {
                    "average_usd": {"type": "number", "minimum": 0},
                    "actual_usd": {"type": "number", "minimum": 0},
                },
                "required": ["average_usd", "actual_usd"],
            },
        ),
    ]


def get_project_tools() -> list[Tool]:
    """Get project tool definitions."""
    return [
        Tool(
            name="create_project",
            description="Create a project. Free accounts may keep 3 projects that are not archived.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "location": {"type": "string"},
                        "description": {"type": "string"},
                        "scope": {
                            "type": "string",
                            "enum": ["entire_house", "substructure", "superstructure", "roofing", "finishing", "exterior"],
                            "default": "entire_house",
                        },
                        "labor_preference": {
                            "type": "string",
                            "enum": ["materials_only", "materials_labor"],
                            "default": "materials_only",
                        },
                        "target_date": {"type": "string", "description": "ISO date (YYYY-MM-DD)"},
                    },
                    "required": ["name"],
                },
                [{"name": "Borrowdale House", "location": "Harare", "scope": "entire_house"}],
            ),
        ),
        Tool(
            name="list_projects",
            description="List projects, most recently updated first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {"type": "string", "enum": ["draft", "active", "completed", "archived"]},
                    "limit": {"type": "integer", "minimum": 1},
                    "offset": {"type": "integer", "minimum": 0, "default": 0},
                },
            },
        ),
        Tool(
            name="get_project",
            description="Get a project with its BOQ items.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="update_project",
            description="Update project fields such as name, location, status or target_date.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": PROJECT_ID,
                    "updates": {"type": "object", "description": "Fields to change"},
                },
                "required": ["project_id", "updates"],
            },
        ),
        Tool(
            name="delete_project",
            description="Delete a project with everything attached to it: items, stages, usage, reminders and shares.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="archive_project",
            description="Archive a project. Archived projects do not count against the project limit.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="unarchive_project",
            description="Move an archived project back to draft.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="duplicate_project",
            description="Copy a project and its items. The copy is named '<name> (Copy)' unless a name is given.",
            inputSchema={
                "type": "object",
                "properties": {"project_id": PROJECT_ID, "new_name": {"type": "string"}},
                "required": ["project_id"],
            },
        ),
        Tool(
            name="add_boq_items",
            description="Append BOQ items to a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": PROJECT_ID,
                    "items": {"type": "array", "items": BOQ_ITEM},
                },
                "required": ["project_id", "items"],
            },
        ),
        Tool(
            name="update_boq_item",
            description="Update fields of one BOQ item.",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_id": {"type": "string"},
                    "updates": {"type": "object", "description": "Fields to change"},
                },
                "required": ["item_id", "updates"],
            },
        ),
        Tool(
            name="delete_boq_item",
            description="Delete one BOQ item.",
            inputSchema={"type": "object", "properties": {"item_id": {"type": "string"}}, "required": ["item_id"]},
        ),
        Tool(
            name="save_project_with_items",
            description=(
                "Update a project and replace all of its BOQ items in one step. "
                "When generate is set, items come from a generated BOQ instead."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": PROJECT_ID,
                    "updates": {"type": "object", "description": "Project fields to change"},
                    "items": {"type": "array", "items": BOQ_ITEM},
                    "generate": {
                        "type": "object",
                        "description": "generate_boq arguments used to build the items",
                    },
                },
                "required": ["project_id"],
            },
        ),
        Tool(
            name="update_item_purchase",
            description="Record a purchase against one BOQ item with the actual quantity and price paid.",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_id": {"type": "string"},
                    "is_purchased": {"type": "boolean"},
                    "actual_quantity": {"type": "number", "minimum": 0},
                    "actual_price_usd": {"type": "number", "minimum": 0},
                },
                "required": ["item_id"],
            },
        ),
        Tool(
            name="mark_items_purchased",
            description="Mark several BOQ items as purchased today.",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_ids": {"type": "array", "items": {"type": "string"}},
                    "actual_quantity": {"type": "number", "minimum": 0},
                    "actual_price_usd": {"type": "number", "minimum": 0},
                },
                "required": ["item_ids"],
            },
        ),
        Tool(
            name="get_purchase_stats",
            description="Compare a project's estimated total with what has actually been spent.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="create_reminder",
            description="Schedule a WhatsApp reminder for a material purchase, savings goal or deadline.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "project_id": PROJECT_ID,
                        "reminder_type": {"type": "string", "enum": ["material", "savings", "deadline"]},
                        "message": {"type": "string"},
                        "scheduled_date": {"type": "string", "description": "ISO date or datetime"},
                        "phone_number": {"type": "string"},
                        "item_id": {"type": "string"},
                    },
                    "required": ["project_id", "reminder_type", "message", "scheduled_date", "phone_number"],
                },
                [{"project_id": "a1b2c3d4e5f6", "reminder_type": "material", "message": "Buy cement",
                  "scheduled_date": "2026-03-01", "phone_number": "+263 77 123 4567"}],
            ),
        ),
        Tool(
            name="list_reminders",
            description="List a project's reminders with WhatsApp links, soonest first.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="delete_reminder",
            description="Delete a reminder.",
            inputSchema={
                "type": "object",
                "properties": {"reminder_id": {"type": "string"}},
                "required": ["reminder_id"],
            },
        ),
        Tool(
            name="share_project",
            description="Share a project with someone by email with view or edit access.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": PROJECT_ID,
                    "email": {"type": "string"},
                    "access_level": {"type": "string", "enum": ["view", "edit"], "default": "view"},
                },
                "required": ["project_id", "email"],
            },
        ),
        Tool(
            name="list_shares",
            description="List who a project is shared with.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="remove_share",
            description="Stop sharing a project with an email address.",
            inputSchema={
                "type": "object",
                "properties": {"project_id": PROJECT_ID, "email": {"type": "string"}},
                "required": ["project_id", "email"],
            },
        ),
    ]


def get_stage_tools() -> list[Tool]:
    """Get stage and usage tool definitions."""
    return [
        Tool(
            name="get_project_stages",
            description="List a project's build stages in order, each with its checklist tasks.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="get_stage",
            description="Get one stage by stage_id, or by project_id and BOQ category.",
            inputSchema={
                "type": "object",
                "properties": {"stage_id": STAGE_ID, "project_id": PROJECT_ID, "category": STAGE_CATEGORY},
            },
        ),
        Tool(
            name="get_active_stage",
            description="Get the stage in progress, or the first stage that applies to the project.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="update_stage",
            description="Update a stage's status, dates, name, description or is_applicable.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "stage_id": STAGE_ID,
                        "updates": {"type": "object", "description": "Fields to change"},
                    },
                    "required": ["stage_id", "updates"],
                },
                [{"stage_id": "a1b2c3d4e5f6", "updates": {"status": "in_progress", "end_date": "2026-06-30"}}],
            ),
        ),
        Tool(
            name="set_stage_applicability",
            description="Choose which stages a project includes. An empty list changes nothing.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": PROJECT_ID,
                    "stages": {"type": "array", "items": STAGE_CATEGORY},
                },
                "required": ["project_id", "stages"],
            },
        ),
        Tool(
            name="create_stage_task",
            description="Add a task to the end of a stage's checklist.",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_id": STAGE_ID,
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "assigned_to": {"type": "string"},
                },
                "required": ["stage_id", "title"],
            },
        ),
        Tool(
            name="update_stage_task",
            description="Update a task's title, description, assignee or verification note.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": TASK_ID,
                    "updates": {"type": "object", "description": "Fields to change"},
                },
                "required": ["task_id", "updates"],
            },
        ),
        Tool(
            name="toggle_stage_task",
            description="Mark a task done or not done.",
            inputSchema={
                "type": "object",
                "properties": {"task_id": TASK_ID, "is_completed": {"type": "boolean"}},
                "required": ["task_id", "is_completed"],
            },
        ),
        Tool(
            name="delete_stage_task",
            description="Delete a task from a stage's checklist.",
            inputSchema={"type": "object", "properties": {"task_id": TASK_ID}, "required": ["task_id"]},
        ),
        Tool(
            name="get_stage_budget_stats",
            description="Compare a stage's planned cost with what its purchased items cost.",
            inputSchema={
                "type": "object",
                "properties": {"project_id": PROJECT_ID, "category": STAGE_CATEGORY},
                "required": ["project_id", "category"],
            },
        ),
        Tool(
            name="get_stages_progress",
            description="Task completion and spend for every stage of a project.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
        Tool(
            name="calculate_stage_savings_plan",
            description="Weekly and monthly amounts to save to fund a stage's remaining purchases by its end date.",
            inputSchema={"type": "object", "properties": {"stage_id": STAGE_ID}, "required": ["stage_id"]},
        ),
        Tool(
            name="record_material_usage",
            description=(
                "Log a quantity of a BOQ item used on site. When usage tracking is on, "
                "the response warns once the item falls to the low-stock threshold."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "project_id": PROJECT_ID,
                        "item_id": {"type": "string"},
                        "quantity_used": {"type": "number", "exclusiveMinimum": 0},
                        "usage_date": {"type": "string", "description": "ISO date, defaults to today"},
                        "notes": {"type": "string"},
                    },
                    "required": ["project_id", "item_id", "quantity_used"],
                },
                [{"project_id": "a1b2c3d4e5f6", "item_id": "b2c3d4e5f6a7", "quantity_used": 5}],
            ),
        ),
        Tool(
            name="get_usage_summary",
            description="Used and remaining quantities per BOQ item with low-stock flags, optionally for one stage.",
            inputSchema={
                "type": "object",
                "properties": {"project_id": PROJECT_ID, "category": STAGE_CATEGORY},
                "required": ["project_id"],
            },
        ),
        Tool(
            name="get_usage_history",
            description="List a project's material usage records, most recent first.",
            inputSchema={"type": "object", "properties": {"project_id": PROJECT_ID}, "required": ["project_id"]},
        ),
    ]


def get_price_tools() -> list[Tool]:
    """Get price tool definitions."""
    return [
        Tool(
            name="get_material_price",
            description=(
                "Get the current price of a material in USD and ZWG. Uses the newest "
                "scraped price from the last 30 days, otherwise the catalog price."
            ),
            inputSchema=_add_examples(
                {"type": "object", "properties": {"material_key": MATERIAL_KEY}, "required": ["material_key"]},
                [{"material_key": "cement-325"}],
            ),
        ),
        Tool(
            name="get_price_trend",
            description="Get a material's price with its week-over-week trend and weekly history.",
            inputSchema={"type": "object", "properties": {"material_key": MATERIAL_KEY}, "required": ["material_key"]},
        ),
        Tool(
            name="get_price_aggregation",
            description="Get the lowest, highest and average recent price of a material.",
            inputSchema={"type": "object", "properties": {"material_key": MATERIAL_KEY}, "required": ["material_key"]},
        ),
        Tool(
            name="compare_prices",
            description="Compare supplier prices for a material, cheapest first.",
            inputSchema={"type": "object", "properties": {"material_key": MATERIAL_KEY}, "required": ["material_key"]},
        ),
        Tool(
            name="get_batch_prices",
            description="Get current prices for several materials at once.",
            inputSchema={
                "type": "object",
                "properties": {"material_keys": {"type": "array", "items": {"type": "string"}}},
                "required": ["material_keys"],
            },
        ),
        Tool(
            name="search_materials",
            description="Search the material catalog by name, category or specification.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string"},
                        "category": {"type": "string"},
                        "milestone": {"type": "string", "description": "Build stage (e.g., 'substructure')"},
                    },
                },
                [{"query": "cement"}, {"milestone": "roofing"}],
            ),
        ),
        Tool(
            name="import_price_feed",
            description=(
                "Fetch configured price feeds and record their prices. Loosely matched "
                "entries are held for review."
            ),
            inputSchema={
                "type": "object",
                "properties": {"feed_id": {"type": "string", "description": "Import only this feed (optional)"}},
            },
        ),
        Tool(
            name="review_price_observation",
            description="Confirm or reject a scraped price observation that is pending review.",
            inputSchema={
                "type": "object",
                "properties": {
                    "observation_id": {"type": "integer"},
                    "status": {"type": "string", "enum": ["confirmed", "rejected"]},
                },
                "required": ["observation_id", "status"],
            },
        ),
    ]


def get_all_tools() -> list[Tool]:
    """Get all tool definitions."""
    return (
        get_discovery_tools()
        + get_floorplan_tools()
        + get_estimate_tools()
        + get_project_tools()
        + get_stage_tools()
        + get_price_tools()
    )


def get_tool_metadata() -> dict:
    """Get category information and tags for tool search."""
    return {
        "categories": TOOL_CATEGORIES,
        "tool_count": len(get_all_tools()),
        "tags": sorted(
            set(
                tag
                for cat in TOOL_CATEGORIES.values()
                for tag in cat.get("tags", [])
            )
        ),
    }


def search_tools(query: str) -> list[str]:
    """Search for tools by keyword.

    Args:
        query: Search term (matched against tool names, descriptions, and category tags)

    Returns:
        List of matching tool names
    """
    query_lower = query.lower()
    matches = []

    # Search by category tags first
    for cat_info in TOOL_CATEGORIES.values():
        tags = cat_info.get("tags", [])
        if any(query_lower in tag.lower() for tag in tags):
            matches.extend(t for t in cat_info["tools"] if t not in matches)

    # Also search tool names and descriptions
    for tool in get_all_tools():
        if query_lower in tool.name.lower() or query_lower in tool.description.lower():
            if tool.name not in matches:
                matches.append(tool.name)

    return matches
