"""Project, BOQ item, reminder and share handlers for ZimEstimate MCP."""

import logging
from typing import Any

from catalog import StaticCatalog
from estimation import generate_boq_from_basics
from floorplan.manager import LayoutManager
from mcp_server.handlers.estimates import builder_config_from_args
from mcp_server.handlers.results import service_error
from services.projects import ProjectService, whatsapp_reminder_link

logger = logging.getLogger(__name__)


class ProjectHandlers:
    """Handlers for project tools."""

    def __init__(self, service: ProjectService, layouts: LayoutManager, catalog: StaticCatalog):
        self.service = service
        self.layouts = layouts
        self.catalog = catalog

    # Projects

    async def create_project(self, args: dict[str, Any]) -> dict[str, Any]:
        result = await self.service.create_project(
            name=args["name"],
            location=args.get("location"),
            description=args.get("description"),
            scope=args.get("scope", "entire_house"),
            labor_preference=args.get("labor_preference", "materials_only"),
            selected_stages=args.get("selected_stages"),
            target_date=args.get("target_date"),
        )
        if not result.ok:
            return service_error(result)
        logger.info(f"Created project {result.data.id}")
        return {"success": True, "project": result.data.to_dict()}

    async def list_projects(self, args: dict[str, Any]) -> dict[str, Any]:
        result = await self.service.list_projects(
            status=args.get("status"),
            limit=args.get("limit"),
            offset=int(args.get("offset", 0)),
        )
        if not result.ok:
            return service_error(result)
        return {
            "count": len(result.data),
            "projects": [p.to_summary_dict() for p in result.data],
        }

    async def get_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_project_with_items(project_id)
        if not result.ok:
            return service_error(result, project_id)
        items = result.data["items"]
        return {
            "project": result.data["project"].to_dict(),
            "item_count": len(items),
            "items": [i.to_dict() for i in items],
        }

    async def update_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.update_project(project_id, **args["updates"])
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project": result.data.to_dict()}

    async def delete_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.delete_project(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project_id": project_id}

    async def archive_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.archive_project(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project": result.data.to_summary_dict()}

    async def unarchive_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.unarchive_project(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project": result.data.to_summary_dict()}

    async def duplicate_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.duplicate_project(project_id, args.get("new_name"))
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project": result.data.to_dict()}

    # BOQ items

    async def add_boq_items(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.add_boq_items(project_id, args["items"])
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "items": [i.to_dict() for i in result.data]}

    async def update_boq_item(self, args: dict[str, Any]) -> dict[str, Any]:
        item_id = args["item_id"]
        result = await self.service.update_boq_item(item_id, **args["updates"])
        if not result.ok:
            return service_error(result, item_id)
        return {"success": True, "item": result.data.to_dict()}

    async def delete_boq_item(self, args: dict[str, Any]) -> dict[str, Any]:
        item_id = args["item_id"]
        result = await self.service.delete_boq_item(item_id)
        if not result.ok:
            return service_error(result, item_id)
        return {"success": True, "item_id": item_id}

    async def save_project_with_items(self, args: dict[str, Any]) -> dict[str, Any]:
        """Replace a project's items with the given or generated lines."""
        project_id = args["project_id"]
        updates = dict(args.get("updates") or {})

        if args.get("generate"):
            builder_config = builder_config_from_args(args["generate"], self.layouts)
            items = [i.to_item_dict() for i in generate_boq_from_basics(builder_config, self.catalog)]
        elif "items" in args:
            items = args["items"]
        else:
            return {"error": "Provide items or generate", "error_category": "invalid_input"}

        result = await self.service.save_project_with_items(project_id, updates, items)
        if not result.ok:
            return service_error(result, project_id)
        return {
            "success": True,
            "project": result.data["project"].to_dict(),
            "item_count": len(result.data["items"]),
        }

    # Purchases

    async def update_item_purchase(self, args: dict[str, Any]) -> dict[str, Any]:
        item_id = args["item_id"]
        result = await self.service.update_item_purchase(
            item_id,
            is_purchased=args.get("is_purchased"),
            actual_quantity=args.get("actual_quantity"),
            actual_price_usd=args.get("actual_price_usd"),
        )
        if not result.ok:
            return service_error(result, item_id)
        return {"success": True, "item": result.data.to_dict()}

    async def mark_items_purchased(self, args: dict[str, Any]) -> dict[str, Any]:
        result = await self.service.mark_items_purchased(
            args["item_ids"],
            actual_quantity=args.get("actual_quantity"),
            actual_price_usd=args.get("actual_price_usd"),
        )
        if not result.ok:
            return service_error(result)
        return {"success": True, "updated": result.data}

    async def get_purchase_stats(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_project_purchase_stats(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"project_id": project_id, **result.data.to_dict()}

    # Reminders

    async def create_reminder(self, args: dict[str, Any]) -> dict[str, Any]:
        result = await self.service.create_reminder(
            project_id=args["project_id"],
            reminder_type=args["reminder_type"],
            message=args["message"],
            scheduled_date=args["scheduled_date"],
            phone_number=args["phone_number"],
            item_id=args.get("item_id"),
        )
        if not result.ok:
            return service_error(result, args["project_id"])
        reminder = result.data
        return {
            "success": True,
            "reminder": reminder.to_dict(),
            "whatsapp_link": whatsapp_reminder_link(reminder.phone_number, reminder.message),
        }

    async def list_reminders(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_reminders(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {
            "project_id": project_id,
            "reminders": [
                r.to_dict() | {"whatsapp_link": whatsapp_reminder_link(r.phone_number, r.message)}
                for r in result.data
            ],
        }

    async def delete_reminder(self, args: dict[str, Any]) -> dict[str, Any]:
        reminder_id = args["reminder_id"]
        result = await self.service.delete_reminder(reminder_id)
        if not result.ok:
            return service_error(result, reminder_id)
        return {"success": True, "reminder_id": reminder_id}

    # Shares

    async def share_project(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.share_project(
            project_id, args["email"], args.get("access_level", "view")
        )
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "share": result.data.to_dict()}

    async def list_shares(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.list_shares(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"project_id": project_id, "shares": [s.to_dict() for s in result.data]}

    async def remove_share(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.remove_share(project_id, args["email"])
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "project_id": project_id, "email": args["email"]}
