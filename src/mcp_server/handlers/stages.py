"""Stage, stage task and material usage handlers for ZimEstimate MCP."""

import logging
from typing import Any

from mcp_server.handlers.results import service_error
from services.stages import StageService

logger = logging.getLogger(__name__)


class StageHandlers:
    """Handlers for stage tools."""

    def __init__(self, service: StageService):
        self.service = service

    # Stages

    async def get_project_stages(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_project_stages(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {
            "count": len(result.data),
            "stages": [s.to_dict() for s in result.data],
        }

    async def get_stage(self, args: dict[str, Any]) -> dict[str, Any]:
        """Look a stage up by id, or by project and BOQ category."""
        if args.get("stage_id"):
            entity_id = args["stage_id"]
            result = await self.service.get_stage(entity_id)
        elif args.get("project_id") and args.get("category"):
            entity_id = args["project_id"]
            result = await self.service.get_stage_by_category(entity_id, args["category"])
        else:
            raise ValueError("Give stage_id, or project_id with category")
        if not result.ok:
            return service_error(result, entity_id)
        return {"stage": result.data.to_dict()}

    async def get_active_stage(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_active_stage(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"stage": result.data.to_dict() if result.data else None}

    async def update_stage(self, args: dict[str, Any]) -> dict[str, Any]:
        stage_id = args["stage_id"]
        result = await self.service.update_stage(stage_id, **args["updates"])
        if not result.ok:
            return service_error(result, stage_id)
        return {"success": True, "stage": result.data.to_dict()}

    async def set_stage_applicability(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.set_stage_applicability(project_id, args["stages"])
        if not result.ok:
            return service_error(result, project_id)
        return {"success": True, "applicable_stages": result.data}

    # Tasks

    async def create_stage_task(self, args: dict[str, Any]) -> dict[str, Any]:
        stage_id = args["stage_id"]
        result = await self.service.create_stage_task(
            stage_id,
            args["title"],
            description=args.get("description"),
            assigned_to=args.get("assigned_to"),
        )
        if not result.ok:
            return service_error(result, stage_id)
        return {"success": True, "task": result.data.to_dict()}

    async def update_stage_task(self, args: dict[str, Any]) -> dict[str, Any]:
        task_id = args["task_id"]
        result = await self.service.update_stage_task(task_id, **args["updates"])
        if not result.ok:
            return service_error(result, task_id)
        return {"success": True, "task": result.data.to_dict()}

    async def toggle_stage_task(self, args: dict[str, Any]) -> dict[str, Any]:
        task_id = args["task_id"]
        result = await self.service.toggle_stage_task(task_id, bool(args["is_completed"]))
        if not result.ok:
            return service_error(result, task_id)
        return {"success": True, "task": result.data.to_dict()}

    async def delete_stage_task(self, args: dict[str, Any]) -> dict[str, Any]:
        task_id = args["task_id"]
        result = await self.service.delete_stage_task(task_id)
        if not result.ok:
            return service_error(result, task_id)
        return {"success": True, "task_id": task_id}

    # Budgets

    async def get_stage_budget_stats(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        category = args["category"]
        result = await self.service.get_stage_budget_stats(project_id, category)
        if not result.ok:
            return service_error(result, project_id)
        return {"project_id": project_id, "category": category, **result.data.to_dict()}

    async def get_stages_progress(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_all_stages_progress(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"project_id": project_id, "stages": [p.to_dict() for p in result.data]}

    async def calculate_stage_savings_plan(self, args: dict[str, Any]) -> dict[str, Any]:
        stage_id = args["stage_id"]
        result = await self.service.calculate_stage_savings_plan(stage_id)
        if not result.ok:
            return service_error(result, stage_id)
        return {"stage_id": stage_id, **result.data.to_dict()}

    # Material usage

    async def record_material_usage(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.record_material_usage(
            project_id,
            args["item_id"],
            float(args["quantity_used"]),
            usage_date=args.get("usage_date"),
            notes=args.get("notes"),
        )
        if not result.ok:
            return service_error(result, args["item_id"])
        response = {
            "success": True,
            "usage": result.data["usage"].to_dict(),
            "item": result.data["item"].to_dict(result.data["threshold"]),
        }
        if result.data["low_stock_alert"]:
            response["low_stock_alert"] = result.data["low_stock_alert"]
        return response

    async def get_usage_summary(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_usage_summary(project_id, args.get("category"))
        if not result.ok:
            return service_error(result, project_id)
        return {"project_id": project_id, **result.data.to_dict()}

    async def get_usage_history(self, args: dict[str, Any]) -> dict[str, Any]:
        project_id = args["project_id"]
        result = await self.service.get_usage_history(project_id)
        if not result.ok:
            return service_error(result, project_id)
        return {"count": len(result.data), "usage": [u.to_dict() for u in result.data]}
