"""Floor plan editor handlers for ZimEstimate MCP."""

import logging
from typing import Any

from floorplan.manager import LayoutManager
from floorplan.render import render_floor_plan
from floorplan.session import EditorSession

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_ID = "default"
ROOM_UPDATE_FIELDS = ("label", "width", "length", "doors", "windows", "material_id")


class FloorplanHandlers:
    """Handlers for floor plan editing tools.

    Every edit is saved as a draft when a store is available, so an
    interrupted session can be restored with open_layout.
    """

    def __init__(self, layouts: LayoutManager):
        self.layouts = layouts

    def _session(self, args: dict[str, Any]) -> EditorSession:
        return self.layouts.get(args.get("layout_id") or DEFAULT_LAYOUT_ID)

    async def _changed(self, session: EditorSession) -> dict[str, Any]:
        """Autosave a draft and return the layout state."""
        saved = await self.layouts.save_draft(session.layout_id)
        return {"success": True, "draft_saved": saved, "layout": session.to_dict()}

    async def open_layout(self, args: dict[str, Any]) -> dict[str, Any]:
        layout_id = args.get("layout_id") or DEFAULT_LAYOUT_ID
        session, restored = await self.layouts.open(
            layout_id,
            target_floor_area=float(args.get("target_floor_area", 0.0)),
            room_counts=args.get("room_counts"),
        )
        return {
            "success": True,
            "restored_from_draft": restored,
            "layout": session.to_dict(),
        }

    async def get_layout(self, args: dict[str, Any]) -> dict[str, Any]:
        return self._session(args).to_dict()

    async def add_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.add_room(args["type"])
        return await self._changed(session)

    async def add_ensuite(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.add_ensuite(args["type"], args.get("room_id"))
        return await self._changed(session)

    async def remove_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.remove_room(args.get("room_id"))
        return await self._changed(session)

    async def update_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        changes = {k: args[k] for k in ROOM_UPDATE_FIELDS if k in args}
        if not changes:
            return {"error": "No room fields to update", "error_category": "invalid_input"}
        session.update_room(args["room_id"], **changes)
        return await self._changed(session)

    async def move_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.move_room(args["room_id"], float(args["x"]), float(args["y"]))
        return await self._changed(session)

    async def resize_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.resize_room(
            args["room_id"],
            float(args.get("scale_x", 1.0)),
            float(args.get("scale_y", 1.0)),
            x=args.get("x"),
            y=args.get("y"),
        )
        return await self._changed(session)

    async def rotate_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.rotate_room(args.get("room_id"))
        return await self._changed(session)

    async def set_wall(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.set_wall(args["room_id"], args["side"], args["feature"])
        return await self._changed(session)

    async def toggle_wall(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.toggle_wall(args["room_id"], args["side"])
        return await self._changed(session)

    async def copy_room(self, args: dict[str, Any]) -> dict[str, Any]:
        room = self._session(args).copy_room(args.get("room_id"))
        return {"success": True, "copied_room_id": room.id}

    async def paste_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.paste_room()
        return await self._changed(session)

    async def duplicate_room(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        session.duplicate_room(args.get("room_id"))
        return await self._changed(session)

    async def undo(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        if not session.can_undo:
            return {"success": False, "message": "Nothing to undo", "layout": session.to_dict()}
        session.undo()
        return await self._changed(session)

    async def redo(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        if not session.can_redo:
            return {"success": False, "message": "Nothing to redo", "layout": session.to_dict()}
        session.redo()
        return await self._changed(session)

    async def auto_adjust_layout(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        target = args.get("target_floor_area")
        session.auto_adjust(float(target) if target is not None else None)
        return await self._changed(session)

    async def get_alignment_guides(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        return {"room_id": args["room_id"], **session.guides_for(args["room_id"]).to_dict()}

    async def render_floor_plan(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        config = self.layouts.config
        svg = render_floor_plan(
            session.rooms,
            pixels_per_meter=config.pixels_per_meter,
            grid_size=config.grid_snap_size,
            selected_room_id=session.selected_room_id,
            collision_margin=config.collision_margin,
        )
        return {"layout_id": session.layout_id, "format": "svg", "svg": svg}

    async def save_layout_draft(self, args: dict[str, Any]) -> dict[str, Any]:
        session = self._session(args)
        saved = await self.layouts.save_draft(session.layout_id)
        if not saved:
            reason = "layout has no rooms" if not session.rooms else "database not initialized"
            return {"success": False, "message": f"Draft not saved: {reason}"}
        return {"success": True, "layout_id": session.layout_id, "room_count": len(session.rooms)}

    async def close_layout(self, args: dict[str, Any]) -> dict[str, Any]:
        layout_id = args.get("layout_id") or DEFAULT_LAYOUT_ID
        closed = self.layouts.close(layout_id)
        discarded = False
        if args.get("discard_draft"):
            discarded = await self.layouts.clear_draft(layout_id)
        logger.info(f"Closed layout {layout_id} (draft discarded={discarded})")
        return {"success": closed, "layout_id": layout_id, "draft_discarded": discarded}
