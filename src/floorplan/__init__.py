"""Floor plan editing, geometry and rendering."""

from floorplan.manager import LayoutManager
from floorplan.render import render_floor_plan
from floorplan.session import EditorSession

__all__ = ["EditorSession", "LayoutManager", "render_floor_plan"]
