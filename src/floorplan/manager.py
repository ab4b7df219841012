"""Named editor sessions with drafts kept in the state store."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from config import EditorConfig, EstimatorConfig
from floorplan.session import EditorSession
from models.room import RoomInstance
from persistence import StateStore
from utils.clock import utc_now
from utils.errors import LayoutNotFoundError

logger = logging.getLogger(__name__)


class LayoutManager:
    """Owns one EditorSession per layout id.

    A stored draft is restored only while it is younger than the configured
    age and was saved for the same target floor area.
    """

    def __init__(
        self,
        store: StateStore | None = None,
        config: EditorConfig | None = None,
        estimator: EstimatorConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.config = config or EditorConfig()
        self.estimator = estimator or EstimatorConfig()
        self._clock = clock
        self._sessions: dict[str, EditorSession] = {}

    @property
    def layout_ids(self) -> list[str]:
        return list(self._sessions)

    def get(self, layout_id: str) -> EditorSession:
        session = self._sessions.get(layout_id)
        if session is None:
            raise LayoutNotFoundError(layout_id)
        return session

    def _new_session(
        self,
        layout_id: str,
        target_floor_area: float,
        rooms: list[RoomInstance] | None = None,
    ) -> EditorSession:
        return EditorSession(
            layout_id=layout_id,
            config=self.config,
            estimator=self.estimator,
            target_floor_area=target_floor_area,
            rooms=rooms,
        )

    async def open(
        self,
        layout_id: str,
        target_floor_area: float = 0.0,
        room_counts: dict[str, int] | None = None,
    ) -> tuple[EditorSession, bool]:
        """Open a layout, restoring a fresh matching draft when there is one.

        Returns the session and whether it came from a draft. Without a draft
        the session is seeded from room_counts.
        """
        draft = await self._load_fresh_draft(layout_id, target_floor_area)
        if draft:
            session = self._new_session(layout_id, target_floor_area, draft)
            session.select(draft[0].id)
            self._sessions[layout_id] = session
            logger.info(f"Restored layout {layout_id} with {len(draft)} rooms from draft")
            return session, True

        session = self._new_session(layout_id, target_floor_area)
        if room_counts:
            session.init_from_counts(room_counts)
        self._sessions[layout_id] = session
        logger.info(f"Opened layout {layout_id} with {len(session.rooms)} rooms")
        return session, False

    async def _load_fresh_draft(self, layout_id: str, target_floor_area: float) -> list[RoomInstance] | None:
        if not self.store:
            return None

        data = await self.store.load_room_layout(layout_id)
        if not data or not data["rooms"]:
            return None

        age = self._clock() - data["updated_at"]
        if age >= timedelta(hours=self.config.draft_max_age_hours):
            logger.debug(f"Draft for {layout_id} is stale ({age})")
            return None
        if data["target_floor_area"] != target_floor_area:
            logger.debug(f"Draft for {layout_id} was saved for a different floor area")
            return None

        return [RoomInstance.from_dict(room) for room in data["rooms"]]

    async def save_draft(self, layout_id: str) -> bool:
        """Persist a layout's rooms. Empty layouts are not saved."""
        session = self.get(layout_id)
        if not self.store or not session.rooms:
            return False
        await self.store.save_room_layout(
            layout_id,
            [room.to_dict() for room in session.rooms],
            session.target_floor_area,
        )
        return True

    async def clear_draft(self, layout_id: str) -> bool:
        if not self.store:
            return False
        return await self.store.delete_room_layout(layout_id)

    def close(self, layout_id: str) -> bool:
        return self._sessions.pop(layout_id, None) is not None

    def get_status(self) -> dict[str, Any]:
        return {
            "open_layouts": len(self._sessions),
            "layouts": [s.to_summary_dict() for s in self._sessions.values()],
        }
