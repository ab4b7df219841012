"""Tests for layout sessions and drafts."""

from datetime import timedelta

import pytest

from floorplan.manager import LayoutManager
from utils.clock import utc_now
from utils.errors import LayoutNotFoundError


class TestLayoutManager:
    """Tests for LayoutManager."""

    @pytest.mark.asyncio
    async def test_open_seeds_from_counts(self):
        """Test a new layout is seeded from room counts."""
        manager = LayoutManager()
        session, restored = await manager.open("house", 120.0, {"bedrooms": 2})

        assert restored is False
        assert len(session.rooms) == 2
        assert manager.get("house") is session
        assert manager.layout_ids == ["house"]

    def test_get_unknown_layout(self):
        """Test an unopened layout raises."""
        with pytest.raises(LayoutNotFoundError):
            LayoutManager().get("missing")

    @pytest.mark.asyncio
    async def test_save_draft_without_store(self):
        """Test drafts are not saved without a store."""
        manager = LayoutManager()
        await manager.open("house", 0.0, {"kitchen": 1})
        assert await manager.save_draft("house") is False

    @pytest.mark.asyncio
    async def test_draft_is_restored(self, store):
        """Test a fresh draft for the same floor area is restored."""
        manager = LayoutManager(store)
        session, _ = await manager.open("house", 120.0, {"bedrooms": 1})
        session.move_room(session.rooms[0].id, 6.0, 2.0)
        assert await manager.save_draft("house") is True

        reopened, restored = await LayoutManager(store).open("house", 120.0, {"kitchen": 3})

        assert restored is True
        assert [(r.x, r.y) for r in reopened.rooms] == [(6.0, 2.0)]
        assert reopened.selected_room_id == reopened.rooms[0].id

    @pytest.mark.asyncio
    async def test_stale_draft_is_ignored(self, store):
        """Test drafts older than a day are not restored."""
        manager = LayoutManager(store)
        await manager.open("house", 120.0, {"bedrooms": 1})
        await manager.save_draft("house")

        later = LayoutManager(store, clock=lambda: utc_now() + timedelta(hours=25))
        session, restored = await later.open("house", 120.0, {"kitchen": 2})

        assert restored is False
        assert [r.type for r in session.rooms] == ["kitchen", "kitchen"]

    @pytest.mark.asyncio
    async def test_draft_for_other_area_is_ignored(self, store):
        """Test drafts saved for a different target area are not restored."""
        manager = LayoutManager(store)
        await manager.open("house", 120.0, {"bedrooms": 1})
        await manager.save_draft("house")

        _, restored = await LayoutManager(store).open("house", 90.0)
        assert restored is False

    @pytest.mark.asyncio
    async def test_empty_layout_is_not_saved(self, store):
        """Test an empty layout does not overwrite a draft."""
        manager = LayoutManager(store)
        await manager.open("house")
        assert await manager.save_draft("house") is False
        assert await store.load_room_layout("house") is None

    @pytest.mark.asyncio
    async def test_clear_draft_and_close(self, store):
        """Test clearing a draft and closing a session."""
        manager = LayoutManager(store)
        await manager.open("house", 0.0, {"bedrooms": 1})
        await manager.save_draft("house")

        assert await manager.clear_draft("house") is True
        assert manager.close("house") is True
        assert manager.close("house") is False
        assert manager.get_status() == {"open_layouts": 0, "layouts": []}
