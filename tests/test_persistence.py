"""Tests for persistence layer."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from models.price import PriceObservation, ReviewStatus, WeeklyPrice
from models.project import AccessLevel, ProjectScope, ProjectStatus, ReminderType
from persistence import StateStore
from utils.clock import utc_now
from utils.errors import PartialFailureError


def _item(name: str, quantity: float = 1, **kwargs) -> dict:
    return {
        "material_id": name,
        "material_name": name.title(),
        "category": "substructure",
        "quantity": quantity,
        "unit": "each",
        "unit_price_usd": 2.0,
        "unit_price_zwg": 60.0,
        **kwargs,
    }


def _observation(key: str, usd: float, scraped_at: datetime, **kwargs) -> PriceObservation:
    return PriceObservation(material_key=key, price_usd=usd, price_zwg=usd * 30, scraped_at=scraped_at, **kwargs)


class TestStateStore:
    """Tests for StateStore basics."""

    @pytest.mark.asyncio
    async def test_initialize(self, store):
        """Test store initialization."""
        assert store.is_initialized is True

    @pytest.mark.asyncio
    async def test_uninitialized_store(self, tmp_path):
        """Test reads return nothing and writes raise before initialize."""
        store = StateStore(tmp_path / "unused.db")

        assert await store.get_project("p1") is None
        assert await store.list_projects("owner-1") == []
        with pytest.raises(RuntimeError):
            await store.create_project("owner-1", "House")

    @pytest.mark.asyncio
    async def test_stats(self, store):
        """Test row counts for status reports."""
        await store.create_project("owner-1", "House")
        await store.record_price_observations([
            _observation("cement-325", 10, utc_now(), review_status=ReviewStatus.PENDING),
        ])

        stats = await store.get_stats()

        assert stats["projects"] == 1
        assert stats["price_observations"] == 1
        assert stats["pending_observations"] == 1


class TestProjects:
    """Tests for project storage."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        """Test a new project starts as a draft."""
        project = await store.create_project(
            "owner-1", "House", location="Harare", scope="roofing", selected_stages=["roofing"]
        )

        loaded = await store.get_project(project.id)

        assert loaded.name == "House"
        assert loaded.status == ProjectStatus.DRAFT
        assert loaded.scope == ProjectScope.ROOFING
        assert loaded.selected_stages == ["roofing"]
        assert loaded.created_at is not None

    @pytest.mark.asyncio
    async def test_list_filters_and_pages(self, store):
        """Test listing by owner and status with paging."""
        first = await store.create_project("owner-1", "First")
        await store.create_project("owner-1", "Second")
        await store.create_project("owner-2", "Other")
        await store.update_project(first.id, status=ProjectStatus.ARCHIVED)

        assert len(await store.list_projects("owner-1")) == 2
        archived = await store.list_projects("owner-1", status="archived")
        assert [p.id for p in archived] == [first.id]
        assert len(await store.list_projects("owner-1", limit=1)) == 1
        assert len(await store.list_projects("owner-1", offset=1)) == 1
        assert await store.count_open_projects("owner-1") == 1

    @pytest.mark.asyncio
    async def test_update_project(self, store):
        """Test updating fields and rejecting unknown ones."""
        project = await store.create_project("owner-1", "House")

        updated = await store.update_project(project.id, name="Cottage", usage_tracking_enabled=True)

        assert updated.name == "Cottage"
        assert updated.usage_tracking_enabled is True
        assert await store.update_project("missing", name="x") is None
        with pytest.raises(ValueError):
            await store.update_project(project.id, owner_id="someone-else")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, store):
        """Test deleting a project removes its items, reminders and shares."""
        project = await store.create_project("owner-1", "House")
        await store.add_boq_items(project.id, [_item("cement")])
        await store.create_reminder(project.id, "material", "Buy cement", "2026-03-01", "+263771234567")
        await store.add_share(project.id, "friend@example.com")

        assert await store.delete_project(project.id) is True

        assert await store.get_project(project.id) is None
        assert await store.get_boq_items(project.id) == []
        assert await store.get_reminders(project.id) == []
        assert await store.list_shares(project.id) == []
        assert await store.delete_project(project.id) is False

    @pytest.mark.asyncio
    async def test_duplicate_project(self, store):
        """Test a duplicate copies items and clears purchases."""
        project = await store.create_project("owner-1", "House")
        items = await store.add_boq_items(project.id, [_item("cement"), _item("sand")])
        await store.mark_items_purchased([items[0].id], "2026-02-01")
        await store.update_project(project.id, status="active")

        copy = await store.duplicate_project(project.id, "House (Copy)")
        copied_items = await store.get_boq_items(copy.id)

        assert copy.id != project.id
        assert copy.status == ProjectStatus.DRAFT
        assert [i.material_id for i in copied_items] == ["cement", "sand"]
        assert not any(i.is_purchased for i in copied_items)
        assert await store.duplicate_project("missing", "x") is None


class TestBOQItems:
    """Tests for BOQ item storage."""

    @pytest.mark.asyncio
    async def test_items_keep_sort_order(self, store):
        """Test items come back in sort order."""
        project = await store.create_project("owner-1", "House")
        await store.add_boq_items(project.id, [_item("b", sort_order=2), _item("a", sort_order=1)])

        items = await store.get_boq_items(project.id)

        assert [i.material_id for i in items] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unknown_item_field(self, store):
        """Test unknown item fields are rejected."""
        project = await store.create_project("owner-1", "House")
        with pytest.raises(ValueError):
            await store.add_boq_items(project.id, [_item("a", colour="red")])

    @pytest.mark.asyncio
    async def test_update_and_purchase(self, store):
        """Test updating an item and marking it purchased."""
        project = await store.create_project("owner-1", "House")
        item = (await store.add_boq_items(project.id, [_item("cement", quantity=10)]))[0]

        updated = await store.update_boq_item(item.id, quantity=12)
        count = await store.mark_items_purchased([item.id], "2026-02-01", actual_price_usd=2.5)
        purchased = await store.get_boq_item(item.id)

        assert updated.quantity == 12
        assert count == 1
        assert purchased.is_purchased is True
        assert purchased.actual_price_usd == 2.5
        assert await store.update_boq_item("missing", quantity=1) is None

    @pytest.mark.asyncio
    async def test_delete_items(self, store):
        """Test deleting selected and all items."""
        project = await store.create_project("owner-1", "House")
        items = await store.add_boq_items(project.id, [_item("a"), _item("b"), _item("c")])

        assert await store.delete_boq_items([items[0].id]) == 1
        assert await store.delete_boq_items([]) == 0
        assert await store.delete_project_items(project.id) == 2

    @pytest.mark.asyncio
    async def test_replace_items_is_atomic(self, store):
        """Test a bad item rolls back the project update and item swap."""
        project = await store.create_project("owner-1", "House")
        await store.add_boq_items(project.id, [_item("original")])

        with pytest.raises(PartialFailureError):
            await store.replace_project_items(
                project.id,
                {"total_usd": 99.0},
                [_item("new"), {"material_id": "broken"}],
            )

        assert (await store.get_project(project.id)).total_usd == 0
        assert [i.material_id for i in await store.get_boq_items(project.id)] == ["original"]

    @pytest.mark.asyncio
    async def test_add_items_is_atomic(self, store):
        """Test a bad item in a batch leaves no rows behind, even after later commits."""
        project = await store.create_project("owner-1", "House")

        with pytest.raises(PartialFailureError):
            await store.add_boq_items(project.id, [_item("cement"), {"material_id": "broken"}])
        await store.create_project("owner-1", "Cottage")

        assert await store.get_boq_items(project.id) == []

    @pytest.mark.asyncio
    async def test_failed_update_is_rolled_back(self, store):
        """Test a rejected update is not committed by the next write."""
        project = await store.create_project("owner-1", "House")
        item = (await store.add_boq_items(project.id, [_item("cement")]))[0]

        with pytest.raises(sqlite3.IntegrityError):
            await store.update_boq_item(item.id, quantity=5, material_name=None)
        await store.create_reminder(project.id, "material", "Buy cement", "2026-03-01", "+263771234567")

        saved = await store.get_boq_item(item.id)
        assert saved.quantity == 1
        assert saved.material_name == "Cement"

    @pytest.mark.asyncio
    async def test_replace_items_renumbers(self, store):
        """Test replaced items are numbered in list order."""
        project = await store.create_project("owner-1", "House")

        saved = await store.replace_project_items(
            project.id,
            {"total_usd": 4.0},
            [_item("b", sort_order=9), _item("a", sort_order=3)],
        )
        items = await store.get_boq_items(project.id)

        assert saved is True
        assert [(i.material_id, i.sort_order) for i in items] == [("b", 0), ("a", 1)]
        assert await store.replace_project_items("missing", {}, []) is False


class TestRemindersAndShares:
    """Tests for reminders and shares."""

    @pytest.mark.asyncio
    async def test_reminders_soonest_first(self, store):
        """Test reminders are listed by date."""
        await store.create_reminder("p1", ReminderType.DEADLINE, "Finish", "2026-05-01", "+263771")
        soon = await store.create_reminder("p1", "savings", "Save", "2026-03-01", "+263771")

        reminders = await store.get_reminders("p1")

        assert [r.id for r in reminders] == [soon.id, reminders[1].id]
        assert reminders[0].reminder_type == ReminderType.SAVINGS
        assert await store.delete_reminder(soon.id) is True

    @pytest.mark.asyncio
    async def test_share_upserts_by_email(self, store):
        """Test sharing twice with one email updates the access level."""
        await store.add_share("p1", " Friend@Example.com ")
        await store.add_share("p1", "friend@example.com", AccessLevel.EDIT)

        shares = await store.list_shares("p1")

        assert len(shares) == 1
        assert shares[0].access_level == AccessLevel.EDIT
        assert await store.remove_share("p1", "FRIEND@example.com") is True


class TestPrices:
    """Tests for price observation storage."""

    @pytest.mark.asyncio
    async def test_observation_filters(self, store):
        """Test trusted, time and order filters."""
        now = datetime(2026, 2, 10, 12, 0)
        await store.record_price_observations([
            _observation("cement-325", 11, now - timedelta(days=1)),
            _observation("cement-325", 9, now - timedelta(days=40)),
            _observation("cement-325", 8, now, review_status=ReviewStatus.PENDING),
            _observation("cement-325", 12, now, review_status=ReviewStatus.CONFIRMED),
        ])

        newest = await store.get_observations("cement-325")
        recent = await store.get_observations("cement-325", since=now - timedelta(days=30))
        cheapest = await store.get_observations("cement-325", order="cheapest", limit=1)
        everything = await store.get_observations("cement-325", trusted_only=False)

        assert [o.price_usd for o in newest] == [12, 11, 9]
        assert [o.price_usd for o in recent] == [12, 11]
        assert cheapest[0].price_usd == 9
        assert len(everything) == 4

    @pytest.mark.asyncio
    async def test_latest_observations(self, store):
        """Test the newest trusted observation per material."""
        now = datetime(2026, 2, 10)
        await store.record_price_observations([
            _observation("cement-325", 10, now - timedelta(days=2)),
            _observation("cement-325", 11, now),
            _observation("rebar-12", 8, now - timedelta(days=1)),
        ])

        latest = await store.get_latest_observations(["cement-325", "rebar-12", "dpc"])

        assert {k: o.price_usd for k, o in latest.items()} == {"cement-325": 11, "rebar-12": 8}
        assert await store.get_latest_observations([]) == {}

    @pytest.mark.asyncio
    async def test_review_status(self, store):
        """Test a confirmed observation becomes trusted."""
        await store.record_price_observations([
            _observation("dpc", 5, datetime(2026, 2, 10), review_status=ReviewStatus.PENDING),
        ])
        pending = (await store.get_observations("dpc", trusted_only=False))[0]

        assert await store.get_observations("dpc") == []
        assert await store.set_review_status(pending.id, "confirmed") is True
        assert len(await store.get_observations("dpc")) == 1
        assert await store.set_review_status(9999, ReviewStatus.REJECTED) is False

    @pytest.mark.asyncio
    async def test_weekly_upsert(self, store):
        """Test weekly aggregates are replaced per week and listed newest first."""
        await store.upsert_weekly_price(WeeklyPrice("cement-325", "2026-02-02", 10.0, sample_count=1))
        await store.upsert_weekly_price(WeeklyPrice("cement-325", "2026-02-09", 11.0, sample_count=1))
        await store.upsert_weekly_price(WeeklyPrice("cement-325", "2026-02-09", 12.0, sample_count=2))

        weeks = await store.get_weekly_prices("cement-325")

        assert [(w.week_start, w.avg_price_usd) for w in weeks] == [("2026-02-09", 12.0), ("2026-02-02", 10.0)]
        assert len(await store.get_weekly_prices("cement-325", limit=1)) == 1


class TestRoomLayouts:
    """Tests for floor plan drafts."""

    @pytest.mark.asyncio
    async def test_save_load_delete(self, store):
        """Test saving, loading and deleting a draft."""
        rooms = [{"id": "r1", "type": "kitchen", "width": 3.0, "length": 4.0}]
        await store.save_room_layout("house", rooms, 120.0)

        draft = await store.load_room_layout("house")

        assert draft["rooms"] == rooms
        assert draft["target_floor_area"] == 120.0
        assert isinstance(draft["updated_at"], datetime)
        assert await store.delete_room_layout("house") is True
        assert await store.load_room_layout("house") is None
