"""Tests for MCP handlers and tool routing."""

import asyncio
import json

import pytest

from config import AppConfig, PriceFeedConfig, PricingConfig, SecretsConfig
from mcp_server.handlers.discovery import handle_discover_tools
from mcp_server.server import ZimEstimateMcpServer
from mcp_server.tools import TOOL_CATEGORIES, get_all_tools
from services.price_feeds import FeedImportResult


async def call(server: ZimEstimateMcpServer, name: str, /, **arguments) -> dict:
    """Call a tool and decode its JSON response."""
    content = await server.call_tool(name, arguments)
    return json.loads(content[0].text)


@pytest.fixture
def server(sample_config, sample_secrets, store) -> ZimEstimateMcpServer:
    return ZimEstimateMcpServer(sample_config, sample_secrets, store)


@pytest.fixture
def offline_server(sample_config, sample_secrets) -> ZimEstimateMcpServer:
    return ZimEstimateMcpServer(sample_config, sample_secrets)


class TestDiscoveryHandlers:
    """Tests for discovery handlers."""

    @pytest.mark.asyncio
    async def test_discover_tools_all(self):
        """Test discovering all tools."""
        result = await handle_discover_tools({})

        assert len(result["categories"]) == len(TOOL_CATEGORIES)
        assert "hints" in result

    @pytest.mark.asyncio
    async def test_discover_tools_by_category(self):
        """Test discovering tools by category."""
        result = await handle_discover_tools({"category": "prices"})

        assert len(result["categories"]) == 1
        assert result["categories"][0]["id"] == "prices"

    @pytest.mark.asyncio
    async def test_discover_tools_by_query(self):
        """Test a query keeps only categories with matches."""
        result = await handle_discover_tools({"query": "whatsapp"})

        assert [c["id"] for c in result["categories"]] == ["projects"]

    def test_every_categorised_tool_is_defined(self):
        """Test each category lists only defined tools."""
        defined = {tool.name for tool in get_all_tools()}
        for category in TOOL_CATEGORIES.values():
            assert set(category["tools"]) <= defined

    @pytest.mark.asyncio
    async def test_system_status_healthy(self, server):
        """Test system status with a store."""
        result = await call(server, "get_system_status")

        assert result["status"] == "healthy"
        assert result["owner_id"] == "owner-1"
        assert result["price_feeds"] == ["halsteds"]

    @pytest.mark.asyncio
    async def test_system_status_without_store(self, offline_server):
        """Test system status is degraded without a store."""
        result = await call(offline_server, "get_system_status")

        assert result["status"] == "degraded"
        assert "suggested_actions" in result


class TestToolRouting:
    """Tests for call_tool responses and errors."""

    @pytest.mark.asyncio
    async def test_success_has_request_id(self, server):
        """Test successful responses carry a request id."""
        result = await call(server, "quick_estimate", total_area=100, room_count=4)

        assert len(result["request_id"]) == 8
        assert result["bricks"] > 0

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        """Test an unknown tool is reported as invalid input."""
        result = await call(server, "launch_rocket")

        assert result["error"] == "Unknown tool: launch_rocket"
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_missing_layout(self, server):
        """Test editing a layout that was never opened."""
        result = await call(server, "get_layout", layout_id="nope")

        assert result["error_category"] == "not_found"
        assert result["entity_id"] == "nope"
        assert "recovery" in result

    @pytest.mark.asyncio
    async def test_missing_argument(self, server):
        """Test a missing required argument is invalid input."""
        result = await call(server, "estimate_room", width=4)
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_timeout(self, server, monkeypatch):
        """Test slow handlers are cut off."""
        async def slow(args):
            await asyncio.sleep(1)

        monkeypatch.setattr("mcp_server.server.TOOL_TIMEOUT", 0.01)
        monkeypatch.setattr(server.estimates, "quick_estimate", slow)

        result = await call(server, "quick_estimate", total_area=100, room_count=4)

        assert result["error_category"] == "timeout"


class TestFloorplanTools:
    """Tests for floor plan tools."""

    @pytest.mark.asyncio
    async def test_open_layout_from_counts(self, server):
        """Test a layout is seeded from room counts."""
        result = await call(server, "open_layout", room_counts={"bedrooms": 2, "kitchen": 1})

        assert result["restored_from_draft"] is False
        assert [r["type"] for r in result["layout"]["rooms"]] == ["bedrooms", "bedrooms", "kitchen"]

    @pytest.mark.asyncio
    async def test_edits_save_drafts(self, server, store):
        """Test edits autosave and a reopened layout restores them."""
        await call(server, "open_layout")
        added = await call(server, "add_room", type="kitchen")
        await call(server, "close_layout")

        reopened = await call(server, "open_layout")

        assert added["draft_saved"] is True
        assert reopened["restored_from_draft"] is True
        assert len(reopened["layout"]["rooms"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_room_type(self, server):
        """Test unknown room types are invalid input."""
        await call(server, "open_layout")
        result = await call(server, "add_room", type="ballroom")
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_undo_with_empty_history(self, server):
        """Test undo reports when there is nothing to undo."""
        await call(server, "open_layout")
        result = await call(server, "undo")
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_render(self, server):
        """Test the floor plan renders to SVG."""
        await call(server, "open_layout", room_counts={"bedrooms": 1})
        result = await call(server, "render_floor_plan")

        assert result["format"] == "svg"
        assert result["svg"].startswith("<svg")

    @pytest.mark.asyncio
    async def test_close_and_discard(self, server):
        """Test closing a layout can discard its draft."""
        await call(server, "open_layout")
        await call(server, "add_room", type="kitchen")

        closed = await call(server, "close_layout", discard_draft=True)
        reopened = await call(server, "open_layout")

        assert closed["draft_discarded"] is True
        assert reopened["restored_from_draft"] is False


class TestEstimateTools:
    """Tests for estimate tools."""

    @pytest.mark.asyncio
    async def test_estimate_room(self, server):
        """Test the configured wastage is applied by default."""
        result = await call(server, "estimate_room", width=4, length=3)

        assert result["units"] == 1962
        assert result["wastage_percent"] == 10.0

    @pytest.mark.asyncio
    async def test_estimate_empty_layout(self, server):
        """Test an empty layout cannot be estimated."""
        await call(server, "open_layout")
        result = await call(server, "estimate_layout")
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_generate_boq_from_layout(self, server):
        """Test a layout's rooms drive the generated walls."""
        await call(server, "open_layout", room_counts={"bedrooms": 2})
        result = await call(
            server, "generate_boq",
            floor_area=28, room_count=2, scope=["superstructure"], layout_id="default",
        )

        assert result["from_layout"] is True
        assert result["totals"]["item_count"] == len(result["items"])

    @pytest.mark.asyncio
    async def test_calculate_variance(self, server):
        """Test variance against an average."""
        result = await call(server, "calculate_variance", average_usd=10, actual_usd=12)

        assert result["variance_usd"] == 2
        assert result["variance_percent"] == 20.0
        assert result["above_average"] is True


class TestProjectTools:
    """Tests for project tools."""

    @pytest.mark.asyncio
    async def test_projects_need_store(self, offline_server):
        """Test project tools report a missing store."""
        result = await call(offline_server, "list_projects")
        assert result["error_category"] == "store_error"

    @pytest.mark.asyncio
    async def test_save_generated_items(self, server):
        """Test generated BOQ lines are saved to a project."""
        created = await call(server, "create_project", name="House")
        project_id = created["project"]["id"]

        saved = await call(
            server, "save_project_with_items",
            project_id=project_id,
            generate={"floor_area": 100, "room_count": 4, "scope": ["roofing"]},
        )
        fetched = await call(server, "get_project", project_id=project_id)

        assert saved["success"] is True
        assert saved["project"]["total_usd"] > 0
        assert fetched["item_count"] == saved["item_count"]

    @pytest.mark.asyncio
    async def test_save_needs_items(self, server):
        """Test saving needs items or a generator config."""
        created = await call(server, "create_project", name="House")
        result = await call(server, "save_project_with_items", project_id=created["project"]["id"])
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_missing_project(self, server):
        """Test a missing project is not found."""
        result = await call(server, "get_project", project_id="missing")

        assert result["error_category"] == "not_found"
        assert result["entity_id"] == "missing"

    @pytest.mark.asyncio
    async def test_reminder_link(self, server):
        """Test reminders come with a WhatsApp link."""
        created = await call(server, "create_project", name="House")
        result = await call(
            server, "create_reminder",
            project_id=created["project"]["id"],
            reminder_type="material",
            message="Buy cement",
            scheduled_date="2026-03-01",
            phone_number="+263 77 123 4567",
        )

        assert result["whatsapp_link"] == "https://wa.me/+263771234567?text=Buy%20cement"

    @pytest.mark.asyncio
    async def test_invalid_share_email(self, server):
        """Test an invalid email is invalid input."""
        created = await call(server, "create_project", name="House")
        result = await call(server, "share_project", project_id=created["project"]["id"], email="nobody")
        assert result["error_category"] == "invalid_input"


class TestStageTools:
    """Tests for stage and usage tools."""

    @pytest.mark.asyncio
    async def test_stage_checklist(self, server):
        """Test a new project's stages can be looked up and ticked off."""
        created = await call(server, "create_project", name="House")
        project_id = created["project"]["id"]

        stages = await call(server, "get_project_stages", project_id=project_id)
        roofing = await call(server, "get_stage", project_id=project_id, category="roofing")
        task_id = roofing["stage"]["tasks"][0]["id"]
        toggled = await call(server, "toggle_stage_task", task_id=task_id, is_completed=True)
        progress = await call(server, "get_stages_progress", project_id=project_id)

        assert stages["count"] == 5
        assert toggled["task"]["is_completed"] is True
        assert progress["stages"][2]["task_progress"] == {"completed": 1, "total": 3}

    @pytest.mark.asyncio
    async def test_usage_alert(self, server):
        """Test logging usage past the threshold returns a low-stock alert."""
        created = await call(server, "create_project", name="House")
        project_id = created["project"]["id"]
        await call(server, "update_project", project_id=project_id, updates={"usage_tracking_enabled": True})
        added = await call(server, "add_boq_items", project_id=project_id, items=[{
            "material_id": "cement-325", "material_name": "Cement", "category": "substructure",
            "quantity": 10, "unit": "bags", "unit_price_usd": 10.5,
        }])
        item_id = added["items"][0]["id"]

        result = await call(server, "record_material_usage", project_id=project_id, item_id=item_id, quantity_used=9)
        summary = await call(server, "get_usage_summary", project_id=project_id)

        assert result["low_stock_alert"] == "Cement is at 10% remaining (1.00 bags)."
        assert result["item"]["low_stock"] is True
        assert summary["low_stock_count"] == 1

    @pytest.mark.asyncio
    async def test_missing_stage(self, server):
        """Test an unknown stage is not found with its id."""
        result = await call(server, "calculate_stage_savings_plan", stage_id="missing")

        assert result["error_category"] == "not_found"
        assert result["entity_id"] == "missing"

    @pytest.mark.asyncio
    async def test_get_stage_needs_a_key(self, server):
        """Test get_stage without a stage id or category is invalid input."""
        result = await call(server, "get_stage", project_id="p1")
        assert result["error_category"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_stages_need_store(self, offline_server):
        """Test stage tools report the missing database."""
        result = await call(offline_server, "get_project_stages", project_id="p1")
        assert result["error_category"] == "store_error"


class TestPriceTools:
    """Tests for price tools."""

    @pytest.mark.asyncio
    async def test_material_price(self, offline_server):
        """Test catalog prices are served without a store."""
        result = await call(offline_server, "get_material_price", material_key="cement-325")

        assert result["price_usd"] == 10
        assert result["source"] == "static"
        assert result["material_name"] == "Standard Cement 32.5N"
        assert result["confidence_label"] == "Medium"

    @pytest.mark.asyncio
    async def test_unknown_material_price(self, server):
        """Test an unpriced material is not found."""
        result = await call(server, "get_material_price", material_key="unobtanium")
        assert result["error_category"] == "not_found"

    @pytest.mark.asyncio
    async def test_compare_prices(self, server):
        """Test the cheapest supplier and spread."""
        result = await call(server, "compare_prices", material_key="rebar-12")

        assert result["cheapest_supplier"] == "ZimSteel"
        assert result["spread_usd"] == 0.2

    @pytest.mark.asyncio
    async def test_batch_prices_report_missing(self, server):
        """Test unknown keys are listed as missing."""
        result = await call(server, "get_batch_prices", material_keys=["cement-325", "unobtanium"])

        assert list(result["prices"]) == ["cement-325"]
        assert result["missing"] == ["unobtanium"]

    @pytest.mark.asyncio
    async def test_search_materials(self, server):
        """Test searching the catalog."""
        result = await call(server, "search_materials", query="rebar")
        ids = {m["id"] for m in result["materials"]}
        assert {"rebar-10", "rebar-12"} <= ids

    @pytest.mark.asyncio
    async def test_review_observation(self, server):
        """Test review decisions are validated."""
        invalid = await call(server, "review_price_observation", observation_id=1, status="maybe")
        missing = await call(server, "review_price_observation", observation_id=999, status="confirmed")

        assert invalid["error_category"] == "invalid_input"
        assert missing["error_category"] == "not_found"

    @pytest.mark.asyncio
    async def test_import_without_feeds(self, store):
        """Test importing with no feeds configured."""
        server = ZimEstimateMcpServer(AppConfig(), SecretsConfig(), store)

        result = await call(server, "import_price_feed")

        assert result["success"] is False
        assert result["message"] == "No price feeds configured"

    @pytest.mark.asyncio
    async def test_import_budget_covers_every_feed(self, sample_config, sample_secrets, store, monkeypatch):
        """Test a slow feed fails on its own timeout, not the tool timeout."""
        config = sample_config.model_copy(deep=True)
        config.pricing = PricingConfig(feed_timeout=0.05, feeds=[
            PriceFeedConfig(id="slow", name="Slow", url="https://slow.example.com/feed.json"),
            *sample_config.pricing.feeds,
        ])
        server = ZimEstimateMcpServer(config, sample_secrets, store)

        async def import_feed(feed):
            if feed.id == "slow":
                await asyncio.sleep(1)
            return FeedImportResult(feed_id=feed.id)

        monkeypatch.setattr("mcp_server.server.TOOL_TIMEOUT", 0.02)
        monkeypatch.setattr(server.feeds, "import_feed", import_feed)

        result = await call(server, "import_price_feed")

        assert result["success"] is False
        assert "timed out" in result["feeds"][0]["error"]
        assert result["feeds"][1]["feed_id"] == "halsteds"
