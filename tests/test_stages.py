"""Tests for build stages, stage tasks and material usage."""

from datetime import datetime

import pytest

from models.stage import StageBudgetStats, StageStatus
from services.projects import ProjectService
from services.stages import StageService, savings_plan
from utils.errors import ErrorCategory

NOW = datetime(2026, 2, 1, 9, 30)


def _item(name: str, category: str = "substructure", quantity: float = 10, usd: float = 10.0) -> dict:
    return {
        "material_id": name,
        "material_name": name.title(),
        "category": category,
        "quantity": quantity,
        "unit": "bags",
        "unit_price_usd": usd,
        "unit_price_zwg": usd * 30,
    }


@pytest.fixture
def projects(store, sample_config) -> ProjectService:
    return ProjectService(store, sample_config, clock=lambda: NOW)


@pytest.fixture
def service(store) -> StageService:
    return StageService(store, clock=lambda: NOW)


@pytest.fixture
async def project(projects):
    return (await projects.create_project("House")).data


async def _stage(service, project_id: str, category: str):
    return (await service.get_stage_by_category(project_id, category)).data


class TestDefaultStages:
    """Tests for the stages a project starts with."""

    @pytest.mark.asyncio
    async def test_new_project_gets_stages(self, service, project):
        """Test every project starts with the five stages and their checklists."""
        stages = (await service.get_project_stages(project.id)).data

        assert [s.boq_category for s in stages] == [
            "substructure", "superstructure", "roofing", "finishing", "exterior",
        ]
        assert [len(s.tasks) for s in stages] == [4, 3, 3, 3, 3]
        assert all(s.is_applicable and s.status == StageStatus.PLANNING for s in stages)
        first = stages[0].tasks
        assert first[0].title == "Ensure inspector approves building plan"
        assert [t.sort_order for t in first] == [0, 1, 2, 3]
        assert all(t.is_default and not t.is_completed for t in first)

    @pytest.mark.asyncio
    async def test_scope_limits_stages(self, service, projects):
        """Test a single-stage project only applies its own stage."""
        project = (await projects.create_project("Roof", scope="roofing")).data

        stages = (await service.get_project_stages(project.id)).data

        assert [s.boq_category for s in stages if s.is_applicable] == ["roofing"]

    @pytest.mark.asyncio
    async def test_selected_stages_win_over_scope(self, service, projects):
        """Test an explicit stage selection decides which stages apply."""
        project = (await projects.create_project("Shell", selected_stages=["superstructure", "roofing"])).data

        stages = (await service.get_project_stages(project.id)).data

        assert [s.boq_category for s in stages if s.is_applicable] == ["superstructure", "roofing"]

    @pytest.mark.asyncio
    async def test_duplicate_gets_own_stages(self, service, projects, project):
        """Test a copied project has a fresh set of stages."""
        copy = (await projects.duplicate_project(project.id)).data

        original = (await service.get_project_stages(project.id)).data
        copied = (await service.get_project_stages(copy.id)).data

        assert len(copied) == 5
        assert {s.id for s in original}.isdisjoint(s.id for s in copied)

    @pytest.mark.asyncio
    async def test_delete_project_removes_stages_and_usage(self, store, service, projects, project):
        """Test deleting a project leaves no stages, tasks or usage behind."""
        item = (await store.add_boq_items(project.id, [_item("cement")]))[0]
        await service.record_material_usage(project.id, item.id, 2)

        await projects.delete_project(project.id)
        stats = await store.get_stats()

        assert stats["project_stages"] == 0
        assert stats["stage_tasks"] == 0
        assert stats["material_usage"] == 0


class TestStages:
    """Tests for reading and changing stages."""

    @pytest.mark.asyncio
    async def test_update_stage(self, service, project):
        """Test status and dates can be changed and bad values are refused."""
        stage = await _stage(service, project.id, "roofing")

        updated = await service.update_stage(stage.id, status="in_progress", end_date="2026-06-30")

        assert updated.data.status == StageStatus.IN_PROGRESS
        assert updated.data.end_date == "2026-06-30"
        assert len(updated.data.tasks) == 3
        with pytest.raises(ValueError):
            await service.update_stage(stage.id, status="paused")
        with pytest.raises(ValueError):
            await service.update_stage(stage.id, colour="red")
        assert (await service.update_stage("missing", name="x")).category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_active_stage(self, service, project):
        """Test the stage in progress is active, else the first applicable one."""
        assert (await service.get_active_stage(project.id)).data.boq_category == "substructure"

        roofing = await _stage(service, project.id, "roofing")
        await service.update_stage(roofing.id, status="in_progress")

        assert (await service.get_active_stage(project.id)).data.id == roofing.id

    @pytest.mark.asyncio
    async def test_active_stage_skips_stages_not_applied(self, service, project):
        """Test a stage in progress that no longer applies is not active."""
        roofing = await _stage(service, project.id, "roofing")
        await service.update_stage(roofing.id, status="in_progress", is_applicable=False)

        assert (await service.get_active_stage(project.id)).data.boq_category == "substructure"

    @pytest.mark.asyncio
    async def test_set_stage_applicability(self, store, service, project):
        """Test exactly the chosen stages apply and the selection is saved."""
        result = await service.set_stage_applicability(project.id, ["roofing", "exterior"])

        stages = (await service.get_project_stages(project.id)).data
        assert result.data == 2
        assert [s.boq_category for s in stages if s.is_applicable] == ["roofing", "exterior"]
        assert (await store.get_project(project.id)).selected_stages == ["roofing", "exterior"]

    @pytest.mark.asyncio
    async def test_empty_selection_changes_nothing(self, service, project):
        """Test an empty stage list leaves every stage as it was."""
        assert (await service.set_stage_applicability(project.id, [])).data == 0

        stages = (await service.get_project_stages(project.id)).data
        assert all(s.is_applicable for s in stages)

    @pytest.mark.asyncio
    async def test_selection_needs_known_stages_and_project(self, service, project):
        """Test unknown stages are refused and a missing project is not found."""
        with pytest.raises(ValueError):
            await service.set_stage_applicability(project.id, ["plumbing"])

        result = await service.set_stage_applicability("missing", ["roofing"])
        assert result.category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_stage_by_category_missing(self, service, project):
        """Test looking up a stage of an unknown project is not found."""
        result = await service.get_stage_by_category("missing", "roofing")
        assert result.category == ErrorCategory.NOT_FOUND


class TestTasks:
    """Tests for stage checklists."""

    @pytest.mark.asyncio
    async def test_create_task_appends(self, service, project):
        """Test a new task goes after the existing ones."""
        stage = await _stage(service, project.id, "substructure")

        task = (await service.create_stage_task(stage.id, "  Order river sand ", assigned_to="Tendai")).data

        assert task.title == "Order river sand"
        assert task.sort_order == 4
        assert task.is_default is False
        tasks = (await service.get_stage(stage.id)).data.tasks
        assert tasks[-1].id == task.id

    @pytest.mark.asyncio
    async def test_create_task_validation(self, service, project):
        """Test a title is required and the stage must exist."""
        stage = await _stage(service, project.id, "roofing")
        with pytest.raises(ValueError):
            await service.create_stage_task(stage.id, "  ")

        result = await service.create_stage_task("missing", "Buy nails")
        assert result.category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_toggle_task(self, service, project):
        """Test completing a task stamps the time and undoing clears it."""
        task = (await _stage(service, project.id, "roofing")).tasks[0]

        done = await service.toggle_stage_task(task.id, True)
        undone = await service.toggle_stage_task(task.id, False)

        assert done.data.is_completed is True
        assert done.data.completed_at == "2026-02-01T09:30:00"
        assert undone.data.is_completed is False
        assert undone.data.completed_at is None

    @pytest.mark.asyncio
    async def test_update_and_delete_task(self, service, project):
        """Test editing a task and deleting it twice."""
        task = (await _stage(service, project.id, "roofing")).tasks[0]

        updated = await service.update_stage_task(task.id, verification_note="Checked by inspector")

        assert updated.data.verification_note == "Checked by inspector"
        with pytest.raises(ValueError):
            await service.update_stage_task(task.id, stage_id="other")
        assert (await service.delete_stage_task(task.id)).data is True
        assert (await service.delete_stage_task(task.id)).category == ErrorCategory.NOT_FOUND


class TestStageBudgets:
    """Tests for stage budgets, progress and savings plans."""

    @pytest.fixture
    async def items(self, store, project):
        items = await store.add_boq_items(project.id, [
            _item("cement", quantity=10, usd=10.0),
            _item("sand", quantity=2, usd=45.0),
            _item("ibr-sheet", category="roofing", quantity=20, usd=12.0),
        ])
        await store.mark_items_purchased([items[1].id], "2026-02-01", actual_price_usd=50.0)
        return items

    @pytest.mark.asyncio
    async def test_budget_stats(self, service, project, items):
        """Test planned cost counts all items and spend only purchased ones."""
        stats = (await service.get_stage_budget_stats(project.id, "substructure")).data

        assert stats.total_budget == 190.0
        assert stats.total_spent == 100.0
        assert stats.remaining == 90.0
        assert (stats.item_count, stats.purchased_count) == (2, 1)
        assert stats.usage_percent == pytest.approx(52.63, abs=0.01)

    @pytest.mark.asyncio
    async def test_empty_stage_budget(self, service, project):
        """Test a stage without items has nothing spent and no usage."""
        stats = (await service.get_stage_budget_stats(project.id, "exterior")).data
        assert stats.to_dict()["usage_percent"] == 0.0

    @pytest.mark.asyncio
    async def test_all_stages_progress(self, service, project, items):
        """Test progress pairs task completion with spend per stage."""
        task = (await _stage(service, project.id, "substructure")).tasks[0]
        await service.toggle_stage_task(task.id, True)

        progress = (await service.get_all_stages_progress(project.id)).data

        assert len(progress) == 5
        first = progress[0].to_dict()
        assert first["task_progress"] == {"completed": 1, "total": 4}
        assert first["budget_progress"] == {"spent": 100.0, "total": 190.0}
        assert progress[2].budget == 240.0
        assert progress[2].spent == 0.0

    @pytest.mark.asyncio
    async def test_savings_plan(self, service, project, items):
        """Test the remaining cost is spread over the weeks to the end date."""
        stage = await _stage(service, project.id, "substructure")
        await service.update_stage(stage.id, end_date="2026-03-01")

        plan = (await service.calculate_stage_savings_plan(stage.id)).data

        assert plan.target_date == "2026-03-01"
        assert plan.total_remaining == 90.0
        assert plan.weeks_remaining == 4
        assert plan.weekly_target == 22.5
        assert plan.monthly_target == 90.0

    @pytest.mark.asyncio
    async def test_savings_plan_without_end_date(self, service, project, items):
        """Test a stage with no end date has no targets."""
        stage = await _stage(service, project.id, "substructure")

        plan = (await service.calculate_stage_savings_plan(stage.id)).data

        assert plan.target_date is None
        assert plan.total_remaining == 90.0
        assert (plan.weeks_remaining, plan.weekly_target, plan.monthly_target) == (0, 0.0, 0.0)

    def test_overdue_savings_plan(self):
        """Test an end date in the past asks for everything within a week."""
        plan = savings_plan(StageBudgetStats(total_budget=300.0), "2026-01-01", NOW)

        assert plan.weeks_remaining == 1
        assert plan.weekly_target == 300.0
        assert plan.monthly_target == 300.0

    @pytest.mark.asyncio
    async def test_savings_plan_missing_stage(self, service):
        """Test a plan for an unknown stage is not found."""
        result = await service.calculate_stage_savings_plan("missing")
        assert result.category == ErrorCategory.NOT_FOUND


class TestMaterialUsage:
    """Tests for logging materials used on site."""

    @pytest.fixture
    async def cement(self, store, project):
        return (await store.add_boq_items(project.id, [_item("cement", quantity=10)]))[0]

    @pytest.mark.asyncio
    async def test_record_usage(self, service, project, cement):
        """Test usage is logged for today and reduces what is left."""
        result = await service.record_material_usage(project.id, cement.id, 3, notes="Footings")

        assert result.data["usage"].usage_date == "2026-02-01"
        assert result.data["item"].remaining == 7.0
        assert result.data["low_stock_alert"] is None
        summary = (await service.get_usage_summary(project.id)).data
        assert summary.total_used == 3.0
        assert summary.overall_percent == pytest.approx(30.0)
        assert len((await service.get_usage_history(project.id)).data) == 1

    @pytest.mark.asyncio
    async def test_actual_quantity_is_what_is_available(self, store, service, project, cement):
        """Test a purchased quantity replaces the planned one."""
        await store.update_boq_item(cement.id, actual_quantity=20)

        result = await service.record_material_usage(project.id, cement.id, 5)

        assert result.data["item"].available == 20
        assert result.data["item"].usage_percent == 25.0

    @pytest.mark.asyncio
    async def test_low_stock_alert_once(self, store, service, project, cement):
        """Test an alert fires when usage first reaches the threshold."""
        await store.update_project(project.id, usage_tracking_enabled=True)

        first = await service.record_material_usage(project.id, cement.id, 7)
        crossing = await service.record_material_usage(project.id, cement.id, 1.5)
        after = await service.record_material_usage(project.id, cement.id, 0.5)

        assert first.data["low_stock_alert"] is None
        assert crossing.data["low_stock_alert"] == "Cement is at 15% remaining (1.50 bags)."
        assert after.data["low_stock_alert"] is None
        assert len((await service.get_usage_summary(project.id)).data.low_stock) == 1

    @pytest.mark.asyncio
    async def test_no_alert_without_tracking(self, service, project, cement):
        """Test crossing the threshold is silent when tracking is off."""
        result = await service.record_material_usage(project.id, cement.id, 9)

        assert result.data["low_stock_alert"] is None
        assert result.data["item"].is_low_stock(20) is True

    @pytest.mark.asyncio
    async def test_overuse_leaves_nothing(self, service, project, cement):
        """Test using more than is available floors the remainder at zero."""
        result = await service.record_material_usage(project.id, cement.id, 12)
        assert result.data["item"].remaining == 0.0

    @pytest.mark.asyncio
    async def test_usage_validation(self, store, service, projects, project, cement):
        """Test quantities must be positive and the item must be the project's."""
        other = (await projects.create_project("Cottage")).data

        with pytest.raises(ValueError):
            await service.record_material_usage(project.id, cement.id, 0)
        wrong_project = await service.record_material_usage(other.id, cement.id, 1)
        missing_project = await service.record_material_usage("missing", cement.id, 1)

        assert wrong_project.category == ErrorCategory.NOT_FOUND
        assert missing_project.category == ErrorCategory.NOT_FOUND
        assert (await store.get_material_usage(project.id)) == []

    @pytest.mark.asyncio
    async def test_summary_for_one_stage(self, store, service, project, cement):
        """Test a category limits the summary to that stage's items."""
        await store.add_boq_items(project.id, [_item("ibr-sheet", category="roofing")])

        summary = (await service.get_usage_summary(project.id, "roofing")).data

        assert [u.item.material_id for u in summary.items] == ["ibr-sheet"]

    @pytest.mark.asyncio
    async def test_deleting_item_removes_its_usage(self, store, service, project, cement):
        """Test usage records go with their item."""
        await service.record_material_usage(project.id, cement.id, 2)

        await store.delete_boq_items([cement.id])

        assert (await service.get_usage_history(project.id)).data == []
