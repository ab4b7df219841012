"""Tests for budget planning arithmetic."""

from datetime import date

import pytest

from estimation.budget import (
    NO_STAGE_LABEL,
    STAGE_ORDER,
    ItemPricing,
    PlanMode,
    StageReachInput,
    apply_average_price_update,
    calculate_variance,
    estimate_stage_reach,
    get_scaled_price_zwg,
    plan_savings,
)


class TestStageReach:
    """Tests for how far a budget goes."""

    def test_zero_budget_reaches_nothing(self, catalog):
        """Test an empty budget reaches no stage."""
        result = estimate_stage_reach(StageReachInput(budget_usd=0, floor_area_m2=100), catalog)

        assert result.reachable_stage_id is None
        assert result.reachable_stage_label == NO_STAGE_LABEL
        assert result.coverage_percent == 0

    def test_large_budget_reaches_exterior(self, catalog):
        """Test a large budget covers every stage."""
        result = estimate_stage_reach(StageReachInput(budget_usd=10_000_000, floor_area_m2=100), catalog)

        assert result.reachable_stage_id == "exterior"
        assert result.coverage_percent == 100
        assert all(row.affordable for row in result.rows)

    def test_rows_follow_stage_order(self, catalog):
        """Test every stage is costed and cumulative cost adds up."""
        result = estimate_stage_reach(StageReachInput(budget_usd=5000, floor_area_m2=100), catalog)

        assert [row.id for row in result.rows] == [stage_id for stage_id, _ in STAGE_ORDER]
        assert all(row.stage_cost_usd > 0 for row in result.rows)
        assert result.rows[-1].cumulative_cost_usd == pytest.approx(result.estimated_total_usd)

    def test_partial_budget(self, catalog):
        """Test the reachable stage is the last fully affordable one."""
        reach = estimate_stage_reach(StageReachInput(budget_usd=0, floor_area_m2=100), catalog)
        first_two = reach.rows[1].cumulative_cost_usd

        result = estimate_stage_reach(StageReachInput(budget_usd=first_two + 1, floor_area_m2=100), catalog)

        assert result.reachable_stage_id == "superstructure"
        assert result.rows[2].affordable is False
        assert 0 < result.rows[2].coverage_percent < 100

    def test_invalid_area_uses_default(self, catalog):
        """Test a missing floor area falls back to 120m²."""
        fallback = estimate_stage_reach(StageReachInput(budget_usd=5000, floor_area_m2=0), catalog)
        explicit = estimate_stage_reach(StageReachInput(budget_usd=5000, floor_area_m2=120), catalog)
        assert fallback.estimated_total_usd == explicit.estimated_total_usd


class TestSavingsPlan:
    """Tests for savings plans."""

    def test_all_remaining(self):
        """Test saving for the whole remaining budget."""
        plan = plan_savings(1000, 400, "2026-01-31", today=date(2026, 1, 1))

        assert plan.remaining_budget == 600
        assert plan.percent_complete == 40
        assert plan.days_until_target == 30
        assert plan.savings_per_day == 20
        assert plan.savings_per_week == 140
        assert plan.savings_per_month == 600

    def test_critical_and_custom_modes(self):
        """Test critical and custom targets."""
        target = date(2026, 1, 31)
        today = date(2026, 1, 1)

        critical = plan_savings(1000, 0, target, PlanMode.CRITICAL, critical_items_usd=300, today=today)
        custom = plan_savings(1000, 0, target, "custom", custom_amount_usd=150, today=today)
        empty_custom = plan_savings(1000, 0, target, "custom", today=today)

        assert critical.savings_per_day == 10
        assert custom.savings_per_day == 5
        assert empty_custom.target_amount == 0

    def test_past_or_missing_date(self):
        """Test no daily amount without days left."""
        past = plan_savings(1000, 0, date(2025, 1, 1), today=date(2026, 1, 1))
        missing = plan_savings(1000, 0, None)

        assert past.days_until_target == 0
        assert past.savings_per_day == 0
        assert missing.savings_per_month == 0

    def test_zero_budget(self):
        """Test percent complete is zero without a budget."""
        assert plan_savings(0, 0, None).percent_complete == 0

    def test_invalid_mode(self):
        """Test an unknown mode is rejected."""
        with pytest.raises(ValueError):
            plan_savings(1000, 0, None, "someday")


class TestPriceVariance:
    """Tests for variance and average price updates."""

    def test_variance(self):
        """Test variance against an average price."""
        assert calculate_variance(10, 12) == (2, 20.0)
        assert calculate_variance(0, 5) == (5, None)

    def test_scaled_zwg(self):
        """Test ZWG follows the average ratio, or the exchange rate without one."""
        assert get_scaled_price_zwg(12, 10, 300, 30) == pytest.approx(360)
        assert get_scaled_price_zwg(12, 0, 0, 25) == 300

    def test_actual_follows_unchanged_average(self):
        """Test an actual price equal to the old average moves with it."""
        item = ItemPricing(average_price_usd=10, average_price_zwg=300, actual_price_usd=10, actual_price_zwg=300)

        updated = apply_average_price_update(item, 11, 330, 30)

        assert updated.actual_price_usd == 11
        assert updated.actual_price_zwg == pytest.approx(330)

    def test_edited_actual_is_kept(self):
        """Test a user edited actual price survives an average change."""
        item = ItemPricing(average_price_usd=10, average_price_zwg=300, actual_price_usd=12)

        updated = apply_average_price_update(item, 11, 330, 30)

        assert updated.average_price_usd == 11
        assert updated.actual_price_usd == 12
        assert updated.to_dict()["actual_price_zwg"] == 360
