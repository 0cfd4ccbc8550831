"""
Tests for KPI utility functions.
"""

import pytest

from wealthlab.config import DEFAULT_CONFIG
from wealthlab.core.kinds import AssetKind, S
from wealthlab.core.profile import Asset, ClientProfile
from wealthlab.core.results import SuccessionResult
from wealthlab.core.simulator import simulate
from wealthlab.kpi import (
    aggregate,
    annuity_factor,
    depletion_margin,
    goal_percentage,
    real_rate,
    required_capital,
    sustainable_income,
    wealth_score,
)


class TestKPIUtilities:
    """Test KPI utility functions."""

    def test_real_rate(self):
        """Test Fisher real rate."""
        assert real_rate(0.08, 0.04) == pytest.approx(1.08 / 1.04 - 1)
        assert real_rate(0.05, 0.05) == 0.0

    def test_annuity_factor(self):
        """Test annuity factor calculation."""
        assert annuity_factor(0.0, 30) == 30.0
        assert annuity_factor(0.05, 10) == pytest.approx((1 - 1.05**-10) / 0.05)
        assert annuity_factor(0.05, 0) == 0.0

    def test_annuity_factor_tiny_rate(self):
        """Rates too small for 1 + rate to differ from 1 behave like zero."""
        assert annuity_factor(1e-20, 30) == pytest.approx(30.0)
        assert annuity_factor(1e-13, 30) == pytest.approx(30.0, rel=1e-9)

    def test_required_capital_single_year(self):
        """One retirement year with no growth needs one year of cost."""
        profile = ClientProfile(
            current_age=59,
            retirement_age=60,
            life_expectancy=61,
            monthly_cost_retirement=1000.0,
        )
        assert required_capital(profile, 0.0, 0.0) == pytest.approx(12_000.0)

    def test_required_capital_without_goal(self):
        """No retirement cost or no retirement years means no goal."""
        assert required_capital(ClientProfile(), 0.08) == 0.0
        profile = ClientProfile(
            retirement_age=90, life_expectancy=90, monthly_cost_retirement=1000.0
        )
        assert required_capital(profile, 0.08) == 0.0

    def test_required_capital_funds_base_trajectory(self):
        """Holding exactly the required capital at retirement ends at zero."""
        profile = ClientProfile(
            current_age=59,
            retirement_age=60,
            life_expectancy=90,
            monthly_cost_retirement=10_000.0,
            inflation=0.04,
            nominal_return=0.08,
        )
        required = required_capital(profile, 0.08)
        funded = profile.with_changes(
            assets=(Asset("a1", "Brokerage", required / 1.08),)
        )

        trajectory = simulate(funded, scenario=S.BASE)

        assert trajectory.wealth_at(60) == pytest.approx(required)
        assert trajectory.final_wealth == pytest.approx(0.0, abs=1e-4 * required)

    def test_sustainable_income(self):
        """Test safe withdrawal income."""
        assert sustainable_income(1_200_000.0) == pytest.approx(4000.0)

    def test_goal_percentage(self):
        """Test goal coverage with cap and missing goal."""
        assert goal_percentage(500.0, 1000.0) == pytest.approx(50.0)
        assert goal_percentage(5000.0, 1000.0) == DEFAULT_CONFIG.goal_cap_pct
        assert goal_percentage(-10.0, 1000.0) == 0.0
        assert goal_percentage(1000.0, 0.0) is None

    def test_depletion_margin(self):
        """Test share of retirement with positive wealth."""
        profile = ClientProfile(current_age=30, retirement_age=60, life_expectancy=90)
        assert depletion_margin(profile, None) == 1.0
        assert depletion_margin(profile, 75) == pytest.approx(0.5)
        assert depletion_margin(profile, 40) == 0.0

    def test_wealth_score(self):
        """Test composite score weights."""
        assert wealth_score(None, 1.0, 1.0) == 100
        assert wealth_score(50.0, 0.5, 1.0) == 60
        assert wealth_score(0.0, 0.0, 0.0) == 0
        assert wealth_score(150.0, 2.0, 5.0) == 100


class TestAggregate:
    """Test KPI aggregation from the base trajectory."""

    @pytest.fixture
    def profile(self):
        return ClientProfile(
            current_age=30,
            retirement_age=60,
            life_expectancy=90,
            monthly_contribution=2000.0,
            monthly_cost_retirement=8000.0,
            nominal_return=0.08,
            inflation=0.04,
        )

    def test_aggregate_reads_base(self, profile):
        """KPIs come from the base trajectory."""
        base = simulate(profile, scenario=S.BASE)
        kpis = aggregate({"base": base}, profile, SuccessionResult(), 0.08)

        assert kpis.capital_at_retirement == base.wealth_at(60)
        assert kpis.required_capital == pytest.approx(required_capital(profile, 0.08))
        assert kpis.final_wealth == base.final_wealth
        assert kpis.depletion_age == base.depletion_age()
        assert 0 <= kpis.wealth_score <= 100

    def test_aggregate_without_base(self, profile):
        """Missing base trajectory gives zeroed KPIs."""
        succession = SuccessionResult(financial_total=50.0, total_estate=100.0)
        kpis = aggregate({}, profile, succession, 0.08)

        assert kpis.capital_at_retirement == 0.0
        assert kpis.goal_percentage is None
        assert kpis.liquidity_ratio == 0.5

    def test_depleted_plan_scores_low(self):
        """No savings at all: zero coverage, depletion right after retirement."""
        profile = ClientProfile(
            current_age=30,
            retirement_age=60,
            life_expectancy=90,
            monthly_cost_retirement=1000.0,
            nominal_return=0.08,
        )
        base = simulate(profile, scenario=S.BASE)
        kpis = aggregate({"base": base}, profile, SuccessionResult(), 0.08)

        assert kpis.goal_percentage == 0.0
        assert kpis.depletion_age == 61
        assert kpis.wealth_score == 1

    def test_liquidity_ratio_from_succession(self, profile):
        """Liquidity ratio is the financial share of the estate."""
        succession = SuccessionResult(
            financial_total=300.0,
            illiquid_total=700.0,
            total_estate=1000.0,
        )
        base = simulate(profile.with_changes(assets=(
            Asset("a1", "Cash", 300.0),
            Asset("h1", "House", 700.0, kind=AssetKind.ILLIQUID),
        )), scenario=S.BASE)
        kpis = aggregate({"base": base}, profile, succession, 0.08)

        assert kpis.liquidity_ratio == pytest.approx(0.3)
