"""
Tests for the bisection utility and the goal solvers.
"""

import pytest

from wealthlab import run
from wealthlab.core.profile import Asset, ClientProfile
from wealthlab.solver import (
    STATUS_INVALID,
    STATUS_OK,
    STATUS_UNREACHABLE,
    bisect_threshold,
    coverage_for,
    solve_required_age,
    solve_required_contribution,
)


@pytest.fixture
def profile():
    return ClientProfile(
        current_age=30,
        retirement_age=60,
        life_expectancy=90,
        monthly_contribution=3000.0,
        monthly_cost_retirement=8000.0,
        nominal_return=0.08,
        inflation=0.04,
    )


class TestBisectThreshold:
    """Test the generic threshold search."""

    def test_integer_search(self):
        result = bisect_threshold(lambda x: x * x, 0, 10, 49, integer=True)

        assert result.value == 7
        assert result.reached

    def test_continuous_search(self):
        result = bisect_threshold(lambda x: 2.0 * x, 0.0, 100.0, 50.0, tolerance=0.01)

        assert result.reached
        assert 25.0 <= result.value <= 25.01
        assert result.output >= 50.0

    def test_target_met_at_lower_bound(self):
        result = bisect_threshold(lambda x: 100.0, 0.0, 10.0, 50.0)

        assert result.value == 0.0
        assert result.iterations == 1

    def test_unreachable_returns_upper_bound(self):
        result = bisect_threshold(lambda x: x, 0.0, 10.0, 50.0)

        assert not result.reached
        assert result.value == 10.0
        assert result.output == 10.0

    def test_iteration_cap(self):
        result = bisect_threshold(
            lambda x: x, 0.0, 1e9, 1.0, tolerance=0.0, max_iterations=5
        )

        assert result.iterations == 5
        assert result.reached

    def test_monotone_in_target(self):
        def evaluate(x):
            return x**0.5

        values = [
            bisect_threshold(evaluate, 0.0, 1000.0, t, tolerance=0.05).value
            for t in (5.0, 10.0, 15.0, 20.0, 25.0)
        ]
        assert values == sorted(values)


class TestCoverage:
    """Test the coverage evaluation used by the solvers."""

    def test_coverage_grows_with_contribution(self, profile):
        low = coverage_for(profile.with_changes(monthly_contribution=1000.0))
        high = coverage_for(profile.with_changes(monthly_contribution=5000.0))

        assert low < high

    def test_no_goal_counts_as_capped(self, profile):
        assert coverage_for(profile.with_changes(monthly_cost_retirement=0.0)) == 150.0

    def test_stress_lowers_coverage(self, profile):
        assert coverage_for(profile, stress=True) < coverage_for(profile)

    def test_matches_analysis_kpi(self, profile):
        assert coverage_for(profile) == pytest.approx(run(profile).kpis.goal_percentage)


class TestSolveRequiredContribution:
    """Test the contribution solver."""

    def test_reaches_target(self, profile):
        solution = solve_required_contribution(profile)

        assert solution.status == STATUS_OK
        assert solution.ok
        assert solution.coverage >= 100.0
        assert solution.coverage == pytest.approx(100.0, abs=0.1)

        candidate = profile.with_changes(monthly_contribution=solution.value)
        assert coverage_for(candidate) >= 100.0
        lower = profile.with_changes(monthly_contribution=solution.value * 0.99)
        assert coverage_for(lower) < 100.0

    def test_already_covered(self, profile):
        rich = profile.with_changes(assets=(Asset("a1", "Brokerage", 50_000_000.0),))
        solution = solve_required_contribution(rich)

        assert solution.ok
        assert solution.value == 0.0

    def test_lower_target_needs_less(self, profile):
        low = solve_required_contribution(profile, 80.0)
        high = solve_required_contribution(profile, 100.0)

        assert low.value <= high.value

    def test_stress_needs_more(self, profile):
        normal = solve_required_contribution(profile)
        stressed = solve_required_contribution(profile, stress=True)

        assert stressed.value > normal.value

    def test_unreachable(self):
        profile = ClientProfile(
            current_age=59,
            retirement_age=60,
            life_expectancy=90,
            monthly_cost_retirement=100_000_000.0,
            nominal_return=0.08,
            inflation=0.04,
        )
        solution = solve_required_contribution(profile)

        assert solution.status == STATUS_UNREACHABLE
        assert not solution.ok
        assert solution.value == 3_200_000.0
        assert solution.coverage < 100.0

    def test_invalid_without_goal(self, profile):
        solution = solve_required_contribution(
            profile.with_changes(monthly_cost_retirement=0.0)
        )

        assert solution.status == STATUS_INVALID
        assert solution.value is None

    def test_invalid_ages(self, profile):
        solution = solve_required_contribution(profile.with_changes(retirement_age=20))

        assert solution.status == STATUS_INVALID

    def test_accepts_mapping(self, profile):
        data = {
            "currentAge": 30,
            "retirementAge": 60,
            "lifeExpectancy": 90,
            "monthlyContribution": "3.000,00",
            "monthlyCostRetirement": 8000,
            "nominalReturn": 8,
            "inflation": 0.04,
        }

        from_mapping = solve_required_contribution(data)

        assert from_mapping == solve_required_contribution(profile)
        assert from_mapping.ok

    def test_unsanitized_profile_does_not_raise(self, profile):
        solution = solve_required_contribution(profile.with_changes(inflation=-1.0))

        assert solution.status in (STATUS_OK, STATUS_UNREACHABLE)

    @pytest.mark.parametrize("data", [None, "profile", {"lifeExpectancy": "old"}])
    def test_garbage_is_invalid(self, data):
        assert solve_required_contribution(data).status == STATUS_INVALID

    def test_numeric_failure_is_invalid(self, profile, monkeypatch):
        def boom(*args, **kwargs):
            raise OverflowError("math range error")

        monkeypatch.setattr("wealthlab.solver.coverage_for", boom)
        solution = solve_required_contribution(profile)

        assert solution.status == STATUS_INVALID
        assert solution.value is None

    def test_to_dict(self, profile):
        data = solve_required_contribution(profile).to_dict()

        assert set(data) == {"value", "status", "coverage", "iterations"}
        assert data["status"] == STATUS_OK


class TestSolveRequiredAge:
    """Test the retirement age solver."""

    def test_earliest_age(self, profile):
        solution = solve_required_age(profile)

        assert solution.ok
        assert isinstance(solution.value, int)
        assert 31 <= solution.value <= 90

        at_age = profile.with_changes(
            retirement_age=solution.value, contribution_end_age=solution.value
        )
        assert coverage_for(at_age) >= 100.0
        earlier = profile.with_changes(
            retirement_age=solution.value - 1, contribution_end_age=solution.value - 1
        )
        assert coverage_for(earlier) < 100.0

    def test_rich_client_retires_next_year(self, profile):
        rich = profile.with_changes(assets=(Asset("a1", "Brokerage", 50_000_000.0),))
        solution = solve_required_age(rich)

        assert solution.ok
        assert solution.value == 31

    def test_stress_delays_retirement(self, profile):
        normal = solve_required_age(profile)
        stressed = solve_required_age(profile, stress=True)

        assert stressed.value >= normal.value

    def test_invalid_without_goal(self, profile):
        solution = solve_required_age(profile.with_changes(monthly_cost_retirement=0.0))

        assert solution.status == STATUS_INVALID
        assert solution.value is None

    def test_accepts_mapping(self, profile):
        assert solve_required_age(profile.to_dict()) == solve_required_age(profile)

    def test_numeric_failure_is_invalid(self, profile, monkeypatch):
        def boom(*args, **kwargs):
            raise ZeroDivisionError("float division by zero")

        monkeypatch.setattr("wealthlab.solver.coverage_for", boom)

        assert solve_required_age(profile).status == STATUS_INVALID
