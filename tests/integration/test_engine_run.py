"""
Integration tests for the engine facade.
"""

import copy
import json

import pytest

from wealthlab import EngineState, calculate_succession, run
from wealthlab.cli import ResultEncoder
from wealthlab.core.diagnostics import D


@pytest.fixture
def profile_data():
    return {
        "currentAge": 30,
        "retirementAge": 60,
        "lifeExpectancy": 90,
        "monthlyContribution": 2000,
        "monthlyCostRetirement": 8000,
        "nominalReturn": 0.08,
        "inflation": 0.04,
        "assets": [
            {"id": "a1", "name": "Brokerage", "amount": 100000, "type": "financial"},
            {"id": "a2", "name": "ETF", "amount": 10000, "currency": "USD"},
            {"id": "a3", "name": "House", "amount": 800000, "type": "real_estate"},
        ],
        "contributionTimeline": [
            {"id": "r1", "startAge": 40, "endAge": 45, "monthlyValue": -2000},
        ],
        "cashInEvents": [{"id": "e1", "age": 50, "value": 200000}],
        "scenarios": [
            {"id": "early", "name": "Retire at 58", "policy": "base", "retirementAge": 58},
            {"id": "spend", "name": "Spend it all", "policy": "Consumption"},
        ],
    }


class TestRun:
    """Test a complete analysis."""

    def test_ready_result(self, profile_data):
        result = run(profile_data)

        assert result.state == EngineState.READY
        assert result.assumptions_valid
        assert not result.stress

    def test_trajectory_order(self, profile_data):
        result = run(profile_data)

        assert list(result.trajectories) == [
            "base",
            "consumption",
            "preservation",
            "early",
            "spend",
        ]
        assert result.trajectories["spend"].policy == "consumption"
        assert result.trajectories["early"].name == "Retire at 58"

    def test_every_trajectory_is_complete(self, profile_data):
        result = run(profile_data)

        for trajectory in result.trajectories.values():
            assert trajectory.ages.tolist() == list(range(30, 91))

    def test_variant_overrides_retirement_age(self, profile_data):
        result = run(profile_data)

        early = result.trajectories["early"]
        base = result.trajectories["base"]
        assert early.point_at(59).withdrawal > 0
        assert base.point_at(59).withdrawal == 0.0
        assert base.point_at(59).contribution == 24000.0
        assert early.point_at(59).contribution == 0.0

    def test_kpis_follow_base(self, profile_data):
        result = run(profile_data)

        assert result.kpis.capital_at_retirement == result.base.wealth_at(60)
        assert result.kpis.final_wealth == result.base.final_wealth
        assert result.kpis.sustainable_income * 12 / 0.04 == pytest.approx(
            result.kpis.capital_at_retirement
        )
        assert 0 <= result.kpis.wealth_score <= 100

    def test_succession_included(self, profile_data):
        result = run(profile_data)

        assert result.succession.financial_total == pytest.approx(150_000.0)
        assert result.succession.illiquid_total == pytest.approx(800_000.0)
        assert result.kpis.liquidity_ratio == pytest.approx(150 / 950)

    def test_inputs_echo(self, profile_data):
        inputs = run(profile_data).inputs

        assert inputs["nominalReturn"] == 0.08
        assert inputs["baseReturn"] == 0.08
        assert inputs["stressHaircut"] == 0.0
        assert inputs["realReturn"] == pytest.approx(1.08 / 1.04 - 1)
        assert inputs["contributionEndAge"] == 60

    def test_stress_lowers_return(self, profile_data):
        normal = run(profile_data)
        stressed = run(profile_data, stress=True)

        assert stressed.stress
        assert stressed.inputs["nominalReturn"] == pytest.approx(0.06)
        assert stressed.inputs["stressHaircut"] == 0.02
        assert stressed.base.wealth_at(60) < normal.base.wealth_at(60)

    def test_compare_frame(self, profile_data):
        result = run(profile_data)

        frame = result.compare_frame(["base", "early"])
        assert set(frame["scenario_id"]) == {"base", "early"}
        assert len(frame) == 2 * 61
        assert "liquid_wealth" in frame.columns

        with pytest.raises(ValueError, match="Unknown scenario IDs"):
            result.compare_frame(["nope"])


class TestVariants:
    """Test scenario variant handling."""

    def test_unknown_policy_skipped(self, profile_data):
        profile_data["scenarios"] = [{"id": "x", "name": "X", "policy": "yolo"}]
        result = run(profile_data)

        assert result.state == EngineState.READY
        assert "x" not in result.trajectories
        assert any(d.code == D.UNKNOWN_POLICY for d in result.diagnostics)

    def test_inconsistent_variant_skipped(self, profile_data):
        profile_data["scenarios"] = [{"id": "late", "policy": "base", "retirementAge": 95}]
        result = run(profile_data)

        assert result.state == EngineState.READY
        assert "late" not in result.trajectories
        assert any(
            d.code == D.ASSUMPTIONS_INVALID and d.field.startswith("scenarios[0]")
            for d in result.diagnostics
        )

    def test_duplicate_id_renamed(self, profile_data):
        profile_data["scenarios"] = [{"id": "base", "policy": "preservation"}]
        result = run(profile_data)

        assert "base_0" in result.trajectories
        assert result.trajectories["base"].policy == "base"
        assert result.trajectories["base_0"].policy == "preservation"
        assert any(d.code == D.COERCED for d in result.diagnostics)


class TestInvalidInputs:
    """Test inconsistent and malformed profiles."""

    def test_inconsistent_ages(self, profile_data):
        profile_data["currentAge"] = 70
        result = run(profile_data)

        assert result.state == EngineState.INVALID
        assert not result.assumptions_valid
        assert len(result.trajectories) == 0
        assert result.kpis.wealth_score == 0
        assert result.succession.financial_total == pytest.approx(150_000.0)
        assert any(d.code == D.ASSUMPTIONS_INVALID for d in result.diagnostics)

    def test_malformed_age(self, profile_data):
        profile_data["lifeExpectancy"] = "old"
        result = run(profile_data)

        assert result.state == EngineState.INVALID

    @pytest.mark.parametrize(
        "data",
        [
            None,
            "not a profile",
            [1, 2, 3],
            {},
            {"currentAge": 10**400},
            {"assets": "x", "contributionTimeline": [None, 5], "cashInEvents": [{"age": "nan"}]},
            {"inflation": -5, "nominalReturn": "abc", "fxRates": {"USD_BRL": -1}},
            {"scenarios": [None, {"policy": 3}], "succession": {"itcmdRate": 99}},
            {"financialGoals": [None, {"age": "x"}, {"type": 5, "age": 40}, {"age": 1e300}]},
        ],
    )
    def test_garbage_never_raises(self, data):
        result = run(data)

        assert result.state in (EngineState.READY, EngineState.INVALID)
        json.dumps(result.to_dict(), cls=ResultEncoder)

    def test_tiny_return_is_ready(self, profile_data):
        profile_data["nominalReturn"] = 1e-20
        result = run(profile_data)

        assert result.state == EngineState.READY
        assert result.kpis.goal_percentage is not None
        assert result.trajectories["consumption"].final_wealth == pytest.approx(0.0, abs=1e-3)

    def test_overflowing_projection_is_invalid(self, profile_data):
        profile_data.update(monthlyContribution=1e306, nominalReturn=0.1)
        result = run(profile_data)

        assert result.state == EngineState.INVALID
        assert not result.assumptions_valid
        assert len(result.trajectories) == 0
        assert result.kpis.is_finite()
        assert any(
            d.code == D.ASSUMPTIONS_INVALID and "non-finite" in d.message
            for d in result.diagnostics
        )
        json.dumps(result.to_dict(), cls=ResultEncoder, allow_nan=False)

    def test_overflowing_estate_is_invalid(self, profile_data):
        profile_data["assets"] = [
            {"id": "a1", "amount": 1.5e308},
            {"id": "a2", "amount": 1.5e308},
        ]
        result = run(profile_data)

        assert result.state == EngineState.INVALID
        assert result.succession.is_finite()
        assert result.succession.total_estate == 0.0
        json.dumps(result.to_dict(), cls=ResultEncoder, allow_nan=False)

    def test_numeric_failure_is_invalid(self, profile_data, monkeypatch):
        def boom(*args, **kwargs):
            raise OverflowError("math range error")

        monkeypatch.setattr("wealthlab.core.engine.aggregate", boom)
        result = run(profile_data)

        assert result.state == EngineState.INVALID
        assert any("numeric failure" in d.message for d in result.diagnostics)


class TestPurity:
    """Test determinism and input immutability."""

    def test_deterministic(self, profile_data):
        first = json.dumps(run(profile_data).to_dict(), cls=ResultEncoder)
        second = json.dumps(run(profile_data).to_dict(), cls=ResultEncoder)

        assert first == second

    def test_input_not_mutated(self, profile_data):
        snapshot = copy.deepcopy(profile_data)
        run(profile_data)
        calculate_succession(profile_data)

        assert profile_data == snapshot

    def test_diagnostics_not_shared(self, profile_data):
        noisy = dict(profile_data, currentAge="30 anos", monthlyContribution="abc")
        run(noisy)
        clean = run(profile_data)

        assert not any(d.code == D.COERCED for d in clean.diagnostics)


class TestCalculateSuccession:
    """Test the succession facade."""

    def test_from_mapping(self, profile_data):
        result = calculate_succession(profile_data)

        assert result.total_estate == pytest.approx(950_000.0)
        assert result.costs.total == pytest.approx(950_000.0 * 0.11)
        assert result.liquidity_gap == 0.0

    def test_from_garbage(self):
        result = calculate_succession(None)

        assert result.total_estate == 0.0

    def test_overflowing_estate(self):
        result = calculate_succession({"assets": [{"amount": 1.5e308}, {"amount": 1.5e308}]})

        assert result.is_finite()
        assert result.total_estate == 0.0


class TestOutflowGoals:
    """Test impact goals flowing through the analysis."""

    def test_goal_lowers_wealth_from_its_age(self, profile_data):
        plain = run(profile_data)
        profile_data["financialGoals"] = [
            {"id": "g1", "name": "Car", "type": "impact", "age": 45, "value": 150000},
            {"id": "g2", "name": "Retire", "type": "retirement", "age": 60, "value": 1},
        ]
        result = run(profile_data)

        base, before = result.base, plain.base
        assert base.wealth_at(44) == before.wealth_at(44)
        assert before.wealth_at(45) - base.wealth_at(45) == pytest.approx(150_000.0)
        assert base.point_at(45).applied_outflow == 150_000.0
        assert base.point_at(60).applied_outflow == 0.0
        assert result.kpis.capital_at_retirement < plain.kpis.capital_at_retirement
