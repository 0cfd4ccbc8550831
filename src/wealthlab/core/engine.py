"""
Engine facade: the single entry point of WealthLab.

``run`` sanitizes the input, resolves the contribution schedule once,
projects every scenario variant, estimates the succession costs and
aggregates the KPIs into one immutable :class:`AnalysisResult`. Every call is
a full, stateless recomputation; the only state is the per-call lifecycle
``IDLE -> COMPUTING -> READY | INVALID``, which is logged at DEBUG level.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.kpi import aggregate
from wealthlab.policies import get_policy
from wealthlab.succession import calculate_succession as estimate_succession

from .diagnostics import D, Diagnostics
from .errors import ConfigError
from .kinds import EngineState, S
from .profile import ClientProfile
from .results import AnalysisResult, KPIs, SuccessionResult, Trajectory
from .sanitize import sanitize_profile
from .schedule import resolve_schedule
from .simulator import ages_are_valid, effective_return, simulate

logger = logging.getLogger(__name__)

POLICY_NAMES = {
    S.BASE: "Base",
    S.CONSUMPTION: "Consumption",
    S.PRESERVATION: "Preservation",
}


class _Lifecycle:
    """Per-call state tracker."""

    def __init__(self) -> None:
        self.state = EngineState.IDLE

    def move(self, new_state: EngineState) -> None:
        logger.debug("engine state %s -> %s", self.state.value, new_state.value)
        self.state = new_state


def _inputs(
    profile: ClientProfile, stress: bool, config: EngineConfig
) -> Mapping[str, Any]:
    base_rate = profile.effective_return(config)
    rate = effective_return(profile, stress, config)
    return MappingProxyType(
        {
            "currentAge": profile.current_age,
            "retirementAge": profile.retirement_age,
            "contributionEndAge": profile.contribution_stop_age,
            "lifeExpectancy": profile.life_expectancy,
            "riskProfile": profile.risk_profile,
            "baseReturn": base_rate,
            "nominalReturn": rate,
            "inflation": profile.inflation,
            "realReturn": (1.0 + rate) / (1.0 + profile.inflation) - 1.0,
            "stressHaircut": config.stress_return_haircut if stress else 0.0,
        }
    )


def _project(
    profile: ClientProfile,
    stress: bool,
    config: EngineConfig,
    diag: Diagnostics,
) -> dict[str, Trajectory]:
    """Simulate the built-in policies and the user variants."""
    schedule = resolve_schedule(profile, diag)
    trajectories: dict[str, Trajectory] = {}
    for kind in S.all_kinds():
        trajectories[kind] = simulate(
            profile, schedule, kind, stress, config=config, name=POLICY_NAMES[kind]
        )

    for i, variant in enumerate(profile.scenarios):
        path = f"scenarios[{i}]"
        try:
            policy = get_policy(variant.policy)
        except ConfigError as e:
            diag.add(D.UNKNOWN_POLICY, f"{path}.policy", str(e), variant.policy)
            continue

        variant_profile = variant.apply_to(profile)
        if not ages_are_valid(variant_profile):
            diag.add(
                D.ASSUMPTIONS_INVALID,
                f"{path}.retirementAge",
                "variant ages are inconsistent, skipped",
                variant.retirement_age,
            )
            continue

        key = variant.id
        if key in trajectories:
            key = f"{variant.id}_{i}"
            diag.add(D.COERCED, f"{path}.id", f"duplicate scenario id, using {key}", variant.id)

        variant_schedule = (
            schedule if variant_profile is profile else resolve_schedule(variant_profile)
        )
        trajectory = simulate(
            variant_profile,
            variant_schedule,
            policy,
            stress,
            config=config,
            scenario_id=key,
            name=variant.name,
        )
        trajectories[key] = Trajectory(
            trajectory.scenario_id,
            trajectory.name,
            variant.policy,
            trajectory.points,
            trajectory.assumptions_valid,
        )
    return trajectories


def _is_finite(trajectories: Mapping[str, Trajectory], kpis: KPIs) -> bool:
    return kpis.is_finite() and all(t.is_finite() for t in trajectories.values())


def run(
    profile: ClientProfile | Mapping[str, Any] | None,
    stress: bool = False,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnalysisResult:
    """
    Analyze a client profile.

    Args:
        profile: ``ClientProfile`` or JSON-style mapping from the scenario editor
        stress: Apply the stress return haircut to every projection
        config: Engine constants

    Returns:
        AnalysisResult. Inconsistent ages give ``state=INVALID``,
        ``assumptions_valid=False``, no trajectories, zeroed KPIs and a
        computed succession result. Inputs so large that the projection
        overflows are reported the same way.

    **Example Usage:**
        ```python
        from wealthlab import run

        result = run({
            "currentAge": 30, "retirementAge": 60, "lifeExpectancy": 90,
            "monthlyContribution": 2000, "monthlyCostRetirement": 10000,
            "nominalReturn": 0.08, "inflation": 0.04,
        })
        print(result.kpis.goal_percentage)
        df = result.compare_frame()
        ```
    """
    lifecycle = _Lifecycle()
    diag = Diagnostics()
    stress = bool(stress)

    lifecycle.move(EngineState.COMPUTING)
    clean, sanitize_diags = sanitize_profile(profile, config)
    diag.extend(sanitize_diags)

    inputs = _inputs(clean, stress, config)
    valid = ages_are_valid(clean) and not any(
        d.code == D.ASSUMPTIONS_INVALID for d in sanitize_diags
    )

    try:
        succession = estimate_succession(clean, config, diag)
        if valid:
            trajectories = _project(clean, stress, config, diag)
            kpis = aggregate(
                trajectories, clean, succession, inputs["nominalReturn"], config
            )
    except (ArithmeticError, ValueError) as e:
        logger.warning("numeric failure during analysis: %s", e)
        diag.add(D.ASSUMPTIONS_INVALID, "", f"numeric failure: {e}")
        valid = False
        succession = SuccessionResult(state=clean.succession.state)

    if not succession.is_finite():
        logger.warning("succession estimate overflowed")
        diag.add(D.ASSUMPTIONS_INVALID, "assets", "estate values are not finite")
        valid = False
        succession = SuccessionResult(state=clean.succession.state)
    elif valid and not _is_finite(trajectories, kpis):
        logger.warning("projection overflowed")
        diag.add(D.ASSUMPTIONS_INVALID, "", "projection produced non-finite values")
        valid = False

    if not valid:
        lifecycle.move(EngineState.INVALID)
        return AnalysisResult(
            state=lifecycle.state,
            assumptions_valid=False,
            stress=stress,
            kpis=KPIs(),
            trajectories=MappingProxyType({}),
            succession=succession,
            diagnostics=diag.freeze(),
            inputs=inputs,
        )

    lifecycle.move(EngineState.READY)
    return AnalysisResult(
        state=lifecycle.state,
        assumptions_valid=True,
        stress=stress,
        kpis=kpis,
        trajectories=MappingProxyType(trajectories),
        succession=succession,
        diagnostics=diag.freeze(),
        inputs=inputs,
    )


def calculate_succession(
    profile: ClientProfile | Mapping[str, Any] | None,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SuccessionResult:
    """
    Estimate succession costs without running the projections.

    Accepts the same inputs as :func:`run`; sanitization diagnostics are
    logged at DEBUG level. An estate too large to estimate gives an empty
    result.
    """
    clean, _ = sanitize_profile(profile, config)
    result = estimate_succession(clean, config)
    if not result.is_finite():
        logger.warning("succession estimate overflowed")
        return SuccessionResult(state=clean.succession.state)
    return result
