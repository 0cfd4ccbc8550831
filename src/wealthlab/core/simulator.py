"""
Age-by-age wealth projection.
"""

from __future__ import annotations

import logging
import math

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.fx import FXConverter
from wealthlab.policies import get_policy

from .context import SimulationContext
from .diagnostics import Diagnostics
from .interfaces import IWithdrawalPolicy
from .kinds import S
from .profile import ClientProfile
from .results import Trajectory, WealthPoint
from .schedule import ContributionSchedule, resolve_schedule

logger = logging.getLogger(__name__)


def effective_return(
    profile: ClientProfile, stress: bool = False, config: EngineConfig = DEFAULT_CONFIG
) -> float:
    """Nominal annual return of the profile, minus the stress haircut when set."""
    rate = profile.effective_return(config)
    if stress:
        rate -= config.stress_return_haircut
    return rate


def ages_are_valid(profile: ClientProfile) -> bool:
    """Whether the profile ages allow a projection."""
    ages = (profile.current_age, profile.retirement_age, profile.life_expectancy)
    if not all(isinstance(a, (int, float)) and math.isfinite(a) for a in ages):
        return False
    return (
        profile.retirement_age > profile.current_age
        and profile.life_expectancy > profile.current_age
        and profile.life_expectancy >= profile.retirement_age
    )


def opening_balances(
    profile: ClientProfile,
    config: EngineConfig = DEFAULT_CONFIG,
    diagnostics: Diagnostics | None = None,
) -> tuple[float, float]:
    """
    Return ``(liquid, illiquid)`` opening wealth in the base currency.

    Liquid wealth is LIQUID plus PENSION assets; ILLIQUID and OTHER assets
    make up the illiquid wealth.
    """
    fx = FXConverter.from_profile(profile, config)
    liquid = 0.0
    illiquid = 0.0
    for asset in profile.assets:
        amount = fx.to_base(asset.amount, asset.currency, diagnostics)
        if asset.kind.is_projected:
            liquid += amount
        else:
            illiquid += amount
    return liquid, illiquid


def _year_for(profile: ClientProfile, age: int) -> int:
    offset = age - profile.current_age
    if profile.reference_year is None:
        return offset
    return profile.reference_year + offset


def simulate(
    profile: ClientProfile,
    schedule: ContributionSchedule | None = None,
    scenario: str | IWithdrawalPolicy = S.BASE,
    stress: bool = False,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    diagnostics: Diagnostics | None = None,
    scenario_id: str | None = None,
    name: str | None = None,
) -> Trajectory:
    """
    Project liquid and illiquid wealth from ``current_age`` to ``life_expectancy``.

    The point at ``current_age`` is the opening snapshot (assets plus any
    cash-in, minus any outflow goal, at that age). Each transition from age
    ``a`` to ``a + 1``:

    1. applies the annual return to the liquid wealth;
    2. adds twelve times the scheduled monthly flow of age ``a``;
    3. from ``retirement_age`` on, subtracts the policy withdrawal;
    4. adds the cash-in and subtracts the outflow goals landing at ``a + 1``.

    Liquid wealth is never clamped: negative values mark depletion.

    Args:
        profile: Sanitized client profile
        schedule: Resolved schedule (resolved from the profile when None)
        scenario: Policy kind registered in the policy registry, or a policy
        stress: Apply the stress return haircut
        config: Engine constants
        diagnostics: Collector for schedule diagnostics
        scenario_id: Trajectory id (defaults to the policy kind)
        name: Trajectory display name

    Returns:
        Trajectory; for inconsistent ages a single opening point (or no
        point for non-finite ages) with ``assumptions_valid=False``

    Raises:
        ConfigError: If ``scenario`` names an unregistered policy
    """
    if isinstance(scenario, str):
        policy = get_policy(scenario)
        kind = scenario
    else:
        policy = scenario
        kind = type(scenario).__name__
    scenario_id = scenario_id or kind
    name = name or scenario_id

    ages = (profile.current_age, profile.retirement_age, profile.life_expectancy)
    if not all(isinstance(a, (int, float)) and math.isfinite(a) for a in ages):
        return Trajectory(scenario_id, name, kind, (), assumptions_valid=False)

    liquid, illiquid = opening_balances(profile, config)

    if not ages_are_valid(profile):
        point = WealthPoint(
            age=int(profile.current_age),
            year=_year_for(profile, int(profile.current_age)),
            liquid_wealth=liquid,
            illiquid_wealth=illiquid,
        )
        return Trajectory(scenario_id, name, kind, (point,), assumptions_valid=False)

    if schedule is None:
        schedule = resolve_schedule(profile, diagnostics)

    ctx = SimulationContext(
        profile=profile,
        schedule=schedule,
        config=config,
        nominal_return=effective_return(profile, stress, config),
        inflation=profile.inflation,
        stress=stress,
    )
    growth = 1.0 + ctx.nominal_return
    illiquid_growth = 1.0 + profile.illiquid_growth

    opening_cash_in = schedule.cash_in_at(profile.current_age)
    opening_outflow = schedule.outflow_at(profile.current_age)
    liquid += opening_cash_in - opening_outflow
    points = [
        WealthPoint(
            age=profile.current_age,
            year=_year_for(profile, profile.current_age),
            liquid_wealth=liquid,
            illiquid_wealth=illiquid,
            applied_cash_in=opening_cash_in,
            applied_outflow=opening_outflow,
        )
    ]

    for age in range(profile.current_age, profile.life_expectancy):
        start_wealth = liquid
        contribution = schedule.monthly_at(age) * 12.0
        liquid = liquid * growth + contribution

        withdrawal = 0.0
        if age >= profile.retirement_age:
            withdrawal = policy.annual_withdrawal(ctx, age, start_wealth)
            liquid -= withdrawal

        cash_in = schedule.cash_in_at(age + 1)
        outflow = schedule.outflow_at(age + 1)
        liquid += cash_in - outflow
        illiquid *= illiquid_growth

        points.append(
            WealthPoint(
                age=age + 1,
                year=_year_for(profile, age + 1),
                liquid_wealth=liquid,
                illiquid_wealth=illiquid,
                applied_cash_in=cash_in,
                applied_outflow=outflow,
                contribution=contribution,
                withdrawal=withdrawal,
            )
        )

    logger.debug(
        "simulated %s (%s) %d..%d, stress=%s: final liquid %.2f",
        scenario_id,
        kind,
        profile.current_age,
        profile.life_expectancy,
        stress,
        liquid,
    )
    return Trajectory(scenario_id, name, kind, tuple(points))
