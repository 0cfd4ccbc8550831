"""
KPI calculation utilities for retirement projections.

This module provides standalone functions for the headline metrics of an
analysis and :func:`aggregate`, which combines them into a
:class:`~wealthlab.core.results.KPIs` record. Charts and reports both read
that record; nothing here is recomputed elsewhere.
"""

from __future__ import annotations

import math
from typing import Mapping

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.core.profile import ClientProfile
from wealthlab.core.results import KPIs, SuccessionResult, Trajectory


def real_rate(nominal: float, inflation: float) -> float:
    """Fisher real rate ``(1 + r) / (1 + i) - 1``."""
    return (1.0 + nominal) / (1.0 + inflation) - 1.0


def annuity_factor(rate: float, years: int) -> float:
    """
    Present value of 1 paid at the end of each of ``years`` periods.

    ``(1 - (1 + rate) ** -years) / rate``, or ``years`` when the rate is 0.
    Computed through ``expm1``/``log1p`` so that tiny rates do not cancel out.
    """
    if years <= 0:
        return 0.0
    if rate == 0.0:
        return float(years)
    if rate > -1.0:
        return -math.expm1(-years * math.log1p(rate)) / rate
    return (1.0 - (1.0 + rate) ** -years) / rate


def required_capital(
    profile: ClientProfile, nominal_return: float, inflation: float | None = None
) -> float:
    """
    Capital needed at retirement to fund the retirement cost until life expectancy.

    The retirement cost is inflated from ``current_age`` exactly like the
    base withdrawal policy, and discounted at the real return, so a base
    trajectory that holds exactly this capital at retirement (with no other
    flows) ends at zero.

    Args:
        profile: Client profile
        nominal_return: Annual return (after any stress haircut)
        inflation: Annual inflation (defaults to the profile's)

    Returns:
        Required capital in nominal terms at ``retirement_age`` (0 with no goal)

    Example:
        >>> profile = ClientProfile(current_age=60, retirement_age=60,
        ...                         life_expectancy=61, monthly_cost_retirement=1000)
        >>> round(required_capital(profile, 0.0, 0.0), 2)
        12000.0
    """
    if inflation is None:
        inflation = profile.inflation
    years = profile.retirement_years
    cost = profile.monthly_cost_retirement
    if cost <= 0 or years <= 0:
        return 0.0
    first_withdrawal_index = profile.retirement_age - profile.current_age - 1
    annual_cost = cost * 12.0 * (1.0 + inflation) ** first_withdrawal_index
    return annual_cost * annuity_factor(real_rate(nominal_return, inflation), years)


def sustainable_income(capital: float, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Monthly income drawn from ``capital`` at the safe withdrawal rate."""
    return capital * config.safe_withdrawal_rate / 12.0


def goal_percentage(
    capital: float, required: float, config: EngineConfig = DEFAULT_CONFIG
) -> float | None:
    """
    Coverage of the required capital, in percent, capped at ``goal_cap_pct``.

    Returns None when there is no goal (``required <= 0``). Negative capital
    counts as zero coverage.
    """
    if required <= 0:
        return None
    return min(config.goal_cap_pct, max(0.0, capital) / required * 100.0)


def depletion_margin(profile: ClientProfile, depletion_age: int | None) -> float:
    """
    Share of the retirement span during which wealth stays positive (0-1).
    """
    if depletion_age is None:
        return 1.0
    span = profile.life_expectancy - profile.retirement_age
    if span <= 0:
        return 0.0
    return min(1.0, max(0.0, (depletion_age - profile.retirement_age) / span))


def wealth_score(
    coverage_pct: float | None,
    liquidity_ratio: float,
    margin: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> int:
    """
    Composite score in ``[0, 100]``.

    ``round(w_cov * min(1, coverage) + w_liq * liquidity + w_margin * margin)``
    with the weights of ``config.score_weights`` (45 / 35 / 20). A missing
    goal counts as full coverage.
    """
    w_cov, w_liq, w_margin = config.score_weights
    coverage = 1.0 if coverage_pct is None else min(1.0, max(0.0, coverage_pct / 100.0))
    liquidity = min(1.0, max(0.0, liquidity_ratio))
    margin = min(1.0, max(0.0, margin))
    score = round(w_cov * coverage + w_liq * liquidity + w_margin * margin)
    return int(min(100, max(0, score)))


def aggregate(
    trajectories: Mapping[str, Trajectory],
    profile: ClientProfile,
    succession: SuccessionResult,
    nominal_return: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> KPIs:
    """
    Derive the KPIs of an analysis from its base trajectory.

    Args:
        trajectories: Trajectories keyed by scenario id (``base`` is used)
        profile: Profile the trajectories were simulated from
        succession: Succession result of the same profile
        nominal_return: Return the trajectories were simulated with
        config: Engine constants

    Returns:
        KPIs; zeroed apart from the liquidity ratio when there is no base
        trajectory
    """
    base = trajectories.get("base")
    liquidity = succession.liquidity_ratio
    if base is None or not base.points:
        return KPIs(liquidity_ratio=liquidity)

    capital = base.wealth_at(profile.retirement_age)
    required = required_capital(profile, nominal_return)
    coverage = goal_percentage(capital, required, config)
    depletion = base.depletion_age()

    return KPIs(
        capital_at_retirement=capital,
        required_capital=required,
        sustainable_income=sustainable_income(capital, config),
        goal_percentage=coverage,
        wealth_score=wealth_score(
            coverage, liquidity, depletion_margin(profile, depletion), config
        ),
        liquidity_ratio=liquidity,
        depletion_age=depletion,
        final_wealth=base.final_wealth,
    )
