"""
Inverse search over the projection.

One reusable bisection utility, :func:`bisect_threshold`, finds the smallest
input whose (monotone non-decreasing) output reaches a target. The goal
solvers wrap it to answer "how much must I contribute" and "when can I
retire" for a target goal coverage.

Status values of a :class:`GoalSolution`:
    - ``ok``: the target is reached at ``value``
    - ``unreachable``: the target is not reached inside the search bounds;
      ``value`` is the best bound tried
    - ``invalid``: the profile ages are inconsistent, there is no goal or
      the projection failed numerically

The solvers accept the same input as :func:`wealthlab.run` and sanitize it
first; they report problems through the status and never raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.core.diagnostics import D
from wealthlab.core.kinds import S
from wealthlab.core.profile import ClientProfile
from wealthlab.core.sanitize import sanitize_profile
from wealthlab.core.schedule import resolve_schedule
from wealthlab.core.simulator import ages_are_valid, effective_return, simulate
from wealthlab.kpi import goal_percentage, required_capital

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_UNREACHABLE = "unreachable"
STATUS_INVALID = "invalid"


@dataclass(frozen=True)
class BisectionResult:
    """
    Outcome of :func:`bisect_threshold`.

    Attributes:
        value: Smallest tried input reaching the target (``hi`` when unreached)
        output: Output at ``value``
        iterations: Number of evaluations
        reached: Whether ``output >= target``
    """

    value: float
    output: float
    iterations: int
    reached: bool


def bisect_threshold(
    evaluate: Callable[[float], float],
    lo: float,
    hi: float,
    target: float,
    *,
    integer: bool = False,
    tolerance: float = 0.1,
    max_iterations: int = 60,
) -> BisectionResult:
    """
    Find the smallest input in ``[lo, hi]`` whose output reaches ``target``.

    ``evaluate`` must be non-decreasing. The search keeps ``hi`` as the best
    input known to reach the target and stops when its output is within
    ``tolerance`` of the target, when the bracket cannot shrink further
    (adjacent integers in integer mode) or after ``max_iterations``
    evaluations. Because the stopping rule only ever looks at the invariant
    ``evaluate(hi) >= target``, a larger target never yields a smaller input.

    Args:
        evaluate: Monotone function of the input
        lo: Lower bound
        hi: Upper bound
        target: Output to reach
        integer: Search integers only
        tolerance: Accepted overshoot of the output
        max_iterations: Evaluation budget

    Returns:
        BisectionResult

    Example:
        >>> bisect_threshold(lambda x: x * x, 0, 10, 49, integer=True).value
        7
    """
    if integer:
        lo, hi = int(lo), int(hi)
    iterations = 1
    f_lo = evaluate(lo)
    if f_lo >= target:
        return BisectionResult(lo, f_lo, iterations, True)

    iterations += 1
    f_hi = evaluate(hi)
    if f_hi < target:
        return BisectionResult(hi, f_hi, iterations, False)

    while iterations < max_iterations:
        if f_hi - target <= tolerance:
            break
        if integer:
            if hi - lo <= 1:
                break
            mid = (lo + hi) // 2
        else:
            mid = (lo + hi) / 2.0
            if mid <= lo or mid >= hi:
                break
        iterations += 1
        f_mid = evaluate(mid)
        if f_mid >= target:
            hi, f_hi = mid, f_mid
        else:
            lo = mid

    return BisectionResult(hi, f_hi, iterations, True)


@dataclass(frozen=True)
class GoalSolution:
    """
    Result of a goal search.

    Attributes:
        value: Solved monthly contribution or retirement age (None if invalid)
        status: ``ok``, ``unreachable`` or ``invalid``
        coverage: Goal coverage (percent) at ``value``
        iterations: Number of projections run
    """

    value: float | None
    status: str
    coverage: float | None = None
    iterations: int = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "status": self.status,
            "coverage": self.coverage,
            "iterations": self.iterations,
        }


def coverage_for(
    profile: ClientProfile, stress: bool = False, config: EngineConfig = DEFAULT_CONFIG
) -> float:
    """
    Goal coverage (percent, capped) of a profile's base trajectory.

    A retirement that needs no capital counts as fully capped coverage.
    """
    rate = effective_return(profile, stress, config)
    trajectory = simulate(
        profile, resolve_schedule(profile), S.BASE, stress, config=config
    )
    coverage = goal_percentage(
        trajectory.wealth_at(profile.retirement_age),
        required_capital(profile, rate),
        config,
    )
    if coverage is None:
        return config.goal_cap_pct
    return coverage


def _prepare(
    profile: ClientProfile | Mapping[str, Any] | None, config: EngineConfig
) -> ClientProfile | None:
    """Sanitize the solver input; None when no goal can be solved for."""
    clean, diagnostics = sanitize_profile(profile, config)
    if any(d.code == D.ASSUMPTIONS_INVALID for d in diagnostics):
        return None
    if not ages_are_valid(clean) or clean.monthly_cost_retirement <= 0:
        return None
    return clean


def solve_required_contribution(
    profile: ClientProfile | Mapping[str, Any] | None,
    target_coverage_pct: float = 100.0,
    *,
    stress: bool = False,
    config: EngineConfig = DEFAULT_CONFIG,
) -> GoalSolution:
    """
    Smallest base monthly contribution reaching ``target_coverage_pct``.

    Searches ``[0, upper]`` with ``upper = max(10 * contribution, 100000)``,
    doubling the upper bound at most ``config.solver_max_expansions`` times
    while the target is still out of reach.

    Args:
        profile: ``ClientProfile`` or JSON-style mapping, sanitized like :func:`run` input
        target_coverage_pct: Goal coverage to reach, in percent
        stress: Project with the stress haircut
        config: Engine constants (bounds, tolerance, iteration cap)

    Returns:
        GoalSolution with the contribution as ``value``; ``invalid`` for
        inconsistent ages, no goal or a numeric failure
    """
    clean = _prepare(profile, config)
    if clean is None:
        return GoalSolution(None, STATUS_INVALID)

    def evaluate(contribution: float) -> float:
        candidate = clean.with_changes(monthly_contribution=contribution)
        return coverage_for(candidate, stress, config)

    upper = max(
        config.solver_upper_bound_factor * max(0.0, clean.monthly_contribution),
        config.solver_min_upper_bound,
    )
    iterations = 0
    try:
        for _ in range(config.solver_max_expansions + 1):
            result = bisect_threshold(
                evaluate,
                0.0,
                upper,
                target_coverage_pct,
                tolerance=config.solver_tolerance_pct,
                max_iterations=config.solver_max_iterations,
            )
            iterations += result.iterations
            if result.reached:
                break
            upper *= 2.0
    except (ArithmeticError, ValueError) as e:
        logger.warning("contribution search failed: %s", e)
        return GoalSolution(None, STATUS_INVALID, iterations=iterations)

    status = STATUS_OK if result.reached else STATUS_UNREACHABLE
    logger.debug(
        "required contribution for %.1f%%: %.2f (%s, %d steps)",
        target_coverage_pct,
        result.value,
        status,
        iterations,
    )
    return GoalSolution(result.value, status, result.output, iterations)


def solve_required_age(
    profile: ClientProfile | Mapping[str, Any] | None,
    target_coverage_pct: float = 100.0,
    *,
    stress: bool = False,
    config: EngineConfig = DEFAULT_CONFIG,
) -> GoalSolution:
    """
    Earliest retirement age reaching ``target_coverage_pct``.

    Probes integer ages in ``[current_age + 1, life_expectancy]``;
    contributions continue until the candidate retirement age.

    Args:
        profile: ``ClientProfile`` or JSON-style mapping, sanitized like :func:`run` input
        target_coverage_pct: Goal coverage to reach, in percent
        stress: Project with the stress haircut
        config: Engine constants

    Returns:
        GoalSolution with the age as ``value``
    """
    clean = _prepare(profile, config)
    if clean is None:
        return GoalSolution(None, STATUS_INVALID)

    def evaluate(age: float) -> float:
        candidate = clean.with_changes(retirement_age=int(age), contribution_end_age=int(age))
        return coverage_for(candidate, stress, config)

    try:
        result = bisect_threshold(
            evaluate,
            clean.current_age + 1,
            clean.life_expectancy,
            target_coverage_pct,
            integer=True,
            tolerance=config.solver_tolerance_pct,
            max_iterations=config.solver_max_iterations,
        )
    except (ArithmeticError, ValueError) as e:
        logger.warning("retirement age search failed: %s", e)
        return GoalSolution(None, STATUS_INVALID)

    status = STATUS_OK if result.reached else STATUS_UNREACHABLE
    logger.debug(
        "required age for %.1f%%: %s (%s, %d steps)",
        target_coverage_pct,
        result.value,
        status,
        result.iterations,
    )
    return GoalSolution(int(result.value), status, result.output, result.iterations)
