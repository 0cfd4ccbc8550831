"""
Engine configuration for WealthLab.

Every constant the engine relies on lives here so that jurisdiction rates,
stress parameters and solver limits can be varied without touching the
calculation code. ``DEFAULT_CONFIG`` is used whenever a caller does not
pass its own :class:`EngineConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

# ITCMD (estate transfer tax) fallback rates per Brazilian state.
DEFAULT_ITCMD_BY_STATE: Mapping[str, float] = MappingProxyType(
    {
        "SP": 0.04,
        "RJ": 0.08,
        "MG": 0.05,
        "RS": 0.06,
        "SC": 0.08,
        "PR": 0.04,
        "BA": 0.08,
        "PE": 0.08,
        "CE": 0.08,
        "GO": 0.08,
        "DF": 0.06,
    }
)

DEFAULT_FX_RATES: Mapping[str, float] = MappingProxyType(
    {
        "USD_BRL": 5.0,
        "EUR_BRL": 5.5,
    }
)

DEFAULT_RETURN_BY_RISK_PROFILE: Mapping[str, float] = MappingProxyType(
    {
        "conservative": 0.08,
        "moderate": 0.10,
        "bold": 0.12,
    }
)


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable set of engine constants.

    Attributes:
        base_currency: Currency every amount is converted to before aggregation
        stress_return_haircut: Subtracted from the nominal return when the
            stress flag is on (0.02 = two percentage points)
        safe_withdrawal_rate: Annual rate used for sustainable income
        default_inflation: Inflation used when the profile omits it
        default_nominal_return: Return used when no rate can be resolved
        return_by_risk_profile: Fallback nominal return per risk profile
        default_current_age / default_retirement_age / default_life_expectancy:
            Ages used when the profile omits them
        max_age: Upper bound for any age in the simulation
        default_state: Jurisdiction used for succession when none is given
        itcmd_by_state: ITCMD fallback table
        default_itcmd_rate: ITCMD fallback for states missing from the table
        default_legal_rate: Legal/notarial fee fallback
        default_fees_rate: Court fee fallback
        max_succession_rate: Upper clamp for any succession rate
        fx_rates: Fallback FX rates keyed ``"<CCY>_<BASE>"``
        goal_cap_pct: Upper cap on the goal coverage KPI
        solver_tolerance_pct: Coverage tolerance (percentage points) for
            the goal solver
        solver_max_iterations: Hard cap on bisection steps
        solver_min_upper_bound: Minimum monthly contribution upper bound
        solver_upper_bound_factor: Upper bound as a multiple of the current
            contribution
        solver_max_expansions: Number of upper-bound doublings allowed
        score_weights: Weights of (coverage, liquidity, depletion margin)
            in the wealth score; they sum to 100
    """

    base_currency: str = "BRL"
    stress_return_haircut: float = 0.02
    safe_withdrawal_rate: float = 0.04

    default_inflation: float = 0.04
    default_nominal_return: float = 0.10
    return_by_risk_profile: Mapping[str, float] = field(
        default_factory=lambda: DEFAULT_RETURN_BY_RISK_PROFILE
    )

    default_current_age: int = 30
    default_retirement_age: int = 60
    default_life_expectancy: int = 90
    max_age: int = 120

    default_state: str = "SP"
    itcmd_by_state: Mapping[str, float] = field(
        default_factory=lambda: DEFAULT_ITCMD_BY_STATE
    )
    default_itcmd_rate: float = 0.04
    default_legal_rate: float = 0.05
    default_fees_rate: float = 0.02
    max_succession_rate: float = 0.2

    fx_rates: Mapping[str, float] = field(default_factory=lambda: DEFAULT_FX_RATES)

    goal_cap_pct: float = 150.0

    solver_tolerance_pct: float = 0.1
    solver_max_iterations: int = 60
    solver_min_upper_bound: float = 100_000.0
    solver_upper_bound_factor: float = 10.0
    solver_max_expansions: int = 5

    score_weights: tuple[float, float, float] = (45.0, 35.0, 20.0)

    def itcmd_rate_for(self, state: str | None) -> float:
        """Fallback ITCMD rate for a jurisdiction code."""
        if state:
            rate = self.itcmd_by_state.get(state.upper())
            if rate is not None:
                return rate
        return self.default_itcmd_rate

    def with_overrides(self, **changes: Any) -> EngineConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


DEFAULT_CONFIG = EngineConfig()
