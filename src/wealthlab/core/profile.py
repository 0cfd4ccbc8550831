"""
Client profile data model.

All classes are frozen dataclasses: a profile handed to the engine is a
snapshot, and every derived object (candidate profiles used by the goal solver,
scenario variants) is a new instance built with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from wealthlab.config import DEFAULT_CONFIG, EngineConfig

from .kinds import AssetKind, RiskProfile


@dataclass(frozen=True)
class Asset:
    """
    A single holding of the client.

    Attributes:
        id: Identifier unique within the profile
        name: Display name
        amount: Value in ``currency`` units
        currency: ISO code (``BRL``, ``USD``, ``EUR``, ...)
        kind: Bucket the asset belongs to
        plan_type: ``PGBL`` or ``VGBL`` for pension assets, else None
    """

    id: str
    name: str
    amount: float
    currency: str = "BRL"
    kind: AssetKind = AssetKind.LIQUID
    plan_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "currency": self.currency,
            "type": self.kind.value,
            "planType": self.plan_type,
        }


@dataclass(frozen=True)
class ContributionRule:
    """
    Time-bounded replacement of the monthly contribution.

    ``monthly_value`` is signed: negative values are withdrawals (e.g. a
    financing installment). ``end_age`` is inclusive. Rules flagged with
    ``override`` win overlaps against unflagged rules.
    """

    id: str
    start_age: int
    end_age: int
    monthly_value: float
    kind: str = ""
    enabled: bool = True
    override: bool = False

    def covers(self, age: int) -> bool:
        return self.start_age <= age <= self.end_age

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startAge": self.start_age,
            "endAge": self.end_age,
            "monthlyValue": self.monthly_value,
            "kind": self.kind,
            "enabled": self.enabled,
            "override": self.override,
        }


@dataclass(frozen=True)
class CashInEvent:
    """One-time lump-sum inflow landing at ``age``."""

    id: str
    age: int
    value: float
    enabled: bool = True
    label: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "age": self.age,
            "value": self.value,
            "enabled": self.enabled,
            "label": self.label,
        }


@dataclass(frozen=True)
class OutflowGoal:
    """
    One-time planned expense (a car, a wedding) paid out of liquid wealth at ``age``.

    Read from the ``impact`` goals of the scenario editor.
    """

    id: str
    age: int
    value: float
    enabled: bool = True
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "impact",
            "age": self.age,
            "value": self.value,
            "enabled": self.enabled,
            "name": self.name,
        }


@dataclass(frozen=True)
class SuccessionConfig:
    """
    Estate-transfer cost configuration.

    Rates left as None fall back to :class:`~wealthlab.config.EngineConfig`
    values (ITCMD by ``state``).
    """

    state: str = "SP"
    itcmd_rate: float | None = None
    legal_rate: float | None = None
    fees_rate: float | None = None
    fees_fixed: float = 0.0
    exclude_pension_from_inventory: bool = True
    apply_itcmd_to_pension: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "itcmdRate": self.itcmd_rate,
            "legalRate": self.legal_rate,
            "feesRate": self.fees_rate,
            "feesFixed": self.fees_fixed,
            "previdenciaSuccession": {
                "excludeFromInventory": self.exclude_pension_from_inventory,
                "applyITCMD": self.apply_itcmd_to_pension,
            },
        }


@dataclass(frozen=True)
class ScenarioVariant:
    """
    A named projection variant.

    ``policy`` selects the withdrawal policy from the policy registry; the
    optional overrides replace the matching profile fields for this variant
    only.
    """

    id: str
    name: str
    policy: str
    monthly_contribution: float | None = None
    retirement_age: int | None = None
    monthly_cost_retirement: float | None = None

    def apply_to(self, profile: ClientProfile) -> ClientProfile:
        """Return the profile as seen by this variant."""
        changes: dict[str, Any] = {}
        if self.monthly_contribution is not None:
            changes["monthly_contribution"] = self.monthly_contribution
        if self.retirement_age is not None:
            changes["retirement_age"] = self.retirement_age
            changes["contribution_end_age"] = self.retirement_age
        if self.monthly_cost_retirement is not None:
            changes["monthly_cost_retirement"] = self.monthly_cost_retirement
        return replace(profile, **changes) if changes else profile

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "policy": self.policy,
            "monthlyContribution": self.monthly_contribution,
            "retirementAge": self.retirement_age,
            "monthlyCostRetirement": self.monthly_cost_retirement,
        }


@dataclass(frozen=True)
class ClientProfile:
    """
    Immutable engine input.

    Ages are integers; monetary values are BRL unless tied to an asset
    currency; rates are decimals (0.04 = 4%).

    Attributes:
        current_age: Age at the start of the projection
        retirement_age: First age at which retirement withdrawals apply
        contribution_end_age: First age at which the base contribution stops
            (None means the retirement age)
        life_expectancy: Last age of the projection
        monthly_contribution: Base monthly contribution
        monthly_cost_now: Current monthly cost of living (informational)
        monthly_cost_retirement: Target monthly cost in retirement, today's money
        inflation: Annual inflation
        risk_profile: ``conservative``, ``moderate`` or ``bold``
        return_rates: Nominal annual return per risk profile
        nominal_return: Explicit nominal return overriding the risk profile
        assets: Holdings
        contribution_rules: Contribution timeline, in declaration order
        cash_in_events: One-off inflows
        outflow_goals: One-off planned expenses
        fx_rates: Static FX rates keyed ``"USD_BRL"``
        succession: Succession cost configuration
        scenarios: User-defined alternate scenario variants
        illiquid_growth: Annual appreciation of illiquid assets
        reference_year: Calendar year at ``current_age``
    """

    current_age: int = 30
    retirement_age: int = 60
    contribution_end_age: int | None = None
    life_expectancy: int = 90
    monthly_contribution: float = 0.0
    monthly_cost_now: float = 0.0
    monthly_cost_retirement: float = 0.0
    inflation: float = 0.04
    risk_profile: str = RiskProfile.MODERATE
    return_rates: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    nominal_return: float | None = None
    assets: tuple[Asset, ...] = ()
    contribution_rules: tuple[ContributionRule, ...] = ()
    cash_in_events: tuple[CashInEvent, ...] = ()
    outflow_goals: tuple[OutflowGoal, ...] = ()
    fx_rates: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    succession: SuccessionConfig = field(default_factory=SuccessionConfig)
    scenarios: tuple[ScenarioVariant, ...] = ()
    illiquid_growth: float = 0.0
    reference_year: int | None = None

    def effective_return(self, config: EngineConfig = DEFAULT_CONFIG) -> float:
        """
        Nominal annual return used by the projection (before stress).

        An explicit ``nominal_return`` wins; otherwise the rate of the risk
        profile is used, falling back to the neighbouring profiles and then
        to the configured defaults.
        """
        if self.nominal_return is not None:
            return self.nominal_return
        for name in RiskProfile.FALLBACKS[RiskProfile.normalize(self.risk_profile)]:
            if name in self.return_rates:
                return self.return_rates[name]
        return config.return_by_risk_profile.get(
            RiskProfile.normalize(self.risk_profile), config.default_nominal_return
        )

    @property
    def contribution_stop_age(self) -> int:
        if self.contribution_end_age is None:
            return self.retirement_age
        return self.contribution_end_age

    @property
    def horizon_years(self) -> int:
        return self.life_expectancy - self.current_age

    @property
    def retirement_years(self) -> int:
        return max(0, self.life_expectancy - self.retirement_age)

    def with_changes(self, **changes: Any) -> ClientProfile:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase JSON shape accepted by sanitization."""
        return {
            "currentAge": self.current_age,
            "retirementAge": self.retirement_age,
            "contributionEndAge": self.contribution_end_age,
            "lifeExpectancy": self.life_expectancy,
            "monthlyContribution": self.monthly_contribution,
            "monthlyCostNow": self.monthly_cost_now,
            "monthlyCostRetirement": self.monthly_cost_retirement,
            "inflation": self.inflation,
            "profile": self.risk_profile,
            "returnRates": dict(self.return_rates),
            "nominalReturn": self.nominal_return,
            "assets": [a.to_dict() for a in self.assets],
            "contributionTimeline": [r.to_dict() for r in self.contribution_rules],
            "cashInEvents": [e.to_dict() for e in self.cash_in_events],
            "financialGoals": [g.to_dict() for g in self.outflow_goals],
            "fxRates": dict(self.fx_rates),
            "succession": self.succession.to_dict(),
            "scenarios": [s.to_dict() for s in self.scenarios],
            "illiquidGrowth": self.illiquid_growth,
            "referenceYear": self.reference_year,
        }
