"""
Results and output structures for WealthLab.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np
import pandas as pd

from .diagnostics import Diagnostic
from .kinds import EngineState

TRAJECTORY_COLUMNS = [
    "age",
    "year",
    "liquid_wealth",
    "illiquid_wealth",
    "total_wealth",
    "applied_cash_in",
    "applied_outflow",
    "contribution",
    "withdrawal",
]


@dataclass(frozen=True)
class WealthPoint:
    """
    Wealth snapshot at the start of an age.

    Attributes:
        age: Integer age
        year: Calendar year (or offset from the start when no reference year)
        liquid_wealth: Liquid + pension wealth in BRL; negative means depleted
        illiquid_wealth: Illiquid holdings in BRL
        applied_cash_in: Lump sum that landed at this age
        applied_outflow: One-off expense paid at this age
        contribution: Net scheduled flow of the year that led to this point
        withdrawal: Policy withdrawal of the year that led to this point
    """

    age: int
    year: int
    liquid_wealth: float
    illiquid_wealth: float = 0.0
    applied_cash_in: float = 0.0
    applied_outflow: float = 0.0
    contribution: float = 0.0
    withdrawal: float = 0.0

    @property
    def total_wealth(self) -> float:
        return self.liquid_wealth + self.illiquid_wealth

    def to_dict(self) -> dict[str, Any]:
        return {
            "age": self.age,
            "year": self.year,
            "liquidWealth": self.liquid_wealth,
            "illiquidWealth": self.illiquid_wealth,
            "appliedCashIn": self.applied_cash_in,
            "appliedOutflow": self.applied_outflow,
            "contribution": self.contribution,
            "withdrawal": self.withdrawal,
        }


@dataclass(frozen=True)
class Trajectory:
    """
    Ordered, gap-free sequence of wealth points for one scenario variant.

    **Example Usage:**
        ```python
        result = run(profile)
        base = result.trajectories["base"]
        df = base.to_frame()
        print(df.loc[60, "liquid_wealth"])
        ```
    """

    scenario_id: str
    name: str
    policy: str
    points: tuple[WealthPoint, ...] = ()
    assumptions_valid: bool = True

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def ages(self) -> np.ndarray:
        return np.array([p.age for p in self.points], dtype=int)

    @property
    def liquid_wealth(self) -> np.ndarray:
        return np.array([p.liquid_wealth for p in self.points], dtype=float)

    def point_at(self, age: int) -> WealthPoint | None:
        """Return the point at ``age``, or None outside the trajectory."""
        if not self.points:
            return None
        i = int(age) - self.points[0].age
        if 0 <= i < len(self.points):
            return self.points[i]
        return None

    def wealth_at(self, age: int) -> float:
        point = self.point_at(age)
        return 0.0 if point is None else point.liquid_wealth

    @property
    def final_wealth(self) -> float:
        return self.points[-1].liquid_wealth if self.points else 0.0

    def is_finite(self) -> bool:
        """Whether every monetary value of the trajectory is finite."""
        values = self.to_frame().drop(columns="year").to_numpy(dtype=float)
        return bool(np.isfinite(values).all())

    def depletion_age(self) -> int | None:
        """First age at which liquid wealth is negative."""
        for p in self.points:
            if p.liquid_wealth < 0:
                return p.age
        return None

    def to_frame(self) -> pd.DataFrame:
        """
        Tabular view indexed by age.

        Columns follow ``TRAJECTORY_COLUMNS`` (minus ``age``, used as index).
        """
        rows = [
            {
                "age": p.age,
                "year": p.year,
                "liquid_wealth": p.liquid_wealth,
                "illiquid_wealth": p.illiquid_wealth,
                "total_wealth": p.total_wealth,
                "applied_cash_in": p.applied_cash_in,
                "applied_outflow": p.applied_outflow,
                "contribution": p.contribution,
                "withdrawal": p.withdrawal,
            }
            for p in self.points
        ]
        df = pd.DataFrame(rows, columns=TRAJECTORY_COLUMNS)
        return df.set_index("age")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.scenario_id,
            "name": self.name,
            "policy": self.policy,
            "assumptionsValid": self.assumptions_valid,
            "points": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class SuccessionCosts:
    """Estate transfer costs in BRL."""

    itcmd: float = 0.0
    legal: float = 0.0
    fees: float = 0.0

    @property
    def total(self) -> float:
        return self.itcmd + self.legal + self.fees

    def to_dict(self) -> dict[str, float]:
        return {
            "itcmd": self.itcmd,
            "legal": self.legal,
            "fees": self.fees,
            "total": self.total,
        }


@dataclass(frozen=True)
class SuccessionResult:
    """
    Estate breakdown and transfer cost estimate.

    Attributes:
        financial_total: Liquid assets in BRL
        illiquid_total: Illiquid and other assets in BRL
        previdencia_total: Pension assets in BRL (``pgbl`` + ``vgbl``)
        previdencia_pgbl / previdencia_vgbl: Pension split by plan type
        total_estate: Sum of all buckets
        taxable_estate: Base for legal fees and court fees
        itcmd_base: Base for the transfer tax
        state: Jurisdiction used for the ITCMD fallback
        costs: Transfer tax, legal and court fees
        liquidity_gap: Costs not covered by financial assets (>= 0)
        rates: Effective rates (``itcmd``, ``legal``, ``fees``) and ``feesFixed``
    """

    financial_total: float = 0.0
    illiquid_total: float = 0.0
    previdencia_total: float = 0.0
    previdencia_pgbl: float = 0.0
    previdencia_vgbl: float = 0.0
    total_estate: float = 0.0
    taxable_estate: float = 0.0
    itcmd_base: float = 0.0
    state: str = "SP"
    costs: SuccessionCosts = field(default_factory=SuccessionCosts)
    liquidity_gap: float = 0.0
    rates: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))

    def is_finite(self) -> bool:
        values = (
            self.financial_total,
            self.illiquid_total,
            self.previdencia_total,
            self.total_estate,
            self.itcmd_base,
            self.costs.total,
            self.liquidity_gap,
        )
        return all(math.isfinite(v) for v in values)

    @property
    def liquidity_ratio(self) -> float:
        """Share of the estate held in financial assets (0 when empty)."""
        if self.total_estate <= 0:
            return 0.0
        return self.financial_total / self.total_estate

    def to_dict(self) -> dict[str, Any]:
        return {
            "financialTotal": self.financial_total,
            "illiquidTotal": self.illiquid_total,
            "previdenciaTotal": self.previdencia_total,
            "previdenciaPGBL": self.previdencia_pgbl,
            "previdenciaVGBL": self.previdencia_vgbl,
            "totalEstate": self.total_estate,
            "taxableEstate": self.taxable_estate,
            "itcmdBase": self.itcmd_base,
            "state": self.state,
            "costs": self.costs.to_dict(),
            "liquidityGap": self.liquidity_gap,
            "rates": dict(self.rates),
        }


@dataclass(frozen=True)
class KPIs:
    """Aggregate metrics of one analysis."""

    capital_at_retirement: float = 0.0
    required_capital: float = 0.0
    sustainable_income: float = 0.0
    goal_percentage: float | None = None
    wealth_score: int = 0
    liquidity_ratio: float = 0.0
    depletion_age: int | None = None
    final_wealth: float = 0.0

    def is_finite(self) -> bool:
        values = [
            self.capital_at_retirement,
            self.required_capital,
            self.sustainable_income,
            self.liquidity_ratio,
            self.final_wealth,
        ]
        if self.goal_percentage is not None:
            values.append(self.goal_percentage)
        return all(math.isfinite(v) for v in values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "capitalAtRetirement": self.capital_at_retirement,
            "requiredCapital": self.required_capital,
            "sustainableIncome": self.sustainable_income,
            "goalPercentage": self.goal_percentage,
            "wealthScore": self.wealth_score,
            "liquidityRatio": self.liquidity_ratio,
            "depletionAge": self.depletion_age,
            "finalWealth": self.final_wealth,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Immutable output of :func:`wealthlab.core.engine.run`.

    ``trajectories`` preserves insertion order: the built-in policies first
    (``base``, ``consumption``, ``preservation``), then user variants.
    """

    state: EngineState
    assumptions_valid: bool
    stress: bool
    kpis: KPIs
    trajectories: Mapping[str, Trajectory]
    succession: SuccessionResult
    diagnostics: tuple[Diagnostic, ...] = ()
    inputs: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def base(self) -> Trajectory | None:
        return self.trajectories.get("base")

    def compare_frame(self, scenario_ids: list[str] | None = None) -> pd.DataFrame:
        """
        Stack the trajectories into one tidy DataFrame.

        Args:
            scenario_ids: Trajectories to include. If None, includes all.

        Returns:
            DataFrame with the trajectory columns plus ``scenario_id`` and
            ``scenario_name``.

        Raises:
            ValueError: If scenario_ids contains unknown scenario IDs
        """
        if scenario_ids is None:
            scenario_ids = list(self.trajectories)

        invalid_ids = set(scenario_ids) - set(self.trajectories)
        if invalid_ids:
            raise ValueError(f"Unknown scenario IDs: {sorted(invalid_ids)}")

        dfs = []
        for scenario_id in scenario_ids:
            trajectory = self.trajectories[scenario_id]
            df = trajectory.to_frame().reset_index()
            df["scenario_id"] = trajectory.scenario_id
            df["scenario_name"] = trajectory.name
            dfs.append(df)

        if not dfs:
            return pd.DataFrame(columns=TRAJECTORY_COLUMNS + ["scenario_id", "scenario_name"])
        return pd.concat(dfs, ignore_index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "assumptionsValid": self.assumptions_valid,
            "stress": self.stress,
            "kpis": self.kpis.to_dict(),
            "trajectories": {k: t.to_dict() for k, t in self.trajectories.items()},
            "succession": self.succession.to_dict(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "inputs": dict(self.inputs),
        }


# JSON encoder for numpy types
class NumpyEncoder:
    """Custom JSON encoder hook that handles numpy types."""

    @staticmethod
    def encode(obj):
        """Convert numpy types to native Python types for JSON serialization."""
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, MappingProxyType):
            return dict(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
