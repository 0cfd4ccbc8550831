"""
Core module for WealthLab.

This module contains the data model, the schedule resolver, the projection
simulator and the engine facade.
"""

from .context import SimulationContext
from .diagnostics import D, Diagnostic, Diagnostics
from .engine import calculate_succession, run
from .errors import ConfigError
from .interfaces import IWithdrawalPolicy
from .kinds import AssetKind, EngineState, RiskProfile, S
from .profile import (
    Asset,
    CashInEvent,
    ClientProfile,
    ContributionRule,
    OutflowGoal,
    ScenarioVariant,
    SuccessionConfig,
)
from .results import (
    AnalysisResult,
    KPIs,
    NumpyEncoder,
    SuccessionCosts,
    SuccessionResult,
    Trajectory,
    WealthPoint,
)
from .sanitize import normalize_rate, parse_number, sanitize_profile
from .schedule import ContributionSchedule, age_mask, resolve_schedule
from .simulator import effective_return, opening_balances, simulate

__all__ = [
    # Errors and diagnostics
    "ConfigError",
    "D",
    "Diagnostic",
    "Diagnostics",
    # Kinds
    "AssetKind",
    "EngineState",
    "RiskProfile",
    "S",
    # Data model
    "Asset",
    "CashInEvent",
    "ClientProfile",
    "ContributionRule",
    "OutflowGoal",
    "ScenarioVariant",
    "SuccessionConfig",
    # Results
    "AnalysisResult",
    "KPIs",
    "NumpyEncoder",
    "SuccessionCosts",
    "SuccessionResult",
    "Trajectory",
    "WealthPoint",
    # Sanitization
    "sanitize_profile",
    "parse_number",
    "normalize_rate",
    # Schedule
    "ContributionSchedule",
    "age_mask",
    "resolve_schedule",
    # Context and interfaces
    "SimulationContext",
    "IWithdrawalPolicy",
    # Simulation
    "effective_return",
    "opening_balances",
    "simulate",
    # Facade
    "run",
    "calculate_succession",
]
