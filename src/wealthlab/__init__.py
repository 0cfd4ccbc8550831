"""
WealthLab - Financial Projection & Succession Engine

WealthLab is a pure, deterministic calculator for personal wealth planning.
It takes a client's financial profile (ages, costs, contributions, assets,
one-off cash events, stress-test flag) and produces year-by-year wealth
trajectories, aggregate KPIs and an estate succession cost breakdown.

Key Features:
- **Deterministic**: Identical inputs give identical outputs; no clock, no I/O
- **Forgiving Input**: Malformed fields are defaulted with recorded diagnostics
- **Policy Driven**: Withdrawal policies are selected by 'kind' discriminators
- **Extensible**: Add new scenario variants by registering a policy
- **Inverse Solving**: Find the contribution or retirement age reaching a goal
- **Tabular Output**: Trajectories convert to pandas DataFrames for reports

Architecture Overview:
- **Sanitization**: Normalizes editor JSON into an immutable ClientProfile
- **Schedule Resolver**: Merges contribution rules and cash-in events per age
- **Simulator**: Advances wealth age by age under a withdrawal policy
- **Policy Registry**: Maps scenario kinds to withdrawal policies
- **Succession**: ITCMD, legal and court fees, liquidity gap
- **KPI Aggregator**: Required capital, coverage, wealth score, depletion age
- **Goal Solver**: Bounded bisection over contribution or retirement age
- **Engine Facade**: ``run`` and ``calculate_succession``

Quick Start:
    ```python
    from wealthlab import run

    result = run({
        "currentAge": 35,
        "retirementAge": 62,
        "lifeExpectancy": 92,
        "monthlyContribution": 3000,
        "monthlyCostRetirement": 12000,
        "inflation": 0.04,
        "profile": "moderate",
        "assets": [
            {"name": "Brokerage", "amount": 250000, "type": "financial"},
            {"name": "Apartment", "amount": 900000, "type": "real_estate"},
        ],
        "cashInEvents": [{"age": 50, "value": 200000, "label": "Inheritance"}],
    })

    print(result.kpis.wealth_score)
    print(result.trajectories["base"].to_frame().tail())
    print(result.succession.costs.total)
    ```

Available Scenario Policies:
    - 'base': Inflated retirement cost, withdrawn literally
    - 'consumption': Constant withdrawal depleting wealth at life expectancy
    - 'preservation': Withdraw the real return only

Extending the System:
    To add a new scenario variant:
    1. Create a class implementing ``IWithdrawalPolicy``
    2. Register it with ``register_policy("my-kind", MyPolicy())``
    3. Reference the kind from a profile scenario (``{"policy": "my-kind"}``)
"""

# Version information
__version__ = "0.1.0"
__author__ = "WealthLab Team"
__description__ = "Financial Projection & Succession Engine"

# Import core components for easy access
from .config import DEFAULT_CONFIG, EngineConfig
from .core import (
    AnalysisResult,
    Asset,
    AssetKind,
    CashInEvent,
    ClientProfile,
    ConfigError,
    ContributionRule,
    ContributionSchedule,
    Diagnostic,
    EngineState,
    IWithdrawalPolicy,
    KPIs,
    OutflowGoal,
    S,
    ScenarioVariant,
    SimulationContext,
    SuccessionConfig,
    SuccessionResult,
    Trajectory,
    WealthPoint,
    calculate_succession,
    resolve_schedule,
    run,
    sanitize_profile,
    simulate,
)

# Import FX utilities
from .fx import FXConverter, FxExposure, fx_exposure

# Import KPI utilities
from .kpi import (
    aggregate,
    goal_percentage,
    required_capital,
    sustainable_income,
    wealth_score,
)

# Import policy registry
from .policies import PolicyRegistry, get_policy, register_policy

# Import goal solver
from .solver import (
    GoalSolution,
    bisect_threshold,
    solve_required_age,
    solve_required_contribution,
)

# Define what gets imported with "from wealthlab import *"
__all__ = [
    # Facade
    "run",
    "calculate_succession",
    "AnalysisResult",
    "EngineState",
    # Configuration
    "EngineConfig",
    "DEFAULT_CONFIG",
    "ConfigError",
    # Data model
    "ClientProfile",
    "Asset",
    "AssetKind",
    "ContributionRule",
    "CashInEvent",
    "OutflowGoal",
    "SuccessionConfig",
    "ScenarioVariant",
    "sanitize_profile",
    "Diagnostic",
    # Projection
    "ContributionSchedule",
    "resolve_schedule",
    "simulate",
    "SimulationContext",
    "Trajectory",
    "WealthPoint",
    # Policies
    "S",
    "IWithdrawalPolicy",
    "PolicyRegistry",
    "get_policy",
    "register_policy",
    # Succession
    "SuccessionResult",
    # FX utilities
    "FXConverter",
    "FxExposure",
    "fx_exposure",
    # KPI utilities
    "KPIs",
    "aggregate",
    "goal_percentage",
    "required_capital",
    "sustainable_income",
    "wealth_score",
    # Goal solver
    "GoalSolution",
    "bisect_threshold",
    "solve_required_contribution",
    "solve_required_age",
]
