"""
Context classes for WealthLab simulation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from wealthlab.config import EngineConfig

from .profile import ClientProfile
from .schedule import ContributionSchedule


@dataclass
class SimulationContext:
    """
    Context object passed to withdrawal policies during one simulation.

    A fresh context is built for every trajectory, so policies may keep
    per-run values (e.g. a payment solved once at retirement) in
    ``policy_state`` while the policy objects themselves stay shared and
    stateless.

    Attributes:
        profile: Profile being projected (already adjusted for the variant)
        schedule: Resolved contribution schedule
        config: Engine constants
        nominal_return: Annual return after the stress haircut
        inflation: Annual inflation
        stress: Whether the stress haircut is applied
        policy_state: Scratch space owned by the active policy
    """

    profile: ClientProfile
    schedule: ContributionSchedule
    config: EngineConfig
    nominal_return: float
    inflation: float
    stress: bool = False
    policy_state: dict[str, Any] = field(default_factory=dict)

    @property
    def real_return(self) -> float:
        """Fisher real return ``(1 + r) / (1 + i) - 1``."""
        return (1.0 + self.nominal_return) / (1.0 + self.inflation) - 1.0
