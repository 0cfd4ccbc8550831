"""
Policy registry setup for WealthLab.
"""

from __future__ import annotations

from wealthlab.core.errors import ConfigError
from wealthlab.core.interfaces import IWithdrawalPolicy
from wealthlab.core.kinds import S

from .base import PolicyBase
from .consumption import PolicyConsumption
from .preservation import PolicyPreservation

PolicyRegistry: dict[str, IWithdrawalPolicy] = {}


def register_policy(kind: str, policy: IWithdrawalPolicy) -> None:
    """
    Register a withdrawal policy under a scenario kind.

    Raises:
        ConfigError: If ``kind`` is empty or ``policy`` does not implement
            :class:`IWithdrawalPolicy`
    """
    key = (kind or "").strip().lower()
    if not key:
        raise ConfigError("Policy kind must be a non-empty string")
    if not isinstance(policy, IWithdrawalPolicy):
        raise ConfigError(f"Policy for '{key}' does not implement IWithdrawalPolicy")
    PolicyRegistry[key] = policy


def get_policy(kind: str) -> IWithdrawalPolicy:
    """
    Look up the withdrawal policy registered for a scenario kind.

    Raises:
        ConfigError: If no policy is registered under ``kind``
    """
    key = (kind or "").strip().lower()
    if key not in PolicyRegistry:
        available = ", ".join(sorted(PolicyRegistry))
        raise ConfigError(f"Unknown scenario policy '{kind}'. Available: {available}")
    return PolicyRegistry[key]


def register_defaults():
    """
    Register the built-in withdrawal policies in the global registry.

    Registered Policies:
        - 'base': Inflated retirement cost
        - 'consumption': Constant withdrawal depleting wealth at life expectancy
        - 'preservation': Withdraw the real return only

    Note:
        This function is automatically called when the module is imported.
        Additional policies can be registered with :func:`register_policy`.
    """
    PolicyRegistry[S.BASE] = PolicyBase()
    PolicyRegistry[S.CONSUMPTION] = PolicyConsumption()
    PolicyRegistry[S.PRESERVATION] = PolicyPreservation()
