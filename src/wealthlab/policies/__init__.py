"""
Withdrawal policy implementations for WealthLab.

Each scenario variant selects a policy by its kind discriminator. Policies
decide how much liquid wealth is drawn in every retirement year; everything
else (returns, scheduled flows, cash-ins) is shared by all variants.

Registry System:
The module automatically registers the default policies in the global
registry, making them available to scenario variants with matching kinds.
"""

from .base import PolicyBase
from .consumption import PolicyConsumption, amortizing_payment
from .preservation import PolicyPreservation
from .registry import PolicyRegistry, get_policy, register_defaults, register_policy

# Register all default policies when module is imported
register_defaults()

__all__ = [
    "PolicyBase",
    "PolicyConsumption",
    "PolicyPreservation",
    "amortizing_payment",
    # Registry
    "PolicyRegistry",
    "get_policy",
    "register_policy",
    "register_defaults",
]
