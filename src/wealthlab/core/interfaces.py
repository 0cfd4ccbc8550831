"""
Policy interface protocols for WealthLab.
Defines the contract that all withdrawal policies must satisfy.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .context import SimulationContext


@runtime_checkable
class IWithdrawalPolicy(Protocol):
    """
    Contract for retirement withdrawal policies.
    Responsibilities: decide how much liquid wealth is drawn in each
    retirement year.
    """

    def annual_withdrawal(
        self, ctx: SimulationContext, age: int, wealth: float
    ) -> float:
        """
        Amount withdrawn during the year starting at ``age``.

        Called once per year for ``age >= retirement_age``, in increasing
        age order, with ``wealth`` the liquid wealth at the start of the
        year (before the return is applied). The returned value is
        subtracted after the return and the scheduled flows of the year.
        """
        ...


__all__ = ["IWithdrawalPolicy"]
