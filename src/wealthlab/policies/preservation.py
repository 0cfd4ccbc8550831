"""
Preservation withdrawal policy: consume only the real return.
"""

from __future__ import annotations

from wealthlab.core.context import SimulationContext
from wealthlab.core.interfaces import IWithdrawalPolicy


class PolicyPreservation(IWithdrawalPolicy):
    """
    Capital preservation policy (kind: 'preservation').

    Withdraws the part of the year's return that exceeds inflation,
    ``max(0, wealth * (r - i))``, so that without other flows wealth grows
    exactly with inflation and the principal stays constant in real terms.
    Nothing is withdrawn while wealth is non-positive or the return does not
    beat inflation.
    """

    def annual_withdrawal(
        self, ctx: SimulationContext, age: int, wealth: float
    ) -> float:
        return max(0.0, wealth * (ctx.nominal_return - ctx.inflation))
