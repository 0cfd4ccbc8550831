"""
Base withdrawal policy: the target retirement cost, inflated.
"""

from __future__ import annotations

from wealthlab.core.context import SimulationContext
from wealthlab.core.interfaces import IWithdrawalPolicy


class PolicyBase(IWithdrawalPolicy):
    """
    Literal retirement cost policy (kind: 'base').

    Withdraws ``monthly_cost_retirement * 12`` expressed in today's money
    and inflated from ``current_age``:

        withdrawal(a) = cost * 12 * (1 + inflation) ** (a - current_age)

    The withdrawal does not depend on the wealth left; a plan that cannot
    fund it shows negative liquid wealth from the depletion age on.
    """

    def annual_withdrawal(
        self, ctx: SimulationContext, age: int, wealth: float
    ) -> float:
        profile = ctx.profile
        years = age - profile.current_age
        return profile.monthly_cost_retirement * 12.0 * (1.0 + ctx.inflation) ** years
