"""
Consumption withdrawal policy: spend the liquid wealth down to zero.
"""

from __future__ import annotations

import logging
import math

from wealthlab.core.context import SimulationContext
from wealthlab.core.interfaces import IWithdrawalPolicy

logger = logging.getLogger(__name__)


def amortizing_payment(
    opening_wealth: float,
    annual_flows: list[float],
    lump_sums: list[float],
    rate: float,
) -> float:
    """
    Constant annual payment that leaves zero wealth after ``len(annual_flows)`` years.

    Each year the wealth earns ``rate``, receives ``annual_flows[k]``, pays
    the constant amount and then receives ``lump_sums[k]``. Solving
    ``W_n = 0`` for the payment gives:

        P = (W0 * (1+r)^n + sum(F_k * (1+r)^(n-1-k)) + sum(E_k * (1+r)^(n-1-k))) / s_n

    with ``s_n = ((1+r)^n - 1) / r`` (``n`` when ``r == 0``).

    ``r`` is taken as ``(1 + rate) - 1``, the step the projection actually
    compounds with, so rates too small to move ``1 + rate`` amortize like 0.

    Args:
        opening_wealth: Wealth at the start of the first year
        annual_flows: Scheduled net flows per year
        lump_sums: Net lump sums (cash-ins minus outflows) at the end of each year
        rate: Annual return

    Returns:
        The payment, or 0.0 when there are no years to amortize over
    """
    n = len(annual_flows)
    if n == 0:
        return 0.0
    growth = 1.0 + rate
    future_value = opening_wealth * growth**n
    for k in range(n):
        factor = growth ** (n - 1 - k)
        future_value += (annual_flows[k] + lump_sums[k]) * factor
    step = growth - 1.0
    if step == 0.0:
        annuity_factor = float(n)
    elif growth > 0.0:
        annuity_factor = math.expm1(n * math.log1p(step)) / step
    else:
        annuity_factor = (growth**n - 1.0) / step
    return future_value / annuity_factor


class PolicyConsumption(IWithdrawalPolicy):
    """
    Full consumption policy (kind: 'consumption').

    Solves once, at the retirement age, the constant annual withdrawal that
    drives liquid wealth to exactly zero at ``life_expectancy`` given the
    assumed return and the known future scheduled flows, cash-ins and
    outflow goals, then applies it every retirement year. A negative
    solution (wealth already below zero at retirement) is floored at zero.
    """

    STATE_KEY = "consumption_payment"

    def annual_withdrawal(
        self, ctx: SimulationContext, age: int, wealth: float
    ) -> float:
        if self.STATE_KEY not in ctx.policy_state:
            ctx.policy_state[self.STATE_KEY] = self._solve(ctx, age, wealth)
        return ctx.policy_state[self.STATE_KEY]

    def _solve(self, ctx: SimulationContext, age: int, wealth: float) -> float:
        last = ctx.profile.life_expectancy
        ages = range(age, last)
        flows = [ctx.schedule.monthly_at(a) * 12.0 for a in ages]
        lump_sums = [ctx.schedule.net_lump_sum_at(a + 1) for a in ages]
        payment = amortizing_payment(wealth, flows, lump_sums, ctx.nominal_return)
        logger.debug(
            "consumption payment at age %d over %d years: %.2f", age, len(flows), payment
        )
        return max(0.0, payment)
