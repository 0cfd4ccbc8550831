"""
Contribution schedule resolution.

Turns the base contribution, the contribution timeline, the cash-in
events and the outflow goals of a profile into per-age arrays over the
projection range. Each rule *replaces* the base contribution for the ages
it covers; overlaps are resolved by applying unflagged rules in declaration
order, then rules flagged ``override`` in declaration order, the last
applied rule winning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .diagnostics import D, Diagnostics
from .profile import CashInEvent, ClientProfile, ContributionRule, OutflowGoal

logger = logging.getLogger(__name__)


def age_mask(ages: np.ndarray, start_age: int | None, end_age: int | None) -> np.ndarray:
    """
    Boolean mask of the ages inside ``[start_age, end_age]`` (inclusive).

    None on either side means the range is open on that side.

    **Example:**
        ```python
        ages = np.arange(30, 91)
        mask = age_mask(ages, 40, 44)
        assert mask.sum() == 5
        ```
    """
    mask = np.ones(len(ages), dtype=bool)
    if start_age is not None:
        mask &= ages >= start_age
    if end_age is not None:
        mask &= ages <= end_age
    return mask


@dataclass(frozen=True)
class ContributionSchedule:
    """
    Resolved per-age flows.

    Attributes:
        ages: Integer ages ``current_age .. life_expectancy``
        monthly: Monthly contribution in force during each age (signed)
        cash_in: Lump sums landing at each age
        outflow: One-off expenses paid at each age
    """

    ages: np.ndarray
    monthly: np.ndarray
    cash_in: np.ndarray
    outflow: np.ndarray

    def _index(self, age: int) -> int | None:
        if len(self.ages) == 0:
            return None
        i = int(age) - int(self.ages[0])
        if 0 <= i < len(self.ages):
            return i
        return None

    def monthly_at(self, age: int) -> float:
        i = self._index(age)
        return 0.0 if i is None else float(self.monthly[i])

    def cash_in_at(self, age: int) -> float:
        i = self._index(age)
        return 0.0 if i is None else float(self.cash_in[i])

    def outflow_at(self, age: int) -> float:
        i = self._index(age)
        return 0.0 if i is None else float(self.outflow[i])

    def net_lump_sum_at(self, age: int) -> float:
        """Cash-in minus outflow landing at ``age``."""
        return self.cash_in_at(age) - self.outflow_at(age)

    @property
    def total_cash_in(self) -> float:
        return float(self.cash_in.sum())

    @property
    def total_outflow(self) -> float:
        return float(self.outflow.sum())


def _usable_rules(
    rules: tuple[ContributionRule, ...], diagnostics: Diagnostics
) -> list[ContributionRule]:
    usable = []
    for i, rule in enumerate(rules):
        if not rule.enabled:
            continue
        if rule.end_age < rule.start_age:
            diagnostics.add(
                D.RULE_DROPPED,
                f"contributionTimeline[{i}]",
                f"end age {rule.end_age} before start age {rule.start_age}",
                rule.id,
            )
            continue
        usable.append(rule)
    # Stable sort: override-flagged rules are applied last and so win overlaps.
    return sorted(usable, key=lambda rule: rule.override)


def _lump_sums(
    items: tuple[CashInEvent | OutflowGoal, ...],
    key: str,
    ages: np.ndarray,
    diagnostics: Diagnostics,
) -> np.ndarray:
    """Sum the enabled, positive, in-range one-off amounts per age."""
    first, last = int(ages[0]), int(ages[-1])
    sums = np.zeros(len(ages))
    for i, item in enumerate(items):
        path = f"{key}[{i}]"
        if not item.enabled:
            continue
        if not item.value > 0:
            diagnostics.add(D.EVENT_IGNORED, path, "non-positive value", item.value)
            continue
        if not first <= item.age <= last:
            diagnostics.add(
                D.EVENT_IGNORED,
                path,
                f"age outside projection range [{first}, {last}]",
                item.age,
            )
            continue
        sums[item.age - first] += item.value
    return sums


def resolve_schedule(
    profile: ClientProfile, diagnostics: Diagnostics | None = None
) -> ContributionSchedule:
    """
    Resolve the contribution schedule of a profile.

    Args:
        profile: Sanitized client profile
        diagnostics: Collector for dropped rules, ignored events and goals

    Returns:
        ContributionSchedule over ``current_age .. life_expectancy``
    """
    if diagnostics is None:
        diagnostics = Diagnostics()

    first = int(profile.current_age)
    last = max(first, int(profile.life_expectancy))
    ages = np.arange(first, last + 1)

    monthly = np.where(
        ages < profile.contribution_stop_age, float(profile.monthly_contribution), 0.0
    )
    for rule in _usable_rules(profile.contribution_rules, diagnostics):
        monthly[age_mask(ages, rule.start_age, rule.end_age)] = rule.monthly_value

    cash_in = _lump_sums(profile.cash_in_events, "cashInEvents", ages, diagnostics)
    outflow = _lump_sums(profile.outflow_goals, "financialGoals", ages, diagnostics)

    logger.debug(
        "resolved schedule %d..%d: %d rules, cash-in total %.2f, outflow total %.2f",
        first,
        last,
        len(profile.contribution_rules),
        cash_in.sum(),
        outflow.sum(),
    )
    return ContributionSchedule(ages=ages, monthly=monthly, cash_in=cash_in, outflow=outflow)
