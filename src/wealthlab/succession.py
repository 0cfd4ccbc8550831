"""
Succession (estate transfer) cost estimate.

Partitions the client's assets into financial, pension (previdência) and
illiquid buckets, converts everything to the base currency and applies the
transfer tax (ITCMD), legal/notarial fees and court fees.

**Bases:**
    - ``taxable_estate``: financial + illiquid, plus pension unless pension
      is excluded from the probate inventory
    - ``itcmd_base``: the taxable estate, plus pension when it is excluded
      from the inventory but still subject to ITCMD

**Costs:**
    - ``itcmd = itcmd_base * itcmd_rate``
    - ``legal = taxable_estate * legal_rate``
    - ``fees = taxable_estate * fees_rate + fees_fixed``
    - ``liquidity_gap = max(0, total - financial_total)``
"""

from __future__ import annotations

import logging
from types import MappingProxyType

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.core.diagnostics import Diagnostics
from wealthlab.core.kinds import AssetKind
from wealthlab.core.profile import ClientProfile, SuccessionConfig
from wealthlab.core.results import SuccessionCosts, SuccessionResult
from wealthlab.fx import FXConverter

logger = logging.getLogger(__name__)


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def effective_rates(
    succession: SuccessionConfig, config: EngineConfig = DEFAULT_CONFIG
) -> dict[str, float]:
    """
    Resolve the succession rates, applying fallbacks and the upper clamp.

    Returns:
        Mapping with ``itcmd``, ``legal``, ``fees`` and ``feesFixed``
    """
    itcmd = succession.itcmd_rate
    if itcmd is None:
        itcmd = config.itcmd_rate_for(succession.state)
    legal = config.default_legal_rate if succession.legal_rate is None else succession.legal_rate
    fees = config.default_fees_rate if succession.fees_rate is None else succession.fees_rate
    cap = config.max_succession_rate
    return {
        "itcmd": _clamp(itcmd, 0.0, cap),
        "legal": _clamp(legal, 0.0, cap),
        "fees": _clamp(fees, 0.0, cap),
        "feesFixed": max(0.0, succession.fees_fixed),
    }


def calculate_succession(
    profile: ClientProfile,
    config: EngineConfig = DEFAULT_CONFIG,
    diagnostics: Diagnostics | None = None,
) -> SuccessionResult:
    """
    Estimate the estate transfer costs of a profile's current assets.

    Args:
        profile: Sanitized client profile
        config: Engine constants (rate fallbacks, FX fallbacks)
        diagnostics: Collector for FX fallbacks

    Returns:
        SuccessionResult in the base currency

    **Example:**
        ```python
        profile = ClientProfile(assets=(
            Asset("a1", "Brokerage", 1_000_000),
            Asset("a2", "Apartment", 2_000_000, kind=AssetKind.ILLIQUID),
        ))
        result = calculate_succession(profile)
        # ITCMD SP 4% + legal 5% + fees 2% on 3,000,000 = 330,000
        assert result.liquidity_gap == 0.0
        ```
    """
    fx = FXConverter.from_profile(profile, config)

    financial = 0.0
    illiquid = 0.0
    pgbl = 0.0
    vgbl = 0.0
    for asset in profile.assets:
        amount = fx.to_base(asset.amount, asset.currency, diagnostics)
        if asset.kind is AssetKind.LIQUID:
            financial += amount
        elif asset.kind is AssetKind.PENSION:
            if (asset.plan_type or "").upper() == "PGBL":
                pgbl += amount
            else:
                vgbl += amount
        elif asset.kind is AssetKind.ILLIQUID or asset.kind is AssetKind.OTHER:
            illiquid += amount
        else:
            raise AssertionError(f"unhandled asset kind {asset.kind!r}")

    pension = pgbl + vgbl
    total_estate = financial + illiquid + pension

    cfg = profile.succession
    taxable = financial + illiquid
    itcmd_base = taxable
    if cfg.exclude_pension_from_inventory:
        if cfg.apply_itcmd_to_pension:
            itcmd_base += pension
    else:
        taxable += pension
        itcmd_base += pension

    rates = effective_rates(cfg, config)
    costs = SuccessionCosts(
        itcmd=itcmd_base * rates["itcmd"],
        legal=taxable * rates["legal"],
        fees=taxable * rates["fees"] + rates["feesFixed"],
    )
    liquidity_gap = max(0.0, costs.total - financial)

    logger.debug(
        "succession %s: estate %.2f, costs %.2f, gap %.2f",
        cfg.state,
        total_estate,
        costs.total,
        liquidity_gap,
    )
    return SuccessionResult(
        financial_total=financial,
        illiquid_total=illiquid,
        previdencia_total=pension,
        previdencia_pgbl=pgbl,
        previdencia_vgbl=vgbl,
        total_estate=total_estate,
        taxable_estate=taxable,
        itcmd_base=itcmd_base,
        state=cfg.state,
        costs=costs,
        liquidity_gap=liquidity_gap,
        rates=MappingProxyType(rates),
    )
