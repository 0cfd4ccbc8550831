"""
Foreign Exchange (FX) conversion utilities.

Rates are static inputs: the profile carries its own rates keyed
``"<CCY>_<BASE>"`` (``"USD_BRL": 5.1``) and the engine configuration
supplies fallbacks. No rate is ever fetched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping

import pandas as pd

from wealthlab.config import DEFAULT_CONFIG, EngineConfig
from wealthlab.core.diagnostics import D, Diagnostics

if TYPE_CHECKING:
    from wealthlab.core.profile import Asset, ClientProfile

logger = logging.getLogger(__name__)


def parse_rate_key(key: str) -> tuple[str, str] | None:
    """Split ``"USD_BRL"`` into ``("USD", "BRL")``."""
    parts = str(key).strip().upper().split("_")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


class FXConverter:
    """
    Static-rate FX converter.

    Attributes:
        base_currency: Currency every amount is normalized to (e.g. "BRL")
        rates: Dictionary mapping (from_currency, to_currency) tuples to rates
    """

    def __init__(
        self,
        base_currency: str,
        rates: dict[tuple[str, str], float] | None = None,
    ):
        """
        Initialize FX converter.

        Args:
            base_currency: Base currency for all conversions
            rates: Optional dictionary of exchange rates
                  Format: {(from_currency, to_currency): rate}
        """
        self.base_currency = base_currency
        self.rates = rates or {}

    @classmethod
    def from_mappings(
        cls, base_currency: str, *sources: Mapping[str, float]
    ) -> FXConverter:
        """
        Build a converter from ``"USD_BRL"``-keyed mappings.

        Earlier sources take precedence; invalid keys and non-positive
        rates are skipped.
        """
        rates: dict[tuple[str, str], float] = {}
        for source in sources:
            for key, rate in source.items():
                pair = parse_rate_key(key)
                if pair is None or pair in rates:
                    continue
                if isinstance(rate, (int, float)) and rate > 0:
                    rates[pair] = float(rate)
        return cls(base_currency, rates)

    @classmethod
    def from_profile(
        cls, profile: ClientProfile, config: EngineConfig = DEFAULT_CONFIG
    ) -> FXConverter:
        """Profile rates first, then the configured fallbacks."""
        return cls.from_mappings(config.base_currency, profile.fx_rates, config.fx_rates)

    def convert_frame(
        self,
        df: pd.DataFrame,
        from_currency: str,
        to_currency: str,
        columns: Iterable[str] | None = None,
    ) -> pd.DataFrame:
        """
        Convert DataFrame values from one currency to another.

        Args:
            df: DataFrame with financial data
            from_currency: Source currency
            to_currency: Target currency
            columns: Columns to convert (defaults to every numeric column
                except ``age`` and ``year``)

        Returns:
            DataFrame with converted values

        Raises:
            ValueError: If conversion rate is not available
        """
        if from_currency == to_currency:
            return df.copy()

        rate = self.get_rate(from_currency, to_currency)
        if rate is None:
            raise ValueError(
                f"No exchange rate available for {from_currency} -> {to_currency}. "
                f"Please provide a {from_currency}_{to_currency} or "
                f"{to_currency}_{from_currency} rate."
            )

        if columns is None:
            columns = [
                col
                for col in df.select_dtypes(include=["number"]).columns
                if col not in ("age", "year")
            ]
        converted_df = df.copy()
        for col in columns:
            converted_df[col] = df[col] * rate

        return converted_df

    def get_rate(self, from_currency: str, to_currency: str) -> float | None:
        """
        Get exchange rate between two currencies.

        Args:
            from_currency: Source currency
            to_currency: Target currency

        Returns:
            Exchange rate or None if not available
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return 1.0

        # Try direct rate
        direct_key = (from_currency, to_currency)
        if direct_key in self.rates:
            return self.rates[direct_key]

        # Try inverse rate
        inverse_key = (to_currency, from_currency)
        if inverse_key in self.rates:
            return 1.0 / self.rates[inverse_key]

        # Try via base currency
        if from_currency != self.base_currency and to_currency != self.base_currency:
            rate_from_base = self.get_rate(self.base_currency, to_currency)
            rate_to_base = self.get_rate(from_currency, self.base_currency)

            if rate_from_base is not None and rate_to_base is not None:
                return rate_to_base * rate_from_base

        return None

    def add_rate(self, from_currency: str, to_currency: str, rate: float) -> None:
        """
        Add an exchange rate.

        Args:
            from_currency: Source currency
            to_currency: Target currency
            rate: Exchange rate (1 unit of from_currency = rate units of to_currency)
        """
        self.rates[(from_currency.upper(), to_currency.upper())] = rate

    def to_base(
        self,
        amount: float,
        currency: str | None,
        diagnostics: Diagnostics | None = None,
    ) -> float:
        """
        Convert an amount to the base currency.

        Unknown currencies convert at 1.0 and, when a collector is given,
        record a ``FX_RATE_DEFAULTED`` diagnostic.
        """
        currency = (currency or self.base_currency).upper()
        rate = self.get_rate(currency, self.base_currency)
        if rate is None:
            if diagnostics is not None:
                diagnostics.add(
                    D.FX_RATE_DEFAULTED,
                    f"fxRates.{currency}_{self.base_currency}",
                    "no rate available, converting at 1.0",
                    currency,
                )
            else:
                logger.debug("no %s_%s rate, converting at 1.0", currency, self.base_currency)
            rate = 1.0
        return amount * rate


@dataclass(frozen=True)
class FxExposure:
    """
    Currency split of the investable (liquid and pension) assets.

    Attributes:
        total: Investable total in the base currency
        by_currency: Base-currency value per original currency
        percentages: Share of ``total`` per currency (0-100)
        international_pct: Share held outside the base currency
    """

    total: float = 0.0
    by_currency: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    percentages: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    international_pct: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "byCurrency": dict(self.by_currency),
            "percentages": dict(self.percentages),
            "internationalPct": self.international_pct,
        }


def fx_exposure(
    assets: Iterable[Asset],
    converter: FXConverter,
    diagnostics: Diagnostics | None = None,
) -> FxExposure:
    """
    Compute the currency exposure of the investable assets.

    Illiquid and other assets are left out. With no investable wealth the
    whole exposure is reported in the base currency.
    """
    by_currency: dict[str, float] = {converter.base_currency: 0.0}
    for asset in assets:
        if not asset.kind.is_projected:
            continue
        currency = (asset.currency or converter.base_currency).upper()
        value = converter.to_base(asset.amount, currency, diagnostics)
        by_currency[currency] = by_currency.get(currency, 0.0) + value

    total = sum(by_currency.values())
    if total > 0:
        percentages = {ccy: value / total * 100.0 for ccy, value in by_currency.items()}
    else:
        percentages = {ccy: 0.0 for ccy in by_currency}
        percentages[converter.base_currency] = 100.0
    international_pct = sum(
        pct for ccy, pct in percentages.items() if ccy != converter.base_currency
    )
    return FxExposure(
        total=total,
        by_currency=MappingProxyType(by_currency),
        percentages=MappingProxyType(percentages),
        international_pct=international_pct,
    )
