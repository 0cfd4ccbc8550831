"""
WealthLab kind constants: asset buckets, scenario policies and engine states.
"""

from __future__ import annotations

from enum import Enum


class AssetKind(str, Enum):
    """
    Closed set of asset buckets.

    Every consumer handles all four members explicitly; new asset labels are
    mapped onto one of them during sanitization instead of being branched on
    as free-form strings.
    """

    LIQUID = "liquid"  # Financial investments, cash, brokerage
    PENSION = "pension"  # Previdência privada (PGBL / VGBL)
    ILLIQUID = "illiquid"  # Real estate, business stakes, vehicles
    OTHER = "other"  # Anything else; treated as illiquid

    @property
    def is_projected(self) -> bool:
        """Whether the asset feeds the liquid wealth projection."""
        if self is AssetKind.LIQUID or self is AssetKind.PENSION:
            return True
        if self is AssetKind.ILLIQUID or self is AssetKind.OTHER:
            return False
        raise AssertionError(f"unhandled asset kind {self!r}")


# Free-form labels (UI enums, Portuguese labels) mapped onto AssetKind.
ASSET_KIND_ALIASES: dict[str, AssetKind] = {
    "liquid": AssetKind.LIQUID,
    "financial": AssetKind.LIQUID,
    "financeiro": AssetKind.LIQUID,
    "investment": AssetKind.LIQUID,
    "investimento": AssetKind.LIQUID,
    "cash": AssetKind.LIQUID,
    "pension": AssetKind.PENSION,
    "previdencia": AssetKind.PENSION,
    "pgbl": AssetKind.PENSION,
    "vgbl": AssetKind.PENSION,
    "illiquid": AssetKind.ILLIQUID,
    "real_estate": AssetKind.ILLIQUID,
    "imovel": AssetKind.ILLIQUID,
    "imoveis": AssetKind.ILLIQUID,
    "bens": AssetKind.ILLIQUID,
    "business": AssetKind.ILLIQUID,
    "empresa": AssetKind.ILLIQUID,
    "vehicle": AssetKind.ILLIQUID,
    "veiculo": AssetKind.ILLIQUID,
    "other": AssetKind.OTHER,
    "outros": AssetKind.OTHER,
}


class S:
    """Scenario policy kinds."""

    BASE = "base"  # Literal schedule, inflation-adjusted retirement cost
    CONSUMPTION = "consumption"  # Exhaust liquid wealth at life expectancy
    PRESERVATION = "preservation"  # Consume only the real return

    @classmethod
    def all_kinds(cls) -> list[str]:
        """Enumerate the built-in policy kinds (in output order)."""
        return [cls.BASE, cls.CONSUMPTION, cls.PRESERVATION]


class RiskProfile:
    """Risk profile labels selecting the nominal return."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    BOLD = "bold"

    # Order in which the other profiles are tried when a rate is missing.
    FALLBACKS: dict[str, tuple[str, ...]] = {
        CONSERVATIVE: (CONSERVATIVE, MODERATE, BOLD),
        MODERATE: (MODERATE, CONSERVATIVE, BOLD),
        BOLD: (BOLD, MODERATE, CONSERVATIVE),
    }

    @classmethod
    def normalize(cls, label: str | None) -> str:
        """Map UI labels (including Portuguese ones) to a profile name."""
        text = (label or "").strip().lower()
        if text.startswith("conserv"):
            return cls.CONSERVATIVE
        if text.startswith(("arroj", "agress", "bold", "aggress")):
            return cls.BOLD
        return cls.MODERATE


class EngineState(str, Enum):
    """Lifecycle of a single engine call."""

    IDLE = "idle"
    COMPUTING = "computing"
    READY = "ready"
    INVALID = "invalid"
