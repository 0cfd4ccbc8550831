"""
Diagnostic records produced while sanitizing and evaluating a profile.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)


class D:
    """Diagnostic codes."""

    COERCED = "coerced"  # Malformed value replaced by a default
    DEFAULTED = "defaulted"  # Absent value replaced by a documented default
    RULE_DROPPED = "rule_dropped"  # Contribution rule discarded
    EVENT_IGNORED = "event_ignored"  # Cash-in event or outflow goal discarded
    UNKNOWN_ASSET_KIND = "unknown_asset_kind"  # Asset type mapped to OTHER
    FX_RATE_DEFAULTED = "fx_rate_defaulted"  # FX rate missing or invalid
    UNKNOWN_POLICY = "unknown_policy"  # Scenario variant policy not registered
    ASSUMPTIONS_INVALID = "assumptions_invalid"  # Ages non-finite or inconsistent


class Diagnostic(NamedTuple):
    """
    A single defaulting/validation note.

    Attributes:
        code: One of the :class:`D` codes
        field: Dotted path of the offending input (e.g. ``assets[2].amount``)
        message: Human-readable description
        value: Offending raw value (repr-safe), if any
    """

    code: str
    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        value = self.value
        if not isinstance(value, (str, int, float, bool, type(None))):
            value = repr(value)
        return {
            "code": self.code,
            "field": self.field,
            "message": self.message,
            "value": value,
        }


class Diagnostics:
    """
    Append-only collector used during a single engine call.

    The collector is local to one call and frozen into a tuple on the
    result; it is never shared between calls.
    """

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def add(self, code: str, field: str, message: str, value: Any = None) -> None:
        """Record a diagnostic and log it at DEBUG level."""
        self._items.append(Diagnostic(code, field, message, value))
        logger.debug("%s [%s]: %s", code, field, message)

    def extend(self, items) -> None:
        for item in items:
            self.add(item.code, item.field, item.message, item.value)

    def has(self, code: str) -> bool:
        return any(d.code == code for d in self._items)

    def freeze(self) -> tuple[Diagnostic, ...]:
        return tuple(self._items)

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
