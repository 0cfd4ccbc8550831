"""
Input sanitization for client profiles.

The scenario editor hands the engine plain JSON-style mappings whose field
names drifted over time (camelCase, snake_case, legacy Portuguese labels)
and whose numbers may arrive as formatted strings. This module is the single
place where those inputs are normalized: it returns an immutable
:class:`~wealthlab.core.profile.ClientProfile` plus the diagnostics recorded
while defaulting, so that nothing downstream needs ``value or 0`` style
fallbacks.

**Defaulting policy:**
    - Absent money fields default to zero silently
    - Malformed numbers (NaN, inf, unparsable strings, objects) default with
      a ``COERCED`` diagnostic
    - Absent ages default to the configured ages with a ``DEFAULTED``
      diagnostic; present-but-malformed or inconsistent ages add an
      ``ASSUMPTIONS_INVALID`` diagnostic
    - Rates above 1 in absolute value are read as percentages (``8`` -> 0.08)
"""

from __future__ import annotations

import logging
import math
import re
import unicodedata
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from wealthlab.config import DEFAULT_CONFIG, EngineConfig

from .diagnostics import D, Diagnostic, Diagnostics
from .kinds import ASSET_KIND_ALIASES, AssetKind, RiskProfile, S
from .profile import (
    Asset,
    CashInEvent,
    ClientProfile,
    ContributionRule,
    OutflowGoal,
    ScenarioVariant,
    SuccessionConfig,
)

logger = logging.getLogger(__name__)

_MISSING = object()

# Field aliases, most specific first.
CURRENT_AGE_KEYS = ("currentAge", "current_age", "idadeAtual")
RETIREMENT_AGE_KEYS = (
    "retirementAge",
    "retirement_age",
    "idadeAposentadoria",
    "endContributionsAge",
)
CONTRIBUTION_END_KEYS = (
    "contributionEndAge",
    "contribution_end_age",
    "endContributionsAge",
    "fimAportes",
)
LIFE_EXPECTANCY_KEYS = ("lifeExpectancy", "life_expectancy", "maxAge", "expectativaVida")
CONTRIBUTION_KEYS = (
    "monthlyContribution",
    "monthly_contribution",
    "monthlyAporte",
    "aporteMensal",
    "aporte",
)
COST_NOW_KEYS = ("monthlyCostNow", "monthly_cost_now", "custoVidaAtual", "monthlyCost")
COST_RETIREMENT_KEYS = (
    "monthlyCostRetirement",
    "monthly_cost_retirement",
    "monthlyIncomeRetirement",
    "monthlyRetirementIncome",
    "desiredMonthlyIncome",
    "rendaAposentadoria",
    "custoVidaAposentadoria",
)
RULE_START_KEYS = ("startAge", "start_age", "fromAge", "from", "ageStart", "inicio", "idadeInicio")
RULE_END_KEYS = ("endAge", "end_age", "toAge", "to", "ageEnd", "fim", "idadeFim")
RULE_VALUE_KEYS = (
    "monthlyValue",
    "monthly_value",
    "value",
    "amount",
    "monthlyContribution",
    "aporteMensal",
    "valorMensal",
    "valor",
)

_LEGACY_RETURN_KEYS = {
    RiskProfile.CONSERVATIVE: ("returnRateConservative", "rentCons", "retornoConservador"),
    RiskProfile.MODERATE: ("returnRateModerate", "rentMod", "retornoModerado"),
    RiskProfile.BOLD: ("returnRateBold", "rentBold", "retornoArrojado"),
}

_NUMBER_JUNK = re.compile(r"[^\d,.\-eE+]")


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


def normalize_text(value: Any) -> str:
    """Lowercase, trim and strip accents (``"Imóvel"`` -> ``"imovel"``)."""
    text = "" if value is None else str(value)
    decomposed = unicodedata.normalize("NFD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def parse_number(value: Any) -> float | None:
    """
    Parse a finite float, or return None.

    Accepts ints, floats and strings in either ``1234.5`` or Brazilian
    ``R$ 1.234,50`` notation. Booleans, containers and non-finite values are
    rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip().replace("R$", "").replace("r$", "").replace(" ", "")
        if not text:
            return None
        text = _NUMBER_JUNK.sub("", text)
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def normalize_rate(value: Any) -> float | None:
    """Parse a rate; magnitudes above 1 are percentages."""
    number = parse_number(value)
    if number is None:
        return None
    if abs(number) > 1:
        return number / 100.0
    return number


def _pick(data: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[str, Any]:
    """Return the first present, non-None alias and its value."""
    for key in keys:
        if key in data and data[key] is not None:
            return key, data[key]
    return keys[0], _MISSING


def _flag(value: Any, default: bool) -> bool:
    if value is None or value is _MISSING:
        return default
    if isinstance(value, str):
        return normalize_text(value) not in ("false", "0", "no", "nao", "off", "")
    return bool(value)


class _Reader:
    """Field reader bound to one diagnostics collector."""

    def __init__(self, diagnostics: Diagnostics, config: EngineConfig):
        self.diag = diagnostics
        self.config = config

    def money(
        self,
        data: Mapping[str, Any],
        keys: tuple[str, ...],
        path: str,
        *,
        default: float = 0.0,
        non_negative: bool = False,
    ) -> float:
        key, raw = _pick(data, keys)
        if raw is _MISSING:
            return default
        number = parse_number(raw)
        if number is None:
            self.diag.add(
                D.COERCED, _join(path, key), f"malformed number, using {default}", raw
            )
            return default
        if non_negative and number < 0:
            self.diag.add(D.COERCED, _join(path, key), "negative value, using 0", raw)
            return 0.0
        return number

    def rate(
        self,
        data: Mapping[str, Any],
        keys: tuple[str, ...],
        path: str,
        default: float | None,
        *,
        report_default: bool = False,
    ) -> float | None:
        key, raw = _pick(data, keys)
        if raw is _MISSING:
            if report_default and default is not None:
                self.diag.add(
                    D.DEFAULTED, _join(path, key), f"absent, using {default:.4f}"
                )
            return default
        rate = normalize_rate(raw)
        if rate is None:
            self.diag.add(
                D.COERCED, _join(path, key), f"malformed rate, using {default}", raw
            )
            return default
        if rate <= -1.0:
            self.diag.add(D.COERCED, _join(path, key), "rate <= -100%, using default", raw)
            return default
        return rate

    def age(
        self,
        data: Mapping[str, Any],
        keys: tuple[str, ...],
        path: str,
        default: int,
    ) -> tuple[int, bool]:
        """Return ``(age, valid)``."""
        key, raw = _pick(data, keys)
        if raw is _MISSING:
            self.diag.add(D.DEFAULTED, _join(path, key), f"absent, using {default}")
            return default, True
        number = parse_number(raw)
        if number is None:
            self.diag.add(
                D.ASSUMPTIONS_INVALID, _join(path, key), "age is not a finite number", raw
            )
            return default, False
        if number < 0 or number > self.config.max_age:
            self.diag.add(
                D.ASSUMPTIONS_INVALID,
                _join(path, key),
                f"age outside [0, {self.config.max_age}]",
                raw,
            )
            return default, False
        age = int(round(number))
        if age != number:
            self.diag.add(D.COERCED, _join(path, key), f"rounded to {age}", raw)
        return age, True

    def optional_age(
        self, data: Mapping[str, Any], keys: tuple[str, ...], path: str
    ) -> int | None:
        key, raw = _pick(data, keys)
        if raw is _MISSING:
            return None
        number = parse_number(raw)
        if number is None:
            self.diag.add(D.COERCED, _join(path, key), "malformed age, ignored", raw)
            return None
        return _clamp_age(number, self.config)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _clamp_age(number: float, config: EngineConfig) -> int:
    return int(round(min(max(number, 0.0), float(config.max_age))))


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def _as_list(value: Any, path: str, diag: Diagnostics) -> list[Any]:
    if value is _MISSING or value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    diag.add(D.COERCED, path, "expected a list, ignored", value)
    return []


def asset_kind_from_label(label: Any) -> AssetKind | None:
    """Map a free-form asset type label onto :class:`AssetKind`."""
    if isinstance(label, AssetKind):
        return label
    return ASSET_KIND_ALIASES.get(normalize_text(label))


def _read_assets(data: Mapping[str, Any], r: _Reader) -> tuple[Asset, ...]:
    _, raw_list = _pick(data, ("assets", "ativos"))
    assets: list[Asset] = []
    for i, raw in enumerate(_as_list(raw_list, "assets", r.diag)):
        path = f"assets[{i}]"
        if not isinstance(raw, Mapping):
            r.diag.add(D.COERCED, path, "asset is not an object, ignored", raw)
            continue

        amount = r.money(
            raw, ("amountCurrency", "amount", "value", "valor"), path
        )

        _, type_label = _pick(raw, ("type", "assetType", "category", "kind"))
        kind = asset_kind_from_label("" if type_label is _MISSING else type_label)
        if kind is None:
            if type_label is _MISSING:
                kind = AssetKind.LIQUID
            else:
                r.diag.add(
                    D.UNKNOWN_ASSET_KIND,
                    f"{path}.type",
                    "unknown asset type, treated as other",
                    type_label,
                )
                kind = AssetKind.OTHER

        _, currency = _pick(raw, ("currency", "moeda"))
        currency = "BRL" if currency is _MISSING else str(currency).strip().upper() or "BRL"

        plan_type = None
        if kind is AssetKind.PENSION:
            previdencia = raw.get("previdencia")
            nested = previdencia.get("planType") if isinstance(previdencia, Mapping) else None
            label = nested or raw.get("planType")
            if label is None and normalize_text(type_label) in ("pgbl", "vgbl"):
                label = type_label
            plan_type = "PGBL" if normalize_text(label) == "pgbl" else "VGBL"

        assets.append(
            Asset(
                id=str(raw.get("id", f"asset_{i}")),
                name=str(raw.get("name", raw.get("nome", ""))),
                amount=amount,
                currency=currency,
                kind=kind,
                plan_type=plan_type,
            )
        )
    return tuple(assets)


def _read_rules(data: Mapping[str, Any], r: _Reader) -> tuple[ContributionRule, ...]:
    _, raw_list = _pick(data, ("contributionTimeline", "contributionRanges", "contribution_rules"))
    rules: list[ContributionRule] = []
    for i, raw in enumerate(_as_list(raw_list, "contributionTimeline", r.diag)):
        path = f"contributionTimeline[{i}]"
        if not isinstance(raw, Mapping):
            r.diag.add(D.RULE_DROPPED, path, "rule is not an object", raw)
            continue

        start_key, start_raw = _pick(raw, RULE_START_KEYS)
        end_key, end_raw = _pick(raw, RULE_END_KEYS)
        start = 0.0 if start_raw is _MISSING else parse_number(start_raw)
        end = float(r.config.max_age) if end_raw is _MISSING else parse_number(end_raw)
        if start is None or end is None:
            bad_key, bad_raw = (start_key, start_raw) if start is None else (end_key, end_raw)
            r.diag.add(
                D.RULE_DROPPED, _join(path, bad_key), "non-finite age bound", bad_raw
            )
            continue

        value = r.money(raw, RULE_VALUE_KEYS, path)
        kind = raw.get("kind", raw.get("type", raw.get("mode", ""))) or ""
        kind_text = normalize_text(kind)
        if (
            raw.get("isWithdrawal") is True
            or raw.get("withdrawal") is True
            or "withdraw" in kind_text
            or "resgate" in kind_text
        ):
            value = -abs(value)

        rules.append(
            ContributionRule(
                id=str(raw.get("id", f"rule_{i}")),
                start_age=_clamp_age(start, r.config),
                end_age=_clamp_age(end, r.config),
                monthly_value=value,
                kind=str(kind),
                enabled=raw.get("enabled") is not False,
                override=_flag(raw.get("override", raw.get("priority")), False),
            )
        )
    return tuple(rules)


def _read_events(data: Mapping[str, Any], r: _Reader) -> tuple[CashInEvent, ...]:
    _, raw_list = _pick(data, ("cashInEvents", "cash_in_events"))
    events: list[CashInEvent] = []
    for i, raw in enumerate(_as_list(raw_list, "cashInEvents", r.diag)):
        path = f"cashInEvents[{i}]"
        if not isinstance(raw, Mapping):
            r.diag.add(D.EVENT_IGNORED, path, "event is not an object", raw)
            continue
        age_key, age_raw = _pick(raw, ("age", "naIdade", "idade"))
        age = None if age_raw is _MISSING else parse_number(age_raw)
        if age is None:
            r.diag.add(
                D.EVENT_IGNORED, _join(path, age_key), "non-finite event age", age_raw
            )
            continue
        events.append(
            CashInEvent(
                id=str(raw.get("id", f"event_{i}")),
                age=int(round(age)),
                value=r.money(raw, ("value", "valor", "amount"), path),
                enabled=raw.get("enabled") is not False,
                label=str(raw.get("label", raw.get("name", ""))),
            )
        )
    return tuple(events)


def _read_goals(data: Mapping[str, Any], r: _Reader) -> tuple[OutflowGoal, ...]:
    """Read the ``impact`` goals; other goal types do not touch the projection."""
    _, raw_list = _pick(data, ("financialGoals", "financial_goals", "goals"))
    goals: list[OutflowGoal] = []
    for i, raw in enumerate(_as_list(raw_list, "financialGoals", r.diag)):
        path = f"financialGoals[{i}]"
        if not isinstance(raw, Mapping):
            r.diag.add(D.EVENT_IGNORED, path, "goal is not an object", raw)
            continue
        goal_type = normalize_text(raw.get("type")) or "impact"
        if "impact" not in goal_type:
            continue
        age_key, age_raw = _pick(raw, ("age", "naIdade", "idade"))
        age = None if age_raw is _MISSING else parse_number(age_raw)
        if age is None:
            r.diag.add(
                D.EVENT_IGNORED, _join(path, age_key), "non-finite goal age", age_raw
            )
            continue
        goals.append(
            OutflowGoal(
                id=str(raw.get("id", f"goal_{i}")),
                age=int(round(age)),
                value=r.money(raw, ("value", "valor", "amount"), path),
                enabled=raw.get("enabled") is not False,
                name=str(raw.get("name", raw.get("titulo", ""))),
            )
        )
    return tuple(goals)


def _read_fx(data: Mapping[str, Any], r: _Reader) -> Mapping[str, float]:
    _, raw = _pick(data, ("fxRates", "fx_rates", "scenarioFx", "fx"))
    if raw is _MISSING:
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        r.diag.add(D.FX_RATE_DEFAULTED, "fxRates", "expected an object, ignored", raw)
        return MappingProxyType({})
    rates: dict[str, float] = {}
    for key, value in raw.items():
        rate = parse_number(value)
        if rate is None or rate <= 0:
            r.diag.add(
                D.FX_RATE_DEFAULTED, f"fxRates.{key}", "invalid rate, using fallback", value
            )
            continue
        rates[str(key).upper()] = rate
    return MappingProxyType(rates)


def _read_succession(data: Mapping[str, Any], r: _Reader) -> SuccessionConfig:
    _, block = _pick(
        data, ("succession", "successionCosts", "successionConfig")
    )
    if block is _MISSING or not isinstance(block, Mapping):
        if block is not _MISSING:
            r.diag.add(D.COERCED, "succession", "expected an object, ignored", block)
        block = {}
    path = "succession"

    _, state = _pick(block, ("state",))
    if state is _MISSING:
        _, state = _pick(data, ("state", "successionState"))
    state = r.config.default_state if state is _MISSING else str(state).strip().upper()

    def bounded(keys: tuple[str, ...]) -> float | None:
        rate = r.rate(block, keys, path, None)
        if rate is None:
            return None
        clamped = min(max(rate, 0.0), r.config.max_succession_rate)
        if clamped != rate:
            r.diag.add(
                D.COERCED,
                _join(path, keys[0]),
                f"rate clamped to [0, {r.config.max_succession_rate}]",
                rate,
            )
        return clamped

    previdencia = block.get("previdenciaSuccession", data.get("previdenciaSuccession"))
    if not isinstance(previdencia, Mapping):
        previdencia = {}

    return SuccessionConfig(
        state=state,
        itcmd_rate=bounded(("itcmdRate", "itcmd_rate", "itcmd")),
        legal_rate=bounded(("legalRate", "legalPct", "legal_rate", "honorariosPct")),
        fees_rate=bounded(("feesRate", "feesPct", "fees_rate", "custasPct", "custasPercent")),
        fees_fixed=r.money(
            block, ("feesFixed", "fees_fixed", "custasFixas"), path, non_negative=True
        ),
        exclude_pension_from_inventory=_flag(
            previdencia.get("excludeFromInventory"), True
        ),
        apply_itcmd_to_pension=_flag(previdencia.get("applyITCMD"), False),
    )


def _read_scenarios(data: Mapping[str, Any], r: _Reader) -> tuple[ScenarioVariant, ...]:
    _, raw_list = _pick(data, ("scenarios", "alternativeScenarios"))
    variants: list[ScenarioVariant] = []
    for i, raw in enumerate(_as_list(raw_list, "scenarios", r.diag)):
        path = f"scenarios[{i}]"
        if not isinstance(raw, Mapping):
            r.diag.add(D.COERCED, path, "scenario is not an object, ignored", raw)
            continue
        _, policy = _pick(raw, ("policy", "mode", "kind"))
        policy = S.BASE if policy is _MISSING else normalize_text(policy)
        scenario_id = str(raw.get("id", f"scenario_{i}"))

        contribution = None
        if _pick(raw, CONTRIBUTION_KEYS)[1] is not _MISSING:
            contribution = r.money(raw, CONTRIBUTION_KEYS, path)
        cost = None
        if _pick(raw, COST_RETIREMENT_KEYS)[1] is not _MISSING:
            cost = r.money(raw, COST_RETIREMENT_KEYS, path, non_negative=True)

        variants.append(
            ScenarioVariant(
                id=scenario_id,
                name=str(raw.get("name", scenario_id)),
                policy=policy,
                monthly_contribution=contribution,
                retirement_age=r.optional_age(raw, RETIREMENT_AGE_KEYS, path),
                monthly_cost_retirement=cost,
            )
        )
    return tuple(variants)


def _read_returns(data: Mapping[str, Any], r: _Reader) -> Mapping[str, float]:
    rates: dict[str, float] = {}
    nested = data.get("returnRates")
    if isinstance(nested, Mapping):
        for label, value in nested.items():
            rate = r.rate(nested, (label,), "returnRates", None)
            if rate is not None:
                rates[RiskProfile.normalize(label)] = rate
    for profile, keys in _LEGACY_RETURN_KEYS.items():
        if profile in rates:
            continue
        rate = r.rate(data, keys, "", None)
        if rate is not None:
            rates[profile] = rate
    return MappingProxyType(rates)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def check_assumptions(profile: ClientProfile, config: EngineConfig = DEFAULT_CONFIG) -> list[str]:
    """
    Return the consistency problems of a profile's ages (empty when valid).
    """
    problems: list[str] = []
    ages = (profile.current_age, profile.retirement_age, profile.life_expectancy)
    if not all(isinstance(a, (int, float)) and math.isfinite(a) for a in ages):
        return ["ages must be finite numbers"]
    if profile.current_age < 0:
        problems.append("current age is negative")
    if profile.retirement_age <= profile.current_age:
        problems.append("retirement age must be after current age")
    if profile.life_expectancy <= profile.current_age:
        problems.append("life expectancy must be after current age")
    if profile.life_expectancy < profile.retirement_age:
        problems.append("life expectancy is before retirement age")
    if profile.life_expectancy > config.max_age:
        problems.append(f"life expectancy above {config.max_age}")
    return problems


def sanitize_profile(
    data: Mapping[str, Any] | ClientProfile | None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> tuple[ClientProfile, tuple[Diagnostic, ...]]:
    """
    Normalize raw input into a :class:`ClientProfile`.

    Args:
        data: JSON-style mapping from the scenario editor, or an existing
            ``ClientProfile`` (re-validated through its ``to_dict`` form)
        config: Engine constants supplying the defaults

    Returns:
        ``(profile, diagnostics)``. The input is never mutated.

    **Example:**
        ```python
        profile, diags = sanitize_profile(
            {"currentAge": 30, "retirementAge": 60, "lifeExpectancy": 90,
             "monthlyContribution": "R$ 2.000,00", "inflation": 4}
        )
        assert profile.monthly_contribution == 2000.0
        assert profile.inflation == 0.04
        ```
    """
    diag = Diagnostics()
    if isinstance(data, ClientProfile):
        data = data.to_dict()
    if not isinstance(data, Mapping):
        if data is not None:
            diag.add(D.COERCED, "", "profile is not an object, using defaults", data)
        data = {}
    r = _Reader(diag, config)

    current_age, ok_current = r.age(data, CURRENT_AGE_KEYS, "", config.default_current_age)
    retirement_age, ok_retirement = r.age(
        data, RETIREMENT_AGE_KEYS, "", config.default_retirement_age
    )
    life_expectancy, ok_life = r.age(
        data, LIFE_EXPECTANCY_KEYS, "", config.default_life_expectancy
    )

    assumptions = data.get("assumptions")
    assumptions = assumptions if isinstance(assumptions, Mapping) else {}

    inflation = r.rate(assumptions, ("inflation",), "assumptions", None)
    if inflation is None:
        inflation = r.rate(
            data, ("inflation",), "", config.default_inflation, report_default=True
        )
    nominal_return = r.rate(assumptions, ("nominalReturn",), "assumptions", None)
    if nominal_return is None:
        nominal_return = r.rate(data, ("nominalReturn", "nominal_return", "returnRate"), "", None)

    _, risk_label = _pick(data, ("profile", "riskProfile", "perfil"))
    risk_profile = RiskProfile.normalize(None if risk_label is _MISSING else str(risk_label))

    _, ref_year = _pick(data, ("referenceYear", "reference_year"))
    reference_year = None
    if ref_year is not _MISSING:
        year = parse_number(ref_year)
        if year is None:
            diag.add(D.COERCED, "referenceYear", "malformed year, ignored", ref_year)
        else:
            reference_year = int(year)

    profile = ClientProfile(
        current_age=current_age,
        retirement_age=retirement_age,
        contribution_end_age=r.optional_age(data, CONTRIBUTION_END_KEYS, ""),
        life_expectancy=life_expectancy,
        monthly_contribution=r.money(data, CONTRIBUTION_KEYS, ""),
        monthly_cost_now=r.money(data, COST_NOW_KEYS, "", non_negative=True),
        monthly_cost_retirement=r.money(
            data, COST_RETIREMENT_KEYS, "", non_negative=True
        ),
        inflation=inflation,
        risk_profile=risk_profile,
        return_rates=_read_returns(data, r),
        nominal_return=nominal_return,
        assets=_read_assets(data, r),
        contribution_rules=_read_rules(data, r),
        cash_in_events=_read_events(data, r),
        outflow_goals=_read_goals(data, r),
        fx_rates=_read_fx(data, r),
        succession=_read_succession(data, r),
        scenarios=_read_scenarios(data, r),
        illiquid_growth=r.rate(data, ("illiquidGrowth", "illiquid_growth"), "", 0.0),
        reference_year=reference_year,
    )

    if ok_current and ok_retirement and ok_life:
        for problem in check_assumptions(profile, config):
            diag.add(D.ASSUMPTIONS_INVALID, "ages", problem)

    logger.debug("sanitized profile with %d diagnostics", len(diag))
    return profile, diag.freeze()
