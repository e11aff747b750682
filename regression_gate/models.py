"""Typed reports, baselines and verdicts.

Reports and baselines arrive as loosely-typed JSON written by the Playwright
runs and committed by hand. The parse_* functions are the only place that
looks at raw dictionaries: they check every field the gate reads and raise
ParseError naming the offending field, so the evaluator works on closed
dataclasses only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .constants import (
    CRITERION_STATUSES,
    DEFAULT_MAX_FAIL_COUNT,
    STATUS_FAIL,
    STATUS_PASS,
    STATUS_SKIP,
    STATUS_WARN,
    TIMING_OK,
)
from .errors import ParseError


# ==============================================================================
# Report model
# ==============================================================================

@dataclass(frozen=True)
class CardCompliance:
    """One card's outcome for each loading criterion.

    Attributes:
        card_id: Card instance identifier, unique within a report
        card_type: Card component type (the category tag)
        criteria: Mapping of criterion name to pass/fail/warn/skip
    """
    card_id: str
    card_type: str
    criteria: Dict[str, str]

    @property
    def overall_status(self) -> str:
        statuses = list(self.criteria.values())
        if STATUS_FAIL in statuses:
            return STATUS_FAIL
        if STATUS_WARN in statuses:
            return STATUS_WARN
        if statuses and all(s == STATUS_SKIP for s in statuses):
            return STATUS_SKIP
        return STATUS_PASS

    @property
    def failed_criteria(self) -> List[str]:
        return sorted(name for name, status in self.criteria.items() if status == STATUS_FAIL)


@dataclass(frozen=True)
class CardTiming:
    """One card's time-to-first-interactive in one mode.

    value_ms is None unless status is "ok".
    """
    card_id: str
    card_type: str
    mode: str
    status: str
    value_ms: Optional[float] = None


@dataclass(frozen=True)
class ComplianceReport:
    """Categorical report: cards in report order plus optional producer aggregates.

    When fail_count or criterion_pass_rates is None the evaluator recomputes it
    from the cards. When present it is used as-is.
    """
    cards: Tuple[CardCompliance, ...]
    fail_count: Optional[int] = None
    criterion_pass_rates: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class TtfiReport:
    cards: Tuple[CardTiming, ...]


Report = Union[ComplianceReport, TtfiReport]


# ==============================================================================
# Baseline model
# ==============================================================================

@dataclass(frozen=True)
class ComplianceBaseline:
    min_pass_rates: Dict[str, float] = field(default_factory=dict)
    max_fail_count: int = DEFAULT_MAX_FAIL_COUNT
    zero_tolerance_cards: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ModeBudget:
    max_ttfi_ms: float
    max_p95_ms: float
    max_timeout_count: int


@dataclass(frozen=True)
class TtfiBaseline:
    budgets: Dict[str, ModeBudget] = field(default_factory=dict)


Baseline = Union[ComplianceBaseline, TtfiBaseline]


# ==============================================================================
# Verdict
# ==============================================================================

@dataclass(frozen=True)
class CriterionCheck:
    """Minimum pass rate rule for one criterion. rate is None if the report has no rate."""
    criterion: str
    min_rate: float
    rate: Optional[float]

    @property
    def checked(self) -> bool:
        return self.rate is not None


@dataclass(frozen=True)
class ZeroToleranceCheck:
    identifier: str
    found: bool
    failed_criteria: Tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return self.found and not self.failed_criteria


@dataclass(frozen=True)
class ModeStats:
    """Per-mode tallies for a TTFI report. Times are EMPTY_SENTINEL with no ok cards."""
    mode: str
    budget: Optional[ModeBudget]
    card_count: int
    ok_count: int
    timeout_count: int
    mean_ms: float
    p95_ms: float
    within_budget_pct: float


@dataclass(frozen=True)
class Verdict:
    """Outcome of one gate evaluation.

    violations holds one human-readable string per broken rule, in evaluation
    order. The remaining fields record what each rule group saw so the
    summary can be rendered without evaluating anything twice.
    """
    violations: Tuple[str, ...]
    pass_rates: Tuple[Tuple[str, float], ...] = ()
    criterion_checks: Tuple[CriterionCheck, ...] = ()
    fail_count: Optional[int] = None
    max_fail_count: Optional[int] = None
    zero_tolerance: Tuple[ZeroToleranceCheck, ...] = ()
    mode_stats: Tuple[ModeStats, ...] = ()
    unknown_modes: Tuple[Tuple[str, int], ...] = ()

    @property
    def passed(self) -> bool:
        return not self.violations


# ==============================================================================
# Boundary checks
# ==============================================================================

def _is_number(value: Any) -> bool:
    # json.loads accepts NaN and Infinity; neither is a usable measurement or budget
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_object(value: Any, source, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(source, f"{where} must be an object, got {type(value).__name__}")
    return value


def _require_list(value: Any, source, where: str) -> List[Any]:
    if not isinstance(value, list):
        raise ParseError(source, f"{where} must be a list, got {type(value).__name__}")
    return value


def _require_string(obj: Dict[str, Any], key: str, source, where: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(source, f"{where}.{key} must be a non-empty string")
    return value


def _require_non_negative(value: Any, source, where: str) -> float:
    if not _is_number(value) or value < 0:
        raise ParseError(source, f"{where} must be a non-negative number, got {value!r}")
    return float(value)


def _require_count(value: Any, source, where: str) -> int:
    if not _is_number(value) or value < 0 or int(value) != value:
        raise ParseError(source, f"{where} must be a non-negative integer, got {value!r}")
    return int(value)


def _require_rate(value: Any, source, where: str) -> float:
    if not _is_number(value) or not (0 <= value <= 1):
        raise ParseError(source, f"{where} must be a rate between 0 and 1, got {value!r}")
    return float(value)


def _parse_rates(value: Any, source, where: str) -> Dict[str, float]:
    rates = _require_object(value, source, where)
    return {name: _require_rate(rate, source, f"{where}.{name}") for name, rate in rates.items()}


def _parse_criterion_status(value: Any, source, where: str) -> str:
    # The producer writes {"criterion", "status", "details"}; bare status strings are accepted too
    if isinstance(value, dict):
        value = value.get("status")
    if value not in CRITERION_STATUSES:
        raise ParseError(
            source, f"{where} status must be one of {', '.join(CRITERION_STATUSES)}, got {value!r}"
        )
    return value


# ==============================================================================
# Parsers
# ==============================================================================

def parse_compliance_report(data: Any, source) -> ComplianceReport:
    """Build a ComplianceReport from the producer's compliance-report.json.

    Expected format:
    {
      "batches": [{"cards": [{"cardId": "...", "cardType": "...", "criteria": {"a": {"status": "pass"}}}]}],
      "summary": {"failCount": 3, "criterionPassRates": {"a": 0.97}}
    }

    Raises:
        ParseError: If a required field is missing or has the wrong type
    """
    root = _require_object(data, source, "report")
    batches = _require_list(root.get("batches"), source, "batches")

    cards: List[CardCompliance] = []
    seen_ids = set()
    for b, batch in enumerate(batches):
        batch = _require_object(batch, source, f"batches[{b}]")
        for c, raw in enumerate(_require_list(batch.get("cards"), source, f"batches[{b}].cards")):
            where = f"batches[{b}].cards[{c}]"
            raw = _require_object(raw, source, where)
            card_id = _require_string(raw, "cardId", source, where)
            if card_id in seen_ids:
                raise ParseError(source, f"{where}.cardId {card_id!r} appears more than once")
            seen_ids.add(card_id)
            criteria = _require_object(raw.get("criteria"), source, f"{where}.criteria")
            cards.append(CardCompliance(
                card_id=card_id,
                card_type=_require_string(raw, "cardType", source, where),
                criteria={
                    name: _parse_criterion_status(value, source, f"{where}.criteria.{name}")
                    for name, value in criteria.items()
                },
            ))

    fail_count = None
    rates = None
    summary = root.get("summary")
    if summary is not None:
        summary = _require_object(summary, source, "summary")
        if summary.get("failCount") is not None:
            fail_count = _require_count(summary["failCount"], source, "summary.failCount")
        if summary.get("criterionPassRates") is not None:
            rates = _parse_rates(summary["criterionPassRates"], source, "summary.criterionPassRates")

    return ComplianceReport(cards=tuple(cards), fail_count=fail_count, criterion_pass_rates=rates)


def parse_ttfi_report(data: Any, source) -> TtfiReport:
    """Build a TtfiReport from the producer's ttfi-report.json.

    Timed-out cards carry the batch timeout in ttfi_ms; that value is not a
    measurement and is dropped here.
    """
    root = _require_object(data, source, "report")
    cards: List[CardTiming] = []
    for i, raw in enumerate(_require_list(root.get("cards"), source, "cards")):
        where = f"cards[{i}]"
        raw = _require_object(raw, source, where)
        status = _require_string(raw, "status", source, where)
        value_ms = None
        if status == TIMING_OK:
            value_ms = _require_non_negative(raw.get("ttfi_ms"), source, f"{where}.ttfi_ms")
        cards.append(CardTiming(
            card_id=_require_string(raw, "cardId", source, where),
            card_type=_require_string(raw, "cardType", source, where),
            mode=_require_string(raw, "mode", source, where),
            status=status,
            value_ms=value_ms,
        ))
    return TtfiReport(cards=tuple(cards))


def parse_compliance_baseline(data: Any, source) -> ComplianceBaseline:
    root = _require_object(data, source, "baseline")

    min_pass_rates: Dict[str, float] = {}
    if root.get("min_pass_rates") is not None:
        min_pass_rates = _parse_rates(root["min_pass_rates"], source, "min_pass_rates")

    max_fail_count = DEFAULT_MAX_FAIL_COUNT
    if root.get("max_fail_count") is not None:
        max_fail_count = _require_count(root["max_fail_count"], source, "max_fail_count")

    zero_tolerance: List[str] = []
    if root.get("zero_tolerance_cards") is not None:
        for i, ident in enumerate(_require_list(root["zero_tolerance_cards"], source, "zero_tolerance_cards")):
            if not isinstance(ident, str) or not ident:
                raise ParseError(source, f"zero_tolerance_cards[{i}] must be a non-empty string")
            zero_tolerance.append(ident)

    return ComplianceBaseline(
        min_pass_rates=min_pass_rates,
        max_fail_count=max_fail_count,
        zero_tolerance_cards=tuple(zero_tolerance),
    )


def parse_ttfi_baseline(data: Any, source) -> TtfiBaseline:
    """Build a TtfiBaseline. A missing "budgets" object means no mode has a budget."""
    root = _require_object(data, source, "baseline")
    budgets: Dict[str, ModeBudget] = {}
    if root.get("budgets") is not None:
        for mode, raw in _require_object(root["budgets"], source, "budgets").items():
            where = f"budgets.{mode}"
            raw = _require_object(raw, source, where)
            budgets[mode] = ModeBudget(
                max_ttfi_ms=_require_non_negative(raw.get("max_ttfi_ms"), source, f"{where}.max_ttfi_ms"),
                max_p95_ms=_require_non_negative(raw.get("max_p95_ms"), source, f"{where}.max_p95_ms"),
                max_timeout_count=_require_count(raw.get("max_timeout_count"), source, f"{where}.max_timeout_count"),
            )
    return TtfiBaseline(budgets=budgets)
