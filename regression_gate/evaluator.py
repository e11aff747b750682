#!/usr/bin/env python3
from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .constants import (
    AGGREGATE_RATE_TOLERANCE,
    EMPTY_SENTINEL,
    KNOWN_MODES,
    P95_QUANTILE,
    STATUS_FAIL,
    STATUS_PASS,
    STATUS_SKIP,
    TIMING_OK,
    TIMING_TIMEOUT,
)
from .models import (
    Baseline,
    CardCompliance,
    ComplianceBaseline,
    ComplianceReport,
    CriterionCheck,
    ModeStats,
    Report,
    TtfiBaseline,
    TtfiReport,
    Verdict,
    ZeroToleranceCheck,
)
from .statistics import format_ms, mean, pass_rate, percent_pair, percentile, to_percent, within_budget_pct

logger = logging.getLogger(__name__)


# -----------------------------
# Aggregates
# -----------------------------

def recompute_fail_count(cards: Sequence[CardCompliance]) -> int:
    return sum(1 for card in cards if card.overall_status == STATUS_FAIL)


def recompute_pass_rates(cards: Sequence[CardCompliance]) -> Dict[str, float]:
    """
    Per-criterion pass rate computed from card results.

    Skipped results are excluded from the denominator. A criterion whose
    results are all skipped counts as fully passing (1.0). Criteria that no
    card reports have no entry.
    """
    results: Dict[str, List[str]] = {}
    for card in cards:
        for name, status in card.criteria.items():
            results.setdefault(name, []).append(status)

    rates: Dict[str, float] = {}
    for name in sorted(results):
        testable = [status for status in results[name] if status != STATUS_SKIP]
        rates[name] = pass_rate([status == STATUS_PASS for status in testable]) if testable else 1.0
    return rates


def _check_aggregates(report: ComplianceReport) -> List[str]:
    """Compare producer aggregates with values recomputed from the cards."""
    mismatches: List[str] = []

    if report.fail_count is not None:
        actual = recompute_fail_count(report.cards)
        if actual != report.fail_count:
            mismatches.append(
                f"Aggregate mismatch: summary failCount {report.fail_count} but {actual} cards failed"
            )

    if report.criterion_pass_rates is not None:
        actual_rates = recompute_pass_rates(report.cards)
        for name in sorted(set(report.criterion_pass_rates) | set(actual_rates)):
            claimed = report.criterion_pass_rates.get(name)
            actual = actual_rates.get(name)
            if claimed is None:
                mismatches.append(f"Aggregate mismatch: criterion {name} has card results but no summary pass rate")
            elif actual is None:
                mismatches.append(f"Aggregate mismatch: criterion {name} has a summary pass rate but no card results")
            elif abs(claimed - actual) > AGGREGATE_RATE_TOLERANCE:
                mismatches.append(
                    f"Aggregate mismatch: criterion {name} pass rate {to_percent(claimed)}% in summary "
                    f"but {to_percent(actual)}% recomputed from cards"
                )

    return mismatches


# -----------------------------
# Compliance rules
# -----------------------------

def _find_zero_tolerance(cards: Sequence[CardCompliance], identifier: str) -> ZeroToleranceCheck:
    # Exact card id first; otherwise every card of that type
    matches = [card for card in cards if card.card_id == identifier]
    if not matches:
        matches = [card for card in cards if card.card_type == identifier]
    if not matches:
        return ZeroToleranceCheck(identifier=identifier, found=False)

    failed = set()
    for card in matches:
        if card.overall_status == STATUS_FAIL:
            failed.update(card.failed_criteria)
    return ZeroToleranceCheck(identifier=identifier, found=True, failed_criteria=tuple(sorted(failed)))


def evaluate_compliance(
    report: ComplianceReport,
    baseline: ComplianceBaseline,
    verify_aggregates: bool = False,
) -> Verdict:
    """
    Judge a compliance report against its baseline.

    Rule groups run in a fixed order and every rule is evaluated, so the
    violation list is complete:
      1. Minimum pass rate per criterion (criteria the report lacks are skipped)
      2. Total failed cards vs max_fail_count
      3. Zero-tolerance cards (missing counts as a violation)
      4. Optional: producer aggregates vs recomputed aggregates

    A zero-tolerance identifier is matched against cardId first. Only when no
    card has that id is it matched against cardType, so a card id that is
    absent from the report can still be satisfied by cards of a type with the
    same name. NOT FOUND is reported when neither matches.

    Args:
        report: Parsed compliance report
        baseline: Parsed compliance baseline
        verify_aggregates: Also check the report's summary against its cards

    Returns:
        Verdict with violations in evaluation order
    """
    violations: List[str] = []

    rates = report.criterion_pass_rates
    if rates is None:
        rates = recompute_pass_rates(report.cards)
    fail_count = report.fail_count
    if fail_count is None:
        fail_count = recompute_fail_count(report.cards)

    # Group 1: minimum pass rates
    criterion_checks: List[CriterionCheck] = []
    for name in sorted(baseline.min_pass_rates):
        min_rate = baseline.min_pass_rates[name]
        rate = rates.get(name)
        criterion_checks.append(CriterionCheck(criterion=name, min_rate=min_rate, rate=rate))
        if rate is not None and rate < min_rate:
            shown_rate, shown_min = percent_pair(rate, min_rate)
            violations.append(f"Criterion {name} pass rate {shown_rate}% is below minimum {shown_min}%")

    # Group 2: failure budget
    if fail_count > baseline.max_fail_count:
        violations.append(f"Total failures {fail_count} exceed maximum {baseline.max_fail_count}")

    # Group 3: zero-tolerance cards
    zero_tolerance: List[ZeroToleranceCheck] = []
    for identifier in baseline.zero_tolerance_cards:
        check = _find_zero_tolerance(report.cards, identifier)
        zero_tolerance.append(check)
        if not check.found:
            violations.append(f"Zero-tolerance card {identifier}: NOT FOUND in report")
        elif check.failed_criteria:
            violations.append(
                f"Zero-tolerance card {identifier} failed criteria: {', '.join(check.failed_criteria)}"
            )

    if verify_aggregates:
        violations.extend(_check_aggregates(report))

    logger.info("compliance: %d cards, %d violations", len(report.cards), len(violations))

    return Verdict(
        violations=tuple(violations),
        pass_rates=tuple(sorted(rates.items())),
        criterion_checks=tuple(criterion_checks),
        fail_count=fail_count,
        max_fail_count=baseline.max_fail_count,
        zero_tolerance=tuple(zero_tolerance),
    )


# -----------------------------
# TTFI rules
# -----------------------------

def evaluate_ttfi(report: TtfiReport, baseline: TtfiBaseline) -> Verdict:
    """
    Judge a TTFI report against per-mode budgets.

    Each mode in KNOWN_MODES is checked independently:
      1. No budget for the mode -> violation, nothing else checked
      2. Timed-out cards vs max_timeout_count
      3. p95 of ok cards vs max_p95_ms
      4. Every ok card vs max_ttfi_ms (one violation per card)

    A mode with no ok cards has p95 == EMPTY_SENTINEL (-1), which never
    exceeds a budget; such a mode fails through the timeout rule instead.
    """
    violations: List[str] = []
    mode_stats: List[ModeStats] = []

    for mode in KNOWN_MODES:
        cards = [card for card in report.cards if card.mode == mode]
        ok_cards = [card for card in cards if card.status == TIMING_OK]
        ok_values = [card.value_ms for card in ok_cards]
        timeout_count = sum(1 for card in cards if card.status == TIMING_TIMEOUT)
        p95 = percentile(ok_values, P95_QUANTILE)
        budget = baseline.budgets.get(mode)

        mode_stats.append(ModeStats(
            mode=mode,
            budget=budget,
            card_count=len(cards),
            ok_count=len(ok_cards),
            timeout_count=timeout_count,
            mean_ms=mean(ok_values),
            p95_ms=p95,
            within_budget_pct=within_budget_pct(ok_values, budget.max_ttfi_ms) if budget else EMPTY_SENTINEL,
        ))

        if budget is None:
            violations.append(f"{mode}: missing budget")
            continue

        if timeout_count > budget.max_timeout_count:
            violations.append(f"{mode}: {timeout_count} timeouts exceed max {budget.max_timeout_count}")

        if p95 > budget.max_p95_ms:
            violations.append(f"{mode}: p95 {format_ms(p95)}ms exceeds max {format_ms(budget.max_p95_ms)}ms")

        for card in ok_cards:
            if card.value_ms > budget.max_ttfi_ms:
                violations.append(
                    f"{mode}: {card.card_type} ({card.card_id}) TTFI {format_ms(card.value_ms)}ms "
                    f"exceeds max {format_ms(budget.max_ttfi_ms)}ms"
                )

    unknown: Dict[str, int] = {}
    for card in report.cards:
        if card.mode not in KNOWN_MODES:
            unknown[card.mode] = unknown.get(card.mode, 0) + 1

    logger.info("ttfi: %d cards, %d violations", len(report.cards), len(violations))

    return Verdict(
        violations=tuple(violations),
        mode_stats=tuple(mode_stats),
        unknown_modes=tuple(sorted(unknown.items())),
    )


def evaluate(report: Report, baseline: Baseline, verify_aggregates: bool = False) -> Verdict:
    """Dispatch to the evaluator matching the report variant."""
    if isinstance(report, ComplianceReport) and isinstance(baseline, ComplianceBaseline):
        return evaluate_compliance(report, baseline, verify_aggregates=verify_aggregates)
    if isinstance(report, TtfiReport) and isinstance(baseline, TtfiBaseline):
        return evaluate_ttfi(report, baseline)
    raise TypeError(
        f"Report and baseline variants do not match: {type(report).__name__} vs {type(baseline).__name__}"
    )
