"""Markdown summaries for gate runs.

Output must be byte-identical for identical inputs so CI can diff it: no
timestamps, and every collection is emitted in a fixed order.
"""

from __future__ import annotations

from typing import Dict, List

from .constants import (
    CRITERION_DESCRIPTIONS,
    CRITERION_STATUSES,
    EMPTY_SENTINEL,
    MAX_RENDERED_VIOLATIONS,
    STATUS_FAIL,
)
from .models import (
    Baseline,
    ComplianceBaseline,
    ComplianceReport,
    ModeStats,
    Report,
    TtfiBaseline,
    TtfiReport,
    Verdict,
)
from .statistics import format_ms, round_ms, to_percent


def _violation_section(heading: str, verdict: Verdict) -> List[str]:
    lines = ["", f"## {heading} ({len(verdict.violations)})", ""]
    if not verdict.violations:
        lines.append("None")
    for violation in verdict.violations[:MAX_RENDERED_VIOLATIONS]:
        lines.append(f"- {violation}")
    return lines


def _footer(verdict: Verdict) -> List[str]:
    return ["", f"Result: {'PASS' if verdict.passed else 'FAIL'}"]


def _join(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"


# ==============================================================================
# Compliance
# ==============================================================================

def render_compliance_summary(
    report: ComplianceReport,
    baseline: ComplianceBaseline,
    verdict: Verdict,
    report_path: str,
    baseline_path: str,
) -> str:
    """
    Render the compliance gate summary.

    Sections follow evaluation order: criterion pass rates, failure budget,
    zero-tolerance cards, then the regressions list.
    """
    counts: Dict[str, Dict[str, int]] = {}
    for card in report.cards:
        for name, status in card.criteria.items():
            counts.setdefault(name, {s: 0 for s in CRITERION_STATUSES})[status] += 1

    rates = dict(verdict.pass_rates)
    criteria = sorted(set(rates) | set(baseline.min_pass_rates) | set(counts))

    lines = [
        "# Card Loading Compliance Gate",
        "",
        f"Report: {report_path}",
        f"Baseline: {baseline_path}",
        f"Cards evaluated: {len(report.cards)}",
        "",
        "## Criterion Pass Rates",
        "",
        "| Criterion | Description | Pass Rate | Minimum | Pass | Fail | Warn | Skip |",
        "|-----------|-------------|-----------|---------|------|------|------|------|",
    ]
    for name in criteria:
        rate = rates.get(name)
        min_rate = baseline.min_pass_rates.get(name)
        tally = counts.get(name, {s: 0 for s in CRITERION_STATUSES})
        lines.append(
            f"| {name} | {CRITERION_DESCRIPTIONS.get(name, '')} "
            f"| {f'{to_percent(rate)}%' if rate is not None else 'N/A'} "
            f"| {f'{to_percent(min_rate)}%' if min_rate is not None else '-'} "
            f"| {tally['pass']} | {tally['fail']} | {tally['warn']} | {tally['skip']} |"
        )

    lines += [
        "",
        "## Failure Budget",
        "",
        f"Total failures: {verdict.fail_count} (max: {verdict.max_fail_count})",
    ]

    lines += ["", "## Zero-Tolerance Cards", ""]
    if not verdict.zero_tolerance:
        lines.append("None configured")
    for check in verdict.zero_tolerance:
        if not check.found:
            lines.append(f"- {check.identifier}: NOT FOUND")
        elif check.failed_criteria:
            lines.append(f"- {check.identifier}: FAIL ({', '.join(check.failed_criteria)})")
        else:
            lines.append(f"- {check.identifier}: pass")

    failed_cards = [card for card in report.cards if card.overall_status == STATUS_FAIL]
    if failed_cards:
        lines += [
            "",
            f"## Failed Cards ({len(failed_cards)})",
            "",
            "| Card Type | Card ID | Failed Criteria |",
            "|-----------|---------|-----------------|",
        ]
        for card in failed_cards[:MAX_RENDERED_VIOLATIONS]:
            lines.append(f"| {card.card_type} | {card.card_id} | {', '.join(card.failed_criteria)} |")

    lines += _violation_section("Regressions", verdict)
    lines += _footer(verdict)
    return _join(lines)


# ==============================================================================
# TTFI
# ==============================================================================

def _mode_tally(stats: ModeStats) -> str:
    # Same shape as the TTFI run's own per-mode console line
    if stats.card_count == 0:
        return "no-cards"
    avg = round_ms(stats.mean_ms) if stats.mean_ms != EMPTY_SENTINEL else int(EMPTY_SENTINEL)
    return (
        f"cards={stats.card_count} ok={stats.ok_count} timeout={stats.timeout_count} "
        f"avg={avg}ms p95={format_ms(stats.p95_ms)}ms"
    )


def _mode_budget(stats: ModeStats) -> str:
    budget = stats.budget
    if budget is None:
        return "budget: missing"
    line = (
        f"budget: max_ttfi={format_ms(budget.max_ttfi_ms)}ms "
        f"max_p95={format_ms(budget.max_p95_ms)}ms "
        f"max_timeouts={budget.max_timeout_count}"
    )
    if stats.within_budget_pct != EMPTY_SENTINEL:
        line += f" (within max_ttfi: {stats.within_budget_pct:.1f}%)"
    return line


def render_ttfi_summary(
    report: TtfiReport,
    baseline: TtfiBaseline,
    verdict: Verdict,
    report_path: str,
    baseline_path: str,
) -> str:
    """Render the TTFI gate summary: one tally and budget line per mode, then failures."""
    lines = [
        "# All-Card TTFI Gate",
        "",
        f"Report: {report_path}",
        f"Baseline: {baseline_path}",
        f"Total records: {len(report.cards)}",
        "",
        "## Modes",
        "",
    ]
    for stats in verdict.mode_stats:
        lines.append(f"- {stats.mode}: {_mode_tally(stats)}")
        lines.append(f"  - {_mode_budget(stats)}")

    if verdict.unknown_modes:
        listed = ", ".join(f"{mode} ({count})" for mode, count in verdict.unknown_modes)
        lines += ["", f"Unrecognized modes (not evaluated): {listed}"]

    lines += _violation_section("Failures", verdict)
    lines += _footer(verdict)
    return _join(lines)


def render_summary(
    report: Report,
    baseline: Baseline,
    verdict: Verdict,
    report_path: str,
    baseline_path: str,
) -> str:
    if isinstance(report, ComplianceReport):
        return render_compliance_summary(report, baseline, verdict, report_path, baseline_path)
    if isinstance(report, TtfiReport):
        return render_ttfi_summary(report, baseline, verdict, report_path, baseline_path)
    raise TypeError(f"Unsupported report type: {type(report).__name__}")
