#!/usr/bin/env python3
"""CI regression gate driver.

Loads a report and its baseline, evaluates the baseline's rules, writes a
Markdown summary and returns the process exit code:

    0  no violations (summary echoed to stdout)
    1  violations found (summary echoed to stderr), or an input file is
       missing or malformed (nothing written)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import COMPLIANCE, TTFI, VARIANTS, GateConfig, resolve_config
from .constants import (
    COMPLIANCE_BASELINE_ENV,
    COMPLIANCE_REPORT_ENV,
    COMPLIANCE_SUMMARY_ENV,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    TTFI_BASELINE_ENV,
    TTFI_REPORT_ENV,
    TTFI_SUMMARY_ENV,
)
from .errors import ConfigurationError, GateError, ParseError
from .evaluator import evaluate
from .models import (
    parse_compliance_baseline,
    parse_compliance_report,
    parse_ttfi_baseline,
    parse_ttfi_report,
)
from .render import render_summary

logger = logging.getLogger(__name__)

_PARSERS = {
    COMPLIANCE: (parse_compliance_report, parse_compliance_baseline),
    TTFI: (parse_ttfi_report, parse_ttfi_baseline),
}


def load_json(path: Path) -> Any:
    """Read and decode a JSON file.

    Raises:
        ConfigurationError: If the file doesn't exist or can't be read
        ParseError: If the contents are not valid JSON
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Required file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(path, f"not UTF-8 text: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(path, f"invalid JSON: {e}") from e


def run_gate(variant: str, config: GateConfig, verify_aggregates: bool = False) -> int:
    """
    Run one gate invocation.

    Both inputs are read before anything is evaluated. The summary is written
    to config.summary_path whether or not the gate passes, so the file always
    reflects the latest run.

    Args:
        variant: "compliance" or "ttfi"
        config: Resolved input and output paths
        verify_aggregates: Check the compliance summary against its cards

    Returns:
        EXIT_SUCCESS or EXIT_FAILURE
    """
    parse_report, parse_baseline = _PARSERS[variant]
    logger.info("report: %s", config.report_path)
    logger.info("baseline: %s", config.baseline_path)

    try:
        raw_report = load_json(config.report_path)
        raw_baseline = load_json(config.baseline_path)
        report = parse_report(raw_report, config.report_path)
        baseline = parse_baseline(raw_baseline, config.baseline_path)
    except GateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    verdict = evaluate(report, baseline, verify_aggregates=verify_aggregates)
    summary = render_summary(
        report, baseline, verdict, str(config.report_path), str(config.baseline_path)
    )

    try:
        config.summary_path.parent.mkdir(parents=True, exist_ok=True)
        config.summary_path.write_text(summary, encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot write summary {config.summary_path}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    logger.info("summary: %s", config.summary_path)

    if verdict.passed:
        print(summary, end="")
        return EXIT_SUCCESS

    print(summary, end="", file=sys.stderr)
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="regression-gate",
        description="Judge a freshly produced metrics report against a committed baseline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Environment (flags take precedence):
  compliance: {COMPLIANCE_REPORT_ENV}, {COMPLIANCE_BASELINE_ENV}, {COMPLIANCE_SUMMARY_ENV}
  ttfi:       {TTFI_REPORT_ENV}, {TTFI_BASELINE_ENV}, {TTFI_SUMMARY_ENV}

Examples:
  regression-gate compliance
  regression-gate ttfi --report test-results/ttfi-report.json --baseline e2e/perf/ttfi-baseline.json
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolved paths and counts to stderr")
    subparsers = parser.add_subparsers(dest="variant", required=True, metavar="{" + ",".join(VARIANTS) + "}")

    for variant, help_text in (
        (COMPLIANCE, "Card loading compliance report (per-criterion pass/fail)"),
        (TTFI, "All-card time-to-first-interactive report (per-mode budgets)"),
    ):
        sub = subparsers.add_parser(variant, help=help_text)
        sub.add_argument("--report", default=None, help="Report JSON path")
        sub.add_argument("--baseline", default=None, help="Baseline JSON path")
        sub.add_argument("--summary", default=None, help="Markdown summary output path")
        if variant == COMPLIANCE:
            sub.add_argument(
                "--verify-aggregates",
                action="store_true",
                help="Fail if the report's summary counts disagree with its card results",
            )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    config = resolve_config(args.variant).with_overrides(
        report_path=args.report,
        baseline_path=args.baseline,
        summary_path=args.summary,
    )
    return run_gate(args.variant, config, verify_aggregates=getattr(args, "verify_aggregates", False))


if __name__ == "__main__":
    sys.exit(main())
