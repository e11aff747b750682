#!/usr/bin/env python3
"""
Test suite for regression_gate.gate and regression_gate.config

Tests cover:
- End-to-end gate runs for both report variants
- Fatal input conditions (missing file, malformed JSON, bad shape)
- Summary file placement and idempotence
- Environment and CLI path resolution
"""

import json
from pathlib import Path

import pytest

from regression_gate.config import COMPLIANCE, TTFI, GateConfig, resolve_config
from regression_gate.constants import (
    DEFAULT_COMPLIANCE_REPORT,
    DEFAULT_TTFI_SUMMARY,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    KNOWN_MODES,
)
from regression_gate.errors import ConfigurationError, ParseError
from regression_gate.gate import load_json, main, run_gate


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def compliance_report(fail_count=0, cards=None, rates=None):
    return {
        "batches": [{"batchIndex": 0, "cards": cards or []}],
        "summary": {"failCount": fail_count, "criterionPassRates": rates or {}},
    }


def ttfi_budgets(**overrides):
    budgets = {mode: {"max_ttfi_ms": 5000, "max_p95_ms": 5000, "max_timeout_count": 10} for mode in KNOWN_MODES}
    budgets.update(overrides)
    return {"budgets": budgets}


@pytest.fixture
def paths(tmp_path):
    return GateConfig(
        report_path=tmp_path / "test-results" / "report.json",
        baseline_path=tmp_path / "baseline.json",
        summary_path=tmp_path / "out" / "nested" / "summary.md",
    )


# ============================================================================
# End-to-end
# ============================================================================

class TestComplianceGate:
    """Compliance variant through run_gate"""

    def test_fail_count_over_budget(self, paths, capsys):
        write_json(paths.report_path, compliance_report(fail_count=25))
        write_json(paths.baseline_path, {"max_fail_count": 20})

        code = run_gate(COMPLIANCE, paths)

        assert code == EXIT_FAILURE == 1
        summary = paths.summary_path.read_text(encoding="utf-8")
        assert "Total failures: 25 (max: 20)" in summary
        captured = capsys.readouterr()
        assert captured.err == summary
        assert captured.out == ""

    def test_passing_run(self, paths, capsys):
        cards = [{"cardId": "pods-0", "cardType": "pods", "criteria": {"a": {"status": "pass"}}}]
        write_json(paths.report_path, compliance_report(cards=cards, rates={"a": 1.0}))
        write_json(paths.baseline_path, {"min_pass_rates": {"a": 0.95}, "zero_tolerance_cards": ["pods-0"]})

        code = run_gate(COMPLIANCE, paths)

        assert code == EXIT_SUCCESS
        summary = paths.summary_path.read_text(encoding="utf-8")
        captured = capsys.readouterr()
        assert captured.out == summary
        assert captured.err == ""
        assert "Result: PASS" in summary
        assert "- pods-0: pass" in summary

    def test_summary_lists_paths(self, paths, capsys):
        write_json(paths.report_path, compliance_report())
        write_json(paths.baseline_path, {})

        run_gate(COMPLIANCE, paths)

        summary = paths.summary_path.read_text(encoding="utf-8")
        assert f"Report: {paths.report_path}" in summary
        assert f"Baseline: {paths.baseline_path}" in summary

    def test_verify_aggregates(self, paths, capsys):
        cards = [{"cardId": "pods-0", "cardType": "pods", "criteria": {"a": "fail"}}]
        write_json(paths.report_path, compliance_report(fail_count=0, cards=cards, rates={"a": 0.0}))
        write_json(paths.baseline_path, {})

        assert run_gate(COMPLIANCE, paths) == EXIT_SUCCESS
        assert run_gate(COMPLIANCE, paths, verify_aggregates=True) == EXIT_FAILURE
        assert "summary failCount 0 but 1 cards failed" in paths.summary_path.read_text(encoding="utf-8")

    def test_idempotent(self, paths, capsys):
        cards = [
            {"cardId": f"c{i}", "cardType": "pods", "criteria": {"a": "pass" if i % 3 else "fail", "b": "pass"}}
            for i in range(12)
        ]
        write_json(paths.report_path, {"batches": [{"cards": cards}]})
        write_json(paths.baseline_path, {"min_pass_rates": {"a": 0.9}, "zero_tolerance_cards": ["c0", "nope"]})

        first_code = run_gate(COMPLIANCE, paths)
        first = paths.summary_path.read_bytes()
        second_code = run_gate(COMPLIANCE, paths)
        second = paths.summary_path.read_bytes()

        assert first_code == second_code == EXIT_FAILURE
        assert first == second


class TestTtfiGate:
    """TTFI variant through run_gate"""

    def test_card_over_ceiling(self, paths, capsys):
        report = {"cards": [
            {"cardId": "pods-0", "cardType": "pods", "mode": "live-cold", "status": "ok", "ttfi_ms": 1200},
        ]}
        write_json(paths.report_path, report)
        write_json(paths.baseline_path, ttfi_budgets(**{
            "live-cold": {"max_ttfi_ms": 1000, "max_p95_ms": 5000, "max_timeout_count": 0},
        }))

        code = run_gate(TTFI, paths)

        assert code == EXIT_FAILURE
        summary = paths.summary_path.read_text(encoding="utf-8")
        lines = [line for line in summary.splitlines() if "pods-0" in line and "exceeds" in line]
        assert len(lines) == 1
        assert "1200ms" in lines[0]
        assert "1000ms" in lines[0]

    def test_all_timeouts(self, paths, capsys):
        report = {"cards": [
            {"cardId": f"c{i}", "cardType": "pods", "mode": "demo-warm", "status": "timeout", "ttfi_ms": 18000}
            for i in range(5)
        ]}
        write_json(paths.report_path, report)
        write_json(paths.baseline_path, ttfi_budgets(**{
            "demo-warm": {"max_ttfi_ms": 1000, "max_p95_ms": 1000, "max_timeout_count": 3},
        }))

        assert run_gate(TTFI, paths) == EXIT_FAILURE
        summary = paths.summary_path.read_text(encoding="utf-8")
        assert "demo-warm: 5 timeouts exceed max 3" in summary
        assert "p95 -1ms exceeds" not in summary
        assert "## Failures (1)" in summary

    def test_passing_run(self, paths, capsys):
        report = {"cards": [
            {"cardId": f"c-{mode}", "cardType": "pods", "mode": mode, "status": "ok", "ttfi_ms": 300}
            for mode in KNOWN_MODES
        ]}
        write_json(paths.report_path, report)
        write_json(paths.baseline_path, ttfi_budgets())

        assert run_gate(TTFI, paths) == EXIT_SUCCESS
        assert "Result: PASS" in capsys.readouterr().out


# ============================================================================
# Fatal inputs
# ============================================================================

class TestFatalInputs:
    """Missing or malformed inputs abort before evaluation"""

    def test_missing_report(self, paths, capsys):
        write_json(paths.baseline_path, {})

        code = run_gate(COMPLIANCE, paths)

        assert code == EXIT_FAILURE
        assert not paths.summary_path.exists()
        err = capsys.readouterr().err
        assert err.startswith("Error: Required file not found:")
        assert str(paths.report_path) in err

    def test_missing_baseline(self, paths, capsys):
        write_json(paths.report_path, compliance_report())

        assert run_gate(COMPLIANCE, paths) == EXIT_FAILURE
        assert not paths.summary_path.exists()
        assert str(paths.baseline_path) in capsys.readouterr().err

    def test_malformed_json(self, paths, capsys):
        paths.report_path.parent.mkdir(parents=True)
        paths.report_path.write_text("{not json", encoding="utf-8")
        write_json(paths.baseline_path, {})

        assert run_gate(COMPLIANCE, paths) == EXIT_FAILURE
        assert not paths.summary_path.exists()
        err = capsys.readouterr().err
        assert "invalid JSON" in err
        assert str(paths.report_path) in err

    def test_wrong_shape(self, paths, capsys):
        write_json(paths.report_path, {"cards": []})
        write_json(paths.baseline_path, {})

        assert run_gate(COMPLIANCE, paths) == EXIT_FAILURE
        assert not paths.summary_path.exists()
        assert "batches must be a list" in capsys.readouterr().err

    def test_nan_budget_is_fatal(self, paths, capsys):
        report = {"cards": [
            {"cardId": "pods-0", "cardType": "pods", "mode": "live-cold", "status": "ok", "ttfi_ms": 99999},
        ]}
        write_json(paths.report_path, report)
        write_json(paths.baseline_path, ttfi_budgets(**{
            "live-cold": {"max_ttfi_ms": 1000, "max_p95_ms": float("nan"), "max_timeout_count": 0},
        }))

        assert run_gate(TTFI, paths) == EXIT_FAILURE
        assert not paths.summary_path.exists()
        err = capsys.readouterr().err
        assert "budgets.live-cold.max_p95_ms" in err
        assert str(paths.baseline_path) in err

    def test_infinite_fail_count_is_fatal(self, paths, capsys):
        write_json(paths.report_path, compliance_report(fail_count=float("inf")))
        write_json(paths.baseline_path, {})

        assert run_gate(COMPLIANCE, paths) == EXIT_FAILURE
        assert not paths.summary_path.exists()
        assert "summary.failCount" in capsys.readouterr().err

    def test_previous_summary_left_untouched(self, paths, capsys):
        paths.summary_path.parent.mkdir(parents=True)
        paths.summary_path.write_text("previous run\n", encoding="utf-8")

        assert run_gate(TTFI, paths) == EXIT_FAILURE
        assert paths.summary_path.read_text(encoding="utf-8") == "previous run\n"


class TestLoadJson:
    """Test load_json"""

    def test_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_json(tmp_path / "nope.json")

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_json(tmp_path)

    def test_invalid(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2,", encoding="utf-8")
        with pytest.raises(ParseError) as exc:
            load_json(path)
        assert exc.value.path == str(path)

    def test_valid(self, tmp_path):
        path = write_json(tmp_path / "ok.json", {"a": [1, 2]})
        assert load_json(path) == {"a": [1, 2]}


# ============================================================================
# Configuration and CLI
# ============================================================================

class TestConfig:
    """Test resolve_config and GateConfig.with_overrides"""

    def test_defaults(self):
        config = resolve_config(COMPLIANCE, env={})
        assert config.report_path == Path(DEFAULT_COMPLIANCE_REPORT)
        assert resolve_config(TTFI, env={}).summary_path == Path(DEFAULT_TTFI_SUMMARY)

    def test_env_overrides_independently(self):
        config = resolve_config(TTFI, env={"TTFI_BASELINE_PATH": "custom/budgets.json"})

        assert config.baseline_path == Path("custom/budgets.json")
        assert config.report_path == Path("test-results/ttfi-report.json")

    def test_empty_env_value_is_unset(self):
        config = resolve_config(COMPLIANCE, env={"COMPLIANCE_REPORT_PATH": "  "})
        assert config.report_path == Path(DEFAULT_COMPLIANCE_REPORT)

    def test_variants_do_not_share_env(self):
        config = resolve_config(COMPLIANCE, env={"TTFI_REPORT_PATH": "x.json"})
        assert config.report_path == Path(DEFAULT_COMPLIANCE_REPORT)

    def test_unknown_variant(self):
        with pytest.raises(ValueError, match="Unknown gate variant"):
            resolve_config("lighthouse", env={})

    def test_overrides(self):
        config = resolve_config(COMPLIANCE, env={}).with_overrides(summary_path="s.md", report_path=None)
        assert config.summary_path == Path("s.md")
        assert config.report_path == Path(DEFAULT_COMPLIANCE_REPORT)


class TestMain:
    """Test the command-line entry point"""

    def test_env_paths(self, tmp_path, monkeypatch, capsys):
        report = write_json(tmp_path / "r.json", compliance_report(fail_count=25))
        baseline = write_json(tmp_path / "b.json", {"max_fail_count": 20})
        summary = tmp_path / "s.md"
        monkeypatch.setenv("COMPLIANCE_REPORT_PATH", str(report))
        monkeypatch.setenv("COMPLIANCE_BASELINE_PATH", str(baseline))
        monkeypatch.setenv("COMPLIANCE_SUMMARY_PATH", str(summary))

        assert main(["compliance"]) == EXIT_FAILURE
        assert "Total failures: 25 (max: 20)" in summary.read_text(encoding="utf-8")

    def test_flags_win_over_env(self, tmp_path, monkeypatch, capsys):
        report = write_json(tmp_path / "r.json", {"cards": []})
        baseline = write_json(tmp_path / "b.json", ttfi_budgets())
        monkeypatch.setenv("TTFI_REPORT_PATH", str(tmp_path / "missing.json"))

        code = main([
            "ttfi",
            "--report", str(report),
            "--baseline", str(baseline),
            "--summary", str(tmp_path / "s.md"),
        ])

        assert code == EXIT_SUCCESS
        assert (tmp_path / "s.md").exists()

    def test_default_layout_relative_to_cwd(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        for name in ("TTFI_REPORT_PATH", "TTFI_BASELINE_PATH", "TTFI_SUMMARY_PATH"):
            monkeypatch.delenv(name, raising=False)
        write_json(tmp_path / "test-results" / "ttfi-report.json", {"cards": []})
        write_json(tmp_path / "e2e" / "perf" / "ttfi-baseline.json", ttfi_budgets())

        assert main(["ttfi"]) == EXIT_SUCCESS
        assert (tmp_path / "test-results" / "ttfi-gate-summary.md").exists()

    def test_variant_required(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2
