"""
Regression Gate - Constants Configuration

This module centralizes all configuration constants used throughout the gate.
Each constant is documented with its purpose and acceptable value ranges.
"""

# ==============================================================================
# STATISTICS
# ==============================================================================

# Value returned by percentile() and mean() for an empty sequence
# Callers must read this as "no data", never as a measured 0ms
EMPTY_SENTINEL = -1.0

# Percentile used for the TTFI budget check (0.0 - 1.0)
# 0.95 = p95, nearest-rank
P95_QUANTILE = 0.95

# Conversion factor from fraction to percentage
# Multiply by 100 to convert 0.05 -> 5%
PCT_CONVERSION_FACTOR = 100


# ==============================================================================
# COMPLIANCE POLICY DEFAULTS
# ==============================================================================

# Maximum number of failed cards when the baseline omits max_fail_count
DEFAULT_MAX_FAIL_COUNT = 20

# Tolerance when comparing producer pass rates against recomputed ones
# Only used with --verify-aggregates. 0.005 = half a percentage point
AGGREGATE_RATE_TOLERANCE = 0.005

# Criterion statuses emitted by the compliance producer
STATUS_PASS = "pass"
STATUS_FAIL = "fail"
STATUS_WARN = "warn"
STATUS_SKIP = "skip"
CRITERION_STATUSES = (STATUS_PASS, STATUS_FAIL, STATUS_WARN, STATUS_SKIP)

# Card loading criteria and what each one checks
# Used for the criterion table in the compliance summary
CRITERION_DESCRIPTIONS = {
    "a": "Skeleton without demo badge during loading",
    "b": "Refresh icon spins during loading",
    "c": "Data loads via SSE streaming",
    "d": "Skeleton replaced by data content",
    "e": "Refresh icon animated during incremental load",
    "f": "Data cached persistently as it loads",
    "g": "Cached data loads immediately on return",
    "h": "Cached data updated without skeleton regression",
}


# ==============================================================================
# TTFI POLICY
# ==============================================================================

# Execution modes measured by the TTFI run, in report order
# Every mode must have a budget in the baseline
KNOWN_MODES = ("live-cold", "live-warm", "demo-cold", "demo-warm")

# Terminal states of a timed card
TIMING_OK = "ok"
TIMING_TIMEOUT = "timeout"
TIMING_ERROR = "error"
TIMING_STATUSES = (TIMING_OK, TIMING_TIMEOUT, TIMING_ERROR)


# ==============================================================================
# SUMMARY RENDERING
# ==============================================================================

# Maximum number of violations listed in a summary
# Violations beyond this are not displayed but still fail the gate
MAX_RENDERED_VIOLATIONS = 200


# ==============================================================================
# CONFIGURATION (environment overrides and defaults, relative to CWD)
# ==============================================================================

COMPLIANCE_REPORT_ENV = "COMPLIANCE_REPORT_PATH"
COMPLIANCE_BASELINE_ENV = "COMPLIANCE_BASELINE_PATH"
COMPLIANCE_SUMMARY_ENV = "COMPLIANCE_SUMMARY_PATH"

DEFAULT_COMPLIANCE_REPORT = "test-results/compliance-report.json"
DEFAULT_COMPLIANCE_BASELINE = "e2e/compliance/compliance-baseline.json"
DEFAULT_COMPLIANCE_SUMMARY = "test-results/compliance-gate-summary.md"

TTFI_REPORT_ENV = "TTFI_REPORT_PATH"
TTFI_BASELINE_ENV = "TTFI_BASELINE_PATH"
TTFI_SUMMARY_ENV = "TTFI_SUMMARY_PATH"

DEFAULT_TTFI_REPORT = "test-results/ttfi-report.json"
DEFAULT_TTFI_BASELINE = "e2e/perf/ttfi-baseline.json"
DEFAULT_TTFI_SUMMARY = "test-results/ttfi-gate-summary.md"


# ==============================================================================
# EXIT CODES
# ==============================================================================

# Exit code for a passing gate
EXIT_SUCCESS = 0

# Exit code for policy violations and for missing or malformed inputs
EXIT_FAILURE = 1
