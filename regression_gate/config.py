"""Input and output locations for a gate run.

Paths are resolved once at startup from the environment (empty values count
as unset) and handed to the driver as a frozen GateConfig.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .constants import (
    COMPLIANCE_BASELINE_ENV,
    COMPLIANCE_REPORT_ENV,
    COMPLIANCE_SUMMARY_ENV,
    DEFAULT_COMPLIANCE_BASELINE,
    DEFAULT_COMPLIANCE_REPORT,
    DEFAULT_COMPLIANCE_SUMMARY,
    DEFAULT_TTFI_BASELINE,
    DEFAULT_TTFI_REPORT,
    DEFAULT_TTFI_SUMMARY,
    TTFI_BASELINE_ENV,
    TTFI_REPORT_ENV,
    TTFI_SUMMARY_ENV,
)

COMPLIANCE = "compliance"
TTFI = "ttfi"
VARIANTS = (COMPLIANCE, TTFI)

# variant -> ((env var, default) for report, baseline, summary)
_SETTINGS = {
    COMPLIANCE: (
        (COMPLIANCE_REPORT_ENV, DEFAULT_COMPLIANCE_REPORT),
        (COMPLIANCE_BASELINE_ENV, DEFAULT_COMPLIANCE_BASELINE),
        (COMPLIANCE_SUMMARY_ENV, DEFAULT_COMPLIANCE_SUMMARY),
    ),
    TTFI: (
        (TTFI_REPORT_ENV, DEFAULT_TTFI_REPORT),
        (TTFI_BASELINE_ENV, DEFAULT_TTFI_BASELINE),
        (TTFI_SUMMARY_ENV, DEFAULT_TTFI_SUMMARY),
    ),
}


@dataclass(frozen=True)
class GateConfig:
    """Where to read the report and baseline, and where to write the summary."""
    report_path: Path
    baseline_path: Path
    summary_path: Path

    def with_overrides(
        self,
        report_path: Optional[str] = None,
        baseline_path: Optional[str] = None,
        summary_path: Optional[str] = None,
    ) -> "GateConfig":
        """Return a copy with any non-empty override applied (CLI flags win over env)."""
        changes = {}
        if report_path:
            changes["report_path"] = Path(report_path)
        if baseline_path:
            changes["baseline_path"] = Path(baseline_path)
        if summary_path:
            changes["summary_path"] = Path(summary_path)
        return replace(self, **changes)


def _lookup(env: Mapping[str, str], name: str, default: str) -> Path:
    value = env.get(name, "").strip()
    return Path(value or default)


def resolve_config(variant: str, env: Optional[Mapping[str, str]] = None) -> GateConfig:
    """
    Build the GateConfig for a report variant.

    Args:
        variant: "compliance" or "ttfi"
        env: Environment mapping (defaults to os.environ)

    Raises:
        ValueError: If variant is unknown
    """
    if variant not in _SETTINGS:
        raise ValueError(f"Unknown gate variant {variant!r}, expected one of {', '.join(VARIANTS)}")
    if env is None:
        env = os.environ
    report, baseline, summary = _SETTINGS[variant]
    return GateConfig(
        report_path=_lookup(env, *report),
        baseline_path=_lookup(env, *baseline),
        summary_path=_lookup(env, *summary),
    )
