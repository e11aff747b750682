#!/usr/bin/env python3
from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from scipy import stats

from .constants import EMPTY_SENTINEL, PCT_CONVERSION_FACTOR


# -----------------------------
# Helpers (nearest-rank stats)
# -----------------------------

def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile.

    Sorts a copy of the values and returns the element at index
    max(0, ceil(n * p) - 1). No interpolation: baselines were calibrated
    against this exact formula, so p95 of [10, 20, 30, 40] is 40.

    Args:
        values: Measurements (not modified)
        p: Percentile as a fraction in [0, 1]

    Returns:
        The selected measurement, or EMPTY_SENTINEL (-1) if values is empty

    Raises:
        ValueError: If p is outside [0, 1]
    """
    if not (0 <= p <= 1):
        raise ValueError(f"p must be between 0 and 1, got {p}")
    if len(values) == 0:
        return EMPTY_SENTINEL

    ordered = np.sort(np.asarray(values, dtype=float))
    index = max(0, math.ceil(len(ordered) * p) - 1)
    return float(ordered[index])


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, or EMPTY_SENTINEL (-1) for an empty sequence."""
    if len(values) == 0:
        return EMPTY_SENTINEL
    return float(np.mean(np.asarray(values, dtype=float)))


def pass_rate(outcomes: Sequence[bool]) -> float:
    """
    Fraction of outcomes that are true.

    Raises:
        ValueError: If outcomes is empty (the rate is undefined)
    """
    if len(outcomes) == 0:
        raise ValueError("pass_rate is undefined for an empty sequence")
    return float(np.mean(np.asarray(outcomes, dtype=bool)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_percent(rate: float) -> int:
    """Convert a rate in [0, 1] to a whole percent (0.845 -> 85)."""
    return round_half_up(rate * PCT_CONVERSION_FACTOR)


def percent_pair(rate: float, limit: float) -> Tuple[str, str]:
    """
    Render a rate and its limit as percents that read as different values.

    Whole percents are used unless rounding makes them collide
    (0.895 vs 0.9 -> "89.5", "90.0"); then decimals are added until they differ.
    """
    shown = str(to_percent(rate)), str(to_percent(limit))
    digits = 1
    while shown[0] == shown[1] and rate != limit and digits <= 6:
        shown = (
            f"{rate * PCT_CONVERSION_FACTOR:.{digits}f}",
            f"{limit * PCT_CONVERSION_FACTOR:.{digits}f}",
        )
        digits += 1
    return shown


def round_ms(value: float) -> int:
    return round_half_up(value)


def format_ms(value: float) -> str:
    """Render a millisecond value without a spurious ".0" (1200.0 -> "1200", 12.34 -> "12.3")."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.1f}"


def within_budget_pct(values: Sequence[float], ceiling: float) -> float:
    """
    Percentage of values at or below a ceiling.

    Uses the "weak" percentile-of-score definition, so a value equal to the
    ceiling counts as within budget.

    Returns:
        Percentage in [0, 100], or EMPTY_SENTINEL for an empty sequence
    """
    if len(values) == 0:
        return EMPTY_SENTINEL
    return float(stats.percentileofscore(np.asarray(values, dtype=float), ceiling, kind="weak"))
