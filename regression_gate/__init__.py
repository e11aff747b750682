"""Regression gate: judge a metrics report against a committed baseline."""

from .evaluator import evaluate, evaluate_compliance, evaluate_ttfi
from .gate import main, run_gate
from .models import Verdict

__all__ = ["evaluate", "evaluate_compliance", "evaluate_ttfi", "main", "run_gate", "Verdict"]
