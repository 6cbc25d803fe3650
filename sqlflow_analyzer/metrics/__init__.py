"""Complexity scoring and optimization hint rules."""

from sqlflow_analyzer.metrics.complexity import (
    COMPLEXITY_WEIGHTS,
    apply_complexity,
    apply_deep_metrics,
    assign_complexity_levels,
    calculate_complexity_score,
    classify_complexity,
    complexity_breakdown,
)
from sqlflow_analyzer.metrics.hints import HintEngine

__all__ = [
    "COMPLEXITY_WEIGHTS",
    "HintEngine",
    "apply_complexity",
    "apply_deep_metrics",
    "assign_complexity_levels",
    "calculate_complexity_score",
    "classify_complexity",
    "complexity_breakdown",
]
