"""
Utility functions and helpers for flow analysis.

This package contains sqlglot AST helpers, the hint collector and the
source line range guesser.
"""

from sqlflow_analyzer.utils.ast_utils import (
    child_of_type,
    children_of_type,
    find_nested_queries,
    is_query,
    is_set_operation,
    render,
    unalias,
    walk_outside,
)
from sqlflow_analyzer.utils.hints import HintCollector
from sqlflow_analyzer.utils.line_numbers import LineLocator, assign_line_ranges

__all__ = [
    "child_of_type",
    "children_of_type",
    "find_nested_queries",
    "is_query",
    "is_set_operation",
    "render",
    "unalias",
    "walk_outside",
    "HintCollector",
    "LineLocator",
    "assign_line_ranges",
]
