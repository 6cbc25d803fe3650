"""
Query complexity scoring.

This module turns the counters of a finished parse into a weighted
complexity score and class, computes the graph-based deep metrics
(CTE depth, fan-out, critical path) and assigns per-node complexity
levels.
"""

from __future__ import annotations

import math
from typing import Iterable

from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.models.flow import ComplexityLevel, FlowEdge, FlowNode, NodeKind
from sqlflow_analyzer.models.stats import Complexity, QueryStats

COMPLEXITY_WEIGHTS: dict[str, float] = {
    "tables": 1.0,
    "joins": 3.0,
    "subqueries": 5.0,
    "ctes": 4.0,
    "aggregations": 2.0,
    "window_functions": 4.0,
    "unions": 3.0,
    "conditions": 0.5,
}

# Upper bounds (exclusive) of each class; anything above is VERY_COMPLEX.
COMPLEXITY_THRESHOLDS: list[tuple[int, Complexity]] = [
    (5, Complexity.SIMPLE),
    (15, Complexity.MODERATE),
    (30, Complexity.COMPLEX),
]


def complexity_breakdown(stats: QueryStats) -> dict[str, float]:
    """Weighted contribution of every counter.

    Example:
        >>> complexity_breakdown(QueryStats(tables=2, joins=1))["joins"]
        3.0
    """
    counts = stats.counts()
    return {name: counts[name] * weight for name, weight in COMPLEXITY_WEIGHTS.items()}


def calculate_complexity_score(stats: QueryStats) -> int:
    """Weighted sum of the counters, rounded half up.

    Non-decreasing in every counter.

    Example:
        >>> calculate_complexity_score(QueryStats(tables=1, conditions=1))
        2
    """
    raw = sum(complexity_breakdown(stats).values())
    return int(math.floor(raw + 0.5))


def classify_complexity(score: int) -> Complexity:
    """Map a score to its class.

    Example:
        >>> classify_complexity(4), classify_complexity(30)
        (<Complexity.SIMPLE: 'Simple'>, <Complexity.VERY_COMPLEX: 'Very Complex'>)
    """
    for bound, complexity in COMPLEXITY_THRESHOLDS:
        if score < bound:
            return complexity
    return Complexity.VERY_COMPLEX


def apply_complexity(stats: QueryStats) -> QueryStats:
    """Fill ``complexity_score``, ``complexity`` and ``complexity_breakdown``."""
    stats.complexity_score = calculate_complexity_score(stats)
    stats.complexity = classify_complexity(stats.complexity_score)
    stats.complexity_breakdown = complexity_breakdown(stats)
    return stats


def _all_nodes(nodes: Iterable[FlowNode]) -> Iterable[FlowNode]:
    for node in nodes:
        yield from node.walk()


def max_cte_depth(nodes: Iterable[FlowNode]) -> int:
    """Deepest ``cte_depth`` recorded on any CTE node, nested ones included."""
    return max(
        (
            node.cte_depth
            for node in _all_nodes(nodes)
            if node.kind == NodeKind.CTE and node.cte_depth is not None
        ),
        default=0,
    )


def max_fan_out(nodes: list[FlowNode], edges: list[FlowEdge]) -> int:
    """Largest out-degree over the graph and every nested sub-graph."""
    best = FlowGraph(nodes, edges).max_fan_out()
    for node in nodes:
        if node.children:
            best = max(best, max_fan_out(node.children, node.child_edges))
    return best


def apply_deep_metrics(stats: QueryStats, nodes: list[FlowNode], edges: list[FlowEdge]) -> QueryStats:
    """Fill ``max_cte_depth``, ``max_fan_out`` and ``critical_path_length``."""
    stats.max_cte_depth = max_cte_depth(nodes)
    stats.max_fan_out = max_fan_out(nodes, edges)
    stats.critical_path_length = FlowGraph(nodes, edges).critical_path_length()
    return stats


def assign_complexity_levels(nodes: list[FlowNode], stats: QueryStats) -> None:
    """Set ``complexity_level`` on join, aggregate and subquery nodes."""
    for node in _all_nodes(nodes):
        if node.kind == NodeKind.JOIN:
            node.complexity_level = _level(stats.joins, high=5, medium=2)
        elif node.kind == NodeKind.AGGREGATE:
            functions = len(node.aggregate_details.functions) if node.aggregate_details else 0
            node.complexity_level = _level(functions, high=4, medium=2)
        elif node.kind == NodeKind.SUBQUERY:
            node.complexity_level = (
                ComplexityLevel.HIGH if stats.subqueries > 2 else ComplexityLevel.LOW
            )


def _level(value: int, high: int, medium: int) -> ComplexityLevel:
    if value > high:
        return ComplexityLevel.HIGH
    if value > medium:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.LOW
