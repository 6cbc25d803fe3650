"""
Query statistics and optimization hint models.

This module defines QueryStats, the counters and derived complexity
measures of one statement, and OptimizationHint, a rule finding reported to
the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Complexity(str, Enum):
    """Complexity classification derived from the weighted score."""

    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"
    VERY_COMPLEX = "Very Complex"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class HintKind(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class HintCategory(str, Enum):
    PERFORMANCE = "performance"
    QUALITY = "quality"
    BEST_PRACTICE = "best-practice"
    COMPLEXITY = "complexity"
    OTHER = "other"


class HintSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class QueryStats:
    """Counters and complexity measures of one statement.

    Attributes:
        tables: Distinct tables read or written.
        joins: Join nodes, including implicit cross joins.
        subqueries: Subquery containers.
        ctes: CTE definitions.
        aggregations: Aggregate nodes.
        window_functions: Window function calls.
        unions: Set operators (UNION, INTERSECT, EXCEPT).
        conditions: WHERE conditions.
        complexity: Classification of ``complexity_score``.
        complexity_score: Weighted sum of the counters, rounded.
        max_cte_depth: Deepest CTE nesting level.
        max_fan_out: Largest node out-degree.
        critical_path_length: Longest source-to-result path, in edges.
        complexity_breakdown: Weighted contribution of each counter.

    Example:
        >>> stats = QueryStats(tables=1)
        >>> stats.complexity
        <Complexity.SIMPLE: 'Simple'>
    """

    tables: int = 0
    joins: int = 0
    subqueries: int = 0
    ctes: int = 0
    aggregations: int = 0
    window_functions: int = 0
    unions: int = 0
    conditions: int = 0
    complexity: Complexity = Complexity.SIMPLE
    complexity_score: int = 0
    max_cte_depth: Optional[int] = None
    max_fan_out: Optional[int] = None
    critical_path_length: Optional[int] = None
    complexity_breakdown: Optional[dict[str, float]] = None

    def counts(self) -> dict[str, int]:
        """Return the raw counter vector."""
        return {
            "tables": self.tables,
            "joins": self.joins,
            "subqueries": self.subqueries,
            "ctes": self.ctes,
            "aggregations": self.aggregations,
            "window_functions": self.window_functions,
            "unions": self.unions,
            "conditions": self.conditions,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = self.counts()
        data["complexity"] = self.complexity.value
        data["complexity_score"] = self.complexity_score
        data["max_cte_depth"] = self.max_cte_depth
        data["max_fan_out"] = self.max_fan_out
        data["critical_path_length"] = self.critical_path_length
        data["complexity_breakdown"] = (
            dict(self.complexity_breakdown) if self.complexity_breakdown else None
        )
        return data


@dataclass
class OptimizationHint:
    """A finding from the hint rules.

    Attributes:
        kind: Error, warning or info.
        category: Area the hint concerns.
        severity: High, medium or low.
        message: Human-readable finding.
        suggestion: Optional remedy.
        node_id: Node the hint refers to, if any.
    """

    kind: HintKind
    message: str
    category: HintCategory = HintCategory.OTHER
    severity: HintSeverity = HintSeverity.LOW
    suggestion: Optional[str] = None
    node_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
            "node_id": self.node_id,
        }

