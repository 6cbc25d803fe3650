"""
Hint collection for flow analysis.

This module defines the HintCollector class, which accumulates optimization
hints during one analysis in insertion order and reports them back.
"""

from __future__ import annotations

from typing import Optional

from sqlflow_analyzer.models.stats import (
    HintCategory,
    HintKind,
    HintSeverity,
    OptimizationHint,
)


class HintCollector:
    """Collects optimization hints during flow analysis.

    Hints are kept in the order they were added; no de-duplication is
    done.

    Attributes:
        hints: List of OptimizationHint objects collected so far.

    Example:
        >>> collector = HintCollector()
        >>> hint = collector.add(HintKind.WARNING, "SELECT * detected")
        >>> collector.has_errors()
        False
        >>> hint = collector.add(HintKind.ERROR, "UPDATE without WHERE")
        >>> collector.has_errors()
        True
        >>> len(collector)
        2
    """

    def __init__(self) -> None:
        """Initialize an empty HintCollector."""
        self.hints: list[OptimizationHint] = []

    def __len__(self) -> int:
        return len(self.hints)

    def add(
        self,
        kind: HintKind,
        message: str,
        category: HintCategory = HintCategory.OTHER,
        severity: HintSeverity = HintSeverity.LOW,
        suggestion: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> OptimizationHint:
        """Add a hint.

        Args:
            kind: Error, warning or info.
            message: Human-readable finding.
            category: Area the hint concerns.
            severity: High, medium or low.
            suggestion: Optional remedy.
            node_id: Node the hint refers to, if any.

        Returns:
            The added OptimizationHint.
        """
        hint = OptimizationHint(
            kind=kind,
            message=message,
            category=category,
            severity=severity,
            suggestion=suggestion,
            node_id=node_id,
        )
        self.hints.append(hint)
        return hint

    def has_errors(self) -> bool:
        """Check if any error-kind hints exist."""
        return any(hint.kind == HintKind.ERROR for hint in self.hints)

    def get_all(self) -> list[OptimizationHint]:
        """Get all collected hints, in insertion order."""
        return self.hints.copy()

    def get_by_kind(self, kind: HintKind) -> list[OptimizationHint]:
        """Get the hints of one kind, in insertion order."""
        return [hint for hint in self.hints if hint.kind == kind]

    def get_by_category(self, category: HintCategory) -> list[OptimizationHint]:
        """Get the hints of one category, in insertion order."""
        return [hint for hint in self.hints if hint.category == category]

    def clear(self) -> None:
        """Remove all collected hints."""
        self.hints.clear()

    def get_summary(self) -> dict[str, int]:
        """Get hint counts by kind.

        Example:
            >>> collector = HintCollector()
            >>> hint = collector.add(HintKind.INFO, "No LIMIT")
            >>> collector.get_summary()
            {'error': 0, 'warning': 0, 'info': 1}
        """
        summary: dict[str, int] = {kind.value: 0 for kind in HintKind}
        for hint in self.hints:
            summary[hint.kind.value] += 1
        return summary
