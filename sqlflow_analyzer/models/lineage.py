"""
Column lineage models.

This module defines ColumnLineage, the mapping from an output column to the
graph nodes and columns it draws from, and ColumnFlow, the ordered path of
transformation steps from a source column to an output column.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class LineageTransformation(str, Enum):
    """Transformation applied to a column at one lineage step."""

    SOURCE = "source"
    PASSTHROUGH = "passthrough"
    RENAMED = "renamed"
    AGGREGATED = "aggregated"
    CALCULATED = "calculated"
    JOINED = "joined"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all transformation values."""
        return [member.value for member in cls]


@dataclass
class LineageSource:
    """A source of an output column: a node id and a column name."""

    node_id: str
    column_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"node_id": self.node_id, "column_name": self.column_name}


@dataclass
class ColumnLineage:
    """Output column and every source it draws from.

    Attributes:
        output_column: Name of the projected column.
        sources: Source entries; several when the expression combines
            columns (``a + b``) or a set operation merges branches.

    Example:
        >>> lineage = ColumnLineage("total", [LineageSource("table_0", "amount")])
        >>> lineage.source_columns()
        ['amount']
    """

    output_column: str
    sources: list[LineageSource] = field(default_factory=list)

    def source_columns(self) -> list[str]:
        return [source.column_name for source in self.sources]

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_column": self.output_column,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass
class LineageStep:
    """One hop of a column flow.

    Attributes:
        node_id: Graph node where the step happens.
        node_name: Label of that node (table name for source steps).
        column_name: Column name at this step.
        transformation: What the node does to the column.
        expression: Rendered expression for computed steps.
    """

    node_id: str
    node_name: str
    column_name: str
    transformation: LineageTransformation
    expression: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "node_name": self.node_name,
            "column_name": self.column_name,
            "transformation": self.transformation.value,
            "expression": self.expression,
        }


@dataclass
class ColumnFlow:
    """Ordered path from a source column to an output column.

    The first step is always tagged SOURCE and the last step names the
    output column.

    Example:
        users.id -> (joined) id -> (renamed) user_id
    """

    id: str
    output_column: str
    lineage_path: list[LineageStep] = field(default_factory=list)

    @property
    def hops(self) -> int:
        """Number of hops in the path."""
        return len(self.lineage_path) - 1 if self.lineage_path else 0

    @property
    def source(self) -> Optional[LineageStep]:
        """First step of the path."""
        return self.lineage_path[0] if self.lineage_path else None

    @property
    def target(self) -> Optional[LineageStep]:
        """Last step of the path."""
        return self.lineage_path[-1] if self.lineage_path else None

    def to_string(self, use_ascii: bool = False) -> str:
        """Generate a human-readable path string.

        Args:
            use_ascii: Use "->" instead of the Unicode arrow.

        Returns:
            String such as "users.id → (renamed) user_id".
        """
        if not self.lineage_path:
            return "(empty path)"

        parts = []
        for step in self.lineage_path:
            if step.transformation == LineageTransformation.SOURCE:
                parts.append(f"{step.node_name}.{step.column_name}")
            else:
                parts.append(f"({step.transformation.value}) {step.column_name}")

        separator = " -> " if use_ascii else " → "
        return separator.join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "output_column": self.output_column,
            "path": self.to_string(),
            "lineage_path": [step.to_dict() for step in self.lineage_path],
        }
