"""
Column model for flow analysis.

This module defines ColumnInfo, the descriptor recorded for every column a
projection node emits, and the TransformationType enum that classifies how
the column was produced.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class TransformationType(str, Enum):
    """How a projected column is derived from its input.

    Attributes:
        PASSTHROUGH: The column is forwarded unchanged.
        RENAMED: A column reference given a new name (``a AS b``).
        AGGREGATED: Produced by an aggregate function.
        CALCULATED: Produced by a window function or a computed expression.

    Example:
        >>> TransformationType.values()
        ['passthrough', 'renamed', 'aggregated', 'calculated']
    """

    PASSTHROUGH = "passthrough"
    RENAMED = "renamed"
    AGGREGATED = "aggregated"
    CALCULATED = "calculated"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all transformation type values."""
        return [member.value for member in cls]


@dataclass
class ColumnInfo:
    """Descriptor of one projected column.

    Attributes:
        name: Output name (alias, column name, function name, literal value,
            or "expr").
        expression: Rendered expression, SQL text or JSON depending on the
            configured expression format.
        source_column: Single source column name, when the expression is a
            (possibly CAST-wrapped) column reference.
        source_table: Table name or alias qualifying ``source_column``. None
            when the reference is unqualified and cannot be attributed.
        is_aggregate: True if the expression contains an aggregate function.
        is_window_func: True if the expression contains a window function.
        transformation_type: Structural classification of the expression.

    Example:
        >>> col = ColumnInfo(name="total", expression="SUM(amount)",
        ...                  is_aggregate=True,
        ...                  transformation_type=TransformationType.AGGREGATED)
        >>> col.to_dict()["transformation_type"]
        'aggregated'
    """

    name: str
    expression: str
    source_column: Optional[str] = None
    source_table: Optional[str] = None
    is_aggregate: bool = False
    is_window_func: bool = False
    transformation_type: TransformationType = TransformationType.PASSTHROUGH

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["transformation_type"] = self.transformation_type.value
        return data
