"""
Configuration model for flow analysis.

This module defines the FlowConfig class and the enums it uses, which control
the behavior of the flow analyzer: the default dialect, recursion limits,
how column expressions are rendered, which layout is computed, and how
unsupported statements are handled.
"""

from dataclasses import dataclass, field
from enum import Enum

from sqlflow_analyzer.dialects.dialect import SqlDialect


class ErrorMode(str, Enum):
    """Enumeration of error handling modes.

    Attributes:
        FAIL: Report the statement as failed (``error`` set on the result).
        WARN: Keep going with a degraded graph and record an Info hint.
        IGNORE: Keep going silently with an empty graph.

    Example:
        >>> ErrorMode.values()
        ['fail', 'warn', 'ignore']
    """

    FAIL = "fail"
    WARN = "warn"
    IGNORE = "ignore"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all possible error mode values."""
        return [member.value for member in cls]


class ExpressionFormat(str, Enum):
    """How ``ColumnInfo.expression`` is rendered.

    Attributes:
        SQL: Rendered SQL text in the statement's dialect.
        JSON: JSON serialization of the expression tree.
    """

    SQL = "sql"
    JSON = "json"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class LayoutAlgorithm(str, Enum):
    """Layout algorithm applied to the finished graph."""

    HIERARCHICAL = "hierarchical"
    FORCE = "force"
    RADIAL = "radial"
    NONE = "none"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class LayoutDirection(str, Enum):
    """Rank direction for the hierarchical layout."""

    TOP_BOTTOM = "TB"
    LEFT_RIGHT = "LR"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass
class FlowConfig:
    """Configuration settings for flow analysis.

    All settings have defaults, so ``FlowConfig()`` is a complete
    configuration.

    Attributes:
        dialect: Dialect used when the caller does not pass one.
        max_depth: Maximum nesting depth of subqueries, CTEs and set
            operation branches. Deeper input produces an error result.
        max_condition_depth: AND/OR folding depth for condition extraction.
        max_conditions: Maximum number of conditions kept per clause.
        expression_format: Rendering of ``ColumnInfo.expression``.
        layout_algorithm: Layout computed after analysis.
        layout_direction: Rank direction of the hierarchical layout.
        compact_layout: Use tighter node and rank spacing.
        on_unsupported: Handling of statements that have no flow graph
            (DROP, GRANT, ...).
        custom_aggregate_functions: Extra aggregate function names.
        custom_window_functions: Extra window function names.
        custom_table_functions: Extra table-valued function names.
        max_sql_size_bytes: Largest batch input accepted.
        max_query_count: Largest number of statements in one batch.

    Example:
        >>> config = FlowConfig(dialect=SqlDialect.POSTGRESQL, max_depth=16)
        >>> config.layout_algorithm
        <LayoutAlgorithm.HIERARCHICAL: 'hierarchical'>
    """

    dialect: SqlDialect = SqlDialect.MYSQL
    max_depth: int = 64
    max_condition_depth: int = 3
    max_conditions: int = 5
    expression_format: ExpressionFormat = ExpressionFormat.SQL
    layout_algorithm: LayoutAlgorithm = LayoutAlgorithm.HIERARCHICAL
    layout_direction: LayoutDirection = LayoutDirection.TOP_BOTTOM
    compact_layout: bool = False
    on_unsupported: ErrorMode = ErrorMode.WARN
    custom_aggregate_functions: list[str] = field(default_factory=list)
    custom_window_functions: list[str] = field(default_factory=list)
    custom_table_functions: list[str] = field(default_factory=list)

    # Batch input limits
    max_sql_size_bytes: int = 100_000
    max_query_count: int = 50

    def __post_init__(self) -> None:
        """Validate configuration settings."""
        if not isinstance(self.dialect, SqlDialect):
            raise TypeError("dialect must be a SqlDialect instance")
        for name in ("max_depth", "max_condition_depth", "max_conditions",
                     "max_sql_size_bytes", "max_query_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an integer")
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")
        if not isinstance(self.expression_format, ExpressionFormat):
            raise TypeError("expression_format must be an ExpressionFormat instance")
        if not isinstance(self.layout_algorithm, LayoutAlgorithm):
            raise TypeError("layout_algorithm must be a LayoutAlgorithm instance")
        if not isinstance(self.layout_direction, LayoutDirection):
            raise TypeError("layout_direction must be a LayoutDirection instance")
        if not isinstance(self.compact_layout, bool):
            raise TypeError("compact_layout must be a boolean")
        if not isinstance(self.on_unsupported, ErrorMode):
            raise TypeError("on_unsupported must be an ErrorMode instance")
