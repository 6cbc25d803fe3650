"""
Per-invocation parse state.

This module defines the ParseContext class, which owns every piece of
mutable state of one analysis: statistics, hints, the node id counter, the
table-usage multiset, query flags and the nesting depth. A fresh context is
created for each statement and passed explicitly to every processing step,
so independent statements can be analyzed concurrently.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from sqlglot import exp

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import RecursionDepthError
from sqlflow_analyzer.models.config import FlowConfig
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.models.stats import (
    HintCategory,
    HintKind,
    HintSeverity,
    OptimizationHint,
    QueryStats,
)
from sqlflow_analyzer.utils.hints import HintCollector


@dataclass
class DerivedTable:
    """A CTE or FROM subquery whose output columns are read downstream.

    Attributes:
        node_id: Id of the CTE or SUBQUERY container node.
        name: CTE name or subquery alias, None for an unaliased subquery.
        query: Body of the CTE or subquery.
        columns: Output column names of the body.
        is_cte: True for CTEs, which may also go unreferenced.
    """

    node_id: str
    name: Optional[str]
    query: exp.Expression
    columns: list[str] = field(default_factory=list)
    is_cte: bool = False


class ParseContext:
    """Mutable state of one analysis.

    Attributes:
        config: Analysis configuration.
        dialect: Dialect of the statement being analyzed.
        classifier: Function classifier for ``dialect`` plus the config's
            custom function names.
        stats: Running statistics.
        hints: Accumulated optimization hints.
        table_usage: Lowercased table name to number of references.
        has_select_star: True once any projection uses ``*``.
        has_no_limit: False once any LIMIT/OFFSET/FETCH is seen.
        statement_type: Kind of the statement being analyzed.
        implicit_cross_joins: Ids of joins created from comma-separated
            FROM items.
        statement_ast: AST of the statement being analyzed.
        derived_tables: CTEs and FROM subqueries, in processing order.
        subquery_signatures: Normalized subquery SQL to the ids of the
            SUBQUERY nodes built from it.
        depth: Current query nesting depth.

    Example:
        >>> context = ParseContext()
        >>> context.next_id("table")
        'table_0'
        >>> context.next_id("select")
        'select_1'
        >>> context.track_table_usage("Users")
        >>> context.table_usage
        {'users': 1}
    """

    def __init__(
        self,
        config: Optional[FlowConfig] = None,
        dialect: Optional[SqlDialect] = None,
    ) -> None:
        self.config = config or FlowConfig()
        self.dialect = dialect or self.config.dialect
        self.classifier = FunctionClassifier(
            self.dialect,
            custom_aggregates=self.config.custom_aggregate_functions,
            custom_windows=self.config.custom_window_functions,
            custom_table_functions=self.config.custom_table_functions,
        )
        self.stats = QueryStats()
        self.hints = HintCollector()
        self.table_usage: dict[str, int] = {}
        self.has_select_star = False
        self.has_no_limit = True
        self.statement_type: Optional[StatementType] = None
        self.implicit_cross_joins: list[str] = []
        self.statement_ast: Optional[exp.Expression] = None
        self.derived_tables: list[DerivedTable] = []
        self.subquery_signatures: dict[str, list[str]] = {}
        self.depth = 0
        self._counter = 0

    @property
    def sqlglot_dialect(self) -> str:
        """sqlglot dialect name used when rendering expressions."""
        return self.dialect.sqlglot_name

    def next_id(self, prefix: str) -> str:
        """Issue the next node or edge id, e.g. ``"join_7"``.

        One counter is shared by all prefixes, so ids are strictly
        increasing in issue order.
        """
        node_id = f"{prefix}_{self._counter}"
        self._counter += 1
        return node_id

    def track_table_usage(self, name: str) -> None:
        """Count one reference to ``name``, case-insensitively.

        The first reference to a name also counts one distinct table.
        """
        if not name:
            return
        key = name.lower()
        if key not in self.table_usage:
            self.increment_tables()
        self.table_usage[key] = self.table_usage.get(key, 0) + 1

    def track_subquery(self, sql: str, node_id: str) -> None:
        """Record a SUBQUERY node under its whitespace- and case-normalized SQL."""
        signature = " ".join(sql.lower().split())
        self.subquery_signatures.setdefault(signature, []).append(node_id)

    def add_derived_table(self, derived: DerivedTable) -> None:
        self.derived_tables.append(derived)

    def increment_tables(self, count: int = 1) -> None:
        self.stats.tables += count

    def increment_joins(self, count: int = 1) -> None:
        self.stats.joins += count

    def increment_subqueries(self, count: int = 1) -> None:
        self.stats.subqueries += count

    def increment_ctes(self, count: int = 1) -> None:
        self.stats.ctes += count

    def increment_aggregations(self, count: int = 1) -> None:
        self.stats.aggregations += count

    def increment_window_functions(self, count: int = 1) -> None:
        self.stats.window_functions += count

    def increment_unions(self, count: int = 1) -> None:
        self.stats.unions += count

    def increment_conditions(self, count: int = 1) -> None:
        self.stats.conditions += count

    def add_hint(
        self,
        kind: HintKind,
        message: str,
        category: HintCategory = HintCategory.OTHER,
        severity: HintSeverity = HintSeverity.LOW,
        suggestion: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> OptimizationHint:
        return self.hints.add(kind, message, category, severity, suggestion, node_id)

    def set_statement_type(self, statement_type: StatementType) -> None:
        self.statement_type = statement_type

    @contextmanager
    def enter_scope(self) -> Iterator[int]:
        """Track one level of query nesting.

        Raises:
            RecursionDepthError: If the nesting exceeds ``config.max_depth``.
        """
        self.depth += 1
        try:
            if self.depth > self.config.max_depth:
                raise RecursionDepthError(self.depth, self.config.max_depth)
            yield self.depth
        finally:
            self.depth -= 1

    def finalize_stats(self) -> QueryStats:
        """Return the statistics once the graph is built.

        ``stats.tables`` equals the number of distinct names in
        ``table_usage``.
        """
        return self.stats
