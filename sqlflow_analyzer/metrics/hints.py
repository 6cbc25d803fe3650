"""
Optimization hint rules.

This module defines the HintEngine class, a fixed, ordered set of rules
run over a finished parse. Each rule is independent; hints are appended to
the context's HintCollector in rule order and are not de-duplicated.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterator, Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.context import DerivedTable, ParseContext
from sqlflow_analyzer.dialects.detection import detect_dialect_markers
from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.models.flow import (
    AccessMode,
    FlowEdge,
    FlowNode,
    NodeKind,
    TableCategory,
    WarningType,
)
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.models.stats import (
    Complexity,
    HintCategory,
    HintKind,
    HintSeverity,
    OptimizationHint,
)

logger = logging.getLogger(__name__)

FAN_OUT_WARNING = 3
FAN_OUT_HIGH = 5
MAX_JOINS_PER_QUERY = 3
MAX_AGGREGATES_PER_NODE = 3
MANY_JOINS = 5
MANY_SUBQUERIES = 3
MIN_SUBQUERY_SIGNATURE = 15


class HintEngine:
    """Runs the hint rules over one finished parse.

    Attributes:
        context: Parse context holding stats, flags and the hint collector.
        nodes: Top-level nodes of the graph.
        edges: Top-level edges of the graph.
        sql: Statement text, used for dialect marker detection.

    Example:
        >>> engine = HintEngine(context, nodes, edges, "SELECT * FROM users")
        >>> [hint.message for hint in engine.run()]
        ['SELECT * retrieves every column']
    """

    def __init__(
        self,
        context: ParseContext,
        nodes: list[FlowNode],
        edges: list[FlowEdge],
        sql: Optional[str] = None,
    ) -> None:
        self.context = context
        self.nodes = nodes
        self.edges = edges
        self.sql = sql or ""

    def run(self) -> list[OptimizationHint]:
        """Apply every rule in order and return all collected hints."""
        self.check_select_star()
        self.check_missing_limit()
        self.check_fan_out()
        self.check_complex_nodes()
        self.check_unfiltered_modification()
        self.check_many_joins()
        self.check_many_subqueries()
        self.check_cartesian_product()
        self.check_unused_ctes()
        self.check_duplicate_subqueries()
        self.check_dead_columns()
        self.check_repeated_tables()
        self.check_dialect_markers()
        logger.debug("Hint rules produced %d hints", len(self.context.hints))
        return self.context.hints.get_all()

    # ========== Rules ==========

    def check_select_star(self) -> None:
        if self.context.has_select_star:
            self.context.add_hint(
                HintKind.WARNING,
                "SELECT * retrieves every column",
                HintCategory.QUALITY,
                HintSeverity.MEDIUM,
                suggestion="List the columns you need explicitly",
            )

    def check_missing_limit(self) -> None:
        context = self.context
        if (
            context.statement_type == StatementType.SELECT
            and context.has_no_limit
            and context.stats.complexity != Complexity.SIMPLE
        ):
            context.add_hint(
                HintKind.INFO,
                f"{context.stats.complexity.value} query without LIMIT",
                HintCategory.BEST_PRACTICE,
                HintSeverity.LOW,
                suggestion="Add a LIMIT clause when exploring data",
            )

    def check_fan_out(self) -> None:
        for nodes, edges in self._levels():
            graph = FlowGraph(nodes, edges)
            for node in nodes:
                degree = graph.out_degree(node.id)
                if degree < FAN_OUT_WARNING:
                    continue
                severity = HintSeverity.HIGH if degree >= FAN_OUT_HIGH else HintSeverity.MEDIUM
                message = f"'{node.label}' feeds {degree} downstream operations"
                self.context.add_hint(
                    HintKind.WARNING,
                    message,
                    HintCategory.PERFORMANCE,
                    severity,
                    suggestion="Materialize the shared result or simplify the query",
                    node_id=node.id,
                )
                node.add_warning(WarningType.FAN_OUT, severity.value, message)

    def check_complex_nodes(self) -> None:
        context = self.context
        if context.stats.joins > MAX_JOINS_PER_QUERY:
            context.add_hint(
                HintKind.WARNING,
                f"Query has {context.stats.joins} joins",
                HintCategory.COMPLEXITY,
                HintSeverity.MEDIUM,
                suggestion="Split the query into CTEs",
            )
            for node in self._all_nodes():
                if node.kind == NodeKind.JOIN:
                    node.add_warning(
                        WarningType.COMPLEX, "medium", f"One of {context.stats.joins} joins"
                    )

        for node in self._all_nodes():
            if node.kind != NodeKind.AGGREGATE or node.aggregate_details is None:
                continue
            count = len(node.aggregate_details.functions)
            if count > MAX_AGGREGATES_PER_NODE:
                message = f"'{node.label}' computes {count} aggregate functions"
                context.add_hint(
                    HintKind.WARNING,
                    message,
                    HintCategory.COMPLEXITY,
                    HintSeverity.MEDIUM,
                    node_id=node.id,
                )
                node.add_warning(WarningType.COMPLEX, "medium", message)

    def check_unfiltered_modification(self) -> None:
        context = self.context
        if context.statement_type not in (StatementType.UPDATE, StatementType.DELETE):
            return
        if context.stats.conditions:
            return
        keyword = context.statement_type.value.upper()
        message = f"{keyword} without WHERE affects every row"
        context.add_hint(
            HintKind.ERROR,
            message,
            HintCategory.QUALITY,
            HintSeverity.HIGH,
            suggestion="Add a WHERE clause",
        )
        for node in self.nodes:
            if node.kind == NodeKind.TABLE and node.access_mode == AccessMode.WRITE:
                node.add_warning(WarningType.NO_FILTER, "high", message)

    def check_many_joins(self) -> None:
        if self.context.stats.joins > MANY_JOINS:
            self.context.add_hint(
                HintKind.WARNING,
                f"More than {MANY_JOINS} joins make the query hard to maintain",
                HintCategory.COMPLEXITY,
                HintSeverity.MEDIUM,
                suggestion="Break the query up with CTEs or views",
            )

    def check_many_subqueries(self) -> None:
        if self.context.stats.subqueries > MANY_SUBQUERIES:
            self.context.add_hint(
                HintKind.WARNING,
                f"Query uses {self.context.stats.subqueries} subqueries",
                HintCategory.COMPLEXITY,
                HintSeverity.MEDIUM,
                suggestion="Rewrite repeated subqueries as CTEs",
            )

    def check_cartesian_product(self) -> None:
        context = self.context
        if context.stats.conditions or not context.implicit_cross_joins:
            return
        implicit = set(context.implicit_cross_joins)
        for node in self._all_nodes():
            if node.id not in implicit:
                continue
            message = "Comma-separated tables without a join condition"
            context.add_hint(
                HintKind.ERROR,
                f"Cartesian product: {message.lower()}",
                HintCategory.PERFORMANCE,
                HintSeverity.HIGH,
                suggestion="Add a JOIN ... ON condition or a WHERE filter",
                node_id=node.id,
            )
            node.add_warning(WarningType.CARTESIAN, "high", message)

    def check_unused_ctes(self) -> None:
        for nodes, edges in self._levels():
            used = {edge.source for edge in edges}
            for node in nodes:
                if node.kind == NodeKind.CTE and node.id not in used:
                    message = f"CTE '{node.label}' is never referenced"
                    self.context.add_hint(
                        HintKind.WARNING,
                        message,
                        HintCategory.QUALITY,
                        HintSeverity.MEDIUM,
                        suggestion="Remove the unused CTE",
                        node_id=node.id,
                    )
                    node.add_warning(WarningType.UNUSED, "medium", message)

    def check_duplicate_subqueries(self) -> None:
        nodes = {node.id: node for node in self._all_nodes()}
        for signature, node_ids in self.context.subquery_signatures.items():
            count = len(node_ids)
            if count < 2 or len(signature) <= MIN_SUBQUERY_SIGNATURE:
                continue
            for node_id in node_ids:
                if node_id in nodes:
                    nodes[node_id].add_warning(
                        WarningType.COMPLEX,
                        "low",
                        f"Similar subquery ({count} duplicates detected)",
                    )
            self.context.add_hint(
                HintKind.INFO,
                f"{count} similar subqueries detected",
                HintCategory.QUALITY,
                HintSeverity.LOW,
                suggestion="Extract the repeated subquery into a CTE",
                node_id=node_ids[0],
            )

    def check_dead_columns(self) -> None:
        """Flag CTE and FROM subquery columns that nothing downstream reads."""
        statement = self.context.statement_ast
        if statement is None:
            return
        nodes = {node.id: node for node in self._all_nodes()}
        for derived in self.context.derived_tables:
            node = nodes.get(derived.node_id)
            dead = dead_columns(statement, derived)
            if node is None or not dead:
                continue
            for column in dead:
                node.add_warning(
                    WarningType.DEAD_COLUMN, "low", f'Column "{column}" is never read downstream'
                )
            names = ", ".join(dead[:3])
            if len(dead) > 3:
                names += f" and {len(dead) - 3} more"
            plural = "s" if len(dead) > 1 else ""
            self.context.add_hint(
                HintKind.INFO,
                f"{len(dead)} dead column{plural} in '{node.label}': {names}",
                HintCategory.QUALITY,
                HintSeverity.LOW,
                suggestion="Remove unused columns from the SELECT list",
                node_id=node.id,
            )

    def check_repeated_tables(self) -> None:
        reads = Counter(
            (node.table_name or node.label).lower()
            for node in self._all_nodes()
            if node.kind == NodeKind.TABLE
            and node.access_mode == AccessMode.READ
            and node.table_category == TableCategory.PHYSICAL
        )
        for table, count in reads.items():
            if count > 1:
                self.context.add_hint(
                    HintKind.WARNING,
                    f"Table '{table}' is read {count} times",
                    HintCategory.PERFORMANCE,
                    HintSeverity.MEDIUM,
                    suggestion="Read it once in a CTE and reuse the result",
                )

    def check_dialect_markers(self) -> None:
        current = self.context.dialect
        for marker, dialects in detect_dialect_markers(self.sql, current):
            if current in dialects:
                continue
            names = ", ".join(d.value for d in dialects)
            self.context.add_hint(
                HintKind.INFO,
                f"{marker} is {names} syntax, but the query is analyzed as {current.value}",
                HintCategory.BEST_PRACTICE,
                HintSeverity.LOW,
                suggestion=f"Check that {current.value} is the intended dialect",
            )

    # ========== Traversal ==========

    def _all_nodes(self) -> Iterator[FlowNode]:
        for node in self.nodes:
            yield from node.walk()

    def _levels(self) -> Iterator[tuple[list[FlowNode], list[FlowEdge]]]:
        """Yield ``(nodes, edges)`` of the top-level graph and every sub-graph."""
        stack = [(self.nodes, self.edges)]
        while stack:
            nodes, edges = stack.pop(0)
            yield nodes, edges
            for node in nodes:
                if node.children:
                    stack.append((node.children, node.child_edges))


def dead_columns(statement: exp.Expression, derived: DerivedTable) -> list[str]:
    """Return the output columns of ``derived`` that nothing outside it reads.

    A column counts as read when any column reference outside the body
    carries its name, unqualified or qualified by the derived table's name
    or alias. A ``*`` selecting from the derived table reads everything.
    CTEs that are never referenced are left to the unused-CTE rule.

    Example:
        >>> ast = sqlglot.parse_one("SELECT s.a FROM (SELECT a, b FROM t) AS s")
        >>> subquery = ast.find(exp.Subquery)
        >>> dead_columns(ast, DerivedTable("subquery_1", "s", subquery, ["a", "b"]))
        ['b']
    """
    name = (derived.name or "").lower()
    outside = [
        node for node in statement.walk(prune=lambda n: n is derived.query)
        if node is not derived.query
    ]

    qualifiers = {name} if name else set()
    referenced = not derived.is_cte
    for node in outside:
        if isinstance(node, exp.Table) and name and not node.db and node.name.lower() == name:
            referenced = True
            if node.alias:
                qualifiers.add(node.alias.lower())
    if not referenced:
        return []

    read: set[str] = set()
    for node in outside:
        if isinstance(node, exp.Star) and isinstance(node.parent, exp.Select):
            return []
        if isinstance(node, exp.Join):
            read.update(ident.name.lower() for ident in node.args.get("using") or [])
        if not isinstance(node, exp.Column):
            continue
        table = node.table.lower()
        if table and table not in qualifiers:
            continue
        if node.is_star:
            return []
        read.add(node.name.lower())
    return [column for column in derived.columns if column.lower() not in read]
