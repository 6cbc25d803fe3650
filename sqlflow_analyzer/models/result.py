"""
Flow analysis result models.

This module defines FlowResult, the immutable result of analyzing one SQL
statement, and BatchResult, the per-statement results of a script.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import networkx as nx

from sqlflow_analyzer.models.flow import FlowEdge, FlowNode
from sqlflow_analyzer.models.lineage import ColumnFlow, ColumnLineage
from sqlflow_analyzer.models.resolution import Guessed
from sqlflow_analyzer.models.stats import HintKind, OptimizationHint, QueryStats


@dataclass(frozen=True)
class FlowResult:
    """Result of analyzing one SQL statement.

    A result with ``error`` set has an empty graph, default stats and no
    hints; callers should show the error instead of a graph.

    Attributes:
        nodes: Top-level flow nodes; containers hold their sub-graphs.
        edges: Top-level flow edges.
        stats: Counters and complexity measures.
        hints: Optimization hints, in rule order.
        sql: Statement text.
        error: Error message if the analysis failed.
        column_lineage: Sources of every output column.
        column_flows: Source-to-output paths of every output column.
        table_usage: Lowercased table name to number of references.
        statement_type: Kind of the statement, e.g. "select".
        dialect: Dialect the statement was analyzed in.
        start_line: Line of the statement's first line in its script.
        line_ranges: Node id to guessed ``(start, end)`` source lines.

    Example:
        >>> result = FlowAnalyzer().analyze_sql("SELECT id FROM users")
        >>> result.success
        True
        >>> [node.kind.value for node in result.nodes]
        ['table', 'select', 'result']
    """

    nodes: list[FlowNode] = field(default_factory=list)
    edges: list[FlowEdge] = field(default_factory=list)
    stats: QueryStats = field(default_factory=QueryStats)
    hints: list[OptimizationHint] = field(default_factory=list)
    sql: str = ""
    error: Optional[str] = None
    column_lineage: list[ColumnLineage] = field(default_factory=list)
    column_flows: list[ColumnFlow] = field(default_factory=list)
    table_usage: dict[str, int] = field(default_factory=dict)
    statement_type: Optional[str] = None
    dialect: Optional[str] = None
    start_line: int = 1
    line_ranges: dict[str, Guessed] = field(default_factory=dict)

    @classmethod
    def failure(
        cls, sql: str, error: str, dialect: Optional[str] = None, start_line: int = 1
    ) -> FlowResult:
        """Build an error result with an empty graph."""
        return cls(sql=sql, error=error, dialect=dialect, start_line=start_line)

    @property
    def success(self) -> bool:
        return self.error is None

    def find_node(self, node_id: str) -> Optional[FlowNode]:
        """Find a node by id, searching container children too."""
        for top in self.nodes:
            for node in top.walk():
                if node.id == node_id:
                    return node
        return None

    def edges_from(self, node_id: str) -> list[FlowEdge]:
        """Edges leaving ``node_id``, in the graph level that holds it."""
        return [edge for edge in self._level_edges(node_id) if edge.source == node_id]

    def edges_to(self, node_id: str) -> list[FlowEdge]:
        """Edges entering ``node_id``, in the graph level that holds it."""
        return [edge for edge in self._level_edges(node_id) if edge.target == node_id]

    def _level_edges(self, node_id: str) -> list[FlowEdge]:
        if any(node.id == node_id for node in self.nodes):
            return self.edges
        for top in self.nodes:
            for node in top.walk():
                if any(child.id == node_id for child in node.children):
                    return node.child_edges
        return []

    def has_errors(self) -> bool:
        """Check if any hint is error-kind."""
        return any(hint.kind == HintKind.ERROR for hint in self.hints)

    def get_source_tables(self) -> list[str]:
        """Names of the tables the statement references, sorted."""
        return sorted(self.table_usage)

    def to_graph(self) -> nx.DiGraph:
        """Top-level graph as a networkx DiGraph.

        Each graph node carries its FlowNode under ``node``, each edge its
        FlowEdge under ``edge``.
        """
        from sqlflow_analyzer.graph.flow_graph import FlowGraph

        return FlowGraph(self.nodes, self.edges).graph

    def to_dict(self) -> dict[str, Any]:
        """Convert result to a JSON-serializable dictionary."""
        return {
            "success": self.success,
            "sql": self.sql,
            "error": self.error,
            "statement_type": self.statement_type,
            "dialect": self.dialect,
            "start_line": self.start_line,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "stats": self.stats.to_dict(),
            "hints": [hint.to_dict() for hint in self.hints],
            "column_lineage": [lineage.to_dict() for lineage in self.column_lineage],
            "column_flows": [flow.to_dict() for flow in self.column_flows],
            "table_usage": dict(self.table_usage),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_formatted_string(self, include_sql: bool = True) -> str:
        """Generate a plain-text report.

        Example output:
            ================================================================================
            Flow Analysis Result
            ================================================================================

            Status: ✓ Success

            Nodes: 3  Edges: 2
            Complexity: Simple (score 1)

            Flow:
            ----------
            users (table) → SELECT (select)
            SELECT (select) → Result (result)
            ...
        """
        lines = ["=" * 80, "Flow Analysis Result", "=" * 80, ""]
        status_icon = "✓" if self.success else "✗"
        lines.append(f"Status: {status_icon} {'Success' if self.success else 'Failed'}")
        lines.append("")

        if include_sql and self.sql:
            lines.append("SQL Query:")
            lines.append("-" * 10)
            lines.append(self.sql.strip())
            lines.append("")

        if not self.success:
            lines.append("Error:")
            lines.append("-" * 10)
            lines.append(self.error or "")
            lines.append("")
            lines.append("=" * 80)
            return "\n".join(lines)

        lines.append(f"Nodes: {len(self.nodes)}  Edges: {len(self.edges)}")
        lines.append(
            f"Complexity: {self.stats.complexity.value} (score {self.stats.complexity_score})"
        )
        lines.append("")

        lines.append("Flow:")
        lines.append("-" * 10)
        labels = {node.id: f"{node.label} ({node.kind.value})" for node in self.nodes}
        for edge in self.edges:
            suffix = f"  [{edge.sql_clause}]" if edge.sql_clause else ""
            source = labels.get(edge.source, edge.source)
            target = labels.get(edge.target, edge.target)
            lines.append(f"{source} → {target}{suffix}")
        lines.append("")

        if self.column_flows:
            lines.append(f"Column Flows: {len(self.column_flows)}")
            lines.append("-" * 10)
            for flow in self.column_flows:
                lines.append(f"{flow.output_column}: {flow.to_string()}")
            lines.append("")

        if self.hints:
            lines.append(f"Hints: {len(self.hints)}")
            lines.append("-" * 10)
            for hint in self.hints:
                lines.append(f"[{hint.kind.value.upper()}] {hint.message}")
            lines.append("")
        else:
            lines.append("Hints: 0")
            lines.append("")

        lines.append("=" * 80)
        return "\n".join(lines)


@dataclass(frozen=True)
class BatchResult:
    """Per-statement results of a script, in source order.

    A failed statement has its own error result; it does not stop the
    statements after it.

    Example:
        >>> batch = FlowAnalyzer().analyze_batch("SELECT 1; SELECT id FROM t WHERE;")
        >>> [result.success for result in batch]
        [True, False]
    """

    queries: list[FlowResult] = field(default_factory=list)
    error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.queries)

    def __iter__(self) -> Iterator[FlowResult]:
        return iter(self.queries)

    @property
    def success(self) -> bool:
        """True when the batch was accepted and every statement succeeded."""
        return self.error is None and all(result.success for result in self.queries)

    def succeeded(self) -> list[FlowResult]:
        return [result for result in self.queries if result.success]

    def failed(self) -> list[FlowResult]:
        return [result for result in self.queries if not result.success]

    def table_usage(self) -> dict[str, int]:
        """Table references summed over all statements."""
        usage: dict[str, int] = {}
        for result in self.queries:
            for table, count in result.table_usage.items():
                usage[table] = usage.get(table, 0) + count
        return usage

    def get_summary(self) -> dict[str, int]:
        return {
            "statements": len(self.queries),
            "succeeded": len(self.succeeded()),
            "failed": len(self.failed()),
            "hints": sum(len(result.hints) for result in self.queries),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "summary": self.get_summary(),
            "queries": [result.to_dict() for result in self.queries],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
