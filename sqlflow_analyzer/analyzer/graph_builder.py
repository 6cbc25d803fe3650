"""
Graph building blocks for the statement processor.

A GraphBuilder collects the nodes and edges of one graph level: the
top-level statement graph or the sub-graph nested inside a CTE or subquery
container. Scope chains make CTE names visible to the queries that follow
their definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.context import ParseContext
from sqlflow_analyzer.models.column import ColumnInfo
from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind


@dataclass
class CteBinding:
    """A CTE name bound to its container node.

    Attributes:
        name: CTE name as written.
        node_id: Id of the CTE container node.
        builder: Graph level that holds the CTE node.
    """

    name: str
    node_id: str
    builder: GraphBuilder


class Scope:
    """CTE names visible from a query.

    Lookups walk outward through parent scopes, so a nested query sees the
    CTEs of every enclosing WITH clause.

    Example:
        >>> outer = Scope()
        >>> outer.register(CteBinding("recent", "cte_0", builder))
        >>> Scope(parent=outer).resolve("RECENT").node_id
        'cte_0'
    """

    def __init__(self, parent: Optional[Scope] = None) -> None:
        self.parent = parent
        self.ctes: dict[str, CteBinding] = {}

    def register(self, binding: CteBinding) -> None:
        self.ctes[binding.name.lower()] = binding

    def resolve(self, name: Optional[str]) -> Optional[CteBinding]:
        """Find the innermost CTE named ``name`` (case-insensitive)."""
        if not name:
            return None
        key = name.lower()
        scope: Optional[Scope] = self
        while scope is not None:
            if key in scope.ctes:
                return scope.ctes[key]
            scope = scope.parent
        return None


@dataclass
class Upstream:
    """The running node of a pipeline plus the metadata of its outbound edge.

    CTE references are not separate nodes: the CTE container itself feeds
    the next operator, through an edge labelled with the reference name.
    """

    node_id: str
    label: Optional[str] = None
    clause_type: Optional[str] = None


@dataclass
class ProjectionInfo:
    """Projection step of one query, kept for column lineage.

    Attributes:
        node_id: Id of the Select/Window node.
        expressions: Raw projected expressions.
        columns: ColumnInfo per projected expression.
        sources: Lowercased FROM alias or table name to node id.
        from_ids: Node ids of the FROM items, in order.
    """

    node_id: str
    expressions: list[exp.Expression]
    columns: list[ColumnInfo]
    sources: dict[str, str] = field(default_factory=dict)
    from_ids: list[str] = field(default_factory=list)


@dataclass
class QueryOutput:
    """What processing one query leaves behind.

    Attributes:
        terminal_id: Last node of the query's pipeline (Result at top
            level, the projection or set operation node when nested).
        projections: One ProjectionInfo per SELECT branch.
        set_op_id: Id of the set operation node, if the query is one.
    """

    terminal_id: str
    projections: list[ProjectionInfo] = field(default_factory=list)
    set_op_id: Optional[str] = None


class GraphBuilder:
    """Collects the nodes and edges of one graph level.

    Attributes:
        context: Parse context issuing ids and collecting stats.
        parent: Builder of the enclosing graph level, None at top level.
        cte_depth: CTE nesting level of CTEs defined at this level.
        nodes: Nodes in emission order.
        edges: Edges in emission order; both endpoints are always in
            ``nodes``.
        external: CTEs of enclosing levels referenced from this level.
    """

    def __init__(
        self,
        context: ParseContext,
        parent: Optional[GraphBuilder] = None,
        cte_depth: int = 0,
    ) -> None:
        self.context = context
        self.parent = parent
        self.cte_depth = cte_depth
        self.nodes: list[FlowNode] = []
        self.edges: list[FlowEdge] = []
        self.external: list[CteBinding] = []
        self._ids: set[str] = set()

    def add_node(self, kind: NodeKind, label: str, **fields: Any) -> FlowNode:
        """Create a node with the next id and append it."""
        node = FlowNode(id=self.context.next_id(kind.value), kind=kind, label=label, **fields)
        self.nodes.append(node)
        self._ids.add(node.id)
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        label: Optional[str] = None,
        sql_clause: Optional[str] = None,
        clause_type: Optional[str] = "flow",
    ) -> FlowEdge:
        """Append an edge between two nodes of this level.

        Raises:
            ValueError: If either endpoint is not a node of this level.
        """
        if source not in self._ids or target not in self._ids:
            raise ValueError(f"Edge {source} -> {target} leaves its graph level")
        edge = FlowEdge(
            id=self.context.next_id("edge"),
            source=source,
            target=target,
            label=label,
            sql_clause=sql_clause,
            clause_type=clause_type,
        )
        self.edges.append(edge)
        return edge

    def link(
        self,
        upstream: Optional[Upstream],
        target: str,
        sql_clause: Optional[str] = None,
        clause_type: str = "flow",
    ) -> None:
        """Connect the running node to ``target``, if there is one."""
        if upstream is None:
            return
        self.add_edge(
            upstream.node_id,
            target,
            label=upstream.label,
            sql_clause=sql_clause,
            clause_type=upstream.clause_type or clause_type,
        )

    def has_edge(self, source: str, target: str, clause_type: Optional[str] = None) -> bool:
        return any(
            e.source == source
            and e.target == target
            and (clause_type is None or e.clause_type == clause_type)
            for e in self.edges
        )

    def child(self, cte_depth: Optional[int] = None) -> GraphBuilder:
        """Create the builder of a nested container's sub-graph."""
        return GraphBuilder(
            self.context,
            parent=self,
            cte_depth=self.cte_depth if cte_depth is None else cte_depth,
        )

    def reference_external(self, binding: CteBinding) -> None:
        if all(existing.node_id != binding.node_id for existing in self.external):
            self.external.append(binding)

    def adopt(self, container: FlowNode, child: GraphBuilder) -> None:
        """Attach ``child``'s sub-graph to ``container``, a node of this level.

        CTEs of this level referenced from inside the container become
        edges from the CTE node to the container. References to CTEs of
        outer levels are passed up. A recursive CTE's reference to itself
        gets no edge.
        """
        container.children = child.nodes
        container.child_edges = child.edges
        for binding in child.external:
            if binding.builder is self:
                if binding.node_id == container.id:
                    continue
                if not self.has_edge(binding.node_id, container.id, "cte_reference"):
                    self.add_edge(
                        binding.node_id,
                        container.id,
                        label=binding.name,
                        clause_type="cte_reference",
                    )
            else:
                self.reference_external(binding)
