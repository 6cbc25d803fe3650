"""
Statement processor.

This module defines the StatementProcessor class, the recursive-descent
traversal that turns one classified statement into flow nodes and edges.
Queries are processed here; INSERT/UPDATE/DELETE/MERGE/CREATE statements
are delegated to DmlProcessor, which reuses the query pipeline.

The pipeline of one SELECT is::

    Table/CTE/Subquery -> Join ... -> Filter (WHERE) -> Aggregate
        -> Filter (HAVING) -> Sort -> Limit -> Select/Window -> Result

CTE bodies and FROM/WHERE/projection subqueries are processed into their
own sub-graph, nested inside a container node. Set operation branches are
processed into the current graph and feed a single set operation node.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.context import DerivedTable, ParseContext
from sqlflow_analyzer.analyzer.dml_processor import DmlProcessor
from sqlflow_analyzer.analyzer.graph_builder import (
    CteBinding,
    GraphBuilder,
    ProjectionInfo,
    QueryOutput,
    Scope,
    Upstream,
)
from sqlflow_analyzer.extractors.columns import contains_aggregate, extract_column_infos
from sqlflow_analyzer.extractors.conditions import extract_conditions, format_condition
from sqlflow_analyzer.extractors.functions import (
    extract_aggregate_function_details,
    extract_case_statement_details,
    extract_window_function_details,
)
from sqlflow_analyzer.extractors.tables import (
    get_table_alias,
    get_table_name,
    get_table_valued_function_name,
)
from sqlflow_analyzer.models.classified_statement import ClassifiedStatement
from sqlflow_analyzer.models.column import ColumnInfo
from sqlflow_analyzer.models.flow import (
    IMPLICIT_JOIN_DESCRIPTION,
    AccessMode,
    AggregateDetails,
    CaseDetails,
    FlowEdge,
    FlowNode,
    NodeKind,
    OperationType,
    TableCategory,
    WindowDetails,
)
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.utils.ast_utils import (
    NESTED_QUERY_TYPES,
    QUERY_TYPES,
    child_of_type,
    children_of_type,
    find_nested_queries,
    is_set_operation,
    render,
    unwrap_query,
)

logger = logging.getLogger(__name__)

_SET_OPERATION_LABELS = {
    exp.Union: "UNION",
    exp.Intersect: "INTERSECT",
    exp.Except: "EXCEPT",
}


@dataclass
class ProcessedStatement:
    """Graph of one statement plus the query output used for lineage."""

    nodes: list[FlowNode] = field(default_factory=list)
    edges: list[FlowEdge] = field(default_factory=list)
    output: Optional[QueryOutput] = None


@dataclass
class FromItem:
    """A FROM item resolved to a node of the current graph level."""

    upstream: Upstream
    name: str
    alias: Optional[str] = None


class StatementProcessor:
    """Builds the flow graph of one statement.

    One processor serves one parse: it writes ids, statistics and table
    usage into its ParseContext.

    Attributes:
        context: Parse context of the statement.
        operation: Operation recorded on table and result nodes.

    Example:
        >>> context = ParseContext()
        >>> processor = StatementProcessor(context)
        >>> classified = StatementClassifier().classify(sqlglot.parse_one("SELECT id FROM users"))
        >>> [n.kind.value for n in processor.process(classified).nodes]
        ['table', 'select', 'result']
    """

    def __init__(self, context: ParseContext) -> None:
        self.context = context
        self.operation = OperationType.SELECT
        self.dml = DmlProcessor(self)

    @property
    def dialect(self) -> str:
        return self.context.sqlglot_dialect

    def process(self, classified: ClassifiedStatement) -> ProcessedStatement:
        """Dispatch on the statement kind and build its graph.

        Raises:
            RecursionDepthError: If query nesting exceeds ``max_depth``.
            UnsupportedStatementError: For statements without a flow graph
                when ``on_unsupported`` is ``fail``.
        """
        self.context.set_statement_type(classified.statement_type)
        self.context.statement_ast = classified.ast
        builder = GraphBuilder(self.context)
        logger.debug("Processing %s statement", classified.statement_type.value)

        if classified.statement_type == StatementType.SELECT:
            self.operation = OperationType.SELECT
            output = self.process_query(classified.query_ast, builder, Scope(), nested=False)
        else:
            output = self.dml.process(classified, builder)

        return ProcessedStatement(nodes=builder.nodes, edges=builder.edges, output=output)

    # ========== Queries ==========

    def process_query(
        self,
        query: Optional[exp.Expression],
        builder: GraphBuilder,
        scope: Scope,
        nested: bool,
    ) -> Optional[QueryOutput]:
        """Process a SELECT or set operation into ``builder``."""
        query = unwrap_query(query)
        if is_set_operation(query):
            return self.process_set_operation(query, builder, scope, nested)
        if isinstance(query, exp.Select):
            return self.process_select(query, builder, scope, nested)
        if query is not None:
            node = self.values_node(query, builder)
            return QueryOutput(terminal_id=node.id)
        return None

    def process_select(
        self,
        select: exp.Select,
        builder: GraphBuilder,
        scope: Scope,
        nested: bool,
    ) -> QueryOutput:
        """Run the SELECT pipeline and return its terminal node."""
        context = self.context
        with context.enter_scope():
            scope = self.process_with(select, builder, scope)
            running, items = self.process_from(select, builder, scope)

            where = child_of_type(select, exp.Where)
            if where is not None:
                running = self.add_filter(where, "WHERE", builder, scope, running, count=True)

            projections = list(select.expressions)
            group = child_of_type(select, exp.Group)
            if group is not None or any(
                contains_aggregate(p, context.classifier) for p in projections
            ):
                details = extract_aggregate_function_details(
                    projections, context.classifier, self.dialect
                )
                group_by = [_group_key(g, self.dialect) for g in (group.expressions if group else [])]
                node = builder.add_node(
                    NodeKind.AGGREGATE,
                    "GROUP BY" if group_by else "AGGREGATE",
                    description=", ".join(group_by) or None,
                    aggregate_details=AggregateDetails(functions=details, group_by=group_by),
                )
                builder.link(running, node.id)
                running = Upstream(node.id)
                context.increment_aggregations()

            having = child_of_type(select, exp.Having)
            if having is not None:
                running = self.add_filter(having, "HAVING", builder, scope, running)
            qualify = child_of_type(select, exp.Qualify)
            if qualify is not None:
                running = self.add_filter(qualify, "QUALIFY", builder, scope, running)

            running = self.add_sort_and_limit(select, builder, running)

            projection = self.add_projection(select, projections, items, builder, scope, running)
            running = Upstream(projection.node_id)
            if not nested:
                running = Upstream(self.add_result(builder, running).id)

        logger.debug("Processed SELECT into %d nodes", len(builder.nodes))
        return QueryOutput(terminal_id=running.node_id, projections=[projection])

    def process_set_operation(
        self,
        query: exp.Expression,
        builder: GraphBuilder,
        scope: Scope,
        nested: bool,
    ) -> QueryOutput:
        """Process UNION/INTERSECT/EXCEPT.

        Chains of the same operator are flattened, so ``a UNION b UNION c``
        yields one node with three inputs.
        """
        context = self.context
        with context.enter_scope():
            scope = self.process_with(query, builder, scope)
            branches = _flatten_set_operation(query)
            outputs = [
                self.process_query(branch, builder, scope, nested=True) for branch in branches
            ]

            label = _SET_OPERATION_LABELS.get(type(query), "UNION")
            if isinstance(query, exp.Union) and not query.args.get("distinct"):
                label = "UNION ALL"
            node = builder.add_node(
                NodeKind.UNION,
                label,
                description=f"{label} of {len(branches)} queries",
                operation_type=self.operation,
            )
            projections: list[ProjectionInfo] = []
            for output in outputs:
                if output is None:
                    continue
                builder.add_edge(output.terminal_id, node.id, clause_type="set_operation")
                projections.extend(output.projections)
            context.increment_unions(len(branches) - 1)

            running = self.add_sort_and_limit(query, builder, Upstream(node.id))
            if not nested:
                running = Upstream(self.add_result(builder, running).id)

        return QueryOutput(terminal_id=running.node_id, projections=projections, set_op_id=node.id)

    def process_with(self, query: exp.Expression, builder: GraphBuilder, scope: Scope) -> Scope:
        """Process the WITH clause of ``query`` into CTE containers.

        Returns:
            The scope in which the rest of the query resolves names.
        """
        with_clause = child_of_type(query, exp.With)
        if with_clause is None:
            return scope
        recursive = bool(with_clause.args.get("recursive"))
        cte_scope = Scope(parent=scope)

        for cte in children_of_type(with_clause, exp.CTE):
            name = cte.alias_or_name or "cte"
            node = builder.add_node(
                NodeKind.CTE,
                name,
                description="Recursive CTE" if recursive else None,
                table_name=name,
                table_category=TableCategory.DERIVED,
                access_mode=AccessMode.DERIVED,
                cte_depth=builder.cte_depth,
            )
            binding = CteBinding(name=name, node_id=node.id, builder=builder)
            if recursive:
                cte_scope.register(binding)

            logger.debug("Processing CTE %s", name)
            body = builder.child(cte_depth=builder.cte_depth + 1)
            self.process_query(cte.this, body, cte_scope, nested=True)
            builder.adopt(node, body)
            self._record_derived(node.id, name, cte, cte.this, is_cte=True)

            if not recursive:
                cte_scope.register(binding)
            self.context.increment_ctes()
        return cte_scope

    def process_container(
        self,
        query: exp.Expression,
        label: str,
        builder: GraphBuilder,
        scope: Scope,
    ) -> FlowNode:
        """Process a subquery into a SUBQUERY container node of ``builder``."""
        node = builder.add_node(
            NodeKind.SUBQUERY,
            label,
            table_name=label,
            table_category=TableCategory.DERIVED,
            access_mode=AccessMode.DERIVED,
        )
        logger.debug("Processing subquery %s", node.id)
        child = builder.child()
        self.process_query(query, child, scope, nested=True)
        builder.adopt(node, child)
        self.context.track_subquery(render(unwrap_query(query), self.dialect), node.id)
        self.context.increment_subqueries()
        return node

    def _record_derived(
        self,
        node_id: str,
        name: Optional[str],
        source: exp.Expression,
        query: exp.Expression,
        is_cte: bool = False,
    ) -> None:
        body = unwrap_query(query)
        if not isinstance(body, QUERY_TYPES):
            return
        columns = list(source.alias_column_names) or list(body.named_selects)
        if "*" in columns:
            return
        self.context.add_derived_table(DerivedTable(node_id, name, query, columns, is_cte))

    # ========== FROM and JOIN ==========

    def process_from(
        self,
        query: exp.Expression,
        builder: GraphBuilder,
        scope: Scope,
    ) -> tuple[Optional[Upstream], list[FromItem]]:
        """Process FROM items and fold the join chain left to right.

        Returns:
            The running node after the last join (None without FROM) and
            every FROM item, in order.
        """
        items: list[FromItem] = []
        running: Optional[Upstream] = None

        from_clause = child_of_type(query, exp.From)
        if from_clause is not None:
            for source in from_clause.iter_expressions():
                item = self.process_from_item(source, builder, scope)
                items.append(item)
                running = self.join(running, item, None, builder) if running else item.upstream

        for join in children_of_type(query, exp.Join):
            item = self.process_from_item(join.this, builder, scope)
            items.append(item)
            running = self.join(running, item, join, builder) if running else item.upstream

        for lateral in children_of_type(query, exp.Lateral):
            item = self.process_from_item(lateral, builder, scope)
            items.append(item)
            if running is None:
                running = item.upstream
                continue
            node = builder.add_node(
                NodeKind.JOIN,
                "LATERAL VIEW",
                description=render(lateral, self.dialect),
            )
            builder.link(running, node.id, clause_type="join")
            builder.link(item.upstream, node.id, clause_type="join")
            self.context.increment_joins()
            running = Upstream(node.id)

        return running, items

    def process_from_item(
        self,
        source: Optional[exp.Expression],
        builder: GraphBuilder,
        scope: Scope,
    ) -> FromItem:
        """Turn one FROM item into a node (or a reference to a CTE node)."""
        alias = get_table_alias(source)
        inner = source.this if isinstance(source, exp.Lateral) else source

        if isinstance(inner, NESTED_QUERY_TYPES):
            label = alias or "subquery"
            node = self.process_container(inner, label, builder, scope)
            self._record_derived(node.id, alias, source, inner)
            return FromItem(Upstream(node.id), name=label, alias=alias)

        function = get_table_valued_function_name(source, self.context.classifier)
        if function:
            node = builder.add_node(
                NodeKind.TABLE,
                alias or function,
                description=f"Table function {function}",
                table_name=function,
                table_category=TableCategory.TABLE_FUNCTION,
                access_mode=AccessMode.READ,
                operation_type=self.operation,
            )
            return FromItem(Upstream(node.id), name=function, alias=alias)

        if isinstance(source, exp.Table):
            name = get_table_name(source)
            binding = None if source.db else scope.resolve(source.name)
            if binding is not None:
                return self._cte_reference(binding, builder, alias)
            node = builder.add_node(
                NodeKind.TABLE,
                name,
                description=f"alias {alias}" if alias else None,
                table_name=name,
                table_category=TableCategory.PHYSICAL,
                access_mode=AccessMode.READ,
                operation_type=self.operation,
            )
            self.context.track_table_usage(name)
            return FromItem(Upstream(node.id), name=name, alias=alias)

        if isinstance(inner, exp.Values):
            node = self.values_node(inner, builder, alias)
            return FromItem(Upstream(node.id), name=node.label, alias=alias)

        name = get_table_name(source)
        node = builder.add_node(
            NodeKind.TABLE,
            name,
            table_name=name,
            table_category=TableCategory.DERIVED,
            access_mode=AccessMode.READ,
            operation_type=self.operation,
        )
        return FromItem(Upstream(node.id), name=name, alias=alias)

    def _cte_reference(
        self, binding: CteBinding, builder: GraphBuilder, alias: Optional[str]
    ) -> FromItem:
        label = alias or binding.name
        if binding.builder is builder:
            upstream = Upstream(binding.node_id, label=label, clause_type="cte_reference")
            return FromItem(upstream, name=binding.name, alias=alias)

        node = builder.add_node(
            NodeKind.TABLE,
            binding.name,
            description=f"Reference to CTE {binding.name}",
            table_name=binding.name,
            table_category=TableCategory.CTE_REFERENCE,
            access_mode=AccessMode.READ,
        )
        builder.reference_external(binding)
        return FromItem(Upstream(node.id), name=binding.name, alias=alias)

    def values_node(
        self, values: exp.Expression, builder: GraphBuilder, alias: Optional[str] = None
    ) -> FlowNode:
        rows = len(values.expressions) if isinstance(values, exp.Values) else 0
        return builder.add_node(
            NodeKind.TABLE,
            alias or "VALUES",
            description=f"{rows} literal row(s)" if rows else None,
            table_category=TableCategory.DERIVED,
            access_mode=AccessMode.DERIVED,
        )

    def join(
        self,
        running: Upstream,
        item: FromItem,
        join: Optional[exp.Join],
        builder: GraphBuilder,
    ) -> Upstream:
        """Create a Join node fed by the running node and ``item``."""
        on = join.args.get("on") if join is not None else None
        using = join.args.get("using") if join is not None else None
        label = _join_label(join)
        implicit = label == "CROSS JOIN" and not (join is not None and join.kind)

        if on is not None:
            sql_clause = format_condition(on)
            conditions = extract_conditions(
                on,
                self.context.config.max_conditions,
                self.context.config.max_condition_depth,
            )
        elif using:
            sql_clause = "USING (" + ", ".join(render(u, self.dialect) for u in using) + ")"
            conditions = [sql_clause]
        else:
            sql_clause = None
            conditions = []

        node = builder.add_node(
            NodeKind.JOIN,
            label,
            description=IMPLICIT_JOIN_DESCRIPTION if implicit else sql_clause,
            conditions=conditions,
        )
        builder.link(running, node.id, sql_clause=sql_clause, clause_type="join")
        builder.link(item.upstream, node.id, sql_clause=sql_clause, clause_type="join")
        self.context.increment_joins()
        if implicit:
            self.context.implicit_cross_joins.append(node.id)
        return Upstream(node.id)

    # ========== Pipeline steps ==========

    def add_filter(
        self,
        clause: exp.Expression,
        label: str,
        builder: GraphBuilder,
        scope: Scope,
        running: Optional[Upstream],
        count: bool = False,
    ) -> Upstream:
        """Append a Filter node for WHERE/HAVING/QUALIFY.

        Subqueries in the predicate become containers feeding the filter.
        """
        config = self.context.config
        conditions = extract_conditions(clause, sys.maxsize, config.max_condition_depth)
        if count:
            self.context.increment_conditions(len(conditions))
        node = builder.add_node(
            NodeKind.FILTER,
            label,
            description=render(clause.this, self.dialect) if clause.this is not None else None,
            conditions=conditions[: config.max_conditions],
        )
        builder.link(running, node.id)
        self.add_nested_queries(clause, node, builder, scope)
        return Upstream(node.id)

    def add_nested_queries(
        self,
        clause: exp.Expression,
        target: FlowNode,
        builder: GraphBuilder,
        scope: Scope,
    ) -> None:
        for nested in find_nested_queries(clause):
            container = self.process_container(nested, "subquery", builder, scope)
            builder.add_edge(container.id, target.id, clause_type="subquery")

    def add_sort_and_limit(
        self,
        query: exp.Expression,
        builder: GraphBuilder,
        running: Optional[Upstream],
    ) -> Optional[Upstream]:
        """Append Sort and Limit nodes for ORDER BY and LIMIT/OFFSET/FETCH."""
        order = child_of_type(query, exp.Order)
        if order is not None:
            items = [render(item, self.dialect) for item in order.expressions]
            node = builder.add_node(
                NodeKind.SORT,
                "ORDER BY",
                description=", ".join(items),
                conditions=items,
            )
            builder.link(running, node.id)
            running = Upstream(node.id)

        limit = child_of_type(query, exp.Limit) or child_of_type(query, exp.Fetch)
        offset = child_of_type(query, exp.Offset)
        if limit is not None or offset is not None:
            parts = []
            if limit is not None:
                count = limit.args.get("count") if isinstance(limit, exp.Fetch) else limit.expression
                parts.append(f"LIMIT {render(count, self.dialect)}" if count is not None else "LIMIT")
            if offset is not None:
                parts.append(f"OFFSET {render(offset.expression, self.dialect)}")
            node = builder.add_node(NodeKind.LIMIT, " ".join(parts))
            builder.link(running, node.id)
            running = Upstream(node.id)
            self.context.has_no_limit = False
        return running

    def add_projection(
        self,
        select: exp.Select,
        projections: list[exp.Expression],
        items: list[FromItem],
        builder: GraphBuilder,
        scope: Scope,
        running: Optional[Upstream],
    ) -> ProjectionInfo:
        """Append the Select (or Window) node carrying the column list."""
        context = self.context
        columns = extract_column_infos(
            projections, self.dialect, context.classifier, context.config.expression_format
        )
        _attribute_sources(columns, items)
        if any(_is_star(p) for p in projections):
            context.has_select_star = True

        windows = extract_window_function_details(projections, context.classifier, self.dialect)
        context.increment_window_functions(len(windows))
        cases = extract_case_statement_details(projections)

        window_columns = sum(1 for column in columns if column.is_window_func)
        if columns and window_columns * 2 > len(columns):
            kind, label = NodeKind.WINDOW, "WINDOW"
        else:
            kind = NodeKind.SELECT
            label = "SELECT DISTINCT" if select.args.get("distinct") else "SELECT"

        node = builder.add_node(
            kind,
            label,
            description=", ".join(column.name for column in columns) or None,
            columns=columns,
            window_details=WindowDetails(functions=windows) if windows else None,
            case_details=CaseDetails(cases=cases) if cases else None,
        )
        builder.link(running, node.id)
        for projection in projections:
            self.add_nested_queries(projection, node, builder, scope)

        sources: dict[str, str] = {}
        for item in items:
            sources.setdefault(item.name.lower(), item.upstream.node_id)
            sources.setdefault(item.name.split(".")[-1].lower(), item.upstream.node_id)
        for item in items:
            if item.alias:
                sources[item.alias.lower()] = item.upstream.node_id

        return ProjectionInfo(
            node_id=node.id,
            expressions=projections,
            columns=columns,
            sources=sources,
            from_ids=[item.upstream.node_id for item in items],
        )

    def add_result(
        self,
        builder: GraphBuilder,
        running: Optional[Upstream],
        label: str = "Result",
        **fields,
    ) -> FlowNode:
        """Append the terminal Result node."""
        fields.setdefault("operation_type", self.operation)
        node = builder.add_node(NodeKind.RESULT, label, **fields)
        builder.link(running, node.id)
        return node


def _flatten_set_operation(query: exp.Expression) -> list[exp.Expression]:
    """Operands of a chain of identical set operators, left to right.

    An operand is only inlined when it is the same operator with the same
    DISTINCT flag and carries no ORDER BY, LIMIT or WITH of its own.
    """
    kind = type(query)
    distinct = bool(query.args.get("distinct"))

    def inlinable(node: exp.Expression) -> bool:
        return (
            type(node) is kind
            and bool(node.args.get("distinct")) == distinct
            and child_of_type(node, exp.Order) is None
            and child_of_type(node, exp.Limit) is None
            and child_of_type(node, exp.With) is None
        )

    branches: list[exp.Expression] = []
    stack = [query.expression, query.this]
    while stack:
        node = stack.pop()
        if node is not None and not isinstance(node, exp.Subquery) and inlinable(node):
            stack.extend([node.expression, node.this])
        elif node is not None:
            branches.append(node)
    return branches


def _join_label(join: Optional[exp.Join]) -> str:
    """``"LEFT OUTER JOIN"``-style label; comma joins are ``"CROSS JOIN"``."""
    if join is None:
        return "CROSS JOIN"
    parts = [
        (join.args.get("method") or "").upper(),
        (join.side or "").upper(),
        (join.kind or "").upper(),
    ]
    parts = [part for part in parts if part]
    if not parts:
        if join.args.get("on") is None and not join.args.get("using"):
            return "CROSS JOIN"
        parts = ["INNER"]
    return " ".join(parts + ["JOIN"])


def _group_key(node: exp.Expression, dialect: Optional[str]) -> str:
    if isinstance(node, exp.Column):
        return node.name
    return render(node, dialect)


def _is_star(node: exp.Expression) -> bool:
    if isinstance(node, exp.Star):
        return True
    return isinstance(node, exp.Column) and isinstance(node.this, exp.Star)


def _attribute_sources(columns: list[ColumnInfo], items: list[FromItem]) -> None:
    """Resolve each column's qualifier to its FROM item's name.

    An unqualified column is attributed to the FROM item only when there is
    exactly one; otherwise it stays unresolved.
    """
    by_alias: dict[str, str] = {}
    for item in items:
        by_alias[item.name.lower()] = item.name
        by_alias[item.name.split(".")[-1].lower()] = item.name
    for item in items:
        if item.alias:
            by_alias[item.alias.lower()] = item.name

    for column in columns:
        if column.source_column is None:
            continue
        if column.source_table:
            column.source_table = by_alias.get(column.source_table.lower(), column.source_table)
        elif len(items) == 1:
            column.source_table = items[0].name

