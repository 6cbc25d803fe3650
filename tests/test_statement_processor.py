"""
Tests for the statement processor.

This module builds flow graphs for SELECT statements and checks node
kinds, ids, labels, edges and the statistics counted along the way.
"""

import pytest
import sqlglot

from sqlflow_analyzer.analyzer.context import ParseContext
from sqlflow_analyzer.analyzer.statement_processor import StatementProcessor
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import RecursionDepthError
from sqlflow_analyzer.models.config import FlowConfig
from sqlflow_analyzer.models.flow import (
    IMPLICIT_JOIN_DESCRIPTION,
    AccessMode,
    NodeKind,
    OperationType,
    TableCategory,
)
from sqlflow_analyzer.parser.statement_classifier import StatementClassifier


def build(sql, config=None, dialect=SqlDialect.MYSQL):
    """Process ``sql`` and return the context and processed statement."""
    context = ParseContext(config, dialect)
    ast = sqlglot.parse_one(sql, read=dialect.sqlglot_name)
    processed = StatementProcessor(context).process(StatementClassifier().classify(ast))
    return context, processed


def kinds(nodes):
    return [node.kind for node in nodes]


def pairs(edges):
    return [(edge.source, edge.target) for edge in edges]


def by_kind(nodes, kind):
    return [node for node in nodes if node.kind == kind]


def assert_edges_within_levels(nodes, edges):
    """Every edge of a level connects two nodes of that level."""
    ids = {node.id for node in nodes}
    for edge in edges:
        assert edge.source in ids and edge.target in ids, edge
    for node in nodes:
        assert_edges_within_levels(node.children, node.child_edges)


class TestSimpleSelect:
    """Tests for single-table queries."""

    def test_table_select_result(self):
        """Test the three-node pipeline of a plain SELECT."""
        context, processed = build("SELECT id FROM users")
        assert kinds(processed.nodes) == [NodeKind.TABLE, NodeKind.SELECT, NodeKind.RESULT]
        assert [n.id for n in processed.nodes] == ["table_0", "select_1", "result_3"]
        assert pairs(processed.edges) == [("table_0", "select_1"), ("select_1", "result_3")]
        assert context.finalize_stats().tables == 1

    def test_table_node_fields(self):
        _, processed = build("SELECT u.id FROM users u")
        table = processed.nodes[0]
        assert table.label == "users"
        assert table.description == "alias u"
        assert table.access_mode == AccessMode.READ
        assert table.table_category == TableCategory.PHYSICAL
        assert table.operation_type == OperationType.SELECT

    def test_select_columns(self):
        """Test that the projection node carries its columns."""
        _, processed = build("SELECT u.id, name FROM users u")
        select = by_kind(processed.nodes, NodeKind.SELECT)[0]
        assert [c.name for c in select.columns] == ["id", "name"]
        assert [c.source_table for c in select.columns] == ["users", "users"]
        assert select.description == "id, name"

    def test_unqualified_column_with_several_sources(self):
        """Test that ambiguous unqualified columns stay unattributed."""
        _, processed = build("SELECT name FROM a JOIN b ON a.id = b.id")
        select = by_kind(processed.nodes, NodeKind.SELECT)[0]
        assert select.columns[0].source_table is None

    def test_select_without_from(self):
        _, processed = build("SELECT 1")
        assert kinds(processed.nodes) == [NodeKind.SELECT, NodeKind.RESULT]

    def test_select_distinct(self):
        _, processed = build("SELECT DISTINCT id FROM t")
        assert processed.nodes[1].label == "SELECT DISTINCT"

    def test_select_star_flag(self):
        context, _ = build("SELECT * FROM t")
        assert context.has_select_star

    def test_ids_are_reproducible(self):
        """Test that two parses of the same query issue the same ids."""
        sql = "SELECT a.id FROM a JOIN b ON a.id = b.id WHERE a.x > 1"
        _, first = build(sql)
        _, second = build(sql)
        assert [n.id for n in first.nodes] == [n.id for n in second.nodes]
        assert [e.id for e in first.edges] == [e.id for e in second.edges]


class TestFilters:
    """Tests for WHERE, HAVING and QUALIFY."""

    def test_where(self):
        context, processed = build("SELECT id FROM users WHERE active = 1 AND age > 18")
        assert kinds(processed.nodes) == [
            NodeKind.TABLE,
            NodeKind.FILTER,
            NodeKind.SELECT,
            NodeKind.RESULT,
        ]
        where = processed.nodes[1]
        assert where.label == "WHERE"
        assert where.conditions == ["active = 1", "age > 18"]
        assert where.description == "active = 1 AND age > 18"
        assert context.stats.conditions == 2

    def test_conditions_capped_on_node_but_counted(self):
        """Test that max_conditions limits the node, not the counter."""
        context, processed = build(
            "SELECT id FROM t WHERE a = 1 AND b = 2 AND c = 3",
            FlowConfig(max_conditions=2),
        )
        assert processed.nodes[1].conditions == ["a = 1", "b = 2"]
        assert context.stats.conditions == 3

    def test_having(self):
        """Test that HAVING follows the aggregate and is not counted."""
        context, processed = build(
            "SELECT k, COUNT(*) FROM t GROUP BY k HAVING COUNT(*) > 1"
        )
        assert kinds(processed.nodes) == [
            NodeKind.TABLE,
            NodeKind.AGGREGATE,
            NodeKind.FILTER,
            NodeKind.SELECT,
            NodeKind.RESULT,
        ]
        having = processed.nodes[2]
        assert having.label == "HAVING"
        assert having.conditions == ["COUNT(*) > 1"]
        assert context.stats.conditions == 0

    def test_qualify(self):
        _, processed = build(
            "SELECT id FROM t QUALIFY ROW_NUMBER() OVER (PARTITION BY id ORDER BY ts) = 1",
            dialect=SqlDialect.SNOWFLAKE,
        )
        assert [n.label for n in by_kind(processed.nodes, NodeKind.FILTER)] == ["QUALIFY"]


class TestJoins:
    """Tests for join folding."""

    def test_inner_join(self):
        """Test the join node and its condition-carrying edges."""
        context, processed = build("SELECT a.id FROM a JOIN b ON a.id = b.id")
        join = by_kind(processed.nodes, NodeKind.JOIN)[0]
        assert join.id == "join_2"
        assert join.label == "INNER JOIN"
        assert join.conditions == ["a.id = b.id"]
        join_edges = [e for e in processed.edges if e.target == join.id]
        assert pairs(join_edges) == [("table_0", "join_2"), ("table_1", "join_2")]
        assert all(e.sql_clause == "a.id = b.id" for e in join_edges)
        assert all(e.clause_type == "join" for e in join_edges)
        assert context.stats.joins == 1

    @pytest.mark.parametrize(
        "join_sql,label",
        [
            ("LEFT JOIN b ON a.id = b.id", "LEFT JOIN"),
            ("LEFT OUTER JOIN b ON a.id = b.id", "LEFT OUTER JOIN"),
            ("INNER JOIN b ON a.id = b.id", "INNER JOIN"),
            ("CROSS JOIN b", "CROSS JOIN"),
        ],
    )
    def test_join_labels(self, join_sql, label):
        context, processed = build(f"SELECT a.id FROM a {join_sql}")
        assert by_kind(processed.nodes, NodeKind.JOIN)[0].label == label
        assert context.implicit_cross_joins == []

    def test_using(self):
        _, processed = build("SELECT id FROM a JOIN b USING (id)")
        join = by_kind(processed.nodes, NodeKind.JOIN)[0]
        assert join.label == "INNER JOIN"
        assert join.conditions == ["USING (id)"]

    def test_implicit_cross_join(self):
        """Test that comma-separated tables become a tracked CROSS JOIN."""
        context, processed = build("SELECT a.x FROM a, b")
        join = by_kind(processed.nodes, NodeKind.JOIN)[0]
        assert join.label == "CROSS JOIN"
        assert join.description == IMPLICIT_JOIN_DESCRIPTION
        assert context.implicit_cross_joins == [join.id]

    def test_join_chain_folds_left_to_right(self):
        """Test that each join consumes the previous join node."""
        context, processed = build(
            "SELECT a.id FROM a JOIN b ON a.id = b.id LEFT JOIN c ON b.id = c.id"
        )
        first, second = by_kind(processed.nodes, NodeKind.JOIN)
        assert (first.id, second.id) in pairs(processed.edges)
        assert context.stats.joins == 2
        assert context.finalize_stats().tables == 3

    def test_table_valued_function(self):
        """Test that UNNEST becomes a table-function node, not a table."""
        context, processed = build(
            "SELECT x FROM UNNEST([1, 2]) AS x", dialect=SqlDialect.BIGQUERY
        )
        table = processed.nodes[0]
        assert table.kind == NodeKind.TABLE
        assert table.table_category == TableCategory.TABLE_FUNCTION
        assert table.table_name == "UNNEST"
        assert context.table_usage == {}


class TestAggregationAndOrdering:
    """Tests for aggregate, sort, limit and window nodes."""

    def test_group_by(self):
        """Test the aggregate node payload."""
        context, processed = build("SELECT COUNT(*) AS n FROM t GROUP BY t.k")
        aggregate = by_kind(processed.nodes, NodeKind.AGGREGATE)[0]
        assert aggregate.label == "GROUP BY"
        assert aggregate.description == "k"
        details = aggregate.aggregate_details
        assert details.group_by == ["k"]
        assert [(f.name, f.expression, f.alias) for f in details.functions] == [
            ("COUNT", "COUNT(*)", "n")
        ]
        assert context.stats.aggregations == 1

    def test_aggregate_without_group_by(self):
        _, processed = build("SELECT MAX(price) FROM products")
        assert by_kind(processed.nodes, NodeKind.AGGREGATE)[0].label == "AGGREGATE"

    def test_sort_and_limit(self):
        context, processed = build("SELECT id FROM t ORDER BY id DESC LIMIT 10 OFFSET 5")
        assert kinds(processed.nodes) == [
            NodeKind.TABLE,
            NodeKind.SORT,
            NodeKind.LIMIT,
            NodeKind.SELECT,
            NodeKind.RESULT,
        ]
        assert processed.nodes[1].conditions == ["id DESC"]
        assert processed.nodes[2].label == "LIMIT 10 OFFSET 5"
        assert context.has_no_limit is False

    def test_no_limit_flag(self):
        context, _ = build("SELECT id FROM t")
        assert context.has_no_limit is True

    def test_window_node(self):
        """Test that a window-dominated projection becomes a Window node."""
        context, processed = build(
            "SELECT ROW_NUMBER() OVER (PARTITION BY d ORDER BY s) AS rn FROM t"
        )
        window = processed.nodes[1]
        assert window.kind == NodeKind.WINDOW
        assert [f.name for f in window.window_details.functions] == ["ROW_NUMBER"]
        assert context.stats.window_functions == 1

    def test_mixed_projection_stays_select(self):
        _, processed = build("SELECT id, name, RANK() OVER (ORDER BY s) AS r FROM t")
        select = processed.nodes[1]
        assert select.kind == NodeKind.SELECT
        assert select.window_details is not None

    def test_case_details(self):
        _, processed = build(
            "SELECT CASE WHEN s > 10 THEN 'high' ELSE 'low' END AS band FROM t"
        )
        cases = processed.nodes[1].case_details.cases
        assert cases[0].alias == "band"


class TestCtes:
    """Tests for CTE containers."""

    def test_cte_container(self):
        """Test the container, its sub-graph and the reference edge."""
        context, processed = build("WITH c AS (SELECT * FROM t) SELECT * FROM c")
        assert [n.id for n in processed.nodes] == ["cte_0", "select_4", "result_6"]
        cte = processed.nodes[0]
        assert cte.kind == NodeKind.CTE
        assert cte.label == "c"
        assert cte.cte_depth == 0
        assert kinds(cte.children) == [NodeKind.TABLE, NodeKind.SELECT]
        assert cte.children[0].label == "t"
        assert pairs(cte.child_edges) == [("table_1", "select_2")]

        reference = processed.edges[0]
        assert (reference.source, reference.target) == ("cte_0", "select_4")
        assert reference.label == "c"
        assert reference.clause_type == "cte_reference"

        assert context.has_select_star
        assert context.stats.ctes == 1
        assert context.table_usage == {"t": 1}
        assert context.derived_tables == []

    def test_cte_output_columns_are_recorded(self):
        context, _ = build("WITH c (x, y) AS (SELECT a, b FROM t) SELECT x FROM c")
        [derived] = context.derived_tables
        assert (derived.node_id, derived.name, derived.columns) == ("cte_0", "c", ["x", "y"])
        assert derived.is_cte
        assert context.statement_ast is not None

    def test_cte_referenced_from_subquery(self):
        """Test that an inner reference becomes an edge to the container."""
        _, processed = build(
            "WITH c AS (SELECT id FROM t) SELECT * FROM (SELECT id FROM c) AS s"
        )
        cte, subquery = processed.nodes[0], processed.nodes[1]
        assert subquery.kind == NodeKind.SUBQUERY
        inner = subquery.children[0]
        assert inner.table_category == TableCategory.CTE_REFERENCE
        assert inner.label == "c"
        assert ("cte_0", subquery.id) in pairs(processed.edges)
        assert_edges_within_levels(processed.nodes, processed.edges)

    def test_nested_cte_depth(self):
        _, processed = build(
            "WITH a AS (WITH b AS (SELECT 1 AS x) SELECT x FROM b) SELECT x FROM a"
        )
        outer = processed.nodes[0]
        inner = by_kind(outer.children, NodeKind.CTE)[0]
        assert (outer.cte_depth, inner.cte_depth) == (0, 1)

    def test_recursive_cte(self):
        """Test that a recursive self reference adds no edge."""
        context, processed = build(
            "WITH RECURSIVE r AS (SELECT 1 AS n UNION ALL SELECT n + 1 FROM r WHERE n < 5) "
            "SELECT n FROM r"
        )
        cte = processed.nodes[0]
        assert cte.description == "Recursive CTE"
        assert all(edge.source != edge.target for edge in processed.edges)
        assert context.stats.unions == 1
        assert_edges_within_levels(processed.nodes, processed.edges)


class TestSubqueries:
    """Tests for subquery containers."""

    def test_from_subquery(self):
        context, processed = build("SELECT s.id FROM (SELECT id FROM t) AS s")
        subquery = processed.nodes[0]
        assert subquery.kind == NodeKind.SUBQUERY
        assert subquery.label == "s"
        assert kinds(subquery.children) == [NodeKind.TABLE, NodeKind.SELECT]
        assert context.stats.subqueries == 1
        [derived] = context.derived_tables
        assert (derived.node_id, derived.name, derived.columns) == (subquery.id, "s", ["id"])
        assert not derived.is_cte
        assert context.subquery_signatures == {"select id from t": [subquery.id]}

    def test_where_subquery(self):
        """Test that a WHERE subquery feeds the filter."""
        context, processed = build("SELECT id FROM t WHERE id IN (SELECT uid FROM u)")
        where = by_kind(processed.nodes, NodeKind.FILTER)[0]
        subquery = by_kind(processed.nodes, NodeKind.SUBQUERY)[0]
        edge = [e for e in processed.edges if e.source == subquery.id][0]
        assert edge.target == where.id
        assert edge.clause_type == "subquery"
        assert where.conditions == ["id IN (subquery)"]
        assert context.stats.subqueries == 1
        assert context.finalize_stats().tables == 2

    def test_scalar_subquery_in_projection(self):
        _, processed = build("SELECT id, (SELECT MAX(x) FROM u) AS m FROM t")
        select = by_kind(processed.nodes, NodeKind.SELECT)[0]
        subquery = by_kind(processed.nodes, NodeKind.SUBQUERY)[0]
        assert (subquery.id, select.id) in pairs(processed.edges)
        assert kinds(subquery.children) == [NodeKind.TABLE, NodeKind.AGGREGATE, NodeKind.SELECT]

    def test_nesting_limit(self):
        """Test that nesting deeper than max_depth raises."""
        with pytest.raises(RecursionDepthError):
            build(
                "SELECT * FROM (SELECT * FROM (SELECT * FROM t) a) b",
                FlowConfig(max_depth=2),
            )


class TestSetOperations:
    """Tests for UNION, INTERSECT and EXCEPT."""

    def test_union_all(self):
        context, processed = build("SELECT a FROM t1 UNION ALL SELECT a FROM t2")
        union = by_kind(processed.nodes, NodeKind.UNION)[0]
        assert union.label == "UNION ALL"
        assert union.description == "UNION ALL of 2 queries"
        inputs = [e for e in processed.edges if e.target == union.id]
        assert len(inputs) == 2
        assert all(e.clause_type == "set_operation" for e in inputs)
        assert processed.nodes[-1].kind == NodeKind.RESULT
        assert context.stats.unions == 1

    def test_union_chain_is_flattened(self):
        context, processed = build("SELECT a FROM t1 UNION SELECT a FROM t2 UNION SELECT a FROM t3")
        [union] = by_kind(processed.nodes, NodeKind.UNION)
        assert union.label == "UNION"
        assert len([e for e in processed.edges if e.target == union.id]) == 3
        assert context.stats.unions == 2

    def test_intersect(self):
        _, processed = build("SELECT a FROM t1 INTERSECT SELECT a FROM t2")
        assert by_kind(processed.nodes, NodeKind.UNION)[0].label == "INTERSECT"


class TestGraphInvariants:
    """Structural invariants over a larger query."""

    SQL = """
        WITH recent AS (
            SELECT user_id, amount FROM orders WHERE created_at > '2024-01-01'
        )
        SELECT u.name, SUM(r.amount) AS total
        FROM users u
        JOIN recent r ON u.id = r.user_id
        LEFT JOIN (SELECT user_id FROM bans) b ON b.user_id = u.id
        WHERE u.id IN (SELECT user_id FROM vip)
        GROUP BY u.name
        ORDER BY total DESC
        LIMIT 10
    """

    def test_edges_stay_within_their_level(self):
        _, processed = build(self.SQL)
        assert_edges_within_levels(processed.nodes, processed.edges)

    def test_ids_unique(self):
        _, processed = build(self.SQL)
        ids = [node.id for top in processed.nodes for node in top.walk()]
        assert len(ids) == len(set(ids))

    def test_counters(self):
        context, _ = build(self.SQL)
        stats = context.finalize_stats()
        assert (stats.tables, stats.joins, stats.subqueries, stats.ctes) == (4, 2, 2, 1)
        assert stats.aggregations == 1
