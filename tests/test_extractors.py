"""
Tests for the AST extractors.

Covers column descriptors, condition rendering, table name resolution and
window/aggregate/CASE payload extraction.
"""

import json

import sqlglot
from sqlglot import exp

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.extractors.columns import column_name, extract_column_infos
from sqlflow_analyzer.extractors.conditions import (
    extract_conditions,
    format_condition,
    format_operand,
)
from sqlflow_analyzer.extractors.functions import (
    extract_aggregate_function_details,
    extract_case_statement_details,
    extract_window_function_details,
    resolve_window_name,
)
from sqlflow_analyzer.extractors.tables import (
    extract_tables_from_statement,
    get_table_name,
    get_table_valued_function_name,
)
from sqlflow_analyzer.models.column import TransformationType
from sqlflow_analyzer.models.config import ExpressionFormat
from sqlflow_analyzer.models.resolution import Guessed, Resolved


def projections(sql, read=None):
    return sqlglot.parse_one(sql, read=read).expressions


def where_of(sql):
    return sqlglot.parse_one(sql).find(exp.Where)


class TestColumnExtraction:
    """Tests for extract_column_infos."""

    def test_none_and_star_yield_nothing(self):
        """Test that missing projections produce no columns."""
        assert extract_column_infos(None) == []
        assert extract_column_infos(exp.Star()) == []

    def test_transformation_types(self):
        """Test the structural classification of each projection."""
        columns = extract_column_infos(
            projections(
                "SELECT id, u.name AS user_name, COUNT(*) AS n, "
                "price * qty AS total, 1 FROM users u"
            )
        )
        assert [(c.name, c.transformation_type) for c in columns] == [
            ("id", TransformationType.PASSTHROUGH),
            ("user_name", TransformationType.RENAMED),
            ("n", TransformationType.AGGREGATED),
            ("total", TransformationType.CALCULATED),
            ("1", TransformationType.PASSTHROUGH),
        ]

    def test_source_column_and_table(self):
        """Test that column references keep their source."""
        [column] = extract_column_infos(projections("SELECT u.id FROM users u"))
        assert column.source_column == "id"
        assert column.source_table == "u"
        assert column.expression == "u.id"

    def test_cast_keeps_source_column(self):
        """Test that a CAST-wrapped column still reports its source."""
        [column] = extract_column_infos(projections("SELECT CAST(o.amount AS INT) AS amt FROM o"))
        assert column.source_column == "amount"
        assert column.source_table == "o"
        assert column.transformation_type == TransformationType.CALCULATED

    def test_window_function_is_calculated_not_aggregate(self):
        """Test that SUM(...) OVER () counts as a window, not an aggregation."""
        [column] = extract_column_infos(
            projections("SELECT SUM(amount) OVER (PARTITION BY user_id) AS running FROM t")
        )
        assert column.is_window_func
        assert not column.is_aggregate
        assert column.transformation_type == TransformationType.CALCULATED

    def test_custom_aggregate(self):
        """Test that classifier custom names mark aggregates."""
        classifier = FunctionClassifier(custom_aggregates=["my_agg"])
        [column] = extract_column_infos(projections("SELECT my_agg(x) FROM t"), classifier=classifier)
        assert column.is_aggregate
        assert column.name == "MY_AGG"

    def test_json_expression_format(self):
        """Test the JSON rendering of expressions."""
        [column] = extract_column_infos(
            projections("SELECT id FROM t"), expression_format=ExpressionFormat.JSON
        )
        assert isinstance(json.loads(column.expression), (dict, list))

    def test_column_name_fallbacks(self):
        """Test the naming priority for unnamed expressions."""
        names = [column_name(c) for c in projections("SELECT UPPER(name), 'x', a + b, * FROM t")]
        assert names == ["UPPER", "x", "expr", "*"]


class TestConditionExtraction:
    """Tests for condition rendering."""

    def test_splits_on_and(self):
        """Test that AND/OR are split into leaf conditions."""
        where = where_of("SELECT 1 FROM t WHERE a = 1 AND (b = 2 OR c = 3)")
        assert extract_conditions(where) == ["a = 1", "b = 2", "c = 3"]

    def test_depth_limit_renders_whole_subtree(self):
        """Test that predicates below max_depth are rendered as one condition."""
        where = where_of("SELECT 1 FROM t WHERE a = 1 AND (b = 2 OR c = 3)")
        assert extract_conditions(where, max_depth=1) == ["a = 1", "b = 2 OR c = 3"]

    def test_max_conditions(self):
        """Test that the result is capped."""
        where = where_of("SELECT 1 FROM t WHERE a = 1 AND b = 2 AND c = 3")
        assert extract_conditions(where, max_conditions=2) == ["a = 1", "b = 2"]

    def test_none_clause(self):
        assert extract_conditions(None) == []

    def test_operator_shapes(self):
        """Test rendering of the special predicate forms."""
        where = where_of(
            "SELECT 1 FROM t WHERE x IN (1, 2) AND y IS NOT NULL "
            "AND s BETWEEN 1 AND 5 AND name = 'bob' AND z NOT IN (3)"
        )
        assert extract_conditions(where, max_conditions=10, max_depth=10) == [
            "x IN (1, 2)",
            "y IS NOT NULL",
            "s BETWEEN 1 AND 5",
            "name = bob",
            "z NOT IN (3)",
        ]

    def test_subquery_predicates(self):
        """Test that nested queries render as placeholders."""
        where = where_of(
            "SELECT 1 FROM t WHERE EXISTS (SELECT 1 FROM u) AND id IN (SELECT id FROM v)"
        )
        assert extract_conditions(where) == ["EXISTS (subquery)", "id IN (subquery)"]

    def test_join_condition(self):
        """Test rendering of a qualified equality."""
        join = sqlglot.parse_one("SELECT 1 FROM a JOIN b ON a.id = b.id").find(exp.Join)
        assert format_condition(join.args["on"]) == "a.id = b.id"

    def test_format_operand(self):
        """Test operand rendering fallbacks."""
        assert format_operand(None) == "?"
        assert format_operand(exp.column("id", table="u")) == "u.id"
        assert format_operand(exp.Literal.string("active")) == "active"
        assert format_operand(exp.Null()) == "NULL"


class TestTableExtraction:
    """Tests for table name resolution."""

    def test_qualified_name(self):
        table = sqlglot.parse_one("SELECT 1 FROM sales.orders o").find(exp.Table)
        assert get_table_name(table) == "sales.orders"

    def test_derived_table_uses_alias(self):
        """Test that a derived table is named by its alias."""
        from_item = sqlglot.parse_one("SELECT 1 FROM (SELECT 1) AS d").find(exp.From).this
        assert get_table_name(from_item) == "d"

    def test_placeholder(self):
        """Test the placeholder for an unnamed FROM item."""
        from_item = sqlglot.parse_one("SELECT 1 FROM (SELECT 1)").find(exp.From).this
        assert get_table_name(from_item) == "table"
        assert get_table_name(None) == "table"

    def test_table_valued_function(self):
        """Test detection of table-valued functions."""
        ast = sqlglot.parse_one("SELECT * FROM UNNEST([1, 2]) AS x", read="bigquery")
        assert get_table_valued_function_name(ast.find(exp.From).this) == "UNNEST"
        plain = sqlglot.parse_one("SELECT * FROM users").find(exp.From).this
        assert get_table_valued_function_name(plain) is None
        assert get_table_valued_function_name(None) is None

    def test_statement_tables_skip_ctes(self):
        """Test that CTE names are not reported as tables."""
        ast = sqlglot.parse_one(
            "WITH c AS (SELECT * FROM a) SELECT * FROM c JOIN b ON c.id = b.id"
        )
        assert sorted(extract_tables_from_statement(ast)) == ["a", "b"]

    def test_statement_tables_deduplicated(self):
        """Test case-insensitive de-duplication and the placeholder rule."""
        ast = sqlglot.parse_one(
            "SELECT * FROM users u JOIN USERS v ON u.id = v.id JOIN (SELECT 1) ON TRUE"
        )
        tables = extract_tables_from_statement(ast)
        assert tables == ["users"]
        assert "table" not in tables
        assert extract_tables_from_statement(None) == []


class TestWindowFunctions:
    """Tests for window function payloads."""

    def test_partition_and_order(self):
        """Test a fully specified window call."""
        [detail] = extract_window_function_details(
            projections("SELECT ROW_NUMBER() OVER (PARTITION BY d ORDER BY s DESC) AS rn FROM e")
        )
        assert detail.name == "ROW_NUMBER"
        assert detail.resolution == Resolved("ROW_NUMBER")
        assert detail.partition_by == ["d"]
        assert detail.order_by == ["s DESC"]
        assert detail.alias == "rn"
        assert detail.frame is None

    def test_order_defaults_to_asc(self):
        [detail] = extract_window_function_details(
            projections("SELECT RANK() OVER (ORDER BY score) FROM t")
        )
        assert detail.order_by == ["score ASC"]
        assert detail.alias is None

    def test_name_guessed_from_alias(self):
        """Test the alias heuristic when the AST carries no function."""
        window = exp.Window(this=exp.column("x"))
        resolution = resolve_window_name(window, "prev_amount", FunctionClassifier())
        assert resolution == Guessed("LAG")
        assert resolution.is_guess

    def test_dense_rank_before_rank(self):
        """Test that the more specific alias fragment wins."""
        window = exp.Window(this=exp.column("x"))
        assert resolve_window_name(window, "dense_rnk", FunctionClassifier()) == Guessed("DENSE_RANK")


class TestAggregateFunctions:
    """Tests for aggregate payloads."""

    def test_details(self):
        details = extract_aggregate_function_details(
            projections("SELECT COUNT(*) AS n, SUM(amount) FROM t")
        )
        assert [(d.name, d.expression, d.alias) for d in details] == [
            ("COUNT", "COUNT(*)", "n"),
            ("SUM", "SUM(amount)", None),
        ]
        assert details[1].source_column == "amount"

    def test_deduplication_keeps_later_alias(self):
        """Test that repeated calls collapse and pick up an alias."""
        details = extract_aggregate_function_details(
            projections("SELECT SUM(x), SUM(x) AS total FROM t")
        )
        assert len(details) == 1
        assert details[0].alias == "total"

    def test_distinct(self):
        [detail] = extract_aggregate_function_details(
            projections("SELECT COUNT(DISTINCT user_id) FROM t")
        )
        assert detail.distinct
        assert detail.arguments == ["user_id"]
        assert detail.source_column == "user_id"

    def test_window_aggregates_excluded(self):
        """Test that SUM(...) OVER () is not an aggregate detail."""
        assert extract_aggregate_function_details(
            projections("SELECT SUM(x) OVER () FROM t")
        ) == []

    def test_dialect_aggregate(self):
        """Test a dialect-specific aggregate name."""
        classifier = FunctionClassifier(SqlDialect.HIVE)
        details = extract_aggregate_function_details(
            projections("SELECT histogram_numeric(x, 10) FROM t", read="hive"), classifier, "hive"
        )
        assert [d.name for d in details] == ["HISTOGRAM_NUMERIC"]


class TestCaseExpressions:
    """Tests for CASE payloads."""

    def test_searched_case(self):
        [case] = extract_case_statement_details(
            projections("SELECT CASE WHEN s > 10 THEN 'high' ELSE 'low' END AS band FROM t")
        )
        assert [(b.when, b.then) for b in case.conditions] == [("s > 10", "high")]
        assert case.else_value == "low"
        assert case.alias == "band"

    def test_simple_case(self):
        """Test that simple CASE arms render as equalities."""
        [case] = extract_case_statement_details(
            projections("SELECT CASE x WHEN 1 THEN 'a' END FROM t")
        )
        assert case.conditions[0].when == "x = 1"
        assert case.else_value is None
