"""
Tests for column lineage and column flow paths.
"""

from sqlflow_analyzer import FlowAnalyzer
from sqlflow_analyzer.lineage.column_lineage import source_references
from sqlflow_analyzer.models.lineage import (
    ColumnFlow,
    LineageSource,
    LineageStep,
    LineageTransformation,
)

import sqlglot


def lineage_of(result):
    return [(entry.output_column, entry.sources) for entry in result.column_lineage]


def paths_of(result):
    return [flow.to_string() for flow in result.column_flows]


class TestSourceReferences:
    """Tests for source_references."""

    def test_first_seen_order_without_duplicates(self):
        expression = sqlglot.parse_one("SELECT o.amount * o.rate + O.AMOUNT + tax").expressions[0]
        assert source_references(expression) == [("o", "amount"), ("o", "rate"), (None, "tax")]

    def test_nested_queries_are_skipped(self):
        expression = sqlglot.parse_one("SELECT (SELECT MAX(x) FROM u) + y AS m").expressions[0]
        assert source_references(expression) == [(None, "y")]


class TestColumnLineage:
    """Tests for the output column to source mapping."""

    def setup_method(self):
        self.analyzer = FlowAnalyzer()

    def test_renamed_column(self):
        result = self.analyzer.analyze_sql("SELECT u.id AS user_id FROM users u")
        assert lineage_of(result) == [("user_id", [LineageSource("table_0", "id")])]

    def test_calculated_column_has_every_source(self):
        result = self.analyzer.analyze_sql(
            "SELECT a.x + b.y AS s FROM a JOIN b ON a.id = b.id"
        )
        assert lineage_of(result) == [
            ("s", [LineageSource("table_0", "x"), LineageSource("table_1", "y")])
        ]

    def test_ambiguous_unqualified_column(self):
        """Test that unqualified columns over several FROM items stay unresolved."""
        result = self.analyzer.analyze_sql("SELECT name FROM a JOIN b ON a.id = b.id")
        assert lineage_of(result) == [("name", [])]
        assert result.column_flows == []

    def test_literal_has_no_sources(self):
        result = self.analyzer.analyze_sql("SELECT 1 AS one FROM t")
        assert lineage_of(result) == [("one", [])]

    def test_star(self):
        """Test that a star maps to every FROM item."""
        result = self.analyzer.analyze_sql("SELECT * FROM t")
        assert lineage_of(result) == [("*", [LineageSource("table_0", "*")])]
        assert result.column_flows == []

    def test_union_merged_by_position(self):
        result = self.analyzer.analyze_sql("SELECT a FROM t1 UNION ALL SELECT b FROM t2")
        assert lineage_of(result) == [
            ("a", [LineageSource("table_0", "a"), LineageSource("table_3", "b")])
        ]

    def test_insert_select(self):
        result = self.analyzer.analyze_sql("INSERT INTO t SELECT id FROM s")
        assert lineage_of(result) == [("id", [LineageSource("table_0", "id")])]

    def test_statement_without_query(self):
        result = self.analyzer.analyze_sql("UPDATE t SET a = 1 WHERE id = 2")
        assert result.column_lineage == []
        assert result.column_flows == []


class TestColumnFlows:
    """Tests for source-to-output paths."""

    def setup_method(self):
        self.analyzer = FlowAnalyzer()

    def test_renamed(self):
        """Test the flow id and path of a renamed column."""
        result = self.analyzer.analyze_sql("SELECT u.id AS user_id FROM users u")
        [flow] = result.column_flows
        assert flow.id == "lineage_select_1_user_id"
        assert flow.output_column == "user_id"
        assert flow.to_string() == "users.id → (renamed) user_id"
        assert flow.source.transformation == LineageTransformation.SOURCE
        assert flow.target.node_id == "select_1"

    def test_passthrough_is_source_only(self):
        result = self.analyzer.analyze_sql("SELECT col FROM t WHERE col > 1 ORDER BY col")
        [flow] = result.column_flows
        assert [step.transformation for step in flow.lineage_path] == [
            LineageTransformation.SOURCE
        ]
        assert flow.lineage_path[0].node_name == "t"
        assert flow.hops == 0

    def test_joined(self):
        result = self.analyzer.analyze_sql("SELECT a.id FROM a JOIN b ON a.id = b.id")
        assert paths_of(result) == ["a.id → (joined) id"]

    def test_aggregated(self):
        result = self.analyzer.analyze_sql("SELECT COUNT(id) AS n FROM t GROUP BY k")
        [flow] = result.column_flows
        assert flow.to_string() == "t.id → (aggregated) n"
        assert flow.target.expression == "COUNT(id)"

    def test_several_sources_get_numbered_ids(self):
        result = self.analyzer.analyze_sql(
            "SELECT a.x + b.y AS s FROM a JOIN b ON a.id = b.id"
        )
        assert [flow.id for flow in result.column_flows] == [
            "lineage_select_5_s_0",
            "lineage_select_5_s_1",
        ]
        assert paths_of(result) == [
            "a.x → (joined) x → (calculated) s",
            "b.y → (joined) y → (calculated) s",
        ]

    def test_union_appends_set_operation_step(self):
        result = self.analyzer.analyze_sql("SELECT a FROM t1 UNION ALL SELECT a FROM t2")
        assert paths_of(result) == [
            "t1.a → (passthrough) a",
            "t2.a → (passthrough) a",
        ]
        assert result.column_flows[0].target.node_name == "UNION ALL"

    def test_nested_set_operations_step_through_each_union(self):
        """Test that every Union node between a branch and the output is a step."""
        result = self.analyzer.analyze_sql(
            "SELECT x FROM a UNION SELECT x FROM b UNION ALL SELECT x FROM c"
        )
        steps = [[step.node_id for step in flow.lineage_path] for flow in result.column_flows]
        assert steps == [
            ["table_0", "union_6", "union_12"],
            ["table_3", "union_6", "union_12"],
            ["table_9", "union_12"],
        ]
        assert [step.node_name for step in result.column_flows[0].lineage_path[1:]] == [
            "UNION",
            "UNION ALL",
        ]

    def test_cte_is_the_source(self):
        """Test that a CTE container is tagged as the source, not entered."""
        result = self.analyzer.analyze_sql("WITH c AS (SELECT id FROM t) SELECT id FROM c")
        [flow] = result.column_flows
        assert flow.source.node_name == "c"
        assert flow.source.node_id == "cte_0"


class TestColumnFlowModel:
    """Tests for ColumnFlow formatting."""

    def test_ascii_and_empty(self):
        flow = ColumnFlow(
            id="lineage_select_1_x",
            output_column="x",
            lineage_path=[
                LineageStep("table_0", "t", "y", LineageTransformation.SOURCE),
                LineageStep("select_1", "SELECT", "x", LineageTransformation.RENAMED),
            ],
        )
        assert flow.to_string(use_ascii=True) == "t.y -> (renamed) x"
        assert flow.to_dict()["path"] == "t.y → (renamed) x"
        assert ColumnFlow(id="f", output_column="x").to_string() == "(empty path)"
