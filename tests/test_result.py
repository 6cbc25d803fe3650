"""
Tests for FlowResult and BatchResult.
"""

import dataclasses
import json

import networkx as nx
import pytest

from sqlflow_analyzer import FlowAnalyzer
from sqlflow_analyzer.models.result import BatchResult, FlowResult


class TestFlowResult:
    """Tests for FlowResult accessors and exports."""

    def setup_method(self):
        self.analyzer = FlowAnalyzer()

    def test_find_node_searches_children(self):
        result = self.analyzer.analyze_sql("WITH c AS (SELECT id FROM t) SELECT id FROM c")
        assert result.find_node("table_1").label == "t"
        assert result.find_node("cte_0").label == "c"
        assert result.find_node("missing") is None

    def test_edges_from_and_to_use_the_nodes_level(self):
        """Test that child nodes see the edges of their own sub-graph."""
        result = self.analyzer.analyze_sql("WITH c AS (SELECT id FROM t) SELECT id FROM c")
        assert [e.target for e in result.edges_from("table_1")] == ["select_2"]
        assert [e.source for e in result.edges_to("select_2")] == ["table_1"]
        assert [e.target for e in result.edges_from("cte_0")] == ["select_4"]

    def test_source_tables(self):
        result = self.analyzer.analyze_sql(
            "SELECT o.id FROM Orders o JOIN users u ON o.uid = u.id"
        )
        assert result.get_source_tables() == ["orders", "users"]
        assert result.table_usage == {"orders": 1, "users": 1}

    def test_to_graph(self):
        result = self.analyzer.analyze_sql("SELECT id FROM users")
        graph = result.to_graph()
        assert isinstance(graph, nx.DiGraph)
        assert list(graph.nodes) == ["table_0", "select_1", "result_3"]
        assert graph.nodes["table_0"]["node"].label == "users"

    def test_to_dict_and_json(self):
        result = self.analyzer.analyze_sql("SELECT u.id AS user_id FROM users u WHERE u.id > 1")
        data = json.loads(result.to_json())
        assert data["success"] is True
        assert data["statement_type"] == "select"
        assert data["dialect"] == "MySQL"
        assert [n["kind"] for n in data["nodes"]] == ["table", "filter", "select", "result"]
        assert data["nodes"][0]["line_range"] == [1, None]
        assert data["stats"]["complexity"] == "Simple"
        assert data["column_flows"][0]["path"] == "users.id → (renamed) user_id"
        assert data["table_usage"] == {"users": 1}

    def test_formatted_string(self):
        result = self.analyzer.analyze_sql("SELECT id FROM users")
        text = result.to_formatted_string()
        assert "Status: ✓ Success" in text
        assert "users (table) → SELECT (select)" in text
        assert "SELECT id FROM users" in text
        assert "SELECT id FROM users" not in result.to_formatted_string(include_sql=False)

    def test_failure(self):
        result = FlowResult.failure("SELECT", "boom", "MySQL", start_line=4)
        assert not result.success
        assert result.nodes == [] and result.hints == []
        assert result.start_line == 4
        text = result.to_formatted_string()
        assert "Status: ✗ Failed" in text
        assert "boom" in text

    def test_is_immutable(self):
        result = self.analyzer.analyze_sql("SELECT 1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.error = "changed"


class TestBatchResult:
    """Tests for BatchResult aggregation."""

    def setup_method(self):
        self.batch = FlowAnalyzer().analyze_batch(
            "SELECT id FROM users;\nSELECT id FROM users WHERE;\nDELETE FROM users WHERE id = 1;"
        )

    def test_iteration(self):
        assert len(self.batch) == 3
        assert [result.success for result in self.batch] == [True, False, True]

    def test_success_requires_every_statement(self):
        assert not self.batch.success
        assert len(self.batch.succeeded()) == 2
        assert [result.start_line for result in self.batch.failed()] == [2]

    def test_table_usage_is_summed(self):
        assert self.batch.table_usage() == {"users": 2}

    def test_summary(self):
        assert self.batch.get_summary() == {
            "statements": 3,
            "succeeded": 2,
            "failed": 1,
            "hints": 0,
        }

    def test_to_dict(self):
        data = json.loads(self.batch.to_json())
        assert data["success"] is False
        assert data["error"] is None
        assert len(data["queries"]) == 3

    def test_empty_batch(self):
        batch = BatchResult()
        assert batch.success
        assert batch.get_summary()["statements"] == 0
