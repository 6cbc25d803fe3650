"""
Tests for graph layout.
"""

import pytest

from sqlflow_analyzer import FlowAnalyzer
from sqlflow_analyzer.graph.layout import (
    CANVAS_PADDING,
    LayoutEngine,
    layout_metrics,
    size_node,
)
from sqlflow_analyzer.models.config import FlowConfig, LayoutAlgorithm, LayoutDirection
from sqlflow_analyzer.models.flow import (
    AggregateDetails,
    AggregateFunctionDetail,
    FlowNode,
    NodeKind,
)


def analyze(sql, **config):
    return FlowAnalyzer(FlowConfig(**config)).analyze_sql(sql)


def positions(nodes):
    return [(node.x, node.y) for node in nodes]


class TestNodeSizing:
    """Tests for per-kind node sizes."""

    def test_sizes_by_kind(self):
        result = analyze("SELECT id FROM users")
        assert [(n.width, n.height) for n in result.nodes] == [
            (160.0, 60.0),
            (140.0, 60.0),
            (120.0, 60.0),
        ]

    def test_aggregate_grows_with_functions(self):
        node = FlowNode(
            id="aggregate_0",
            kind=NodeKind.AGGREGATE,
            label="AGGREGATE",
            aggregate_details=AggregateDetails(
                functions=[AggregateFunctionDetail(f"F{i}", f"F{i}(x)") for i in range(4)]
            ),
        )
        size_node(node)
        assert (node.width, node.height) == (220.0, 110.0)

    def test_height_is_capped(self):
        node = FlowNode(
            id="aggregate_0",
            kind=NodeKind.AGGREGATE,
            label="AGGREGATE",
            aggregate_details=AggregateDetails(
                functions=[AggregateFunctionDetail(f"F{i}", f"F{i}(x)") for i in range(20)]
            ),
        )
        size_node(node)
        assert node.height == 180.0


class TestHierarchicalLayout:
    """Tests for the layered layout."""

    def test_top_bottom(self):
        """Test that ranks stack vertically and are centered."""
        result = analyze("SELECT id FROM users")
        assert positions(result.nodes) == [(40.0, 40.0), (50.0, 200.0), (60.0, 360.0)]

    def test_left_right(self):
        result = analyze("SELECT id FROM users", layout_direction=LayoutDirection.LEFT_RIGHT)
        assert positions(result.nodes) == [(40.0, 40.0), (300.0, 40.0), (540.0, 40.0)]

    def test_compact(self):
        result = analyze("SELECT id FROM users", compact_layout=True)
        assert [node.y for node in result.nodes] == [40.0, 150.0, 260.0]

    def test_join_inputs_share_a_rank(self):
        result = analyze("SELECT a.id FROM a JOIN b ON a.id = b.id")
        first, second = result.nodes[0], result.nodes[1]
        assert first.y == second.y
        assert second.x == first.x + first.width + 50.0

    def test_container_fits_children(self):
        """Test relative child coordinates and container size."""
        result = analyze("WITH c AS (SELECT * FROM t) SELECT * FROM c")
        cte = result.nodes[0]
        assert positions(cte.children) == [(20.0, 50.0), (30.0, 210.0)]
        assert (cte.width, cte.height) == (200.0, 290.0)

    def test_empty_container(self):
        node = FlowNode(id="subquery_0", kind=NodeKind.SUBQUERY, label="s")
        LayoutEngine().apply([node], [])
        assert (node.width, node.height) == (180.0, 80.0)


class TestOtherLayouts:
    """Tests for the force, radial and none algorithms."""

    @pytest.mark.parametrize("algorithm", [LayoutAlgorithm.FORCE, LayoutAlgorithm.RADIAL])
    def test_deterministic_and_padded(self, algorithm):
        sql = "SELECT a.id FROM a JOIN b ON a.id = b.id WHERE a.x > 1"
        first = analyze(sql, layout_algorithm=algorithm)
        second = analyze(sql, layout_algorithm=algorithm)
        assert positions(first.nodes) == positions(second.nodes)
        assert min(node.x for node in first.nodes) == pytest.approx(CANVAS_PADDING)
        assert min(node.y for node in first.nodes) == pytest.approx(CANVAS_PADDING)

    def test_radial_single_node(self):
        node = FlowNode(id="select_0", kind=NodeKind.SELECT, label="SELECT")
        LayoutEngine(LayoutAlgorithm.RADIAL).apply([node], [])
        assert (node.x, node.y) == (40.0, 40.0)

    def test_none_sizes_only(self):
        result = analyze("SELECT id FROM users", layout_algorithm=LayoutAlgorithm.NONE)
        assert positions(result.nodes) == [(0.0, 0.0)] * 3
        assert result.nodes[0].width == 160.0


class TestLayoutMetrics:
    """Tests for layout_metrics."""

    def test_metrics(self):
        result = analyze("SELECT id FROM users")
        metrics = layout_metrics(result.nodes, result.edges)
        assert metrics == {
            "width": 160.0,
            "height": 380.0,
            "node_count": 3,
            "average_edge_length": 160.0,
        }

    def test_empty(self):
        assert layout_metrics([], [])["node_count"] == 0
