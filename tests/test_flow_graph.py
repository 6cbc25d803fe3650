"""
Tests for the networkx-backed FlowGraph.
"""

from sqlflow_analyzer import FlowAnalyzer
from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind


def node(node_id, kind=NodeKind.SELECT):
    return FlowNode(id=node_id, kind=kind, label=node_id)


def edge(source, target):
    return FlowEdge(id=f"{source}->{target}", source=source, target=target)


class TestFlowGraph:
    """Tests for FlowGraph queries."""

    def setup_method(self):
        result = FlowAnalyzer().analyze_sql(
            "SELECT a.id FROM a JOIN b ON a.id = b.id WHERE a.x > 1"
        )
        self.result = result
        self.graph = FlowGraph(result.nodes, result.edges)

    def test_sources_and_sinks(self):
        assert self.graph.sources() == ["table_0", "table_1"]
        assert self.graph.sinks() == [self.result.nodes[-1].id]

    def test_predecessors_in_emission_order(self):
        assert self.graph.predecessors("join_2") == ["table_0", "table_1"]

    def test_upstream(self):
        result_id = self.result.nodes[-1].id
        assert {"table_0", "table_1", "join_2"} <= self.graph.upstream(result_id)
        assert self.graph.upstream("missing") == set()

    def test_path(self):
        path = self.graph.path("table_1", self.result.nodes[-1].id)
        assert path[0] == "table_1"
        assert path[1] == "join_2"
        assert self.graph.path(self.result.nodes[-1].id, "table_0") is None

    def test_critical_path(self):
        # table -> join -> filter -> select -> result
        assert self.graph.critical_path_length() == 4

    def test_ranks(self):
        ranks = self.graph.ranks()
        assert ranks["table_0"] == ranks["table_1"] == 0
        assert ranks["join_2"] == 1

    def test_statistics(self):
        statistics = self.graph.get_statistics()
        assert statistics["total_nodes"] == 6
        assert statistics["source_nodes"] == 2
        assert statistics["sink_nodes"] == 1

    def test_exports(self):
        data = self.graph.to_dict()
        assert [n["id"] for n in data["nodes"]] == [n.id for n in self.result.nodes]
        dot = self.graph.to_dot()
        assert dot.startswith("digraph flow {")
        assert '"table_0" -> "join_2";' in dot


class TestFlowGraphEdgeCases:
    """Tests for unusual graph shapes."""

    def test_edges_to_unknown_nodes_are_ignored(self):
        graph = FlowGraph([node("select_0")], [edge("select_0", "cte_9")])
        assert graph.graph.number_of_edges() == 0

    def test_empty_graph(self):
        graph = FlowGraph([], [])
        assert graph.max_fan_out() == 0
        assert graph.critical_path_length() == 0

    def test_cycle_does_not_hang(self):
        """Test that a cycle is treated as a dead end."""
        nodes = [node("a"), node("b"), node("c", NodeKind.RESULT)]
        edges = [edge("a", "b"), edge("b", "a"), edge("b", "c")]
        graph = FlowGraph(nodes, edges)
        assert graph.critical_path_length() == 0
        ranks = graph.ranks()
        assert set(ranks) == {"a", "b", "c"}

    def test_critical_path_without_result_uses_sinks(self):
        nodes = [node("a"), node("b"), node("c")]
        graph = FlowGraph(nodes, [edge("a", "b"), edge("b", "c")])
        assert graph.critical_path_length() == 2
