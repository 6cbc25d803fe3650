"""
Flow graph analysis.

This module defines the FlowGraph class, which loads flow nodes and edges
into a networkx DiGraph and answers the structural questions the metrics,
lineage and layout steps ask: degrees, sources, ranks, paths and the
critical path.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import networkx as nx

from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind


class FlowGraph:
    """Directed graph view over one level of flow nodes and edges.

    Only the nodes passed in are loaded; container children form their own
    graph and are analyzed with their own FlowGraph.

    Attributes:
        graph: networkx DiGraph keyed by node id. Each node carries its
            FlowNode under the ``node`` attribute, each edge its FlowEdge
            under ``edge``.

    Example:
        >>> graph = FlowGraph(result.nodes, result.edges)
        >>> graph.sources()
        ['table_0']
        >>> graph.critical_path_length()
        2
    """

    def __init__(self, nodes: Iterable[FlowNode], edges: Iterable[FlowEdge]) -> None:
        """Initialize a FlowGraph.

        Args:
            nodes: Nodes of one graph level, in emission order.
            edges: Edges between those nodes. Edges whose endpoints are not
                in ``nodes`` are ignored.
        """
        self.graph = nx.DiGraph()
        self._order: list[str] = []
        for node in nodes:
            self.graph.add_node(node.id, node=node)
            self._order.append(node.id)
        for edge in edges:
            if edge.source in self.graph and edge.target in self.graph:
                self.graph.add_edge(edge.source, edge.target, edge=edge)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.graph

    def node(self, node_id: str) -> FlowNode:
        return self.graph.nodes[node_id]["node"]

    def node_ids(self) -> list[str]:
        """Node ids in emission order."""
        return list(self._order)

    def out_degree(self, node_id: str) -> int:
        return self.graph.out_degree(node_id)

    def max_fan_out(self) -> int:
        """Largest out-degree over all nodes, 0 for an empty graph."""
        return max((degree for _, degree in self.graph.out_degree()), default=0)

    def sources(self) -> list[str]:
        """Ids of nodes with no incoming edge, in emission order."""
        return [n for n in self._order if self.graph.in_degree(n) == 0]

    def sinks(self) -> list[str]:
        return [n for n in self._order if self.graph.out_degree(n) == 0]

    def predecessors(self, node_id: str) -> list[str]:
        """Upstream neighbours of ``node_id``, in emission order."""
        preds = set(self.graph.predecessors(node_id))
        return [n for n in self._order if n in preds]

    def upstream(self, node_id: str) -> set[str]:
        """All nodes ``node_id`` transitively depends on."""
        if node_id not in self.graph:
            return set()
        return nx.ancestors(self.graph, node_id)

    def path(self, source: str, target: str) -> Optional[list[str]]:
        """Shortest node path from ``source`` to ``target``, or None."""
        if source not in self.graph or target not in self.graph:
            return None
        try:
            return nx.shortest_path(self.graph, source, target)
        except nx.NetworkXNoPath:
            return None

    def critical_path_length(self, targets: Optional[Iterable[str]] = None) -> int:
        """Longest path, in edges, from any source node to a target node.

        Computed by depth-first search with memoization. Nodes on a cycle
        are treated as dead ends.

        Args:
            targets: Ids of the path end points. Defaults to the RESULT
                nodes, or to the sinks when the graph has no RESULT node.

        Returns:
            Edge count of the longest path, 0 when no path exists.
        """
        if targets is None:
            targets = [
                n for n in self._order if self.node(n).kind == NodeKind.RESULT
            ] or self.sinks()
        target_set = set(targets)
        memo: dict[str, Optional[int]] = {}
        visiting: set[str] = set()

        def longest(node_id: str) -> Optional[int]:
            if node_id in memo:
                return memo[node_id]
            if node_id in visiting:
                return None
            visiting.add(node_id)
            best = 0 if node_id in target_set else None
            for succ in self.graph.successors(node_id):
                tail = longest(succ)
                if tail is not None and (best is None or tail + 1 > best):
                    best = tail + 1
            visiting.discard(node_id)
            memo[node_id] = best
            return best

        lengths = [longest(source) for source in self.sources()]
        return max((length for length in lengths if length is not None), default=0)

    def ranks(self) -> dict[str, int]:
        """Rank of every node: longest distance, in edges, from a source.

        Falls back to breadth-first distance when the graph has a cycle.
        """
        ranks: dict[str, int] = {}
        if nx.is_directed_acyclic_graph(self.graph):
            for node_id in nx.topological_sort(self.graph):
                preds = list(self.graph.predecessors(node_id))
                ranks[node_id] = max((ranks[p] + 1 for p in preds), default=0)
            return ranks

        for source in self.sources() or self._order[:1]:
            for node_id, distance in nx.single_source_shortest_path_length(
                self.graph, source
            ).items():
                ranks[node_id] = max(ranks.get(node_id, 0), distance)
        for node_id in self._order:
            ranks.setdefault(node_id, 0)
        return ranks

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Export graph to a dictionary of plain nodes and edges."""
        return {
            "nodes": [
                {
                    "id": node_id,
                    "kind": self.node(node_id).kind.value,
                    "label": self.node(node_id).label,
                }
                for node_id in self._order
            ],
            "edges": [
                {"source": u, "target": v, "label": data["edge"].label}
                for u, v, data in self.graph.edges(data=True)
            ],
        }

    def get_statistics(self) -> dict[str, int]:
        """Node, edge, source and sink counts plus the critical path."""
        return {
            "total_nodes": self.graph.number_of_nodes(),
            "total_edges": self.graph.number_of_edges(),
            "source_nodes": len(self.sources()),
            "sink_nodes": len(self.sinks()),
            "critical_path_length": self.critical_path_length(),
        }

    def to_dot(self) -> str:
        """Export graph to Graphviz DOT format."""
        lines = ["digraph flow {", "  rankdir=TB;"]
        for node_id in self._order:
            node = self.node(node_id)
            label = node.label.replace('"', '\\"')
            lines.append(f'  "{node_id}" [label="{label}", shape=box];')
        for u, v, data in self.graph.edges(data=True):
            label = data["edge"].label
            if label:
                label = label.replace('"', '\\"')
                lines.append(f'  "{u}" -> "{v}" [label="{label}"];')
            else:
                lines.append(f'  "{u}" -> "{v}";')
        lines.append("}")
        return "\n".join(lines)
