"""
Graph layout.

This module assigns geometry (x, y, width, height) to flow nodes. Nothing
is rendered here; coordinates are in pixels with the origin at the top-left
corner. Children of container nodes are laid out first, with coordinates
relative to their container, and the container is sized to fit them.

Three algorithms are available:

* hierarchical: nodes ranked by their longest distance from a source node,
  one row (or column, left to right) per rank;
* force: networkx spring layout with a fixed seed;
* radial: breadth-first layers from the source nodes on concentric rings.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Any

import networkx as nx
import numpy as np

from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.models.config import LayoutAlgorithm, LayoutDirection
from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind

logger = logging.getLogger(__name__)

DEFAULT_SIZE = (140.0, 60.0)
NODE_SIZES: dict[NodeKind, tuple[float, float]] = {
    NodeKind.TABLE: (160.0, 60.0),
    NodeKind.LIMIT: (120.0, 60.0),
    NodeKind.RESULT: (120.0, 60.0),
    NodeKind.AGGREGATE: (220.0, 60.0),
    NodeKind.WINDOW: (220.0, 60.0),
    NodeKind.CASE: (220.0, 60.0),
}
DETAIL_ROW_HEIGHT = 20.0
MAX_DETAIL_HEIGHT = 180.0

NODE_SEPARATION = 50.0
RANK_SEPARATION = 100.0
COMPACT_NODE_SEPARATION = 30.0
COMPACT_RANK_SEPARATION = 50.0

CONTAINER_PADDING = 20.0
CONTAINER_HEADER = 30.0
EMPTY_CONTAINER_SIZE = (180.0, 80.0)

CANVAS_PADDING = 40.0
FORCE_SEED = 42


def size_node(node: FlowNode) -> None:
    """Set the width and height of a non-container node from its kind."""
    width, height = NODE_SIZES.get(node.kind, DEFAULT_SIZE)
    rows = 0
    if node.aggregate_details is not None:
        rows = len(node.aggregate_details.functions)
    elif node.window_details is not None and node.kind == NodeKind.WINDOW:
        rows = len(node.window_details.functions)
    elif node.case_details is not None and node.kind == NodeKind.CASE:
        rows = len(node.case_details.cases)
    node.width = width
    node.height = min(max(height, 30.0 + rows * DETAIL_ROW_HEIGHT), MAX_DETAIL_HEIGHT)


class LayoutEngine:
    """Computes node geometry for one flow graph.

    Attributes:
        algorithm: Layout algorithm for the top-level graph. Container
            children always use the hierarchical layout.
        direction: Rank direction of the hierarchical layout.
        node_separation: Gap between nodes of the same rank.
        rank_separation: Gap between ranks.

    Example:
        >>> engine = LayoutEngine(LayoutAlgorithm.HIERARCHICAL)
        >>> engine.apply(result.nodes, result.edges)
        >>> [node.y for node in result.nodes]
        [40.0, 200.0, 360.0]
    """

    def __init__(
        self,
        algorithm: LayoutAlgorithm = LayoutAlgorithm.HIERARCHICAL,
        direction: LayoutDirection = LayoutDirection.TOP_BOTTOM,
        compact: bool = False,
    ) -> None:
        self.algorithm = algorithm
        self.direction = direction
        self.node_separation = COMPACT_NODE_SEPARATION if compact else NODE_SEPARATION
        self.rank_separation = COMPACT_RANK_SEPARATION if compact else RANK_SEPARATION

    def apply(self, nodes: list[FlowNode], edges: list[FlowEdge]) -> None:
        """Lay out ``nodes`` in place, children included."""
        if not nodes:
            return
        logger.debug("Applying %s layout to %d nodes", self.algorithm.value, len(nodes))
        for node in nodes:
            self.size(node)

        if self.algorithm == LayoutAlgorithm.NONE:
            return
        if self.algorithm == LayoutAlgorithm.FORCE:
            self.force(nodes, edges)
        elif self.algorithm == LayoutAlgorithm.RADIAL:
            self.radial(nodes, edges)
        else:
            self.hierarchical(nodes, edges, origin=CANVAS_PADDING)

    def size(self, node: FlowNode) -> None:
        """Size ``node``; a container is laid out and sized from its children."""
        if not node.is_container:
            size_node(node)
            return
        if not node.children:
            node.width, node.height = EMPTY_CONTAINER_SIZE
            return

        for child in node.children:
            self.size(child)
        self.hierarchical(node.children, node.child_edges, origin=0.0)
        right = max(child.x + child.width for child in node.children)
        bottom = max(child.y + child.height for child in node.children)
        for child in node.children:
            child.x += CONTAINER_PADDING
            child.y += CONTAINER_PADDING + CONTAINER_HEADER
        node.width = right + 2 * CONTAINER_PADDING
        node.height = bottom + 2 * CONTAINER_PADDING + CONTAINER_HEADER

    # ========== Algorithms ==========

    def hierarchical(self, nodes: list[FlowNode], edges: list[FlowEdge], origin: float) -> None:
        """Layered layout; every rank is centered on the widest rank."""
        graph = FlowGraph(nodes, edges)
        ranks = graph.ranks()
        layers: dict[int, list[FlowNode]] = defaultdict(list)
        for node in nodes:
            layers[ranks.get(node.id, 0)].append(node)

        horizontal = self.direction == LayoutDirection.LEFT_RIGHT

        def along(node: FlowNode) -> float:
            return node.height if horizontal else node.width

        def across(node: FlowNode) -> float:
            return node.width if horizontal else node.height

        spans = {
            rank: sum(along(n) for n in layer) + self.node_separation * (len(layer) - 1)
            for rank, layer in layers.items()
        }
        widest = max(spans.values())

        offset = origin
        for rank in sorted(layers):
            layer = layers[rank]
            position = origin + (widest - spans[rank]) / 2
            for node in layer:
                if horizontal:
                    node.x, node.y = offset, position
                else:
                    node.x, node.y = position, offset
                position += along(node) + self.node_separation
            offset += max(across(n) for n in layer) + self.rank_separation

    def force(self, nodes: list[FlowNode], edges: list[FlowEdge]) -> None:
        graph = FlowGraph(nodes, edges).graph.to_undirected()
        average = sum(n.width + n.height for n in nodes) / (2 * len(nodes))
        positions = nx.spring_layout(graph, seed=FORCE_SEED)
        scale = average * 2 * math.sqrt(len(nodes))
        self._place(nodes, positions, scale)

    def radial(self, nodes: list[FlowNode], edges: list[FlowEdge]) -> None:
        """Concentric rings of breadth-first layers around the source nodes."""
        graph = FlowGraph(nodes, edges)
        if len(nodes) == 1:
            nodes[0].x = nodes[0].y = CANVAS_PADDING
            return

        roots = graph.sources() or [
            max(graph.node_ids(), key=lambda node_id: graph.out_degree(node_id))
        ]
        layer_of: dict[str, int] = {}
        queue = [(root, 0) for root in roots]
        while queue:
            node_id, layer = queue.pop(0)
            if node_id in layer_of:
                continue
            layer_of[node_id] = layer
            for successor in graph.graph.successors(node_id):
                if successor not in layer_of:
                    queue.append((successor, layer + 1))
        deepest = max(layer_of.values(), default=0)
        for node_id in graph.node_ids():
            layer_of.setdefault(node_id, deepest + 1)

        shells: dict[int, list[str]] = defaultdict(list)
        for node_id in graph.node_ids():
            shells[layer_of[node_id]].append(node_id)
        nlist = [shells[layer] for layer in sorted(shells)]
        positions = nx.shell_layout(graph.graph, nlist=nlist)
        ring = max(max(n.width, n.height) for n in nodes) + self.rank_separation
        self._place(nodes, positions, ring * len(nlist))

    def _place(self, nodes: list[FlowNode], positions: dict[str, Any], scale: float) -> None:
        """Scale normalized positions to pixels and shift them to the padding."""
        centers = np.array([positions[node.id] for node in nodes], dtype=float) * scale
        corners = centers - np.array([[n.width / 2, n.height / 2] for n in nodes])
        corners -= corners.min(axis=0)
        corners += CANVAS_PADDING
        for node, (x, y) in zip(nodes, corners):
            node.x, node.y = float(x), float(y)


def apply_layout(
    nodes: list[FlowNode],
    edges: list[FlowEdge],
    algorithm: LayoutAlgorithm = LayoutAlgorithm.HIERARCHICAL,
    direction: LayoutDirection = LayoutDirection.TOP_BOTTOM,
    compact: bool = False,
) -> None:
    """Lay out a graph in place with a fresh LayoutEngine."""
    LayoutEngine(algorithm, direction, compact).apply(nodes, edges)


def layout_metrics(nodes: list[FlowNode], edges: list[FlowEdge]) -> dict[str, float]:
    """Bounding box, node count and average edge length of a laid out graph.

    Example:
        >>> layout_metrics(result.nodes, result.edges)["node_count"]
        3
    """
    if not nodes:
        return {"width": 0.0, "height": 0.0, "node_count": 0, "average_edge_length": 0.0}

    centers = {node.id: (node.x + node.width / 2, node.y + node.height / 2) for node in nodes}
    lengths = [
        math.dist(centers[edge.source], centers[edge.target])
        for edge in edges
        if edge.source in centers and edge.target in centers
    ]
    return {
        "width": max(n.x + n.width for n in nodes) - min(n.x for n in nodes),
        "height": max(n.y + n.height for n in nodes) - min(n.y for n in nodes),
        "node_count": len(nodes),
        "average_edge_length": sum(lengths) / len(lengths) if lengths else 0.0,
    }
