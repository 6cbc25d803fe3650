"""
Flow graph module.

This package contains the networkx view of a flow graph (FlowGraph) and
the layout engine that assigns node geometry.
"""

from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.graph.layout import LayoutEngine, apply_layout, layout_metrics

__all__ = [
    "FlowGraph",
    "LayoutEngine",
    "apply_layout",
    "layout_metrics",
]
