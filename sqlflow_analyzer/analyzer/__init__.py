"""
Flow analyzer module.

This package contains the graph-building side of the flow analyzer: the
FlowAnalyzer main entry point, the ParseContext that carries counters and
hints through one analysis, the GraphBuilder that collects nodes and edges
of one graph level, and the StatementProcessor and DmlProcessor that turn
statements into flow graphs.
"""

from sqlflow_analyzer.analyzer.context import ParseContext
from sqlflow_analyzer.analyzer.dml_processor import DmlProcessor
from sqlflow_analyzer.analyzer.flow_analyzer import FlowAnalyzer
from sqlflow_analyzer.analyzer.graph_builder import GraphBuilder
from sqlflow_analyzer.analyzer.statement_processor import StatementProcessor

__all__ = [
    "DmlProcessor",
    "FlowAnalyzer",
    "GraphBuilder",
    "ParseContext",
    "StatementProcessor",
]
