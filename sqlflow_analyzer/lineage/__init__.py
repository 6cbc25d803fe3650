"""Column lineage and column flow paths over a finished flow graph."""

from sqlflow_analyzer.lineage.column_flows import ColumnFlowBuilder, build_column_flows
from sqlflow_analyzer.lineage.column_lineage import build_column_lineage, source_references

__all__ = [
    "ColumnFlowBuilder",
    "build_column_flows",
    "build_column_lineage",
    "source_references",
]
