"""
Data models for flow analysis.

This package contains the core data structures of the flow analyzer:
flow nodes and edges with their detail payloads, column descriptors,
statistics and hints, lineage records, configuration, and results.
"""

from sqlflow_analyzer.models.classified_statement import ClassifiedStatement
from sqlflow_analyzer.models.column import ColumnInfo, TransformationType
from sqlflow_analyzer.models.config import (
    ErrorMode,
    ExpressionFormat,
    FlowConfig,
    LayoutAlgorithm,
    LayoutDirection,
)
from sqlflow_analyzer.models.flow import (
    AccessMode,
    AggregateDetails,
    AggregateFunctionDetail,
    CaseBranch,
    CaseDetail,
    CaseDetails,
    ComplexityLevel,
    FlowEdge,
    FlowNode,
    NodeKind,
    NodeWarning,
    OperationType,
    TableCategory,
    WarningType,
    WindowDetails,
    WindowFunctionDetail,
)
from sqlflow_analyzer.models.lineage import (
    ColumnFlow,
    ColumnLineage,
    LineageSource,
    LineageStep,
    LineageTransformation,
)
from sqlflow_analyzer.models.resolution import Guessed, Resolved
from sqlflow_analyzer.models.result import BatchResult, FlowResult
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.models.stats import (
    Complexity,
    HintCategory,
    HintKind,
    HintSeverity,
    OptimizationHint,
    QueryStats,
)

__all__ = [
    "AccessMode",
    "AggregateDetails",
    "AggregateFunctionDetail",
    "BatchResult",
    "CaseBranch",
    "CaseDetail",
    "CaseDetails",
    "ClassifiedStatement",
    "ColumnFlow",
    "ColumnInfo",
    "ColumnLineage",
    "Complexity",
    "ComplexityLevel",
    "ErrorMode",
    "ExpressionFormat",
    "FlowConfig",
    "FlowEdge",
    "FlowNode",
    "FlowResult",
    "Guessed",
    "HintCategory",
    "HintKind",
    "HintSeverity",
    "LayoutAlgorithm",
    "LayoutDirection",
    "LineageSource",
    "LineageStep",
    "LineageTransformation",
    "NodeKind",
    "NodeWarning",
    "OperationType",
    "OptimizationHint",
    "QueryStats",
    "Resolved",
    "StatementType",
    "TableCategory",
    "TransformationType",
    "WarningType",
    "WindowDetails",
    "WindowFunctionDetail",
]
