"""
SQL Flow Analyzer v1.0

Compiles SQL statements into dataflow graphs: tables, joins, filters,
aggregations and the other stages a query passes through, with column
lineage, complexity scores, optimization hints and layout coordinates.

Example:
    >>> from sqlflow_analyzer import FlowAnalyzer
    >>> analyzer = FlowAnalyzer()
    >>> result = analyzer.analyze_sql("SELECT id FROM users WHERE active = 1")
    >>> [node.label for node in result.nodes]
    ['users', 'WHERE', 'SELECT', 'Result']
"""

from sqlflow_analyzer.version import __version__, __version_info__

__author__ = "SQL Flow Analyzer Contributors"

from sqlflow_analyzer.analyzer.flow_analyzer import FlowAnalyzer
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import (
    FlowError,
    InputLimitError,
    RecursionDepthError,
    SqlParseError,
    UnsupportedStatementError,
)
from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.graph.layout import LayoutEngine, apply_layout
from sqlflow_analyzer.models.classified_statement import ClassifiedStatement
from sqlflow_analyzer.models.column import ColumnInfo, TransformationType
from sqlflow_analyzer.models.config import (
    ErrorMode,
    ExpressionFormat,
    FlowConfig,
    LayoutAlgorithm,
    LayoutDirection,
)
from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind
from sqlflow_analyzer.models.lineage import ColumnFlow, ColumnLineage, LineageStep
from sqlflow_analyzer.models.result import BatchResult, FlowResult
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.models.stats import Complexity, OptimizationHint, QueryStats
from sqlflow_analyzer.parser.script_splitter import ScriptSplitter
from sqlflow_analyzer.parser.sql_parser import SQLParser
from sqlflow_analyzer.parser.statement_classifier import StatementClassifier

__all__ = [
    # Version info
    "__version__",
    "__version_info__",
    # Core analyzer
    "FlowAnalyzer",
    # Configuration
    "FlowConfig",
    "ErrorMode",
    "ExpressionFormat",
    "LayoutAlgorithm",
    "LayoutDirection",
    "SqlDialect",
    # Results
    "FlowResult",
    "BatchResult",
    "QueryStats",
    "Complexity",
    "OptimizationHint",
    # Data models
    "FlowNode",
    "FlowEdge",
    "NodeKind",
    "ColumnInfo",
    "TransformationType",
    "ColumnLineage",
    "ColumnFlow",
    "LineageStep",
    # Graph
    "FlowGraph",
    "LayoutEngine",
    "apply_layout",
    # Exceptions
    "FlowError",
    "SqlParseError",
    "RecursionDepthError",
    "UnsupportedStatementError",
    "InputLimitError",
    # Parser
    "SQLParser",
    "ScriptSplitter",
    "StatementClassifier",
    "StatementType",
    "ClassifiedStatement",
]
