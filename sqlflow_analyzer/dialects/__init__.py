"""Dialect tags, function classification and syntax marker detection."""

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.dialects.dialect import SqlDialect

__all__ = ["FunctionClassifier", "SqlDialect"]
