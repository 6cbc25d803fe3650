"""
SQL parser module.

This package contains the parsing front end of the flow analyzer: the
SQLParser class that converts SQL strings to sqlglot ASTs, the
ScriptSplitter that cuts scripts into statements, and the
StatementClassifier that tags a statement with its kind.
"""

from sqlflow_analyzer.parser.script_splitter import ScriptSplitter, StatementText
from sqlflow_analyzer.parser.sql_parser import SQLParser
from sqlflow_analyzer.parser.statement_classifier import StatementClassifier

__all__ = [
    "SQLParser",
    "ScriptSplitter",
    "StatementClassifier",
    "StatementText",
]
