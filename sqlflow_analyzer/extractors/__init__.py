"""
AST extractors.

Pure functions that read column descriptors, rendered conditions, table
names and window/aggregate/CASE payloads out of sqlglot expressions. None
of them raise on unexpected shapes; they fall back to placeholders.
"""

from sqlflow_analyzer.extractors.columns import column_name, extract_column_infos
from sqlflow_analyzer.extractors.conditions import (
    extract_conditions,
    format_condition,
    format_operand,
)
from sqlflow_analyzer.extractors.functions import (
    extract_aggregate_function_details,
    extract_case_statement_details,
    extract_window_function_details,
)
from sqlflow_analyzer.extractors.tables import (
    extract_tables_from_statement,
    get_table_alias,
    get_table_name,
    get_table_valued_function_name,
)

__all__ = [
    "column_name",
    "extract_column_infos",
    "extract_conditions",
    "format_condition",
    "format_operand",
    "extract_aggregate_function_details",
    "extract_case_statement_details",
    "extract_window_function_details",
    "extract_tables_from_statement",
    "get_table_alias",
    "get_table_name",
    "get_table_valued_function_name",
]
