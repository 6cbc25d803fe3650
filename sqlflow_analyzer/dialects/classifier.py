"""
Dialect function classifier.

This module defines the FunctionClassifier class, which answers whether a
function name is an aggregate, window or table-valued function in a given
SQL dialect. It is a pure lookup over the tables in
``sqlflow_analyzer.dialects.functions`` plus any caller-supplied names.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.dialects.functions import (
    COMMON_AGGREGATES,
    COMMON_TABLE_FUNCTIONS,
    COMMON_WINDOWS,
    DIALECT_AGGREGATES,
    DIALECT_TABLE_FUNCTIONS,
    DIALECT_WINDOWS,
)


def _normalize(names: Optional[Iterable[str]]) -> frozenset[str]:
    return frozenset(name.strip().upper() for name in (names or ()) if name)


class FunctionClassifier:
    """Classifies function names for one dialect.

    Custom names are held by the instance only, so two classifiers built
    with different custom lists never affect each other.

    Attributes:
        dialect: The SqlDialect this classifier answers for.

    Example:
        >>> classifier = FunctionClassifier(SqlDialect.SNOWFLAKE)
        >>> classifier.is_aggregate("listagg")
        True
        >>> classifier.is_table_valued("FLATTEN")
        True
        >>> classifier.is_window("row_number")
        True
    """

    def __init__(
        self,
        dialect: SqlDialect = SqlDialect.MYSQL,
        custom_aggregates: Optional[Iterable[str]] = None,
        custom_windows: Optional[Iterable[str]] = None,
        custom_table_functions: Optional[Iterable[str]] = None,
    ) -> None:
        self.dialect = SqlDialect.from_name(dialect)
        self._aggregates = (
            COMMON_AGGREGATES
            | frozenset(DIALECT_AGGREGATES.get(self.dialect, ()))
            | _normalize(custom_aggregates)
        )
        self._windows = (
            COMMON_WINDOWS
            | frozenset(DIALECT_WINDOWS.get(self.dialect, ()))
            | _normalize(custom_windows)
        )
        self._table_functions = (
            COMMON_TABLE_FUNCTIONS
            | frozenset(DIALECT_TABLE_FUNCTIONS.get(self.dialect, ()))
            | _normalize(custom_table_functions)
        )

    def is_aggregate(self, name: Optional[str]) -> bool:
        """Check whether ``name`` is an aggregate function in this dialect."""
        return bool(name) and name.upper() in self._aggregates

    def is_window(self, name: Optional[str]) -> bool:
        """Check whether ``name`` is a window-only (ranking/offset) function."""
        return bool(name) and name.upper() in self._windows

    def is_table_valued(self, name: Optional[str]) -> bool:
        """Check whether ``name`` is a table-valued function in this dialect."""
        return bool(name) and name.upper() in self._table_functions

    def window_functions(self) -> list[str]:
        """Return the known window function names, sorted for stable scans."""
        return sorted(self._windows)

    def aggregate_functions(self) -> list[str]:
        """Return the known aggregate function names, sorted."""
        return sorted(self._aggregates)

    def table_functions(self) -> list[str]:
        """Return the known table-valued function names, sorted."""
        return sorted(self._table_functions)
