"""
Custom exception classes for flow analysis.

This module defines all custom exceptions used throughout the sqlflow
analyzer package. The public analyzer never lets these escape: each one is
converted into a result whose ``error`` field carries the message.
"""

from typing import Optional


class FlowError(Exception):
    """Base exception class for all flow analysis errors.

    Attributes:
        message: Human-readable error message describing the error.
    """

    def __init__(self, message: str) -> None:
        """Initialize a FlowError with a message.

        Args:
            message: Error message describing what went wrong.
        """
        self.message = message
        super().__init__(self.message)


class SqlParseError(FlowError):
    """Exception raised when the SQL grammar parser rejects a statement.

    Attributes:
        message: Error message, already enriched with the suggestion.
        dialect: Name of the dialect the statement was parsed with.
        suggestion: Optional dialect-mismatch suggestion, e.g.
            "Try PostgreSQL dialect".
    """

    def __init__(
        self,
        message: str,
        dialect: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """Initialize a SqlParseError.

        Args:
            message: Error message from the parser.
            dialect: Optional dialect name used for parsing.
            suggestion: Optional alternative dialect suggestion.
        """
        self.dialect = dialect
        self.suggestion = suggestion

        if suggestion:
            message = f"{message}. {suggestion}"

        super().__init__(message)


class RecursionDepthError(FlowError):
    """Exception raised when subquery/CTE nesting exceeds the configured limit.

    Attributes:
        message: Error message describing the overflow.
        depth: Nesting depth that was reached, None when the interpreter's
            own recursion limit stopped the walk first.
        limit: Configured maximum depth.
    """

    def __init__(self, depth: Optional[int], limit: int) -> None:
        """Initialize a RecursionDepthError.

        Args:
            depth: Nesting depth that was reached, or None if unknown.
            limit: Configured maximum depth.
        """
        self.depth = depth
        self.limit = limit
        if depth is None:
            message = f"Query nesting exceeds the maximum depth of {limit}"
        else:
            message = f"Query nesting depth {depth} exceeds the maximum of {limit}"
        super().__init__(f"{message}. Simplify nested subqueries or CTEs.")


class UnsupportedStatementError(FlowError):
    """Exception raised for statements that cannot be turned into a flow graph.

    Attributes:
        message: Error message.
        statement_kind: Name of the statement kind (e.g. "Drop", "Grant").
    """

    def __init__(self, statement_kind: str) -> None:
        self.statement_kind = statement_kind
        super().__init__(
            f"Unsupported statement type: {statement_kind}. "
            f"Supported: SELECT, INSERT, UPDATE, DELETE, MERGE, "
            f"CREATE TABLE AS, CREATE VIEW"
        )


class InputLimitError(FlowError):
    """Exception raised when batch input exceeds the configured size limits.

    Attributes:
        message: Error message.
        limit_name: Name of the exceeded limit.
        actual: Observed value.
        limit: Configured maximum.
    """

    def __init__(self, limit_name: str, actual: int, limit: int) -> None:
        self.limit_name = limit_name
        self.actual = actual
        self.limit = limit
        super().__init__(
            f"Input exceeds {limit_name}: {actual} (maximum {limit})"
        )
