"""
SQL parser implementation.

This module defines the SQLParser class, which converts SQL strings to
sqlglot AST objects in a given dialect. The grammar itself is sqlglot's;
this class only maps dialect tags and turns parser failures into
SqlParseError with a dialect suggestion.
"""

import logging
from typing import Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from sqlflow_analyzer.dialects.detection import parse_error_message
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import SqlParseError
from sqlflow_analyzer.models.config import FlowConfig

logger = logging.getLogger(__name__)


class SQLParser:
    """SQL parser that converts SQL strings to AST.

    Attributes:
        config: FlowConfig providing the default dialect.

    Example:
        >>> parser = SQLParser(FlowConfig())
        >>> ast = parser.parse("SELECT id, name FROM users")
        >>> isinstance(ast, exp.Select)
        True
    """

    def __init__(self, config: Optional[FlowConfig] = None) -> None:
        self.config = config or FlowConfig()

    def parse(self, sql: str, dialect: Optional[SqlDialect] = None) -> exp.Expression:
        """Parse one SQL statement into an AST.

        Args:
            sql: SQL string to parse.
            dialect: Dialect to parse with; defaults to ``config.dialect``.

        Returns:
            sqlglot AST expression representing the parsed SQL.

        Raises:
            SqlParseError: If the SQL is empty or sqlglot rejects it.
        """
        dialect = dialect or self.config.dialect
        if not sql or not sql.strip():
            raise SqlParseError("SQL string cannot be empty", dialect=dialect.value)

        try:
            ast = sqlglot.parse_one(sql, read=dialect.sqlglot_name)
        except ParseError as e:
            details = e.errors[0] if e.errors else {}
            message, suggestion = parse_error_message(
                sql,
                dialect,
                description=details.get("description"),
                near=details.get("highlight"),
            )
            logger.warning("Parse failed in %s: %s", dialect.value, message)
            raise SqlParseError(message, dialect=dialect.value, suggestion=suggestion) from e
        except TokenError as e:
            message, suggestion = parse_error_message(sql, dialect, description=str(e))
            logger.warning("Tokenization failed in %s: %s", dialect.value, message)
            raise SqlParseError(message, dialect=dialect.value, suggestion=suggestion) from e

        if ast is None:
            raise SqlParseError(
                "SQL string contains no statement", dialect=dialect.value
            )
        return ast
