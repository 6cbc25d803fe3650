"""
Statement classifier for SQL statements.

This module defines the StatementClassifier class, which identifies the kind
of a parsed statement and extracts the parts the statement processor needs:
the written table and the query that feeds it.
"""

import logging
from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.models.classified_statement import ClassifiedStatement
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.utils.ast_utils import (
    is_query,
    qualified_table_name,
    unwrap_query,
)

logger = logging.getLogger(__name__)


class StatementClassifier:
    """SQL statement classifier.

    Usage:
        classifier = StatementClassifier()
        classified = classifier.classify(ast)

        if classified.is_supported():
            # Build the flow graph
            ...
    """

    def classify(self, ast: exp.Expression) -> ClassifiedStatement:
        """Classify a SQL statement.

        Args:
            ast: sqlglot AST object.

        Returns:
            ClassifiedStatement object. Statements without a flow graph are
            classified UNSUPPORTED with the statement keyword in
            ``metadata["keyword"]``.
        """
        query = unwrap_query(ast)

        if is_query(query):
            classified = ClassifiedStatement(
                statement_type=StatementType.SELECT, ast=ast, query_ast=query
            )
        elif isinstance(ast, exp.Create) and self._is_create_with_query(ast):
            kind = (ast.args.get("kind") or "").upper()
            classified = ClassifiedStatement(
                statement_type=(
                    StatementType.CREATE_VIEW if kind == "VIEW" else StatementType.CREATE_TABLE_AS
                ),
                ast=ast,
                target_table=self._target_name(ast.this),
                query_ast=unwrap_query(ast.args.get("expression")),
            )
        elif isinstance(ast, exp.Insert):
            source = ast.args.get("expression")
            classified = ClassifiedStatement(
                statement_type=StatementType.INSERT,
                ast=ast,
                target_table=self._target_name(ast.this),
                query_ast=unwrap_query(source) if is_query(unwrap_query(source)) else None,
                metadata={"values": isinstance(source, exp.Values)},
            )
        elif isinstance(ast, exp.Update):
            classified = ClassifiedStatement(
                statement_type=StatementType.UPDATE,
                ast=ast,
                target_table=self._target_name(ast.this),
            )
        elif isinstance(ast, exp.Delete):
            classified = ClassifiedStatement(
                statement_type=StatementType.DELETE,
                ast=ast,
                target_table=self._target_name(ast.this),
            )
        elif isinstance(ast, exp.Merge):
            classified = ClassifiedStatement(
                statement_type=StatementType.MERGE,
                ast=ast,
                target_table=self._target_name(ast.this),
            )
        else:
            classified = ClassifiedStatement(
                statement_type=StatementType.UNSUPPORTED,
                ast=ast,
                metadata={"keyword": self.statement_keyword(ast)},
            )

        logger.debug("Classified %s as %s", type(ast).__name__, classified.statement_type.value)
        return classified

    @staticmethod
    def statement_keyword(ast: exp.Expression) -> str:
        """Return the leading keyword of a statement, e.g. "DROP".

        Example:
            >>> StatementClassifier.statement_keyword(sqlglot.parse_one("DROP TABLE t"))
            'DROP'
        """
        if isinstance(ast, exp.Command) and ast.name:
            return ast.name.upper()
        return ast.key.upper()

    def _is_create_with_query(self, ast: exp.Create) -> bool:
        """Check if it's CREATE TABLE ... AS SELECT or CREATE VIEW ... AS SELECT."""
        kind = (ast.args.get("kind") or "").upper()
        if kind not in ("TABLE", "VIEW"):
            return False
        return is_query(unwrap_query(ast.args.get("expression")))

    def _target_name(self, target: Optional[exp.Expression]) -> Optional[str]:
        """Extract the written table name, unwrapping ``t (col, ...)`` schemas."""
        if isinstance(target, exp.Schema):
            target = target.this
        if isinstance(target, exp.Alias):
            target = target.this
        if isinstance(target, exp.Table):
            return qualified_table_name(target) or None
        if target is None:
            return None
        return target.sql() or None
