"""
Classified statement model.

This module defines the ClassifiedStatement class, a parsed statement tagged
with its StatementType and the parts the statement processor needs.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlglot import exp

from sqlflow_analyzer.models.statement_type import StatementType


@dataclass
class ClassifiedStatement:
    """Classified SQL statement.

    Attributes:
        statement_type: Statement type.
        ast: sqlglot AST of the whole statement.
        target_table: Written table or view name (INSERT/UPDATE/DELETE/
            MERGE/CREATE targets).
        query_ast: Query part (the SELECT of CREATE ... AS / INSERT ... SELECT,
            or the whole statement for queries).
        metadata: Additional information, e.g. the AST class name of an
            unsupported statement.

    Example:
        # CREATE TABLE AS
        ClassifiedStatement(
            statement_type=StatementType.CREATE_TABLE_AS,
            ast=...,
            target_table="t1",
            query_ast=...  # SELECT part
        )
    """

    statement_type: StatementType
    ast: exp.Expression
    target_table: Optional[str] = None
    query_ast: Optional[exp.Expression] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_supported(self) -> bool:
        """Check if this statement produces a flow graph."""
        return self.statement_type.is_supported()

    def has_query(self) -> bool:
        """Check if this statement contains a query part."""
        return self.query_ast is not None
