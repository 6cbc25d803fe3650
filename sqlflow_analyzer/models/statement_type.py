"""
Statement type enumeration.

This module defines the StatementType enum, which represents the kinds of
SQL statements the statement processor dispatches on.
"""

from enum import Enum


class StatementType(str, Enum):
    """SQL statement type enumeration.

    Classification rules:
    - SELECT: query statement, including WITH ... SELECT and set operations
    - INSERT: INSERT INTO ... SELECT / VALUES
    - UPDATE: UPDATE ... [FROM ...] [WHERE ...]
    - DELETE: DELETE FROM ... [WHERE ...]
    - MERGE: MERGE INTO ... USING ...
    - CREATE_TABLE_AS: CREATE TABLE ... AS SELECT ...
    - CREATE_VIEW: CREATE VIEW ... AS SELECT ...
    - UNSUPPORTED: recognized but without a flow graph (DROP, plain CREATE TABLE, ...)
    """

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MERGE = "merge"
    CREATE_TABLE_AS = "create_table_as"
    CREATE_VIEW = "create_view"
    UNSUPPORTED = "unsupported"

    def is_supported(self) -> bool:
        """Check if this statement type produces a flow graph."""
        return self != StatementType.UNSUPPORTED

    def modifies_data(self) -> bool:
        """Check if this statement type writes rows."""
        return self in (
            StatementType.INSERT,
            StatementType.UPDATE,
            StatementType.DELETE,
            StatementType.MERGE,
        )

    def creates_object(self) -> bool:
        """Check if this statement type creates a table or view."""
        return self in (StatementType.CREATE_TABLE_AS, StatementType.CREATE_VIEW)
