"""
SQL dialect tags.

This module defines the SqlDialect enum, the set of dialect tags accepted by
the analyzer, and the mapping from each tag to the sqlglot dialect used to
parse it.
"""

from enum import Enum
from typing import Optional


class SqlDialect(str, Enum):
    """Enumeration of supported SQL dialects.

    Example:
        >>> SqlDialect.POSTGRESQL.sqlglot_name
        'postgres'
        >>> SqlDialect.from_name("mssql")
        <SqlDialect.TRANSACTSQL: 'TransactSQL'>
    """

    MYSQL = "MySQL"
    POSTGRESQL = "PostgreSQL"
    TRANSACTSQL = "TransactSQL"
    SNOWFLAKE = "Snowflake"
    BIGQUERY = "BigQuery"
    REDSHIFT = "Redshift"
    HIVE = "Hive"
    ATHENA = "Athena"
    TRINO = "Trino"
    MARIADB = "MariaDB"
    SQLITE = "SQLite"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all dialect tag values."""
        return [member.value for member in cls]

    @property
    def sqlglot_name(self) -> str:
        """Name of the sqlglot dialect used to parse this dialect."""
        return _SQLGLOT_NAMES[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> "SqlDialect":
        """Resolve a dialect tag or common alias, defaulting to MySQL.

        Args:
            name: Dialect tag ("PostgreSQL"), alias ("pg", "mssql") or None.

        Returns:
            The matching SqlDialect. Unknown names resolve to MySQL.
        """
        if isinstance(name, SqlDialect):
            return name
        if not name:
            return cls.MYSQL

        key = name.strip().lower()
        key = _ALIASES.get(key, key)
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.MYSQL


_SQLGLOT_NAMES = {
    SqlDialect.MYSQL: "mysql",
    SqlDialect.POSTGRESQL: "postgres",
    SqlDialect.TRANSACTSQL: "tsql",
    SqlDialect.SNOWFLAKE: "snowflake",
    SqlDialect.BIGQUERY: "bigquery",
    SqlDialect.REDSHIFT: "redshift",
    SqlDialect.HIVE: "hive",
    # Athena engine v3 runs on Trino
    SqlDialect.ATHENA: "trino",
    SqlDialect.TRINO: "trino",
    SqlDialect.MARIADB: "mysql",
    SqlDialect.SQLITE: "sqlite",
}

_ALIASES = {
    "sqlserver": "transactsql",
    "mssql": "transactsql",
    "tsql": "transactsql",
    "postgres": "postgresql",
    "pg": "postgresql",
}
