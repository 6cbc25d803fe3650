"""
Dialect syntax marker detection.

Heuristic scan of SQL text for syntax that only some dialects accept. Used
to enrich parse failures with a "Try <dialect>" suggestion and to emit an
informational hint when a parsed query carries another dialect's syntax.
String literals and comments are blanked out with the sqlglot tokenizer
before scanning. Results are best-effort and never authoritative.
"""

import logging
import re
from typing import Optional

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from sqlflow_analyzer.dialects.dialect import SqlDialect

logger = logging.getLogger(__name__)

_STRING_TOKENS = {
    TokenType.STRING,
    TokenType.NATIONAL_STRING,
    TokenType.RAW_STRING,
    TokenType.BYTE_STRING,
    TokenType.HEX_STRING,
    TokenType.BIT_STRING,
    TokenType.HEREDOC_STRING,
    TokenType.UNICODE_STRING,
}

# (pattern, dialects that accept it, human readable marker)
_MARKERS: list[tuple[re.Pattern, tuple[SqlDialect, ...], str]] = [
    (re.compile(r"\bSELECT\s+TOP\s+\(?\d+", re.I), (SqlDialect.TRANSACTSQL,), "TOP n"),
    (re.compile(r"\[[A-Za-z_][\w ]*\]"), (SqlDialect.TRANSACTSQL,), "[bracketed] identifiers"),
    (re.compile(r"\b(?:CROSS|OUTER)\s+APPLY\b", re.I), (SqlDialect.TRANSACTSQL,), "APPLY"),
    (re.compile(r"\bILIKE\b", re.I), (SqlDialect.POSTGRESQL, SqlDialect.SNOWFLAKE, SqlDialect.REDSHIFT), "ILIKE"),
    (re.compile(r"::\s*[A-Za-z_]"), (SqlDialect.POSTGRESQL, SqlDialect.REDSHIFT, SqlDialect.SNOWFLAKE), ":: casts"),
    (re.compile(r"\bRETURNING\b", re.I), (SqlDialect.POSTGRESQL, SqlDialect.SQLITE), "RETURNING"),
    (re.compile(r"\bDISTINCT\s+ON\s*\(", re.I), (SqlDialect.POSTGRESQL,), "DISTINCT ON"),
    (re.compile(r"\bQUALIFY\b", re.I), (SqlDialect.SNOWFLAKE, SqlDialect.BIGQUERY), "QUALIFY"),
    (re.compile(r"\bLATERAL\s+FLATTEN\b", re.I), (SqlDialect.SNOWFLAKE,), "LATERAL FLATTEN"),
    (re.compile(r"\bLATERAL\s+VIEW\b", re.I), (SqlDialect.HIVE,), "LATERAL VIEW"),
    (re.compile(r"`[^`]+`"), (SqlDialect.MYSQL, SqlDialect.MARIADB, SqlDialect.BIGQUERY, SqlDialect.HIVE), "backtick identifiers"),
    (re.compile(r"\bSAFE_CAST\b|\bSTRUCT\s*<", re.I), (SqlDialect.BIGQUERY,), "SAFE_CAST / STRUCT<>"),
    (re.compile(r"\bLIMIT\s+\d+\s*,\s*\d+", re.I), (SqlDialect.MYSQL, SqlDialect.MARIADB, SqlDialect.SQLITE), "LIMIT offset, count"),
]


def strip_literals(sql: str, dialect: Optional[SqlDialect] = None) -> str:
    """Blank out string literals and comments, keeping every offset.

    Text the tokenizer rejects (e.g. an unterminated string) is returned
    unchanged.

    Example:
        >>> strip_literals("SELECT '[ok]' -- note\\nFROM t").split()
        ['SELECT', 'FROM', 't']
    """
    if not sql:
        return ""
    try:
        tokens = sqlglot.tokenize(sql, read=dialect.sqlglot_name if dialect else None)
    except TokenError as e:
        logger.debug("Could not tokenize for marker detection: %s", e)
        return sql

    chars = [" " if char != "\n" else char for char in sql]
    for token in tokens:
        if token.token_type in _STRING_TOKENS:
            continue
        chars[token.start : token.end + 1] = sql[token.start : token.end + 1]
    return "".join(chars)


def detect_dialect_markers(
    sql: str, dialect: Optional[SqlDialect] = None
) -> list[tuple[str, tuple[SqlDialect, ...]]]:
    """Return ``(marker, dialects)`` pairs for every marker found in ``sql``.

    ``dialect`` selects the tokenizer that decides what is a string
    literal; markers inside literals and comments are ignored.
    """
    text = strip_literals(sql, dialect)
    found = []
    for pattern, dialects, marker in _MARKERS:
        if pattern.search(text):
            found.append((marker, dialects))
    return found


def suggest_dialect(sql: str, current: SqlDialect) -> Optional[SqlDialect]:
    """Suggest a dialect whose syntax markers appear in ``sql``.

    Only markers the current dialect does not accept count. The dialect
    with the most matching markers wins; ties keep marker order.

    Returns:
        The suggested dialect, or None when nothing points away from
        ``current``.
    """
    scores: dict[SqlDialect, int] = {}
    for _, dialects in detect_dialect_markers(sql, current):
        if current in dialects:
            continue
        for dialect in dialects:
            scores[dialect] = scores.get(dialect, 0) + 1

    if not scores:
        return None
    return max(scores, key=lambda dialect: scores[dialect])


def parse_error_message(
    sql: str,
    current: SqlDialect,
    description: Optional[str] = None,
    near: Optional[str] = None,
) -> tuple[str, Optional[str]]:
    """Build a user-facing parse failure message and optional suggestion.

    Args:
        sql: Statement text that failed to parse.
        current: Dialect used for parsing.
        description: Parser error description, if any.
        near: Offending token text, if the parser reported one.

    Returns:
        Tuple of (message, suggestion). ``suggestion`` is None when no other
        dialect looks more likely.
    """
    message = f"SQL syntax not recognized by {current.value} parser"
    if near and near.strip():
        message += f" (near '{near.strip()}')"
    elif description:
        message += f": {description}"

    suggested = suggest_dialect(sql, current)
    suggestion = f"Try {suggested.value} dialect" if suggested else None
    return message, suggestion
