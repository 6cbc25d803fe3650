"""
Script splitter for SQL scripts.

This module defines the ScriptSplitter class, which splits SQL scripts
containing multiple statements into individual statement texts, preserving
the original text and line positions of each one.
"""

import logging
from dataclasses import dataclass
from typing import List

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from sqlflow_analyzer.dialects.dialect import SqlDialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementText:
    """One statement cut out of a script.

    Attributes:
        sql: Original statement text, without the trailing semicolon.
        index: Position of the statement in the script (0-based).
        start_line: 1-based line of the first character.
        end_line: 1-based line of the last character.
    """

    sql: str
    index: int
    start_line: int
    end_line: int


class ScriptSplitter:
    """SQL script splitter.

    Splits on semicolon tokens produced by the sqlglot tokenizer, so
    semicolons inside string literals, quoted identifiers and comments do
    not split. Each statement's original text is kept as written.

    Usage:
        splitter = ScriptSplitter()
        statements = splitter.split("SELECT 1; SELECT 2;")
        # [StatementText(sql="SELECT 1", ...), StatementText(sql="SELECT 2", ...)]
    """

    def split(
        self, script: str, dialect: SqlDialect = SqlDialect.MYSQL
    ) -> List[StatementText]:
        """Split a SQL script into statements.

        Args:
            script: SQL script text (may contain multiple statements).
            dialect: Dialect used for tokenizing.

        Returns:
            Non-empty statement texts in source order. An empty script
            yields an empty list.
        """
        if not script or not script.strip():
            return []

        try:
            tokens = sqlglot.tokenize(script, read=dialect.sqlglot_name)
        except TokenError as e:
            # Leave the whole script to the parser, which reports the error.
            logger.warning("Could not tokenize script, analyzing it as one statement: %s", e)
            return self._collect(script, [(0, len(script))])

        spans = []
        start = 0
        for token in tokens:
            if token.token_type == TokenType.SEMICOLON:
                spans.append((start, token.start))
                start = token.end + 1
        spans.append((start, len(script)))
        return self._collect(script, spans)

    def _collect(self, script: str, spans: List[tuple]) -> List[StatementText]:
        statements: List[StatementText] = []
        for begin, end in spans:
            raw = script[begin:end]
            text = raw.strip()
            if not text:
                continue
            offset = begin + (len(raw) - len(raw.lstrip()))
            start_line = script.count("\n", 0, offset) + 1
            end_line = start_line + text.count("\n")
            statements.append(
                StatementText(
                    sql=text,
                    index=len(statements),
                    start_line=start_line,
                    end_line=end_line,
                )
            )
        return statements

