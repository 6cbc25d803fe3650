"""
Best-effort source line ranges for flow nodes.

Line ranges are found by searching the statement text for the keyword (or
table/CTE name) that produced each node. The n-th node of a kind takes the
n-th occurrence of its keyword, in id order. Queries that repeat the same
keyword or table name in an order different from the processing order get
wrong lines, so every range is reported as Guessed.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from sqlflow_analyzer.models.flow import IMPLICIT_JOIN_DESCRIPTION, FlowNode, NodeKind
from sqlflow_analyzer.models.resolution import Guessed

_KEYWORDS: dict[str, str] = {
    "WHERE": r"\bWHERE\b",
    "HAVING": r"\bHAVING\b",
    "QUALIFY": r"\bQUALIFY\b",
    "GROUP BY": r"\bGROUP\s+BY\b",
    "ORDER BY": r"\bORDER\s+BY\b",
    "LIMIT": r"\b(?:LIMIT|FETCH|OFFSET|TOP)\b",
    "SELECT": r"\bSELECT\b",
    "JOIN": r"\bJOIN\b",
    "USING": r"\bUSING\b",
    "MERGE": r"\bMERGE\b",
    "LATERAL": r"\bLATERAL\b",
    "SET_OPERATION": r"\b(?:UNION|INTERSECT|EXCEPT)\b",
    "SUBQUERY": r"\(\s*(?:SELECT|WITH)\b",
}


def node_id_order(node: FlowNode) -> int:
    """Issue order of a node id such as ``"join_7"``."""
    suffix = node.id.rsplit("_", 1)[-1]
    return int(suffix) if suffix.isdigit() else 0


class LineLocator:
    """Finds keyword and name occurrences in statement text.

    Attributes:
        sql: Statement text.
        first_line: Line number of the first line of ``sql`` in its file.

    Example:
        >>> locator = LineLocator("SELECT id\\nFROM users\\nWHERE id > 1")
        >>> locator.next_line("WHERE")
        3
        >>> locator.next_name("users")
        2
    """

    def __init__(self, sql: str, first_line: int = 1) -> None:
        self.sql = sql or ""
        self.first_line = first_line
        self._used: dict[str, int] = {}

    def line_of(self, offset: int) -> int:
        return self.first_line + self.sql.count("\n", 0, offset)

    def last_line(self) -> int:
        return self.line_of(len(self.sql.rstrip()))

    def first_content_line(self) -> int:
        return self.line_of(len(self.sql) - len(self.sql.lstrip()))

    def next_line(self, keyword: str) -> Optional[int]:
        """Line of the next unused occurrence of a known keyword."""
        return self._next(keyword, _KEYWORDS[keyword])

    def next_name(self, name: str) -> Optional[int]:
        """Line of the next unused occurrence of a table or CTE name.

        Qualified names match as a whole, with optional quoting around each
        part and whitespace around the dots.
        """
        parts = [r"[`\"\[]?" + re.escape(part) + r"[`\"\]]?" for part in name.split(".")]
        pattern = r"(?<![\w.])" + r"\s*\.\s*".join(parts) + r"(?!\w)"
        return self._next("name:" + name.lower(), pattern)

    def _next(self, key: str, pattern: str) -> Optional[int]:
        index = self._used.get(key, 0)
        matches = list(re.finditer(pattern, self.sql, re.IGNORECASE))
        if index >= len(matches):
            return None
        self._used[key] = index + 1
        return self.line_of(matches[index].start())


def _keyword_for(node: FlowNode) -> Optional[str]:
    label = node.label.upper()
    if node.kind == NodeKind.FILTER:
        return label if label in _KEYWORDS else None
    if node.kind == NodeKind.AGGREGATE:
        return "GROUP BY" if label == "GROUP BY" else None
    if node.kind == NodeKind.SORT:
        return "ORDER BY"
    if node.kind == NodeKind.LIMIT:
        return "LIMIT"
    if node.kind in (NodeKind.SELECT, NodeKind.WINDOW):
        return "SELECT"
    if node.kind == NodeKind.UNION:
        return "SET_OPERATION"
    if node.kind == NodeKind.SUBQUERY:
        return "SUBQUERY"
    if node.kind == NodeKind.JOIN:
        if label.endswith(" JOIN") and node.description != IMPLICIT_JOIN_DESCRIPTION:
            return "JOIN"
        if label == "USING":
            return "USING"
        if label == "MERGE ON":
            return "MERGE"
        if label == "LATERAL VIEW":
            return "LATERAL"
    return None


def assign_line_ranges(
    nodes: Iterable[FlowNode], sql: str, first_line: int = 1
) -> dict[str, Guessed]:
    """Set ``line_range`` on every node found in ``sql``, children included.

    Result nodes span the whole statement. Other nodes get ``(line, None)``.

    Args:
        nodes: Top-level nodes of the graph.
        sql: Statement text.
        first_line: Line number of the statement's first line, for
            statements taken from a larger script.

    Returns:
        Node id to ``Guessed((start, end))`` for every node given a range.
    """
    if not sql or not sql.strip():
        return {}

    locator = LineLocator(sql, first_line)
    everything = [node for top in nodes for node in top.walk()]
    ranges: dict[str, Guessed] = {}

    for node in sorted(everything, key=node_id_order):
        line: Optional[int] = None
        end: Optional[int] = None
        if node.kind == NodeKind.RESULT:
            line, end = locator.first_content_line(), locator.last_line()
        elif node.kind in (NodeKind.TABLE, NodeKind.CTE) and (node.table_name or node.label):
            line = locator.next_name(node.table_name or node.label)
        else:
            keyword = _keyword_for(node)
            if keyword is not None:
                line = locator.next_line(keyword)

        if line is not None:
            node.line_range = (line, end)
            ranges[node.id] = Guessed((line, end))
    return ranges
