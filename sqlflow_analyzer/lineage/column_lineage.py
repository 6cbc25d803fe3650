"""
Column lineage extraction.

This module maps every output column of a statement's top-level
projection to the graph nodes and source columns it is computed from.
Qualified references are resolved through the FROM aliases of the
projection; unqualified references are attributed only when the query has
a single FROM item.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.graph_builder import ProjectionInfo, QueryOutput
from sqlflow_analyzer.models.lineage import ColumnLineage, LineageSource
from sqlflow_analyzer.utils.ast_utils import strip_parens, unalias, walk_outside

logger = logging.getLogger(__name__)

STAR = "*"


def source_references(expression: Optional[exp.Expression]) -> list[tuple[Optional[str], str]]:
    """Column references of a projected expression, in first-seen order.

    References inside nested queries are not included. Duplicates (same
    qualifier and name, case-insensitive) are dropped.

    Returns:
        List of ``(qualifier, column)`` pairs; ``qualifier`` is None for
        unqualified references.

    Example:
        >>> expr = sqlglot.parse_one("SELECT o.amount * o.rate + tax").expressions[0]
        >>> source_references(expr)
        [('o', 'amount'), ('o', 'rate'), (None, 'tax')]
    """
    references: list[tuple[Optional[str], str]] = []
    seen: set[tuple[str, str]] = set()
    for node in walk_outside(unalias(expression)):
        if not isinstance(node, exp.Column) or isinstance(node.this, exp.Star):
            continue
        qualifier = node.table or None
        key = ((qualifier or "").lower(), node.name.lower())
        if node.name and key not in seen:
            seen.add(key)
            references.append((qualifier, node.name))
    return references


def resolve_source_node(qualifier: Optional[str], projection: ProjectionInfo) -> Optional[str]:
    """Id of the FROM item node a column reference reads from.

    Returns:
        The node id, or None when the reference cannot be attributed.
    """
    if qualifier:
        return projection.sources.get(qualifier.lower())
    if len(projection.from_ids) == 1:
        return projection.from_ids[0]
    return None


def is_star(expression: exp.Expression) -> bool:
    inner = strip_parens(unalias(expression))
    if isinstance(inner, exp.Star):
        return True
    return isinstance(inner, exp.Column) and isinstance(inner.this, exp.Star)


def projection_lineage(projection: ProjectionInfo) -> list[ColumnLineage]:
    """Lineage of every column of one projection, in projection order."""
    lineage: list[ColumnLineage] = []
    for expression, column in zip(projection.expressions, projection.columns):
        if is_star(expression):
            qualifier = strip_parens(unalias(expression))
            table = qualifier.table if isinstance(qualifier, exp.Column) else None
            node_ids = (
                [resolve_source_node(table, projection)] if table else projection.from_ids
            )
            sources = [LineageSource(node_id, STAR) for node_id in node_ids if node_id]
            lineage.append(ColumnLineage(column.name, sources))
            continue

        sources = []
        for qualifier, name in source_references(expression):
            node_id = resolve_source_node(qualifier, projection)
            if node_id is not None:
                sources.append(LineageSource(node_id, name))
        lineage.append(ColumnLineage(column.name, sources))
    return lineage


def build_column_lineage(output: Optional[QueryOutput]) -> list[ColumnLineage]:
    """Build the column lineage of a statement's query output.

    Set operation branches are merged by column position; the output
    column takes the name from the first branch.

    Args:
        output: Output of the statement's query part, or None for
            statements without one.

    Returns:
        One ColumnLineage per output column.

    Example:
        >>> lineage = build_column_lineage(processed.output)
        >>> [(l.output_column, l.source_columns()) for l in lineage]
        [('user_id', ['id'])]
    """
    if output is None or not output.projections:
        return []

    branches = [projection_lineage(projection) for projection in output.projections]
    merged = branches[0]
    for branch in branches[1:]:
        for position, entry in enumerate(branch[: len(merged)]):
            merged[position].sources.extend(entry.sources)

    logger.debug("Built lineage for %d output columns", len(merged))
    return merged
