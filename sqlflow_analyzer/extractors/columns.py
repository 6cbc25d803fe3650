"""
Column extraction.

This module builds ColumnInfo descriptors from the projection list of a
query. Names and transformation types are derived from the structural shape
of each projected expression, so extraction never fails: unknown shapes are
named ``"expr"`` and classified as calculated.
"""

import json
from typing import Iterable, Optional, Union

from sqlglot import exp

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.models.column import ColumnInfo, TransformationType
from sqlflow_analyzer.models.config import ExpressionFormat
from sqlflow_analyzer.utils.ast_utils import (
    NESTED_QUERY_TYPES,
    function_name,
    output_alias,
    render,
    strip_parens,
    unalias,
    walk_outside,
)

FALLBACK_NAME = "expr"

_SIMPLE_SHAPES = (exp.Column, exp.Literal, exp.Star, exp.Null, exp.Boolean)


def extract_column_infos(
    columns: Union[None, exp.Expression, Iterable[exp.Expression]],
    dialect: Optional[str] = None,
    classifier: Optional[FunctionClassifier] = None,
    expression_format: ExpressionFormat = ExpressionFormat.SQL,
) -> list[ColumnInfo]:
    """Build one ColumnInfo per projected expression.

    Args:
        columns: Projection list of a query. None or a bare ``*`` yields
            an empty list.
        dialect: sqlglot dialect used to render expressions.
        classifier: Function classifier deciding what is an aggregate.
        expression_format: SQL text or JSON rendering of each expression.

    Returns:
        List of ColumnInfo, one per entry in ``columns``.

    Example:
        >>> ast = sqlglot.parse_one("SELECT u.id AS user_id, COUNT(*) AS n FROM users u")
        >>> [(c.name, c.transformation_type.value) for c in extract_column_infos(ast.expressions)]
        [('user_id', 'renamed'), ('n', 'aggregated')]
    """
    if columns is None or isinstance(columns, exp.Star):
        return []
    if isinstance(columns, exp.Expression):
        columns = [columns]
    classifier = classifier or FunctionClassifier()
    return [
        column_info(column, dialect, classifier, expression_format) for column in columns
    ]


def column_info(
    column: exp.Expression,
    dialect: Optional[str],
    classifier: FunctionClassifier,
    expression_format: ExpressionFormat = ExpressionFormat.SQL,
) -> ColumnInfo:
    """Build the ColumnInfo of a single projected expression."""
    alias = output_alias(column)
    inner = strip_parens(unalias(column))

    source = inner
    if isinstance(source, (exp.Cast, exp.TryCast)):
        source = strip_parens(source.this)

    source_column = None
    source_table = None
    if isinstance(source, exp.Column) and not isinstance(source.this, exp.Star):
        source_column = source.name or None
        source_table = source.table or None

    aggregate = contains_aggregate(inner, classifier)
    window = contains_window(inner)

    return ColumnInfo(
        name=column_name(column),
        expression=format_expression(inner, dialect, expression_format),
        source_column=source_column,
        source_table=source_table,
        is_aggregate=aggregate,
        is_window_func=window,
        transformation_type=_classify(alias, inner, aggregate, window),
    )


def column_name(column: Optional[exp.Expression]) -> str:
    """Derive the output name of a projected expression.

    Priority: explicit alias, column reference name, function name,
    literal value, then ``"expr"``.

    Example:
        >>> column_name(sqlglot.parse_one("SELECT UPPER(name)").expressions[0])
        'UPPER'
    """
    alias = output_alias(column)
    if alias:
        return alias
    inner = strip_parens(unalias(column))
    if isinstance(inner, exp.Column):
        return "*" if isinstance(inner.this, exp.Star) else (inner.name or FALLBACK_NAME)
    if isinstance(inner, exp.Star):
        return "*"
    if isinstance(inner, exp.Func):
        return function_name(inner) or FALLBACK_NAME
    if isinstance(inner, exp.Literal):
        return str(inner.this)
    return FALLBACK_NAME


def format_expression(
    node: Optional[exp.Expression],
    dialect: Optional[str] = None,
    expression_format: ExpressionFormat = ExpressionFormat.SQL,
) -> str:
    """Render an expression as SQL text or as a JSON expression tree."""
    if node is None:
        return ""
    if expression_format == ExpressionFormat.JSON:
        return json.dumps(node.dump(), ensure_ascii=False)
    return render(node, dialect)


def is_aggregate_call(node: exp.Expression, classifier: FunctionClassifier) -> bool:
    """Check if ``node`` is an aggregate function call."""
    if isinstance(node, exp.AggFunc):
        return True
    return isinstance(node, exp.Func) and classifier.is_aggregate(function_name(node))


def contains_aggregate(node: Optional[exp.Expression], classifier: FunctionClassifier) -> bool:
    """Check for an aggregate call outside window specs and nested queries.

    ``SUM(x) OVER (...)`` is a window function, not an aggregation.
    """
    stop = NESTED_QUERY_TYPES + (exp.Window,)
    return any(is_aggregate_call(child, classifier) for child in walk_outside(node, stop))


def contains_window(node: Optional[exp.Expression]) -> bool:
    return any(isinstance(child, exp.Window) for child in walk_outside(node))


def _classify(
    alias: Optional[str],
    inner: Optional[exp.Expression],
    aggregate: bool,
    window: bool,
) -> TransformationType:
    if alias and isinstance(inner, exp.Column):
        return TransformationType.RENAMED
    if aggregate:
        return TransformationType.AGGREGATED
    if window:
        return TransformationType.CALCULATED
    if inner is None or isinstance(inner, _SIMPLE_SHAPES):
        return TransformationType.PASSTHROUGH
    return TransformationType.CALCULATED
