"""
Window, aggregate and CASE detail extraction.

Each extractor walks the projection list of one query and returns the
structured payload attached to Select/Window/Aggregate nodes. Window
function names read from the AST are ``Resolved``; names recovered from
alias text or a scan of the rendered expression are ``Guessed``.
"""

import re
from typing import Iterable, Optional

from sqlglot import exp

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.extractors.columns import is_aggregate_call
from sqlflow_analyzer.extractors.conditions import format_condition, format_operand
from sqlflow_analyzer.models.flow import (
    AggregateFunctionDetail,
    CaseBranch,
    CaseDetail,
    WindowFunctionDetail,
)
from sqlflow_analyzer.models.resolution import Guessed, NameResolution, Resolved
from sqlflow_analyzer.utils.ast_utils import (
    NESTED_QUERY_TYPES,
    function_arguments,
    function_name,
    output_alias,
    render,
    strip_parens,
    unalias,
    walk_outside,
)

UNKNOWN_FUNCTION = "UNKNOWN"

# Alias fragments and the window function they usually stand for. Order matters:
# "dense_rank" must hit DENSE_RANK before RANK.
_ALIAS_HINTS: list[tuple[tuple[str, ...], str]] = [
    (("prev", "lag"), "LAG"),
    (("next", "lead"), "LEAD"),
    (("dense",), "DENSE_RANK"),
    (("rank",), "RANK"),
    (("row_num", "rownum"), "ROW_NUMBER"),
    (("running", "total", "cumulative"), "SUM"),
    (("avg", "average", "moving"), "AVG"),
]

_WRAPPERS = (exp.IgnoreNulls, exp.RespectNulls, exp.WithinGroup)


def extract_window_function_details(
    columns: Optional[Iterable[exp.Expression]],
    classifier: Optional[FunctionClassifier] = None,
    dialect: Optional[str] = None,
) -> list[WindowFunctionDetail]:
    """Extract every window function call in a projection list.

    Example:
        >>> sql = "SELECT ROW_NUMBER() OVER (PARTITION BY d ORDER BY s DESC) AS rn FROM e"
        >>> [detail] = extract_window_function_details(sqlglot.parse_one(sql).expressions)
        >>> detail.name, detail.partition_by, detail.order_by, detail.alias
        ('ROW_NUMBER', ['d'], ['s DESC'], 'rn')
    """
    classifier = classifier or FunctionClassifier()
    details: list[WindowFunctionDetail] = []
    for column in columns or []:
        alias = output_alias(column)
        for node in walk_outside(unalias(column)):
            if not isinstance(node, exp.Window):
                continue
            resolution = resolve_window_name(node, alias, classifier, dialect)
            details.append(
                WindowFunctionDetail(
                    name=resolution.value,
                    resolution=resolution,
                    partition_by=[render(p, dialect) for p in node.args.get("partition_by") or []],
                    order_by=_order_items(node.args.get("order"), dialect),
                    frame=render(node.args["spec"], dialect) if node.args.get("spec") else None,
                    alias=alias,
                )
            )
    return details


def resolve_window_name(
    window: exp.Window,
    alias: Optional[str],
    classifier: FunctionClassifier,
    dialect: Optional[str] = None,
) -> NameResolution:
    """Name the function of a window expression.

    The AST function name wins. Otherwise the alias text is matched
    against common naming patterns, then the rendered expression is
    scanned for a known window function. The last resort is
    ``Guessed("UNKNOWN")``.
    """
    function = window.this
    while isinstance(function, _WRAPPERS):
        function = function.this
    name = function_name(function)
    if name:
        return Resolved(name)

    if alias:
        lowered = alias.lower()
        for fragments, guess in _ALIAS_HINTS:
            if any(fragment in lowered for fragment in fragments):
                return Guessed(guess)

    text = render(window, dialect).upper()
    for candidate in classifier.window_functions():
        if re.search(rf"\b{re.escape(candidate)}\s*\(", text):
            return Guessed(candidate)
    return Guessed(UNKNOWN_FUNCTION)


def _order_items(order: Optional[exp.Expression], dialect: Optional[str]) -> list[str]:
    if order is None:
        return []
    items = []
    for item in order.expressions:
        if isinstance(item, exp.Ordered):
            direction = "DESC" if item.args.get("desc") else "ASC"
            items.append(f"{render(item.this, dialect)} {direction}")
        else:
            items.append(f"{render(item, dialect)} ASC")
    return items


def extract_aggregate_function_details(
    columns: Optional[Iterable[exp.Expression]],
    classifier: Optional[FunctionClassifier] = None,
    dialect: Optional[str] = None,
) -> list[AggregateFunctionDetail]:
    """Extract aggregate calls in a projection list, de-duplicated.

    Calls are keyed by ``(name, expression, source column)``; the first
    alias seen for a key is kept. Aggregates used as window functions
    (``SUM(x) OVER (...)``) are not included.

    Example:
        >>> ast = sqlglot.parse_one("SELECT COUNT(*) AS n, SUM(amount) FROM t")
        >>> [(d.name, d.expression, d.alias) for d in extract_aggregate_function_details(ast.expressions)]
        [('COUNT', 'COUNT(*)', 'n'), ('SUM', 'SUM(amount)', None)]
    """
    classifier = classifier or FunctionClassifier()
    details: list[AggregateFunctionDetail] = []
    by_key: dict[tuple, AggregateFunctionDetail] = {}
    stop = NESTED_QUERY_TYPES + (exp.Window,)

    for column in columns or []:
        alias = output_alias(column)
        inner = strip_parens(unalias(column))
        for node in walk_outside(inner, stop):
            if not is_aggregate_call(node, classifier):
                continue
            detail = _aggregate_detail(node, dialect)
            if node is inner:
                detail.alias = alias
            key = (detail.name, detail.expression, detail.source_column)
            existing = by_key.get(key)
            if existing is None:
                by_key[key] = detail
                details.append(detail)
            elif existing.alias is None:
                existing.alias = detail.alias
    return details


def _aggregate_detail(node: exp.Expression, dialect: Optional[str]) -> AggregateFunctionDetail:
    arguments = function_arguments(node)
    source_column = None
    source_table = None
    if len(arguments) == 1:
        argument = strip_parens(arguments[0])
        if isinstance(argument, exp.Column) and not isinstance(argument.this, exp.Star):
            source_column = argument.name or None
            source_table = argument.table or None
    return AggregateFunctionDetail(
        name=function_name(node) or UNKNOWN_FUNCTION,
        expression=render(node, dialect),
        arguments=[render(argument, dialect) for argument in arguments],
        distinct=isinstance(node.this, exp.Distinct),
        source_column=source_column,
        source_table=source_table,
    )


def extract_case_statement_details(
    columns: Optional[Iterable[exp.Expression]],
) -> list[CaseDetail]:
    """Extract the outermost CASE expressions of a projection list.

    Simple CASE (``CASE x WHEN 1 THEN ...``) arms are rendered as
    ``"x = 1"``.
    """
    details: list[CaseDetail] = []
    for column in columns or []:
        alias = output_alias(column)
        for case in _outer_cases(unalias(column)):
            operand = case.this
            branches = []
            for arm in case.args.get("ifs") or []:
                if operand is not None:
                    when = f"{format_operand(operand)} = {format_operand(arm.this)}"
                else:
                    when = format_condition(arm.this) or "?"
                branches.append(CaseBranch(when=when, then=format_operand(arm.args.get("true"))))
            default = case.args.get("default")
            details.append(
                CaseDetail(
                    conditions=branches,
                    else_value=format_operand(default) if default is not None else None,
                    alias=alias,
                )
            )
    return details


def _outer_cases(node: Optional[exp.Expression]) -> list[exp.Case]:
    cases: list[exp.Case] = []
    if node is None:
        return cases
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, exp.Case):
            cases.append(current)
            continue
        if isinstance(current, NESTED_QUERY_TYPES):
            continue
        stack.extend(reversed(list(current.iter_expressions())))
    return cases
