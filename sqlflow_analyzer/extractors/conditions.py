"""
Condition extraction.

Renders WHERE / HAVING / ON predicates as short readable strings such as
``"a.id = b.id"``. Unknown operand shapes render as ``"?"``; nothing here
raises on unexpected input.
"""

from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.utils.ast_utils import (
    NESTED_QUERY_TYPES,
    function_arguments,
    function_name,
    strip_parens,
)

UNKNOWN_OPERAND = "?"
MAX_OPERAND_DEPTH = 6

_OPERATORS: dict[type, str] = {
    exp.EQ: "=",
    exp.NEQ: "!=",
    exp.GT: ">",
    exp.GTE: ">=",
    exp.LT: "<",
    exp.LTE: "<=",
    exp.NullSafeEQ: "<=>",
    exp.Like: "LIKE",
    exp.ILike: "ILIKE",
    exp.Is: "IS",
    exp.Add: "+",
    exp.Sub: "-",
    exp.Mul: "*",
    exp.Div: "/",
    exp.Mod: "%",
    exp.DPipe: "||",
    exp.BitwiseAnd: "&",
    exp.BitwiseOr: "|",
    exp.BitwiseXor: "^",
}

_NEGATED = {exp.In: "NOT IN", exp.Like: "NOT LIKE", exp.ILike: "NOT ILIKE", exp.Between: "NOT BETWEEN"}


def extract_conditions(
    clause: Optional[exp.Expression], max_conditions: int = 5, max_depth: int = 3
) -> list[str]:
    """Split a predicate on AND/OR and render each leaf.

    Args:
        clause: A Where/Having node, or a bare predicate.
        max_conditions: Maximum number of conditions returned.
        max_depth: AND/OR nesting levels that are split; deeper
            sub-predicates are rendered whole.

    Returns:
        Rendered conditions, in source order.

    Example:
        >>> where = sqlglot.parse_one("SELECT 1 FROM t WHERE a = 1 AND b > 2").find(exp.Where)
        >>> extract_conditions(where)
        ['a = 1', 'b > 2']
    """
    if clause is None:
        return []
    predicate = clause.this if isinstance(clause, (exp.Where, exp.Having, exp.Qualify)) else clause
    conditions: list[str] = []
    _collect(predicate, 0, max_depth, conditions)
    return conditions[:max_conditions]


def _collect(node: Optional[exp.Expression], depth: int, max_depth: int, out: list[str]) -> None:
    node = strip_parens(node)
    if node is None:
        return
    if isinstance(node, exp.Connector) and depth < max_depth:
        _collect(node.left, depth + 1, max_depth, out)
        _collect(node.right, depth + 1, max_depth, out)
        return
    text = format_condition(node)
    if text:
        out.append(text)


def format_condition(node: Optional[exp.Expression]) -> Optional[str]:
    """Render one predicate as ``"<left> <op> <right>"``.

    Returns:
        The rendered predicate, or None for an empty input.

    Example:
        >>> on = sqlglot.parse_one("SELECT 1 FROM a JOIN b ON a.id = b.id").find(exp.Join)
        >>> format_condition(on.args["on"])
        'a.id = b.id'
    """
    node = strip_parens(node)
    if node is None:
        return None

    if isinstance(node, exp.Connector):
        keyword = "AND" if isinstance(node, exp.And) else "OR"
        return f"{format_condition(node.left)} {keyword} {format_condition(node.right)}"

    if isinstance(node, exp.Not):
        inner = strip_parens(node.this)
        if isinstance(inner, exp.Is):
            return f"{format_operand(inner.this)} IS NOT {format_operand(inner.expression)}"
        if isinstance(inner, exp.Exists):
            return "NOT EXISTS (subquery)"
        negated = _NEGATED.get(type(inner))
        if negated:
            rendered = format_condition(inner)
            positive = negated[len("NOT "):]
            return rendered.replace(f" {positive} ", f" {negated} ", 1)
        return f"NOT {format_condition(inner)}"

    if isinstance(node, exp.In):
        if node.args.get("query") is not None:
            right = "(subquery)"
        else:
            right = "(" + ", ".join(format_operand(e) for e in node.expressions) + ")"
        return f"{format_operand(node.this)} IN {right}"

    if isinstance(node, exp.Between):
        low = format_operand(node.args.get("low"))
        high = format_operand(node.args.get("high"))
        return f"{format_operand(node.this)} BETWEEN {low} AND {high}"

    if isinstance(node, exp.Exists):
        return "EXISTS (subquery)"

    operator = _OPERATORS.get(type(node))
    if operator and isinstance(node, exp.Binary):
        return f"{format_operand(node.left)} {operator} {format_operand(node.right)}"

    return format_operand(node)


def format_operand(node: Optional[exp.Expression], depth: int = 0) -> str:
    """Render one operand: column, literal, function call, list or expression.

    Example:
        >>> format_operand(exp.column("id", table="u"))
        'u.id'
        >>> format_operand(exp.Literal.string("active"))
        'active'
    """
    if node is None or depth > MAX_OPERAND_DEPTH:
        return UNKNOWN_OPERAND
    next_depth = depth + 1

    if isinstance(node, exp.Column):
        name = "*" if isinstance(node.this, exp.Star) else node.name
        return f"{node.table}.{name}" if node.table else name
    if isinstance(node, exp.Star):
        return "*"
    if isinstance(node, exp.Literal):
        return str(node.this)
    if isinstance(node, exp.Null):
        return "NULL"
    if isinstance(node, exp.Boolean):
        return "TRUE" if node.this else "FALSE"
    if isinstance(node, exp.Paren):
        return f"({format_operand(node.this, next_depth)})"
    if isinstance(node, exp.Neg):
        return f"-{format_operand(node.this, next_depth)}"
    if isinstance(node, exp.Not):
        return f"NOT {format_operand(node.this, next_depth)}"
    if isinstance(node, (exp.Tuple, exp.Array)):
        return "(" + ", ".join(format_operand(e, next_depth) for e in node.expressions) + ")"
    if isinstance(node, NESTED_QUERY_TYPES):
        return "(subquery)"
    if isinstance(node, exp.Distinct):
        return "DISTINCT " + ", ".join(format_operand(e, next_depth) for e in node.expressions)
    if isinstance(node, (exp.Cast, exp.TryCast)):
        target = node.args.get("to")
        type_name = target.sql() if target is not None else UNKNOWN_OPERAND
        return f"CAST({format_operand(node.this, next_depth)} AS {type_name})"
    if isinstance(node, exp.Case):
        return node.sql()
    if isinstance(node, exp.Var):
        return node.name
    if isinstance(node, exp.Placeholder):
        return UNKNOWN_OPERAND
    if isinstance(node, exp.Binary):
        operator = _OPERATORS.get(type(node))
        if operator:
            left = format_operand(node.left, next_depth)
            right = format_operand(node.right, next_depth)
            return f"{left} {operator} {right}"
        return UNKNOWN_OPERAND
    if isinstance(node, exp.Func):
        name = function_name(node) or UNKNOWN_OPERAND
        arguments = ", ".join(format_operand(arg, next_depth) for arg in function_arguments(node))
        if isinstance(node.this, exp.Distinct):
            arguments = f"DISTINCT {arguments}"
        return f"{name}({arguments})"
    return UNKNOWN_OPERAND
