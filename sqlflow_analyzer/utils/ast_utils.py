"""
AST utility functions for SQL parsing.

This module provides utility functions for working with sqlglot AST objects:
finding clause children, unwrapping query wrappers, naming function calls
and walking expressions without crossing into nested queries.
"""

from typing import Iterator, Optional, Type, TypeVar, Union

from sqlglot import exp

E = TypeVar("E", bound=exp.Expression)

SET_OPERATION_TYPES = (exp.Union, exp.Intersect, exp.Except)
QUERY_TYPES = (exp.Select,) + SET_OPERATION_TYPES
NESTED_QUERY_TYPES = QUERY_TYPES + (exp.Subquery,)

StopTypes = Union[Type[exp.Expression], tuple]


def child_of_type(node: Optional[exp.Expression], cls: Type[E]) -> Optional[E]:
    """Return the first direct child of ``node`` that is an instance of ``cls``.

    Clause lookup by type rather than by argument key keeps the extractors
    independent of sqlglot's argument naming.

    Example:
        >>> ast = sqlglot.parse_one("SELECT id FROM users WHERE id > 1")
        >>> child_of_type(ast, exp.Where) is not None
        True
    """
    if node is None:
        return None
    for child in node.iter_expressions():
        if isinstance(child, cls):
            return child
    return None


def children_of_type(node: Optional[exp.Expression], cls: Type[E]) -> list[E]:
    """Return every direct child of ``node`` that is an instance of ``cls``."""
    if node is None:
        return []
    return [child for child in node.iter_expressions() if isinstance(child, cls)]


def is_query(node: Optional[exp.Expression]) -> bool:
    """Check if ``node`` is a SELECT or a set operation."""
    return isinstance(node, QUERY_TYPES)


def is_set_operation(node: Optional[exp.Expression]) -> bool:
    return isinstance(node, SET_OPERATION_TYPES)


def unwrap_query(node: Optional[exp.Expression]) -> Optional[exp.Expression]:
    """Strip Subquery and Paren wrappers around a query.

    Example:
        >>> unwrap_query(sqlglot.parse_one("(SELECT 1)")).key
        'select'
    """
    while isinstance(node, (exp.Subquery, exp.Paren)) and node.this is not None:
        node = node.this
    return node


def strip_parens(node: Optional[exp.Expression]) -> Optional[exp.Expression]:
    while isinstance(node, exp.Paren):
        node = node.this
    return node


def unalias(node: Optional[exp.Expression]) -> Optional[exp.Expression]:
    """Return the expression under an Alias, or ``node`` itself."""
    if isinstance(node, exp.Alias):
        return node.this
    return node


def output_alias(node: Optional[exp.Expression]) -> Optional[str]:
    """Return the alias of a projection, or None."""
    if isinstance(node, exp.Alias) and node.alias:
        return node.alias
    return None


def function_name(node: Optional[exp.Expression]) -> Optional[str]:
    """Return the uppercase SQL name of a function call, or None.

    Known functions report their canonical SQL name (``exp.Count`` ->
    "COUNT"); unknown functions report the name written in the query.

    Example:
        >>> function_name(sqlglot.parse_one("SELECT COUNT(*)").expressions[0])
        'COUNT'
        >>> function_name(sqlglot.parse_one("SELECT my_udf(x)").expressions[0])
        'MY_UDF'
    """
    if isinstance(node, exp.Anonymous):
        name = node.name
        return name.upper() if name else None
    if isinstance(node, exp.Func):
        return node.sql_name().upper()
    return None


def function_arguments(node: exp.Expression) -> list[exp.Expression]:
    """Return the argument expressions of a function call, in order."""
    if isinstance(node, exp.Anonymous):
        return list(node.expressions)
    arguments: list[exp.Expression] = []
    for child in node.iter_expressions():
        if isinstance(child, exp.Distinct):
            arguments.extend(child.expressions)
        else:
            arguments.append(child)
    return arguments


def qualified_table_name(table: exp.Table) -> str:
    """Return ``catalog.db.name`` of a table reference, skipping empty parts.

    Example:
        >>> table = sqlglot.parse_one("SELECT 1 FROM prod.public.orders").find(exp.Table)
        >>> qualified_table_name(table)
        'prod.public.orders'
    """
    parts = [part for part in (table.catalog, table.db, table.name) if part]
    return ".".join(parts)


def walk_outside(
    node: Optional[exp.Expression], stop: StopTypes = NESTED_QUERY_TYPES
) -> Iterator[exp.Expression]:
    """Depth-first, pre-order walk that does not enter ``stop`` nodes.

    A ``stop`` node is neither yielded nor entered, including ``node``
    itself.
    """
    if node is None or isinstance(node, stop):
        return
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        children = [
            child for child in current.iter_expressions() if not isinstance(child, stop)
        ]
        stack.extend(reversed(children))


def find_nested_queries(node: Optional[exp.Expression]) -> list[exp.Expression]:
    """Return the outermost queries nested inside ``node``.

    Each result is a Subquery or a bare query; queries nested inside those
    are not returned.
    """
    found: list[exp.Expression] = []
    if node is None:
        return found
    stack = list(reversed(list(node.iter_expressions())))
    while stack:
        current = stack.pop()
        if isinstance(current, NESTED_QUERY_TYPES):
            found.append(current)
            continue
        stack.extend(reversed(list(current.iter_expressions())))
    return found


def render(node: Optional[exp.Expression], dialect: Optional[str] = None) -> str:
    """Render ``node`` as SQL text in ``dialect``."""
    if node is None:
        return ""
    return node.sql(dialect=dialect)
