"""
Table reference extraction.

Resolves FROM items to display names and detects table-valued function
invocations. FROM items come in many shapes (plain tables, aliased
subqueries, LATERAL calls, UNNEST, ``TABLE(...)`` wrappers); every function
here answers with a placeholder or None instead of raising.
"""

from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.dialects.classifier import FunctionClassifier
from sqlflow_analyzer.utils.ast_utils import function_arguments, function_name, qualified_table_name

PLACEHOLDER_TABLE = "table"

# Table-valued function node types sqlglot parses into dedicated classes.
_TABLE_FUNCTION_TYPES = (exp.Unnest, exp.Explode)


def get_table_name(from_item: Optional[exp.Expression]) -> str:
    """Resolve a FROM item to a display name.

    Preference order: explicit table name, then alias, then the
    placeholder ``"table"``.

    Example:
        >>> get_table_name(sqlglot.parse_one("SELECT 1 FROM sales.orders o").find(exp.Table))
        'sales.orders'
        >>> get_table_name(sqlglot.parse_one("SELECT 1 FROM (SELECT 1) AS d").find(exp.From).this)
        'd'
    """
    if isinstance(from_item, exp.Table):
        name = qualified_table_name(from_item)
        if name:
            return name
    alias = get_table_alias(from_item)
    return alias or PLACEHOLDER_TABLE


def get_table_alias(from_item: Optional[exp.Expression]) -> Optional[str]:
    """Return the alias of a FROM item, or None."""
    if from_item is None:
        return None
    alias = from_item.alias
    return alias or None


def get_table_valued_function_name(
    from_item: Optional[exp.Expression],
    classifier: Optional[FunctionClassifier] = None,
) -> Optional[str]:
    """Return the function name when a FROM item invokes a table-valued function.

    Recognized shapes: ``LATERAL fn(...)``, a table whose body is a
    function call, ``UNNEST``/``EXPLODE``, and one level of ``TABLE(fn(...))``
    wrapping around a function the classifier knows as table-valued.

    Returns:
        Uppercase function name, or None for anything else.

    Example:
        >>> ast = sqlglot.parse_one("SELECT * FROM UNNEST([1, 2]) AS x", read="bigquery")
        >>> get_table_valued_function_name(ast.find(exp.From).this)
        'UNNEST'
    """
    if from_item is None:
        return None
    classifier = classifier or FunctionClassifier()

    node = from_item
    if isinstance(node, exp.Lateral):
        node = node.this
    if isinstance(node, exp.Table):
        if not isinstance(node.this, exp.Func):
            return None
        node = node.this

    if isinstance(node, _TABLE_FUNCTION_TYPES):
        return function_name(node) or type(node).__name__.upper()
    if not isinstance(node, exp.Func):
        return None

    name = function_name(node)
    if name == "TABLE":
        for argument in function_arguments(node):
            inner = function_name(argument)
            if inner and classifier.is_table_valued(inner):
                return inner
    return name


def extract_tables_from_statement(ast: Optional[exp.Expression]) -> list[str]:
    """Return every physical table referenced by a statement.

    CTE names, table-valued functions and the placeholder name are left
    out. Names are de-duplicated, keeping first-seen order.

    Example:
        >>> sql = "WITH c AS (SELECT * FROM a) SELECT * FROM c JOIN b ON c.id = b.id"
        >>> sorted(extract_tables_from_statement(sqlglot.parse_one(sql)))
        ['a', 'b']
    """
    if ast is None:
        return []
    cte_names = {cte.alias_or_name.lower() for cte in ast.find_all(exp.CTE)}

    tables: list[str] = []
    seen: set[str] = set()
    for table in ast.find_all(exp.Table, bfs=False):
        if isinstance(table.this, exp.Func):
            continue
        name = qualified_table_name(table)
        if not name or name == PLACEHOLDER_TABLE:
            continue
        if not table.db and name.lower() in cte_names:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        tables.append(name)
    return tables
