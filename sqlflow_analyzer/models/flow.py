"""
Flow graph model.

This module defines the nodes and edges of the flow graph: FlowNode, a
logical relational operation, and FlowEdge, the data flow between two
operations. It also defines the kind-specific payloads attached to
projection and aggregation nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from sqlflow_analyzer.models.column import ColumnInfo
from sqlflow_analyzer.models.resolution import NameResolution, Resolved


IMPLICIT_JOIN_DESCRIPTION = "Implicit cross join (comma-separated FROM)"


class NodeKind(str, Enum):
    """Tagged variant of a flow node."""

    TABLE = "table"
    FILTER = "filter"
    JOIN = "join"
    AGGREGATE = "aggregate"
    SORT = "sort"
    LIMIT = "limit"
    SELECT = "select"
    RESULT = "result"
    CTE = "cte"
    UNION = "union"
    SUBQUERY = "subquery"
    WINDOW = "window"
    CASE = "case"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all node kind values."""
        return [member.value for member in cls]


class AccessMode(str, Enum):
    """How a table node is accessed."""

    READ = "read"
    WRITE = "write"
    DERIVED = "derived"


class OperationType(str, Enum):
    """Statement operation a node belongs to."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MERGE = "merge"
    CREATE_TABLE_AS = "create_table_as"
    CREATE_VIEW = "create_view"


class TableCategory(str, Enum):
    """Where the rows of a table node come from."""

    PHYSICAL = "physical"
    DERIVED = "derived"
    CTE_REFERENCE = "cte_reference"
    TABLE_FUNCTION = "table_function"


class ComplexityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WarningType(str, Enum):
    """Kinds of per-node warnings."""

    UNUSED = "unused"
    FAN_OUT = "fan_out"
    COMPLEX = "complex"
    CARTESIAN = "cartesian"
    NO_FILTER = "no_filter"
    DEAD_COLUMN = "dead_column"


@dataclass
class NodeWarning:
    """Warning attached to a single node.

    Attributes:
        type: Kind of warning.
        severity: "high", "medium" or "low".
        message: Human-readable message.
    """

    type: WarningType
    severity: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "severity": self.severity, "message": self.message}


@dataclass
class WindowFunctionDetail:
    """One window function call found in a projection.

    Attributes:
        name: Function name, e.g. "ROW_NUMBER".
        resolution: ``Resolved`` when the name came from the AST,
            ``Guessed`` when it was recovered heuristically.
        partition_by: Rendered PARTITION BY expressions.
        order_by: Rendered ORDER BY items, "col ASC" / "col DESC".
        frame: Rendered frame clause, if any.
        alias: Output alias of the column, if any.
    """

    name: str
    resolution: NameResolution = field(default_factory=lambda: Resolved(""))
    partition_by: list[str] = field(default_factory=list)
    order_by: list[str] = field(default_factory=list)
    frame: Optional[str] = None
    alias: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "name_guessed": self.resolution.is_guess,
            "partition_by": list(self.partition_by),
            "order_by": list(self.order_by),
            "frame": self.frame,
            "alias": self.alias,
        }


@dataclass
class WindowDetails:
    functions: list[WindowFunctionDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"functions": [f.to_dict() for f in self.functions]}


@dataclass
class AggregateFunctionDetail:
    """One aggregate function call found in a projection.

    Attributes:
        name: Function name, e.g. "COUNT".
        expression: Rendered call, e.g. "COUNT(*)".
        arguments: Rendered arguments.
        distinct: True for ``COUNT(DISTINCT x)`` style calls.
        alias: Output alias when the call is the whole projected column.
        source_column: Column argument, when the call has exactly one.
        source_table: Qualifier of ``source_column``.
    """

    name: str
    expression: str
    arguments: list[str] = field(default_factory=list)
    distinct: bool = False
    alias: Optional[str] = None
    source_column: Optional[str] = None
    source_table: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "expression": self.expression,
            "arguments": list(self.arguments),
            "distinct": self.distinct,
            "alias": self.alias,
            "source_column": self.source_column,
            "source_table": self.source_table,
        }


@dataclass
class AggregateDetails:
    functions: list[AggregateFunctionDetail] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "functions": [f.to_dict() for f in self.functions],
            "group_by": list(self.group_by),
        }


@dataclass
class CaseBranch:
    when: str
    then: str


@dataclass
class CaseDetail:
    """One CASE expression: its WHEN/THEN arms, ELSE value and alias."""

    conditions: list[CaseBranch] = field(default_factory=list)
    else_value: Optional[str] = None
    alias: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "conditions": [{"when": b.when, "then": b.then} for b in self.conditions],
            "else_value": self.else_value,
            "alias": self.alias,
        }


@dataclass
class CaseDetails:
    cases: list[CaseDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"cases": [c.to_dict() for c in self.cases]}


@dataclass
class FlowEdge:
    """Directed data flow between two nodes.

    Attributes:
        id: Unique edge id.
        source: Upstream node id.
        target: Downstream node id.
        label: Optional display label.
        sql_clause: Text of the clause that produced the edge, e.g. the
            join condition.
        clause_type: Clause kind, e.g. "join", "cte_reference", "flow".
        line_range: Best-effort ``(start, end)`` source lines.
    """

    id: str
    source: str
    target: str
    label: Optional[str] = None
    sql_clause: Optional[str] = None
    clause_type: Optional[str] = None
    line_range: Optional[tuple[int, Optional[int]]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "sql_clause": self.sql_clause,
            "clause_type": self.clause_type,
            "line_range": list(self.line_range) if self.line_range else None,
        }


@dataclass
class FlowNode:
    """A logical operation in the flow graph.

    Container kinds (CTE, SUBQUERY) hold their own operator chain in
    ``children`` / ``child_edges``. That sub-graph is self-consistent: every
    child edge references child node ids only.

    Attributes:
        id: Unique id within one parse, e.g. "table_0".
        kind: Node variant.
        label: Short display text ("users", "INNER JOIN", "WHERE").
        description: Longer display text.
        x, y, width, height: Geometry, populated by layout.
        children: Nested sub-graph nodes of a container.
        child_edges: Nested sub-graph edges of a container.
        access_mode: Read/Write/Derived, table-like nodes only.
        operation_type: Statement operation the node belongs to.
        table_category: Physical/Derived/CteReference/TableFunction.
        line_range: Best-effort ``(start, end)`` source lines.
        warnings: Node-level warnings.
        complexity_level: Low/Medium/High.
        columns: Projected columns, projection nodes only.
        conditions: Rendered conditions, filter and join nodes.
        table_name: Underlying table or CTE name.
        cte_depth: Nesting depth of a CTE definition, CTE nodes only.
        window_details: Window function payload.
        aggregate_details: Aggregate payload.
        case_details: CASE expression payload.

    Example:
        >>> node = FlowNode(id="table_0", kind=NodeKind.TABLE, label="users")
        >>> node.is_container
        False
    """

    id: str
    kind: NodeKind
    label: str
    description: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    children: list[FlowNode] = field(default_factory=list)
    child_edges: list[FlowEdge] = field(default_factory=list)
    access_mode: Optional[AccessMode] = None
    operation_type: Optional[OperationType] = None
    table_category: Optional[TableCategory] = None
    line_range: Optional[tuple[int, Optional[int]]] = None
    warnings: list[NodeWarning] = field(default_factory=list)
    complexity_level: Optional[ComplexityLevel] = None
    columns: list[ColumnInfo] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)
    table_name: Optional[str] = None
    cte_depth: Optional[int] = None
    window_details: Optional[WindowDetails] = None
    aggregate_details: Optional[AggregateDetails] = None
    case_details: Optional[CaseDetails] = None

    @property
    def is_container(self) -> bool:
        return self.kind in (NodeKind.CTE, NodeKind.SUBQUERY)

    def walk(self) -> Iterator[FlowNode]:
        """Yield this node and, depth first, every nested child node."""
        yield self
        for child in self.children:
            yield from child.walk()

    def add_warning(self, type: WarningType, severity: str, message: str) -> None:
        self.warnings.append(NodeWarning(type=type, severity=severity, message=message))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary, children included."""
        data: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "description": self.description,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
            data["child_edges"] = [edge.to_dict() for edge in self.child_edges]
        for key in ("access_mode", "operation_type", "table_category", "complexity_level"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value.value
        if self.line_range:
            data["line_range"] = list(self.line_range)
        if self.warnings:
            data["warnings"] = [w.to_dict() for w in self.warnings]
        if self.columns:
            data["columns"] = [c.to_dict() for c in self.columns]
        if self.conditions:
            data["conditions"] = list(self.conditions)
        if self.table_name:
            data["table_name"] = self.table_name
        if self.cte_depth is not None:
            data["cte_depth"] = self.cte_depth
        if self.window_details:
            data["window_details"] = self.window_details.to_dict()
        if self.aggregate_details:
            data["aggregate_details"] = self.aggregate_details.to_dict()
        if self.case_details:
            data["case_details"] = self.case_details.to_dict()
        return data
