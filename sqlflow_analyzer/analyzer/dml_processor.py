"""
Data modification statement processing.

This module defines the DmlProcessor class, which builds the flow graphs of
INSERT, UPDATE, DELETE, MERGE and CREATE ... AS SELECT statements on top of
the query pipeline of the StatementProcessor. Every graph ends in a Write
table node (or a Write result for CREATE) followed by a Result node.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.graph_builder import GraphBuilder, QueryOutput, Scope, Upstream
from sqlflow_analyzer.exceptions import UnsupportedStatementError
from sqlflow_analyzer.extractors.conditions import extract_conditions, format_condition
from sqlflow_analyzer.extractors.tables import get_table_name
from sqlflow_analyzer.models.classified_statement import ClassifiedStatement
from sqlflow_analyzer.models.config import ErrorMode
from sqlflow_analyzer.models.flow import (
    AccessMode,
    FlowNode,
    NodeKind,
    OperationType,
    TableCategory,
)
from sqlflow_analyzer.models.statement_type import StatementType
from sqlflow_analyzer.models.stats import HintCategory, HintKind, HintSeverity
from sqlflow_analyzer.utils.ast_utils import child_of_type, render

if TYPE_CHECKING:
    from sqlflow_analyzer.analyzer.statement_processor import StatementProcessor

logger = logging.getLogger(__name__)

_OPERATIONS = {
    StatementType.INSERT: OperationType.INSERT,
    StatementType.UPDATE: OperationType.UPDATE,
    StatementType.DELETE: OperationType.DELETE,
    StatementType.MERGE: OperationType.MERGE,
    StatementType.CREATE_TABLE_AS: OperationType.CREATE_TABLE_AS,
    StatementType.CREATE_VIEW: OperationType.CREATE_VIEW,
}


class DmlProcessor:
    """Builds flow graphs for statements that write data.

    Attributes:
        statements: The StatementProcessor whose query pipeline is reused.
        context: Shared parse context.
    """

    def __init__(self, statements: StatementProcessor) -> None:
        self.statements = statements
        self.context = statements.context

    def process(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """Dispatch a non-SELECT statement.

        Returns:
            The output of the statement's query part, if it has one.

        Raises:
            UnsupportedStatementError: For statements without a flow graph
                when ``on_unsupported`` is ``fail``.
        """
        handlers = {
            StatementType.INSERT: self.process_insert,
            StatementType.UPDATE: self.process_update,
            StatementType.DELETE: self.process_delete,
            StatementType.MERGE: self.process_merge,
        }
        statement_type = classified.statement_type
        if statement_type.creates_object():
            handler = self.process_create
        else:
            handler = handlers.get(statement_type)
        if handler is None:
            return self.process_unsupported(classified, builder)

        self.statements.operation = _OPERATIONS[statement_type]
        return handler(classified, builder)

    def process_insert(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """INSERT: query (or VALUES) -> Write table -> Result."""
        ast = classified.ast
        scope = self.statements.process_with(ast, builder, Scope())

        output = None
        upstream = None
        if classified.query_ast is not None:
            output = self.statements.process_query(classified.query_ast, builder, scope, nested=True)
            if output is not None:
                upstream = Upstream(output.terminal_id)
        elif ast.args.get("expression") is not None:
            values = self.statements.values_node(ast.args["expression"], builder)
            upstream = Upstream(values.id)

        description = None
        if isinstance(ast.this, exp.Schema):
            columns = [render(column, self.statements.dialect) for column in ast.this.expressions]
            description = "columns: " + ", ".join(columns)

        write = self._table_node(
            self._target(classified), builder, AccessMode.WRITE, description=description
        )
        builder.link(upstream, write.id, clause_type="insert")
        self.statements.add_result(builder, Upstream(write.id))
        return output

    def process_update(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """UPDATE: FROM sources -> WHERE -> Write target -> Result.

        A plain UPDATE reads nothing but its own rows, so its graph is the
        Write target alone (after the WHERE filter, if any). The target is
        a Read input only when it is joined to other tables.
        """
        ast = classified.ast
        statements = self.statements
        scope = statements.process_with(ast, builder, Scope())
        target = ast.this

        running, _ = statements.process_from(ast, builder, scope)
        joins = target.args.get("joins") if target is not None else None
        if joins:
            item = statements.process_from_item(target, builder, scope)
            joined_target = item.upstream
            for join in joins:
                joined = statements.process_from_item(join.this, builder, scope)
                joined_target = statements.join(joined_target, joined, join, builder)
            running = (
                self._join_node("FROM", running, joined_target, builder)
                if running
                else joined_target
            )

        where = child_of_type(ast, exp.Where)
        if where is not None:
            running = statements.add_filter(where, "WHERE", builder, scope, running, count=True)

        assignments = [render(e, statements.dialect) for e in ast.expressions]
        write = self._table_node(
            self._target(classified),
            builder,
            AccessMode.WRITE,
            description="SET " + ", ".join(assignments) if assignments else None,
            track=not joins,
        )
        builder.link(running, write.id, clause_type="update")
        statements.add_result(builder, Upstream(write.id))
        return None

    def process_delete(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """DELETE: USING sources -> WHERE -> Write target -> Result."""
        ast = classified.ast
        statements = self.statements
        scope = statements.process_with(ast, builder, Scope())

        running: Optional[Upstream] = None
        using = ast.args.get("using") or []
        if isinstance(using, exp.Expression):
            using = [using]
        for source in using:
            item = statements.process_from_item(source, builder, scope)
            running = (
                self._join_node("USING", running, item.upstream, builder)
                if running
                else item.upstream
            )

        where = child_of_type(ast, exp.Where)
        if where is not None:
            running = statements.add_filter(where, "WHERE", builder, scope, running, count=True)

        write = self._table_node(self._target(classified), builder, AccessMode.WRITE)
        builder.link(running, write.id, clause_type="delete")
        statements.add_result(builder, Upstream(write.id))
        return None

    def process_merge(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """MERGE: USING source + Read target -> Join (MERGE ON) -> Write target -> Result."""
        ast = classified.ast
        statements = self.statements
        scope = statements.process_with(ast, builder, Scope())

        source = statements.process_from_item(ast.args.get("using"), builder, scope)
        target = statements.process_from_item(ast.this, builder, scope)
        running = self._join_node(
            "MERGE ON", target.upstream, source.upstream, builder, ast.args.get("on")
        )

        write = self._table_node(
            self._target(classified),
            builder,
            AccessMode.WRITE,
            description=", ".join(_describe_when(w) for w in _merge_whens(ast)) or None,
        )
        builder.link(running, write.id, clause_type="merge")
        statements.add_result(builder, Upstream(write.id))
        return None

    def process_create(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> Optional[QueryOutput]:
        """CREATE TABLE/VIEW ... AS SELECT: query -> Write result."""
        statements = self.statements
        output = statements.process_query(classified.query_ast, builder, Scope(), nested=True)
        name = self._target(classified)
        prefix = "VIEW" if classified.statement_type == StatementType.CREATE_VIEW else "TABLE"
        statements.add_result(
            builder,
            Upstream(output.terminal_id) if output else None,
            label=f"{prefix} {name}",
            access_mode=AccessMode.WRITE,
            table_name=name,
        )
        self.context.track_table_usage(name)
        return output

    def process_unsupported(
        self, classified: ClassifiedStatement, builder: GraphBuilder
    ) -> None:
        """Handle a statement without a flow graph according to ``on_unsupported``."""
        keyword = classified.metadata.get("keyword") or "UNKNOWN"
        mode = self.context.config.on_unsupported
        logger.debug("Unsupported %s statement, mode %s", keyword, mode.value)

        if mode == ErrorMode.FAIL:
            raise UnsupportedStatementError(keyword)
        if mode == ErrorMode.WARN:
            builder.add_node(
                NodeKind.RESULT,
                keyword,
                description=f"{keyword} statement has no data flow",
            )
            self.context.add_hint(
                HintKind.INFO,
                f"{keyword} statements are not visualized as a data flow",
                HintCategory.OTHER,
                HintSeverity.LOW,
            )
        return None

    # ========== Helpers ==========

    def _target(self, classified: ClassifiedStatement) -> str:
        return classified.target_table or get_table_name(classified.ast.this)

    def _table_node(
        self,
        name: str,
        builder: GraphBuilder,
        access_mode: AccessMode,
        description: Optional[str] = None,
        track: bool = True,
    ) -> FlowNode:
        node = builder.add_node(
            NodeKind.TABLE,
            name,
            description=description,
            table_name=name,
            table_category=TableCategory.PHYSICAL,
            access_mode=access_mode,
            operation_type=self.statements.operation,
        )
        if track:
            self.context.track_table_usage(name)
        return node

    def _join_node(
        self,
        label: str,
        running: Upstream,
        source: Upstream,
        builder: GraphBuilder,
        on: Optional[exp.Expression] = None,
    ) -> Upstream:
        config = self.context.config
        sql_clause = format_condition(on)
        node = builder.add_node(
            NodeKind.JOIN,
            label,
            description=sql_clause,
            conditions=extract_conditions(on, config.max_conditions, config.max_condition_depth),
        )
        builder.link(running, node.id, sql_clause=sql_clause, clause_type="join")
        builder.link(source, node.id, sql_clause=sql_clause, clause_type="join")
        self.context.increment_joins()
        return Upstream(node.id)


def _merge_whens(ast: exp.Expression) -> list[exp.Expression]:
    whens = ast.args.get("whens")
    if isinstance(whens, exp.Expression):
        return list(whens.expressions)
    return [e for e in ast.expressions if isinstance(e, exp.When)]


def _describe_when(when: exp.Expression) -> str:
    """``"WHEN MATCHED THEN UPDATE"``-style summary of one MERGE arm."""
    matched = "MATCHED" if when.args.get("matched") else "NOT MATCHED"
    then = when.args.get("then")
    if isinstance(then, exp.Update):
        action = "UPDATE"
    elif isinstance(then, exp.Insert):
        action = "INSERT"
    elif then is not None:
        action = then.sql().split(" ")[0].upper()
    else:
        action = "?"
    return f"WHEN {matched} THEN {action}"
