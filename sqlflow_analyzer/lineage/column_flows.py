"""
Column flow paths.

This module traces each output column of a statement back through the flow
graph and records the path as an ordered list of LineageStep objects, from
the source column to the output column.

The walk follows graph edges from the FROM item a column reads from to the
projection node. It stops at the first table-like node: a container (CTE or
subquery) reached this way is tagged as the source, its inner query is not
entered. Filter, sort and limit nodes keep columns unchanged and are not
recorded as steps.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlglot import exp

from sqlflow_analyzer.analyzer.graph_builder import ProjectionInfo, QueryOutput
from sqlflow_analyzer.graph.flow_graph import FlowGraph
from sqlflow_analyzer.lineage.column_lineage import (
    is_star,
    resolve_source_node,
    source_references,
)
from sqlflow_analyzer.models.column import ColumnInfo, TransformationType
from sqlflow_analyzer.models.flow import FlowEdge, FlowNode, NodeKind
from sqlflow_analyzer.models.lineage import ColumnFlow, LineageStep, LineageTransformation

logger = logging.getLogger(__name__)

_PROJECTION_TRANSFORMATIONS = {
    TransformationType.PASSTHROUGH: LineageTransformation.PASSTHROUGH,
    TransformationType.RENAMED: LineageTransformation.RENAMED,
    TransformationType.AGGREGATED: LineageTransformation.AGGREGATED,
    TransformationType.CALCULATED: LineageTransformation.CALCULATED,
}


class ColumnFlowBuilder:
    """Builds ColumnFlow paths over one graph level.

    Attributes:
        graph: FlowGraph of the level holding the projections.

    Example:
        >>> builder = ColumnFlowBuilder(result.nodes, result.edges)
        >>> [flow.to_string() for flow in builder.build(output)]
        ['users.id → (renamed) user_id']
    """

    def __init__(self, nodes: list[FlowNode], edges: list[FlowEdge]) -> None:
        self.graph = FlowGraph(nodes, edges)

    def build(self, output: Optional[QueryOutput]) -> list[ColumnFlow]:
        """Trace every output column of ``output``.

        Columns without a resolvable source column (literals, ``*``,
        ambiguous unqualified references) produce no flow.
        """
        if output is None:
            return []

        flows: list[ColumnFlow] = []
        output_names = []
        if output.projections:
            output_names = [column.name for column in output.projections[0].columns]
        for projection in output.projections:
            for position, (expression, column) in enumerate(
                zip(projection.expressions, projection.columns)
            ):
                if is_star(expression):
                    continue
                name = output_names[position] if position < len(output_names) else column.name
                flows.extend(self.column_flows(projection, expression, column, name, output))

        logger.debug("Built %d column flows", len(flows))
        return flows

    def column_flows(
        self,
        projection: ProjectionInfo,
        expression: exp.Expression,
        column: ColumnInfo,
        output_name: str,
        output: QueryOutput,
    ) -> list[ColumnFlow]:
        """One flow per source column of a projected expression."""
        paths = []
        for qualifier, source_column in source_references(expression):
            source_id = resolve_source_node(qualifier, projection)
            if source_id is None or source_id not in self.graph:
                continue
            path = self.trace(source_id, source_column, projection.node_id, column)
            if path is None:
                continue
            if output.set_op_id is not None:
                path.extend(
                    self.set_operation_steps(projection.node_id, output.set_op_id, output_name)
                )
            paths.append(path)

        flow_id = f"lineage_{projection.node_id}_{output_name}"
        if len(paths) == 1:
            return [ColumnFlow(id=flow_id, output_column=output_name, lineage_path=paths[0])]
        return [
            ColumnFlow(id=f"{flow_id}_{n}", output_column=output_name, lineage_path=path)
            for n, path in enumerate(paths)
        ]

    def trace(
        self,
        source_id: str,
        source_column: str,
        projection_id: str,
        column: ColumnInfo,
    ) -> Optional[list[LineageStep]]:
        """Steps from the source node to the projection node.

        Returns:
            The steps, or None when the projection is not reachable from
            the source node.
        """
        route = self.graph.path(source_id, projection_id)
        if route is None:
            return None

        source = self.graph.node(source_id)
        steps = [
            LineageStep(
                node_id=source.id,
                node_name=source.table_name or source.label,
                column_name=source_column,
                transformation=LineageTransformation.SOURCE,
            )
        ]

        for node_id in route[1:-1]:
            node = self.graph.node(node_id)
            if node.kind == NodeKind.JOIN:
                steps.append(
                    LineageStep(
                        node_id=node.id,
                        node_name=node.label,
                        column_name=source_column,
                        transformation=LineageTransformation.JOINED,
                    )
                )
            elif node.kind == NodeKind.AGGREGATE and column.is_aggregate:
                steps.append(
                    LineageStep(
                        node_id=node.id,
                        node_name=node.label,
                        column_name=column.name,
                        transformation=LineageTransformation.AGGREGATED,
                        expression=column.expression,
                    )
                )

        final = self._projection_step(self.graph.node(projection_id), column, steps[-1])
        if final is not None:
            steps.append(final)
        return steps

    def set_operation_steps(
        self, projection_id: str, set_op_id: str, output_name: str
    ) -> list[LineageStep]:
        """Passthrough steps for every set operation between a branch and the output.

        Nested set operations (``a UNION b UNION ALL c``) put several Union
        nodes on the route; each one gets a step.
        """
        route = self.graph.path(projection_id, set_op_id) or [projection_id, set_op_id]
        steps = []
        for node_id in route[1:]:
            node = self.graph.node(node_id)
            if node.kind != NodeKind.UNION:
                continue
            steps.append(
                LineageStep(
                    node_id=node.id,
                    node_name=node.label,
                    column_name=output_name,
                    transformation=LineageTransformation.PASSTHROUGH,
                )
            )
        return steps

    def _projection_step(
        self, node: FlowNode, column: ColumnInfo, previous: LineageStep
    ) -> Optional[LineageStep]:
        transformation = _PROJECTION_TRANSFORMATIONS[column.transformation_type]
        same_name = previous.column_name.lower() == column.name.lower()

        if transformation == LineageTransformation.PASSTHROUGH:
            if same_name:
                return None
            transformation = LineageTransformation.RENAMED
        elif transformation == LineageTransformation.AGGREGATED:
            if previous.transformation == LineageTransformation.AGGREGATED:
                return None

        expression = None
        if transformation in (LineageTransformation.AGGREGATED, LineageTransformation.CALCULATED):
            expression = column.expression
        return LineageStep(
            node_id=node.id,
            node_name=node.label,
            column_name=column.name,
            transformation=transformation,
            expression=expression,
        )


def build_column_flows(
    output: Optional[QueryOutput], nodes: list[FlowNode], edges: list[FlowEdge]
) -> list[ColumnFlow]:
    """Trace every output column of a statement through its graph."""
    return ColumnFlowBuilder(nodes, edges).build(output)
