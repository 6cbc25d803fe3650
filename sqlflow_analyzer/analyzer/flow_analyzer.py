"""
Flow analyzer main entry point.

This module defines the FlowAnalyzer class, which runs the whole pipeline
for one statement (or for every statement of a script):

1. Classify the statement and build its flow graph
2. Compute statistics and complexity
3. Run the optimization hint rules
4. Guess source line ranges
5. Build column lineage and column flows
6. Lay out the graph

Every call uses a fresh ParseContext, so one analyzer can serve several
threads at once.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from sqlglot import exp

from sqlflow_analyzer.analyzer.context import ParseContext
from sqlflow_analyzer.analyzer.statement_processor import StatementProcessor
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import FlowError, InputLimitError, RecursionDepthError
from sqlflow_analyzer.graph.layout import apply_layout
from sqlflow_analyzer.lineage.column_flows import build_column_flows
from sqlflow_analyzer.lineage.column_lineage import build_column_lineage
from sqlflow_analyzer.metrics.complexity import (
    apply_complexity,
    apply_deep_metrics,
    assign_complexity_levels,
)
from sqlflow_analyzer.metrics.hints import HintEngine
from sqlflow_analyzer.models.config import FlowConfig
from sqlflow_analyzer.models.result import BatchResult, FlowResult
from sqlflow_analyzer.parser.script_splitter import ScriptSplitter
from sqlflow_analyzer.parser.sql_parser import SQLParser
from sqlflow_analyzer.parser.statement_classifier import StatementClassifier
from sqlflow_analyzer.utils.line_numbers import assign_line_ranges

logger = logging.getLogger(__name__)

DialectLike = Union[SqlDialect, str, None]


class FlowAnalyzer:
    """SQL flow analyzer - main entry point.

    Usage:
        >>> analyzer = FlowAnalyzer()
        >>> result = analyzer.analyze_sql("SELECT id FROM users WHERE active = 1")
        >>> print(result.to_json())

    Attributes:
        config: FlowConfig controlling limits, rendering and layout.
        parser: SQLParser used by ``analyze_sql``.
        classifier: StatementClassifier dispatching statement kinds.
        splitter: ScriptSplitter used by ``analyze_batch``.

    Example:
        >>> result = FlowAnalyzer().analyze_sql("SELECT a.id FROM a JOIN b ON a.id = b.id")
        >>> result.stats.joins
        1
    """

    def __init__(self, config: Optional[FlowConfig] = None) -> None:
        self.config = config or FlowConfig()
        self.parser = SQLParser(self.config)
        self.classifier = StatementClassifier()
        self.splitter = ScriptSplitter()

    def _dialect(self, dialect: DialectLike) -> SqlDialect:
        if dialect is None:
            return self.config.dialect
        return SqlDialect.from_name(dialect)

    def analyze(
        self,
        ast: exp.Expression,
        dialect: DialectLike = None,
        sql: str = "",
        start_line: int = 1,
    ) -> FlowResult:
        """Analyze an already parsed statement.

        Args:
            ast: sqlglot AST of one statement.
            dialect: Dialect tag; defaults to ``config.dialect``.
            sql: Statement text, used for dialect hints and line ranges.
                When empty, the AST is rendered back to SQL.
            start_line: Line of the statement's first line in its script.

        Returns:
            FlowResult. Every failure (nesting too deep, unsupported
            statement in ``fail`` mode, unexpected errors inside the
            pipeline) is reported in ``result.error``.
        """
        dialect = self._dialect(dialect)
        sql = sql or ast.sql(dialect=dialect.sqlglot_name)
        try:
            return self._run(ast, dialect, sql, start_line)
        except FlowError as e:
            logger.warning("Analysis failed: %s", e.message)
            return FlowResult.failure(sql, e.message, dialect.value, start_line)
        except RecursionError:
            error = RecursionDepthError(None, self.config.max_depth)
            logger.warning("Analysis failed: %s", error.message)
            return FlowResult.failure(sql, error.message, dialect.value, start_line)
        except Exception as e:
            logger.exception("Unexpected error during analysis")
            return FlowResult.failure(
                sql, f"Unexpected error during analysis: {e}", dialect.value, start_line
            )

    def _run(self, ast: exp.Expression, dialect: SqlDialect, sql: str, start_line: int) -> FlowResult:
        config = self.config
        context = ParseContext(config, dialect)

        # Step 1: Build the graph
        classified = self.classifier.classify(ast)
        processed = StatementProcessor(context).process(classified)
        nodes, edges = processed.nodes, processed.edges

        # Step 2: Statistics and complexity
        stats = context.finalize_stats()
        apply_complexity(stats)
        apply_deep_metrics(stats, nodes, edges)
        assign_complexity_levels(nodes, stats)

        # Step 3: Hints
        hints = HintEngine(context, nodes, edges, sql).run()

        # Step 4: Line ranges
        line_ranges = assign_line_ranges(nodes, sql, start_line)

        # Step 5: Lineage
        column_lineage = build_column_lineage(processed.output)
        column_flows = build_column_flows(processed.output, nodes, edges)

        # Step 6: Layout
        apply_layout(
            nodes,
            edges,
            config.layout_algorithm,
            config.layout_direction,
            config.compact_layout,
        )

        logger.debug(
            "Analyzed %s statement: %d nodes, %d edges, %d hints",
            classified.statement_type.value,
            len(nodes),
            len(edges),
            len(hints),
        )
        return FlowResult(
            nodes=nodes,
            edges=edges,
            stats=stats,
            hints=hints,
            sql=sql,
            column_lineage=column_lineage,
            column_flows=column_flows,
            table_usage=dict(context.table_usage),
            statement_type=classified.statement_type.value,
            dialect=dialect.value,
            start_line=start_line,
            line_ranges=line_ranges,
        )

    def analyze_sql(
        self, sql: str, dialect: DialectLike = None, start_line: int = 1
    ) -> FlowResult:
        """Parse and analyze one SQL statement.

        Parse failures are returned as error results, with a dialect
        suggestion when the text carries another dialect's syntax.

        Example:
            >>> result = FlowAnalyzer().analyze_sql("SELECT id FROM users WHERE")
            >>> result.success
            False
        """
        dialect = self._dialect(dialect)
        try:
            ast = self.parser.parse(sql, dialect)
        except FlowError as e:
            return FlowResult.failure(sql, e.message, dialect.value, start_line)
        return self.analyze(ast, dialect, sql, start_line)

    def analyze_batch(self, sql: str, dialect: DialectLike = None) -> BatchResult:
        """Split a script into statements and analyze each one.

        Statements are analyzed independently: a failure is recorded on its
        own result and the following statements are still analyzed.

        Returns:
            BatchResult with one FlowResult per statement, in source order.
            When the script exceeds the configured input limits the batch
            has ``error`` set and no results.

        Example:
            >>> batch = FlowAnalyzer().analyze_batch("SELECT 1;\\nSELECT id FROM users;")
            >>> [result.start_line for result in batch]
            [1, 2]
        """
        dialect = self._dialect(dialect)
        try:
            statements = self._split(sql or "", dialect)
        except InputLimitError as e:
            logger.warning("Batch rejected: %s", e.message)
            return BatchResult(error=e.message)

        results = [
            self.analyze_sql(statement.sql, dialect, statement.start_line)
            for statement in statements
        ]
        return BatchResult(queries=results)

    def _split(self, sql: str, dialect: SqlDialect):
        size = len(sql.encode("utf-8"))
        if size > self.config.max_sql_size_bytes:
            raise InputLimitError("max_sql_size_bytes", size, self.config.max_sql_size_bytes)
        statements = self.splitter.split(sql, dialect)
        if len(statements) > self.config.max_query_count:
            raise InputLimitError("max_query_count", len(statements), self.config.max_query_count)
        return statements
