"""
Tests for data modification statements.

This module checks the graphs built for INSERT, UPDATE, DELETE, MERGE,
CREATE ... AS SELECT and unsupported statements.
"""

import pytest
import sqlglot

from sqlflow_analyzer.analyzer.context import ParseContext
from sqlflow_analyzer.analyzer.statement_processor import StatementProcessor
from sqlflow_analyzer.dialects.dialect import SqlDialect
from sqlflow_analyzer.exceptions import UnsupportedStatementError
from sqlflow_analyzer.models.config import ErrorMode, FlowConfig
from sqlflow_analyzer.models.flow import AccessMode, NodeKind, OperationType
from sqlflow_analyzer.models.stats import HintKind
from sqlflow_analyzer.parser.statement_classifier import StatementClassifier


def build(sql, config=None, dialect=SqlDialect.MYSQL):
    context = ParseContext(config, dialect)
    ast = sqlglot.parse_one(sql, read=dialect.sqlglot_name)
    processed = StatementProcessor(context).process(StatementClassifier().classify(ast))
    return context, processed


def kinds(nodes):
    return [node.kind for node in nodes]


def edge_between(edges, source, target):
    return next(e for e in edges if e.source == source and e.target == target)


class TestInsert:
    """Tests for INSERT statements."""

    def test_insert_select(self):
        """Test that the query feeds a Write table node."""
        context, processed = build("INSERT INTO t (a, b) SELECT a, b FROM s")
        assert [n.id for n in processed.nodes] == [
            "table_0",
            "select_1",
            "table_3",
            "result_5",
        ]
        write = processed.nodes[2]
        assert write.label == "t"
        assert write.access_mode == AccessMode.WRITE
        assert write.operation_type == OperationType.INSERT
        assert write.description == "columns: a, b"
        assert edge_between(processed.edges, "select_1", "table_3").clause_type == "insert"
        assert processed.nodes[0].operation_type == OperationType.INSERT
        assert context.table_usage == {"s": 1, "t": 1}

    def test_insert_values(self):
        _, processed = build("INSERT INTO t VALUES (1, 2)")
        values, write, result = processed.nodes
        assert values.label == "VALUES"
        assert values.description == "1 literal row(s)"
        assert write.access_mode == AccessMode.WRITE
        assert result.kind == NodeKind.RESULT

    def test_insert_output_is_kept_for_lineage(self):
        _, processed = build("INSERT INTO t SELECT a FROM s")
        assert processed.output is not None
        assert processed.output.terminal_id == "select_1"


class TestUpdate:
    """Tests for UPDATE statements."""

    def test_plain_update_is_a_single_write(self):
        """Test that a plain UPDATE has no Read copy of its target."""
        context, processed = build("UPDATE t SET a = 1")
        assert kinds(processed.nodes) == [NodeKind.TABLE, NodeKind.RESULT]
        write = processed.nodes[0]
        assert write.access_mode == AccessMode.WRITE
        assert write.operation_type == OperationType.UPDATE
        assert context.table_usage == {"t": 1}

    def test_update_with_where(self):
        """Test that the WHERE filter feeds the Write target."""
        context, processed = build("UPDATE t SET a = 1 WHERE id = 5")
        assert kinds(processed.nodes) == [NodeKind.FILTER, NodeKind.TABLE, NodeKind.RESULT]
        where, write, _ = processed.nodes
        assert where.conditions == ["id = 5"]
        assert write.description == "SET a = 1"
        assert edge_between(processed.edges, where.id, write.id).clause_type == "update"
        assert context.table_usage == {"t": 1}
        assert context.stats.conditions == 1

    def test_update_from(self):
        """Test that FROM sources feed the Write target."""
        context, processed = build(
            "UPDATE t SET a = s.a FROM s WHERE t.id = s.id", dialect=SqlDialect.POSTGRESQL
        )
        source, where, write, _ = processed.nodes
        assert (source.label, source.access_mode) == ("s", AccessMode.READ)
        assert where.kind == NodeKind.FILTER
        assert (write.label, write.access_mode) == ("t", AccessMode.WRITE)
        assert edge_between(processed.edges, source.id, where.id)
        assert context.table_usage == {"s": 1, "t": 1}

    def test_update_where_subquery(self):
        """Test that a WHERE subquery is the only Read source."""
        context, processed = build("UPDATE t SET a = 1 WHERE id IN (SELECT id FROM s)")
        assert kinds(processed.nodes) == [
            NodeKind.FILTER,
            NodeKind.SUBQUERY,
            NodeKind.TABLE,
            NodeKind.RESULT,
        ]
        where, subquery, write, _ = processed.nodes
        assert edge_between(processed.edges, subquery.id, where.id).clause_type == "subquery"
        assert edge_between(processed.edges, where.id, write.id)
        assert context.table_usage == {"s": 1, "t": 1}


class TestDelete:
    """Tests for DELETE statements."""

    def test_delete(self):
        context, processed = build("DELETE FROM t WHERE id = 1")
        assert kinds(processed.nodes) == [NodeKind.FILTER, NodeKind.TABLE, NodeKind.RESULT]
        where, write, _ = processed.nodes
        assert write.operation_type == OperationType.DELETE
        assert edge_between(processed.edges, where.id, write.id).clause_type == "delete"
        assert context.table_usage == {"t": 1}

    def test_delete_without_where(self):
        context, processed = build("DELETE FROM t")
        assert kinds(processed.nodes) == [NodeKind.TABLE, NodeKind.RESULT]
        assert processed.nodes[0].access_mode == AccessMode.WRITE
        assert context.stats.conditions == 0

    def test_delete_using(self):
        """Test that USING tables are the Read sources."""
        context, processed = build(
            "DELETE FROM t USING s WHERE t.id = s.id", dialect=SqlDialect.POSTGRESQL
        )
        assert kinds(processed.nodes) == [
            NodeKind.TABLE,
            NodeKind.FILTER,
            NodeKind.TABLE,
            NodeKind.RESULT,
        ]
        assert [n.label for n in processed.nodes[:3]] == ["s", "WHERE", "t"]
        assert context.stats.joins == 0
        assert context.table_usage == {"s": 1, "t": 1}


class TestMerge:
    """Tests for MERGE statements."""

    SQL = (
        "MERGE INTO t USING s ON t.id = s.id "
        "WHEN MATCHED THEN UPDATE SET t.v = s.v "
        "WHEN NOT MATCHED THEN INSERT (id, v) VALUES (s.id, s.v)"
    )

    def test_merge_graph(self):
        """Test the source/target join feeding the Write target."""
        context, processed = build(self.SQL, dialect=SqlDialect.POSTGRESQL)
        assert [n.id for n in processed.nodes] == [
            "table_0",
            "table_1",
            "join_2",
            "table_5",
            "result_7",
        ]
        source, target, join, write, _ = processed.nodes
        assert (source.label, target.label) == ("s", "t")
        assert join.label == "MERGE ON"
        assert join.description == "t.id = s.id"
        assert write.description == "WHEN MATCHED THEN UPDATE, WHEN NOT MATCHED THEN INSERT"
        assert write.operation_type == OperationType.MERGE
        assert context.stats.joins == 1


class TestCreate:
    """Tests for CREATE ... AS SELECT."""

    def test_create_table_as(self):
        context, processed = build("CREATE TABLE t2 AS SELECT id FROM t1")
        result = processed.nodes[-1]
        assert result.kind == NodeKind.RESULT
        assert result.label == "TABLE t2"
        assert result.access_mode == AccessMode.WRITE
        assert result.operation_type == OperationType.CREATE_TABLE_AS
        assert context.table_usage == {"t1": 1, "t2": 1}

    def test_create_view(self):
        _, processed = build("CREATE VIEW v AS SELECT id FROM t")
        assert processed.nodes[-1].label == "VIEW v"


class TestUnsupported:
    """Tests for the on_unsupported modes."""

    def test_warn(self):
        """Test the placeholder node and Info hint in warn mode."""
        context, processed = build("DROP TABLE t")
        [node] = processed.nodes
        assert node.kind == NodeKind.RESULT
        assert node.label == "DROP"
        [hint] = context.hints.get_all()
        assert hint.kind == HintKind.INFO
        assert hint.message == "DROP statements are not visualized as a data flow"

    def test_fail(self):
        with pytest.raises(UnsupportedStatementError) as excinfo:
            build("DROP TABLE t", FlowConfig(on_unsupported=ErrorMode.FAIL))
        assert excinfo.value.statement_kind == "DROP"

    def test_ignore(self):
        context, processed = build("DROP TABLE t", FlowConfig(on_unsupported=ErrorMode.IGNORE))
        assert processed.nodes == []
        assert processed.edges == []
        assert len(context.hints) == 0
