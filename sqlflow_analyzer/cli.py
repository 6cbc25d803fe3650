"""
Command-line interface for sqlflow analyzer v1.0.

This module provides a command-line interface for the flow analyzer,
allowing users to analyze SQL scripts from the command line with support
for column flows, optimization hints, statistics tables and JSON export.
"""

import argparse
import logging
import sys
from pathlib import Path

from colorama import Fore, Style, init
from tabulate import tabulate

from sqlflow_analyzer import (
    FlowAnalyzer,
    FlowConfig,
    LayoutAlgorithm,
    LayoutDirection,
    SqlDialect,
)
from sqlflow_analyzer.exceptions import FlowError
from sqlflow_analyzer.models.result import BatchResult, FlowResult
from sqlflow_analyzer.models.stats import HintKind

USE_COLOR = True

_HINT_COLORS = {
    HintKind.ERROR: Fore.RED,
    HintKind.WARNING: Fore.YELLOW,
    HintKind.INFO: Fore.CYAN,
}


def _emit(color: str, icon: str, fallback: str, msg: str, stream=None) -> None:
    stream = stream or sys.stdout
    if not USE_COLOR:
        print(f"{fallback} {msg}", file=stream)
        return
    try:
        print(f"{color}{icon} {msg}{Style.RESET_ALL}", file=stream)
    except UnicodeEncodeError:
        # Windows consoles without UTF-8
        print(f"{color}{fallback} {msg}{Style.RESET_ALL}", file=stream)


def print_success(msg: str) -> None:
    """Print success message."""
    _emit(Fore.GREEN, "✓", "[OK]", msg)


def print_error(msg: str) -> None:
    """Print error message."""
    _emit(Fore.RED, "✗", "[ERROR]", msg, stream=sys.stderr)


def print_warning(msg: str) -> None:
    """Print warning message."""
    _emit(Fore.YELLOW, "⚠", "[WARN]", msg)


def print_info(msg: str) -> None:
    """Print info message."""
    if USE_COLOR:
        print(f"{Fore.CYAN}{msg}{Style.RESET_ALL}")
    else:
        print(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlflow-analyzer",
        description="SQL Flow Analyzer - v1.0",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a SQL script
  %(prog)s script.sql

  # PostgreSQL script with column flows and hints
  %(prog)s script.sql --dialect postgres --lineage --hints

  # Statistics table
  %(prog)s script.sql --format table

  # Export the graphs as JSON
  %(prog)s script.sql --export flow.json
        """,
    )

    # === Input parameters ===
    input_group = parser.add_argument_group("Input Options")
    input_group.add_argument("sql_file", help="SQL script file to analyze")
    input_group.add_argument(
        "--dialect",
        "-d",
        default=SqlDialect.MYSQL.value,
        help=f"SQL dialect (default: MySQL). One of: {', '.join(SqlDialect.values())}",
    )

    # === Output parameters ===
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--format",
        "-f",
        choices=["pretty", "json", "table"],
        default="pretty",
        help="Output format (default: pretty)",
    )
    output_group.add_argument(
        "--lineage", "-l", action="store_true", help="Show column flows"
    )
    output_group.add_argument(
        "--hints", action="store_true", help="Show optimization hints"
    )
    output_group.add_argument(
        "--export", "-o", metavar="FILE", help="Export the analysis to a JSON file"
    )
    output_group.add_argument(
        "--no-color", action="store_true", help="Disable colored output"
    )

    # === Layout parameters ===
    layout_group = parser.add_argument_group("Layout")
    layout_group.add_argument(
        "--layout",
        choices=LayoutAlgorithm.values(),
        default=LayoutAlgorithm.HIERARCHICAL.value,
        help="Layout algorithm (default: hierarchical)",
    )
    layout_group.add_argument(
        "--direction",
        choices=LayoutDirection.values(),
        default=LayoutDirection.TOP_BOTTOM.value,
        help="Direction of the hierarchical layout (default: TB)",
    )
    layout_group.add_argument(
        "--compact", action="store_true", help="Use compact spacing"
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log analysis steps to stderr"
    )
    return parser


def main(argv=None) -> None:
    """
    CLI main entry point.

    Supported commands:
        # Basic analysis
        sqlflow-analyzer script.sql

        # Column flows and hints
        sqlflow-analyzer script.sql --lineage --hints

        # Multiple output formats
        sqlflow-analyzer script.sql --format table
        sqlflow-analyzer script.sql --format json
        sqlflow-analyzer script.sql --format pretty

    Exits with status 1 when the file is missing or any statement fails.
    """
    args = build_parser().parse_args(argv)

    global USE_COLOR
    if args.no_color:
        USE_COLOR = False
    else:
        init(autoreset=True)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    sql_file = Path(args.sql_file)
    if not sql_file.exists():
        print_error(f"File not found: {args.sql_file}")
        sys.exit(1)

    quiet = args.format == "json"
    try:
        sql_script = sql_file.read_text(encoding="utf-8")
        config = FlowConfig(
            dialect=SqlDialect.from_name(args.dialect),
            layout_algorithm=LayoutAlgorithm(args.layout),
            layout_direction=LayoutDirection(args.direction),
            compact_layout=args.compact,
        )
        if not quiet:
            print_info(f"Reading SQL from: {sql_file}")
            print_info(f"Analyzing SQL script ({config.dialect.value})...")
        batch = FlowAnalyzer(config).analyze_batch(sql_script)
    except FlowError as e:
        print_error(f"Flow analysis failed: {e}")
        sys.exit(1)

    if batch.error:
        print_error(batch.error)
        sys.exit(1)

    if args.format == "json":
        print(batch.to_json(indent=2))
    elif args.format == "table":
        handle_table(batch)
    else:
        handle_pretty(batch, show_lineage=args.lineage, show_hints=args.hints)

    if args.export:
        handle_export(batch, args.export, quiet)

    if not batch.success:
        if not quiet:
            print_error(f"{len(batch.failed())} of {len(batch)} statement(s) failed")
        sys.exit(1)


def handle_pretty(batch: BatchResult, show_lineage: bool, show_hints: bool) -> None:
    """Show each statement's graph, optionally with flows and hints."""
    summary = batch.get_summary()
    print_success(
        f"Analysis complete! {summary['succeeded']} of {summary['statements']} "
        f"statement(s) analyzed."
    )

    for index, result in enumerate(batch, 1):
        print_info("\n" + "=" * 60)
        print_info(f"Statement #{index} (line {result.start_line})")
        print_info("=" * 60)
        if not result.success:
            print_error(result.error or "Unknown error")
            continue

        print(f"Type: {result.statement_type}")
        print(f"Nodes: {len(result.nodes)}  Edges: {len(result.edges)}")
        print(
            f"Complexity: {result.stats.complexity.value} "
            f"(score {result.stats.complexity_score})"
        )
        tables = result.get_source_tables()
        if tables:
            print(f"Tables: {', '.join(tables)}")
        print()

        labels = {node.id: node.label for node in result.nodes}
        for edge in result.edges:
            source = labels.get(edge.source, edge.source)
            target = labels.get(edge.target, edge.target)
            print(f"  {source} -> {target}")

        if show_lineage:
            show_column_flows(result)
        if show_hints:
            show_result_hints(result)


def show_column_flows(result: FlowResult) -> None:
    print()
    if not result.column_flows:
        print_warning("No column flows")
        return
    print_info(f"Column flows ({len(result.column_flows)}):")
    for flow in result.column_flows:
        # ASCII arrows for Windows consoles
        print(f"  {flow.output_column}: {flow.to_string(use_ascii=True)}")


def show_result_hints(result: FlowResult) -> None:
    print()
    if not result.hints:
        print_success("No optimization hints")
        return
    print_info(f"Hints ({len(result.hints)}):")
    for i, hint in enumerate(result.hints, 1):
        line = f"  {i}. [{hint.kind.value.upper()}] {hint.message}"
        if USE_COLOR:
            print(f"{_HINT_COLORS[hint.kind]}{line}{Style.RESET_ALL}")
        else:
            print(line)
        if hint.suggestion:
            print(f"     {hint.suggestion}")


def handle_table(batch: BatchResult) -> None:
    """Show one statistics row per statement."""
    headers = [
        "#", "Line", "Type", "Nodes", "Edges", "Tables", "Joins",
        "Subqueries", "CTEs", "Complexity", "Score", "Hints",
    ]
    rows = []
    for index, result in enumerate(batch, 1):
        if not result.success:
            rows.append([index, result.start_line, "error"] + [""] * 8 + [result.error])
            continue
        stats = result.stats
        rows.append([
            index,
            result.start_line,
            result.statement_type,
            len(result.nodes),
            len(result.edges),
            stats.tables,
            stats.joins,
            stats.subqueries,
            stats.ctes,
            stats.complexity.value,
            stats.complexity_score,
            len(result.hints),
        ])
    print(tabulate(rows, headers=headers, tablefmt="simple"))

    usage = batch.table_usage()
    if usage:
        print()
        print(tabulate(sorted(usage.items()), headers=["Table", "References"]))


def handle_export(batch: BatchResult, output_file: str, quiet: bool = False) -> None:
    """Export the full batch result as JSON."""
    output_path = Path(output_file)
    output_path.write_text(batch.to_json(indent=2), encoding="utf-8")
    if not quiet:
        print_success(f"Exported to {output_path}")


if __name__ == "__main__":
    main()
