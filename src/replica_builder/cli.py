#!/usr/bin/env python3
"""
Replica Builder command line.

Usage:
    replica-builder init
    replica-builder -d replica.db import-csv Account output/account_query_20240101_120000.csv
    replica-builder optimize
    replica-builder build --export-dir output User Account Contact
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from replica_builder import __version__
from replica_builder.config import ReplicaConfig, setup_logging
from replica_builder.errors import OptimizeError, ReplicaError
from replica_builder.orchestrator import BuildReport, ReplicaBuilder
from replica_builder.schema.catalog import MetadataCatalog
from replica_builder.storage.store import ReplicaStore

logger = logging.getLogger(__name__)


def latest_export(export_dir: Path, entity: str, kind: str, suffix: str) -> Optional[Path]:
    """Most recently modified <entity_lower>_<kind>_*<suffix> file, if any."""
    pattern = f"{entity.lower()}_{kind}_*{suffix}"
    candidates = [p for p in export_dir.glob(pattern) if p.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def locate_exports(export_dir: Path, entities: Sequence[str]) -> Dict[str, Optional[Path]]:
    """Map each entity to its newest query export (None when missing)."""
    found = {}
    for entity in entities:
        path = latest_export(export_dir, entity, "query", ".csv")
        if path is None:
            logger.warning(f"No CSV file found for {entity} in {export_dir}")
        found[entity] = path
    return found


def load_catalog(export_dir: Path, entities: Sequence[str]) -> MetadataCatalog:
    """Catalog from the newest describe output of each entity, where present."""
    catalog = MetadataCatalog()
    for entity in entities:
        path = latest_export(export_dir, entity, "describe", ".json")
        if path is None:
            continue
        try:
            catalog.merge_describe_file(entity, path)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable describe output {path}: {e}")
    return catalog


def render_report(report: BuildReport, console: Console):
    table = Table(title="Replica Build Summary")
    table.add_column("Entity", style="cyan")
    table.add_column("Status")
    table.add_column("Rows", justify="right", style="green")
    table.add_column("Indexes", justify="right", style="yellow")
    table.add_column("Warnings / Error")

    for result in report.entity_results:
        status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
        notes = result.error or "; ".join(result.warnings)
        table.add_row(
            result.entity,
            status,
            f"{result.rows_imported:,}",
            str(len(result.indexes)),
            escape(notes),
        )
    console.print(table)

    optimize = report.optimize_result
    if optimize is None or optimize.skipped:
        console.print("[yellow]Optimization skipped[/yellow]")
    elif optimize.ok:
        console.print("[green]Database optimized[/green]")
    else:
        console.print(f"[yellow]Warning: database optimization failed: {escape(optimize.error or '')}[/yellow]")


def cmd_init(args, config: ReplicaConfig, console: Console) -> int:
    with ReplicaStore(config.db_path) as store:
        store.initialize()
    console.print(f"Store ready at [cyan]{config.db_path}[/cyan]")
    return 0


def cmd_import_csv(args, config: ReplicaConfig, console: Console) -> int:
    catalog = None
    if args.describe:
        catalog = MetadataCatalog()
        try:
            catalog.merge_describe_file(args.entity, args.describe)
        except (OSError, ValueError) as e:
            console.print(f"[red]Cannot read describe output {args.describe}: {e}[/red]")
            return 1

    with ReplicaStore(config.db_path) as store:
        builder = ReplicaBuilder(store, config, catalog)
        try:
            result = builder.import_entity(args.entity, args.csv_file)
        except ReplicaError as e:
            console.print(f"[red]Failed to import {args.entity}: {escape(str(e))}[/red]")
            return 1

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    console.print(
        f"[green]Imported {result.rows_imported:,} rows into {args.entity} "
        f"({len(result.indexes)} indexes)[/green]"
    )
    return 0


def cmd_optimize(args, config: ReplicaConfig, console: Console) -> int:
    with ReplicaStore(config.db_path) as store:
        try:
            ReplicaBuilder(store, config).optimize_store()
        except OptimizeError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            return 1
    console.print("[green]Database optimized[/green]")
    return 0


def cmd_build(args, config: ReplicaConfig, console: Console) -> int:
    entities: List[str] = args.entities or list(config.default_entities)
    export_dir = config.export_dir

    console.print(f"Database File: [cyan]{config.db_path}[/cyan]")
    console.print(f"Export Directory: [cyan]{export_dir}[/cyan]")
    console.print(f"Objects: {' '.join(entities)}")

    sources = locate_exports(export_dir, entities)
    catalog = load_catalog(export_dir, entities)

    with ReplicaStore(config.db_path) as store:
        builder = ReplicaBuilder(store, config, catalog)
        report = builder.build(sources, optimize=config.optimize)

    if args.json:
        console.print_json(report.to_json())
    else:
        render_report(report, console)
    return 0 if report.succeeded else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replica-builder",
        description="Build a local SQLite replica from per-entity CSV exports",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-d", "--db",
        type=Path,
        help="SQLite database file (default: from REPLICA_DB_FILE or sfdc-replica.db)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: from REPLICA_LOG_LEVEL or INFO)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Initialize the database file")

    imp = sub.add_parser("import-csv", help="Import one CSV export, create its table and indexes")
    imp.add_argument("entity", help="Entity (table) name")
    imp.add_argument("csv_file", type=Path, help="CSV export with a header line")
    imp.add_argument("--describe", type=Path, help="Describe JSON with authoritative field types")

    sub.add_parser("optimize", help="Refresh statistics and reclaim free space")

    build = sub.add_parser("build", help="Import the newest export of each entity, then optimize")
    build.add_argument("entities", nargs="*", help="Entities (default: User Opportunity Account Contact Lead)")
    build.add_argument("--export-dir", type=Path, help="Directory holding the exports")
    build.add_argument("--no-optimize", action="store_true", help="Skip database optimization")
    build.add_argument("--json", action="store_true", help="Print the report as JSON")

    return parser


COMMANDS = {
    "init": cmd_init,
    "import-csv": cmd_import_csv,
    "optimize": cmd_optimize,
    "build": cmd_build,
}


def main(argv: Optional[Sequence[str]] = None, console: Optional[Console] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ReplicaConfig.from_env(
        db_path=args.db,
        export_dir=getattr(args, "export_dir", None),
        log_level=args.log_level,
        optimize=False if getattr(args, "no_optimize", False) else None,
    )
    setup_logging(config.log_level)
    console = console or Console()

    try:
        return COMMANDS[args.command](args, config, console)
    except ReplicaError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
