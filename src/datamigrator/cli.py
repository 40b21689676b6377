"""Command line front end for DataMigrator."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from datamigrator.config import AppConfig, get_config
from datamigrator.errors import DataMigratorError
from datamigrator.models.connection import ConnectionDetails
from datamigrator.plugins.registry import PluginRegistry
from datamigrator.services.job_store import JobStore
from datamigrator.services.mapping_builder import FieldPair
from datamigrator.services.migration_engine import MigrationEngine

logger = logging.getLogger(__name__)


def _parse_properties(items: list[str] | None) -> dict[str, str]:
    """Turn repeated ``KEY=VALUE`` options into a dict."""
    properties: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got '{item}'")
        properties[key.strip()] = value
    return properties


def _details(provider: str, database: str, options: list[str] | None) -> ConnectionDetails:
    return ConnectionDetails(
        provider_name=provider,
        database=database,
        connection_string=database,
        extended_properties=_parse_properties(options),
    )


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for every subcommand."""
    parser = argparse.ArgumentParser(
        prog="datamigrator",
        description="DataMigrator - migrate data between files and databases",
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--jobs-file", type=Path, help="Path to the jobs JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("plugins", help="List registered plugins")
    subparsers.add_parser("jobs", help="List jobs and their last result")

    create_parser = subparsers.add_parser("create", help="Create a job")
    create_parser.add_argument("name", help="Unique job name")
    create_parser.add_argument("--source-provider", required=True, help="Source provider name")
    create_parser.add_argument("--source", required=True, help="Source database or file")
    create_parser.add_argument("--source-opt", action="append", metavar="KEY=VALUE")
    create_parser.add_argument("--source-resource", required=True, help="Table, sheet or file stem")
    create_parser.add_argument("--target-provider", required=True, help="Target provider name")
    create_parser.add_argument("--target", required=True, help="Target database or file")
    create_parser.add_argument("--target-opt", action="append", metavar="KEY=VALUE")
    create_parser.add_argument(
        "--target-resource", help="Defaults to the target file, else the source resource"
    )
    create_parser.add_argument(
        "--map", action="append", metavar="SOURCE=TARGET", help="Field pair; default matches by name"
    )
    create_parser.add_argument("--allow-narrowing", action="store_true", help="Accept lossy conversions")
    create_parser.add_argument("--create-target", action="store_true", help="Create a missing target")
    create_parser.add_argument("--description", default="")

    run_parser = subparsers.add_parser("run", help="Run a job")
    run_parser.add_argument("name", help="Job name")

    rename_parser = subparsers.add_parser("rename", help="Rename a job")
    rename_parser.add_argument("old_name")
    rename_parser.add_argument("new_name")

    delete_parser = subparsers.add_parser("delete", help="Delete a job")
    delete_parser.add_argument("name")

    subparsers.add_parser("ui", help="Open the terminal UI")
    return parser


def build_engine(config: AppConfig, jobs_file: Path | None = None) -> MigrationEngine:
    """Discover plugins, load jobs and wire up the engine."""
    registry = PluginRegistry()
    for failure in registry.discover():
        print(f"Plugin excluded: {failure.message}", file=sys.stderr)
    registry.freeze()

    store = JobStore(jobs_file or config.storage.jobs_path)
    return MigrationEngine(registry, store.load(), config, store)


def cmd_plugins(engine: MigrationEngine, args: argparse.Namespace) -> int:
    for plugin in engine.registry.list_plugins():
        tools = ", ".join(t.name for t in plugin.tools) or "-"
        print(f"{plugin.provider_name:<10} tools: {tools}")
    return 0


def cmd_jobs(engine: MigrationEngine, args: argparse.Namespace) -> int:
    jobs = engine.list_jobs()
    if not jobs:
        print("No jobs")
        return 0
    for job in jobs:
        line = f"{job.name:<24} {job.status.value:<10} {job.source_display} -> {job.target_display}"
        if job.last_result is not None:
            line += f"  ({job.last_result.rows_committed} rows)"
        print(line)
        if job.error is not None:
            print(f"    {job.error.kind}: {job.error.message}")
    return 0


def cmd_create(engine: MigrationEngine, args: argparse.Namespace) -> int:
    pairs = None
    if args.map:
        pairs = []
        for source, target in _parse_properties(args.map).items():
            pairs.append(FieldPair(source=source, target=target, allow_narrowing=args.allow_narrowing))

    job = asyncio.run(
        engine.create_job(
            args.name,
            _details(args.source_provider, args.source, args.source_opt),
            _details(args.target_provider, args.target, args.target_opt),
            args.source_resource,
            args.target_resource,
            pairs,
            args.create_target,
            args.description,
        )
    )
    print(f"Created job {job.name} with {len(job.mapping.entries)} fields:")
    for entry in job.mapping.entries:
        print(f"  {entry.display}  [{entry.safety.value}]")
    return 0


def cmd_run(engine: MigrationEngine, args: argparse.Namespace) -> int:
    result = asyncio.run(engine.run_job(args.name))
    print(f"Status: {result.status.value}")
    print(f"Rows attempted: {result.rows_attempted}")
    print(f"Rows committed: {result.rows_committed}")
    if result.duration_seconds is not None:
        print(f"Duration: {result.duration_seconds:.2f} seconds")
    if result.error is not None:
        print(f"Error ({result.error.kind}): {result.error.message}")
    return 0 if result.succeeded else 1


def cmd_rename(engine: MigrationEngine, args: argparse.Namespace) -> int:
    engine.rename_job(args.old_name, args.new_name)
    print(f"Renamed {args.old_name} to {args.new_name}")
    return 0


def cmd_delete(engine: MigrationEngine, args: argparse.Namespace) -> int:
    engine.delete_job(args.name)
    print(f"Deleted {args.name}")
    return 0


def cmd_ui(engine: MigrationEngine, args: argparse.Namespace) -> int:
    from datamigrator.app import DataMigratorApp

    ui = args.app_config.ui
    app = DataMigratorApp(engine, ui.refresh_interval_seconds, ui.theme)
    app.run()
    return 0


COMMANDS = {
    "plugins": cmd_plugins,
    "jobs": cmd_jobs,
    "create": cmd_create,
    "run": cmd_run,
    "rename": cmd_rename,
    "delete": cmd_delete,
    "ui": cmd_ui,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = AppConfig.load(args.config) if args.config else get_config()
    args.app_config = config

    log_level = logging.DEBUG if args.verbose else config.log_level.upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        engine = build_engine(config, args.jobs_file)
    except DataMigratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return command(engine, args)
    except (DataMigratorError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        engine.shutdown()


if __name__ == "__main__":
    sys.exit(main())
