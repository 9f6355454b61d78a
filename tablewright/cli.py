#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command-line interface.

Usage:
    tablewright [-c CONFIG] [--database-url URL] [--log-level LEVEL] COMMAND

Commands:
    migrate   Run pending migrations
    rollback  Roll back the newest batch(es)
    reset     Roll back every migration
    refresh   Reset and migrate again
    status    Show applied and pending migrations
    seed      Run a seeder
    make      Create a migration file

Exit status is 0 on success and 1 on the first error.
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from tablewright.config import Settings, configure_logger, load_config, parse_log_level
from tablewright.database import DatabaseManager
from tablewright.errors import SchemaError
from tablewright.migrations import MigrationManager, MigrationResult, Migrator
from tablewright.seeding import SeederRunner

logger = logging.getLogger('tablewright')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tablewright',
        description='Schema migrations and database seeding',
    )
    parser.add_argument('-c', '--config', help='Path to config file (JSON or YAML)')
    parser.add_argument('--database-url', help='Override the default connection URL')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        type=str.upper,
        help='Logging level (default: from config, else INFO)'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    migrate = commands.add_parser('migrate', help='Run pending migrations')
    migrate.add_argument('--pretend', action='store_true',
                         help='Print the statements instead of running them')
    migrate.add_argument('--step', action='store_true',
                         help='Give each migration its own batch')
    migrate.add_argument('--seed', action='store_true',
                         help='Run the default seeder afterwards')

    rollback = commands.add_parser('rollback', help='Roll back the newest batch(es)')
    rollback.add_argument('--steps', type=int, default=1,
                          help='Number of batches to roll back (default: 1)')
    rollback.add_argument('--pretend', action='store_true',
                          help='Print the statements instead of running them')

    reset = commands.add_parser('reset', help='Roll back every migration')
    reset.add_argument('--pretend', action='store_true',
                       help='Print the statements instead of running them')

    refresh = commands.add_parser('refresh', help='Reset and migrate again')
    refresh.add_argument('--seed', action='store_true',
                         help='Run the default seeder afterwards')

    commands.add_parser('status', help='Show migration status')

    seed = commands.add_parser('seed', help='Run a seeder')
    seed.add_argument('--class', dest='seeder',
                      help='Seeder dotted path (default: from config)')

    make = commands.add_parser('make', help='Create a migration file')
    make.add_argument('name', help='Migration description, e.g. create_flights_table')
    target = make.add_mutually_exclusive_group()
    target.add_argument('--create', metavar='TABLE', help='Table to create')
    target.add_argument('--table', metavar='TABLE', help='Table to alter')
    make.add_argument('--namespace', default='default',
                      help='Migration namespace (default: default)')

    return parser


def _print_results(results: List[MigrationResult], done: str) -> None:
    for result in results:
        if result.pretend:
            print(f"{result.identity}:")
            for statement in result.statements:
                print(f"  {statement}")
        else:
            print(f"{done}: {result.identity} ({result.execution_time_ms}ms)")
        for warning in result.warnings:
            print(f"  warning: {warning.message}")


async def _seed(settings: Settings, databases: DatabaseManager,
                seeder: Optional[str]) -> None:
    if str(settings.base_dir) not in sys.path:
        sys.path.insert(0, str(settings.base_dir))
    runner = SeederRunner(
        databases.get(),
        max_depth=settings.seeder_max_depth,
        default=settings.default_seeder,
    )
    await runner.seed(seeder)
    print("Database seeding completed.")


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Run one parsed command against the configured databases."""
    databases = DatabaseManager(settings.connections, settings.default_connection)
    try:
        if args.command == 'seed':
            await _seed(settings, databases, args.seeder)
            return 0

        manager = MigrationManager(settings.migration_paths)
        migrator = Migrator(manager, databases, settings.migrations_table)

        if args.command == 'migrate':
            results = await migrator.migrate(pretend=args.pretend, step=args.step)
            if not results:
                print("Nothing to migrate.")
            _print_results(results, 'Migrated')
            if args.seed and not args.pretend:
                await _seed(settings, databases, None)

        elif args.command == 'rollback':
            results = await migrator.rollback(steps=args.steps, pretend=args.pretend)
            if not results:
                print("Nothing to roll back.")
            _print_results(results, 'Rolled back')

        elif args.command == 'reset':
            results = await migrator.reset(pretend=args.pretend)
            if not results:
                print("Nothing to roll back.")
            _print_results(results, 'Rolled back')

        elif args.command == 'refresh':
            results = await migrator.refresh()
            _print_results([r for r in results if r.direction == 'down'], 'Rolled back')
            _print_results([r for r in results if r.direction == 'up'], 'Migrated')
            if args.seed:
                await _seed(settings, databases, None)

        elif args.command == 'status':
            rows = await migrator.status()
            if not rows:
                print("No migrations found.")
            for row in rows:
                batch = '' if row.batch is None else str(row.batch)
                print(f"{row.state:<8} {batch:>5}  {row.identity}")

        return 0
    finally:
        await databases.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_config(args.config)
        log_level = parse_log_level(args.log_level or settings.log_level)
    except (OSError, SchemaError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.database_url:
        settings.connections[settings.default_connection] = args.database_url

    configure_logger(
        logger,
        settings.log_file,
        settings.log_format,
        log_level,
    )
    handler = logger.handlers[-1]

    try:
        if args.command == 'make':
            manager = MigrationManager(settings.migration_paths)
            path = manager.create_migration_file(
                args.name,
                namespace=args.namespace,
                table=args.create or args.table,
                create=bool(args.create),
            )
            print(f"Created migration: {path}")
            return 0

        return asyncio.run(run_command(args, settings))

    except SchemaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error("Unhandled error: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        logger.removeHandler(handler)
        handler.close()


if __name__ == '__main__':
    sys.exit(main())
