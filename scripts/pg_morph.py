#!/usr/bin/env python
# ============================================================================
# PG-MORPH COMMAND LINE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# PURPOSE: Deploy the registry and add/remove polymorphic partitions
# USAGE:
#   python -m scripts.pg_morph init --dry-run
#   python -m scripts.pg_morph add likes comments --column likeable
#   python -m scripts.pg_morph remove likes comments --column likeable
#   python -m scripts.pg_morph status likes --column likeable
# ============================================================================

import sys
import os
import json
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from __version__ import __version__
from core.exceptions import NativeStoreError, PgMorphError
from core.logging import configure_logging
from infrastructure.adapter import PolymorphicAdapter
from infrastructure.database_initializer import RegistryInitializer
from infrastructure.postgresql import PostgreSQLRepository

STATUS_EMOJI = {
    "success": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-morph",
        description="Manage polymorphic partition tables in PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pg-morph init                                      # Deploy partition registry
  pg-morph add likes comments --column likeable      # Attach likes_comments
  pg-morph add likes posts --column likeable --dry-run
  pg-morph remove likes comments --column likeable   # Detach, collapse if last
  pg-morph status likes --column likeable

Environment Variables:
  DATABASE_URL              Full PostgreSQL connection string
  POSTGRES_HOST             Database host
  POSTGRES_DB               Database name
  POSTGRES_USER             Database user (default: postgres)
  POSTGRES_PASSWORD         Database password
  PG_MORPH_BASE_SUFFIX      Base table suffix (default: base)
  PG_MORPH_REGISTRY_SCHEMA  Registry schema (default: public)
  PG_MORPH_REGISTRY_TABLE   Registry table (default: pg_morph_partitions)
  LOG_FORMAT                Set to 'json' for structured logs
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--connection",
        type=str,
        help="PostgreSQL connection string (overrides environment)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs on stderr"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Deploy the partition registry table")
    init.add_argument("--dry-run", action="store_true", help="Print DDL without executing")

    add = sub.add_parser("add", help="Attach a partition for a child table")
    _association_args(add, with_child=True)
    add.add_argument("--type-tag", help="Discriminator value (default: singular CamelCase of CHILD)")
    add.add_argument("--no-lock", action="store_true", help="Skip the advisory lock")
    add.add_argument("--dry-run", action="store_true", help="Print SQL without executing")

    remove = sub.add_parser("remove", help="Detach a child table's partition")
    _association_args(remove, with_child=True)
    remove.add_argument(
        "--keep-table",
        action="store_true",
        help="Remove the route only; keep the partition table and its rows"
    )
    remove.add_argument("--no-lock", action="store_true", help="Skip the advisory lock")
    remove.add_argument("--dry-run", action="store_true", help="Print SQL without executing")

    status = sub.add_parser("status", help="Show an association's partitions")
    _association_args(status, with_child=False)
    status.add_argument("--json", action="store_true", help="Print status as JSON")

    return parser


def _association_args(parser: argparse.ArgumentParser, with_child: bool) -> None:
    parser.add_argument("parent", help="Logical parent table, e.g. likes")
    if with_child:
        parser.add_argument("child", help="Referenced child table, e.g. comments")
    parser.add_argument("--column", required=True, help="Discriminator stem, e.g. likeable")
    parser.add_argument("--base-table", help="Storage table name (default: <parent>_base)")


def _print_banner(title: str) -> None:
    print("=" * 70)
    print(f"PG-MORPH - {title}")
    print("=" * 70)


def _print_sql(statements) -> None:
    print("\n[SQL]\n")
    for statement in statements:
        print(statement)
        print()


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_init(args, conn) -> int:
    _print_banner("Registry Deployment")
    print(f"Mode: {'DRY RUN' if args.dry_run else 'EXECUTE'}\n")

    initializer = RegistryInitializer(conn)
    result = initializer.initialize_all(dry_run=args.dry_run)

    print("\n[RESULTS]\n")
    for step in result.steps:
        print(f"{STATUS_EMOJI.get(step.status, '❓')} {step.name}: {step.message}")
        if step.error:
            print(f"   Error: {step.error}")

    if args.dry_run:
        print("\n[SQL]\n")
        print(initializer.render_ddl())

    print("\n" + "=" * 70)
    if not result.success:
        print("❌ Registry deployment failed!")
        for error in result.errors:
            print(f"   - {error}")
        return 1
    print("✅ Registry deployment completed successfully!")
    return 0


def cmd_add(args, conn) -> int:
    _print_banner("Add Partition")
    adapter = PolymorphicAdapter.for_connection(conn)
    result = adapter.add_polymorphic_foreign_key(
        args.parent,
        args.child,
        column=args.column,
        base_table=args.base_table,
        type_tag=args.type_tag,
        dry_run=args.dry_run,
        lock=not args.no_lock,
    )
    _print_result(result, args.dry_run)
    return 0


def cmd_remove(args, conn) -> int:
    _print_banner("Remove Partition")
    adapter = PolymorphicAdapter.for_connection(conn)
    result = adapter.remove_polymorphic_foreign_key(
        args.parent,
        args.child,
        column=args.column,
        base_table=args.base_table,
        drop_partition_table=not args.keep_table,
        dry_run=args.dry_run,
        lock=not args.no_lock,
    )
    _print_result(result, args.dry_run)
    return 0


def cmd_status(args, conn) -> int:
    adapter = PolymorphicAdapter.for_connection(conn)
    status = adapter.status(args.parent, args.column, base_table=args.base_table)

    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    _print_banner("Status")
    print(f"Association: {status['association']}")
    print(f"State:       {status['state']}")
    if status["source"]:
        print(f"Source:      {status['source']}")
    if status["partitions"]:
        print(f"\nPartitions ({len(status['partitions'])}):")
        for p in status["partitions"]:
            print(f"  - {p['partition_table']} -> {p['child_table']} ('{p['type_tag']}')")
    return 0


def _print_result(result, dry_run: bool) -> None:
    print(f"Partition: {result.partition_table}")
    print(f"Topology:  {result.state_before.value} -> {result.state_after.value}")
    print(f"Mode:      {'DRY RUN' if dry_run else 'EXECUTE'}")
    _print_sql(result.statements)
    print("=" * 70)
    if dry_run:
        print(f"⏭️  {len(result.statements)} statements not executed (dry run)")
    else:
        print(f"✅ Executed {len(result.statements)} statements")


COMMANDS = {
    "init": cmd_init,
    "add": cmd_add,
    "remove": cmd_remove,
    "status": cmd_status,
}


def main(argv=None, repository=None) -> int:
    """
    Run the CLI.

    Args:
        argv: Arguments (default sys.argv[1:])
        repository: Connection provider with transaction() (default
            PostgreSQLRepository from --connection or environment)

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    configure_logging(
        level="DEBUG" if args.verbose else "INFO",
        json_output=args.json_logs,
    )

    repository = repository or PostgreSQLRepository(connection_string=args.connection)
    command = COMMANDS[args.command]

    try:
        with repository.transaction() as conn:
            return command(args, conn)
    except (PgMorphError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except NativeStoreError as e:
        print(f"❌ PostgreSQL error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
