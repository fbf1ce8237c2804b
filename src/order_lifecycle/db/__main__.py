"""
CLI entry point for order store management.

Usage:
    python -m order_lifecycle.db init
    python -m order_lifecycle.db reset --yes
    python -m order_lifecycle.db reconcile
    python -m order_lifecycle.db reconcile --customer <id> --apply

Global options:
    --config PATH   JSON configuration file (see order_lifecycle.config)
    --db PATH       Database path, overriding the configuration
"""

import argparse
import asyncio
import sys

from order_lifecycle.config import load_config
from order_lifecycle.config.models import EngineConfig
from order_lifecycle.db.engine import dispose_engines
from order_lifecycle.db.init import init_database, reset_database
from order_lifecycle.db.models import Base
from order_lifecycle.db.session import create_session_maker
from order_lifecycle.db.store import OrderStore
from order_lifecycle.lifecycle.reconciliation import reconcile_customer_stats
from order_lifecycle.shared.exceptions import OrderEngineError
from order_lifecycle.shared.logging_config import configure_structured_logging


async def cmd_init(config: EngineConfig, args: argparse.Namespace) -> int:
    engine = await init_database(config.database)
    print(f"Initialized order store at {engine.url}")
    return 0


async def cmd_reset(config: EngineConfig, args: argparse.Namespace) -> int:
    if not args.yes:
        print("ERROR: reset deletes all orders; pass --yes to confirm")
        return 1

    engine = await init_database(config.database)
    await reset_database(Base.metadata, engine)
    print(f"Reset order store at {engine.url}")
    return 0


async def cmd_reconcile(config: EngineConfig, args: argparse.Namespace) -> int:
    """
    Report (and with --apply, fix) customer statistics drift.

    Returns:
        0 when nothing drifted or drift was corrected, 2 when drift was
        found and left in place
    """
    engine = await init_database(config.database)
    store = OrderStore(create_session_maker(engine))

    try:
        drifts = await reconcile_customer_stats(
            store, customer_id=args.customer, apply=args.apply
        )
    except OrderEngineError as e:
        print(f"ERROR: {e}")
        return 1

    if not drifts:
        print("Customer statistics are consistent")
        return 0

    print("\n=== Customer Statistics Drift ===")
    print("=" * 80)
    for drift in drifts:
        print(f"\n{drift.customer_id}:")
        print(f"  Orders: cached {drift.cached_orders}, actual {drift.actual_orders}")
        print(f"  Spent:  cached {drift.cached_spent}, actual {drift.actual_spent}")
    print("=" * 80)

    if args.apply:
        print(f"\nCorrected {len(drifts)} customer(s)\n")
        return 0
    print(f"\n{len(drifts)} customer(s) drifted; rerun with --apply to correct\n")
    return 2


COMMANDS = {
    "init": cmd_init,
    "reset": cmd_reset,
    "reconcile": cmd_reconcile,
}


async def run(args: argparse.Namespace) -> int:
    """Route to the selected subcommand and release the engine afterwards."""
    config = load_config(args.config) if args.config else load_config()
    if args.db:
        config.database.path = args.db
    configure_structured_logging(config.log_level)

    try:
        return await COMMANDS[args.command](config, args)
    finally:
        await dispose_engines()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Order store management utilities",
        prog="python -m order_lifecycle.db",
    )
    parser.add_argument("--config", type=str, help="Path to JSON configuration file")
    parser.add_argument("--db", type=str, help="Database path (overrides configuration)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init", help="Create the database and any missing tables")

    reset_parser = subparsers.add_parser(
        "reset", help="Drop and recreate all tables (destroys data)"
    )
    reset_parser.add_argument(
        "--yes", action="store_true", help="Confirm the destructive reset"
    )

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Recompute customer order statistics from order history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report drift for every customer
  python -m order_lifecycle.db reconcile

  # Fix one customer's counters
  python -m order_lifecycle.db reconcile --customer 3f2a... --apply
        """,
    )
    reconcile_parser.add_argument("--customer", type=str, help="Only this customer id")
    reconcile_parser.add_argument(
        "--apply", action="store_true", help="Write the recomputed values"
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)
    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
