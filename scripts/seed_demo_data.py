#!/usr/bin/env python3
"""
Seed demo portal activity for the KPI dashboard.

Writes agents, requests, telemetry, task outcomes, collaboration samples,
risk assessments and adoption funnel events into the configured store
(DB_TYPE / DB_PATH / SQLITE_PATH), plus the default baselines.

Usage:
    python scripts/seed_demo_data.py --days 30 --users 40
    python scripts/seed_demo_data.py --db-type sqlite --db-path ./data/demo.sqlite3
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from portal_metrics.config import get_settings
from portal_metrics.demo import seed_demo_data
from portal_metrics.storage import DuckDBStorage, SQLiteStorage, get_storage
from portal_metrics.utils.logging import configure_logging

logger = structlog.get_logger()


def main():
    """Main entry point for demo seeding script."""
    parser = argparse.ArgumentParser(description="Seed demo activity for the portal KPI dashboard")
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Days of activity per window; two windows are generated (default: 30)",
    )
    parser.add_argument(
        "--users",
        type=int,
        default=40,
        help="Number of portal users (default: 40)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--db-type",
        type=str,
        choices=["duckdb", "sqlite"],
        default=None,
        help="Override the configured storage backend",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Override the database file path",
    )

    args = parser.parse_args()
    if args.days < 1 or args.users < 1:
        parser.error("--days and --users must be positive")

    configure_logging()
    settings = get_settings()

    db_type = args.db_type or settings.db_type
    if args.db_path:
        storage = SQLiteStorage(args.db_path) if db_type == "sqlite" else DuckDBStorage(args.db_path)
    elif args.db_type and args.db_type != settings.db_type:
        storage = SQLiteStorage(settings.sqlite_path) if db_type == "sqlite" else DuckDBStorage(settings.db_path)
    else:
        storage = get_storage()

    logger.info("demo_seeder_started", db_type=db_type, days=args.days, users=args.users, seed=args.seed)

    try:
        counts = seed_demo_data(storage, days=args.days, users=args.users, seed=args.seed)
    except Exception as e:
        logger.error("demo_seeding_failed", error=str(e), exc_info=True)
        print(f"\nSeeding failed: {e}\n")
        sys.exit(1)

    print("\n" + "=" * 40)
    print("DEMO DATA")
    print("=" * 40)
    for kind, count in counts.items():
        print(f"  {kind:<16} {count:>8}")
    print("=" * 40 + "\n")


if __name__ == "__main__":
    main()
