"""Pull a user's open goals from one quarter into another.

Previews by default; pass --commit to write.

Usage:
    python scripts/pull_goals.py \\
        --mongodb-url mongodb://localhost:27017 \\
        --user-id <user-id> \\
        --from 2025-Q1 --to 2025-Q2 [--commit] [--include-children]
"""
import argparse
import asyncio
import re
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient
from app.logging_config import setup_logging
from app.models.goal import Period
from app.models.migration import MigrationResult
from app.services.migration_service import MigrationService

_PERIOD = re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE)


def parse_period(value: str) -> Period:
    """Parse ``YYYY-Qn`` into a Period."""
    match = _PERIOD.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"Expected YYYY-Qn, got {value!r}")
    return Period(year=int(match.group(1)), quarter=int(match.group(2)))


def print_summary(result: MigrationResult) -> None:
    """Print what a migration found or did."""
    source = f"Q{result.source.quarter} {result.source.year}"
    destination = f"Q{result.destination.quarter} {result.destination.year}"
    print(f"\n=== {'Preview' if result.dry_run else 'Migration'}: {source} -> {destination} ===")

    print(f"Quarterly goals: {len(result.quarterly_goals_to_copy)}")
    for preview in result.quarterly_goals_to_copy:
        flags = "".join([
            "*" if preview.is_starred else "",
            "^" if preview.is_pinned else "",
        ])
        week = preview.last_active_week if preview.last_active_week is not None else "-"
        print(f"  {preview.id}  {preview.title} {flags}(last active week: {week})")

    print(f"Adhoc goals: {len(result.adhoc_goals_to_copy)}")
    for preview in result.adhoc_goals_to_copy:
        print(f"  {preview.id}  {preview.title} (week {preview.week_number})")

    if result.dry_run:
        return

    print(f"Quarterly goals copied: {result.quarterly_goals_copied}")
    for outcome in result.results:
        action = "created" if outcome.quarterly_goal_was_created else "reused"
        print(
            f"  {outcome.source_goal_id} -> {outcome.new_goal_id} ({action}; "
            f"weekly {outcome.weekly_goals_migrated}+{outcome.weekly_goals_reused} reused, "
            f"daily {outcome.daily_goals_migrated}+{outcome.daily_goals_reused} reused)"
        )
    print(f"Adhoc goals moved: {result.adhoc_goals_moved}")
    print(f"Failures: {len(result.failures)}")
    for failure in result.failures:
        print(f"  {failure.source_goal_id}: [{failure.code}] {failure.message}")


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Pull open goals from one quarter into another")
    parser.add_argument(
        "--mongodb-url",
        default="mongodb://localhost:27017",
        help="MongoDB connection URL",
    )
    parser.add_argument(
        "--db-name",
        default="goal_planner",
        help="MongoDB database name",
    )
    parser.add_argument(
        "--user-id",
        required=True,
        help="Owner of the goals",
    )
    parser.add_argument(
        "--from",
        dest="source",
        required=True,
        type=parse_period,
        help="Source quarter, e.g. 2025-Q1",
    )
    parser.add_argument(
        "--to",
        dest="destination",
        required=True,
        type=parse_period,
        help="Destination quarter, e.g. 2025-Q2",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Write the migration (default is a dry run)",
    )
    parser.add_argument(
        "--include-children",
        action="store_true",
        help="Also pull open weekly and daily goals of each goal's last active week",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    client = AsyncIOMotorClient(args.mongodb_url)
    try:
        service = MigrationService(client[args.db_name])
        result = await service.preview_or_commit_migration(
            user_id=args.user_id,
            source=args.source,
            destination=args.destination,
            dry_run=not args.commit,
            include_children=args.include_children,
        )
        print_summary(result)
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
