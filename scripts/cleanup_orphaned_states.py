"""Find and delete week state rows whose goal no longer exists.

Usage:
    python scripts/cleanup_orphaned_states.py \\
        --mongodb-url mongodb://localhost:27017 [--user-id <user-id>] [--commit]
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient


async def find_orphaned_states(db, user_id: Optional[str] = None) -> list[dict]:
    """
    List ``goal_state_by_week`` rows that point at a missing goal.

    Args:
        db: Database handle
        user_id: Restrict the scan to one user

    Returns:
        The orphaned state documents
    """
    query = {"user_id": user_id} if user_id else {}
    states = await db["goal_state_by_week"].find(query).to_list(length=None)

    goal_ids = {state["goal_id"] for state in states if ObjectId.is_valid(state["goal_id"])}
    goals = await db["goals"].find(
        {"_id": {"$in": [ObjectId(goal_id) for goal_id in goal_ids]}}
    ).to_list(length=None)
    existing = {str(goal["_id"]) for goal in goals}

    return [state for state in states if state["goal_id"] not in existing]


async def delete_orphaned_states(db, orphaned_states: list[dict]) -> int:
    """Delete the given state rows and return how many were removed."""
    if not orphaned_states:
        return 0
    result = await db["goal_state_by_week"].delete_many(
        {"_id": {"$in": [state["_id"] for state in orphaned_states]}}
    )
    return result.deleted_count


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Remove week state rows of deleted goals")
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
        help="Only scan this user's state rows",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Delete the orphaned rows (default only lists them)",
    )

    args = parser.parse_args()

    client = AsyncIOMotorClient(args.mongodb_url)
    try:
        db = client[args.db_name]
        orphaned = await find_orphaned_states(db, user_id=args.user_id)
        for state in orphaned:
            print(
                f"{state['_id']}  goal={state['goal_id']}  "
                f"Q{state['quarter']} {state['year']} week {state['week_number']}"
            )
        print(f"Found {len(orphaned)} orphaned state rows")

        if args.commit:
            deleted = await delete_orphaned_states(db, orphaned)
            print(f"Deleted {deleted} orphaned state rows")
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
