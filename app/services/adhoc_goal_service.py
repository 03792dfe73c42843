"""Adhoc goal service - week-scoped goals outside the quarterly hierarchy."""
import logging
from datetime import datetime

from app.errors import InvalidArgumentError, NotFoundError
from app.models.adhoc_goal import (
    AdhocGoal,
    AdhocGoalCreate,
    AdhocGoalUpdate,
    AdhocWeek,
    AdhocWeekMoveResult,
)
from app.models.goal import Period
from app.services.documents import get_owned_document
from app.utils.quarter import get_first_week_of_quarter, get_quarter_for_iso_week

logger = logging.getLogger(__name__)

ADHOC_DEPTH = -1


class AdhocGoalService:
    """Service for handling adhoc goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]

    def _doc_to_adhoc_goal(self, doc: dict) -> AdhocGoal:
        """Flatten an adhoc ``goals`` document into an AdhocGoal model."""
        adhoc = doc.get("adhoc", {})
        return AdhocGoal(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            year=doc["year"],
            quarter=doc["quarter"],
            title=doc["title"],
            details=doc.get("details"),
            domain_id=doc.get("domain_id"),
            week_number=adhoc["week_number"],
            day_of_week=adhoc.get("day_of_week"),
            due_date=adhoc.get("due_date"),
            is_complete=doc.get("is_complete", False),
            completed_at=doc.get("completed_at"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def _quarter_for_week(self, year: int, week_number: int) -> int:
        try:
            return get_quarter_for_iso_week(year, week_number)
        except ValueError:
            raise InvalidArgumentError(f"Week {week_number} does not exist in {year}")

    async def _get_owned_adhoc_doc(self, user_id: str, goal_id: str) -> dict:
        doc = await get_owned_document(self.goals, user_id, goal_id, label="adhoc goal")
        if doc.get("depth") != ADHOC_DEPTH:
            raise NotFoundError("Adhoc goal not found")
        return doc

    async def create_adhoc_goal(
        self,
        user_id: str,
        adhoc_create: AdhocGoalCreate,
    ) -> AdhocGoal:
        """
        Create a new adhoc goal.

        Args:
            user_id: User ID who owns the goal
            adhoc_create: Adhoc goal creation data

        Returns:
            Created adhoc goal

        Raises:
            InvalidArgumentError: If the title is blank or the week does not exist
        """
        title = adhoc_create.title.strip()
        if not title:
            raise InvalidArgumentError("Title cannot be empty")

        quarter = self._quarter_for_week(adhoc_create.year, adhoc_create.week_number)

        adhoc = {"week_number": adhoc_create.week_number}
        if adhoc_create.day_of_week is not None:
            adhoc["day_of_week"] = int(adhoc_create.day_of_week)
        if adhoc_create.due_date is not None:
            adhoc["due_date"] = adhoc_create.due_date

        now = datetime.utcnow()
        goal_doc = {
            "user_id": user_id,
            "year": adhoc_create.year,
            "quarter": quarter,
            "title": title,
            "in_path": "/",
            "depth": ADHOC_DEPTH,
            "adhoc": adhoc,
            "is_complete": False,
            "created_at": now,
            "updated_at": now,
        }
        if adhoc_create.details is not None:
            goal_doc["details"] = adhoc_create.details
        if adhoc_create.domain_id is not None:
            goal_doc["domain_id"] = adhoc_create.domain_id

        result = await self.goals.insert_one(goal_doc)
        goal_doc["_id"] = result.inserted_id
        return self._doc_to_adhoc_goal(goal_doc)

    async def list_adhoc_goals_for_week(
        self,
        user_id: str,
        year: int,
        week_number: int,
    ) -> list[AdhocGoal]:
        """List the user's adhoc goals for one ISO week."""
        docs = await self.goals.find({
            "user_id": user_id,
            "depth": ADHOC_DEPTH,
            "year": year,
            "adhoc.week_number": week_number,
        }).to_list(length=None)
        return [self._doc_to_adhoc_goal(doc) for doc in docs]

    async def get_adhoc_goal(self, user_id: str, goal_id: str) -> AdhocGoal:
        """
        Get a single adhoc goal.

        Raises:
            NotFoundError: If the goal does not exist or is not adhoc
            ForbiddenError: If the goal belongs to another user
        """
        doc = await self._get_owned_adhoc_doc(user_id, goal_id)
        return self._doc_to_adhoc_goal(doc)

    async def update_adhoc_goal(
        self,
        user_id: str,
        goal_id: str,
        adhoc_update: AdhocGoalUpdate,
    ) -> AdhocGoal:
        """
        Update an adhoc goal.

        Changing ``week_number`` keeps the week-year and recomputes the
        quarter. Completing stamps ``completed_at``; reopening clears it.

        Raises:
            NotFoundError: If the goal does not exist or is not adhoc
            ForbiddenError: If the goal belongs to another user
            InvalidArgumentError: If the new title is blank or the week does not exist
        """
        existing = await self._get_owned_adhoc_doc(user_id, goal_id)

        now = datetime.utcnow()
        set_doc = {"updated_at": now}
        unset_doc = {}

        if adhoc_update.title is not None:
            title = adhoc_update.title.strip()
            if not title:
                raise InvalidArgumentError("Title cannot be empty")
            set_doc["title"] = title
        if adhoc_update.details is not None:
            set_doc["details"] = adhoc_update.details
        if adhoc_update.domain_id is not None:
            set_doc["domain_id"] = adhoc_update.domain_id
        if adhoc_update.week_number is not None:
            set_doc["quarter"] = self._quarter_for_week(existing["year"], adhoc_update.week_number)
            set_doc["adhoc.week_number"] = adhoc_update.week_number
        if adhoc_update.day_of_week is not None:
            set_doc["adhoc.day_of_week"] = int(adhoc_update.day_of_week)
        if adhoc_update.due_date is not None:
            set_doc["adhoc.due_date"] = adhoc_update.due_date
        if adhoc_update.is_complete is not None:
            set_doc["is_complete"] = adhoc_update.is_complete
            if adhoc_update.is_complete:
                set_doc["completed_at"] = now
            else:
                unset_doc["completed_at"] = ""

        update = {"$set": set_doc}
        if unset_doc:
            update["$unset"] = unset_doc

        updated_doc = await self.goals.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            update,
            return_document=True,
        )
        return self._doc_to_adhoc_goal(updated_doc)

    async def delete_adhoc_goal(self, user_id: str, goal_id: str) -> dict:
        """
        Delete an adhoc goal.

        Returns:
            Dictionary with deleted_count
        """
        existing = await self._get_owned_adhoc_doc(user_id, goal_id)
        result = await self.goals.delete_one({"_id": existing["_id"]})
        return {"deleted_count": result.deleted_count}

    async def list_incomplete_for_quarter(self, user_id: str, period: Period) -> list[AdhocGoal]:
        """List the user's open adhoc goals of a quarter."""
        docs = await self.goals.find({
            "user_id": user_id,
            "depth": ADHOC_DEPTH,
            "year": period.year,
            "quarter": period.quarter,
            "is_complete": False,
        }).to_list(length=None)
        return [self._doc_to_adhoc_goal(doc) for doc in docs]

    async def move_to_quarter(self, user_id: str, goal_id: str, destination: Period) -> bool:
        """
        Relocate an adhoc goal to the first ISO week of a quarter.

        Returns:
            True if the goal was moved
        """
        first_week = get_first_week_of_quarter(destination.year, destination.quarter)
        existing = await self._get_owned_adhoc_doc(user_id, goal_id)
        result = await self.goals.update_one(
            {"_id": existing["_id"], "user_id": user_id},
            {
                "$set": {
                    "year": first_week.year,
                    "quarter": destination.quarter,
                    "adhoc.week_number": first_week.week_number,
                    "updated_at": datetime.utcnow(),
                }
            },
        )
        logger.debug(
            "Moved adhoc goal %s to %s-W%s",
            goal_id,
            first_week.year,
            first_week.week_number,
        )
        return result.modified_count > 0

    async def move_incomplete_from_week(
        self,
        user_id: str,
        source: AdhocWeek,
        destination: AdhocWeek,
        dry_run: bool = True,
    ) -> AdhocWeekMoveResult:
        """
        Preview or commit moving the open adhoc goals of one week to another.

        Moved goals take the destination week-year, week number and quarter
        and keep their day and due date.

        Args:
            user_id: Owner of the goals
            source: Week to move from
            destination: Week to move to
            dry_run: When True, list the goals without writing

        Returns:
            AdhocWeekMoveResult with the goals and, for commits, the count moved

        Raises:
            InvalidArgumentError: If a week does not exist or both weeks are the same
        """
        self._quarter_for_week(source.year, source.week_number)
        destination_quarter = self._quarter_for_week(destination.year, destination.week_number)
        if source == destination:
            raise InvalidArgumentError("Cannot move goals to the same week")

        docs = await self.goals.find({
            "user_id": user_id,
            "depth": ADHOC_DEPTH,
            "year": source.year,
            "adhoc.week_number": source.week_number,
            "is_complete": False,
        }).to_list(length=None)

        result = AdhocWeekMoveResult(
            source=source,
            destination=destination,
            dry_run=dry_run,
            can_move=bool(docs),
            goals=[self._doc_to_adhoc_goal(doc) for doc in docs],
        )
        if dry_run or not docs:
            return result

        update = await self.goals.update_many(
            {"_id": {"$in": [doc["_id"] for doc in docs]}, "user_id": user_id},
            {
                "$set": {
                    "year": destination.year,
                    "quarter": destination_quarter,
                    "adhoc.week_number": destination.week_number,
                    "updated_at": datetime.utcnow(),
                }
            },
        )
        result.goals_moved = update.modified_count
        logger.info(
            "Moved %d adhoc goals from %s-W%s to %s-W%s",
            result.goals_moved,
            source.year,
            source.week_number,
            destination.year,
            destination.week_number,
        )
        return result
