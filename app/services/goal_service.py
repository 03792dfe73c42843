"""Goal service - business logic for the quarterly/weekly/daily hierarchy."""
import logging
from datetime import datetime
from typing import Optional

from app.errors import InvalidArgumentError, NotFoundError, StructuralFaultError
from app.models.goal import (
    Goal,
    GoalCompletionUpdate,
    GoalCreate,
    GoalDeletionResult,
    GoalDepth,
    GoalNode,
    GoalUpdate,
    Period,
)
from app.models.migration import MaxWeekResult
from app.services.carry_over import create_goal_state, create_goal_with_carry_over
from app.services.documents import doc_to_goal, doc_to_state, get_owned_document
from app.services.goal_tree import build_goal_tree
from app.services.lineage import get_root_goal_id
from app.services.week_scanner import find_max_week_for_quarterly_goal
from app.utils.ids import to_object_id
from app.utils.path import get_next_path, join_path, validate_goal_path
from app.utils.quarter import get_quarter_weeks

logger = logging.getLogger(__name__)


class GoalService:
    """Service for handling goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.states = db["goal_state_by_week"]

    async def _get_owned_goal_doc(self, user_id: str, goal_id: str) -> dict:
        doc = await get_owned_document(self.goals, user_id, goal_id)
        if doc.get("depth", -1) < GoalDepth.QUARTERLY:
            raise NotFoundError("Goal not found")
        return doc

    async def create_goal(
        self,
        user_id: str,
        goal_create: GoalCreate,
    ) -> Goal:
        """
        Create a new goal.

        Without a parent the goal is quarterly and gets a state row for every
        week of its quarter. Under a quarterly parent it is weekly and gets a
        state row for ``week_number``. Under a weekly parent it is daily and
        its state row carries the day assignment.

        Args:
            user_id: User ID who owns the goal
            goal_create: Goal creation data

        Returns:
            Created goal object

        Raises:
            InvalidArgumentError: If required fields are missing or the parent
                cannot hold children
            NotFoundError: If the parent does not exist
            ForbiddenError: If the parent belongs to another user
        """
        title = goal_create.title.strip()
        if not title:
            raise InvalidArgumentError("Title cannot be empty")

        daily = None
        if goal_create.parent_id is None:
            if goal_create.year is None or goal_create.quarter is None:
                raise InvalidArgumentError("Quarterly goals require year and quarter")
            year, quarter = goal_create.year, goal_create.quarter
            depth = GoalDepth.QUARTERLY
            in_path = "/"
            parent_id = None
        else:
            parent = await self._get_owned_goal_doc(user_id, goal_create.parent_id)
            if parent["depth"] == GoalDepth.DAILY:
                raise InvalidArgumentError("Daily goals cannot have children")

            year, quarter = parent["year"], parent["quarter"]
            depth = GoalDepth(parent["depth"] + 1)
            in_path = join_path(parent["in_path"], str(parent["_id"]))
            parent_id = goal_create.parent_id

            if depth == GoalDepth.DAILY:
                if goal_create.day_of_week is None:
                    raise InvalidArgumentError("Daily goals require day_of_week")
                daily = {"day_of_week": int(goal_create.day_of_week)}
                if goal_create.date_timestamp is not None:
                    daily["date_timestamp"] = goal_create.date_timestamp

        if not validate_goal_path(depth, in_path):
            raise StructuralFaultError(f"Invalid path {in_path!r} for depth {int(depth)}")

        quarter_weeks = get_quarter_weeks(year, quarter).weeks
        if goal_create.week_number not in quarter_weeks:
            raise InvalidArgumentError(
                f"Week {goal_create.week_number} is not part of Q{quarter} {year}"
            )

        now = datetime.utcnow()
        goal_doc = {
            "user_id": user_id,
            "year": year,
            "quarter": quarter,
            "title": title,
            "in_path": in_path,
            "depth": int(depth),
            "is_complete": False,
            "created_at": now,
            "updated_at": now,
        }
        if goal_create.details is not None:
            goal_doc["details"] = goal_create.details
        if parent_id is not None:
            goal_doc["parent_id"] = parent_id

        result = await self.goals.insert_one(goal_doc)
        goal_doc["_id"] = result.inserted_id
        goal_id = str(result.inserted_id)

        # Quarterly goals are tracked in every week of their quarter
        weeks = quarter_weeks if depth == GoalDepth.QUARTERLY else [goal_create.week_number]
        for week_number in weeks:
            is_requested_week = week_number == goal_create.week_number
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=goal_id,
                year=year,
                quarter=quarter,
                week_number=week_number,
                is_starred=goal_create.is_starred and is_requested_week,
                is_pinned=goal_create.is_pinned and is_requested_week,
                daily=daily,
            )

        return doc_to_goal(goal_doc)

    async def get_goal(self, user_id: str, goal_id: str) -> Goal:
        """
        Get a single goal.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
        """
        doc = await self._get_owned_goal_doc(user_id, goal_id)
        return doc_to_goal(doc)

    async def list_goals(
        self,
        user_id: str,
        year: int,
        quarter: int,
        depth: Optional[GoalDepth] = None,
    ) -> list[Goal]:
        """
        List a user's goals for a quarter.

        Args:
            user_id: User ID
            year: Calendar year
            quarter: Quarter (1-4)
            depth: Optional depth filter

        Returns:
            List of goals
        """
        query = {
            "user_id": user_id,
            "year": year,
            "quarter": quarter,
            "depth": int(depth) if depth is not None else {"$gte": int(GoalDepth.QUARTERLY)},
        }
        goal_docs = await self.goals.find(query).to_list(length=None)
        return [doc_to_goal(doc) for doc in goal_docs]

    async def update_goal(
        self,
        user_id: str,
        goal_id: str,
        goal_update: GoalUpdate,
    ) -> Goal:
        """
        Update a goal's title or details.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
            InvalidArgumentError: If the new title is blank
        """
        existing = await self._get_owned_goal_doc(user_id, goal_id)

        update_doc = {"updated_at": datetime.utcnow()}
        if goal_update.title is not None:
            title = goal_update.title.strip()
            if not title:
                raise InvalidArgumentError("Title cannot be empty")
            update_doc["title"] = title
        if goal_update.details is not None:
            update_doc["details"] = goal_update.details

        updated_doc = await self.goals.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )
        return doc_to_goal(updated_doc)

    async def set_goal_completion(
        self,
        user_id: str,
        goal_id: str,
        completion: GoalCompletionUpdate,
    ) -> Goal:
        """
        Complete or reopen a goal.

        ``completed_at`` is stamped on completion and removed on reopening.
        For weekly goals ``update_children`` applies the same change to their
        daily goals.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
        """
        existing = await self._get_owned_goal_doc(user_id, goal_id)

        now = datetime.utcnow()
        if completion.is_complete:
            update = {"$set": {"is_complete": True, "completed_at": now, "updated_at": now}}
        else:
            update = {
                "$set": {"is_complete": False, "updated_at": now},
                "$unset": {"completed_at": ""},
            }

        updated_doc = await self.goals.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            update,
            return_document=True,
        )

        if completion.update_children and existing["depth"] == GoalDepth.WEEKLY:
            result = await self.goals.update_many(
                {"user_id": user_id, "parent_id": goal_id, "depth": int(GoalDepth.DAILY)},
                update,
            )
            logger.debug("Updated completion of %d daily goals under %s", result.modified_count, goal_id)

        return doc_to_goal(updated_doc)

    async def delete_goal(
        self,
        user_id: str,
        goal_id: str,
        dry_run: bool = False,
    ) -> GoalDeletionResult:
        """
        Delete a goal with all of its descendants and their week state.

        Descendants are found by materialized path prefix. A dry run deletes
        nothing and returns the affected subtree, each node listing the weeks
        it has state in.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
        """
        existing = await self._get_owned_goal_doc(user_id, goal_id)

        path = join_path(existing["in_path"], goal_id)
        descendant_docs = await self.goals.find({
            "user_id": user_id,
            "in_path": {"$gte": path, "$lt": get_next_path(path)},
        }).to_list(length=None)

        goal_docs = [existing] + descendant_docs
        goal_ids = [str(doc["_id"]) for doc in goal_docs]

        state_docs = await self.states.find({
            "user_id": user_id,
            "goal_id": {"$in": goal_ids},
        }).to_list(length=None)

        if dry_run:
            weeks_by_goal: dict[str, set[int]] = {}
            for doc in state_docs:
                weeks_by_goal.setdefault(doc["goal_id"], set()).add(doc["week_number"])

            def attach_weeks(node: GoalNode) -> GoalNode:
                node.weeks = sorted(weeks_by_goal.get(node.id, set()))
                return node

            tree = build_goal_tree([doc_to_goal(doc) for doc in goal_docs], attach=attach_weeks)
            return GoalDeletionResult(
                dry_run=True,
                goal_ids=goal_ids,
                deleted_goal_count=len(goal_ids),
                deleted_state_count=len(state_docs),
                preview=tree.index[goal_id],
            )

        state_result = await self.states.delete_many({"user_id": user_id, "goal_id": {"$in": goal_ids}})
        for name in ("fire_goals", "pending_goals"):
            await self.db[name].delete_many({"user_id": user_id, "goal_id": {"$in": goal_ids}})
        goal_result = await self.goals.delete_many({
            "user_id": user_id,
            "_id": {"$in": [doc["_id"] for doc in goal_docs]},
        })

        logger.info(
            "Deleted goal %s: %d goals, %d state rows",
            goal_id,
            goal_result.deleted_count,
            state_result.deleted_count,
        )
        return GoalDeletionResult(
            dry_run=False,
            goal_ids=goal_ids,
            deleted_goal_count=goal_result.deleted_count,
            deleted_state_count=state_result.deleted_count,
        )

    async def get_week_tree(
        self,
        user_id: str,
        year: int,
        quarter: int,
        week_number: int,
    ) -> list[GoalNode]:
        """
        Build the goal tree for one week of a quarter.

        All quarterly goals of the quarter are included; weekly and daily
        goals only when they have a state row in the week. Each node carries
        its state for the week.

        Returns:
            Quarterly goal nodes with nested children
        """
        state_docs = await self.states.find({
            "user_id": user_id,
            "year": year,
            "quarter": quarter,
            "week_number": week_number,
        }).to_list(length=None)
        state_by_goal = {doc["goal_id"]: doc_to_state(doc) for doc in state_docs}

        quarterly_docs = await self.goals.find({
            "user_id": user_id,
            "year": year,
            "quarter": quarter,
            "depth": int(GoalDepth.QUARTERLY),
        }).to_list(length=None)

        child_docs = []
        if state_by_goal:
            child_docs = await self.goals.find({
                "user_id": user_id,
                "year": year,
                "quarter": quarter,
                "depth": {"$in": [int(GoalDepth.WEEKLY), int(GoalDepth.DAILY)]},
                "_id": {"$in": [to_object_id(goal_id) for goal_id in state_by_goal]},
            }).to_list(length=None)

        def attach_state(node: GoalNode) -> GoalNode:
            node.state = state_by_goal.get(node.id)
            return node

        tree = build_goal_tree(
            [doc_to_goal(doc) for doc in quarterly_docs + child_docs],
            attach=attach_state,
        )
        if tree.orphans:
            logger.debug("Week %s tree has %d unattached goals", week_number, len(tree.orphans))
        return tree.roots

    async def create_carried_over_goal(
        self,
        user_id: str,
        source_goal_id: str,
        destination: Period,
        depth: GoalDepth,
        parent_id: Optional[str] = None,
        week_number: Optional[int] = None,
    ) -> Goal:
        """
        Carry a single goal over into another period.

        The copy is placed under ``parent_id``, which must be one of the
        caller's goals, one level above ``depth`` and in the destination
        quarter. Its path is derived from the parent. With ``week_number``
        the copy also gets a state row in that week.

        Args:
            user_id: Owner of the source goal
            source_goal_id: Goal to copy
            destination: Quarter the copy belongs to
            depth: Depth of the copy; must match the source goal
            parent_id: Parent of the copy (required for weekly and daily goals)
            week_number: Optional week of the destination quarter to track the copy in

        Returns:
            The created goal

        Raises:
            NotFoundError: If the source or parent goal does not exist
            ForbiddenError: If the source or parent goal belongs to another user
            InvalidArgumentError: If the depth, parent or week does not fit
        """
        source_doc = await self._get_owned_goal_doc(user_id, source_goal_id)
        if source_doc["depth"] != depth:
            raise InvalidArgumentError(
                f"Cannot carry a depth {source_doc['depth']} goal over as depth {int(depth)}"
            )

        if depth == GoalDepth.QUARTERLY:
            if parent_id is not None:
                raise InvalidArgumentError("Quarterly goals cannot have a parent")
            in_path = "/"
        else:
            if parent_id is None:
                raise InvalidArgumentError("Weekly and daily goals require a parent_id")
            parent = await self._get_owned_goal_doc(user_id, parent_id)
            if parent["depth"] != depth - 1:
                raise InvalidArgumentError(
                    f"Parent of a depth {int(depth)} goal must have depth {int(depth) - 1}"
                )
            if parent["year"] != destination.year or parent["quarter"] != destination.quarter:
                raise InvalidArgumentError("Parent goal is not in the destination quarter")
            in_path = join_path(parent["in_path"], parent_id)

        if week_number is not None and week_number not in get_quarter_weeks(
            destination.year, destination.quarter
        ).weeks:
            raise InvalidArgumentError(
                f"Week {week_number} is not part of Q{destination.quarter} {destination.year}"
            )

        new_goal_id = await create_goal_with_carry_over(
            self.goals,
            user_id=user_id,
            source=doc_to_goal(source_doc),
            destination=destination,
            depth=depth,
            in_path=in_path,
            parent_id=parent_id,
        )
        if week_number is not None:
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=new_goal_id,
                year=destination.year,
                quarter=destination.quarter,
                week_number=week_number,
            )

        new_doc = await self.goals.find_one({"_id": to_object_id(new_goal_id)})
        return doc_to_goal(new_doc)

    async def get_max_week(self, user_id: str, goal_id: str, period: Period) -> MaxWeekResult:
        """
        Find the last week in which a goal's weekly children have state.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
        """
        await self._get_owned_goal_doc(user_id, goal_id)
        return await find_max_week_for_quarterly_goal(self.db, user_id, goal_id, period)

    async def get_root_goal_id_for_goal(self, user_id: str, goal_id: str) -> str:
        """
        Get the root of a goal's carry-over chain.

        Raises:
            NotFoundError: If goal not found
            ForbiddenError: If goal belongs to another user
        """
        doc = await self._get_owned_goal_doc(user_id, goal_id)
        return get_root_goal_id(doc_to_goal(doc))
