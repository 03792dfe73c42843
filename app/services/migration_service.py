"""Migration service - carry goals from one quarter into another."""
import logging
from typing import Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from app.errors import GoalServiceError, InvalidArgumentError, NotFoundError
from app.models.goal import Goal, GoalDepth, Period
from app.models.goal_state import DayOfWeek
from app.models.migration import (
    AdhocGoalPreview,
    GoalPullPreview,
    MaxWeekResult,
    MigrationFailure,
    MigrationResult,
    PullPreviewChild,
    QuarterlyGoalMigrationResult,
    QuarterlyGoalPreview,
)
from app.services.adhoc_goal_service import AdhocGoalService
from app.services.carry_over import create_goal_state, create_goal_with_carry_over
from app.services.documents import doc_to_goal, get_owned_document
from app.services.lineage import deduplicate_by_root_goal_id, get_root_goal_id
from app.services.week_scanner import (
    find_max_week_for_quarterly_goal,
    find_max_weeks_for_quarterly_goals,
)
from app.utils.path import join_path
from app.utils.quarter import (
    get_final_weeks_of_quarter,
    get_first_week_of_quarter,
    get_quarter_weeks,
)

logger = logging.getLogger(__name__)


def _describe(period: Period) -> str:
    return f"Q{period.quarter} {period.year}"


class MigrationService:
    """Service for previewing and committing quarter-to-quarter migrations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.states = db["goal_state_by_week"]
        self.adhoc_goals = AdhocGoalService(db)

    async def _build_existing_goals_map(
        self,
        user_id: str,
        period: Period,
        depth: GoalDepth,
    ) -> dict[str, Goal]:
        """Map root goal id to the goal already present in a period at a depth."""
        docs = await self.goals.find({
            "user_id": user_id,
            "year": period.year,
            "quarter": period.quarter,
            "depth": int(depth),
        }).to_list(length=None)

        existing: dict[str, Goal] = {}
        for doc in docs:
            goal = doc_to_goal(doc)
            existing.setdefault(get_root_goal_id(goal), goal)
        return existing

    async def _list_quarterly_candidates(
        self,
        user_id: str,
        source: Period,
    ) -> list[QuarterlyGoalPreview]:
        """
        List the open quarterly goals of a quarter, one per carry-over chain.

        Goals are read newest first so the most recent instance of each chain
        is the one kept. Stars and pins come from the quarter's final week.
        """
        docs = await self.goals.find({
            "user_id": user_id,
            "year": source.year,
            "quarter": source.quarter,
            "depth": int(GoalDepth.QUARTERLY),
            "is_complete": False,
        }).sort("created_at", DESCENDING).to_list(length=None)

        goals = deduplicate_by_root_goal_id([doc_to_goal(doc) for doc in docs])
        if not goals:
            return []

        final_week = max(week.week_number for week in get_final_weeks_of_quarter(source.year, source.quarter))
        state_docs = await self.states.find({
            "user_id": user_id,
            "year": source.year,
            "quarter": source.quarter,
            "week_number": final_week,
            "goal_id": {"$in": [goal.id for goal in goals]},
        }).sort("created_at", ASCENDING).to_list(length=None)
        # Later rows win when a goal has more than one state in the week
        final_state_by_goal = {doc["goal_id"]: doc for doc in state_docs}

        max_weeks = await find_max_weeks_for_quarterly_goals(
            self.db, user_id, [goal.id for goal in goals], source
        )

        previews = []
        for goal in goals:
            state = final_state_by_goal.get(goal.id, {})
            max_week = max_weeks[goal.id]
            previews.append(QuarterlyGoalPreview(
                id=goal.id,
                title=goal.title,
                details=goal.details,
                is_starred=state.get("is_starred", False),
                is_pinned=state.get("is_pinned", False),
                last_active_week=max_week.max_week,
            ))
        return previews

    async def _collect_last_week_children(
        self,
        user_id: str,
        quarterly_goal_id: str,
        period: Period,
        max_week: MaxWeekResult,
    ) -> tuple[list[Goal], list[Goal], dict[str, dict]]:
        """
        Collect the open weekly and daily goals of a quarterly goal's last active week.

        Returns:
            Tuple of (weekly goals, daily goals, daily state documents by goal id)
        """
        if max_week.max_week is None:
            return [], [], {}

        weekly_docs = await self.goals.find({
            "user_id": user_id,
            "year": period.year,
            "quarter": period.quarter,
            "parent_id": quarterly_goal_id,
            "depth": int(GoalDepth.WEEKLY),
        }).to_list(length=None)
        weekly_goals = [
            doc_to_goal(doc)
            for doc in weekly_docs
            if str(doc["_id"]) in max_week.child_ids_in_max_week and not doc.get("is_complete")
        ]
        if not weekly_goals:
            return [], [], {}

        daily_docs = await self.goals.find({
            "user_id": user_id,
            "year": period.year,
            "quarter": period.quarter,
            "depth": int(GoalDepth.DAILY),
            "parent_id": {"$in": [goal.id for goal in weekly_goals]},
        }).to_list(length=None)
        if not daily_docs:
            return weekly_goals, [], {}

        daily_state_docs = await self.states.find({
            "user_id": user_id,
            "year": period.year,
            "quarter": period.quarter,
            "week_number": max_week.max_week,
            "goal_id": {"$in": [str(doc["_id"]) for doc in daily_docs]},
        }).to_list(length=None)
        daily_state_by_goal = {doc["goal_id"]: doc for doc in daily_state_docs}

        daily_goals = [
            doc_to_goal(doc)
            for doc in daily_docs
            if str(doc["_id"]) in daily_state_by_goal and not doc.get("is_complete")
        ]
        return weekly_goals, daily_goals, daily_state_by_goal

    async def preview_or_commit_migration(
        self,
        user_id: str,
        source: Period,
        destination: Period,
        dry_run: bool = True,
        include_children: bool = False,
        selected_quarterly_goal_ids: Optional[list[str]] = None,
        selected_adhoc_goal_ids: Optional[list[str]] = None,
    ) -> MigrationResult:
        """
        Preview or commit pulling open goals from one quarter into another.

        A dry run only reads. A commit carries each quarterly candidate over
        in its own sequential unit and relocates the adhoc candidates to the
        first week of the destination quarter. A failure on one goal is
        recorded and the remaining goals are still processed.

        Args:
            user_id: Owner of the goals
            source: Quarter to pull from
            destination: Quarter to pull into
            dry_run: When True, return the candidates without writing
            include_children: Also carry over open weekly and daily goals of
                each quarterly goal's last active week
            selected_quarterly_goal_ids: Restrict quarterly candidates to these ids
            selected_adhoc_goal_ids: Restrict adhoc candidates to these ids

        Returns:
            MigrationResult with the candidates and, for commits, the outcomes

        Raises:
            InvalidArgumentError: If source and destination are the same quarter
            StructuralFaultError: If stored goal data is corrupt
        """
        if source == destination:
            raise InvalidArgumentError("Cannot move goals to the same quarter")

        logger.info(
            "%s goals from %s to %s for user %s",
            "Previewing" if dry_run else "Migrating",
            _describe(source),
            _describe(destination),
            user_id,
        )

        quarterly_previews = await self._list_quarterly_candidates(user_id, source)
        adhoc_goals = await self.adhoc_goals.list_incomplete_for_quarter(user_id, source)

        if selected_quarterly_goal_ids is not None:
            selected = set(selected_quarterly_goal_ids)
            quarterly_previews = [p for p in quarterly_previews if p.id in selected]
        if selected_adhoc_goal_ids is not None:
            selected = set(selected_adhoc_goal_ids)
            adhoc_goals = [g for g in adhoc_goals if g.id in selected]

        result = MigrationResult(
            source=source,
            destination=destination,
            dry_run=dry_run,
            quarterly_goals_to_copy=quarterly_previews,
            adhoc_goals_to_copy=[
                AdhocGoalPreview(
                    id=goal.id,
                    title=goal.title,
                    details=goal.details,
                    domain_id=goal.domain_id,
                    week_number=goal.week_number,
                    day_of_week=goal.day_of_week,
                    due_date=goal.due_date,
                )
                for goal in adhoc_goals
            ],
        )
        logger.info(
            "Found %d quarterly and %d adhoc goals to migrate",
            len(quarterly_previews),
            len(adhoc_goals),
        )

        if dry_run:
            return result

        for preview in quarterly_previews:
            try:
                outcome = await self.move_quarterly_goal(
                    user_id=user_id,
                    goal_id=preview.id,
                    source=source,
                    destination=destination,
                    include_children=include_children,
                )
                result.results.append(outcome)
            except GoalServiceError as e:
                logger.exception("Failed to migrate goal %s", preview.id)
                result.failures.append(
                    MigrationFailure(source_goal_id=preview.id, code=e.code, message=e.message)
                )
            except PyMongoError as e:
                logger.exception("Failed to migrate goal %s", preview.id)
                result.failures.append(
                    MigrationFailure(source_goal_id=preview.id, code="DATABASE_ERROR", message=str(e))
                )

        for goal in adhoc_goals:
            try:
                if await self.adhoc_goals.move_to_quarter(user_id, goal.id, destination):
                    result.adhoc_goals_moved += 1
            except GoalServiceError as e:
                logger.exception("Failed to move adhoc goal %s", goal.id)
                result.failures.append(
                    MigrationFailure(source_goal_id=goal.id, code=e.code, message=e.message)
                )
            except PyMongoError as e:
                logger.exception("Failed to move adhoc goal %s", goal.id)
                result.failures.append(
                    MigrationFailure(source_goal_id=goal.id, code="DATABASE_ERROR", message=str(e))
                )

        result.quarterly_goals_copied = len(result.results)
        logger.info(
            "Migration to %s finished: %d quarterly goals copied, %d adhoc goals moved, %d failures",
            _describe(destination),
            result.quarterly_goals_copied,
            result.adhoc_goals_moved,
            len(result.failures),
        )
        return result

    async def move_quarterly_goal(
        self,
        user_id: str,
        goal_id: str,
        source: Period,
        destination: Period,
        include_children: bool = True,
    ) -> QuarterlyGoalMigrationResult:
        """
        Carry one quarterly goal into another quarter.

        If the destination already holds a goal of the same carry-over chain
        it is reused, which makes a retried migration a no-op for this goal.
        Otherwise a copy is created together with a state row in the first
        week of the destination quarter, keeping the star and pin the source
        goal had in its last active week.

        Args:
            user_id: Owner of the goal
            goal_id: Quarterly goal to carry over
            source: Quarter the goal belongs to
            destination: Quarter to carry it into
            include_children: Also carry over the open weekly and daily goals
                of the last active week

        Returns:
            QuarterlyGoalMigrationResult with the new (or reused) goal id and
            child counts

        Raises:
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
            InvalidArgumentError: If the goal is not quarterly, is not in the
                source quarter, or source and destination are the same
        """
        if source == destination:
            raise InvalidArgumentError("Cannot move goals to the same quarter")

        doc = await get_owned_document(self.goals, user_id, goal_id)
        if doc["depth"] != GoalDepth.QUARTERLY:
            raise InvalidArgumentError("Only quarterly goals can be moved")
        if doc["year"] != source.year or doc["quarter"] != source.quarter:
            raise InvalidArgumentError("Goal does not belong to the specified source quarter")

        quarterly_goal = doc_to_goal(doc)
        max_week = await find_max_week_for_quarterly_goal(self.db, user_id, goal_id, source)
        if max_week.max_week is not None:
            last_active_week = max_week.max_week
        else:
            last_active_week = get_quarter_weeks(source.year, source.quarter).weeks[-1]

        first_week = get_first_week_of_quarter(destination.year, destination.quarter)
        root_goal_id = get_root_goal_id(quarterly_goal)
        existing_quarterly = await self._build_existing_goals_map(
            user_id, destination, GoalDepth.QUARTERLY
        )
        existing = existing_quarterly.get(root_goal_id)

        if existing is not None:
            new_goal_id = existing.id
            was_created = False
            logger.info(
                "Reusing quarterly goal %s in %s (root %s)",
                new_goal_id,
                _describe(destination),
                root_goal_id,
            )
        else:
            source_state = await self.states.find_one({
                "user_id": user_id,
                "goal_id": goal_id,
                "year": source.year,
                "quarter": source.quarter,
                "week_number": last_active_week,
            }) or {}

            new_goal_id = await create_goal_with_carry_over(
                self.goals,
                user_id=user_id,
                source=quarterly_goal,
                destination=destination,
                depth=GoalDepth.QUARTERLY,
                in_path="/",
            )
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=new_goal_id,
                year=destination.year,
                quarter=destination.quarter,
                week_number=first_week.week_number,
                is_starred=source_state.get("is_starred", False),
                is_pinned=source_state.get("is_pinned", False),
            )
            was_created = True

        result = QuarterlyGoalMigrationResult(
            source_goal_id=goal_id,
            new_goal_id=new_goal_id,
            quarterly_goal_was_created=was_created,
        )

        if include_children:
            await self._carry_over_children(
                user_id=user_id,
                quarterly_goal=quarterly_goal,
                new_quarterly_goal_id=new_goal_id,
                source=source,
                destination=destination,
                max_week=max_week,
                start_week=first_week.week_number,
                result=result,
            )

        return result

    async def _carry_over_children(
        self,
        user_id: str,
        quarterly_goal: Goal,
        new_quarterly_goal_id: str,
        source: Period,
        destination: Period,
        max_week: MaxWeekResult,
        start_week: int,
        result: QuarterlyGoalMigrationResult,
    ) -> None:
        weekly_goals, daily_goals, daily_state_by_goal = await self._collect_last_week_children(
            user_id, quarterly_goal.id, source, max_week
        )
        weekly_goals = deduplicate_by_root_goal_id(weekly_goals)
        if not weekly_goals:
            return

        existing_weekly = await self._build_existing_goals_map(user_id, destination, GoalDepth.WEEKLY)
        weekly_id_map: dict[str, str] = {}

        for weekly_goal in weekly_goals:
            root_goal_id = get_root_goal_id(weekly_goal)
            existing = existing_weekly.get(root_goal_id)

            if existing is not None and existing.parent_id == new_quarterly_goal_id:
                weekly_id_map[weekly_goal.id] = existing.id
                result.weekly_goals_reused += 1
                continue

            if existing is not None:
                logger.warning(
                    "Weekly goal with root %s exists under %s, expected %s; creating a new one",
                    root_goal_id,
                    existing.parent_id,
                    new_quarterly_goal_id,
                )

            new_weekly_id = await create_goal_with_carry_over(
                self.goals,
                user_id=user_id,
                source=weekly_goal,
                destination=destination,
                depth=GoalDepth.WEEKLY,
                in_path=join_path("/", new_quarterly_goal_id),
                parent_id=new_quarterly_goal_id,
            )
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=new_weekly_id,
                year=destination.year,
                quarter=destination.quarter,
                week_number=start_week,
            )
            weekly_id_map[weekly_goal.id] = new_weekly_id
            result.weekly_goals_migrated += 1

        if result.weekly_goals_reused:
            logger.info(
                "Weekly goals: %d created, %d reused",
                result.weekly_goals_migrated,
                result.weekly_goals_reused,
            )

        daily_goals = deduplicate_by_root_goal_id(daily_goals)
        if not daily_goals:
            return

        existing_daily = await self._build_existing_goals_map(user_id, destination, GoalDepth.DAILY)

        for daily_goal in daily_goals:
            new_weekly_id = weekly_id_map.get(daily_goal.parent_id)
            if new_weekly_id is None:
                logger.warning(
                    "Skipping daily goal %s: parent %s was not carried over",
                    daily_goal.id,
                    daily_goal.parent_id,
                )
                continue

            root_goal_id = get_root_goal_id(daily_goal)
            existing = existing_daily.get(root_goal_id)

            if existing is not None and existing.parent_id == new_weekly_id:
                result.daily_goals_reused += 1
                continue

            if existing is not None:
                logger.warning(
                    "Daily goal with root %s exists under %s, expected %s; creating a new one",
                    root_goal_id,
                    existing.parent_id,
                    new_weekly_id,
                )

            new_daily_id = await create_goal_with_carry_over(
                self.goals,
                user_id=user_id,
                source=daily_goal,
                destination=destination,
                depth=GoalDepth.DAILY,
                in_path=join_path("/", new_quarterly_goal_id, new_weekly_id),
                parent_id=new_weekly_id,
            )
            daily = daily_state_by_goal[daily_goal.id].get("daily") or {
                "day_of_week": int(DayOfWeek.MONDAY)
            }
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=new_daily_id,
                year=destination.year,
                quarter=destination.quarter,
                week_number=start_week,
                daily=daily,
            )
            result.daily_goals_migrated += 1

        if result.daily_goals_reused:
            logger.info(
                "Daily goals: %d created, %d reused",
                result.daily_goals_migrated,
                result.daily_goals_reused,
            )

    async def get_goal_pull_preview(
        self,
        user_id: str,
        goal_id: str,
        period: Period,
    ) -> GoalPullPreview:
        """
        Show what pulling a quarterly goal forward would bring along.

        Only the open weekly goals of the goal's last active week are listed,
        each with its open daily goals that have a state row in that week.

        Raises:
            NotFoundError: If the goal does not exist or is not in the period
            ForbiddenError: If the goal belongs to another user
            InvalidArgumentError: If the goal is not quarterly
        """
        doc = await get_owned_document(self.goals, user_id, goal_id)
        if doc["depth"] != GoalDepth.QUARTERLY:
            raise InvalidArgumentError("Only quarterly goals can be pulled")
        if doc["year"] != period.year or doc["quarter"] != period.quarter:
            raise NotFoundError("Goal not found in the specified quarter")

        goal = doc_to_goal(doc)
        latest_states = await self.states.find({
            "user_id": user_id,
            "goal_id": goal_id,
            "year": period.year,
            "quarter": period.quarter,
        }).sort("week_number", DESCENDING).to_list(length=1)
        latest_state = latest_states[0] if latest_states else {}

        max_week = await find_max_week_for_quarterly_goal(self.db, user_id, goal_id, period)
        weekly_goals, daily_goals, _ = await self._collect_last_week_children(
            user_id, goal_id, period, max_week
        )

        daily_by_parent: dict[str, list[PullPreviewChild]] = {}
        for daily_goal in daily_goals:
            daily_by_parent.setdefault(daily_goal.parent_id, []).append(
                PullPreviewChild(
                    id=daily_goal.id,
                    title=daily_goal.title,
                    details=daily_goal.details,
                    depth=int(daily_goal.depth),
                    is_complete=daily_goal.is_complete,
                )
            )

        return GoalPullPreview(
            id=goal.id,
            title=goal.title,
            details=goal.details,
            year=goal.year,
            quarter=goal.quarter,
            is_complete=goal.is_complete,
            is_starred=latest_state.get("is_starred", False),
            is_pinned=latest_state.get("is_pinned", False),
            last_non_empty_week=max_week.max_week,
            children=[
                PullPreviewChild(
                    id=weekly_goal.id,
                    title=weekly_goal.title,
                    details=weekly_goal.details,
                    depth=int(weekly_goal.depth),
                    is_complete=weekly_goal.is_complete,
                    children=daily_by_parent.get(weekly_goal.id, []),
                )
                for weekly_goal in weekly_goals
            ],
        )
