"""Week migration service - pull open goals from one week or day into another."""
import logging
from typing import NamedTuple, Optional

from pymongo import ASCENDING, DESCENDING

from app.errors import InvalidArgumentError
from app.models.goal import Goal, GoalDepth, Period
from app.models.goal_state import DayOfWeek
from app.models.migration import (
    DailyGoalToMove,
    DayMigrationResult,
    QuarterlyGoalToUpdate,
    SkippedGoal,
    WeeklyGoalToCopy,
    WeekMigrationResult,
    WeekPeriod,
)
from app.services.carry_over import build_carry_over, create_goal_state, create_goal_with_carry_over
from app.services.documents import doc_to_goal
from app.services.lineage import (
    deduplicate_by_root_goal_id,
    get_root_goal_id,
    get_root_goal_id_from_document,
)
from app.utils.ids import to_object_id
from app.utils.path import join_path
from app.utils.quarter import get_previous_quarter, get_quarter_weeks

logger = logging.getLogger(__name__)

# One quarter back
LAST_NON_EMPTY_WEEK_SEARCH_LIMIT = 13


def _describe(week: WeekPeriod) -> str:
    return f"{week.year}-Q{week.quarter}-W{week.week_number}"


class WeeklyPlan(NamedTuple):
    """A weekly goal of the source week with the open daily goals it takes along."""

    goal: Goal
    daily_goals: list[Goal]


class WeekContent(NamedTuple):
    """What a week migration would pull out of one week."""

    weekly: list[WeeklyPlan]
    quarterly: list[tuple[Goal, dict]]
    skipped: list[SkippedGoal]
    parents: dict[str, Goal]
    state_by_goal: dict[str, dict]

    def is_empty(self) -> bool:
        return not self.weekly and not self.quarterly


class WeekMigrationService:
    """Service for previewing and committing week-to-week and day-to-day moves."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.states = db["goal_state_by_week"]

    def _validate_week(self, week: WeekPeriod) -> None:
        if week.week_number not in get_quarter_weeks(week.year, week.quarter).weeks:
            raise InvalidArgumentError(
                f"Week {week.week_number} is not part of Q{week.quarter} {week.year}"
            )

    async def _load_goals(self, user_id: str, goal_ids) -> dict[str, dict]:
        """Load the user's goal documents for a set of ids, keyed by id."""
        goal_ids = [goal_id for goal_id in goal_ids if goal_id]
        if not goal_ids:
            return {}
        docs = await self.goals.find({
            "_id": {"$in": [to_object_id(goal_id) for goal_id in goal_ids]},
            "user_id": user_id,
        }).to_list(length=None)
        return {str(doc["_id"]): doc for doc in docs}

    async def _load_week(self, user_id: str, week: WeekPeriod) -> tuple[dict[str, dict], dict[str, dict]]:
        """Return the state rows and goal documents of a week, both keyed by goal id."""
        state_docs = await self.states.find({
            "user_id": user_id,
            "year": week.year,
            "quarter": week.quarter,
            "week_number": week.week_number,
        }).sort("created_at", ASCENDING).to_list(length=None)
        # Later rows win when a goal has more than one state in the week
        state_by_goal = {doc["goal_id"]: doc for doc in state_docs}
        goal_by_id = await self._load_goals(user_id, state_by_goal)
        return state_by_goal, goal_by_id

    async def _collect_week(self, user_id: str, week: WeekPeriod) -> WeekContent:
        """
        Select what a migration would pull out of a week.

        A weekly goal is taken along with its open daily goals of the week.
        Weekly goals whose daily goals in the week are all complete are
        skipped, and so are completed weekly goals without daily goals.
        Quarterly goals starred or pinned in the week pass their flag on when
        they still have an open weekly goal in the week.
        """
        state_by_goal, goal_by_id = await self._load_week(user_id, week)

        weekly_goals = []
        daily_by_parent: dict[str, list[Goal]] = {}
        for doc in goal_by_id.values():
            if doc["depth"] == GoalDepth.WEEKLY:
                weekly_goals.append(doc_to_goal(doc))
            elif doc["depth"] == GoalDepth.DAILY:
                daily_by_parent.setdefault(doc.get("parent_id"), []).append(doc_to_goal(doc))

        weekly_goals.sort(key=lambda goal: goal.created_at, reverse=True)
        weekly_goals = deduplicate_by_root_goal_id(weekly_goals)

        parent_ids = {goal.parent_id for goal in weekly_goals}
        parent_docs = {goal_id: goal_by_id[goal_id] for goal_id in parent_ids if goal_id in goal_by_id}
        parent_docs.update(await self._load_goals(user_id, parent_ids - set(parent_docs)))
        parents = {
            goal_id: doc_to_goal(doc)
            for goal_id, doc in parent_docs.items()
            if doc["depth"] == GoalDepth.QUARTERLY
        }

        weekly = []
        skipped = []
        for goal in weekly_goals:
            children = daily_by_parent.get(goal.id, [])
            open_children = [child for child in children if not child.is_complete]
            if children and not open_children:
                skipped.append(SkippedGoal(
                    id=goal.id,
                    title=goal.title,
                    reason="no_open_children",
                    quarterly_goal_id=goal.parent_id,
                ))
                continue
            if not children and goal.is_complete:
                continue
            weekly.append(WeeklyPlan(goal=goal, daily_goals=open_children))

        open_weekly_parents = {goal.parent_id for goal in weekly_goals if not goal.is_complete}
        quarterly = []
        for goal_id, doc in goal_by_id.items():
            if doc["depth"] != GoalDepth.QUARTERLY or goal_id not in open_weekly_parents:
                continue
            state = state_by_goal[goal_id]
            if state.get("is_starred") or state.get("is_pinned"):
                quarterly.append((doc_to_goal(doc), state))

        return WeekContent(
            weekly=weekly,
            quarterly=quarterly,
            skipped=skipped,
            parents=parents,
            state_by_goal=state_by_goal,
        )

    async def _map_quarterly_goals(
        self,
        user_id: str,
        source: Period,
        destination: Period,
        goals: list[Goal],
    ) -> dict[str, str]:
        """
        Map source quarterly goal ids to the goal standing for them in the destination.

        Within one quarter every goal stands for itself. Across quarters the
        newest destination goal of the same carry-over chain is used; goals
        whose chain has not reached the destination are left out.
        """
        if source == destination:
            return {goal.id: goal.id for goal in goals}

        docs = await self.goals.find({
            "user_id": user_id,
            "year": destination.year,
            "quarter": destination.quarter,
            "depth": int(GoalDepth.QUARTERLY),
        }).sort("created_at", DESCENDING).to_list(length=None)

        by_root: dict[str, str] = {}
        for doc in docs:
            by_root.setdefault(get_root_goal_id_from_document(doc), str(doc["_id"]))

        mapping = {}
        for goal in goals:
            target_id = by_root.get(get_root_goal_id(goal))
            if target_id is not None:
                mapping[goal.id] = target_id
        return mapping

    async def _existing_in_week(self, user_id: str, week: WeekPeriod) -> dict[tuple[str, Optional[str]], str]:
        """Map (root goal id, parent id) to the goals that already have state in a week."""
        _, goal_by_id = await self._load_week(user_id, week)
        existing: dict[tuple[str, Optional[str]], str] = {}
        for goal_id, doc in goal_by_id.items():
            existing.setdefault((get_root_goal_id_from_document(doc), doc.get("parent_id")), goal_id)
        return existing

    @staticmethod
    def _daily_block(state: dict, day_of_week: Optional[DayOfWeek]) -> dict:
        """Day assignment for a daily goal copied into another week."""
        if day_of_week is None:
            day_of_week = (state.get("daily") or {}).get("day_of_week", DayOfWeek.MONDAY)
        return {"day_of_week": int(day_of_week)}

    async def _apply_quarterly_flags(
        self,
        user_id: str,
        update: QuarterlyGoalToUpdate,
        destination: WeekPeriod,
    ) -> None:
        """Copy a star or pin onto a quarterly goal's destination week; a star already there wins."""
        existing = await self.states.find_one({
            "user_id": user_id,
            "goal_id": update.id,
            "year": destination.year,
            "quarter": destination.quarter,
            "week_number": destination.week_number,
        })
        if existing is None:
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=update.id,
                year=destination.year,
                quarter=destination.quarter,
                week_number=destination.week_number,
                is_starred=update.is_starred,
                is_pinned=update.is_pinned,
            )
            return

        if existing.get("is_starred"):
            flags = {"is_starred": True, "is_pinned": False}
        else:
            flags = {"is_starred": update.is_starred, "is_pinned": update.is_pinned}
        await self.states.update_one({"_id": existing["_id"]}, {"$set": flags})

    async def preview_or_commit_week_migration(
        self,
        user_id: str,
        source: WeekPeriod,
        destination: WeekPeriod,
        dry_run: bool = True,
    ) -> WeekMigrationResult:
        """
        Preview or commit pulling the open goals of one week into another.

        Each selected weekly goal is carried over into the destination week
        together with its open daily goals, which land on
        ``destination.day_of_week`` when it is given and keep their day
        otherwise. Goals are copied, never re-parented. Stars and pins of
        quarterly goals with open work are copied to the destination week.

        A commit is safe to retry: a weekly goal of the same chain already in
        the destination week under the same quarterly goal is reused, and
        only its missing daily goals are created.

        Args:
            user_id: Owner of the goals
            source: Week to pull from
            destination: Week to pull into; may lie in a later quarter
            dry_run: When True, return the plan without writing

        Returns:
            WeekMigrationResult with the plan and, for commits, the counts

        Raises:
            InvalidArgumentError: If a week is not part of its quarter or the
                two weeks are the same
            StructuralFaultError: If stored goal data is corrupt
        """
        self._validate_week(source)
        self._validate_week(destination)
        if source.same_week(destination):
            raise InvalidArgumentError("Cannot move goals to the same week")

        logger.info(
            "%s goals from %s to %s for user %s",
            "Previewing" if dry_run else "Moving",
            _describe(source),
            _describe(destination),
            user_id,
        )

        content = await self._collect_week(user_id, source)
        quarterly_sources = list(content.parents.values()) + [goal for goal, _ in content.quarterly]
        quarterly_map = await self._map_quarterly_goals(
            user_id, source.period, destination.period, quarterly_sources
        )
        existing = await self._existing_in_week(user_id, destination)

        result = WeekMigrationResult(
            source=source,
            destination=destination,
            dry_run=dry_run,
            skipped_goals=list(content.skipped),
        )

        plans = []
        for plan in content.weekly:
            goal = plan.goal
            parent_id = quarterly_map.get(goal.parent_id)
            if parent_id is None:
                result.skipped_goals.append(SkippedGoal(
                    id=goal.id,
                    title=goal.title,
                    reason="not_in_destination_quarter",
                    daily_goals_count=len(plan.daily_goals),
                    quarterly_goal_id=goal.parent_id,
                ))
                continue

            existing_id = existing.get((get_root_goal_id(goal), parent_id))
            if existing_id is None:
                result.weekly_goals_to_copy.append(WeeklyGoalToCopy(
                    id=goal.id,
                    title=goal.title,
                    carry_over=build_carry_over(goal),
                    daily_goals_count=len(plan.daily_goals),
                    quarterly_goal_id=parent_id,
                ))
                daily_goals = plan.daily_goals
            else:
                result.skipped_goals.append(SkippedGoal(
                    id=goal.id,
                    title=goal.title,
                    reason="already_moved",
                    daily_goals_count=len(plan.daily_goals),
                    quarterly_goal_id=parent_id,
                ))
                daily_goals = [
                    daily_goal
                    for daily_goal in plan.daily_goals
                    if (get_root_goal_id(daily_goal), existing_id) not in existing
                ]

            parent = content.parents[goal.parent_id]
            for daily_goal in daily_goals:
                result.daily_goals_to_move.append(DailyGoalToMove(
                    id=daily_goal.id,
                    title=daily_goal.title,
                    details=daily_goal.details,
                    weekly_goal_id=goal.id,
                    weekly_goal_title=goal.title,
                    quarterly_goal_id=parent.id,
                    quarterly_goal_title=parent.title,
                ))
            plans.append((goal, parent_id, existing_id, daily_goals))

        for goal, state in content.quarterly:
            target_id = quarterly_map.get(goal.id)
            if target_id is None:
                result.skipped_goals.append(SkippedGoal(
                    id=goal.id,
                    title=goal.title,
                    reason="not_in_destination_quarter",
                ))
                continue
            is_starred = state.get("is_starred", False)
            result.quarterly_goals_to_update.append(QuarterlyGoalToUpdate(
                id=target_id,
                title=goal.title,
                is_starred=is_starred,
                # Starred goals are never pinned
                is_pinned=False if is_starred else state.get("is_pinned", False),
            ))

        logger.info(
            "Found %d weekly goals, %d daily goals and %d quarterly flags to move; %d skipped",
            len(result.weekly_goals_to_copy),
            len(result.daily_goals_to_move),
            len(result.quarterly_goals_to_update),
            len(result.skipped_goals),
        )

        if dry_run:
            return result

        for goal, parent_id, existing_id, daily_goals in plans:
            weekly_id = existing_id
            if weekly_id is None:
                weekly_id = await create_goal_with_carry_over(
                    self.goals,
                    user_id=user_id,
                    source=goal,
                    destination=destination.period,
                    depth=GoalDepth.WEEKLY,
                    in_path=join_path("/", parent_id),
                    parent_id=parent_id,
                )
                await create_goal_state(
                    self.states,
                    user_id=user_id,
                    goal_id=weekly_id,
                    year=destination.year,
                    quarter=destination.quarter,
                    week_number=destination.week_number,
                )
                result.weekly_goals_copied += 1
            else:
                result.weekly_goals_reused += 1

            for daily_goal in daily_goals:
                new_daily_id = await create_goal_with_carry_over(
                    self.goals,
                    user_id=user_id,
                    source=daily_goal,
                    destination=destination.period,
                    depth=GoalDepth.DAILY,
                    in_path=join_path("/", parent_id, weekly_id),
                    parent_id=weekly_id,
                )
                await create_goal_state(
                    self.states,
                    user_id=user_id,
                    goal_id=new_daily_id,
                    year=destination.year,
                    quarter=destination.quarter,
                    week_number=destination.week_number,
                    daily=self._daily_block(
                        content.state_by_goal[daily_goal.id], destination.day_of_week
                    ),
                )
                result.daily_goals_moved += 1

        for update in result.quarterly_goals_to_update:
            await self._apply_quarterly_flags(user_id, update, destination)
            result.quarterly_goals_updated += 1

        logger.info(
            "Week move to %s finished: %d weekly goals copied, %d reused, %d daily goals moved",
            _describe(destination),
            result.weekly_goals_copied,
            result.weekly_goals_reused,
            result.daily_goals_moved,
        )
        return result

    def _weeks_before(self, week: WeekPeriod, limit: int) -> list[WeekPeriod]:
        """Weeks preceding ``week``, newest first, crossing into earlier quarters."""
        year, quarter = week.year, week.quarter
        weeks = get_quarter_weeks(year, quarter).weeks
        earlier = weeks[:weeks.index(week.week_number)]

        candidates: list[WeekPeriod] = []
        while len(candidates) < limit:
            for week_number in reversed(earlier):
                candidates.append(WeekPeriod(year=year, quarter=quarter, week_number=week_number))
            year, quarter = get_previous_quarter(year, quarter)
            earlier = get_quarter_weeks(year, quarter).weeks
        return candidates[:limit]

    async def find_last_non_empty_week(
        self,
        user_id: str,
        current: WeekPeriod,
    ) -> Optional[WeekPeriod]:
        """
        Find the most recent week before ``current`` that has something to pull.

        Searches back at most one quarter's worth of weeks.

        Raises:
            InvalidArgumentError: If ``current`` is not part of its quarter
        """
        self._validate_week(current)
        for candidate in self._weeks_before(current, LAST_NON_EMPTY_WEEK_SEARCH_LIMIT):
            content = await self._collect_week(user_id, candidate)
            if not content.is_empty():
                return candidate
        return None

    async def move_from_last_non_empty_week(
        self,
        user_id: str,
        destination: WeekPeriod,
        dry_run: bool = True,
    ) -> WeekMigrationResult:
        """
        Pull goals from the last earlier week that has open work.

        Returns a result with ``can_pull`` False and no source when no such
        week exists.
        """
        source = await self.find_last_non_empty_week(user_id, destination)
        if source is None:
            logger.info("Nothing to pull into %s for user %s", _describe(destination), user_id)
            return WeekMigrationResult(destination=destination, dry_run=dry_run, can_pull=False)
        return await self.preview_or_commit_week_migration(user_id, source, destination, dry_run)

    async def _ensure_state(self, user_id: str, goal_id: str, week: WeekPeriod) -> None:
        """Give a goal a state row in a week unless it already has one."""
        existing = await self.states.find_one({
            "user_id": user_id,
            "goal_id": goal_id,
            "year": week.year,
            "quarter": week.quarter,
            "week_number": week.week_number,
        })
        if existing is None:
            await create_goal_state(
                self.states,
                user_id=user_id,
                goal_id=goal_id,
                year=week.year,
                quarter=week.quarter,
                week_number=week.week_number,
            )

    async def move_goals_from_day(
        self,
        user_id: str,
        source: WeekPeriod,
        destination: WeekPeriod,
        dry_run: bool = True,
        move_only_incomplete: bool = True,
    ) -> DayMigrationResult:
        """
        Preview or commit moving the daily goals of one day to another day.

        The goals keep their identity; only their state rows move. When the
        destination is another week of the same quarter, the weekly parent is
        given a state row there so the daily goals stay visible under it.

        Args:
            user_id: Owner of the goals
            source: Week and day to move from
            destination: Week and day to move to, in the same quarter
            dry_run: When True, return the goals without writing
            move_only_incomplete: Leave completed daily goals where they are

        Returns:
            DayMigrationResult with the goals and, for commits, the count moved

        Raises:
            InvalidArgumentError: If a day is missing, a week is not part of
                its quarter, the quarters differ or the days are the same
        """
        if source.day_of_week is None or destination.day_of_week is None:
            raise InvalidArgumentError("Both source and destination need a day_of_week")
        self._validate_week(source)
        self._validate_week(destination)
        if source.period != destination.period:
            raise InvalidArgumentError("Daily goals can only move within their quarter")
        same_week = source.same_week(destination)
        if same_week and source.day_of_week == destination.day_of_week:
            raise InvalidArgumentError("Cannot move goals to the same day")

        state_docs = await self.states.find({
            "user_id": user_id,
            "year": source.year,
            "quarter": source.quarter,
            "week_number": source.week_number,
            "daily.day_of_week": int(source.day_of_week),
        }).to_list(length=None)

        goal_by_id = await self._load_goals(user_id, {doc["goal_id"] for doc in state_docs})
        weekly_by_id = await self._load_goals(
            user_id, {doc.get("parent_id") for doc in goal_by_id.values()}
        )
        quarterly_by_id = await self._load_goals(
            user_id, {doc.get("parent_id") for doc in weekly_by_id.values()}
        )

        moves = []
        for state in state_docs:
            doc = goal_by_id.get(state["goal_id"])
            if doc is None or doc["depth"] != GoalDepth.DAILY:
                continue
            if move_only_incomplete and doc.get("is_complete"):
                continue
            weekly = weekly_by_id.get(doc.get("parent_id"))
            if weekly is None:
                logger.warning("Skipping daily goal %s: weekly parent is missing", state["goal_id"])
                continue
            quarterly = quarterly_by_id.get(weekly.get("parent_id"), {})
            moves.append((state, weekly, DailyGoalToMove(
                id=str(doc["_id"]),
                title=doc["title"],
                details=doc.get("details"),
                weekly_goal_id=str(weekly["_id"]),
                weekly_goal_title=weekly["title"],
                quarterly_goal_id=weekly.get("parent_id"),
                quarterly_goal_title=quarterly.get("title"),
            )))

        result = DayMigrationResult(
            source=source,
            destination=destination,
            dry_run=dry_run,
            goals_to_move=[move for _, _, move in moves],
        )
        if dry_run:
            return result

        day_update = {
            "$set": {"daily.day_of_week": int(destination.day_of_week)},
            "$unset": {"daily.date_timestamp": ""},
        }
        for state, weekly, move in moves:
            if not same_week:
                await self._ensure_state(user_id, str(weekly["_id"]), destination)
                target = await self.states.find_one({
                    "user_id": user_id,
                    "goal_id": move.id,
                    "year": destination.year,
                    "quarter": destination.quarter,
                    "week_number": destination.week_number,
                })
                if target is not None:
                    # One state row per goal and week
                    await self.states.update_one({"_id": target["_id"]}, day_update)
                    await self.states.delete_one({"_id": state["_id"]})
                    result.goals_moved += 1
                    continue

            await self.states.update_one(
                {"_id": state["_id"]},
                {
                    "$set": {
                        "week_number": destination.week_number,
                        "daily.day_of_week": int(destination.day_of_week),
                    },
                    "$unset": {"daily.date_timestamp": ""},
                },
            )
            result.goals_moved += 1

        logger.info(
            "Moved %d daily goals from %s day %d to %s day %d",
            result.goals_moved,
            _describe(source),
            source.day_of_week,
            _describe(destination),
            destination.day_of_week,
        )
        return result
