"""Carry-over factory - copy a goal forward into another period."""
import logging
from datetime import datetime
from typing import Optional

from app.errors import StructuralFaultError
from app.models.goal import CarryOver, FromGoal, Goal, GoalDepth, Period
from app.services.lineage import get_root_goal_id
from app.utils.path import validate_goal_path

logger = logging.getLogger(__name__)


def build_carry_over(source: Goal) -> CarryOver:
    """
    Build the carry-over block for a copy of ``source``.

    The root id is inherited from the source's own lineage, so a chain
    A -> B -> C keeps A as its root, and the week count grows by one per hop.
    """
    previous_weeks = source.carry_over.num_weeks if source.carry_over else 0
    return CarryOver(
        type="week",
        num_weeks=previous_weeks + 1,
        from_goal=FromGoal(
            previous_goal_id=source.id,
            root_goal_id=get_root_goal_id(source),
        ),
    )


async def create_goal_with_carry_over(
    goals,
    user_id: str,
    source: Goal,
    destination: Period,
    depth: int,
    in_path: str,
    parent_id: Optional[str] = None,
) -> str:
    """
    Insert a copy of ``source`` into the destination period.

    Only title and details are copied; the new goal starts incomplete and
    carries no week state. Callers create state rows separately.

    Args:
        goals: ``goals`` collection
        user_id: Owner of the new goal
        source: Goal being carried over
        destination: Period the copy belongs to
        depth: Depth of the copy in the hierarchy
        in_path: Parent path of the copy
        parent_id: Parent of the copy (required below the quarterly level)

    Returns:
        ID of the inserted goal

    Raises:
        StructuralFaultError: If a weekly or daily copy has no parent, or the
            parent path does not match the depth
    """
    if depth != GoalDepth.QUARTERLY and not parent_id:
        raise StructuralFaultError(
            f"Carry-over of goal {source.id} at depth {depth} requires a parent_id"
        )
    if not validate_goal_path(depth, in_path):
        raise StructuralFaultError(
            f"Carry-over of goal {source.id} has invalid path {in_path!r} for depth {depth}"
        )

    now = datetime.utcnow()
    goal_doc = {
        "user_id": user_id,
        "year": destination.year,
        "quarter": destination.quarter,
        "title": source.title,
        "in_path": in_path,
        "depth": int(depth),
        "is_complete": False,
        "carry_over": build_carry_over(source).model_dump(),
        "created_at": now,
        "updated_at": now,
    }
    if source.details:
        goal_doc["details"] = source.details
    if parent_id:
        goal_doc["parent_id"] = parent_id

    result = await goals.insert_one(goal_doc)
    new_goal_id = str(result.inserted_id)
    logger.debug("Carried goal %s over as %s", source.id, new_goal_id)
    return new_goal_id


async def create_goal_state(
    states,
    user_id: str,
    goal_id: str,
    year: int,
    quarter: int,
    week_number: int,
    is_starred: bool = False,
    is_pinned: bool = False,
    daily: Optional[dict] = None,
) -> str:
    """
    Insert a ``goal_state_by_week`` row for a goal.

    Args:
        states: ``goal_state_by_week`` collection
        user_id: Owner of the goal
        goal_id: Goal the state belongs to
        year: Calendar year of the goal's quarter
        quarter: Quarter of the goal
        week_number: ISO week number
        is_starred: Star flag for the week
        is_pinned: Pin flag for the week
        daily: Day assignment for daily goals (``day_of_week``, ``date_timestamp``)

    Returns:
        ID of the inserted state row
    """
    state_doc = {
        "user_id": user_id,
        "year": year,
        "quarter": quarter,
        "goal_id": goal_id,
        "week_number": week_number,
        "is_starred": is_starred,
        "is_pinned": is_pinned,
        "created_at": datetime.utcnow(),
    }
    if daily is not None:
        state_doc["daily"] = daily

    result = await states.insert_one(state_doc)
    return str(result.inserted_id)
