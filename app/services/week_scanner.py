"""Find the last week in which a quarterly goal had weekly activity."""
from app.models.goal import GoalDepth, Period
from app.models.migration import MaxWeekResult
from app.services.documents import doc_to_state


async def find_max_weeks_for_quarterly_goals(
    db,
    user_id: str,
    quarterly_goal_ids: list[str],
    period: Period,
) -> dict[str, MaxWeekResult]:
    """
    Find the highest week holding state for the weekly children of several goals.

    Reads the weekly children of every goal in one query and their state rows
    in a second one.

    Args:
        db: Database handle
        user_id: Owner of the goals
        quarterly_goal_ids: Quarterly goals whose children are scanned
        period: Quarter to scan

    Returns:
        MaxWeekResult per quarterly goal id; ``max_week`` is None when a goal
        has no weekly children in the period or none of them has a state row
    """
    results = {goal_id: MaxWeekResult() for goal_id in quarterly_goal_ids}
    if not quarterly_goal_ids:
        return results

    children = await db["goals"].find({
        "user_id": user_id,
        "year": period.year,
        "quarter": period.quarter,
        "parent_id": {"$in": list(quarterly_goal_ids)},
        "depth": int(GoalDepth.WEEKLY),
    }).to_list(length=None)

    if not children:
        return results

    parent_by_child = {str(child["_id"]): child["parent_id"] for child in children}
    state_docs = await db["goal_state_by_week"].find({
        "user_id": user_id,
        "year": period.year,
        "quarter": period.quarter,
        "goal_id": {"$in": list(parent_by_child)},
    }).to_list(length=None)

    states_by_parent: dict[str, list[dict]] = {}
    for doc in state_docs:
        states_by_parent.setdefault(parent_by_child[doc["goal_id"]], []).append(doc)

    for parent_id, docs in states_by_parent.items():
        max_week = max(doc["week_number"] for doc in docs)
        states_in_max_week = [
            doc_to_state(doc) for doc in docs if doc["week_number"] == max_week
        ]
        results[parent_id] = MaxWeekResult(
            max_week=max_week,
            child_ids_in_max_week={state.goal_id for state in states_in_max_week},
            states_in_max_week=states_in_max_week,
        )
    return results


async def find_max_week_for_quarterly_goal(
    db,
    user_id: str,
    quarterly_goal_id: str,
    period: Period,
) -> MaxWeekResult:
    """Find the highest week number holding state for one goal's weekly children."""
    results = await find_max_weeks_for_quarterly_goals(db, user_id, [quarterly_goal_id], period)
    return results[quarterly_goal_id]
