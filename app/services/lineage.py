"""Carry-over lineage helpers."""
from typing import TypeVar

from app.models.goal import Goal

GoalT = TypeVar("GoalT", bound=Goal)


def get_root_goal_id(goal: Goal) -> str:
    """Return the first goal id of the carry-over chain ``goal`` belongs to."""
    if goal.carry_over is not None:
        return goal.carry_over.from_goal.root_goal_id
    return goal.id


def get_root_goal_id_from_document(doc: dict) -> str:
    """
    Return the chain root of a raw ``goals`` document.

    Works for every document in the collection, including adhoc goals, which
    have no place in the quarterly hierarchy and no carry-over block.
    """
    carry_over = doc.get("carry_over") or {}
    root_goal_id = carry_over.get("from_goal", {}).get("root_goal_id")
    return root_goal_id or str(doc["_id"])


def deduplicate_by_root_goal_id(goals: list[GoalT]) -> list[GoalT]:
    """
    Keep one goal per carry-over chain.

    The first goal seen for each root id wins, so callers that want the most
    recent instance sort newest first before calling.

    Examples:
        A list of three instances of one chain followed by two unrelated goals
        yields three goals: the first instance and the two unrelated ones.
    """
    seen: set[str] = set()
    unique = []
    for goal in goals:
        root_id = get_root_goal_id(goal)
        if root_id in seen:
            continue
        seen.add(root_id)
        unique.append(goal)
    return unique
