"""Helpers shared by the services for loading and converting documents."""
from app.errors import ForbiddenError, NotFoundError
from app.models.goal import Goal
from app.models.goal_state import WeeklyGoalState
from app.utils.ids import to_object_id


def doc_to_goal(doc: dict) -> Goal:
    """Convert a hierarchical ``goals`` document to a Goal model."""
    return Goal(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        year=doc["year"],
        quarter=doc["quarter"],
        title=doc["title"],
        details=doc.get("details"),
        parent_id=doc.get("parent_id"),
        in_path=doc["in_path"],
        depth=doc["depth"],
        is_complete=doc.get("is_complete", False),
        completed_at=doc.get("completed_at"),
        carry_over=doc.get("carry_over"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


def doc_to_state(doc: dict) -> WeeklyGoalState:
    """Convert a ``goal_state_by_week`` document to a WeeklyGoalState model."""
    return WeeklyGoalState(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        year=doc["year"],
        quarter=doc["quarter"],
        goal_id=doc["goal_id"],
        week_number=doc["week_number"],
        is_starred=doc.get("is_starred", False),
        is_pinned=doc.get("is_pinned", False),
        daily=doc.get("daily"),
        created_at=doc.get("created_at"),
    )


async def get_owned_document(collection, user_id: str, doc_id: str, label: str = "goal") -> dict:
    """
    Load a document by id and check that it belongs to the user.

    Args:
        collection: Motor collection to read from
        user_id: Caller's user ID
        doc_id: String form of the document's ObjectId
        label: Entity name used in error messages

    Returns:
        The raw document

    Raises:
        InvalidArgumentError: If the id is malformed
        NotFoundError: If no document has this id
        ForbiddenError: If the document belongs to another user
    """
    doc = await collection.find_one({"_id": to_object_id(doc_id, label)})
    if not doc:
        raise NotFoundError(f"{label.capitalize()} not found")
    if doc["user_id"] != user_id:
        raise ForbiddenError(f"{label.capitalize()} belongs to another user")
    return doc
