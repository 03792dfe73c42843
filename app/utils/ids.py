"""Identifier helpers."""
from bson import ObjectId
from bson.errors import InvalidId

from app.errors import InvalidArgumentError


def to_object_id(value: str, label: str = "goal") -> ObjectId:
    """
    Parse a string id into an ObjectId.

    Args:
        value: String form of the id
        label: Entity name used in the error message

    Returns:
        Parsed ObjectId

    Raises:
        InvalidArgumentError: If the value is not a valid ObjectId
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidArgumentError(f"Invalid {label} ID format")
