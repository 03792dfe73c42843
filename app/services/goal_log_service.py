"""Goal log service - dated progress notes attached to goals."""
import logging
import re
from datetime import datetime, timedelta, timezone

from pymongo import DESCENDING

from app.config import settings
from app.errors import InvalidArgumentError
from app.models.goal_log import GoalLog, GoalLogCreate, GoalLogUpdate
from app.services.documents import get_owned_document
from app.services.lineage import get_root_goal_id_from_document

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")


def is_html_empty(content: str) -> bool:
    """
    Check whether HTML content has no text once tags are removed.

    Examples:
        >>> is_html_empty("<p> </p>")
        True
        >>> is_html_empty("<p>Done</p>")
        False
    """
    return not _HTML_TAG.sub("", content).strip()


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class GoalLogService:
    """Service for handling goal log operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.logs = db["goal_logs"]

    def _doc_to_log(self, doc: dict) -> GoalLog:
        """Convert database document to GoalLog model."""
        return GoalLog(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            goal_id=doc["goal_id"],
            root_goal_id=doc["root_goal_id"],
            log_date=doc["log_date"],
            content=doc["content"],
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at"),
        )

    def _validate_content(self, content: str) -> None:
        if is_html_empty(content):
            raise InvalidArgumentError("Log content cannot be empty")
        if len(content) > settings.max_log_content_length:
            raise InvalidArgumentError(
                f"Log content exceeds maximum length of {settings.max_log_content_length} characters"
            )

    def _validate_log_date(self, log_date: datetime) -> datetime:
        log_date = _to_naive_utc(log_date)
        now = datetime.utcnow()
        if log_date < now - timedelta(days=365):
            raise InvalidArgumentError("Log date cannot be more than one year in the past")
        if log_date > now + timedelta(days=1):
            raise InvalidArgumentError("Log date cannot be in the future")
        return log_date

    async def create_log(self, user_id: str, log_create: GoalLogCreate) -> GoalLog:
        """
        Create a log entry for a goal.

        The entry records both the goal and the root of its carry-over chain,
        so the full history of a goal can be read across quarters.

        Args:
            user_id: Owner of the goal
            log_create: Log creation data

        Returns:
            Created log entry

        Raises:
            InvalidArgumentError: If the content is empty or too long, or the
                date is out of range
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
        """
        self._validate_content(log_create.content)
        log_date = self._validate_log_date(log_create.log_date)

        goal_doc = await get_owned_document(self.goals, user_id, log_create.goal_id)

        now = datetime.utcnow()
        log_doc = {
            "user_id": user_id,
            "goal_id": log_create.goal_id,
            "root_goal_id": get_root_goal_id_from_document(goal_doc),
            "log_date": log_date,
            "content": log_create.content,
            "created_at": now,
        }

        result = await self.logs.insert_one(log_doc)
        log_doc["_id"] = result.inserted_id
        return self._doc_to_log(log_doc)

    async def update_log(self, user_id: str, log_id: str, log_update: GoalLogUpdate) -> GoalLog:
        """
        Update a log entry's date or content.

        Raises:
            InvalidArgumentError: If the new content or date is invalid
            NotFoundError: If the log does not exist
            ForbiddenError: If the log belongs to another user
        """
        existing = await get_owned_document(self.logs, user_id, log_id, label="log")

        update_doc = {"updated_at": datetime.utcnow()}
        if log_update.content is not None:
            self._validate_content(log_update.content)
            update_doc["content"] = log_update.content
        if log_update.log_date is not None:
            update_doc["log_date"] = self._validate_log_date(log_update.log_date)

        updated_doc = await self.logs.find_one_and_update(
            {"_id": existing["_id"], "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )
        return self._doc_to_log(updated_doc)

    async def delete_log(self, user_id: str, log_id: str) -> dict:
        """
        Delete a log entry.

        Returns:
            Dictionary with deleted_count
        """
        existing = await get_owned_document(self.logs, user_id, log_id, label="log")
        result = await self.logs.delete_one({"_id": existing["_id"]})
        return {"deleted_count": result.deleted_count}

    async def list_logs_for_goal(self, user_id: str, goal_id: str) -> list[GoalLog]:
        """
        List the logs of one goal instance, newest first.

        Raises:
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
        """
        await get_owned_document(self.goals, user_id, goal_id)
        docs = await self.logs.find(
            {"user_id": user_id, "goal_id": goal_id}
        ).sort("log_date", DESCENDING).to_list(length=None)
        return [self._doc_to_log(doc) for doc in docs]

    async def list_logs_for_root_goal(self, user_id: str, root_goal_id: str) -> list[GoalLog]:
        """List the logs of every instance of a carry-over chain, newest first."""
        docs = await self.logs.find(
            {"user_id": user_id, "root_goal_id": root_goal_id}
        ).sort("log_date", DESCENDING).to_list(length=None)
        return [self._doc_to_log(doc) for doc in docs]
