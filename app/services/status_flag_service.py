"""Status flag service - fire and pending markers kept in side tables."""
import logging
from datetime import datetime

from app.models.status_flag import FireStatus, PendingGoal
from app.services.documents import get_owned_document

logger = logging.getLogger(__name__)


class StatusFlagService:
    """
    Service for the coupled fire and pending flags of a goal.

    Marking a goal pending puts out its fire. Clearing pending sets it on
    fire again, so an unblocked goal comes back as urgent.
    """

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.fire_goals = db["fire_goals"]
        self.pending_goals = db["pending_goals"]

    async def set_pending_status(
        self,
        user_id: str,
        goal_id: str,
        description: str,
    ) -> PendingGoal:
        """
        Mark a goal as pending and clear its fire flag.

        Args:
            user_id: Owner of the goal
            goal_id: Goal to mark
            description: What the goal is waiting on, stored as given

        Returns:
            The pending record

        Raises:
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
        """
        await get_owned_document(self.goals, user_id, goal_id)

        now = datetime.utcnow()
        key = {"user_id": user_id, "goal_id": goal_id}
        existing = await self.pending_goals.find_one(key)
        if existing:
            await self.pending_goals.update_one(
                {"_id": existing["_id"]},
                {"$set": {"description": description, "created_at": now}},
            )
        else:
            await self.pending_goals.insert_one({**key, "description": description, "created_at": now})

        await self.fire_goals.delete_many(key)
        logger.debug("Goal %s marked pending", goal_id)

        return PendingGoal(goal_id=goal_id, description=description, created_at=now)

    async def clear_pending_status(self, user_id: str, goal_id: str) -> FireStatus:
        """
        Clear a goal's pending flag and set it on fire.

        Raises:
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
        """
        await get_owned_document(self.goals, user_id, goal_id)

        key = {"user_id": user_id, "goal_id": goal_id}
        await self.pending_goals.delete_many(key)

        if not await self.fire_goals.find_one(key):
            await self.fire_goals.insert_one({**key, "created_at": datetime.utcnow()})
        logger.debug("Goal %s no longer pending", goal_id)

        return FireStatus(goal_id=goal_id, is_on_fire=True)

    async def toggle_fire_status(self, user_id: str, goal_id: str) -> bool:
        """
        Flip a goal's fire flag. The pending flag is left untouched.

        Returns:
            True if the goal is now on fire

        Raises:
            NotFoundError: If the goal does not exist
            ForbiddenError: If the goal belongs to another user
        """
        await get_owned_document(self.goals, user_id, goal_id)

        key = {"user_id": user_id, "goal_id": goal_id}
        existing = await self.fire_goals.find_one(key)
        if existing:
            await self.fire_goals.delete_one({"_id": existing["_id"]})
            return False

        await self.fire_goals.insert_one({**key, "created_at": datetime.utcnow()})
        return True

    async def is_on_fire(self, user_id: str, goal_id: str) -> bool:
        """Check whether a goal is on fire."""
        return await self.fire_goals.find_one({"user_id": user_id, "goal_id": goal_id}) is not None

    async def list_fire_goal_ids(self, user_id: str) -> list[str]:
        """List the ids of the user's goals that are on fire."""
        docs = await self.fire_goals.find({"user_id": user_id}).to_list(length=None)
        return [doc["goal_id"] for doc in docs]

    async def list_pending_goals(self, user_id: str) -> list[PendingGoal]:
        """List the user's pending goals."""
        docs = await self.pending_goals.find({"user_id": user_id}).to_list(length=None)
        return [
            PendingGoal(
                goal_id=doc["goal_id"],
                description=doc["description"],
                created_at=doc["created_at"],
            )
            for doc in docs
        ]
