"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB."""
        self.client = AsyncIOMotorClient(settings.mongodb_url)
        self.db = self.client[settings.mongodb_db_name]
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ensure_indexes(self) -> None:
        """Create the indexes the goal queries rely on."""
        if self.db is None:
            raise RuntimeError("Database not connected")

        goals = self.db["goals"]
        await goals.create_index([("user_id", ASCENDING), ("year", ASCENDING), ("quarter", ASCENDING)])
        await goals.create_index([
            ("user_id", ASCENDING),
            ("year", ASCENDING),
            ("quarter", ASCENDING),
            ("parent_id", ASCENDING),
        ])
        await goals.create_index([
            ("user_id", ASCENDING),
            ("year", ASCENDING),
            ("quarter", ASCENDING),
            ("depth", ASCENDING),
        ])

        states = self.db["goal_state_by_week"]
        await states.create_index([
            ("user_id", ASCENDING),
            ("year", ASCENDING),
            ("quarter", ASCENDING),
            ("week_number", ASCENDING),
        ])
        await states.create_index([("user_id", ASCENDING), ("goal_id", ASCENDING)])

        logs = self.db["goal_logs"]
        await logs.create_index([("goal_id", ASCENDING), ("log_date", DESCENDING)])
        await logs.create_index([("root_goal_id", ASCENDING), ("log_date", DESCENDING)])

        for name in ("fire_goals", "pending_goals"):
            await self.db[name].create_index(
                [("user_id", ASCENDING), ("goal_id", ASCENDING)],
                unique=True,
            )

        await self.db["users"].create_index("email", unique=True)
        logger.info("MongoDB indexes ensured")


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db
