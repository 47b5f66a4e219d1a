# database.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient

from config.settings import MONGO_URI, MONGO_DB_NAME

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(MONGO_URI)
db = client[MONGO_DB_NAME]

#tables
users_collection = db["users"]
events_collection = db["events"]
subscriptions_collection = db["subscriptions"]
notifications_collection = db["notifications"]


async def create_indexes():
    """
    Create database indexes for optimal query performance.
    This should be called once at application startup.
    """
    try:
        # Users collection indexes
        await users_collection.create_index("email", unique=True)
        await users_collection.create_index("role")
        await users_collection.create_index("status")
        await users_collection.create_index("created_at")

        # Events collection indexes
        await events_collection.create_index("created_by")
        await events_collection.create_index("status")
        await events_collection.create_index("category")
        await events_collection.create_index("created_at")
        await events_collection.create_index([("created_by", 1), ("status", 1)])

        # One subscription per (user, event)
        await subscriptions_collection.create_index([("user_id", 1), ("event_id", 1)], unique=True)
        await subscriptions_collection.create_index("event_id")

        # Notifications collection indexes
        await notifications_collection.create_index([("user_id", 1), ("created_at", -1)])
        await notifications_collection.create_index([("user_id", 1), ("read", 1)])
        await notifications_collection.create_index("event_id")

        logger.info("Database indexes created successfully")
    except Exception as e:
        logger.warning(f"Error creating indexes: {e}")
        # Don't raise - allow app to continue if indexes already exist
