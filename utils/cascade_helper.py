"""
Multi-collection deletes.

Dependents are removed before their parent, so an interrupted cascade can
leave a parent behind (and be retried) but never orphans pointing at a
missing parent. With USE_TRANSACTIONS the whole cascade runs in a single
multi-document transaction instead.
"""
import logging
from typing import Optional

from bson import ObjectId

from config import settings
from database import (
    client,
    events_collection,
    notifications_collection,
    subscriptions_collection,
    users_collection,
)

logger = logging.getLogger(__name__)


class CascadeStep:
    def __init__(self, name: str, collection, operation: str, argument):
        self.name = name
        self.collection = collection
        self.operation = operation
        self.argument = argument

    async def run(self, session=None) -> int:
        kwargs = {"session": session} if session is not None else {}
        if self.operation == "insert_many":
            if not self.argument:
                return 0
            result = await self.collection.insert_many(self.argument, **kwargs)
            return len(result.inserted_ids)
        if self.operation == "delete_one":
            result = await self.collection.delete_one(self.argument, **kwargs)
        else:
            result = await self.collection.delete_many(self.argument, **kwargs)
        return result.deleted_count


async def run_cascade(steps: list[CascadeStep]) -> dict[str, int]:
    if settings.USE_TRANSACTIONS:
        async with await client.start_session() as session:
            async with session.start_transaction():
                return {step.name: await step.run(session) for step in steps}

    counts = {}
    for step in steps:
        counts[step.name] = await step.run()
    return counts


async def delete_event_cascade(event: dict, notices: Optional[list[dict]] = None) -> dict[str, int]:
    """Delete an event with its subscriptions and notifications, then file `notices`."""
    event_id = event["_id"]
    steps = [
        CascadeStep("notifications", notifications_collection, "delete_many", {"event_id": event_id}),
        CascadeStep("subscriptions", subscriptions_collection, "delete_many", {"event_id": event_id}),
        CascadeStep("events", events_collection, "delete_one", {"_id": event_id}),
        CascadeStep("notices", notifications_collection, "insert_many", notices or []),
    ]
    counts = await run_cascade(steps)
    logger.info(
        f"Deleted event {event_id}: {counts['subscriptions']} subscription(s), "
        f"{counts['notifications']} notification(s), {counts['notices']} notice(s) filed"
    )
    return counts


async def delete_user_cascade(user: dict, event_ids: list[ObjectId]) -> dict[str, int]:
    """Delete a user, their events and everything referencing either."""
    user_id = user["_id"]
    steps = [
        CascadeStep(
            "notifications",
            notifications_collection,
            "delete_many",
            {"$or": [{"user_id": user_id}, {"event_id": {"$in": event_ids}}]},
        ),
        CascadeStep(
            "subscriptions",
            subscriptions_collection,
            "delete_many",
            {"$or": [{"user_id": user_id}, {"event_id": {"$in": event_ids}}]},
        ),
        CascadeStep("events", events_collection, "delete_many", {"created_by": user_id}),
        CascadeStep("users", users_collection, "delete_one", {"_id": user_id}),
    ]
    counts = await run_cascade(steps)
    logger.info(
        f"Deleted user {user_id}: {counts['events']} event(s), {counts['subscriptions']} subscription(s), "
        f"{counts['notifications']} notification(s)"
    )
    return counts
