"""
Event lifecycle: creation, edits, status transitions and deletion.

Every state change that subscribers or the organizer should hear about goes
through here so the notification fan-out stays consistent across the owner,
generic and admin routes.
"""
import logging
from typing import Optional

from bson import ObjectId
from fastapi.concurrency import run_in_threadpool

from auth.policy import (
    EVENT_ACTIVATE,
    EVENT_DELETE,
    EVENT_MODERATE,
    EVENT_REASSIGN,
    EVENT_UPDATE,
    authorize,
    is_admin,
    owns,
)
from constants import (
    EVENT_CATEGORIES,
    EVENT_STATUS_ACTIVE,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_PENDING,
    EVENT_STATUSES,
    NOTIFIABLE_EVENT_FIELDS,
)
from database import events_collection, subscriptions_collection, users_collection
from models.event import EventCreate, EventResponse, EventUpdate, SubscriberSummary
from models.user_model import CreatorSummary
from utils.cascade_helper import delete_event_cascade
from utils.cloudinary_config import delete_images_quietly
from utils.exceptions import NotFoundException, ValidationException
from utils.mongo_helper import id_str, to_object_id, utcnow
from utils.notification_helper import (
    build_cancellation_notices,
    get_subscriber_ids,
    notify_event_updated,
    notify_status_change,
)
from utils.schedule import is_in_future, validate_schedule

logger = logging.getLogger(__name__)

REQUIRED_EVENT_FIELDS = ("title", "description", "date", "time", "location", "category")
TEXT_FIELDS = ("title", "description", "date", "time", "location", "category")


def validate_category(category: str) -> None:
    if category not in EVENT_CATEGORIES:
        raise ValidationException("Invalid category")


def validate_status(status: str) -> None:
    if status not in EVENT_STATUSES:
        raise ValidationException(
            f"Invalid status. Must be one of: {', '.join(EVENT_STATUSES)}"
        )


async def get_event_or_404(event_id: str) -> dict:
    event = await events_collection.find_one({"_id": to_object_id(event_id, "event ID")})
    if not event:
        raise NotFoundException("Event", message="Event not found")
    return event


async def subscriber_counts(event_ids: list[ObjectId]) -> dict[ObjectId, int]:
    if not event_ids:
        return {}
    pipeline = [
        {"$match": {"event_id": {"$in": event_ids}}},
        {"$group": {"_id": "$event_id", "count": {"$sum": 1}}},
    ]
    rows = await subscriptions_collection.aggregate(pipeline).to_list(length=None)
    return {row["_id"]: row["count"] for row in rows}


async def creator_summaries(user_ids) -> dict[ObjectId, CreatorSummary]:
    user_ids = list({uid for uid in user_ids if uid is not None})
    if not user_ids:
        return {}
    users = await users_collection.find(
        {"_id": {"$in": user_ids}}, {"name": 1, "email": 1, "role": 1}
    ).to_list(length=None)
    return {
        user["_id"]: CreatorSummary(
            id=id_str(user["_id"]), name=user.get("name"), email=user.get("email"), role=user.get("role")
        )
        for user in users
    }


async def enrich_events(events: list[dict], include_creator: bool = True) -> list[EventResponse]:
    """Attach subscriber counts (and creator summaries) without one query per event."""
    counts = await subscriber_counts([event["_id"] for event in events])
    creators = await creator_summaries(e.get("created_by") for e in events) if include_creator else {}
    return [
        EventResponse.from_doc(
            event,
            subscriber_count=counts.get(event["_id"], 0),
            creator=creators.get(event.get("created_by")),
        )
        for event in events
    ]


async def list_subscribers(event_id: ObjectId) -> list[SubscriberSummary]:
    subscriptions = await subscriptions_collection.find({"event_id": event_id}).sort(
        "created_at", 1
    ).to_list(length=None)
    users = await users_collection.find(
        {"_id": {"$in": [sub["user_id"] for sub in subscriptions]}}, {"name": 1, "email": 1}
    ).to_list(length=None)
    by_id = {user["_id"]: user for user in users}
    return [
        SubscriberSummary(
            user_id=id_str(sub["user_id"]),
            name=by_id.get(sub["user_id"], {}).get("name"),
            email=by_id.get(sub["user_id"], {}).get("email"),
            subscribed_at=sub.get("created_at"),
        )
        for sub in subscriptions
    ]


def _clean(value):
    return value.strip() if isinstance(value, str) else value


async def create_event(caller: dict, payload: EventCreate) -> dict:
    data = {field: _clean(value) for field, value in payload.model_dump().items()}
    if any(not data.get(field) for field in REQUIRED_EVENT_FIELDS):
        raise ValidationException("All fields are required")
    validate_category(data["category"])
    validate_schedule(data["date"], data["time"])
    if not is_in_future(data["date"], data["time"]):
        raise ValidationException("Event date must be in the future")

    now = utcnow()
    event = {
        "title": data["title"],
        "description": data["description"],
        "date": data["date"],
        "time": data["time"],
        "location": data["location"],
        "category": data["category"],
        "status": EVENT_STATUS_ACTIVE if is_admin(caller) else EVENT_STATUS_PENDING,
        "banner": data.get("banner"),
        "created_by": caller["_id"],
        "created_at": now,
        "updated_at": now,
    }
    result = await events_collection.insert_one(event)
    event["_id"] = result.inserted_id
    logger.info(f"Event {result.inserted_id} created by {caller['_id']} with status {event['status']}")
    return event


def _collect_changes(payload: EventUpdate) -> dict:
    data = payload.model_dump(exclude_unset=True)
    changes = {}
    # blank values leave the stored field untouched
    for field in TEXT_FIELDS + ("status", "created_by"):
        value = _clean(data.get(field))
        if value:
            changes[field] = value
    # banner may be explicitly cleared
    if "banner" in data:
        changes["banner"] = data["banner"]
    return changes


async def update_event(caller: dict, event: dict, payload: EventUpdate, owner_route: bool = False) -> dict:
    """
    Apply an edit from the owner or an admin.

    owner_route: the organizer's own edit form, which must resubmit every
    field and keep the event in the future.
    """
    authorize(caller, EVENT_UPDATE, event)
    caller_is_admin = is_admin(caller)
    changes = _collect_changes(payload)

    if owner_route:
        changes.pop("status", None)
        changes.pop("created_by", None)
        if any(not changes.get(field) for field in REQUIRED_EVENT_FIELDS):
            raise ValidationException("All fields are required")

    if "category" in changes:
        validate_category(changes["category"])

    date = changes.get("date", event.get("date"))
    time = changes.get("time", event.get("time"))
    if "date" in changes or "time" in changes:
        validate_schedule(date, time)
        if owner_route and not is_in_future(date, time):
            raise ValidationException("Event date must be in the future")

    if "status" in changes:
        validate_status(changes["status"])
        if changes["status"] == EVENT_STATUS_ACTIVE and event.get("status") != EVENT_STATUS_ACTIVE:
            authorize(caller, EVENT_ACTIVATE, event, message="Only admins can activate events")
            if not is_in_future(date, time):
                raise ValidationException("Cannot set past events as active")

    if "created_by" in changes:
        authorize(caller, EVENT_REASSIGN, event, message="Only admins can reassign events")
        new_owner = to_object_id(changes["created_by"], "user ID")
        if not await users_collection.find_one({"_id": new_owner}, {"_id": 1}):
            raise NotFoundException("User", message="User not found")
        changes["created_by"] = new_owner

    # A cancelled event goes back to moderation when edited
    if event.get("status") == EVENT_STATUS_CANCELLED and not (caller_is_admin and "status" in changes):
        changes["status"] = EVENT_STATUS_PENDING

    changed_fields = [field for field, value in changes.items() if event.get(field) != value]
    changes["updated_at"] = utcnow()
    await events_collection.update_one({"_id": event["_id"]}, {"$set": changes})

    updated = {**event, **changes}
    status_changed = "status" in changed_fields
    notifications_sent = 0
    if any(field in NOTIFIABLE_EVENT_FIELDS for field in changed_fields):
        by_admin = caller_is_admin and not owns(caller, event, "created_by")
        notifications_sent = await notify_event_updated(updated, status_changed, by_admin=by_admin)

    logger.info(f"Event {event['_id']} updated by {caller['_id']}: {changed_fields}")
    return {
        "event": updated,
        "notifications_sent": notifications_sent,
        "status_changed": status_changed,
    }


async def change_event_status(caller: dict, event: dict, new_status: str) -> dict:
    """
    Moderation status change. Unlike an edit this may activate past events.
    Returns the number of notifications sent: subscribers, plus the owner
    when they are not subscribed.
    """
    authorize(caller, EVENT_MODERATE, event)
    validate_status(new_status)
    previous = event.get("status")
    if previous == new_status:
        return {"event": event, "previous_status": previous, "notifications_sent": 0, "changed": False}

    now = utcnow()
    await events_collection.update_one(
        {"_id": event["_id"]}, {"$set": {"status": new_status, "updated_at": now}}
    )
    updated = {**event, "status": new_status, "updated_at": now}
    notifications_sent = await notify_status_change(updated, new_status)
    return {
        "event": updated,
        "previous_status": previous,
        "notifications_sent": notifications_sent,
        "changed": True,
    }


async def delete_event(caller: dict, event: dict) -> dict:
    authorize(caller, EVENT_DELETE, event)
    subscriber_ids = await get_subscriber_ids(event["_id"])
    by_admin = is_admin(caller) and not owns(caller, event, "created_by")
    notices = build_cancellation_notices(event, subscriber_ids, by_admin=by_admin)

    await delete_event_cascade(event, notices)
    image_deleted = await run_in_threadpool(delete_images_quietly, [event.get("banner")]) > 0

    return {
        "event_id": id_str(event["_id"]),
        "event_title": event.get("title"),
        "subscribers_notified": len(notices),
        "image_deleted": image_deleted,
    }


async def find_owned_event(caller: dict, event_id: str) -> Optional[dict]:
    return await events_collection.find_one(
        {"_id": to_object_id(event_id, "event ID"), "created_by": caller["_id"]}
    )
