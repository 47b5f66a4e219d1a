"""
Notification fan-out.

Notifications are only ever written here, as a side effect of event and
account changes. Each helper returns the number of notifications inserted.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from bson import ObjectId

from constants import (
    EVENT_STATUS_ACTIVE,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_PENDING,
    NOTIFICATION_EVENT_REMINDER,
    NOTIFICATION_EVENT_UPDATE,
    NOTIFICATION_NEW_SUBSCRIBER,
    NOTIFICATION_STATUS_CHANGE,
    REMINDER_WINDOW_HOURS,
)
from database import events_collection, notifications_collection, subscriptions_collection
from utils.mongo_helper import utcnow
from utils.schedule import event_starts_at

logger = logging.getLogger(__name__)

STATUS_PHRASES = {
    EVENT_STATUS_ACTIVE: "has been approved and is now active",
    EVENT_STATUS_PENDING: "is pending review",
    EVENT_STATUS_CANCELLED: "has been cancelled",
    EVENT_STATUS_COMPLETED: "has been marked as completed",
}


def build_notification(
    user_id: ObjectId,
    title: str,
    message: str,
    notification_type: str,
    event: Optional[dict] = None,
    status: Optional[str] = None,
    link_event: bool = True,
) -> dict:
    doc = {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": notification_type,
        "read": False,
        "created_at": utcnow(),
    }
    if event is not None:
        if link_event:
            doc["event_id"] = event["_id"]
        doc["event_title"] = event.get("title")
    if status is not None:
        doc["status"] = status
    return doc


async def insert_notifications(docs: list[dict]) -> int:
    if not docs:
        return 0
    await notifications_collection.insert_many(docs)
    return len(docs)


def unique_recipients(user_ids: Iterable[ObjectId]) -> list[ObjectId]:
    """Drop repeated recipients while keeping the original order."""
    seen = set()
    recipients = []
    for user_id in user_ids:
        if user_id is None or user_id in seen:
            continue
        seen.add(user_id)
        recipients.append(user_id)
    return recipients


async def get_subscriber_ids(event_id: ObjectId) -> list[ObjectId]:
    subscriptions = await subscriptions_collection.find(
        {"event_id": event_id}, {"user_id": 1}
    ).sort("created_at", 1).to_list(length=None)
    return unique_recipients(sub["user_id"] for sub in subscriptions)


def describe_status(title: str, status: str) -> str:
    phrase = STATUS_PHRASES.get(status, f"is now {status}")
    return f'The event "{title}" {phrase}.'


async def notify_status_change(event: dict, new_status: str) -> int:
    """
    Tell every subscriber about a status transition, plus the owner once
    if they are not already subscribed.
    """
    title = event.get("title", "")
    subscriber_ids = await get_subscriber_ids(event["_id"])

    docs = [
        build_notification(
            user_id,
            "Event Status Updated",
            describe_status(title, new_status),
            NOTIFICATION_STATUS_CHANGE,
            event=event,
            status=new_status,
        )
        for user_id in subscriber_ids
    ]

    owner_id = event.get("created_by")
    if owner_id is not None and owner_id not in subscriber_ids:
        phrase = STATUS_PHRASES.get(new_status, f"is now {new_status}")
        docs.append(build_notification(
            owner_id,
            "Your Event Status Changed",
            f'Your event "{title}" {phrase}.',
            NOTIFICATION_STATUS_CHANGE,
            event=event,
            status=new_status,
        ))

    sent = await insert_notifications(docs)
    logger.info(f"Event {event['_id']} -> {new_status}: {sent} notification(s) sent")
    return sent


async def notify_event_updated(event: dict, status_changed: bool, by_admin: bool = False) -> int:
    """One notification per subscriber after an edit; `event` is the post-update document."""
    title = event.get("title", "")
    subscriber_ids = await get_subscriber_ids(event["_id"])

    if status_changed:
        notification_type = NOTIFICATION_STATUS_CHANGE
        heading = "Event Status Updated"
        message = describe_status(title, event.get("status"))
        status = event.get("status")
    else:
        notification_type = NOTIFICATION_EVENT_UPDATE
        heading = "Event Updated"
        if by_admin:
            message = f'The event "{title}" has been updated by an admin.'
        else:
            message = f'The event "{title}" has been updated. Check out the latest details!'
        status = None

    docs = [
        build_notification(user_id, heading, message, notification_type, event=event, status=status)
        for user_id in subscriber_ids
    ]
    sent = await insert_notifications(docs)
    logger.info(f"Event {event['_id']} updated: {sent} subscriber(s) notified")
    return sent


def build_cancellation_notices(event: dict, subscriber_ids: list[ObjectId], by_admin: bool = False) -> list[dict]:
    """
    Cancellation notices for a deleted event. They keep the title but not the
    event reference, so they outlive the cascade that removes the event.
    """
    title = event.get("title", "")
    remover = "an admin" if by_admin else "the organizer"
    return [
        build_notification(
            user_id,
            "Event Cancelled",
            f'The event "{title}" has been cancelled and removed by {remover}.',
            NOTIFICATION_STATUS_CHANGE,
            event=event,
            status=EVENT_STATUS_CANCELLED,
            link_event=False,
        )
        for user_id in unique_recipients(subscriber_ids)
    ]


async def notify_new_subscriber(event: dict, subscriber: dict) -> int:
    owner_id = event.get("created_by")
    if owner_id is None:
        return 0
    doc = build_notification(
        owner_id,
        "New Subscriber",
        f'{subscriber.get("name", "Someone")} subscribed to your event "{event.get("title", "")}"',
        NOTIFICATION_NEW_SUBSCRIBER,
        event=event,
    )
    return await insert_notifications([doc])


async def notify_account_change(user_id: ObjectId, title: str, message: str) -> int:
    doc = build_notification(user_id, title, message, NOTIFICATION_STATUS_CHANGE)
    return await insert_notifications([doc])


async def send_event_reminders(now: Optional[datetime] = None, window_hours: int = REMINDER_WINDOW_HOURS) -> int:
    """
    Remind subscribers of active events starting within the window.
    A (user, event) pair is reminded at most once.
    """
    now = now or utcnow()
    horizon = now + timedelta(hours=window_hours)
    sent = 0

    # date strings are ISO so a lexical range narrows the scan
    query = {
        "status": EVENT_STATUS_ACTIVE,
        "date": {"$gte": now.strftime("%Y-%m-%d"), "$lte": horizon.strftime("%Y-%m-%d")},
    }
    async for event in events_collection.find(query):
        starts_at = event_starts_at(event.get("date"), event.get("time"))
        if starts_at is None or not (now < starts_at <= horizon):
            continue

        reminded = await notifications_collection.find(
            {"event_id": event["_id"], "type": NOTIFICATION_EVENT_REMINDER}, {"user_id": 1}
        ).to_list(length=None)
        already = {doc["user_id"] for doc in reminded}
        recipients = [uid for uid in await get_subscriber_ids(event["_id"]) if uid not in already]
        docs = [
            build_notification(
                user_id,
                "Upcoming Event",
                f'Reminder: "{event.get("title", "")}" starts on {event.get("date")} at {event.get("time")}.',
                NOTIFICATION_EVENT_REMINDER,
                event=event,
            )
            for user_id in recipients
        ]
        sent += await insert_notifications(docs)

    logger.info(f"Event reminders sent: {sent}")
    return sent
