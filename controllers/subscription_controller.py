import logging

from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from auth.auth_utils import get_current_user
from database import subscriptions_collection
from utils.event_helper import get_event_or_404
from utils.exceptions import NotFoundException, ValidationException
from utils.mongo_helper import to_object_id, utcnow
from utils.notification_helper import notify_new_subscriber

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/events", tags=["subscription"])


@router.post("/{event_id}/subscribe")
async def subscribe(event_id: str, current_user: dict = Depends(get_current_user)):
    event = await get_event_or_404(event_id)

    pair = {"user_id": current_user["_id"], "event_id": event["_id"]}
    if await subscriptions_collection.find_one(pair):
        raise ValidationException("Already subscribed to this event")

    try:
        await subscriptions_collection.insert_one({**pair, "created_at": utcnow()})
    except DuplicateKeyError:
        # lost a race with a concurrent subscribe for the same pair
        raise ValidationException("Already subscribed to this event")

    await notify_new_subscriber(event, current_user)
    logger.info(f"User {current_user['_id']} subscribed to event {event['_id']}")
    return {"success": True, "message": "Successfully subscribed to event"}


@router.delete("/{event_id}/subscribe")
async def unsubscribe(event_id: str, current_user: dict = Depends(get_current_user)):
    result = await subscriptions_collection.delete_one(
        {"user_id": current_user["_id"], "event_id": to_object_id(event_id, "event ID")}
    )
    if result.deleted_count == 0:
        raise NotFoundException("Subscription", message="Subscription not found")

    logger.info(f"User {current_user['_id']} unsubscribed from event {event_id}")
    return {"success": True, "message": "Successfully unsubscribed from event"}
