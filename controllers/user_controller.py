from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
import logging

from auth.auth_utils import get_current_user, hash_password, verify_password
from constants import EVENT_STATUS_ACTIVE, MIN_PASSWORD_LENGTH
from database import events_collection, subscriptions_collection, users_collection
from models.event import EventResponse, EventUpdate
from models.subscription import SubscriptionResponse
from models.user_model import ProfileUpdate, UserResponse, UserStats
from utils.cloudinary_config import delete_images_quietly
from utils.event_helper import creator_summaries, delete_event, enrich_events, find_owned_event, update_event
from utils.exceptions import NotFoundException, ValidationException
from utils.mongo_helper import id_str, utcnow
from utils.schedule import is_in_future

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/user", tags=["user"])


async def owned_event_or_404(current_user: dict, event_id: str) -> dict:
    event = await find_owned_event(current_user, event_id)
    if not event:
        raise NotFoundException("Event", message="Event not found or access denied")
    return event


# -------------------
# PROFILE
# -------------------
@router.get("/profile")
async def get_my_profile(current_user: dict = Depends(get_current_user)):
    events_created = await events_collection.count_documents({"created_by": current_user["_id"]})
    events_subscribed = await subscriptions_collection.count_documents({"user_id": current_user["_id"]})
    stats = UserStats(events_created=events_created, events_subscribed=events_subscribed)
    return {"success": True, "user": UserResponse.from_doc(current_user, stats=stats)}


@router.put("/profile")
async def update_my_profile(profile: ProfileUpdate, current_user: dict = Depends(get_current_user)):
    update_data = {}

    if profile.name:
        update_data["name"] = profile.name.strip()
    if profile.email:
        email = profile.email.lower()
        taken = await users_collection.find_one({"email": email, "_id": {"$ne": current_user["_id"]}})
        if taken:
            raise ValidationException("Email already taken")
        update_data["email"] = email
    if "avatar" in profile.model_fields_set:
        update_data["avatar"] = profile.avatar

    if profile.new_password:
        if not verify_password(profile.current_password, current_user.get("password_hash")):
            raise ValidationException("Current password is incorrect")
        if len(profile.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationException(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        update_data["password_hash"] = hash_password(profile.new_password)

    update_data["updated_at"] = utcnow()
    await users_collection.update_one({"_id": current_user["_id"]}, {"$set": update_data})

    old_avatar = current_user.get("avatar")
    if "avatar" in update_data and old_avatar and old_avatar != update_data["avatar"]:
        await run_in_threadpool(delete_images_quietly, [old_avatar])

    updated = {**current_user, **update_data}
    return {"success": True, "message": "Profile updated successfully", "user": UserResponse.from_doc(updated)}


# -------------------
# MY EVENTS
# -------------------
@router.get("/events")
async def my_events(current_user: dict = Depends(get_current_user)):
    events = await events_collection.find({"created_by": current_user["_id"]}).sort("created_at", -1).to_list(
        length=None
    )
    return {"success": True, "events": await enrich_events(events, include_creator=False)}


@router.get("/events/{event_id}")
async def my_event(event_id: str, current_user: dict = Depends(get_current_user)):
    event = await owned_event_or_404(current_user, event_id)
    enriched = await enrich_events([event], include_creator=False)
    return {"success": True, "event": enriched[0]}


@router.put("/events/{event_id}")
async def edit_my_event(event_id: str, payload: EventUpdate, current_user: dict = Depends(get_current_user)):
    event = await owned_event_or_404(current_user, event_id)
    result = await update_event(current_user, event, payload, owner_route=True)
    return {
        "success": True,
        "message": "Event updated successfully",
        "event": EventResponse.from_doc(result["event"]),
        "data": {
            "event_id": id_str(event["_id"]),
            "notifications_created": result["notifications_sent"],
            "status_changed": result["status_changed"],
        },
    }


@router.delete("/events/{event_id}")
async def delete_my_event(event_id: str, current_user: dict = Depends(get_current_user)):
    event = await owned_event_or_404(current_user, event_id)
    result = await delete_event(current_user, event)
    return {"success": True, "message": "Event deleted successfully", "data": result}


# -------------------
# SUBSCRIPTIONS
# -------------------
@router.get("/subscriptions")
async def my_subscriptions(current_user: dict = Depends(get_current_user)):
    subscriptions = await subscriptions_collection.find({"user_id": current_user["_id"]}).sort(
        "created_at", -1
    ).to_list(length=None)

    events = await events_collection.find(
        {"_id": {"$in": [sub["event_id"] for sub in subscriptions]}}
    ).to_list(length=None)
    events_by_id = {event["_id"]: event for event in events}
    creators = await creator_summaries(event.get("created_by") for event in events)

    result = []
    for sub in subscriptions:
        event = events_by_id.get(sub["event_id"])
        result.append(SubscriptionResponse(
            id=id_str(sub["_id"]),
            created_at=sub.get("created_at"),
            event=EventResponse.from_doc(event) if event else None,
            creator=creators.get(event.get("created_by")) if event else None,
        ))
    return {"success": True, "subscriptions": result}


# -------------------
# STATS
# -------------------
@router.get("/stats")
async def my_stats(current_user: dict = Depends(get_current_user)):
    my_events_count = await events_collection.count_documents({"created_by": current_user["_id"]})
    subscriptions = await subscriptions_collection.find(
        {"user_id": current_user["_id"]}, {"event_id": 1}
    ).to_list(length=None)

    subscribed = await events_collection.find(
        {"_id": {"$in": [sub["event_id"] for sub in subscriptions]}, "status": EVENT_STATUS_ACTIVE},
        {"date": 1, "time": 1},
    ).to_list(length=None)
    upcoming = sum(1 for event in subscribed if is_in_future(event.get("date"), event.get("time")))

    return {
        "success": True,
        "stats": {
            "my_events": my_events_count,
            "subscribed_events": len(subscriptions),
            "upcoming_events": upcoming,
        },
    }
