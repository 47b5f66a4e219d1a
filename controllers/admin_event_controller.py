from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from auth.auth_utils import require_admin
from constants import EVENT_STATUS_ACTIVE
from controllers.event_controller import build_event_filter, paginated_events
from database import events_collection, subscriptions_collection, users_collection
from models.event import EventResponse, EventStatusRequest, EventUpdate
from utils.event_helper import (
    change_event_status,
    delete_event,
    enrich_events,
    get_event_or_404,
    list_subscribers,
    update_event,
)
from utils.mongo_helper import utcnow

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/events")
async def all_events_admin(
    admin: dict = Depends(require_admin),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query("all"),
    search: Optional[str] = Query(None),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(10, ge=1, le=100),
):
    return await paginated_events(build_event_filter(category, status, search), page, limit)


@router.get("/events/{event_id}")
async def get_event_admin(event_id: str, admin: dict = Depends(require_admin)):
    event = await get_event_or_404(event_id)
    enriched = (await enrich_events([event]))[0]
    enriched.subscribers = await list_subscribers(event["_id"])
    return {"success": True, "event": enriched}


@router.put("/events/{event_id}")
async def update_event_admin(event_id: str, payload: EventUpdate, admin: dict = Depends(require_admin)):
    event = await get_event_or_404(event_id)
    result = await update_event(admin, event, payload)
    return {
        "success": True,
        "message": "Event updated successfully",
        "event": EventResponse.from_doc(result["event"]),
        "notifications_sent": result["notifications_sent"],
        "status_changed": result["status_changed"],
    }


@router.patch("/events/{event_id}/status")
async def update_event_status(event_id: str, request: EventStatusRequest, admin: dict = Depends(require_admin)):
    event = await get_event_or_404(event_id)
    result = await change_event_status(admin, event, request.status)
    message = "Event status updated successfully" if result["changed"] else f"Event is already {request.status}"
    return {
        "success": True,
        "message": message,
        "event_id": event_id,
        "status": request.status,
        "previous_status": result["previous_status"],
        "notifications_sent": result["notifications_sent"],
    }


@router.delete("/events/{event_id}")
async def delete_event_admin(event_id: str, admin: dict = Depends(require_admin)):
    event = await get_event_or_404(event_id)
    result = await delete_event(admin, event)
    return {
        "success": True,
        "message": f"Event deleted successfully. {result['subscribers_notified']} subscribers were notified.",
        **result,
    }


@router.get("/stats")
async def admin_stats(admin: dict = Depends(require_admin)):
    total_users = await users_collection.count_documents({})
    total_events = await events_collection.count_documents({})
    total_subscriptions = await subscriptions_collection.count_documents({})

    by_status = await events_collection.aggregate(
        [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
    ).to_list(length=None)
    by_category = await events_collection.aggregate(
        [{"$group": {"_id": "$category", "count": {"$sum": 1}}}]
    ).to_list(length=None)

    # bucket recent sign-ups by month
    since = utcnow() - timedelta(days=183)
    recent = await users_collection.find({"created_at": {"$gte": since}}, {"created_at": 1}).to_list(length=None)
    growth = {}
    for user in recent:
        key = (user["created_at"].year, user["created_at"].month)
        growth[key] = growth.get(key, 0) + 1

    return {
        "success": True,
        "stats": {
            "total_users": total_users,
            "total_events": total_events,
            "total_subscriptions": total_subscriptions,
            "active_events": next((row["count"] for row in by_status if row["_id"] == EVENT_STATUS_ACTIVE), 0),
            "events_by_status": {row["_id"]: row["count"] for row in by_status},
            "events_by_category": {row["_id"]: row["count"] for row in by_category},
            "user_growth": [
                {"year": year, "month": month, "count": count}
                for (year, month), count in sorted(growth.items())
            ],
        },
    }
