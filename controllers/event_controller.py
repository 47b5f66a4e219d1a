from fastapi import APIRouter, Depends, Query
from typing import Optional
import logging

from auth.auth_utils import get_current_user
from constants import EVENT_STATUS_ACTIVE
from database import events_collection
from models.event import EventCreate, EventResponse, EventUpdate
from utils.event_helper import (
    create_event,
    delete_event,
    enrich_events,
    get_event_or_404,
    update_event,
)
from utils.mongo_helper import text_search_filter
from utils.pagination import build_pagination, get_pagination_params

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/events", tags=["event"])


def build_event_filter(category: Optional[str], status: Optional[str], search: Optional[str]) -> dict:
    match_query = {}
    if category and category != "all":
        match_query["category"] = category
    if status and status != "all":
        match_query["status"] = status
    match_query.update(text_search_filter(search, "title", "description"))
    return match_query


async def paginated_events(match_query: dict, page: Optional[int], limit: Optional[int]) -> dict:
    page, skip, limit = get_pagination_params(page, limit)
    total = await events_collection.count_documents(match_query)
    events = await events_collection.find(match_query).sort("created_at", -1).skip(skip).limit(limit).to_list(
        length=limit
    )
    return {
        "success": True,
        "events": await enrich_events(events),
        "pagination": build_pagination(page, limit, total),
    }


# -------------------
# LIST EVENTS
# -------------------
@router.get("")
async def all_events(
        category: Optional[str] = Query(None),
        status: Optional[str] = Query(EVENT_STATUS_ACTIVE, description="Event status, or 'all'"),
        search: Optional[str] = Query(None),
        page: Optional[int] = Query(1, ge=1, description="Page number (1-indexed)"),
        limit: Optional[int] = Query(10, ge=1, le=100, description="Number of items per page (max 100)")
):
    return await paginated_events(build_event_filter(category, status, search), page, limit)


# -------------------
# CREATE EVENT
# -------------------
@router.post("")
async def add_event(payload: EventCreate, current_user: dict = Depends(get_current_user)):
    event = await create_event(current_user, payload)
    return {
        "success": True,
        "message": "Event created successfully",
        "event": EventResponse.from_doc(event, subscriber_count=0),
    }


# -------------------
# GET SINGLE EVENT
# -------------------
@router.get("/{event_id}")
async def get_event(event_id: str):
    event = await get_event_or_404(event_id)
    enriched = await enrich_events([event])
    return {"success": True, "event": enriched[0]}


# -------------------
# UPDATE EVENT (owner or admin)
# -------------------
@router.put("/{event_id}")
async def edit_event(event_id: str, payload: EventUpdate, current_user: dict = Depends(get_current_user)):
    event = await get_event_or_404(event_id)
    result = await update_event(current_user, event, payload)
    return {
        "success": True,
        "message": "Event updated successfully",
        "event": EventResponse.from_doc(result["event"]),
        "notifications_sent": result["notifications_sent"],
        "status_changed": result["status_changed"],
    }


# -------------------
# DELETE EVENT (owner or admin)
# -------------------
@router.delete("/{event_id}")
async def remove_event(event_id: str, current_user: dict = Depends(get_current_user)):
    event = await get_event_or_404(event_id)
    result = await delete_event(current_user, event)
    return {
        "success": True,
        "message": f"Event deleted successfully. {result['subscribers_notified']} subscribers were notified.",
        **result,
    }
