from fastapi import APIRouter, Depends, Query
from typing import Optional

from auth.auth_utils import get_current_user
from auth.policy import NOTIFICATION_READ, is_allowed
from constants import DEFAULT_NOTIFICATION_PAGE_SIZE
from database import notifications_collection
from models.notification import NotificationResponse
from utils.exceptions import NotFoundException
from utils.mongo_helper import to_object_id
from utils.pagination import build_pagination, get_pagination_params

router = APIRouter(prefix="/notifications", tags=["notification"])


@router.get("")
async def my_notifications(
    current_user: dict = Depends(get_current_user),
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(DEFAULT_NOTIFICATION_PAGE_SIZE, ge=1, le=100),
):
    page, skip, limit = get_pagination_params(page, limit, DEFAULT_NOTIFICATION_PAGE_SIZE)
    query = {"user_id": current_user["_id"]}
    if unread_only:
        query["read"] = False

    total = await notifications_collection.count_documents(query)
    unread_count = await notifications_collection.count_documents({"user_id": current_user["_id"], "read": False})
    docs = await notifications_collection.find(query).sort("created_at", -1).skip(skip).limit(limit).to_list(
        length=limit
    )

    return {
        "success": True,
        "notifications": [NotificationResponse.from_doc(doc) for doc in docs],
        "unread_count": unread_count,
        "pagination": build_pagination(page, limit, total),
    }


@router.patch("/read-all")
async def mark_all_read(current_user: dict = Depends(get_current_user)):
    result = await notifications_collection.update_many(
        {"user_id": current_user["_id"], "read": False}, {"$set": {"read": True}}
    )
    return {"success": True, "message": "All notifications marked as read", "updated": result.modified_count}


@router.patch("/{notification_id}/read")
async def mark_read(notification_id: str, current_user: dict = Depends(get_current_user)):
    notification = await notifications_collection.find_one(
        {"_id": to_object_id(notification_id, "notification ID")}
    )
    # someone else's notification is reported as missing
    if not notification or not is_allowed(current_user, NOTIFICATION_READ, notification):
        raise NotFoundException("Notification", message="Notification not found")

    await notifications_collection.update_one({"_id": notification["_id"]}, {"$set": {"read": True}})
    return {"success": True, "message": "Notification marked as read"}
