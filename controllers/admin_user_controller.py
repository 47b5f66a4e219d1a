from typing import Optional

from fastapi import APIRouter, Depends, Query

from auth.auth_utils import require_admin
from database import events_collection, subscriptions_collection, users_collection
from models.user_model import AdminUserUpdate, RoleChangeRequest, StatusChangeRequest, UserResponse, UserStats
from utils.moderation_helper import (
    change_user_role,
    change_user_status,
    delete_user,
    get_user_or_404,
    update_user_account,
)
from utils.mongo_helper import text_search_filter
from utils.pagination import build_pagination, get_pagination_params

router = APIRouter(prefix="/admin/users", tags=["user_management"])


async def _count_by(collection, field: str, user_ids: list) -> dict:
    pipeline = [
        {"$match": {field: {"$in": user_ids}}},
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
    ]
    rows = await collection.aggregate(pipeline).to_list(length=None)
    return {row["_id"]: row["count"] for row in rows}


@router.get("")
async def list_users(
    admin: dict = Depends(require_admin),
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(10, ge=1, le=100),
):
    query = text_search_filter(search, "name", "email")
    if role and role != "all":
        query["role"] = role
    if status and status != "all":
        query["status"] = status

    page, skip, limit = get_pagination_params(page, limit)
    total = await users_collection.count_documents(query)
    users = await users_collection.find(query, {"password_hash": 0}).sort("created_at", -1).skip(skip).limit(
        limit
    ).to_list(length=limit)

    user_ids = [user["_id"] for user in users]
    created = await _count_by(events_collection, "created_by", user_ids)
    subscribed = await _count_by(subscriptions_collection, "user_id", user_ids)

    return {
        "success": True,
        "users": [
            UserResponse.from_doc(
                user,
                stats=UserStats(
                    events_created=created.get(user["_id"], 0),
                    events_subscribed=subscribed.get(user["_id"], 0),
                ),
            )
            for user in users
        ],
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/{user_id}")
async def get_user(user_id: str, admin: dict = Depends(require_admin)):
    user = await get_user_or_404(user_id)
    stats = UserStats(
        events_created=await events_collection.count_documents({"created_by": user["_id"]}),
        events_subscribed=await subscriptions_collection.count_documents({"user_id": user["_id"]}),
    )
    return {"success": True, "user": UserResponse.from_doc(user, stats=stats)}


@router.put("/{user_id}")
async def update_user(user_id: str, payload: AdminUserUpdate, admin: dict = Depends(require_admin)):
    """Role and status go through the same guarded operations as the PATCH routes."""
    result = await update_user_account(admin, user_id, role=payload.role, status=payload.status)
    user = await get_user_or_404(user_id)
    return {"success": True, "message": "User updated successfully", "user": UserResponse.from_doc(user), **result}


@router.patch("/{user_id}/role")
async def patch_user_role(user_id: str, request: RoleChangeRequest, admin: dict = Depends(require_admin)):
    result = await change_user_role(admin, user_id, request.role)
    message = "User role updated successfully" if result["changed"] else f"User already has role {request.role}"
    return {"success": True, "message": message, "user_id": user_id, **result}


@router.patch("/{user_id}/status")
async def patch_user_status(user_id: str, request: StatusChangeRequest, admin: dict = Depends(require_admin)):
    result = await change_user_status(admin, user_id, request.status)
    message = "User status updated successfully" if result["changed"] else f"User is already {request.status}"
    return {"success": True, "message": message, "user_id": user_id, **result}


@router.delete("/{user_id}")
async def remove_user(user_id: str, admin: dict = Depends(require_admin)):
    result = await delete_user(admin, user_id)
    return {"success": True, "message": "User deleted successfully", **result}
