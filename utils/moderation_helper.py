"""
Admin moderation of user accounts.

Role and status changes cascade to the user's events and always leave the
system with at least one active admin.
"""
import logging

from bson import ObjectId
from fastapi.concurrency import run_in_threadpool

from auth.policy import USER_MANAGE, authorize
from constants import (
    EVENT_STATUS_ACTIVE,
    EVENT_STATUS_PENDING,
    ROLE_ADMIN,
    ROLE_USER,
    USER_ROLES,
    USER_STATUS_ACTIVE,
    USER_STATUS_SUSPENDED,
    USER_STATUSES,
)
from database import events_collection, users_collection
from utils.cascade_helper import delete_user_cascade
from utils.cloudinary_config import delete_images_quietly
from utils.exceptions import NotFoundException, ValidationException
from utils.mongo_helper import to_object_id, utcnow
from utils.notification_helper import notify_account_change

logger = logging.getLogger(__name__)


async def get_user_or_404(user_id) -> dict:
    user = await users_collection.find_one({"_id": to_object_id(user_id, "user ID")})
    if not user:
        raise NotFoundException("User", message="User not found")
    return user


async def count_other_active_admins(user_id: ObjectId) -> int:
    return await users_collection.count_documents(
        {"role": ROLE_ADMIN, "status": USER_STATUS_ACTIVE, "_id": {"$ne": user_id}}
    )


async def _guard_last_admin(target: dict, message: str) -> None:
    if target.get("role") == ROLE_ADMIN and await count_other_active_admins(target["_id"]) == 0:
        raise ValidationException(message)


def _reject_self(caller: dict, target_id: ObjectId, what: str) -> None:
    if caller["_id"] == target_id:
        raise ValidationException(f"You cannot change your own {what}")


def validate_role(role: str) -> None:
    if role not in USER_ROLES:
        raise ValidationException(f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")


def validate_user_status(status: str) -> None:
    if status not in USER_STATUSES:
        raise ValidationException(f"Invalid status. Must be one of: {', '.join(USER_STATUSES)}")


async def update_user_account(caller: dict, user_id: str, role: str = None, status: str = None) -> dict:
    """
    Combined role and status change. Both values are checked before either
    is written so a bad value never leaves half the update behind.
    """
    authorize(caller, USER_MANAGE)
    if not role and not status:
        raise ValidationException("Nothing to update: provide role and/or status")
    if role:
        validate_role(role)
    if status:
        validate_user_status(status)
    target_id = to_object_id(user_id, "user ID")
    if role:
        _reject_self(caller, target_id, "role")
    if status:
        _reject_self(caller, target_id, "status")
    await get_user_or_404(target_id)

    result = {}
    if role:
        result["role"] = await change_user_role(caller, user_id, role)
    if status:
        result["status"] = await change_user_status(caller, user_id, status)
    return result


async def change_user_role(caller: dict, user_id: str, role: str) -> dict:
    authorize(caller, USER_MANAGE)
    validate_role(role)

    target_id = to_object_id(user_id, "user ID")
    _reject_self(caller, target_id, "role")
    target = await get_user_or_404(target_id)

    previous_role = target.get("role", ROLE_USER)
    if previous_role == role:
        return {"changed": False, "previous_role": previous_role, "role": role, "events_activated": 0}

    if role == ROLE_USER:
        await _guard_last_admin(target, "Cannot demote the last admin")

    now = utcnow()
    await users_collection.update_one({"_id": target_id}, {"$set": {"role": role, "updated_at": now}})

    events_activated = 0
    if role == ROLE_ADMIN:
        result = await events_collection.update_many(
            {"created_by": target_id, "status": EVENT_STATUS_PENDING},
            {"$set": {"status": EVENT_STATUS_ACTIVE, "updated_at": now}},
        )
        events_activated = result.modified_count

    message = f"Your role has been changed from {previous_role} to {role}."
    if events_activated:
        message += f" {events_activated} pending event(s) have been activated."
    await notify_account_change(target_id, "Role Updated", message)

    logger.info(
        f"Admin {caller['_id']} changed role of {target_id}: {previous_role} -> {role} "
        f"({events_activated} event(s) activated)"
    )
    return {
        "changed": True,
        "previous_role": previous_role,
        "role": role,
        "events_activated": events_activated,
    }


async def change_user_status(caller: dict, user_id: str, status: str) -> dict:
    authorize(caller, USER_MANAGE)
    validate_user_status(status)

    target_id = to_object_id(user_id, "user ID")
    _reject_self(caller, target_id, "status")
    target = await get_user_or_404(target_id)

    previous_status = target.get("status", USER_STATUS_ACTIVE)
    if previous_status == status:
        return {"changed": False, "previous_status": previous_status, "status": status, "events_deactivated": 0}

    if status == USER_STATUS_SUSPENDED:
        await _guard_last_admin(target, "Cannot suspend the last active admin")

    now = utcnow()
    await users_collection.update_one({"_id": target_id}, {"$set": {"status": status, "updated_at": now}})

    events_deactivated = 0
    if status == USER_STATUS_SUSPENDED:
        # A suspended organizer cannot run live events
        result = await events_collection.update_many(
            {"created_by": target_id, "status": EVENT_STATUS_ACTIVE},
            {"$set": {"status": EVENT_STATUS_PENDING, "updated_at": now}},
        )
        events_deactivated = result.modified_count
        title = "Account Suspended"
        message = "Your account has been suspended."
        if events_deactivated:
            message += f" {events_deactivated} active event(s) have been moved to pending."
    else:
        title = "Account Reactivated"
        message = "Your account has been reactivated."
    await notify_account_change(target_id, title, message)

    logger.info(
        f"Admin {caller['_id']} changed status of {target_id}: {previous_status} -> {status} "
        f"({events_deactivated} event(s) moved to pending)"
    )
    return {
        "changed": True,
        "previous_status": previous_status,
        "status": status,
        "events_deactivated": events_deactivated,
    }


async def delete_user(caller: dict, user_id: str) -> dict:
    authorize(caller, USER_MANAGE)
    target_id = to_object_id(user_id, "user ID")
    if caller["_id"] == target_id:
        raise ValidationException("You cannot delete your own account")
    target = await get_user_or_404(target_id)
    await _guard_last_admin(target, "Cannot delete the last active admin")

    events = await events_collection.find(
        {"created_by": target_id}, {"banner": 1}
    ).to_list(length=None)
    counts = await delete_user_cascade(target, [event["_id"] for event in events])

    images = [target.get("avatar")] + [event.get("banner") for event in events]
    images_deleted = await run_in_threadpool(delete_images_quietly, images)

    return {
        "events_deleted": counts["events"],
        "subscriptions_deleted": counts["subscriptions"],
        "notifications_deleted": counts["notifications"],
        "images_deleted": images_deleted,
    }
