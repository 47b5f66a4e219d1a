"""
Authorization policy.
Handlers ask `authorize(caller, action, resource)` instead of comparing role strings.
"""
from typing import Optional

from constants import ROLE_ADMIN
from utils.exceptions import ForbiddenException

# Actions
EVENT_UPDATE = "event:update"
EVENT_DELETE = "event:delete"
EVENT_ACTIVATE = "event:activate"
EVENT_REASSIGN = "event:reassign"
EVENT_MODERATE = "event:moderate"
USER_MANAGE = "user:manage"
NOTIFICATION_READ = "notification:read"

ADMIN_ONLY = {EVENT_ACTIVATE, EVENT_REASSIGN, EVENT_MODERATE, USER_MANAGE}
OWNER_OR_ADMIN = {EVENT_UPDATE, EVENT_DELETE}


def is_admin(caller: Optional[dict]) -> bool:
    return bool(caller) and caller.get("role") == ROLE_ADMIN


def owns(caller: dict, resource: Optional[dict], owner_field: str) -> bool:
    if not caller or not resource or resource.get(owner_field) is None:
        return False
    return str(resource[owner_field]) == str(caller["_id"])


def is_allowed(caller: Optional[dict], action: str, resource: Optional[dict] = None) -> bool:
    if not caller:
        return False
    if action in ADMIN_ONLY:
        return is_admin(caller)
    if action in OWNER_OR_ADMIN:
        return is_admin(caller) or owns(caller, resource, "created_by")
    if action == NOTIFICATION_READ:
        return owns(caller, resource, "user_id")
    return False


def authorize(caller: Optional[dict], action: str, resource: Optional[dict] = None,
              message: str = "Permission denied") -> None:
    if not is_allowed(caller, action, resource):
        raise ForbiddenException(message)
