"""
Small helpers around BSON ids and timestamps shared by the controllers.
"""
import re
from datetime import datetime
from typing import Optional

from bson import ObjectId

from utils.exceptions import ValidationException


def to_object_id(value, label: str = "ID") -> ObjectId:
    """Parse a path/body id, raising a 400 with a readable message when malformed."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(str(value)):
        raise ValidationException(f"Invalid {label}")
    return ObjectId(str(value))


def id_str(value) -> Optional[str]:
    return str(value) if value is not None else None


def utcnow() -> datetime:
    return datetime.utcnow()


def text_search_filter(search: Optional[str], *fields: str) -> dict:
    """Case-insensitive substring match across the given fields."""
    if not search:
        return {}
    pattern = re.escape(search.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}
