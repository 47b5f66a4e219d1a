from datetime import datetime
from pydantic import BaseModel
from typing import Optional

from utils.mongo_helper import id_str


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    event_id: Optional[str] = None
    event_title: Optional[str] = None
    type: str
    status: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, notification: dict) -> "NotificationResponse":
        return cls(
            id=id_str(notification["_id"]),
            user_id=id_str(notification["user_id"]),
            title=notification.get("title", ""),
            message=notification.get("message", ""),
            event_id=id_str(notification.get("event_id")),
            event_title=notification.get("event_title"),
            type=notification["type"],
            status=notification.get("status"),
            read=notification.get("read", False),
            created_at=notification.get("created_at"),
        )
