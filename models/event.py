from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from models.user_model import CreatorSummary
from utils.mongo_helper import id_str


class EventCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    location: Optional[str] = None
    category: Optional[str] = None
    banner: Optional[str] = None


class EventUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    banner: Optional[str] = None
    status: Optional[str] = None
    created_by: Optional[str] = Field(None, alias="createdBy")


class EventStatusRequest(BaseModel):
    status: str


class SubscriberSummary(BaseModel):
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    subscribed_at: Optional[datetime] = None


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    date: str
    time: str
    location: str
    category: str
    status: str
    banner: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    subscriber_count: Optional[int] = None
    creator: Optional[CreatorSummary] = None
    subscribers: Optional[List[SubscriberSummary]] = None

    @classmethod
    def from_doc(cls, event: dict, **extra) -> "EventResponse":
        return cls(
            id=id_str(event["_id"]),
            title=event.get("title", ""),
            description=event.get("description", ""),
            date=event.get("date", ""),
            time=event.get("time", ""),
            location=event.get("location", ""),
            category=event.get("category", "other"),
            status=event.get("status", "pending"),
            banner=event.get("banner"),
            created_by=id_str(event.get("created_by")),
            created_at=event.get("created_at"),
            updated_at=event.get("updated_at"),
            **extra,
        )
