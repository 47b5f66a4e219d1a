from datetime import datetime
from pydantic import BaseModel
from typing import Optional

from models.event import EventResponse
from models.user_model import CreatorSummary


class SubscriptionResponse(BaseModel):
    id: str
    created_at: Optional[datetime] = None
    event: Optional[EventResponse] = None
    creator: Optional[CreatorSummary] = None
