from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from minglr.schemas.chat import utcnow

class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    MESSAGE = "message"
    FRIEND_REQUEST = "friend_request"
    EVENT = "event"
    FOLLOW = "follow"

class Notification(BaseModel):
    id: str
    user_id: str
    actor_name: str
    type: NotificationType
    text: Optional[str] = None
    related_id: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)

class UnreadCount(BaseModel):
    unread: int
