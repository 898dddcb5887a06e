from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from minglr.schemas.chat import utcnow

class Comment(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_avatar: str = ""
    text: str
    created_at: datetime = Field(default_factory=utcnow)

class Post(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_avatar: str = ""
    image_url: str
    activity_id: Optional[str] = None
    caption: str = ""
    likes: int = 0
    liked_by: List[str] = []
    comments: List[Comment] = []
    created_at: datetime = Field(default_factory=utcnow)

class PostCreate(BaseModel):
    image_url: str
    caption: str = ""
    activity_id: Optional[str] = None

class CommentCreate(BaseModel):
    text: str
