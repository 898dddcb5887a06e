from pydantic import BaseModel, EmailStr
from typing import Optional, List
from datetime import datetime
from minglr.schemas.social import RelationKind

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserProfile(BaseModel):
    id: str
    name: str
    avatar: str = ""
    email: Optional[str] = None
    preferences: List[str] = []
    wishlist: List[str] = []
    following: List[str] = []
    followers: List[str] = []
    created_at: Optional[datetime] = None

    def relation_to(self, other_id: str) -> RelationKind:
        if other_id == self.id:
            return RelationKind.SELF
        follows = other_id in self.following
        followed = other_id in self.followers
        if follows and followed:
            return RelationKind.FRIENDS
        if follows:
            return RelationKind.FOLLOWING
        if followed:
            return RelationKind.FOLLOWED_BY
        return RelationKind.NONE

    def friend_ids(self) -> List[str]:
        followers = set(self.followers)
        return [user_id for user_id in self.following if user_id in followers]

class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
    preferences: Optional[List[str]] = None

class Identity(BaseModel):
    """The signed-in account as reported by the identity provider."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserProfile
