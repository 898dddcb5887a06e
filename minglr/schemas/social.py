from pydantic import BaseModel
from enum import Enum

class RelationKind(str, Enum):
    """How another user relates to the current one in the follow graph."""
    NONE = "none"
    FOLLOWING = "following"
    FOLLOWED_BY = "followed_by"
    FRIENDS = "friends"
    SELF = "self"

class Relation(BaseModel):
    user_id: str
    kind: RelationKind
