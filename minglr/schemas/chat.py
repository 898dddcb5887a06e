from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
from minglr.schemas.activity import Activity

# Channel id of the public chat every user can read
GLOBAL_CHANNEL = "global"

# In attendance polls the first option is the one that confirms attendance
ATTENDING_OPTION = 0

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class PollKind(str, Enum):
    GENERAL = "general"
    ATTENDANCE = "attendance"

class PollOption(BaseModel):
    text: str
    votes: List[str] = []

class Poll(BaseModel):
    question: str
    kind: PollKind = PollKind.GENERAL
    options: List[PollOption]

    @classmethod
    def attendance(cls, question: str) -> "Poll":
        """A YES/NO poll whose YES voters count as attending."""
        return cls(
            question=question,
            kind=PollKind.ATTENDANCE,
            options=[PollOption(text="YES"), PollOption(text="NO")]
        )

    @property
    def total_votes(self) -> int:
        return sum(len(option.votes) for option in self.options)

    def choice_of(self, user_id: str) -> Optional[int]:
        for index, option in enumerate(self.options):
            if user_id in option.votes:
                return index
        return None

    def confirmed_by(self, user_id: str) -> bool:
        if self.kind != PollKind.ATTENDANCE or len(self.options) <= ATTENDING_OPTION:
            return False
        return user_id in self.options[ATTENDING_OPTION].votes

class ChatGroup(BaseModel):
    id: str
    name: str
    members: List[str] = []
    last_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

class GroupCreate(BaseModel):
    name: str
    member_ids: List[str] = []

class Message(BaseModel):
    id: str
    user_id: str
    user_name: str
    text: str = ""
    activity_id: Optional[str] = None
    group_id: str = GLOBAL_CHANNEL
    poll: Optional[Poll] = None
    revision: int = 0
    created_at: datetime = Field(default_factory=utcnow)

class MessageCreate(BaseModel):
    text: str = ""
    activity_id: Optional[str] = None
    poll: Optional[Poll] = None

class VoteRequest(BaseModel):
    option_index: int

class OptionTally(BaseModel):
    text: str
    votes: int
    percentage: int

class PollTally(BaseModel):
    question: str
    kind: PollKind
    total_votes: int
    options: List[OptionTally]

class ConfirmedEvent(BaseModel):
    message_id: str
    group_id: str
    activity: Activity
    confirmed_at: datetime
