from dataclasses import dataclass
from typing import Optional

from minglr.core.errors import NotAuthenticated
from minglr.schemas.user import UserProfile


@dataclass
class SessionContext:
    """The signed-in user's profile, handed to every service that needs it."""
    user: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    def require_user(self) -> UserProfile:
        if self.user is None:
            raise NotAuthenticated()
        return self.user

    def refresh(self, profile: UserProfile) -> None:
        self.user = profile
