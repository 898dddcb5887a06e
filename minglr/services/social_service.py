"""
The follow graph.

There is one relation: ``A follows B``, stored on both ends
(``A.following`` and ``B.followers``). Friendship is a follow in both
directions; a friend request is a follow that has not been returned yet.
"""
import logging
from typing import List

from minglr.core.errors import InvalidInput
from minglr.core.session import SessionContext
from minglr.core.store import ArrayRemove, ArrayUnion, DocumentStore
from minglr.schemas.notification import NotificationType
from minglr.schemas.social import Relation, RelationKind
from minglr.schemas.user import UserProfile
from minglr.services.notification_service import build_notification
from minglr.services.user_service import PROFILES, UserService

logger = logging.getLogger(__name__)


class SocialService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session
        self.users = UserService(store, session)

    async def _add_edge(self, target_id: str, notification_type: NotificationType) -> UserProfile:
        user = self.session.require_user()
        if target_id == user.id:
            raise InvalidInput("You cannot follow yourself")
        await self.users.get_profile(target_id)

        writes = [
            ArrayUnion(PROFILES, user.id, "following", [target_id]),
            ArrayUnion(PROFILES, target_id, "followers", [user.id]),
        ]
        if target_id not in user.following:
            writes.append(build_notification(
                target_id,
                user.name,
                notification_type,
                related_id=user.id
            ))
        await self.store.apply(writes)
        logger.info("User %s now follows %s", user.id, target_id)
        return await self.users.reload_current()

    async def follow(self, target_id: str) -> UserProfile:
        """
        Follow another user.

        Both profiles and the ``follow`` notification are written in one batch.

        Args:
            target_id (str): The user to follow.

        Returns:
            UserProfile: The current user's refreshed profile.
        """
        return await self._add_edge(target_id, NotificationType.FOLLOW)

    async def send_friend_request(self, target_id: str) -> UserProfile:
        """Follow someone and notify them with a friend request; following back accepts it."""
        return await self._add_edge(target_id, NotificationType.FRIEND_REQUEST)

    async def unfollow(self, target_id: str) -> UserProfile:
        user = self.session.require_user()
        await self.store.apply([
            ArrayRemove(PROFILES, user.id, "following", [target_id]),
            ArrayRemove(PROFILES, target_id, "followers", [user.id]),
        ])
        logger.info("User %s unfollowed %s", user.id, target_id)
        return await self.users.reload_current()

    async def remove_friend(self, target_id: str) -> UserProfile:
        """Drop a friendship from the current user's side by unfollowing."""
        return await self.unfollow(target_id)

    async def relation(self, target_id: str) -> Relation:
        user = self.session.require_user()
        return Relation(user_id=target_id, kind=user.relation_to(target_id))

    async def list_friends(self) -> List[UserProfile]:
        user = self.session.require_user()
        return await self.users.list_profiles(user.friend_ids())

    async def list_following(self) -> List[UserProfile]:
        return await self.users.list_profiles(self.session.require_user().following)

    async def list_followers(self) -> List[UserProfile]:
        return await self.users.list_profiles(self.session.require_user().followers)

    async def pending_requests(self) -> List[UserProfile]:
        """Users who follow the current user without being followed back."""
        user = self.session.require_user()
        pending = [user_id for user_id in user.followers
                   if user.relation_to(user_id) == RelationKind.FOLLOWED_BY]
        return await self.users.list_profiles(pending)
