import logging
from typing import List

from minglr.core.errors import InvalidInput, MinglrError, NotFound
from minglr.core.session import SessionContext
from minglr.core.store import ArrayRemove, ArrayUnion, DocumentStore, Query
from minglr.schemas.user import Identity, ProfileUpdate, UserProfile

logger = logging.getLogger(__name__)

PROFILES = "profiles"

# Highest code point in the private use area; closes a prefix range query
PREFIX_END = "\uf8ff"


def default_avatar(user_id: str) -> str:
    return f"https://i.pravatar.cc/150?u={user_id}"


class UserService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session

    async def get_or_create_profile(self, identity: Identity) -> UserProfile:
        """
        Get the profile of a signed-in account, creating it on first sign-in.

        Args:
            identity (Identity): The account reported by the identity provider.

        Returns:
            UserProfile: The stored or newly created profile.
        """
        row = await self.store.get(PROFILES, identity.id)
        if row is not None:
            return UserProfile(**row)

        fallback_name = identity.email.split("@")[0] if identity.email else "New User"
        profile = UserProfile(
            id=identity.id,
            name=identity.display_name or fallback_name,
            avatar=identity.photo_url or default_avatar(identity.id),
            email=identity.email
        )
        row = await self.store.insert(PROFILES, profile.model_dump(mode="json", exclude={"created_at"}))
        logger.info("Created profile for %s", identity.id)
        return UserProfile(**row)

    async def get_profile(self, user_id: str) -> UserProfile:
        row = await self.store.get(PROFILES, user_id)
        if row is None:
            raise NotFound("Profile not found")
        return UserProfile(**row)

    async def list_profiles(self, user_ids: List[str]) -> List[UserProfile]:
        if not user_ids:
            return []
        rows = await self.store.get_many(PROFILES, user_ids)
        return [UserProfile(**row) for row in rows]

    async def reload_current(self) -> UserProfile:
        profile = await self.get_profile(self.session.require_user().id)
        self.session.refresh(profile)
        return profile

    async def update_profile(self, updates: ProfileUpdate) -> UserProfile:
        """Update name, avatar or preferences of the current user."""
        user = self.session.require_user()
        values = updates.model_dump(exclude_none=True)
        if "name" in values and not values["name"].strip():
            raise InvalidInput("Name cannot be empty")
        if not values:
            return user

        row = await self.store.update(PROFILES, user.id, values)
        if row is None:
            raise NotFound("Profile not found")
        profile = UserProfile(**row)
        self.session.refresh(profile)
        return profile

    async def search_users(self, term: str) -> List[UserProfile]:
        """
        Find other users whose name starts with ``term``.

        Lookup failures are logged and give an empty result.
        """
        term = term.strip()
        if not term:
            return []
        query = Query(PROFILES).gte("name", term).lte("name", term + PREFIX_END)
        try:
            rows = await self.store.fetch(query)
        except MinglrError as e:
            logger.warning("User search for %r failed: %s", term, e)
            return []

        me = self.session.user_id
        lowered = term.lower()
        return [
            UserProfile(**row) for row in rows
            if row["id"] != me and lowered in (row.get("name") or "").lower()
        ]

    async def add_to_wishlist(self, activity_id: str) -> UserProfile:
        user = self.session.require_user()
        if activity_id in user.wishlist:
            return user
        await self.store.apply([ArrayUnion(PROFILES, user.id, "wishlist", [activity_id])])
        return await self.reload_current()

    async def remove_from_wishlist(self, activity_id: str) -> UserProfile:
        user = self.session.require_user()
        await self.store.apply([ArrayRemove(PROFILES, user.id, "wishlist", [activity_id])])
        return await self.reload_current()
