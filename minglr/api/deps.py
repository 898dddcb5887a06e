"""
FastAPI dependencies: the per-request session and the services built on it.
"""
from fastapi import Depends

from minglr.core.security import get_current_identity, verify_access_token
from minglr.core.session import SessionContext
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_admin_client, get_auth_client, get_blob_store, get_store
from minglr.schemas.user import Identity
from minglr.services.activity_service import ActivityService
from minglr.services.auth_service import AuthService
from minglr.services.messaging_service import MessagingService
from minglr.services.notification_service import NotificationService
from minglr.services.poll_service import PollService
from minglr.services.post_service import PostService
from minglr.services.ranking_service import RankingService
from minglr.services.social_service import SocialService
from minglr.services.storage_service import BlobStore, StorageService
from minglr.services.user_service import UserService


async def load_session(identity: Identity, store: DocumentStore) -> SessionContext:
    profile = await UserService(store, SessionContext()).get_or_create_profile(identity)
    return SessionContext(user=profile)


async def get_session(
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
) -> SessionContext:
    return await load_session(identity, store)


async def session_from_token(token: str, store: DocumentStore) -> SessionContext:
    """Session for WebSocket routes, which pass the token as a query parameter."""
    return await load_session(verify_access_token(token), store)


def get_user_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> UserService:
    return UserService(store, session)


def get_social_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> SocialService:
    return SocialService(store, session)


def get_messaging_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> MessagingService:
    return MessagingService(store, session)


def get_poll_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> PollService:
    return PollService(store, session)


def get_notification_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> NotificationService:
    return NotificationService(store, session)


def get_post_service(store: DocumentStore = Depends(get_store), session: SessionContext = Depends(get_session)) -> PostService:
    return PostService(store, session)


def get_activity_service(store: DocumentStore = Depends(get_store)) -> ActivityService:
    return ActivityService(store)


def get_storage_service(blobs: BlobStore = Depends(get_blob_store), session: SessionContext = Depends(get_session)) -> StorageService:
    return StorageService(blobs, session)


def get_ranking_service() -> RankingService:
    return RankingService()


async def get_auth_service() -> AuthService:
    return AuthService(await get_auth_client(), await get_admin_client())
