import logging
from typing import Any, Optional, Tuple

from fastapi import status
from supabase import AsyncClient
from supabase_auth.errors import AuthApiError

from minglr.core.errors import AuthenticationFailed
from minglr.schemas.user import Identity

logger = logging.getLogger(__name__)


def identity_from_user(user: Any) -> Identity:
    """Map a Supabase auth user onto the account fields the app uses."""
    metadata = user.user_metadata or {}
    return Identity(
        id=str(user.id),
        email=user.email,
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url") or metadata.get("picture")
    )


class AuthService:
    """
    Email/password and OAuth sign-in against Supabase auth.

    ``client`` is a client used only for auth calls, since a successful sign-in
    swaps the client's credentials for the user's. ``admin`` is the service-role
    client, needed to revoke sessions.
    """

    def __init__(self, client: AsyncClient, admin: Optional[AsyncClient] = None):
        self.client = client
        self.admin = admin

    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> Tuple[str, Identity]:
        try:
            response = await self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": name or email.split("@")[0]}}
            })
        except AuthApiError as e:
            raise AuthenticationFailed(e.message) from e

        if response.user is None:
            raise AuthenticationFailed("Registration failed")
        if response.session is None:
            raise AuthenticationFailed("Please confirm your email address, then sign in", status.HTTP_202_ACCEPTED)
        logger.info("Registered %s", response.user.id)
        return response.session.access_token, identity_from_user(response.user)

    async def sign_in(self, email: str, password: str) -> Tuple[str, Identity]:
        try:
            response = await self.client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except AuthApiError as e:
            raise AuthenticationFailed(e.message, status.HTTP_401_UNAUTHORIZED) from e

        if response.user is None or response.session is None:
            raise AuthenticationFailed("Invalid credentials", status.HTTP_401_UNAUTHORIZED)
        return response.session.access_token, identity_from_user(response.user)

    async def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        """URL of the provider's consent page for a third-party sign-in."""
        credentials: dict = {"provider": provider}
        if redirect_to:
            credentials["options"] = {"redirect_to": redirect_to}
        try:
            response = await self.client.auth.sign_in_with_oauth(credentials)
        except AuthApiError as e:
            raise AuthenticationFailed(e.message) from e
        return response.url

    async def sign_out(self, access_token: str) -> None:
        if self.admin is None:
            return
        try:
            await self.admin.auth.admin.sign_out(access_token)
        except AuthApiError as e:
            raise AuthenticationFailed(e.message) from e
