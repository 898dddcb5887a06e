from datetime import timedelta
from types import SimpleNamespace

import pytest
from supabase_auth.errors import AuthApiError

from minglr.core.errors import AuthenticationFailed, NotAuthenticated
from minglr.core.security import create_access_token, verify_access_token
from minglr.services.auth_service import AuthService


def test_token_round_trip_carries_identity():
    identity = verify_access_token(create_access_token("u1", email="ann@example.com", name="Ann"))

    assert identity.id == "u1"
    assert identity.email == "ann@example.com"
    assert identity.display_name == "Ann"


def test_expired_token_is_rejected():
    token = create_access_token("u1", expires_delta=timedelta(minutes=-1))
    with pytest.raises(NotAuthenticated):
        verify_access_token(token)


class FakeAuth:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def _answer(self, name, payload):
        self.calls.append((name, payload))
        if self.error is not None:
            raise self.error
        return self.response

    async def sign_up(self, payload):
        return await self._answer("sign_up", payload)

    async def sign_in_with_password(self, payload):
        return await self._answer("sign_in_with_password", payload)

    async def sign_in_with_oauth(self, payload):
        return await self._answer("sign_in_with_oauth", payload)


def auth_service(fake):
    return AuthService(SimpleNamespace(auth=fake))


def user(user_id="u1", **metadata):
    return SimpleNamespace(id=user_id, email="ann@example.com", user_metadata=metadata)


@pytest.mark.asyncio
async def test_sign_in_returns_token_and_identity():
    response = SimpleNamespace(user=user(full_name="Ann"), session=SimpleNamespace(access_token="tok"))
    token, identity = await auth_service(FakeAuth(response)).sign_in("ann@example.com", "pw")

    assert token == "tok"
    assert identity.display_name == "Ann"


@pytest.mark.asyncio
async def test_provider_message_is_surfaced():
    error = AuthApiError("Invalid login credentials", 400, "invalid_credentials")

    with pytest.raises(AuthenticationFailed) as excinfo:
        await auth_service(FakeAuth(error=error)).sign_in("ann@example.com", "wrong")

    assert excinfo.value.detail == "Invalid login credentials"
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_sign_up_waiting_for_confirmation():
    fake = FakeAuth(SimpleNamespace(user=user(), session=None))

    with pytest.raises(AuthenticationFailed) as excinfo:
        await auth_service(fake).sign_up("ann@example.com", "pw")

    assert excinfo.value.status_code == 202
    assert fake.calls[0][1]["options"]["data"]["full_name"] == "ann"


@pytest.mark.asyncio
async def test_oauth_url():
    fake = FakeAuth(SimpleNamespace(url="https://accounts.example.com/consent"))

    url = await auth_service(fake).oauth_url("google", "https://minglr.app/callback")

    assert url == "https://accounts.example.com/consent"
    assert fake.calls[0][1] == {"provider": "google", "options": {"redirect_to": "https://minglr.app/callback"}}
