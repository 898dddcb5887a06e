import os

# Settings are read at import time
os.environ["STORE_BACKEND"] = "memory"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ["SEED_ACTIVITIES"] = "false"
os.environ["OPENAI_API_KEY"] = ""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from minglr.core.memory import MemoryBlobStore, MemoryStore
from minglr.core.security import create_access_token
from minglr.core.session import SessionContext
from minglr.core.supabase import get_blob_store, get_store
from minglr.main import app
from minglr.schemas.user import Identity
from minglr.services.user_service import UserService


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def sign_in(store):
    """Create (or load) a profile and return a session for it."""
    async def _sign_in(user_id: str, name: str) -> SessionContext:
        identity = Identity(id=user_id, email=f"{user_id}@example.com", display_name=name)
        profile = await UserService(store, SessionContext()).get_or_create_profile(identity)
        return SessionContext(user=profile)
    return _sign_in


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, name: str) -> dict:
        token = create_access_token(user_id, email=f"{user_id}@example.com", name=name)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest_asyncio.fixture
async def api_client(store, blobs):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_blob_store] = lambda: blobs
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def ws_client(store, blobs):
    """Synchronous client sharing one event loop across HTTP calls and WebSockets."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_blob_store] = lambda: blobs
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
