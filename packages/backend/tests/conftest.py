"""Test fixtures — a fresh database per test and a scripted Google.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine with all tables created up front and
   dropped afterwards. By default that is an in-memory SQLite database
   (StaticPool keeps the single connection alive); point
   TICKETDESK_TEST_DATABASE_URL at PostgreSQL to run the same suite there.
2. The app's get_db dependency is overridden to hand out that session.
3. Google is replaced by FakeIdentityProvider: tests register which ID
   tokens / access tokens are valid and for whom.

bcrypt runs at 4 rounds in tests; the production default (12) would
make every register/login take a few hundred milliseconds.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from ticketdesk.auth.dependencies import get_identity_provider
from ticketdesk.auth.google import ExternalIdentity, IdentityTokenError
from ticketdesk.config import settings
from ticketdesk.db.engine import get_db
from ticketdesk.db.models import Base
from ticketdesk.main import app

TEST_DB_URL = os.environ.get(
    "TICKETDESK_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)
TEST_GOOGLE_CLIENT_ID = "test-client-id.apps.googleusercontent.com"


class FakeIdentityProvider:
    """Stand-in for GoogleIdentityProvider.

    Tokens listed in `id_tokens` verify as structured tokens, tokens in
    `access_tokens` introspect successfully; anything else is rejected.
    Every attempt is recorded in `calls` as ("structured"|"opaque", token).
    """

    def __init__(self):
        self.id_tokens: dict[str, ExternalIdentity] = {}
        self.access_tokens: dict[str, ExternalIdentity] = {}
        self.calls: list[tuple[str, str]] = []
        self.audiences: list[str] = []

    async def verify_structured_token(self, token: str, audience: str) -> ExternalIdentity:
        self.calls.append(("structured", token))
        self.audiences.append(audience)
        if token not in self.id_tokens:
            raise IdentityTokenError("signature verification failed")
        return self.id_tokens[token]

    async def introspect_opaque_token(self, token: str) -> ExternalIdentity:
        self.calls.append(("opaque", token))
        if token not in self.access_tokens:
            raise IdentityTokenError("invalid access token")
        return self.access_tokens[token]


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "google_client_id", TEST_GOOGLE_CLIENT_ID)
    monkeypatch.setattr(settings, "jwt_secret", "test-secret-" + "x" * 32)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a freshly created schema."""
    engine_kwargs = {}
    if TEST_DB_URL.startswith("sqlite"):
        engine_kwargs = {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    engine = create_async_engine(TEST_DB_URL, echo=False, **engine_kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def identity_provider():
    return FakeIdentityProvider()


@pytest_asyncio.fixture()
async def client(db_session, identity_provider):
    """HTTP client with the app's database and Google overridden.

    Learn: Session-token auth is NOT mocked. Protected routes need a
    real token, which the `auth_headers` fixture provides.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def registered_user(client):
    """Register a fresh password user; returns the /auth/register response body."""
    email = f"user-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/auth/register",
        json={"email": email, "password": "secret1", "name": "Test User"},
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def auth_headers(registered_user):
    return {"Authorization": f"Bearer {registered_user['token']}"}
