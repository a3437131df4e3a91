"""Test fixtures: both services in-process, each on its own in-memory DB.

Learn: Testing pattern for the two services:

1. Each test builds fresh apps with create_app(settings) pointed at
   sqlite+aiosqlite in-memory databases, so there is no cross-test state
   and no external database to run.
2. The task service's IdentityClient talks to the identity app through
   httpx.ASGITransport, so task creation exercises the real
   service-to-service call without opening a socket.
3. ASGITransport does not run lifespan events, so fixtures create the
   tables and dispose the engines themselves.
"""

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from microtodo.config import Settings
from microtodo.identity.main import create_app as create_identity_app
from microtodo.identity.models import Base as IdentityBase
from microtodo.tasks.identity_client import IdentityClient
from microtodo.tasks.main import create_app as create_task_app
from microtodo.tasks.models import Base as TaskBase

TEST_SECRET = "test-secret-for-hmac-signing-0123456789abcdef"
TEST_SERVICE_KEY = "test-service-key"
IDENTITY_URL = "http://identity"
TASK_URL = "http://tasks"
PASSWORD = "correct-horse-battery"


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret": TEST_SECRET,
        "service_api_key": TEST_SERVICE_KEY,
        "bcrypt_rounds": 4,
        "identity_database_url": "sqlite+aiosqlite:///:memory:",
        "task_database_url": "sqlite+aiosqlite:///:memory:",
        "identity_service_url": IDENTITY_URL,
        "environment": "development",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest_asyncio.fixture()
async def identity_app(settings):
    app = create_identity_app(settings)
    await app.state.db.create_all(IdentityBase.metadata)
    yield app
    await app.state.db.dispose()


@pytest_asyncio.fixture()
async def identity_client(identity_app):
    """Raw HTTP client for the identity service (no token handling)."""
    transport = ASGITransport(app=identity_app)
    async with AsyncClient(transport=transport, base_url=IDENTITY_URL) as ac:
        yield ac


async def build_task_app(settings, identity_transport: httpx.AsyncBaseTransport):
    identity = IdentityClient(
        base_url=IDENTITY_URL,
        service_key=settings.service_api_key,
        timeout_seconds=settings.identity_timeout_seconds,
        transport=identity_transport,
    )
    app = create_task_app(settings, identity_client=identity)
    await app.state.db.create_all(TaskBase.metadata)
    return app


@pytest_asyncio.fixture()
async def task_app(settings, identity_app):
    app = await build_task_app(settings, ASGITransport(app=identity_app))
    yield app
    await app.state.identity_client.aclose()
    await app.state.db.dispose()


@pytest_asyncio.fixture()
async def task_client(task_app):
    """Raw HTTP client for the task service (no token handling)."""
    transport = ASGITransport(app=task_app)
    async with AsyncClient(transport=transport, base_url=TASK_URL) as ac:
        yield ac


async def register_and_login(client: AsyncClient, username: str) -> dict:
    """Register `username` and log in. Returns the login body + auth headers."""
    r = await client.post(
        "/api/users",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
        },
    )
    assert r.status_code == 201, r.text
    r = await client.post(
        "/api/auth/login", json={"username": username, "password": PASSWORD}
    )
    assert r.status_code == 200, r.text
    body = r.json()
    body["headers"] = {"Authorization": f"Bearer {body['token']}"}
    return body


@pytest_asyncio.fixture()
async def alice(identity_client):
    return await register_and_login(identity_client, "alice")


@pytest_asyncio.fixture()
async def bob(identity_client):
    return await register_and_login(identity_client, "bob")
