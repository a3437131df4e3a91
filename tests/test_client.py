"""Client tests: BearerTokenAuth and MicroTodoClient end to end.

Learn: The end-to-end tests point MicroTodoClient at both in-process
apps through ASGITransport, so login, token injection, ownership and
logout all run against the real services.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport

from microtodo.auth.jwt import TokenCodec
from microtodo.client import ApiError, BearerTokenAuth, MicroTodoClient, SessionExpired, TokenStore
from tests.conftest import IDENTITY_URL, PASSWORD, TASK_URL, TEST_SECRET


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "session.json")


@asynccontextmanager
async def api_client(store, identity_app, task_app):
    client = MicroTodoClient(
        store,
        identity_url=IDENTITY_URL,
        task_url=TASK_URL,
        identity_transport=ASGITransport(app=identity_app),
        task_transport=ASGITransport(app=task_app),
    )
    async with client:
        yield client


# ═══════════════════════════════════════════════════════════
# BearerTokenAuth
# ═══════════════════════════════════════════════════════════


class Recorder:
    """MockTransport handler that remembers what it was sent."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"error": "nope"} if self.status_code >= 400 else {})


def _http(store, recorder) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url="http://svc", auth=BearerTokenAuth(store), transport=httpx.MockTransport(recorder)
    )


@pytest.mark.asyncio
async def test_token_attached_to_protected_requests(store):
    await store.save_token("tok-1", 1, "alice")
    recorder = Recorder()
    async with _http(store, recorder) as http:
        await http.get("/api/tasks")
    assert recorder.requests[0].headers["Authorization"] == "Bearer tok-1"


@pytest.mark.asyncio
async def test_public_requests_left_untouched(store):
    await store.save_token("tok-1", 1, "alice")
    recorder = Recorder()
    async with _http(store, recorder) as http:
        await http.post("/api/auth/login", json={})
        await http.post("/api/users", json={})
        await http.get("/api/users/check-username", params={"username": "x"})
    assert all("Authorization" not in r.headers for r in recorder.requests)


@pytest.mark.asyncio
async def test_no_session_sends_no_header(store):
    recorder = Recorder()
    async with _http(store, recorder) as http:
        await http.get("/api/tasks")
    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.asyncio
async def test_401_clears_the_session(store):
    await store.save_token("tok-1", 1, "alice")
    async with _http(store, Recorder(401)) as http:
        r = await http.get("/api/tasks")
    assert r.status_code == 401
    assert not store.is_authenticated


@pytest.mark.asyncio
async def test_403_keeps_the_session(store):
    await store.save_token("tok-1", 1, "alice")
    async with _http(store, Recorder(403)) as http:
        await http.get("/api/tasks/9")
    assert store.is_authenticated


def test_sync_client_not_supported(store):
    with httpx.Client(auth=BearerTokenAuth(store), transport=httpx.MockTransport(Recorder())) as http:
        with pytest.raises(RuntimeError):
            http.get("http://svc/api/tasks")


# ═══════════════════════════════════════════════════════════
# MicroTodoClient end to end
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_login_and_manage_tasks(store, identity_app, task_app):
    async with api_client(store, identity_app, task_app) as api:
        assert await api.username_available("dana")
        user = await api.register("dana", "dana@example.com", PASSWORD, first_name="Dana")
        assert user["firstName"] == "Dana"
        assert not await api.username_available("dana")
        assert not await api.email_available("dana@example.com")

        session = await api.login("dana", PASSWORD)
        assert session.user_id == user["id"]
        assert api.is_authenticated

        me = await api.me()
        assert me["username"] == "dana"

        task = await api.create_task("Write report", description="Q3")
        assert task["userId"] == user["id"]

        updated = await api.update_task(task["id"], "Write report", status="COMPLETED")
        assert updated["status"] == "COMPLETED"
        assert [t["id"] for t in await api.list_tasks()] == [task["id"]]
        assert (await api.get_task(task["id"]))["title"] == "Write report"

        await api.delete_task(task["id"])
        assert await api.list_tasks() == []


@pytest.mark.asyncio
async def test_bad_login_raises_and_stores_nothing(store, identity_app, task_app):
    async with api_client(store, identity_app, task_app) as api:
        await api.register("erin", "erin@example.com", PASSWORD)
        with pytest.raises(ApiError) as exc:
            await api.login("erin", "wrong-password")
        assert not isinstance(exc.value, SessionExpired)
        assert exc.value.status_code == 401
        assert exc.value.message == "Unauthorized: Invalid username or password"
        assert not store.is_authenticated


@pytest.mark.asyncio
async def test_request_after_logout_is_unauthenticated(store, identity_app, task_app):
    """Logging out while requests follow means they go out with no token."""
    async with api_client(store, identity_app, task_app) as api:
        await api.register("frank", "frank@example.com", PASSWORD)
        await api.login("frank", PASSWORD)
        await api.logout()
        with pytest.raises(SessionExpired) as exc:
            await api.create_task("After logout")
        assert exc.value.message == "Unauthorized: Missing or invalid token"


@pytest.mark.asyncio
async def test_expired_session_is_cleared(store, identity_app, task_app):
    expired = TokenCodec(TEST_SECRET).issue(
        "gina", {"userId": 1}, now=datetime.now(timezone.utc) - timedelta(hours=2)
    )
    await store.save_token(expired, 1, "gina")
    seen = []
    store.subscribe(lambda s: seen.append(s))

    async with api_client(store, identity_app, task_app) as api:
        with pytest.raises(SessionExpired) as exc:
            await api.list_tasks()
    assert exc.value.message == "Unauthorized: Token has expired"
    assert not store.is_authenticated
    assert seen[-1] is None


@pytest.mark.asyncio
async def test_foreign_task_raises_api_error(store, identity_app, task_app, bob, task_client):
    r = await task_client.post("/api/tasks", json={"title": "Bob only"}, headers=bob["headers"])
    bob_task = r.json()

    async with api_client(store, identity_app, task_app) as api:
        await api.register("hana", "hana@example.com", PASSWORD)
        await api.login("hana", PASSWORD)
        with pytest.raises(ApiError) as exc:
            await api.get_task(bob_task["id"])
        assert exc.value.status_code == 403
        # A 403 is not a session problem
        assert store.is_authenticated
