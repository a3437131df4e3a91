"""Async API client for both MicroTodo services.

Learn: One httpx.AsyncClient per service, both sharing the same
BearerTokenAuth and TokenStore. Login writes the session, logout clears
it, and every other call relies on the auth hook to attach the token.

Errors carry the server's {"error": "..."} message unchanged. A 401 on
an authenticated call raises SessionExpired after the auth hook has
already cleared the stored session.
"""

from typing import Any, Optional

import httpx

from microtodo.client.auth import BearerTokenAuth
from microtodo.client.token_store import StoredSession, TokenStore

DEFAULT_IDENTITY_URL = "http://localhost:8081"
DEFAULT_TASK_URL = "http://localhost:8082"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class SessionExpired(ApiError):
    """The service rejected our token; the user must log in again."""


def _raise_for_error(response: httpx.Response, authenticated: bool = True) -> None:
    if response.is_success:
        return
    try:
        message = response.json().get("error") or response.reason_phrase
    except (ValueError, AttributeError):
        message = response.text or response.reason_phrase
    if response.status_code == 401 and authenticated:
        raise SessionExpired(401, message)
    raise ApiError(response.status_code, message)


class MicroTodoClient:
    def __init__(
        self,
        store: TokenStore,
        identity_url: str = DEFAULT_IDENTITY_URL,
        task_url: str = DEFAULT_TASK_URL,
        timeout: float = 30.0,
        identity_transport: Optional[httpx.AsyncBaseTransport] = None,
        task_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        auth = BearerTokenAuth(store)
        self._identity = httpx.AsyncClient(
            base_url=identity_url, timeout=timeout, auth=auth, transport=identity_transport
        )
        self._tasks = httpx.AsyncClient(
            base_url=task_url, timeout=timeout, auth=auth, transport=task_transport
        )

    async def __aenter__(self) -> "MicroTodoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._identity.aclose()
        await self._tasks.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self.store.is_authenticated

    # ─── Session ─────────────────────────────────────────

    async def login(self, username: str, password: str) -> StoredSession:
        r = await self._identity.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        _raise_for_error(r, authenticated=False)
        body = r.json()
        return await self.store.save_token(body["token"], body["userId"], body["username"])

    async def logout(self) -> None:
        await self.store.clear()

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> dict[str, Any]:
        payload = {"username": username, "email": email, "password": password}
        if first_name is not None:
            payload["firstName"] = first_name
        if last_name is not None:
            payload["lastName"] = last_name
        r = await self._identity.post("/api/users", json=payload)
        _raise_for_error(r, authenticated=False)
        return r.json()

    async def username_available(self, username: str) -> bool:
        r = await self._identity.get(
            "/api/users/check-username", params={"username": username}
        )
        _raise_for_error(r, authenticated=False)
        return bool(r.json()["available"])

    async def email_available(self, email: str) -> bool:
        r = await self._identity.get("/api/users/check-email", params={"email": email})
        _raise_for_error(r, authenticated=False)
        return bool(r.json()["available"])

    async def me(self) -> dict[str, Any]:
        r = await self._identity.get("/api/users/me")
        _raise_for_error(r)
        return r.json()

    # ─── Tasks ───────────────────────────────────────────

    async def list_tasks(self) -> list[dict[str, Any]]:
        session = await self.store.current_session()
        params = {"userId": session.user_id} if session else None
        r = await self._tasks.get("/api/tasks", params=params)
        _raise_for_error(r)
        return r.json()

    async def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title}
        if description is not None:
            payload["description"] = description
        if status is not None:
            payload["status"] = status
        r = await self._tasks.post("/api/tasks", json=payload)
        _raise_for_error(r)
        return r.json()

    async def get_task(self, task_id: int) -> dict[str, Any]:
        r = await self._tasks.get(f"/api/tasks/{task_id}")
        _raise_for_error(r)
        return r.json()

    async def update_task(
        self,
        task_id: int,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title, "description": description}
        if status is not None:
            payload["status"] = status
        r = await self._tasks.put(f"/api/tasks/{task_id}", json=payload)
        _raise_for_error(r)
        return r.json()

    async def delete_task(self, task_id: int) -> None:
        r = await self._tasks.delete(f"/api/tasks/{task_id}")
        _raise_for_error(r)
