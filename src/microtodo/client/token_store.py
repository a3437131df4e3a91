"""Durable client-side session storage.

Learn: The client keeps three values after login: the token, the user id
and the username. They are written together or not at all: the file is
written to a temp file in the same directory and renamed over the old one
(os.replace is atomic), so a crash mid-write leaves either the old
session or the new one, never a mix.

All reads and writes go through one asyncio.Lock. A request that is
about to read the token and a logout that is about to erase it cannot
interleave, and listeners are told about a logout before clear() returns,
so is_authenticated is already False for whatever runs next.
"""

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import structlog

logger = structlog.get_logger()

SessionListener = Callable[[Optional["StoredSession"]], None]


@dataclass(frozen=True)
class StoredSession:
    token: str
    user_id: int
    username: str

    def to_json(self) -> dict:
        return {"token": self.token, "userId": self.user_id, "username": self.username}

    @classmethod
    def from_json(cls, data: object) -> Optional["StoredSession"]:
        """Parse a stored session; anything incomplete counts as no session."""
        if not isinstance(data, dict):
            return None
        token, user_id, username = data.get("token"), data.get("userId"), data.get("username")
        if not isinstance(token, str) or not token:
            return None
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        if not isinstance(username, str) or not username:
            return None
        return cls(token=token, user_id=user_id, username=username)


class TokenStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()
        self._session: Optional[StoredSession] = self._read()
        self._listeners: list[SessionListener] = []

    # ─── Observable state ────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call `listener` with the new session (or None) on every change.

        The listener is invoked once immediately with the current value.
        Returns a function that unsubscribes.
        """
        self._listeners.append(listener)
        listener(self._session)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception:
                logger.exception("token_store.listener_failed")

    # ─── Reads ───────────────────────────────────────────

    async def current_session(self) -> Optional[StoredSession]:
        async with self._lock:
            return self._session

    async def current_token(self) -> Optional[str]:
        async with self._lock:
            return self._session.token if self._session else None

    # ─── Writes ──────────────────────────────────────────

    async def save_token(self, token: str, user_id: int, username: str) -> StoredSession:
        """Persist all three values atomically."""
        session = StoredSession(token=token, user_id=user_id, username=username)
        async with self._lock:
            self._write(session)
            self._session = session
            self._notify()
        logger.info("token_store.saved", user_id=user_id)
        return session

    async def clear(self) -> None:
        """Forget the session (logout)."""
        async with self._lock:
            self._clear_locked()

    async def clear_if_current(self, token: str) -> bool:
        """Clear only if `token` is still the stored one.

        Used after a 401: if the user logged in again while the failing
        request was in flight, the newer session is kept.
        """
        async with self._lock:
            if self._session is None or self._session.token != token:
                return False
            self._clear_locked()
            return True

    def _clear_locked(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        was_authenticated = self._session is not None
        self._session = None
        if was_authenticated:
            self._notify()
            logger.info("token_store.cleared")

    # ─── File I/O ────────────────────────────────────────

    def _read(self) -> Optional[StoredSession]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("token_store.unreadable", path=str(self.path))
            return None
        return StoredSession.from_json(data)

    def _write(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(session.to_json(), fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
