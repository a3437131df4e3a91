"""Tests for the client-side TokenStore."""

import asyncio
import json
import os
import stat

import pytest

from microtodo.client.token_store import StoredSession, TokenStore


@pytest.fixture
def path(tmp_path):
    return tmp_path / "session" / "token.json"


@pytest.mark.asyncio
async def test_save_persists_all_three_values(path):
    store = TokenStore(path)
    assert not store.is_authenticated

    await store.save_token("tok-1", 42, "alice")
    assert store.is_authenticated
    assert json.loads(path.read_text()) == {"token": "tok-1", "userId": 42, "username": "alice"}

    # A fresh store (new process) sees the same session
    reloaded = TokenStore(path)
    assert await reloaded.current_session() == StoredSession("tok-1", 42, "alice")
    assert await reloaded.current_token() == "tok-1"


@pytest.mark.asyncio
async def test_file_is_private_and_no_temp_files_left(path):
    store = TokenStore(path)
    await store.save_token("tok-1", 42, "alice")
    await store.save_token("tok-2", 42, "alice")
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert sorted(p.name for p in path.parent.iterdir()) == ["token.json"]


@pytest.mark.asyncio
async def test_clear_removes_session(path):
    store = TokenStore(path)
    await store.save_token("tok-1", 42, "alice")
    await store.clear()
    assert not store.is_authenticated
    assert await store.current_token() is None
    assert not path.exists()
    assert not TokenStore(path).is_authenticated


@pytest.mark.asyncio
async def test_clear_when_logged_out_is_harmless(path):
    store = TokenStore(path)
    await store.clear()
    assert not store.is_authenticated


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[]",
        '{"token": "tok"}',
        '{"token": "tok", "userId": "42", "username": "alice"}',
        '{"token": "", "userId": 42, "username": "alice"}',
        '{"token": "tok", "userId": true, "username": "alice"}',
    ],
    ids=["garbage", "list", "partial", "string-id", "empty-token", "bool-id"],
)
def test_incomplete_file_counts_as_logged_out(path, content):
    path.parent.mkdir(parents=True)
    path.write_text(content)
    assert not TokenStore(path).is_authenticated


# ═══════════════════════════════════════════════════════════
# Observers
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_subscribe_sees_login_and_logout(path):
    store = TokenStore(path)
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(s is not None))

    await store.save_token("tok-1", 42, "alice")
    await store.clear()
    await store.clear()  # no change, no notification
    unsubscribe()
    await store.save_token("tok-2", 42, "alice")

    assert seen == [False, True, False]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_store(path):
    store = TokenStore(path)

    def explode(session):
        if session is not None:
            raise RuntimeError("listener bug")

    store.subscribe(explode)
    await store.save_token("tok-1", 42, "alice")
    assert store.is_authenticated


@pytest.mark.asyncio
async def test_logout_is_visible_before_clear_returns(path):
    store = TokenStore(path)
    await store.save_token("tok-1", 42, "alice")
    states = []
    store.subscribe(lambda s: states.append(store.is_authenticated))
    await store.clear()
    assert states == [True, False]


# ═══════════════════════════════════════════════════════════
# clear_if_current
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_clear_if_current_matching_token(path):
    store = TokenStore(path)
    await store.save_token("tok-1", 42, "alice")
    assert await store.clear_if_current("tok-1") is True
    assert not store.is_authenticated


@pytest.mark.asyncio
async def test_clear_if_current_keeps_newer_session(path):
    """A 401 for an old token must not log out a fresh login."""
    store = TokenStore(path)
    await store.save_token("tok-2", 42, "alice")
    assert await store.clear_if_current("tok-1") is False
    assert await store.current_token() == "tok-2"


@pytest.mark.asyncio
async def test_concurrent_reads_and_logout(path):
    store = TokenStore(path)
    await store.save_token("tok-1", 42, "alice")
    results = await asyncio.gather(
        store.current_token(), store.clear(), store.current_token()
    )
    assert results[0] == "tok-1"
    assert results[2] is None
