from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from adapters.sqlite_storage import SQLiteSessionRepository, SQLiteStorage, SQLiteUserRepository
from core.config import SessionConfig
from core.errors import RepositoryFailure
from core.models import Session, UserRecord
from core.sessions import SessionBridge


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "bot.db"))
    storage.init_db()
    return storage


def test_session_round_trip(tmp_path) -> None:
    repo = SQLiteSessionRepository(_storage(tmp_path), "bot-a")
    session = Session(
        telegram_id="42",
        payload={"step": "menu", "items": [1, {"name": "чай"}]},
        info={"id": 42, "username": "ann"},
        callback="abc123",
    )

    asyncio.run(repo.save(session))
    [found] = asyncio.run(repo.find_by_identity("42"))

    assert found.payload == session.payload
    assert found.info == session.info
    assert found.callback == "abc123"
    assert found.created_at == session.created_at
    assert found.updated_at is not None


def test_payload_that_would_change_type_is_rejected(tmp_path) -> None:
    storage = _storage(tmp_path)
    repo = SQLiteSessionRepository(storage, "bot-a")
    bridge = SessionBridge("bot-a", SessionConfig(), session_repository=repo)
    asyncio.run(repo.save(Session(telegram_id="42", payload={"step": "menu"})))

    with pytest.raises(ValueError):
        asyncio.run(repo.save(Session(telegram_id="42", payload={1: "a"})))
    with pytest.raises(RepositoryFailure):
        asyncio.run(bridge.save(Session(telegram_id="42", payload={"pair": (1, 2)}), {"id": 42}))

    [found] = asyncio.run(repo.find_by_identity("42"))
    assert found.payload == {"step": "menu"}


def test_resave_keeps_created_at(tmp_path) -> None:
    repo = SQLiteSessionRepository(_storage(tmp_path), "bot-a")
    session = Session(telegram_id="42")
    asyncio.run(repo.save(session))
    created_at = session.created_at

    session.payload["step"] = 2
    asyncio.run(repo.save(session))
    [found] = asyncio.run(repo.find_by_identity("42"))

    assert found.created_at == created_at
    assert found.payload == {"step": 2}


def test_sessions_are_scoped_by_bot_name(tmp_path) -> None:
    storage = _storage(tmp_path)
    asyncio.run(SQLiteSessionRepository(storage, "bot-a").save(Session(telegram_id="1")))

    assert asyncio.run(SQLiteSessionRepository(storage, "bot-b").find_by_identity("1")) == []


def test_delete_expired_removes_only_stale_rows(tmp_path) -> None:
    storage = _storage(tmp_path)
    repo = SQLiteSessionRepository(storage, "bot-a")
    asyncio.run(repo.save(Session(telegram_id="old")))
    asyncio.run(repo.save(Session(telegram_id="new")))
    stale = (datetime.now(timezone.utc) - timedelta(hours=2)).isoformat()
    with storage.connect() as conn:
        conn.execute("UPDATE sessions SET updated_at = ? WHERE telegram_id = 'old'", (stale,))

    removed = asyncio.run(repo.delete_expired(3600))

    assert removed == 1
    assert asyncio.run(repo.find_by_identity("old")) == []
    assert len(asyncio.run(repo.find_by_identity("new"))) == 1


def test_delete(tmp_path) -> None:
    repo = SQLiteSessionRepository(_storage(tmp_path), "bot-a")
    session = Session(telegram_id="1")
    asyncio.run(repo.save(session))

    asyncio.run(repo.delete(session))

    assert asyncio.run(repo.find_by_identity("1")) == []


def test_bridge_links_users_through_sqlite(tmp_path) -> None:
    storage = _storage(tmp_path)
    users = SQLiteUserRepository(storage)
    asyncio.run(users.save(UserRecord(id="u1", name="Ann")))
    bridge = SessionBridge(
        "bot-a",
        SessionConfig(expire_timeout=3600),
        session_repository=SQLiteSessionRepository(storage, "bot-a"),
        user_repository=users,
    )

    session = bridge.create(UserRecord(id="u1", name="Ann"), {"id": 7})
    session.payload["step"] = "menu"
    asyncio.run(bridge.save(session, {"id": 7, "username": "ann"}))
    found = asyncio.run(bridge.find("7", {"id": 7}))

    assert found.user == UserRecord(id="u1", name="Ann")
    assert found.payload == {"step": "menu"}
    assert asyncio.run(bridge.expire()) == 0
