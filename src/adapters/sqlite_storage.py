"""SQLite storage adapter.

Implements the session and user repository ports using a simple SQLite
database. Blocking sqlite3 calls run in a worker thread so the bot loop keeps
serving other chats.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List

from core.models import Session, UserRecord


class SQLiteStorage:
    """Thin SQLite wrapper that owns the schema shared by both repositories."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - sessions: one conversation state per (bot, telegram id)
        - users: application users a session may be linked to
        """

        with self.connect() as conn:
            # Fields:
            # - bot_name: bot instance the session belongs to
            # - telegram_id: platform user id, unique per bot
            # - payload: JSON document written whole on every save
            # - info: JSON identity metadata from the latest message
            # - user_id: linked users.id, may dangle after a user is removed
            # - callback: pending continuation token, if any
            # - created_at / updated_at: ISO timestamps, updated_at drives expiry
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    bot_name TEXT NOT NULL,
                    telegram_id TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    info TEXT NOT NULL,
                    user_id TEXT,
                    callback TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (bot_name, telegram_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT
                )
                """
            )


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        telegram_id=row["telegram_id"],
        payload=json.loads(row["payload"]),
        info=json.loads(row["info"]),
        user_id=row["user_id"],
        callback=row["callback"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SQLiteSessionRepository:
    """Session repository scoped to one bot instance."""

    def __init__(self, storage: SQLiteStorage, bot_name: str) -> None:
        self._storage = storage
        self._bot_name = bot_name

    def _find_by_identity(self, telegram_id: str) -> List[Session]:
        with self._storage.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sessions WHERE bot_name = ? AND telegram_id = ?",
                (self._bot_name, telegram_id),
            ).fetchall()
        return [_row_to_session(row) for row in rows]

    def _save(self, session: Session) -> None:
        # Serialize before touching the DB so an unserializable payload never
        # leaves a partial row behind.
        payload = json.dumps(session.payload, ensure_ascii=False)
        if json.loads(payload) != session.payload:
            # Non-string keys and tuples would come back as strings and lists.
            raise ValueError(f"Session payload for {session.telegram_id} does not survive a JSON round trip")
        info = json.dumps(session.info, ensure_ascii=False, default=str)
        now = datetime.now(timezone.utc)
        created_at = session.created_at or now
        with self._storage.connect() as conn:
            conn.execute(
                """
                INSERT INTO sessions (
                    bot_name, telegram_id, payload, info, user_id, callback, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(bot_name, telegram_id) DO UPDATE SET
                    payload = excluded.payload,
                    info = excluded.info,
                    user_id = excluded.user_id,
                    callback = excluded.callback,
                    updated_at = excluded.updated_at
                """,
                (
                    self._bot_name,
                    session.telegram_id,
                    payload,
                    info,
                    session.user_id,
                    session.callback,
                    created_at.isoformat(),
                    now.isoformat(),
                ),
            )
        session.created_at = created_at
        session.updated_at = now

    def _delete(self, session: Session) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                "DELETE FROM sessions WHERE bot_name = ? AND telegram_id = ?",
                (self._bot_name, session.telegram_id),
            )

    def _delete_expired(self, timeout_seconds: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=timeout_seconds)
        with self._storage.connect() as conn:
            cur = conn.execute(
                "DELETE FROM sessions WHERE bot_name = ? AND updated_at < ?",
                (self._bot_name, cutoff.isoformat()),
            )
            return cur.rowcount

    async def find_by_identity(self, telegram_id: str) -> List[Session]:
        return await asyncio.to_thread(self._find_by_identity, telegram_id)

    async def save(self, session: Session) -> None:
        await asyncio.to_thread(self._save, session)

    async def delete(self, session: Session) -> None:
        await asyncio.to_thread(self._delete, session)

    async def delete_expired(self, timeout_seconds: int) -> int:
        """Delete sessions idle for longer than timeout_seconds."""

        return await asyncio.to_thread(self._delete_expired, timeout_seconds)


class SQLiteUserRepository:
    """User lookups backing session user links."""

    def __init__(self, storage: SQLiteStorage) -> None:
        self._storage = storage

    def _find(self, user_id: str) -> List[UserRecord]:
        with self._storage.connect() as conn:
            rows = conn.execute("SELECT id, name FROM users WHERE id = ?", (user_id,)).fetchall()
        return [UserRecord(id=row["id"], name=row["name"]) for row in rows]

    def _save(self, user: UserRecord) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name
                """,
                (user.id, user.name),
            )

    async def find(self, user_id: str) -> List[UserRecord]:
        return await asyncio.to_thread(self._find, user_id)

    async def save(self, user: UserRecord) -> None:
        await asyncio.to_thread(self._save, user)
