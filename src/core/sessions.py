"""Session bridge between the dispatcher and the persistent repositories.

All operations are scoped to one bot instance. Repository errors are wrapped
in RepositoryFailure and propagate; the dispatcher decides how to degrade.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.config import SessionConfig
from core.errors import InvalidIdentity, RepositoryFailure
from core.models import Session, UserRecord
from core.ports import SessionRepositoryPort, UserRepositoryPort

LOGGER = logging.getLogger(__name__)


def _identity_id(info: Optional[dict]) -> Optional[str]:
    if not info:
        return None
    raw_id = info.get("id")
    if raw_id is None or raw_id == "":
        return None
    return str(raw_id)


class SessionBridge:
    """Load, create, save, and expire sessions for one bot instance."""

    def __init__(
        self,
        bot_name: str,
        config: SessionConfig,
        session_repository: Optional[SessionRepositoryPort] = None,
        user_repository: Optional[UserRepositoryPort] = None,
    ) -> None:
        self.bot_name = bot_name
        self._config = config
        self._sessions = session_repository
        self._users = user_repository

    @property
    def expiration_timeout(self) -> int:
        return self._config.expire_timeout

    @property
    def expiration_interval(self) -> int:
        return self._config.expire_interval

    def create(self, user: Optional[UserRecord], info: Optional[dict]) -> Session:
        """Build a new session with an empty payload."""

        telegram_id = _identity_id(info)
        if telegram_id is None:
            raise InvalidIdentity(f"Identity has no platform id ({self.bot_name})")
        return Session(
            telegram_id=telegram_id,
            payload={},
            info=dict(info),
            user=user,
            user_id=user.id if user else None,
        )

    async def find(self, telegram_id: str, info: dict) -> Optional[Session]:
        """Return the stored session for a platform id, or None."""

        if self._sessions is None:
            return None
        try:
            sessions = await self._sessions.find_by_identity(str(telegram_id))
        except Exception as exc:
            raise RepositoryFailure("find_by_identity") from exc
        if not sessions:
            return None
        session = sessions[0]

        if session.user_id and self._users is not None:
            try:
                users = await self._users.find(session.user_id)
            except Exception as exc:
                raise RepositoryFailure("find_user") from exc
            session.user = users[0] if users else None

        session.info = dict(info)
        return session

    async def save(self, session: Session, info: dict) -> None:
        """Refresh identity info and persist the whole session record."""

        session.info = dict(info)
        session.user_id = session.user.id if session.user else None
        if self._sessions is None or not session.persistent:
            return
        try:
            await self._sessions.save(session)
        except Exception as exc:
            raise RepositoryFailure("save") from exc

    async def destroy(self, session: Session) -> None:
        if self._sessions is None:
            return
        try:
            await self._sessions.delete(session)
        except Exception as exc:
            raise RepositoryFailure("delete") from exc

    async def expire(self) -> int:
        """Delete sessions idle longer than the expiration timeout."""

        if self._sessions is None or not self.expiration_timeout:
            return 0
        delete_expired = getattr(self._sessions, "delete_expired", None)
        if delete_expired is None:
            return 0
        try:
            removed = await delete_expired(self.expiration_timeout)
        except Exception as exc:
            raise RepositoryFailure("delete_expired") from exc
        LOGGER.info("Session expiration removed %s sessions for %s", removed or 0, self.bot_name)
        return removed or 0
