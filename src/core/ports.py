"""Ports (interfaces) used by the dispatch engine.

Ports define the minimal contracts for storage, tokenizing, and reply delivery
so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from core.models import Session, UserRecord


class SessionRepositoryPort(Protocol):
    """Session storage operations required by the session bridge."""

    async def find_by_identity(self, telegram_id: str) -> List[Session]:
        ...

    async def save(self, session: Session) -> None:
        ...

    async def delete(self, session: Session) -> None:
        ...

    async def delete_expired(self, timeout_seconds: int) -> int:
        ...


class UserRepositoryPort(Protocol):
    """User lookups required by the session bridge."""

    async def find(self, user_id: str) -> List[UserRecord]:
        ...


class TokenizerPort(Protocol):
    """Tokenize and stem free text for a locale."""

    def tokenize_and_stem(self, locale: Optional[str], text: str) -> Sequence[str]:
        ...


class ReplySinkPort(Protocol):
    """Reply delivery back to the chat platform."""

    async def send(self, identity: dict, content: str) -> None:
        ...
