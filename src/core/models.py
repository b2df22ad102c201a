"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Tuple

if TYPE_CHECKING:
    from core.commands import Command


@dataclass(frozen=True)
class InboundMessage:
    """Minimal inbound chat event used by the dispatcher."""

    identity: dict
    text: str
    locale: Optional[str] = None
    chat_id: Optional[int] = None

    @property
    def user_id(self) -> Optional[str]:
        raw_id = self.identity.get("id") if self.identity else None
        if raw_id is None or raw_id == "":
            return None
        return str(raw_id)


@dataclass(frozen=True)
class UserRecord:
    """Application user linked to a chat session."""

    id: str
    name: Optional[str] = None


@dataclass
class Session:
    """Per-user conversation state scoped to one bot instance."""

    telegram_id: str
    payload: dict = field(default_factory=dict)
    info: dict = field(default_factory=dict)
    user: Optional[UserRecord] = None
    user_id: Optional[str] = None
    callback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Transient sessions stand in during storage outages and are never saved.
    persistent: bool = True

    def read(self, key: str, expected_type: type, default: Any = None) -> Any:
        """Return payload[key] when it has the expected type, else default."""

        value = self.payload.get(key, default)
        if value is default or isinstance(value, expected_type):
            return value
        return default


@dataclass(frozen=True)
class MatchResult:
    """Per-variant sub-matches for one command, None where a variant failed."""

    variants: Tuple[Optional[Tuple[Any, ...]], ...]

    @property
    def matched(self) -> bool:
        return any(variant is not None for variant in self.variants)

    @property
    def first(self) -> Optional[Tuple[Any, ...]]:
        for variant in self.variants:
            if variant is not None:
                return variant
        return None

    def groups(self, index: int = 0) -> Tuple[Any, ...]:
        """Regex capture groups of the first successful variant's sub-match."""

        first = self.first
        if first is None:
            return ()
        item = first[index]
        if hasattr(item, "groups"):
            return item.groups()
        return tuple(item)

    def __getitem__(self, index: int) -> Optional[Tuple[Any, ...]]:
        return self.variants[index]


class MatchStatus(Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class MatchOutcome:
    """Result of evaluating one message against the command table."""

    status: MatchStatus
    command: Optional["Command"] = None
    result: Optional[MatchResult] = None


class DispatchResult(Enum):
    HANDLED = "handled"
    UNHANDLED = "unhandled"
    FAILED = "failed"
