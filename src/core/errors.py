"""Error taxonomy for the dispatch engine.

Ambiguous command matches are a normal outcome (see MatchStatus) and are
never raised.
"""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base class for engine errors."""


class InvalidIdentity(DispatchError, ValueError):
    """Identity metadata has no platform id."""


class RepositoryFailure(DispatchError):
    """A session or user repository call failed."""

    def __init__(self, operation: str, message: str = "") -> None:
        super().__init__(message or f"Repository operation failed: {operation}")
        self.operation = operation


class HandlerFailure(DispatchError):
    """A command handler or continuation raised."""

    def __init__(self, command: Optional[str], user_id: Optional[str]) -> None:
        super().__init__(f"Handler {command or '<callback>'} failed for user {user_id}")
        self.command = command
        self.user_id = user_id
