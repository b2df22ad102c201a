"""Single-use continuations keyed by random token (core domain).

The session only carries the token; the registry owns the continuation. The
map is process-wide, so lookups are guarded by a lock and tokens are drawn
from ``secrets`` to stay unguessable across sessions.
"""

from __future__ import annotations

import logging
import secrets
import string
import threading
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, Tuple

from core.models import Session

if TYPE_CHECKING:
    from core.dispatcher import ConversationContext

LOGGER = logging.getLogger(__name__)

Continuation = Callable[["ConversationContext"], Awaitable[bool]]

_ALPHABET = string.ascii_letters + string.digits


class CallbackRegistry:
    """Hold continuations until the next message of the owning session."""

    def __init__(
        self,
        token_length: int = 32,
        ttl_seconds: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._token_length = token_length
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Continuation, float]] = {}
        self._lock = threading.Lock()

    def _new_token(self) -> str:
        return "".join(secrets.choice(_ALPHABET) for _ in range(self._token_length))

    def register(self, session: Session, continuation: Continuation) -> str:
        """Store a continuation and point the session at it."""

        if self._ttl_seconds:
            self.sweep()
        with self._lock:
            if session.callback:
                self._entries.pop(session.callback, None)
            token = self._new_token()
            while token in self._entries:
                token = self._new_token()
            self._entries[token] = (continuation, self._clock())
        session.callback = token
        return token

    def consume(self, session: Session) -> Optional[Continuation]:
        """Pop the session's continuation; None when absent or already used."""

        token = session.callback
        session.callback = None
        if not token:
            return None
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None:
            LOGGER.debug("Callback token for %s is no longer registered", session.telegram_id)
            return None
        return entry[0]

    def discard(self, session: Session) -> None:
        """Forget a pending continuation without running it."""

        token = session.callback
        session.callback = None
        if token:
            with self._lock:
                self._entries.pop(token, None)

    def sweep(self) -> int:
        """Drop continuations older than the TTL and return how many were removed."""

        if not self._ttl_seconds:
            return 0
        cutoff = self._clock() - self._ttl_seconds
        with self._lock:
            stale = [token for token, (_, created) in self._entries.items() if created < cutoff]
            for token in stale:
                del self._entries[token]
        if stale:
            LOGGER.info("Callback sweep removed %s abandoned continuations", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
