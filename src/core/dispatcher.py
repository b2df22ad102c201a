"""Core message dispatch pipeline.

The dispatcher enforces a strict order for every inbound message:
1) Hydrate the session (find or lazily create)
2) Run a pending callback, skipping command matching entirely
3) Otherwise match the command table
4) Run the winning handler with mutable access to the session payload
5) Persist the session, whether or not a handler ran

Failures are contained per message: storage outages degrade to a transient
session, handler errors become a generic reply, and nothing escapes handle().
"""

from __future__ import annotations

import asyncio
from datetime import date
import logging
from typing import Any, Dict, Optional

from core.callbacks import CallbackRegistry, Continuation
from core.commands import CommandMatcher, CommandTable
from core.dates import extract_date
from core.errors import HandlerFailure, InvalidIdentity
from core.linguistics import Linguist
from core.models import DispatchResult, InboundMessage, MatchStatus, Session, UserRecord
from core.ports import ReplySinkPort
from core.sessions import SessionBridge

LOGGER = logging.getLogger(__name__)

DEFAULT_ERROR_REPLY = "Something went wrong, please try again later."


class ConversationContext:
    """Everything a handler may read or mutate for one message."""

    def __init__(
        self,
        dispatcher: "Dispatcher",
        message: InboundMessage,
        session: Session,
        scene: Any = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.message = message
        self.session = session
        self.scene = scene

    @property
    def payload(self) -> dict:
        return self.session.payload

    @property
    def user(self) -> Optional[UserRecord]:
        return self.session.user

    @user.setter
    def user(self, value: Optional[UserRecord]) -> None:
        self.session.user = value

    @property
    def locale(self) -> str:
        return self.message.locale or self.dispatcher.default_locale

    @property
    def text(self) -> str:
        return self.message.text

    async def reply(self, content: str) -> None:
        await self.dispatcher.reply_sink.send(self.message.identity, content)

    def wait_for_input(self, continuation: Continuation) -> str:
        """Run continuation on the next message of this session instead of matching."""

        return self.dispatcher.callbacks.register(self.session, continuation)

    def has_all(self, phrase: str, text: Optional[str] = None) -> bool:
        return self.dispatcher.linguist.has_all(self.locale, self.text if text is None else text, phrase)

    def has_any(self, phrase: str, text: Optional[str] = None) -> bool:
        return self.dispatcher.linguist.has_any(self.locale, self.text if text is None else text, phrase)

    def extract_date(self, text: Optional[str] = None) -> Optional[date]:
        return extract_date(self.dispatcher.linguist, self.locale, self.text if text is None else text)


class Dispatcher:
    """Orchestrates sessions, callbacks, matching, and handlers."""

    def __init__(
        self,
        table: CommandTable,
        matcher: CommandMatcher,
        callbacks: CallbackRegistry,
        bridge: SessionBridge,
        reply_sink: ReplySinkPort,
        linguist: Linguist,
        error_replies: Optional[Dict[str, str]] = None,
        default_locale: str = "en",
    ) -> None:
        self.table = table
        self.matcher = matcher
        self.callbacks = callbacks
        self.bridge = bridge
        self.reply_sink = reply_sink
        self.linguist = linguist
        self.default_locale = default_locale
        self._error_replies = error_replies or {}
        self._locks: Dict[str, list] = {}

    async def handle(self, message: InboundMessage, scene: Optional[str] = None) -> DispatchResult:
        """Process one inbound message; never raises for per-message failures."""

        async with self._session_lock(message):
            session = await self._hydrate(message)
            context = ConversationContext(self, message, session, self.table.get_scene(scene))
            command_name: Optional[str] = None
            try:
                continuation = self.callbacks.consume(session)
                if continuation is not None:
                    await continuation(context)
                    result = DispatchResult.HANDLED
                else:
                    outcome = self.matcher.match(message.text, context.locale)
                    if outcome.status is MatchStatus.MATCHED:
                        command_name = outcome.command.name
                        consumed = await outcome.command.handle(context, outcome.result)
                        result = DispatchResult.HANDLED if consumed else DispatchResult.UNHANDLED
                    else:
                        if outcome.status is MatchStatus.AMBIGUOUS:
                            LOGGER.info("Ambiguous command for user %s, ignoring", message.user_id)
                        result = DispatchResult.UNHANDLED
            except Exception as exc:
                await self._fail(context, HandlerFailure(command_name, message.user_id), exc)
                result = DispatchResult.FAILED

            await self._persist(session, message)
            return result

    async def action(
        self,
        message: InboundMessage,
        name: str,
        argument: Optional[str] = None,
        scene: Optional[str] = None,
    ) -> DispatchResult:
        """Run a command's menu action by name, e.g. for an inline button press."""

        async with self._session_lock(message):
            session = await self._hydrate(message)
            context = ConversationContext(self, message, session, self.table.get_scene(scene))
            command = self.table.get(name)
            if command is None or command.action is None:
                result = DispatchResult.UNHANDLED
            else:
                try:
                    consumed = await command.action(context, argument)
                    result = DispatchResult.HANDLED if consumed else DispatchResult.UNHANDLED
                except Exception as exc:
                    await self._fail(context, HandlerFailure(name, message.user_id), exc)
                    result = DispatchResult.FAILED

            await self._persist(session, message)
            return result

    def _session_lock(self, message: InboundMessage) -> "_SessionLock":
        return _SessionLock(self._locks, message.user_id or "")

    async def _hydrate(self, message: InboundMessage) -> Session:
        try:
            session = None
            if message.user_id is not None:
                session = await self.bridge.find(message.user_id, message.identity)
            if session is None:
                session = self.bridge.create(None, message.identity)
            return session
        except InvalidIdentity:
            LOGGER.warning("Message without a platform id (chat %s), using a transient session", message.chat_id)
        except Exception:
            LOGGER.exception(
                "Session load failed for user %s (chat %s), using a transient session",
                message.user_id,
                message.chat_id,
            )
        return Session(telegram_id=message.user_id or "", info=dict(message.identity or {}), persistent=False)

    async def _persist(self, session: Session, message: InboundMessage) -> None:
        try:
            await self.bridge.save(session, message.identity)
        except Exception:
            LOGGER.exception("Session save failed for user %s (chat %s)", message.user_id, message.chat_id)

    async def _fail(self, context: ConversationContext, failure: HandlerFailure, exc: Exception) -> None:
        LOGGER.error(
            "%s (chat %s, text %r)",
            failure,
            context.message.chat_id,
            context.message.text,
            exc_info=exc,
        )
        reply = self._error_replies.get(context.locale) or self._error_replies.get(self.default_locale)
        try:
            await context.reply(reply or DEFAULT_ERROR_REPLY)
        except Exception:
            LOGGER.exception("Error reply failed for user %s", context.message.user_id)


class _SessionLock:
    """Per-identity asyncio lock, dropped from the map once nobody holds or waits for it."""

    def __init__(self, locks: Dict[str, list], key: str) -> None:
        self._locks = locks
        self._key = key

    async def __aenter__(self) -> None:
        entry = self._locks.setdefault(self._key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            await entry[0].acquire()
        except BaseException:
            self._release_ref(entry)
            raise

    async def __aexit__(self, *exc_info: Any) -> None:
        entry = self._locks[self._key]
        entry[0].release()
        self._release_ref(entry)

    def _release_ref(self, entry: list) -> None:
        entry[1] -= 1
        if entry[1] == 0:
            self._locks.pop(self._key, None)
