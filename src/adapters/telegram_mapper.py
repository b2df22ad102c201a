"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the dispatcher.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message

from core.models import InboundMessage

_IDENTITY_FIELDS = ("username", "first_name", "last_name", "lang_code", "bot")


def identity_from_sender(sender: Any) -> dict:
    """Flatten a Telethon User into the identity dict stored as session info."""

    if sender is None:
        return {}
    identity: dict = {"id": getattr(sender, "id", None)}
    for name in _IDENTITY_FIELDS:
        value = getattr(sender, name, None)
        if value is not None:
            identity[name] = value
    return identity


def locale_from_identity(identity: dict, default_locale: Optional[str] = None) -> Optional[str]:
    lang_code = identity.get("lang_code")
    if isinstance(lang_code, str) and lang_code:
        # "en-US" -> "en"; the dispatcher only knows base languages.
        return lang_code.split("-", 1)[0].lower()
    return default_locale


async def build_inbound(message: Message, default_locale: Optional[str] = None) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    sender = await message.get_sender()
    identity = identity_from_sender(sender)
    return InboundMessage(
        identity=identity,
        text=message.raw_text or "",
        locale=locale_from_identity(identity, default_locale),
        chat_id=message.chat_id,
    )


async def build_inbound_from_query(event: Any, default_locale: Optional[str] = None) -> InboundMessage:
    """Build an InboundMessage for an inline-button press (CallbackQuery event)."""

    sender = await event.get_sender()
    identity = identity_from_sender(sender)
    return InboundMessage(
        identity=identity,
        text="",
        locale=locale_from_identity(identity, default_locale),
        chat_id=getattr(event, "chat_id", None),
    )


def parse_action_data(data: bytes) -> tuple[str, Optional[str]]:
    """Split inline-button data "command:argument" into (command, argument)."""

    text = data.decode("utf-8", errors="replace")
    name, separator, argument = text.partition(":")
    return name, (argument if separator else None)
