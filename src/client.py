"""Telegram bot client factory.

Bots still log in through MTProto, so Telethon needs the app API_ID/API_HASH
in addition to the BotFather token.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from telethon import TelegramClient


@dataclass(frozen=True)
class BotCredentials:
    api_id: int
    api_hash: str
    bot_token: str
    session_name: str


def load_credentials() -> BotCredentials:
    """Read bot credentials from the environment (.env supported).

    Secrets stay out of config.json so it can be committed and shared.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    bot_token = os.getenv("BOT_TOKEN")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    if not bot_token:
        raise RuntimeError("Missing BOT_TOKEN in environment")

    return BotCredentials(
        api_id=int(api_id),
        api_hash=api_hash,
        bot_token=bot_token,
        session_name=os.getenv("SESSION_NAME", "bot"),
    )


def build_client(credentials: BotCredentials) -> TelegramClient:
    logging.getLogger(__name__).info("Initializing Telegram bot client (%s)", credentials.session_name)
    return TelegramClient(credentials.session_name, credentials.api_id, credentials.api_hash)
