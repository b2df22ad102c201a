"""Telegram reply adapter.

Sends dispatcher replies back to the sender through the bot client.
"""

from __future__ import annotations

import logging
from typing import Optional

LOGGER = logging.getLogger(__name__)


class TelegramReplySink:
    """Reply sink adapter that answers in the sender's private chat.

    Replies go out as plain text unless a parse_mode ("md", "html") is given,
    so echoed user text is never read as markup.
    """

    def __init__(self, client, parse_mode: Optional[str] = None) -> None:
        self._client = client
        self._parse_mode = parse_mode

    async def send(self, identity: dict, content: str) -> None:
        """Send content to the user the identity belongs to."""

        user_id = identity.get("id")
        if user_id is None:
            LOGGER.warning("Reply dropped: identity has no id")
            return
        await self._client.send_message(int(user_id), content, parse_mode=self._parse_mode)
