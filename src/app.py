"""Application entry point for the chat bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.snowball_tokenizer import SnowballTokenizer
from adapters.sqlite_storage import SQLiteSessionRepository, SQLiteStorage, SQLiteUserRepository
from adapters.telegram_mapper import build_inbound, build_inbound_from_query, parse_action_data
from adapters.telegram_replier import TelegramReplySink
from builtin_commands import register_builtin_commands
from client import build_client, load_credentials
from core.callbacks import CallbackRegistry
from core.commands import CommandMatcher, CommandTable
from core.config import CallbackConfig, MatchingConfig, SessionConfig
from core.dispatcher import Dispatcher
from core.linguistics import Linguist
from core.ports import ReplySinkPort
from core.sessions import SessionBridge

NAME = "DISPATCH"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


# Secrets that are always masked in log output, on top of logging.redact.patterns.
_ALWAYS_REDACT = ("BOT_TOKEN", "API_HASH")


class _RedactingFormatter(logging.Formatter):
    """Mask secret values (tokens, hashes) that slip into log messages."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = secrets

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {})
    names = set(_ALWAYS_REDACT)
    if redact_cfg.get("enabled", False):
        names.update(redact_cfg.get("patterns", []))
    values = {os.getenv(name) for name in names}
    # Longest first so a token containing another secret is masked whole.
    return sorted((value for value in values if value), key=len, reverse=True)


def _file_handler(file_cfg: dict) -> logging.Handler:
    path = file_cfg.get("path", "logs/bot.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _RedactingFormatter(
        _redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO; keep it to warnings unless we debug.
    if level > logging.DEBUG:
        logging.getLogger("telethon").setLevel(logging.WARNING)


def _build_bridge() -> SessionBridge:
    session_config = SessionConfig(
        expire_timeout=settings.SESSION_EXPIRE_TIMEOUT,
        expire_interval=settings.SESSION_EXPIRE_INTERVAL,
    )
    if not settings.SESSION_ENABLED:
        # Session-less mode: every message starts from an empty payload.
        return SessionBridge(settings.BOT_NAME, session_config)

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return SessionBridge(
        settings.BOT_NAME,
        session_config,
        session_repository=SQLiteSessionRepository(storage, settings.BOT_NAME),
        user_repository=SQLiteUserRepository(storage),
    )


def build_dispatcher(reply_sink: ReplySinkPort) -> Dispatcher:
    """Wire the core engine from settings."""

    linguist = Linguist(SnowballTokenizer(), default_locale=settings.DEFAULT_LOCALE)
    table = register_builtin_commands(CommandTable())
    matching = MatchingConfig(mode=settings.MATCH_MODE)
    callback_config = CallbackConfig(
        token_length=settings.CALLBACK_TOKEN_LENGTH,
        ttl_seconds=settings.CALLBACK_TTL_SECONDS,
    )
    return Dispatcher(
        table=table,
        matcher=CommandMatcher(table, linguist, mode=matching.mode),
        callbacks=CallbackRegistry(
            token_length=callback_config.token_length,
            ttl_seconds=callback_config.ttl_seconds,
        ),
        bridge=_build_bridge(),
        reply_sink=reply_sink,
        linguist=linguist,
        error_replies=settings.ERROR_REPLIES,
        default_locale=settings.DEFAULT_LOCALE,
    )


async def _expire_once(dispatcher: Dispatcher) -> None:
    logger = logging.getLogger(__name__)
    try:
        dispatcher.callbacks.sweep()
    except Exception:
        logger.exception("Callback sweep failed")
    try:
        await dispatcher.bridge.expire()
    except Exception:
        logger.exception("Session expiration failed")


async def _expire_periodically(dispatcher: Dispatcher) -> None:
    """Run session expiration and the callback sweep on the configured interval."""

    interval = dispatcher.bridge.expiration_interval
    if not interval:
        return
    while True:
        await asyncio.sleep(interval)
        await _expire_once(dispatcher)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting %s", settings.BOT_NAME)

    credentials = load_credentials()
    client = build_client(credentials)
    dispatcher = build_dispatcher(TelegramReplySink(client))
    logger.info("%s commands are loaded, match mode %s", len(dispatcher.table), dispatcher.matcher.mode)

    # One handler per event type; all routing decisions live in the dispatcher.
    @client.on(events.NewMessage(incoming=True, func=lambda event: event.is_private))
    async def handler(event) -> None:
        try:
            message = await build_inbound(event.message, settings.DEFAULT_LOCALE)
            result = await dispatcher.handle(message)
            logger.debug("Message from %s: %s", message.user_id, result.value)
        except Exception:
            logger.exception("Error while processing message")

    @client.on(events.CallbackQuery())
    async def action_handler(event) -> None:
        try:
            message = await build_inbound_from_query(event, settings.DEFAULT_LOCALE)
            name, argument = parse_action_data(event.data)
            await dispatcher.action(message, name, argument)
            await event.answer()
        except Exception:
            logger.exception("Error while processing action")

    client.start(bot_token=credentials.bot_token)
    client.loop.create_task(_expire_periodically(dispatcher))
    logger.info("Client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def _stem(locale: str, text: str) -> None:
    linguist = Linguist(SnowballTokenizer(), default_locale=settings.DEFAULT_LOCALE)
    print(" ".join(linguist.stem(locale, text)))


def _expire() -> None:
    _configure_logging()
    bridge = _build_bridge()
    removed = asyncio.run(bridge.expire())
    print(f"Expired sessions removed: {removed}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="dispatch-bot")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    stem_parser = subparsers.add_parser("stem", help="Print the stems of a text for a locale")
    stem_parser.add_argument("locale")
    stem_parser.add_argument("text")
    subparsers.add_parser("expire", help="Delete expired sessions once and exit")

    args = parser.parse_args(argv)
    if args.command == "stem":
        _stem(args.locale, args.text)
        return
    if args.command == "expire":
        _expire()
        return
    _run()


if __name__ == "__main__":
    main()
