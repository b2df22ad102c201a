"""Static configuration for the bot.

All user-editable settings (sessions, matching, callbacks, replies) live in a
single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Settings are loaded from config.json; CONFIG_PATH may point elsewhere per deployment.
CONFIG_PATH = os.getenv("CONFIG_PATH", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Bot instance name scopes every stored session.
_bot = _CONFIG.get("bot", {})
BOT_NAME = _bot.get("name", "bot")
DB_PATH = _resolve_path(_bot.get("db_path", "bot.db"))

# Session lifetime, in seconds. 0 disables expiration.
# - SESSION_EXPIRE_TIMEOUT: idle time after which a session is deleted
# - SESSION_EXPIRE_INTERVAL: how often the expiration sweep runs
_session = _CONFIG.get("session", {})
SESSION_ENABLED = bool(_session.get("enabled", True))
SESSION_EXPIRE_TIMEOUT = int(_session.get("expire_timeout", 0))
SESSION_EXPIRE_INTERVAL = int(_session.get("expire_interval", 0))

# "strict" lets priority decide overlaps, "exclusive" ignores ambiguous messages.
_matching = _CONFIG.get("matching", {})
MATCH_MODE = _matching.get("mode", "strict")

# Pending callbacks older than the TTL are swept; 0 keeps them until used.
_callbacks = _CONFIG.get("callbacks", {})
CALLBACK_TOKEN_LENGTH = int(_callbacks.get("token_length", 32))
CALLBACK_TTL_SECONDS = int(_callbacks.get("ttl_seconds", 0))

_locales = _CONFIG.get("locales", {})
DEFAULT_LOCALE = _locales.get("default", "en")

# Generic "try again later" replies keyed by locale.
ERROR_REPLIES = _CONFIG.get("error_replies", {})

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
