"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

MATCH_MODES = ("strict", "exclusive")


@dataclass(frozen=True)
class SessionConfig:
    """Session bridge settings, all durations in seconds."""

    expire_timeout: int = 0
    expire_interval: int = 0


@dataclass(frozen=True)
class MatchingConfig:
    """Command matcher settings."""

    mode: str = "strict"

    def __post_init__(self) -> None:
        if self.mode not in MATCH_MODES:
            raise ValueError(f"Unsupported match mode: {self.mode}")


@dataclass(frozen=True)
class CallbackConfig:
    """Callback registry settings."""

    token_length: int = 32
    ttl_seconds: int = 0
