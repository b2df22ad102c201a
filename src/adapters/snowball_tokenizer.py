"""Snowball tokenizer adapter.

Implements the core TokenizerPort with the snowballstemmer package, which
ships pure-Python stemmers for the locales the bot talks in.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import snowballstemmer

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

LOCALE_LANGUAGES: Dict[str, str] = {
    "ru": "russian",
    "en": "english",
    "uk": "russian",
    "de": "german",
    "fr": "french",
    "es": "spanish",
    "it": "italian",
    "pt": "portuguese",
    "nl": "dutch",
}

DEFAULT_LANGUAGE = "english"


class SnowballTokenizer:
    """Split text into word tokens and stem them per locale."""

    def __init__(self, languages: Optional[Dict[str, str]] = None) -> None:
        self._languages = languages or LOCALE_LANGUAGES
        self._stemmers: Dict[str, Any] = {}

    def _stemmer(self, locale: Optional[str]):
        # "en-US" and "en_GB" resolve through their language prefix.
        prefix = re.split(r"[-_]", locale or "", maxsplit=1)[0].lower()
        language = self._languages.get(prefix, DEFAULT_LANGUAGE)
        if language not in self._stemmers:
            self._stemmers[language] = snowballstemmer.stemmer(language)
        return self._stemmers[language]

    def tokenize_and_stem(self, locale: Optional[str], text: str) -> List[str]:
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return []
        return self._stemmer(locale).stemWords(tokens)
