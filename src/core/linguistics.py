"""Locale-aware stem matching (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from core.ports import TokenizerPort


class Linguist:
    """Stem-set predicates on top of a tokenizer port."""

    def __init__(self, tokenizer: TokenizerPort, default_locale: str = "en") -> None:
        self._tokenizer = tokenizer
        self.default_locale = default_locale

    def stem(self, locale: Optional[str], text: str) -> List[str]:
        """Return the ordered stems of text for a locale."""

        return list(self._tokenizer.tokenize_and_stem(locale or self.default_locale, text.lower()))

    def has_all(self, locale: Optional[str], text: str, phrase: str) -> bool:
        """True when every stem of phrase appears among the stems of text."""

        text_stems = set(self.stem(locale, text))
        return all(item in text_stems for item in self.stem(locale, phrase))

    def has_any(self, locale: Optional[str], text: str, phrase: str) -> bool:
        """True when at least one stem of phrase appears among the stems of text."""

        text_stems = set(self.stem(locale, text))
        return any(item in text_stems for item in self.stem(locale, phrase))


@dataclass(frozen=True)
class StemPhrase:
    """Syntax pattern that matches by stem inclusion instead of a regex."""

    phrase: str
    require: str = "all"

    def __post_init__(self) -> None:
        if self.require not in ("all", "any"):
            raise ValueError(f"Unsupported stem requirement: {self.require}")

    def match(self, linguist: Linguist, locale: Optional[str], text: str) -> Optional[Tuple[str, ...]]:
        """Return the phrase stems found in text, or None when the test fails."""

        if self.require == "all":
            found = linguist.has_all(locale, text, self.phrase)
        else:
            found = linguist.has_any(locale, text, self.phrase)
        if not found:
            return None
        text_stems = set(linguist.stem(locale, text))
        return tuple(item for item in linguist.stem(locale, self.phrase) if item in text_stems)
