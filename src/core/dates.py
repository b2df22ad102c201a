"""Date extraction from free text (core domain).

Literal grammars are tried first, most specific first, so a short ``DD.MM``
form never shadows a full ``DD.MM.YYYY`` date. Keyword recognition only runs
when no literal grammar produced a valid date.
"""

from __future__ import annotations

from datetime import date, timedelta
import re
from typing import Dict, Optional, Tuple

from core.linguistics import Linguist


def _standalone(body: str) -> re.Pattern:
    # The date must not be part of a longer digit run like "2024.03.05" or "105.03.2024".
    return re.compile(r"(?<!\d)(?<!\d[./-])" + body + r"(?!\d)(?![./-]\d)")


# name -> (pattern, group order as (year, month, day)); year group 0 means "current year"
_GRAMMARS: Dict[str, Tuple[re.Pattern, Tuple[int, int, int]]] = {
    "iso": (_standalone(r"(\d{4})-(\d{2})-(\d{2})"), (1, 2, 3)),
    "long_dot": (_standalone(r"(\d{2})\.(\d{2})\.(\d{4}|\d{2})"), (3, 2, 1)),
    "long_slash": (_standalone(r"(\d{2})/(\d{2})/(\d{4}|\d{2})"), (3, 2, 1)),
    "short_dot": (_standalone(r"(\d{2})\.(\d{2})"), (0, 2, 1)),
    "short_slash": (_standalone(r"(\d{2})/(\d{2})"), (0, 2, 1)),
}

# Only ISO dates are recognized for locales without a table here.
_LOCALE_GRAMMARS: Dict[str, Tuple[str, ...]] = {
    "ru": ("iso", "long_dot", "long_slash", "short_dot", "short_slash"),
    "en": ("iso", "long_slash", "long_dot", "short_slash", "short_dot"),
}

_KEYWORDS: Dict[str, Dict[str, str]] = {
    "ru": {
        "sunday": "воскресенье",
        "monday": "понедельник",
        "tuesday": "вторник",
        "wednesday": "среда",
        "thursday": "четверг",
        "friday": "пятница",
        "week_end": "конец недели",
        "saturday": "суббота",
        "yesterday": "вчера",
        "tomorrow": "завтра",
    },
    "en": {
        "sunday": "sunday",
        "monday": "monday",
        "tuesday": "tuesday",
        "wednesday": "wednesday",
        "thursday": "thursday",
        "friday": "friday",
        "week_end": "end of week",
        "saturday": "saturday",
        "yesterday": "yesterday",
        "tomorrow": "tomorrow",
    },
}

# Sunday-based week index, matching how chat users say "on Monday" for this week.
_WEEKDAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def _week_day(today: date, name: str) -> date:
    current = (today.weekday() + 1) % 7
    return today + timedelta(days=_WEEKDAYS.index(name) - current)


def _literal_date(locale: Optional[str], text: str, today: date) -> Optional[date]:
    allowed = _LOCALE_GRAMMARS.get(locale or "", ("iso",))
    for name in allowed:
        pattern, (year_group, month_group, day_group) = _GRAMMARS[name]
        match = pattern.search(text)
        if not match:
            continue
        year = int(match.group(year_group)) if year_group else today.year
        if year < 1000:
            year += 2000
        try:
            return date(year, int(match.group(month_group)), int(match.group(day_group)))
        except ValueError:
            return None
    return None


def _keyword_date(linguist: Linguist, locale: Optional[str], text: str, today: date) -> Optional[date]:
    keywords = _KEYWORDS.get(locale or "")
    if not keywords:
        return None

    def said(key: str) -> bool:
        return linguist.has_all(locale, text, keywords[key])

    for name in _WEEKDAYS[:5]:
        if said(name):
            return _week_day(today, name)
    if said("friday") or said("week_end"):
        return _week_day(today, "friday")
    if said("saturday"):
        return _week_day(today, "saturday")
    if said("yesterday"):
        return today - timedelta(days=1)
    if said("tomorrow"):
        return today + timedelta(days=1)
    return None


def extract_date(
    linguist: Linguist,
    locale: Optional[str],
    text: str,
    today: Optional[date] = None,
) -> Optional[date]:
    """Return the date mentioned in text, or None when nothing is recognized."""

    today = today or date.today()
    locale = locale or linguist.default_locale
    lowered = text.lower()
    found = _literal_date(locale, lowered, today)
    if found is not None:
        return found
    return _keyword_date(linguist, locale, lowered, today)
