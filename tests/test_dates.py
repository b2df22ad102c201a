from __future__ import annotations

from datetime import date, timedelta

from adapters.snowball_tokenizer import SnowballTokenizer
from core.dates import extract_date
from core.linguistics import Linguist

# Wednesday; its Sunday-based week runs 2024-03-03 .. 2024-03-09.
TODAY = date(2024, 3, 6)


def _linguist() -> Linguist:
    return Linguist(SnowballTokenizer(), default_locale="ru")


def test_full_russian_date() -> None:
    assert extract_date(_linguist(), "ru", "встреча 05.03.2024", today=TODAY) == date(2024, 3, 5)


def test_short_date_defaults_to_current_year() -> None:
    assert extract_date(_linguist(), "ru", "встреча 05.03", today=date(2026, 10, 17)) == date(2026, 3, 5)
    assert extract_date(_linguist(), "ru", "встреча 05.03").year == date.today().year


def test_iso_and_slash_forms() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "ru", "до 2024-12-31", today=TODAY) == date(2024, 12, 31)
    assert extract_date(linguist, "ru", "до 07/08/2023", today=TODAY) == date(2023, 8, 7)
    assert extract_date(linguist, "ru", "до 07/08", today=TODAY) == date(2024, 8, 7)


def test_two_digit_year_is_in_this_century() -> None:
    assert extract_date(_linguist(), "ru", "05.03.24", today=TODAY) == date(2024, 3, 5)


def test_invalid_literal_date_falls_back_to_keywords() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "ru", "31.02.2024", today=TODAY) is None
    assert extract_date(linguist, "ru", "31.02.2024 или завтра", today=TODAY) == TODAY + timedelta(days=1)


def test_relative_days() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "ru", "Завтра в 10", today=TODAY) == date(2024, 3, 7)
    assert extract_date(linguist, "ru", "это было вчера", today=TODAY) == date(2024, 3, 5)


def test_weekdays_resolve_within_current_week() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "ru", "в понедельник", today=TODAY) == date(2024, 3, 4)
    assert extract_date(linguist, "ru", "воскресенье", today=TODAY) == date(2024, 3, 3)
    assert extract_date(linguist, "ru", "в конец недели", today=TODAY) == date(2024, 3, 8)


def test_weekday_beats_relative_day() -> None:
    assert extract_date(_linguist(), "en", "tomorrow or monday", today=TODAY) == date(2024, 3, 4)


def test_english_keywords() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "en", "see you on Saturday", today=TODAY) == date(2024, 3, 9)
    assert extract_date(linguist, "en", "by the end of the week", today=TODAY) == date(2024, 3, 8)
    assert extract_date(linguist, "en", "yesterday", today=TODAY) == date(2024, 3, 5)


def test_nothing_recognized() -> None:
    assert extract_date(_linguist(), "ru", "просто текст", today=TODAY) is None


def test_unknown_locale_still_reads_iso() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "de", "am 2024-05-01", today=TODAY) == date(2024, 5, 1)
    assert extract_date(linguist, "de", "am 01.05.2024", today=TODAY) is None


def test_missing_locale_uses_linguist_default() -> None:
    assert extract_date(_linguist(), None, "05.03.2024", today=TODAY) == date(2024, 3, 5)


def test_date_inside_longer_digit_run_is_not_cut() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "ru", "2024.03.05", today=TODAY) is None
    assert extract_date(linguist, "ru", "105.03.2024", today=TODAY) is None
    assert extract_date(linguist, "ru", "05.03.20245", today=TODAY) is None
    assert extract_date(linguist, "ru", "до 05.03.2024.", today=TODAY) == date(2024, 3, 5)


def test_english_prefers_slash_grammars() -> None:
    linguist = _linguist()

    assert extract_date(linguist, "en", "07/08 or 09.10", today=TODAY) == date(2024, 8, 7)
    assert extract_date(linguist, "ru", "07/08 or 09.10", today=TODAY) == date(2024, 10, 9)
