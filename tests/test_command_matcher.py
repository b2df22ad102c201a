from __future__ import annotations

import re
from typing import List

from core.commands import CommandMatcher, CommandTable, build_command
from core.linguistics import Linguist, StemPhrase
from core.models import MatchStatus


class FakeTokenizer:
    def tokenize_and_stem(self, locale, text: str) -> List[str]:
        return [token.rstrip("s") for token in re.findall(r"\w+", text.lower())]


class CountingPattern:
    def __init__(self, pattern: str) -> None:
        self._pattern = re.compile(pattern)
        self.calls = 0

    def search(self, text: str):
        self.calls += 1
        return self._pattern.search(text)


async def _noop(context, result) -> bool:
    return True


def _matcher(table: CommandTable, mode: str = "strict") -> CommandMatcher:
    return CommandMatcher(table, Linguist(FakeTokenizer(), default_locale="en"), mode=mode)


def test_strict_mode_prefers_lower_priority_value() -> None:
    table = CommandTable()
    table.add(build_command("search", [r"(\w+)"], _noop, priority=10))
    table.add(build_command("help", [r"^help$"], _noop, priority=1))

    outcome = _matcher(table).match("help")

    assert outcome.status is MatchStatus.MATCHED
    assert outcome.command.name == "help"


def test_equal_priority_keeps_registration_order() -> None:
    table = CommandTable()
    table.add(build_command("first", [r"menu"], _noop, priority=5))
    table.add(build_command("second", [r"menu"], _noop, priority=5))

    outcome = _matcher(table).match("menu")

    assert outcome.command.name == "first"


def test_strict_mode_stops_scanning_after_first_match() -> None:
    later = CountingPattern(r".*")
    table = CommandTable()
    table.add(build_command("start", [r"^/start"], _noop, priority=0))
    table.add(build_command("fallback", [later], _noop, priority=100))

    outcome = _matcher(table).match("/start")

    assert outcome.command.name == "start"
    assert later.calls == 0


def test_exclusive_mode_reports_ambiguity() -> None:
    table = CommandTable()
    table.add(build_command("search", [r"^find (.+)$"], _noop, priority=10))
    table.add(build_command("books", [r"books"], _noop, priority=1))

    outcome = _matcher(table, mode="exclusive").match("find books")

    assert outcome.status is MatchStatus.AMBIGUOUS
    assert outcome.command is None


def test_exclusive_mode_accepts_single_match() -> None:
    table = CommandTable()
    table.add(build_command("search", [r"^find (.+)$"], _noop, priority=10))
    table.add(build_command("books", [r"books"], _noop, priority=1))

    outcome = _matcher(table, mode="exclusive").match("find films")

    assert outcome.status is MatchStatus.MATCHED
    assert outcome.command.name == "search"
    assert outcome.result.groups() == ("films",)


def test_mode_can_be_overridden_per_call() -> None:
    table = CommandTable()
    table.add(build_command("a", [r"x"], _noop, priority=1))
    table.add(build_command("b", [r"x"], _noop, priority=2))
    matcher = _matcher(table)

    assert matcher.match("x").status is MatchStatus.MATCHED
    assert matcher.match("x", mode="exclusive").status is MatchStatus.AMBIGUOUS


def test_variant_needs_every_pattern() -> None:
    table = CommandTable()
    table.add(build_command("remind", [[r"remind", r"at (\d+)"]], _noop))
    matcher = _matcher(table)

    assert matcher.match("remind me later").status is MatchStatus.NO_MATCH
    outcome = matcher.match("Remind me at 7")
    assert outcome.status is MatchStatus.MATCHED
    assert outcome.result.groups(1) == ("7",)


def test_match_result_is_positional_per_variant() -> None:
    table = CommandTable()
    table.add(build_command("pick", [r"^pick (\d+)$", r"^(\d+)$"], _noop))

    outcome = _matcher(table).match("42")

    assert outcome.result[0] is None
    assert outcome.result[1][0].group(1) == "42"
    assert outcome.result.first[0].group(1) == "42"


def test_text_is_lowercased_before_matching() -> None:
    table = CommandTable()
    table.add(build_command("start", [re.compile(r"^/start$")], _noop))

    assert _matcher(table).match("/START").status is MatchStatus.MATCHED


def test_stem_phrase_variant() -> None:
    table = CommandTable()
    table.add(build_command("orders", [StemPhrase("my orders")], _noop))
    matcher = _matcher(table)

    outcome = matcher.match("show my orders")
    assert outcome.status is MatchStatus.MATCHED
    assert outcome.result.first[0] == ("my", "order")
    assert matcher.match("show the cart").status is MatchStatus.NO_MATCH


def test_empty_text_never_matches() -> None:
    table = CommandTable()
    table.add(build_command("anything", [r".*"], _noop))

    assert _matcher(table).match("   ").status is MatchStatus.NO_MATCH


def test_first_registration_of_a_name_wins() -> None:
    table = CommandTable()
    table.add(build_command("start", [r"^/start"], _noop, priority=5))
    table.add(build_command("start", [r"^/begin"], _noop, priority=0))

    assert len(table) == 1
    assert table.get("start").priority == 5
    assert "start" in table


def test_decorator_registers_command() -> None:
    table = CommandTable()

    @table.command("ping", r"^ping$", priority=3)
    async def ping(context, result) -> bool:
        return True

    command = table.get("ping")
    assert command.handler is ping
    assert command.priority == 3
    assert table.ordered() == [command]


def test_scenes_are_looked_up_by_name() -> None:
    table = CommandTable()
    scene = object()
    table.add_scene("checkout", scene)

    assert table.get_scene("checkout") is scene
    assert table.get_scene(None) is None
    assert table.get_scene("missing") is None
