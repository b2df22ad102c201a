"""Command compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from core.config import MATCH_MODES
from core.linguistics import Linguist, StemPhrase
from core.models import MatchOutcome, MatchResult, MatchStatus

if TYPE_CHECKING:
    from core.dispatcher import ConversationContext

Pattern = Union[re.Pattern, StemPhrase]
Handler = Callable[["ConversationContext", MatchResult], Awaitable[bool]]
Action = Callable[["ConversationContext", Optional[str]], Awaitable[bool]]


@dataclass(frozen=True)
class Command:
    """Registered command: syntax variants, priority, and handlers.

    A command matches when any of its variants matches, and a variant matches
    only when every one of its patterns matches the lowercased text.
    """

    name: str
    syntax: Tuple[Tuple[Pattern, ...], ...]
    handler: Handler
    priority: int = 0
    action: Optional[Action] = None

    def match(self, text: str, locale: Optional[str], linguist: Linguist) -> Optional[MatchResult]:
        """Evaluate every variant against already-lowercased text."""

        variants: List[Optional[Tuple[Any, ...]]] = []
        for variant in self.syntax:
            hits: List[Any] = []
            for pattern in variant:
                if isinstance(pattern, StemPhrase):
                    hit = pattern.match(linguist, locale, text)
                else:
                    hit = pattern.search(text)
                if hit is None:
                    break
                hits.append(hit)
            else:
                variants.append(tuple(hits))
                continue
            variants.append(None)

        result = MatchResult(variants=tuple(variants))
        return result if result.matched else None

    async def handle(self, context: "ConversationContext", result: MatchResult) -> bool:
        return bool(await self.handler(context, result))


def _compile_variant(variant: Union[str, Pattern, Sequence[Union[str, Pattern]]]) -> Tuple[Pattern, ...]:
    if not isinstance(variant, (list, tuple)):
        variant = [variant]
    compiled: List[Pattern] = []
    for pattern in variant:
        if isinstance(pattern, str):
            compiled.append(re.compile(pattern, re.IGNORECASE))
        else:
            compiled.append(pattern)
    return tuple(compiled)


def build_command(
    name: str,
    syntax: Sequence[Any],
    handler: Handler,
    priority: int = 0,
    action: Optional[Action] = None,
) -> Command:
    """Normalize a command definition and compile regex strings.

    Each syntax entry is one variant: a regex string, a compiled pattern, a
    StemPhrase, or a sequence of those that must all match.
    """

    if not syntax:
        raise ValueError(f"Command {name} has no syntax variants")
    return Command(
        name=name,
        syntax=tuple(_compile_variant(variant) for variant in syntax),
        handler=handler,
        priority=priority,
        action=action,
    )


class CommandTable:
    """Ordered registry of commands plus named scenes."""

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._ordered: List[Command] = []
        self._scenes: Dict[str, Any] = {}

    def add(self, command: Command) -> Command:
        """Register a command; the first registration of a name wins."""

        if command.name in self._commands:
            return self._commands[command.name]
        self._commands[command.name] = command
        self._ordered.append(command)
        # sort() is stable, so equal priorities keep registration order.
        self._ordered.sort(key=lambda item: item.priority)
        return command

    def command(
        self,
        name: str,
        *syntax: Any,
        priority: int = 0,
        action: Optional[Action] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add()."""

        def decorator(handler: Handler) -> Handler:
            self.add(build_command(name, syntax, handler, priority=priority, action=action))
            return handler

        return decorator

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def ordered(self) -> List[Command]:
        return list(self._ordered)

    def add_scene(self, name: str, scene: Any) -> None:
        self._scenes[name] = scene

    def get_scene(self, name: Optional[str]) -> Any:
        if name is None:
            return None
        return self._scenes.get(name)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, name: object) -> bool:
        return name in self._commands


class CommandMatcher:
    """Evaluate one message against the command table.

    Modes:
    - strict: the first matching command in priority order wins and nothing
      after it is evaluated.
    - exclusive: every command is evaluated and two different matches make
      the message ambiguous, so no handler runs.
    """

    def __init__(self, table: CommandTable, linguist: Linguist, mode: str = "strict") -> None:
        if mode not in MATCH_MODES:
            raise ValueError(f"Unsupported match mode: {mode}")
        self._table = table
        self._linguist = linguist
        self.mode = mode

    def match(self, text: str, locale: Optional[str] = None, mode: Optional[str] = None) -> MatchOutcome:
        mode = mode or self.mode
        if mode not in MATCH_MODES:
            raise ValueError(f"Unsupported match mode: {mode}")

        lowered = text.lower()
        if not lowered.strip():
            return MatchOutcome(status=MatchStatus.NO_MATCH)

        winner: Optional[Command] = None
        winner_result: Optional[MatchResult] = None
        for command in self._table.ordered():
            result = command.match(lowered, locale, self._linguist)
            if result is None:
                continue
            if mode == "strict":
                return MatchOutcome(status=MatchStatus.MATCHED, command=command, result=result)
            if winner is not None:
                return MatchOutcome(status=MatchStatus.AMBIGUOUS)
            winner, winner_result = command, result

        if winner is None:
            return MatchOutcome(status=MatchStatus.NO_MATCH)
        return MatchOutcome(status=MatchStatus.MATCHED, command=winner, result=winner_result)
