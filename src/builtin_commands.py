"""Built-in bot commands.

A small menu conversation that exercises the engine end to end: /start opens
the menu and waits for a numeric choice, /date reads a date from free text,
and /cancel drops any pending step.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.commands import CommandTable
from core.dispatcher import ConversationContext
from core.linguistics import StemPhrase
from core.models import MatchResult, MatchStatus

LOGGER = logging.getLogger(__name__)

MENU_ITEMS = ("Pick a date", "Talk to a human", "Settings")

TEXTS = {
    "en": {
        "menu": "Menu:\n{items}\nSend the number of an item.",
        "choice": "You picked: {item}",
        "bad_choice": "Please send a number from 1 to {count}.",
        "date": "Date: {date}",
        "no_date": "I could not find a date in that message.",
        "cancelled": "Cancelled.",
    },
    "ru": {
        "menu": "Меню:\n{items}\nОтправьте номер пункта.",
        "choice": "Вы выбрали: {item}",
        "bad_choice": "Отправьте число от 1 до {count}.",
        "date": "Дата: {date}",
        "no_date": "Не удалось найти дату в сообщении.",
        "cancelled": "Отменено.",
    },
}


def text_for(context: ConversationContext, key: str, **kwargs: object) -> str:
    texts = TEXTS.get(context.locale, TEXTS["en"])
    return texts[key].format(**kwargs)


def _menu_text(context: ConversationContext) -> str:
    items = "\n".join(f"{index}. {item}" for index, item in enumerate(MENU_ITEMS, start=1))
    return text_for(context, "menu", items=items)


async def menu_choice(context: ConversationContext) -> bool:
    """Continuation for the reply to the /start menu."""

    raw = context.text.strip()
    if raw.startswith("/"):
        # A command leaves the menu step and is routed like any other message.
        outcome = context.dispatcher.matcher.match(context.text, context.locale)
        if outcome.status is MatchStatus.MATCHED:
            return await outcome.command.handle(context, outcome.result)

    if not raw.isdigit() or not 1 <= int(raw) <= len(MENU_ITEMS):
        await context.reply(text_for(context, "bad_choice", count=len(MENU_ITEMS)))
        context.wait_for_input(menu_choice)
        return True

    choice = int(raw)
    context.payload["choice"] = choice
    context.payload["step"] = "chosen"
    await context.reply(text_for(context, "choice", item=MENU_ITEMS[choice - 1]))
    return True


async def start(context: ConversationContext, result: MatchResult) -> bool:
    context.payload.clear()
    context.payload["step"] = "menu"
    await context.reply(_menu_text(context))
    context.wait_for_input(menu_choice)
    return True


async def menu_action(context: ConversationContext, argument: Optional[str]) -> bool:
    """Inline-button path for the same menu: the button carries the item number."""

    if argument is None or not argument.isdigit() or not 1 <= int(argument) <= len(MENU_ITEMS):
        return False
    # Buttons of a menu that was already answered or cancelled are stale.
    if context.session.read("step", str) != "menu":
        return False
    context.dispatcher.callbacks.discard(context.session)
    choice = int(argument)
    context.payload["choice"] = choice
    context.payload["step"] = "chosen"
    await context.reply(text_for(context, "choice", item=MENU_ITEMS[choice - 1]))
    return True


async def show_date(context: ConversationContext, result: MatchResult) -> bool:
    found = context.extract_date()
    if found is None:
        await context.reply(text_for(context, "no_date"))
        return True
    context.payload["date"] = found.isoformat()
    await context.reply(text_for(context, "date", date=found.isoformat()))
    return True


async def cancel(context: ConversationContext, result: MatchResult) -> bool:
    context.dispatcher.callbacks.discard(context.session)
    context.payload.clear()
    await context.reply(text_for(context, "cancelled"))
    return True


def register_builtin_commands(table: CommandTable) -> CommandTable:
    """Register the built-in commands on a table and return it."""

    table.command("start", r"^/start\b", priority=0, action=menu_action)(start)
    table.command("cancel", r"^/cancel\b", priority=0)(cancel)
    table.command(
        "date",
        r"^/date\b",
        [r"\bdate\b", StemPhrase("when", require="any")],
        [StemPhrase("дата", require="any")],
        priority=10,
    )(show_date)
    LOGGER.info("%s built-in commands are registered", len(table))
    return table
