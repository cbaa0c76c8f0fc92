"""
Event routing.

Gateway callbacks are turned into one of a closed set of event variants and
dispatched to the handler registered for that variant. Button custom ids are
parsed into :class:`ButtonAction` members up front, so an unknown id is
rejected at the edge instead of falling through string comparisons.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional, Union

import discord

log = logging.getLogger("caughtwiki.router")


class ButtonAction(str, Enum):
    TICKET_SUPPORT = "ticket_support"
    TICKET_APPLY = "ticket_apply"
    TICKET_REPORT = "ticket_report"
    TICKET_APPEAL = "ticket_appeal"
    CLOSE_TICKET = "close_ticket"
    CONFIRM_CLOSE = "confirm_close"
    CANCEL_CLOSE = "cancel_close"

    @classmethod
    def parse(cls, custom_id: str | None) -> Optional["ButtonAction"]:
        try:
            return cls(custom_id)
        except ValueError:
            return None


@dataclass(frozen=True)
class PrefixCommand:
    name: str
    args: List[str]
    message: discord.Message = field(repr=False)


@dataclass(frozen=True)
class ButtonPressed:
    action: ButtonAction
    interaction: discord.Interaction = field(repr=False)


@dataclass(frozen=True)
class TemplateRequested:
    template_name: str
    interaction: discord.Interaction = field(repr=False)


@dataclass(frozen=True)
class MemberJoined:
    member: discord.Member = field(repr=False)


Event = Union[PrefixCommand, ButtonPressed, TemplateRequested, MemberJoined]

CommandHandler = Callable[[PrefixCommand], Awaitable[None]]
ButtonHandler = Callable[[ButtonPressed], Awaitable[None]]
TemplateHandler = Callable[[TemplateRequested], Awaitable[None]]
JoinHandler = Callable[[MemberJoined], Awaitable[None]]


class CommandInfo(NamedTuple):
    usage: str
    description: str


def parse_prefix_command(content: str, prefix: str) -> Optional[tuple[str, List[str]]]:
    """Split ``.cmd a b`` into ``("cmd", ["a", "b"])``; ``None`` if not a command."""
    if not prefix or not content.startswith(prefix):
        return None
    args = content[len(prefix):].split()
    if not args:
        return None
    return args[0].lower(), args[1:]


class Router:
    """Maps each event variant to its handler(s)."""

    def __init__(self) -> None:
        self._commands: Dict[str, CommandHandler] = {}
        self._info: Dict[str, CommandInfo] = {}
        self._buttons: Dict[ButtonAction, ButtonHandler] = {}
        self._template: Optional[TemplateHandler] = None
        self._join: List[JoinHandler] = []

    # ------------------------
    # Registration
    # ------------------------

    def command(self, name: str, handler: CommandHandler, usage: str = "", description: str = "") -> None:
        name = name.lower()
        if name in self._commands:
            raise ValueError(f"prefix command {name!r} is already registered")
        self._commands[name] = handler
        self._info[name] = CommandInfo(usage, description)

    def button(self, action: ButtonAction, handler: ButtonHandler) -> None:
        if action in self._buttons:
            raise ValueError(f"button {action.value!r} is already registered")
        self._buttons[action] = handler

    def template(self, handler: TemplateHandler) -> None:
        self._template = handler

    def member_join(self, handler: JoinHandler) -> None:
        self._join.append(handler)

    def commands(self) -> Dict[str, CommandInfo]:
        """Registered prefix commands with their argument syntax and description."""
        return dict(self._info)

    def missing_buttons(self) -> List[ButtonAction]:
        return [a for a in ButtonAction if a not in self._buttons]

    # ------------------------
    # Dispatch
    # ------------------------

    async def dispatch(self, event: Event) -> bool:
        """Run the handler for ``event``; returns ``False`` when nothing handles it."""
        if isinstance(event, PrefixCommand):
            handler = self._commands.get(event.name)
            if handler is None:
                log.debug("Ignoring unknown prefix command %r", event.name)
                return False
            await handler(event)
        elif isinstance(event, ButtonPressed):
            button_handler = self._buttons.get(event.action)
            if button_handler is None:
                log.warning("No handler registered for button %s", event.action.value)
                return False
            await button_handler(event)
        elif isinstance(event, TemplateRequested):
            if self._template is None:
                log.warning("No template handler registered")
                return False
            await self._template(event)
        elif isinstance(event, MemberJoined):
            if not self._join:
                return False
            for join_handler in self._join:
                await join_handler(event)
        else:
            raise TypeError(f"unknown event variant: {type(event).__name__}")
        return True
