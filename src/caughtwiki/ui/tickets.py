from __future__ import annotations

import logging
from typing import Any

import discord

from ..error_handlers import notify_failure
from ..router import ButtonAction, ButtonPressed

log = logging.getLogger("caughtwiki.ui.tickets")


class RoutedButton(discord.ui.Button):
    """Button whose click is handed to the bot's router as a ButtonPressed event."""

    def __init__(self, action: ButtonAction, label: str, style: discord.ButtonStyle) -> None:
        super().__init__(label=label, style=style, custom_id=action.value)
        self.action = action

    async def callback(self, interaction: discord.Interaction) -> None:
        router = getattr(interaction.client, "router", None)
        if router is None:
            log.error("Button %s clicked but the bot has no router", self.action.value)
            return
        await router.dispatch(ButtonPressed(self.action, interaction))


class RoutedView(discord.ui.View):
    """Persistent view; survives restarts because every item has a fixed custom id."""

    def __init__(self) -> None:
        super().__init__(timeout=None)

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[Any]) -> None:
        await notify_failure(interaction, error)


class TicketPanelView(RoutedView):
    def __init__(self) -> None:
        super().__init__()
        self.add_item(RoutedButton(ButtonAction.TICKET_SUPPORT, "🛠️ Support", discord.ButtonStyle.primary))
        self.add_item(RoutedButton(ButtonAction.TICKET_APPLY, "📝 Apply", discord.ButtonStyle.success))
        self.add_item(RoutedButton(ButtonAction.TICKET_REPORT, "🚨 Report", discord.ButtonStyle.danger))
        self.add_item(RoutedButton(ButtonAction.TICKET_APPEAL, "⚖️ Appeal", discord.ButtonStyle.secondary))


class TicketControlView(RoutedView):
    def __init__(self) -> None:
        super().__init__()
        self.add_item(RoutedButton(ButtonAction.CLOSE_TICKET, "🔒 Close Ticket", discord.ButtonStyle.danger))


class CloseConfirmView(RoutedView):
    def __init__(self) -> None:
        super().__init__()
        self.add_item(RoutedButton(ButtonAction.CONFIRM_CLOSE, "✅ Confirm", discord.ButtonStyle.success))
        self.add_item(RoutedButton(ButtonAction.CANCEL_CLOSE, "❌ Cancel", discord.ButtonStyle.secondary))


def persistent_views() -> list[discord.ui.View]:
    return [TicketPanelView(), TicketControlView(), CloseConfirmView()]
