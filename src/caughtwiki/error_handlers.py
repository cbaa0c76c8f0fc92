from __future__ import annotations

import logging
from typing import Union

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .utils import error_embed, safe_interaction_send, safe_reply

log = logging.getLogger("caughtwiki.error_handlers")


async def notify_failure(target: Union[discord.Interaction, discord.Message], error: BaseException) -> None:
    """Log an unexpected handler error and tell the user something went wrong.

    If the interaction or message can no longer be answered the failure is
    only logged.
    """
    log.error("Unhandled error in handler", exc_info=error)
    embed = error_embed(ERROR_MESSAGES["generic"])
    if isinstance(target, discord.Interaction):
        await safe_interaction_send(target, embed=embed, ephemeral=True)
    else:
        await safe_reply(target, embed=embed)


async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
    """Handle application command errors."""
    if isinstance(error, app_commands.MissingPermissions):
        await safe_interaction_send(interaction, embed=error_embed(ERROR_MESSAGES["missing_permissions"]), ephemeral=True)
        return

    if isinstance(error, app_commands.BotMissingPermissions):
        await safe_interaction_send(interaction, embed=error_embed(ERROR_MESSAGES["bot_missing_permissions"]), ephemeral=True)
        return

    if isinstance(error, app_commands.NoPrivateMessage):
        await safe_interaction_send(interaction, embed=error_embed("This command only works inside a server."), ephemeral=True)
        return

    original = getattr(error, "original", error)
    log.error("Unexpected error in app command %s", getattr(interaction.command, "name", "?"))
    await notify_failure(interaction, original)


def setup_error_handlers(bot: commands.Bot) -> None:
    """Install the slash command error handler on the bot's command tree."""
    bot.tree.error(on_app_command_error)
