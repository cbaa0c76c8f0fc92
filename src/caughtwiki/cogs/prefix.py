from __future__ import annotations

import logging

import discord
from discord.ext import commands

from ..constants import COLORS
from ..error_handlers import notify_failure
from ..router import PrefixCommand, parse_prefix_command
from ..utils import safe_embed, safe_reply

log = logging.getLogger("caughtwiki.prefix")


class PrefixCommandsCog(commands.Cog):
    """Turns prefixed messages into PrefixCommand events for the router."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    async def cog_load(self) -> None:
        self.bot.router.command("help", self.help, description="Shows this help menu.")  # type: ignore[attr-defined]

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        parsed = parse_prefix_command(message.content, self.bot.settings.command_prefix)  # type: ignore[attr-defined]
        if parsed is None:
            return

        name, args = parsed
        try:
            await self.bot.router.dispatch(PrefixCommand(name, args, message))  # type: ignore[attr-defined]
        except Exception as e:
            await notify_failure(message, e)

    async def help(self, command: PrefixCommand) -> None:
        prefix = self.bot.settings.command_prefix  # type: ignore[attr-defined]
        embed = safe_embed("📚 Help Center", "Here are the available commands:", COLORS["warning"])
        for name, info in sorted(self.bot.router.commands().items()):  # type: ignore[attr-defined]
            title = f"{prefix}{name} {info.usage}".rstrip()
            embed.add_field(name=title, value=info.description or "No description.", inline=False)
        await safe_reply(command.message, embed=embed)
