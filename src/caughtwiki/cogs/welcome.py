from __future__ import annotations

import logging

import discord
from discord.ext import commands

from ..constants import COLORS, SERVER_DISPLAY_NAME
from ..router import MemberJoined
from ..utils import safe_embed

log = logging.getLogger("caughtwiki.welcome")


class WelcomeCog(commands.Cog):
    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    async def cog_load(self) -> None:
        self.bot.router.member_join(self.handle_join)  # type: ignore[attr-defined]

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        await self.bot.router.dispatch(MemberJoined(member))  # type: ignore[attr-defined]

    async def handle_join(self, event: MemberJoined) -> None:
        member = event.member
        settings = self.bot.settings  # type: ignore[attr-defined]

        # Autorole
        if settings.auto_role_id:
            role = member.guild.get_role(settings.auto_role_id)
            if role is None:
                log.error("❌ Auto role %s not found.", settings.auto_role_id)
            else:
                try:
                    await member.add_roles(role, reason="Auto role on join")
                    log.info("📎 Assigned role to %s", member)
                except discord.HTTPException as e:
                    log.error("❌ Could not assign role to %s: %s", member, e)

        # Welcome message
        channel = member.guild.get_channel(settings.welcome_channel_id) if settings.welcome_channel_id else None
        if channel is None:
            log.error("❌ Welcome channel not found.")
            return

        embed = safe_embed(
            "👋 Welcome to CaughtWiki!",
            (
                f"Hello {member.mention}, welcome to **{SERVER_DISPLAY_NAME}**!\n\n"
                "Read the rules before participating.\n"
                "Enjoy exposing the truth! 🔍"
            ),
            COLORS["success"],
        )
        embed.set_thumbnail(url=member.display_avatar.url)
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as e:
            log.error("Failed to send welcome message for %s: %s", member.id, e)
