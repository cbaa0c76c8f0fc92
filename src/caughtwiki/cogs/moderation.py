from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

import discord
from discord.ext import commands

from ..constants import ERROR_MESSAGES, PURGE_MAX, PURGE_MIN
from ..permissions import Capability, can_act_on, has_capability
from ..router import PrefixCommand
from ..utils import error_embed, parse_user_id, safe_reply, success_embed

log = logging.getLogger("caughtwiki.moderation")


def _reason(args: list[str]) -> str:
    return " ".join(args) or "No reason provided"


class ModerationCog(commands.Cog):
    """Prefix moderation commands. Each one performs at most a single mutation."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    async def cog_load(self) -> None:
        router = self.bot.router  # type: ignore[attr-defined]
        router.command("purge", self.purge, usage=f"<{PURGE_MIN}-{PURGE_MAX}>", description="Bulk delete recent messages.")
        router.command("ban", self.ban, usage="@user|id [reason]", description="Ban a user, even one not in the server.")
        router.command("kick", self.kick, usage="@user|id [reason]", description="Kick a member.")
        router.command("mute", self.mute, usage="@user|id [reason]", description="Time out a member.")
        router.command("unmute", self.unmute, usage="@user|id", description="Remove a member's time out.")

    # ------------------------
    # Helpers
    # ------------------------

    def _usage(self, name: str) -> discord.Embed:
        prefix = self.bot.settings.command_prefix  # type: ignore[attr-defined]
        info = self.bot.router.commands()[name]  # type: ignore[attr-defined]
        return error_embed(f"Usage: `{prefix}{name} {info.usage}`")

    async def _authorize(self, command: PrefixCommand, capability: Capability) -> bool:
        message = command.message
        if message.guild is None:
            return False
        if not has_capability(message.author, capability):
            log.info("Denied %s to %s (missing %s)", command.name, message.author.id, capability.value)
            await safe_reply(message, embed=error_embed(f"🚫 Access denied. You need the `{capability.value}` permission."))
            return False
        return True

    async def _resolve_member(self, guild: discord.Guild, raw: str) -> Optional[discord.Member]:
        user_id = parse_user_id(raw)
        if user_id is None:
            return None
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            return None

    async def _check_hierarchy(self, message: discord.Message, target: Any) -> bool:
        if can_act_on(message.author, target):
            return True
        await safe_reply(message, embed=error_embed("🚫 You can't moderate that member."))
        return False

    async def _forbidden(self, message: discord.Message, command: PrefixCommand, e: discord.Forbidden) -> None:
        log.warning("Forbidden running %s in guild %s: %s", command.name, getattr(message.guild, "id", None), e)
        await safe_reply(message, embed=error_embed(ERROR_MESSAGES["bot_missing_permissions"]))

    # ------------------------
    # Commands
    # ------------------------

    async def purge(self, command: PrefixCommand) -> None:
        if not await self._authorize(command, Capability.MANAGE_MESSAGES):
            return
        message = command.message
        raw = command.args[0] if command.args else ""
        if not raw.isdecimal() or not PURGE_MIN <= int(raw) <= PURGE_MAX:
            await safe_reply(message, embed=self._usage("purge"))
            return

        try:
            deleted = await message.channel.purge(limit=int(raw), before=message)
        except discord.Forbidden as e:
            await self._forbidden(message, command, e)
            return
        log.info("%s purged %d messages in %s", message.author.id, len(deleted), message.channel.id)
        await safe_reply(message, embed=success_embed(f"🧹 Deleted {len(deleted)} messages."))

    async def ban(self, command: PrefixCommand) -> None:
        if not await self._authorize(command, Capability.BAN_MEMBERS):
            return
        message = command.message
        guild = message.guild
        user_id = parse_user_id(command.args[0]) if command.args else None
        if user_id is None:
            await safe_reply(message, embed=self._usage("ban"))
            return

        # Users who already left can still be banned by id
        target: Any = await self._resolve_member(guild, command.args[0]) or discord.Object(id=user_id)
        if not await self._check_hierarchy(message, target):
            return

        reason = _reason(command.args[1:])
        try:
            await guild.ban(target, reason=f"{message.author} ({message.author.id}): {reason}")
        except discord.Forbidden as e:
            await self._forbidden(message, command, e)
            return
        log.info("%s banned %s in guild %s", message.author.id, user_id, guild.id)
        await safe_reply(message, embed=success_embed(f"🔨 Banned <@{user_id}>.\nReason: {reason}"))

    async def kick(self, command: PrefixCommand) -> None:
        if not await self._authorize(command, Capability.KICK_MEMBERS):
            return
        message = command.message
        member = await self._resolve_member(message.guild, command.args[0]) if command.args else None
        if member is None:
            await safe_reply(message, embed=self._usage("kick"))
            return
        if not await self._check_hierarchy(message, member):
            return

        reason = _reason(command.args[1:])
        try:
            await message.guild.kick(member, reason=f"{message.author} ({message.author.id}): {reason}")
        except discord.Forbidden as e:
            await self._forbidden(message, command, e)
            return
        log.info("%s kicked %s in guild %s", message.author.id, member.id, message.guild.id)
        await safe_reply(message, embed=success_embed(f"👢 Kicked {member.mention}.\nReason: {reason}"))

    async def mute(self, command: PrefixCommand) -> None:
        if not await self._authorize(command, Capability.MODERATE_MEMBERS):
            return
        message = command.message
        member = await self._resolve_member(message.guild, command.args[0]) if command.args else None
        if member is None:
            await safe_reply(message, embed=self._usage("mute"))
            return
        if not await self._check_hierarchy(message, member):
            return

        minutes = self.bot.settings.mute_minutes  # type: ignore[attr-defined]
        reason = _reason(command.args[1:])
        try:
            await member.timeout(timedelta(minutes=minutes), reason=f"{message.author} ({message.author.id}): {reason}")
        except discord.Forbidden as e:
            await self._forbidden(message, command, e)
            return
        log.info("%s muted %s for %d minutes", message.author.id, member.id, minutes)
        await safe_reply(message, embed=success_embed(f"🔇 Muted {member.mention} for {minutes} minutes.\nReason: {reason}"))

    async def unmute(self, command: PrefixCommand) -> None:
        if not await self._authorize(command, Capability.MODERATE_MEMBERS):
            return
        message = command.message
        member = await self._resolve_member(message.guild, command.args[0]) if command.args else None
        if member is None:
            await safe_reply(message, embed=self._usage("unmute"))
            return
        if not await self._check_hierarchy(message, member):
            return

        try:
            await member.timeout(None, reason=f"Unmuted by {message.author} ({message.author.id})")
        except discord.Forbidden as e:
            await self._forbidden(message, command, e)
            return
        log.info("%s unmuted %s", message.author.id, member.id)
        await safe_reply(message, embed=success_embed(f"🔊 Unmuted {member.mention}."))
