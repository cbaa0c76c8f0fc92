from __future__ import annotations

import logging
import time
from typing import Any

import discord
from discord.ext import commands

from ..constants import (
    COLORS,
    ERROR_MESSAGES,
    TICKET_CHANNEL_PREFIX,
    TICKET_PANEL_SCAN_LIMIT,
    TICKET_PANEL_TITLE,
    TICKET_RESERVATION_GRACE_SECONDS,
)
from ..permissions import is_staff
from ..router import ButtonAction, ButtonPressed, PrefixCommand
from ..services.ticket_store import (
    InvalidTransition,
    Ticket,
    TicketAlreadyOpen,
    TicketEvent,
    TicketKind,
    TicketStatus,
    next_status,
)
from ..ui.tickets import CloseConfirmView, TicketControlView, TicketPanelView
from ..utils import error_embed, safe_embed, safe_interaction_send, safe_reply

log = logging.getLogger("caughtwiki.tickets")

_OPEN_ACTIONS: dict[ButtonAction, TicketKind] = {
    ButtonAction.TICKET_SUPPORT: TicketKind.SUPPORT,
    ButtonAction.TICKET_APPLY: TicketKind.APPLY,
    ButtonAction.TICKET_REPORT: TicketKind.REPORT,
    ButtonAction.TICKET_APPEAL: TicketKind.APPEAL,
}

REPORT_USAGE = "❗ Usage: `{prefix}report @user <reason>`"


class TicketsCog(commands.Cog):
    """Per-user private ticket channels opened from the panel or `.report`."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    async def cog_load(self) -> None:
        router = self.bot.router  # type: ignore[attr-defined]
        for action in _OPEN_ACTIONS:
            router.button(action, self.on_open_button)
        router.button(ButtonAction.CLOSE_TICKET, self.on_close_button)
        router.button(ButtonAction.CONFIRM_CLOSE, self.on_confirm_close)
        router.button(ButtonAction.CANCEL_CLOSE, self.on_cancel_close)
        router.command("report", self.report, usage="@user <reason>", description="Opens a ticket and logs a report.")

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        await self.ensure_panel()

    # ------------------------
    # Panel
    # ------------------------

    def _panel_embed(self) -> discord.Embed:
        return safe_embed(TICKET_PANEL_TITLE, "Click one of the buttons below to open a ticket.", COLORS["info"])

    async def ensure_panel(self) -> None:
        """Edit the bot's existing ticket panel or post a new one."""
        channel_id = self.bot.settings.panel_channel_id  # type: ignore[attr-defined]
        channel = self.bot.get_channel(channel_id) if channel_id else None
        if channel is None:
            log.error("❌ Panel channel %s not found.", channel_id)
            return

        embed = self._panel_embed()
        view = TicketPanelView()
        try:
            existing: discord.Message | None = None
            async for m in channel.history(limit=TICKET_PANEL_SCAN_LIMIT):
                if m.author.id != self.bot.user.id or not m.embeds:
                    continue
                if (m.embeds[0].title or "") == TICKET_PANEL_TITLE:
                    existing = m
                    break

            if existing:
                await existing.edit(embed=embed, view=view)
                log.info("📎 Existing ticket panel updated.")
            else:
                await channel.send(embed=embed, view=view)
                log.info("📩 New ticket panel sent.")
        except discord.HTTPException as e:
            log.error("❌ Error updating/sending panel: %s", e)

    # ------------------------
    # Opening
    # ------------------------

    async def get_ticket_category(self, guild: discord.Guild) -> discord.CategoryChannel:
        name = self.bot.settings.ticket_category_name  # type: ignore[attr-defined]
        category = discord.utils.get(guild.categories, name=name)
        if category is None:
            category = await guild.create_category(name, reason="Ticket category")
            log.info("Created ticket category %r in guild %s", name, guild.id)
        return category

    def _ticket_overwrites(self, guild: discord.Guild, user: Any) -> dict[Any, discord.PermissionOverwrite]:
        overwrites: dict[Any, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            user: discord.PermissionOverwrite(view_channel=True, send_messages=True),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, manage_channels=True),
        }
        staff_role_id = self.bot.settings.staff_role_id  # type: ignore[attr-defined]
        staff_role = guild.get_role(staff_role_id) if staff_role_id else None
        if staff_role is not None:
            overwrites[staff_role] = discord.PermissionOverwrite(view_channel=True, send_messages=True)
        elif staff_role_id:
            log.warning("Staff role %s not found in guild %s", staff_role_id, guild.id)
        return overwrites

    async def open_ticket(self, guild: discord.Guild, user: Any, kind: TicketKind) -> tuple[Ticket, discord.TextChannel]:
        """Reserve a ticket record for ``user`` and create its channel.

        Raises :class:`TicketAlreadyOpen` if the user still has a live ticket.
        """
        store = self.bot.ticket_store  # type: ignore[attr-defined]

        existing = await store.get_active(guild.id, user.id)
        if existing is not None:
            if existing.channel_id is not None and guild.get_channel(existing.channel_id) is None:
                log.info("Closing stale ticket #%s; channel %s no longer exists", existing.ticket_id, existing.channel_id)
                await store.force_close(existing.ticket_id)
            elif existing.channel_id is None and time.time() - existing.opened_at > TICKET_RESERVATION_GRACE_SECONDS:
                # Left behind by a crash between reserving and attaching the channel
                log.info("Dropping abandoned reservation #%s for user %s", existing.ticket_id, user.id)
                await store.discard(existing.ticket_id)

        ticket = await store.reserve(guild.id, user.id, kind)
        try:
            category = await self.get_ticket_category(guild)
            channel = await guild.create_text_channel(
                name=f"{TICKET_CHANNEL_PREFIX}{user.name}",
                category=category,
                overwrites=self._ticket_overwrites(guild, user),
                reason=f"{kind.label} ticket opened by {user}",
            )
            await store.attach_channel(ticket.ticket_id, channel.id)
        except BaseException:
            # Cancellation included; an unattached reservation would block the user
            await store.discard(ticket.ticket_id)
            raise

        log.info("Ticket #%s (%s) opened by %s in guild %s", ticket.ticket_id, kind.value, user.id, guild.id)
        return ticket, channel

    async def on_open_button(self, event: ButtonPressed) -> None:
        interaction = event.interaction
        kind = _OPEN_ACTIONS[event.action]
        guild = interaction.guild
        if guild is None:
            await safe_interaction_send(interaction, "Tickets can only be opened inside a server.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            _, channel = await self.open_ticket(guild, interaction.user, kind)
        except TicketAlreadyOpen:
            await interaction.followup.send(ERROR_MESSAGES["ticket_exists"], ephemeral=True)
            return

        embed = safe_embed(
            f"📩 New {kind.label} Ticket",
            f"Hello {interaction.user.mention}, a staff member will assist you shortly.",
            COLORS["success"],
        )
        await channel.send(embed=embed, view=TicketControlView())
        await interaction.followup.send(f"Your ticket has been created: {channel.mention}", ephemeral=True)

    async def report(self, command: PrefixCommand) -> None:
        message = command.message
        guild = message.guild
        if guild is None:
            return

        if message.mentions:
            target = message.mentions[0].mention
        else:
            target = command.args[0] if command.args else ""
        reason = " ".join(command.args[1:])
        if not target or not reason:
            prefix = self.bot.settings.command_prefix  # type: ignore[attr-defined]
            await safe_reply(message, REPORT_USAGE.format(prefix=prefix))
            return

        reports_channel = guild.get_channel(self.bot.settings.reports_channel_id)  # type: ignore[attr-defined]
        if reports_channel is None:
            log.error("Reports channel %s not found", self.bot.settings.reports_channel_id)  # type: ignore[attr-defined]
            await safe_reply(message, ERROR_MESSAGES["reports_channel_missing"])
            return

        author = message.author
        try:
            _, channel = await self.open_ticket(guild, author, TicketKind.REPORT)
        except TicketAlreadyOpen:
            await safe_reply(message, ERROR_MESSAGES["ticket_exists"])
            return

        embed = safe_embed(
            "🚨 Report Filed",
            f"Filed by: <@{author.id}> ({author})\nTarget: {target}\nReason: {reason}",
            COLORS["error"],
        )
        await channel.send(embed=embed, view=TicketControlView())
        await safe_reply(message, f"✅ Your report has been submitted and a ticket opened: {channel.mention}")

        log_embed = safe_embed(
            "🕵️ New Report Filed",
            f"Filed by: <@{author.id}>\nTarget: {target}\nReason: {reason}",
            COLORS["error"],
        )
        try:
            await reports_channel.send(embed=log_embed)
        except discord.HTTPException as e:
            log.error("Failed to log report to channel %s: %s", reports_channel.id, e)

    # ------------------------
    # Closing
    # ------------------------

    async def _ticket_for(self, interaction: discord.Interaction) -> Ticket | None:
        """The ticket bound to the interaction's channel, if the user may manage it."""
        ticket = await self.bot.ticket_store.get_by_channel(interaction.channel_id)  # type: ignore[attr-defined]
        if ticket is None:
            await safe_interaction_send(interaction, ERROR_MESSAGES["not_a_ticket"], ephemeral=True)
            return None
        staff_role_id = self.bot.settings.staff_role_id  # type: ignore[attr-defined]
        if interaction.user.id != ticket.user_id and not is_staff(interaction.user, staff_role_id):
            await safe_interaction_send(
                interaction, "Only the ticket owner or staff can close this ticket.", ephemeral=True
            )
            return None
        return ticket

    async def on_close_button(self, event: ButtonPressed) -> None:
        interaction = event.interaction
        ticket = await self._ticket_for(interaction)
        if ticket is None:
            return
        # A dismissed ephemeral prompt leaves the ticket pending; just prompt again
        if ticket.status is not TicketStatus.PENDING_CLOSE:
            try:
                await self.bot.ticket_store.transition(ticket.ticket_id, TicketEvent.REQUEST_CLOSE)  # type: ignore[attr-defined]
            except InvalidTransition as e:
                await safe_interaction_send(interaction, f"❌ {e}.", ephemeral=True)
                return

        embed = safe_embed("⚠️ Confirm Closure", "Are you sure you want to close this ticket?", COLORS["error"])
        await interaction.response.send_message(embed=embed, view=CloseConfirmView(), ephemeral=True)

    async def on_confirm_close(self, event: ButtonPressed) -> None:
        interaction = event.interaction
        ticket = await self._ticket_for(interaction)
        if ticket is None:
            return
        try:
            next_status(ticket.status, TicketEvent.CONFIRM_CLOSE)
        except InvalidTransition:
            await safe_interaction_send(
                interaction, "This ticket is not waiting for a close confirmation.", ephemeral=True
            )
            return

        await interaction.response.defer()
        try:
            await interaction.channel.delete(reason=f"Ticket closed by {interaction.user}")
        except discord.HTTPException as e:
            log.error("Failed to delete ticket channel %s: %s", interaction.channel_id, e)
            await interaction.followup.send(embed=error_embed("Could not delete this ticket channel."), ephemeral=True)
            return

        store = self.bot.ticket_store  # type: ignore[attr-defined]
        try:
            await store.transition(ticket.ticket_id, TicketEvent.CONFIRM_CLOSE)
        except InvalidTransition:
            # Cancelled concurrently, but the channel is already gone
            await store.force_close(ticket.ticket_id)
        log.info("Ticket #%s closed by %s", ticket.ticket_id, interaction.user.id)

    async def on_cancel_close(self, event: ButtonPressed) -> None:
        interaction = event.interaction
        ticket = await self._ticket_for(interaction)
        if ticket is None:
            return
        try:
            await self.bot.ticket_store.transition(ticket.ticket_id, TicketEvent.CANCEL_CLOSE)  # type: ignore[attr-defined]
        except InvalidTransition as e:
            await safe_interaction_send(interaction, f"❌ {e}.", ephemeral=True)
            return

        await interaction.response.defer()
        try:
            await interaction.delete_original_response()
        except discord.HTTPException as e:
            log.warning("Could not delete close prompt: %s", e)
