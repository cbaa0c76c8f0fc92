from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import MAX_SLASH_CHOICES
from ..overhaul import ApplyInProgress, InteractionProgressReporter, send_safe_followup
from ..router import TemplateRequested
from ..utils import safe_interaction_send

log = logging.getLogger("caughtwiki.templates")

BUSY_MESSAGE = "⏳ A template is already being applied to this server. Wait for it to finish."


def build_template_command(
    names: List[str],
    callback: Callable[[discord.Interaction, str], Awaitable[None]],
) -> app_commands.Command:
    """Build ``/template`` with one choice per loaded template.

    Choices are fixed when the command is built, so the command has to be
    rebuilt (and re-synced) for newly added template files to show up.
    """
    choices = [app_commands.Choice(name=n, value=n) for n in names[:MAX_SLASH_CHOICES]]

    @app_commands.command(name="template", description="Wipe this server's roles and channels and rebuild them from a template.")
    @app_commands.describe(name="Template to apply")
    @app_commands.choices(name=choices)
    @app_commands.checks.has_permissions(administrator=True)
    @app_commands.guild_only()
    async def template(interaction: discord.Interaction, name: str) -> None:
        await callback(interaction, name)

    return template


class TemplatesCog(commands.Cog):
    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]
        self._command: Optional[app_commands.Command] = None

    async def cog_load(self) -> None:
        self.bot.router.template(self.handle_template)  # type: ignore[attr-defined]

        names = self.bot.template_store.names()  # type: ignore[attr-defined]
        if not names:
            log.warning("No templates loaded; /template will not be registered")
            return
        if len(names) > MAX_SLASH_CHOICES:
            log.warning(
                "%d templates loaded but only %d fit in /template; dropping: %s",
                len(names), MAX_SLASH_CHOICES, ", ".join(names[MAX_SLASH_CHOICES:]),
            )

        self._command = build_template_command(names, self._on_command)
        self.bot.tree.add_command(self._command)
        log.info("Registered /template with %d choices", min(len(names), MAX_SLASH_CHOICES))

    async def cog_unload(self) -> None:
        if self._command is not None:
            self.bot.tree.remove_command(self._command.name)
            self._command = None

    async def _on_command(self, interaction: discord.Interaction, name: str) -> None:
        await self.bot.router.dispatch(TemplateRequested(name, interaction))  # type: ignore[attr-defined]

    async def handle_template(self, event: TemplateRequested) -> None:
        interaction = event.interaction
        guild = interaction.guild
        if guild is None:
            await safe_interaction_send(interaction, "This command only works inside a server.", ephemeral=True)
            return

        template = self.bot.template_store.get(event.template_name)  # type: ignore[attr-defined]
        if template is None:
            await safe_interaction_send(interaction, f"❌ Unknown template `{event.template_name}`.", ephemeral=True)
            return

        applier = self.bot.applier  # type: ignore[attr-defined]
        if applier.is_running(guild.id):
            await safe_interaction_send(interaction, BUSY_MESSAGE, ephemeral=True)
            return

        # Ephemeral so the response outlives the invoking channel, which gets deleted
        await interaction.response.defer(ephemeral=True, thinking=True)
        log.info("Applying template %r to guild %s for %s", template.name, guild.id, interaction.user.id)

        reporter = InteractionProgressReporter(interaction, template.name)
        await reporter.init()
        try:
            report = await applier.apply(guild, template, reporter)
        except ApplyInProgress:
            await send_safe_followup(interaction, BUSY_MESSAGE)
            return

        if report.ok:
            log.info("Template %r applied to guild %s", template.name, guild.id)
        else:
            log.warning("Template %r applied to guild %s with %d failures", template.name, guild.id, len(report.failed))
        await send_safe_followup(interaction, report.summary())
