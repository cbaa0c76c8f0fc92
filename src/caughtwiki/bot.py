from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .overhaul import RateLimiter, TemplateApplier, TemplateError, TemplateStore
from .router import Router
from .services.ticket_store import TicketStore
from .ui.tickets import persistent_views

log = logging.getLogger("caughtwiki.bot")


class _CommandSyncManager:
    def __init__(self, bot: "CaughtWikiBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if self.bot.settings.guild_id:
            await self.sync_guild(self.bot.settings.guild_id)
        else:
            await self.sync_global()

    async def sync_global(self) -> None:
        async with self._lock:
            synced = await self.bot.tree.sync()
            log.info("Commands synced globally (%d)", len(synced))

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            # Global definitions are copied so they show up immediately in the one guild
            self.bot.tree.copy_global_to(guild=guild)
            synced = await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d (%d)", guild_id, len(synced))


class CaughtWikiBot(commands.Bot):
    """Bot context: owns the settings, stores, applier and router."""

    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        log.info("INTENTS: guilds=%s members=%s message_content=%s", intents.guilds, intents.members, intents.message_content)

        # Text commands go through the router, not the commands extension.
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.router = Router()
        self.ticket_store = TicketStore(settings.sqlite_path)
        self.template_store = TemplateStore()
        self.applier = TemplateApplier(
            RateLimiter(
                delay_seconds=settings.template_call_delay_ms / 1000,
                concurrency=settings.template_concurrency,
            )
        )
        self._sync_mgr = _CommandSyncManager(self)

    def _load_templates(self) -> None:
        try:
            self.template_store = TemplateStore.from_directory(self.settings.templates_dir)
        except TemplateError as e:
            log.error("Failed to load templates from %s: %s", self.settings.templates_dir, e)
            return
        log.info("Loaded %d templates: %s", len(self.template_store), ", ".join(self.template_store.names()) or "-")

    async def setup_hook(self) -> None:
        await initialize_database(self.settings.sqlite_path, [self.ticket_store])
        self._load_templates()

        setup_error_handlers(self)

        for view in persistent_views():
            self.add_view(view)

        loaded: list[str] = []
        failed: list[str] = []

        async def _load_cog(import_path: str, class_name: str) -> None:
            try:
                log.info("Loading cog: %s.%s", import_path, class_name)
                mod = __import__(import_path, fromlist=[class_name])
                cls = getattr(mod, class_name)
                await self.add_cog(cls(self))
                loaded.append(f"{import_path}.{class_name}")
            except Exception as e:
                log.exception("Failed to load cog: %s.%s", import_path, class_name)
                failed.append(f"{import_path}.{class_name} ({type(e).__name__})")

        await _load_cog("caughtwiki.cogs.prefix", "PrefixCommandsCog")
        await _load_cog("caughtwiki.cogs.welcome", "WelcomeCog")
        await _load_cog("caughtwiki.cogs.tickets", "TicketsCog")
        await _load_cog("caughtwiki.cogs.moderation", "ModerationCog")
        await _load_cog("caughtwiki.cogs.templates", "TemplatesCog")

        log.info("Startup cog load summary: loaded=%d failed=%d", len(loaded), len(failed))
        for name in failed:
            log.warning("Startup cog failed: %s", name)

        missing = self.router.missing_buttons()
        if missing:
            log.warning("Buttons without a handler: %s", ", ".join(a.value for a in missing))

        await self._sync_mgr.sync_startup()
        log.info("Command sync complete")

    async def on_ready(self) -> None:
        log.info("Logged in as %s (%s)", self.user, getattr(self.user, "id", "?"))

    async def close(self) -> None:
        log.info("Shutting down")
        await super().close()
