from __future__ import annotations

import logging
import time
from typing import Optional

import discord

from ..utils import truncate_text

log = logging.getLogger("caughtwiki.progress")


class ProgressReporter:
    """Receives phase progress from the template applier and logs it."""

    def __init__(self, label: str = "template") -> None:
        self.label = label
        self.start_time = time.monotonic()
        self.current_phase = "Initializing"
        self.current_done = 0
        self.current_total = 0
        self.current_detail = ""
        self.current_errors = 0

    async def update(self, phase: str, done: int, total: int, detail: str = "", *, errors: int = 0) -> None:
        changed = phase != self.current_phase
        self.current_phase = phase
        self.current_done = done
        self.current_total = total
        self.current_detail = detail
        self.current_errors = errors
        if changed or done == total:
            log.info("[%s] %s (%d/%d) %s", self.label, phase, done, total, detail)

    async def finalize(self, ok: bool, summary: str) -> None:
        self.current_phase = "Complete" if ok else "Finished with errors"
        self.current_detail = summary
        self.current_done = self.current_total
        log.info("[%s] %s: %s", self.label, self.current_phase, summary.splitlines()[0] if summary else "")

    def format_message(self) -> str:
        elapsed = int(time.monotonic() - self.start_time)
        content = (
            f"**Template: {self.label}**\n"
            f"Phase: {self.current_phase} ({self.current_done}/{self.current_total})\n"
            f"{self.current_detail}"
        )
        if self.current_errors > 0:
            content += f"\nErrors: {self.current_errors}"
        content += f"\nElapsed: {elapsed // 60:02d}:{elapsed % 60:02d}"
        return truncate_text(content, 1900)


class InteractionProgressReporter(ProgressReporter):
    """Mirrors progress into one DM to the invoker, edited in place.

    Falls back to editing the deferred interaction response when the user
    has DMs closed. Channels are deleted mid-run, so the DM is preferred.
    """

    def __init__(self, interaction: discord.Interaction, label: str, update_interval: float = 2.0) -> None:
        super().__init__(label)
        self.interaction = interaction
        self.user = interaction.user
        self.update_interval = update_interval
        self.status_message: Optional[discord.Message] = None
        self.dm_failed = False
        self._last_push = 0.0
        self._last_phase = ""

    async def init(self) -> None:
        try:
            dm = await self.user.create_dm()
            self.status_message = await dm.send(self.format_message())
        except discord.HTTPException as e:
            log.warning("Cannot DM user %s (%s), falling back to interaction edits", self.user.id, e)
            self.dm_failed = True
            await self._push()
        self._last_push = time.monotonic()

    async def update(self, phase: str, done: int, total: int, detail: str = "", *, errors: int = 0) -> None:
        await super().update(phase, done, total, detail, errors=errors)
        now = time.monotonic()
        if phase != self._last_phase or done == total or now - self._last_push >= self.update_interval:
            await self._push()
            self._last_push = now
            self._last_phase = phase

    async def finalize(self, ok: bool, summary: str) -> None:
        await super().finalize(ok, summary)
        await self._push()

    async def _push(self) -> None:
        content = self.format_message()
        try:
            if self.status_message is not None and not self.dm_failed:
                await self.status_message.edit(content=content)
            else:
                await self.interaction.edit_original_response(content=content)
        except discord.HTTPException as e:
            log.error("Failed to update template progress: %s", e)
