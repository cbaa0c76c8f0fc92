from __future__ import annotations

import logging
import re
from typing import Any

import discord

from .constants import (
    COLORS,
    MAX_EMBED_DESCRIPTION,
    MAX_EMBED_TITLE,
    MAX_MESSAGE_LENGTH,
)

log = logging.getLogger("caughtwiki.utils")

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")


def safe_embed(title: str, description: str, color: int = COLORS["default"]) -> discord.Embed:
    """Create a timestamped embed with safe length limits."""
    if len(title) > MAX_EMBED_TITLE:
        title = title[:MAX_EMBED_TITLE - 1] + "…"
    if len(description) > MAX_EMBED_DESCRIPTION:
        description = description[:MAX_EMBED_DESCRIPTION - 1] + "…"

    return discord.Embed(title=title, description=description, color=color, timestamp=discord.utils.utcnow())


def error_embed(message: str) -> discord.Embed:
    return safe_embed("❌ Error", message, COLORS["error"])


def success_embed(message: str) -> discord.Embed:
    return safe_embed("✅ Done", message, COLORS["success"])


def info_embed(title: str, message: str) -> discord.Embed:
    return safe_embed(title, message, COLORS["info"])


def truncate_text(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 1] + "…"


def parse_user_id(raw: str) -> int | None:
    """Accept ``<@123>``, ``<@!123>`` or a bare snowflake."""
    raw = (raw or "").strip()
    m = _MENTION_RE.match(raw)
    if m:
        return int(m.group(1))
    if raw.isdecimal():
        return int(raw)
    return None


async def safe_reply(message: discord.Message, content: str | None = None, **kwargs: Any) -> discord.Message | None:
    """Reply to a message, logging instead of raising on HTTP errors."""
    try:
        return await message.reply(content=content, **kwargs)
    except discord.HTTPException as e:
        log.error("Failed to reply to message %s: %s", getattr(message, "id", "?"), e)
        return None


async def safe_interaction_send(interaction: discord.Interaction, content: str | None = None, **kwargs: Any) -> bool:
    """Answer an interaction whether or not it has already been responded to."""
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content=content, **kwargs)
        else:
            await interaction.response.send_message(content=content, **kwargs)
        return True
    except discord.HTTPException as e:
        log.error("Failed to answer interaction: %s", e)
        return False
