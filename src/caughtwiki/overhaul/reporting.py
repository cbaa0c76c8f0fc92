"""
Safe Report Delivery for Template Runs

Ensures report messages never exceed Discord's 2000 character limit.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import discord

log = logging.getLogger("caughtwiki.overhaul.reporting")


def truncate_message(content: str, max_length: int = 1900) -> str:
    if len(content) <= max_length:
        return content
    return content[:max_length] + "\n\n... (truncated)"


async def send_safe_followup(
    interaction: discord.Interaction,
    content: str,
    ephemeral: bool = True,
    filename: str = "template_report.txt",
) -> Optional[discord.Message]:
    """
    Send a follow-up safely, respecting Discord's 2000 character limit.

    If content is too long, sends a summary and attaches the full content as a file.
    """
    try:
        if len(content) <= 1900:
            return await interaction.followup.send(content, ephemeral=ephemeral, wait=True)

        summary = content[:1900] + "\n\n... (full report attached)"
        file = discord.File(io.BytesIO(content.encode("utf-8")), filename=filename)
        return await interaction.followup.send(summary, file=file, ephemeral=ephemeral, wait=True)
    except discord.NotFound:
        # Webhook or channel is gone, typically because the run deleted it
        log.warning("Interaction target vanished before the report could be sent")
    except discord.HTTPException as e:
        log.error("Failed to send template report: %s", e)
    return None
