from __future__ import annotations

import logging

import discord


def setup_logging(level: str) -> None:
    """Install discord.py's handler/formatter on the root logger at ``level``."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    discord.utils.setup_logging(level=numeric, root=True)

    # The gateway logs every heartbeat/resume at INFO; keep that out of the bot's own output.
    logging.getLogger("discord.gateway").setLevel(max(numeric, logging.WARNING))
    logging.getLogger("aiohttp.access").setLevel(max(numeric, logging.WARNING))
