from __future__ import annotations

from typing import Final

# Discord limits
MAX_MESSAGE_LENGTH: Final[int] = 2000
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
MAX_FIELD_VALUE: Final[int] = 1024
MAX_SLASH_CHOICES: Final[int] = 25
PURGE_MIN: Final[int] = 1
PURGE_MAX: Final[int] = 100

# Colors (hex values)
COLORS = {
    "default": 0x5865F2,
    "success": 0x2ECC71,
    "warning": 0xF1C40F,
    "error": 0xE74C3C,
    "info": 0x3498DB,
}

# Ticket panel
TICKET_PANEL_TITLE: Final[str] = "🎫 Open a Ticket"
TICKET_PANEL_SCAN_LIMIT: Final[int] = 10
TICKET_CHANNEL_PREFIX: Final[str] = "ticket-"
TICKET_RESERVATION_GRACE_SECONDS: Final[int] = 60

SERVER_DISPLAY_NAME: Final[str] = "CaughtWiki | Exposing Esports"

ERROR_MESSAGES = {
    "missing_permissions": "You don't have permission to use this command.",
    "bot_missing_permissions": "I don't have permission to do that.",
    "generic": "Something went wrong running that command.",
    "ticket_exists": "You already have an open ticket!",
    "not_a_ticket": "This channel is not an open ticket.",
    "reports_channel_missing": "Report channel not found.",
}
