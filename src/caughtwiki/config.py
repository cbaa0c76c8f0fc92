from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    token: str
    # 0 syncs slash commands globally instead of to one guild
    guild_id: int
    auto_role_id: int
    welcome_channel_id: int
    reports_channel_id: int
    staff_role_id: int
    panel_channel_id: int
    ticket_category_name: str
    port: int
    log_level: str
    command_prefix: str = "."
    templates_dir: str = "templates"
    sqlite_path: str = "caughtwiki.sqlite3"
    mute_minutes: int = 10

    # Spacing for the template applier; Discord rate limits guild structure edits hard.
    template_call_delay_ms: int = 500
    template_concurrency: int = 3


def load_settings() -> Settings:
    token = (os.getenv("TOKEN", "").strip() or os.getenv("DISCORD_TOKEN", "").strip())
    if not token:
        raise RuntimeError("TOKEN is required")
    return Settings(
        token=token,
        guild_id=_get_int("GUILD_ID", 0),
        auto_role_id=_get_int("AUTO_ROLE_ID", 0),
        welcome_channel_id=_get_int("WELCOME_CHANNEL_ID", 0),
        reports_channel_id=_get_int("REPORTS_CHANNEL_ID", 0),
        staff_role_id=_get_int("STAFF_ROLE_ID", 0),
        panel_channel_id=_get_int("PANEL_CHANNEL_ID", 0),
        ticket_category_name=_get_str("TICKET_CATEGORY_NAME", "Tickets"),
        port=_get_int("PORT", 1000),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        command_prefix=_get_str("COMMAND_PREFIX", "."),
        templates_dir=_get_str("TEMPLATES_DIR", "templates"),
        sqlite_path=_get_str("SQLITE_PATH", "caughtwiki.sqlite3"),
        mute_minutes=max(1, _get_int("MUTE_MINUTES", 10)),
        template_call_delay_ms=max(0, _get_int("TEMPLATE_CALL_DELAY_MS", 500)),
        template_concurrency=max(1, _get_int("TEMPLATE_CONCURRENCY", 3)),
    )
