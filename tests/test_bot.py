from __future__ import annotations

import pytest

from caughtwiki.bot import CaughtWikiBot
from caughtwiki.testing.fakes import make_settings


@pytest.mark.asyncio
async def test_bot_owns_its_services(tmp_path) -> None:
    settings = make_settings(
        sqlite_path=str(tmp_path / "db.sqlite3"),
        templates_dir=str(tmp_path / "templates"),
        template_call_delay_ms=250,
        template_concurrency=4,
    )

    bot = CaughtWikiBot(settings)

    assert bot.settings is settings
    assert bot.intents.members and bot.intents.message_content
    assert bot.help_command is None
    assert bot.applier.rate_limiter.delay_seconds == 0.25
    assert bot.ticket_store is not None
    assert bot.router.missing_buttons()  # nothing registered until cogs load


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [b"{", b'{"name": "caf\xe9"}'])
async def test_load_templates_tolerates_broken_files(tmp_path, content) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "bad.json").write_bytes(content)
    bot = CaughtWikiBot(make_settings(templates_dir=str(templates)))

    bot._load_templates()

    assert bot.template_store.names() == []
