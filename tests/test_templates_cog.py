from __future__ import annotations

import discord
import pytest
import pytest_asyncio

from caughtwiki.cogs.templates import BUSY_MESSAGE, TemplatesCog, build_template_command
from caughtwiki.constants import MAX_SLASH_CHOICES
from caughtwiki.overhaul import TemplateStore, parse_template
from caughtwiki.router import TemplateRequested
from caughtwiki.testing.fakes import FakeBot, FakeGuild, FakeInteraction

COMMUNITY = parse_template(
    {
        "name": "community",
        "roles": [{"name": "Staff", "permissions": 8}],
        "categories": [{"name": "Info"}],
        "channels": [{"name": "rules", "category": "Info"}],
    }
)


@pytest_asyncio.fixture
async def cog(bot: FakeBot) -> TemplatesCog:
    bot.template_store = TemplateStore({"community": COMMUNITY})
    cog = TemplatesCog(bot)
    await cog.cog_load()
    return cog


def _admin(guild: FakeGuild):
    return guild.add_member("admin", permissions=discord.Permissions(administrator=True))


@pytest.mark.asyncio
async def test_cog_registers_template_command_with_choices(cog, bot: FakeBot) -> None:
    command = bot.tree.commands["template"]
    [param] = command.parameters
    assert param.name == "name"
    assert [c.value for c in param.choices] == ["community"]
    assert command.guild_only is True

    await cog.cog_unload()
    assert "template" not in bot.tree.commands


@pytest.mark.asyncio
async def test_no_templates_means_no_command(bot: FakeBot) -> None:
    cog = TemplatesCog(bot)
    await cog.cog_load()
    assert bot.tree.commands == {}


def test_choices_are_capped() -> None:
    async def callback(interaction, name) -> None:
        pass

    names = [f"t{i:02d}" for i in range(MAX_SLASH_CHOICES + 5)]
    command = build_template_command(names, callback)
    assert len(command.parameters[0].choices) == MAX_SLASH_CHOICES


@pytest.mark.asyncio
async def test_template_request_rebuilds_guild_and_reports(cog, bot: FakeBot, guild: FakeGuild) -> None:
    guild.add_channel("old-chat")
    admin = _admin(guild)
    interaction = FakeInteraction(admin, guild=guild, channel=guild.channels[0], client=bot)

    await bot.router.dispatch(TemplateRequested("community", interaction))

    assert interaction.response.deferred == {"ephemeral": True, "thinking": True}
    assert sorted(c.name for c in guild.channels) == ["Info", "rules"]
    assert interaction.followup.sent[-1]["content"].startswith("Applied template 'community'")
    # progress went to the invoker's DMs
    assert admin.dm.messages and admin.dm.messages[0].edits


@pytest.mark.asyncio
async def test_unknown_template_is_rejected(cog, bot: FakeBot, guild: FakeGuild) -> None:
    interaction = FakeInteraction(_admin(guild), guild=guild, client=bot)

    await bot.router.dispatch(TemplateRequested("missing", interaction))

    assert "Unknown template" in interaction.last_text()
    assert guild.calls == []


@pytest.mark.asyncio
async def test_busy_guild_is_rejected(cog, bot: FakeBot, guild: FakeGuild, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(bot.applier, "is_running", lambda guild_id: guild_id == guild.id)
    interaction = FakeInteraction(_admin(guild), guild=guild, client=bot)

    await bot.router.dispatch(TemplateRequested("community", interaction))

    assert interaction.last_text() == BUSY_MESSAGE
    assert guild.calls == []
    assert interaction.response.deferred is None
