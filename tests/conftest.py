from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from caughtwiki.services.ticket_store import TicketStore
from caughtwiki.testing.fakes import FakeBot, FakeGuild, make_settings


@pytest.fixture
def guild() -> FakeGuild:
    return FakeGuild()


@pytest_asyncio.fixture
async def ticket_store(tmp_path: Path) -> TicketStore:
    store = TicketStore(str(tmp_path / "tickets.sqlite3"))
    await store.init()
    return store


@pytest.fixture
def bot(ticket_store: TicketStore) -> FakeBot:
    return FakeBot(make_settings(), ticket_store=ticket_store)
