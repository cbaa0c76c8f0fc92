from __future__ import annotations

import pytest

from caughtwiki.services.ticket_store import (
    InvalidTransition,
    TicketAlreadyOpen,
    TicketEvent,
    TicketKind,
    TicketStatus,
    TicketStore,
    next_status,
)

GUILD = 1
USER = 2


@pytest.mark.parametrize(
    ("status", "event", "expected"),
    [
        (TicketStatus.OPEN, TicketEvent.REQUEST_CLOSE, TicketStatus.PENDING_CLOSE),
        (TicketStatus.PENDING_CLOSE, TicketEvent.REQUEST_CLOSE, TicketStatus.PENDING_CLOSE),
        (TicketStatus.PENDING_CLOSE, TicketEvent.CONFIRM_CLOSE, TicketStatus.CLOSED),
        (TicketStatus.PENDING_CLOSE, TicketEvent.CANCEL_CLOSE, TicketStatus.OPEN),
    ],
)
def test_allowed_transitions(status, event, expected) -> None:
    assert next_status(status, event) is expected


@pytest.mark.parametrize(
    ("status", "event"),
    [
        (TicketStatus.OPEN, TicketEvent.CONFIRM_CLOSE),
        (TicketStatus.OPEN, TicketEvent.CANCEL_CLOSE),
        (TicketStatus.CLOSED, TicketEvent.REQUEST_CLOSE),
        (TicketStatus.CLOSED, TicketEvent.CANCEL_CLOSE),
    ],
)
def test_rejected_transitions(status, event) -> None:
    with pytest.raises(InvalidTransition):
        next_status(status, event)


@pytest.mark.asyncio
async def test_reserve_then_attach(ticket_store: TicketStore) -> None:
    ticket = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT, now=100)
    assert ticket.status is TicketStatus.OPEN
    assert ticket.channel_id is None

    await ticket_store.attach_channel(ticket.ticket_id, 555)

    by_channel = await ticket_store.get_by_channel(555)
    assert by_channel is not None
    assert by_channel.ticket_id == ticket.ticket_id
    assert by_channel.kind is TicketKind.SUPPORT
    assert by_channel.opened_at == 100
    assert (await ticket_store.get_active(GUILD, USER)) == by_channel


@pytest.mark.asyncio
async def test_only_one_active_ticket_per_user_per_guild(ticket_store: TicketStore) -> None:
    first = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)

    with pytest.raises(TicketAlreadyOpen) as exc:
        await ticket_store.reserve(GUILD, USER, TicketKind.REPORT)
    assert exc.value.ticket.ticket_id == first.ticket_id

    # other guilds and other users are independent
    await ticket_store.reserve(GUILD + 1, USER, TicketKind.SUPPORT)
    await ticket_store.reserve(GUILD, USER + 1, TicketKind.SUPPORT)


@pytest.mark.asyncio
async def test_closing_frees_the_slot(ticket_store: TicketStore) -> None:
    ticket = await ticket_store.reserve(GUILD, USER, TicketKind.APPEAL)
    await ticket_store.attach_channel(ticket.ticket_id, 9)

    pending = await ticket_store.transition(ticket.ticket_id, TicketEvent.REQUEST_CLOSE)
    assert pending.status is TicketStatus.PENDING_CLOSE
    closed = await ticket_store.transition(ticket.ticket_id, TicketEvent.CONFIRM_CLOSE, now=200)
    assert closed.status is TicketStatus.CLOSED
    assert closed.closed_at == 200

    assert await ticket_store.get_active(GUILD, USER) is None
    assert await ticket_store.get_by_channel(9) is None
    again = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)
    assert again.ticket_id != ticket.ticket_id


@pytest.mark.asyncio
async def test_cancel_returns_to_open(ticket_store: TicketStore) -> None:
    ticket = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)
    await ticket_store.transition(ticket.ticket_id, TicketEvent.REQUEST_CLOSE)

    reopened = await ticket_store.transition(ticket.ticket_id, TicketEvent.CANCEL_CLOSE)

    assert reopened.status is TicketStatus.OPEN
    assert (await ticket_store.get(ticket.ticket_id)).status is TicketStatus.OPEN


@pytest.mark.asyncio
async def test_invalid_transition_leaves_record_untouched(ticket_store: TicketStore) -> None:
    ticket = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)

    with pytest.raises(InvalidTransition):
        await ticket_store.transition(ticket.ticket_id, TicketEvent.CONFIRM_CLOSE)
    assert (await ticket_store.get(ticket.ticket_id)).status is TicketStatus.OPEN


@pytest.mark.asyncio
async def test_transition_unknown_ticket(ticket_store: TicketStore) -> None:
    with pytest.raises(KeyError):
        await ticket_store.transition(404, TicketEvent.REQUEST_CLOSE)


@pytest.mark.asyncio
async def test_discard_only_drops_unattached_reservations(ticket_store: TicketStore) -> None:
    reserved = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)
    await ticket_store.discard(reserved.ticket_id)
    assert await ticket_store.get(reserved.ticket_id) is None

    attached = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)
    await ticket_store.attach_channel(attached.ticket_id, 77)
    await ticket_store.discard(attached.ticket_id)
    assert await ticket_store.get(attached.ticket_id) is not None


@pytest.mark.asyncio
async def test_force_close(ticket_store: TicketStore) -> None:
    ticket = await ticket_store.reserve(GUILD, USER, TicketKind.SUPPORT)
    await ticket_store.force_close(ticket.ticket_id, now=5)

    closed = await ticket_store.get(ticket.ticket_id)
    assert closed.status is TicketStatus.CLOSED
    assert closed.closed_at == 5
    assert not closed.active
