from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import aiosqlite

from .base import BaseService


class TicketKind(str, Enum):
    SUPPORT = "support"
    APPLY = "apply"
    REPORT = "report"
    APPEAL = "appeal"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TicketStatus(str, Enum):
    OPEN = "open"
    PENDING_CLOSE = "pending_close"
    CLOSED = "closed"


class TicketEvent(Enum):
    REQUEST_CLOSE = "request_close"
    CONFIRM_CLOSE = "confirm_close"
    CANCEL_CLOSE = "cancel_close"


class InvalidTransition(Exception):
    def __init__(self, status: TicketStatus, event: TicketEvent) -> None:
        super().__init__(f"cannot {event.value} a ticket that is {status.value}")
        self.status = status
        self.event = event


# Re-requesting close while a prompt is pending just shows the prompt again.
_TRANSITIONS: dict[tuple[TicketStatus, TicketEvent], TicketStatus] = {
    (TicketStatus.OPEN, TicketEvent.REQUEST_CLOSE): TicketStatus.PENDING_CLOSE,
    (TicketStatus.PENDING_CLOSE, TicketEvent.REQUEST_CLOSE): TicketStatus.PENDING_CLOSE,
    (TicketStatus.PENDING_CLOSE, TicketEvent.CONFIRM_CLOSE): TicketStatus.CLOSED,
    (TicketStatus.PENDING_CLOSE, TicketEvent.CANCEL_CLOSE): TicketStatus.OPEN,
}


def next_status(status: TicketStatus, event: TicketEvent) -> TicketStatus:
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(status, event) from None


@dataclass(frozen=True)
class Ticket:
    ticket_id: int
    guild_id: int
    user_id: int
    channel_id: int | None
    kind: TicketKind
    status: TicketStatus
    opened_at: int
    closed_at: int | None

    @property
    def active(self) -> bool:
        return self.status is not TicketStatus.CLOSED


class TicketAlreadyOpen(Exception):
    def __init__(self, ticket: Ticket) -> None:
        super().__init__(f"user {ticket.user_id} already has ticket #{ticket.ticket_id} in guild {ticket.guild_id}")
        self.ticket = ticket


class TicketStore(BaseService[Ticket]):
    """One active ticket per (guild, user), enforced by a partial unique index.

    A ticket is reserved before its channel exists so that two triggers
    racing for the same user cannot both create a channel.
    """

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS tickets (
                ticket_id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                channel_id INTEGER NULL,
                kind TEXT NOT NULL,
                status TEXT NOT NULL,
                opened_at INTEGER NOT NULL,
                closed_at INTEGER NULL
            )
            """
        )
        await db.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_tickets_active ON tickets (guild_id, user_id) WHERE status != 'closed'"
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_tickets_channel ON tickets (channel_id)")

    def _from_row(self, row: aiosqlite.Row) -> Ticket:
        return Ticket(
            ticket_id=int(row["ticket_id"]),
            guild_id=int(row["guild_id"]),
            user_id=int(row["user_id"]),
            channel_id=int(row["channel_id"]) if row["channel_id"] is not None else None,
            kind=TicketKind(row["kind"]),
            status=TicketStatus(row["status"]),
            opened_at=int(row["opened_at"]),
            closed_at=int(row["closed_at"]) if row["closed_at"] is not None else None,
        )

    async def get(self, ticket_id: int) -> Optional[Ticket]:
        return await self._fetch_one("SELECT * FROM tickets WHERE ticket_id = ?", (int(ticket_id),))

    async def get_active(self, guild_id: int, user_id: int) -> Optional[Ticket]:
        return await self._fetch_one(
            "SELECT * FROM tickets WHERE guild_id = ? AND user_id = ? AND status != 'closed'",
            (int(guild_id), int(user_id)),
        )

    async def get_by_channel(self, channel_id: int) -> Optional[Ticket]:
        return await self._fetch_one(
            "SELECT * FROM tickets WHERE channel_id = ? AND status != 'closed'",
            (int(channel_id),),
        )

    async def reserve(self, guild_id: int, user_id: int, kind: TicketKind, now: int | None = None) -> Ticket:
        opened_at = int(now if now is not None else time.time())
        try:
            ticket_id, _ = await self._write(
                "INSERT INTO tickets (guild_id, user_id, channel_id, kind, status, opened_at) VALUES (?, ?, NULL, ?, ?, ?)",
                (int(guild_id), int(user_id), kind.value, TicketStatus.OPEN.value, opened_at),
            )
        except aiosqlite.IntegrityError:
            existing = await self.get_active(guild_id, user_id)
            if existing is None:
                raise
            raise TicketAlreadyOpen(existing) from None

        self._logger.debug("Reserved ticket #%s for user %s in guild %s", ticket_id, user_id, guild_id)
        return Ticket(int(ticket_id), int(guild_id), int(user_id), None, kind, TicketStatus.OPEN, opened_at, None)

    async def attach_channel(self, ticket_id: int, channel_id: int) -> None:
        await self._write("UPDATE tickets SET channel_id = ? WHERE ticket_id = ?", (int(channel_id), int(ticket_id)))

    async def discard(self, ticket_id: int) -> None:
        """Drop a reservation whose channel could not be created."""
        await self._write("DELETE FROM tickets WHERE ticket_id = ? AND channel_id IS NULL", (int(ticket_id),))

    async def force_close(self, ticket_id: int, now: int | None = None) -> None:
        """Close a ticket whose channel disappeared outside the bot."""
        await self._write(
            "UPDATE tickets SET status = ?, closed_at = ? WHERE ticket_id = ? AND status != 'closed'",
            (TicketStatus.CLOSED.value, int(now if now is not None else time.time()), int(ticket_id)),
        )

    async def transition(self, ticket_id: int, event: TicketEvent, now: int | None = None) -> Ticket:
        ticket = await self.get(ticket_id)
        if ticket is None:
            raise KeyError(ticket_id)
        new_status = next_status(ticket.status, event)
        closed_at = int(now if now is not None else time.time()) if new_status is TicketStatus.CLOSED else None

        # Compare-and-set on the old status so two clicks cannot both confirm.
        _, changed = await self._write(
            "UPDATE tickets SET status = ?, closed_at = ? WHERE ticket_id = ? AND status = ?",
            (new_status.value, closed_at, int(ticket_id), ticket.status.value),
        )
        if changed == 0:
            current = await self.get(ticket_id)
            raise InvalidTransition(current.status if current else ticket.status, event)

        return Ticket(
            ticket.ticket_id,
            ticket.guild_id,
            ticket.user_id,
            ticket.channel_id,
            ticket.kind,
            new_status,
            ticket.opened_at,
            closed_at,
        )
