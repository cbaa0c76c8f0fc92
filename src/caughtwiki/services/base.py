from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, Tuple, TypeVar

import aiosqlite

T = TypeVar("T")


class BaseService(ABC, Generic[T]):
    """SQLite-backed store. Every call opens its own short-lived connection."""

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path
        self._logger = logging.getLogger(f"caughtwiki.{self.__class__.__name__.lower()}")

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await self._create_tables(db)
            await db.commit()

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        ...

    @abstractmethod
    def _from_row(self, row: aiosqlite.Row) -> T:
        ...

    async def _fetch_one(self, query: str, params: tuple = ()) -> Optional[T]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cur:
                row = await cur.fetchone()
        return self._from_row(row) if row is not None else None

    async def _write(self, query: str, params: tuple = ()) -> Tuple[Optional[int], int]:
        """Run one statement and commit. Returns ``(lastrowid, rowcount)``."""
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(query, params)
            await db.commit()
            return cur.lastrowid, cur.rowcount
