from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

import discord

log = logging.getLogger("caughtwiki.rate_limiter")

T = TypeVar("T")


def _retry_after(e: discord.HTTPException) -> float:
    value = getattr(e, "retry_after", None)
    if value is None:
        response = getattr(e, "response", None)
        headers = getattr(response, "headers", None) or {}
        value = headers.get("Retry-After", 1.0)
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 1.0


class RateLimiter:
    """Spaces out Discord API calls and retries HTTP 429s.

    At most ``concurrency`` calls are in flight; each call holds its slot for
    ``delay_seconds`` after it returns so a burst issued with ``gather`` is
    smeared out over time. Errors other than 429 propagate to the caller.
    """

    def __init__(self, delay_seconds: float = 0.5, concurrency: int = 3, max_retries: int = 3) -> None:
        self.delay_seconds = max(0.0, float(delay_seconds))
        self.max_retries = max(0, int(max_retries))
        self._slots = asyncio.Semaphore(max(1, int(concurrency)))

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async with self._slots:
            attempt = 0
            while True:
                try:
                    result = await func(*args, **kwargs)
                    break
                except discord.HTTPException as e:
                    if e.status != 429 or attempt >= self.max_retries:
                        raise
                    attempt += 1
                    wait = _retry_after(e)
                    log.warning("Rate limited, waiting %.2fs (attempt %d/%d)", wait, attempt, self.max_retries)
                    await asyncio.sleep(wait)
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            return result
