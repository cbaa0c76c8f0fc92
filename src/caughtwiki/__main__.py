from __future__ import annotations

import asyncio
import logging
import signal

from dotenv import load_dotenv

from .bot import CaughtWikiBot
from .config import load_settings
from .liveness import start_liveness_server
from .logging_setup import setup_logging

log = logging.getLogger("caughtwiki.main")


async def main_async() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    runner = await start_liveness_server(settings.port)

    bot = CaughtWikiBot(settings)

    # Hosts send SIGTERM on deploy/stop
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows
            pass

    try:
        async with bot:
            bot_task = asyncio.create_task(bot.start(settings.token), name="caughtwiki-bot")
            stop_task = asyncio.create_task(stop_event.wait(), name="caughtwiki-stop")
            done, pending = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            if stop_event.is_set():
                log.info("Shutdown signal received; closing bot...")
                await bot.close()

            for t in pending:
                t.cancel()

            # Surface login/gateway failures instead of exiting quietly
            if bot_task in done and not bot_task.cancelled() and bot_task.exception() is not None:
                raise bot_task.exception()  # type: ignore[misc]
    finally:
        await runner.cleanup()


def main() -> None:
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
