from __future__ import annotations

import logging

from aiohttp import web

log = logging.getLogger("caughtwiki.liveness")


async def alive(_: web.Request) -> web.Response:
    return web.Response(text="alive")


def create_app() -> web.Application:
    """Single-route app the hosting platform polls to keep the process up."""
    app = web.Application()
    app.router.add_get("/", alive)
    return app


async def start_liveness_server(port: int, host: str = "0.0.0.0") -> web.AppRunner:
    runner = web.AppRunner(create_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("✅ Liveness server listening on %s:%s", host, port)
    return runner
