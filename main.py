from __future__ import annotations

import asyncio

import uvloop
from aiohttp import web
from loguru import logger

from santa_exchange.core.config import load_settings
from santa_exchange.core.logging import setup_logging
from santa_exchange.db import SqlStore, create_session_factory, init_engine
from santa_exchange.web import create_app


async def on_startup(app: web.Application) -> None:
    logger.info("exchange service started")


async def on_shutdown(app: web.Application) -> None:
    logger.info("exchange service stopping...")


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)

    engine = init_engine(settings.database_url)
    store = SqlStore(create_session_factory(engine))

    app = create_app(store)
    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)

    logger.info("Listening on {host}:{port}", host=settings.host, port=settings.port)
    web.run_app(app, host=settings.host, port=settings.port, print=None)
    engine.dispose()


if __name__ == "__main__":
    if not getattr(asyncio, "debug", False):
        uvloop.install()

    main()
