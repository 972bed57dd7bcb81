from __future__ import annotations

import asyncio
import logging
import sys
import time

from aiogram import Bot, Dispatcher, Router, __version__ as aiogram_version
from aiogram.client.default import DefaultBotProperties
from aiohttp import web

from quizbot.config import settings
from quizbot.db.session import init_db
from quizbot.errors import ConfigurationError
from quizbot.handlers import get_routers
from quizbot.logging_config import resolve_log_level, setup_logging
from quizbot.middlewares import CallbackDebounceMiddleware
from quizbot.utils.telegram_session import FloodWaitRetrySession
from quizbot.web.form import start_form_server, stop_form_server

startup_log = logging.getLogger("startup")

ALLOWED_UPDATES = ("message", "callback_query")


def _register_callback_middlewares(dp: Dispatcher) -> None:
    debounce = CallbackDebounceMiddleware()
    dp.callback_query.middleware(debounce)
    startup_log.info("S4: callback debounce registered interval=%.1fs", debounce.interval)


def _log_router_overview(dp: Dispatcher, routers: list[Router]) -> None:
    names = [router.name or router.__class__.__name__ for router in routers]
    startup_log.info("S5: routers attached count=%s names=%s", len(names), names)
    startup_log.info("resolve_used_update_types=%s", sorted(dp.resolve_used_update_types()))


async def main() -> None:
    setup_logging(log_dir=settings.LOG_DIR, level=resolve_log_level(settings.LOG_LEVEL))
    settings.require()

    t0 = time.perf_counter()

    def mark(tag: str) -> None:
        startup_log.info("%s (%.1f ms)", tag, (time.perf_counter() - t0) * 1000)

    mark("S1: setup_logging done")
    startup_log.info("aiogram=%s", aiogram_version)

    try:
        revision = await init_db()
    except Exception:
        startup_log.exception("E!: init_db failed")
        revision = None
    mark(f"S2: init_db done revision={revision or 'unknown'}")

    bot = Bot(
        token=settings.BOT_TOKEN,
        session=FloodWaitRetrySession(),
        default=DefaultBotProperties(parse_mode="HTML"),
    )
    dp = Dispatcher()
    mark("S3: bot/dispatcher created")

    _register_callback_middlewares(dp)

    routers = get_routers()
    for router in routers:
        dp.include_router(router)
    _log_router_overview(dp, routers)

    runner: web.AppRunner | None = None
    site: web.BaseSite | None = None
    try:
        runner, site = await start_form_server()
    except OSError:
        startup_log.exception("form server failed to start; closed submissions are unavailable")
    mark("S6: form server ready")

    mark("S7: start_polling enter")
    try:
        await dp.start_polling(bot, allowed_updates=list(ALLOWED_UPDATES))
    except Exception:
        startup_log.exception("E!: start_polling crashed")
        raise
    finally:
        mark("S8: shutdown sequence")
        await stop_form_server(runner, site)
        await bot.session.close()


def run() -> None:
    try:
        asyncio.run(main())
    except ConfigurationError as exc:
        logging.getLogger("startup").critical("configuration error: %s", exc)
        print(f"configuration error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
