"""JSON endpoint accepting one-shot closed-form submissions."""

from __future__ import annotations

import errno
import json
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.config import settings
from quizbot.db.session import session_scope
from quizbot.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from quizbot.quiz import closed

log = logging.getLogger("form")

ScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
SCOPE_KEY: web.AppKey[ScopeFactory] = web.AppKey("session_scope")


def _error(status: int, reason: str, detail: str | None = None) -> web.Response:
    body: dict[str, object] = {"ok": False, "reason": reason}
    if detail:
        body["detail"] = detail
    return web.json_response(body, status=status)


def _respondent_id(data: dict) -> int:
    raw = data.get("respondentId")
    if isinstance(raw, bool):
        raise ValidationError("respondentId must be an integer")
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError("respondentId must be an integer") from None


async def handle_ping(request: web.Request) -> web.Response:
    return web.json_response({"ok": True})


async def handle_submit(request: web.Request) -> web.Response:
    raw = await request.read()
    try:
        data = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, ValueError):
        return _error(400, "invalid_json")
    if not isinstance(data, dict):
        return _error(400, "invalid_payload", "body must be a JSON object")

    try:
        respondent_id = _respondent_id(data)
    except ValidationError as exc:
        return _error(400, "invalid_payload", str(exc))

    scope = request.app[SCOPE_KEY]
    try:
        async with scope() as session:
            summary = await closed.submit(session, respondent_id, data.get("answers"))
    except ValidationError as exc:
        return _error(400, "invalid_payload", str(exc))
    except NotFoundError as exc:
        return _error(404, "unknown_respondent", str(exc))
    except DuplicateSubmissionError as exc:
        return _error(409, "already_submitted", str(exc))

    return web.json_response(summary.as_payload())


def build_form_app(scope_factory: ScopeFactory | None = None, *, path: str | None = None) -> web.Application:
    app = web.Application()
    app[SCOPE_KEY] = scope_factory or session_scope
    app.router.add_get("/ping", handle_ping)
    app.router.add_post(path or settings.FORM_PATH, handle_submit)
    return app


async def start_form_server(app: web.Application | None = None) -> tuple[web.AppRunner, web.BaseSite]:
    runner = web.AppRunner(app or build_form_app())
    await runner.setup()
    host = settings.SERVICE_HOST
    port = settings.FORM_PORT

    try:
        site = web.TCPSite(runner, host=host, port=port)
        await site.start()
    except OSError as exc:
        if getattr(exc, "errno", None) in (errno.EADDRINUSE, 10048) and port != 0:
            log.warning("port %s busy, use ephemeral 0", port)
            site = web.TCPSite(runner, host=host, port=0)
            await site.start()
        else:
            await runner.cleanup()
            raise

    server = getattr(site, "_server", None)
    sockets = getattr(server, "sockets", None)
    if sockets:
        bound_host, bound_port = next(iter(sockets)).getsockname()[:2]
        log.info("form server at http://%s:%s%s", bound_host, bound_port, settings.FORM_PATH)
    return runner, site


async def stop_form_server(runner: web.AppRunner | None, site: web.BaseSite | None) -> None:
    if site is not None:
        await site.stop()
    if runner is not None:
        await runner.cleanup()


__all__ = ["SCOPE_KEY", "build_form_app", "handle_submit", "start_form_server", "stop_form_server"]
