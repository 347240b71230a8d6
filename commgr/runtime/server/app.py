"""Communication manager server -- app factory and entry point."""

from __future__ import annotations

import logging

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from .. import __version__
from ..config.settings import Settings, cfg
from ..messaging.router import DispatchRouter
from ..messaging.transport import HttpTransport, ServiceDirectory
from ..services.otel import configure_otel, shutdown_otel
from .routes.event_routes import EventRoutes

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})

ROUTER_KEY = web.AppKey("router", DispatchRouter)
TRANSPORT_KEY = web.AppKey("transport", HttpTransport)


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-check log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


async def _health(_req: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


async def _on_startup(app: web.Application) -> None:
    router = app[ROUTER_KEY]
    try:
        await router.start()
    except Exception:
        logger.warning("[startup] could not restore last request channel", exc_info=True)
    logger.info(
        "[startup] commgr %s ready (handlers=%d, last_channel=%s)",
        __version__,
        len(router.registry),
        router.last_request.chan if router.last_request else None,
    )


async def _on_cleanup(app: web.Application) -> None:
    await app[ROUTER_KEY].drain()
    if TRANSPORT_KEY in app:
        await app[TRANSPORT_KEY].close()
    shutdown_otel()


def create_app(
    router: DispatchRouter | None = None,
    *,
    settings: Settings | None = None,
) -> web.Application:
    """Build the aiohttp application.

    When *router* is omitted an HTTP transport is created from *settings*
    and owned by the application (closed on cleanup).
    """
    s = settings or cfg
    app = web.Application()

    if s.otel_enabled:
        configure_otel()

    if router is None:
        transport = HttpTransport(ServiceDirectory.from_settings(s), timeout=s.request_timeout)
        router = DispatchRouter.over_http(transport, s)
        app[TRANSPORT_KEY] = transport
    app[ROUTER_KEY] = router

    app.router.add_get("/health", _health)
    EventRoutes(router).register(app.router)

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


def main(settings: Settings | None = None) -> None:
    s = settings or cfg
    s.ensure_dirs()
    app = create_app(settings=s)
    logger.info("Starting commgr on %s:%d", s.host, s.port)
    web.run_app(app, host=s.host, port=s.port, access_log_class=QuietAccessLogger)
