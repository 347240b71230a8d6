"""Control event API -- POST /api/events.

Every event carries a ``type`` discriminator and is dispatched to the
router.  Errors map onto status codes: validation and missing last
channel are the caller's problem (400), probe and delivery failures are
upstream problems (502).
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic
from aiohttp import web

from ...errors import (
    CommMgrError,
    DeliveryError,
    NoLastChannelError,
    ProbeError,
    ValidationError,
)
from ...messaging.events import (
    EVENT_TYPES,
    MessageEvent,
    RegisterHandlerEvent,
    ReplyEvent,
    ReplyOnLastChannelEvent,
)
from ...messaging.router import DispatchRouter, InboundMessage

logger = logging.getLogger(__name__)


def error_response(exc: CommMgrError) -> web.Response:
    if isinstance(exc, (ValidationError, NoLastChannelError)):
        status = 400
    elif isinstance(exc, (ProbeError, DeliveryError)):
        status = 502
    else:
        status = 500
    body: dict[str, Any] = {
        "status": "error",
        "error": type(exc).__name__,
        "message": str(exc),
    }
    if isinstance(exc, ValidationError) and exc.fields:
        body["fields"] = list(exc.fields)
    return web.json_response(body, status=status)


class EventRoutes:
    """REST handler for inbound control events."""

    def __init__(self, router: DispatchRouter) -> None:
        self._router = router

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/events", self._event)
        router.add_get("/api/handlers", self._handlers)

    async def _handlers(self, _req: web.Request) -> web.Response:
        registry = self._router.registry
        current = self._router.current_handler
        return web.json_response({
            "handlers": registry.to_list(),
            "help": [h.to_dict() for h in registry.help_index],
            "current": current.key if current else None,
        })

    async def _event(self, req: web.Request) -> web.Response:
        try:
            body = await req.json()
        except ValueError:
            return web.json_response(
                {"status": "error", "message": "Request body must be JSON"}, status=400,
            )
        if not isinstance(body, dict):
            return web.json_response(
                {"status": "error", "message": "Request body must be a JSON object"}, status=400,
            )

        event_type = body.get("type")
        model = EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
        if model is None:
            return web.json_response(
                {"status": "error", "message": f"Unknown event type: {event_type!r}"}, status=400,
            )
        try:
            event = model.model_validate(body)
        except pydantic.ValidationError as exc:
            return web.json_response(
                {"status": "error", "error": "ValidationError", "message": str(exc)}, status=400,
            )

        try:
            result = await self._dispatch(event)
        except CommMgrError as exc:
            logger.warning("[events.%s] %s: %s", event_type, type(exc).__name__, exc)
            return error_response(exc)
        return web.json_response({"status": "ok", **result})

    async def _dispatch(self, event: Any) -> dict[str, Any]:
        router = self._router
        if isinstance(event, RegisterHandlerEvent):
            registration = router.register_handler(event.mskey, event.mstype, event.help_dicts())
            return {"handler": registration.to_dict()}

        if isinstance(event, MessageEvent):
            message = InboundMessage(chan=event.chan, ctx=event.ctx, msg=event.msg)
            if event.type == "not-owner-message":
                outcome = await router.handle_info_request(message)
            else:
                outcome = await router.handle_incoming(message)
            return outcome.to_dict()

        if isinstance(event, ReplyEvent):
            sent = await router.reply(event.chan, event.ctx, event.msg, event.addl)
            return {"sent": sent}

        if isinstance(event, ReplyOnLastChannelEvent):
            address = await router.reply_on_last_channel(event.msg, event.addl)
            return {"sent": True, "chan": address.chan}

        raise ValidationError(f"Unsupported event {type(event).__name__}")
