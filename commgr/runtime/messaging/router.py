"""Dispatch router -- decides who answers each user message.

If the user has been talking to a particular skill, that skill gets the
first chance to continue the conversation.  Otherwise every registered
skill is asked in registration order and the first one to claim the
message becomes the new current handler.  Finally the AI service is
asked.  If nobody answers, the user is told we did not understand.

The router assumes a single owner conversation: there is one current
handler and one last channel, both owned by the router instance.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..config.settings import Settings, cfg
from ..errors import NoLastChannelError, ProbeError, TransportError, ValidationError
from ..registries.handlers import HELP_COMMAND, HandlerRegistration, HandlerRegistry
from ..services.ai_client import AiFallbackClient
from ..services.otel import record_event, router_span, set_span_attribute
from ..state.kv import create_kv_store
from ..state.last_channel import LastChannelStore
from .channels import ChannelAddress, ChannelOutputMap
from .transport import HttpTransport, RequesterFactory

logger = logging.getLogger(__name__)

NOT_UNDERSTOOD = "I'm sorry - I did not understand: {msg}"


class Outcome(enum.Enum):
    EMPTY = "empty"
    HELP = "help"
    STICKY = "sticky"
    HANDLER = "handler"
    AI = "ai"
    NOT_UNDERSTOOD = "not-understood"


@dataclass(frozen=True)
class InboundMessage:
    chan: str | None
    ctx: Any
    msg: str | None = None

    @property
    def address(self) -> ChannelAddress:
        return ChannelAddress(chan=self.chan or "", ctx=self.ctx)


@dataclass(frozen=True)
class DispatchOutcome:
    outcome: Outcome
    handler_key: str | None = None

    @property
    def handled(self) -> bool:
        return self.outcome is not Outcome.NOT_UNDERSTOOD

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "handled": self.handled,
            "handler": self.handler_key,
        }


def validate_address(chan: Any, ctx: Any) -> None:
    if not chan:
        raise ValidationError("Request missing channel!", fields=("chan",))
    if ctx is None or ctx == "":
        raise ValidationError("Request missing context!", fields=("ctx",))


def _is_empty(x: Any) -> bool:
    return x is None or (isinstance(x, (str, list)) and len(x) == 0)


class DispatchRouter:

    def __init__(
        self,
        registry: HandlerRegistry,
        channels: ChannelOutputMap,
        ai: AiFallbackClient,
        last_channel_store: LastChannelStore,
    ) -> None:
        self.registry = registry
        self.channels = channels
        self._ai = ai
        self._last_store = last_channel_store
        self._current: HandlerRegistration | None = None
        self._last: ChannelAddress | None = None
        self._pending_writes: set[asyncio.Task[bool]] = set()

    @classmethod
    def create(
        cls,
        requester_factory: RequesterFactory,
        settings: Settings | None = None,
    ) -> DispatchRouter:
        s = settings or cfg
        return cls(
            registry=HandlerRegistry(requester_factory),
            channels=ChannelOutputMap(requester_factory),
            ai=AiFallbackClient(requester_factory(s.ai_key)),
            last_channel_store=LastChannelStore(create_kv_store(requester_factory, s)),
        )

    @classmethod
    def over_http(cls, transport: HttpTransport, settings: Settings | None = None) -> DispatchRouter:
        return cls.create(transport.requester, settings)

    @property
    def current_handler(self) -> HandlerRegistration | None:
        return self._current

    @property
    def last_request(self) -> ChannelAddress | None:
        return self._last

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Restore the last request channel saved by a previous run."""
        restored = await self._last_store.load()
        if restored is None:
            logger.info("[router.start] no last request channel on record")
            return
        if self._last is None:
            self._last = restored
            logger.info("[router.start] restored last channel chan=%s", restored.chan)

    async def drain(self) -> None:
        """Wait for outstanding persistence writes."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # -- registration ------------------------------------------------------

    def register_handler(
        self,
        key: str | None,
        message_type: str | None,
        help_entries: Sequence[Any] | None,
    ) -> HandlerRegistration:
        return self.registry.register(key, message_type, help_entries)

    # -- inbound -----------------------------------------------------------

    async def handle_incoming(self, message: InboundMessage) -> DispatchOutcome:
        """The owner sent a message: route it and make sure somebody answers."""
        validate_address(message.chan, message.ctx)

        self._remember(message.address)

        if not message.msg:
            return DispatchOutcome(Outcome.EMPTY)

        with router_span("router.dispatch", attributes={"router.chan": message.chan}):
            if message.msg == HELP_COMMAND:
                await self.channels.send_reply(self.registry.help_text(), None, message.address)
                return DispatchOutcome(Outcome.HELP)

            result = await self.route(message)
            set_span_attribute("router.outcome", result.outcome.value)
            if result.handled:
                return result

            await self._not_understood(message)
            return result

    async def handle_info_request(self, message: InboundMessage) -> DispatchOutcome:
        """Someone other than the owner sent a message: answer from the KB only."""
        validate_address(message.chan, message.ctx)

        with router_span("router.info_request", attributes={"router.chan": message.chan}):
            answer = await self._ai.get_kb_response(message.msg or "")
            if answer:
                await self.channels.send_reply(answer, None, message.address)
                return DispatchOutcome(Outcome.AI)

            await self._not_understood(message)
            return DispatchOutcome(Outcome.NOT_UNDERSTOOD)

    async def route(self, message: InboundMessage) -> DispatchOutcome:
        """Sticky handler, then registry scan, then AI fallback."""
        current = self._current
        if current is not None:
            if await self._is_handling(current, message):
                logger.debug("[router.route] sticky handler %s kept the conversation", current.key)
                return DispatchOutcome(Outcome.STICKY, current.key)

        claimed = await self.scan(message)
        if claimed is not None:
            self._current = claimed
            logger.info("[router.route] handler %s claimed the conversation", claimed.key)
            return DispatchOutcome(Outcome.HANDLER, claimed.key)

        answer = await self._ai.get_response(message.msg or "")
        if answer:
            await self.channels.send_reply(answer, None, message.address)
            return DispatchOutcome(Outcome.AI)
        return DispatchOutcome(Outcome.NOT_UNDERSTOOD)

    async def scan(self, message: InboundMessage) -> HandlerRegistration | None:
        """Probe registrations one at a time; the first claim wins."""
        for registration in self.registry:
            try:
                handling = await self._is_handling(registration, message)
            except ProbeError as exc:
                logger.error("[router.scan] %s", exc)
                record_event("probe_error", {"handler": registration.key, "error": str(exc)})
                continue
            if handling:
                return registration
        return None

    async def _is_handling(self, registration: HandlerRegistration, message: InboundMessage) -> bool:
        payload = {
            "type": registration.message_type,
            "chan": message.chan,
            "ctx": message.ctx,
            "msg": message.msg,
        }
        try:
            return bool(await registration.client.send(payload))
        except TransportError as exc:
            raise ProbeError(f"Probe of {registration.key} failed: {exc}") from exc

    # -- outbound ----------------------------------------------------------

    async def reply(self, chan: str | None, ctx: Any, msg: str | None, addl: Any = None) -> bool:
        """Pass a reply straight through to a channel; ``False`` if empty."""
        validate_address(chan, ctx)
        if _is_empty(msg) and _is_empty(addl):
            return False
        await self.channels.send_reply(msg, addl, ChannelAddress(chan=chan or "", ctx=ctx))
        return True

    async def reply_on_last_channel(self, msg: str | None, addl: Any = None) -> ChannelAddress:
        if self._last is None:
            raise NoLastChannelError()
        await self.channels.send_reply(msg, addl, self._last)
        return self._last

    async def _not_understood(self, message: InboundMessage) -> None:
        await self.channels.send_reply(
            NOT_UNDERSTOOD.format(msg=message.msg), None, message.address,
        )

    # -- last channel ------------------------------------------------------

    def _remember(self, address: ChannelAddress) -> None:
        self._last = address
        task = asyncio.create_task(self._last_store.save(address))
        self._pending_writes.add(task)
        task.add_done_callback(self._write_done)

    def _write_done(self, task: asyncio.Task[bool]) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("[router.persist] last channel write failed: %s", exc, exc_info=exc)
