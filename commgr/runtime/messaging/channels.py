"""Channel output map -- outbound connections back to chat channels."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import DeliveryError, TransportError
from .transport import Requester, RequesterFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelAddress:
    """Where a reply goes: the channel key and the channel's own context."""

    chan: str
    ctx: Any


class ChannelOutputMap:
    """Lazily built channel id -> requester cache.

    Channel ids are few and live for the whole process, so entries are
    never evicted.
    """

    def __init__(self, requester_factory: RequesterFactory) -> None:
        self._requester_factory = requester_factory
        self._channels: dict[str, Requester] = {}

    def __contains__(self, chan: str) -> bool:
        return chan in self._channels

    @property
    def channels(self) -> set[str]:
        return set(self._channels)

    def resolve(self, chan: str) -> Requester:
        requester = self._channels.get(chan)
        if requester is None:
            requester = self._requester_factory(chan)
            self._channels[chan] = requester
            logger.debug("[channels.resolve] new connection for chan=%s", chan)
        return requester

    async def send_reply(self, text: str | None, extra: Any, to: ChannelAddress) -> None:
        """Send a reply back on the requestor's channel."""
        channel = self.resolve(to.chan)
        try:
            await channel.send({
                "type": "reply",
                "ctx": to.ctx,
                "msg": text,
                "addl": extra,
            })
        except TransportError as exc:
            logger.error("[channels.send] delivery to chan=%s failed: %s", to.chan, exc)
            raise DeliveryError(f"Failed to deliver reply on {to.chan}: {exc}") from exc
