"""Last request channel -- where unsolicited replies are sent.

The record is kept in memory for the router and mirrored best-effort into
the key-value store so it survives a restart.
"""

from __future__ import annotations

import json
import logging

from ..errors import PersistenceWarning
from ..messaging.channels import ChannelAddress
from ..services.otel import record_event
from .kv import KeyValueStore

logger = logging.getLogger(__name__)

LAST_REQ_CHANNEL = "LAST_REQ_CHANNEL"


def dump_record(address: ChannelAddress) -> str:
    return json.dumps({"chan": address.chan, "ctx": address.ctx})


def load_record(raw: str | None) -> ChannelAddress | None:
    """Parse a persisted record; ``None`` when absent or malformed."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("[last_channel.load] malformed record %r", raw[:80])
        return None
    if not isinstance(data, dict):
        logger.warning("[last_channel.load] malformed record %r", raw[:80])
        return None
    chan = data.get("chan")
    if not isinstance(chan, str) or not chan or data.get("ctx") in (None, ""):
        logger.warning("[last_channel.load] incomplete record %r", raw[:80])
        return None
    return ChannelAddress(chan=chan, ctx=data["ctx"])


class LastChannelStore:
    """Persists the last request channel under a fixed key."""

    def __init__(self, kv: KeyValueStore, key: str = LAST_REQ_CHANNEL) -> None:
        self._kv = kv
        self._key = key

    async def save(self, address: ChannelAddress) -> bool:
        """Write *address*; failures are logged and reported as ``False``."""
        try:
            await self._kv.put(self._key, dump_record(address))
        except (PersistenceWarning, OSError) as exc:
            logger.warning("[last_channel.save] %s", exc, exc_info=True)
            record_event("persistence_warning", {"op": "put", "error": str(exc)})
            return False
        return True

    async def load(self) -> ChannelAddress | None:
        try:
            raw = await self._kv.get(self._key)
        except (PersistenceWarning, OSError) as exc:
            logger.warning("[last_channel.load] %s", exc, exc_info=True)
            record_event("persistence_warning", {"op": "get", "error": str(exc)})
            return None
        return load_record(raw)
