"""Client for the AI service used when no skill claims a message."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import ProbeError, TransportError

if TYPE_CHECKING:
    from ..messaging.transport import Requester

logger = logging.getLogger(__name__)

GET_RESPONSE = "get-response"
GET_KB_RESPONSE = "get-kb-response"


class AiFallbackClient:
    """Asks the AI service for a reply to a user message.

    An empty answer means the AI has nothing to say; transport failures are
    raised as :class:`ProbeError`.
    """

    def __init__(self, client: Requester) -> None:
        self._client = client

    async def get_response(self, msg: str) -> str | None:
        return await self._ask(GET_RESPONSE, msg)

    async def get_kb_response(self, msg: str) -> str | None:
        return await self._ask(GET_KB_RESPONSE, msg)

    async def _ask(self, op: str, msg: str) -> str | None:
        try:
            answer = await self._client.send({"type": op, "msg": msg})
        except TransportError as exc:
            logger.error("[ai.%s] request failed: %s", op, exc)
            raise ProbeError(f"AI service {op} failed: {exc}") from exc
        if not answer:
            logger.debug("[ai.%s] no answer for %r", op, msg[:60])
            return None
        return answer if isinstance(answer, str) else str(answer)
