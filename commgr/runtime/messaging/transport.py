"""Keyed request/response transport to collaborator services.

Every collaborator (skill handler, channel adapter, AI service, key-value
service) is addressed by a key.  The :class:`ServiceDirectory` turns a key
into a URL and an :class:`HttpRequester` POSTs JSON payloads to it.  The
service answers ``{"result": ...}`` or ``{"error": "..."}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

import aiohttp

from ..config.settings import Settings, cfg
from ..errors import TransportError

logger = logging.getLogger(__name__)


class Requester(Protocol):
    key: str

    async def send(self, payload: dict[str, Any]) -> Any: ...


RequesterFactory = Callable[[str], Requester]


class ServiceDirectory:
    """Resolves service keys to base URLs."""

    def __init__(
        self,
        services: dict[str, str] | None = None,
        template: str = "http://{key}",
    ) -> None:
        self._services = dict(services or {})
        self._template = template

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ServiceDirectory:
        s = settings or cfg
        return cls(s.services, s.service_url_template)

    def resolve(self, key: str) -> str:
        if key in self._services:
            return self._services[key]
        if key.startswith(("http://", "https://")):
            return key
        return self._template.format(key=key)


class HttpRequester:
    """Sends JSON requests to one keyed service."""

    def __init__(self, key: str, url: str, transport: HttpTransport) -> None:
        self.key = key
        self.url = url
        self._transport = transport

    def __repr__(self) -> str:
        return f"HttpRequester(key={self.key!r}, url={self.url!r})"

    async def send(self, payload: dict[str, Any]) -> Any:
        try:
            async with self._transport.session.post(self.url, json=payload) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise TransportError(self.key, f"HTTP {resp.status}: {text[:200]}")
            body = json.loads(text) if text.strip() else None
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise TransportError(self.key, f"{type(exc).__name__}: {exc}") from exc

        if not isinstance(body, dict):
            return body
        if body.get("error"):
            raise TransportError(self.key, str(body["error"]))
        return body.get("result")


class HttpTransport:
    """Owns the shared ``aiohttp`` session and builds requesters."""

    def __init__(
        self,
        directory: ServiceDirectory | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self._directory = directory or ServiceDirectory.from_settings()
        self._timeout = timeout if timeout is not None else cfg.request_timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    def requester(self, key: str) -> HttpRequester:
        url = self._directory.resolve(key)
        logger.debug("[transport.requester] key=%s url=%s", key, url)
        return HttpRequester(key, url, self)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
