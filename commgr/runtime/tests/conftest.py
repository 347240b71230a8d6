"""Shared pytest fixtures for commgr.runtime tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from commgr.runtime.errors import TransportError


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("COMMGR_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    return data_dir


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


class FakeRequester:
    """In-memory requester: records payloads and answers via *responder*."""

    def __init__(self, key: str, responder: Callable[[dict[str, Any]], Any] | None = None) -> None:
        self.key = key
        self.sent: list[dict[str, Any]] = []
        self.responder = responder

    async def send(self, payload: dict[str, Any]) -> Any:
        self.sent.append(dict(payload))
        if self.responder is None:
            return None
        return self.responder(payload)


class FakeNetwork:
    """Requester factory that hands out one :class:`FakeRequester` per key."""

    def __init__(self) -> None:
        self.requesters: dict[str, FakeRequester] = {}
        self.created: list[str] = []
        self._responders: dict[str, Callable[[dict[str, Any]], Any]] = {}

    def __call__(self, key: str) -> FakeRequester:
        self.created.append(key)
        requester = FakeRequester(key, self._responders.get(key))
        self.requesters[key] = requester
        return requester

    def respond(self, key: str, responder: Callable[[dict[str, Any]], Any]) -> None:
        self._responders[key] = responder
        if key in self.requesters:
            self.requesters[key].responder = responder

    def fail(self, key: str) -> None:
        def _raise(_payload: dict[str, Any]) -> Any:
            raise TransportError(key, "connection refused")

        self.respond(key, _raise)

    def sent_to(self, key: str) -> list[dict[str, Any]]:
        requester = self.requesters.get(key)
        return requester.sent if requester else []


@pytest.fixture()
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture()
def settings(data_dir: Path):
    from commgr.runtime.config.settings import Settings

    return Settings()


@pytest.fixture()
async def router(network: FakeNetwork, settings):
    from commgr.runtime.messaging.router import DispatchRouter

    r = DispatchRouter.create(network, settings)
    yield r
    await r.drain()
