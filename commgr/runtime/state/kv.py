"""Key-value persistence used for router state.

Two backends share the ``get``/``put`` contract:

- :class:`FileKeyValueStore` -- a JSON file in the data dir, for single-host
  setups where no database service runs.
- :class:`RemoteKeyValueStore` -- a keyed database service reached through
  the transport, speaking ``{type: put, key, val}`` and ``{type: get, key}``.

Values are opaque strings; callers serialise.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..config.settings import Settings, cfg
from ..errors import PersistenceWarning, TransportError

if TYPE_CHECKING:
    from ..messaging.transport import Requester, RequesterFactory

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, val: str) -> None: ...


class FileKeyValueStore:
    """Thread-safe JSON-file key-value store."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or cfg.kv_path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            raise PersistenceWarning(f"Failed to read {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceWarning(f"{self._path} does not hold a JSON object")
        return data

    def _put_sync(self, key: str, val: str) -> None:
        with self._lock:
            try:
                data = self._load()
            except PersistenceWarning:
                logger.warning("[kv.put] discarding unreadable %s", self._path, exc_info=True)
                data = {}
            data[key] = val
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp = self._path.with_suffix(self._path.suffix + ".tmp")
                tmp.write_text(json.dumps(data, indent=2) + "\n")
                tmp.replace(self._path)
            except OSError as exc:
                raise PersistenceWarning(f"Failed to write {self._path}: {exc}") from exc

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._load)
        val = data.get(key)
        return val if isinstance(val, str) else None

    async def put(self, key: str, val: str) -> None:
        await asyncio.to_thread(self._put_sync, key, val)


class RemoteKeyValueStore:
    """Key-value store backed by a database service."""

    def __init__(self, client: Requester) -> None:
        self._client = client

    async def get(self, key: str) -> str | None:
        try:
            val = await self._client.send({"type": "get", "key": key})
        except TransportError as exc:
            raise PersistenceWarning(f"get {key} failed: {exc}") from exc
        if val is None:
            return None
        return val if isinstance(val, str) else json.dumps(val)

    async def put(self, key: str, val: str) -> None:
        try:
            await self._client.send({"type": "put", "key": key, "val": val})
        except TransportError as exc:
            raise PersistenceWarning(f"put {key} failed: {exc}") from exc


def create_kv_store(
    requester_factory: RequesterFactory,
    settings: Settings | None = None,
) -> KeyValueStore:
    s = settings or cfg
    if s.uses_local_db:
        logger.info("[kv.create] using local store at %s", s.kv_path)
        return FileKeyValueStore(s.kv_path)
    logger.info("[kv.create] using database service key=%s", s.db_key)
    return RemoteKeyValueStore(requester_factory(s.db_key))
