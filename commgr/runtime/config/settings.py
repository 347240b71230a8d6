"""Application settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile

LOCAL_DB_KEY = "local"


def _parse_services(raw: str) -> dict[str, str]:
    services: dict[str, str] = {}
    for item in raw.split(","):
        key, sep, url = item.partition("=")
        if sep and key.strip() and url.strip():
            services[key.strip()] = url.strip()
    return services


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "COMMGR_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.host: str = e("COMMGR_HOST") or "0.0.0.0"
        self.port: int = int(e("COMMGR_PORT") or "8191")

        self.ai_key: str = e("COMMGR_AI_KEY") or "everlife-ai-svc"
        self.db_key: str = e("COMMGR_DB_KEY") or LOCAL_DB_KEY

        self.services: dict[str, str] = _parse_services(e("COMMGR_SERVICES"))
        self.service_url_template: str = (
            e("COMMGR_SERVICE_URL_TEMPLATE") or "http://{key}"
        )
        self.request_timeout: float = float(e("COMMGR_REQUEST_TIMEOUT") or "30")

        self.otel_enabled: bool = (
            e("COMMGR_OTEL_ENABLED").lower() in ("1", "true", "yes")
            if e("COMMGR_OTEL_ENABLED") else False
        )

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".commgr")))

    @property
    def kv_path(self) -> Path:
        return self.data_dir / "kv.json"

    @property
    def uses_local_db(self) -> bool:
        return self.db_key == LOCAL_DB_KEY

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


cfg = Settings()
