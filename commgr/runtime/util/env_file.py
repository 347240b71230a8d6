"""Read-only ``.env`` file lookup for :class:`~commgr.runtime.config.settings.Settings`."""

from __future__ import annotations

from pathlib import Path

_QUOTES = ("'", '"')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value


class EnvFile:
    """``KEY=VALUE`` lines, ``#`` comments, optional ``export`` prefix."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self, key: str) -> str:
        """Return the value for *key*, or ``""`` if absent."""
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        values: dict[str, str] = {}
        for raw in self.path.read_text().splitlines():
            line = raw.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            name, sep, value = line.partition("=")
            if not sep or not name.strip() or name.lstrip().startswith("#"):
                continue
            values[name.strip()] = _unquote(value.strip())
        return values
