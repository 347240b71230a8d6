"""Message handler registry -- skills that can claim user messages.

Anything that can respond to user messages registers itself here with the
key it is reachable on, the event type it expects when probed, and the
help commands it contributes.  Registrations are never removed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import ValidationError

if TYPE_CHECKING:
    from ..messaging.transport import Requester, RequesterFactory

logger = logging.getLogger(__name__)

HELP_PREFIX = "/"
HELP_COMMAND = "/help"


@dataclass(frozen=True)
class HelpEntry:
    cmd: str
    txt: str

    def to_dict(self) -> dict[str, str]:
        return {"cmd": self.cmd, "txt": self.txt}


@dataclass(eq=False)
class HandlerRegistration:
    key: str
    message_type: str
    help_entries: tuple[HelpEntry, ...]
    client: Requester = field(repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "message_type": self.message_type,
            "help": [h.to_dict() for h in self.help_entries],
        }


def parse_help(entries: Sequence[Any] | None) -> tuple[HelpEntry, ...] | None:
    """Return validated help entries, or ``None`` if any entry is malformed."""
    if not entries:
        return None
    parsed: list[HelpEntry] = []
    for raw in entries:
        if isinstance(raw, HelpEntry):
            cmd, txt = raw.cmd, raw.txt
        elif isinstance(raw, dict):
            cmd, txt = raw.get("cmd"), raw.get("txt")
        else:
            return None
        if not isinstance(cmd, str) or not cmd.startswith(HELP_PREFIX):
            return None
        if not isinstance(txt, str) or not txt:
            return None
        parsed.append(HelpEntry(cmd=cmd, txt=txt))
    return tuple(parsed)


class HandlerRegistry:
    """Ordered, append-only set of handler registrations plus help index."""

    def __init__(self, requester_factory: RequesterFactory) -> None:
        self._requester_factory = requester_factory
        self._registrations: list[HandlerRegistration] = []
        self._help: list[HelpEntry] = []

    def __iter__(self) -> Iterator[HandlerRegistration]:
        return iter(list(self._registrations))

    def __len__(self) -> int:
        return len(self._registrations)

    @property
    def help_index(self) -> tuple[HelpEntry, ...]:
        return tuple(self._help)

    def register(
        self,
        key: str | None,
        message_type: str | None,
        help_entries: Sequence[Any] | None,
    ) -> HandlerRegistration:
        if not key or not message_type:
            missing = tuple(
                name for name, value in (("mskey", key), ("mstype", message_type))
                if not value
            )
            raise ValidationError(
                f"mskey({key}) & mstype({message_type}) needed to register msg handler",
                fields=missing,
            )

        entries = parse_help(help_entries)
        if entries is None:
            raise ValidationError(
                f"{key} Help command and text (mshelp) needed to register msg handler",
                fields=("mshelp",),
            )

        registration = HandlerRegistration(
            key=key,
            message_type=message_type,
            help_entries=entries,
            client=self._requester_factory(key),
        )
        self._registrations.append(registration)
        self._help.extend(entries)
        logger.info(
            "[registry.register] key=%s type=%s commands=%s",
            key, message_type, [h.cmd for h in entries],
        )
        return registration

    def help_text(self) -> str:
        txt = f"{HELP_COMMAND}: show this help\n"
        for h in self._help:
            txt += f"{h.cmd}: {h.txt}\n"
        return txt

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._registrations]
