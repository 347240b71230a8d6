"""Error taxonomy for the communication manager.

``ValidationError``, ``ProbeError``, ``DeliveryError`` and
``NoLastChannelError`` propagate to whoever initiated the request.
``PersistenceWarning`` is only ever logged.
"""

from __future__ import annotations


class CommMgrError(Exception):
    """Base class for all communication manager errors."""


class ValidationError(CommMgrError):
    """A required field is missing or malformed."""

    def __init__(self, message: str, *, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class TransportError(CommMgrError):
    """A request to a collaborator service failed."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class ProbeError(CommMgrError):
    """A handler probe or AI fallback request failed."""


class DeliveryError(CommMgrError):
    """A reply could not be delivered to its channel."""


class NoLastChannelError(CommMgrError):
    """No last channel has been recorded yet."""

    def __init__(self) -> None:
        super().__init__("No last channel found to reply on!")


class PersistenceWarning(CommMgrError):
    """Best-effort store read or write failed."""
