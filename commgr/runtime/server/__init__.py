"""HTTP surface for inbound control events."""

from .app import create_app, main

__all__ = ["create_app", "main"]
