"""External services -- AI fallback and tracing."""

from .ai_client import AiFallbackClient

__all__ = ["AiFallbackClient"]
