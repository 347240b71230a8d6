"""Route handlers."""

from .event_routes import EventRoutes

__all__ = ["EventRoutes"]
