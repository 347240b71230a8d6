"""commgr runtime -- dispatch router, channels, and state."""

__version__ = "0.4.0"
