"""Registries -- message handlers and their help commands."""

from .handlers import HELP_COMMAND, HandlerRegistration, HandlerRegistry, HelpEntry

__all__ = ["HELP_COMMAND", "HandlerRegistration", "HandlerRegistry", "HelpEntry"]
