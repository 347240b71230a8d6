"""Shared utilities."""

from .env_file import EnvFile

__all__ = ["EnvFile"]
