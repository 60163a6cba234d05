"""Configuration for querylink."""

from .settings import LinkSettings, get_settings

__all__ = ["LinkSettings", "get_settings"]
