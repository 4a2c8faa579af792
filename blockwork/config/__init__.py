"""Configuration."""

from .settings import BlockworkSettings, get_settings

__all__ = ["BlockworkSettings", "get_settings"]
