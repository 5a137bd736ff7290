"""Configuration package."""

from branchboard.config.settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
