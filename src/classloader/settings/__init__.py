"""
classloader settings are defined using `BaseSettings` from `pydantic_settings`. `BaseSettings` can load setting values
from system environment variables, a `.env` file and the `[tool.classloader]` table of `pyproject.toml`.

Each group of settings has its own environment variable prefix, e.g. `CLASSLOADER_LOGGING_LEVEL` or
`CLASSLOADER_RESOLVER_LOCK_LOADS`.
"""

from classloader.settings.models import LoggingSettings, ResolverSettings, Settings
from classloader.settings.context import get_current_settings, temporary_settings

__all__ = [
    "LoggingSettings",
    "ResolverSettings",
    "Settings",
    "get_current_settings",
    "temporary_settings",
]
