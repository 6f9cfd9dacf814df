from pathlib import Path
from typing import Any, ClassVar, Literal, Mapping, Optional

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict
from typing_extensions import Self

from classloader.settings.base import ClassLoaderBaseSettings, _build_settings_config

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(ClassLoaderBaseSettings):
    """
    Settings for controlling logging behavior
    """

    model_config: ClassVar[SettingsConfigDict] = _build_settings_config(("logging",))

    level: LogLevel = Field(
        default="WARNING",
        description="The default logging level for classloader loggers.",
    )

    settings_path: Optional[Path] = Field(
        default=None,
        description="A path to a logging configuration file. Defaults to the packaged `logging.yml`.",
    )

    @field_validator("level", mode="before")
    @classmethod
    def set_level_to_upper(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value


class ResolverSettings(ClassLoaderBaseSettings):
    """
    Settings for controlling how intercepted calls are resolved
    """

    model_config: ClassVar[SettingsConfigDict] = _build_settings_config(("resolver",))

    lock_loads: bool = Field(
        default=True,
        description=(
            "Serialize concurrent first calls on the same type with a per-type lock. "
            "If disabled, only the import system's own locking applies."
        ),
    )

    stack_limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Keep only this many of the innermost frames in diagnostics.",
    )


class Settings(ClassLoaderBaseSettings):
    """
    Settings for classloader using Pydantic settings.

    See https://docs.pydantic.dev/latest/concepts/pydantic_settings
    """

    model_config: ClassVar[SettingsConfigDict] = _build_settings_config()

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Settings for controlling logging behavior",
    )

    resolver: ResolverSettings = Field(
        default_factory=ResolverSettings,
        description="Settings for controlling how intercepted calls are resolved",
    )

    def copy_with_update(self, updates: Optional[Mapping[str, Any]] = None) -> Self:
        """
        Create a new settings object with the given updates applied.

        Updates are keyed by dotted accessor, e.g. `"resolver.lock_loads"`.
        """
        new_values = self.model_dump()
        for accessor, value in (updates or {}).items():
            *parents, name = accessor.split(".")
            current = new_values
            for parent in parents:
                current = current.setdefault(parent, {})
            current[name] = value
        return type(self)(**new_values)
