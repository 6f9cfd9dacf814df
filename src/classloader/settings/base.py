from typing import Any, Dict, Tuple, Type

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    PyprojectTomlConfigSettingsSource,
    SettingsConfigDict,
)


class ClassLoaderBaseSettings(BaseSettings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """
        Define an order for classloader settings sources.

        The order of the returned callables decides the priority of inputs; first item is the highest priority.

        See https://docs.pydantic.dev/latest/concepts/pydantic_settings/#customise-settings-sources
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
            PyprojectTomlConfigSettingsSource(settings_cls),
        )

    def to_environment_variables(self, exclude_unset: bool = False) -> Dict[str, str]:
        """Convert the settings object to a dictionary of environment variables."""

        env: Dict[str, Any] = self.model_dump(exclude_unset=exclude_unset, mode="json")
        env_variables = {}
        for key in type(self).model_fields.keys():
            if isinstance(child_settings := getattr(self, key), ClassLoaderBaseSettings):
                env_variables.update(
                    child_settings.to_environment_variables(exclude_unset=exclude_unset)
                )
            elif (value := env.get(key)) is not None:
                env_variables[
                    f"{self.model_config.get('env_prefix')}{key.upper()}"
                ] = str(value)
        return env_variables


def _build_settings_config(path: Tuple[str, ...] = tuple()) -> SettingsConfigDict:
    env_prefix = (
        f"CLASSLOADER_{'_'.join(path).upper()}_" if path else "CLASSLOADER_"
    )
    return SettingsConfigDict(
        env_prefix=env_prefix,
        env_file=".env",
        extra="ignore",
        pyproject_toml_table_header=("tool", "classloader", *path),
    )
