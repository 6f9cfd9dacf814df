from contextlib import contextmanager
from typing import Any, Generator, Mapping, Optional

from classloader.settings.models import Settings


def get_current_settings() -> Settings:
    """
    Returns a settings object populated with values from the current settings context
    or, if no settings context is active, the environment.
    """
    from classloader.context import SettingsContext

    settings_context = SettingsContext.get()
    if settings_context is not None:
        return settings_context.settings

    return Settings()


@contextmanager
def temporary_settings(
    updates: Optional[Mapping[str, Any]] = None,
) -> Generator[Settings, None, None]:
    """
    Temporarily override the current settings.

    Updates are keyed by dotted accessor. Contexts may be nested; leaving a context
    restores the settings that were active before it was entered.

    Examples:

        ```python
        from classloader.settings import get_current_settings, temporary_settings

        with temporary_settings(updates={"resolver.lock_loads": False}):
            assert get_current_settings().resolver.lock_loads is False

            with temporary_settings(updates={"resolver.stack_limit": 5}):
                assert get_current_settings().resolver.lock_loads is False
                assert get_current_settings().resolver.stack_limit == 5

        assert get_current_settings().resolver.lock_loads is True
        ```
    """
    from classloader.context import SettingsContext

    new_settings = get_current_settings().copy_with_update(updates=updates)

    with SettingsContext(settings=new_settings):
        yield new_settings
