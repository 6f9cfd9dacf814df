from __future__ import annotations

import logging
import logging.config
import os
import re
import string
from functools import partial
from pathlib import Path
from typing import Any, Callable

import yaml

from classloader.settings import get_current_settings
from classloader.utilities.collections import dict_to_flatdict, flatdict_to_dict

# This path will be used if `CLASSLOADER_LOGGING_SETTINGS_PATH` is null
DEFAULT_LOGGING_SETTINGS_PATH = Path(__file__).parent / "logging.yml"

# Stores the configuration used to setup logging in this Python process
PROCESS_LOGGING_CONFIG: dict[str, Any] = {}

# Regex call to replace non-alphanumeric characters to '_' to create a valid env var
to_envvar: Callable[[str], str] = partial(re.sub, re.compile(r"[^0-9a-zA-Z]+"), "_")


def load_logging_config(path: Path) -> dict[str, Any]:
    """
    Loads logging configuration from a path allowing override from the environment
    """
    template = string.Template(path.read_text())
    config = yaml.safe_load(
        # Substitute settings into the template in format $SETTING / ${SETTING}
        template.substitute(get_current_settings().to_environment_variables())
    )

    # Load overrides from the environment
    flat_config = dict_to_flatdict(config)

    for key_tup, val in flat_config.items():
        env_val = os.environ.get(
            # Generate a valid environment variable with nesting indicated with '_'
            to_envvar("CLASSLOADER_LOGGING_" + "_".join(key_tup)).upper()
        )
        if env_val:
            if isinstance(val, list):
                val = env_val.split(",")
            else:
                val = env_val

            # reassign the updated value
            flat_config[key_tup] = val

    return flatdict_to_dict(flat_config)


def setup_logging(incremental: bool | None = None) -> dict[str, Any]:
    """
    Sets up logging.

    Returns the config used.
    """
    global PROCESS_LOGGING_CONFIG

    settings_path = get_current_settings().logging.settings_path

    # If the user has specified a logging path and it exists we will ignore the
    # default entirely rather than dealing with complex merging
    config = load_logging_config(
        settings_path
        if settings_path is not None and settings_path.exists()
        else DEFAULT_LOGGING_SETTINGS_PATH
    )

    incremental = (
        incremental if incremental is not None else bool(PROCESS_LOGGING_CONFIG)
    )

    # Perform an incremental update if setup has already been run
    config.setdefault("incremental", incremental)

    try:
        logging.config.dictConfig(config)
    except ValueError:
        if incremental:
            setup_logging(incremental=False)
            return PROCESS_LOGGING_CONFIG

        raise

    PROCESS_LOGGING_CONFIG.update(config)

    return config
