"""
Base configuration of pytest for testing the 'classloader' module.

Here we make the following changes to pytest:
- Enter a settings context before test collection that will be used for the duration
  of the test run. This ensures tests are run with debug logging enabled.
- Override `caplog` so it captures records from our loggers, which do not propagate.
"""

import logging

import pytest

from classloader.logging.configuration import setup_logging
from classloader.settings import temporary_settings

# isort: split
# Import fixtures

from .fixtures.units import *

# Stores the settings context manager used for the test run, preventing early exit from
# garbage collection when the sessionstart function exits.
TEST_SETTINGS_CTX = None


def pytest_sessionstart(session):
    """
    Enters a settings context for the scope of the test session.

    We set the context during session startup instead of a fixture to ensure that
    when tests are collected they respect the setting values.
    """
    global TEST_SETTINGS_CTX

    TEST_SETTINGS_CTX = temporary_settings(
        updates={
            # Enable debug logging
            "logging.level": "DEBUG",
        }
    )
    TEST_SETTINGS_CTX.__enter__()

    # Ensure logging is configured for the test session
    setup_logging()


@pytest.fixture
def caplog(caplog):
    """
    Overrides caplog to apply to all of our loggers that do not propagate and
    consequently would not be captured by caplog.
    """
    from classloader.logging.configuration import PROCESS_LOGGING_CONFIG

    for name, logger_config in PROCESS_LOGGING_CONFIG["loggers"].items():
        if not logger_config.get("propagate", True):
            logger = logging.getLogger(name)
            if caplog.handler not in logger.handlers:
                logger.handlers.append(caplog.handler)

    yield caplog

    for name in PROCESS_LOGGING_CONFIG["loggers"]:
        logger = logging.getLogger(name)
        if caplog.handler in logger.handlers:
            logger.handlers.remove(caplog.handler)
