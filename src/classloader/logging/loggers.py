from __future__ import annotations

import logging
from functools import lru_cache


@lru_cache()
def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a `classloader` logger. These loggers are intended for internal use within the
    `classloader` package.
    """
    parent_logger = logging.getLogger("classloader")

    if name:
        # Append the name if given but allow explicit full names e.g. "classloader.test"
        # should not become "classloader.classloader.test"
        if not name.startswith(parent_logger.name + "."):
            logger = parent_logger.getChild(name)
        else:
            logger = logging.getLogger(name)
    else:
        logger = parent_logger

    return logger
