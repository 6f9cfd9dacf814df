# Expose a logging API

from .loggers import get_logger
from .configuration import setup_logging

__all__ = ["get_logger", "setup_logging"]
