# isort: skip_file

"""
Load classes on their first method call.

```python
from classloader import classes

obj = classes.My.Class.new()  # imports My/Class.py and calls My.Class.new()
```
"""

__version__ = "1.0.0"

from classloader.exceptions import (
    ClassLoaderError,
    ClassLoaderException,
    LoadDeadlockError,
    MethodNotFoundError,
    UnitLoadError,
)
from classloader.diagnostics import Diagnostic, ErrorCode
from classloader.resolver import PendingCall, Resolver
from classloader.interceptor import TypeNamespace, install

# The process-wide hook, installed once on first import
classes: TypeNamespace = install()

# Configure logging
from classloader.logging.configuration import setup_logging

setup_logging()

__all__ = [
    "__version__",
    "ClassLoaderError",
    "ClassLoaderException",
    "LoadDeadlockError",
    "Diagnostic",
    "ErrorCode",
    "MethodNotFoundError",
    "PendingCall",
    "Resolver",
    "TypeNamespace",
    "UnitLoadError",
    "classes",
    "install",
]
