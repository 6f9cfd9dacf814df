import importlib
import keyword
import sys
import threading
from logging import Logger
from pathlib import PurePosixPath
from types import ModuleType
from typing import Any, Optional

from classloader.exceptions import LoadDeadlockError
from classloader.logging.loggers import get_logger

logger: Logger = get_logger(__name__)

_load_locks_lock: Optional[threading.Lock] = None
_LOAD_LOCKS: dict[str, "LoadLock"] = {}

# Guards the state of every load lock and the map of waiting threads
_load_state = threading.Condition()

# Maps the id of a thread waiting for a load lock to that lock
_blocking_on: dict[int, "LoadLock"] = {}


def _get_load_locks_lock() -> threading.Lock:
    """Get the global lock guarding the per-type load locks, initializing it if necessary."""
    global _load_locks_lock
    if _load_locks_lock is None:
        _load_locks_lock = threading.Lock()
    return _load_locks_lock


class LoadLock:
    """
    A re-entrant lock serializing the loading of one type.

    Modules may call into other types while they are imported, so two threads can
    each hold the lock of one type and wait for the other's. Such a cycle is
    detected when the second thread starts waiting, which raises a
    `LoadDeadlockError` in that thread instead of blocking it.
    """

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        self.owner: Optional[int] = None
        self.count = 0

    def _has_deadlock(self, thread_id: int) -> bool:
        # Follow the chain of owners and the locks they wait for
        seen: set[int] = set()
        lock: Optional[LoadLock] = self
        while lock is not None and lock.owner is not None:
            if lock.owner == thread_id:
                return True
            if lock.owner in seen:
                return False
            seen.add(lock.owner)
            lock = _blocking_on.get(lock.owner)
        return False

    def acquire(self, blocking: bool = True) -> bool:
        thread_id = threading.get_ident()
        with _load_state:
            while True:
                if self.count == 0 or self.owner == thread_id:
                    self.owner = thread_id
                    self.count += 1
                    return True
                if not blocking:
                    return False
                if self._has_deadlock(thread_id):
                    raise LoadDeadlockError(
                        f"Deadlock detected while waiting to load {self.type_name!r}."
                    )
                _blocking_on[thread_id] = self
                try:
                    _load_state.wait()
                finally:
                    del _blocking_on[thread_id]

    def release(self) -> None:
        with _load_state:
            if self.owner != threading.get_ident():
                raise RuntimeError("Cannot release a load lock held by another thread.")
            self.count -= 1
            if self.count == 0:
                self.owner = None
                _load_state.notify_all()

    def __enter__(self) -> "LoadLock":
        self.acquire()
        return self

    def __exit__(self, *_: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"LoadLock({self.type_name!r}, owner={self.owner}, count={self.count})"


def get_load_lock(type_name: str) -> LoadLock:
    """
    Get the lock that serializes loading of the given type.

    Locks are re-entrant so a module may call into its own type while it is being
    imported.
    """
    with _get_load_locks_lock():
        lock = _LOAD_LOCKS.get(type_name)
        if lock is None:
            lock = _LOAD_LOCKS[type_name] = LoadLock(type_name)
        return lock


def split_type_name(type_name: str) -> tuple[str, ...]:
    """
    Split a dotted type name into its segments.

    Each segment must be a valid Python identifier.

    Examples:
        ```python
        split_type_name("geometry.Circle")
        # ("geometry", "Circle")
        ```
    """
    segments = tuple(type_name.split("."))
    for segment in segments:
        if not segment.isidentifier() or keyword.iskeyword(segment):
            raise ValueError(f"Invalid type name {type_name!r}.")
    return segments


def unit_path(type_name: str) -> PurePosixPath:
    """
    Returns the path of the file that implements a type, relative to an entry of
    `sys.path`.

    The mapping is purely syntactic: `A.B` is implemented in `A/B.py`.
    """
    return PurePosixPath(*split_type_name(type_name)).with_suffix(".py")


def load_unit(type_name: str) -> ModuleType:
    """
    Import the module that implements the given type.

    The module is imported through the standard import system so it is executed at
    most once per process; importing a module that is already loaded returns the
    entry from `sys.modules`.
    """
    split_type_name(type_name)
    if type_name not in sys.modules:
        logger.debug("Importing %s for type %r", unit_path(type_name), type_name)
    return importlib.import_module(type_name)


def class_from_unit(module: ModuleType, type_name: str) -> Optional[type]:
    """
    Get the class named by the last segment of `type_name` from its module.

    Returns `None` if the module does not define a class of that name.
    """
    obj = getattr(module, type_name.rsplit(".", 1)[-1], None)
    return obj if isinstance(obj, type) else None


def supports(receiver: Any, method_name: str) -> bool:
    """
    Check if the receiver provides a callable attribute with the given name.

    The attribute is looked up with `getattr` so dynamic attributes provided by a
    metaclass `__getattr__` are supported.
    """
    return callable(getattr(receiver, method_name, None))


def to_qualified_name(obj: Any) -> str:
    """
    Given an object, returns its fully-qualified name: a string that represents its
    Python import path.

    Args:
        obj (Any): an importable Python object

    Returns:
        str: the qualified name
    """
    return obj.__module__ + "." + obj.__qualname__
