"""
Resolution of intercepted calls.

The resolver turns a pending call on a type that has not been imported into a call
on the real implementation:

1. import the module that implements the type
2. check that the type provides the called method
3. forward the call with the original arguments

Failures in the first two steps raise a `ClassLoaderError` carrying a structured
diagnostic. Whatever the forwarded call returns or raises is passed through
unchanged.
"""

from types import ModuleType
from typing import Any, Callable, NamedTuple, Optional

from classloader.diagnostics import ErrorCode, build_diagnostic
from classloader.exceptions import (
    LoadDeadlockError,
    MethodNotFoundError,
    UnitLoadError,
)
from classloader.logging.loggers import get_logger
from classloader.settings import get_current_settings
from classloader.utilities.importtools import (
    class_from_unit,
    get_load_lock,
    load_unit,
    supports,
    to_qualified_name,
)

logger = get_logger("resolver")


def is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def is_reserved_name(name: str) -> bool:
    """
    Check if a name is reserved for the object protocol and must never trigger a load.

    Dunder names (`__len__`, `__wrapped__`) are Python's own protocol. Names made only
    of uppercase letters (`DESTROY`, `AUTOLOAD`) are conventionally reserved for
    meta-operations.
    """
    if is_dunder(name):
        return True
    return name.isalpha() and name.isupper() and name.isascii()


def bind_methods(receiver: Any, cls: type) -> int:
    """
    Store every callable attribute of a class on the receiver under its name.

    Reserved names are skipped. Attributes provided dynamically, e.g. by a metaclass
    `__getattr__`, are not listed by `dir` and are bound when they are first called.

    Returns the number of methods bound.
    """
    bound = 0
    for name in dir(cls):
        # Private state of the namespace nodes is never replaced
        if is_reserved_name(name) or name.startswith("_TypeNamespace__"):
            continue
        value = getattr(cls, name, None)
        if callable(value):
            setattr(receiver, name, value)
            bound += 1
    logger.debug("Bound %d methods of %s", bound, to_qualified_name(cls))
    return bound


class PendingCall(NamedTuple):
    """
    A call that could not be dispatched because its type is not loaded yet.

    Exists only for the duration of a single intercepted call.
    """

    type_name: str
    method_name: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    receiver: Any = None


class Resolver:
    """
    Loads the implementation of a type and resolves methods on it.

    Args:
        loader: Imports the module for a type name. Must be idempotent.
        check: Checks if a class provides a callable attribute of a given name.
    """

    def __init__(
        self,
        loader: Callable[[str], ModuleType] = load_unit,
        check: Callable[[Any, str], bool] = supports,
    ) -> None:
        self.loader = loader
        self.check = check

    def _load_error(
        self,
        type_name: str,
        method_name: str,
        exc: BaseException,
        stack_limit: Optional[int],
    ) -> UnitLoadError:
        diagnostic = build_diagnostic(
            ErrorCode.UNIT_NOT_LOADABLE,
            type_name,
            method_name,
            error=exc,
            stack_limit=stack_limit,
        )
        logger.debug("Failed to load module for %r: %s", type_name, diagnostic.error)
        return UnitLoadError(diagnostic)

    def resolve_type(self, type_name: str, method_name: str) -> type:
        """
        Load the given type and check that it provides the method.

        Returns the class implementing the type.

        Raises:
            UnitLoadError: If the module for the type cannot be imported.
            MethodNotFoundError: If the type does not provide the method.
            AttributeError: If the method name is reserved.
        """
        if is_reserved_name(method_name):
            raise AttributeError(
                f"type {type_name!r} has no attribute {method_name!r}",
                name=method_name,
            )

        settings = get_current_settings().resolver
        lock = get_load_lock(type_name) if settings.lock_loads else None

        if lock is not None:
            try:
                lock.acquire()
            except LoadDeadlockError as exc:
                raise self._load_error(
                    type_name, method_name, exc, settings.stack_limit
                ) from exc

        try:
            try:
                module = self.loader(type_name)
            except Exception as exc:
                raise self._load_error(
                    type_name, method_name, exc, settings.stack_limit
                ) from exc

            cls = class_from_unit(module, type_name)
            if cls is None or not self.check(cls, method_name):
                logger.debug(
                    "Type %r does not provide a method %r", type_name, method_name
                )
                raise MethodNotFoundError(
                    build_diagnostic(
                        ErrorCode.METHOD_NOT_FOUND,
                        type_name,
                        method_name,
                        stack_limit=settings.stack_limit,
                    )
                )
        finally:
            if lock is not None:
                lock.release()

        logger.debug(
            "Resolved %s.%s() on %s", type_name, method_name, to_qualified_name(cls)
        )
        return cls

    def resolve_method(self, type_name: str, method_name: str) -> Callable[..., Any]:
        """
        Load the given type and return its method without calling it.

        See `resolve_type` for the errors raised.
        """
        return getattr(self.resolve_type(type_name, method_name), method_name)

    def resolve(self, call: PendingCall) -> Any:
        """
        Resolve a pending call and forward it to the real implementation.

        If the call has a receiver, every method of the loaded type is stored on it
        so later calls on the receiver reach the methods directly.

        Returns the result of the forwarded call.
        """
        cls = self.resolve_type(call.type_name, call.method_name)
        method = getattr(cls, call.method_name)
        if call.receiver is not None:
            bind_methods(call.receiver, cls)
            setattr(call.receiver, call.method_name, method)
        return method(*call.args, **call.kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(loader={self.loader!r}, check={self.check!r})"


_default_resolver: Optional[Resolver] = None


def get_default_resolver() -> Resolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = Resolver()
    return _default_resolver
