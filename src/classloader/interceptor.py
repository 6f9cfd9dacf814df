"""
The process-wide hook for calls on types that have not been imported yet.

Types are addressed through the root namespace, `classloader.classes`:

```python
from classloader import classes

circle = classes.geometry.Circle.from_radius(2.0)  # imports geometry/Circle.py
```

Attribute access on a namespace builds a dotted path. Python only consults
`TypeNamespace.__getattr__` when regular attribute lookup fails, so the hook is reached
only on a miss. Calling a path splits it into a type name and a method name, for
example `geometry.Circle` and `from_radius`, and hands the call to the `Resolver`.

Once a type is resolved, its methods are bound on the namespace of the type. Later
calls of any of them find them with a regular attribute lookup and never reach the
hook again. Only names the type does not provide still reach it.
"""

import threading
from typing import Any, Optional

from classloader.logging.loggers import get_logger
from classloader.resolver import (
    PendingCall,
    Resolver,
    get_default_resolver,
    is_dunder,
    is_reserved_name,
)

logger = get_logger("interceptor")

_install_lock = threading.Lock()
_ROOT: Optional["TypeNamespace"] = None


class TypeNamespace:
    """
    A node in the tree of dotted type names.

    The root node has an empty path. Child nodes are created on first access and cached
    on their parent.
    """

    def __init__(
        self,
        path: tuple[str, ...] = (),
        resolver: Optional[Resolver] = None,
        parent: Optional["TypeNamespace"] = None,
    ) -> None:
        # Private names are mangled to `_TypeNamespace__*` so they do not collide with
        # type or method names stored in the same `__dict__`
        self.__path = path
        self.__resolver = resolver
        self.__parent = parent

    def __getattr__(self, name: str) -> "TypeNamespace":
        if is_dunder(name) or name.startswith("_TypeNamespace__"):
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}", name=name
            )

        child = TypeNamespace(self.__path + (name,), self.__resolver, parent=self)
        # Cache the child so the next access is a regular attribute hit; another
        # thread may have stored one first
        return self.__dict__.setdefault(name, child)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if len(self.__path) < 2:
            raise TypeError(
                f"{self!r} is not a method of a type. "
                "Call a method as `<TypeName>.<method>(...)`."
            )

        *type_segments, method_name = self.__path
        type_name = ".".join(type_segments)

        if is_reserved_name(method_name):
            raise AttributeError(
                f"type {type_name!r} has no attribute {method_name!r}",
                name=method_name,
            )

        logger.debug("Intercepted call %s.%s()", type_name, method_name)

        resolver = self.__resolver or get_default_resolver()
        return resolver.resolve(
            PendingCall(
                type_name=type_name,
                method_name=method_name,
                args=args,
                kwargs=kwargs,
                receiver=self.__parent,
            )
        )

    def __repr__(self) -> str:
        if not self.__path:
            return f"<{type(self).__name__} (root)>"
        return f"<{type(self).__name__} {'.'.join(self.__path)!r}>"


def install(resolver: Optional[Resolver] = None) -> TypeNamespace:
    """
    Install the process-wide root namespace.

    The root is created on the first call, which happens when `classloader` is imported.
    Later calls return the same root; passing a different resolver is an error since
    the hook cannot be replaced once it is in use.
    """
    global _ROOT

    with _install_lock:
        if _ROOT is None:
            _ROOT = TypeNamespace(resolver=resolver)
            logger.debug("Installed root type namespace")
        elif resolver is not None and resolver is not vars(_ROOT).get(
            "_TypeNamespace__resolver"
        ):
            raise RuntimeError(
                "The root type namespace is already installed with another resolver."
            )

    return _ROOT
