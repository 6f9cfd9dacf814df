"""
classloader-specific exceptions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from classloader.diagnostics import Diagnostic, ErrorCode


class ClassLoaderException(Exception):
    """
    Base exception type for classloader errors.
    """


class ClassLoaderError(ClassLoaderException):
    """
    Raised when an intercepted call cannot be resolved.

    The exception text is the rendered diagnostic: the error code, the type and
    method that were called, the underlying error (if any) and the call stack that
    led to the call.
    """

    def __init__(self, diagnostic: "Diagnostic") -> None:
        self.diagnostic = diagnostic
        super().__init__(diagnostic.render())

    @property
    def code(self) -> "ErrorCode":
        return self.diagnostic.code

    @property
    def type_name(self) -> str:
        return self.diagnostic.type_name

    @property
    def method_name(self) -> str:
        return self.diagnostic.method_name

    def __reduce__(self):
        return (type(self), (self.diagnostic,))


class UnitLoadError(ClassLoaderError):
    """
    Raised when the module that implements a type cannot be imported.

    This covers missing modules, syntax errors and any exception raised by the
    module while it is executed.
    """


class MethodNotFoundError(ClassLoaderError):
    """
    Raised when a type's module was imported but the type does not provide the
    called method.
    """


class LoadDeadlockError(ClassLoaderException):
    """
    Raised when waiting for the load of a type would never end, because the thread
    loading it is itself waiting for a type held by the current thread.
    """
