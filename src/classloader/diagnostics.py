"""
Structured diagnostics for calls that cannot be resolved.

A `Diagnostic` is built once at the point of failure, rendered into the text of a
`ClassLoaderError` and never modified afterwards.
"""

import os
import re
import traceback
from collections.abc import Iterable
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from classloader.exceptions import ClassLoaderError

# The directory of this package; frames from inside it are not part of the caller's
# stack and are trimmed from the innermost end
_PACKAGE_PATH = os.path.realpath(os.path.dirname(__file__))

# Python appends the location to syntax errors, e.g. "invalid syntax (Foo.py, line 3)"
_LOCATION_SUFFIX = re.compile(r"\s*\([^()]*,\s*line \d+\)\s*$")


class ErrorCode(str, Enum):
    UNIT_NOT_LOADABLE = "CLASSLOADER-00001"
    METHOD_NOT_FOUND = "CLASSLOADER-00002"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ErrorCode.UNIT_NOT_LOADABLE: "module cannot be loaded",
    ErrorCode.METHOD_NOT_FOUND: "method does not exist",
}


class StackFrame(BaseModel):
    """A single entry of the call chain leading to an intercepted call."""

    model_config = ConfigDict(frozen=True)

    name: str
    filename: str
    lineno: Optional[int] = None

    def render(self) -> str:
        # Code that is not a named function, e.g. `<module>`, is shown as-is
        name = self.name if self.name.startswith("<") else f"{self.name}()"
        return f"{name} [{self.filename}:{self.lineno}]"


class Diagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    type_name: str
    method_name: str
    error: Optional[str] = None
    frames: tuple[StackFrame, ...] = ()

    @property
    def message(self) -> str:
        return self.code.message

    def render_stack(self) -> str:
        lines = [
            "    " + "  " * depth + frame.render()
            for depth, frame in enumerate(self.frames)
        ]
        if lines:
            lines[-1] += " <== ERROR"
        return "\n".join(lines)

    def render(self) -> str:
        """
        Render the diagnostic as the exception text.

        The sections are always emitted in the same order; the `Error` section only
        appears when there is an underlying error and the `Stack` section only when
        frames were captured.
        """
        text = f"Exception:\n    {self.code.value}: {self.message}\n"
        text += f"Class:\n    {self.type_name}\n"
        text += f"Method:\n    {self.method_name}()\n"
        if self.error:
            text += f"Error:\n    {self.error}\n"
        if self.frames:
            text += f"Stack:\n{self.render_stack()}\n"
        return text


def describe_error(exc: BaseException) -> str:
    """
    Describe an exception on a single line as `ExceptionType: message`.

    The trailing location that Python adds to syntax errors is removed since the
    diagnostic's stack already locates the failure.
    """
    if isinstance(exc, ClassLoaderError):
        # A type loaded by the failing module could not be resolved itself
        return (
            f"{type(exc).__name__}: {exc.code.value}: {exc.diagnostic.message} "
            f"({exc.type_name}.{exc.method_name}())"
        )

    message = str(exc).strip()
    # Only the first line is kept, tracebacks of nested errors are not repeated
    message = message.splitlines()[0] if message else ""
    message = _LOCATION_SUFFIX.sub("", message)
    name = type(exc).__name__
    return f"{name}: {message}" if message else name


def _is_internal(summary: traceback.FrameSummary) -> bool:
    return os.path.realpath(summary.filename).startswith(_PACKAGE_PATH + os.sep)


def trim_stack(
    summaries: Iterable[traceback.FrameSummary], limit: Optional[int] = None
) -> tuple[StackFrame, ...]:
    """
    Convert frame summaries, ordered outermost first, into stack frames.

    Frames from this package are removed from the innermost end until a caller frame
    is reached. If `limit` is given, only that many of the innermost frames are kept.
    """
    summaries = list(summaries)
    while summaries and _is_internal(summaries[-1]):
        summaries.pop()

    if limit is not None:
        summaries = summaries[-limit:] if limit > 0 else []

    return tuple(
        StackFrame(
            name=summary.name,
            filename=os.path.basename(summary.filename),
            lineno=summary.lineno,
        )
        for summary in summaries
    )


def capture_stack(limit: Optional[int] = None) -> tuple[StackFrame, ...]:
    """
    Capture the current call chain, outermost first, excluding classloader frames.
    """
    return trim_stack(traceback.extract_stack(), limit=limit)


def build_diagnostic(
    code: ErrorCode,
    type_name: str,
    method_name: str,
    error: Optional[BaseException] = None,
    stack_limit: Optional[int] = None,
) -> Diagnostic:
    return Diagnostic(
        code=code,
        type_name=type_name,
        method_name=method_name,
        error=describe_error(error) if error is not None else None,
        frames=capture_stack(limit=stack_limit),
    )
