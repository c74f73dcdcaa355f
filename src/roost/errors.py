"""Roost exception hierarchy.

Shared across the tracer, builder, import resolver and dispatcher so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class RoostError(Exception):
    """Base for all roost-specific errors."""


class ConfigurationError(RoostError):
    """Raised when app configuration is invalid.

    Typically caught during ``App._freeze()`` at startup.
    """


class ResolutionError(RoostError):
    """An import descriptor depends on a package root nobody declared.

    Only raised when import resolution runs in strict mode.
    """


class CompileError(RoostError):
    """The external compiler failed or produced nothing usable."""


class MeasureError(RoostError):
    """A measured unit of work raised.

    The message names the failing action; the original exception is kept
    both as ``original`` and as ``__cause__`` (set by ``raise ... from``).
    Nested failures therefore read as a chain of step names ending in the
    real error.
    """

    def __init__(self, action: str, original: BaseException) -> None:
        self.action = action
        self.original = original
        super().__init__(f"{action} failed: {original}")

    @property
    def root_cause(self) -> BaseException:
        """The innermost exception that is not itself a ``MeasureError``."""
        exc: BaseException = self
        while isinstance(exc, MeasureError):
            exc = exc.original
        return exc

    @property
    def actions(self) -> tuple[str, ...]:
        """Failing step labels, outermost first."""
        labels: list[str] = []
        exc: BaseException = self
        while isinstance(exc, MeasureError):
            labels.append(exc.action)
            exc = exc.original
        return tuple(labels)


@dataclass(frozen=True, slots=True)
class HTTPError(RoostError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher or by handlers. The ASGI handler converts these
    into responses with the matching status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no file, page or API route matched the request path."""

    def __init__(self, detail: str = "Route Not Found") -> None:
        super().__init__(status=404, detail=detail)
