"""Nested, request-correlated timing.

Every measured unit of work logs a ``Starting`` line, then either a
``Completed`` line with its duration or a ``Failed`` line with the duration
and the error. Lines are prefixed with the correlation id and an indent
marker whose length is the nesting depth::

    [3fa9c1d2] > Starting GET /dashboard
    [3fa9c1d2] => Starting page /dashboard
    [3fa9c1d2] ==> Starting Rebuild dashboard
    [3fa9c1d2] ==> Completed Rebuild dashboard 41.07ms

Depth and request id never live in shared state. They travel in an
immutable ``TraceContext`` handed to the work function through a bound
``Measure``, so concurrent requests (and sibling branches of one request)
cannot corrupt each other's indentation.

Usage::

    async def load(measure: Measure) -> dict:
        user = await measure(fetch_user, "fetch user")
        return {"user": user}

    data = await measure(load, "serverData /dashboard", TraceContext("3fa9c1d2"))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from roost._internal.invoke import invoke
from roost.errors import MeasureError

logger = logging.getLogger("roost.trace")


class SpanOutcome(Enum):
    """Outcome of a measured unit of work."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Correlation id and nesting depth for one position in a trace tree."""

    request_id: str | None = None
    depth: int = 0
    parent: str | None = None

    def child(self, action: str) -> TraceContext:
        """The context for work nested one level inside *action*."""
        return TraceContext(self.request_id, self.depth + 1, action)

    @property
    def prefix(self) -> str:
        indent = "=" * self.depth
        if self.request_id:
            return f"[{self.request_id}] {indent}>"
        return indent


@dataclass(slots=True)
class Span:
    """One measured unit of work.

    Created when the work starts; mutated only by ``finish()``.
    """

    action: str
    request_id: str | None
    depth: int
    started_at: float = field(default_factory=time.perf_counter)
    outcome: SpanOutcome = SpanOutcome.PENDING
    duration_ms: float | None = None
    error: BaseException | None = None

    def finish(self, outcome: SpanOutcome, error: BaseException | None = None) -> None:
        self.duration_ms = (time.perf_counter() - self.started_at) * 1000
        self.outcome = outcome
        self.error = error


# Receives every finished span (tests, metrics exporters)
type SpanHook = Callable[[Span], None]


class Measure:
    """A ``measure`` function pre-bound to one position in a trace tree.

    ``await bound(work, action)`` measures *work* at ``bound.context``'s
    depth and request id. The work receives a new ``Measure`` bound one
    level deeper.
    """

    __slots__ = ("_on_span", "context")

    def __init__(self, context: TraceContext | None = None, *, on_span: SpanHook | None = None) -> None:
        self.context = context or TraceContext()
        self._on_span = on_span

    @classmethod
    def root(cls, request_id: str | None = None, *, on_span: SpanHook | None = None) -> Measure:
        """A measure whose spans start at depth 0 for *request_id*."""
        return cls(TraceContext(request_id), on_span=on_span)

    async def __call__[T](
        self,
        work: Callable[[Measure], Awaitable[T] | T],
        action: str,
    ) -> T:
        return await measure(work, action, self.context, on_span=self._on_span)

    def __repr__(self) -> str:
        return f"Measure(request_id={self.context.request_id!r}, depth={self.context.depth})"


def _line(prefix: str, text: str) -> str:
    return f"{prefix} {text}" if prefix else text


async def measure[T](
    work: Callable[[Measure], Awaitable[T] | T],
    action: str,
    context: TraceContext | None = None,
    *,
    on_span: SpanHook | None = None,
) -> T:
    """Run *work* as one span and return its result unchanged.

    *work* may be sync or async; it is called with a ``Measure`` bound one
    level deeper than *context*. Exceptions are logged once at this level
    and re-raised as ``MeasureError`` chained to the original.
    """
    ctx = context or TraceContext()
    span = Span(action=action, request_id=ctx.request_id, depth=ctx.depth)
    prefix = ctx.prefix

    logger.info("%s", _line(prefix, f"Starting {action}"))
    try:
        result: Any = await invoke(work, Measure(ctx.child(action), on_span=on_span))
    except Exception as exc:
        span.finish(SpanOutcome.FAILURE, exc)
        logger.error("%s", _line(prefix, f"Failed {action} {span.duration_ms:.2f}ms: {exc!r}"))
        if on_span is not None:
            on_span(span)
        raise MeasureError(action, exc) from exc

    span.finish(SpanOutcome.SUCCESS)
    logger.info("%s", _line(prefix, f"Completed {action} {span.duration_ms:.2f}ms"))
    if on_span is not None:
        on_span(span)
    return result
