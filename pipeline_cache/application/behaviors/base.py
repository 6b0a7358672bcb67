"""
Pipeline Behavior Abstraction

A behavior wraps the handling of one request: it may act before and after
calling next_handler(), or short-circuit it entirely (a cache hit).

    Pipeline([CachingBehavior(...), CacheInvalidationBehavior(...)])
        .send(request, handler)

    request ──► caching ──► invalidation ──► handler(request)
"""

from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from typing import Any, Protocol, runtime_checkable

NextHandler = Callable[[], Awaitable[Any]]
RequestHandler = Callable[[Any], Awaitable[Any]]


@runtime_checkable
class PipelineBehavior(Protocol):
    """One step of the request pipeline."""

    async def handle(self, request: Any, next_handler: NextHandler) -> Any:
        """
        Handle a request.

        Args:
            request: The inbound operation
            next_handler: Zero-argument coroutine function running the rest
                of the pipeline

        Returns:
            The response for the request
        """
        ...


def signals_success(response: Any) -> bool:
    """True only when the response carries is_success set to True (e.g. Result)."""
    return getattr(response, "is_success", None) is True


class Pipeline:
    """
    Folds behaviors around a handler.

    Behaviors run in list order: the first one sees the request first and
    the response last.
    """

    def __init__(self, behaviors: Sequence[PipelineBehavior]):
        self._behaviors = tuple(behaviors)

    @property
    def behaviors(self) -> tuple[PipelineBehavior, ...]:
        return self._behaviors

    async def send(self, request: Any, handler: RequestHandler) -> Any:
        """Run request through every behavior, then the handler."""
        next_handler: NextHandler = partial(handler, request)
        for behavior in reversed(self._behaviors):
            next_handler = partial(behavior.handle, request, next_handler)
        return await next_handler()
