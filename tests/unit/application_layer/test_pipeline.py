"""
Unit Tests for Pipeline Composition

Tests behavior ordering and a full read/write flow through the caching and
invalidation behaviors.
"""

import pytest

from pipeline_cache.application.behaviors import (
    CacheInvalidationBehavior,
    CachingBehavior,
    Pipeline,
    PipelineBehavior,
    signals_success,
)
from pipeline_cache.core.result import Result, ResultError
from tests.test_fixtures import RequestFactory, TodoDto
from tests.test_fixtures.request_factory import CompleteTodo, GetTodoById


class RecordingBehavior:
    def __init__(self, name: str, events: list):
        self.name = name
        self.events = events

    async def handle(self, request, next_handler):
        self.events.append(f"{self.name}:before")
        response = await next_handler()
        self.events.append(f"{self.name}:after")
        return response


class TodoStore:
    """Tiny handler backing GetTodoById / CompleteTodo."""

    def __init__(self):
        self.todos = {1: TodoDto(id=1, title="Write tests")}
        self.reads = 0

    async def handle(self, request):
        if isinstance(request, GetTodoById):
            self.reads += 1
            todo = self.todos.get(request.todo_id)
            if todo is None:
                return Result.failure(ResultError(code="todos.not_found", message="missing"))
            return Result.success(todo)
        if isinstance(request, CompleteTodo):
            self.todos[request.todo_id] = self.todos[request.todo_id].model_copy(update={"done": True})
            return Result.success(None)
        return Result.success(None)


@pytest.mark.unit
class TestPipeline:
    """Test suite for Pipeline."""

    @pytest.mark.asyncio
    async def test_behaviors_wrap_in_order(self):
        """Test that the first behavior is outermost."""
        events = []

        async def handler(request):
            events.append("handler")
            return "done"

        pipeline = Pipeline([RecordingBehavior("a", events), RecordingBehavior("b", events)])

        assert await pipeline.send(RequestFactory.ping(), handler) == "done"
        assert events == ["a:before", "b:before", "handler", "b:after", "a:after"]

    @pytest.mark.asyncio
    async def test_empty_pipeline_calls_handler(self):
        """Test a pipeline without behaviors."""

        async def handler(request):
            return request.message

        assert await Pipeline([]).send(RequestFactory.ping(), handler) == "ping"

    def test_behaviors_satisfy_protocol(self, cache_service, version_resolver):
        """Test that both cache behaviors are pipeline behaviors."""
        assert isinstance(CachingBehavior(cache_service, version_resolver=version_resolver), PipelineBehavior)
        assert isinstance(CacheInvalidationBehavior(cache_service, version_resolver=version_resolver), PipelineBehavior)

    def test_signals_success(self):
        """Test success detection."""
        assert signals_success(Result.success(1)) is True
        assert signals_success(Result.failure(ResultError(code="x", message="y"))) is False
        assert signals_success({"is_success": True}) is False
        assert signals_success(None) is False


@pytest.mark.unit
class TestReadWriteFlow:
    """Caching and invalidation composed around one handler."""

    @pytest.fixture
    def pipeline(self, cache_service, version_resolver):
        return Pipeline([
            CachingBehavior(cache_service, Result[TodoDto], version_resolver=version_resolver),
            CacheInvalidationBehavior(cache_service, version_resolver=version_resolver),
        ])

    @pytest.mark.asyncio
    async def test_write_invalidates_cached_read(self, pipeline):
        """Test read, cached read, write, fresh read."""
        store = TodoStore()

        first = await pipeline.send(RequestFactory.get_todo(1), store.handle)
        cached = await pipeline.send(RequestFactory.get_todo(1), store.handle)
        assert store.reads == 1
        assert cached.value == first.value

        await pipeline.send(RequestFactory.complete_todo(1), store.handle)

        fresh = await pipeline.send(RequestFactory.get_todo(1), store.handle)
        assert store.reads == 2
        assert fresh.value.done is True

    @pytest.mark.asyncio
    async def test_feature_write_invalidates_every_read(self, pipeline):
        """Test that a feature-level command clears all cached todos."""
        store = TodoStore()
        store.todos[2] = TodoDto(id=2, title="Ship it")

        await pipeline.send(RequestFactory.get_todo(1), store.handle)
        await pipeline.send(RequestFactory.get_todo(2), store.handle)
        await pipeline.send(RequestFactory.create_todo(), store.handle)
        await pipeline.send(RequestFactory.get_todo(1), store.handle)
        await pipeline.send(RequestFactory.get_todo(2), store.handle)

        assert store.reads == 4

    @pytest.mark.asyncio
    async def test_not_found_is_never_cached(self, pipeline):
        """Test that failures keep hitting the handler."""
        store = TodoStore()

        await pipeline.send(RequestFactory.get_todo(404), store.handle)
        await pipeline.send(RequestFactory.get_todo(404), store.handle)

        assert store.reads == 2
