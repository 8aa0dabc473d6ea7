"""
A minimal consumer tree.

A consumer is a render function mounted at some point of the tree. Mounting
captures the current ``contextvars`` context, which carries the visible
resolution context, and every re-render runs inside that captured context.
Each mounted consumer owns a list of memory cells that hooks claim in call
order, the cells live until the consumer is unmounted.
"""

from __future__ import annotations

import contextvars
import functools
import logging
import threading
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, Generic, TypeVar

from .context import attach_tag
from .core import EMPTY, ConsumerError
from .tags import Tag

logger = logging.getLogger(__name__)

T = TypeVar("T")
TRender = TypeVar("TRender", bound=Callable[..., Any])


class MemoryCell(Generic[T]):
    """A lazily initialized value pinned to one consumer instance."""

    __slots__ = ("_initializing", "_lock", "_value", "released")

    def __init__(self):
        self._value: Any = EMPTY
        self._initializing = False
        self._lock = threading.RLock()
        self.released = False

    @property
    def is_set(self) -> bool:
        return self._value is not EMPTY

    def get_or_init(self, factory: Callable[[], T]) -> T:
        value = self._value
        if value is not EMPTY:
            return value

        with self._lock:
            if self._value is EMPTY:
                if self._initializing:
                    raise ConsumerError("Memory cell was re-entered during its own initialization")
                self._initializing = True
                try:
                    self._value = factory()
                finally:
                    self._initializing = False
            return self._value

    def release(self):
        with self._lock:
            self._value = EMPTY
            self.released = True


_current_consumer: ContextVar[ConsumerInstance | None] = ContextVar("token_ioc_current_consumer", default=None)


class ConsumerInstance(Generic[T]):
    def __init__(self, render: Callable[..., T], args: tuple = (), kwargs: dict | None = None):
        self._render = render
        self._args = args
        self._kwargs = kwargs or {}
        self._context = contextvars.copy_context()
        self._cells: list[MemoryCell] = []
        self._cursor = 0
        self._rendering = threading.Lock()
        self.mounted = True
        self.render_count = 0
        self._result: Any = EMPTY

    @property
    def result(self) -> T:
        if self._result is EMPTY:
            raise ConsumerError("Consumer has not rendered yet")
        return self._result

    @property
    def is_rendering(self) -> bool:
        return self._rendering.locked()

    def render(self) -> T:
        if not self.mounted:
            raise ConsumerError("Cannot render a consumer that has been unmounted")
        if not self._rendering.acquire(blocking=False):
            raise ConsumerError("Consumer is already rendering")
        try:
            result = self._context.run(self._evaluate)
        finally:
            self._rendering.release()

        self._result = result
        self.render_count += 1
        return result

    rerender = render

    def _evaluate(self) -> T:
        self._cursor = 0
        reset_token = _current_consumer.set(self)
        try:
            return self._render(*self._args, **self._kwargs)
        finally:
            _current_consumer.reset(reset_token)

    def use_cell(self) -> MemoryCell:
        if not self.is_rendering:
            raise ConsumerError("Hooks can only be used while the consumer renders")

        if self._cursor == len(self._cells):
            self._cells.append(MemoryCell())
        cell = self._cells[self._cursor]
        self._cursor += 1
        return cell

    def unmount(self):
        if not self.mounted:
            return
        self.mounted = False
        for cell in self._cells:
            cell.release()
        self._cells.clear()
        logger.debug("Unmounted consumer %r", self)

    def __repr__(self):
        name = getattr(self._render, "__qualname__", repr(self._render))
        return f"ConsumerInstance({name})"


def mount(render: Callable[..., T], *args, **kwargs) -> ConsumerInstance[T]:
    """Mount render at the current point of the tree and render it once."""
    consumer = ConsumerInstance(render, args, kwargs)
    consumer.render()
    return consumer


def current_consumer() -> ConsumerInstance:
    consumer = _current_consumer.get()
    if consumer is None:
        raise ConsumerError("Hooks can only be called from inside a mounted consumer")
    return consumer


def tagged(*tags: Tag) -> Callable[[TRender], TRender]:
    """Render the decorated consumer, and everything it mounts, with tags attached."""

    def decorator(render: TRender) -> TRender:
        @functools.wraps(render)
        def wrapper(*args, **kwargs):
            with attach_tag(*tags):
                return render(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
