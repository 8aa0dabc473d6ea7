"""
Propagation of the visible container and tag chain.

A ``ResolutionContext`` is kept in a ``ContextVar`` so that anything running
inside an ``attach_container`` / ``attach_tag`` block can find it without the
pair being passed through every intermediate call. Nested blocks build a new
context and restore the previous one on exit, siblings never observe each
other's tags.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import TypeVar, overload

from .core import Container, NoContainerError, OptionalToken, Token
from .tags import EMPTY_TAG_CHAIN, Tag, TagChain

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResolutionContext:
    container: Container | None = None
    tag_chain: TagChain = EMPTY_TAG_CHAIN

    def with_tag(self, *tags: Tag) -> ResolutionContext:
        return replace(self, tag_chain=self.tag_chain.extend(*tags))

    def with_container(self, container: Container) -> ResolutionContext:
        return replace(self, container=container)

    @overload
    def resolve(self, token: Token[T]) -> T: ...

    @overload
    def resolve(self, token: OptionalToken[T]) -> T | None: ...

    def resolve(self, token):
        if self.container is None:
            if token.is_optional:
                return None
            raise NoContainerError(token.token)
        return self.container.resolve(token, self.tag_chain)


ROOT_CONTEXT = ResolutionContext()

_current_context: ContextVar[ResolutionContext] = ContextVar("token_ioc_resolution_context", default=ROOT_CONTEXT)


def get_resolution_context() -> ResolutionContext:
    return _current_context.get()


@contextmanager
def _push(context: ResolutionContext) -> Iterator[ResolutionContext]:
    reset_token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(reset_token)


@contextmanager
def attach_container(container: Container) -> Iterator[ResolutionContext]:
    """
    Make container the visible container for everything executed in the block.

    Tags already attached above stay active, only the container is swapped.
    """
    logger.debug("Attaching container %s", container.id)
    with _push(get_resolution_context().with_container(container)) as context:
        yield context


@contextmanager
def attach_tag(*tags: Tag) -> Iterator[ResolutionContext]:
    """Extend the visible tag chain with tags, innermost last, for the block only."""
    with _push(get_resolution_context().with_tag(*tags)) as context:
        yield context


@overload
def resolve_from_context(token: Token[T]) -> T: ...


@overload
def resolve_from_context(token: OptionalToken[T]) -> T | None: ...


def resolve_from_context(token):
    """Resolve against the visible context without any memoization."""
    return get_resolution_context().resolve(token)
