"""Hooks resolving tokens once per consumer instance."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar, overload

from .components import current_consumer
from .context import resolve_from_context
from .core import AnyToken, OptionalToken, Token

T = TypeVar("T")


@overload
def resolve_one(token: Token[T]) -> T: ...


@overload
def resolve_one(token: OptionalToken[T]) -> T | None: ...


def resolve_one(token):
    """
    Resolve token for the consumer that is currently rendering.

    The value is produced on the first render and kept in a memory cell of the
    consumer, so re-renders observe the same value whatever the binding's
    lifespan is. Resolution errors propagate to the caller and leave the cell
    empty.
    """
    cell = current_consumer().use_cell()
    return cell.get_or_init(lambda: resolve_from_context(token))


def resolve_many(*tokens: AnyToken) -> list[Any]:
    return [resolve_one(token) for token in tokens]


def create_injection_hooks(*tokens: AnyToken) -> list[Callable[[], Any]]:
    return [_create_injection_hook(token) for token in tokens]


def _create_injection_hook(token: AnyToken) -> Callable[[], Any]:
    def use_injection():
        return resolve_one(token)

    return use_injection
