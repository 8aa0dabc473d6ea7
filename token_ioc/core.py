"""Token based IOC container with tag-conditional bindings."""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from enum import IntEnum
from typing import Any, Generic, TypeVar, overload
from uuid import uuid4
from weakref import WeakKeyDictionary

from theutilitybelt.functional.predicate import always_true
from theutilitybelt.functional.utils import constant

from .tags import EMPTY_TAG_CHAIN, Tag, TagChain, as_tag_chain
from .utils import singleton

logger = logging.getLogger(__name__)

T = TypeVar("T")
TTarget = TypeVar("TTarget", bound=Callable)


@singleton
class _empty:  # noqa: N801
    def __bool__(self):
        return False


EMPTY = _empty()


class Token(Generic[T]):
    """
    Identity key for a dependency.

    Two tokens are only ever equal when they are the same object, the label is
    used for error messages and nothing else.
    """

    __slots__ = ("_optional", "label")

    is_optional = False

    def __init__(self, label: str | None = None):
        self.label = label
        self._optional = OptionalToken(self)

    @property
    def token(self) -> Token[T]:
        return self

    @property
    def optional(self) -> OptionalToken[T]:
        return self._optional

    def __repr__(self):
        return f"Token({describe_token(self)})"


class OptionalToken(Generic[T]):
    """View of a token that resolves to None instead of failing when unbound."""

    __slots__ = ("token",)

    is_optional = True

    def __init__(self, token: Token[T]):
        self.token = token

    @property
    def label(self) -> str | None:
        return self.token.label

    @property
    def optional(self) -> OptionalToken[T]:
        return self

    def __repr__(self):
        return f"OptionalToken({describe_token(self.token)})"


AnyToken = Token[T] | OptionalToken[T]


def create_token(label: str | None = None) -> Token[Any]:
    return Token(label)


def describe_token(token: Token | OptionalToken) -> str:
    base = token.token
    return repr(base.label) if base.label else f"<anonymous token {id(base):#x}>"


class Lifespan(IntEnum):
    transient = 0
    resolution = 1
    container = 2
    singleton = 3


class TokenIocError(Exception):
    pass


class UnboundTokenError(TokenIocError):
    def __init__(self, token: Token, tag_chain: TagChain = EMPTY_TAG_CHAIN):
        self.token = token
        self.tag_chain = tag_chain

    def __str__(self):
        active_tags = f" with active tags {list(self.tag_chain.tags)}" if self.tag_chain else ""
        return f"No binding found for token {describe_token(self.token)}{active_tags}"


class NoContainerError(TokenIocError):
    def __init__(self, token: Token | None = None):
        self.token = token

    def __str__(self):
        requested = f" for token {describe_token(self.token)}" if self.token is not None else ""
        return f"No container is attached above the resolution point{requested}"


class FactoryError(TokenIocError):
    def __init__(self, token: Token, error: Exception):
        self.token = token
        self.error = error

    def __str__(self):
        return f"Failed to construct token {describe_token(self.token)}: {self.error!r}"


class CircularDependencyError(TokenIocError):
    def __init__(self, token: Token):
        self.token = token

    def __str__(self):
        return f"Token {describe_token(self.token)} was requested while it was already being resolved"


class ContainerError(TokenIocError):
    pass


class ConsumerError(TokenIocError):
    pass


_injections: WeakKeyDictionary[Callable, tuple[AnyToken, ...]] = WeakKeyDictionary()


def injected(target: TTarget, *tokens: AnyToken) -> TTarget:
    """
    Declare the tokens whose values are passed positionally to target when a
    container builds it with to_instance or to_factory.

    Args:
        target: The class or function to be built.
        *tokens: Tokens (or their optional views) in parameter order.

    Returns:
        The target itself, so it can be used inline.
    """
    _injections[target] = tokens
    return target


def get_injections(target: Callable) -> tuple[AnyToken, ...]:
    try:
        return _injections.get(target, ())
    except TypeError:
        # not weak referenceable, so it can never have been registered
        return ()


_local = threading.local()


@contextmanager
def _guard_against_cycles(binding: Binding) -> Iterator[None]:
    in_flight: set[str] = _local.__dict__.setdefault("in_flight", set())
    if binding.id in in_flight:
        raise CircularDependencyError(binding.token)
    in_flight.add(binding.id)
    try:
        yield
    finally:
        in_flight.discard(binding.id)


class Binding:
    __slots__ = (
        "container",
        "factory",
        "id",
        "initializer",
        "injections",
        "kind",
        "lifespan",
        "tag",
        "token",
    )

    def __init__(
        self,
        *,
        token: Token,
        factory: Callable,
        kind: str,
        container: Container,
        lifespan: Lifespan = Lifespan.singleton,
        tag: Tag | None = None,
        injections: tuple[AnyToken, ...] = (),
        initializer: Callable | None = None,
    ):
        self.id = str(uuid4())
        self.token = token
        self.factory = factory
        self.kind = kind
        self.container = container
        self.lifespan = lifespan
        self.tag = tag
        self.injections = injections
        self.initializer = initializer

    @property
    def is_conditional(self) -> bool:
        return self.tag is not None

    def build(self, context: _ResolvingContext) -> Any:
        args = [context.resolve(dependency) for dependency in self.injections]
        try:
            instance = self.factory(*args)
            if self.initializer is not None:
                self.initializer(instance, *args)
        except TokenIocError:
            raise
        except Exception as ex:
            logger.warning("Factory for token %s failed with %r", describe_token(self.token), ex)
            raise FactoryError(self.token, ex) from ex
        return instance

    def __repr__(self):
        guard = f" when {self.tag!r}" if self.tag is not None else ""
        return f"Binding({describe_token(self.token)}{guard}, {self.kind}, {self.lifespan.name})"


class ScopeSelector:
    def __init__(self, binding: Binding):
        self._binding = binding

    def _set_lifespan(self, lifespan: Lifespan) -> Binding:
        self._binding.lifespan = lifespan
        return self._binding

    def in_singleton_scope(self) -> Binding:
        return self._set_lifespan(Lifespan.singleton)

    def in_transient_scope(self) -> Binding:
        return self._set_lifespan(Lifespan.transient)

    def in_container_scope(self) -> Binding:
        return self._set_lifespan(Lifespan.container)

    def in_resolution_scope(self) -> Binding:
        return self._set_lifespan(Lifespan.resolution)

    @property
    def binding(self) -> Binding:
        return self._binding


class BindingBuilder(Generic[T]):
    def __init__(self, container: Container, token: AnyToken, tag: Tag | None = None):
        self._container = container
        self._token = token.token
        self._tag = tag

    def _add(self, factory: Callable, kind: str, **kwargs) -> ScopeSelector:
        binding = Binding(
            token=self._token,
            factory=factory,
            kind=kind,
            container=self._container,
            tag=self._tag,
            **kwargs,
        )
        self._container._add_binding(binding)
        return ScopeSelector(binding)

    def to_constant(self, value: T) -> ScopeSelector:
        return self._add(constant(value), "constant")

    def to_instance(self, cls: type[T]) -> ScopeSelector:
        if not inspect.isclass(cls):
            raise TypeError(f"to_instance expects a class, got {cls!r}, use to_factory for callables")
        return self._add(cls, "instance", injections=get_injections(cls))

    def to_factory(
        self,
        fn: Callable[..., T],
        initializer: Callable[..., Any] | None = None,
    ) -> ScopeSelector:
        """
        Bind to a factory function.

        Args:
            fn: Called with the values of the tokens declared via ``injected``.
            initializer: Optional, called with the created instance followed by
                the same injected values.
        """
        return self._add(fn, "factory", injections=get_injections(fn), initializer=initializer)


class ConditionalBinder:
    def __init__(self, container: Container, tag: Tag):
        self._container = container
        self._tag = tag

    def bind(self, token: AnyToken[T]) -> BindingBuilder[T]:
        return BindingBuilder(self._container, token, tag=self._tag)


class _Registry:
    def __init__(self):
        self._defaults: dict[Token, Binding] = {}
        self._conditionals: dict[Token, dict[Tag, Binding]] = {}

    def add(self, binding: Binding) -> Binding | None:
        if binding.tag is None:
            replaced = self._defaults.get(binding.token)
            self._defaults[binding.token] = binding
        else:
            conditionals = self._conditionals.setdefault(binding.token, {})
            replaced = conditionals.get(binding.tag)
            conditionals[binding.tag] = binding
        return replaced

    def remove(self, token: Token) -> list[Binding]:
        removed = self.get_bindings(token)
        self._defaults.pop(token, None)
        self._conditionals.pop(token, None)
        return removed

    def find(self, token: Token, tag_chain: TagChain) -> Binding | None:
        if conditionals := self._conditionals.get(token):
            for tag in tag_chain:
                if binding := conditionals.get(tag):
                    return binding
        return self._defaults.get(token)

    def get_bindings(self, token: Token) -> list[Binding]:
        default = self._defaults.get(token)
        conditionals = list(self._conditionals.get(token, {}).values())
        return ([default] if default else []) + conditionals

    def all_bindings(self) -> Iterator[Binding]:
        yield from self._defaults.values()
        for conditionals in self._conditionals.values():
            yield from conditionals.values()

    def snapshot(self):
        return dict(self._defaults), {k: dict(v) for k, v in self._conditionals.items()}

    def restore(self, snapshot) -> list[Binding]:
        """Roll back to snapshot, returns the bindings that were discarded."""
        kept = list(self.all_bindings())
        defaults, conditionals = snapshot
        self._defaults = dict(defaults)
        self._conditionals = {k: dict(v) for k, v in conditionals.items()}
        restored = {b.id for b in self.all_bindings()}
        return [b for b in kept if b.id not in restored]


class _ResolvingContext:
    """State for one top level resolve call, holds the resolution scoped instances."""

    def __init__(self, container: Container, tag_chain: TagChain):
        self.container = container
        self.tag_chain = tag_chain
        self._resolution_instances: dict[str, Any] = {}

    def resolve(self, token: AnyToken) -> Any:
        binding = self.container.find_binding(token.token, self.tag_chain)

        if binding is None:
            if token.is_optional:
                return None
            raise UnboundTokenError(token.token, self.tag_chain)

        return self._get_instance(binding)

    def _build(self, binding: Binding) -> Any:
        with _guard_against_cycles(binding):
            return binding.build(self)

    def _get_instance(self, binding: Binding) -> Any:
        lifespan = binding.lifespan

        if lifespan == Lifespan.transient:
            return self._build(binding)

        if lifespan == Lifespan.resolution:
            instance = self._resolution_instances.get(binding.id, EMPTY)
            if instance is EMPTY:
                instance = self._build(binding)
                self._resolution_instances[binding.id] = instance
            return instance

        if lifespan == Lifespan.singleton:
            return binding.container._get_or_build(binding.container._singletons, binding, self._build)

        return self.container._get_or_build(self.container._container_scoped, binding, self._build)


class Container:
    def __init__(self, parent: Container | None = None):
        self._id = str(uuid4())
        self._parent = parent
        self._registry = _Registry()
        self._singletons: dict[str, Any] = {}
        self._container_scoped: dict[str, Any] = {}
        self._snapshots: list = []
        self._build_locks: dict[str, threading.RLock] = {}
        self._lock = threading.RLock()

    @property
    def id(self):
        return self._id

    @property
    def parent(self) -> Container | None:
        return self._parent

    def bind(self, token: AnyToken[T]) -> BindingBuilder[T]:
        return BindingBuilder(self, token)

    def when(self, tag: Tag) -> ConditionalBinder:
        return ConditionalBinder(self, tag)

    def unbind(self, token: AnyToken) -> Container:
        with self._lock:
            self._forget(self._registry.remove(token.token))
        return self

    def _add_binding(self, binding: Binding):
        with self._lock:
            replaced = self._registry.add(binding)
            if replaced is not None:
                self._forget([replaced])
        logger.debug("Registered %r in container %s", binding, self._id)

    def _forget(self, bindings: Iterable[Binding]):
        # caller holds self._lock
        for binding in bindings:
            self._singletons.pop(binding.id, None)
            self._container_scoped.pop(binding.id, None)
            self._build_locks.pop(binding.id, None)

    def extend(self, parent: Container) -> Container:
        """Use parent as a fallback for tokens this container has no binding for."""
        ancestor: Container | None = parent
        while ancestor is not None:
            if ancestor is self:
                raise ContainerError("A container cannot extend itself or one of its descendants")
            ancestor = ancestor.parent

        self._parent = parent
        return self

    def create_child(self) -> Container:
        return Container(parent=self)

    def find_binding(self, token: Token, tag_chain: TagChain = EMPTY_TAG_CHAIN) -> Binding | None:
        container: Container | None = self
        while container is not None:
            if binding := container._registry.find(token, tag_chain):
                return binding
            container = container.parent
        return None

    @overload
    def resolve(self, token: Token[T], tags: TagChain | Iterable[Tag] | None = None) -> T: ...

    @overload
    def resolve(self, token: OptionalToken[T], tags: TagChain | Iterable[Tag] | None = None) -> T | None: ...

    def resolve(self, token, tags=None):
        context = _ResolvingContext(self, as_tag_chain(tags))
        return context.resolve(token)

    def _get_or_build(self, cache: dict[str, Any], binding: Binding, build: Callable[[Binding], Any]) -> Any:
        instance = cache.get(binding.id, EMPTY)
        if instance is not EMPTY:
            return instance

        # the container lock guards the lock table only, never a build
        with self._lock:
            build_lock = self._build_locks.get(binding.id)
            if build_lock is None:
                build_lock = self._build_locks[binding.id] = threading.RLock()

        with build_lock:
            instance = cache.get(binding.id, EMPTY)
            if instance is EMPTY:
                instance = build(binding)
                cache[binding.id] = instance
                logger.debug("Cached %r in container %s", binding, self._id)
        return instance

    def get_bindings(self, token: AnyToken, filter: Callable[[Binding], bool] = always_true) -> list[Binding]:
        return [b for b in self._registry.get_bindings(token.token) if filter(b)]

    def has_binding(self, token: AnyToken, filter: Callable[[Binding], bool] = always_true) -> bool:
        return len(self.get_bindings(token, filter)) > 0

    def capture(self) -> Container:
        """Snapshot the current bindings so a later restore() can roll back to them."""
        with self._lock:
            self._snapshots.append(self._registry.snapshot())
        return self

    def restore(self) -> Container:
        with self._lock:
            if not self._snapshots:
                raise ContainerError("restore() called without a matching capture()")
            self._forget(self._registry.restore(self._snapshots.pop()))
        return self

    def dispose(self):
        with self._lock:
            self._singletons.clear()
            self._container_scoped.clear()
        logger.debug("Disposed container %s", self._id)

    def __enter__(self):
        return self

    def __exit__(self, *args, **kwargs):
        self.dispose()

    def __repr__(self):
        return f"Container({self._id})"
