"""Token based dependency resolution with tag-conditional bindings."""

from .components import ConsumerInstance, MemoryCell, current_consumer, mount, tagged
from .context import (
    ResolutionContext,
    attach_container,
    attach_tag,
    get_resolution_context,
    resolve_from_context,
)
from .core import (
    Binding,
    BindingBuilder,
    CircularDependencyError,
    ConsumerError,
    Container,
    ContainerError,
    FactoryError,
    Lifespan,
    NoContainerError,
    OptionalToken,
    ScopeSelector,
    Token,
    TokenIocError,
    UnboundTokenError,
    create_token,
    injected,
)
from .injection import create_injection_hooks, resolve_many, resolve_one
from .tags import EMPTY_TAG_CHAIN, Tag, TagChain, create_tag

__all__ = [
    "EMPTY_TAG_CHAIN",
    "Binding",
    "BindingBuilder",
    "CircularDependencyError",
    "ConsumerError",
    "ConsumerInstance",
    "Container",
    "ContainerError",
    "FactoryError",
    "Lifespan",
    "MemoryCell",
    "NoContainerError",
    "OptionalToken",
    "ResolutionContext",
    "ScopeSelector",
    "Tag",
    "TagChain",
    "Token",
    "TokenIocError",
    "UnboundTokenError",
    "attach_container",
    "attach_tag",
    "create_injection_hooks",
    "create_tag",
    "create_token",
    "current_consumer",
    "get_resolution_context",
    "injected",
    "mount",
    "resolve_from_context",
    "resolve_many",
    "resolve_one",
    "tagged",
]
