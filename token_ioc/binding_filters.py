from collections.abc import Callable, Iterable

from theutilitybelt.functional.predicate import predicate
from theutilitybelt.functional.utils import constant

from .core import Binding, Lifespan
from .tags import Tag

all_bindings = constant(True)


def create_filter(func: Callable[[Binding], bool]):
    return predicate(func)


def has_tag(tag: Tag):
    """
    Filter bindings that are guarded by the tag
    """

    def _has_tag(b: Binding):
        return b.tag is tag

    return predicate(_has_tag)


def has_tag_in(*tags: Tag):
    """
    Filter bindings that are guarded by any of the tags
    """

    def _has_tag_in(b: Binding):
        return any(b.tag is t for t in tags)

    return predicate(_has_tag_in)


def _is_conditional(b: Binding):
    return b.is_conditional


is_conditional = predicate(_is_conditional)
is_conditional.__doc__ = "Filter for bindings registered with container.when(tag)"

is_default = ~is_conditional
is_default.__doc__ = "Filter for the default binding of a token"


def has_kind(kind: str):
    """
    Filter bindings by production rule, one of "constant", "instance" or "factory"
    """

    def _has_kind(b: Binding):
        return b.kind == kind

    return predicate(_has_kind)


def has_lifespan(lifespan: Lifespan):
    """
    Check if a given binding has a specific lifespan.

    Parameters:
        lifespan (Lifespan): The lifespan to check for.

    Returns:
        Callable[[Binding], bool]: A filter function that takes a binding and returns True
        if the binding has the specified lifespan, False otherwise.
    """

    def _has_lifespan(b: Binding):
        return b.lifespan == lifespan

    return predicate(_has_lifespan)


def has_lifespan_in(lifespans: Iterable[Lifespan]):
    lifespans = tuple(lifespans)

    def _has_lifespans(b: Binding):
        return b.lifespan in lifespans

    return predicate(_has_lifespans)
