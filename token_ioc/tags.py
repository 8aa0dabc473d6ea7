"""Tags and the persistent chain of tags that is active at a point in a consumer tree."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .utils import singleton


class Tag:
    """Identity guard for conditional bindings, carries no payload."""

    __slots__ = ("label",)

    def __init__(self, label: str | None = None):
        self.label = label

    def __repr__(self):
        return f"Tag({self.label!r})" if self.label else f"Tag(<anonymous {id(self):#x}>)"


def create_tag(label: str | None = None) -> Tag:
    return Tag(label)


class TagChain:
    """
    An immutable linked stack of tags.

    Pushing a tag returns a new chain that shares its parent, so sibling
    subtrees never see each other's tags. Iteration goes innermost first.
    """

    __slots__ = ("_length", "parent", "tag")

    def __init__(self, tag: Tag, parent: TagChain):
        self.tag = tag
        self.parent = parent
        self._length = len(parent) + 1

    def push(self, tag: Tag) -> TagChain:
        return TagChain(tag, self)

    def extend(self, *tags: Tag) -> TagChain:
        chain = self
        for tag in tags:
            chain = chain.push(tag)
        return chain

    @property
    def tags(self) -> tuple[Tag, ...]:
        """Tags in the order they were pushed, outermost first."""
        return tuple(reversed(tuple(self)))

    def __iter__(self) -> Iterator[Tag]:
        chain: TagChain = self
        while chain:
            yield chain.tag
            chain = chain.parent

    def __contains__(self, tag: object) -> bool:
        return any(t is tag for t in self)

    def __len__(self):
        return self._length

    def __repr__(self):
        return f"TagChain({', '.join(repr(t) for t in self.tags)})"


@singleton
class EmptyTagChain(TagChain):
    __slots__ = ()

    def __init__(self):
        self.tag = None  # type: ignore[assignment]
        self.parent = self
        self._length = 0

    def __iter__(self) -> Iterator[Tag]:
        return iter(())

    def __bool__(self):
        return False

    def __repr__(self):
        return "TagChain()"


EMPTY_TAG_CHAIN = EmptyTagChain()


def as_tag_chain(tags: TagChain | Iterable[Tag] | None) -> TagChain:
    """Accept a chain, None or an iterable of tags given outermost first."""
    if tags is None:
        return EMPTY_TAG_CHAIN
    if isinstance(tags, TagChain):
        return tags
    return EMPTY_TAG_CHAIN.extend(*tags)
