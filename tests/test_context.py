import asyncio
import contextvars

from assertive import assert_that, is_none, is_same_instance_as, raises_exception

from token_ioc import (
    Container,
    NoContainerError,
    UnboundTokenError,
    attach_container,
    attach_tag,
    create_tag,
    create_token,
    get_resolution_context,
    resolve_from_context,
)
from token_ioc.tags import EMPTY_TAG_CHAIN


def test_nothing_is_attached_by_default():
    context = get_resolution_context()

    assert_that(context.container).matches(is_none())
    assert_that(context.tag_chain).matches(is_same_instance_as(EMPTY_TAG_CHAIN))


def test_resolving_without_a_container_raises_no_container_error():
    some = create_token("some")

    with raises_exception(NoContainerError):
        resolve_from_context(some)


def test_no_container_error_is_not_an_unbound_token_error():
    some = create_token("some")

    try:
        resolve_from_context(some)
    except NoContainerError as ex:
        assert not isinstance(ex, UnboundTokenError)
        assert "'some'" in str(ex)


def test_optional_token_without_a_container_is_none():
    some = create_token("some")

    assert_that(resolve_from_context(some.optional)).matches(is_none())


def test_attached_container_is_visible_inside_the_block_only():
    some = create_token("some")
    container = Container()
    container.bind(some).to_constant(1)

    with attach_container(container):
        assert resolve_from_context(some) == 1

    assert_that(get_resolution_context().container).matches(is_none())


def test_attached_tags_select_conditional_bindings():
    some = create_token("some")
    tag_a = create_tag("a")
    container = Container()
    container.bind(some).to_constant(1)
    container.when(tag_a).bind(some).to_constant(2)

    with attach_container(container):
        with attach_tag(tag_a):
            assert resolve_from_context(some) == 2
        assert resolve_from_context(some) == 1


def test_nested_tags_extend_the_chain_innermost_last():
    outer = create_tag("outer")
    inner = create_tag("inner")

    with attach_tag(outer):
        with attach_tag(inner) as context:
            assert context.tag_chain.tags == (outer, inner)
        assert get_resolution_context().tag_chain.tags == (outer,)


def test_swapping_the_container_keeps_attached_tags():
    some = create_token("some")
    tag_a = create_tag("a")
    first = Container()
    second = Container()
    second.when(tag_a).bind(some).to_constant("second tagged")

    with attach_container(first), attach_tag(tag_a):
        with attach_container(second) as context:
            assert_that(context.container).matches(is_same_instance_as(second))
            assert resolve_from_context(some) == "second tagged"


def test_sibling_contexts_do_not_share_tags():
    some = create_token("some")
    left = create_tag("left")
    right = create_tag("right")
    container = Container()
    container.bind(some).to_constant("default")
    container.when(left).bind(some).to_constant("left")
    container.when(right).bind(some).to_constant("right")

    def branch(tag):
        with attach_tag(tag):
            return resolve_from_context(some)

    with attach_container(container):
        left_context = contextvars.copy_context()
        right_context = contextvars.copy_context()

        assert left_context.run(branch, left) == "left"
        assert right_context.run(branch, right) == "right"
        assert resolve_from_context(some) == "default"


def test_context_flows_into_asyncio_tasks():
    some = create_token("some")
    tag_a = create_tag("a")
    container = Container()
    container.bind(some).to_constant(1)
    container.when(tag_a).bind(some).to_constant(2)

    async def read():
        return resolve_from_context(some)

    async def main():
        with attach_container(container):
            with attach_tag(tag_a):
                tagged = asyncio.create_task(read())
            untagged = asyncio.create_task(read())
            return await tagged, await untagged

    assert asyncio.run(main()) == (2, 1)
