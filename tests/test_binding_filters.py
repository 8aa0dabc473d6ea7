from assertive import assert_that, has_length

from token_ioc import Container, Lifespan, create_tag, create_token
from token_ioc.binding_filters import (
    all_bindings,
    has_kind,
    has_lifespan,
    has_lifespan_in,
    has_tag,
    has_tag_in,
    is_conditional,
    is_default,
)


def _container_with_bindings():
    some = create_token("some")
    tag_a = create_tag("a")
    tag_b = create_tag("b")

    container = Container()
    container.bind(some).to_constant(1)
    container.when(tag_a).bind(some).to_factory(lambda: 2).in_transient_scope()
    container.when(tag_b).bind(some).to_factory(lambda: 3).in_container_scope()

    return container, some, tag_a, tag_b


def test_all_bindings():
    container, some, _, _ = _container_with_bindings()

    assert_that(container.get_bindings(some, filter=all_bindings)).matches(has_length(3))


def test_default_binding_comes_first():
    container, some, tag_a, tag_b = _container_with_bindings()

    assert [b.tag for b in container.get_bindings(some)] == [None, tag_a, tag_b]


def test_has_tag():
    container, some, tag_a, _ = _container_with_bindings()

    bindings = container.get_bindings(some, filter=has_tag(tag_a))

    assert_that(bindings).matches(has_length(1))
    assert bindings[0].tag is tag_a
    assert not container.has_binding(some, filter=has_tag(create_tag("a")))


def test_has_tag_in():
    container, some, tag_a, tag_b = _container_with_bindings()

    assert_that(container.get_bindings(some, filter=has_tag_in(tag_a, tag_b))).matches(has_length(2))


def test_is_conditional_and_is_default():
    container, some, _, _ = _container_with_bindings()

    assert_that(container.get_bindings(some, filter=is_conditional)).matches(has_length(2))
    assert_that(container.get_bindings(some, filter=is_default)).matches(has_length(1))


def test_filters_can_be_combined():
    container, some, tag_a, _ = _container_with_bindings()

    assert container.has_binding(some, filter=is_conditional & has_lifespan(Lifespan.transient))
    assert not container.has_binding(some, filter=has_tag(tag_a) & has_lifespan(Lifespan.singleton))


def test_has_kind():
    container, some, _, _ = _container_with_bindings()

    assert_that(container.get_bindings(some, filter=has_kind("constant"))).matches(has_length(1))
    assert_that(container.get_bindings(some, filter=has_kind("factory"))).matches(has_length(2))


def test_has_lifespan_in():
    container, some, _, _ = _container_with_bindings()

    bindings = container.get_bindings(some, filter=has_lifespan_in([Lifespan.container, Lifespan.singleton]))

    assert_that(bindings).matches(has_length(2))
