import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request, params

from token_ioc.context import ResolutionContext
from token_ioc.core import AnyToken, Container
from token_ioc.tags import EMPTY_TAG_CHAIN, Tag, TagChain

logger = logging.getLogger(__name__)


@asynccontextmanager
async def add_container_to_app(app: FastAPI, container: Container):
    """
    Adds a container to the given FastAPI app, use inside the app's lifespan.
    The container is disposed when the app shuts down.

    Args:
        app (FastAPI): The FastAPI app to add the container to.
        container (Container): The container to be added.
    """
    with container:
        logger.debug("adding container to the fast api app")
        app.state.token_ioc_container = container
        yield
        logger.debug("releasing container from the fast api app")


def get_container_from_app(app: FastAPI) -> Container | None:
    return getattr(app.state, "token_ioc_container", None)


async def get_request_container(request: Request) -> AsyncGenerator[Container | None, None]:
    """
    A child of the app container that lives for one request, container scoped
    bindings therefore produce one instance per request.
    """
    root_container = get_container_from_app(request.app)
    if root_container is None:
        yield None
        return

    with root_container.create_child() as container:
        yield container


def get_request_tag_chain(request: Request) -> TagChain:
    return getattr(request.state, "token_ioc_tag_chain", EMPTY_TAG_CHAIN)


def attach_tags(*tags: Tag):
    """
    Build a dependency that activates tags for the rest of the request.

    Use it in the ``dependencies`` of the app, a router or a route, these run
    outermost first and before the route's own parameters are resolved.

    >>> router = APIRouter(dependencies=[Depends(attach_tags(tags.admin))])
    """

    async def _attach_tags(request: Request):
        request.state.token_ioc_tag_chain = get_request_tag_chain(request).extend(*tags)

    return _attach_tags


async def get_resolution_context(
    request: Request,
    container: Annotated[Container | None, Depends(get_request_container)],
) -> ResolutionContext:
    return ResolutionContext(container=container, tag_chain=get_request_tag_chain(request))


def Resolve(token: AnyToken) -> Any:  # noqa: N802
    """
    Resolve a token from the app's container, acts as a FastAPI dependency.
    The value is resolved once per request, optional tokens resolve to None
    when unbound.

    Args:
        token: The token, or its optional view, to resolve.

    Returns:
        params.Depends: A dependency resolving the token.
    """

    async def resolver(context: Annotated[ResolutionContext, Depends(get_resolution_context)]):
        return context.resolve(token)

    dependency: params.Depends = Depends(resolver)
    return dependency
