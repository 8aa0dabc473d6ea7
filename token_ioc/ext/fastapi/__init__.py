from .core import (
    Resolve,
    add_container_to_app,
    attach_tags,
    get_container_from_app,
    get_request_container,
    get_resolution_context,
)

__all__ = [
    "Resolve",
    "add_container_to_app",
    "attach_tags",
    "get_container_from_app",
    "get_request_container",
    "get_resolution_context",
]
