from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request, Response
from theutilitybelt.functional.predicate import always_true

from token_ioc.core import Container, NoContainerError, create_token, injected

from .core import get_request_container

REQUEST = create_token("fastapi.Request")
RESPONSE = create_token("fastapi.Response")
REQUEST_HEADER_READER = create_token("RequestHeaderReader")
RESPONSE_HEADER_WRITER = create_token("ResponseHeaderWriter")


class RequestHeaderReader:
    def __init__(self, request: Request):
        self.request = request

    def read(self, key: str, default_value: str = "") -> str:
        return self.request.headers.get(key, default_value)

    def header_exists(self, key: str) -> bool:
        return key in self.request.headers

    def as_dict(self, filter_keys: Callable[[str], bool] = always_true) -> dict:
        return {k: v for k, v in self.request.headers.items() if filter_keys(k)}


class ResponseHeaderWriter:
    def __init__(self, response: Response):
        self.response = response

    def write(self, key: str, value: str):
        self.response.headers[key] = value


injected(RequestHeaderReader, REQUEST)
injected(ResponseHeaderWriter, RESPONSE)


def _require(container: Container | None) -> Container:
    if container is None:
        raise NoContainerError()
    return container


def add_request_to_container(
    request: Request,
    container: Annotated[Container | None, Depends(get_request_container)],
):
    _require(container).bind(REQUEST).to_constant(request)


def add_response_to_container(
    response: Response,
    container: Annotated[Container | None, Depends(get_request_container)],
):
    _require(container).bind(RESPONSE).to_constant(response)


def add_request_header_reader_to_container(
    request: Request,
    container: Annotated[Container | None, Depends(get_request_container)],
):
    request_container = _require(container)
    request_container.bind(REQUEST).to_constant(request)
    request_container.bind(REQUEST_HEADER_READER).to_instance(RequestHeaderReader)


def add_response_header_writer_to_container(
    response: Response,
    container: Annotated[Container | None, Depends(get_request_container)],
):
    request_container = _require(container)
    request_container.bind(RESPONSE).to_constant(response)
    request_container.bind(RESPONSE_HEADER_WRITER).to_instance(ResponseHeaderWriter)
