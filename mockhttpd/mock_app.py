"""Mock application: answers any request with a stored mock response."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from werkzeug.exceptions import MethodNotAllowed
from werkzeug.wrappers import Request, Response

from .db import Store
from .errors import ErrorCode
from .logs import get_logger
from .texttools import is_blank
from .web import REQUEST_ID_HEADER, REQUEST_ID_KEY, BaseResponse, json_response, resolve_request_id

SERVED_METHODS = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
)
_TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class MockApp:
    """WSGI application that replays the mock matching each request."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        if request.method not in SERVED_METHODS:
            return MethodNotAllowed(valid_methods=list(SERVED_METHODS))(environ, start_response)

        request_id = resolve_request_id(request)
        response = self._handle(request, request_id)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response(environ, start_response)

    def _handle(self, request: Request, request_id: str) -> Response:
        logger = get_logger("app", **{REQUEST_ID_KEY: request_id})
        logger.info("mocking response...")
        rs = BaseResponse()

        body = ""
        if request.method != "GET":
            body = request.get_data().decode("utf-8", errors="replace")

        query = {key: request.args.getlist(key) for key in request.args}
        try:
            mock = self.store.find_mock(request.method, request.path, body, query)
        except Exception as exc:
            logger.error(f"failed to find mock with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if mock is None:
            logger.error("mock not found")
            rs.set_error(ErrorCode.NOT_FOUND)
            return json_response(rs, 404)

        try:
            headers = mock.response_headers()
        except Exception as exc:
            logger.error(f"failed to get mock [{mock.id}] rs headers with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        response = Response(status=mock.rs_status)
        del response.headers["Content-Type"]
        for key, values in headers.items():
            for value in values:
                response.headers.add(key, value)

        rs_body = mock.rs_body or ""
        if not is_blank(rs_body):
            response.set_data(rs_body.encode("utf-8"))
            if "Content-Type" not in response.headers:
                response.headers["Content-Type"] = _TEXT_CONTENT_TYPE
        return response


def create_mock_app(store: Store) -> MockApp:
    """Return the mock-serving application backed by the store."""
    return MockApp(store)