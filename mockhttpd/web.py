"""Shared pieces of the HTTP layer: the base response body and request ids."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from werkzeug.wrappers import Request, Response

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_KEY = "request_id"
JSON_CONTENT_TYPE = "application/json"


@dataclass
class BaseResponse:
    """Body of every API response: a success flag and an error code.

    Endpoint-specific fields go in ``extra`` and follow the two base fields.
    """

    success: bool = False
    error_code: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def set_success(self) -> None:
        self.success = True
        self.error_code = ""

    def set_error(self, code: str) -> None:
        self.success = False
        self.error_code = str(code)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success, "error_code": self.error_code}
        body.update(self.extra)
        return body


def json_response(body: Any, status: int) -> Response:
    """Serialise the body as JSON and return it with the given status."""
    payload = body.to_dict() if hasattr(body, "to_dict") else body
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return Response(data, status=status, content_type=JSON_CONTENT_TYPE)


def resolve_request_id(request: Request) -> str:
    """Return the request's X-Request-ID, or a fresh UUID when it has none."""
    request_id = request.headers.get(REQUEST_ID_HEADER, "")
    return request_id or str(uuid.uuid4())