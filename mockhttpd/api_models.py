"""Request and response models of the management API."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .maptool import KeyValues, sort_json_map
from .texttools import is_blank

VALID_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE"}
)


class InvalidRequest(ValueError):
    """Raised when a request body cannot be decoded or fails validation."""


@dataclass
class MockView:
    """A mock as returned by the API."""

    id: int
    name: str
    active: bool
    rq_method: str
    rq_path: str
    rq_body: str = ""
    rq_query_params: list[KeyValues] = field(default_factory=list)
    rs_status: int = 0
    rs_headers: list[KeyValues] = field(default_factory=list)
    rs_body: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "active": self.active,
            "rq_method": self.rq_method,
            "rq_path": self.rq_path,
        }
        if self.rq_body:
            body["rq_body"] = self.rq_body
        if self.rq_query_params:
            body["rq_query_params"] = [kv.to_dict() for kv in self.rq_query_params]
        body["rs_status"] = self.rs_status
        if self.rs_headers:
            body["rs_headers"] = [kv.to_dict() for kv in self.rs_headers]
        if self.rs_body:
            body["rs_body"] = self.rs_body
        return body


@dataclass
class GroupView:
    """A group as returned by the API, with its mocks when loaded."""

    id: int
    name: str
    mocks: list[MockView] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.mocks:
            body["mocks"] = [mock.to_dict() for mock in self.mocks]
        return body


def _stored_multimap(raw: Any, what: str, mock_id: Any) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{what} of mock [{mock_id}] are not a JSON object")
    result: dict[str, list[str]] = {}
    for key, values in raw.items():
        if values is None:
            values = []
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError(f"{what} [{key}] of mock [{mock_id}] is not a list of strings")
        result[key] = values
    return result


def mock_view_from_record(record: Any) -> MockView:
    """Build the API view of a stored mock; raises ValueError on bad JSON data."""
    query_params = _stored_multimap(record.rq_query_params, "query params", record.id)
    headers = _stored_multimap(record.rs_headers, "response headers", record.id)
    return MockView(
        id=record.id,
        name=record.name,
        active=bool(record.active),
        rq_method=record.rq_method,
        rq_path=record.rq_path,
        rq_body=record.rq_body or "",
        rq_query_params=sort_json_map(query_params),
        rs_status=record.rs_status,
        rs_headers=sort_json_map(headers),
        rs_body=record.rs_body or "",
    )


def group_view_from_record(record: Any) -> GroupView:
    """Build the API view of a stored group and the mocks loaded with it."""
    return GroupView(
        id=record.id,
        name=record.name,
        mocks=[mock_view_from_record(mock) for mock in (record.mocks or [])],
    )


def _decode_object(data: Any) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidRequest(f"request body is not UTF-8: {exc}") from None
    if not isinstance(data, str):
        raise InvalidRequest("request body must be JSON text")
    try:
        obj = json.loads(data)
    except json.JSONDecodeError as exc:
        raise InvalidRequest(f"malformed JSON: {exc}") from None
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise InvalidRequest("request body must be a JSON object")
    return obj


def _string(obj: Mapping[str, Any], key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidRequest(f"{key} must be a string")
    return value


def _integer(obj: Mapping[str, Any], key: str) -> int:
    value = obj.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequest(f"{key} must be an integer")
    return value


def _key_values(obj: Mapping[str, Any], key: str) -> list[KeyValues]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidRequest(f"{key} must be a list")
    items = []
    for entry in value:
        if entry is None:
            items.append(KeyValues(key=""))
            continue
        try:
            items.append(KeyValues.from_dict(entry))
        except ValueError as exc:
            raise InvalidRequest(f"{key}: {exc}") from None
    return items


@dataclass
class CreateGroupRequest:
    """Body of a create-group request."""

    name: str = ""

    @classmethod
    def from_json(cls, data: Any) -> CreateGroupRequest:
        obj = _decode_object(data)
        return cls(name=_string(obj, "name"))

    def validate(self) -> None:
        if is_blank(self.name):
            raise InvalidRequest("name is empty")


@dataclass
class CreateMockRequest:
    """Body of a create-mock request."""

    name: str = ""
    group_id: int = 0
    rq_method: str = ""
    rq_path: str = ""
    rq_body: str = ""
    rq_query_params: list[KeyValues] = field(default_factory=list)
    rs_status: int = 0
    rs_headers: list[KeyValues] = field(default_factory=list)
    rs_body: str = ""

    @classmethod
    def from_json(cls, data: Any) -> CreateMockRequest:
        obj = _decode_object(data)
        return cls(
            name=_string(obj, "name"),
            group_id=_integer(obj, "group_id"),
            rq_method=_string(obj, "rq_method"),
            rq_path=_string(obj, "rq_path"),
            rq_body=_string(obj, "rq_body"),
            rq_query_params=_key_values(obj, "rq_query_params"),
            rs_status=_integer(obj, "rs_status"),
            rs_headers=_key_values(obj, "rs_headers"),
            rs_body=_string(obj, "rs_body"),
        )

    def validate(self) -> None:
        if is_blank(self.name):
            raise InvalidRequest("name is empty")
        if self.group_id <= 0:
            raise InvalidRequest("groupID not valid")

        if is_blank(self.rq_method):
            raise InvalidRequest("rq method is empty")
        if self.rq_method == "GET" and not is_blank(self.rq_body):
            raise InvalidRequest("cannot add rq body for GET method")
        if self.rq_method not in VALID_METHODS:
            raise InvalidRequest("rq method is not valid")
        for param in self.rq_query_params:
            if is_blank(param.key):
                raise InvalidRequest("query param is empty")
            if any(is_blank(v) for v in param.values):
                raise InvalidRequest("query param value is empty")
        if is_blank(self.rq_path) or not self.rq_path.startswith("/"):
            raise InvalidRequest("rq path is empty")

        if self.rs_status <= 0:
            raise InvalidRequest("rs status not valid")
        for header in self.rs_headers:
            if is_blank(header.key):
                raise InvalidRequest("header is empty")
            if any(is_blank(v) for v in header.values):
                raise InvalidRequest("header value is empty")