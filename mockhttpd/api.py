"""Management API: ping, mocks and groups."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any

from werkzeug.exceptions import HTTPException, MethodNotAllowed
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from .api_models import (
    CreateGroupRequest,
    CreateMockRequest,
    InvalidRequest,
    group_view_from_record,
)
from .db import Store
from .errors import ErrorCode
from .logs import get_logger
from .maptool import unsort_json_map
from .web import REQUEST_ID_HEADER, REQUEST_ID_KEY, BaseResponse, json_response, resolve_request_id

GROUP_ID_KEY = "group_id"
MOCK_ID_KEY = "mock_id"

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")

Handler = Callable[..., Response]


def _parse_id(raw: str) -> int:
    """Parse a path id the way a strict decimal integer parser does."""
    if not _ID_PATTERN.fullmatch(raw):
        raise ValueError(f"invalid id [{raw}]")
    return int(raw)


class ApiApp:
    """WSGI application serving the management API."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self.url_map = Map(
            [
                Rule("/api/ping", methods=["GET"], endpoint=self._ping),
                Rule("/api/v1/mocks", methods=["GET"], endpoint=self._get_mocks),
                Rule("/api/v1/mocks", methods=["POST"], endpoint=self._create_mock),
                Rule(
                    "/api/v1/mocks/<mock_id>/activate",
                    methods=["PATCH"],
                    endpoint=self._activate_mock,
                ),
                Rule("/api/v1/mocks/<mock_id>", methods=["DELETE"], endpoint=self._delete_mock),
                Rule("/api/v1/groups", methods=["GET"], endpoint=self._get_groups),
                Rule("/api/v1/groups", methods=["POST"], endpoint=self._create_group),
                Rule(
                    "/api/v1/groups/<group_id>", methods=["DELETE"], endpoint=self._delete_group
                ),
            ]
        )

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        adapter = self.url_map.bind_to_environ(environ)
        try:
            if request.method == "HEAD":
                adapter.match(method="GET")
                raise MethodNotAllowed()
            handler, args = adapter.match()
        except HTTPException as exc:
            return exc(environ, start_response)

        request_id = resolve_request_id(request)
        response = handler(request, request_id, **args)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response(environ, start_response)

    # Ping

    def _ping(self, request: Request, request_id: str) -> Response:
        logger = get_logger("api", handler="ping")
        rs = BaseResponse()
        try:
            self.store.ping()
        except Exception as exc:
            logger.error(f"failed to ping db with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        rs.set_success()
        return json_response(rs, 200)

    # Groups listings

    def _list_groups(self, logger: Any, preload_mocks: bool) -> Response:
        rs = BaseResponse(extra={"groups": None})
        try:
            records = self.store.get_groups(preload_mocks)
        except Exception as exc:
            logger.error(f"failed to get groups & mocks with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        try:
            groups = [group_view_from_record(record).to_dict() for record in records]
        except ValueError as exc:
            logger.error(f"failed to convert groups with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        rs.extra["groups"] = groups
        rs.set_success()
        return json_response(rs, 200)

    def _get_mocks(self, request: Request, request_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("get mocks handler...")
        return self._list_groups(logger, preload_mocks=True)

    def _get_groups(self, request: Request, request_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("get groups handler...")
        return self._list_groups(logger, preload_mocks=False)

    # Groups

    def _create_group(self, request: Request, request_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("create group handler...")
        rs = BaseResponse(extra={"id": 0})

        try:
            rq = CreateGroupRequest.from_json(request.get_data())
        except InvalidRequest as exc:
            logger.error(f"failed to decode request with error [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)
        try:
            rq.validate()
        except InvalidRequest as exc:
            logger.error(f"request is not valid: [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)

        try:
            exists = self.store.group_exists_by_name(rq.name)
        except Exception as exc:
            logger.error(f"failed to check if group already exists with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if exists:
            logger.error(f"group with name [{rq.name}] already exists")
            rs.set_error(ErrorCode.GROUP_ALREADY_EXISTS)
            return json_response(rs, 409)

        try:
            group = self.store.create_group(rq.name)
        except Exception as exc:
            logger.error(f"failed to create group with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        rs.extra["id"] = group.id
        rs.set_success()
        return json_response(rs, 201)

    def _delete_group(self, request: Request, request_id: str, group_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("delete group handler...")
        rs = BaseResponse()

        try:
            gid = _parse_id(group_id)
        except ValueError as exc:
            logger.error(f"failed to get group id with error [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)

        try:
            exists = self.store.group_exists_by_id(gid)
        except Exception as exc:
            logger.error(f"failed to check if group exists with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if not exists:
            logger.error(f"group with id [{gid}] does not exist")
            rs.set_error(ErrorCode.GROUP_NOT_FOUND)
            return json_response(rs, 404)

        try:
            self.store.delete_group(gid)
        except Exception as exc:
            logger.error(f"failed to delete group with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        rs.set_success()
        return json_response(rs, 200)

    # Mocks

    def _create_mock(self, request: Request, request_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("create mock handler...")
        rs = BaseResponse(extra={"id": 0})

        try:
            rq = CreateMockRequest.from_json(request.get_data())
        except InvalidRequest as exc:
            logger.error(f"failed to decode request with error [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)
        try:
            rq.validate()
        except InvalidRequest as exc:
            logger.error(f"request is not valid: [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)

        try:
            group_exists = self.store.group_exists_by_id(rq.group_id)
        except Exception as exc:
            logger.error(f"failed to check if group exists with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if not group_exists:
            logger.error(f"group with id [{rq.group_id}] does not exist")
            rs.set_error(ErrorCode.GROUP_NOT_EXISTS)
            return json_response(rs, 409)

        try:
            name_taken = self.store.mock_exists(rq.name, rq.group_id)
        except Exception as exc:
            logger.error(f"failed to check if mock exists with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if name_taken:
            logger.error(f"mock with name [{rq.name}] already exists in group [{rq.group_id}]")
            rs.set_error(ErrorCode.MOCK_NAME_EXISTS)
            return json_response(rs, 409)

        try:
            mock = self.store.create_mock(
                name=rq.name,
                group_id=rq.group_id,
                rq_method=rq.rq_method,
                rq_path=rq.rq_path,
                rq_body=rq.rq_body,
                rq_query_params=unsort_json_map(rq.rq_query_params),
                rs_status=rq.rs_status,
                rs_headers=unsort_json_map(rq.rs_headers),
                rs_body=rq.rs_body,
            )
        except Exception as exc:
            logger.error(f"failed to create mock with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        rs.extra["id"] = mock.id
        rs.set_success()
        return json_response(rs, 201)

    def _load_mock(self, logger: Any, rs: BaseResponse, mock_id: str) -> Any:
        """Return the live mock for the path id, or an error response."""
        try:
            mid = _parse_id(mock_id)
        except ValueError as exc:
            logger.error(f"failed to get mock_id with error [{exc}]")
            rs.set_error(ErrorCode.BAD_REQUEST)
            return json_response(rs, 400)
        try:
            mock = self.store.get_mock_by_id(mid)
        except Exception as exc:
            logger.error(f"failed to check if mock exists with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)
        if mock is None:
            logger.error(f"mock with id [{mid}] does not exist")
            rs.set_error(ErrorCode.MOCK_NOT_EXISTS)
            return json_response(rs, 409)
        return mock

    def _activate_mock(self, request: Request, request_id: str, mock_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("activate mock handler...")
        rs = BaseResponse()

        mock = self._load_mock(logger, rs, mock_id)
        if isinstance(mock, Response):
            return mock

        mock.active = not mock.active
        try:
            self.store.update_mock(mock)
        except Exception as exc:
            logger.error(f"failed to activate mock with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        rs.set_success()
        return json_response(rs, 200)

    def _delete_mock(self, request: Request, request_id: str, mock_id: str) -> Response:
        logger = get_logger("api", **{REQUEST_ID_KEY: request_id})
        logger.info("delete mock handler...")
        rs = BaseResponse()

        mock = self._load_mock(logger, rs, mock_id)
        if isinstance(mock, Response):
            return mock

        try:
            self.store.delete_mock(mock.id)
        except Exception as exc:
            logger.error(f"failed to delete mock with error [{exc}]")
            rs.set_error(ErrorCode.INTERNAL)
            return json_response(rs, 500)

        rs.set_success()
        return json_response(rs, 200)


def create_api_app(store: Store) -> ApiApp:
    """Return the management API application backed by the store."""
    return ApiApp(store)