import json
import uuid

import pytest
from werkzeug.test import Client

from mockhttpd.db import Store
from mockhttpd.mock_app import MockApp, create_mock_app


@pytest.fixture
def store(tmp_path):
    s = Store(f"sqlite:///{tmp_path / 'mocks.db'}")
    s.migrate()
    return s


@pytest.fixture
def group_id(store):
    return store.create_group("default").id


def _mock(store, group_id, **kwargs):
    params = dict(
        name="m",
        group_id=group_id,
        rq_method="GET",
        rq_path="/hello",
        rq_body="",
        rq_query_params=None,
        rs_status=201,
        rs_headers=None,
        rs_body="hi there",
    )
    params.update(kwargs)
    return store.create_mock(**params)


def test_matching_mock_returns_stored_response(store, group_id):
    _mock(store, group_id, rs_headers={"X-Custom": ["a", "b"]})
    client = Client(create_mock_app(store))
    response = client.get("/hello")
    assert response.status_code == 201
    assert response.get_data(as_text=True) == "hi there"
    assert response.headers.getlist("X-Custom") == ["a", "b"]


def test_unknown_path_returns_not_found(store, group_id):
    _mock(store, group_id)
    client = Client(MockApp(store))
    response = client.get("/missing")
    assert response.status_code == 404
    assert json.loads(response.get_data()) == {"success": False, "error_code": "NOT_FOUND"}


def test_request_id_is_echoed(store, group_id):
    _mock(store, group_id)
    client = Client(MockApp(store))
    response = client.get("/hello", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_request_id_is_generated(store):
    client = Client(MockApp(store))
    response = client.get("/anything")
    generated = response.headers["X-Request-ID"]
    assert str(uuid.UUID(generated)) == generated


def test_inactive_mock_is_not_served(store, group_id):
    mock = _mock(store, group_id)
    mock.active = False
    store.update_mock(mock)
    client = Client(MockApp(store))
    assert client.get("/hello").status_code == 404


def test_method_must_match(store, group_id):
    _mock(store, group_id, rq_method="POST", rs_status=202, rs_body="posted")
    client = Client(MockApp(store))
    assert client.get("/hello").status_code == 404
    response = client.post("/hello", data="payload")
    assert response.status_code == 202
    assert response.get_data(as_text=True) == "posted"


def test_query_params_must_match(store, group_id):
    _mock(store, group_id, rq_query_params={"a": ["1"]})
    client = Client(MockApp(store))
    assert client.get("/hello?a=1").status_code == 201
    assert client.get("/hello?a=2").status_code == 404
    assert client.get("/hello?a=1&b=2").status_code == 404


def test_unserved_method_is_rejected(store):
    client = Client(MockApp(store))
    response = client.open("/hello", method="PROPFIND")
    assert response.status_code == 405
    assert "X-Request-ID" not in response.headers


def test_blank_body_gives_empty_response(store, group_id):
    _mock(store, group_id, rs_status=204, rs_body="   ")
    client = Client(MockApp(store))
    response = client.get("/hello")
    assert response.status_code == 204
    assert response.get_data() == b""
    assert "Content-Type" not in response.headers


def test_stored_content_type_is_kept(store, group_id):
    _mock(
        store,
        group_id,
        rs_headers={"Content-Type": ["application/json"]},
        rs_body='{"ok":true}',
    )
    client = Client(MockApp(store))
    response = client.get("/hello")
    assert response.headers.getlist("Content-Type") == ["application/json"]
    assert json.loads(response.get_data()) == {"ok": True}


def test_bad_stored_headers_give_internal_error(store, group_id):
    mock = _mock(store, group_id)
    mock.rs_headers = ["not", "a", "map"]
    store.update_mock(mock)
    client = Client(MockApp(store))
    response = client.get("/hello")
    assert response.status_code == 500
    assert json.loads(response.get_data())["error_code"] == "INTERNAL_ERROR"


class _FailingStore:
    def find_mock(self, method, path, body, query_params):
        raise RuntimeError("database is down")


def test_store_failure_gives_internal_error():
    client = Client(MockApp(_FailingStore()))
    response = client.post("/x", data="body")
    assert response.status_code == 500
    assert json.loads(response.get_data()) == {"success": False, "error_code": "INTERNAL_ERROR"}