import uuid

import pytest
from werkzeug.test import Client

from mockhttpd.api import create_api_app
from mockhttpd.db import Store


@pytest.fixture
def store(tmp_path):
    st = Store(f"sqlite:///{tmp_path / 'api.db'}")
    st.migrate()
    return st


@pytest.fixture
def client(store):
    return Client(create_api_app(store))


@pytest.fixture
def broken_client(tmp_path):
    st = Store(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    return Client(create_api_app(st))


def _create_group(client, name):
    resp = client.post("/api/v1/groups", json={"name": name})
    assert resp.status_code == 201
    return resp.get_json()["id"]


def _activate(client, mock_id):
    return client.open(f"/api/v1/mocks/{mock_id}/activate", method="PATCH")


def _mock_body(group_id, **overrides):
    body = {
        "name": "users",
        "group_id": group_id,
        "rq_method": "GET",
        "rq_path": "/users",
        "rs_status": 200,
        "rs_body": "[]",
    }
    body.update(overrides)
    return body


def test_ping_ok(client):
    resp = client.get("/api/ping")
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "error_code": ""}
    assert resp.headers["Content-Type"] == "application/json"


def test_ping_failure_reports_internal(broken_client):
    resp = broken_client.get("/api/ping")
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error_code": "INTERNAL_ERROR"}


def test_request_id_is_echoed(client):
    resp = client.get("/api/ping", headers={"X-Request-ID": "req-1"})
    assert resp.headers["X-Request-ID"] == "req-1"


def test_request_id_is_generated(client):
    resp = client.get("/api/ping")
    generated = resp.headers["X-Request-ID"]
    assert str(uuid.UUID(generated)) == generated


def test_create_group_and_list(client):
    group_id = _create_group(client, "alpha")
    assert group_id > 0
    resp = client.get("/api/v1/groups")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["groups"] == [{"id": group_id, "name": "alpha"}]


def test_groups_are_ordered_by_name(client):
    _create_group(client, "zeta")
    _create_group(client, "beta")
    names = [g["name"] for g in client.get("/api/v1/groups").get_json()["groups"]]
    assert names == ["beta", "zeta"]


def test_duplicate_group_conflicts(client):
    _create_group(client, "alpha")
    resp = client.post("/api/v1/groups", json={"name": "alpha"})
    assert resp.status_code == 409
    assert resp.get_json() == {"success": False, "error_code": "GROUP_ALREADY_EXISTS", "id": 0}


@pytest.mark.parametrize("payload", [b"", b"{not json", b'{"name": 5}', b'{"name": "   "}'])
def test_create_group_bad_request(client, payload):
    resp = client.post(
        "/api/v1/groups", data=payload, headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "BAD_REQUEST"


def test_list_groups_failure_has_null_groups(broken_client):
    resp = broken_client.get("/api/v1/groups")
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error_code": "INTERNAL_ERROR", "groups": None}


def test_delete_group(client):
    group_id = _create_group(client, "alpha")
    resp = client.delete(f"/api/v1/groups/{group_id}")
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert client.get("/api/v1/groups").get_json()["groups"] == []


def test_delete_missing_group(client):
    resp = client.delete("/api/v1/groups/999")
    assert resp.status_code == 404
    assert resp.get_json()["error_code"] == "GROUP_NOT_FOUND"


def test_delete_group_bad_id(client):
    resp = client.delete("/api/v1/groups/abc")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "BAD_REQUEST"


def test_create_mock_and_list(client):
    group_id = _create_group(client, "alpha")
    resp = client.post(
        "/api/v1/mocks",
        json=_mock_body(
            group_id,
            rs_headers=[{"key": "X-B", "values": ["2", "1"]}],
            rq_query_params=[{"key": "q", "values": ["x"]}],
        ),
    )
    assert resp.status_code == 201
    mock_id = resp.get_json()["id"]
    assert mock_id > 0

    groups = client.get("/api/v1/mocks").get_json()["groups"]
    assert len(groups) == 1
    mocks = groups[0]["mocks"]
    assert [m["id"] for m in mocks] == [mock_id]
    mock = mocks[0]
    assert mock["active"] is True
    assert mock["rq_path"] == "/users"
    assert mock["rs_headers"] == [{"key": "X-B", "values": ["1", "2"]}]
    assert mock["rq_query_params"] == [{"key": "q", "values": ["x"]}]
    assert "rq_body" not in mock


def test_groups_endpoint_does_not_load_mocks(client):
    group_id = _create_group(client, "alpha")
    client.post("/api/v1/mocks", json=_mock_body(group_id))
    group = client.get("/api/v1/groups").get_json()["groups"][0]
    assert "mocks" not in group


def test_create_mock_unknown_group(client):
    resp = client.post("/api/v1/mocks", json=_mock_body(42))
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "GROUP_DOES_NOT_EXIST"


def test_create_mock_duplicate_name(client):
    group_id = _create_group(client, "alpha")
    assert client.post("/api/v1/mocks", json=_mock_body(group_id)).status_code == 201
    resp = client.post("/api/v1/mocks", json=_mock_body(group_id, rq_path="/other"))
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "MOCK_NAME_EXISTS"


@pytest.mark.parametrize(
    "overrides",
    [
        {"rq_body": "payload"},
        {"rq_method": "FETCH"},
        {"rq_path": "users"},
        {"rs_status": 0},
        {"rs_headers": [{"key": "X", "values": [" "]}]},
    ],
)
def test_create_mock_invalid(client, overrides):
    group_id = _create_group(client, "alpha")
    resp = client.post("/api/v1/mocks", json=_mock_body(group_id, **overrides))
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "BAD_REQUEST"


def test_activate_toggles(client, store):
    group_id = _create_group(client, "alpha")
    mock_id = client.post("/api/v1/mocks", json=_mock_body(group_id)).get_json()["id"]

    resp = _activate(client, mock_id)
    assert resp.status_code == 200
    assert store.get_mock_by_id(mock_id).active is False

    _activate(client, mock_id)
    assert store.get_mock_by_id(mock_id).active is True


def test_activate_missing_mock(client):
    resp = _activate(client, 77)
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "MOCK_DOES_NOT_EXIST"


def test_delete_mock(client, store):
    group_id = _create_group(client, "alpha")
    mock_id = client.post("/api/v1/mocks", json=_mock_body(group_id)).get_json()["id"]
    resp = client.delete(f"/api/v1/mocks/{mock_id}")
    assert resp.status_code == 200
    assert store.get_mock_by_id(mock_id) is None
    second = client.delete(f"/api/v1/mocks/{mock_id}")
    assert second.get_json()["error_code"] == "MOCK_DOES_NOT_EXIST"


def test_delete_mock_bad_id(client):
    resp = client.delete("/api/v1/mocks/x1")
    assert resp.status_code == 400


def test_delete_group_removes_mocks(client, store):
    group_id = _create_group(client, "alpha")
    mock_id = client.post("/api/v1/mocks", json=_mock_body(group_id)).get_json()["id"]
    client.delete(f"/api/v1/groups/{group_id}")
    assert store.get_mock_by_id(mock_id) is None


def test_unknown_route_and_wrong_method(client):
    assert client.get("/api/v2/nothing").status_code == 404
    assert client.put("/api/v1/groups").status_code == 405
    assert client.head("/api/ping").status_code == 405