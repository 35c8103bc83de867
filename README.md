# mockhttpd

`mockhttpd` serves canned HTTP responses. You describe a request (method,
path and optional query parameters) and the response it should get (status,
headers, body). Any client that then sends a matching request receives that
response. Mocks are organised in named groups and stored in MySQL.

Two HTTP servers run side by side:

| Port | Purpose |
|------|---------|
| 5080 | Management API: create, list, toggle and delete mocks and groups |
| 5081 | Mock server: answers any standard method on any path with the matching mock |

## Installing

```
pip install mockhttpd
```

The database connection is made through SQLAlchemy's `mysql+pymysql`
dialect. The PyMySQL driver is not installed with the package; install it
alongside:

```
pip install pymysql
```

## Running

The server reads its database settings from the environment. All five
variables are required; startup exits with status 1 if any is missing or the
database cannot be reached.

```
MYSQL_USER=user
MYSQL_PASSWORD=password
MYSQL_HOST=localhost
MYSQL_PORT=3306
MYSQL_DATABASE=mock
```

The database is created if it does not exist, and the schema is migrated on
startup. Then start both servers with:

```
mockhttpd
```

Options:

| Option | Default | Meaning |
|--------|---------|---------|
| `--host` | `0.0.0.0` | Address both servers listen on |
| `--api-port` | `5080` | Management API port |
| `--mock-port` | `5081` | Mock server port |

If the mock server cannot bind its port the command exits with status 2; if
the API server cannot, with status 3. Ctrl-C stops both.

Logs go to standard output at debug level, with full timestamps. Once
connected, SQL statements are echoed as well.

## Management API (port 5080)

Every request may carry an `X-Request-ID` header; if it does not, a UUID is
generated. Either way it is echoed back in the response and attached to the
log lines for that request.

All responses are JSON and include:

```json
{"success": true, "error_code": ""}
```

| Method | Path | Does |
|--------|------|------|
| GET    | `/api/ping` | Checks the database connection |
| GET    | `/api/v1/groups` | Lists groups, ordered by name, without their mocks |
| POST   | `/api/v1/groups` | Creates a group |
| DELETE | `/api/v1/groups/{group_id}` | Deletes a group and all of its mocks |
| GET    | `/api/v1/mocks` | Lists groups, ordered by name, with their mocks |
| POST   | `/api/v1/mocks` | Creates a mock |
| PATCH  | `/api/v1/mocks/{mock_id}/activate` | Toggles a mock between active and inactive |
| DELETE | `/api/v1/mocks/{mock_id}` | Deletes a mock |

Deletions are soft: rows are marked deleted and no longer appear or match.

### Creating a group

`POST /api/v1/groups`

```json
{"name": "payments"}
```

Answers `201` with the new `id`, `400` with `BAD_REQUEST` if the body is not
valid JSON or the name is blank, or `409` with `GROUP_ALREADY_EXISTS` if the
name is taken.

Deleting a group that does not exist answers `404` with `GROUP_NOT_FOUND`.

### Creating a mock

`POST /api/v1/mocks`

```json
{
  "name": "list invoices",
  "group_id": 1,
  "rq_method": "GET",
  "rq_path": "/invoices",
  "rq_query_params": [{"key": "page", "values": ["1"]}],
  "rs_status": 200,
  "rs_headers": [{"key": "Content-Type", "values": ["application/json"]}],
  "rs_body": "{\"invoices\": []}"
}
```

Rules checked before anything is stored (a failure answers `400` with
`BAD_REQUEST`):

- `name` must not be blank.
- `group_id` must be positive.
- `rq_method` must be one of GET, HEAD, POST, PUT, PATCH, DELETE, CONNECT,
  OPTIONS, TRACE. A GET mock may not have a request body.
- `rq_path` must start with `/`.
- `rs_status` must be positive.
- Query parameter and header keys and values must not be blank.

Then the group must exist (otherwise `409` with `GROUP_DOES_NOT_EXIST`) and the
name must be free within the group (otherwise `409` with `MOCK_NAME_EXISTS`).
On success the answer is `201` with the new `id`.

New mocks are active. Listings return query parameters and headers as
`{"key": ..., "values": [...]}` entries sorted by key, with each list of
values sorted too. Empty fields are left out of each mock.

Toggling or deleting a mock that does not exist answers `409` with
`MOCK_DOES_NOT_EXIST`; a non-numeric id answers `400` with `BAD_REQUEST`.

### Error codes

`INTERNAL_ERROR`, `NOT_FOUND`, `BAD_REQUEST`, `GROUP_ALREADY_EXISTS`,
`GROUP_DOES_NOT_EXIST`, `GROUP_NOT_FOUND`, `MOCK_DOES_NOT_EXIST`,
`MOCK_NAME_EXISTS`. They are available in Python as `mockhttpd.errors.ErrorCode`.

## Mock server (port 5081)

Any request is matched against active mocks by method and path. If the request
has query parameters, the stored parameters must hold the same keys with the
same values. The request body is not part of the match. The first match, by
id, is replayed with its status, headers and body; a non-blank body without a
stored `Content-Type` header is sent as `text/plain; charset=utf-8`. With no
match the server answers `404` with
`{"success": false, "error_code": "NOT_FOUND"}`.

## Using it from Python

Both servers are plain WSGI applications over a shared `Store`, so they can be
mounted in any WSGI server or driven from tests:

```python
from mockhttpd.db import Store, connection_params_from_env
from mockhttpd.api import create_api_app
from mockhttpd.mock_app import create_mock_app

params = connection_params_from_env()
store = Store(params.database_url())
store.migrate()

api = create_api_app(store)
mocks = create_mock_app(store)
```

`mockhttpd.db.open_connection()` does the same from the environment and also
creates the database first.

`Store` takes any SQLAlchemy URL and offers the operations directly, for
example `store.create_group("payments")`, `store.get_groups(preload_mocks=True)`
and `store.find_mock("GET", "/invoices", "", {"page": ["1"]})`, which returns
the matching `MockRecord` or `None`.