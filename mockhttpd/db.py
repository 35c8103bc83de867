"""Database models and storage for groups and mocks."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
    text,
    update,
)
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)

from . import env
from .logs import get_logger
from .texttools import is_blank


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Declarative base for all tables of the service."""


class GroupRecord(Base):
    """A named group of mocks."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True)

    mocks: Mapped[list["MockRecord"]] = relationship(
        "MockRecord",
        primaryjoin=(
            "and_(GroupRecord.id == foreign(MockRecord.group_id), "
            "MockRecord.deleted_at.is_(None))"
        ),
        order_by="MockRecord.id",
        viewonly=True,
        lazy="noload",
    )


class MockRecord(Base):
    """A stored request pattern and the response it produces."""

    __tablename__ = "mocks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    rq_method: Mapped[str] = mapped_column(String(255), nullable=False)
    rq_path: Mapped[str] = mapped_column(String(255), nullable=False)
    rq_body: Mapped[Optional[str]] = mapped_column(Text)
    rq_query_params: Mapped[Any] = mapped_column(JSON, nullable=True)

    rs_status: Mapped[int] = mapped_column(Integer, nullable=False)
    rs_headers: Mapped[Any] = mapped_column(JSON, nullable=True)
    rs_body: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True)

    def response_headers(self) -> dict[str, list[str]]:
        """Return the stored response headers; empty when none are stored."""
        raw = self.rs_headers
        if not raw:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"response headers of mock [{self.id}] are not a JSON object")
        headers: dict[str, list[str]] = {}
        for key, values in raw.items():
            if values is None:
                values = []
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ValueError(
                    f"response header [{key}] of mock [{self.id}] is not a list of strings"
                )
            headers[key] = list(values)
        return headers


class _MigrationRecord(Base):
    __tablename__ = "migrations"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)


def _migrate_20250521_initial(engine: Engine) -> None:
    Base.metadata.create_all(
        engine, tables=[MockRecord.__table__, GroupRecord.__table__]
    )


_MIGRATIONS: list[tuple[str, Callable[[Engine], None]]] = [
    ("migrate_20250521_initial", _migrate_20250521_initial),
]


def _json_contains(target: Any, candidate: Any) -> bool:
    """Containment of one JSON value in another, as MySQL JSON_CONTAINS defines it."""
    if isinstance(target, dict) and isinstance(candidate, dict):
        return all(
            key in target and _json_contains(target[key], value)
            for key, value in candidate.items()
        )
    if isinstance(target, list):
        if isinstance(candidate, list):
            return all(_json_contains(target, item) for item in candidate)
        return any(_json_contains(item, candidate) for item in target)
    if isinstance(target, dict) or isinstance(candidate, (dict, list)):
        return False
    return target == candidate


def _plain_multimap(mapping: Mapping[str, Any]) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    for key, values in mapping.items():
        result[key] = [values] if isinstance(values, str) else list(values)
    return result


@dataclass(frozen=True)
class ConnectionParams:
    """Parameters for connecting to the MySQL server."""

    user: str
    password: str
    host: str
    port: str
    db_name: str

    def _port_number(self) -> int:
        try:
            return int(self.port)
        except ValueError:
            raise ValueError(f"port [{self.port}] is not a number") from None

    def server_url(self) -> URL:
        """URL of the server without a database selected."""
        password = self.password
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=password,
            host=self.host,
            port=self._port_number(),
        )

    def database_url(self) -> URL:
        """URL of the service database."""
        password = self.password
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=password,
            host=self.host,
            port=self._port_number(),
            database=self.db_name,
            query={"charset": "utf8mb4"},
        )


def _env_name(field_name: str) -> str:
    if field_name == "db_name":
        return "MYSQL_DATABASE"
    return f"MYSQL_{field_name.upper()}"


def connection_params_from_env() -> ConnectionParams:
    """Read connection parameters from the MYSQL_* environment variables."""
    values = {
        field.name: env.get_var(_env_name(field.name))
        for field in fields(ConnectionParams)
    }
    return ConnectionParams(**values)


class Store:
    """Access to the groups and mocks tables."""

    def __init__(self, url: str | URL) -> None:
        self.engine: Engine = create_engine(url)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._sessions() as session, session.begin():
            yield session

    def ping(self) -> None:
        """Check that the database answers; raises on failure."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def migrate(self) -> list[str]:
        """Apply pending migrations and return the ids that were applied."""
        _MigrationRecord.__table__.create(self.engine, checkfirst=True)
        with self._session() as session:
            done = set(session.scalars(select(_MigrationRecord.id)))
        applied = []
        for migration_id, apply in _MIGRATIONS:
            if migration_id in done:
                continue
            apply(self.engine)
            with self._session() as session:
                session.add(_MigrationRecord(id=migration_id))
            applied.append(migration_id)
        return applied

    # Groups

    def get_groups(self, preload_mocks: bool) -> list[GroupRecord]:
        """Return live groups ordered by name, with their mocks when asked."""
        stmt = (
            select(GroupRecord)
            .where(GroupRecord.deleted_at.is_(None))
            .order_by(GroupRecord.name)
        )
        if preload_mocks:
            stmt = stmt.options(selectinload(GroupRecord.mocks))
        with self._session() as session:
            return list(session.scalars(stmt))

    def create_group(self, name: str) -> GroupRecord:
        group = GroupRecord(name=name)
        with self._session() as session:
            session.add(group)
            session.flush()
        return group

    def delete_group(self, group_id: int) -> None:
        """Soft-delete a group together with all its mocks."""
        now = _utcnow()
        with self._session() as session:
            session.execute(
                update(MockRecord)
                .where(MockRecord.group_id == group_id, MockRecord.deleted_at.is_(None))
                .values(deleted_at=now)
            )
            session.execute(
                update(GroupRecord)
                .where(GroupRecord.id == group_id, GroupRecord.deleted_at.is_(None))
                .values(deleted_at=now)
            )

    def _group_exists(self, *criteria: Any) -> bool:
        stmt = (
            select(GroupRecord.id)
            .where(GroupRecord.deleted_at.is_(None), *criteria)
            .limit(1)
        )
        with self._session() as session:
            return session.scalars(stmt).first() is not None

    def group_exists_by_name(self, name: str) -> bool:
        return self._group_exists(GroupRecord.name == name)

    def group_exists_by_id(self, group_id: int) -> bool:
        return self._group_exists(GroupRecord.id == group_id)

    # Mocks

    def find_mock(
        self,
        method: str,
        path: str,
        body: str,
        query_params: Mapping[str, Sequence[str]] | None,
    ) -> MockRecord | None:
        """Return the first active mock for the method and path.

        When query parameters are given, the stored ones must hold the same
        keys and the same set of values. The request body is not part of
        the match.
        """
        if is_blank(method):
            raise ValueError("method is empty")
        if is_blank(path):
            raise ValueError("path is empty")

        wanted = _plain_multimap(query_params) if query_params else None
        stmt = (
            select(MockRecord)
            .where(
                MockRecord.active.is_(True),
                MockRecord.rq_method == method,
                MockRecord.rq_path == path,
                MockRecord.deleted_at.is_(None),
            )
            .order_by(MockRecord.id)
        )
        with self._session() as session:
            candidates = list(session.scalars(stmt))
        for mock in candidates:
            if wanted is None:
                return mock
            stored = mock.rq_query_params
            if _json_contains(stored, wanted) and _json_contains(wanted, stored):
                return mock
        return None

    def create_mock(
        self,
        name: str,
        group_id: int,
        rq_method: str,
        rq_path: str,
        rq_body: str,
        rq_query_params: Mapping[str, Sequence[str]] | None,
        rs_status: int,
        rs_headers: Mapping[str, Sequence[str]] | None,
        rs_body: str,
    ) -> MockRecord:
        """Store a new active mock and return it with its id set."""
        mock = MockRecord(
            name=name,
            active=True,
            group_id=group_id,
            rq_method=rq_method,
            rq_path=rq_path,
            rq_body=rq_body,
            rq_query_params=_plain_multimap(rq_query_params) if rq_query_params else None,
            rs_status=rs_status,
            rs_headers=_plain_multimap(rs_headers) if rs_headers else None,
            rs_body=rs_body,
        )
        with self._session() as session:
            session.add(mock)
            session.flush()
        return mock

    def get_mock_by_id(self, mock_id: int) -> MockRecord | None:
        stmt = (
            select(MockRecord)
            .where(MockRecord.id == mock_id, MockRecord.deleted_at.is_(None))
            .limit(1)
        )
        with self._session() as session:
            return session.scalars(stmt).first()

    def update_mock(self, mock: MockRecord) -> MockRecord:
        """Save every field of the mock and return the stored version."""
        with self._session() as session:
            merged = session.merge(mock)
            merged.updated_at = _utcnow()
            session.flush()
        return merged

    def delete_mock(self, mock_id: int) -> bool:
        """Soft-delete a mock; return True if a live mock was deleted."""
        with self._session() as session:
            result = session.execute(
                update(MockRecord)
                .where(MockRecord.id == mock_id, MockRecord.deleted_at.is_(None))
                .values(deleted_at=_utcnow())
            )
            return result.rowcount > 0

    def mock_exists(self, name: str, group_id: int) -> bool:
        stmt = (
            select(func.count())
            .select_from(MockRecord)
            .where(
                MockRecord.name == name,
                MockRecord.group_id == group_id,
                MockRecord.deleted_at.is_(None),
            )
        )
        with self._session() as session:
            return session.scalar(stmt) > 0


def open_connection() -> Store:
    """Connect to MySQL from the environment, create the database and migrate."""
    logger = get_logger("db")
    params = connection_params_from_env()

    server = create_engine(params.server_url())
    try:
        quoted = params.db_name.replace("`", "``")
        with server.begin() as conn:
            conn.execute(text(f"CREATE DATABASE IF NOT EXISTS `{quoted}`"))
    finally:
        server.dispose()

    store = Store(params.database_url())
    logger.info("migrating tables...")
    store.migrate()
    logger.info("successfully migrated migrations")
    store.engine.echo = True
    return store