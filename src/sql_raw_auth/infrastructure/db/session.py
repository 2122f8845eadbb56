"""Lazily created SQLAlchemy engine for operator-authored SQL."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from sql_raw_auth.application.ports.database_port import DatabaseHandlePort, DatabaseQueryError
from sql_raw_auth.config.settings import Settings

_DRIVERS = {
    "postgresql": "postgresql+psycopg",
    "mariadb": "mysql+pymysql",
}


class DatabaseConfigError(ValueError):
    """Raised when database connection settings cannot be resolved."""


def resolve_database_url(settings: Settings) -> sa.URL:
    """Build the connection URL from settings without opening a connection."""

    if settings.database_url is not None:
        return sa.make_url(settings.database_url)

    if settings.db_type is None or settings.db_name is None:
        raise DatabaseConfigError("SQL_RAW_DB_TYPE and SQL_RAW_DB_NAME are required")

    password = settings.db_password
    if settings.db_password_file is not None:
        try:
            password = Path(settings.db_password_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise DatabaseConfigError("failed to read SQL_RAW_DB_PASSWORD_FILE") from exc

    query: dict[str, str] = {}
    if settings.db_type == "mariadb":
        query["charset"] = settings.mariadb_charset

    return sa.URL.create(
        _DRIVERS[settings.db_type],
        username=settings.db_user,
        password=password,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        query=query,
    )


class LazyDatabaseHandle(DatabaseHandlePort):
    """Database handle whose engine is only created when the first query runs."""

    def __init__(self, database_url: str | sa.URL, **engine_options: Any) -> None:
        self._database_url = database_url
        self._engine_options = engine_options
        self._engine: sa.Engine | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def dialect_name(self) -> str:
        return sa.make_url(self._database_url).get_backend_name()

    def get_engine(self) -> sa.Engine:
        """Return the engine, creating it on first use."""

        if self._engine is None:
            self._engine = sa.create_engine(self._database_url, **self._engine_options)
        return self._engine

    def fetch_first_row(self, sql: str, params: Mapping[str, Any]) -> Sequence[Any] | None:
        try:
            with self.get_engine().connect() as connection:
                row = connection.execute(sa.text(sql), dict(params)).first()
        except SQLAlchemyError as exc:
            raise DatabaseQueryError(str(exc)) from exc
        if row is None:
            return None
        return tuple(row)

    def fetch_first_column(self, sql: str, params: Mapping[str, Any]) -> list[Any]:
        try:
            with self.get_engine().connect() as connection:
                result = connection.execute(sa.text(sql), dict(params))
                return [row[0] for row in result]
        except SQLAlchemyError as exc:
            raise DatabaseQueryError(str(exc)) from exc

    def execute(self, sql: str, params: Mapping[str, Any]) -> None:
        try:
            with self.get_engine().begin() as connection:
                connection.execute(sa.text(sql), dict(params))
        except SQLAlchemyError as exc:
            raise DatabaseQueryError(str(exc)) from exc

    def dispose(self) -> None:
        """Release pooled connections; the engine is recreated on next use."""

        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
