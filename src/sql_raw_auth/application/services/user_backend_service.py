"""User backend answering host identity questions from operator-defined SQL."""

from __future__ import annotations

import logging
from typing import Any, Literal

from sql_raw_auth.application.ports.database_port import DatabaseHandlePort, DatabaseQueryError
from sql_raw_auth.application.ports.password_hasher_port import (
    PasswordHasherPort,
    PasswordHashingError,
)
from sql_raw_auth.domain.auth.capabilities import BackendQueries, supported_actions
from sql_raw_auth.domain.sql_templates import build_user_listing_statement

logger = logging.getLogger(__name__)

APP_LOG_CONTEXT = "user_backend_sql_raw"
BACKEND_NAME = "SQL raw"


class SqlRawUserBackend:
    """Answer existence, credential, listing and password-change requests.

    Expected failures (unknown user, wrong password, unconfigured query,
    database errors) are reported as ``False`` or an empty result so the host
    can fall through to other backends.
    """

    def __init__(
        self,
        *,
        queries: BackendQueries,
        database: DatabaseHandlePort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._queries = queries
        self._database = database
        self._password_hasher = password_hasher
        self._actions = supported_actions(queries)

    def get_backend_name(self) -> str:
        return BACKEND_NAME

    def implements_actions(self, actions: int) -> bool:
        """Return whether any of the requested action bits is supported."""

        return bool(self._actions & actions)

    def check_password(self, username: str, password: str) -> str | Literal[False]:
        """Return the provided username when the password matches, else False."""

        query = self._queries.get_password_hash
        if not query:
            _log_query_not_configured("get_password_hash")
            return False

        try:
            row = self._database.fetch_first_row(query, {"username": username})
        except DatabaseQueryError as error:
            logger.error(
                "check_password_query_failed app=%s username=%s error=%s",
                APP_LOG_CONTEXT,
                username,
                error,
            )
            return False

        if row is None:
            return False

        stored_hash = _decode_stored_hash(row[0], username=username)
        if stored_hash is None:
            return False

        if self._password_hasher.verify_password(password=password, password_hash=stored_hash):
            return username
        return False

    def user_exists(self, username: str) -> bool:
        """Return whether the existence query yields a non-empty first value."""

        query = self._queries.user_exists
        if not query:
            _log_query_not_configured("user_exists")
            return False

        try:
            row = self._database.fetch_first_row(query, {"username": username})
        except DatabaseQueryError as error:
            logger.error(
                "user_exists_query_failed app=%s username=%s error=%s",
                APP_LOG_CONTEXT,
                username,
                error,
            )
            return False

        return row is not None and bool(row[0])

    def get_users(
        self,
        search: str | None = "",
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[str]:
        """Return usernames matching the search text as a substring."""

        query = self._queries.get_users
        if not query:
            _log_query_not_configured("get_users")
            return []

        try:
            statement = build_user_listing_statement(
                query,
                search=search,
                limit=limit,
                offset=offset,
                dialect=self._database.dialect_name,
            )
        except ValueError as error:
            logger.warning(
                "get_users_invalid_paging app=%s limit=%s offset=%s error=%s",
                APP_LOG_CONTEXT,
                limit,
                offset,
                error,
            )
            return []

        try:
            values = self._database.fetch_first_column(statement.sql, statement.params)
        except DatabaseQueryError as error:
            logger.error("get_users_query_failed app=%s error=%s", APP_LOG_CONTEXT, error)
            return []

        return [str(value) for value in values if value is not None]

    def set_password(self, username: str, password: str) -> bool:
        """Store a new hash for an existing user.

        Success means the update ran without a database error; the number of
        affected rows is not checked.
        """

        query = self._queries.set_password_hash
        if not query:
            _log_query_not_configured("set_password_hash")
            return False

        if not self.user_exists(username):
            return False

        try:
            new_password_hash = self._password_hasher.hash_password(password)
        except PasswordHashingError as error:
            logger.error(
                "set_password_hashing_failed app=%s username=%s error=%s",
                APP_LOG_CONTEXT,
                username,
                error,
            )
            return False

        try:
            self._database.execute(
                query,
                {"username": username, "new_password_hash": new_password_hash},
            )
        except DatabaseQueryError as error:
            logger.error(
                "set_password_db_update_failed app=%s username=%s error=%s",
                APP_LOG_CONTEXT,
                username,
                error,
            )
            return False

        logger.info("set_password_ok app=%s username=%s", APP_LOG_CONTEXT, username)
        return True

    def delete_user(self, uid: str) -> bool:
        _ = uid
        return False

    def get_display_name(self, uid: str) -> str | None:
        _ = uid
        return None

    def get_display_names(
        self,
        search: str = "",
        limit: int | None = None,
        offset: int | None = None,
    ) -> dict[str, str]:
        _ = (search, limit, offset)
        return {}

    def has_user_listings(self) -> bool:
        return False


def _decode_stored_hash(value: Any, *, username: str) -> str | None:
    # binary columns (BLOB, VARBINARY, bytea) come back as bytes or memoryview
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            pass
    elif value is None or isinstance(value, str):
        return value
    logger.warning(
        "check_password_unexpected_hash_type app=%s username=%s type=%s",
        APP_LOG_CONTEXT,
        username,
        type(value).__name__,
    )
    return None


def _log_query_not_configured(query_name: str) -> None:
    logger.warning("query_not_configured app=%s query=%s", APP_LOG_CONTEXT, query_name)
