"""backend entrypoint wiring settings, database handle and hasher."""

from __future__ import annotations

import logging

from sql_raw_auth.application.ports.database_port import DatabaseHandlePort
from sql_raw_auth.application.ports.password_hasher_port import PasswordHasherPort
from sql_raw_auth.application.services.user_backend_service import SqlRawUserBackend
from sql_raw_auth.config.settings import Settings, load_settings
from sql_raw_auth.infrastructure.db.session import LazyDatabaseHandle, resolve_database_url
from sql_raw_auth.infrastructure.logging import configure_logging
from sql_raw_auth.infrastructure.security.password_hasher import create_password_hasher

logger = logging.getLogger(__name__)


def create_backend(
    *,
    settings: Settings | None = None,
    database: DatabaseHandlePort | None = None,
    password_hasher: PasswordHasherPort | None = None,
) -> SqlRawUserBackend:
    """Create the user backend; no database connection is opened here."""

    if settings is None:
        settings = load_settings()
    configure_logging(level=settings.log_level)

    if database is None:
        database = LazyDatabaseHandle(resolve_database_url(settings), pool_pre_ping=True)
    if password_hasher is None:
        password_hasher = create_password_hasher(settings.hash_algorithm)

    queries = settings.backend_queries()
    backend = SqlRawUserBackend(
        queries=queries,
        database=database,
        password_hasher=password_hasher,
    )
    logger.info(
        "backend_created check_password=%s set_password=%s hash_algorithm=%s",
        queries.login_queries_set,
        bool(queries.set_password_hash),
        settings.hash_algorithm.value if settings.hash_algorithm else "bcrypt",
    )
    return backend
