from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa

from sql_raw_auth.application.services.user_backend_service import SqlRawUserBackend
from sql_raw_auth.domain.auth.capabilities import BackendQueries
from sql_raw_auth.domain.auth.hash_schemes import LegacyHashAlgorithm
from sql_raw_auth.infrastructure.db.session import LazyDatabaseHandle
from sql_raw_auth.infrastructure.security.password_hasher import create_password_hasher

QUERIES = BackendQueries(
    user_exists="SELECT EXISTS(SELECT 1 FROM users WHERE username = :username)",
    get_password_hash="SELECT password_hash FROM users WHERE username = :username",
    get_users="SELECT username FROM users WHERE username LIKE :username ESCAPE '\\'",
    set_password_hash=(
        "UPDATE users SET password_hash = :new_password_hash WHERE username = :username"
    ),
)


def _create_users_db(tmp_path: Path, usernames: list[str]) -> str:
    url = f"sqlite+pysqlite:///{tmp_path / 'users.db'}"
    engine = sa.create_engine(url)
    with engine.begin() as connection:
        connection.execute(
            sa.text("CREATE TABLE users (username TEXT PRIMARY KEY, password_hash TEXT)")
        )
        for username in usernames:
            connection.execute(
                sa.text("INSERT INTO users (username, password_hash) VALUES (:username, NULL)"),
                {"username": username},
            )
    engine.dispose()
    return url


def _stored_hash(url: str, username: str) -> str | None:
    engine = sa.create_engine(url)
    with engine.connect() as connection:
        value = connection.execute(
            sa.text("SELECT password_hash FROM users WHERE username = :username"),
            {"username": username},
        ).scalar()
    engine.dispose()
    return value


def _backend(
    url: str,
    algorithm: LegacyHashAlgorithm | None = None,
) -> tuple[SqlRawUserBackend, LazyDatabaseHandle]:
    database = LazyDatabaseHandle(url)
    backend = SqlRawUserBackend(
        queries=QUERIES,
        database=database,
        password_hasher=create_password_hasher(algorithm),
    )
    return backend, database


def test_bcrypt_set_then_check_password_round_trip(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["alice"])
    backend, database = _backend(url)

    assert database.is_connected is False
    assert backend.check_password("alice", "secret1") is False

    assert backend.set_password("alice", "secret1") is True
    assert backend.check_password("alice", "secret1") == "alice"
    assert backend.check_password("alice", "wrong") is False

    stored = _stored_hash(url, "alice")
    assert stored is not None
    assert stored.startswith("$2b$10$")
    database.dispose()


def test_engine_is_created_on_first_query_only(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["alice"])
    backend, database = _backend(url)

    assert backend.implements_actions(256) is True
    assert database.is_connected is False
    assert database.dialect_name == "sqlite"
    assert database.is_connected is False

    backend.user_exists("alice")

    assert database.is_connected is True
    database.dispose()
    assert database.is_connected is False


def test_user_exists_reflects_rows(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["alice"])
    backend, database = _backend(url)

    assert backend.user_exists("alice") is True
    assert backend.user_exists("bob") is False
    database.dispose()


def test_set_password_for_unknown_user_leaves_table_untouched(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["alice"])
    backend, database = _backend(url)

    assert backend.set_password("mallory", "pw") is False
    assert _stored_hash(url, "alice") is None
    database.dispose()


@pytest.mark.parametrize(
    ("algorithm", "prefix"),
    [
        (LegacyHashAlgorithm.MD5, "$1$"),
        (LegacyHashAlgorithm.SHA256, "$5$"),
        (LegacyHashAlgorithm.SHA512, "$6$"),
    ],
)
def test_legacy_hashes_keep_verifying_after_switching_to_bcrypt(
    tmp_path: Path,
    algorithm: LegacyHashAlgorithm,
    prefix: str,
) -> None:
    url = _create_users_db(tmp_path, ["carol"])
    legacy_backend, legacy_database = _backend(url, algorithm)

    assert legacy_backend.set_password("carol", "pw1") is True
    stored = _stored_hash(url, "carol")
    assert stored is not None
    assert stored.startswith(prefix)
    legacy_database.dispose()

    bcrypt_backend, bcrypt_database = _backend(url)
    assert bcrypt_backend.check_password("carol", "pw1") == "carol"
    assert bcrypt_backend.check_password("carol", "pw2") is False
    bcrypt_database.dispose()


def test_search_wildcards_are_matched_literally(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["jo_n", "john", "jo%x", "joan"])
    backend, database = _backend(url)

    assert backend.get_users("jo_n", None, None) == ["jo_n"]
    assert backend.get_users("o%", None, None) == ["jo%x"]
    assert sorted(backend.get_users("jo", None, None)) == ["jo%x", "jo_n", "joan", "john"]
    database.dispose()


def test_listing_applies_bound_limit_and_offset(tmp_path: Path) -> None:
    usernames = ["user1", "user2", "user3", "user4", "user5"]
    url = _create_users_db(tmp_path, usernames)
    backend, database = _backend(url)

    first_page = backend.get_users("user", limit=2, offset=0)
    second_page = backend.get_users("user", limit=2, offset=2)
    rest = backend.get_users("user", limit=10, offset=4)

    assert len(first_page) == 2
    assert len(second_page) == 2
    assert len(rest) == 1
    assert sorted(first_page + second_page + rest) == usernames
    assert backend.get_users("user", limit=0, offset=None) == []
    database.dispose()


def test_broken_operator_query_is_reported_as_failure(tmp_path: Path) -> None:
    url = _create_users_db(tmp_path, ["alice"])
    database = LazyDatabaseHandle(url)
    backend = SqlRawUserBackend(
        queries=BackendQueries(
            user_exists="SELECT 1 FROM users WHERE username = :username",
            get_password_hash="SELECT password_hash FROM missing_table WHERE u = :username",
            get_users="SELECT nope FROM users WHERE username LIKE :username",
            set_password_hash="UPDATE missing_table SET h = :new_password_hash",
        ),
        database=database,
        password_hasher=create_password_hasher(None),
    )

    assert backend.check_password("alice", "pw") is False
    assert backend.get_users("a") == []
    assert backend.set_password("alice", "pw") is False
    database.dispose()
