"""Capability flags advertised to the host identity framework."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag


class BackendAction(IntFlag):
    """Action bits understood by the host; values are fixed by the host contract."""

    CREATE_USER = 1
    SET_PASSWORD = 16
    CHECK_PASSWORD = 256
    GET_HOME = 4096
    GET_DISPLAYNAME = 65536
    SET_DISPLAYNAME = 1048576
    PROVIDE_AVATAR = 16777216
    COUNT_USERS = 268435456


@dataclass(frozen=True)
class BackendQueries:
    """Operator-authored SQL templates; None means the query is not configured."""

    user_exists: str | None = None
    get_password_hash: str | None = None
    get_users: str | None = None
    set_password_hash: str | None = None

    @property
    def login_queries_set(self) -> bool:
        return bool(self.get_password_hash) and bool(self.user_exists)


def supported_actions(queries: BackendQueries) -> BackendAction:
    """Return the capability set a query snapshot can serve."""

    actions = BackendAction(0)
    if queries.login_queries_set:
        actions |= BackendAction.CHECK_PASSWORD
    if queries.set_password_hash:
        actions |= BackendAction.SET_PASSWORD
    return actions
