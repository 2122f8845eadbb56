"""Port for executing operator SQL templates with named parameters."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class DatabaseQueryError(RuntimeError):
    """Raised when the database rejects or fails to run a statement."""


class DatabaseHandlePort(Protocol):
    """Database handle contract used by the user backend."""

    @property
    def dialect_name(self) -> str:
        """Return the SQL dialect name, such as ``postgresql`` or ``mysql``."""

    def fetch_first_row(self, sql: str, params: Mapping[str, Any]) -> Sequence[Any] | None:
        """Execute statement and return the first row, or None when no row matched."""

    def fetch_first_column(self, sql: str, params: Mapping[str, Any]) -> list[Any]:
        """Execute statement and return the first column of every row."""

    def execute(self, sql: str, params: Mapping[str, Any]) -> None:
        """Execute a write statement inside a committed transaction."""
