"""Logging configuration for the backend when no host logging is in place."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
PACKAGE_LOGGER = "sql_raw_auth"


def resolve_log_level(level: str) -> int:
    """Map a level name to its numeric value, falling back to INFO."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved = getattr(logging, normalized_level, logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str) -> None:
    """Set the backend log level and a default format.

    Root handlers installed by the host are left untouched.
    """

    resolved_level = resolve_log_level(level)
    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(resolved_level)
