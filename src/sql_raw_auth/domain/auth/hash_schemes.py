"""Stored password hash formats and legacy algorithm selection."""

from __future__ import annotations

from enum import StrEnum


class LegacyHashAlgorithm(StrEnum):
    """Crypt-style digests selectable for newly written passwords."""

    MD5 = "md5"
    SHA256 = "sha256"
    SHA512 = "sha512"


class HashScheme(StrEnum):
    """Formats a stored hash can be recognized as."""

    BCRYPT = "bcrypt"
    MD5_CRYPT = "md5_crypt"
    SHA256_CRYPT = "sha256_crypt"
    SHA512_CRYPT = "sha512_crypt"


_SCHEME_PREFIXES: tuple[tuple[str, HashScheme], ...] = (
    ("$2a$", HashScheme.BCRYPT),
    ("$2b$", HashScheme.BCRYPT),
    ("$2y$", HashScheme.BCRYPT),
    ("$1$", HashScheme.MD5_CRYPT),
    ("$5$", HashScheme.SHA256_CRYPT),
    ("$6$", HashScheme.SHA512_CRYPT),
)

LEGACY_SCHEMES: dict[LegacyHashAlgorithm, HashScheme] = {
    LegacyHashAlgorithm.MD5: HashScheme.MD5_CRYPT,
    LegacyHashAlgorithm.SHA256: HashScheme.SHA256_CRYPT,
    LegacyHashAlgorithm.SHA512: HashScheme.SHA512_CRYPT,
}


def parse_hash_algorithm(value: str | None) -> LegacyHashAlgorithm | None:
    """Map a configured algorithm name to the legacy enum, None meaning bcrypt."""

    if value is None:
        return None
    normalized = value.strip().lower()
    if not normalized or normalized == "none":
        return None
    try:
        return LegacyHashAlgorithm(normalized)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in LegacyHashAlgorithm)
        raise ValueError(
            f"unsupported hash algorithm {value!r}; expected one of: none, {allowed}"
        ) from exc


def identify_hash_scheme(password_hash: str) -> HashScheme | None:
    """Return the scheme a stored hash was written with, or None when unknown."""

    for prefix, scheme in _SCHEME_PREFIXES:
        if password_hash.startswith(prefix):
            return scheme
    return None
