"""Bcrypt and legacy crypt password hasher adapters."""

from __future__ import annotations

import logging

import bcrypt
from passlib.hash import md5_crypt, sha256_crypt, sha512_crypt
from passlib.utils.binary import HASH64_CHARS

from sql_raw_auth.application.ports.password_hasher_port import (
    PasswordHasherPort,
    PasswordHashingError,
)
from sql_raw_auth.domain.auth.hash_schemes import (
    LEGACY_SCHEMES,
    HashScheme,
    LegacyHashAlgorithm,
    identify_hash_scheme,
)

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72
MIN_CRYPT_HASH_LENGTH = 13


# Rows written by other crypt(3) implementations may carry standard base64
# salts ("+", "="), so parsing accepts any salt character. New salts stay in
# the hash64 alphabet and rounds stay at the implicit 5000.
class _Md5Crypt(md5_crypt):
    salt_chars = None
    default_salt_chars = HASH64_CHARS


class _Sha256Crypt(sha256_crypt):
    salt_chars = None
    default_salt_chars = HASH64_CHARS
    default_rounds = 5000


class _Sha512Crypt(sha512_crypt):
    salt_chars = None
    default_salt_chars = HASH64_CHARS
    default_rounds = 5000


_CRYPT_HANDLERS = {
    HashScheme.MD5_CRYPT: _Md5Crypt,
    HashScheme.SHA256_CRYPT: _Sha256Crypt,
    HashScheme.SHA512_CRYPT: _Sha512Crypt,
}

_CRYPT_PREFIXES = {
    HashScheme.MD5_CRYPT: "$1$",
    HashScheme.SHA256_CRYPT: "$5$",
    HashScheme.SHA512_CRYPT: "$6$",
}


def _bcrypt_secret(password: str) -> bytes:
    # crypt_blowfish only reads the first 72 bytes; newer bcrypt releases raise instead
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def verify_stored_hash(*, password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash, dispatching on the hash prefix.

    The comparison never consults the configured algorithm: rows written
    before a configuration change keep verifying with their own scheme.
    Unknown or malformed hashes do not verify.
    """

    scheme = identify_hash_scheme(password_hash)
    if scheme is None:
        return False

    if scheme is HashScheme.BCRYPT:
        try:
            return bcrypt.checkpw(_bcrypt_secret(password), password_hash.encode("utf-8"))
        except ValueError:
            return False

    try:
        return bool(_CRYPT_HANDLERS[scheme].verify(password, password_hash))
    except ValueError:
        return False


class BcryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter using bcrypt with a pinned cost."""

    def __init__(self, *, rounds: int = BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        try:
            hashed = bcrypt.hashpw(_bcrypt_secret(password), bcrypt.gensalt(rounds=self._rounds))
        except ValueError as exc:
            raise PasswordHashingError(f"bcrypt hashing failed: {exc}") from exc

        password_hash = hashed.decode("utf-8")
        if identify_hash_scheme(password_hash) is not HashScheme.BCRYPT:
            raise PasswordHashingError("bcrypt returned an unrecognized hash")
        return password_hash

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        return verify_stored_hash(password=password, password_hash=password_hash)


class LegacyCryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter producing MD5-, SHA-256- or SHA-512-crypt digests.

    Kept for user databases shared with software that cannot read bcrypt.
    Each call draws a fresh salt.
    """

    def __init__(self, *, algorithm: LegacyHashAlgorithm) -> None:
        self._algorithm = algorithm
        self._scheme = LEGACY_SCHEMES[algorithm]

    @property
    def algorithm(self) -> LegacyHashAlgorithm:
        return self._algorithm

    def hash_password(self, password: str) -> str:
        handler = _CRYPT_HANDLERS[self._scheme]
        try:
            password_hash = handler.hash(password)
        except ValueError as exc:
            raise PasswordHashingError(f"{self._scheme} hashing failed: {exc}") from exc

        # crypt primitives report failure through short or foreign output
        if (
            not password_hash
            or len(password_hash) < MIN_CRYPT_HASH_LENGTH
            or not password_hash.startswith(_CRYPT_PREFIXES[self._scheme])
        ):
            raise PasswordHashingError(f"{self._scheme} returned an invalid hash")
        return str(password_hash)

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        return verify_stored_hash(password=password, password_hash=password_hash)


def create_password_hasher(algorithm: LegacyHashAlgorithm | None) -> PasswordHasherPort:
    """Return the hasher for newly written passwords."""

    if algorithm is None:
        return BcryptPasswordHasher()
    try:
        resolved = LegacyHashAlgorithm(algorithm)
    except ValueError as exc:
        raise ValueError(f"unsupported hash algorithm: {algorithm!r}") from exc
    logger.info("legacy_password_hashing_enabled algorithm=%s", resolved.value)
    return LegacyCryptPasswordHasher(algorithm=resolved)
