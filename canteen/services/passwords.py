"""Password hashing.

New hashes use bcrypt through passlib. When no usable bcrypt backend is
installed the hash falls back to ``pbkdf2$<iterations>$<salt>$<digest>``
(PBKDF2-SHA256); both formats verify regardless of which one is active.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from passlib.context import CryptContext
from passlib.exc import MissingBackendError

logger = logging.getLogger(__name__)

PBKDF2_PREFIX = "pbkdf2$"
PBKDF2_ITERATIONS = 120_000
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

_pwd_context: Optional[CryptContext] = CryptContext(schemes=["bcrypt"], deprecated="auto")


def password_looks_hashed(value: str) -> bool:
    return value.startswith((PBKDF2_PREFIX, *BCRYPT_PREFIXES))


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def _pbkdf2_encode(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = _pbkdf2(password, salt, PBKDF2_ITERATIONS)
    return "$".join(("pbkdf2", str(PBKDF2_ITERATIONS), salt.hex(), digest.hex()))


def _pbkdf2_verify(password: str, encoded: str) -> bool:
    parts = encoded.split("$")
    if len(parts) != 4:
        return False
    try:
        iterations = int(parts[1])
        salt = bytes.fromhex(parts[2])
        expected = bytes.fromhex(parts[3])
    except ValueError:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, iterations), expected)


def hash_password(password: str) -> str:
    if _pwd_context is not None:
        try:
            return _pwd_context.hash(password)
        except (MissingBackendError, ValueError):
            logger.warning("bcrypt backend unavailable; hashing with pbkdf2")
    return _pbkdf2_encode(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    if password_hash.startswith(PBKDF2_PREFIX):
        return _pbkdf2_verify(password, password_hash)
    if _pwd_context is None or not password_hash.startswith(BCRYPT_PREFIXES):
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except (MissingBackendError, ValueError):
        return False
