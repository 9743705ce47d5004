"""
Book Catalogue Backend — Password Hashing & Token Signing
==========================================================

What:  Thin wrappers over bcrypt (salted one-way password hashes) and PyJWT
       (signed, time-limited session tokens).
How:   bcrypt is CPU-bound, so hashing and checking run in Starlette's
       threadpool. `bcrypt.checkpw` compares in constant time.

bcrypt only reads the first 72 bytes of its input; passwords are cut to that
length the same way on hash and on check.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

from book_catalog.config import settings

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def _hash_sync(password: str, rounds: int) -> str:
    """
    Blocking bcrypt hash.

    What:    Fresh random salt at cost `rounds`, result as the ASCII
             `$2b$...` string stored in `users.password_hash`.
    Who:     hash_password(), through the threadpool.
    When:    Registration and the seed script. Takes ~250 ms at cost 12.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def _check_sync(password: str, password_hash: str) -> bool:
    """Blocking constant-time comparison; a malformed hash is a mismatch."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash: treat as a mismatch
        logger.warning("Stored password hash is malformed")
        return False


async def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """bcrypt hash of `password` with the configured cost factor."""
    return await run_in_threadpool(_hash_sync, password, rounds or settings.bcrypt_rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check of `password` against a stored bcrypt hash."""
    return await run_in_threadpool(_check_sync, password, password_hash)


# ── Session Tokens ────────────────────────────────────────────────────────

def sign_token(claims: Dict[str, Any], now: Optional[datetime] = None) -> str:
    """
    Sign `claims` into a JWT that expires `jwt_expire_minutes` after `now`.

    `iat` and `exp` are added here and override anything in `claims`.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = dict(claims)
    payload["iat"] = issued_at
    payload["exp"] = issued_at + timedelta(minutes=settings.jwt_expire_minutes)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        jwt.ExpiredSignatureError: the token is past its `exp`.
        jwt.InvalidTokenError:     any other signature, format or claim problem.
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["exp", "iat"]},
    )
