"""
Book Catalogue Backend — Auth Service
======================================

What:  Account registration, credential checks and session-token handling.
How:   Module-level async functions taking the request's `AsyncSession`.
       Failures come back as `Err(ServiceError)`; nothing here raises for a
       business outcome.

Operations:
    register(db, username, email, password)  → Ok(AuthResult) | Err(ALREADY_EXISTS)
    authenticate(db, email, password)        → Ok(AuthResult) | Err(AUTHENTICATION)
    issue_token(claims)                      → str
    verify_token(token)                      → Ok(TokenClaims) | Err(AUTHENTICATION)
    get_user(db, user_id)                    → Ok(User) | Err(AUTHENTICATION)

Unknown email and wrong password yield the same error, and both run one
bcrypt comparison, so neither the payload nor the timing tells them apart.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog.exceptions import (
    Reason,
    ServiceError,
    already_exists,
    authentication_failed,
    classify_persistence_error,
)
from book_catalog.models.user import User
from book_catalog.result import Err, Ok, Result
from book_catalog.schemas.auth import AuthResult, TokenClaims, UserResponse
from book_catalog.services import security

logger = logging.getLogger(__name__)

USER_UNIQUE_FIELDS = ("username", "email")
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"

# Compared against when the email is unknown; computed on first use
_dummy_hash: Optional[str] = None


async def _get_dummy_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await security.hash_password("not-a-real-password")
    return _dummy_hash


def _invalid_credentials() -> ServiceError:
    return authentication_failed(INVALID_CREDENTIALS_MESSAGE, Reason.INVALID_CREDENTIALS)


def _auth_result(user: User) -> AuthResult:
    token = issue_token({"userId": user.id, "email": user.email})
    return AuthResult(user=UserResponse.model_validate(user), token=token)


# ══════════════════════════════════════════════════════════════════════════
# Tokens
# ══════════════════════════════════════════════════════════════════════════


def issue_token(claims: Dict[str, Any]) -> str:
    """Signed session token carrying at least `userId` and `email`."""
    if "userId" not in claims or "email" not in claims:
        raise ValueError("Token claims must include userId and email")
    return security.sign_token(claims)


def verify_token(token: str) -> Result[TokenClaims, ServiceError]:
    """Decode and check a session token, telling expiry apart from every other failure."""
    try:
        payload = security.decode_token(token)
    except jwt.ExpiredSignatureError:
        return Err(authentication_failed("Token expired", Reason.TOKEN_EXPIRED))
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected session token: %s", type(exc).__name__)
        return Err(authentication_failed("Invalid token", Reason.INVALID_TOKEN))

    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, str) or not isinstance(email, str):
        return Err(authentication_failed("Invalid token", Reason.INVALID_TOKEN))

    return Ok(
        TokenClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    )


# ══════════════════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════════════════


async def register(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
) -> Result[AuthResult, ServiceError]:
    """
    Create an account and sign it in.

    Fails with ALREADY_EXISTS (`details.field` = "username" or "email") when
    either value is taken. Email is compared lower-cased; when both collide the
    email is reported.

    Who:     POST /api/auth/register, and the seed script.
    When:    The account is committed before the token is issued. A concurrent
             registration that slips past the lookup trips the UNIQUE
             constraint at commit and is reported the same way.
    """
    email = email.lower()
    try:
        result = await db.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        existing = result.scalars().all()
        if existing:
            field_name = "email" if any(u.email == email for u in existing) else "username"
            logger.info("Registration rejected: %s already in use", field_name)
            return Err(already_exists(field_name))

        user = User(
            username=username,
            email=email,
            password_hash=await security.hash_password(password),
        )
        db.add(user)
        await db.commit()
    except SQLAlchemyError as exc:
        # A concurrent registration can still trip the UNIQUE constraints here
        await db.rollback()
        return Err(classify_persistence_error(
            exc, USER_UNIQUE_FIELDS, "Could not register the account. Please try again."
        ))

    logger.info("Registered user %s", user.id)
    return Ok(_auth_result(user))


async def authenticate(
    db: AsyncSession,
    email: str,
    password: str,
) -> Result[AuthResult, ServiceError]:
    """Check credentials and issue a fresh token."""
    try:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        await db.rollback()
        return Err(classify_persistence_error(exc, message="Could not sign in. Please try again."))

    if user is None:
        await security.verify_password(password, await _get_dummy_hash())
        return Err(_invalid_credentials())

    if not await security.verify_password(password, user.password_hash):
        return Err(_invalid_credentials())

    logger.info("User %s authenticated", user.id)
    return Ok(_auth_result(user))


async def get_user(db: AsyncSession, user_id: str) -> Result[User, ServiceError]:
    """The account behind a verified token; a deleted account counts as an invalid token."""
    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        return Err(classify_persistence_error(exc))
    if user is None:
        return Err(authentication_failed("User no longer exists", Reason.INVALID_TOKEN))
    return Ok(user)
