"""
Book Catalogue Backend — Route Dependencies
============================================

What:  `require_auth`, the bearer-token guard on the book write endpoints.
How:   Reads `Authorization: Bearer <token>`, verifies the token, then loads
       the account it names. FastAPI dependencies cannot return an `Err`, so
       a failure is raised as `CatalogError` and turned into the usual 401
       payload by the handler in `main.py`.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog.database import get_db_session
from book_catalog.exceptions import CatalogError, Reason, authentication_failed
from book_catalog.models.user import User
from book_catalog.services import auth_service

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def bearer_token(request: Request) -> str:
    """The token from the Authorization header, or "" when absent or not a bearer."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return ""
    return header[len(BEARER_PREFIX):].strip()


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    token = bearer_token(request)
    if not token:
        raise CatalogError(authentication_failed("Access token required", Reason.MISSING_TOKEN))

    claims = auth_service.verify_token(token)
    if claims.is_err():
        raise CatalogError(claims.error)

    user = await auth_service.get_user(db, claims.value.user_id)
    if user.is_err():
        raise CatalogError(user.error)

    request.state.user_id = user.value.id
    return user.value
