"""
Book Catalogue Backend — Auth Route Handlers
=============================================

What:  POST /api/auth/register, POST /api/auth/login and GET /api/auth/me.
How:   Validate the body, call the auth service, forward the result.
       Register and login both answer with `{user, token}`.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog.database import get_db_session
from book_catalog.dependencies import require_auth
from book_catalog.models.user import User
from book_catalog.responses import error_response, respond, success_response
from book_catalog.schemas.auth import LoginRequest, RegisterRequest, UserResponse
from book_catalog.schemas.common import ErrorResponse
from book_catalog.services import auth_service
from book_catalog.validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    responses={
        400: {"description": "Invalid registration data", "model": ErrorResponse},
        409: {"description": "Username or email already in use", "model": ErrorResponse},
    },
    summary="Create an account",
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": RegisterRequest.model_json_schema(by_alias=True)
    }}}},
)
async def register(
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    data = validate(RegisterRequest, payload)
    if data.is_err():
        return error_response(data.error, request)
    account = data.value

    result = await auth_service.register(db, account.username, account.email, account.password)
    return respond(result, request, message="User registered successfully", status_code=201)


@router.post(
    "/login",
    responses={
        400: {"description": "Malformed credentials", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Sign in",
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": LoginRequest.model_json_schema(by_alias=True)
    }}}},
)
async def login(
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    data = validate(LoginRequest, payload)
    if data.is_err():
        return error_response(data.error, request)
    credentials = data.value

    result = await auth_service.authenticate(db, credentials.email, credentials.password)
    return respond(result, request, message="Login successful")


@router.get(
    "/me",
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="The signed-in account",
)
async def me(user: User = Depends(require_auth)) -> JSONResponse:
    return success_response(UserResponse.model_validate(user))
