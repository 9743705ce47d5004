"""
Book Catalogue Backend — Auth Schemas
======================================

What:  Register/login payload rules and the account shapes returned to clients.
       `UserResponse` has no password field, so a hash can never be serialized.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, Field, StringConstraints, field_validator

from book_catalog.models.user import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH
from book_catalog.schemas.common import CamelModel, ResponseModel, UtcDatetime

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128

# Passwords are taken verbatim; the model-wide whitespace trimming does not apply
RawPassword = Annotated[str, StringConstraints(strip_whitespace=False)]


class RegisterRequest(CamelModel):
    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    email: EmailStr
    password: RawPassword = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(CamelModel):
    email: EmailStr
    password: RawPassword = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(ResponseModel):
    id: str
    username: str
    email: str
    created_at: UtcDatetime


class AuthResult(ResponseModel):
    """Returned by register and login: the account plus a fresh session token."""

    user: UserResponse
    token: str


@dataclass(frozen=True)
class TokenClaims:
    """Claims embedded in a session token."""

    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime
