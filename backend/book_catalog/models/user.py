"""
Book Catalogue Backend — User SQLAlchemy Model
===============================================

What:  ORM model for the `users` table (accounts that may edit the catalogue).
How:   `username` and `email` each carry a named UNIQUE constraint; the names
       are what the error classifier reads to report the colliding field.
       Emails are stored lower-cased, so the plain UNIQUE is case-insensitive.

The password hash lives only here. No response schema exposes it.
"""

from datetime import datetime

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from book_catalog.database import Base, generate_object_id, utcnow

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 254


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=generate_object_id)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=False)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    def __repr__(self) -> str:
        # password_hash never appears in the repr
        return f"<User(id={self.id}, username='{self.username}')>"
