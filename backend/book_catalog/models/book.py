"""
Book Catalogue Backend — Book SQLAlchemy Model
===============================================

What:  ORM model for the `books` table.
How:   Column constraints mirror the validation schemas so the store rejects
       bad rows even if a caller skips validation: NOT NULL, VARCHAR lengths,
       a CHECK on the lowest publication year and a CHECK on the state enum.

Query Patterns:
    - List newest first: ORDER BY created_at DESC   → idx_books_created_at
    - Filter by state: WHERE state = :state          → idx_books_state
    - Filter by author: WHERE lower(author) LIKE ... → idx_books_author
"""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from book_catalog.database import Base, generate_object_id, utcnow

TITLE_MAX_LENGTH = 200
AUTHOR_MAX_LENGTH = 100
MIN_PUBLICATION_YEAR = 1000


class BookState(str, enum.Enum):
    """Availability of a book. Either state may move to the other; none is terminal."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Book(Base):
    """A single catalogue entry. Hard-deleted; no tombstones."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(
        String(24),
        primary_key=True,
        default=generate_object_id,
        comment="24-hex identifier (ObjectId layout)",
    )

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)

    author: Mapped[str] = mapped_column(String(AUTHOR_MAX_LENGTH), nullable=False)

    publication_year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Plain VARCHAR + CHECK rather than a native ENUM type so the same DDL runs on SQLite
    state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookState.AVAILABLE.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        CheckConstraint(
            f"publication_year >= {MIN_PUBLICATION_YEAR}",
            name="ck_books_publication_year",
        ),
        CheckConstraint(
            "state IN ('AVAILABLE', 'RESERVED')",
            name="ck_books_state",
        ),
        Index("idx_books_author", "author"),
        Index("idx_books_state", "state"),
    )

    @property
    def is_available(self) -> bool:
        return self.state == BookState.AVAILABLE.value

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', state='{self.state}')>"


# Declared after the class so the column expression is bound to the table
Index("idx_books_created_at", Book.created_at.desc())
