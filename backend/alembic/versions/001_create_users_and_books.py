"""Create users and books tables

Revision ID: 001
Revises: None
Create Date: 2024-09-06 00:00:00.000000+00:00

What:  Initial schema: `users` (accounts) and `books` (the catalogue).
How:   Plain VARCHAR/INTEGER/TIMESTAMP columns with CHECK and UNIQUE
       constraints, so the same DDL runs on PostgreSQL and SQLite. Identifiers
       are 24-hex strings generated by the application.

Rollback: downgrade() drops both tables (all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(24), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column(
            "email",
            sa.String(254),
            nullable=False,
            comment="Stored lower-cased; UNIQUE is therefore case-insensitive",
        ),
        sa.Column("password_hash", sa.String(128), nullable=False, comment="bcrypt hash"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "books",
        sa.Column("id", sa.String(24), nullable=False, comment="24-hex identifier (ObjectId layout)"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("author", sa.String(100), nullable=False),
        sa.Column("publication_year", sa.Integer(), nullable=False),
        sa.Column(
            "state",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'AVAILABLE'"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("publication_year >= 1000", name="ck_books_publication_year"),
        sa.CheckConstraint("state IN ('AVAILABLE', 'RESERVED')", name="ck_books_state"),
    )

    # Newest-first listing is the default order of every list endpoint
    op.create_index("idx_books_created_at", "books", [sa.text("created_at DESC")])
    op.create_index("idx_books_author", "books", ["author"])
    op.create_index("idx_books_state", "books", ["state"])


def downgrade() -> None:
    op.drop_index("idx_books_state", table_name="books")
    op.drop_index("idx_books_author", table_name="books")
    op.drop_index("idx_books_created_at", table_name="books")
    op.drop_table("books")
    op.drop_table("users")
