"""
Book Catalogue Backend — Sample Data
=====================================

What:  Resets the catalogue to a known state: clears `users` and `books`,
       then loads one account and three books.
How:   Goes through the regular services, so the sample data passes the same
       validation and hashing as API traffic.
Usage: python -m book_catalog.seed

Missing tables are created first, so this also works on a fresh database
that has not been migrated.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import List

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from book_catalog import database
from book_catalog.models.book import Book, BookState
from book_catalog.models.user import User
from book_catalog.services import auth_service, book_service

logger = logging.getLogger(__name__)

SAMPLE_USER = {
    "username": "prueba",
    "email": "admin@libros.com",
    "password": "admin1234",
}

SAMPLE_BOOKS = [
    {
        "title": "Cien años de soledad",
        "author": "Gabriel García Márquez",
        "publicationYear": 1967,
        "state": BookState.AVAILABLE.value,
    },
    {
        "title": "Don Quijote de la Mancha",
        "author": "Miguel de Cervantes",
        "publicationYear": 1605,
        "state": BookState.RESERVED.value,
    },
    {
        "title": "Ficciones",
        "author": "Jorge Luis Borges",
        "publicationYear": 1944,
        "state": BookState.AVAILABLE.value,
    },
]


class SeedError(RuntimeError):
    pass


@dataclass(frozen=True)
class SeedSummary:
    users: int
    books: int
    credentials: List[str]


async def seed(db: AsyncSession) -> SeedSummary:
    """
    Replace the contents of both tables with the sample data.

    The services commit each account and book as it is created; the table
    clearing is committed along with the first of them.
    """
    await db.execute(delete(Book))
    await db.execute(delete(User))

    registered = await auth_service.register(
        db, SAMPLE_USER["username"], SAMPLE_USER["email"], SAMPLE_USER["password"]
    )
    if registered.is_err():
        raise SeedError(f"Sample user rejected: {registered.error.message}")

    for data in SAMPLE_BOOKS:
        created = await book_service.create(db, data)
        if created.is_err():
            raise SeedError(f"Sample book {data['title']!r} rejected: {created.error.message}")

    return SeedSummary(
        users=1,
        books=len(SAMPLE_BOOKS),
        credentials=[f"{SAMPLE_USER['email']} / {SAMPLE_USER['password']}"],
    )


async def run() -> SeedSummary:
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)

    async with database.async_session_factory() as session:
        summary = await seed(session)
        await session.commit()

    await database.dispose_engine()
    return summary


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.info("Seeding the catalogue...")
    try:
        summary = asyncio.run(run())
    except SeedError as e:
        logger.error("Seeding failed: %s", e)
        return 1

    logger.info("Created %d user(s) and %d book(s)", summary.users, summary.books)
    logger.info("=" * 50)
    for line in summary.credentials:
        logger.info("Sign in with: %s", line)
    logger.info("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
