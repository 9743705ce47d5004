"""
Book Catalogue Backend — Application Package Initializer
========================================================

What: Marks `book_catalog` as a Python package.
Who:  Imported by uvicorn (`book_catalog.main:app`), Alembic, pytest and the seed script.

Layers:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← parse request, forward result
    ├─────────────────────────────────────┤
    │   Validation (pydantic schemas)     │  ← reject bad payloads early
    ├─────────────────────────────────────┤
    │     Services (auth, books)          │  ← business rules, return Ok/Err
    ├─────────────────────────────────────┤
    │       Models (SQLAlchemy ORM)       │  ← users, books tables
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
