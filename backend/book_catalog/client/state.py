"""
Book Catalogue Client — Application State
==========================================

What:  Everything a front end keeps between API calls, as one immutable value.
How:   `AppState` is a frozen dataclass. Each update function takes a state
       and returns a new one; nothing is mutated and nothing is global, so a
       caller decides where the current state lives.

    state = AppState()
    state = signed_in(state, auth)              # after api.login(...)
    state = books_loaded(state, books)          # after api.list_books()
    state = filters_changed(state, search="borges")
    shown = visible_books(state)
"""

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple, Union

from book_catalog.models.book import BookState
from book_catalog.schemas.auth import AuthResult, UserResponse
from book_catalog.schemas.book import BookResponse

RECENT_WINDOW = timedelta(days=30)


class View(str, enum.Enum):
    AUTH = "auth"
    DASHBOARD = "dashboard"
    BOOKS = "books"


@dataclass(frozen=True)
class Filters:
    """Client-side filters; empty values mean "no filter"."""

    search: str = ""
    state: Optional[BookState] = None
    author: str = ""

    @property
    def active(self) -> bool:
        return bool(self.search or self.state or self.author)


@dataclass(frozen=True)
class AppState:
    user: Optional[UserResponse] = None
    token: Optional[str] = None
    view: View = View.AUTH
    books: Tuple[BookResponse, ...] = ()
    filters: Filters = field(default_factory=Filters)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


@dataclass(frozen=True)
class CatalogueStats:
    total: int
    available: int
    reserved: int
    recent: int


# ── Session ───────────────────────────────────────────────────────────────

def signed_in(state: AppState, auth: AuthResult) -> AppState:
    return replace(state, user=auth.user, token=auth.token, view=View.DASHBOARD)


def signed_out(state: AppState) -> AppState:
    """Back to the sign-in view with no account, token or cached books."""
    return AppState()


def view_changed(state: AppState, view: View) -> AppState:
    return replace(state, view=View(view))


# ── Books ─────────────────────────────────────────────────────────────────

def books_loaded(state: AppState, books: Iterable[BookResponse]) -> AppState:
    return replace(state, books=tuple(books))


def book_saved(state: AppState, book: BookResponse) -> AppState:
    """Replace the book with the same id, or put a new one first (newest first)."""
    if any(existing.id == book.id for existing in state.books):
        books = tuple(book if existing.id == book.id else existing for existing in state.books)
    else:
        books = (book,) + state.books
    return replace(state, books=books)


def book_removed(state: AppState, book_id: str) -> AppState:
    return replace(state, books=tuple(b for b in state.books if b.id != book_id))


# ── Filters ───────────────────────────────────────────────────────────────

def filters_changed(
    state: AppState,
    search: Optional[str] = None,
    book_state: Optional[Union[BookState, str]] = None,
    author: Optional[str] = None,
) -> AppState:
    """Set the given filters and keep the others. Pass "" to clear one."""
    filters = state.filters
    if search is not None:
        filters = replace(filters, search=search.strip())
    if book_state is not None:
        filters = replace(filters, state=BookState(book_state) if book_state else None)
    if author is not None:
        filters = replace(filters, author=author.strip())
    return replace(state, filters=filters)


def filters_cleared(state: AppState) -> AppState:
    return replace(state, filters=Filters())


def visible_books(state: AppState) -> List[BookResponse]:
    """
    The loaded books that pass every active filter, in loaded order.

    search matches title or author, author matches author; both are
    case-insensitive substrings. state must match exactly.
    """
    filters = state.filters
    search = filters.search.lower()
    author = filters.author.lower()

    books = []
    for book in state.books:
        if search and search not in book.title.lower() and search not in book.author.lower():
            continue
        if filters.state is not None and book.state != filters.state:
            continue
        if author and author not in book.author.lower():
            continue
        books.append(book)
    return books


def catalogue_stats(
    books: Iterable[BookResponse],
    now: Optional[datetime] = None,
) -> CatalogueStats:
    """Totals per state plus how many books were added in the last 30 days."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - RECENT_WINDOW

    total = available = reserved = recent = 0
    for book in books:
        total += 1
        if book.state == BookState.AVAILABLE:
            available += 1
        elif book.state == BookState.RESERVED:
            reserved += 1
        created_at = book.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if created_at >= cutoff:
            recent += 1
    return CatalogueStats(total=total, available=available, reserved=reserved, recent=recent)
