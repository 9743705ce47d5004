"""
Book Catalogue Client
=====================

`CatalogClient` talks to the HTTP API and returns `Ok` / `Err(ApiFailure)`.
`AppState` plus the pure functions in `state` hold what a front end needs
between calls (account, token, loaded books, filters) without globals.
"""

from book_catalog.client.api import ApiFailure, CatalogClient
from book_catalog.client.state import (
    AppState,
    CatalogueStats,
    Filters,
    View,
    book_removed,
    book_saved,
    books_loaded,
    catalogue_stats,
    filters_changed,
    filters_cleared,
    signed_in,
    signed_out,
    view_changed,
    visible_books,
)

__all__ = [
    "ApiFailure",
    "AppState",
    "CatalogClient",
    "CatalogueStats",
    "Filters",
    "View",
    "book_removed",
    "book_saved",
    "books_loaded",
    "catalogue_stats",
    "filters_changed",
    "filters_cleared",
    "signed_in",
    "signed_out",
    "view_changed",
    "visible_books",
]
