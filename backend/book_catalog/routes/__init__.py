# Routes package init
"""
Book Catalogue Backend — API Routes Package
============================================

Route Inventory:
    - auth.py:    POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
    - books.py:   GET/POST /api/books, GET /api/books/{available,reserved,recent},
                  GET /api/books/author/{author},
                  GET/PUT/DELETE /api/books/{id}, PATCH /api/books/{id}/state
    - health.py:  GET /health

Handlers stay thin: validate the input, call one service function, pass its
`Ok` / `Err` to `book_catalog.responses.respond()`.
"""
