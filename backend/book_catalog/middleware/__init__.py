# Middleware package init
"""
Book Catalogue Backend — Middleware Package
============================================

Request path (outermost first):
    Rate Limit → Request ID → Logging → GZip → CORS → route

Rate limiting runs before anything else so rejected requests cost nothing,
and the request ID is set before logging so every access line carries it.
"""
