"""
Book Catalogue Backend — FastAPI Application Factory
=====================================================

What:  Builds the FastAPI application: middleware, exception handlers, routers.
How:   `create_app()` returns a configured instance; `app` at the bottom is
       what uvicorn serves (`uvicorn book_catalog.main:app`).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │ /api/auth/*  │ │/api/books│ │ GET /health     │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Exception Handlers (all → error envelope):         │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ CatalogError │ RequestValidation→400 │ 404   │   │
    │  │ Exception→500                                │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, ready banner.
    Shutdown: dispose the database engine.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from book_catalog import __version__
from book_catalog.config import settings
from book_catalog.database import dispose_engine
from book_catalog.exceptions import (
    CatalogError,
    ErrorKind,
    ServiceError,
    internal_error,
    validation_failed,
)
from book_catalog.middleware.logging import RequestLoggingMiddleware
from book_catalog.middleware.rate_limit import RateLimitMiddleware
from book_catalog.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from book_catalog.responses import error_response, success_response
from book_catalog.routes import auth, books, health
from book_catalog.validation import violations_from_pydantic_errors

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole process.

    Format: `%(asctime)s [%(levelname)s] %(name)s: %(message)s` on stdout.
    Chatty third-party loggers are held at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Book Catalogue Backend starting up (%s)...", settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        logger.error("Fix the configuration and restart the server.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/api-docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Book Catalogue Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Translate everything that escapes a handler into the error envelope.

        CatalogError            → the wrapped ServiceError's status
        RequestValidationError  → 400 VALIDATION_ERROR
        HTTPException 404       → 404 NOT_FOUND_ERROR (unknown route)
        HTTPException other     → same status, kind picked from the status class
        Exception               → 500 INTERNAL_SERVER_ERROR
    """

    @app.exception_handler(CatalogError)
    async def handle_catalog_error(request: Request, exc: CatalogError):
        return error_response(exc.error, request)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        error = validation_failed(violations_from_pydantic_errors(exc.errors()))
        return error_response(error, request)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error = ServiceError(
                kind=ErrorKind.NOT_FOUND,
                message=f"Route {request.method} {request.url.path} not found",
                details={"resource": "route"},
            )
        elif exc.status_code == 401:
            error = ServiceError(kind=ErrorKind.AUTHENTICATION, message=str(exc.detail))
        elif exc.status_code == 403:
            error = ServiceError(kind=ErrorKind.AUTHORIZATION, message=str(exc.detail))
        elif exc.status_code < 500:
            error = ServiceError(kind=ErrorKind.VALIDATION, message=str(exc.detail))
        else:
            error = internal_error(str(exc.detail))
        response = error_response(error, request, headers=getattr(exc, "headers", None))
        if exc.status_code not in (400, 401, 403, 404, 500):
            response.status_code = exc.status_code
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        return error_response(
            internal_error("Internal server error", cause=exc),
            request,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Book Catalogue API",
        description=(
            "Book catalogue management: public listing and search, authenticated "
            "create/update/delete and AVAILABLE ⇄ RESERVED state changes."
        ),
        version=__version__,
        docs_url="/api-docs",
        redoc_url=None,
        openapi_url="/api-docs/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins != "*",
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(books.router)
    app.include_router(health.router)

    @app.get("/", tags=["Health"], summary="Service information")
    async def root():
        return success_response(
            {
                "name": "Book Catalogue API",
                "version": __version__,
                "environment": settings.environment,
                "documentation": "/api-docs",
                "endpoints": {"auth": "/api/auth", "books": "/api/books", "health": "/health"},
            },
            message="Book Catalogue API",
        )

    return app


app = create_app()
