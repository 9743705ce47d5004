"""
Book Catalogue Backend — Response Translation
==============================================

What:  The single place where service outcomes become HTTP responses.
How:   `respond()` takes an `Ok` / `Err` from a service. `Ok` becomes the
       success envelope; `Err` is handed to `error_response()`, which maps the
       error kind to its status code and builds the normalized failure payload.
       The exception handlers in `main.py` go through `error_response()` too.

Envelopes:
    success  {success: true, message?, data?}
    failure  {success: false, message, errorType, details?, requestId,
              timestamp, path, method, debug?}

`debug` carries the underlying exception (name, text, stack) and is only
attached outside production.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.requests import Request

from book_catalog.config import settings
from book_catalog.exceptions import ErrorKind, ServiceError
from book_catalog.middleware.request_id import REQUEST_ID_HEADER, request_id_var
from book_catalog.result import Err, Result
from book_catalog.schemas.common import ErrorResponse, SuccessResponse

logger = logging.getLogger(__name__)


def _serialize(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, (list, tuple)):
        return [_serialize(item) for item in data]
    return jsonable_encoder(data, by_alias=True)


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    """Success envelope; pydantic models are dumped with their camelCase aliases."""
    body = SuccessResponse(message=message, data=_serialize(data))
    # Only the envelope's own empty keys are dropped; nulls inside data stay
    content = body.model_dump(mode="json", exclude={
        key for key in ("message", "data") if getattr(body, key) is None
    })
    return JSONResponse(status_code=status_code, content=content)


def _debug_block(cause: BaseException) -> dict:
    return {
        "name": type(cause).__name__,
        "originalError": str(cause),
        "stack": "".join(
            traceback.format_exception(type(cause), cause, cause.__traceback__)
        ),
    }


def _with_request_id(headers: Optional[dict], rid: str) -> Optional[dict]:
    # The catch-all 500 handler sits outside RequestIDMiddleware
    if not rid:
        return headers
    return {**(headers or {}), REQUEST_ID_HEADER: rid}


def error_response(
    error: ServiceError,
    request: Request,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Failure envelope with the status code of the error's kind.

    What:    Logs the failure (INTERNAL at error level with the traceback,
             everything else at info) and builds the normalized payload.
    Who:     `respond()` for service `Err`s and every exception handler in
             `main.py`.
    When:    The request id is echoed in `X-Request-ID` here as well, so
             responses produced outside RequestIDMiddleware still carry it.
    """
    rid = request_id_var.get("") or getattr(request.state, "request_id", "")

    if error.kind is ErrorKind.INTERNAL:
        logger.error(
            "[%s] %s %s failed: %s",
            rid, request.method, request.url.path, error.message,
            exc_info=error.cause,
        )
    else:
        logger.info(
            "[%s] %s %s rejected: %s %s",
            rid, request.method, request.url.path, error.kind.value, error.message,
        )

    body = ErrorResponse(
        message=error.message,
        error_type=error.kind.value,
        details=error.public_details(),
        request_id=rid or None,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        method=request.method,
        debug=_debug_block(error.cause) if error.cause is not None and not settings.is_production else None,
    )
    return JSONResponse(
        status_code=error.status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True)),
        headers=_with_request_id(headers, rid),
    )


def respond(
    result: Result[Any, ServiceError],
    request: Request,
    message: Optional[str] = None,
    status_code: int = 200,
    wrap: Optional[Callable[[Any], Any]] = None,
) -> JSONResponse:
    """
    Forward a service result to the client.

    Args:
        result:      What the service returned.
        request:     The current request (for the error payload's path/method).
        message:     Success message.
        status_code: Status for the success case.
        wrap:        Optional transform applied to the value before serializing.
    """
    if isinstance(result, Err):
        return error_response(result.error, request)
    value = result.value
    if wrap is not None:
        value = wrap(value)
    return success_response(value, message=message, status_code=status_code)
