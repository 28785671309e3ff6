import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from exco_nominations.errors import ErrorKind, NominationError

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.RESOLUTION_FAILED: 503,
    ErrorKind.PARTIAL_COMMIT: 500,
}

RETRYABLE = {ErrorKind.TRANSIENT, ErrorKind.RESOLUTION_FAILED}

# Framework-raised errors (authentication, unknown routes)
KIND_BY_HTTP_STATUS = {
    401: ErrorKind.ACCESS_DENIED,
    403: ErrorKind.ACCESS_DENIED,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.NOT_FOUND,
}

# Leading parts of a FastAPI error location that name where the value came from
REQUEST_SOURCES = ("body", "query", "path", "header", "cookie")


def error_response(kind: ErrorKind, message: str, field: Optional[str] = None) -> JSONResponse:
    body = {"detail": message, "kind": kind.value}
    if field:
        body["field"] = field
    if kind in RETRYABLE:
        body["retry"] = True
    return JSONResponse(status_code=HTTP_STATUS_BY_KIND[kind], content=body)


async def nomination_error_handler(request: Request, exc: NominationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed ({exc.kind.value}): {exc.message}")
    return error_response(exc.kind, exc.message, getattr(exc, "field", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters get the same error body as every other failure."""
    errors = exc.errors()
    if not errors:
        return error_response(ErrorKind.VALIDATION, "Invalid request.")
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in REQUEST_SOURCES]
    field = loc[-1] if loc else None
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request.")
    logger.info(f"{request.method} {request.url.path} rejected: {message}")
    return error_response(ErrorKind.VALIDATION, message, field)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = {"detail": exc.detail}
    kind = KIND_BY_HTTP_STATUS.get(exc.status_code)
    if kind:
        body["kind"] = kind.value
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))
