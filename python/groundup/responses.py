"""JSON envelopes and the exception handlers that produce them.

    success: {"data": ...}
    failure: {"error": {"code": "E_...", "message": "...", "request_id": "..."}}

The enhancement stream is the one route outside this envelope. Once its
response has started, failures travel in-band as `data:` frames (see
groundup.services.enhance_stream).
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from groundup.errors import ApiError, ApiErrorCode
from groundup.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework-raised HTTP errors (unknown route, wrong method, ...)
_HTTP_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build an error envelope; request_id defaults to the current request's."""
    request_id = request_id or get_request_id()
    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def _error_json(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _error_json(exc.status_code, exc.code, exc.message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _HTTP_STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return _error_json(exc.status_code, code, str(exc.detail or "An error occurred"))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed JSON and schema violations are both 400 E_INVALID_REQUEST."""
    logger.info("request.invalid_body", error_count=len(exc.errors()))
    return _error_json(400, ApiErrorCode.E_INVALID_REQUEST, "Invalid request body")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 E_INTERNAL. The exception is logged here and never echoed to the client."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return _error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
