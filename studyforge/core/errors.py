"""Error normalization and handlers.

Every rejected request answers with ``{"error": <message>, "code", "request_id"}``
so callers can tell a rejection (4xx/5xx, no content) apart from a partial
success (207, content present).
"""

import logging
import builtins
from typing import Any, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from studyforge.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.details = details


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class UnauthenticatedError(AppError):
    code = "unauthenticated"
    status_code = 401


class InvalidTokenError(UnauthenticatedError):
    """The identity provider rejected the bearer token."""
    code = "invalid_token"


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class IdentityUnavailableError(AppError):
    """The identity provider could not be reached or is misconfigured."""
    code = "identity_unavailable"
    status_code = 503


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, details: Optional[Any] = None) -> dict:
    payload = {"error": message, "code": code, "request_id": request_id}
    if details is not None:
        payload["details"] = details
    return payload


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.details)
    logger = logging.getLogger("studyforge")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("studyforge")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger = logging.getLogger("studyforge")
    logger.warning("request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400})
    response = JSONResponse(
        status_code=400,
        content=_error_payload("validation_error", "Invalid request data", rid, details),
    )
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("studyforge")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Internal server error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
