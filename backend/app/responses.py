"""
Response envelope and error mapping for the HTTP surface.

Success:  {"success": true,  "data": ..., "message": ..., "code": 200, "timestamp": ...}
Failure:  {"success": false, "error": "RESOURCE_NOT_FOUND", "message": ..., "code": 404, "timestamp": ...}

Timestamps are ISO-8601 (UTC).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.services.errors import (
    ErrorKind,
    InvalidMatchResultError,
    MatchAlreadyCompletedError,
    TournamentError,
)

logger = logging.getLogger(__name__)


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BUSINESS_INVALID_MATCH_RESULT = "BUSINESS_INVALID_MATCH_RESULT"
    BUSINESS_MATCH_ALREADY_COMPLETED = "BUSINESS_MATCH_ALREADY_COMPLETED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    DATABASE_CONNECTION_ERROR = "DATABASE_CONNECTION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


_KIND_TO_HTTP: Dict[ErrorKind, Tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, ErrorCode.VALIDATION_ERROR),
    ErrorKind.NOT_FOUND: (404, ErrorCode.RESOURCE_NOT_FOUND),
    ErrorKind.DUPLICATE: (409, ErrorCode.RESOURCE_CONFLICT),
    ErrorKind.CONSTRAINT: (400, ErrorCode.CONSTRAINT_VIOLATION),
    ErrorKind.CONNECTION: (503, ErrorCode.DATABASE_CONNECTION_ERROR),
    ErrorKind.TRANSACTION: (500, ErrorCode.DATABASE_ERROR),
    ErrorKind.QUERY: (500, ErrorCode.DATABASE_ERROR),
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def http_status_for(exc: TournamentError) -> Tuple[int, str]:
    """HTTP status and machine-readable code for a service error."""
    if isinstance(exc, MatchAlreadyCompletedError):
        return 409, ErrorCode.BUSINESS_MATCH_ALREADY_COMPLETED
    if isinstance(exc, InvalidMatchResultError):
        return 400, ErrorCode.BUSINESS_INVALID_MATCH_RESULT
    return _KIND_TO_HTTP.get(exc.kind, (500, ErrorCode.DATABASE_ERROR))


def envelope(data: Any = None, message: str = "OK", code: int = 200) -> Dict[str, Any]:
    return {
        "success": True,
        "data": jsonable_encoder(data),
        "message": message,
        "code": code,
        "timestamp": _timestamp(),
    }


def error_envelope(error: str, message: str, code: int, details: Optional[Any] = None) -> Dict[str, Any]:
    body = {
        "success": False,
        "error": error,
        "message": message,
        "code": code,
        "timestamp": _timestamp(),
    }
    if details is not None:
        body["details"] = details
    return body


async def tournament_error_handler(request: Request, exc: TournamentError) -> JSONResponse:
    status_code, error = http_status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        message = "database error" if status_code == 500 else "database unavailable"
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        message = exc.message
    return JSONResponse(status_code=status_code, content=error_envelope(error, message, status_code))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    logger.warning(f"Validation error on {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(error_envelope(ErrorCode.VALIDATION_ERROR, "invalid request", 400, details)),
    )
