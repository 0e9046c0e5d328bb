"""Unified API response envelope and error codes."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Matches the X-Request-ID response header")


class APIResponse(BaseModel):
    """
    Envelope returned by every endpoint.

    Exactly one of data and error is set. Amounts inside data are scaled
    integers (*_scaled fields, 1 unit = 100000).
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta(request_id: str | None) -> APIMeta:
    return APIMeta(timestamp=now_utc(), request_id=request_id or str(uuid4()))


def success_response(data: Any, request_id: str | None = None) -> APIResponse:
    """Success envelope. Outside a request a fresh request_id is generated."""
    return APIResponse(success=True, data=data, meta=_meta(request_id))


def error_response(code: str, message: str, request_id: str | None = None) -> APIResponse:
    """Error envelope."""
    return APIResponse(
        success=False,
        error=APIError(code=code, message=message),
        meta=_meta(request_id),
    )


def request_id_of(request: Request) -> str | None:
    """Request ID assigned by RequestIDMiddleware, if it ran."""
    return getattr(request.state, "request_id", None)


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    return data


def ok(request: Request, data: Any) -> dict:
    """JSON body of a success envelope; pydantic models in data are dumped."""
    return success_response(_jsonable(data), request_id_of(request)).model_dump(mode="json")


def error_json(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    """Error envelope as a JSONResponse with the given status."""
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request_id_of(request)).model_dump(mode="json"),
    )


class ErrorCodes:
    """Machine-readable codes carried in APIError.code."""

    # Authentication
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Money
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"

    # Invoice Lifecycle
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    DUPLICATE_PERIOD = "DUPLICATE_PERIOD"
    INVOICE_ALREADY_CLOSED = "INVOICE_ALREADY_CLOSED"
    OVERPAYMENT_REJECTED = "OVERPAYMENT_REJECTED"

    # Periods & Ledger
    PERIOD_CLOSED = "PERIOD_CLOSED"
    PERIOD_ALREADY_CLOSED = "PERIOD_ALREADY_CLOSED"
    PERIOD_INCOMPLETE = "PERIOD_INCOMPLETE"
    ALREADY_CONSOLIDATED = "ALREADY_CONSOLIDATED"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
