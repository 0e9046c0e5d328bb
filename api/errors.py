"""Exception handlers turning billing and validation errors into error envelopes."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from api.base import error_json, ErrorCodes
from core.exceptions import (
    AlreadyConsolidatedError,
    BillingError,
    CurrencyMismatchError,
    DivisionByZeroError,
    DuplicateKeyError,
    DuplicatePeriodError,
    InvalidTransitionError,
    InvoiceAlreadyClosedError,
    OverpaymentRejectedError,
    PeriodAlreadyClosedError,
    PeriodClosedError,
    PeriodIncompleteError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their parents
BILLING_ERROR_MAP: list[tuple[type[BillingError], int, str]] = [
    (PeriodAlreadyClosedError, 409, ErrorCodes.PERIOD_ALREADY_CLOSED),
    (PeriodClosedError, 409, ErrorCodes.PERIOD_CLOSED),
    (AlreadyConsolidatedError, 409, ErrorCodes.ALREADY_CONSOLIDATED),
    (DuplicatePeriodError, 409, ErrorCodes.DUPLICATE_PERIOD),
    (DuplicateKeyError, 409, ErrorCodes.ALREADY_EXISTS),
    (InvoiceAlreadyClosedError, 409, ErrorCodes.INVOICE_ALREADY_CLOSED),
    (InvalidTransitionError, 409, ErrorCodes.INVALID_STATUS_TRANSITION),
    (OverpaymentRejectedError, 422, ErrorCodes.OVERPAYMENT_REJECTED),
    (CurrencyMismatchError, 422, ErrorCodes.CURRENCY_MISMATCH),
    (DivisionByZeroError, 422, ErrorCodes.DIVISION_BY_ZERO),
    (PeriodIncompleteError, 422, ErrorCodes.PERIOD_INCOMPLETE),
]


def billing_error_status(exc: BillingError) -> tuple[int, str]:
    """HTTP status and error code for a billing error."""
    for error_type, status_code, code in BILLING_ERROR_MAP:
        if isinstance(exc, error_type):
            return status_code, code
    return 400, ErrorCodes.INVALID_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    """
    Install the handlers on app.

    ValueError is the "bad input" channel of the services: messages containing
    "not found" become 404, anything else 400. Unexpected exceptions are
    logged and answered with a generic 500 that hides the detail.
    """

    @app.exception_handler(BillingError)
    async def billing_error_handler(request: Request, exc: BillingError):
        status_code, code = billing_error_status(exc)
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return error_json(request, status_code, code, str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return error_json(request, 404, ErrorCodes.NOT_FOUND, message)
        return error_json(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
