"""HTTP adapter over BillingEngine: unified actions and data endpoints."""

from api.app import create_app
from api.base import (
    APIResponse,
    ErrorCodes,
    error_response,
    success_response,
)
