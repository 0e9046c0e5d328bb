"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.base import error_json, ErrorCodes
from utils.actor_context import actor_context

ACTOR_HEADER = "X-Actor-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """
    Attributes every API request to the operator named in the X-Actor-ID header.

    Requests under /api without a valid operator UUID are rejected with 401.
    Authentication itself happens upstream (gateway or reverse proxy).
    """

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith("/api"):
            return await call_next(request)

        raw = request.headers.get(ACTOR_HEADER)
        try:
            actor_id = UUID(raw) if raw else None
        except ValueError:
            actor_id = None

        if actor_id is None:
            return error_json(
                request,
                401,
                ErrorCodes.NOT_AUTHENTICATED,
                f"{ACTOR_HEADER} header with an operator UUID is required",
            )

        request.state.actor_id = actor_id
        with actor_context(actor_id):
            return await call_next(request)
