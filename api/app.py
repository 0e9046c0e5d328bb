"""FastAPI application factory for the billing engine."""

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, RequestIDMiddleware
from core.engine import BillingEngine


def create_app(engine: BillingEngine) -> FastAPI:
    """App with actor attribution, error handlers, and data/actions routes."""
    app = FastAPI(title="Agency Billing")
    app.add_middleware(ActorMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    services = engine.services()
    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
