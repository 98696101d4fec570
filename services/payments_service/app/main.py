"""FastAPI application for the Payments Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.payments_service.routers import (
    checkout_router,
    coupons_router,
    manual_router,
)


def create_app() -> FastAPI:
    """Create and configure the Payments Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Course Payments Service",
        version="0.1.0",
        description="Manual UPI checkout, payment verification and coupon reporting.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # Consistent {"message": ...} error bodies
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "payments"}

    app.include_router(checkout_router)
    app.include_router(manual_router)
    app.include_router(coupons_router)

    return app


app = create_app()
