# broodlytics/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from broodlytics import __version__
from broodlytics.config import get_settings
from broodlytics.core.errors import GrowthEngineError
from broodlytics.observability.logging import configure_logging
from broodlytics.observability.metrics import router as observability_router
from broodlytics.observability.middleware import (
    growth_engine_error_handler,
    register_request_middleware,
    unhandled_exception_handler,
)
from broodlytics.routers.growth import router as growth_router
from broodlytics.routers.health import router as health_router

configure_logging()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Broodlytics", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400
    )

    if settings.TRUSTED_HOSTS:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.TRUSTED_HOSTS)

    register_request_middleware(app)
    app.add_exception_handler(GrowthEngineError, growth_engine_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(observability_router)
    app.include_router(growth_router)

    return app


app = create_app()
