"""FastAPI application for the onboarding backoffice."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from onboarding.config import get_settings
from onboarding.infra.logging_config import LoggingConfig, get_logger
from onboarding.routers import admin_router, conversations_router, feedback_router

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "Starting %s (environment=%s, auth=%s)",
        settings.app_name,
        settings.environment,
        "disabled" if settings.disable_auth else "enabled",
    )
    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    LoggingConfig()
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.include_router(conversations_router.router)
    app.include_router(feedback_router.router)
    app.include_router(admin_router.router)

    @app.get("/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
