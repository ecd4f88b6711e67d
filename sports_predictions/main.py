"""
Main application entry point for the Sports Predictions API.

This module builds the FastAPI application with its configuration, middleware,
error handlers and routers. The database handle and the rate limiter are
created in the application lifespan and released when it ends.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI

from sports_predictions.api import events, health, predictions
from sports_predictions.core.config import Settings, get_settings
from sports_predictions.core.errors import register_exception_handlers
from sports_predictions.core.logger import setup_logger
from sports_predictions.core.middleware import (
    rate_limit,
    setup_all_middleware,
    setup_rate_limiting,
    shutdown_rate_limiting,
)
from sports_predictions.db.session import Database

logger = setup_logger("sports_predictions.main")

API_VERSION = "1.0.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings; the environment-loaded settings when omitted.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings)
        await database.init()
        if settings.DB_CREATE_TABLES:
            await database.create_all()
        app.state.database = database
        await setup_rate_limiting(app, settings)
        logger.info(f"Sports Predictions API started ({settings.APP_ENV})")
        try:
            yield
        finally:
            await shutdown_rate_limiting(app)
            await database.dispose()
            logger.info("Sports Predictions API stopped")

    app = FastAPI(
        title="Sports Predictions API",
        description="CRUD API for sports events and their predictions",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = None

    setup_all_middleware(app, settings)
    register_exception_handlers(app)

    # Rate limiting applies to every /api route
    api_router = APIRouter(prefix="/api", dependencies=[Depends(rate_limit)])
    api_router.include_router(predictions.router)
    api_router.include_router(events.router)
    app.include_router(api_router)
    app.include_router(health.router)

    @app.get("/", tags=["Health"])
    async def root():
        """
        Root endpoint providing basic API information.
        """
        return {
            "status": "online",
            "api": "Sports Predictions API",
            "version": API_VERSION,
        }

    return app


app = create_app()

if __name__ == "__main__":
    # Run the API with uvicorn when script is executed directly
    uvicorn.run("sports_predictions.main:app", host="0.0.0.0", port=8000, reload=True)
