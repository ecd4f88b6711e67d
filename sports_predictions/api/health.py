"""
@file: health.py
@description:
Health check endpoint reporting whether the service can reach its database.

@dependencies:
- FastAPI APIRouter for route definitions.
- sports_predictions.db.session: Database handle for the connectivity probe
- sports_predictions.core.logger: For component-specific logging

@notes:
- Returns 200 with status "healthy" when the database answers, otherwise 503
  with status "unhealthy". The body shape is the same in both cases.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from sports_predictions.core.logger import setup_logger
from sports_predictions.db.session import Database, get_database
from sports_predictions.db.types import utc_now
from sports_predictions.services.identity import format_instant

# Create a component-specific logger
logger = setup_logger("sports_predictions.api.health")

# Create a new router instance for health checks
router = APIRouter()


@router.get("/health", tags=["Health"])
async def health_check(database: Database = Depends(get_database)):
    """
    Health Check Endpoint

    Returns:
        JSONResponse: `{status, timestamp, services: {database}}`, 200 or 503.
    """
    logger.debug("Health check requested")
    database_up = await database.health_check()

    if not database_up:
        logger.warning("Health check failed: database unreachable")

    return JSONResponse(
        status_code=status.HTTP_200_OK if database_up else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if database_up else "unhealthy",
            "timestamp": format_instant(utc_now()),
            "services": {"database": "up" if database_up else "down"},
        },
    )
