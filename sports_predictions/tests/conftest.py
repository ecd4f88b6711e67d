"""
@file: conftest.py
@description:
This module provides pytest fixtures and configuration for the Sports Predictions API test suite.
It sets up common test fixtures that can be reused across test modules.

Fixtures include:
- Test settings pointing at an in-memory SQLite database
- A Database handle with all tables created, and a session on it
- Test client setup
- Record factories for events and predictions

@dependencies:
- pytest / pytest_asyncio: For test framework and async fixtures
- fastapi.testclient: For testing FastAPI applications
- sports_predictions.main: The application factory

@notes:
- Every test gets a fresh in-memory database
- Rate limiting is disabled so no Redis is needed
"""

import os

# Celery runs tasks eagerly when TESTING is set; must happen before the app is imported
os.environ.setdefault("TESTING", "True")

from datetime import datetime, timezone
from typing import Any, Dict

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from sports_predictions.core.config import Settings
from sports_predictions.db.session import Database
from sports_predictions.main import create_app


@pytest.fixture
def test_settings():
    """
    Settings for an in-memory SQLite database with rate limiting off.
    The .env file is ignored so a developer's local config cannot leak in.
    """
    return Settings(
        _env_file=None,
        APP_ENV="test",
        DATABASE_URL="sqlite+aiosqlite://",
        DB_CREATE_TABLES=True,
        RATE_LIMIT_ENABLED=False,
        ARCHIVE_RETENTION_DAYS=30,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    """A fresh database with all tables created."""
    db = Database(test_settings)
    await db.init()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def test_client(test_settings):
    """
    Fixture that returns a TestClient instance for an app built on the test settings.
    Entering the client runs the lifespan, which creates the tables.
    """
    with TestClient(create_app(test_settings)) as client:
        yield client


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_event(**overrides) -> Dict[str, Any]:
    """Event column values with sensible defaults."""
    event = {
        "sport": "Football",
        "league": "Premier League",
        "home_team": "Liverpool",
        "away_team": "Arsenal",
        "event_date": datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc),
        "venue": "Anfield",
    }
    event.update(overrides)
    return event


def make_prediction(event_id: int, **overrides) -> Dict[str, Any]:
    prediction = {
        "event_id": event_id,
        "prediction_type": "WINNER",
        "predicted_value": "Liverpool",
        "confidence_score": 70.0,
        "reasoning": "Strong home form",
        "model_version": "v1",
    }
    prediction.update(overrides)
    return prediction


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def prediction_factory():
    return make_prediction
