"""
Repositories Package for the Sports Predictions API.

Data access for events and predictions. Each repository wraps one
AsyncSession and exposes idempotent creates, point lookups, filtered and
paginated listing, partial updates and deletes. Store failures surface as
StorageError.
"""

from sports_predictions.repositories.event_repository import EventRepository
from sports_predictions.repositories.prediction_repository import PredictionRepository

__all__ = ["EventRepository", "PredictionRepository"]
