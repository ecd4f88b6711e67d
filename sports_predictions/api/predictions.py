"""
@file: predictions.py
@description:
Provides API endpoints to manage and retrieve event predictions.

Routes:
- GET /api/predictions : filtered, paginated list of predictions
- GET /api/predictions/{prediction_id} : a single prediction
- POST /api/predictions : create the prediction for an event
- PATCH /api/predictions/{prediction_id} : partial update

@dependencies:
- FastAPI APIRouter for route definitions.
- PredictionService for validation and data access.
- Pydantic schemas (PredictionCreate, PredictionUpdate, PredictionListResponse,
  PredictionResponse) for validation and serialization.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sports_predictions.db.session import get_session
from sports_predictions.schemas.predictions import (
    PredictionCreate,
    PredictionListResponse,
    PredictionResponse,
    PredictionUpdate,
)
from sports_predictions.services.prediction_service import PredictionService

router = APIRouter()


@router.get("/predictions", response_model=PredictionListResponse, tags=["Predictions"])
async def list_predictions(
    sport: Optional[str] = None,
    league: Optional[str] = None,
    team: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    predictionType: Optional[str] = None,
    minConfidence: Optional[str] = None,
    includeArchived: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """
    GET /api/predictions

    Retrieves predictions whose owning event matches the sport, league, team
    and date filters and whose own type and confidence match.

    Raises:
        ValidationError (400): for an unknown predictionType, a minConfidence
            outside [0, 100], a non-integer page/limit or an unparseable date.

    Example Response:
    {
      "data": [
        {
          "id": 1,
          "event_id": 7,
          "prediction_type": "WINNER",
          "predicted_value": "Liverpool",
          "confidence_score": 72.5,
          "reasoning": "Home form",
          "model_version": "v1",
          "created_at": "2026-01-10T09:00:00Z",
          "updated_at": "2026-01-10T09:00:00Z"
        }
      ],
      "pagination": {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
    }
    """
    query = {
        "sport": sport,
        "league": league,
        "team": team,
        "startDate": startDate,
        "endDate": endDate,
        "predictionType": predictionType,
        "minConfidence": minConfidence,
        "includeArchived": includeArchived,
        "page": page,
        "limit": limit,
    }
    return await PredictionService(session).list_predictions(query)


@router.get("/predictions/{prediction_id}", response_model=PredictionResponse, tags=["Predictions"])
async def get_prediction(
    prediction_id: int,
    session: AsyncSession = Depends(get_session),
):
    prediction = await PredictionService(session).get_prediction(prediction_id)
    return PredictionResponse(data=prediction)


@router.post(
    "/predictions",
    response_model=PredictionResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Predictions"],
)
async def create_prediction(
    prediction_in: PredictionCreate,
    session: AsyncSession = Depends(get_session),
):
    """
    POST /api/predictions

    Creates the prediction for an event. An event has at most one prediction;
    posting again for the same event returns the stored one.

    Raises:
        NotFoundError (404): if event_id does not exist.
    """
    prediction = await PredictionService(session).create_prediction(prediction_in)
    return PredictionResponse(data=prediction)


@router.patch("/predictions/{prediction_id}", response_model=PredictionResponse, tags=["Predictions"])
async def update_prediction(
    prediction_id: int,
    prediction_in: PredictionUpdate,
    session: AsyncSession = Depends(get_session),
):
    prediction = await PredictionService(session).update_prediction(prediction_id, prediction_in)
    return PredictionResponse(data=prediction)
