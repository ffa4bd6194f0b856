"""
app/api/v1/endpoints/forecaster.py
───────────────────────────────────
Neural forecaster endpoints.

Routes
------
POST /api/v1/neural/predict      Prediction from a telemetry history.
POST /api/v1/neural/train        Fit the model on (window → target) examples.
GET  /api/v1/neural/status       Training status and model metadata.
POST /api/v1/neural/model/save   Persist the model to the configured store.
POST /api/v1/neural/model/load   Replace the model with the stored copy.

Design note
-----------
Inference and training are CPU-bound and never run on the event loop.
Predictions and store I/O go through ``_executor``; fits run on the
forecaster's single training thread and are awaited via ``wrap_future``.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_forecaster
from neural import (
    DomainError,
    Forecaster,
    PersistenceError,
    TrainingError,
    TrainingInProgressError,
)
from schemas.prediction import Prediction
from schemas.telemetry import PredictRequest
from schemas.training import StatusResponse, TrainingSummary, TrainRequest

logger = logging.getLogger(__name__)
router = APIRouter()

# Predictions and store I/O; fits use the forecaster's own thread.
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="neural")


@router.post("/predict", response_model=Prediction, summary="Short-term trend prediction")
async def predict(
    request: PredictRequest,
    forecaster: Forecaster = Depends(get_forecaster),
) -> Prediction:
    """
    Predict trend, next price, confidence and volatility.

    Args:
        request: History ordered oldest → newest, at least ``timesteps`` long.

    Returns:
        Prediction serialised with camelCase field names.

    Raises:
        HTTPException 422: Too little history, or degenerate values.
    """
    loop = asyncio.get_event_loop()
    try:
        return await loop.run_in_executor(_executor, forecaster.predict, request.history)
    except DomainError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Prediction failed for %d samples", len(request.history))
        raise HTTPException(status_code=500, detail="Prediction failed") from exc


@router.post("/train", response_model=TrainingSummary, summary="Train the forecast model")
async def train(
    request: TrainRequest,
    forecaster: Forecaster = Depends(get_forecaster),
) -> TrainingSummary:
    """
    Fit the model in place and return the per-epoch history.

    Training is claimed before the hand-off to the forecaster's training
    thread; a concurrent request gets 409 at once.

    Raises:
        HTTPException 409: Another fit is already running.
        HTTPException 422: Unusable training data.
        HTTPException 500: Loss diverged (weights were restored).
    """
    try:
        job = forecaster.start_training(request.examples, request.epochs)
        return await asyncio.wrap_future(job.future)
    except TrainingInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except DomainError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except TrainingError as exc:
        logger.error("Training failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Training failed on %d examples", len(request.examples))
        raise HTTPException(status_code=500, detail="Training failed") from exc


@router.get("/status", response_model=StatusResponse, summary="Training status")
def status(forecaster: Forecaster = Depends(get_forecaster)) -> StatusResponse:
    """Whether a fit is running, plus the metadata persisted with the model."""
    return StatusResponse(status=forecaster.status(), model=forecaster.metadata)


@router.post("/model/save", response_model=StatusResponse, summary="Persist the model")
async def save_model(forecaster: Forecaster = Depends(get_forecaster)) -> StatusResponse:
    """
    Write the model and its metadata to the configured store.

    Raises:
        HTTPException 500: No store configured, or the write failed.
    """
    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(_executor, forecaster.persist)
    except PersistenceError as exc:
        logger.error("Model save failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return StatusResponse(status=forecaster.status(), model=forecaster.metadata)


@router.post("/model/load", response_model=StatusResponse, summary="Restore the model")
async def load_model(forecaster: Forecaster = Depends(get_forecaster)) -> StatusResponse:
    """
    Replace the in-memory model with the stored copy.

    Raises:
        HTTPException 409: A fit is running.
        HTTPException 500: No store configured, nothing stored, or decode failure.
    """
    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(_executor, forecaster.restore)
    except TrainingInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PersistenceError as exc:
        logger.error("Model load failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return StatusResponse(status=forecaster.status(), model=forecaster.metadata)
