"""
Pydantic schemas for the forecaster's records.

Shared by the in-process API (``neural``) and the HTTP layer (``app``).
"""

from schemas.prediction import Prediction, Trend
from schemas.telemetry import FEATURE_COLUMNS, NetworkSample, PredictRequest
from schemas.training import (
    ModelMetadata,
    StatusResponse,
    TrainingExample,
    TrainingProgress,
    TrainingStatus,
    TrainingSummary,
    TrainRequest,
)

__all__ = [
    "FEATURE_COLUMNS",
    "ModelMetadata",
    "NetworkSample",
    "PredictRequest",
    "Prediction",
    "StatusResponse",
    "TrainRequest",
    "TrainingExample",
    "TrainingProgress",
    "TrainingStatus",
    "TrainingSummary",
    "Trend",
]
