"""
neural: telemetry-driven BTC trend forecasting core.

Public API
----------
    from neural import Forecaster, ForecastModel, Predictor, Trainer
    from neural import FileModelStore, SupabaseModelStore
    from neural import normalize, calculate_volatility
"""

from neural.exceptions import (
    DomainError,
    ForecastError,
    InsufficientDataError,
    PersistenceError,
    TrainingError,
    TrainingInProgressError,
)
from neural.handle import Forecaster
from neural.model import ForecastModel
from neural.normalization import normalize
from neural.predictor import Predictor
from neural.sequences import build_inference_window, build_training_sequences
from neural.store import FileModelStore, ModelStore, SupabaseModelStore
from neural.trainer import Trainer, TrainingJob
from neural.volatility import calculate_volatility

__all__ = [
    "DomainError",
    "FileModelStore",
    "ForecastError",
    "ForecastModel",
    "Forecaster",
    "InsufficientDataError",
    "ModelStore",
    "PersistenceError",
    "Predictor",
    "SupabaseModelStore",
    "Trainer",
    "TrainingError",
    "TrainingInProgressError",
    "TrainingJob",
    "build_inference_window",
    "build_training_sequences",
    "calculate_volatility",
    "normalize",
]
