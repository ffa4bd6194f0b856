"""
schemas/training.py
────────────────────
Training inputs, per-epoch progress, run summaries and model metadata.

  POST /api/v1/neural/train
      → ``TrainRequest`` / ``TrainingSummary``

  GET  /api/v1/neural/status
      → ``StatusResponse``
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from schemas.telemetry import CamelModel


class TrainingExample(CamelModel):
    """One (window → target) pair produced by the training-data collaborator."""

    input: List[float] = Field(..., min_length=1)
    output: float


class TrainingProgress(CamelModel):
    """Metrics reported at the end of one epoch (epochs are 0-based)."""

    epoch: int
    loss: float
    val_loss: Optional[float] = None
    mae: Optional[float] = None
    val_mae: Optional[float] = None


class TrainingSummary(CamelModel):
    """Outcome of one ``Trainer.fit`` call."""

    epochs_requested: int
    epochs_completed: int
    cancelled: bool = False
    final_loss: Optional[float] = None
    history: List[TrainingProgress] = Field(default_factory=list)


class ModelMetadata(CamelModel):
    """
    Descriptive data persisted beside the model parameters.

    Attributes:
        model_id:            Row / file id under which the model is stored.
        timesteps:           Window length the model was built for.
        features:            Values per timestep.
        hyperparameters:     Architecture and optimiser settings.
        training_iterations: Completed (non-failed) ``fit`` calls.
        last_trained:        UTC time of the last completed fit.
    """

    model_id: str
    timesteps: int
    features: int
    hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    training_iterations: int = 0
    last_trained: Optional[datetime] = None


class TrainingStatus(CamelModel):
    """Whether a fit is running plus bookkeeping from previous fits."""

    is_training: bool
    training_iterations: int
    last_trained: Optional[datetime] = None


class TrainRequest(CamelModel):
    """Body of ``POST /api/v1/neural/train``."""

    examples: List[TrainingExample] = Field(..., min_length=2)
    epochs: Optional[int] = Field(default=None, ge=1, le=1000)


class StatusResponse(CamelModel):
    """Body of ``GET /api/v1/neural/status``."""

    status: TrainingStatus
    model: ModelMetadata
