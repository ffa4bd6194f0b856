"""
neural/handle.py
─────────────────
``Forecaster``: an explicit, owned handle around one forecast model.

The handle replaces a process-wide model singleton: create as many as you
need, close them when done.  It owns the model, its trainer and predictor,
the bookkeeping persisted beside the weights, and the lock that keeps a
prediction from observing a half-trained model.

Usage
-----
    with Forecaster.from_settings(get_settings()) as forecaster:
        forecaster.fit(examples, epochs=50)
        prediction = forecaster.predict(history)
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from core.config import Settings
from neural.exceptions import PersistenceError, TrainingInProgressError
from neural.model import ForecastModel
from neural.predictor import Predictor
from neural.store import ModelStore
from neural.trainer import ProgressObserver, Trainer, TrainingJob
from schemas.prediction import Prediction
from schemas.telemetry import NetworkSample
from schemas.training import ModelMetadata, TrainingExample, TrainingStatus, TrainingSummary

logger = logging.getLogger(__name__)


class _ReadWriteLock:
    """Many readers or one writer; writers wait for readers to drain."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Forecaster:
    """
    Owner of one ``ForecastModel`` and everything that touches it.

    Args:
        model:            Model to wrap.
        model_id:         Id used for persisted metadata.
        store:            Optional persistence backend for ``persist`` / ``restore``.
        batch_size:       Trainer mini-batch size.
        validation_split: Trainer validation fraction.
        default_epochs:   Epochs used when ``fit`` is called without one.
    """

    def __init__(
        self,
        model: Optional[ForecastModel] = None,
        model_id: str = "btc_usd_price_prediction",
        store: Optional[ModelStore] = None,
        batch_size: int = 32,
        validation_split: float = 0.2,
        default_epochs: int = 100,
    ) -> None:
        self._model = model or ForecastModel()
        self._store = store
        self.default_epochs = default_epochs

        self._trainer = Trainer(self._model, batch_size=batch_size, validation_split=validation_split)
        self._predictor = Predictor(self._model)
        self._metadata = ModelMetadata(
            model_id=model_id,
            timesteps=self._model.timesteps,
            features=self._model.features,
            hyperparameters=self._hyperparameters(),
        )

        self._rw_lock = _ReadWriteLock()
        self._state_lock = threading.Lock()
        self._training = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[ModelStore] = None) -> "Forecaster":
        """Build a fresh, randomly initialised forecaster from ``Settings``."""
        model = ForecastModel(
            timesteps=settings.TIMESTEPS,
            features=settings.FEATURES,
            units=settings.LSTM_UNITS,
            dropout=settings.DROPOUT_RATE,
            learning_rate=settings.LEARNING_RATE,
            seed=settings.RANDOM_SEED,
        )
        return cls(
            model=model,
            model_id=settings.MODEL_ID,
            store=store,
            batch_size=settings.BATCH_SIZE,
            validation_split=settings.VALIDATION_SPLIT,
            default_epochs=settings.DEFAULT_EPOCHS,
        )

    # ── lifecycle ─────────────────────────────────────────────────────────

    def __enter__(self) -> "Forecaster":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Shut down; a running background fit is waited for, not cancelled."""
        if self._closed:
            return
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Forecaster %s closed", self._metadata.model_id)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Forecaster is closed")

    # ── introspection ─────────────────────────────────────────────────────

    @property
    def model(self) -> ForecastModel:
        return self._model

    @property
    def trainer(self) -> Trainer:
        return self._trainer

    @property
    def metadata(self) -> ModelMetadata:
        return self._metadata.model_copy(deep=True)

    @property
    def is_training(self) -> bool:
        with self._state_lock:
            return self._training

    def status(self) -> TrainingStatus:
        return TrainingStatus(
            is_training=self.is_training,
            training_iterations=self._metadata.training_iterations,
            last_trained=self._metadata.last_trained,
        )

    def add_progress_observer(self, observer: ProgressObserver) -> None:
        self._trainer.add_observer(observer)

    def _hyperparameters(self) -> dict:
        params = self._model.hyperparameters()
        params["batch_size"] = self._trainer.batch_size
        return params

    # ── prediction ────────────────────────────────────────────────────────

    def predict(self, history: Sequence[NetworkSample]) -> Prediction:
        """Read-locked ``Predictor.predict``; see there for errors."""
        self._ensure_open()
        with self._rw_lock.read():
            return self._predictor.predict(history)

    # ── training ──────────────────────────────────────────────────────────

    def _claim_training(self) -> None:
        with self._state_lock:
            if self._training:
                raise TrainingInProgressError("Training already in progress")
            self._training = True

    def _release_training(self) -> None:
        with self._state_lock:
            self._training = False

    def _resolve_epochs(self, epochs: Optional[int]) -> int:
        # Only ``None`` means "use the default"; 0 is an invalid request.
        if epochs is None:
            return self.default_epochs
        if epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {epochs}")
        return epochs

    def _fit_locked(
        self,
        examples: Sequence[TrainingExample],
        epochs: int,
        cancel_event: Optional[threading.Event],
    ) -> TrainingSummary:
        try:
            with self._rw_lock.write():
                summary = self._trainer.fit(examples, epochs=epochs, cancel_event=cancel_event)
                if summary.epochs_completed:
                    self._metadata.training_iterations += 1
                    self._metadata.last_trained = datetime.now(timezone.utc)
            logger.info(
                "Fit finished: %d/%d epochs, final loss %s%s",
                summary.epochs_completed,
                summary.epochs_requested,
                summary.final_loss,
                " (cancelled)" if summary.cancelled else "",
            )
            return summary
        finally:
            self._release_training()

    def fit(
        self,
        examples: Sequence[TrainingExample],
        epochs: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TrainingSummary:
        """
        Train synchronously.  Predictions wait until the fit is done.

        Raises:
            ValueError:              ``epochs`` < 1.
            TrainingInProgressError: Another fit is running.
            TrainingError:           This fit diverged (weights restored).
            InsufficientDataError / DomainError: Bad training data.
        """
        self._ensure_open()
        epochs = self._resolve_epochs(epochs)
        self._claim_training()
        return self._fit_locked(examples, epochs, cancel_event)

    def start_training(
        self,
        examples: Sequence[TrainingExample],
        epochs: Optional[int] = None,
    ) -> TrainingJob:
        """
        Train on a background thread.

        Returns:
            A ``TrainingJob`` to cancel or wait on.

        Raises:
            ValueError:              ``epochs`` < 1.
            TrainingInProgressError: Another fit is already running.
        """
        self._ensure_open()
        epochs = self._resolve_epochs(epochs)
        self._claim_training()
        job = TrainingJob()
        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="forecaster-train")
            future = self._executor.submit(
                self._fit_locked, examples, epochs, job.cancel_event
            )
        except Exception:
            self._release_training()
            raise
        return job.attach(future)

    # ── persistence ───────────────────────────────────────────────────────

    def save_model(self, path: Union[str, Path]) -> Path:
        """Write the model to a ``.keras`` archive at ``path``."""
        self._ensure_open()
        with self._rw_lock.read():
            return self._model.save(path)

    def load_model(self, path: Union[str, Path]) -> None:
        """Replace the model's parameters with the archive at ``path``."""
        self._ensure_open()
        loaded = ForecastModel.load(path, learning_rate=self._model.learning_rate)
        with self._rw_lock.write():
            self._swap_model(loaded)

    def persist(self) -> None:
        """Save model and metadata to the configured store."""
        store = self._require_store()
        with self._rw_lock.read():
            store.save(self._model, self._metadata)

    def restore(self) -> None:
        """Replace model and metadata with the store's copy."""
        store = self._require_store()
        loaded, metadata = store.load()
        with self._rw_lock.write():
            self._swap_model(loaded, metadata)

    def _require_store(self) -> ModelStore:
        self._ensure_open()
        if self._store is None:
            raise PersistenceError("No model store configured")
        return self._store

    def _swap_model(self, loaded: ForecastModel, metadata: Optional[ModelMetadata] = None) -> None:
        if self.is_training:
            raise TrainingInProgressError("Cannot replace the model while training")
        if metadata is not None:
            self._metadata = metadata
        self._model = loaded
        self._trainer.model = loaded
        self._predictor.model = loaded
        self._metadata.timesteps = loaded.timesteps
        self._metadata.features = loaded.features
        self._metadata.hyperparameters = self._hyperparameters()
