"""
neural/trainer.py
──────────────────
Fit the forecast model on (window → target) examples.

Workflow (per ``fit`` call)
---------------------------
1. Split examples into an input matrix and an output vector.
2. Normalise both with the global min/max scaler.
3. Reshape inputs through the zero-padded training path.
4. Run Keras ``fit`` (batch 32, 20 % validation split).
5. Report a ``TrainingProgress`` per epoch to observers and the log.

Training mutates the model in place.  The weights are snapshotted first
and put back if the loss diverges, so a failed fit never leaves a
half-trained model behind.  Cancellation is checked between epochs.
"""

import logging
import math
import threading
from concurrent.futures import Future
from typing import Callable, List, Optional, Sequence

import numpy as np
from tensorflow import keras

from neural.exceptions import DomainError, InsufficientDataError, TrainingError
from neural.model import ForecastModel
from neural.normalization import normalize
from neural.sequences import build_training_sequences
from schemas.training import TrainingExample, TrainingProgress, TrainingSummary

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[TrainingProgress], None]


def _finite_or_none(logs: dict, key: str) -> Optional[float]:
    value = logs.get(key)
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


class _EpochReporter(keras.callbacks.Callback):
    """Keras callback: emit progress, stop on divergence or cancellation."""

    def __init__(
        self,
        observers: Sequence[ProgressObserver],
        cancel_event: Optional[threading.Event],
    ) -> None:
        super().__init__()
        self._observers = list(observers)
        self._cancel_event = cancel_event
        self.history: List[TrainingProgress] = []
        self.diverged = False
        self.cancelled = False

    def on_epoch_end(self, epoch: int, logs: Optional[dict] = None) -> None:
        logs = logs or {}
        loss = float(logs.get("loss", float("nan")))
        if not math.isfinite(loss):
            logger.error("Epoch %d: non-finite loss %s, stopping", epoch, loss)
            self.diverged = True
            self.model.stop_training = True
            return

        progress = TrainingProgress(
            epoch=epoch,
            loss=loss,
            val_loss=_finite_or_none(logs, "val_loss"),
            mae=_finite_or_none(logs, "mae"),
            val_mae=_finite_or_none(logs, "val_mae"),
        )
        self.history.append(progress)
        logger.info("Epoch %d: loss = %.6f", epoch, loss)
        for observer in self._observers:
            observer(progress)

        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.info("Training cancelled after epoch %d", epoch)
            self.cancelled = True
            self.model.stop_training = True


class Trainer:
    """
    Trains a ``ForecastModel`` in place.

    Args:
        model:            The model to mutate.
        batch_size:       Mini-batch size.
        validation_split: Fraction of examples Keras holds out (taken from
                          the end of the batch, no shuffling).
    """

    def __init__(
        self,
        model: ForecastModel,
        batch_size: int = 32,
        validation_split: float = 0.2,
    ) -> None:
        self.model = model
        self.batch_size = batch_size
        self.validation_split = validation_split
        self._observers: List[ProgressObserver] = []

    # ── observers ─────────────────────────────────────────────────────────

    def add_observer(self, observer: ProgressObserver) -> None:
        """Register a callable invoked with every epoch's progress."""
        self._observers.append(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        self._observers.remove(observer)

    # ── data preparation ──────────────────────────────────────────────────

    def prepare(self, examples: Sequence[TrainingExample]) -> tuple:
        """
        Turn examples into model-ready ``(X, y)`` arrays.

        Returns:
            X: ``(n, timesteps, features)`` zero-padded single-feature windows.
            y: ``(n, 1)`` normalised targets.

        Raises:
            InsufficientDataError: Fewer than 2 examples.
            DomainError:           Ragged inputs or zero-range data.
        """
        if len(examples) < 2:
            raise InsufficientDataError(
                f"Need at least 2 training examples, got {len(examples)}"
            )
        lengths = {len(ex.input) for ex in examples}
        if len(lengths) != 1:
            raise DomainError(f"Training inputs must share one length, got {sorted(lengths)}")

        inputs = np.array([ex.input for ex in examples], dtype=np.float64)
        outputs = np.array([ex.output for ex in examples], dtype=np.float64)

        norm_inputs = normalize(inputs)
        norm_outputs = normalize(outputs.reshape(1, -1))[0]

        X = build_training_sequences(norm_inputs, self.model.timesteps, self.model.features)
        y = norm_outputs.astype(np.float32).reshape(-1, 1)
        return X, y

    # ── fit ──────────────────────────────────────────────────────────────

    def fit(
        self,
        examples: Sequence[TrainingExample],
        epochs: int = 100,
        cancel_event: Optional[threading.Event] = None,
    ) -> TrainingSummary:
        """
        Train on ``examples`` for up to ``epochs`` epochs.

        Args:
            examples:     Training pairs; inputs must share one length.
            epochs:       Maximum number of epochs.
            cancel_event: When set, training stops at the next epoch end.

        Returns:
            ``TrainingSummary`` with the per-epoch history.

        Raises:
            ValueError:            If ``epochs`` < 1.
            InsufficientDataError: Fewer than 2 examples.
            DomainError:           Degenerate input data.
            TrainingError:         Loss diverged, or Keras failed mid-fit.
                                   Weights are restored in both cases.
        """
        if epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {epochs}")

        X, y = self.prepare(examples)

        if cancel_event is not None and cancel_event.is_set():
            logger.info("Training cancelled before the first epoch")
            return TrainingSummary(epochs_requested=epochs, epochs_completed=0, cancelled=True)

        logger.info(
            "Training on %d examples for %d epochs (batch=%d, val_split=%.2f)",
            len(examples),
            epochs,
            self.batch_size,
            self.validation_split,
        )
        snapshot = self.model.get_weights()
        reporter = _EpochReporter(self._observers, cancel_event)
        try:
            self.model.keras_model.fit(
                X,
                y,
                epochs=epochs,
                batch_size=self.batch_size,
                validation_split=self.validation_split,
                shuffle=True,
                callbacks=[reporter],
                verbose=0,
            )
        except Exception as exc:
            self.model.set_weights(snapshot)
            raise TrainingError(f"Training failed: {exc}") from exc

        if reporter.diverged:
            self.model.set_weights(snapshot)
            raise TrainingError(
                f"Loss diverged after {len(reporter.history)} epochs; weights restored"
            )

        history = reporter.history
        return TrainingSummary(
            epochs_requested=epochs,
            epochs_completed=len(history),
            cancelled=reporter.cancelled,
            final_loss=history[-1].loss if history else None,
            history=history,
        )


class TrainingJob:
    """
    A fit running on an executor thread.

    Cancel with ``cancel()``; the fit stops at the next epoch boundary and
    ``result()`` returns a summary with ``cancelled=True``.
    """

    def __init__(self) -> None:
        self.cancel_event = threading.Event()
        self._future: Optional["Future[TrainingSummary]"] = None

    def attach(self, future: "Future[TrainingSummary]") -> "TrainingJob":
        self._future = future
        return self

    def cancel(self) -> None:
        self.cancel_event.set()

    def running(self) -> bool:
        return self._future is not None and not self._future.done()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    @property
    def future(self) -> "Future[TrainingSummary]":
        """The executor future, for callers that await it (``asyncio.wrap_future``)."""
        if self._future is None:
            raise TrainingError("Training job was never started")
        return self._future

    def result(self, timeout: Optional[float] = None) -> TrainingSummary:
        """Block until the fit finishes; re-raises its exception, if any."""
        return self.future.result(timeout=timeout)
