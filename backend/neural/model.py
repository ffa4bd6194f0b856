"""
neural/model.py
────────────────
Stacked-LSTM forecast model.

Architecture
------------
Input (timesteps, features)
  → LSTM(units, return_sequences=True) → Dropout(rate)
  → LSTM(units)
  → Dense(1)

Compiled with MSE loss, Adam(learning_rate) and MAE as auxiliary metric.
Only ``Trainer`` mutates the weights; everything else reads them.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from tensorflow import keras
from tensorflow.keras import layers

from neural.exceptions import DomainError, PersistenceError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_SUFFIX = ".keras"


def model_archive_path(path: PathLike) -> Path:
    """Keras 3 only writes ``.keras`` archives; append the suffix if missing."""
    target = Path(path)
    if target.suffix != _SUFFIX:
        target = target.parent / f"{target.name}{_SUFFIX}"
    return target


class _SeededInit:
    """
    Hands out one fresh initializer per weight tensor.

    With a seed, each initializer gets ``seed + k`` for a running ``k``;
    without one, the Keras defaults are returned unchanged.
    """

    def __init__(self, seed: Optional[int]) -> None:
        self._seed = seed
        self._count = 0

    def next_seed(self) -> Optional[int]:
        if self._seed is None:
            return None
        self._count += 1
        return self._seed + self._count

    def glorot(self) -> Any:
        if self._seed is None:
            return "glorot_uniform"
        return keras.initializers.GlorotUniform(seed=self.next_seed())

    def orthogonal(self) -> Any:
        if self._seed is None:
            return "orthogonal"
        return keras.initializers.Orthogonal(seed=self.next_seed())


class ForecastModel:
    """
    Two-layer recurrent network mapping a window to one scalar.

    Args:
        timesteps:     Window length (default 10).
        features:      Values per timestep (default 5).
        units:         Hidden size of both LSTM layers.
        dropout:       Rate of the dropout step between the LSTM layers.
        learning_rate: Adam learning rate.
        seed:          Optional seed for reproducible weight init.  It seeds
                       this model's own initializers and dropout only; the
                       global TensorFlow / NumPy RNG state is left alone.
        keras_model:   Adopt an already-built model instead of building one
                       (used by ``load``).
    """

    def __init__(
        self,
        timesteps: int = 10,
        features: int = 5,
        units: int = 50,
        dropout: float = 0.2,
        learning_rate: float = 0.001,
        seed: Optional[int] = None,
        keras_model: Optional[keras.Model] = None,
    ) -> None:
        self.timesteps = timesteps
        self.features = features
        self.units = units
        self.dropout = dropout
        self.learning_rate = learning_rate

        if keras_model is not None:
            self._model = keras_model
            return

        self._model = self._build(seed)
        logger.info(
            "Built ForecastModel: LSTM(%d)x2 dropout=%.2f input=(%d, %d)",
            units,
            dropout,
            timesteps,
            features,
        )

    # ── construction ─────────────────────────────────────────────────────

    def _build(self, seed: Optional[int] = None) -> keras.Model:
        """Construct and compile the Keras model."""
        init = _SeededInit(seed)
        model = keras.Sequential(
            [
                keras.Input(shape=(self.timesteps, self.features)),
                layers.LSTM(
                    self.units,
                    return_sequences=True,
                    kernel_initializer=init.glorot(),
                    recurrent_initializer=init.orthogonal(),
                ),
                layers.Dropout(self.dropout, seed=init.next_seed()),
                layers.LSTM(
                    self.units,
                    kernel_initializer=init.glorot(),
                    recurrent_initializer=init.orthogonal(),
                ),
                layers.Dense(1, kernel_initializer=init.glorot()),
            ],
            name="network_trend_forecaster",
        )
        model.compile(
            optimizer=keras.optimizers.Adam(learning_rate=self.learning_rate),
            loss="mse",
            metrics=["mae"],
        )
        return model

    @property
    def keras_model(self) -> keras.Model:
        """The underlying compiled Keras model (used by ``Trainer``)."""
        return self._model

    # ── inference ────────────────────────────────────────────────────────

    def forward(self, window: np.ndarray) -> float:
        """
        Run one inference pass (dropout disabled).

        Args:
            window: Array of shape ``(1, timesteps, features)``.

        Returns:
            The model's raw scalar output.

        Raises:
            DomainError: If the window has the wrong shape.
        """
        expected = (1, self.timesteps, self.features)
        if tuple(window.shape) != expected:
            raise DomainError(f"Expected window shape {expected}, got {tuple(window.shape)}")
        out = self._model.predict(window, verbose=0)
        return float(out[0, 0])

    # ── parameters ───────────────────────────────────────────────────────

    def get_weights(self) -> List[np.ndarray]:
        """Copy of every weight array, in layer order."""
        return [w.copy() for w in self._model.get_weights()]

    def set_weights(self, weights: List[np.ndarray]) -> None:
        """Replace every weight array (shapes must match ``get_weights``)."""
        self._model.set_weights(weights)

    def hyperparameters(self) -> Dict[str, Any]:
        """Architecture and optimiser settings, JSON-serialisable."""
        return {
            "layers": [self.units, self.units],
            "dropout": self.dropout,
            "learning_rate": self.learning_rate,
            "optimizer": "adam",
            "loss": "mse",
            "metrics": ["mae"],
        }

    # ── persistence ──────────────────────────────────────────────────────

    def save(self, path: PathLike) -> Path:
        """
        Write weights, architecture and optimiser state to a ``.keras`` archive.

        Args:
            path: Target file; ``.keras`` is appended if missing.

        Returns:
            The path actually written.

        Raises:
            PersistenceError: On any I/O or serialisation failure.
        """
        target = model_archive_path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._model.save(target)
        except Exception as exc:
            raise PersistenceError(f"Could not save model to {target}: {exc}") from exc
        logger.info("Saved ForecastModel to %s", target)
        return target

    @classmethod
    def load(cls, path: PathLike, learning_rate: float = 0.001) -> "ForecastModel":
        """
        Restore a model written by ``save``.

        Args:
            path:          Archive path; ``.keras`` is appended if missing.
            learning_rate: Recorded in ``hyperparameters``; the optimiser
                           itself is restored from the archive.

        Returns:
            A new ``ForecastModel`` wrapping the restored network.

        Raises:
            PersistenceError: If the file is missing or cannot be decoded.
        """
        source = model_archive_path(path)
        if not source.exists():
            raise PersistenceError(f"No saved model at {source}")
        try:
            restored = keras.models.load_model(source)
        except Exception as exc:
            raise PersistenceError(f"Could not load model from {source}: {exc}") from exc

        _, timesteps, features = restored.input_shape
        recurrent = [layer for layer in restored.layers if isinstance(layer, layers.LSTM)]
        dropouts = [layer for layer in restored.layers if isinstance(layer, layers.Dropout)]
        logger.info("Loaded ForecastModel from %s", source)
        return cls(
            timesteps=int(timesteps),
            features=int(features),
            units=recurrent[0].units if recurrent else 0,
            dropout=float(dropouts[0].rate) if dropouts else 0.0,
            learning_rate=learning_rate,
            keras_model=restored,
        )
