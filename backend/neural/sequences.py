"""
neural/sequences.py
────────────────────
Reshape normalised rows into the ``[batch, timesteps, features]`` tensors
the recurrent model consumes.

There are two deliberately different paths:

``build_inference_window``
    Full multi-feature rows, most recent ``timesteps`` of them, batch of
    one.  Never pads: too little history is an error.

``build_training_sequences``
    Raw training examples are 1-D, so each value lands on feature 0 of
    its own timestep and every other slot is zero-filled.  Short rows are
    zero-padded at the end.

Keep them separate; the predictor and the trainer do not see the same
feature layout.
"""

from typing import Sequence, Union

import numpy as np

from neural.exceptions import DomainError, InsufficientDataError

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


def build_inference_window(rows: ArrayLike, timesteps: int) -> np.ndarray:
    """
    Take the last ``timesteps`` rows as a single window.

    Args:
        rows:      Normalised 2-D rows ``(n_samples, n_features)``, oldest first.
        timesteps: Window length T.

    Returns:
        float32 array of shape ``(1, T, n_features)``.

    Raises:
        InsufficientDataError: If fewer than T rows are available.
        DomainError:           If ``rows`` is not 2-D.
    """
    arr = np.asarray(rows, dtype=np.float32)
    if arr.ndim != 2:
        raise DomainError(f"Expected 2-D rows, got shape {arr.shape}")
    if arr.shape[0] < timesteps:
        raise InsufficientDataError(
            f"Need at least {timesteps} samples, got {arr.shape[0]}"
        )
    return arr[-timesteps:][np.newaxis, :, :]


def build_training_sequences(
    rows: ArrayLike, timesteps: int, features: int
) -> np.ndarray:
    """
    Zero-padded single-feature windows for training.

    For each row, the last (up to) ``timesteps`` scalars fill feature 0 of
    timesteps ``0 .. k-1``; features ``1 .. F-1`` and timesteps ``k .. T-1``
    stay zero.

    Args:
        rows:      Normalised 2-D rows ``(n_examples, input_length)``.
        timesteps: Window length T.
        features:  Feature width F of the model input.

    Returns:
        float32 array of shape ``(n_examples, T, F)``.
    """
    arr = np.asarray(rows, dtype=np.float32)
    if arr.ndim != 2:
        raise DomainError(f"Expected 2-D rows, got shape {arr.shape}")

    tail = arr[:, -timesteps:]
    out = np.zeros((arr.shape[0], timesteps, features), dtype=np.float32)
    out[:, : tail.shape[1], 0] = tail
    return out
