"""
neural/normalization.py
────────────────────────
Global min/max rescaling of a feature table into [0, 1].

Unlike a per-column scaler, the range is taken over the *whole* flattened
matrix, so every feature shares one scale.  The range is recomputed on
every call from the batch passed in; absolute scale can therefore differ
between calls.
"""

from typing import Sequence, Union

import numpy as np

from neural.exceptions import DomainError

MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]


def normalize(matrix: MatrixLike) -> np.ndarray:
    """
    Rescale ``matrix`` to [0, 1] using its global min and max.

    Args:
        matrix: 2-D array-like, rows = samples, columns = features.

    Returns:
        float64 array of the same shape with
        ``(x - global_min) / (global_max - global_min)`` per element.  The
        global min maps to exactly 0.0 and the global max to exactly 1.0.

    Raises:
        DomainError: If the matrix is empty, not 2-D, contains NaN/inf,
                     or every element is equal.
    """
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.ndim != 2 or arr.size == 0:
        raise DomainError(f"Expected a non-empty 2-D matrix, got shape {arr.shape}")
    if not np.isfinite(arr).all():
        raise DomainError("Matrix contains NaN or infinite values")

    lo, hi = arr.min(), arr.max()
    if hi == lo:
        raise DomainError(f"Cannot normalise: every value equals {lo}")
    span = hi - lo
    if not np.isfinite(span):
        raise DomainError(f"Cannot normalise: range [{lo}, {hi}] overflows float64")

    # (hi - lo) / span is exactly 1.0 at the global max.
    return (arr - lo) / span
