"""
neural/exceptions.py
─────────────────────
Error taxonomy of the forecasting core.

Every error surfaces synchronously to the caller; the core never
substitutes a fabricated value when a precondition is unmet.

    ForecastError
    ├── DomainError (also a ValueError)
    │   └── InsufficientDataError
    ├── PersistenceError
    └── TrainingError
        └── TrainingInProgressError
"""


class ForecastError(Exception):
    """Base class for every error raised by the forecasting core."""


class DomainError(ForecastError, ValueError):
    """Degenerate numeric input, e.g. a zero-range normalisation."""


class InsufficientDataError(DomainError):
    """Too few samples: history shorter than the window, or < 2 prices."""


class PersistenceError(ForecastError):
    """Saving or loading model parameters failed."""


class TrainingError(ForecastError):
    """A fit diverged, or could not be started."""


class TrainingInProgressError(TrainingError):
    """A fit was requested while another one is still running."""
