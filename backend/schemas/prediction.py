"""
schemas/prediction.py
──────────────────────
The record returned by ``Predictor.predict``.
"""

from enum import Enum

from pydantic import Field

from schemas.telemetry import CamelModel


class Trend(str, Enum):
    """Direction of the last price move."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class Prediction(CamelModel):
    """
    Short-term forecast built from a telemetry history.

    Attributes:
        predicted_price: Expected next price.
        confidence:      Score in [0, 1], inversely related to volatility.
        trend:           Direction of the last move (see ``Trend``).
        volatility:      Population std of simple returns, ≥ 0.
    """

    predicted_price: float
    confidence: float = Field(ge=0.0, le=1.0)
    trend: Trend
    volatility: float = Field(ge=0.0)
