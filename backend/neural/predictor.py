"""
neural/predictor.py
────────────────────
Turn a telemetry history into a ``Prediction``.

The model's forward pass runs on every call (it validates the window and
keeps the model warm), but the price estimate comes from a fixed ±1 %
heuristic on the last move, not from the model output.  Callers relying
on the current numbers depend on that; see ``predicted_price_for``.
"""

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from neural.exceptions import InsufficientDataError
from neural.model import ForecastModel
from neural.normalization import normalize
from neural.sequences import build_inference_window
from neural.volatility import calculate_volatility
from schemas.prediction import Prediction, Trend
from schemas.telemetry import FEATURE_COLUMNS, NetworkSample

logger = logging.getLogger(__name__)

# A move smaller than this fraction of the latest price is "stable".
TREND_THRESHOLD = 0.01
# Fractional price step applied for an up / down trend.
TREND_STEP = 0.01


def classify_trend(previous_price: float, last_price: float) -> Trend:
    """Up / down if the last move exceeds 1 % of the latest price."""
    change = last_price - previous_price
    if change > TREND_THRESHOLD * last_price:
        return Trend.UP
    if change < -TREND_THRESHOLD * last_price:
        return Trend.DOWN
    return Trend.STABLE


def predicted_price_for(last_price: float, trend: Trend) -> float:
    delta = {Trend.UP: TREND_STEP, Trend.DOWN: -TREND_STEP}.get(trend, 0.0)
    return last_price * (1 + delta)


def confidence_from_volatility(volatility: float) -> float:
    return float(np.clip(1.0 - 2.0 * volatility, 0.0, 1.0))


def history_frame(history: Sequence[NetworkSample]) -> pd.DataFrame:
    """One row per sample, columns in ``FEATURE_COLUMNS`` order."""
    return pd.DataFrame([s.as_row() for s in history], columns=list(FEATURE_COLUMNS))


class Predictor:
    """
    Read-only consumer of a ``ForecastModel``.

    Args:
        model: The model whose forward pass is run per call.
    """

    def __init__(self, model: ForecastModel) -> None:
        self.model = model

    @property
    def timesteps(self) -> int:
        return self.model.timesteps

    def predict(self, history: Sequence[NetworkSample]) -> Prediction:
        """
        Build a prediction from ``history`` (oldest → newest).

        Args:
            history: At least ``timesteps`` samples.

        Returns:
            Fresh ``Prediction``; nothing is cached or persisted.

        Raises:
            InsufficientDataError: Fewer than ``timesteps`` samples.
            DomainError:           Every feature value in the history is equal.
        """
        # The trend needs a previous price even for a one-step window.
        required = max(self.timesteps, 2)
        if len(history) < required:
            raise InsufficientDataError(
                f"Need at least {required} samples for prediction, got {len(history)}"
            )

        frame = history_frame(history)
        normalized = normalize(frame.to_numpy())
        window = build_inference_window(normalized, self.timesteps)
        raw_output = self.model.forward(window)
        logger.debug("Model raw output %.6f (not used for the price estimate)", raw_output)

        prices = frame["btc_price"]
        last_price = float(prices.iloc[-1])
        previous_price = float(prices.iloc[-2])

        trend = classify_trend(previous_price, last_price)
        volatility = calculate_volatility(prices)

        return Prediction(
            predicted_price=predicted_price_for(last_price, trend),
            confidence=confidence_from_volatility(volatility),
            trend=trend,
            volatility=volatility,
        )
