"""
neural/volatility.py
─────────────────────
Return-series volatility of a price history.
"""

import math
from typing import Sequence

import pandas as pd

from neural.exceptions import DomainError, InsufficientDataError


def calculate_volatility(prices: Sequence[float]) -> float:
    """
    Population standard deviation of simple returns.

    ``r_i = (p_i - p_{i-1}) / p_{i-1}`` for every consecutive pair, then
    ``std(r, ddof=0)``.  A constant series yields exactly ``0.0``.

    Args:
        prices: Prices ordered oldest → newest.

    Returns:
        Finite volatility ≥ 0.

    Raises:
        InsufficientDataError: If fewer than 2 prices are given.
        DomainError:           If a return is undefined (a zero price before
                               the last one) or the result is not finite.
    """
    series = pd.Series(prices, dtype="float64")
    if len(series) < 2:
        raise InsufficientDataError(
            f"Need at least 2 prices for volatility, got {len(series)}"
        )

    previous = series.iloc[:-1]
    if (previous == 0.0).any():
        position = int((previous == 0.0).to_numpy().argmax())
        raise DomainError(f"Price at position {position} is zero; return is undefined")

    returns = (series.diff() / series.shift(1)).iloc[1:]
    volatility = float(returns.std(ddof=0))
    if not math.isfinite(volatility):
        raise DomainError(f"Volatility is not finite ({volatility})")
    return volatility
