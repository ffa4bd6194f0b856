"""
tests/test_predictor.py
────────────────────────
Prediction behaviour: window preconditions, trend heuristic, volatility
and confidence.

The model's forward pass runs but does not drive ``predicted_price``;
``TestModelOutputIsNotUsed`` pins that down.
"""

from unittest.mock import MagicMock

import pytest

from neural import DomainError, InsufficientDataError, Predictor
from neural.predictor import classify_trend, confidence_from_volatility
from schemas.prediction import Trend
from schemas.telemetry import NetworkSample


@pytest.fixture
def predictor(small_model) -> Predictor:
    return Predictor(small_model)


class TestPreconditions:
    def test_exactly_timesteps_samples_succeeds(self, predictor, make_history) -> None:
        prediction = predictor.predict(make_history([100.0 + i for i in range(10)]))
        assert prediction.trend in set(Trend)

    def test_one_sample_short_fails(self, predictor, make_history) -> None:
        with pytest.raises(InsufficientDataError):
            predictor.predict(make_history([100.0] * 9))

    def test_all_equal_values_are_degenerate(self, predictor) -> None:
        history = [
            NetworkSample(
                btc_price=1.0, mempool_size=1.0, hashrate=1.0, exchange_inflows=1.0, timestamp=1.0
            )
            for _ in range(10)
        ]
        with pytest.raises(DomainError):
            predictor.predict(history)

    def test_zero_price_in_history_is_a_domain_error(self, predictor, make_history) -> None:
        """An undefined return must not reach the prediction as NaN."""
        with pytest.raises(DomainError, match="zero"):
            predictor.predict(make_history([0.0] + [100.0] * 10))


class TestTrendHeuristic:
    def test_jump_after_flat_history(self, predictor, make_history) -> None:
        """Ten samples at 100 then one at 105."""
        prediction = predictor.predict(make_history([100.0] * 10 + [105.0]))

        assert prediction.trend is Trend.UP
        assert prediction.predicted_price == pytest.approx(106.05)
        assert prediction.volatility == pytest.approx(0.015)
        assert prediction.confidence == pytest.approx(0.97)

    def test_constant_prices(self, predictor, make_history) -> None:
        prediction = predictor.predict(make_history([250.0] * 12))

        assert prediction.trend is Trend.STABLE
        assert prediction.predicted_price == 250.0
        assert prediction.volatility == 0.0
        assert prediction.confidence == 1.0

    def test_drop_is_down(self, predictor, make_history) -> None:
        prediction = predictor.predict(make_history([100.0] * 10 + [95.0]))
        assert prediction.trend is Trend.DOWN
        assert prediction.predicted_price == pytest.approx(95.0 * 0.99)

    def test_small_move_is_stable(self, predictor, make_history) -> None:
        prediction = predictor.predict(make_history([100.0] * 10 + [100.5]))
        assert prediction.trend is Trend.STABLE
        assert prediction.predicted_price == 100.5

    @pytest.mark.parametrize(
        "previous, last, expected",
        [
            (100.0, 102.0, Trend.UP),
            (100.0, 101.0, Trend.STABLE),  # +1 < 1 % of 101
            (100.0, 98.0, Trend.DOWN),
            (100.0, 99.1, Trend.STABLE),
        ],
    )
    def test_threshold_is_relative_to_latest_price(self, previous, last, expected) -> None:
        assert classify_trend(previous, last) is expected

    def test_volatility_uses_full_history(self, predictor, make_history) -> None:
        """An old spike outside the window still raises volatility."""
        prices = [100.0, 150.0, 100.0] + [100.0] * 10
        prediction = predictor.predict(make_history(prices))
        assert prediction.volatility > 0.1
        assert prediction.trend is Trend.STABLE


class TestConfidence:
    @pytest.mark.parametrize(
        "volatility, expected",
        [(0.0, 1.0), (0.1, 0.8), (0.5, 0.0), (3.0, 0.0)],
    )
    def test_clamped_linear_in_volatility(self, volatility, expected) -> None:
        assert confidence_from_volatility(volatility) == pytest.approx(expected)


class TestModelOutputIsNotUsed:
    """The price estimate ignores the network output; guard against silent changes."""

    def test_price_independent_of_model_output(self, small_model, make_history) -> None:
        history = make_history([100.0] * 10 + [105.0])
        baseline = Predictor(small_model).predict(history)

        small_model.forward = MagicMock(return_value=1.0e9)
        patched = Predictor(small_model).predict(history)

        assert patched == baseline
        small_model.forward.assert_called_once()
        (window,), _ = small_model.forward.call_args
        assert window.shape == (1, 10, 5)

    def test_forward_sees_last_window_all_features(self, small_model, make_history) -> None:
        small_model.forward = MagicMock(return_value=0.0)
        Predictor(small_model).predict(make_history([100.0 + i for i in range(15)]))

        (window,), _ = small_model.forward.call_args
        # every feature column carries data, unlike the training path
        assert (window[0].max(axis=0) > 0).all()


class TestSerialisation:
    def test_camel_case_field_names(self, predictor, make_history) -> None:
        prediction = predictor.predict(make_history([100.0] * 10 + [105.0]))
        payload = prediction.model_dump(by_alias=True, mode="json")
        assert set(payload) == {"predictedPrice", "confidence", "trend", "volatility"}
        assert payload["trend"] == "up"
