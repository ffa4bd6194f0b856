"""
tests/test_sequences.py
────────────────────────
The inference and training sequence paths are intentionally different:
inference keeps every feature and never pads, training puts the raw 1-D
values on feature 0 and zero-fills the rest.
"""

import numpy as np
import pytest

from neural import InsufficientDataError, build_inference_window, build_training_sequences


class TestInferenceWindow:
    def test_takes_most_recent_rows(self) -> None:
        rows = np.arange(60, dtype=float).reshape(12, 5)
        window = build_inference_window(rows, timesteps=10)
        assert window.shape == (1, 10, 5)
        np.testing.assert_array_equal(window[0], rows[2:])

    def test_exact_length_accepted(self) -> None:
        rows = np.ones((10, 5))
        assert build_inference_window(rows, timesteps=10).shape == (1, 10, 5)

    def test_short_history_rejected_not_padded(self) -> None:
        with pytest.raises(InsufficientDataError):
            build_inference_window(np.ones((9, 5)), timesteps=10)


class TestTrainingSequences:
    def test_short_rows_fill_feature_zero_then_zero_pad(self) -> None:
        rows = np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]])
        out = build_training_sequences(rows, timesteps=5, features=4)

        assert out.shape == (2, 5, 4)
        np.testing.assert_allclose(out[0, :3, 0], [0.1, 0.2, 0.3])
        np.testing.assert_allclose(out[1, :3, 0], [0.4, 0.5, 0.6])
        # trailing timesteps and every other feature stay zero
        assert not out[:, 3:, :].any()
        assert not out[:, :, 1:].any()

    def test_long_rows_keep_last_values(self) -> None:
        rows = np.arange(12, dtype=float).reshape(1, 12) / 12
        out = build_training_sequences(rows, timesteps=4, features=2)
        np.testing.assert_allclose(out[0, :, 0], rows[0, -4:], rtol=1e-6)
        assert not out[0, :, 1].any()

    def test_paths_differ_for_the_same_rows(self) -> None:
        """Same 10x5 rows: inference keeps all features, training only feature 0."""
        rows = np.random.default_rng(0).random((10, 5))
        inference = build_inference_window(rows, timesteps=10)
        training = build_training_sequences(rows, timesteps=10, features=5)

        assert inference.shape == (1, 10, 5)
        assert training.shape == (10, 10, 5)
        assert inference[0, :, 1:].any()
        assert not training[:, :, 1:].any()
