"""
tests/test_handle.py
─────────────────────
``Forecaster`` lifecycle, locking, background training and persistence.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from neural import (
    FileModelStore,
    Forecaster,
    ForecastModel,
    PersistenceError,
    TrainingInProgressError,
)


class TestStatus:
    def test_fresh_handle(self, forecaster: Forecaster) -> None:
        status = forecaster.status()
        assert status.is_training is False
        assert status.training_iterations == 0
        assert status.last_trained is None

    def test_fit_updates_bookkeeping(self, forecaster, training_examples) -> None:
        summary = forecaster.fit(training_examples)

        assert summary.epochs_completed == 2  # fixture default_epochs
        status = forecaster.status()
        assert status.training_iterations == 1
        assert status.last_trained is not None
        assert status.is_training is False

    def test_metadata_copy_is_detached(self, forecaster) -> None:
        meta = forecaster.metadata
        meta.training_iterations = 99
        assert forecaster.metadata.training_iterations == 0


    @pytest.mark.parametrize("epochs", [0, -3])
    def test_non_positive_epochs_rejected(self, forecaster, training_examples, epochs) -> None:
        """Only ``None`` falls back to the default epoch count."""
        with pytest.raises(ValueError, match="epochs"):
            forecaster.fit(training_examples, epochs=epochs)
        with pytest.raises(ValueError, match="epochs"):
            forecaster.start_training(training_examples, epochs=epochs)

        assert forecaster.is_training is False
        assert forecaster.status().training_iterations == 0

class TestIndependentInstances:
    def test_two_handles_do_not_share_weights(self, training_examples) -> None:
        with Forecaster(ForecastModel(units=3, seed=1)) as a, Forecaster(ForecastModel(units=3, seed=1)) as b:
            a.fit(training_examples, epochs=2)
            assert a.status().training_iterations == 1
            assert b.status().training_iterations == 0
            assert any(
                (wa != wb).any() for wa, wb in zip(a.model.get_weights(), b.model.get_weights())
            )


class TestBackgroundTraining:
    def test_job_result(self, forecaster, training_examples) -> None:
        job = forecaster.start_training(training_examples, epochs=2)
        summary = job.result(timeout=120)

        assert summary.epochs_completed == 2
        assert job.done()
        assert forecaster.status().training_iterations == 1

    def test_second_fit_rejected_while_running(self, forecaster, training_examples) -> None:
        release = threading.Event()
        forecaster.add_progress_observer(lambda progress: release.wait(timeout=60))

        job = forecaster.start_training(training_examples, epochs=1)
        try:
            assert forecaster.is_training is True
            with pytest.raises(TrainingInProgressError):
                forecaster.fit(training_examples, epochs=1)
            with pytest.raises(TrainingInProgressError):
                forecaster.start_training(training_examples, epochs=1)
        finally:
            release.set()
        job.result(timeout=120)
        assert forecaster.is_training is False

    def test_cancel_between_epochs(self, forecaster, training_examples) -> None:
        ready = threading.Event()
        jobs = []

        def cancel_on_first_epoch(progress) -> None:
            ready.wait(timeout=60)
            jobs[0].cancel()

        forecaster.add_progress_observer(cancel_on_first_epoch)
        jobs.append(forecaster.start_training(training_examples, epochs=50))
        ready.set()

        summary = jobs[0].result(timeout=120)
        assert summary.cancelled is True
        assert summary.epochs_completed == 1


class TestConcurrentPredictions:
    def test_parallel_predicts_agree(self, forecaster, make_history) -> None:
        history = make_history([100.0 + (i % 3) for i in range(20)])
        baseline = forecaster.predict(history)
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: forecaster.predict(history), range(8)))
        assert all(r == baseline for r in results)


class TestPersistence:
    def test_save_load_path_round_trip(self, forecaster, make_history, tmp_path) -> None:
        history = make_history([100.0 + i for i in range(12)])
        window = _window_for(forecaster, history)
        expected = forecaster.model.forward(window)

        path = forecaster.save_model(tmp_path / "snap")
        with Forecaster(ForecastModel(units=4, seed=99)) as other:
            other.load_model(path)
            assert other.model.forward(window) == pytest.approx(expected, abs=1e-6)
            assert other.predict(history) == forecaster.predict(history)

    def test_persist_restore_keeps_metadata(self, forecaster, training_examples) -> None:
        forecaster.fit(training_examples, epochs=1)
        forecaster.persist()
        weights = forecaster.model.get_weights()

        forecaster.fit(training_examples, epochs=1)
        assert forecaster.status().training_iterations == 2

        forecaster.restore()
        assert forecaster.status().training_iterations == 1
        for restored, saved in zip(forecaster.model.get_weights(), weights):
            assert restored == pytest.approx(saved, abs=1e-6)

    def test_restore_keeps_this_handles_batch_size(self, forecaster, training_examples, tmp_path) -> None:
        """Stored metadata is adopted, then refreshed from the live trainer."""
        forecaster.fit(training_examples, epochs=1)
        forecaster.persist()
        assert forecaster.metadata.hyperparameters["batch_size"] == 32

        store = FileModelStore(tmp_path / "models", model_id="test_model")
        with Forecaster(ForecastModel(units=4, seed=3), store=store, batch_size=8) as other:
            other.restore()
            meta = other.metadata
            assert meta.training_iterations == 1
            assert meta.model_id == "test_model"
            assert meta.hyperparameters["batch_size"] == 8

    def test_persist_without_store(self) -> None:
        with Forecaster(ForecastModel(units=2, seed=0)) as handle:
            with pytest.raises(PersistenceError):
                handle.persist()


class TestLifecycle:
    def test_closed_handle_refuses_work(self, make_history) -> None:
        handle = Forecaster(ForecastModel(units=2, seed=0))
        handle.close()
        handle.close()  # idempotent
        with pytest.raises(RuntimeError):
            handle.predict(make_history([1.0] * 10))


def _window_for(forecaster: Forecaster, history):
    from neural import build_inference_window, normalize
    from neural.predictor import history_frame

    normalized = normalize(history_frame(history).to_numpy())
    return build_inference_window(normalized, forecaster.model.timesteps)
