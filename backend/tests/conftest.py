"""
tests/conftest.py
──────────────────
Shared pytest fixtures for the forecaster test suite.

Fixtures
--------
small_model
    ``ForecastModel`` with the default (10, 5) window but tiny LSTM layers,
    so building and fitting stay fast.

forecaster
    ``Forecaster`` around ``small_model`` with a file store in ``tmp_path``.

make_history
    Factory turning a list of prices into ``NetworkSample`` rows with
    distinct, realistic mempool / hashrate / inflow / timestamp values.

app_client
    ``httpx.AsyncClient`` wired to the FastAPI app with the forecaster
    dependency overridden, so the lifespan (and any stored model) is skipped.

Usage
-----
    async def test_health(app_client):
        resp = await app_client.get("/")
        assert resp.status_code == 200
"""

from typing import AsyncGenerator, Callable, List, Sequence

import pytest
from httpx import ASGITransport, AsyncClient

from neural import FileModelStore, Forecaster, ForecastModel
from schemas.telemetry import NetworkSample
from schemas.training import TrainingExample

_T0 = 1_700_000_000.0


# ── Models ────────────────────────────────────────────────────────────────────


@pytest.fixture
def small_model() -> ForecastModel:
    """Default window shape, 4-unit LSTMs, fixed seed."""
    return ForecastModel(timesteps=10, features=5, units=4, seed=7)


@pytest.fixture
def forecaster(small_model: ForecastModel, tmp_path) -> Forecaster:
    """Forecaster backed by a file store under ``tmp_path``."""
    store = FileModelStore(tmp_path / "models", model_id="test_model")
    handle = Forecaster(small_model, model_id="test_model", store=store, default_epochs=2)
    yield handle
    handle.close()


# ── Data factories ────────────────────────────────────────────────────────────


@pytest.fixture
def make_history() -> Callable[[Sequence[float]], List[NetworkSample]]:
    """Return a factory: prices → samples ten minutes apart."""

    def _make(prices: Sequence[float]) -> List[NetworkSample]:
        return [
            NetworkSample(
                btc_price=price,
                mempool_size=50_000.0 + 250.0 * i,
                hashrate=6.0e8 + 1.0e6 * i,
                exchange_inflows=1_200.0 - 10.0 * i,
                timestamp=_T0 + 600.0 * i,
            )
            for i, price in enumerate(prices)
        ]

    return _make


@pytest.fixture
def training_examples() -> List[TrainingExample]:
    """Ten examples of an upward-drifting series, eight values each."""
    return [
        TrainingExample(
            input=[100.0 + i + 0.5 * j for j in range(8)],
            output=104.0 + i,
        )
        for i in range(10)
    ]


# ── Test client ───────────────────────────────────────────────────────────────


@pytest.fixture
async def app_client(forecaster: Forecaster) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTPX client with the forecaster dependency overridden.

    Startup lifespan is skipped so no stored model is restored.
    """
    from app.api.dependencies import get_forecaster
    from app.main import app

    app.dependency_overrides[get_forecaster] = lambda: forecaster

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
