"""
schemas/telemetry.py
─────────────────────
Network telemetry records fed to the predictor and the trainer.

Field names are snake_case in Python and camelCase on the wire
(``btcPrice``, ``mempoolSize`` ...).  Both spellings are accepted on input.
"""

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Order of the columns the model sees; keep in sync with ``as_row``.
FEATURE_COLUMNS: Tuple[str, ...] = (
    "btc_price",
    "mempool_size",
    "hashrate",
    "exchange_inflows",
    "timestamp",
)


class CamelModel(BaseModel):
    """Base for records serialised with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class NetworkSample(CamelModel):
    """
    One telemetry reading, recorded at a fixed cadence upstream.

    Attributes:
        btc_price:        BTC spot price.
        mempool_size:     Pending transactions (or bytes) in the mempool.
        hashrate:         Network hashrate.
        exchange_inflows: BTC flowing into exchanges over the interval.
        timestamp:        Unix seconds.
    """

    model_config = ConfigDict(frozen=True)

    btc_price: float
    mempool_size: float
    hashrate: float
    exchange_inflows: float
    timestamp: float

    def as_row(self) -> Tuple[float, float, float, float, float]:
        """Project onto the feature tuple in ``FEATURE_COLUMNS`` order."""
        return (
            self.btc_price,
            self.mempool_size,
            self.hashrate,
            self.exchange_inflows,
            self.timestamp,
        )


class PredictRequest(CamelModel):
    """Body of ``POST /api/v1/neural/predict``."""

    history: List[NetworkSample] = Field(
        ...,
        description="Samples ordered oldest → newest; at least ``timesteps`` long.",
    )
