"""
core/config.py
──────────────
Centralised forecaster settings via ``pydantic-settings``.

All configuration is driven by environment variables (or a ``.env`` file
in the ``backend/`` directory).  ``pydantic-settings`` validates types at
startup, so a bad window size or an incomplete Supabase store fails fast
with a clear error message.

Usage
-----
    from core.config import get_settings

    settings = get_settings()
    print(settings.TIMESTEPS)
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the backend/ directory so relative .env paths work from any cwd.
_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Forecaster settings loaded from environment variables / ``.env`` file.

    Attributes:
        APP_TITLE:        Human-readable API name shown in OpenAPI docs.
        APP_VERSION:      Semantic version string.
        FRONTEND_URL:     Optional deployed dashboard origin for CORS.
        DEBUG:            Enable verbose logging.
        LOG_LEVEL:        Root log level used by ``configure_logging``.
        TIMESTEPS:        Window length fed to the model.
        FEATURES:         Values per timestep.
        LSTM_UNITS:       Hidden size of both recurrent layers.
        DROPOUT_RATE:     Rate of the dropout step between the layers.
        LEARNING_RATE:    Adam learning rate.
        BATCH_SIZE:       Mini-batch size during training.
        VALIDATION_SPLIT: Fraction of examples held out per fit.
        DEFAULT_EPOCHS:   Epochs used when a caller does not pass one.
        RANDOM_SEED:      Optional seed for reproducible weight init.
        MODEL_STORE:      ``file``, ``supabase`` or ``none``.
        MODEL_DIR:        Directory used by the file store.
        MODEL_ID:         Row / file id of the persisted model.
        MODEL_TABLE:      Supabase table holding persisted models.
        SUPABASE_URL:     Supabase project URL (supabase store only).
        SUPABASE_KEY:     Supabase anon or service-role key.
    """

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── API metadata ──────────────────────────────────────────────────────
    APP_TITLE: str = "Network Trend Forecaster API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = (
        "Short-term BTC trend, price, confidence and volatility predictions "
        "from mempool, hashrate and exchange-flow telemetry."
    )

    # ── CORS ──────────────────────────────────────────────────────────────
    # Optional extra origin injected by the hosting environment.
    FRONTEND_URL: str = ""

    # ── Logging ───────────────────────────────────────────────────────────
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Model architecture ────────────────────────────────────────────────
    TIMESTEPS: int = Field(default=10, ge=2)
    FEATURES: int = Field(default=5, ge=1)
    LSTM_UNITS: int = Field(default=50, ge=1)
    DROPOUT_RATE: float = Field(default=0.2, ge=0.0, lt=1.0)
    LEARNING_RATE: float = Field(default=0.001, gt=0.0)

    # ── Training ──────────────────────────────────────────────────────────
    BATCH_SIZE: int = Field(default=32, ge=1)
    VALIDATION_SPLIT: float = Field(default=0.2, ge=0.0, lt=1.0)
    DEFAULT_EPOCHS: int = Field(default=100, ge=1)
    RANDOM_SEED: Optional[int] = None

    # ── Persistence ───────────────────────────────────────────────────────
    MODEL_STORE: Literal["file", "supabase", "none"] = "file"
    MODEL_DIR: Path = _BACKEND_DIR / "artifacts"
    MODEL_ID: str = "btc_usd_price_prediction"
    MODEL_TABLE: str = "neural_models"
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    @model_validator(mode="after")
    def _supabase_store_needs_credentials(self) -> "Settings":
        """Raise if the Supabase store is selected without credentials."""
        if self.MODEL_STORE == "supabase" and not (self.SUPABASE_URL and self.SUPABASE_KEY):
            raise ValueError(
                "MODEL_STORE=supabase requires SUPABASE_URL and SUPABASE_KEY"
            )
        return self

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Local dashboard dev origins plus ``FRONTEND_URL`` if set."""
        origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins

    @property
    def effective_log_level(self) -> str:
        """``DEBUG`` wins over ``LOG_LEVEL`` when the debug flag is on."""
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return a cached ``Settings`` singleton.

    The instance is created (and the ``.env`` file parsed) only once per
    process lifetime, courtesy of ``functools.lru_cache``.

    Returns:
        Settings: Validated forecaster configuration.
    """
    return Settings()
