"""
app/main.py
────────────
FastAPI application factory.

All forecasting logic lives in the ``neural`` package and the routes in
``app/api/v1/endpoints/``.  This file wires together middleware, routers
and the forecaster's lifecycle only.

API Layout
----------
GET  /                           Health check
POST /api/v1/neural/predict      Trend / price / confidence / volatility
POST /api/v1/neural/train        Fit the model on training examples
GET  /api/v1/neural/status       Training status and model metadata
POST /api/v1/neural/model/save   Persist the model
POST /api/v1/neural/model/load   Restore the model

OpenAPI docs
------------
- Swagger UI:  http://localhost:8000/docs
- ReDoc:       http://localhost:8000/redoc
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dependencies import build_model_store
from app.api.v1.router import api_router
from core.config import get_settings
from core.logging_config import configure_logging
from neural import Forecaster

logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application startup and shutdown logic.

    Startup:  Build the forecaster and restore the persisted model if the
              configured store has one.  A corrupt stored model aborts
              startup rather than serving a silently reset model.
    Shutdown: Close the forecaster (waits for a background fit).
    """
    settings = get_settings()
    configure_logging(settings.effective_log_level)
    logger.info(
        "Starting %s v%s (store=%s, timesteps=%d)",
        settings.APP_TITLE,
        settings.APP_VERSION,
        settings.MODEL_STORE,
        settings.TIMESTEPS,
    )

    store = build_model_store(settings)
    forecaster = Forecaster.from_settings(settings, store=store)
    if store is not None and store.exists():
        try:
            forecaster.restore()
        except Exception as exc:
            logger.error("Restoring model %s failed: %s", settings.MODEL_ID, exc)
            forecaster.close()
            raise
        logger.info("Restored model %s", settings.MODEL_ID)
    app.state.forecaster = forecaster

    yield  # ← application runs here

    forecaster.close()
    logger.info("Shutting down %s", settings.APP_TITLE)


# ── App factory ───────────────────────────────────────────────────────────────

settings = get_settings()

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(api_router, prefix="/api/v1")

# ── Root health-check ─────────────────────────────────────────────────────────


@app.get("/", tags=["health"], summary="Health check")
def health_check() -> dict:
    """
    Lightweight liveness probe.

    Returns:
        Status and current API version.
    """
    return {"status": "ok", "version": settings.APP_VERSION}
