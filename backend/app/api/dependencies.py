"""
app/api/dependencies.py
───────────────────────
FastAPI dependency functions and the model-store factory.

Usage
-----
    from app.api.dependencies import get_forecaster

    @router.post("/foo")
    def my_route(forecaster: Forecaster = Depends(get_forecaster)):
        ...
"""

from typing import Optional

from fastapi import HTTPException, Request

from core.config import Settings
from core.database import get_supabase_client
from neural import FileModelStore, Forecaster, ModelStore, SupabaseModelStore


def build_model_store(settings: Settings) -> Optional[ModelStore]:
    """
    Pick the persistence backend named by ``settings.MODEL_STORE``.

    Returns:
        The store, or ``None`` when persistence is disabled.
    """
    if settings.MODEL_STORE == "supabase":
        return SupabaseModelStore(
            get_supabase_client(), model_id=settings.MODEL_ID, table=settings.MODEL_TABLE
        )
    if settings.MODEL_STORE == "file":
        return FileModelStore(settings.MODEL_DIR, model_id=settings.MODEL_ID)
    return None


def get_forecaster(request: Request) -> Forecaster:
    """
    FastAPI dependency returning the forecaster built in the lifespan.

    Raises:
        HTTPException 503: If the application has not finished starting.
    """
    forecaster = getattr(request.app.state, "forecaster", None)
    if forecaster is None:
        raise HTTPException(status_code=503, detail="Forecaster is not initialised")
    return forecaster
