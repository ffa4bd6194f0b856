"""
app/api/v1/router.py
─────────────────────
Aggregate every v1 endpoint router under one ``APIRouter``.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import forecaster

api_router = APIRouter()
api_router.include_router(forecaster.router, prefix="/neural", tags=["neural"])
