"""API router for v1 endpoints."""

from fastapi import APIRouter

from contestacion_engine.api import contestacion

router = APIRouter()

router.include_router(contestacion.router, tags=["contestacion"])
