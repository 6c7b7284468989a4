"""
API Router - Combines all route modules.
"""
from fastapi import APIRouter

from .routes import epics, health, settings, system_config

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health.router)
api_router.include_router(settings.router)
api_router.include_router(epics.router)
api_router.include_router(system_config.router)
