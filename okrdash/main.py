"""
okrdash - OKR Dashboard backend

FastAPI application serving per-user settings, the epic analysis cache and
system configuration.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import api_router
from .config import Settings, get_settings
from .infra.db.session import open_store
from .middleware.auth import ApiKeyMiddleware
from .services.registry import build_services

logger = logging.getLogger(__name__)


def configure_logging(level_name: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting okrdash API server...")
        async with open_store(settings.database_url, echo=settings.debug) as store:
            logger.info("Document store initialized")
            app.state.services = build_services(store, settings)
            yield
        logger.info("Shutting down okrdash API server...")

    app = FastAPI(
        title="okrdash",
        description="OKR dashboard settings and epic cache service",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ApiKeyMiddleware, api_key=settings.api_key)

    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app
