"""
Health Yaar AI - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import ai_router, auth_router, profile_router
from .config import Settings, get_settings
from .core.logging_config import setup_logging
from .llm import LLMProvider, create_llm_provider
from .middleware import RequestLoggingMiddleware
from .storage import LocalDocumentStore, ProfileStore
from .utils.auth import AuthProvider

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    llm_provider: Optional[LLMProvider] = None,
) -> FastAPI:
    """
    Build the application.

    Settings are read once here and handed to every collaborator.

    Args:
        settings: Settings to use (read from the environment if omitted)
        llm_provider: Provider override (built from settings if omitted)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        setup_logging(settings)
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"App id: {settings.app_id}")
        logger.info(f"Storage path: {settings.local_storage_path}")
        logger.info(f"AI service configured: {app.state.llm_provider is not None}")
        yield
        logger.info(f"Shutting down {settings.app_name}")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Health profile storage with AI chat, health summaries and report analysis",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.auth = AuthProvider(settings)
    app.state.profile_store = ProfileStore(settings, LocalDocumentStore(settings.local_storage_path))
    app.state.llm_provider = llm_provider if llm_provider is not None else create_llm_provider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(ai_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "app": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "message": "Welcome to Health Yaar AI",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "ai_configured": app.state.llm_provider is not None,
            "version": settings.app_version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "healthyaar.main:app",
        host="0.0.0.0",
        port=8000,
        reload=app.state.settings.debug,
    )
