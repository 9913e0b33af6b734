"""
GenStack API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from genstack.config import get_settings
from genstack.core.database import close_db, init_db
from genstack.core.locks import close_sync_locks
from genstack.routers import (
    advanced_git_router,
    github_accounts_router,
    github_actions_router,
    health_router,
    projects_router,
    repository_router,
)
from genstack.services.github_client import get_client_cache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("github").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting GenStack API...")
    settings = get_settings()

    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    logger.info(f"GenStack API started in {settings.environment} mode")

    yield

    logger.info("Shutting down GenStack API...")
    get_client_cache().clear()
    await close_sync_locks()
    await close_db()
    logger.info("GenStack API shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="GenStack API",
        description="GitHub repository sync and workflow orchestration API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health_router)
    app.include_router(github_accounts_router)
    app.include_router(projects_router)
    app.include_router(repository_router)
    app.include_router(github_actions_router)
    app.include_router(advanced_git_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "GenStack API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "genstack.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
