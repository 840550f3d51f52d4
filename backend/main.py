"""
Dishfinder API
==============

Main entry point for the recipe search service.

Features:
- Exact -> full-text -> phonetic matching with cached results
- Per-identity auto-find quota
- Background recipe synthesis (huey) when nothing matches
- Search analytics
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dishfinder.api.routes import router as api_router
from dishfinder.core.config import get_settings
from dishfinder.dependencies import get_analytics_recorder, get_recipe_repository

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Recipe store: %s", settings.recipe_store_backend)
    logger.info("Job queue: %s%s", settings.huey_backend, " (immediate)" if settings.huey_immediate else "")

    # Open the store up front to avoid first-request latency
    try:
        repository = get_recipe_repository()
        logger.info("Store ready. %d recipes.", repository.count())
    except Exception as e:
        logger.warning("Store pre-warming failed (will retry on request): %s", e)

    recorder = get_analytics_recorder()
    recorder.start()

    yield

    await recorder.stop()
    logger.info("Shutting down %s.", settings.app_name)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Recipe search with tiered matching and background auto-find",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
