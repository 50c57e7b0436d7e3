"""FastAPI application entry point: health check plus the SPA handler at /."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from spa_fallback.config import Settings, settings as default_settings
from spa_fallback.handler import SinglePageAppHandler, create_handler
from spa_fallback.sources import BundledAssetSource

logger = logging.getLogger(__name__)


def build_handler(settings: Settings) -> SinglePageAppHandler:
    """Create the SPA handler described by ``settings``."""
    bundled = BundledAssetSource(settings.SPA_BUNDLE_PACKAGE, settings.SPA_BUNDLE_RESOURCE)
    return create_handler(
        bundled,
        settings.SPA_DEVELOPMENT_PATH,
        development=settings.SPA_DEVELOPMENT,
        base_dir=settings.base_dir,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app. Construction errors abort startup."""
    settings = settings or default_settings
    spa = build_handler(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown events."""
        logger.info(f"SPA server ready ({spa.source.kind} assets)")
        yield
        # Shutdown: release the asset source
        logger.info("SPA server shutting down...")
        spa.close()

    app = FastAPI(
        title="SPA Fallback Server",
        description=(
            "Serves the static assets of a single-page application and "
            "answers unknown paths with the root document so client-side "
            "routes survive reloads and deep links."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.spa = spa

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Detailed health check."""
        return {"status": "healthy", "assets": spa.source.kind}

    # Mounted last so /health is matched first
    app.mount("/", spa, name="spa")
    return app
