"""
FastAPI application entry point for the puzzle API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from puzzle_api.config import PLACEHOLDER_PUBLIC_BUCKET_URL, get_settings
from puzzle_api.errors import register_exception_handlers
from puzzle_api.gallery_routes import router as gallery_router
from puzzle_api.middleware import install_middleware
from puzzle_api.routes import router
from puzzle_api.spa import install_spa_fallback

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Puzzle API", version="0.1.0")
    register_exception_handlers(app)
    install_middleware(app)

    app.include_router(router)
    app.include_router(gallery_router, prefix=settings.api_prefix)

    if settings.spa_dist_dir:
        install_spa_fallback(app, settings.spa_dist_dir, settings.api_prefix)

    if settings.public_bucket_url == PLACEHOLDER_PUBLIC_BUCKET_URL:
        logger.warning(
            "PUBLIC_BUCKET_URL is unset; uploaded image URLs use the placeholder %s",
            PLACEHOLDER_PUBLIC_BUCKET_URL,
        )
    return app


app = create_app()
