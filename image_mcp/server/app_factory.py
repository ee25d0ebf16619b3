"""Application factory for the HTTP transport."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from image_mcp.backend.base import GenerationBackend
from image_mcp.backend.openrouter import OpenRouterBackend
from image_mcp.config import Settings
from image_mcp.sandbox.paths import ensure_root
from image_mcp.server.dispatcher import Dispatcher
from image_mcp.server.http import router


def create_app(settings: Settings, backend: GenerationBackend | None = None) -> FastAPI:
    """Create the FastAPI application bound to one settings instance."""
    logger = logging.getLogger(__name__)
    dispatcher = Dispatcher(settings, backend or OpenRouterBackend(settings.backend))

    @asynccontextmanager
    async def _lifespan(_: FastAPI):
        root = ensure_root(settings.output_root)
        logger.info(
            "HTTP transport started",
            extra={"output_root": str(root), "auth_configured": bool(settings.server.auth_token)},
        )
        yield

    app = FastAPI(
        title="OpenRouter Image MCP",
        version=settings.server_info.version,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.include_router(router)
    return app
