"""FastAPI application with lifespan startup."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# Phase 1: Singleton logging. MUST be before any stagewire imports
# (they transitively import fastmcp which reads FASTMCP_LOG_LEVEL)
from stagewire.logging_config import setup_logging

setup_logging()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from starlette.exceptions import HTTPException  # noqa: E402
from starlette.responses import Response  # noqa: E402
from starlette.staticfiles import StaticFiles  # noqa: E402
from starlette.types import Scope  # noqa: E402

from stagewire import __version__  # noqa: E402
from stagewire.api.app_state import build_app_state  # noqa: E402
from stagewire.api.routes import health, progress, texts  # noqa: E402
from stagewire.config import Settings  # noqa: E402
from stagewire.logger import PipelineLogger  # noqa: E402
from stagewire.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
)

# Phase 2: Now that all imports (including fastmcp) are done,
# clear fastmcp's duplicate handlers.
cleanup_third_party_handlers()

_logger = logging.getLogger(__name__)


class SPAStaticFiles(StaticFiles):
    """Serve index.html for unknown paths so client routing works."""

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            return await super().get_response("index.html", scope)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = _settings
    logging.getLogger().setLevel(settings.log_level.upper())

    # Account errors are fatal here, before any request is accepted.
    pipeline_logger = PipelineLogger(
        log_dir=settings.log_dir, level=settings.log_level
    )
    state = build_app_state(settings, pipeline_logger=pipeline_logger)

    app.state.settings = settings
    app.state.typed = state

    _logger.info(
        "event=startup primary=%s dependent=%s",
        settings.primary_mcp_server,
        settings.dependent_mcp_server,
    )
    yield
    _logger.info(
        "event=shutdown observers=%d", state.registry.count
    )


app = FastAPI(
    title="Stagewire",
    description=(
        "Staged MCP tool pipeline with live progress over SSE"
    ),
    version=__version__,
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# CORS answers browser preflights (OPTIONS with Origin +
# Access-Control-Request-Method) before they reach the router.
_settings = Settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control"],
    allow_credentials=True,
)

# Routes
app.include_router(health.router)
app.include_router(texts.router)
app.include_router(progress.router)

# Static frontend last, so /api/* always wins.
if _settings.serve_static:
    if _settings.static_dir.is_dir():
        app.mount(
            "/",
            SPAStaticFiles(directory=_settings.static_dir, html=True),
            name="frontend",
        )
    else:
        _logger.warning(
            "event=static_dir_missing path=%s", _settings.static_dir
        )
