"""VulnGuard REST API — FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from vulnguard.api.deps import init_database, shutdown
from vulnguard.api.errors import register_error_handlers
from vulnguard.api.middleware.cors import ScopedCORSMiddleware
from vulnguard.api.middleware.request_id import RequestIDMiddleware
from vulnguard.api.routers import remediate, repositories, settings
from vulnguard.core.logging import setup_logging


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create tables. Shutdown: drain remediation, close clients."""
    await init_database()
    yield
    await shutdown()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    load_dotenv()
    setup_logging()

    app = FastAPI(
        title="VulnGuard",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("VULNGUARD_CORS_ORIGINS", "*")
    app.add_middleware(
        ScopedCORSMiddleware,
        open_paths=[remediate.REMEDIATE_PATH],
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(
        repositories.router, prefix="/api/v1/repositories", tags=["repositories"]
    )
    app.include_router(settings.router, prefix="/api/v1", tags=["settings"])
    app.include_router(remediate.router, tags=["remediation"])

    return app
