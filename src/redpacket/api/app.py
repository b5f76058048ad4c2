"""FastAPI application configuration (ledger API)."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from ..envs.ledger_env import get_settings
from .dependencies import get_database_client_dependency
from .routers import accounts, transactions

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await get_database_client_dependency().close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Red packet escrow ledger API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(transactions.router, prefix="/api/v1")
    app.include_router(accounts.router, prefix="/api/v1")
    app.mount("/metrics", make_asgi_app())

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint; degraded when Redis does not answer."""
        redis_ok = await get_database_client_dependency().ping()
        return {
            "status": "healthy" if redis_ok else "degraded",
            "database": "up" if redis_ok else "down",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    return app


app = create_app()
