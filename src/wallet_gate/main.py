# src/wallet_gate/main.py
"""Main entry point for the Wallet Gate application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from wallet_gate.api.v1 import auth_router
from wallet_gate.core.settings import settings
from wallet_gate.services.auth import get_auth_core
from wallet_gate.services.nonces import NonceSweeper

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the nonce sweeper for the lifetime of the application."""
    sweeper = NonceSweeper(
        get_auth_core().nonce_store,
        interval_seconds=settings.nonce_sweep_interval_seconds,
    )
    await sweeper.start()
    app.state.nonce_sweeper = sweeper
    logger.info("%s %s started (ENV=%s)", settings.app_name, settings.app_version, settings.environment)
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("%s stopped", settings.app_name)


# Initialize FastAPI app
app = FastAPI(
    title="Wallet Gate API",
    description="Passwordless Sign-In with Ethereum sessions",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware; the frontend sends the session cookie with credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Wallet Gate API",
        "version": settings.app_version,
        "description": "Passwordless Sign-In with Ethereum sessions",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("wallet_gate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
