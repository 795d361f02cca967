"""FastAPI server for the reconciliation engine.

Main entry point for the API server.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import __version__
from core.observability import configure_logging, get_logger
from reconciliation import load_environment
from api.dependencies import get_resolver
from api.routes import (
    health,
    reconciliation,
    entities,
)


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    load_environment()
    configure_logging(
        level=getattr(logging, os.getenv("RECON_LOG_LEVEL", "INFO").upper(), logging.INFO),
        json_format=os.getenv("RECON_LOG_JSON", "").lower() in ("1", "true", "yes"),
        force=True,
    )
    resolver = get_resolver()
    logger.info("Reconciliation API starting up", extra_fields={"entities": len(resolver)})

    yield

    # Shutdown
    logger.info("Reconciliation API shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Payment Reconciliation API",
        description="Classifies payments against invoices and ledger entries and groups payer names into entities",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(reconciliation.router, prefix="/reconciliation", tags=["Reconciliation"])
    app.include_router(entities.router, prefix="/entities", tags=["Entities"])

    return app


# Default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
