# src/ephemera/main.py
"""Main entry point for the Ephemera application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ephemera.api.v1 import (
    conversations_router,
    live_router,
    messages_router,
    system_router,
)
from ephemera.core.errors import MessagingError
from ephemera.core.log import configure_logging
from ephemera.core.settings import settings
from ephemera.services.notifier import get_notifier

logger = logging.getLogger(__name__)

# HTTP status returned for each failure kind
ERROR_STATUS: dict[str, int] = {
    "invalid_content": status.HTTP_400_BAD_REQUEST,
    "invalid_participants": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Ephemeral one-to-one messaging API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(conversations_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(live_router, prefix="/api/v1")


@app.exception_handler(MessagingError)
async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status_code, content=exc.as_dict())


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info(
        "Starting %s %s with %s change notifier",
        settings.app_name,
        settings.app_version,
        settings.realtime_backend,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_notifier().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Ephemeral one-to-one messaging API",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ephemera.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
