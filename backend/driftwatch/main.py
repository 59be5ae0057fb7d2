"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from driftwatch import __version__
from driftwatch.api import health, scans, webhooks
from driftwatch.core.logging import setup_logging
from driftwatch.middleware.error_codes import error_body
from driftwatch.services.exceptions import (
    ScanNotFoundError,
    ScanRateLimitError,
    ScanSchedulingError,
)

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="DriftWatch API",
    description="Detects documentation drift on pull requests and scheduled sweeps",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(scans.router, prefix="/api", tags=["Scans"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])


@app.exception_handler(ScanNotFoundError)
async def scan_not_found_handler(request: Request, exc: ScanNotFoundError):
    return JSONResponse(status_code=404, content=error_body(404, str(exc)))


@app.exception_handler(ScanRateLimitError)
async def rate_limit_handler(request: Request, exc: ScanRateLimitError):
    headers = {"Retry-After": str(int(exc.retry_after))} if exc.retry_after else None
    return JSONResponse(
        status_code=429,
        content=error_body(429, str(exc), retry_after=exc.retry_after),
        headers=headers,
    )


@app.exception_handler(ScanSchedulingError)
async def scheduling_error_handler(request: Request, exc: ScanSchedulingError):
    logger.error(f"Scheduling failed: {exc}")
    return JSONResponse(status_code=503, content=error_body(503, str(exc)))


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "DriftWatch API",
        "version": __version__,
        "docs": "/api/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("driftwatch.main:app", host="0.0.0.0", port=8000, reload=True)
