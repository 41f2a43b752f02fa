"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn assistant_gateway.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assistant_gateway import models  # noqa: F401  registers tables on Base.metadata
from assistant_gateway.ai.errors import GatewayError
from assistant_gateway.core.config import settings
from assistant_gateway.db.base import Base
from assistant_gateway.db.session import engine
from assistant_gateway.routers import chat
from assistant_gateway.services.rate_limiter import RateLimiter

logger = logging.getLogger("gateway.app")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# Process-wide resources:
# - tables are created if missing (the router only reads them)
# - one shared httpx.AsyncClient for every upstream call, closed on shutdown
# - one RateLimiter; its per-client map is the only cross-request state
@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.AI_REQUEST_TIMEOUT))
    app.state.rate_limiter = RateLimiter.from_settings()
    logger.info(f"{settings.APP_NAME} started")
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        logger.info(f"{settings.APP_NAME} stopped")


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The endpoint is called from the public website, so every origin is
# allowed and preflight OPTIONS requests are answered by the middleware.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ---------------------------------------------------------------------------
# Every failure leaves as {error, status?} JSON; never a stack trace or a
# provider-internal payload.

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    headers = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location}: {first.get('msg')}" if location else f"Invalid request: {first.get('msg')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "status": 400})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "status": 500})


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# chat.router: POST /ai-chat
app.include_router(chat.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Simple health check endpoint.

    Does NOT check database or upstream connectivity.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
