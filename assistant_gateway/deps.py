"""
Dependencies module - reusable FastAPI dependencies for route handlers.
Process-wide objects (the shared HTTP client and the rate limiter) live on
app.state and are created in the lifespan; everything else is cheap and
built per request.
"""

import httpx
from fastapi import Depends, Request

from assistant_gateway.ai.analysis import FanOutSynthesizer
from assistant_gateway.ai.providers import BuiltinProvider
from assistant_gateway.ai.router import FallbackRouter, RetryingFetcher
from assistant_gateway.services.chat_service import ModeDispatcher
from assistant_gateway.services.rate_limiter import RateLimiter


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The shared outbound client created in the lifespan."""
    return request.app.state.http_client


def get_rate_limiter(request: Request) -> RateLimiter:
    """The per-process rate limiter created in the lifespan."""
    return request.app.state.rate_limiter


def get_client_id(request: Request) -> str:
    """
    Identify the caller for rate limiting.

    Behind a proxy the first X-Forwarded-For entry is the original client;
    X-Real-IP is the fallback, then the socket peer address.
    """
    forwarded_for = request.headers.get("x-forwarded-for", "")
    if forwarded_for.strip():
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def get_dispatcher(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> ModeDispatcher:
    """
    Wire the mode dispatcher for one request.

    The built-in provider is read from settings on every request.
    """
    fetcher = RetryingFetcher(http_client)
    builtin = BuiltinProvider.from_settings()
    return ModeDispatcher(
        rate_limiter=rate_limiter,
        router=FallbackRouter(fetcher, builtin),
        synthesizer=FanOutSynthesizer(fetcher, builtin),
        fetcher=fetcher,
        builtin=builtin,
    )
