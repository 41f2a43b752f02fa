"""
Retrying Fetcher - one upstream HTTP call with bounded retry-with-backoff.

Retry policy:
=============
- Up to `attempts` tries in total, never more.
- A response whose status is in `retry_statuses` (transient upstream
  failures: 500/502/503/504) is retried while attempts remain.
- Any other response, 4xx included, is returned immediately: a bad key or a
  malformed request will not get better by asking again.
- A network-level exception is retried unless it happened on the final
  attempt, in which case it propagates.
- Backoff is linear: backoff_base_ms * attempt_number. No jitter.
- When retries run out on a retryable status, the last response is
  returned so the caller can inspect its status and body.

This is the *local* retry budget. Breadth comes from the fallback router,
which moves on to the next provider when this budget is spent.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

import httpx

from assistant_gateway.core.config import settings
from assistant_gateway.ai.providers.base import UpstreamRequest

logger = logging.getLogger("gateway.ai.fetcher")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    How hard to try a single upstream before giving up on it.

    Attributes:
        attempts: Total tries, including the first
        retry_statuses: Statuses treated as transient
        backoff_base_ms: Linear backoff step in milliseconds
        label: Name used in log lines
    """
    attempts: int = 2
    retry_statuses: FrozenSet[int] = frozenset({500, 502, 503, 504})
    backoff_base_ms: int = 500
    label: str = "upstream"

    @classmethod
    def from_settings(
        cls,
        attempts: int,
        label: str,
        retry_statuses: Optional[Iterable[int]] = None,
    ) -> "RetryPolicy":
        return cls(
            attempts=attempts,
            retry_statuses=frozenset(
                retry_statuses if retry_statuses is not None else settings.RETRY_STATUSES
            ),
            backoff_base_ms=settings.RETRY_BACKOFF_BASE_MS,
            label=label,
        )

    def with_label(self, label: str) -> "RetryPolicy":
        return RetryPolicy(
            attempts=self.attempts,
            retry_statuses=self.retry_statuses,
            backoff_base_ms=self.backoff_base_ms,
            label=label,
        )

    def backoff_seconds(self, attempt: int) -> float:
        return (self.backoff_base_ms * attempt) / 1000.0


class RetryingFetcher:
    """
    Sends UpstreamRequests through a shared httpx.AsyncClient.

    Usage:
        fetcher = RetryingFetcher(http_client)
        response = await fetcher.fetch(upstream, RetryPolicy(attempts=2), stream=True)
        try:
            async for chunk in response.aiter_bytes():
                ...
        finally:
            await response.aclose()

    With stream=True the returned response body is left unread; the caller
    owns it and must close it.
    """

    def __init__(self, client: httpx.AsyncClient, sleep: SleepFunc = asyncio.sleep):
        self._client = client
        self._sleep = sleep

    async def fetch(
        self,
        request: UpstreamRequest,
        policy: RetryPolicy,
        stream: bool = False,
    ) -> httpx.Response:
        """
        POST the request, retrying transient failures per the policy.

        Returns:
            The first non-retryable response, or the last response observed

        Raises:
            httpx.HTTPError: When the final attempt fails at the network level
        """
        attempts = max(1, policy.attempts)
        attempt = 0

        while True:
            attempt += 1
            try:
                http_request = self._client.build_request(
                    "POST", request.url, headers=request.headers, json=request.body
                )
                response = await self._client.send(http_request, stream=stream)
            except httpx.HTTPError as e:
                if attempt >= attempts:
                    logger.warning(
                        f"[{policy.label}] attempt {attempt}/{attempts} failed: "
                        f"{type(e).__name__}; giving up"
                    )
                    raise
                logger.warning(
                    f"[{policy.label}] attempt {attempt}/{attempts} failed: "
                    f"{type(e).__name__}; retrying"
                )
                await self._sleep(policy.backoff_seconds(attempt))
                continue

            if response.status_code in policy.retry_statuses and attempt < attempts:
                logger.warning(
                    f"[{policy.label}] attempt {attempt}/{attempts} returned "
                    f"{response.status_code}; retrying"
                )
                await response.aclose()
                await self._sleep(policy.backoff_seconds(attempt))
                continue

            return response
