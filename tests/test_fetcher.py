"""
Tests for the retrying fetcher.

Upstreams are simulated with httpx.MockTransport and the backoff sleep is
an AsyncMock, so nothing waits and every call is counted.
"""

from typing import List, Union
from unittest.mock import AsyncMock

import httpx
import pytest

from assistant_gateway.ai.providers import UpstreamRequest
from assistant_gateway.ai.router import RetryingFetcher, RetryPolicy

UPSTREAM = UpstreamRequest(
    url="https://api.example.com/v1/chat/completions",
    headers={"Authorization": "Bearer secret"},
    body={"model": "test-model", "messages": []},
)

Step = Union[int, Exception]


class ScriptedUpstream:
    """Answers with the scripted statuses (or raises the scripted errors) in order."""

    def __init__(self, steps: List[Step]):
        self.steps = list(steps)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step, json={"status": step})


def make_fetcher(upstream: ScriptedUpstream):
    sleep = AsyncMock()
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return RetryingFetcher(client, sleep=sleep), sleep


def policy(attempts: int = 2) -> RetryPolicy:
    return RetryPolicy(
        attempts=attempts,
        retry_statuses=frozenset({500, 502, 503, 504}),
        backoff_base_ms=500,
        label="test",
    )


class TestRetryPolicy:
    """Tests for the policy value object."""

    def test_backoff_is_linear(self):
        p = policy()

        assert p.backoff_seconds(1) == 0.5
        assert p.backoff_seconds(2) == 1.0
        assert p.backoff_seconds(3) == 1.5

    def test_with_label_keeps_budget(self):
        relabeled = policy(attempts=3).with_label("OpenRouter")

        assert relabeled.label == "OpenRouter"
        assert relabeled.attempts == 3
        assert relabeled.retry_statuses == frozenset({500, 502, 503, 504})


class TestRetryingFetcher:
    """Tests for bounded retry-with-backoff."""

    @pytest.mark.asyncio
    async def test_success_needs_one_call(self):
        upstream = ScriptedUpstream([200])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy())

        assert response.status_code == 200
        assert upstream.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_client_error_is_never_retried(self):
        upstream = ScriptedUpstream([401, 200])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy(attempts=3))

        assert response.status_code == 401
        assert upstream.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried_locally(self):
        upstream = ScriptedUpstream([429, 200])
        fetcher, _ = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy(attempts=3))

        assert response.status_code == 429
        assert upstream.calls == 1

    @pytest.mark.asyncio
    async def test_transient_error_then_success(self):
        upstream = ScriptedUpstream([503, 200])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy())

        assert response.status_code == 200
        assert upstream.calls == 2
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_last_response(self):
        upstream = ScriptedUpstream([500, 502, 503])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy(attempts=3))

        assert response.status_code == 503
        assert upstream.calls == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("attempts", [1, 2, 4])
    async def test_never_exceeds_attempts(self, attempts):
        upstream = ScriptedUpstream([500])
        fetcher, _ = make_fetcher(upstream)

        await fetcher.fetch(UPSTREAM, policy(attempts=attempts))

        assert upstream.calls == attempts

    @pytest.mark.asyncio
    async def test_zero_attempt_budget_still_sends_once(self):
        upstream = ScriptedUpstream([503])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy(attempts=0))

        assert response.status_code == 503
        assert upstream.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self):
        upstream = ScriptedUpstream([httpx.ConnectError("connection refused"), 200])
        fetcher, sleep = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy())

        assert response.status_code == 200
        assert upstream.calls == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_network_error_on_final_attempt_propagates(self):
        upstream = ScriptedUpstream([httpx.ReadTimeout("timed out")])
        fetcher, _ = make_fetcher(upstream)

        with pytest.raises(httpx.ReadTimeout):
            await fetcher.fetch(UPSTREAM, policy(attempts=2))

        assert upstream.calls == 2

    @pytest.mark.asyncio
    async def test_sends_post_with_json_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        fetcher = RetryingFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        await fetcher.fetch(UPSTREAM, policy())

        assert seen[0].method == "POST"
        assert seen[0].headers["authorization"] == "Bearer secret"
        assert b'"model"' in seen[0].content

    @pytest.mark.asyncio
    async def test_streamed_response_is_readable_by_caller(self):
        upstream = ScriptedUpstream([200])
        fetcher, _ = make_fetcher(upstream)

        response = await fetcher.fetch(UPSTREAM, policy(), stream=True)

        await response.aread()
        await response.aclose()
        assert response.json() == {"status": 200}
