"""
Single provider attempt - adapter + fetcher + outcome classification.

Shared by the fallback router (once per candidate), the fan-out
synthesizer and the one-shot mode handlers. An attempt never raises for
upstream trouble: every failure becomes a FAILURE outcome carrying one
AttemptFailure, so callers decide whether to advance or give up.
"""

import time

import httpx

from assistant_gateway.ai.errors import ProviderMisconfigured
from assistant_gateway.ai.monitoring import gateway_logger
from assistant_gateway.ai.providers import CallDescriptor, ProviderConfig, get_adapter
from assistant_gateway.ai.relay import drain_response, read_error_detail
from assistant_gateway.ai.router.fetcher import RetryingFetcher, RetryPolicy
from assistant_gateway.ai.router.outcome import AttemptFailure, RouteOutcome


async def attempt_provider(
    fetcher: RetryingFetcher,
    config: ProviderConfig,
    call: CallDescriptor,
    policy: RetryPolicy,
    request_id: str,
) -> RouteOutcome:
    """
    Call one provider once (with the policy's local retries).

    Returns:
        STREAM outcome with an unread response when call.stream is set,
        TEXT outcome with the drained text otherwise, or a FAILURE outcome
    """
    adapter = get_adapter(config.kind)
    try:
        upstream = adapter.build(config, call)
    except ProviderMisconfigured as e:
        gateway_logger.log_skipped(request_id, config.label or config.id, e.message)
        return RouteOutcome.failed([AttemptFailure.misconfigured(config, e.message)])

    gateway_logger.log_attempt(
        request_id=request_id,
        provider=config.label,
        model=config.model,
        kind=config.kind.value,
        stream=call.stream,
        probe=call.probe,
    )
    start_time = time.time()

    try:
        response = await fetcher.fetch(upstream, policy.with_label(config.label), stream=call.stream)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        failure = AttemptFailure.network(config, e)
        gateway_logger.log_result(
            request_id=request_id,
            provider=config.label,
            model=config.model,
            status=None,
            latency_ms=_elapsed_ms(start_time),
            success=False,
            category=failure.category.value,
            detail=failure.detail,
        )
        return RouteOutcome.failed([failure])

    if response.is_success:
        gateway_logger.log_result(
            request_id=request_id,
            provider=config.label,
            model=config.model,
            status=response.status_code,
            latency_ms=_elapsed_ms(start_time),
            success=True,
        )
        if call.stream:
            return RouteOutcome.streaming(config, response)
        text, payload = await drain_response(response, adapter)
        return RouteOutcome.buffered(config, text, payload)

    detail = await read_error_detail(response)
    failure = AttemptFailure.from_response(config, response, detail)
    gateway_logger.log_result(
        request_id=request_id,
        provider=config.label,
        model=config.model,
        status=response.status_code,
        latency_ms=_elapsed_ms(start_time),
        success=False,
        category=failure.category.value,
        detail=detail,
    )
    return RouteOutcome.failed([failure])


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000
