"""
Fallback Router - walks the provider chain until one succeeds.

State machine:
=============

    NO_PROVIDER_TRIED
          │
          ▼
    TRYING(i) ──success──────────────────────────► SUCCESS
          │ failure / not eligible
          ▼
    TRYING(i+1) ... (configured chain, caller-supplied order)
          │ all failed
          ▼
    ALL_FAILED ──► TRYING_DEFAULT(model j) ──success──► SUCCESS
                          │ failure
                          ▼
                   TRYING_DEFAULT(j+1) ... ──exhausted──► TERMINAL_FAILURE

Attempts are strictly sequential. Each provider gets a small local retry
budget (the fetcher); breadth comes from this loop. Any 2xx is terminal
success: business errors embedded in a 200 body are not inspected.
Failures are logged but never shown to the caller unless every candidate,
built-in default included, has failed.
"""

import logging
from typing import List, Optional, Sequence

from assistant_gateway.core.config import settings
from assistant_gateway.ai.monitoring import gateway_logger
from assistant_gateway.ai.providers import BuiltinProvider, CallDescriptor, ProviderConfig
from assistant_gateway.ai.router.attempt import attempt_provider
from assistant_gateway.ai.router.fetcher import RetryingFetcher, RetryPolicy
from assistant_gateway.ai.router.outcome import AttemptFailure, RouteOutcome

logger = logging.getLogger("gateway.ai.router")


class FallbackRouter:
    """
    Routes one call across an ordered list of provider configs.

    Usage:
        router = FallbackRouter(fetcher, BuiltinProvider.from_settings())
        outcome = await router.route(configs, call, request_id="a1b2c3")
        if outcome.success:
            ...relay outcome.response...
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        builtin: BuiltinProvider,
        provider_policy: Optional[RetryPolicy] = None,
        default_policy: Optional[RetryPolicy] = None,
    ):
        self.fetcher = fetcher
        self.builtin = builtin
        self.provider_policy = provider_policy or RetryPolicy.from_settings(
            attempts=settings.PROVIDER_RETRY_ATTEMPTS, label="provider"
        )
        self.default_policy = default_policy or RetryPolicy.from_settings(
            attempts=settings.DEFAULT_PROVIDER_RETRY_ATTEMPTS, label="builtin"
        )

    async def route(
        self,
        configs: Sequence[ProviderConfig],
        call: CallDescriptor,
        request_id: str,
        include_default: bool = True,
        user_model: Optional[str] = None,
    ) -> RouteOutcome:
        """
        Try each config in order, then the built-in default.

        Args:
            configs: Provider configs in priority order
            call: The provider-agnostic call
            request_id: Correlation id for logs
            include_default: Fall through to the built-in provider when the
                configured chain is exhausted
            user_model: Model requested by the caller; tried first on the
                built-in provider

        Returns:
            The first successful outcome, or a FAILURE outcome describing the
            most severe failure seen
        """
        failures: List[AttemptFailure] = []

        for index, config in enumerate(configs):
            remaining = len(configs) - index - 1
            if not config.is_eligible:
                reason = config.ineligibility_reason() or "not eligible"
                gateway_logger.log_skipped(request_id, config.label or config.id, reason)
                failures.append(AttemptFailure.misconfigured(config, reason))
                continue

            outcome = await attempt_provider(
                self.fetcher, config, call, self.provider_policy, request_id
            )
            if outcome.success:
                return outcome
            failures.extend(outcome.failures)
            gateway_logger.log_fallback(request_id, config.label, stage="configured", remaining=remaining)

        if include_default:
            outcome = await self._route_default(call, request_id, user_model, failures)
            if outcome is not None:
                return outcome

        logger.error(
            f"[{request_id}] all providers exhausted after {len(failures)} failed attempt(s)"
        )
        return RouteOutcome.failed(failures)

    async def _route_default(
        self,
        call: CallDescriptor,
        request_id: str,
        user_model: Optional[str],
        failures: List[AttemptFailure],
    ) -> Optional[RouteOutcome]:
        candidates = self.builtin.candidates(user_model)
        if not candidates or not candidates[0].is_eligible:
            reason = "built-in provider has no API key or models configured"
            gateway_logger.log_skipped(request_id, self.builtin.label, reason)
            failures.append(
                AttemptFailure.misconfigured(self.builtin.config_for(self.builtin.primary_model), reason)
            )
            return None

        for index, config in enumerate(candidates):
            outcome = await attempt_provider(
                self.fetcher, config, call, self.default_policy, request_id
            )
            if outcome.success:
                return outcome
            failures.extend(outcome.failures)
            gateway_logger.log_fallback(
                request_id, config.label, stage="default", remaining=len(candidates) - index - 1
            )
        return None
