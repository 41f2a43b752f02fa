"""
Router Module - getting one logical request answered by some provider.

- fetcher: single upstream call with bounded retry-with-backoff
- attempt: one provider attempt, classified into a RouteOutcome
- fallback: sequential walk over the configured chain, then the built-in default
- outcome: RouteOutcome and the per-attempt failure taxonomy
"""

from assistant_gateway.ai.router.fetcher import RetryingFetcher, RetryPolicy
from assistant_gateway.ai.router.outcome import (
    AttemptFailure,
    FailureCategory,
    OutcomeKind,
    RouteOutcome,
)
from assistant_gateway.ai.router.attempt import attempt_provider
from assistant_gateway.ai.router.fallback import FallbackRouter

__all__ = [
    "AttemptFailure",
    "FailureCategory",
    "FallbackRouter",
    "OutcomeKind",
    "RetryPolicy",
    "RetryingFetcher",
    "RouteOutcome",
    "attempt_provider",
]
