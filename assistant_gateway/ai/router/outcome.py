"""
Route outcomes - what the router hands back to the mode dispatcher.

A RouteOutcome is one of:
- STREAM: a live upstream response whose SSE body is still unread
- TEXT: a fully drained response (non-streaming call sites)
- FAILURE: every candidate failed; carries the caller-facing status and
  message plus the per-attempt failures for logging

Failure taxonomy (one AttemptFailure per upstream attempt):

    MISCONFIGURED     config missing key/model/URL or disabled; never called
    TRANSIENT         5xx or network error, already retried locally
    PERMANENT         4xx other than 402/429 (bad key, bad request)
    RATE_LIMITED      upstream 429
    PAYMENT_REQUIRED  upstream 402 (credits exhausted)

When everything fails, the most severe failure decides what the caller
sees; ties go to the most recent attempt.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

import httpx

from assistant_gateway.core.config import settings
from assistant_gateway.ai.errors import AllProvidersExhausted
from assistant_gateway.ai.providers.base import ProviderConfig, ProviderKind


class FailureCategory(str, Enum):
    """Why a single upstream attempt failed."""
    MISCONFIGURED = "misconfigured"
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"


_SEVERITY = {
    FailureCategory.MISCONFIGURED: 1,
    FailureCategory.PERMANENT: 2,
    FailureCategory.TRANSIENT: 3,
    FailureCategory.RATE_LIMITED: 4,
    FailureCategory.PAYMENT_REQUIRED: 5,
}


def categorize_status(status: int) -> FailureCategory:
    """Map a non-2xx upstream status to a failure category."""
    if status == 402:
        return FailureCategory.PAYMENT_REQUIRED
    if status == 429:
        return FailureCategory.RATE_LIMITED
    if status >= 500:
        return FailureCategory.TRANSIENT
    return FailureCategory.PERMANENT


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a Retry-After header given in seconds. HTTP dates are ignored."""
    if not value:
        return None
    try:
        seconds = int(float(value.strip()))
    except ValueError:
        return None
    return max(1, seconds)


@dataclass
class AttemptFailure:
    """
    One failed upstream attempt.

    Attributes:
        provider: Provider label
        model: Model identifier
        category: Failure category
        status: Upstream HTTP status; None when no response was received
        detail: Short diagnostic (truncated upstream body or exception name)
        retry_after: Upstream Retry-After in seconds, if any
    """
    provider: str
    model: str
    category: FailureCategory
    status: Optional[int] = None
    detail: str = ""
    retry_after: Optional[int] = None

    @property
    def severity(self) -> int:
        return _SEVERITY[self.category]

    @classmethod
    def from_response(cls, config: ProviderConfig, response: httpx.Response, detail: str) -> "AttemptFailure":
        return cls(
            provider=config.label,
            model=config.model,
            category=categorize_status(response.status_code),
            status=response.status_code,
            detail=detail,
            retry_after=parse_retry_after(response.headers.get("retry-after")),
        )

    @classmethod
    def misconfigured(cls, config: ProviderConfig, detail: str) -> "AttemptFailure":
        return cls(
            provider=config.label,
            model=config.model,
            category=FailureCategory.MISCONFIGURED,
            detail=detail,
        )

    @classmethod
    def network(cls, config: ProviderConfig, error: Exception) -> "AttemptFailure":
        return cls(
            provider=config.label,
            model=config.model,
            category=FailureCategory.TRANSIENT,
            detail=f"{type(error).__name__}: {error}",
        )


def most_severe(failures: List[AttemptFailure]) -> Optional[AttemptFailure]:
    """Highest-severity failure; the latest one wins a tie."""
    worst: Optional[AttemptFailure] = None
    for failure in failures:
        if worst is None or failure.severity >= worst.severity:
            worst = failure
    return worst


def describe_failure(failure: Optional[AttemptFailure]) -> Tuple[int, str, Optional[int]]:
    """
    Caller-facing (status, message, retry_after) for a terminal failure.

    Credential problems (401/403) are the operator's fault, not the
    caller's, so they surface as a 500 "misconfigured" error.
    """
    if failure is None or failure.category == FailureCategory.MISCONFIGURED:
        return 500, "No AI provider is configured. Please contact the site owner.", None
    if failure.category == FailureCategory.PAYMENT_REQUIRED:
        return 402, "AI credits are exhausted. Please try again later.", None
    if failure.category == FailureCategory.RATE_LIMITED:
        retry_after = failure.retry_after or settings.UPSTREAM_RETRY_AFTER_SECONDS
        return 429, "Rate limit exceeded. Please try again in a moment.", retry_after
    if failure.category == FailureCategory.TRANSIENT:
        return 503, "AI service is temporarily unavailable. Please try again later.", None
    if failure.status in (401, 403):
        return 500, "AI provider is misconfigured. Please contact the site owner.", None
    return 500, "Failed to get AI response.", None


class OutcomeKind(str, Enum):
    STREAM = "stream"
    TEXT = "text"
    FAILURE = "failure"


@dataclass
class RouteOutcome:
    """
    Result of routing one call.

    Usage:
        outcome = await router.route(configs, call, request_id=request_id)
        if not outcome.success:
            raise outcome.to_error()
    """
    kind: OutcomeKind
    provider: str = ""
    provider_kind: Optional[ProviderKind] = None
    model: str = ""
    response: Optional[httpx.Response] = None
    text: str = ""
    payload: Any = None
    status_code: int = 200
    message: str = ""
    retry_after: Optional[int] = None
    failures: List[AttemptFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.kind != OutcomeKind.FAILURE

    @classmethod
    def streaming(cls, config: ProviderConfig, response: httpx.Response) -> "RouteOutcome":
        return cls(
            kind=OutcomeKind.STREAM,
            provider=config.label,
            provider_kind=config.kind,
            model=config.model,
            response=response,
        )

    @classmethod
    def buffered(cls, config: ProviderConfig, text: str, payload: Any = None) -> "RouteOutcome":
        return cls(
            kind=OutcomeKind.TEXT,
            provider=config.label,
            provider_kind=config.kind,
            model=config.model,
            text=text,
            payload=payload,
        )

    @classmethod
    def failed(cls, failures: List[AttemptFailure]) -> "RouteOutcome":
        status, message, retry_after = describe_failure(most_severe(failures))
        return cls(
            kind=OutcomeKind.FAILURE,
            status_code=status,
            message=message,
            retry_after=retry_after,
            failures=list(failures),
        )

    def to_error(self, prefix: str = "") -> AllProvidersExhausted:
        """The exception to raise for a FAILURE outcome."""
        message = f"{prefix}{self.message}" if prefix else self.message
        return AllProvidersExhausted(
            message, status_code=self.status_code, retry_after=self.retry_after
        )
