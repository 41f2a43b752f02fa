"""
Gateway errors - the exceptions that reach the HTTP layer.

Only a small part of the failure taxonomy is ever raised to the caller:

    ClientRateLimited       caller exceeded its quota (429 + Retry-After)
    AllProvidersExhausted   every provider and the built-in default failed
    ProviderMisconfigured   a config is missing its key, model or URL;
                            raised by adapters and swallowed by the router
                            in chat mode (the chain simply advances)

Transient/permanent upstream failures are recorded per attempt (see
assistant_gateway.ai.router.outcome) and only surface through
AllProvidersExhausted.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception rendered as the JSON error envelope."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.retry_after = retry_after

    def to_payload(self) -> Dict[str, Any]:
        """Body of the error response: {error, status, retryAfter?}."""
        payload: Dict[str, Any] = {"error": self.message, "status": self.status_code}
        if self.retry_after is not None:
            payload["retryAfter"] = self.retry_after
        return payload


class ClientRateLimited(GatewayError):
    """The caller sent too many requests inside the current window."""

    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__(
            f"Too many requests. Please try again in {retry_after} seconds.",
            retry_after=retry_after,
        )


class ProviderMisconfigured(GatewayError):
    """A provider config is missing its credential, model or base URL, or is disabled."""

    status_code = 500


class AllProvidersExhausted(GatewayError):
    """No provider, including the built-in default, produced a successful response."""

    status_code = 503
