"""
Gateway Logger - Structured logging for upstream AI traffic.

This module provides structured logging for everything the router does
upstream. It captures:
- Each provider attempt (label, model, wire format)
- Each result (status, latency, failure category)
- Fallback hops and skipped configs
- Rate-limit rejections
- Fan-out fragments

Log Format:
==========
Each entry is a JSON document embedded in the log message, so it can be
grepped by eye and parsed by a log pipeline alike:

    [2026-10-19 12:00:00] INFO [gateway.ai] AI Attempt: {"event": "provider_attempt", ...}

Credentials and full upstream URLs are never logged (generate-content URLs
carry the key in the query string).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Configure the gateway logger
logger = logging.getLogger("gateway.ai")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

# Upstream error bodies are truncated to this many characters
MAX_DETAIL_CHARS = 300


def _truncate(text: Optional[str], limit: int = MAX_DETAIL_CHARS) -> Optional[str]:
    if text is None:
        return None
    return text[:limit] + "..." if len(text) > limit else text


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GatewayLogger:
    """
    Structured logger for router operations.

    Usage:
        gateway_logger.log_attempt(
            request_id="a1b2c3",
            provider="OpenRouter",
            model="meta-llama/llama-3.3-70b-instruct",
            kind="chat_completions",
        )
        gateway_logger.log_result(
            request_id="a1b2c3",
            provider="OpenRouter",
            model="meta-llama/llama-3.3-70b-instruct",
            status=503,
            latency_ms=812.4,
            success=False,
            category="transient",
        )
    """

    def __init__(self):
        self._logger = logger

    def log_attempt(
        self,
        request_id: str,
        provider: str,
        model: str,
        kind: str,
        stream: bool = True,
        probe: bool = False,
    ) -> None:
        """Log the start of one upstream attempt."""
        log_data = {
            "event": "provider_attempt",
            "request_id": request_id,
            "provider": provider,
            "model": model,
            "kind": kind,
            "stream": stream,
            "probe": probe,
            "timestamp": _now(),
        }
        self._logger.info(f"AI Attempt: {json.dumps(log_data)}")

    def log_result(
        self,
        request_id: str,
        provider: str,
        model: str,
        status: Optional[int],
        latency_ms: float,
        success: bool,
        category: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        """
        Log the result of one upstream attempt.

        Args:
            request_id: Request identifier (for correlation)
            provider: Provider label
            model: Model identifier
            status: Upstream HTTP status, None for network-level failures
            latency_ms: Time spent including local retries
            success: Whether the upstream answered 2xx
            category: Failure category when unsuccessful
            detail: Upstream error detail (truncated)
        """
        log_data = {
            "event": "provider_result",
            "request_id": request_id,
            "provider": provider,
            "model": model,
            "status": status,
            "success": success,
            "latency_ms": round(latency_ms, 2),
            "timestamp": _now(),
        }
        if not success:
            log_data["category"] = category
            log_data["detail"] = _truncate(detail)

        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, f"AI Result: {json.dumps(log_data)}")

    def log_skipped(self, request_id: str, provider: str, reason: str) -> None:
        """Log a config that was not eligible and therefore never called."""
        log_data = {
            "event": "provider_skipped",
            "request_id": request_id,
            "provider": provider,
            "reason": reason,
            "timestamp": _now(),
        }
        self._logger.info(f"AI Skipped: {json.dumps(log_data)}")

    def log_fallback(
        self,
        request_id: str,
        from_provider: str,
        stage: str,
        remaining: int,
    ) -> None:
        """
        Log a hop to the next candidate.

        Args:
            request_id: Request identifier
            from_provider: Label of the provider that just failed
            stage: "configured" or "default"
            remaining: Candidates left in the current stage
        """
        log_data = {
            "event": "fallback",
            "request_id": request_id,
            "from_provider": from_provider,
            "stage": stage,
            "remaining": remaining,
            "timestamp": _now(),
        }
        self._logger.warning(f"AI Fallback: {json.dumps(log_data)}")

    def log_rate_limited(self, request_id: str, client_id: str, retry_after: int) -> None:
        log_data = {
            "event": "rate_limited",
            "request_id": request_id,
            "client_id": client_id,
            "retry_after": retry_after,
            "timestamp": _now(),
        }
        self._logger.warning(f"Rate Limited: {json.dumps(log_data)}")

    def log_fragment(
        self,
        request_id: str,
        label: str,
        success: bool,
        length: int = 0,
        error: Optional[str] = None,
    ) -> None:
        """Log one fan-out sub-call result."""
        log_data = {
            "event": "fan_out_fragment",
            "request_id": request_id,
            "label": label,
            "success": success,
            "length": length,
            "timestamp": _now(),
        }
        if error:
            log_data["error"] = _truncate(error)

        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, f"Fan-out Fragment: {json.dumps(log_data)}")

    def log_error(
        self,
        request_id: str,
        error: str,
        stage: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log an error surfaced to the caller.

        Args:
            request_id: Request identifier
            error: Error message
            stage: Where it happened (chat, test, image-gen, extract, ...)
            metadata: Additional context
        """
        log_data = {
            "event": "ai_error",
            "request_id": request_id,
            "error": error,
            "stage": stage,
            "timestamp": _now(),
        }
        if metadata:
            log_data["metadata"] = metadata

        self._logger.error(f"AI Error: {json.dumps(log_data)}")

    def log_event(
        self,
        request_id: str,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a generic event (mode dispatched, synthesis started, ...)."""
        log_data = {
            "event": event_type,
            "request_id": request_id,
            "timestamp": _now(),
        }
        if data:
            log_data.update(data)

        self._logger.info(f"AI Event: {json.dumps(log_data)}")


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
gateway_logger = GatewayLogger()
