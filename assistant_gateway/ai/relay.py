"""
Stream Relay - hands a successful upstream body back to the caller.

Two call sites:

1. Streaming (chat, deep analysis): the upstream SSE body is forwarded
   chunk by chunk without buffering the whole response. Chat-completions
   streams already have the caller-facing shape and pass through
   unchanged. Messages-style and generate-content-style streams are
   transcoded event by event into OpenAI-compatible chunks:

       data: {"choices":[{"delta":{"content":"Hi"}}]}

   and terminated with `data: [DONE]`.

2. Non-streaming (connectivity test, one-shot modes): the body is drained
   completely and its text extracted. SSE, a JSON object and a JSON array
   (generate-content without alt=sse) are all accepted.

The upstream response is always closed, including when the caller
disconnects mid-stream and the generator is cancelled.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable, List, Optional, Tuple

import httpx

from assistant_gateway.ai.providers import ProviderAdapter, ProviderKind, get_adapter

if TYPE_CHECKING:
    from assistant_gateway.ai.router.outcome import RouteOutcome

logger = logging.getLogger("gateway.ai.relay")

DONE_FRAME = b"data: [DONE]\n\n"

# Headers for the caller-facing event stream
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_chunk(text: str) -> bytes:
    """One OpenAI-compatible SSE frame carrying a content delta."""
    chunk = {"choices": [{"index": 0, "delta": {"content": text}}]}
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n".encode("utf-8")


def iter_event_payloads(event: str) -> Iterable[Any]:
    """
    Decode the JSON payloads of one SSE event block.

    Comment lines, `event:` lines and the [DONE] sentinel are skipped, as is
    any data line that is not valid JSON.
    """
    for line in event.split("\n"):
        line = line.strip()
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if not data or data == "[DONE]":
            continue
        try:
            yield json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping non-JSON SSE data line: {data[:80]}")


def split_events(buffer: str) -> Tuple[List[str], str]:
    """Split complete SSE events off a text buffer; returns (events, remainder)."""
    buffer = buffer.replace("\r\n", "\n")
    *events, remainder = buffer.split("\n\n")
    return events, remainder


async def relay_stream(outcome: "RouteOutcome") -> AsyncIterator[bytes]:
    """
    Async generator forwarding a STREAM outcome to the caller.

    Usage:
        return StreamingResponse(relay_stream(outcome), media_type="text/event-stream")
    """
    response = outcome.response
    if response is None:
        raise ValueError("relay_stream requires a streaming outcome")

    try:
        if outcome.provider_kind == ProviderKind.CHAT_COMPLETIONS:
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
            return

        adapter = get_adapter(outcome.provider_kind)
        buffer = ""
        async for text in response.aiter_text():
            buffer += text
            events, buffer = split_events(buffer)
            for event in events:
                for frame in _transcode_event(event, adapter):
                    yield frame
        if buffer.strip():
            for frame in _transcode_event(buffer, adapter):
                yield frame
        yield DONE_FRAME
    finally:
        await response.aclose()


def _transcode_event(event: str, adapter: ProviderAdapter) -> Iterable[bytes]:
    for payload in iter_event_payloads(event):
        text = adapter.extract_text(payload)
        if text:
            yield encode_chunk(text)


def extract_body_text(body: str, adapter: ProviderAdapter) -> Tuple[str, Optional[Any]]:
    """
    Text and parsed payload of a complete response body.

    For an SSE body the texts of all events are concatenated and the first
    payload that carried text is returned. For a JSON body the parsed
    document is returned as-is.
    """
    stripped = body.strip()
    if not stripped:
        return "", None

    if stripped.startswith("data:") or "\ndata:" in stripped:
        texts: List[str] = []
        first_payload: Optional[Any] = None
        events, remainder = split_events(stripped)
        for event in events + [remainder]:
            for payload in iter_event_payloads(event):
                text = adapter.extract_text(payload)
                if text:
                    texts.append(text)
                    if first_payload is None:
                        first_payload = payload
        return "".join(texts), first_payload

    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return stripped, None
    return adapter.extract_text(payload), payload


async def drain_response(response: httpx.Response, adapter: ProviderAdapter) -> Tuple[str, Optional[Any]]:
    """Read a successful response completely, close it, and extract its text."""
    try:
        await response.aread()
        return extract_body_text(response.text, adapter)
    finally:
        await response.aclose()


async def read_error_detail(response: httpx.Response, limit: int = 300) -> str:
    """Read and close a failed response, returning a short diagnostic."""
    try:
        await response.aread()
        detail = response.text.strip()
    except httpx.HTTPError as e:
        detail = f"<unreadable body: {type(e).__name__}>"
    finally:
        await response.aclose()
    return detail[:limit]
