"""
Messages-style adapter - Anthropic-shaped wire format.

Request:
    POST {base_url}/messages
    x-api-key: <key>
    anthropic-version: 2023-06-01
    {"model": ..., "max_tokens": ..., "system": "...", "messages": [...], "stream": true}

The system instruction travels in its own field, so any system-role turn
is dropped from the message list. Streamed text arrives in
"content_block_delta" events.

API Documentation: https://docs.anthropic.com/en/api/messages
"""

from typing import Any, Dict, List

from assistant_gateway.ai.providers.base import (
    CallDescriptor,
    ChatTurn,
    ProviderAdapter,
    ProviderConfig,
    ProviderKind,
    UpstreamRequest,
    join_url,
    parse_image_reference,
    text_value,
)


class MessagesAdapter(ProviderAdapter):
    """Builds messages-style requests and reads messages-style payloads."""

    kind = ProviderKind.MESSAGES

    def __init__(self, anthropic_version: str = "2023-06-01", **kwargs):
        super().__init__(**kwargs)
        self.anthropic_version = anthropic_version

    def _build(self, config: ProviderConfig, call: CallDescriptor) -> UpstreamRequest:
        body: Dict[str, Any] = {
            "model": config.model,
            "max_tokens": self.probe_max_tokens if call.probe else self.max_output_tokens,
            "system": call.instruction,
            "messages": [
                self._render_turn(turn) for turn in call.turns if turn.role != "system"
            ],
            "stream": call.stream,
        }
        return UpstreamRequest(
            url=join_url(config.base_url, "/messages"),
            headers={
                "x-api-key": config.credential,
                "anthropic-version": self.anthropic_version,
                "Content-Type": "application/json",
            },
            body=body,
        )

    @staticmethod
    def _render_turn(turn: ChatTurn) -> Dict[str, Any]:
        if not turn.images:
            return {"role": turn.role, "content": turn.content}
        blocks: List[Dict[str, Any]] = [{"type": "text", "text": turn.content}]
        for reference in turn.images:
            image = parse_image_reference(reference)
            if image.is_inline:
                source = {"type": "base64", "media_type": image.mime_type, "data": image.data}
            else:
                source = {"type": "url", "url": image.url}
            blocks.append({"type": "image", "source": source})
        return {"role": turn.role, "content": blocks}

    def extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            return ""
        event_type = payload.get("type")
        if event_type == "content_block_delta":
            delta = payload.get("delta")
            return text_value(delta.get("text")) if isinstance(delta, dict) else ""
        if event_type == "content_block_start":
            block = payload.get("content_block")
            return text_value(block.get("text")) if isinstance(block, dict) else ""
        # Non-streaming response: {"content": [{"type": "text", "text": ...}]}
        content = payload.get("content")
        if isinstance(content, list):
            return "".join(
                text_value(block.get("text"))
                for block in content
                if isinstance(block, dict) and block.get("type") == "text"
            )
        return ""
