"""
OpenAI-compatible adapter - the generic chat-completions wire format.

Spoken by OpenAI itself and by most gateways the admin panel offers
(OpenRouter, Groq, custom endpoints) as well as the built-in default
provider.

Request:
    POST {base_url}/chat/completions
    Authorization: Bearer <key>
    {"model": ..., "messages": [{"role": "system", ...}, ...], "stream": true}

Streamed events look like:
    data: {"choices":[{"delta":{"content":"Hi"}}]}
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
    text_value,
)


class ChatCompletionsAdapter(ProviderAdapter):
    """Builds chat-completions requests and reads chat-completions payloads."""

    kind = ProviderKind.CHAT_COMPLETIONS

    def _build(self, config: ProviderConfig, call: CallDescriptor) -> UpstreamRequest:
        messages: List[Dict[str, Any]] = []
        if call.instruction:
            messages.append({"role": "system", "content": call.instruction})
        messages.extend(self._render_turn(turn) for turn in call.turns)

        body: Dict[str, Any] = {
            "model": config.model,
            "messages": messages,
            "stream": call.stream,
        }
        if call.probe:
            body["max_tokens"] = self.probe_max_tokens

        return UpstreamRequest(
            url=join_url(config.base_url, "/chat/completions"),
            headers={
                "Authorization": f"Bearer {config.credential}",
                "Content-Type": "application/json",
            },
            body=body,
        )

    @staticmethod
    def _render_turn(turn: ChatTurn) -> Dict[str, Any]:
        if not turn.images:
            return {"role": turn.role, "content": turn.content}
        parts: List[Dict[str, Any]] = [{"type": "text", "text": turn.content}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image}} for image in turn.images
        )
        return {"role": turn.role, "content": parts}

    def extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        choice = choices[0]
        # Streaming chunk
        delta = choice.get("delta")
        if isinstance(delta, dict):
            return text_value(delta.get("content"))
        # Complete response
        message = choice.get("message")
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        if isinstance(content, list):
            return "".join(
                text_value(part.get("text")) for part in content if isinstance(part, dict)
            )
        return text_value(content)

    @staticmethod
    def extract_images(payload: Any) -> List[str]:
        """Image URLs from an image-generation response (choices[0].message.images)."""
        if not isinstance(payload, dict):
            return []
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return []
        message = choices[0].get("message")
        if not isinstance(message, dict) or not isinstance(message.get("images"), list):
            return []
        images = []
        for image in message["images"]:
            if not isinstance(image, dict) or not isinstance(image.get("image_url"), dict):
                continue
            url = text_value(image["image_url"].get("url"))
            if url:
                images.append(url)
        return images
