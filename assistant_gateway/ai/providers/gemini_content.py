"""
Generate-content adapter - Google-shaped wire format.

Request:
    POST {base_url}/models/{model}:streamGenerateContent?alt=sse&key=<key>
    {"contents": [{"role": "user", "parts": [{"text": "<system>"}]}, ...],
     "generationConfig": {...}}

The credential travels in the query string, so the URL must never be
logged. There is no system role: the instruction becomes the first user
turn and assistant turns are mapped to the "model" role. alt=sse makes the
upstream answer with SSE framing, the same framing the other formats use.
"""

from typing import Any, Dict, List
from urllib.parse import urlencode

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

_ROLE_MAP = {"assistant": "model", "user": "user"}

_METHOD_SUFFIXES = (":streamGenerateContent", ":generateContent")


class GenerateContentAdapter(ProviderAdapter):
    """Builds generate-content requests and reads generate-content payloads."""

    kind = ProviderKind.GENERATE_CONTENT

    def _build(self, config: ProviderConfig, call: CallDescriptor) -> UpstreamRequest:
        contents: List[Dict[str, Any]] = []
        if call.instruction:
            contents.append({"role": "user", "parts": [{"text": call.instruction}]})
        contents.extend(
            self._render_turn(turn) for turn in call.turns if turn.role != "system"
        )

        body: Dict[str, Any] = {"contents": contents}
        if call.probe:
            body["generationConfig"] = {"maxOutputTokens": self.probe_max_tokens}

        return UpstreamRequest(
            url=self._url(config),
            headers={"Content-Type": "application/json"},
            body=body,
        )

    @staticmethod
    def _url(config: ProviderConfig) -> str:
        base = config.base_url.strip()
        for suffix in _METHOD_SUFFIXES:
            base = base.split(suffix, 1)[0]
        model = config.model.strip()
        if model.startswith("models/"):
            model = model[len("models/"):]
        model_url = join_url(base, f"/models/{model}")
        query = urlencode({"alt": "sse", "key": config.credential})
        return f"{model_url}:streamGenerateContent?{query}"

    @staticmethod
    def _render_turn(turn: ChatTurn) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"text": turn.content}]
        for reference in turn.images:
            image = parse_image_reference(reference)
            if image.is_inline:
                parts.append({"inline_data": {"mime_type": image.mime_type, "data": image.data}})
            else:
                parts.append({"file_data": {"mime_type": image.mime_type, "file_uri": image.url}})
        return {"role": _ROLE_MAP.get(turn.role, "user"), "parts": parts}

    def extract_text(self, payload: Any) -> str:
        # Without alt=sse the upstream answers with a JSON array of chunks
        if isinstance(payload, list):
            return "".join(self.extract_text(item) for item in payload)
        if not isinstance(payload, dict):
            return ""
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(
            text_value(part.get("text")) for part in parts if isinstance(part, dict)
        )
