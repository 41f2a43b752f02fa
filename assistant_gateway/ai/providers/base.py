"""
Provider base - provider-agnostic types and the adapter contract.

This module defines the contract that all wire-format adapters follow.
An adapter turns a ProviderConfig + CallDescriptor into a concrete
UpstreamRequest (url, headers, body) and knows how to read text back out of
the provider's response payloads.

Design Pattern: Strategy Pattern
================================
ProviderKind is a closed enum and every member maps to exactly one adapter
(see assistant_gateway.ai.providers.get_adapter). Adding a provider kind means
adding an enum member plus an adapter class; the registry check fails loudly
if one is missing.

Example:
    adapter = get_adapter(config.kind)
    upstream = adapter.build(config, call)
    response = await client.post(upstream.url, headers=upstream.headers, json=upstream.body)
"""

import base64
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from assistant_gateway.ai.errors import ProviderMisconfigured


class ProviderKind(str, Enum):
    """The three upstream wire-format families the router speaks."""
    CHAT_COMPLETIONS = "chat_completions"  # OpenAI-compatible
    MESSAGES = "messages"  # Anthropic-shaped
    GENERATE_CONTENT = "generate_content"  # Google-shaped

    @classmethod
    def from_vendor(cls, value: Optional[str]) -> "ProviderKind":
        """
        Resolve a kind from either a kind value or an admin-panel vendor name.

        Unknown vendors ("openrouter", "groq", "custom", ...) are treated as
        OpenAI-compatible, which is what the admin panel promises.
        """
        normalized = (value or "").strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        return _VENDOR_KINDS.get(normalized, cls.CHAT_COMPLETIONS)


_VENDOR_KINDS = {
    "openai": ProviderKind.CHAT_COMPLETIONS,
    "openrouter": ProviderKind.CHAT_COMPLETIONS,
    "groq": ProviderKind.CHAT_COMPLETIONS,
    "lovable": ProviderKind.CHAT_COMPLETIONS,
    "custom": ProviderKind.CHAT_COMPLETIONS,
    "anthropic": ProviderKind.MESSAGES,
    "claude": ProviderKind.MESSAGES,
    "google": ProviderKind.GENERATE_CONTENT,
    "gemini": ProviderKind.GENERATE_CONTENT,
}


@dataclass(frozen=True)
class ProviderConfig:
    """
    One entry of the fallback chain.

    Created from persisted configuration at request time and never mutated
    while the request is in flight. Ordering among configs is significant
    and comes from the caller.

    Attributes:
        id: Opaque identity (database primary key, or "builtin")
        label: Display label used in logs
        kind: Wire-format family
        base_url: Provider API root, e.g. https://api.openai.com/v1
        model: Model identifier sent upstream
        credential: Secret API key
        enabled: Disabled configs are never called
    """
    id: str
    label: str
    kind: ProviderKind
    base_url: str
    model: str
    credential: str = field(default="", repr=False)
    enabled: bool = True

    @property
    def is_eligible(self) -> bool:
        """Usable only if enabled and credential, model and base URL are all set."""
        return bool(
            self.enabled
            and self.credential.strip()
            and self.model.strip()
            and self.base_url.strip()
        )

    def ineligibility_reason(self) -> Optional[str]:
        """Human-readable reason the config cannot be used, or None."""
        if not self.enabled:
            return "provider is disabled"
        missing = [
            name
            for name, value in (
                ("API key", self.credential),
                ("model", self.model),
                ("base URL", self.base_url),
            )
            if not value.strip()
        ]
        if missing:
            return f"missing {', '.join(missing)}"
        return None


@dataclass(frozen=True)
class ChatTurn:
    """One conversation turn. Images are data URLs or http(s) URLs."""
    role: str
    content: str
    images: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CallDescriptor:
    """
    Provider-agnostic description of one upstream request.

    Attributes:
        instruction: System instruction text
        turns: Ordered conversation turns
        probe: Cheap connectivity probe; the response size is capped
        stream: Ask the upstream for a Server-Sent-Events stream
        body_overrides: Extra top-level body fields merged last
            (e.g. {"modalities": ["image", "text"]} for image generation)
    """
    instruction: str
    turns: Tuple[ChatTurn, ...]
    probe: bool = False
    stream: bool = True
    body_overrides: Optional[Dict[str, Any]] = None


@dataclass
class UpstreamRequest:
    """Concrete HTTP request produced by an adapter. Always sent as POST."""
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]


@dataclass(frozen=True)
class ImagePart:
    """A parsed image reference: inline base64 data or a remote URL."""
    mime_type: str
    data: Optional[str] = None  # base64 payload for data URLs
    url: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return self.data is not None


def parse_image_reference(reference: str) -> ImagePart:
    """
    Split an image reference into mime type and payload.

    Accepts "data:image/png;base64,...." data URLs and plain URLs. The mime
    type of a remote URL is guessed from its extension (JPEG if unknown).
    """
    if reference.startswith("data:") and "," in reference:
        header, data = reference.split(",", 1)
        mime_type = header[len("data:"):].split(";", 1)[0] or "image/png"
        if ";base64" not in header:
            data = base64.b64encode(data.encode("utf-8")).decode("ascii")
        return ImagePart(mime_type=mime_type, data=data)
    guessed, _ = mimetypes.guess_type(reference.split("?", 1)[0])
    return ImagePart(mime_type=guessed or "image/jpeg", url=reference)


def join_url(base_url: str, suffix: str) -> str:
    """
    Append a path suffix to a base URL unless it is already there.

    join_url("https://api.openai.com/v1", "/chat/completions")
        -> "https://api.openai.com/v1/chat/completions"
    join_url("https://host/v1/chat/completions/", "/chat/completions")
        -> "https://host/v1/chat/completions"
    """
    base = base_url.strip().rstrip("/")
    if base.endswith(suffix):
        return base
    return f"{base}{suffix}"


def text_value(value: Any) -> str:
    """A payload field as text; anything that is not a string counts as empty."""
    return value if isinstance(value, str) else ""


class ProviderAdapter(ABC):
    """
    Abstract base class for wire-format adapters.

    Adapters are pure: no I/O and no shared state. They can be unit-tested
    by asserting on the returned UpstreamRequest.
    """

    kind: ProviderKind

    def __init__(self, probe_max_tokens: int = 10, max_output_tokens: int = 4096):
        self.probe_max_tokens = probe_max_tokens
        self.max_output_tokens = max_output_tokens

    def build(self, config: ProviderConfig, call: CallDescriptor) -> UpstreamRequest:
        """
        Build the provider-specific request for one call.

        Raises:
            ProviderMisconfigured: If the config is not eligible for use
        """
        reason = config.ineligibility_reason()
        if reason:
            raise ProviderMisconfigured(f"{config.label or config.id}: {reason}")
        request = self._build(config, call)
        if call.body_overrides:
            request.body.update(call.body_overrides)
        return request

    @abstractmethod
    def _build(self, config: ProviderConfig, call: CallDescriptor) -> UpstreamRequest:
        """Build the request for an eligible config."""
        pass

    @abstractmethod
    def extract_text(self, payload: Any) -> str:
        """
        Pull generated text out of one response payload.

        Works for both a streamed event (a delta) and a complete
        non-streaming response body. Returns "" when the payload carries no
        text (role announcements, usage events, pings).
        """
        pass
