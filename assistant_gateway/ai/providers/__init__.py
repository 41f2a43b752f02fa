"""
AI Providers Module - wire-format adapters for heterogeneous upstreams.

Three families are supported, one adapter each:
- chat_completions: OpenAI-compatible (OpenAI, OpenRouter, Groq, gateways)
- messages: Anthropic-shaped
- generate_content: Google-shaped

Each adapter has the same interface, making them interchangeable:
    upstream = get_adapter(config.kind).build(config, call)
"""

from typing import Dict

from assistant_gateway.core.config import settings
from assistant_gateway.ai.providers.base import (
    CallDescriptor,
    ChatTurn,
    ProviderAdapter,
    ProviderConfig,
    ProviderKind,
    UpstreamRequest,
)
from assistant_gateway.ai.providers.openai_compatible import ChatCompletionsAdapter
from assistant_gateway.ai.providers.anthropic_messages import MessagesAdapter
from assistant_gateway.ai.providers.gemini_content import GenerateContentAdapter
from assistant_gateway.ai.providers.builtin import BuiltinProvider


def _build_registry() -> Dict[ProviderKind, ProviderAdapter]:
    limits = {
        "probe_max_tokens": settings.PROBE_MAX_TOKENS,
        "max_output_tokens": settings.MAX_OUTPUT_TOKENS,
    }
    registry: Dict[ProviderKind, ProviderAdapter] = {
        ProviderKind.CHAT_COMPLETIONS: ChatCompletionsAdapter(**limits),
        ProviderKind.MESSAGES: MessagesAdapter(
            anthropic_version=settings.ANTHROPIC_VERSION, **limits
        ),
        ProviderKind.GENERATE_CONTENT: GenerateContentAdapter(**limits),
    }
    missing = set(ProviderKind) - set(registry)
    if missing:
        raise RuntimeError(f"No adapter registered for provider kinds: {sorted(missing)}")
    return registry


_ADAPTERS = _build_registry()


def get_adapter(kind: ProviderKind) -> ProviderAdapter:
    """Return the adapter for a provider kind."""
    return _ADAPTERS[kind]


__all__ = [
    "BuiltinProvider",
    "CallDescriptor",
    "ChatCompletionsAdapter",
    "ChatTurn",
    "GenerateContentAdapter",
    "MessagesAdapter",
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderKind",
    "UpstreamRequest",
    "get_adapter",
]
