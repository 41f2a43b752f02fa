"""
Built-in default provider - the router's last resort.

The site owner's configured providers are tried first; when every one of
them fails (or none is configured) the router falls through to this
provider and walks its list of known-good models. The one-shot modes
(image, video, suggest) and deep analysis only ever use it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from assistant_gateway.core.config import settings
from assistant_gateway.ai.providers.base import ProviderConfig, ProviderKind

BUILTIN_PROVIDER_ID = "builtin"


@dataclass(frozen=True)
class BuiltinProvider:
    """
    Chat-completions endpoint with an ordered list of candidate models.

    Usage:
        builtin = BuiltinProvider.from_settings()
        for config in builtin.candidates(user_model="openai/gpt-5-mini"):
            ...
    """
    base_url: str
    credential: str = field(repr=False)
    models: List[str] = field(default_factory=list)
    label: str = "Built-in assistant"

    @classmethod
    def from_settings(cls) -> "BuiltinProvider":
        return cls(
            base_url=settings.DEFAULT_AI_BASE_URL,
            credential=settings.DEFAULT_AI_API_KEY,
            models=list(settings.DEFAULT_AI_MODELS),
        )

    @property
    def primary_model(self) -> str:
        return self.models[0] if self.models else ""

    def config_for(self, model: str) -> ProviderConfig:
        """A ProviderConfig pointing the built-in endpoint at one model."""
        return ProviderConfig(
            id=BUILTIN_PROVIDER_ID,
            label=f"{self.label} ({model})",
            kind=ProviderKind.CHAT_COMPLETIONS,
            base_url=self.base_url,
            model=model,
            credential=self.credential,
            enabled=True,
        )

    def primary(self) -> ProviderConfig:
        return self.config_for(self.primary_model)

    def candidates(self, user_model: Optional[str] = None) -> List[ProviderConfig]:
        """
        Configs for every candidate model, in the order they should be tried.

        A model requested by the caller goes first; duplicates are dropped.
        """
        ordered: List[str] = []
        for model in ([user_model] if user_model else []) + self.models:
            model = (model or "").strip()
            if model and model not in ordered:
                ordered.append(model)
        return [self.config_for(model) for model in ordered]
