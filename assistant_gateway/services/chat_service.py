"""
Chat Service - the mode dispatcher behind POST /ai-chat.

Architecture:
=============

    ChatRequest
        │
        ▼
    ModeDispatcher.dispatch()
        │
        ├── chat ──────► RateLimiter ─► FallbackRouter ─► STREAM
        ├── test ──────► RateLimiter ─► FallbackRouter (probe) ─► JSON
        ├── extract ───► FanOutSynthesizer ─► STREAM
        └── image-gen / video-gen / suggest
                       ─► one call to the built-in provider ─► JSON

The one-shot modes only ever use the built-in provider; the site owner's
configured chain is reserved for chat. Unknown modes are treated as chat.

Every handler either returns a ModeResult or raises a GatewayError; the
HTTP layer turns the latter into the JSON error envelope.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from assistant_gateway.core.config import settings
from assistant_gateway.ai.analysis import FanOutSynthesizer
from assistant_gateway.ai.errors import ClientRateLimited, GatewayError, ProviderMisconfigured
from assistant_gateway.ai.monitoring import gateway_logger
from assistant_gateway.ai.prompts.mode_prompts import (
    IMAGE_SYSTEM_PROMPT,
    PROBE_SYSTEM_PROMPT,
    PROBE_USER_MESSAGE,
    SUGGESTION_PROMPT,
    VIDEO_CONCEPT_PROMPT,
)
from assistant_gateway.ai.providers import (
    BuiltinProvider,
    CallDescriptor,
    ChatCompletionsAdapter,
    ChatTurn,
    ProviderConfig,
)
from assistant_gateway.ai.router import (
    FallbackRouter,
    RetryingFetcher,
    RetryPolicy,
    RouteOutcome,
    attempt_provider,
)
from assistant_gateway.schemas.chat import (
    ChatMessage,
    ChatRequest,
    ImageResponse,
    ProbeResponse,
    SuggestionsResponse,
    VideoResponse,
)
from assistant_gateway.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3

# Leading bullets or numbering on a suggestion line ("- ", "1. ", "2) ")
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ChatMode(str, Enum):
    """Modes accepted in the request's `mode` field."""
    CHAT = "chat"
    TEST = "test"
    IMAGE = "image-gen"
    VIDEO = "video-gen"
    SUGGEST = "suggest"
    EXTRACT = "extract"

    @classmethod
    def resolve(cls, mode: Optional[str], test_mode: bool = False) -> "ChatMode":
        """testMode wins over mode; an unrecognized mode is plain chat."""
        if test_mode:
            return cls.TEST
        try:
            return cls((mode or "").strip().lower())
        except ValueError:
            return cls.CHAT


@dataclass
class ModeResult:
    """
    What a mode handler produced.

    Exactly one of `payload` (JSON body) or `outcome` (STREAM outcome to
    relay) is set.
    """
    mode: ChatMode
    payload: Optional[Dict[str, Any]] = None
    outcome: Optional[RouteOutcome] = None

    @property
    def is_stream(self) -> bool:
        return self.outcome is not None


def to_turns(messages: Sequence[ChatMessage]) -> Tuple[ChatTurn, ...]:
    """Request messages as provider-agnostic turns."""
    return tuple(
        ChatTurn(role=message.role, content=message.content, images=tuple(message.images))
        for message in messages
    )


def parse_json_text(text: str) -> Any:
    """
    Parse JSON out of model output, tolerating a markdown code fence or
    surrounding prose. Returns None when nothing parses.
    """
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("[", "]"), ("{", "}")):
        start, end = cleaned.find(opener), cleaned.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                continue
    return None


def parse_suggestions(text: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Suggestions from a JSON array, else one per non-empty line."""
    data = parse_json_text(text)
    if isinstance(data, list):
        candidates = [str(item) for item in data if isinstance(item, (str, int, float))]
    else:
        candidates = [_LIST_MARKER.sub("", line) for line in text.splitlines()]

    suggestions: List[str] = []
    for candidate in candidates:
        candidate = candidate.strip().strip('"').strip()
        if candidate and candidate not in suggestions:
            suggestions.append(candidate)
    return suggestions[:limit]


class ModeDispatcher:
    """
    Routes one /ai-chat request to its mode handler.

    Usage:
        dispatcher = ModeDispatcher(limiter, router, synthesizer, fetcher, builtin)
        result = await dispatcher.dispatch(
            request, client_id="203.0.113.7", configs=configs,
            system_prompt=prompt, request_id="a1b2c3",
        )
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        router: FallbackRouter,
        synthesizer: FanOutSynthesizer,
        fetcher: RetryingFetcher,
        builtin: BuiltinProvider,
        one_shot_policy: Optional[RetryPolicy] = None,
    ):
        self.rate_limiter = rate_limiter
        self.router = router
        self.synthesizer = synthesizer
        self.fetcher = fetcher
        self.builtin = builtin
        self.one_shot_policy = one_shot_policy or RetryPolicy.from_settings(
            attempts=settings.DEFAULT_PROVIDER_RETRY_ATTEMPTS, label="one-shot"
        )

    async def dispatch(
        self,
        request: ChatRequest,
        client_id: str,
        configs: Sequence[ProviderConfig],
        system_prompt: str,
        request_id: str,
        test_config: Optional[ProviderConfig] = None,
    ) -> ModeResult:
        mode = ChatMode.resolve(request.mode, request.test_mode)
        gateway_logger.log_event(
            request_id,
            "mode_dispatched",
            {"mode": mode.value, "messages": len(request.messages), "configs": len(configs)},
        )

        if mode == ChatMode.TEST:
            self._enforce_rate_limit(client_id, request_id)
            return await self._handle_test(configs, test_config, request_id)
        if mode == ChatMode.EXTRACT:
            return await self._handle_extract(request, request_id)
        if mode == ChatMode.IMAGE:
            return await self._handle_image(request, request_id)
        if mode == ChatMode.VIDEO:
            return await self._handle_video(request, request_id)
        if mode == ChatMode.SUGGEST:
            return await self._handle_suggest(request, request_id)

        self._enforce_rate_limit(client_id, request_id)
        return await self._handle_chat(request, configs, system_prompt, request_id)

    # -----------------------------------------------------------------------
    # RATE LIMITING
    # -----------------------------------------------------------------------

    def _enforce_rate_limit(self, client_id: str, request_id: str) -> None:
        decision = self.rate_limiter.check(client_id)
        if decision.allowed:
            return
        retry_after = max(1, math.ceil(decision.reset_in_ms / 1000))
        gateway_logger.log_rate_limited(request_id, client_id, retry_after)
        raise ClientRateLimited(retry_after=retry_after)

    # -----------------------------------------------------------------------
    # STREAMING MODES
    # -----------------------------------------------------------------------

    async def _handle_chat(
        self,
        request: ChatRequest,
        configs: Sequence[ProviderConfig],
        system_prompt: str,
        request_id: str,
    ) -> ModeResult:
        call = CallDescriptor(instruction=system_prompt, turns=to_turns(request.messages), stream=True)
        outcome = await self.router.route(
            configs, call, request_id=request_id, user_model=request.user_model
        )
        self._raise_on_failure(outcome, request_id, ChatMode.CHAT)
        return ModeResult(mode=ChatMode.CHAT, outcome=outcome)

    async def _handle_extract(self, request: ChatRequest, request_id: str) -> ModeResult:
        subject = request.last_user_content.strip()
        if not subject:
            raise GatewayError("Nothing to analyze: the last message is empty.", status_code=400)
        outcome = await self.synthesizer.analyze(subject, request_id=request_id)
        self._raise_on_failure(outcome, request_id, ChatMode.EXTRACT)
        return ModeResult(mode=ChatMode.EXTRACT, outcome=outcome)

    # -----------------------------------------------------------------------
    # CONNECTIVITY TEST
    # -----------------------------------------------------------------------

    async def _handle_test(
        self,
        configs: Sequence[ProviderConfig],
        test_config: Optional[ProviderConfig],
        request_id: str,
    ) -> ModeResult:
        call = CallDescriptor(
            instruction=PROBE_SYSTEM_PROMPT,
            turns=(ChatTurn(role="user", content=PROBE_USER_MESSAGE),),
            probe=True,
            stream=False,
        )

        if test_config is not None:
            reason = test_config.ineligibility_reason()
            if reason:
                raise ProviderMisconfigured(f"Connection test failed: {reason}.", status_code=400)
            outcome = await self.router.route(
                [test_config], call, request_id=request_id, include_default=False
            )
        else:
            outcome = await self.router.route(configs, call, request_id=request_id)

        self._raise_on_failure(outcome, request_id, ChatMode.TEST, prefix="Connection test failed: ")
        reply = outcome.text.strip()
        return ModeResult(
            mode=ChatMode.TEST,
            payload=ProbeResponse(
                message=f"Connection successful! Response: {reply[:100]}" if reply else "Connection successful!",
                provider=outcome.provider,
                model=outcome.model,
            ).model_dump(),
        )

    # -----------------------------------------------------------------------
    # ONE-SHOT MODES (built-in provider only)
    # -----------------------------------------------------------------------

    async def _handle_image(self, request: ChatRequest, request_id: str) -> ModeResult:
        call = CallDescriptor(
            instruction=IMAGE_SYSTEM_PROMPT,
            turns=to_turns(request.messages),
            stream=False,
            body_overrides={"modalities": ["image", "text"]},
        )
        outcome = await self._one_shot(
            self.builtin.config_for(settings.IMAGE_MODEL), call, request_id, ChatMode.IMAGE
        )
        images = ChatCompletionsAdapter.extract_images(outcome.payload)
        if not images:
            logger.warning(f"[{request_id}] image model returned no images")
        return ModeResult(
            mode=ChatMode.IMAGE,
            payload=ImageResponse(text=outcome.text.strip(), images=images).model_dump(),
        )

    async def _handle_video(self, request: ChatRequest, request_id: str) -> ModeResult:
        idea = request.last_user_content
        call = CallDescriptor(
            instruction=VIDEO_CONCEPT_PROMPT,
            turns=(ChatTurn(role="user", content=idea),),
            stream=False,
        )
        outcome = await self._one_shot(self.builtin.primary(), call, request_id, ChatMode.VIDEO)

        data = parse_json_text(outcome.text)
        if not isinstance(data, dict):
            data = {}
        concept = str(data.get("concept") or outcome.text).strip()
        prompt = str(data.get("prompt") or idea).strip()
        # No video rendering backend: videoUrl is always null
        return ModeResult(
            mode=ChatMode.VIDEO,
            payload=VideoResponse(text=concept, video_url=None, prompt=prompt).model_dump(by_alias=True),
        )

    async def _handle_suggest(self, request: ChatRequest, request_id: str) -> ModeResult:
        call = CallDescriptor(
            instruction=SUGGESTION_PROMPT,
            turns=to_turns(request.messages),
            stream=False,
        )
        outcome = await self._one_shot(self.builtin.primary(), call, request_id, ChatMode.SUGGEST)
        return ModeResult(
            mode=ChatMode.SUGGEST,
            payload=SuggestionsResponse(suggestions=parse_suggestions(outcome.text)).model_dump(),
        )

    async def _one_shot(
        self,
        config: ProviderConfig,
        call: CallDescriptor,
        request_id: str,
        mode: ChatMode,
    ) -> RouteOutcome:
        outcome = await attempt_provider(self.fetcher, config, call, self.one_shot_policy, request_id)
        self._raise_on_failure(outcome, request_id, mode)
        return outcome

    @staticmethod
    def _raise_on_failure(
        outcome: RouteOutcome,
        request_id: str,
        mode: ChatMode,
        prefix: str = "",
    ) -> None:
        if outcome.success:
            return
        error = outcome.to_error(prefix=prefix)
        gateway_logger.log_error(
            request_id,
            error.message,
            stage=mode.value,
            metadata={
                "status": error.status_code,
                "attempts": len(outcome.failures),
                "categories": [failure.category.value for failure in outcome.failures],
            },
        )
        raise error
