"""
Fan-Out Synthesizer - the "deep analysis" (extract) mode.

Flow:
=====

                         subject
                            │
        ┌──────────┬────────┼────────┬──────────┐
        ▼          ▼        ▼        ▼          ▼
   biography   skills   career   ...ten panel members (concurrent)
        │          │        │        │          │
        └──────────┴────────┼────────┴──────────┘
                            ▼   barrier: all settled
                  ten AnalysisFragments (real or placeholder)
                            │
                            ▼
                 one streaming synthesis call
                            │
                            ▼
                     relayed to the caller

This is the only concurrent section of the gateway. A panel member that
produces no text becomes a placeholder fragment, whatever the cause; it
never aborts the batch. Cancelling the request cancels every pending member.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from assistant_gateway.core.config import settings
from assistant_gateway.ai.monitoring import gateway_logger
from assistant_gateway.ai.prompts.analysis_prompts import (
    ANALYSIS_PANEL,
    SYNTHESIS_PROMPT,
    PanelMember,
)
from assistant_gateway.ai.providers import BuiltinProvider, CallDescriptor, ChatTurn
from assistant_gateway.ai.router.attempt import attempt_provider
from assistant_gateway.ai.router.fetcher import RetryingFetcher, RetryPolicy
from assistant_gateway.ai.router.outcome import AttemptFailure, RouteOutcome

logger = logging.getLogger("gateway.ai.analysis")


@dataclass(frozen=True)
class AnalysisFragment:
    """
    Output of one panel member.

    Attributes:
        label: The specialization that produced it
        text: Raw model output, or the placeholder note
        placeholder: True when the member failed and text carries no data
    """
    label: str
    text: str
    placeholder: bool = False

    @classmethod
    def unavailable(cls, label: str, reason: str) -> "AnalysisFragment":
        return cls(label=label, text=f"UNAVAILABLE ({reason})", placeholder=True)


def render_fragments(subject: str, fragments: Sequence[AnalysisFragment]) -> str:
    """The user message of the synthesis call: every fragment under its label."""
    sections = [f"SUBJECT: {subject}"]
    for fragment in fragments:
        sections.append(f"=== REPORT: {fragment.label} ===\n{fragment.text.strip()}")
    return "\n\n".join(sections)


class FanOutSynthesizer:
    """
    Runs the analysis panel concurrently, then streams one synthesis.

    Usage:
        synthesizer = FanOutSynthesizer(fetcher, BuiltinProvider.from_settings())
        outcome = await synthesizer.analyze("Ada Lovelace", request_id="a1b2c3")
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        builtin: BuiltinProvider,
        panel: Sequence[PanelMember] = ANALYSIS_PANEL,
        member_policy: Optional[RetryPolicy] = None,
        synthesis_policy: Optional[RetryPolicy] = None,
        member_timeout: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.builtin = builtin
        self.panel = tuple(panel)
        self.member_policy = member_policy or RetryPolicy.from_settings(
            attempts=settings.ANALYSIS_RETRY_ATTEMPTS, label="analysis"
        )
        self.synthesis_policy = synthesis_policy or RetryPolicy.from_settings(
            attempts=settings.DEFAULT_PROVIDER_RETRY_ATTEMPTS, label="synthesis"
        )
        self.member_timeout = (
            member_timeout if member_timeout is not None else float(settings.ANALYSIS_CALL_TIMEOUT)
        )

    async def analyze(self, subject: str, request_id: str) -> RouteOutcome:
        """
        Fan out, wait for every member, then start the synthesis stream.

        Returns:
            STREAM outcome of the synthesis call, or FAILURE if the built-in
            provider is unusable or the synthesis call itself fails
        """
        config = self.builtin.primary()
        if not config.is_eligible:
            reason = config.ineligibility_reason() or "not eligible"
            gateway_logger.log_skipped(request_id, self.builtin.label, reason)
            return RouteOutcome.failed([AttemptFailure.misconfigured(config, reason)])

        fragments = await self.gather_fragments(subject, request_id)
        return await self.synthesize(subject, fragments, request_id)

    async def gather_fragments(self, subject: str, request_id: str) -> List[AnalysisFragment]:
        """Run every panel member concurrently; one fragment per member, in panel order."""
        gateway_logger.log_event(
            request_id, "fan_out_started", {"members": len(self.panel)}
        )
        fragments = await asyncio.gather(
            *(self._run_member(member, subject, request_id) for member in self.panel)
        )
        failed = sum(1 for fragment in fragments if fragment.placeholder)
        gateway_logger.log_event(
            request_id,
            "fan_out_settled",
            {"members": len(fragments), "failed": failed},
        )
        return list(fragments)

    async def synthesize(
        self,
        subject: str,
        fragments: Sequence[AnalysisFragment],
        request_id: str,
    ) -> RouteOutcome:
        """Issue the single streaming synthesis call over all fragments."""
        call = CallDescriptor(
            instruction=SYNTHESIS_PROMPT,
            turns=(ChatTurn(role="user", content=render_fragments(subject, fragments)),),
            stream=True,
        )
        return await attempt_provider(
            self.fetcher, self.builtin.primary(), call, self.synthesis_policy, request_id
        )

    async def _run_member(
        self,
        member: PanelMember,
        subject: str,
        request_id: str,
    ) -> AnalysisFragment:
        """One panel member; any error becomes a placeholder so the batch survives."""
        try:
            return await self._collect_fragment(member, subject, request_id)
        except Exception as e:
            logger.warning(f"Panel member {member.label} raised {type(e).__name__}: {e}")
            gateway_logger.log_fragment(
                request_id, member.label, success=False, error=type(e).__name__
            )
            return AnalysisFragment.unavailable(member.label, type(e).__name__)

    async def _collect_fragment(
        self,
        member: PanelMember,
        subject: str,
        request_id: str,
    ) -> AnalysisFragment:
        call = CallDescriptor(
            instruction=member.render(subject),
            turns=(ChatTurn(role="user", content=f"Subject: {subject}"),),
            stream=False,
        )
        try:
            outcome = await asyncio.wait_for(
                attempt_provider(
                    self.fetcher,
                    self.builtin.primary(),
                    call,
                    self.member_policy.with_label(f"analysis:{member.label}"),
                    request_id,
                ),
                timeout=self.member_timeout,
            )
        except asyncio.TimeoutError:
            gateway_logger.log_fragment(request_id, member.label, success=False, error="timed out")
            return AnalysisFragment.unavailable(member.label, "timed out")

        if not outcome.success:
            reason = outcome.failures[-1].category.value if outcome.failures else "failed"
            gateway_logger.log_fragment(request_id, member.label, success=False, error=reason)
            return AnalysisFragment.unavailable(member.label, reason)

        if not outcome.text.strip():
            gateway_logger.log_fragment(request_id, member.label, success=False, error="empty response")
            return AnalysisFragment.unavailable(member.label, "empty response")

        gateway_logger.log_fragment(request_id, member.label, success=True, length=len(outcome.text))
        return AnalysisFragment(label=member.label, text=outcome.text)
