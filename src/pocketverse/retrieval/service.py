"""VerseRetrievalService - the bounded attempt loop around the generation gateway."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pocketverse.config import Settings
from pocketverse.errors import GenerationFailed, TransportFailure
from pocketverse.generation.gateway import LiteLLMClient
from pocketverse.generation.models import Generation

from .completeness import classify
from .extractor import extract_reference
from .models import AttemptRecord, ExclusionList, RetrievalResult
from .normalizer import normalize_input
from .policy import (
    BACKOFF_STEP_S,
    MAX_ATTEMPTS,
    RetrievalState,
    Transition,
    backoff_delay,
    on_generation,
    on_transport_failure,
)
from .prompts import BASE_SYSTEM_PROMPT, build_prompt

logger = logging.getLogger(__name__)

_HEAD_PREVIEW_CHARS = 500
_TAIL_PREVIEW_CHARS = 200

Sleep = Callable[[float], Awaitable[None]]


class VerseRetrievalService:
    """
    Turns an unreliable generation call into a complete verse or a clear failure.

    Runs at most ``MAX_ATTEMPTS=3`` attempts per request, strictly in order:
    - Every rejected generation adds its reference (when recoverable) to the
      exclusion list, so the next prompt steers the model elsewhere.
    - Between attempts the loop sleeps ``backoff_step_s * attempt`` seconds.
    - On the final attempt a rejected verse may still be returned as a
      degraded fallback, either as parsed or after structural repair.

    All state (exclusion list, attempt history) lives inside a single ``run``
    call, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        llm_provider: str = "openai",
        llm_api_base: str | None = None,
        llm_api_key: str | None = None,
        llm_timeout_s: float = 60.0,
        llm_max_tokens: int = 3000,
        llm_temperature: float = 0.85,
        backoff_step_s: float = BACKOFF_STEP_S,
        system_template: str = BASE_SYSTEM_PROMPT,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = LiteLLMClient(
            model_name=model_name,
            provider=llm_provider,
            api_base=llm_api_base,
            api_key=llm_api_key,
            request_timeout_s=llm_timeout_s,
            max_tokens=llm_max_tokens,
            temperature=llm_temperature,
        )
        self._backoff_step_s = backoff_step_s
        self._template = system_template
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> VerseRetrievalService:
        return cls(
            model_name=settings.model_name,
            llm_provider=settings.llm_provider,
            llm_api_base=settings.llm_api_base,
            llm_api_key=settings.llm_api_key,
            llm_timeout_s=settings.llm_timeout_s,
            llm_max_tokens=settings.llm_max_tokens,
            llm_temperature=settings.llm_temperature,
            backoff_step_s=settings.backoff_step_s,
        )

    async def _generate(self, system_prompt: str, user_input: str) -> Generation | TransportFailure:
        try:
            return await self._client.generate(system_prompt, user_input)
        except TransportFailure as exc:
            return exc

    async def run(self, user_input: str | None) -> RetrievalResult:
        """Execute the attempt loop. Raises ``InvalidInput`` or ``GenerationFailed``."""
        normalized = normalize_input(user_input)
        exclusions = ExclusionList()
        attempts: list[AttemptRecord] = []

        for attempt_number in range(1, MAX_ATTEMPTS + 1):
            logger.info("Verse retrieval: attempt %d/%d", attempt_number, MAX_ATTEMPTS)
            if exclusions:
                logger.info(
                    "Excluding previously attempted verses: %s",
                    ", ".join(exclusions),
                )

            system_prompt = build_prompt(self._template, exclusions)
            outcome = await self._generate(system_prompt, normalized)

            if isinstance(outcome, TransportFailure):
                logger.error("LLM call failed on attempt %d: %s", attempt_number, outcome)
                transition = on_transport_failure(attempt_number, str(outcome))
                attempts.append(
                    AttemptRecord(
                        index=attempt_number,
                        outcome=transition.outcome,
                        reason=str(outcome),
                    )
                )
            else:
                transition = self._handle_generation(attempt_number, outcome, exclusions)
                attempts.append(
                    AttemptRecord(
                        index=attempt_number,
                        raw_output=outcome.raw_output,
                        stop_reason=outcome.stop_reason,
                        outcome=transition.outcome,
                        reason=transition.reason,
                        degraded=transition.degraded,
                    )
                )

            if transition.state is RetrievalState.succeeded and transition.verse is not None:
                if transition.degraded:
                    logger.warning(
                        "Returning degraded fallback verse %s: %s",
                        transition.verse.reference,
                        transition.reason,
                    )
                else:
                    logger.info(
                        "Complete verse %s on attempt %d",
                        transition.verse.reference,
                        attempt_number,
                    )
                return RetrievalResult(
                    verse=transition.verse,
                    degraded=transition.degraded,
                    attempt_count=attempt_number,
                    excluded=exclusions.as_list(),
                    attempts=attempts,
                )

            if transition.state is RetrievalState.failed_exhausted:
                break

            logger.warning("Attempt %d rejected: %s", attempt_number, transition.reason)
            await self._sleep(backoff_delay(attempt_number, self._backoff_step_s))

        last_reason = transition.reason
        logger.error(
            "All %d attempts failed (%s). Tried verses: %s",
            len(attempts),
            last_reason,
            exclusions.as_list(),
        )
        raise GenerationFailed(
            attempts=len(attempts),
            excluded=exclusions.as_list(),
            reason=last_reason,
        )

    def _handle_generation(
        self,
        attempt_number: int,
        generation: Generation,
        exclusions: ExclusionList,
    ) -> Transition:
        raw_output = generation.raw_output
        logger.debug(
            "Response length=%d head=%r tail=%r",
            len(raw_output),
            raw_output[:_HEAD_PREVIEW_CHARS],
            raw_output[-_TAIL_PREVIEW_CHARS:],
        )

        classification = classify(generation.stop_reason, raw_output)
        if not classification.complete:
            reference = extract_reference(raw_output)
            if reference is not None and exclusions.add(reference):
                logger.info("Added to exclusion list: %s", reference)

        return on_generation(attempt_number, classification, raw_output)
