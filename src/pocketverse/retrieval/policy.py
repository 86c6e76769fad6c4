"""Attempt state machine: pure transition rules for the retrieval loop."""

from __future__ import annotations

from enum import Enum

from .models import AttemptOutcome, Classification, IncompleteReason, VerseResult
from .repair import repair

MAX_ATTEMPTS = 3
BACKOFF_STEP_S = 0.5


class RetrievalState(str, Enum):
    attempting = "attempting"
    succeeded = "succeeded"
    failed_exhausted = "failed_exhausted"


class Transition:
    """The state reached after one attempt, with its reason."""

    def __init__(
        self,
        *,
        state: RetrievalState,
        outcome: AttemptOutcome,
        reason: str,
        verse: VerseResult | None = None,
        degraded: bool = False,
    ) -> None:
        self.state = state
        self.outcome = outcome
        self.reason = reason
        self.verse = verse
        self.degraded = degraded

    @property
    def should_retry(self) -> bool:
        return self.state is RetrievalState.attempting

    def __bool__(self) -> bool:
        return self.should_retry

    def __repr__(self) -> str:
        return (
            f"Transition(state={self.state.value}, outcome={self.outcome.value}, "
            f"degraded={self.degraded}, reason={self.reason!r})"
        )


def backoff_delay(attempt: int, step_s: float = BACKOFF_STEP_S) -> float:
    """Seconds to wait after a failed *attempt* (linear: 0.5s, 1.0s, ...)."""
    return step_s * attempt


def on_transport_failure(attempt: int, error: str) -> Transition:
    """Transition after the provider call itself failed."""
    if attempt >= MAX_ATTEMPTS:
        return Transition(
            state=RetrievalState.failed_exhausted,
            outcome=AttemptOutcome.exhausted,
            reason=error,
        )
    return Transition(
        state=RetrievalState.attempting,
        outcome=AttemptOutcome.retry,
        reason=f"{error}. Scheduling attempt {attempt + 1}.",
    )


def on_generation(attempt: int, classification: Classification, raw_output: str) -> Transition:
    """
    Transition after a generation was classified.

    Rules (evaluated in priority order):
    1. Complete verse: succeeded.
    2. Incomplete below the attempt ceiling: retry.
    3. Final attempt, parsed verse rejected only by the completeness
       predicate: succeeded with that verse as a degraded fallback.
    4. Final attempt, structure did not parse: succeeded with the repaired
       verse as a degraded fallback when repair works.
    5. Otherwise: failed_exhausted.
    """
    if classification.complete and classification.verse is not None:
        return Transition(
            state=RetrievalState.succeeded,
            outcome=AttemptOutcome.success,
            reason="Complete verse received.",
            verse=classification.verse,
        )

    defect = classification.reason or IncompleteReason.malformed

    if attempt < MAX_ATTEMPTS:
        return Transition(
            state=RetrievalState.attempting,
            outcome=AttemptOutcome.retry,
            reason=f"Incomplete generation ({defect.value}). Scheduling attempt {attempt + 1}.",
        )

    if classification.verse is not None and defect is not IncompleteReason.provider_truncated:
        return Transition(
            state=RetrievalState.succeeded,
            outcome=AttemptOutcome.success,
            reason=f"Using incomplete verse ({defect.value}) as fallback on final attempt.",
            verse=classification.verse,
            degraded=True,
        )

    if classification.verse is None:
        repaired = repair(raw_output)
        if repaired is not None:
            return Transition(
                state=RetrievalState.succeeded,
                outcome=AttemptOutcome.success,
                reason="Repaired truncated JSON as fallback on final attempt.",
                verse=repaired,
                degraded=True,
            )

    return Transition(
        state=RetrievalState.failed_exhausted,
        outcome=AttemptOutcome.exhausted,
        reason=f"last response was incomplete ({defect.value})",
    )
