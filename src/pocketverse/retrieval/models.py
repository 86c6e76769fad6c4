"""Pydantic models and request-scoped state for verse retrieval."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, Field

from pocketverse.generation.models import StopReason


class VerseResult(BaseModel):
    """The caller-facing contract. Every field is required and non-empty."""

    reference: str = Field(min_length=1, description="e.g. 'Psalm 23:4'")
    text: str = Field(min_length=1, description="Full verse text")
    explanation: str = Field(min_length=1, description="Why the verse applies")


class IncompleteReason(str, Enum):
    """Why a generation was rejected."""

    provider_truncated = "provider_truncated"
    malformed = "malformed"
    too_short = "too_short"
    ellipsis = "ellipsis"
    mid_sentence = "mid_sentence"
    unterminated_short = "unterminated_short"


class Classification(BaseModel):
    """Outcome of the completeness check on one generation.

    ``verse`` is populated whenever the output parsed into all three fields,
    even if the verse was then judged incomplete.
    """

    complete: bool
    reason: IncompleteReason | None = None
    verse: VerseResult | None = None


class AttemptOutcome(str, Enum):
    success = "success"
    retry = "retry"
    exhausted = "exhausted"


class AttemptRecord(BaseModel):
    """Snapshot of a single generation attempt."""

    index: int = Field(ge=1, le=3)
    raw_output: str | None = None
    stop_reason: StopReason | None = Field(
        default=None,
        description="None when the call itself failed",
    )
    outcome: AttemptOutcome
    reason: str | None = None
    degraded: bool = False


class RetrievalResult(BaseModel):
    """Successful outcome of the attempt loop, possibly a degraded fallback."""

    verse: VerseResult
    degraded: bool = False
    attempt_count: int = Field(ge=1, le=3)
    excluded: list[str] = Field(default_factory=list)
    attempts: list[AttemptRecord] = Field(default_factory=list)


class ExclusionList:
    """Insertion-ordered set of references the model must not offer again."""

    def __init__(self, references: Iterable[str] = ()) -> None:
        self._references: list[str] = []
        for reference in references:
            self.add(reference)

    def add(self, reference: str) -> bool:
        """Append *reference*; return False when it is blank or already listed."""
        if not reference.strip() or reference in self._references:
            return False
        self._references.append(reference)
        return True

    def as_list(self) -> list[str]:
        return list(self._references)

    def __contains__(self, reference: object) -> bool:
        return reference in self._references

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._references))

    def __len__(self) -> int:
        return len(self._references)

    def __repr__(self) -> str:
        return f"ExclusionList({self._references!r})"
