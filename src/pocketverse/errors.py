"""Error taxonomy for the verse retrieval service."""

from __future__ import annotations


class VerseRetrievalError(Exception):
    """Base class for every error raised by the retrieval pipeline."""


class InvalidInput(VerseRetrievalError):
    """Caller supplied no usable input. Never retried."""


class TransportFailure(VerseRetrievalError):
    """A single generation call failed at the provider or network level."""


class GenerationFailed(VerseRetrievalError):
    """All attempts were used up and no verse could be salvaged."""

    def __init__(self, *, attempts: int, excluded: list[str], reason: str) -> None:
        self.attempts = attempts
        self.excluded = list(excluded)
        self.reason = reason
        message = f"Failed to get a complete verse after {attempts} attempts: {reason}"
        if self.excluded:
            message += f". Tried verses: {', '.join(self.excluded)}"
        super().__init__(message)
