"""Completeness classifier for raw verse generations.

The verse-completeness predicate is a heuristic: there is no canonical corpus
to check against, so it looks for the usual signs of a cut-off sentence.
Boundaries (30 and 100 characters, the ``...`` marker and the suffix list)
are fixed and covered by tests.
"""

from __future__ import annotations

import json
import logging
import re
from json import JSONDecodeError

from pydantic import ValidationError

from pocketverse.generation.models import StopReason

from .models import Classification, IncompleteReason, VerseResult

logger = logging.getLogger(__name__)

MIN_VERSE_LENGTH = 30
MIN_UNTERMINATED_LENGTH = 100

_TERMINAL_PUNCTUATION = re.compile(r"[.!?;]$")
_CLOSING_QUOTES = ('"', "”")

# Endings that almost always mean the model stopped mid-sentence.
_MID_SENTENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"will guard your$"),
    re.compile(r"and [a-z]+$"),
    re.compile(r"the [a-z]+$"),
    re.compile(r"in [a-z]+$"),
    re.compile(r"with [a-z]+$"),
    re.compile(r"by [a-z]+$"),
)

_PROVIDER_TRUNCATIONS = frozenset({StopReason.truncated_length, StopReason.truncated_filter})


def _strip_json_fence(raw_text: str) -> str:
    stripped = raw_text.strip()
    if stripped.startswith("```json") and stripped.endswith("```"):
        stripped = stripped.removeprefix("```json")
        stripped = stripped.removesuffix("```")
    return stripped.strip()


def parse_verse(raw_text: str | None) -> VerseResult | None:
    """Strictly parse *raw_text* into a :class:`VerseResult`, or return ``None``."""
    if not raw_text or not raw_text.strip():
        return None

    try:
        parsed = json.loads(_strip_json_fence(raw_text))
    except JSONDecodeError:
        return None

    if not isinstance(parsed, dict):
        return None

    try:
        return VerseResult.model_validate(parsed)
    except ValidationError:
        logger.debug("Verse JSON is missing required fields.")
        return None


def verse_text_defect(text: str) -> IncompleteReason | None:
    """Return why *text* looks cut off, or ``None`` when it reads as a full verse."""
    text = text.strip()

    if len(text) < MIN_VERSE_LENGTH:
        return IncompleteReason.too_short

    if text.endswith("..."):
        return IncompleteReason.ellipsis

    if _TERMINAL_PUNCTUATION.search(text) or text.endswith(_CLOSING_QUOTES):
        return None

    for pattern in _MID_SENTENCE_PATTERNS:
        if pattern.search(text):
            return IncompleteReason.mid_sentence

    if len(text) < MIN_UNTERMINATED_LENGTH:
        return IncompleteReason.unterminated_short

    return None


def is_verse_complete(text: str) -> bool:
    return verse_text_defect(text) is None


def classify(stop_reason: StopReason, raw_text: str) -> Classification:
    """
    Decide whether a generation is usable.

    Rules (evaluated in priority order):
    1. Provider truncation (length cap or content filter): incomplete.
    2. Output that does not parse into all three fields: incomplete (malformed).
    3. Verse text failing the completeness predicate: incomplete.
    4. Otherwise complete.
    """
    verse = parse_verse(raw_text)

    if stop_reason in _PROVIDER_TRUNCATIONS:
        return Classification(
            complete=False,
            reason=IncompleteReason.provider_truncated,
            verse=verse,
        )

    if verse is None:
        return Classification(complete=False, reason=IncompleteReason.malformed)

    defect = verse_text_defect(verse.text)
    if defect is not None:
        return Classification(complete=False, reason=defect, verse=verse)

    return Classification(complete=True, verse=verse)
