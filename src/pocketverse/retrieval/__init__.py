"""Verse retrieval pipeline: prompt, classify, extract, repair, retry."""

from .completeness import classify, is_verse_complete, parse_verse, verse_text_defect
from .extractor import extract_reference
from .models import (
    AttemptOutcome,
    AttemptRecord,
    Classification,
    ExclusionList,
    IncompleteReason,
    RetrievalResult,
    VerseResult,
)
from .normalizer import normalize_input
from .policy import MAX_ATTEMPTS, RetrievalState, Transition
from .prompts import BASE_SYSTEM_PROMPT, build_prompt
from .repair import FALLBACK_EXPLANATION, repair
from .service import VerseRetrievalService

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "BASE_SYSTEM_PROMPT",
    "Classification",
    "ExclusionList",
    "FALLBACK_EXPLANATION",
    "IncompleteReason",
    "MAX_ATTEMPTS",
    "RetrievalResult",
    "RetrievalState",
    "Transition",
    "VerseResult",
    "VerseRetrievalService",
    "build_prompt",
    "classify",
    "extract_reference",
    "is_verse_complete",
    "normalize_input",
    "parse_verse",
    "repair",
    "verse_text_defect",
]
