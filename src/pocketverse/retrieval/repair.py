"""Last-resort structural repair of truncated verse JSON."""

from __future__ import annotations

import logging
import re

from .completeness import parse_verse
from .models import VerseResult

logger = logging.getLogger(__name__)

FALLBACK_EXPLANATION = "This verse offers comfort and guidance for your situation."

# An open "text" string running to the end of the output.
_OPEN_TEXT_FIELD = re.compile(r'"text":\s*"([^"]*)$')


def looks_unterminated(raw_text: str) -> bool:
    """True when *raw_text* has an unclosed string or more ``{`` than ``}``."""
    has_open_string = raw_text.count('"') % 2 != 0
    has_open_brace = raw_text.count("{") > raw_text.count("}")
    return has_open_string or has_open_brace


def repair(raw_text: str | None) -> VerseResult | None:
    """
    Close a ``"text"`` field cut off by truncation and re-parse the result.

    The repaired verse is not checked for completeness; callers treat it as a
    degraded fallback. Returns ``None`` when the output is not unterminated,
    the cut does not fall inside ``"text"``, or re-parsing still fails.
    """
    if not raw_text:
        return None

    candidate = raw_text.strip()
    if not looks_unterminated(candidate):
        return None

    match = _OPEN_TEXT_FIELD.search(candidate)
    if match is None:
        logger.debug("Truncation point is not inside the text field; cannot repair.")
        return None

    partial_text = match.group(1).strip()
    repaired = (
        candidate[: match.start(1)]
        + partial_text
        + f'",\n  "explanation": "{FALLBACK_EXPLANATION}"\n}}'
    )

    verse = parse_verse(repaired)
    if verse is None:
        logger.debug("Repaired payload still failed to parse.")
    return verse
