"""Best-effort reference recovery from rejected generations."""

from __future__ import annotations

import json
import re
from json import JSONDecodeError

_REFERENCE_PATTERN = re.compile(r'"reference":\s*"([^"]+)"')


def extract_reference(raw_text: str | None) -> str | None:
    """
    Return the verse reference named in *raw_text*, even when the JSON is broken.

    Valid JSON is trusted as-is: a parsed object without a usable reference
    yields ``None`` rather than falling through to the regex.
    """
    if not raw_text:
        return None

    try:
        parsed = json.loads(raw_text)
    except JSONDecodeError:
        match = _REFERENCE_PATTERN.search(raw_text)
        return match.group(1) if match else None

    if not isinstance(parsed, dict):
        return None
    reference = parsed.get("reference")
    if isinstance(reference, str) and reference:
        return reference
    return None
