from __future__ import annotations

import json

from pocketverse.retrieval.extractor import extract_reference


def test_reference_from_valid_json() -> None:
    raw = json.dumps({"reference": "John 3:16", "text": "For God so loved", "explanation": "x"})
    assert extract_reference(raw) == "John 3:16"


def test_reference_from_truncated_json() -> None:
    raw = '{"reference": "Romans 8:28", "text": "And we know that in all things God works'
    assert extract_reference(raw) == "Romans 8:28"


def test_regex_tolerates_whitespace_after_colon() -> None:
    raw = '{\n  "reference":    "Psalm 46:1",\n  "text": "God is our refuge'
    assert extract_reference(raw) == "Psalm 46:1"


def test_reference_from_fenced_output() -> None:
    raw = '```json\n{"reference": "Isaiah 41:10", "text": "So do not fear"}\n```'
    assert extract_reference(raw) == "Isaiah 41:10"


def test_valid_json_without_reference_returns_none() -> None:
    raw = json.dumps({"text": "For God so loved", "explanation": "x"})
    assert extract_reference(raw) is None


def test_valid_json_that_is_not_an_object_returns_none() -> None:
    assert extract_reference('["reference"]') is None


def test_broken_json_without_reference_returns_none() -> None:
    assert extract_reference('{"text": "For God so loved the world') is None


def test_empty_input_returns_none() -> None:
    assert extract_reference("") is None
    assert extract_reference(None) is None
