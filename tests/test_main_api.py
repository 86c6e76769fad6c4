from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from pocketverse.config import Settings, get_settings
from pocketverse.errors import GenerationFailed
from pocketverse.main import app
from pocketverse.retrieval.models import RetrievalResult, VerseResult

client = TestClient(app)

_VERSE = VerseResult(
    reference="Philippians 4:6",
    text=(
        "Do not be anxious about anything, but in every situation, by prayer and "
        "petition, with thanksgiving, present your requests to God."
    ),
    explanation="God invites you to bring every worry to him.",
)


def test_get_verse_returns_verse_fields() -> None:
    fake_result = RetrievalResult(verse=_VERSE, attempt_count=1)

    with patch("pocketverse.main.VerseRetrievalService") as mock_service_cls:
        mock_service = mock_service_cls.from_settings.return_value
        mock_service.run = AsyncMock(return_value=fake_result)
        response = client.post("/api/get-verse", json={"userInput": "Exams tomorrow"})

    assert response.status_code == 200
    assert response.json() == {
        "reference": _VERSE.reference,
        "text": _VERSE.text,
        "explanation": _VERSE.explanation,
    }
    mock_service.run.assert_awaited_once_with("Exams tomorrow")


def test_degraded_fallback_is_still_200() -> None:
    degraded = VerseResult(
        reference="Psalm 23:4",
        text="The Lord is my shepherd",
        explanation="This verse offers comfort and guidance for your situation.",
    )
    fake_result = RetrievalResult(verse=degraded, degraded=True, attempt_count=3)

    with patch("pocketverse.main.VerseRetrievalService") as mock_service_cls:
        mock_service_cls.from_settings.return_value.run = AsyncMock(return_value=fake_result)
        response = client.post("/api/get-verse", json={"userInput": "Grieving"})

    assert response.status_code == 200
    assert response.json()["text"] == "The Lord is my shepherd"


def test_blank_input_is_400_without_generation() -> None:
    with patch("pocketverse.generation.gateway.acompletion") as mock_completion:
        response = client.post("/api/get-verse", json={"userInput": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "User input is required"}
    mock_completion.assert_not_called()


def test_missing_input_is_400() -> None:
    response = client.post("/api/get-verse", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "User input is required"}


def test_missing_body_is_400() -> None:
    response = client.post("/api/get-verse")
    assert response.status_code == 400
    assert "error" in response.json()


def test_non_string_input_is_400() -> None:
    response = client.post("/api/get-verse", json={"userInput": 42})
    assert response.status_code == 400
    assert response.json() == {"error": "User input is required"}


def test_non_post_method_is_405() -> None:
    response = client.get("/api/get-verse")
    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


def test_generation_failure_is_500_with_diagnostics() -> None:
    failure = GenerationFailed(
        attempts=3,
        excluded=["Romans 8:28", "Psalm 46:1"],
        reason="last response was incomplete (provider_truncated)",
    )

    with patch("pocketverse.main.VerseRetrievalService") as mock_service_cls:
        mock_service_cls.from_settings.return_value.run = AsyncMock(side_effect=failure)
        response = client.post("/api/get-verse", json={"userInput": "Anxious"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert "3 attempts" in error
    assert "Romans 8:28, Psalm 46:1" in error


def test_gateway_failures_surface_as_500() -> None:
    with (
        patch("pocketverse.main.get_settings", return_value=Settings(backoff_step_s=0.0)),
        patch(
            "pocketverse.generation.gateway.acompletion",
            new=AsyncMock(side_effect=Exception("api down")),
        ) as mock_completion,
    ):
        response = client.post("/api/get-verse", json={"userInput": "Lonely tonight"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert "LLM Gateway Request Failed: api down" in error
    assert "3 attempts" in error
    assert mock_completion.await_count == 3


def test_misconfigured_provider_is_500_json() -> None:
    server_error_client = TestClient(app, raise_server_exceptions=False)
    with patch("pocketverse.main.get_settings", return_value=Settings(llm_provider="custom")):
        response = server_error_client.post("/api/get-verse", json={"userInput": "sad"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert "api_base" in response.json()["error"]


def test_invalid_environment_is_500_json(monkeypatch: pytest.MonkeyPatch) -> None:
    server_error_client = TestClient(app, raise_server_exceptions=False)
    monkeypatch.setenv("VERSE_LLM_TEMPERATURE", "hot")
    get_settings.cache_clear()
    try:
        response = server_error_client.post("/api/get-verse", json={"userInput": "sad"})
    finally:
        get_settings.cache_clear()

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["error"]
