"""LiteLLM gateway integration for outbound verse generation requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from litellm import acompletion

from pocketverse.errors import TransportFailure

from .models import Generation, StopReason

logger = logging.getLogger(__name__)

_SUPPORTED_PROVIDERS = {"openai", "custom"}
_DEFAULT_MODEL = "gpt-4o-mini"
_DEFAULT_LLM_TIMEOUT_S = 60.0
_DEFAULT_MAX_TOKENS = 3000
_DEFAULT_TEMPERATURE = 0.85

# Any other finish_reason ("stop", "tool_calls", None) counts as a natural stop.
_TRUNCATING_FINISH_REASONS: dict[str, StopReason] = {
    "length": StopReason.truncated_length,
    "content_filter": StopReason.truncated_filter,
}


def _read_mapping_value(obj: object, key: str) -> object:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _first_choice(response: object) -> object:
    choices = _read_mapping_value(response, "choices")
    if not isinstance(choices, list) or not choices:
        return None
    return choices[0]


def _extract_content(choice: object) -> str:
    message = _read_mapping_value(choice, "message")
    content = _read_mapping_value(message, "content")
    return content if isinstance(content, str) else ""


def _extract_usage(response: object) -> dict[str, Any]:
    usage = _read_mapping_value(response, "usage")
    if usage is None:
        return {}
    if isinstance(usage, Mapping):
        return dict(usage)
    model_dump = getattr(usage, "model_dump", None)
    if callable(model_dump):
        dumped = model_dump()
        if isinstance(dumped, dict):
            return dumped
    return {}


def map_finish_reason(finish_reason: object) -> StopReason:
    """Translate a provider ``finish_reason`` into a :class:`StopReason`."""
    if isinstance(finish_reason, str):
        return _TRUNCATING_FINISH_REASONS.get(finish_reason, StopReason.complete)
    return StopReason.complete


class LiteLLMClient:
    """One JSON-mode completion per call. Never retries; failures are raised."""

    def __init__(
        self,
        model_name: str = _DEFAULT_MODEL,
        provider: str = "openai",
        api_base: str | None = None,
        api_key: str | None = None,
        request_timeout_s: float = _DEFAULT_LLM_TIMEOUT_S,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
        temperature: float = _DEFAULT_TEMPERATURE,
    ) -> None:
        self.model_name = model_name
        self.provider = provider.strip().lower()
        if self.provider not in _SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported LLM provider '{provider}'. "
                f"Supported providers: {sorted(_SUPPORTED_PROVIDERS)}"
            )
        if self.provider == "custom" and not api_base:
            raise ValueError("api_base is required when provider='custom'.")
        self.api_base = api_base
        self.api_key = api_key
        self.request_timeout_s = request_timeout_s
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(self, system_prompt: str, user_input: str) -> Generation:
        """Request one verse candidate and return its raw content and stop reason."""
        completion_kwargs: dict[str, Any] = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_input},
            ],
            "response_format": {"type": "json_object"},
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.request_timeout_s,
        }
        if self.api_base:
            completion_kwargs["api_base"] = self.api_base
        if self.api_key:
            completion_kwargs["api_key"] = self.api_key

        try:
            response = await acompletion(**completion_kwargs)
        except Exception as err:
            raise TransportFailure(f"LLM Gateway Request Failed: {err}") from err

        choice = _first_choice(response)
        content = _extract_content(choice).strip()
        if not content:
            raise TransportFailure("No response from LLM provider.")

        finish_reason = _read_mapping_value(choice, "finish_reason")
        usage = _extract_usage(response)
        logger.info(
            "Generation finished: finish_reason=%s usage=%s",
            finish_reason,
            usage,
        )
        return Generation(
            raw_output=content,
            stop_reason=map_finish_reason(finish_reason),
            usage=usage,
        )
