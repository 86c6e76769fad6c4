"""Runtime settings, read from the environment and a local .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

_ENV_LOADED = False

# Environment variable -> Settings field.
_ENV_FIELDS: dict[str, str] = {
    "VERSE_MODEL": "model_name",
    "VERSE_LLM_PROVIDER": "llm_provider",
    "VERSE_LLM_API_BASE": "llm_api_base",
    "OPENAI_API_KEY": "llm_api_key",
    "VERSE_LLM_TIMEOUT_S": "llm_timeout_s",
    "VERSE_LLM_MAX_TOKENS": "llm_max_tokens",
    "VERSE_LLM_TEMPERATURE": "llm_temperature",
    "VERSE_BACKOFF_STEP_S": "backoff_step_s",
}


class Settings(BaseModel):
    """Generation parameters. Fixed per process; never tuned by the retry loop."""

    model_name: str = "gpt-4o-mini"
    llm_provider: Literal["openai", "custom"] = "openai"
    llm_api_base: str | None = None
    llm_api_key: str | None = None
    llm_timeout_s: float = Field(default=60.0, gt=0.0, le=600.0)
    llm_max_tokens: int = Field(default=3000, gt=0, le=32768)
    llm_temperature: float = Field(default=0.85, ge=0.0, le=2.0)
    backoff_step_s: float = Field(default=0.5, ge=0.0, le=10.0)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``os.environ`` after loading the nearest .env file."""
        load_dotenv()
        values = {
            field: os.environ[name]
            for name, field in _ENV_FIELDS.items()
            if os.environ.get(name, "").strip()
        }
        return cls.model_validate(values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def load_dotenv(*, override: bool = False) -> None:
    """Load ``KEY=value`` pairs from the first .env found upward from the cwd."""
    global _ENV_LOADED
    if _ENV_LOADED and not override:
        return

    env_path = _find_env_file()
    _ENV_LOADED = True
    if env_path is None:
        return

    for key, value in _parse_env_lines(env_path.read_text(encoding="utf-8")):
        if override or key not in os.environ:
            os.environ[key] = value


def _parse_env_lines(text: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").strip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        pairs.append((key, value))
    return pairs


def _find_env_file() -> Path | None:
    cwd = Path.cwd()
    for base in [cwd, *cwd.parents]:
        candidate = base / ".env"
        if candidate.is_file():
            return candidate
    return None
