"""Pydantic models for the generation gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class StopReason(str, Enum):
    """Provider-reported reason a generation ended."""

    complete = "complete"
    truncated_length = "truncated_length"  # hit the max_tokens cap
    truncated_filter = "truncated_filter"  # cut by the provider's content filter


class Generation(BaseModel):
    """Raw output of one completion call."""

    raw_output: str = Field(description="Message content, whitespace-trimmed")
    stop_reason: StopReason
    usage: dict[str, Any] = Field(
        default_factory=dict,
        description="Token usage reported by the provider (diagnostics only)",
    )
