"""Inbound request normalization."""

from __future__ import annotations

from pocketverse.errors import InvalidInput


def normalize_input(user_input: str | None) -> str:
    """Return the trimmed input, raising ``InvalidInput`` when nothing is left."""
    if user_input is None or not user_input.strip():
        raise InvalidInput("User input is required")
    return user_input.strip()
