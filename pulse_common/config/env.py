"""Environment variable parsing utilities."""

from __future__ import annotations


def parse_bool_env(value: str | None) -> bool | None:
    """Parse a boolean from an environment variable string.

    Returns True for "1", "true", "yes", "on" (case-insensitive).
    Returns None if value is None.
    """
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_int_env(value: str | None) -> int | None:
    """Parse an integer from an environment variable string.

    Returns None if value is None or cannot be parsed.
    """
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_float_env(value: str | None) -> float | None:
    """Parse a float from an environment variable string.

    Returns None if value is None or cannot be parsed.
    """
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_choice_env(value: str | None, choices: set[str]) -> str | None:
    """Return the lower-cased value when it is one of ``choices``, else None."""
    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized if normalized in choices else None


def parse_str_env(value: str | None) -> str | None:
    """Return the stripped value, treating blank strings as unset."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
