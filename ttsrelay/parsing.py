"""Shared parsing helpers for runtime configuration and provider payload values."""

from __future__ import annotations


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_positive_number(value: object, field_name: str, *, integer: bool = False) -> float:
    """Parse a strictly positive number from a raw config value.

    Raises:
        ValueError: If the value is blank, boolean, non-numeric, or not positive.
    """

    message = f"`{field_name}` must be a positive {'integer' if integer else 'number'}."
    if isinstance(value, bool):
        raise ValueError(message)
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(message)
    try:
        parsed = int(normalized) if integer else float(normalized)
    except ValueError as exc:
        raise ValueError(message) from exc
    if parsed <= 0:
        raise ValueError(message)
    return parsed
