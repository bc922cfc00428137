"""Shared input sanitizers for API models."""

from __future__ import annotations

import re

NAME_MAX_LENGTH = 80
NOTE_MAX_LENGTH = 400
PHONE_PATTERN = re.compile(r"^[0-9+()\-\.\s]{6,32}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _squash_whitespace(text: str) -> str:
    return " ".join(text.split())


def normalize_display_name(value: str, *, field: str = "name") -> str:
    if not isinstance(value, str):  # pragma: no cover - Pydantic guards by default
        raise ValueError(f"{field} must be a string")
    cleaned = _squash_whitespace(value.strip())
    if not cleaned:
        raise ValueError(f"{field} cannot be blank")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} must be <= {NAME_MAX_LENGTH} characters")
    return cleaned


def normalize_phone(value: str) -> str:
    cleaned = (value or "").strip()
    if not PHONE_PATTERN.fullmatch(cleaned):
        raise ValueError(
            "phone must contain digits, spaces, '.', '-', '()' or '+' and be 6-32 characters"
        )
    return cleaned


def phone_digits(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def normalize_email(value: str) -> str:
    cleaned = (value or "").strip().lower()
    if not EMAIL_PATTERN.fullmatch(cleaned):
        raise ValueError("email is not a valid address")
    return cleaned


def normalize_time(value: str) -> str:
    cleaned = (value or "").strip()
    # accept "22:00:00" as sent by some time pickers
    if len(cleaned) == 8 and cleaned.count(":") == 2:
        cleaned = cleaned[:5]
    if not TIME_PATTERN.fullmatch(cleaned):
        raise ValueError("time must be HH:MM (24h)")
    return cleaned


def normalize_note(
    value: str | None, *, field: str = "notes", max_length: int = NOTE_MAX_LENGTH
) -> str | None:
    if value is None:
        return None
    cleaned = _squash_whitespace(value.strip())
    if not cleaned:
        return None
    if len(cleaned) > max_length:
        raise ValueError(f"{field} must be <= {max_length} characters")
    return cleaned


__all__ = [
    "NAME_MAX_LENGTH",
    "NOTE_MAX_LENGTH",
    "normalize_display_name",
    "normalize_email",
    "normalize_note",
    "normalize_phone",
    "normalize_time",
    "phone_digits",
]
