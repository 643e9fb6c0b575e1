"""Helpers for safe debug logging.

Stored entries can hold anything an application chooses to persist,
including credentials. Raw backend strings are passed through
:func:`redact_entry` before being emitted in DEBUG/WARNING logs.
"""

from __future__ import annotations

_SENSITIVE_KEY_PARTS: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "credential",
    "cookie",
    "authorization",
)


def is_sensitive_key(key: str) -> bool:
    """Return ``True`` when *key* looks like it names a secret."""
    normalized = key.lower().replace("-", "_")
    return any(part in normalized for part in _SENSITIVE_KEY_PARTS)


def truncate_for_log(value: str, *, max_string: int = 256) -> str:
    if len(value) > max_string:
        return f"{value[:max_string]}…<truncated {len(value) - max_string} chars>"
    return value


def redact_entry(key: str, raw: str | None, *, max_string: int = 256) -> str | None:
    """Return a representation of the entry *raw* stored under *key* suitable for logs."""
    if raw is None:
        return None
    if is_sensitive_key(key):
        return f"<redacted:{len(raw)} chars>"
    return truncate_for_log(raw, max_string=max_string)
