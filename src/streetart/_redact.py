"""Helpers for safe debug logging.

Spot records carry base64 image blobs that can run to hundreds of
kilobytes, and the description service is called with an API key.
This module collapses blobs and redacts secrets before emitting DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "key",
        "apikey",
        "api_key",
        "x-goog-api-key",
        "authorization",
        "cookie",
        # Encoded image payloads
        "data",
        "inline_data",
    }
)

_MAX_DEPTH = 20


def _summarize_text(text: str, limit: int) -> str:
    if text.startswith("data:") and ";base64," in text:
        return f"<image:{len(text)} chars>"
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a log-safe copy of *value*.

    Image data URLs become ``<image:N chars>``, long text is cut at
    *max_string*, and values under sensitive keys become ``<redacted>``.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    match value:
        case None | bool() | int() | float():
            return value
        case str():
            return _summarize_text(value, max_string)
        case bytes() | bytearray():
            return f"<bytes:{len(value)}b>"
        case Mapping():
            return {
                str(k): "<redacted>"
                if str(k).lower() in _SENSITIVE_VALUE_KEYS
                else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
                for k, v in value.items()
            }
        case list() | tuple() | set() | frozenset():
            return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
        case _:
            return repr(value)
