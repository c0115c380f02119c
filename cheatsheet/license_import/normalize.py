"""Normalization helpers."""
from __future__ import annotations

import re
from collections.abc import Iterable, MutableMapping
from datetime import UTC, datetime
from typing import Any

# Unicode "space separator" characters plus the zero-width ones that CRM and
# spreadsheet copy/paste tends to leave behind.
_UNICODE_SPACES_RE = re.compile(r"[\u00a0\u1680\u2000-\u200b\u202f\u205f\u3000\ufeff]")
_REGEX_METACHARACTERS_RE = re.compile(r"([.*+?^${}()|\[\]\\])")
_WHITESPACE_RUN_RE = re.compile(r"\s+")


def now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def normalize_whitespace(text: str) -> str:
    """Replace every Unicode space variant with an ASCII space."""
    if not text:
        return ""
    return _UNICODE_SPACES_RE.sub(" ", text)


def escape_regex(text: str) -> str:
    return _REGEX_METACHARACTERS_RE.sub(r"\\\1", text)


def normalize_key(value: str) -> str:
    return " ".join(normalize_whitespace(value).lower().strip().split())


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE_RUN_RE.sub(" ", value).strip()


def ensure_list(values: Iterable[str]) -> list[str]:
    seen = set()
    result: list[str] = []
    for value in values:
        cleaned = value.strip()
        if not cleaned:
            continue
        if cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def merge_list(existing: MutableMapping[str, Any], key: str, values: Iterable[str]) -> int:
    """Union ``values`` into ``existing[key]`` keeping first-occurrence order.

    Returns the number of values that were not already present.
    """
    current = existing.get(key)
    if not isinstance(current, list):
        current = []
        existing[key] = current
    seen = set(current)
    added = 0
    for value in values:
        if value not in seen:
            current.append(value)
            seen.add(value)
            added += 1
    return added


def remove_from_list(existing: MutableMapping[str, Any], key: str, values: Iterable[str]) -> int:
    current = existing.get(key)
    if not isinstance(current, list):
        return 0
    removal = set(values)
    kept = [value for value in current if value not in removal]
    removed = len(current) - len(kept)
    if removed:
        existing[key] = kept
    return removed
