"""Label/value extraction over flat, tab or space delimited CRM text."""
from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from .normalize import (
    collapse_whitespace,
    ensure_list,
    escape_regex,
    normalize_key,
    normalize_whitespace,
)

# A field starts at the beginning of a line or right after a separator.
_FIELD_START = r"(?:^|(?<=\t)|(?<=  ))"
_SEPARATOR = r"(?:\t| {2,})[ \t]*"
_VALUE = r"(?P<value>\S[^\t\n]*?)(?=\t| {2,}|\n|$)"

# Header labels of a CRM dongle page. A value equal to one of these is the
# next field's label, meaning the current field was empty.
HEADER_LABELS = (
    "Customer",
    "Dongle No.",
    "Serial No.",
    "Dongle Type",
    "Net Dongle",
    "Product key",
    "Maintenance Type",
    "Maintenance Start",
    "Maintenance Start Date",
    "Maintenance End",
    "Maintenance End Date",
    "SolidCAM Version",
    "Profile No.",
    "Profile Name",
    "Profile Users",
    "Sim 5x Level",
)
_HEADER_LABEL_KEYS = frozenset(normalize_key(label) for label in HEADER_LABELS)
_CHECKBOX_STATE_RE = re.compile(r"\s+(?:Not\s+)?Checked$", re.IGNORECASE)


def is_header_label(value: str) -> bool:
    """True for a known header label, with or without a trailing checkbox state."""
    return normalize_key(_CHECKBOX_STATE_RE.sub("", value)) in _HEADER_LABEL_KEYS


def label_pattern(label: str) -> str:
    """Escape ``label`` and let its inner whitespace match any whitespace run."""
    parts = [escape_regex(part) for part in label.split()]
    return r"\s+".join(parts)


@lru_cache(maxsize=512)
def _field_regex(label: str) -> re.Pattern[str]:
    return re.compile(
        _FIELD_START + label_pattern(label) + _SEPARATOR + _VALUE,
        re.IGNORECASE | re.MULTILINE,
    )


@lru_cache(maxsize=512)
def _checked_regex(label: str) -> re.Pattern[str]:
    return re.compile(
        _FIELD_START + r"(?P<label>" + label_pattern(label) + r")\s+Checked(?!\s*Not)",
        re.IGNORECASE | re.MULTILINE,
    )


@lru_cache(maxsize=512)
def _not_checked_regex(label: str) -> re.Pattern[str]:
    return re.compile(
        _FIELD_START + r"(?P<label>" + label_pattern(label) + r")\s+Not\s+Checked",
        re.IGNORECASE | re.MULTILINE,
    )


def extract_field(text: str, label: str) -> str:
    """Return the value following ``label`` or ``""`` when absent."""
    if not text or not label:
        return ""
    match = _field_regex(label).search(normalize_whitespace(text))
    if not match:
        return ""
    value = match.group("value").strip()
    if is_header_label(value):
        return ""
    return value


def extract_first_field(text: str, labels: Iterable[str]) -> str:
    for label in labels:
        value = extract_field(text, label)
        if value:
            return value
    return ""


def extract_checked(text: str, label: str) -> bool:
    if not text or not label:
        return False
    return _checked_regex(label).search(normalize_whitespace(text)) is not None


def _scan_features(text: str, names: Iterable[str], negative: bool) -> list[str]:
    if not text:
        return []
    normalized = normalize_whitespace(text)
    hits: list[tuple[int, str]] = []
    for name in names:
        regex = _not_checked_regex(name) if negative else _checked_regex(name)
        for match in regex.finditer(normalized):
            hits.append((match.start("label"), collapse_whitespace(match.group("label"))))
    hits.sort(key=lambda hit: hit[0])
    return ensure_list(label for _, label in hits)


def parse_checked_features(text: str, names: Iterable[str]) -> list[str]:
    """Feature names marked ``Checked``, spelled as they appear in ``text``.

    Results are ordered by position in the text and de-duplicated by exact
    string only.
    """
    return _scan_features(text, names, negative=False)


def parse_unchecked_features(text: str, names: Iterable[str]) -> list[str]:
    return _scan_features(text, names, negative=True)
