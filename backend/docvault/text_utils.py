from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from .validation import normalize_language

# Arabic block; the office's non-Latin script.
ARABIC_RE = re.compile(r"[\u0600-\u06FF]")
LATIN_RE = re.compile(r"[A-Za-z]")

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9\u0600-\u06FF\s]")
_SPACES_RE = re.compile(r"\s+")


def script_counts(text: Optional[str]) -> tuple[int, int]:
    """(arabic letters, latin letters) in `text`."""
    if not text:
        return 0, 0
    return len(ARABIC_RE.findall(text)), len(LATIN_RE.findall(text))


def detect_language(texts: Iterable[Optional[str]], default: str = "ar") -> str:
    """
    Classify a prioritized sequence of text fields as "ar" or "en".

    The script with more letters across all fields wins. On a tie the
    first field that has any letters decides (callers put their primary
    field first); with no letters at all the `default` is returned.
    """
    arabic_total = latin_total = 0
    first_vote: Optional[str] = None

    for text in texts:
        if not isinstance(text, str):
            continue
        arabic, latin = script_counts(text)
        arabic_total += arabic
        latin_total += latin
        if first_vote is None and (arabic or latin):
            first_vote = "ar" if arabic >= latin else "en"

    if arabic_total > latin_total:
        return "ar"
    if latin_total > arabic_total:
        return "en"
    return first_vote or default


def sanitize_name(value: Optional[str], max_length: int = 30) -> str:
    """
    Filename-safe form of a counterparty name: keep letters, digits,
    Arabic and spaces; spaces become underscores; truncate.
    """
    if not value:
        return "Unknown"
    cleaned = _UNSAFE_NAME_RE.sub("", str(value)).strip()
    cleaned = _SPACES_RE.sub("_", cleaned)[:max_length].strip("_")
    return cleaned or "Unknown"


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB", "TB")
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def detect_record_language(
    record: Mapping[str, Any],
    fields: Iterable[str],
    default: str = "ar",
) -> str:
    """
    Language of a record's content: `forceLanguage` wins; otherwise the
    listed fields (primary first) plus every item description are
    classified by script.
    """
    forced = record.get("forceLanguage")
    if forced:
        return normalize_language(forced)
    texts = [record.get(f) for f in fields]
    for item in record.get("items") or []:
        if isinstance(item, dict):
            texts.append(item.get("description"))
    return detect_language(texts, default=normalize_language(default))
