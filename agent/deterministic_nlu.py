"""Deterministic keyword parsing for the pattern-intent fallback.

These heuristics only run when tool calling is unavailable. They are kept
simple on purpose: quoted names win, otherwise the text after a keyword is
taken as the name.
"""

from __future__ import annotations

import re
from datetime import date

from shared.text_utils import normalize_message


_QUOTED_PATTERN = re.compile(r"[\"“'‘](.+?)[\"”'’]")
_EXPLICIT_MONTH_PATTERN = re.compile(r"\bthang\s+(\d{1,2})\b")
_EXPLICIT_YEAR_PATTERN = re.compile(r"\bnam\s+(\d{4})\b")
_TOP_N_PATTERN = re.compile(r"\btop\s*(\d{1,2})\b")

_CHO_PATTERN = re.compile(r"\bcho\s+(.+)", re.IGNORECASE | re.DOTALL)
_CATEGORY_NOISE_PATTERN = re.compile(
    r"tháng này|thang nay|tháng trước|thang truoc|bao nhiêu|bao nhieu|\?",
    re.IGNORECASE,
)
_CATEGORY_PREFIX_PATTERN = re.compile(r"^(?:danh mục|danh muc)\s+", re.IGNORECASE)
_CATEGORY_SPLIT_PATTERN = re.compile(r",|\s+và\s+|\s+va\s+", re.IGNORECASE)

_WALLET_PATTERN = re.compile(r"(?:^|\s)(?:ví|vi)\s+(.+)", re.IGNORECASE | re.DOTALL)
_WALLET_SUFFIX_PATTERN = re.compile(
    r"(?:^|\s+)(?:(?:là|la|còn|con|hiện|hien)\s+)*(?:bao nhiêu|bao nhieu|hiện tại|hien tai).*$",
    re.IGNORECASE,
)


def normalize_text(message: str) -> str:
    return normalize_message(message)


def contains_any(text_norm: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text_norm for phrase in phrases)


def detect_month_offset(text_norm: str, today: date) -> int:
    """Return the month offset mentioned in ``text_norm`` relative to ``today``.

    "thang nay" is 0 and "thang truoc" is -1. An explicit "thang N" and/or
    "nam YYYY" is converted to an offset; the missing part defaults to today's.
    """
    if "thang nay" in text_norm:
        return 0
    if "thang truoc" in text_norm:
        return -1

    target_month = today.month
    target_year = today.year
    explicit = False

    month_match = _EXPLICIT_MONTH_PATTERN.search(text_norm)
    if month_match and 1 <= int(month_match.group(1)) <= 12:
        target_month = int(month_match.group(1))
        explicit = True

    year_match = _EXPLICIT_YEAR_PATTERN.search(text_norm)
    if year_match and 1900 < int(year_match.group(1)) < 3000:
        target_year = int(year_match.group(1))
        explicit = True

    if not explicit:
        return 0
    return (target_year - today.year) * 12 + (target_month - today.month)


def detect_top_n(text_norm: str, default: int) -> int:
    match = _TOP_N_PATTERN.search(text_norm)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    if "top ba" in text_norm:
        return 3
    return default


def extract_category_names(raw_message: str) -> list[str]:
    """Return category names: quoted segments, else the text after "cho"."""
    quoted = [segment.strip() for segment in _QUOTED_PATTERN.findall(raw_message) if segment.strip()]
    if quoted:
        return quoted

    match = _CHO_PATTERN.search(raw_message)
    if not match:
        return []

    segment = _CATEGORY_NOISE_PATTERN.sub(" ", match.group(1)).strip()
    segment = _CATEGORY_PREFIX_PATTERN.sub("", segment)
    return [name.strip() for name in _CATEGORY_SPLIT_PATTERN.split(segment) if name.strip()]


def extract_wallet_name(raw_message: str) -> str | None:
    """Return the wallet name: first quoted segment, else the text after "ví"."""
    quoted = _QUOTED_PATTERN.search(raw_message)
    if quoted and quoted.group(1).strip():
        return quoted.group(1).strip()

    match = _WALLET_PATTERN.search(raw_message)
    if not match:
        return None

    name = _WALLET_SUFFIX_PATTERN.sub("", match.group(1).strip())
    name = re.sub(r"[?.!]+$", "", name).strip()
    return name or None
