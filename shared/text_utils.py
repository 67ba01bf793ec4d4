"""Text normalization and display formatting shared across layers."""

from __future__ import annotations

import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal

_NON_ALNUM_RUN = re.compile(r"[^0-9a-z]+")
# NFD does not decompose these letters, so they are mapped explicitly.
_EXTRA_FOLDS = str.maketrans({"đ": "d", "Đ": "d", "ø": "o", "ł": "l", "ß": "ss"})


def strip_diacritics(value: str) -> str:
    """Return ``value`` lowercased with combining marks removed."""
    decomposed = unicodedata.normalize("NFD", value.translate(_EXTRA_FOLDS).lower())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalize_name(value: str) -> str:
    """Normalize a free-text name for comparisons.

    Lowercases, strips diacritics, collapses every run of non-alphanumeric
    characters into a single space and trims.
    """
    return _NON_ALNUM_RUN.sub(" ", strip_diacritics(value)).strip()


def normalize_message(value: str) -> str:
    """Normalize a chat message for keyword matching, keeping digits and spacing."""
    return " ".join(strip_diacritics(value).split())


def format_vnd(amount: Decimal | int | float) -> str:
    """Format an amount as whole Vietnamese dong, e.g. ``1.234.567₫``."""
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{abs(int(value)):,}".replace(",", ".") + "₫"
