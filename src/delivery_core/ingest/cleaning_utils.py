"""Shared utilities for cleaning delivery platform exports.

This module provides the primitives every platform row builder relies on:

- Text: strip byte-order marks and invisible characters
- Column naming: tolerant lookup across historical header spellings
- Numbers: permissive money/percent/ROAS parsing that never raises
- Dates: ISO normalization of the many date layouts the platforms emit

Examples:
    >>> from delivery_core.ingest.cleaning_utils import to_money, get_column_value
    >>> to_money("$1,234.50")
    1234.5
    >>> to_money("n/a")
    0.0
    >>> get_column_value({"Sales (excl. tax)": "10"}, "sales_excl_tax")
    '10'
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

BOM = "\ufeff"
NBSP = "\u00a0"  # Non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

# Everything except digits, sign, decimal point and parentheses
_MONEY_JUNK_RE = re.compile(r"[^\d.\-()]")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?|-?\.\d+")
_COLUMN_JUNK_RE = re.compile(r"[^a-z0-9]")


def strip_bom(text: str) -> str:
    """Remove a leading UTF-8 byte-order mark."""
    return text[1:] if text.startswith(BOM) else text


def strip_invisibles(x: Any) -> str:
    """Remove invisible characters and collapse whitespace.

    Returns an empty string for None/NaN.

    Examples:
        >>> strip_invisibles("  Store  12  ")
        'Store 12'
    """
    if x is None or (isinstance(x, float) and pd.isna(x)):
        return ""
    s = str(x).replace("\r", "").replace("\t", " ").replace(NBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)
    return re.sub(r"\s+", " ", s).strip()


def normalize_col_name(name: str) -> str:
    """Normalize a header for tolerant comparison.

    Lower-cases and drops whitespace, punctuation and parentheses, so that
    "Sales (excl. tax)", "Sales_excl_tax" and "sales excl tax" compare equal.
    """
    return _COLUMN_JUNK_RE.sub("", strip_bom(str(name)).lower())


def get_column_value(row: Mapping[str, Any], *names: str) -> str:
    """Look up a value by any of its accepted header spellings.

    Exact keys are tried first, in order. Then each spelling is normalized
    with :func:`normalize_col_name` and compared against every column of the
    row. The first hit wins.

    Args:
        row: Mapping of header to raw cell value.
        *names: Acceptable header spellings, most current first.

    Returns:
        The stripped cell value, or "" when no column matches.
    """
    for name in names:
        if name in row:
            return strip_invisibles(row[name])

    normalized = {}
    for key in row:
        normalized.setdefault(normalize_col_name(key), key)
    for name in names:
        key = normalized.get(normalize_col_name(name))
        if key is not None:
            return strip_invisibles(row[key])
    return ""


def to_money(x: Any) -> float:
    """Parse a money or plain number cell permissively.

    Strips ``$``, thousands commas, ``%`` and a trailing ``x``; a value in
    parentheses is negative. Anything unparsable resolves to 0.0, because a
    malformed cell must not block an otherwise valid order record.

    Examples:
        >>> to_money("$1,234.56")
        1234.56
        >>> to_money("(12.00)")
        -12.0
        >>> to_money("3.5x")
        3.5
        >>> to_money("")
        0.0
    """
    if x is None:
        return 0.0
    if isinstance(x, (int, float, np.number)) and not isinstance(x, bool):
        value = float(x)
        return value if np.isfinite(value) else 0.0

    s = strip_invisibles(x).replace("\u2212", "-")
    if not s:
        return 0.0
    s = re.sub(r"[xX]$", "", s)
    s = _MONEY_JUNK_RE.sub("", s)

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative, s = True, s[1:-1]
    s = s.replace("(", "").replace(")", "")

    match = _NUMBER_RE.search(s)
    if match is None:
        logger.debug("Unparsable numeric cell %r, defaulting to 0", x)
        return 0.0
    value = float(match.group(0))
    if not np.isfinite(value):
        return 0.0
    return -value if negative else value


def to_percent(x: Any) -> float:
    """Parse a percentage cell into a fraction ("12.5%" -> 0.125)."""
    if isinstance(x, (int, float, np.number)) and not isinstance(x, bool):
        return to_money(x)
    return to_money(x) / 100.0


def to_date(x: Any) -> str:
    """Normalize a date or timestamp cell to YYYY-MM-DD.

    Accepts ISO dates and timestamps, US month/day/year and the other
    layouts pandas can infer. Returns "" when the cell cannot be parsed.

    Examples:
        >>> to_date("10/6/2025")
        '2025-10-06'
        >>> to_date("2025-10-06 18:42:11")
        '2025-10-06'
        >>> to_date("soon")
        ''
    """
    s = strip_invisibles(x)
    if not s:
        return ""
    try:
        ts = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        ts = pd.NaT
    if pd.isna(ts):
        logger.debug("Unparsable date cell %r", x)
        return ""
    return ts.date().isoformat()


def clean_store_number(x: Any) -> str:
    """Strip spreadsheet quoting from a store number.

    Examples:
        >>> clean_store_number('="0012"')
        '0012'
        >>> clean_store_number("'45")
        '45'
    """
    s = strip_invisibles(x)
    s = s.lstrip("=")
    return s.strip("\"' ").strip()
