"""
cells.py

Cell-level helpers: column letters <-> indices, A1 references, and
tolerant numeric parsing for budget cells ("1.234,56 €", "(45.00)", "$1,200").
"""

from __future__ import annotations

import math
import re


_COLUMN_RE = re.compile(r"^[A-Za-z]{1,3}$")
_US_THOUSANDS_RE = re.compile(r"^-?\d{1,3}(,\d{3})+$")
_CURRENCY_NOISE_RE = re.compile(r"[€$£¥\s %]")


def col_letter_to_idx(col: str) -> int:
    """'A' -> 1, 'AB' -> 28. Raises ValueError for anything that is not a column."""
    col = (col or "").strip()
    if not _COLUMN_RE.match(col):
        raise ValueError(f"Invalid column letter: {col!r}")
    result = 0
    for ch in col.upper():
        result = result * 26 + (ord(ch) - ord("A") + 1)
    return result


def idx_to_col_letter(idx: int) -> str:
    """1 -> 'A', 28 -> 'AB'. Non-positive indices give ''."""
    if idx <= 0:
        return ""
    out = ""
    while idx > 0:
        idx -= 1
        out = chr(ord("A") + idx % 26) + out
        idx //= 26
    return out


def cell_name(col_idx: int, row_idx: int) -> str:
    return f"{idx_to_col_letter(col_idx)}{row_idx}"


def parse_numeric_value(x: object) -> float:
    """
    Parse a displayed cell value into float.
    Returns NaN if it cannot be parsed.

    Handles currency symbols, percent signs, (123.45) negatives and both
    1,234.56 and 1.234,56 grouping styles.
    """
    if x is None:
        return float("nan")
    if isinstance(x, bool):
        return float("nan")
    if isinstance(x, (int, float)):
        return float(x)

    s = _CURRENCY_NOISE_RE.sub("", str(x))
    if s == "":
        return float("nan")

    negative = False
    m = re.fullmatch(r"\((.+)\)", s)
    if m:
        negative = True
        s = m.group(1)
    if s.endswith("-") and s.count("-") == 1:
        negative = True
        s = s[:-1]

    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        # Whichever separator comes last is the decimal mark.
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif has_comma:
        if _US_THOUSANDS_RE.match(s):
            s = s.replace(",", "")
        else:
            s = s.replace(",", ".")
    elif s.count(".") > 1:
        s = s.replace(".", "")

    try:
        v = float(s)
    except ValueError:
        return float("nan")
    if math.isnan(v) or math.isinf(v):
        return float("nan")
    return -v if negative else v


def is_numeric(x: object) -> bool:
    return not math.isnan(parse_numeric_value(x))


def numeric_or_zero(x: object) -> float:
    v = parse_numeric_value(x)
    return 0.0 if math.isnan(v) else v
