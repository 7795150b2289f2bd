"""
features.py

Per-row structural signals consumed by the structural classifier.
"""

from __future__ import annotations

from .cells import parse_numeric_value
from .models import RowFeatures


def leading_spaces(text: str) -> int:
    return len(text) - len(text.lstrip(" "))


def is_upper_text(text: str) -> bool:
    s = text.strip()
    return len(s) > 2 and s == s.upper()


def has_cell_value(value_text: str) -> bool:
    v = (value_text or "").strip()
    return v != "" and v != "0"


def extract_row_features(
    category_text: str,
    value_text: str,
    style_id: int,
    has_formula: bool,
    row_idx: int,
    total_rows: int,
) -> RowFeatures:
    """
    category_text must be the raw cell text: indentation is read from its
    leading spaces.
    """
    category_text = category_text or ""
    value_text = value_text or ""

    magnitude = parse_numeric_value(value_text.strip())
    # NaN compares False, so unparsable values fall through to 0.
    if not magnitude > 0:
        magnitude = 0.0

    return RowFeatures(
        has_value=has_cell_value(value_text),
        is_bold=(style_id or 0) > 0,
        is_uppercase=is_upper_text(category_text),
        indentation=leading_spaces(category_text),
        row_position=(row_idx / total_rows) if total_rows > 0 else 0.0,
        has_formula=bool(has_formula),
        value_magnitude=magnitude,
    )
