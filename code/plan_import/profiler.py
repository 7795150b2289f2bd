"""
profiler.py

Column statistics over the sampled rows of a sheet, plus advisory helpers
that suggest the category/value columns and the first data row.

Profiles are hints for the column picker. Classification never depends on
them.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Set

import pandas as pd

from .cells import cell_name, idx_to_col_letter, is_numeric
from .models import ColumnMapping, ColumnProfile


# Rows 1-4 are treated as title/header area; sampling starts at row 5.
HEADER_GUARD_ROWS = 4

HEADER_HINTS = (
    "meses", "month", "categoria", "category", "valor", "value",
    "jan", "atual", "current", "%",
)

FormulaLookup = Callable[[str], str]


def _sample_bound(total_rows: int, max_rows: int) -> int:
    if max_rows <= 0 or max_rows > total_rows:
        return total_rows
    return max_rows


def _rows_analyzed(bound: int) -> int:
    return max(bound - HEADER_GUARD_ROWS, 1)


def build_column_profiles(
    rows: Sequence[Sequence[str]],
    max_rows: int = 0,
    formula_lookup: Optional[FormulaLookup] = None,
) -> List[ColumnProfile]:
    """
    Profile every column up to the widest sampled row.

    Densities are fractions of the rows analyzed after the header guard;
    with nothing after the guard the denominator is 1 and every density is 0.
    """
    bound = _sample_bound(len(rows), max_rows)
    max_cols = max((len(r) for r in rows[:bound]), default=0)

    numeric = [0] * max_cols
    formula = [0] * max_cols
    empty = [0] * max_cols
    text = [0] * max_cols
    uniques: List[Set[str]] = [set() for _ in range(max_cols)]
    text_len_sum = [0] * max_cols
    text_len_n = [0] * max_cols

    for row_idx in range(HEADER_GUARD_ROWS + 1, bound + 1):
        row = rows[row_idx - 1]
        for col_idx in range(max_cols):
            value = str(row[col_idx]).strip() if col_idx < len(row) else ""

            if value == "":
                empty[col_idx] += 1
            else:
                uniques[col_idx].add(value)
                text_len_sum[col_idx] += len(value)
                text_len_n[col_idx] += 1
                if is_numeric(value):
                    numeric[col_idx] += 1
                else:
                    text[col_idx] += 1

            if formula_lookup is not None and formula_lookup(cell_name(col_idx + 1, row_idx)):
                formula[col_idx] += 1

    denom = float(_rows_analyzed(bound))

    profiles = []
    for i in range(max_cols):
        profiles.append(ColumnProfile(
            index=i + 1,
            letter=idx_to_col_letter(i + 1),
            numeric_density=numeric[i] / denom,
            formula_density=formula[i] / denom,
            empty_density=empty[i] / denom,
            text_density=text[i] / denom,
            unique_ratio=len(uniques[i]) / denom,
            avg_text_length=(text_len_sum[i] / text_len_n[i]) if text_len_n[i] else 0.0,
        ))
    return profiles


def profiles_to_frame(profiles: Sequence[ColumnProfile]) -> pd.DataFrame:
    cols = [
        "Column_Index", "Column_Letter", "Numeric_Density", "Formula_Density",
        "Empty_Density", "Text_Density", "Unique_Ratio", "Avg_Text_Length",
    ]
    if not profiles:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame(
        [
            {
                "Column_Index": p.index,
                "Column_Letter": p.letter,
                "Numeric_Density": round(p.numeric_density, 4),
                "Formula_Density": round(p.formula_density, 4),
                "Empty_Density": round(p.empty_density, 4),
                "Text_Density": round(p.text_density, 4),
                "Unique_Ratio": round(p.unique_ratio, 4),
                "Avg_Text_Length": round(p.avg_text_length, 2),
            }
            for p in profiles
        ],
        columns=cols,
    )


# ======================================================
# MAPPING SUGGESTIONS (advisory)
# ======================================================

def detect_header_row(rows: Sequence[Sequence[str]]) -> int:
    """
    First data row after a header line: the first of the top ten rows with
    at least two header-like labels. Defaults to 1.
    """
    for row_idx, row in enumerate(rows[:10], start=1):
        hints = 0
        for cell in row:
            low = str(cell).strip().lower()
            if low and any(h in low for h in HEADER_HINTS):
                hints += 1
        if hints >= 2:
            return row_idx + 1
    return 1


def suggest_column_mapping(
    rows: Sequence[Sequence[str]],
    max_rows: int = 0,
    formula_lookup: Optional[FormulaLookup] = None,
    profiles: Optional[Sequence[ColumnProfile]] = None,
) -> ColumnMapping:
    """
    Text-heaviest column -> categories; numeric/formula-heaviest other
    column -> values (formula cells count double).
    """
    if profiles is None:
        profiles = build_column_profiles(rows, max_rows, formula_lookup)
    analyzed = _rows_analyzed(_sample_bound(len(rows), max_rows))

    text_counts: Dict[int, float] = {p.index: p.text_density * analyzed for p in profiles}
    best_text_col, best_text = 0, 0.0
    for col, count in text_counts.items():
        if count > best_text:
            best_text_col, best_text = col, count

    best_num_col, best_num = 0, 0.0
    for p in profiles:
        if p.index == best_text_col:
            continue
        score = (p.numeric_density + 2 * p.formula_density) * analyzed
        if score > best_num:
            best_num_col, best_num = p.index, score

    confidence = 0.5
    if best_text > 5 and best_num > 5:
        confidence = 0.8
    if best_text_col == 1 and best_num > 10:
        confidence = 0.9

    category_column = idx_to_col_letter(best_text_col)
    value_column = idx_to_col_letter(best_num_col)
    if category_column and value_column and category_column != value_column:
        confidence = min(confidence + 0.05, 1.0)

    # Common layout fallback
    if not category_column:
        category_column = "A"
        confidence = 0.3
    if not value_column:
        value_column = "C"
        confidence = 0.3

    return ColumnMapping(
        category_column=category_column,
        value_column=value_column,
        start_row=detect_header_row(rows),
        confidence=round(confidence, 4),
    )
