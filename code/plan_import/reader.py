"""
reader.py

Sheet readers. Every reader returns a SheetSnapshot: the complete grid of
displayed cell text plus formula text and style ids keyed by A1 reference.
Analysis only ever works on a snapshot, so no file I/O happens while rows
are being classified.

Readers:
- WorkbookSheetReader: .xlsx/.xlsm via openpyxl (formulas + styles)
- FrameSheetReader: pandas DataFrames or CSV files (text only)
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException


class SheetReadError(Exception):
    """Raised when a sheet or row range cannot be read."""
    pass


@dataclass
class SheetSnapshot:
    name: str
    rows: List[List[str]]
    formulas: Dict[str, str] = field(default_factory=dict)
    styles: Dict[str, int] = field(default_factory=dict)

    def formula_at(self, ref: str) -> str:
        return self.formulas.get(ref, "")

    def style_at(self, ref: str) -> int:
        return self.styles.get(ref, 0)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_frame(cls, name: str, df: pd.DataFrame, include_header: bool = False) -> "SheetSnapshot":
        """
        Build a text-only snapshot from a DataFrame. Column labels become the
        first row when include_header is set (e.g. a frame read with header=0).
        """
        rows: List[List[str]] = []
        if include_header:
            rows.append([_cell_text(c) for c in df.columns])
        for rec in df.itertuples(index=False, name=None):
            rows.append(_trim_row([_cell_text(v) for v in rec]))
        return cls(name=name, rows=rows)


def _cell_text(v: object) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, float):
        if pd.isna(v):
            return ""
        if v.is_integer():
            return str(int(v))
        return repr(v)
    if isinstance(v, (dt.datetime, dt.date)):
        return v.isoformat()
    try:
        if pd.isna(v):
            return ""
    except (TypeError, ValueError):
        pass
    return str(v)


def _trim_row(cells: List[str]) -> List[str]:
    end = len(cells)
    while end > 0 and cells[end - 1] == "":
        end -= 1
    return cells[:end]


# ======================================================
# OPENPYXL WORKBOOK READER
# ======================================================

class WorkbookSheetReader:
    """
    Reads an Excel workbook twice: once for cached values (what the user
    sees) and once for formula text. Style ids come from the formula load.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        if not self.path.exists():
            raise SheetReadError(f"Workbook not found: {self.path}")
        try:
            self._values_wb = load_workbook(self.path, data_only=True)
            self._formula_wb = load_workbook(self.path, data_only=False)
        except (InvalidFileException, OSError, KeyError, ValueError) as exc:
            raise SheetReadError(f"Could not open workbook {self.path}: {exc}") from exc

    def sheet_names(self) -> List[str]:
        return list(self._formula_wb.sheetnames)

    def read_sheet(self, sheet_name: str) -> SheetSnapshot:
        if sheet_name not in self._formula_wb.sheetnames:
            raise SheetReadError(
                f"Sheet {sheet_name!r} not found in {self.path.name} "
                f"(available: {self._formula_wb.sheetnames})"
            )
        values_ws = self._values_wb[sheet_name]
        formula_ws = self._formula_wb[sheet_name]

        rows: List[List[str]] = []
        formulas: Dict[str, str] = {}
        styles: Dict[str, int] = {}

        for f_row, v_row in zip(formula_ws.iter_rows(), values_ws.iter_rows()):
            texts: List[str] = []
            for f_cell, v_cell in zip(f_row, v_row):
                ref = f_cell.coordinate
                formula = _formula_text(f_cell.value)
                if formula:
                    formulas[ref] = formula
                if f_cell.has_style and f_cell.style_id > 0:
                    styles[ref] = f_cell.style_id

                shown = v_cell.value
                if shown is None and not formula:
                    shown = f_cell.value
                texts.append(_cell_text(shown))
            rows.append(_trim_row(texts))

        # Drop trailing blank rows the worksheet dimension drags along.
        while rows and not rows[-1]:
            rows.pop()

        return SheetSnapshot(name=sheet_name, rows=rows, formulas=formulas, styles=styles)


def _formula_text(value: object) -> str:
    if value is None:
        return ""
    # ArrayFormula / DataTableFormula expose the formula on .text
    text = getattr(value, "text", None)
    if isinstance(text, str):
        return text.lstrip("=")
    if isinstance(value, str) and value.startswith("=") and len(value) > 1:
        return value[1:]
    return ""


# ======================================================
# PANDAS FRAME / CSV READER
# ======================================================

class FrameSheetReader:
    """In-memory sheets keyed by name; CSV files load with every cell as text."""

    def __init__(self, frames: Optional[Mapping[str, pd.DataFrame]] = None):
        self._frames: Dict[str, pd.DataFrame] = dict(frames or {})

    @classmethod
    def from_csv(cls, path: Union[str, Path], sheet_name: Optional[str] = None) -> "FrameSheetReader":
        path = Path(path)
        if not path.exists():
            raise SheetReadError(f"CSV not found: {path}")
        try:
            df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, skip_blank_lines=False)
        except pd.errors.EmptyDataError:
            df = pd.DataFrame()
        except (pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
            raise SheetReadError(f"Could not parse CSV {path}: {exc}") from exc
        return cls({sheet_name or path.stem: df})

    def sheet_names(self) -> List[str]:
        return list(self._frames.keys())

    def read_sheet(self, sheet_name: str) -> SheetSnapshot:
        if sheet_name not in self._frames:
            raise SheetReadError(f"Sheet {sheet_name!r} not found (available: {self.sheet_names()})")
        snap = SheetSnapshot.from_frame(sheet_name, self._frames[sheet_name])
        while snap.rows and not snap.rows[-1]:
            snap.rows.pop()
        return snap


def open_reader(path: Union[str, Path]):
    """Pick a reader by file extension."""
    path = Path(path)
    if path.suffix.lower() in (".csv", ".txt"):
        return FrameSheetReader.from_csv(path)
    return WorkbookSheetReader(path)
