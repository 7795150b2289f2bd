"""
corrections.py

User tag corrections: persistence and the learning loop.

Stores (one row per (user, term, model_type); saving again overwrites):
- InMemoryCorrectionStore: process-local, used by tests and one-off runs
- ExcelCorrectionStore: corrections.xlsx, sheet "corrections", same
  spirit as overrides.xlsx for transaction classification

CorrectionLearner ties a store to a TagPredictor. Ordering on save is
persist first, then memoize: if the store write fails the live predictor
is left untouched, so memory never holds a correction the store lost.
"""

from __future__ import annotations

import datetime as dt
import threading
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from .models import MODEL_TYPE_EXCEL_IMPORT, ItemTag, TagCorrection
from .predictor import LearnedMemory, TagPredictor, normalize_term


# Corrections stored under this user id feed the process-wide global layer.
GLOBAL_USER = "*"

CORRECTIONS_SHEET = "corrections"
CORRECTION_COLUMNS = [
    "User_ID",
    "Term",
    "Predicted_Tag",
    "Corrected_Tag",
    "Model_Type",
    "Source_File",
    "Created_At",
    "Updated_At",
]


class HydrationError(Exception):
    """Raised when stored corrections cannot be loaded at all."""
    pass


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0)


def _parse_corrected_tag(raw: object) -> ItemTag:
    """A correction must name a real tag; blank or UNKNOWN is rejected."""
    tag = ItemTag.parse(raw)
    if tag is ItemTag.UNKNOWN:
        raise ValueError(f"Corrected tag must be one of B, R, S, IN, D, got {raw!r}")
    return tag


# ======================================================
# STORES
# ======================================================

class InMemoryCorrectionStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[Tuple[str, str, str], TagCorrection] = {}

    def save_correction(
        self,
        user_id: str,
        term: str,
        predicted_tag: str,
        corrected_tag: str,
        model_type: str = MODEL_TYPE_EXCEL_IMPORT,
        source_file: Optional[str] = None,
    ) -> TagCorrection:
        key = (str(user_id), term, model_type)
        now = _now()
        with self._lock:
            existing = self._rows.get(key)
            row = TagCorrection(
                user_id=str(user_id),
                term=term,
                predicted_tag=predicted_tag,
                corrected_tag=corrected_tag,
                model_type=model_type,
                source_file=source_file,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            # Re-insert so dict order tracks recency.
            self._rows.pop(key, None)
            self._rows[key] = row
        return row

    def get_user_corrections(self, user_id: str) -> List[TagCorrection]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.user_id == str(user_id)]
        return list(reversed(rows))

    def get_corrections_by_model_type(self, user_id: str, model_type: str) -> List[TagCorrection]:
        return [r for r in self.get_user_corrections(user_id) if r.model_type == model_type]

    def delete_correction(self, user_id: str, term: str, model_type: str = MODEL_TYPE_EXCEL_IMPORT) -> bool:
        with self._lock:
            return self._rows.pop((str(user_id), term, model_type), None) is not None

    def most_corrected_terms(self, limit: int = 10) -> List[Tuple[str, int]]:
        with self._lock:
            counts = Counter(r.term for r in self._rows.values())
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]


class ExcelCorrectionStore:
    """
    corrections.xlsx-backed store. Every call re-reads the workbook so edits
    made by hand between runs are picked up; writes rewrite the sheet.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    # -------------------------
    # IO
    # -------------------------

    def _load(self) -> pd.DataFrame:
        if not self.path.exists():
            # Non-fatal: no corrections recorded yet
            return pd.DataFrame(columns=CORRECTION_COLUMNS)

        df = pd.read_excel(self.path, sheet_name=CORRECTIONS_SHEET, dtype=str, keep_default_na=False)
        for c in CORRECTION_COLUMNS:
            if c not in df.columns:
                df[c] = ""
        return df[CORRECTION_COLUMNS].copy()

    def _write(self, df: pd.DataFrame) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(self.path, engine="openpyxl") as writer:
            df[CORRECTION_COLUMNS].to_excel(writer, sheet_name=CORRECTIONS_SHEET, index=False)

    @staticmethod
    def _parse_ts(x: object) -> Optional[dt.datetime]:
        s = str(x).strip() if x is not None else ""
        if s == "":
            return None
        ts = pd.to_datetime(s, errors="coerce", utc=True)
        if pd.isna(ts):
            return None
        return ts.to_pydatetime()

    def _to_record(self, r: pd.Series) -> TagCorrection:
        source = str(r["Source_File"]).strip()
        return TagCorrection(
            user_id=str(r["User_ID"]).strip(),
            term=str(r["Term"]),
            predicted_tag=str(r["Predicted_Tag"]),
            corrected_tag=str(r["Corrected_Tag"]),
            model_type=str(r["Model_Type"]).strip() or MODEL_TYPE_EXCEL_IMPORT,
            source_file=source or None,
            created_at=self._parse_ts(r["Created_At"]),
            updated_at=self._parse_ts(r["Updated_At"]),
        )

    @staticmethod
    def _key_mask(df: pd.DataFrame, user_id: str, term: str, model_type: str) -> pd.Series:
        # Terms typed by hand are matched the way the learner stores them.
        model = df["Model_Type"].astype(str).str.strip().replace("", MODEL_TYPE_EXCEL_IMPORT)
        return (
            (df["User_ID"].astype(str).str.strip() == str(user_id))
            & (df["Term"].map(normalize_term) == normalize_term(term))
            & (model == model_type)
        )

    # -------------------------
    # Store API
    # -------------------------

    def save_correction(
        self,
        user_id: str,
        term: str,
        predicted_tag: str,
        corrected_tag: str,
        model_type: str = MODEL_TYPE_EXCEL_IMPORT,
        source_file: Optional[str] = None,
    ) -> TagCorrection:
        now = _now().isoformat()
        with self._lock:
            df = self._load()
            mask = self._key_mask(df, user_id, term, model_type)
            created = now
            if mask.any():
                created = str(df.loc[mask, "Created_At"].iloc[0]).strip() or now
                df = df[~mask]
            row = {
                "User_ID": str(user_id),
                "Term": term,
                "Predicted_Tag": predicted_tag,
                "Corrected_Tag": corrected_tag,
                "Model_Type": model_type,
                "Source_File": source_file or "",
                "Created_At": created,
                "Updated_At": now,
            }
            new_row = pd.DataFrame([row], columns=CORRECTION_COLUMNS)
            df = new_row if df.empty else pd.concat([df, new_row], ignore_index=True)
            self._write(df)
        return self._to_record(pd.Series(row))

    def get_user_corrections(self, user_id: str) -> List[TagCorrection]:
        with self._lock:
            df = self._load()
        df = df[df["User_ID"].astype(str).str.strip() == str(user_id)].copy()
        if df.empty:
            return []
        # Newest first; rows appended later win ties.
        df["_order"] = range(len(df))
        df["_ts"] = pd.to_datetime(df["Updated_At"], errors="coerce", utc=True)
        df = df.sort_values(["_ts", "_order"], ascending=[False, False], na_position="last")
        return [self._to_record(r) for _, r in df.iterrows()]

    def get_corrections_by_model_type(self, user_id: str, model_type: str) -> List[TagCorrection]:
        return [r for r in self.get_user_corrections(user_id) if r.model_type == model_type]

    def delete_correction(self, user_id: str, term: str, model_type: str = MODEL_TYPE_EXCEL_IMPORT) -> bool:
        with self._lock:
            df = self._load()
            mask = self._key_mask(df, user_id, term, model_type)
            if not mask.any():
                return False
            self._write(df[~mask])
        return True

    def most_corrected_terms(self, limit: int = 10) -> List[Tuple[str, int]]:
        with self._lock:
            df = self._load()
        if df.empty:
            return []
        df = df.assign(Term=df["Term"].map(normalize_term))
        df = df[df["Term"] != ""]
        counts = df.groupby("Term").size().reset_index(name="Count")
        counts = counts.sort_values(["Count", "Term"], ascending=[False, True]).head(limit)
        return [(str(r["Term"]), int(r["Count"])) for _, r in counts.iterrows()]


# ======================================================
# LEARNER
# ======================================================

@dataclass
class HydrationReport:
    user_id: str
    loaded: int = 0
    skipped: int = 0
    messages: List[str] = field(default_factory=list)


class CorrectionLearner:
    """
    Per-user overlays are created on first use and kept until release()
    (StructuralAnalyzer.close() calls it). Long-lived callers own that.
    """

    def __init__(self, predictor: TagPredictor, store, model_type: str = MODEL_TYPE_EXCEL_IMPORT):
        self.predictor = predictor
        self.store = store
        self.model_type = model_type
        self._lock = threading.Lock()
        self._overlays: Dict[str, LearnedMemory] = {}

    def overlay_for(self, user_id: str) -> LearnedMemory:
        """The user's session overlay. The global user maps to the shared layer."""
        user_id = str(user_id)
        if user_id == GLOBAL_USER:
            return self.predictor.global_memory
        with self._lock:
            overlay = self._overlays.get(user_id)
            if overlay is None:
                overlay = LearnedMemory()
                self._overlays[user_id] = overlay
            return overlay

    def release(self, user_id: str) -> None:
        with self._lock:
            self._overlays.pop(str(user_id), None)

    def save_correction(
        self,
        user_id: str,
        term: str,
        predicted_tag: object,
        corrected_tag: object,
        source_file: Optional[str] = None,
    ) -> TagCorrection:
        key = normalize_term(term)
        if not key:
            raise ValueError("Correction term is empty")
        corrected = _parse_corrected_tag(corrected_tag)
        try:
            predicted = ItemTag.parse(predicted_tag)
        except ValueError:
            predicted = ItemTag.UNKNOWN

        row = self.store.save_correction(
            str(user_id),
            key,
            predicted.value,
            corrected.value,
            self.model_type,
            source_file,
        )
        self.overlay_for(user_id).learn(key, corrected)
        return row

    def delete_correction(self, user_id: str, term: str) -> bool:
        key = normalize_term(term)
        removed = self.store.delete_correction(str(user_id), key, self.model_type)
        self.overlay_for(user_id).forget(key)
        return removed

    def hydrate_for_user(self, user_id: str) -> HydrationReport:
        """
        Replay every stored correction for user_id into its overlay in one
        batch. Corrupt rows are skipped; a store failure raises
        HydrationError and leaves every layer as it was.
        """
        user_id = str(user_id)
        report = HydrationReport(user_id=user_id)
        try:
            rows = self.store.get_corrections_by_model_type(user_id, self.model_type)
        except Exception as exc:
            raise HydrationError(f"Could not load corrections for user {user_id}: {exc}") from exc

        pairs = []
        # Stored newest first; replay oldest first so the newest wins.
        for row in reversed(rows):
            term = normalize_term(row.term)
            if not term:
                report.skipped += 1
                report.messages.append("Skipped correction with empty term")
                continue
            try:
                tag = _parse_corrected_tag(row.corrected_tag)
            except ValueError as exc:
                report.skipped += 1
                report.messages.append(f"Skipped correction for {term!r}: {exc}")
                continue
            pairs.append((term, tag))

        if pairs:
            self.overlay_for(user_id).learn_batch(pairs)
        report.loaded = len(pairs)
        return report

    def hydrate_global(self) -> HydrationReport:
        return self.hydrate_for_user(GLOBAL_USER)
