"""
analyzer.py

StructuralAnalyzer: the operations the import flow calls.

    analyze_sheet_tree(sheet, category_column, value_column, start_row)
    build_column_profiles(sheet, max_rows)
    suggest_mapping(sheet, max_rows)
    learn_from_correction(term, corrected_tag, ...)

One analyzer serves one user session. The predictor is shared across
sessions; the user's corrections live in that user's overlay only.
Call close() when the session ends so the learner drops that overlay.
"""

from __future__ import annotations

from typing import List, Optional

from .corrections import GLOBAL_USER, CorrectionLearner, InMemoryCorrectionStore
from .models import AnalysisTreeResult, ColumnMapping, ColumnProfile, TagCorrection
from .predictor import LearnedMemory, TagPredictor
from .profiler import build_column_profiles, suggest_column_mapping
from .reader import SheetReadError, SheetSnapshot
from .tree import TreeBuilder


class StructuralAnalyzer:
    def __init__(
        self,
        reader,
        predictor: TagPredictor,
        learner: Optional[CorrectionLearner] = None,
        user_id: Optional[str] = None,
    ):
        self.reader = reader
        self.predictor = predictor
        self.learner = learner if learner is not None else CorrectionLearner(predictor, InMemoryCorrectionStore())
        self.user_id = str(user_id) if user_id is not None else GLOBAL_USER
        self._tree_builder = TreeBuilder(predictor)

    # ------------------------------------------------------
    # Reading
    # ------------------------------------------------------

    def _snapshot(self, sheet_name: str) -> SheetSnapshot:
        try:
            return self.reader.read_sheet(sheet_name)
        except SheetReadError:
            raise
        except (OSError, KeyError, ValueError) as exc:
            raise SheetReadError(f"Could not read sheet {sheet_name!r}: {exc}") from exc

    def _overlay(self) -> Optional[LearnedMemory]:
        if self.user_id == GLOBAL_USER:
            return None
        return self.learner.overlay_for(self.user_id)

    # ------------------------------------------------------
    # Operations
    # ------------------------------------------------------

    def build_column_profiles(self, sheet_name: str, max_rows: int = 0) -> List[ColumnProfile]:
        snap = self._snapshot(sheet_name)
        return build_column_profiles(snap.rows, max_rows, snap.formula_at)

    def suggest_mapping(self, sheet_name: str, max_rows: int = 0) -> ColumnMapping:
        snap = self._snapshot(sheet_name)
        return suggest_column_mapping(snap.rows, max_rows, snap.formula_at)

    def analyze_sheet_tree(
        self,
        sheet_name: str,
        category_column: str,
        value_column: str,
        start_row: int = 1,
    ) -> AnalysisTreeResult:
        snap = self._snapshot(sheet_name)
        return self._tree_builder.build(snap, category_column, value_column, start_row, self._overlay())

    def learn_from_correction(
        self,
        term: str,
        corrected_tag: object,
        predicted_tag: object = None,
        source_file: Optional[str] = None,
    ) -> TagCorrection:
        """
        Persist a correction for this session's user and apply it to the
        live predictor. predicted_tag defaults to what the predictor says now.
        """
        if predicted_tag is None:
            predicted_tag = self.predictor.predict(term, self._overlay()).tag
        return self.learner.save_correction(self.user_id, term, predicted_tag, corrected_tag, source_file)

    def close(self) -> None:
        """End the session: drop this user's overlay from the learner."""
        if self.user_id != GLOBAL_USER:
            self.learner.release(self.user_id)
