#!/usr/bin/env python3
"""
test_corrections.py

Unit tests for correction stores and the learning loop.

Tests:
- Save then predict (round trip through the learner)
- Upsert semantics per (user, term, model type)
- Hydration: newest wins, corrupt rows skipped, store outage
- Excel-backed store file I/O
"""

import unittest
import tempfile
import shutil
from pathlib import Path
import pandas as pd
import sys

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from plan_import.corrections import (
    CORRECTION_COLUMNS,
    CORRECTIONS_SHEET,
    GLOBAL_USER,
    CorrectionLearner,
    ExcelCorrectionStore,
    HydrationError,
    InMemoryCorrectionStore,
)
from plan_import.models import ItemTag
from plan_import.predictor import TagPredictor


class _BrokenStore(InMemoryCorrectionStore):
    """Store whose reads and writes fail, like a database outage."""

    def save_correction(self, *args, **kwargs):
        raise OSError("store unavailable")

    def get_user_corrections(self, user_id):
        raise OSError("store unavailable")


class TestCorrectionLearner(unittest.TestCase):

    def setUp(self):
        self.predictor = TagPredictor()
        self.store = InMemoryCorrectionStore()
        self.learner = CorrectionLearner(self.predictor, self.store)

    def test_round_trip(self):
        self.learner.save_correction("42", "netflix", "Unknown", "Recurring")
        p = self.predictor.predict("netflix", self.learner.overlay_for("42"))
        self.assertEqual(p.tag, ItemTag.RECURRING)
        self.assertEqual(p.confidence, 0.98)

        rows = self.store.get_user_corrections("42")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].predicted_tag, "")
        self.assertEqual(rows[0].corrected_tag, "R")
        self.assertEqual(rows[0].model_type, "excel_import")

    def test_term_is_normalized(self):
        self.learner.save_correction("42", "  Amazon   PRIME ", "R", "B")
        self.assertEqual(self.store.get_user_corrections("42")[0].term, "amazon prime")

    def test_invalid_inputs(self):
        with self.assertRaises(ValueError):
            self.learner.save_correction("42", "   ", "R", "B")
        with self.assertRaises(ValueError):
            self.learner.save_correction("42", "rent", "R", "not-a-tag")
        for blank in ["", "   ", "Unknown", None]:
            with self.assertRaises(ValueError):
                self.learner.save_correction("42", "rent", "R", blank)
        self.assertEqual(self.store.get_user_corrections("42"), [])

    def test_unknown_predicted_tag_is_stored_as_unknown(self):
        row = self.learner.save_correction("42", "rent", "???", "R")
        self.assertEqual(row.predicted_tag, "")

    def test_upsert_keeps_one_row(self):
        first = self.learner.save_correction("42", "gym", "R", "B")
        second = self.learner.save_correction("42", "Gym", "R", "S")
        rows = self.store.get_user_corrections("42")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].corrected_tag, "S")
        self.assertEqual(second.created_at, first.created_at)
        self.assertEqual(self.learner.overlay_for("42").get("gym"), ItemTag.SAVINGS)

    def test_global_user_writes_global_layer(self):
        self.learner.save_correction(GLOBAL_USER, "rent", "R", "D")
        self.assertEqual(self.predictor.predict("rent").source, "global")

    def test_failed_save_leaves_memory_untouched(self):
        learner = CorrectionLearner(self.predictor, _BrokenStore())
        with self.assertRaises(OSError):
            learner.save_correction("42", "netflix", "R", "B")
        self.assertNotIn("netflix", learner.overlay_for("42"))

    def test_delete_correction(self):
        self.learner.save_correction("42", "gym", "R", "B")
        self.assertTrue(self.learner.delete_correction("42", "GYM"))
        self.assertFalse(self.learner.delete_correction("42", "gym"))
        self.assertEqual(self.store.get_user_corrections("42"), [])
        self.assertEqual(self.predictor.predict("gym", self.learner.overlay_for("42")).source, "baseline")

    def test_release_drops_overlay(self):
        self.learner.save_correction("42", "gym", "R", "B")
        self.learner.release("42")
        self.assertEqual(len(self.learner.overlay_for("42")), 0)


class TestHydration(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryCorrectionStore()

    def test_fresh_learner_replays_store(self):
        CorrectionLearner(TagPredictor(), self.store).save_correction("42", "netflix", "R", "B")

        predictor = TagPredictor()
        learner = CorrectionLearner(predictor, self.store)
        report = learner.hydrate_for_user("42")
        self.assertEqual(report.loaded, 1)
        self.assertEqual(report.skipped, 0)
        self.assertEqual(predictor.predict_tag("netflix", learner.overlay_for("42")), ItemTag.BUDGET)

    def test_corrupt_rows_are_skipped(self):
        self.store.save_correction("42", "rent", "R", "D")
        self.store.save_correction("42", "gym", "R", "ZZZ")
        self.store.save_correction("42", "", "R", "B")
        self.store.save_correction("42", "water", "R", "")
        self.store.save_correction("42", "coffee", "B", "   ")

        learner = CorrectionLearner(TagPredictor(), self.store)
        report = learner.hydrate_for_user("42")
        self.assertEqual(report.loaded, 1)
        self.assertEqual(report.skipped, 4)
        self.assertEqual(len(report.messages), 4)
        self.assertEqual(learner.overlay_for("42").snapshot(), {"rent": ItemTag.DEBT})
        self.assertEqual(learner.predictor.predict("water", learner.overlay_for("42")).source, "baseline")

    def test_other_model_types_are_ignored(self):
        self.store.save_correction("42", "rent", "R", "D", model_type="categorizer")
        learner = CorrectionLearner(TagPredictor(), self.store)
        self.assertEqual(learner.hydrate_for_user("42").loaded, 0)

    def test_hydrate_global(self):
        self.store.save_correction(GLOBAL_USER, "salary", "IN", "S")
        predictor = TagPredictor()
        report = CorrectionLearner(predictor, self.store).hydrate_global()
        self.assertEqual(report.loaded, 1)
        self.assertEqual(predictor.predict("salary").tag, ItemTag.SAVINGS)

    def test_store_outage_raises_and_keeps_layers(self):
        predictor = TagPredictor()
        predictor.learn("rent", ItemTag.DEBT)
        learner = CorrectionLearner(predictor, _BrokenStore())
        learner.overlay_for("42").learn("gym", ItemTag.BUDGET)

        with self.assertRaises(HydrationError):
            learner.hydrate_for_user("42")
        with self.assertRaises(HydrationError):
            learner.hydrate_global()

        self.assertEqual(predictor.global_memory.snapshot(), {"rent": ItemTag.DEBT})
        self.assertEqual(learner.overlay_for("42").snapshot(), {"gym": ItemTag.BUDGET})


class TestInMemoryStore(unittest.TestCase):

    def test_most_corrected_terms(self):
        store = InMemoryCorrectionStore()
        store.save_correction("1", "rent", "R", "D")
        store.save_correction("2", "rent", "R", "B")
        store.save_correction("1", "gym", "R", "B")
        self.assertEqual(store.most_corrected_terms(), [("rent", 2), ("gym", 1)])
        self.assertEqual(store.most_corrected_terms(1), [("rent", 2)])

    def test_newest_first(self):
        store = InMemoryCorrectionStore()
        store.save_correction("1", "rent", "R", "D")
        store.save_correction("1", "gym", "R", "B")
        store.save_correction("1", "rent", "R", "S")
        self.assertEqual([r.term for r in store.get_user_corrections("1")], ["rent", "gym"])


class TestExcelCorrectionStore(unittest.TestCase):

    def setUp(self):
        """Create temporary directory for test files."""
        self.test_dir = tempfile.mkdtemp()
        self.path = Path(self.test_dir) / "corrections.xlsx"

    def tearDown(self):
        """Clean up temporary directory."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_missing_file_is_empty(self):
        store = ExcelCorrectionStore(self.path)
        self.assertEqual(store.get_user_corrections("42"), [])
        self.assertEqual(store.most_corrected_terms(), [])
        self.assertFalse(store.delete_correction("42", "rent"))

    def test_save_and_reload(self):
        store = ExcelCorrectionStore(self.path)
        store.save_correction("42", "rent", "R", "D", source_file="budget.xlsx")
        store.save_correction("42", "gym", "R", "B")
        store.save_correction("7", "rent", "R", "B")

        self.assertTrue(self.path.exists())
        df = pd.read_excel(self.path, sheet_name=CORRECTIONS_SHEET, dtype=str)
        self.assertEqual(list(df.columns), CORRECTION_COLUMNS)
        self.assertEqual(len(df), 3)

        rows = ExcelCorrectionStore(self.path).get_user_corrections("42")
        self.assertEqual({r.term for r in rows}, {"rent", "gym"})
        rent = [r for r in rows if r.term == "rent"][0]
        self.assertEqual(rent.corrected_tag, "D")
        self.assertEqual(rent.source_file, "budget.xlsx")
        self.assertIsNotNone(rent.created_at)

        self.assertEqual(store.most_corrected_terms(), [("rent", 2), ("gym", 1)])

    def test_upsert_and_delete(self):
        store = ExcelCorrectionStore(self.path)
        store.save_correction("42", "rent", "R", "D")
        store.save_correction("42", "rent", "R", "S")
        rows = store.get_user_corrections("42")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].corrected_tag, "S")

        self.assertTrue(store.delete_correction("42", "rent"))
        self.assertEqual(store.get_user_corrections("42"), [])

    def test_learner_over_excel_store(self):
        store = ExcelCorrectionStore(self.path)
        CorrectionLearner(TagPredictor(), store).save_correction("42", "Netflix", "R", "Budget")

        predictor = TagPredictor()
        learner = CorrectionLearner(predictor, ExcelCorrectionStore(self.path))
        learner.hydrate_for_user("42")
        self.assertEqual(predictor.predict_tag("netflix", learner.overlay_for("42")), ItemTag.BUDGET)

    def _write_hand_edited(self, rows):
        df = pd.DataFrame(rows, columns=["User_ID", "Term", "Corrected_Tag"])
        with pd.ExcelWriter(self.path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=CORRECTIONS_SHEET, index=False)

    def test_hand_typed_terms_match_normalized_key(self):
        self._write_hand_edited([["42", "Netflix", "R"], ["42", "  Amazon  Prime", "B"]])
        learner = CorrectionLearner(TagPredictor(), ExcelCorrectionStore(self.path))

        learner.save_correction("42", "Netflix", "R", "B")
        rows = ExcelCorrectionStore(self.path).get_user_corrections("42")
        self.assertEqual(len(rows), 2)
        netflix = [r for r in rows if r.term == "netflix"]
        self.assertEqual(len(netflix), 1)
        self.assertEqual(netflix[0].corrected_tag, "B")

        self.assertTrue(learner.delete_correction("42", "amazon prime"))
        self.assertEqual([r.term for r in ExcelCorrectionStore(self.path).get_user_corrections("42")], ["netflix"])

        fresh = CorrectionLearner(TagPredictor(), ExcelCorrectionStore(self.path))
        fresh.hydrate_for_user("42")
        self.assertEqual(fresh.overlay_for("42").snapshot(), {"netflix": ItemTag.BUDGET})

    def test_hand_typed_delete_stays_deleted(self):
        self._write_hand_edited([["42", "Netflix", "R"]])
        learner = CorrectionLearner(TagPredictor(), ExcelCorrectionStore(self.path))
        self.assertTrue(learner.delete_correction("42", "Netflix"))

        fresh = CorrectionLearner(TagPredictor(), ExcelCorrectionStore(self.path))
        self.assertEqual(fresh.hydrate_for_user("42").loaded, 0)
        self.assertEqual(ExcelCorrectionStore(self.path).most_corrected_terms(), [])

    def test_unreadable_file_raises_hydration_error(self):
        self.path.write_text("not a workbook", encoding="utf-8")
        learner = CorrectionLearner(TagPredictor(), ExcelCorrectionStore(self.path))
        with self.assertRaises(HydrationError):
            learner.hydrate_for_user("42")


if __name__ == "__main__":
    unittest.main()
