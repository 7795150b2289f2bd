#!/usr/bin/env python3
"""
test_predictor.py

Unit tests for the layered tag predictor.

Tests:
- Baseline vocabulary scoring
- Layer precedence (user > global > baseline)
- Learning is idempotent; batches publish atomically
- User overlays are isolated from each other
"""

import unittest
import threading
from pathlib import Path
import sys

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from plan_import.models import ItemTag
from plan_import.predictor import (
    GLOBAL_LAYER_CONFIDENCE,
    USER_LAYER_CONFIDENCE,
    LearnedMemory,
    TagPredictor,
    normalize_term,
)


class TestBaseline(unittest.TestCase):

    def setUp(self):
        self.predictor = TagPredictor()

    def test_exact_keyword(self):
        p = self.predictor.predict("Netflix")
        self.assertEqual(p.tag, ItemTag.RECURRING)
        self.assertEqual(p.source, "baseline")
        self.assertGreaterEqual(p.confidence, 0.9)

    def test_keyword_inside_label(self):
        p = self.predictor.predict("Weekly groceries")
        self.assertEqual(p.tag, ItemTag.BUDGET)
        self.assertLess(p.confidence, self.predictor.predict("Groceries").confidence)

    def test_no_match_is_low_confidence(self):
        p = self.predictor.predict("Xyzzy quux")
        self.assertEqual(p.tag, ItemTag.UNKNOWN)
        self.assertLessEqual(p.confidence, 0.5)
        self.assertEqual(p.source, "none")

    def test_empty_term(self):
        self.assertEqual(self.predictor.predict("   ").tag, ItemTag.UNKNOWN)
        self.assertEqual(self.predictor.predict(None).tag, ItemTag.UNKNOWN)

    def test_keyword_needs_word_boundary(self):
        # "rent" must not match inside "parenting"
        baseline = {ItemTag.RECURRING: ["rent"]}
        predictor = TagPredictor(baseline=baseline)
        self.assertEqual(predictor.predict("Parenting").tag, ItemTag.UNKNOWN)
        self.assertEqual(predictor.predict("Rent flat").tag, ItemTag.RECURRING)

    def test_tie_goes_to_declaration_order(self):
        baseline = {ItemTag.SAVINGS: ["fund"], ItemTag.DEBT: ["card"]}
        predictor = TagPredictor(baseline=baseline)
        self.assertEqual(predictor.predict("card fund").tag, ItemTag.SAVINGS)

    def test_custom_baseline_confidence(self):
        baseline = {ItemTag.INCOME: ["salary"], ItemTag.BUDGET: ["food"]}
        predictor = TagPredictor(baseline=baseline)
        # exact match: score 3, relative 1.0, absolute 0.95
        self.assertAlmostEqual(predictor.predict("salary").confidence, 0.975)
        # contained only: score 1, relative 1.0, absolute 0.70
        self.assertAlmostEqual(predictor.predict("my salary").confidence, 0.85)
        # split between two tags: relative 0.5
        self.assertAlmostEqual(predictor.predict("salary food").confidence, 0.60)


class TestLayers(unittest.TestCase):

    def setUp(self):
        self.predictor = TagPredictor()

    def test_global_layer_beats_baseline(self):
        self.predictor.learn("Netflix", ItemTag.BUDGET)
        p = self.predictor.predict("netflix")
        self.assertEqual(p.tag, ItemTag.BUDGET)
        self.assertEqual(p.confidence, GLOBAL_LAYER_CONFIDENCE)
        self.assertEqual(p.source, "global")

    def test_user_layer_beats_global(self):
        overlay = LearnedMemory()
        self.predictor.learn("Netflix", ItemTag.BUDGET)
        self.predictor.learn("Netflix", ItemTag.SAVINGS, overlay)
        p = self.predictor.predict("NETFLIX", overlay)
        self.assertEqual(p.tag, ItemTag.SAVINGS)
        self.assertEqual(p.confidence, USER_LAYER_CONFIDENCE)
        self.assertEqual(p.source, "user")
        # Without the overlay the global entry applies.
        self.assertEqual(self.predictor.predict_tag("Netflix"), ItemTag.BUDGET)

    def test_overlays_are_isolated(self):
        alice, bob = LearnedMemory(), LearnedMemory()
        self.predictor.learn("Gym", ItemTag.SAVINGS, alice)
        self.assertEqual(self.predictor.predict("gym", alice).tag, ItemTag.SAVINGS)
        self.assertNotEqual(self.predictor.predict("gym", bob).source, "user")
        self.assertNotEqual(self.predictor.predict("gym").source, "global")

    def test_normalize_term(self):
        self.assertEqual(normalize_term("  Amazon   Prime "), "amazon prime")
        self.assertEqual(self.predictor.predict("Amazon  PRIME").tag, ItemTag.RECURRING)


class TestLearnedMemory(unittest.TestCase):

    def test_learn_is_idempotent(self):
        memory = LearnedMemory()
        self.assertTrue(memory.learn("Rent", ItemTag.RECURRING))
        self.assertFalse(memory.learn("rent", ItemTag.RECURRING))
        self.assertEqual(len(memory), 1)
        self.assertEqual(memory.get("rent"), ItemTag.RECURRING)

    def test_learn_accepts_codes(self):
        memory = LearnedMemory()
        memory.learn("Salary", "IN")
        self.assertEqual(memory.get("salary"), ItemTag.INCOME)

    def test_batch_later_pairs_win(self):
        memory = LearnedMemory({"rent": ItemTag.BUDGET})
        changed = memory.learn_batch([
            ("Rent", ItemTag.SAVINGS),
            ("Rent", ItemTag.RECURRING),
            ("Salary", ItemTag.INCOME),
            ("", ItemTag.DEBT),
        ])
        self.assertEqual(changed, 2)
        self.assertEqual(memory.snapshot(), {"rent": ItemTag.RECURRING, "salary": ItemTag.INCOME})

    def test_batch_repeat_changes_nothing(self):
        memory = LearnedMemory()
        pairs = [("a b", ItemTag.DEBT), ("c", ItemTag.BUDGET)]
        self.assertEqual(memory.learn_batch(pairs), 2)
        self.assertEqual(memory.learn_batch(pairs), 0)

    def test_forget(self):
        memory = LearnedMemory({"rent": ItemTag.RECURRING})
        self.assertIn("Rent", memory)
        self.assertTrue(memory.forget("RENT"))
        self.assertFalse(memory.forget("rent"))
        self.assertNotIn("rent", memory)

    def test_snapshot_is_a_copy(self):
        memory = LearnedMemory({"rent": ItemTag.RECURRING})
        snap = memory.snapshot()
        snap["rent"] = ItemTag.DEBT
        self.assertEqual(memory.get("rent"), ItemTag.RECURRING)

    def test_batch_is_all_or_nothing_for_readers(self):
        memory = LearnedMemory()
        terms = [f"term {i}" for i in range(200)]
        seen_sizes = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                seen_sizes.append(len(memory.snapshot()))

        t = threading.Thread(target=reader)
        t.start()
        memory.learn_batch([(term, ItemTag.BUDGET) for term in terms])
        stop.set()
        t.join()
        seen_sizes.append(len(memory.snapshot()))

        self.assertTrue(all(size in (0, 200) for size in seen_sizes))
        self.assertEqual(seen_sizes[-1], 200)


if __name__ == "__main__":
    unittest.main()
