"""
predictor.py

Term -> ItemTag prediction over three layers, highest precedence first:

    1. user overlay    (request/session scoped, passed per call)
    2. global overlay  (process-wide learned corrections)
    3. baseline        (built-in keyword vocabulary, read-only)

Learned layers are LearnedMemory instances. Each one publishes an immutable
dict snapshot and replaces it wholesale under its write lock, so a
concurrent lookup sees a batch either fully applied or not at all. Reads
never take the lock.

A TagPredictor is constructed explicitly and handed to whoever needs it;
there is no module-level instance.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .baseline_terms import BASELINE_TERMS
from .models import ItemTag


USER_LAYER_CONFIDENCE = 0.98
GLOBAL_LAYER_CONFIDENCE = 0.95
NO_MATCH_CONFIDENCE = 0.30

SOURCE_USER = "user"
SOURCE_GLOBAL = "global"
SOURCE_BASELINE = "baseline"
SOURCE_NONE = "none"


def normalize_term(term: object) -> str:
    if term is None:
        return ""
    return " ".join(str(term).split()).casefold()


@dataclass(frozen=True)
class TagPrediction:
    tag: ItemTag
    confidence: float
    source: str


class LearnedMemory:
    """Copy-on-write map of normalized term -> ItemTag."""

    def __init__(self, initial: Optional[Mapping[str, ItemTag]] = None):
        self._lock = threading.Lock()
        self._terms: Dict[str, ItemTag] = {}
        if initial:
            self._terms = {normalize_term(k): ItemTag.parse(v) for k, v in initial.items() if normalize_term(k)}

    def get(self, term: str) -> Optional[ItemTag]:
        return self._terms.get(term)

    def snapshot(self) -> Dict[str, ItemTag]:
        return dict(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: object) -> bool:
        return normalize_term(term) in self._terms

    def learn(self, term: object, tag: ItemTag) -> bool:
        """Returns True when the stored mapping changed."""
        key = normalize_term(term)
        if not key:
            return False
        tag = ItemTag.parse(tag)
        with self._lock:
            if self._terms.get(key) is tag:
                return False
            updated = dict(self._terms)
            updated[key] = tag
            self._terms = updated
        return True

    def learn_batch(self, pairs: Iterable[Tuple[object, ItemTag]]) -> int:
        """
        Apply every (term, tag) pair, later pairs winning, and publish once.
        Returns the number of entries whose mapping changed.
        """
        staged: List[Tuple[str, ItemTag]] = []
        for term, tag in pairs:
            key = normalize_term(term)
            if key:
                staged.append((key, ItemTag.parse(tag)))
        if not staged:
            return 0

        with self._lock:
            current = self._terms
            updated = dict(current)
            for key, tag in staged:
                updated[key] = tag
            changed = sum(1 for k, v in updated.items() if current.get(k) is not v)
            if changed:
                self._terms = updated
        return changed

    def forget(self, term: object) -> bool:
        key = normalize_term(term)
        with self._lock:
            if key not in self._terms:
                return False
            updated = dict(self._terms)
            del updated[key]
            self._terms = updated
        return True


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(keyword.casefold()) + r"(?!\w)")


class TagPredictor:
    def __init__(
        self,
        baseline: Optional[Mapping[ItemTag, Iterable[str]]] = None,
        global_memory: Optional[LearnedMemory] = None,
    ):
        baseline = BASELINE_TERMS if baseline is None else baseline
        compiled: List[Tuple[ItemTag, str, re.Pattern]] = []
        for tag, keywords in baseline.items():
            seen = set()
            for kw in keywords:
                k = normalize_term(kw)
                if not k or k in seen:
                    continue
                seen.add(k)
                compiled.append((tag, k, _keyword_pattern(k)))
        self._baseline = tuple(compiled)
        self._tag_order = tuple(baseline.keys())
        self.global_memory = global_memory if global_memory is not None else LearnedMemory()

    # ------------------------------------------------------
    # Prediction
    # ------------------------------------------------------

    def predict(self, term: object, overlay: Optional[LearnedMemory] = None) -> TagPrediction:
        key = normalize_term(term)
        if not key:
            return TagPrediction(ItemTag.UNKNOWN, NO_MATCH_CONFIDENCE, SOURCE_NONE)

        if overlay is not None:
            tag = overlay.get(key)
            if tag is not None:
                return TagPrediction(tag, USER_LAYER_CONFIDENCE, SOURCE_USER)

        tag = self.global_memory.get(key)
        if tag is not None:
            return TagPrediction(tag, GLOBAL_LAYER_CONFIDENCE, SOURCE_GLOBAL)

        return self._predict_baseline(key)

    def predict_tag(self, term: object, overlay: Optional[LearnedMemory] = None) -> ItemTag:
        return self.predict(term, overlay).tag

    def _predict_baseline(self, key: str) -> TagPrediction:
        scores: Dict[ItemTag, float] = {}
        for tag, keyword, pattern in self._baseline:
            if pattern.search(key):
                scores[tag] = scores.get(tag, 0.0) + 1.0
                if key == keyword:
                    scores[tag] += 2.0

        best_tag = ItemTag.UNKNOWN
        best_score = 0.0
        for tag in self._tag_order:
            if scores.get(tag, 0.0) > best_score:
                best_tag = tag
                best_score = scores[tag]

        if best_score == 0:
            return TagPrediction(ItemTag.UNKNOWN, NO_MATCH_CONFIDENCE, SOURCE_NONE)

        relative = best_score / sum(scores.values())
        if best_score >= 3.0:
            absolute = 0.95
        elif best_score >= 2.0:
            absolute = 0.85
        else:
            absolute = 0.70
        return TagPrediction(best_tag, (relative + absolute) / 2.0, SOURCE_BASELINE)

    # ------------------------------------------------------
    # Learning
    # ------------------------------------------------------

    def learn(self, term: object, tag: ItemTag, overlay: Optional[LearnedMemory] = None) -> bool:
        target = overlay if overlay is not None else self.global_memory
        return target.learn(term, tag)

    def learn_batch(
        self,
        pairs: Iterable[Tuple[object, ItemTag]],
        overlay: Optional[LearnedMemory] = None,
    ) -> int:
        target = overlay if overlay is not None else self.global_memory
        return target.learn_batch(pairs)
