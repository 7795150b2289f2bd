"""
structural.py

Deterministic, explainable row classifier: GROUP / ITEM / IGNORE.

Rules live in STRUCTURAL_RULES and are evaluated top to bottom; the first
predicate that matches decides the row. The order is part of the contract:
a header-looking row with an empty value cell must resolve through
R01_EMPTY_VALUE (0.95) even when R02_UPPERCASE would also match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

from .models import NodeType, RowFeatures


@dataclass(frozen=True)
class StructuralRule:
    rule_id: str
    predicate: Callable[[RowFeatures, str], bool]
    node_type: NodeType
    confidence: float
    explanation: str


@dataclass(frozen=True)
class StructuralResult:
    node_type: NodeType
    confidence: float
    rule_id: str
    rule_explanation: str


# ======================================================
# RULE TABLE (priority-ordered, first match wins)
# ======================================================

STRUCTURAL_RULES: Tuple[StructuralRule, ...] = (
    StructuralRule(
        rule_id="R01_EMPTY_VALUE",
        predicate=lambda f, cat: cat.strip() != "" and not f.has_value,
        node_type=NodeType.GROUP,
        confidence=0.95,
        explanation="Label with an empty value cell is a section header.",
    ),
    StructuralRule(
        rule_id="R02_UPPERCASE",
        predicate=lambda f, cat: f.is_uppercase and len(cat.strip()) > 3,
        node_type=NodeType.GROUP,
        confidence=0.85,
        explanation="ALL CAPS label reads as a section header.",
    ),
    StructuralRule(
        rule_id="R03_STYLED_HEADER",
        predicate=lambda f, cat: f.is_bold and not f.has_value,
        node_type=NodeType.GROUP,
        confidence=0.80,
        explanation="Styled label without a value is a header.",
    ),
    StructuralRule(
        rule_id="R04_INDENTED",
        predicate=lambda f, cat: f.indentation > 0,
        node_type=NodeType.ITEM,
        confidence=0.90,
        explanation="Indented label is a line item under the current group.",
    ),
    StructuralRule(
        rule_id="R05_FORMULA_VALUE",
        predicate=lambda f, cat: f.has_value and f.has_formula,
        node_type=NodeType.ITEM,
        confidence=0.85,
        explanation="Value computed by a formula is a budget line.",
    ),
    StructuralRule(
        rule_id="R06_VALUE",
        predicate=lambda f, cat: f.has_value,
        node_type=NodeType.ITEM,
        confidence=0.70,
        explanation="Label with a literal value is a line item.",
    ),
    StructuralRule(
        rule_id="R99_UNCLEAR",
        predicate=lambda f, cat: True,
        node_type=NodeType.IGNORE,
        confidence=0.50,
        explanation="No structural signal; row is dropped.",
    ),
)


def classify_row(features: RowFeatures, category_text: str) -> StructuralResult:
    category_text = category_text or ""
    # The last rule (R99_UNCLEAR) matches everything.
    rule = next(
        (r for r in STRUCTURAL_RULES[:-1] if r.predicate(features, category_text)),
        STRUCTURAL_RULES[-1],
    )
    return StructuralResult(
        node_type=rule.node_type,
        confidence=rule.confidence,
        rule_id=rule.rule_id,
        rule_explanation=rule.explanation,
    )
