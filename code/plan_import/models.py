"""
models.py

Types shared by the budget sheet import: column profiles, row features,
analysis tree nodes and stored tag corrections.

Tag codes match the ones the plan editor stores:
    B  = budget (variable spend)
    R  = recurring (fixed bills, subscriptions)
    S  = savings / investing goals
    IN = income
    D  = debt payments
    "" = unknown
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


# Nodes at or above this are auto-approved.
CONFIDENCE_THRESHOLD = 0.80

MODEL_TYPE_EXCEL_IMPORT = "excel_import"


class NodeType(str, Enum):
    GROUP = "GROUP"
    ITEM = "ITEM"
    IGNORE = "IGNORE"


class ItemTag(str, Enum):
    BUDGET = "B"
    RECURRING = "R"
    SAVINGS = "S"
    INCOME = "IN"
    DEBT = "D"
    UNKNOWN = ""

    @classmethod
    def parse(cls, raw: object) -> "ItemTag":
        """
        Accept either the stored code ("R") or the member name ("Recurring").
        Raises ValueError for anything else.
        """
        if isinstance(raw, ItemTag):
            return raw
        if raw is None:
            raise ValueError("Missing tag")
        s = str(raw).strip()
        for tag in cls:
            if s.upper() == tag.value:
                return tag
        if s.upper() in cls.__members__:
            return cls.__members__[s.upper()]
        raise ValueError(f"Unknown item tag: {raw!r}")


@dataclass(frozen=True)
class ColumnProfile:
    index: int
    letter: str
    numeric_density: float = 0.0
    formula_density: float = 0.0
    empty_density: float = 0.0
    text_density: float = 0.0
    unique_ratio: float = 0.0
    avg_text_length: float = 0.0


@dataclass(frozen=True)
class ColumnMapping:
    category_column: str
    value_column: str
    start_row: int
    confidence: float


@dataclass(frozen=True)
class RowFeatures:
    has_value: bool
    is_bold: bool
    is_uppercase: bool
    indentation: int
    row_position: float
    has_formula: bool
    value_magnitude: float


@dataclass
class AnalysisNode:
    id: str
    name: str
    value: float
    node_type: NodeType
    tag: ItemTag
    confidence: float
    excel_cell: str = ""
    excel_row: int = 0
    formula: str = ""
    rule_id: str = ""
    tag_source: str = ""
    children: List["AnalysisNode"] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return self.confidence < CONFIDENCE_THRESHOLD

    @property
    def is_auto_approved(self) -> bool:
        return not self.needs_review

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "type": self.node_type.value,
            "tag": self.tag.value,
            "confidence": self.confidence,
            "needsReview": self.needs_review,
            "isAutoApproved": self.is_auto_approved,
            "excelCell": self.excel_cell,
            "excelRow": self.excel_row,
            "ruleId": self.rule_id,
            "tagSource": self.tag_source,
        }
        if self.formula:
            out["formula"] = self.formula
        if self.node_type == NodeType.GROUP:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@dataclass
class AnalysisTreeResult:
    sheet_name: str
    nodes: List[AnalysisNode]
    total_groups: int
    total_items: int
    overall_confidence: float
    items_needing_review: int
    auto_approved_items: int
    column_profiles: List[ColumnProfile] = field(default_factory=list)
    detected_mapping: Optional[ColumnMapping] = None

    def iter_nodes(self):
        """Groups and items, depth-first, in sheet order."""
        for group in self.nodes:
            yield group
            yield from group.children

    def to_dict(self) -> dict:
        out = {
            "sheetName": self.sheet_name,
            "nodes": [n.to_dict() for n in self.nodes],
            "totalGroups": self.total_groups,
            "totalItems": self.total_items,
            "overallConfidence": self.overall_confidence,
            "itemsNeedingReview": self.items_needing_review,
            "autoApprovedItems": self.auto_approved_items,
        }
        if self.column_profiles:
            out["columnProfiles"] = [
                {
                    "index": p.index,
                    "letter": p.letter,
                    "numericDensity": p.numeric_density,
                    "formulaDensity": p.formula_density,
                    "emptyDensity": p.empty_density,
                    "textDensity": p.text_density,
                    "uniqueRatio": p.unique_ratio,
                    "avgTextLength": p.avg_text_length,
                }
                for p in self.column_profiles
            ]
        if self.detected_mapping is not None:
            m = self.detected_mapping
            out["detectedMapping"] = {
                "categoryColumn": m.category_column,
                "valueColumn": m.value_column,
                "startRow": m.start_row,
                "confidence": m.confidence,
            }
        return out


@dataclass(frozen=True)
class TagCorrection:
    user_id: str
    term: str
    predicted_tag: str
    corrected_tag: str
    model_type: str = MODEL_TYPE_EXCEL_IMPORT
    source_file: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
