"""
tree.py

Single top-to-bottom pass over a sheet snapshot that turns rows into a
two-level tree: GROUP nodes holding ITEM children.

Group/item association depends on row order, so rows are never processed
out of order or in parallel.
"""

from __future__ import annotations

import hashlib
from typing import List, Optional

from .cells import cell_name, col_letter_to_idx, numeric_or_zero
from .features import extract_row_features
from .models import AnalysisNode, AnalysisTreeResult, ItemTag, NodeType
from .predictor import LearnedMemory, TagPredictor
from .reader import SheetReadError, SheetSnapshot
from .structural import classify_row


DEFAULT_GROUP_NAME = "Imported Items"
DEFAULT_GROUP_CONFIDENCE = 0.5
DEFAULT_GROUP_RULE = "R00_DEFAULT_GROUP"


def _mk_node_id(sheet_name: str, ref: str, seq: int) -> str:
    """Short SHA-1 token; seq keeps it unique within one build."""
    key = "|".join([sheet_name, ref, str(seq)])
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]


class TreeBuilder:
    def __init__(self, predictor: TagPredictor):
        self.predictor = predictor

    def build(
        self,
        snapshot: SheetSnapshot,
        category_column: str,
        value_column: str,
        start_row: int,
        overlay: Optional[LearnedMemory] = None,
    ) -> AnalysisTreeResult:
        try:
            cat_idx = col_letter_to_idx(category_column)
            val_idx = col_letter_to_idx(value_column)
        except ValueError as exc:
            raise SheetReadError(str(exc)) from exc
        if start_row < 1:
            raise SheetReadError(f"Start row must be >= 1, got {start_row}")

        rows = snapshot.rows
        total_rows = len(rows)
        seq = 0

        nodes: List[AnalysisNode] = []
        current_group: Optional[AnalysisNode] = None

        for row_idx in range(start_row, total_rows + 1):
            row = rows[row_idx - 1]
            raw_cat = row[cat_idx - 1] if cat_idx <= len(row) else ""
            raw_val = row[val_idx - 1] if val_idx <= len(row) else ""
            cat_value = raw_cat.strip()
            val_value = raw_val.strip()

            if cat_value == "":
                continue

            cat_ref = cell_name(cat_idx, row_idx)
            val_ref = cell_name(val_idx, row_idx)
            formula = snapshot.formula_at(val_ref)

            features = extract_row_features(
                category_text=raw_cat,
                value_text=val_value,
                style_id=snapshot.style_at(cat_ref),
                has_formula=formula != "",
                row_idx=row_idx,
                total_rows=total_rows,
            )
            structural = classify_row(features, raw_cat)
            if structural.node_type == NodeType.IGNORE:
                continue

            prediction = self.predictor.predict(cat_value, overlay)
            combined = (structural.confidence + prediction.confidence) / 2.0

            seq += 1
            node = AnalysisNode(
                id=_mk_node_id(snapshot.name, cat_ref, seq),
                name=cat_value,
                value=numeric_or_zero(val_value),
                node_type=structural.node_type,
                tag=prediction.tag,
                confidence=combined,
                excel_cell=cat_ref,
                excel_row=row_idx,
                formula=formula,
                rule_id=structural.rule_id,
                tag_source=prediction.source,
            )

            if structural.node_type == NodeType.GROUP:
                if current_group is not None:
                    nodes.append(current_group)
                current_group = node
            elif current_group is not None:
                current_group.children.append(node)
            else:
                seq += 1
                current_group = AnalysisNode(
                    id=_mk_node_id(snapshot.name, "", seq),
                    name=DEFAULT_GROUP_NAME,
                    value=0.0,
                    node_type=NodeType.GROUP,
                    tag=ItemTag.UNKNOWN,
                    confidence=DEFAULT_GROUP_CONFIDENCE,
                    rule_id=DEFAULT_GROUP_RULE,
                    children=[node],
                )

        if current_group is not None:
            nodes.append(current_group)

        return summarize_tree(snapshot.name, nodes)


def summarize_tree(sheet_name: str, nodes: List[AnalysisNode]) -> AnalysisTreeResult:
    """
    Totals over a finished tree. overall_confidence averages every node,
    groups included; review/approval counts are items only.
    """
    total_groups = len(nodes)
    total_items = 0
    confidence_sum = 0.0
    needing_review = 0
    auto_approved = 0

    for group in nodes:
        confidence_sum += group.confidence
        total_items += len(group.children)
        for item in group.children:
            confidence_sum += item.confidence
            if item.needs_review:
                needing_review += 1
            else:
                auto_approved += 1

    total_nodes = total_groups + total_items
    overall = confidence_sum / total_nodes if total_nodes else 0.0

    return AnalysisTreeResult(
        sheet_name=sheet_name,
        nodes=nodes,
        total_groups=total_groups,
        total_items=total_items,
        overall_confidence=overall,
        items_needing_review=needing_review,
        auto_approved_items=auto_approved,
    )
