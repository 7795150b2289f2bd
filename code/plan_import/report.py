"""
report.py

Tabular and JSON artifacts for an analysis run.

Outputs:
- analysis_tree.json    (nested tree, camelCase keys)
- analysis_nodes.csv    (one row per node, Parent_ID links items to groups)
- column_profiles.csv
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Sequence

import pandas as pd

from .models import AnalysisTreeResult, ColumnProfile
from .profiler import profiles_to_frame


NODE_COLUMNS = [
    "Node_ID",
    "Parent_ID",
    "Node_Type",
    "Name",
    "Value",
    "Tag",
    "Confidence",
    "Needs_Review",
    "Is_Auto_Approved",
    "Excel_Cell",
    "Excel_Row",
    "Formula",
    "Rule_ID",
    "Tag_Source",
]


def tree_to_frame(result: AnalysisTreeResult) -> pd.DataFrame:
    rows = []
    for group in result.nodes:
        for node, parent in [(group, "")] + [(c, group.id) for c in group.children]:
            rows.append({
                "Node_ID": node.id,
                "Parent_ID": parent,
                "Node_Type": node.node_type.value,
                "Name": node.name,
                "Value": node.value,
                "Tag": node.tag.value,
                "Confidence": round(node.confidence, 4),
                "Needs_Review": node.needs_review,
                "Is_Auto_Approved": node.is_auto_approved,
                "Excel_Cell": node.excel_cell,
                "Excel_Row": node.excel_row,
                "Formula": node.formula,
                "Rule_ID": node.rule_id,
                "Tag_Source": node.tag_source,
            })
    return pd.DataFrame(rows, columns=NODE_COLUMNS)


def review_summary(result: AnalysisTreeResult) -> pd.DataFrame:
    """Item counts per (Tag, Needs_Review), for the console and QA."""
    df = tree_to_frame(result)
    items = df[df["Node_Type"] == "ITEM"]
    if items.empty:
        return pd.DataFrame(columns=["Tag", "Needs_Review", "Item_Count", "Value_Total"])
    return (
        items.groupby(["Tag", "Needs_Review"])
        .agg(Item_Count=("Node_ID", "count"), Value_Total=("Value", "sum"))
        .reset_index()
        .sort_values(["Needs_Review", "Item_Count"], ascending=[False, False])
        .reset_index(drop=True)
    )


def write_outputs(
    output_dir: Path,
    result: AnalysisTreeResult,
    profiles: Sequence[ColumnProfile],
) -> Dict[str, Path]:
    """Write all artifacts to output directory."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {}

    path = output_dir / "analysis_tree.json"
    path.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    paths["analysis_tree"] = path

    path = output_dir / "analysis_nodes.csv"
    tree_to_frame(result).to_csv(path, index=False)
    paths["analysis_nodes"] = path

    path = output_dir / "column_profiles.csv"
    profiles_to_frame(profiles).to_csv(path, index=False)
    paths["column_profiles"] = path

    return paths
