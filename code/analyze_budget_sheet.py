#!/usr/bin/env python3
"""
analyze_budget_sheet.py

Structural import of a budget spreadsheet into a GROUP/ITEM plan tree.

Each category row is classified by the structural rule table and tagged by
the term predictor (user corrections > global corrections > built-in
vocabulary). Rows below the 0.80 confidence threshold are flagged for review.

Outputs:
- analysis_tree.json
- analysis_nodes.csv
- column_profiles.csv

Usage:
    python analyze_budget_sheet.py \\
        --workbook <budget.xlsx> \\
        --output-dir <import_out/> \\
        [--sheet <name>] [--category-column A] [--value-column C] [--start-row 5] \\
        [--corrections <corrections.xlsx>] [--user-id <id>]

Any flag left out falls back to the IMPORT_* values in .env.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Dict, Optional

from plan_import.analyzer import StructuralAnalyzer
from plan_import.config import Settings, load_settings
from plan_import.corrections import (
    GLOBAL_USER,
    CorrectionLearner,
    ExcelCorrectionStore,
    HydrationError,
    HydrationReport,
    InMemoryCorrectionStore,
)
from plan_import.models import AnalysisTreeResult, ColumnMapping, ItemTag, NodeType
from plan_import.predictor import TagPredictor
from plan_import.reader import FrameSheetReader, SheetReadError, SheetSnapshot, open_reader
from plan_import.report import review_summary, write_outputs


# ======================================================
# SETUP
# ======================================================

def _print_hydration(report: HydrationReport) -> None:
    who = "global" if report.user_id == GLOBAL_USER else f"user {report.user_id}"
    print(f"[INFO] Loaded {report.loaded} correction(s) for {who}")
    for msg in report.messages:
        print(f"[WARNING] {msg}")


def build_analyzer(settings: Settings, reader) -> StructuralAnalyzer:
    predictor = TagPredictor()
    if settings.corrections_xlsx is not None:
        store = ExcelCorrectionStore(settings.corrections_xlsx)
    else:
        store = InMemoryCorrectionStore()
    learner = CorrectionLearner(predictor, store)

    # A layer that fails to load is left empty; the other layers still load.
    layers = [("global", learner.hydrate_global)]
    if settings.user_id and settings.user_id != GLOBAL_USER:
        layers.append(("user", lambda: learner.hydrate_for_user(settings.user_id)))
    for label, hydrate in layers:
        try:
            _print_hydration(hydrate())
        except HydrationError as exc:
            print(f"[WARNING] {exc}")
            print(f"[WARNING] Continuing without {label} corrections")

    return StructuralAnalyzer(reader, predictor, learner, settings.user_id)


def resolve_sheet(reader, requested: Optional[str]) -> str:
    names = reader.sheet_names()
    if requested:
        return requested
    if not names:
        raise SheetReadError("Workbook has no sheets")
    return names[0]


def resolve_mapping(
    settings: Settings,
    analyzer: StructuralAnalyzer,
    sheet_name: str,
) -> ColumnMapping:
    suggested = analyzer.suggest_mapping(sheet_name, settings.profile_max_rows)
    category = settings.category_column or suggested.category_column
    value = settings.value_column or suggested.value_column
    start_row = settings.start_row or suggested.start_row

    if not (settings.category_column and settings.value_column):
        print(
            f"[INFO] Suggested mapping: category={suggested.category_column} "
            f"value={suggested.value_column} start_row={suggested.start_row} "
            f"(confidence {suggested.confidence:.2f})"
        )
    return ColumnMapping(
        category_column=category.upper(),
        value_column=value.upper(),
        start_row=start_row,
        confidence=suggested.confidence,
    )


# ======================================================
# CONSOLE
# ======================================================

def print_console_summary(
    workbook: Path,
    mapping: ColumnMapping,
    result: AnalysisTreeResult,
    output_paths: Dict[str, Path],
) -> None:
    print("\n" + "=" * 60)
    print("BUDGET SHEET IMPORT")
    print("=" * 60)

    print(f"\nWorkbook: {workbook}")
    print(f"Sheet: {result.sheet_name}")
    print(
        f"Columns: category={mapping.category_column} value={mapping.value_column} "
        f"start_row={mapping.start_row}"
    )
    print(f"Groups: {result.total_groups}  Items: {result.total_items}")
    print(f"Overall confidence: {result.overall_confidence:.2f}")
    print(f"Auto-approved items: {result.auto_approved_items}")
    print(f"Items needing review: {result.items_needing_review}")

    summary = review_summary(result)
    if not summary.empty:
        print("\nItems by tag:")
        for _, row in summary.iterrows():
            tag = ItemTag(row["Tag"]).name if row["Tag"] else "UNKNOWN"
            flag = "  <- review" if row["Needs_Review"] else ""
            print(f"  {tag:<10} | {int(row['Item_Count']):>4} item(s) | {row['Value_Total']:>12,.2f}{flag}")

    review = [n for n in result.iter_nodes() if n.node_type == NodeType.ITEM and n.needs_review]
    if review:
        print("\nFirst items to review:")
        for node in review[:10]:
            print(f"  {node.excel_cell:<6} {node.name[:32]:<32} ({node.confidence:.2f}, {node.rule_id})")

    print(f"\nOutputs written to: {output_paths['analysis_tree'].parent}/")
    for path in output_paths.values():
        print(f"  - {path.name}")

    print("\n" + "=" * 60)


# ======================================================
# SELF CHECK
# ======================================================

def _self_check() -> None:
    rows = [
        ["Budget 2024"],
        ["Category", "", "Value"],
        ["HOUSING"],
        ["  Rent", "", "1200"],
        ["  Groceries", "", "45.00"],
        ["Netflix", "", "15.99"],
    ]
    snap = SheetSnapshot(name="Plan", rows=rows)

    class _Reader:
        def sheet_names(self):
            return ["Plan"]

        def read_sheet(self, name):
            return snap

    predictor = TagPredictor()
    analyzer = StructuralAnalyzer(_Reader(), predictor, user_id="self-check")
    result = analyzer.analyze_sheet_tree("Plan", "A", "C", 3)

    assert result.total_groups == 1, result.total_groups
    assert result.total_items == 3, result.total_items
    group = result.nodes[0]
    assert group.name == "HOUSING" and group.rule_id == "R01_EMPTY_VALUE"
    assert [c.name for c in group.children] == ["Rent", "Groceries", "Netflix"]
    assert group.children[1].rule_id == "R04_INDENTED"

    analyzer.learn_from_correction("Netflix", ItemTag.RECURRING)
    again = analyzer.analyze_sheet_tree("Plan", "A", "C", 3)
    netflix = again.nodes[0].children[2]
    assert netflix.tag == ItemTag.RECURRING and netflix.tag_source == "user"

    # Another session does not see this user's correction.
    other = StructuralAnalyzer(_Reader(), predictor, user_id="someone-else")
    assert other.analyze_sheet_tree("Plan", "A", "C", 3).nodes[0].children[2].tag_source != "user"

    empty = StructuralAnalyzer(FrameSheetReader(), predictor)
    try:
        empty.analyze_sheet_tree("Missing", "A", "B", 1)
    except SheetReadError:
        pass
    else:
        raise AssertionError("missing sheet must raise SheetReadError")


# ======================================================
# CLI AND MAIN
# ======================================================

def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Structural import of a budget spreadsheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python analyze_budget_sheet.py --workbook budget.xlsx --output-dir import_out/
  python analyze_budget_sheet.py --workbook budget.xlsx --output-dir import_out/ --sheet Plan -c A -v C --start-row 5
  python analyze_budget_sheet.py --workbook budget.xlsx --output-dir import_out/ --corrections corrections.xlsx --user-id 42
        """
    )

    parser.add_argument("--workbook", type=str, default=None, help="Path to .xlsx/.xlsm or .csv")
    parser.add_argument("--output-dir", type=str, default=None, help="Output directory for artifacts")
    parser.add_argument("--sheet", type=str, default=None, help="Sheet name (default: first sheet)")
    parser.add_argument("-c", "--category-column", type=str, default=None, help="Column letter holding category labels")
    parser.add_argument("-v", "--value-column", type=str, default=None, help="Column letter holding values")
    parser.add_argument("--start-row", type=int, default=None, help="First row to analyze (1-based)")
    parser.add_argument("--corrections", type=str, default=None, help="Path to corrections.xlsx")
    parser.add_argument("--user-id", type=str, default=None, help="User whose corrections apply")
    parser.add_argument("--max-rows", type=int, default=None, help="Rows sampled for column profiles")

    return parser.parse_args(argv)


def main(argv=None) -> None:
    """Main entry point."""
    if os.getenv("RUN_SELF_CHECKS") == "1":
        _self_check()
        print("Self-checks passed.")
        return

    args = parse_args(argv)
    settings = load_settings(
        workbook=args.workbook,
        output_dir=args.output_dir,
        sheet_name=args.sheet,
        category_column=args.category_column,
        value_column=args.value_column,
        start_row=args.start_row,
        corrections_xlsx=args.corrections,
        user_id=args.user_id,
        profile_max_rows=args.max_rows,
    )

    print(f"[INFO] Reading {settings.workbook}")
    reader = open_reader(settings.workbook)
    sheet_name = resolve_sheet(reader, settings.sheet_name)

    analyzer = build_analyzer(settings, reader)
    mapping = resolve_mapping(settings, analyzer, sheet_name)

    try:
        result = analyzer.analyze_sheet_tree(
            sheet_name,
            mapping.category_column,
            mapping.value_column,
            mapping.start_row,
        )
        result.column_profiles = analyzer.build_column_profiles(sheet_name, settings.profile_max_rows)
    finally:
        analyzer.close()
    result.detected_mapping = mapping

    if result.total_items == 0:
        print("[WARNING] No items found; check the column mapping and start row")
    else:
        print(f"[OK] Analyzed {result.total_items} item(s) in {result.total_groups} group(s)")

    output_paths = write_outputs(settings.output_dir, result, result.column_profiles)
    print_console_summary(settings.workbook, mapping, result, output_paths)


if __name__ == "__main__":
    main()
