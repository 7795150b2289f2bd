#!/usr/bin/env python3
"""
manage_corrections.py

Maintain corrections.xlsx, the store of user tag corrections that the
budget sheet import learns from.

Usage:
    python manage_corrections.py save   --user-id 42 --term "Netflix" --tag R [--source-file budget.xlsx]
    python manage_corrections.py delete --user-id 42 --term "Netflix"
    python manage_corrections.py list   --user-id 42
    python manage_corrections.py top    [--limit 10]

--corrections defaults to IMPORT_CORRECTIONS_XLSX from .env. --user-id
defaults to IMPORT_USER_ID; "*" addresses the global layer.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from plan_import.corrections import GLOBAL_USER, CorrectionLearner, ExcelCorrectionStore
from plan_import.models import ItemTag, TagCorrection
from plan_import.predictor import TagPredictor


def _tag_label(code: str) -> str:
    try:
        tag = ItemTag.parse(code)
    except ValueError:
        return f"? ({code})"
    return tag.name


def _resolve_store(path: Optional[str]) -> ExcelCorrectionStore:
    path = path or os.getenv("IMPORT_CORRECTIONS_XLSX")
    if not path:
        raise ValueError("Pass --corrections or set IMPORT_CORRECTIONS_XLSX in .env")
    return ExcelCorrectionStore(Path(path))


def _resolve_user(user_id: Optional[str]) -> str:
    user_id = user_id or os.getenv("IMPORT_USER_ID")
    if not user_id:
        raise ValueError("Pass --user-id or set IMPORT_USER_ID in .env")
    return user_id


def print_corrections(user_id: str, rows: List[TagCorrection]) -> None:
    who = "global" if user_id == GLOBAL_USER else f"user {user_id}"
    print("\n" + "=" * 60)
    print(f"CORRECTIONS ({who})")
    print("=" * 60)
    if not rows:
        print("  (none)")
    for r in rows:
        updated = r.updated_at.strftime("%Y-%m-%d %H:%M") if r.updated_at else "-"
        print(
            f"  {r.term[:30]:<30} | {_tag_label(r.predicted_tag):>9} -> {_tag_label(r.corrected_tag):<9} | {updated}"
        )
    print("=" * 60)


# ======================================================
# COMMANDS
# ======================================================

def cmd_save(args: argparse.Namespace) -> None:
    store = _resolve_store(args.corrections)
    user_id = _resolve_user(args.user_id)
    learner = CorrectionLearner(TagPredictor(), store)

    # Without --predicted, record what the import would have said.
    predicted = args.predicted
    if predicted is None:
        learner.hydrate_global()
        overlay = None
        if user_id != GLOBAL_USER:
            learner.hydrate_for_user(user_id)
            overlay = learner.overlay_for(user_id)
        predicted = learner.predictor.predict(args.term, overlay).tag

    row = learner.save_correction(user_id, args.term, predicted, args.tag, args.source_file)
    print(f"[OK] Saved {row.term!r}: {_tag_label(row.predicted_tag)} -> {_tag_label(row.corrected_tag)}")


def cmd_delete(args: argparse.Namespace) -> None:
    store = _resolve_store(args.corrections)
    user_id = _resolve_user(args.user_id)
    learner = CorrectionLearner(TagPredictor(), store)
    if learner.delete_correction(user_id, args.term):
        print(f"[OK] Deleted correction for {args.term!r}")
    else:
        print(f"[WARNING] No correction stored for {args.term!r}")


def cmd_list(args: argparse.Namespace) -> None:
    store = _resolve_store(args.corrections)
    user_id = _resolve_user(args.user_id)
    print_corrections(user_id, store.get_user_corrections(user_id))


def cmd_top(args: argparse.Namespace) -> None:
    store = _resolve_store(args.corrections)
    top = store.most_corrected_terms(args.limit)
    print("\nMost corrected terms:")
    if not top:
        print("  (none)")
    for rank, (term, count) in enumerate(top, start=1):
        print(f"  {rank}. {term:<30} {count}")


# ======================================================
# CLI AND MAIN
# ======================================================

def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Manage budget import tag corrections")
    parser.add_argument("--corrections", type=str, default=None, help="Path to corrections.xlsx")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("save", help="Save (or overwrite) a correction")
    p.add_argument("--user-id", type=str, default=None)
    p.add_argument("--term", type=str, required=True)
    p.add_argument("--tag", type=str, required=True, help="B, R, S, IN, D or the tag name")
    p.add_argument("--predicted", type=str, default=None, help="Tag the import predicted")
    p.add_argument("--source-file", type=str, default=None)
    p.set_defaults(func=cmd_save)

    p = sub.add_parser("delete", help="Delete a correction")
    p.add_argument("--user-id", type=str, default=None)
    p.add_argument("--term", type=str, required=True)
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("list", help="List a user's corrections, newest first")
    p.add_argument("--user-id", type=str, default=None)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("top", help="Most frequently corrected terms across users")
    p.add_argument("--limit", type=int, default=10)
    p.set_defaults(func=cmd_top)

    return parser.parse_args(argv)


def main(argv=None) -> None:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
