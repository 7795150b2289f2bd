import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    workbook: Path
    output_dir: Path
    sheet_name: Optional[str]
    category_column: Optional[str]
    value_column: Optional[str]
    start_row: Optional[int]
    corrections_xlsx: Optional[Path]
    user_id: Optional[str]
    profile_max_rows: int


def _opt(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _opt_int(value: Optional[str], name: str) -> Optional[int]:
    value = _opt(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def load_settings(
    workbook=None,
    output_dir=None,
    sheet_name=None,
    category_column=None,
    value_column=None,
    start_row=None,
    corrections_xlsx=None,
    user_id=None,
    profile_max_rows=None,
    env_file=None,
) -> Settings:
    """Explicit arguments win over .env / environment values."""
    load_dotenv(env_file)

    workbook = workbook or _opt(os.getenv("IMPORT_WORKBOOK"))
    output_dir = output_dir or _opt(os.getenv("IMPORT_OUTPUT_DIR"))
    if not workbook or not output_dir:
        raise ValueError("IMPORT_WORKBOOK and IMPORT_OUTPUT_DIR must be provided")

    corrections = corrections_xlsx or _opt(os.getenv("IMPORT_CORRECTIONS_XLSX"))
    if start_row is None:
        start_row = _opt_int(os.getenv("IMPORT_START_ROW"), "IMPORT_START_ROW")
    if profile_max_rows is None:
        profile_max_rows = _opt_int(os.getenv("PROFILE_MAX_ROWS"), "PROFILE_MAX_ROWS")

    return Settings(
        workbook=Path(workbook),
        output_dir=Path(output_dir),
        sheet_name=sheet_name or _opt(os.getenv("IMPORT_SHEET")),
        category_column=category_column or _opt(os.getenv("IMPORT_CATEGORY_COLUMN")),
        value_column=value_column or _opt(os.getenv("IMPORT_VALUE_COLUMN")),
        start_row=start_row,
        corrections_xlsx=Path(corrections) if corrections else None,
        user_id=user_id or _opt(os.getenv("IMPORT_USER_ID")),
        profile_max_rows=profile_max_rows if profile_max_rows is not None else 100,
    )
