"""Helpers shared by the command line and the web page for showing results."""

from __future__ import annotations

from pathlib import Path

from csv_cleaner.parser import render_csv
from csv_cleaner.table import Table

PREVIEW_ROWS = 5
SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {SIZE_UNITS[exponent]}"


def is_csv_filename(name: str) -> bool:
    return name.lower().endswith(".csv")


def cleaned_filename(name: str, suffix: str = "_clean", extension: str = ".csv") -> str:
    stem = Path(name).stem if is_csv_filename(name) else Path(name).name
    return f"{stem}{suffix}{extension}"


def more_rows_note(table: Table, rows: int = PREVIEW_ROWS) -> str | None:
    remaining = len(table) - rows
    if remaining <= 0:
        return None
    return f"... and {remaining} more row{'s' if remaining != 1 else ''}"


def preview_text(table: Table, rows: int = PREVIEW_ROWS) -> str:
    """Header plus the first ``rows`` data rows, rendered in the table's own dialect."""
    head = table.replace_rows(table.rows[:rows])
    text = render_csv(head).rstrip("\r\n")
    note = more_rows_note(table, rows)
    if note:
        text += f"\n{note}"
    return text + "\n"


def preview_frame(table: Table, rows: int = PREVIEW_ROWS):
    return table.to_dataframe(limit=rows)
