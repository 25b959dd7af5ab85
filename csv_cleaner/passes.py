"""
The cleaning passes.

Every pass is a pure function ``(Table, CleaningOptions) -> (Table, ReportDelta)``.
The input table is never modified; a pass that finds nothing to do returns the
same table and a zero delta. Passes run in PASS_ORDER: text is standardized
before nulls are handled and duplicates removed so that whitespace and case
differences cannot hide duplicates, and formats are validated last so the
report describes the final content.
"""

from __future__ import annotations

import logging
from typing import Callable

from csv_cleaner.errors import ConfigError
from csv_cleaner.formats import FIXED, INVALID, checker_for
from csv_cleaner.options import CleaningOptions
from csv_cleaner.report import Change, ReportDelta
from csv_cleaner.table import Row, Table

logger = logging.getLogger(__name__)


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def apply_case(value: str, text_case: str | None) -> str:
    if text_case == "lower":
        return value.lower()
    if text_case == "upper":
        return value.upper()
    if text_case == "title":
        return value.title()
    return value


def is_null(value: str) -> bool:
    return not value.strip()


# ══════════════════════════════════════════════════════════════════════════
# STANDARDIZE TEXT
# ══════════════════════════════════════════════════════════════════════════

def standardize_text(table: Table, options: CleaningOptions) -> tuple[Table, ReportDelta]:
    changes: list[Change] = []

    header = []
    for i, cell in enumerate(table.header):
        new_val = collapse_whitespace(cell)
        if new_val != cell:
            changes.append(Change(None, table.column_name(i), cell, new_val, "Standardized", "Header whitespace trimmed"))
        header.append(new_val)

    cells_changed = 0
    rows = []
    for row in table.rows:
        fields = []
        for i, cell in enumerate(row):
            new_val = apply_case(collapse_whitespace(cell), options.text_case)
            if new_val != cell:
                cells_changed += 1
                reasons = []
                if collapse_whitespace(cell) != cell:
                    reasons.append("whitespace trimmed and collapsed")
                if options.text_case and apply_case(collapse_whitespace(cell), options.text_case) != collapse_whitespace(cell):
                    reasons.append(f"{options.text_case}-cased")
                changes.append(Change(
                    row.index, table.column_name(i), cell, new_val, "Standardized", "; ".join(reasons).capitalize()
                ))
            fields.append(new_val)
        rows.append(row.with_fields(fields))

    if not changes:
        return table, ReportDelta("standardize_text")
    cleaned = table.replace_header(header).replace_rows(rows)
    return cleaned, ReportDelta("standardize_text", cells_standardized=cells_changed, changes=tuple(changes))


# ══════════════════════════════════════════════════════════════════════════
# HANDLE NULLS
# ══════════════════════════════════════════════════════════════════════════

def handle_nulls(table: Table, options: CleaningOptions) -> tuple[Table, ReportDelta]:
    changes: list[Change] = []
    nulls = 0
    dropped = 0
    rows: list[Row] = []

    for row in table.rows:
        null_positions = [i for i, cell in enumerate(row) if is_null(cell)]
        if not null_positions:
            rows.append(row)
            continue
        nulls += len(null_positions)

        if options.null_policy == "drop":
            dropped += 1
            columns = ", ".join(table.column_name(i) for i in null_positions)
            changes.append(Change(
                row.index, columns, "", "", "Dropped", f"Row dropped: {len(null_positions)} null field(s)"
            ))
            continue

        fields = list(row.fields)
        for i in null_positions:
            changes.append(Change(
                row.index, table.column_name(i), fields[i], options.null_sentinel, "Filled",
                "Null value replaced with sentinel",
            ))
            fields[i] = options.null_sentinel
        rows.append(row.with_fields(fields))

    if not nulls:
        return table, ReportDelta("handle_nulls")
    return table.replace_rows(rows), ReportDelta(
        "handle_nulls",
        nulls_handled=nulls,
        rows_dropped_for_nulls=dropped,
        changes=tuple(changes),
    )


# ══════════════════════════════════════════════════════════════════════════
# REMOVE DUPLICATES
# ══════════════════════════════════════════════════════════════════════════

def remove_duplicates(table: Table, options: CleaningOptions) -> tuple[Table, ReportDelta]:
    first_seen: dict[tuple[str, ...], int] = {}
    survivors: list[Row] = []
    changes: list[Change] = []

    for row in table.rows:
        original = first_seen.get(row.fields)
        if original is None:
            first_seen[row.fields] = row.index
            survivors.append(row)
            continue
        changes.append(Change(
            row.index, "[row]", "", "", "Removed", f"Exact duplicate of row {original}"
        ))

    if not changes:
        return table, ReportDelta("remove_duplicates")
    return table.replace_rows(survivors), ReportDelta(
        "remove_duplicates",
        duplicates_removed=len(changes),
        changes=tuple(changes),
    )


# ══════════════════════════════════════════════════════════════════════════
# VALIDATE FORMATS
# ══════════════════════════════════════════════════════════════════════════

def resolve_column_types(table: Table, options: CleaningOptions) -> dict[int, str]:
    resolved: dict[int, str] = {}
    for column, column_type in options.column_types.items():
        index = table.column_index(column)
        if index is None:
            raise ConfigError(f"Column {column!r} declared as {column_type} does not exist in the header")
        resolved[index] = column_type
    return resolved


def validate_formats(table: Table, options: CleaningOptions) -> tuple[Table, ReportDelta]:
    column_types = resolve_column_types(table, options)
    if not column_types:
        return table, ReportDelta("validate_formats")

    checkers = {
        index: checker_for(column_type, date_output_format=options.date_output_format, dayfirst=options.dayfirst)
        for index, column_type in column_types.items()
    }
    # Sentinels written by handle_nulls are nulls, not malformed values
    sentinel = options.null_sentinel if options.handle_nulls and options.null_policy == "substitute" else None
    found = 0
    fixed = 0
    changes: list[Change] = []
    rows: list[Row] = []

    for row in table.rows:
        fields = list(row.fields)
        for index, check in checkers.items():
            value = fields[index]
            if is_null(value) or value == sentinel:
                continue
            status, new_val, reason = check(value)
            if status == INVALID:
                found += 1
                changes.append(Change(row.index, table.column_name(index), value, value, "Flagged", reason))
            elif status == FIXED:
                found += 1
                fixed += 1
                fields[index] = new_val
                changes.append(Change(row.index, table.column_name(index), value, new_val, "Fixed", reason))
        rows.append(row.with_fields(fields) if fields != list(row.fields) else row)

    if found:
        logger.info("Format validation: %d error(s) found, %d fixed", found, fixed)
    if not found:
        return table, ReportDelta("validate_formats")
    return table.replace_rows(rows), ReportDelta(
        "validate_formats",
        format_errors_found=found,
        format_errors_fixed=fixed,
        changes=tuple(changes),
    )


PassFunction = Callable[[Table, CleaningOptions], "tuple[Table, ReportDelta]"]

# (pass name, CleaningOptions toggle, implementation)
PASS_ORDER: tuple[tuple[str, str, PassFunction], ...] = (
    ("standardize_text",  "standardize_text",  standardize_text),
    ("handle_nulls",      "handle_nulls",      handle_nulls),
    ("remove_duplicates", "remove_duplicates", remove_duplicates),
    ("validate_formats",  "validate_formats",  validate_formats),
)
