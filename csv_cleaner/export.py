"""Write a cleaned table and its report to files (CSV change log, XLSX workbook)."""

from __future__ import annotations

import csv
import io
from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from csv_cleaner.report import CHANGE_LOG_HEADERS, CleaningReport
from csv_cleaner.table import Table

FILL_FIXED   = PatternFill("solid", fgColor="C8E6C9")
FILL_FLAGGED = PatternFill("solid", fgColor="FFF9C4")


def render_changelog_csv(report: CleaningReport) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CHANGE_LOG_HEADERS)
    writer.writerows(change.as_row() for change in report.changes)
    return buffer.getvalue()


def _header_font() -> Font:
    return Font(bold=True, color="FFFFFF")


def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    fill = PatternFill("solid", fgColor=header_color)
    for cell in ws[1]:
        cell.font = _header_font()
        cell.fill = fill
        cell.alignment = Alignment(vertical="center")
    for idx, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [min_width] * max(len(row) for row in rows)
    for row in rows[:sample]:
        for idx, value in enumerate(row):
            widths[idx] = min(max(widths[idx], len(str(value)) + 2), max_width)
    return widths


def write_workbook(table: Table, report: CleaningReport, output_path: Path) -> None:
    wb = openpyxl.Workbook()

    # ── Sheet 1: Clean Data ─────────────────────────────────────────────
    ws1 = wb.active
    ws1.title = "Clean Data"
    header = [table.column_name(i) for i in range(table.width)]
    ws1.append(header)
    data_rows = table.records()
    for row in data_rows:
        ws1.append(row)
    _style_sheet(ws1, _infer_col_widths([header, *data_rows]), "4CAF50")

    # ── Sheet 2: Report ─────────────────────────────────────────────────
    ws2 = wb.create_sheet("Report")
    summary = report.to_dict(include_changes=False)
    report_rows = [["metric", "value"]]
    for key in (
        "total_rows",
        "duplicates_removed",
        "nulls_handled",
        "rows_dropped_for_nulls",
        "cells_standardized",
        "format_errors_found",
        "format_errors_fixed",
        "final_rows",
        "delimiter",
        "encoding",
    ):
        report_rows.append([key, summary[key]])
    for pass_name, message in sorted(report.pass_errors.items()):
        report_rows.append([f"error:{pass_name}", message])
    for row in report_rows:
        ws2.append(row)
    _style_sheet(ws2, _infer_col_widths(report_rows), "1565C0")

    # ── Sheet 3: Change Log ─────────────────────────────────────────────
    ws3 = wb.create_sheet("Change Log")
    log_rows = [CHANGE_LOG_HEADERS]
    ws3.append(CHANGE_LOG_HEADERS)
    for change in report.changes:
        row_out = change.as_row()
        ws3.append(row_out)
        log_rows.append(row_out)
        if change.action == "Fixed":
            ws3.cell(ws3.max_row, 1).fill = FILL_FIXED
        elif change.action == "Flagged":
            ws3.cell(ws3.max_row, 1).fill = FILL_FLAGGED
    _style_sheet(ws3, _infer_col_widths(log_rows), "E53935")
    for cell in ws3["F"][1:]:
        cell.alignment = Alignment(wrap_text=True, vertical="top")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
