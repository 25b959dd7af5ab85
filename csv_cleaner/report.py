from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any

from csv_cleaner import __version__ as TOOL_VERSION
from csv_cleaner.contracts import build_contract, utc_now_iso
from csv_cleaner.table import Table


@dataclass(frozen=True)
class Change:
    row_index: int | None   # None for the header row
    column:    str
    old_value: str
    new_value: str
    action:    str           # Standardized | Filled | Dropped | Removed | Fixed | Flagged
    reason:    str

    def as_row(self) -> list[str]:
        row_label = "header" if self.row_index is None else str(self.row_index)
        return [self.action, row_label, self.column, self.old_value, self.new_value, self.reason]


CHANGE_LOG_HEADERS = ["action", "row_index", "column", "old_value", "new_value", "reason"]


@dataclass(frozen=True)
class ReportDelta:
    """What a single pass contributed to the report."""

    pass_name:              str
    cells_standardized:     int = 0
    nulls_handled:          int = 0
    rows_dropped_for_nulls: int = 0
    duplicates_removed:     int = 0
    format_errors_found:    int = 0
    format_errors_fixed:    int = 0
    changes:                tuple[Change, ...] = ()

    def is_zero(self) -> bool:
        return not any((
            self.cells_standardized,
            self.nulls_handled,
            self.rows_dropped_for_nulls,
            self.duplicates_removed,
            self.format_errors_found,
            self.format_errors_fixed,
            self.changes,
        ))


@dataclass(frozen=True)
class CleaningReport:
    total_rows:             int
    columns:                int = 0
    delimiter:              str = ","
    encoding:               str = "utf-8"
    duplicates_removed:     int = 0
    nulls_handled:          int = 0
    rows_dropped_for_nulls: int = 0
    cells_standardized:     int = 0
    format_errors_found:    int = 0
    format_errors_fixed:    int = 0
    passes_run:             tuple[str, ...] = ()
    pass_errors:            dict[str, str] = field(default_factory=dict)
    changes:                tuple[Change, ...] = ()

    @classmethod
    def for_table(cls, table: Table) -> CleaningReport:
        return cls(
            total_rows=len(table),
            columns=table.width,
            delimiter=table.dialect.delimiter,
            encoding=table.dialect.encoding,
        )

    @property
    def final_rows(self) -> int:
        return self.total_rows - self.duplicates_removed - self.rows_dropped_for_nulls

    @property
    def format_errors_unfixed(self) -> int:
        return self.format_errors_found - self.format_errors_fixed

    def merge(self, delta: ReportDelta) -> CleaningReport:
        return replace(
            self,
            duplicates_removed=self.duplicates_removed + delta.duplicates_removed,
            nulls_handled=self.nulls_handled + delta.nulls_handled,
            rows_dropped_for_nulls=self.rows_dropped_for_nulls + delta.rows_dropped_for_nulls,
            cells_standardized=self.cells_standardized + delta.cells_standardized,
            format_errors_found=self.format_errors_found + delta.format_errors_found,
            format_errors_fixed=self.format_errors_fixed + delta.format_errors_fixed,
            passes_run=self.passes_run + (delta.pass_name,),
            changes=self.changes + delta.changes,
        )

    def with_pass_error(self, pass_name: str, message: str) -> CleaningReport:
        return replace(self, pass_errors={**self.pass_errors, pass_name: message})

    def check_consistency(self, table: Table) -> None:
        """Raise ValueError unless the counts agree with the cleaned table."""
        if self.final_rows != len(table):
            raise ValueError(
                f"Report says {self.final_rows} final rows but the cleaned table has {len(table)}"
            )
        if self.columns != table.width:
            raise ValueError(f"Report says {self.columns} columns but the cleaned table has {table.width}")

    def action_counts(self) -> dict[str, int]:
        return dict(sorted(Counter(change.action for change in self.changes).items()))

    def to_dict(self, *, include_changes: bool = True) -> dict[str, Any]:
        contract = build_contract("csv_cleaner.report")
        payload: dict[str, Any] = {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": TOOL_VERSION,
            "generated_at": utc_now_iso(),
            "total_rows": self.total_rows,
            "duplicates_removed": self.duplicates_removed,
            "nulls_handled": self.nulls_handled,
            "rows_dropped_for_nulls": self.rows_dropped_for_nulls,
            "cells_standardized": self.cells_standardized,
            "format_errors_found": self.format_errors_found,
            "format_errors_fixed": self.format_errors_fixed,
            "final_rows": self.final_rows,
            "columns": self.columns,
            "delimiter": self.delimiter,
            "encoding": self.encoding,
            "passes_run": list(self.passes_run),
            "pass_errors": dict(self.pass_errors),
            "action_counts": self.action_counts(),
        }
        if include_changes:
            payload["changes"] = [
                {
                    "row_index": change.row_index,
                    "column": change.column,
                    "old_value": change.old_value,
                    "new_value": change.new_value,
                    "action": change.action,
                    "reason": change.reason,
                }
                for change in self.changes
            ]
        return payload

    def render_text(self) -> str:
        lines = [
            "csv-cleaner report",
            f"Original rows: {self.total_rows}",
            f"Duplicates removed: {self.duplicates_removed}",
            f"Null values handled: {self.nulls_handled}",
        ]
        if self.rows_dropped_for_nulls:
            lines.append(f"Rows dropped for nulls: {self.rows_dropped_for_nulls}")
        lines.extend(
            [
                f"Cells standardized: {self.cells_standardized}",
                f"Format errors found: {self.format_errors_found}",
                f"Format errors fixed: {self.format_errors_fixed}",
                f"Final rows: {self.final_rows}",
            ]
        )
        for pass_name, message in sorted(self.pass_errors.items()):
            lines.append(f"Pass '{pass_name}' failed: {message}")
        return "\n".join(lines) + "\n"
