import csv
import io
import tempfile
import unittest
from pathlib import Path

from openpyxl import load_workbook

from csv_cleaner.display import (
    PREVIEW_ROWS,
    cleaned_filename,
    format_file_size,
    is_csv_filename,
    more_rows_note,
    preview_frame,
    preview_text,
)
from csv_cleaner.export import render_changelog_csv, write_workbook
from csv_cleaner.options import CleaningOptions
from csv_cleaner.pipeline import clean

DATA = b"Name,Amount\nAda,$5\nAda,$5\nGrace,abc\nAlan,1\nEdsger,2\nBarbara,3\nKen,4\n"


class DisplayTests(unittest.TestCase):
    def test_format_file_size(self):
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(512), "512 Bytes")
        self.assertEqual(format_file_size(1024), "1 KB")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * 1024 * 1024), "5 MB")

    def test_filenames(self):
        self.assertTrue(is_csv_filename("Data.CSV"))
        self.assertFalse(is_csv_filename("data.xlsx"))
        self.assertEqual(cleaned_filename("data.csv"), "data_clean.csv")
        self.assertEqual(cleaned_filename("data.csv", suffix="_report", extension=".json"), "data_report.json")

    def test_more_rows_note(self):
        table = clean(DATA).table
        self.assertEqual(more_rows_note(table), "... and 1 more row")
        self.assertEqual(more_rows_note(table, rows=3), "... and 3 more rows")
        self.assertIsNone(more_rows_note(table, rows=PREVIEW_ROWS + 1))

    def test_preview_text_and_frame(self):
        result = clean(DATA)
        text = preview_text(result.table, rows=5)
        self.assertTrue(text.startswith("Name,Amount\n"))
        self.assertTrue(text.endswith("... and 1 more row\n"))
        frame = preview_frame(result.table)
        self.assertEqual(list(frame.columns), ["Name", "Amount"])
        self.assertEqual(len(frame), 5)


class ExportTests(unittest.TestCase):
    def setUp(self):
        self.result = clean(DATA, CleaningOptions(column_types={"Amount": "numeric"}))

    def test_changelog_csv(self):
        rows = list(csv.reader(io.StringIO(render_changelog_csv(self.result.report))))
        self.assertEqual(rows[0], ["action", "row_index", "column", "old_value", "new_value", "reason"])
        actions = [row[0] for row in rows[1:]]
        self.assertEqual(actions, ["Removed", "Fixed", "Flagged"])

    def test_workbook_has_data_report_and_change_log(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "out.xlsx"
            write_workbook(self.result.table, self.result.report, path)
            wb = load_workbook(path)
            self.assertEqual(wb.sheetnames, ["Clean Data", "Report", "Change Log"])

            data = list(wb["Clean Data"].iter_rows(values_only=True))
            self.assertEqual(data[0], ("Name", "Amount"))
            self.assertEqual(data[1], ("Ada", "5"))
            self.assertEqual(len(data), 1 + self.result.report.final_rows)

            metrics = {row[0]: row[1] for row in wb["Report"].iter_rows(min_row=2, values_only=True)}
            self.assertEqual(metrics["duplicates_removed"], 1)
            self.assertEqual(metrics["format_errors_found"], 2)

            log = wb["Change Log"]
            self.assertEqual(log.max_row, 4)
            self.assertEqual(log.cell(3, 1).value, "Fixed")
            self.assertEqual(log.cell(3, 1).fill.fgColor.rgb, "00C8E6C9")


if __name__ == "__main__":
    unittest.main()
