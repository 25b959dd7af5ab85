import threading
import unittest
from unittest import mock

from csv_cleaner import passes
from csv_cleaner.errors import ParseError, RunCancelled
from csv_cleaner.options import CleaningOptions
from csv_cleaner.parser import parse_csv
from csv_cleaner.pipeline import (
    BackgroundCleaner,
    CancellationToken,
    CleaningRun,
    PipelineState,
    clean,
)
from csv_cleaner.report import ReportDelta


class CleanTests(unittest.TestCase):
    def test_standardizing_first_exposes_duplicates(self):
        data = b'name,n\n"  Foo  ",1\nFoo,1\n'
        self.assertEqual(clean(data).report.final_rows, 1)
        without = clean(data, CleaningOptions(standardize_text=False))
        self.assertEqual(without.report.final_rows, 2)
        self.assertEqual(without.report.duplicates_removed, 0)

    def test_null_sentinel_substitution(self):
        data = b"a,b,c\nA,,C\n"
        result = clean(data, CleaningOptions(null_sentinel="<null>"))
        self.assertEqual(result.data, b"a,b,c\nA,<null>,C\n")
        self.assertEqual(result.report.nulls_handled, 1)

        untouched = clean(data, CleaningOptions(handle_nulls=False))
        self.assertEqual(untouched.data, data)
        self.assertEqual(untouched.report.nulls_handled, 0)

    def test_invalid_date_is_counted_but_left_alone(self):
        result = clean(b"d\n2023-13-40\n", CleaningOptions(column_types={"d": "date"}))
        self.assertEqual(result.report.format_errors_found, 1)
        self.assertEqual(result.report.format_errors_fixed, 0)
        self.assertEqual(result.data, b"d\n2023-13-40\n")

    def test_substituted_sentinel_is_not_a_format_error(self):
        options = CleaningOptions(null_sentinel="N/A", column_types={"d": "date", "n": "integer"})
        result = clean(b"d,n\n2023-01-02,\n,5\n", options)
        self.assertEqual(result.report.nulls_handled, 2)
        self.assertEqual(result.report.format_errors_found, 0)
        self.assertEqual(result.data, b"d,n\n2023-01-02,N/A\nN/A,5\n")

    def test_sentinel_text_is_checked_when_nulls_are_not_handled(self):
        options = CleaningOptions(handle_nulls=False, null_sentinel="N/A", column_types={"n": "integer"})
        result = clean(b"n\nN/A\n", options)
        self.assertEqual(result.report.format_errors_found, 1)

    def test_year_one_date_is_left_alone(self):
        result = clean(b"d\n0001-01-01\n", CleaningOptions(column_types={"d": "date"}))
        self.assertEqual(result.data, b"d\n0001-01-01\n")
        self.assertEqual(result.report.format_errors_found, 0)

    def test_row_counts_add_up(self):
        inputs = [
            (b"a,b\n1,2\n1,2\n,3\n", CleaningOptions()),
            (b"a,b\n1,2\n1,2\n,3\n", CleaningOptions(null_policy="drop")),
            (b"a;b\r\nx;\r\nx;\r\n ; \r\n", CleaningOptions(null_policy="drop")),
            (b"a\n1\n", CleaningOptions(remove_duplicates=False)),
        ]
        for data, options in inputs:
            with self.subTest(data=data, policy=options.null_policy):
                result = clean(data, options)
                report = result.report
                reparsed = parse_csv(result.data) if result.table.rows else None
                self.assertEqual(
                    report.final_rows,
                    report.total_rows - report.duplicates_removed - report.rows_dropped_for_nulls,
                )
                self.assertEqual(report.final_rows, len(result.table))
                if reparsed is not None:
                    self.assertEqual(len(reparsed), report.final_rows)
                    self.assertTrue(all(len(row) == reparsed.width for row in reparsed.rows))

    def test_output_keeps_input_dialect(self):
        data = b'"a";"b"\r\n"  x ";"1"\r\n'
        result = clean(data)
        self.assertEqual(result.data, b'"a";"b"\r\n"x";"1"\r\n')

    def test_delimiter_override(self):
        result = clean(b"a;b,c\n1;2,3\n", delimiter=";")
        self.assertEqual(result.table.header, ("a", "b,c"))
        self.assertEqual(result.report.delimiter, ";")

    def test_overflow_fields_are_unfixed_format_errors(self):
        result = clean(b"a,b\n1,2,extra\n", delimiter=",")
        self.assertEqual(result.report.format_errors_found, 1)
        self.assertEqual(result.report.format_errors_unfixed, 1)
        self.assertEqual(result.report.changes[0].action, "Flagged")

    def test_cleaning_is_deterministic(self):
        data = b"Name,Amount\n Ada ,\"$1,200\"\nAda,1200\n"
        options = CleaningOptions(column_types={"Amount": "numeric"})
        first = clean(data, options)
        second = clean(data, options)
        self.assertEqual(first.data, second.data)
        self.assertEqual(first.report, second.report)


class CleaningRunTests(unittest.TestCase):
    def test_successful_run_ends_done(self):
        run = CleaningRun(b"a,b\n1,2\n")
        self.assertIs(run.state, PipelineState.IDLE)
        result = run.run()
        self.assertIs(run.state, PipelineState.DONE)
        self.assertIs(run.result, result)
        self.assertEqual(
            result.report.passes_run,
            ("standardize_text", "handle_nulls", "remove_duplicates", "validate_formats"),
        )

    def test_passes_without_changes_are_logged(self):
        with self.assertLogs("csv_cleaner.pipeline", level="DEBUG") as logs:
            clean(b"a,b\n1,2\n")
        self.assertIn("Pass remove_duplicates made no changes", "\n".join(logs.output))

    def test_run_cannot_be_restarted(self):
        run = CleaningRun(b"a\n1\n")
        run.run()
        with self.assertRaises(RuntimeError):
            run.run()

    def test_parse_error_fails_the_run(self):
        run = CleaningRun(b"")
        with self.assertRaises(ParseError):
            run.run()
        self.assertIs(run.state, PipelineState.FAILED)
        self.assertIsInstance(run.error, ParseError)
        self.assertIsNone(run.result)

    def test_pass_error_is_contained(self):
        data = b"a,b\n1,2\n1,2\n"
        result = clean(data, CleaningOptions(column_types={"Missing": "date"}))
        self.assertIn("validate_formats", result.report.pass_errors)
        self.assertIn("Missing", result.report.pass_errors["validate_formats"])
        self.assertNotIn("validate_formats", result.report.passes_run)
        self.assertEqual(result.report.duplicates_removed, 1)
        self.assertEqual(result.data, b"a,b\n1,2\n")

    def test_disabled_passes_are_skipped(self):
        options = CleaningOptions(
            remove_duplicates=False, handle_nulls=False, standardize_text=False, validate_formats=False
        )
        data = b"a,b\n x ,\n x ,\n"
        result = clean(data, options)
        self.assertEqual(result.data, data)
        self.assertEqual(result.report.passes_run, ())

    def test_cancelled_before_start_never_completes(self):
        token = CancellationToken()
        token.cancel()
        run = CleaningRun(b"a\n1\n", cancel=token)
        with self.assertRaises(RunCancelled):
            run.run()
        self.assertIs(run.state, PipelineState.FAILED)
        self.assertIsNone(run.result)

    def test_cancel_between_passes(self):
        token = CancellationToken()

        def cancelling_pass(table, options):
            token.cancel()
            return table, ReportDelta("cancelling")

        order = (("cancelling", "standardize_text", cancelling_pass),) + passes.PASS_ORDER
        with mock.patch("csv_cleaner.pipeline.PASS_ORDER", order):
            run = CleaningRun(b"a\n1\n", cancel=token)
            with self.assertRaises(RunCancelled) as ctx:
                run.run()
        self.assertIn("standardize_text", str(ctx.exception))
        self.assertIs(run.state, PipelineState.FAILED)
        self.assertIsNone(run.result)


class BackgroundCleanerTests(unittest.TestCase):
    def test_new_submission_supersedes_running_one(self):
        started = threading.Event()
        release = threading.Event()

        def blocking_pass(table, options):
            started.set()
            release.wait(5)
            return table, ReportDelta("blocking")

        order = (("blocking", "standardize_text", blocking_pass),) + passes.PASS_ORDER
        with mock.patch("csv_cleaner.pipeline.PASS_ORDER", order):
            with BackgroundCleaner() as cleaner:
                first = cleaner.submit(b"a\n1\n")
                self.assertTrue(started.wait(5))
                second = cleaner.submit(b"a\n2\n")
                release.set()
                with self.assertRaises(RunCancelled):
                    first.result(timeout=5)
                result = second.result(timeout=5)
        self.assertEqual(result.table.rows[0].fields, ("2",))

    def test_cancel_current(self):
        release = threading.Event()

        def blocking_pass(table, options):
            release.wait(5)
            return table, ReportDelta("blocking")

        order = (("blocking", "standardize_text", blocking_pass),)
        with mock.patch("csv_cleaner.pipeline.PASS_ORDER", order):
            cleaner = BackgroundCleaner()
            future = cleaner.submit(b"a\n1\n")
            cleaner.cancel_current()
            release.set()
            with self.assertRaises(RunCancelled):
                future.result(timeout=5)
            cleaner.shutdown()


if __name__ == "__main__":
    unittest.main()
