"""
Run orchestration: bytes in, cleaned bytes and a report out.

    result = clean(raw_bytes, CleaningOptions(column_types={"Date": "date"}))
    result.data     # cleaned CSV bytes, same dialect as the input
    result.report   # CleaningReport

A run moves IDLE -> PARSING -> CLEANING -> REPORTING -> DONE, or to FAILED
from any non-terminal state. Parse and encoding errors are fatal. A pass that
raises a CleaningError leaves the table as it was, records the message under
``report.pass_errors`` and the remaining passes still run.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from csv_cleaner.errors import CleaningError, RunCancelled
from csv_cleaner.options import CleaningOptions
from csv_cleaner.parser import parse_csv, write_csv
from csv_cleaner.passes import PASS_ORDER
from csv_cleaner.report import Change, CleaningReport, ReportDelta
from csv_cleaner.table import Table

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    CLEANING = "cleaning"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    PipelineState.IDLE:      {PipelineState.PARSING, PipelineState.FAILED},
    PipelineState.PARSING:   {PipelineState.CLEANING, PipelineState.FAILED},
    PipelineState.CLEANING:  {PipelineState.REPORTING, PipelineState.FAILED},
    PipelineState.REPORTING: {PipelineState.DONE, PipelineState.FAILED},
    PipelineState.DONE:      set(),
    PipelineState.FAILED:    set(),
}


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise RunCancelled(f"Run cancelled {stage}")


@dataclass(frozen=True)
class CleanResult:
    data:   bytes
    report: CleaningReport
    table:  Table


def parse_issue_delta(table: Table) -> ReportDelta:
    """Fields beyond the header width count as format errors that were not fixed."""
    if not table.issues:
        return ReportDelta("parse")
    changes = tuple(
        Change(issue.row_index, issue.column, issue.value, "", "Flagged", issue.reason)
        for issue in table.issues
    )
    return ReportDelta("parse", format_errors_found=len(table.issues), changes=changes)


class CleaningRun:
    def __init__(
        self,
        data: bytes,
        options: CleaningOptions | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        self.data = data
        self.options = options or CleaningOptions()
        self.cancel = cancel or CancellationToken()
        self.state = PipelineState.IDLE
        self.error: BaseException | None = None
        self._result: CleanResult | None = None

    @property
    def result(self) -> CleanResult | None:
        return self._result if self.state is PipelineState.DONE else None

    def _transition(self, state: PipelineState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        logger.debug("pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> CleanResult:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("A cleaning run can only be started once")
        try:
            return self._run()
        except Exception as exc:
            self.error = exc
            self._transition(PipelineState.FAILED)
            raise

    def _run(self) -> CleanResult:
        options = self.options

        self._transition(PipelineState.PARSING)
        self.cancel.raise_if_cancelled("before parsing")
        table = parse_csv(
            self.data,
            encoding=options.encoding,
            delimiter=options.delimiter,
            column_tolerance=options.column_tolerance,
        )
        report = CleaningReport.for_table(table)
        if table.issues:
            report = report.merge(parse_issue_delta(table))

        self._transition(PipelineState.CLEANING)
        for pass_name, toggle, clean_pass in PASS_ORDER:
            self.cancel.raise_if_cancelled(f"before {pass_name}")
            if not getattr(options, toggle):
                continue
            try:
                table, delta = clean_pass(table, options)
            except CleaningError as exc:
                logger.warning("Pass %s failed, table left unchanged: %s", pass_name, exc)
                report = report.with_pass_error(pass_name, str(exc))
                continue
            if delta.is_zero():
                logger.debug("Pass %s made no changes", pass_name)
            report = report.merge(delta)

        self._transition(PipelineState.REPORTING)
        report.check_consistency(table)
        data = write_csv(table)
        self.cancel.raise_if_cancelled("before publishing the result")

        result = CleanResult(data=data, report=report, table=table)
        self._result = result
        self._transition(PipelineState.DONE)
        logger.info(
            "Cleaned %d rows into %d (%d duplicates, %d nulls, %d/%d format errors fixed)",
            report.total_rows,
            report.final_rows,
            report.duplicates_removed,
            report.nulls_handled,
            report.format_errors_fixed,
            report.format_errors_found,
        )
        return result


def clean(
    data: bytes,
    options: CleaningOptions | None = None,
    *,
    delimiter: str | None = None,
    cancel: CancellationToken | None = None,
) -> CleanResult:
    """Clean one CSV buffer. Raises ParseError, EncodingError or RunCancelled."""
    options = options or CleaningOptions()
    if delimiter is not None:
        options = options.with_overrides(delimiter=delimiter)
    return CleaningRun(data, options, cancel=cancel).run()


class BackgroundCleaner:
    """
    Runs cleanings off the calling thread. Submitting a new buffer cancels the
    run it supersedes; the superseded future raises RunCancelled instead of
    yielding a result.
    """

    def __init__(self, max_workers: int = 1) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="csv-cleaner")
        self._lock = threading.Lock()
        self._current: CancellationToken | None = None

    def submit(self, data: bytes, options: CleaningOptions | None = None) -> Future:
        token = CancellationToken()
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            self._current = token
        return self._executor.submit(clean, data, options, cancel=token)

    def cancel_current(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_current()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> BackgroundCleaner:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
