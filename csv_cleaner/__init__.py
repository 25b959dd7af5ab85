"""Clean CSV files: trim text, handle nulls, drop duplicates and validate column formats."""

__version__ = "0.1.0"

from csv_cleaner.errors import CleaningError, ConfigError, EncodingError, ParseError, RunCancelled
from csv_cleaner.options import CleaningOptions
from csv_cleaner.parser import parse_csv, write_csv
from csv_cleaner.pipeline import (
    BackgroundCleaner,
    CancellationToken,
    CleaningRun,
    CleanResult,
    PipelineState,
    clean,
)
from csv_cleaner.report import CleaningReport, ReportDelta
from csv_cleaner.table import Row, Table

__all__ = [
    "BackgroundCleaner",
    "CancellationToken",
    "CleanResult",
    "CleaningError",
    "CleaningOptions",
    "CleaningReport",
    "CleaningRun",
    "ConfigError",
    "EncodingError",
    "ParseError",
    "PipelineState",
    "ReportDelta",
    "Row",
    "RunCancelled",
    "Table",
    "clean",
    "parse_csv",
    "write_csv",
]
