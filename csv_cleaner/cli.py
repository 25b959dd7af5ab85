from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import requests

from csv_cleaner import __version__ as TOOL_VERSION
from csv_cleaner.contracts import build_contract, build_run_summary
from csv_cleaner.display import cleaned_filename, format_file_size, preview_text
from csv_cleaner.errors import CleaningError, EncodingError, ParseError
from csv_cleaner.export import render_changelog_csv, write_workbook
from csv_cleaner.options import CleaningOptions, parse_column_type_spec
from csv_cleaner.pipeline import CleanResult, clean
from csv_cleaner.remote import fetch_remote_csv, is_remote_source

SUPPORTED_SUFFIXES = {".csv", ".tsv", ".txt"}
DELIMITER_ALIASES = {"\\t": "\t", "tab": "\t"}

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_FORMAT_ERRORS = 5
EXIT_PARTIAL = 6

OUTPUT_STAMP_ENV = "CSV_CLEANER_OUTPUT_STAMP"

CONFIG_TEMPLATE_COLUMN_TYPES = {"Date": "date", "Amount": "numeric", "Email": "email"}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class CsvCleanerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def timestamp_token() -> str:
    override = os.environ.get(OUTPUT_STAMP_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(source_name: str) -> Path:
    return Path.cwd() / "csv-cleaner-output" / f"{Path(source_name).stem}-{timestamp_token()}"


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def safe_output_path(path: Path, *, force: bool = False) -> Path:
    if not force and path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: ("1970-01-01T00:00:00Z" if key == "generated_at" else remove_generated_at(item))
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def normalize_payload_for_cli(payload: Any) -> Any:
    # Pinned output stamps mean reproducible runs; timestamps would break that.
    if os.environ.get(OUTPUT_STAMP_ENV):
        return remove_generated_at(payload)
    return payload


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (ParseError, EncodingError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


# ══════════════════════════════════════════════════════════════════════════
# INPUTS AND OPTIONS
# ══════════════════════════════════════════════════════════════════════════

def read_source(source: str) -> tuple[str, bytes]:
    """Return (display name, raw bytes) for a local path or a public URL."""
    if is_remote_source(source):
        remote = fetch_remote_csv(source)
        return remote.name, remote.data
    path = Path(source)
    if not path.exists():
        raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise CliError(
            f"Unsupported file type '{path.suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_SUFFIXES))}",
            EXIT_COMMAND_ERROR,
        )
    return path.name, path.read_bytes()


def build_options(args: argparse.Namespace) -> CleaningOptions:
    options = CleaningOptions.from_json_file(Path(args.config)) if args.config else CleaningOptions()

    column_types = dict(options.column_types)
    for spec in args.column_types or []:
        column, column_type = parse_column_type_spec(spec)
        column_types[column] = column_type

    return options.with_overrides(
        remove_duplicates=False if args.no_dedupe else None,
        handle_nulls=False if args.no_nulls else None,
        standardize_text=False if args.no_standardize else None,
        validate_formats=False if args.no_validate else None,
        null_policy=args.null_policy,
        null_sentinel=args.sentinel,
        text_case=args.case,
        column_types=column_types,
        dayfirst=True if args.dayfirst else None,
        delimiter=DELIMITER_ALIASES.get(args.delimiter, args.delimiter),
        encoding=args.encoding,
        column_tolerance=args.column_tolerance,
    )


def add_option_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="JSON file with cleaning options")
    parser.add_argument("--delimiter", help="Field delimiter (detected when omitted)")
    parser.add_argument("--encoding", help="Input encoding (detected when omitted)")
    parser.add_argument("--no-dedupe", action="store_true", help="Keep duplicate rows")
    parser.add_argument("--no-nulls", action="store_true", help="Leave empty fields alone")
    parser.add_argument("--no-standardize", action="store_true", help="Do not trim or collapse whitespace")
    parser.add_argument("--no-validate", action="store_true", help="Skip per-column format validation")
    parser.add_argument("--null-policy", choices=["substitute", "drop"], help="What to do with empty fields")
    parser.add_argument("--sentinel", help="Value written into empty fields with the substitute policy")
    parser.add_argument("--case", choices=["lower", "upper", "title"], help="Case applied to every text field")
    parser.add_argument(
        "--type",
        dest="column_types",
        action="append",
        metavar="COLUMN=TYPE",
        help="Declare a column type (date, numeric, integer, email, boolean, text); repeatable",
    )
    parser.add_argument("--dayfirst", action="store_true", help="Read ambiguous dates like 03/04/2023 day-first")
    parser.add_argument("--column-tolerance", type=int, help="Fail when a row has more extra fields than this")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = CsvCleanerArgumentParser(prog="csv-cleaner", description="Clean CSV files and report what changed.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    clean_cmd = subparsers.add_parser("clean", help="Clean a CSV file and write the result.")
    clean_cmd.add_argument("input", help="Input file path or public URL")
    clean_cmd.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    clean_cmd.add_argument("--output", help="Explicit cleaned file path")
    clean_cmd.add_argument("--report", help="Explicit JSON report path")
    clean_cmd.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="Cleaned output format")
    clean_cmd.add_argument("--json", action="store_true", help="Write the JSON report to stdout")
    clean_cmd.add_argument("--dry-run", action="store_true", help="Clean without writing any files")
    clean_cmd.add_argument("--force", action="store_true", help="Overwrite existing outputs")
    clean_cmd.add_argument(
        "--fail-on-format-errors",
        action="store_true",
        help="Return exit code 5 when format errors remain unfixed",
    )
    add_option_arguments(clean_cmd)

    preview = subparsers.add_parser("preview", help="Print the first cleaned rows without writing files.")
    preview.add_argument("input", help="Input file path or public URL")
    preview.add_argument("--rows", type=int, default=5, help="Number of data rows to show")
    preview.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    add_option_arguments(preview)

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter options file.")
    config_init.add_argument("--path", default="csv-cleaner.json", help="Options file path")

    subparsers.add_parser("version", help="Print version")
    return parser


# ══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════

def clean_output_paths(args: argparse.Namespace, source_name: str) -> tuple[Path, Path | None, Path]:
    extension = ".xlsx" if args.format == "xlsx" else ".csv"
    if args.output:
        clean_path = Path(args.output)
    else:
        out_dir = Path(args.out_dir) if args.out_dir else default_output_dir(source_name)
        clean_path = out_dir / cleaned_filename(source_name, extension=extension)
    changelog_path = None
    if args.format == "csv":
        changelog_path = clean_path.with_name(f"{clean_path.stem}_changelog.csv")
    report_path = Path(args.report) if args.report else clean_path.parent / "report.json"
    return clean_path, changelog_path, report_path


def build_clean_payload(result: CleanResult, *, source_name: str, output_path: Path | None) -> dict[str, Any]:
    report = result.report
    payload = report.to_dict()
    payload["input_file"] = source_name
    payload["run_summary"] = build_run_summary(
        command="clean",
        input_path=source_name,
        output_path=output_path,
        status="partial" if report.pass_errors else "ok",
        warnings=[f"{name}: {message}" for name, message in sorted(report.pass_errors.items())],
        metrics={
            "total_rows": report.total_rows,
            "final_rows": report.final_rows,
            "changes_logged": len(report.changes),
            "format_errors_unfixed": report.format_errors_unfixed,
        },
    )
    return normalize_payload_for_cli(payload)


def exit_code_for_result(result: CleanResult, *, fail_on_format_errors: bool) -> int:
    if result.report.pass_errors:
        return EXIT_PARTIAL
    if fail_on_format_errors and result.report.format_errors_unfixed > 0:
        return EXIT_FORMAT_ERRORS
    return EXIT_SUCCESS


def run_clean(args: argparse.Namespace) -> int:
    try:
        options = build_options(args)
        source_name, data = read_source(args.input)
        emit_human(f"Input: {source_name} ({format_file_size(len(data))})", quiet=args.quiet)

        clean_path, changelog_path, report_path = clean_output_paths(args, source_name)
        if not args.dry_run:
            for path in (clean_path, changelog_path, report_path):
                if path is not None:
                    safe_output_path(path, force=args.force)

        result = clean(data, options)
        payload = build_clean_payload(
            result,
            source_name=source_name,
            output_path=None if args.dry_run else clean_path,
        )

        if not args.dry_run:
            if args.format == "xlsx":
                write_workbook(result.table, result.report, clean_path)
            else:
                ensure_parent(clean_path)
                clean_path.write_bytes(result.data)
                write_text(changelog_path, render_changelog_csv(result.report))
            write_json(report_path, payload)

        if args.json:
            print(json_dumps(payload))
        else:
            emit_human(result.report.render_text().rstrip(), quiet=args.quiet)
            if not args.dry_run:
                emit_human(f"Cleaned file: {clean_path}", quiet=args.quiet)
                if changelog_path is not None:
                    emit_human(f"Change log: {changelog_path}", quiet=args.quiet)
                emit_human(f"Report: {report_path}", quiet=args.quiet)
        return exit_code_for_result(result, fail_on_format_errors=args.fail_on_format_errors)
    except (CliError, CleaningError, requests.RequestException, OSError, ValueError) as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_preview(args: argparse.Namespace) -> int:
    if args.rows < 0:
        eprint("--rows must not be negative")
        return EXIT_COMMAND_ERROR
    try:
        options = build_options(args)
        source_name, data = read_source(args.input)
        result = clean(data, options)
    except (CliError, CleaningError, requests.RequestException, OSError, ValueError) as exc:
        eprint(str(exc))
        return classify_exception(exc)

    table = result.table
    if args.json:
        contract = build_contract("csv_cleaner.preview")
        payload = {
            "contract": contract,
            "schema_version": contract["version"],
            "input_file": source_name,
            "header": list(table.header),
            "rows": table.records()[: args.rows],
            "remaining_rows": max(len(table) - args.rows, 0),
            "report": result.report.to_dict(include_changes=False),
        }
        print(json_dumps(normalize_payload_for_cli(payload)))
    else:
        sys.stdout.write(preview_text(table, rows=args.rows))
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    template = CleaningOptions(column_types=CONFIG_TEMPLATE_COLUMN_TYPES).to_dict()
    write_json(config_path, template)
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(verbose=getattr(args, "verbose", False), quiet=getattr(args, "quiet", False))
        if args.command == "clean":
            return run_clean(args)
        if args.command == "preview":
            return run_preview(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
