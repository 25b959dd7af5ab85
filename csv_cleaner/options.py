from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from csv_cleaner.errors import ConfigError
from csv_cleaner.formats import COLUMN_TYPES

NULL_POLICIES = ("substitute", "drop")
TEXT_CASES = ("lower", "upper", "title")

# Checkbox ids used by the original upload page
CAMEL_CASE_ALIASES = {
    "removeDuplicates": "remove_duplicates",
    "handleNulls":      "handle_nulls",
    "standardizeText":  "standardize_text",
    "validateFormats":  "validate_formats",
    "nullPolicy":       "null_policy",
    "nullSentinel":     "null_sentinel",
    "textCase":         "text_case",
    "columnTypes":      "column_types",
    "dateOutputFormat": "date_output_format",
    "dayFirst":         "dayfirst",
    "columnTolerance":  "column_tolerance",
}

_BOOL_FIELDS = ("remove_duplicates", "handle_nulls", "standardize_text", "validate_formats", "dayfirst")


@dataclass(frozen=True)
class CleaningOptions:
    remove_duplicates:  bool = True
    handle_nulls:       bool = True
    standardize_text:   bool = True
    validate_formats:   bool = True
    null_policy:        str = "substitute"
    null_sentinel:      str = ""
    text_case:          str | None = None
    column_types:       Mapping[str | int, str] = field(default_factory=dict)
    date_output_format: str = "%Y-%m-%d"
    dayfirst:           bool = False
    delimiter:          str | None = None
    encoding:           str | None = None
    column_tolerance:   int | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"Option '{name}' must be true or false")

        if self.null_policy not in NULL_POLICIES:
            raise ConfigError(
                f"Unknown null policy '{self.null_policy}'. Expected one of: {', '.join(NULL_POLICIES)}"
            )
        if not isinstance(self.null_sentinel, str):
            raise ConfigError("Option 'null_sentinel' must be a string")
        if self.null_policy == "drop" and self.null_sentinel:
            raise ConfigError("null_sentinel has no effect when null_policy is 'drop'; remove one of them")

        if self.text_case is not None and self.text_case not in TEXT_CASES:
            raise ConfigError(
                f"Unknown text case '{self.text_case}'. Expected one of: {', '.join(TEXT_CASES)}"
            )

        if not isinstance(self.column_types, Mapping):
            raise ConfigError("Option 'column_types' must map column names or positions to types")
        for column, column_type in self.column_types.items():
            if isinstance(column, bool) or not isinstance(column, (str, int)):
                raise ConfigError(f"Column key {column!r} must be a header name or a 0-based position")
            if isinstance(column, int) and column < 0:
                raise ConfigError(f"Column position {column} must not be negative")
            if column_type not in COLUMN_TYPES:
                raise ConfigError(
                    f"Unknown type '{column_type}' for column {column!r}. "
                    f"Expected one of: {', '.join(COLUMN_TYPES)}"
                )

        if "%" not in self.date_output_format:
            raise ConfigError(f"date_output_format '{self.date_output_format}' contains no date directives")
        sample = datetime(2001, 2, 3)
        try:
            rendered = sample.strftime(self.date_output_format)
            round_trip = datetime.strptime(rendered, self.date_output_format)
        except ValueError as exc:
            raise ConfigError(f"Invalid date_output_format '{self.date_output_format}': {exc}") from exc
        if round_trip.date() != sample.date():
            raise ConfigError(f"date_output_format '{self.date_output_format}' does not keep year, month and day")

        if self.delimiter is not None and len(self.delimiter) != 1:
            raise ConfigError(f"Delimiter must be a single character, got {self.delimiter!r}")
        if self.delimiter in ('"', "\n", "\r"):
            raise ConfigError(f"Delimiter {self.delimiter!r} is not allowed")
        if self.column_tolerance is not None and (
            isinstance(self.column_tolerance, bool)
            or not isinstance(self.column_tolerance, int)
            or self.column_tolerance < 0
        ):
            raise ConfigError("column_tolerance must be a non-negative integer")

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CleaningOptions:
        if not isinstance(payload, Mapping):
            raise ConfigError("Options must be a JSON object")
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in payload.items():
            name = CAMEL_CASE_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown option '{key}'")
            kwargs[name] = value
        if "column_types" in kwargs and isinstance(kwargs["column_types"], Mapping):
            kwargs["column_types"] = dict(kwargs["column_types"])
        return cls(**kwargs)

    @classmethod
    def from_json_file(cls, path: Path) -> CleaningOptions:
        if not path.exists():
            raise ConfigError(f"Options file not found: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Could not read options file: {exc}") from exc
        return cls.from_dict(payload)

    def with_overrides(self, **changes: Any) -> CleaningOptions:
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["column_types"] = {str(key): value for key, value in self.column_types.items()}
        return payload


def parse_column_type_spec(spec: str) -> tuple[str | int, str]:
    """Parse a ``COLUMN=TYPE`` pair; purely numeric columns are positions."""
    column, sep, column_type = spec.rpartition("=")
    if not sep or not column or not column_type:
        raise ConfigError(f"Expected COLUMN=TYPE, got '{spec}'")
    column_type = column_type.strip().lower()
    if column_type not in COLUMN_TYPES:
        raise ConfigError(f"Unknown type '{column_type}'. Expected one of: {', '.join(COLUMN_TYPES)}")
    column = column.strip()
    return (int(column) if column.isdigit() else column), column_type
