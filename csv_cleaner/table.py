from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator


@dataclass(frozen=True)
class Row:
    """One data record. ``index`` is its 0-based position in the source file, header excluded."""

    index:  int
    fields: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __getitem__(self, position: int) -> str:
        return self.fields[position]

    def with_fields(self, fields: Iterable[str]) -> Row:
        return Row(self.index, tuple(fields))


@dataclass(frozen=True)
class Dialect:
    """How the source file was written; the cleaned output is written the same way."""

    delimiter:       str  = ","
    quote_all:       bool = False
    line_terminator: str  = "\r\n"
    encoding:        str  = "utf-8"
    bom:             bool = False


@dataclass(frozen=True)
class ParseIssue:
    row_index: int
    column:    str
    value:     str
    reason:    str


@dataclass(frozen=True)
class Table:
    header:  tuple[str, ...]
    rows:    tuple[Row, ...] = ()
    dialect: Dialect = field(default_factory=Dialect)
    issues:  tuple[ParseIssue, ...] = ()

    def __post_init__(self) -> None:
        width = len(self.header)
        for row in self.rows:
            if len(row) != width:
                raise ValueError(
                    f"Row {row.index} has {len(row)} fields; header has {width}"
                )

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return len(self.header)

    def replace_rows(self, rows: Iterable[Row]) -> Table:
        return replace(self, rows=tuple(rows))

    def replace_header(self, header: Iterable[str]) -> Table:
        return replace(self, header=tuple(header))

    def column_name(self, position: int) -> str:
        if 0 <= position < self.width and self.header[position]:
            return self.header[position]
        return f"[col {position + 1}]"

    def column_index(self, key: str | int) -> int | None:
        """Resolve a header name or a 0-based position to a column index."""
        if isinstance(key, int):
            return key if 0 <= key < self.width else None
        if key in self.header:
            return self.header.index(key)
        stripped = key.strip()
        if stripped.isdigit():
            position = int(stripped)
            return position if position < self.width else None
        return None

    def records(self) -> list[list[str]]:
        return [list(row.fields) for row in self.rows]

    def to_dataframe(self, limit: int | None = None):
        import pandas as pd

        rows = self.rows if limit is None else self.rows[:limit]
        columns = [self.column_name(i) for i in range(self.width)]
        return pd.DataFrame([list(row.fields) for row in rows], columns=columns, dtype=str)
