"""
parser.py: bytes in, Table out (and back again)

Public API:
    table = parse_csv(raw_bytes)
    raw   = write_csv(table)

parse_csv detects the encoding (UTF-8 first, chardet otherwise) and the
delimiter (csv.Sniffer first, column-consistency scoring otherwise) unless
they are given. Quoted fields may contain the delimiter, line breaks and
doubled quotes. Blank lines are skipped. Short rows are padded to the header
width; fields beyond the header width are dropped and every non-empty one is
kept as a ParseIssue so the report can count it as a format error.

write_csv emits the table with the dialect it was read with: delimiter,
quoting style, line terminator, encoding and BOM.
"""

from __future__ import annotations

import codecs
import csv
import io
import logging
from collections import Counter

from csv_cleaner.errors import EncodingError, ParseError
from csv_cleaner.table import Dialect, ParseIssue, Row, Table

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = [",", ";", "\t", "|"]


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding_info(raw: bytes) -> dict:
    """chardet's guess for ``raw``: detected, confidence, is_utf8."""
    import chardet

    result = chardet.detect(raw)
    detected = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)
    return {
        "detected":   detected,
        "confidence": confidence,
        "is_utf8":    detected.upper().replace("-", "") in ("UTF8", "ASCII"),
    }


def _first_mixed_encoding_line(raw: bytes) -> int | None:
    """
    Line number of the first non-UTF-8 line when other lines carry valid
    UTF-8 multi-byte text, None when the buffer is consistently one thing.
    """
    saw_utf8_multibyte = False
    first_invalid: int | None = None
    for line_no, line in enumerate(raw.split(b"\n"), start=1):
        if line.isascii():
            continue
        try:
            line.decode("utf-8")
            saw_utf8_multibyte = True
        except UnicodeDecodeError:
            if first_invalid is None:
                first_invalid = line_no
    if saw_utf8_multibyte and first_invalid is not None:
        return first_invalid
    return None


def decode_bytes(raw: bytes, encoding: str | None = None) -> tuple[str, str, bool]:
    """
    Decode ``raw`` into text. Returns (text, encoding, had_utf8_bom).

    An explicit encoding decodes strictly. Otherwise UTF-8 is tried first,
    then chardet's guess. Buffers mixing UTF-8 and another encoding line by
    line are rejected rather than silently mangled.
    """
    has_bom = raw.startswith(codecs.BOM_UTF8)

    if encoding:
        try:
            codec = codecs.lookup(encoding)
        except LookupError as exc:
            raise EncodingError(f"Unknown encoding: {encoding}", encoding) from exc
        payload = raw
        if codec.name == "utf-8" and has_bom:
            payload = raw[len(codecs.BOM_UTF8):]
        else:
            has_bom = False
        try:
            return payload.decode(codec.name), codec.name, has_bom
        except UnicodeDecodeError as exc:
            raise EncodingError(
                f"Could not decode input as {encoding}: byte {exc.object[exc.start:exc.end]!r} "
                f"at offset {exc.start}",
                encoding,
            ) from exc

    payload = raw[len(codecs.BOM_UTF8):] if has_bom else raw
    try:
        return payload.decode("utf-8"), "utf-8", has_bom
    except UnicodeDecodeError:
        pass

    mixed_line = _first_mixed_encoding_line(payload)
    if mixed_line is not None:
        raise ParseError(
            ParseError.INCONSISTENT_ENCODING,
            "Input mixes UTF-8 text with another encoding",
            line=mixed_line,
        )

    info = detect_encoding_info(payload)
    detected = info["detected"]
    if detected == "unknown":
        raise EncodingError("Could not detect the input encoding")
    logger.debug("chardet guessed %s (confidence %.2f)", detected, info["confidence"])
    try:
        codec_name = codecs.lookup(detected).name
        return payload.decode(codec_name), codec_name, False
    except (LookupError, UnicodeDecodeError) as exc:
        raise EncodingError(f"Could not decode input as detected encoding {detected}", detected) from exc


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Uses csv.Sniffer first; falls back to scoring each candidate by
    column-count consistency and column width. Defaults to a comma.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters="".join(CANDIDATE_DELIMITERS)).delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    best_width = 0
    sample_text = "\n".join(sample_lines)

    for delim in CANDIDATE_DELIMITERS:
        try:
            rows = [
                row
                for row in csv.reader(io.StringIO(sample_text), delimiter=delim)
                if any(cell.strip() for cell in row)
            ]
        except csv.Error:
            continue
        if len(rows) < 2:
            continue

        widths = [len(row) for row in rows]
        mode_width, mode_count = Counter(widths).most_common(1)[0]
        consistency = mode_count / len(widths)

        score = (mode_width * 2.0) + (consistency * mode_width)
        if len(rows[0]) == mode_width:
            score += 1.0
        if mode_width == 1:
            score -= 10.0

        if score > best_score or (score == best_score and mode_width > best_width):
            best_score = score
            best_width = mode_width
            best_delim = delim

    return best_delim


def _detect_line_terminator(text: str) -> str:
    if "\r\n" in text:
        return "\r\n"
    if "\r" in text and "\n" not in text:
        return "\r"
    return "\n"


def _header_fully_quoted(text: str, delimiter: str, width: int) -> bool:
    first = next((line for line in text.splitlines() if line.strip()), "")
    if len(first) < 2 or not (first.startswith('"') and first.endswith('"')):
        return False
    return first.count(f'"{delimiter}"') == width - 1


# ══════════════════════════════════════════════════════════════════════════════
# PARSING
# ══════════════════════════════════════════════════════════════════════════════

def _is_blank(row: list[str], width: int | None) -> bool:
    if not row:
        return True
    return len(row) == 1 and not row[0].strip() and width != 1


def parse_csv(
    data: bytes,
    *,
    encoding: str | None = None,
    delimiter: str | None = None,
    column_tolerance: int | None = None,
) -> Table:
    """
    Parse CSV bytes into a Table.

    ``column_tolerance`` caps how many non-empty fields a row may carry beyond
    the header width; None means any overflow is tolerated (and reported).
    """
    if not data or not data.replace(codecs.BOM_UTF8, b"").strip():
        raise ParseError(ParseError.EMPTY_INPUT, "Input is empty")

    text, used_encoding, bom = decode_bytes(data, encoding)
    if "\x00" in text:
        logger.warning("Stripping embedded null bytes from input")
        text = text.replace("\x00", "")
    if not text.strip():
        raise ParseError(ParseError.EMPTY_INPUT, "Input contains no data")

    delim = delimiter or detect_delimiter(text)
    logger.debug("Parsing with encoding=%s delimiter=%r", used_encoding, delim)

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delim, strict=True)
    header: list[str] | None = None
    rows: list[Row] = []
    issues: list[ParseIssue] = []

    try:
        for raw_row in reader:
            width = len(header) if header is not None else None
            if _is_blank(raw_row, width):
                continue
            if header is None:
                header = raw_row
                continue

            index = len(rows)
            fields = list(raw_row)
            if len(fields) < width:
                fields.extend([""] * (width - len(fields)))
            elif len(fields) > width:
                overflow = [(pos, value) for pos, value in enumerate(fields[width:], start=width) if value.strip()]
                if column_tolerance is not None and len(overflow) > column_tolerance:
                    raise ParseError(
                        ParseError.INCONSISTENT_COLUMNS,
                        f"Row has {len(overflow)} non-empty field(s) beyond the {width}-column header "
                        f"(tolerance {column_tolerance})",
                        line=reader.line_num,
                    )
                for pos, value in overflow:
                    issues.append(ParseIssue(index, f"[col {pos + 1}]", value, "Field beyond header width dropped"))
                fields = fields[:width]
            rows.append(Row(index, tuple(fields)))
    except csv.Error as exc:
        message = str(exc)
        kind = ParseError.UNTERMINATED_QUOTE if "unexpected end of data" in message else ParseError.MALFORMED_QUOTE
        raise ParseError(kind, f"Malformed CSV quoting: {message}", line=reader.line_num) from exc

    if header is None:
        raise ParseError(ParseError.EMPTY_INPUT, "Input has no header row")

    if issues:
        logger.warning("%d field(s) beyond the header width were dropped", len(issues))

    dialect = Dialect(
        delimiter=delim,
        quote_all=_header_fully_quoted(text, delim, len(header)),
        line_terminator=_detect_line_terminator(text),
        encoding=used_encoding,
        bom=bom,
    )
    return Table(header=tuple(header), rows=tuple(rows), dialect=dialect, issues=tuple(issues))


# ══════════════════════════════════════════════════════════════════════════════
# WRITING
# ══════════════════════════════════════════════════════════════════════════════

def render_csv(table: Table) -> str:
    dialect = table.dialect
    buffer = io.StringIO(newline="")
    writer = csv.writer(
        buffer,
        delimiter=dialect.delimiter,
        quoting=csv.QUOTE_ALL if dialect.quote_all else csv.QUOTE_MINIMAL,
        lineterminator=dialect.line_terminator,
    )
    writer.writerow(table.header)
    writer.writerows(row.fields for row in table.rows)
    return buffer.getvalue()


def write_csv(table: Table) -> bytes:
    dialect = table.dialect
    text = render_csv(table)
    try:
        payload = text.encode(dialect.encoding)
    except UnicodeEncodeError as exc:
        raise EncodingError(
            f"Cleaned data cannot be written back as {dialect.encoding}: {exc.object[exc.start:exc.end]!r}",
            dialect.encoding,
        ) from exc
    if dialect.bom:
        payload = codecs.BOM_UTF8 + payload
    return payload
