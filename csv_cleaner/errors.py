"""Error taxonomy shared by the parser, the passes and the front ends."""

from __future__ import annotations


class CleaningError(Exception):
    """Base class for every error the cleaning pipeline raises on purpose."""


class ParseError(CleaningError):
    EMPTY_INPUT = "EmptyInput"
    INCONSISTENT_ENCODING = "InconsistentEncoding"
    UNTERMINATED_QUOTE = "UnterminatedQuote"
    MALFORMED_QUOTE = "MalformedQuote"
    INCONSISTENT_COLUMNS = "InconsistentColumns"

    def __init__(self, kind: str, message: str, line: int | None = None) -> None:
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.kind = kind
        self.line = line


class EncodingError(CleaningError):
    def __init__(self, message: str, encoding: str | None = None) -> None:
        super().__init__(message)
        self.encoding = encoding


class ConfigError(CleaningError):
    pass


class RunCancelled(CleaningError):
    """Raised when a run is superseded before it could publish its result."""
