"""Error taxonomy for the extraction engine."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every extraction failure."""


class SelectorMiss(ExtractionError):
    """No candidate selector matched and no literal fallback was configured."""

    def __init__(self, field: str) -> None:
        super().__init__(f"no selector matched for field {field!r}")
        self.field = field


class FilterFailure(ExtractionError):
    """A filter rejected its input. Carries the owning field once attributed."""

    def __init__(self, filter_name: str, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.filter_name = filter_name
        self.message = message
        self.field = field

    def __str__(self) -> str:
        prefix = f"field {self.field!r}: " if self.field else ""
        return f"{prefix}{self.filter_name}: {self.message}"


class AssertionMismatch(ExtractionError):
    """A stage's consistency assertion failed; the whole extraction aborts."""

    def __init__(self, stage: int, field: str, expected: object, actual: object) -> None:
        super().__init__(
            f"stage {stage}: field {field!r} expected {expected!r}, got {actual!r}"
        )
        self.stage = stage
        self.field = field
        self.expected = expected
        self.actual = actual


class ParseError(ExtractionError):
    """The document is missing or lacks a required structural anchor."""


class InvalidSelector(ExtractionError):
    """A candidate query is not valid CSS; recorded against the field like a miss."""

    def __init__(self, field: str, query: str, message: str) -> None:
        super().__init__(f"field {field!r}: invalid selector {query!r}: {message}")
        self.field = field
        self.query = query
