from typing import Any


class PaginationError(Exception):
    """Base class for all errors raised by the pagination engine and its stores."""


class CursorNotFoundError(PaginationError, LookupError):
    """Raised when an ``after`` cursor does not resolve to a record.

    The cursor is presumed stale, forged, or taken from another result set.
    """

    def __init__(self, cursor: Any) -> None:
        super().__init__(f"No record found for ID {cursor!r}")
        self.cursor = cursor


class InvalidSearchPatternError(PaginationError, ValueError):
    """Raised when a search pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid search pattern {pattern!r}: {reason}")
        self.pattern = pattern


class StoreError(PaginationError):
    """Raised when the document store fails or rejects a pipeline."""
