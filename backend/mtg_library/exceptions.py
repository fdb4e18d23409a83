"""Errors raised by the card library."""

from typing import Optional


class LibraryError(Exception):
    """Base class for user-facing library failures."""


class QueryError(LibraryError):
    """A card search failed on the network or with a non-success response."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class InvalidCardError(LibraryError, ValueError):
    """A card with neither a name nor a source identifier was added."""


class MissingColumnError(LibraryError, ValueError):
    """A CSV import has no recognisable name column."""


class EntryNotFoundError(LibraryError, KeyError):
    """No library entry exists for the given identity and finish."""

    def __str__(self) -> str:
        return Exception.__str__(self)
