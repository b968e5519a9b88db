"""Exception types raised by the archiver and its stores."""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for archiver failures."""


class StoreError(ArchiverError):
    """A post or comment store could not complete an operation."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class CandidateListError(ArchiverError):
    """Listing unarchived posts failed, so the whole cycle was abandoned.

    The failure has already been logged and counted in the archiver's
    stats by the time this is raised.
    """
