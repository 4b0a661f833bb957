"""Domain error hierarchy."""

from __future__ import annotations


class IndexLedgerError(Exception):
    """Base class for errors raised by the ledger core."""


class HeightOutOfRangeError(IndexLedgerError, ValueError):
    """Raised when a height does not fit the storage representation."""

    def __init__(self, value: int, *, lower: int, upper: int) -> None:
        super().__init__(f"Height {value} outside storable range [{lower}, {upper}]")
        self.value = value


class InconsistentLedgerError(IndexLedgerError):
    """Raised when stored state contradicts an invariant the schema guarantees."""


class MalformedProofError(IndexLedgerError, ValueError):
    """Raised when an inclusion proof payload cannot be interpreted."""
