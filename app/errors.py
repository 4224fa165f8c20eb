"""Exceptions shared by the record store and the workshop engines."""


class WorkshopError(Exception):
    """Base class for errors raised by this application."""


class ValidationError(WorkshopError):
    """Input rejected before any record store call was made."""


class RecordStoreError(WorkshopError):
    """The record store rejected or failed a request."""


class RecordNotFound(RecordStoreError):
    def __init__(self, table: str, record_id) -> None:
        super().__init__(f"{table} record {record_id!r} not found")
        self.table = table
        self.record_id = record_id


class CommitBlocked(WorkshopError):
    """The invoice commit gate refused to let a commit through."""

    def __init__(self, state) -> None:
        super().__init__(f"invoice commit not allowed while {state}")
        self.state = state


class DeductionFailed(RecordStoreError):
    """A stock deduction stopped part way.

    ``still_deducted`` lists the item ids whose deduction could not be undone.
    """

    def __init__(self, message: str, still_deducted=()) -> None:
        super().__init__(message)
        self.still_deducted = list(still_deducted)
