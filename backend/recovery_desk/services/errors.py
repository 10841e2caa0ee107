"""Exceptions raised by the recovery services.

The API layer maps each class to an HTTP status; messages are written for
the office user who submitted the request.
"""


class RecoveryDeskError(Exception):
    """Base exception for recovery service errors."""


class ValidationError(RecoveryDeskError):
    """Input rejected before any write (empty file, missing columns, bad row)."""

    def __init__(self, message: str, *, missing_columns: list[str] | None = None,
                 errors: list[dict] | None = None):
        super().__init__(message)
        self.missing_columns = missing_columns or []
        self.errors = errors or []


class DuplicateEntryError(RecoveryDeskError):
    """A ledger entry with the same instrument reference and date already exists."""


class NotFoundError(RecoveryDeskError):
    """Referenced certificate or ledger entry is absent, or in trash."""


class InvalidStateError(RecoveryDeskError):
    """Operation not allowed in the record's current trash state."""


class ArithmeticInconsistencyError(RecoveryDeskError):
    """Supplied allocations plus recovery cost do not add up to the payment."""


class BatchRRCValidationError(RecoveryDeskError):
    """An import references certificates that do not exist; nothing was written."""

    def __init__(self, invalid_rows: list[dict]):
        self.invalid_rows = invalid_rows
        lines = [
            f"Row {item['row']}: ESTA_CODE: {item['ESTA_CODE']}, RRC_NO: {item['RRC_NO']}"
            for item in invalid_rows
        ]
        super().__init__(
            f"RRC not found for {len(invalid_rows)} row(s). "
            "Upload the RRC data first, then retry the recovery import.\n"
            + "\n".join(lines)
        )
