"""SQLAlchemy models for the recovery desk."""

from recovery_desk.models.certificate import Certificate
from recovery_desk.models.ledger import LedgerEntry, InstrumentType
from recovery_desk.models.establishment import Establishment
from recovery_desk.models.error_log import ErrorLog, ErrorSeverity

__all__ = [
    "Certificate",
    "LedgerEntry",
    "InstrumentType",
    "Establishment",
    "ErrorLog",
    "ErrorSeverity",
]
