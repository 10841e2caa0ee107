"""Pydantic schemas for request/response validation.

Payloads use the persisted upper-case field names (``ESTA_CODE``,
``RECOVERY_AMOUNT`` ...) so that API bodies, workbook columns and stored
records share one vocabulary.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ── Recovery ledger ───────────────────────────────────

class AllocationPreviewRequest(BaseModel):
    ESTA_CODE: str = Field(min_length=1)
    RRC_NO: str = Field(min_length=1)
    RECOVERY_AMOUNT: float = Field(ge=0)
    RECOVERY_COST: float = Field(default=0, ge=0)
    recovery_id: Optional[int] = Field(
        default=None, description="Entry being edited; its own allocation is backed out first",
    )


class CertificateRef(BaseModel):
    ESTA_CODE: str = Field(min_length=1)
    RRC_NO: str = Field(min_length=1)


class LedgerEntryCreate(BaseModel):
    ESTA_CODE: str = Field(min_length=1, max_length=50)
    RRC_NO: str = Field(min_length=1, max_length=100)
    RECOVERY_AMOUNT: float = Field(gt=0)
    RECOVERY_DATE: date
    DD_TRRN_DATE: date
    REFERENCE_NUMBER: str = Field(min_length=1, max_length=100)
    TRANSACTION_TYPE: Literal["DD", "TRRN"]
    BANK_NAME: Optional[str] = Field(default=None, max_length=200)
    RECOVERY_COST: float = Field(default=0, ge=0)
    REMARK: Optional[str] = None


class LedgerEntryUpdate(BaseModel):
    """Any subset of the editable fields; the certificate reference is fixed."""
    RECOVERY_AMOUNT: Optional[float] = Field(default=None, gt=0)
    RECOVERY_DATE: Optional[date] = None
    DD_TRRN_DATE: Optional[date] = None
    REFERENCE_NUMBER: Optional[str] = Field(default=None, min_length=1, max_length=100)
    TRANSACTION_TYPE: Optional[Literal["DD", "TRRN"]] = None
    BANK_NAME: Optional[str] = Field(default=None, max_length=200)
    RECOVERY_COST: Optional[float] = Field(default=None, ge=0)
    REMARK: Optional[str] = None


class LedgerEntryResponse(BaseModel):
    id: int
    ESTA_CODE: str
    RRC_NO: str
    RECOVERY_AMOUNT: float
    RECOVERY_DATE: date
    DD_TRRN_DATE: date
    REFERENCE_NUMBER: str
    TRANSACTION_TYPE: str
    BANK_NAME: Optional[str] = None
    RECOVERY_COST: float = 0
    remark: Optional[str] = None
    allocation: dict[str, float]
    created_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry) -> "LedgerEntryResponse":
        record = entry.to_record()
        record["allocation"] = entry.allocation
        record["TRANSACTION_TYPE"] = entry.transaction_type.value
        return cls.model_validate(record)


class AllocationPreviewResponse(BaseModel):
    allocation: dict[str, float]
    total_allocated: float
    unallocated: float
    eligible_sections: list[str]
    RECOVERY_AMOUNT: float
    RECOVERY_COST: float
    RRC_DETAILS: dict[str, Any]


class RowError(BaseModel):
    row: int
    message: str


class BulkImportResult(BaseModel):
    records_processed: int
    records_failed: int = 0
    total_records: int
    errors: list[RowError] = []


# ── Certificates (RRC) ────────────────────────────────

class CertificateImportResult(BaseModel):
    records_processed: int
    message: str


class RemarkAppend(BaseModel):
    remark: str = Field(min_length=1)
    source: Optional[str] = Field(default=None, max_length=50)


class EnforcementOfficerUpdate(BaseModel):
    pin_code: str = Field(min_length=1, max_length=20)
    enforcement_officer: Optional[str] = Field(default=None, max_length=200)


class EnforcementOfficerResult(BaseModel):
    modified_count: int
    pin_code: str
    enforcement_officer: str


class SyncResult(BaseModel):
    synced: int
    message: str


class CountResult(BaseModel):
    count: int
    message: str


# ── Establishments ────────────────────────────────────

class EstablishmentImportResult(BulkImportResult):
    synced: int = 0


class EstablishmentResponse(BaseModel):
    id: int
    ESTA_CODE: str
    ESTA_NAME: Optional[str] = None
    ADD1: Optional[str] = None
    ADD2: Optional[str] = None
    CITY: Optional[str] = None
    DIST: Optional[str] = None
    PIN_CODE: Optional[str] = None
    CIRCLE: Optional[str] = None
    MOBILE_NO: Optional[str] = None
    EMAIL: Optional[str] = None
    STATUS: Optional[str] = None
    ESTABLISHMENT_PAN: Optional[str] = None
