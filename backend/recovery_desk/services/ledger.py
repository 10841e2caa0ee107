"""
Ledger reconciler: keeps certificate balances consistent with recorded payments.

Invariants maintained after every committed mutation:
  - A certificate's RECOVERY_* fields equal the sum of the ALLOCATED_* fields
    of every ledger entry referencing it.  They are re-summed from all entries
    on each create/update/delete, never adjusted incrementally.
  - OUTSTAND_* = DEMAND_* - RECOVERY_* (unclamped) per sub-account; section
    and grand totals are sums of their parts.
  - RECEVIED_REC_COST is establishment-level and identical on every sibling.
  - *_RRC rollups on every sibling equal the sum over live siblings.
  - For entries whose allocation this module computes,
    sum(ALLOCATED sub-accounts) + RECOVERY_COST == RECOVERY_AMOUNT whenever
    the certificate has enough outstanding to absorb the payment.

Mutations on one certificate run under :func:`certificate_lock` and commit
before the lock is released.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.config import settings
from recovery_desk.models.certificate import Certificate
from recovery_desk.models.ledger import InstrumentType, LedgerEntry
from recovery_desk.services import repository
from recovery_desk.services.certificates import (
    append_remark,
    fan_out_shared_fields,
    recompute_group_totals,
    refresh_cost_fields,
)
from recovery_desk.services.errors import (
    ArithmeticInconsistencyError,
    BatchRRCValidationError,
    DuplicateEntryError,
    NotFoundError,
    RecoveryDeskError,
    ValidationError,
)
from recovery_desk.services.finance.allocation import (
    allocate,
    breakdown_from_accounts,
    preview_allocation,
    total_allocated,
)
from recovery_desk.services.finance.calculator import compute_outstanding, compute_reversal_base
from recovery_desk.services.finance.fields import (
    ALLOCATED,
    DEMAND,
    OUTSTAND,
    OUTSTAND_TOTAL,
    RECEIVED_REC_COST,
    RECOVERY,
    RECOVERY_TOTAL,
    SECTION_ACCOUNTS,
    SECTIONS,
    account_field,
    account_fields,
    metric_fields,
    section_field,
)
from recovery_desk.services.finance.numbers import to_number
from recovery_desk.services.locks import certificate_lock
from recovery_desk.services.spreadsheet import is_blank, missing_columns, parse_date, pick, text

logger = logging.getLogger(__name__)

REMARK_SOURCE = "RECOVERY"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _format_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _net_amount(amount: float, cost: float) -> float:
    """Portion of a payment left for the sub-accounts once cost is taken."""
    return max(amount - cost, 0.0)


def _sum_recovered(entries: list[LedgerEntry]) -> dict[str, float]:
    """``RECOVERY_*`` figures obtained by summing the entries' allocations."""
    recovered: dict[str, float] = {}
    for section in SECTIONS:
        section_total = 0.0
        for account in SECTION_ACCOUNTS[section]:
            amount = sum(
                to_number(entry.get_field(account_field(ALLOCATED, section, account)))
                for entry in entries
            )
            recovered[account_field(RECOVERY, section, account)] = amount
            section_total += amount
        recovered[section_field(RECOVERY, section)] = section_total
    recovered[RECOVERY_TOTAL] = sum(recovered[section_field(RECOVERY, s)] for s in SECTIONS)
    return recovered


def _current_outstanding(certificate: Certificate) -> dict:
    return certificate.snapshot(metric_fields(OUTSTAND))


async def _reversal_base(
    db: AsyncSession, tenant_id: str, certificate: Certificate, exclude_id: int,
) -> dict:
    """Outstanding as if entry *exclude_id* had never been recorded (floored at 0)."""
    others = await repository.list_entries_for_certificate(
        db, tenant_id, certificate.esta_code, certificate.rrc_no, exclude_id=exclude_id,
    )
    demand = certificate.snapshot(metric_fields(DEMAND))
    return compute_reversal_base(demand, _sum_recovered(others))


async def _require_certificate(db: AsyncSession, tenant_id: str, esta_code: str, rrc_no: str) -> Certificate:
    certificate = await repository.find_certificate(db, tenant_id, esta_code, rrc_no)
    if certificate is None:
        raise NotFoundError(f"RRC not found for ESTA_CODE: {esta_code}, RRC_NO: {rrc_no}")
    return certificate


async def _reject_duplicate(
    db: AsyncSession,
    tenant_id: str,
    reference_number: str,
    instrument_date: date,
    *,
    exclude_id: int | None = None,
) -> None:
    duplicate = await repository.find_duplicate_entry(
        db, tenant_id, reference_number, instrument_date, exclude_id=exclude_id,
    )
    if duplicate is not None:
        raise DuplicateEntryError(
            f'Duplicate recovery entry: A recovery with DD/TRRN Number "{reference_number}" '
            f'and DD/TRRN Date "{_format_date(instrument_date)}" already exists.'
        )


def _instrument_type(value: Any) -> InstrumentType:
    raw = (text(value) or "").upper()
    try:
        return InstrumentType(raw)
    except ValueError:
        raise ValidationError(f"Invalid TRANSACTION_TYPE: {raw}. Must be DD or TRRN") from None


def _required_date(data: dict, name: str) -> date:
    value = parse_date(data.get(name))
    if value is None:
        raise ValidationError(f'Required field "{name}" is empty or not a valid date')
    return value


async def _append_entry_remark(db: AsyncSession, tenant_id: str, esta_code: str, remark: str | None) -> None:
    if is_blank(remark):
        return
    try:
        await append_remark(db, tenant_id, esta_code, remark, source=REMARK_SOURCE)
    except Exception:
        logger.error("Failed to append recovery remark for %s/%s", tenant_id, esta_code, exc_info=True)


# ---------------------------------------------------------------------------
# Reconciliation steps
# ---------------------------------------------------------------------------

async def recalculate_certificate(db: AsyncSession, tenant_id: str, certificate: Certificate) -> dict:
    """Re-sum recovered amounts from all entries and re-derive outstanding."""
    entries = await repository.list_entries_for_certificate(
        db, tenant_id, certificate.esta_code, certificate.rrc_no,
    )
    recovered = _sum_recovered(entries)
    certificate.apply(recovered)

    demand = certificate.snapshot(account_fields(DEMAND))
    certificate.apply(compute_outstanding(demand, recovered))
    refresh_cost_fields(certificate)
    await repository.flush(db)

    logger.debug(
        "Re-summed %d entr(ies) for %s/%s: recovered=%.2f outstanding=%.2f",
        len(entries), certificate.esta_code, certificate.rrc_no,
        recovered[RECOVERY_TOTAL], to_number(certificate.get_field(OUTSTAND_TOTAL)),
    )
    return recovered


async def add_cost_received(
    db: AsyncSession, tenant_id: str, esta_code: str, cost: float, current: Any,
) -> None:
    """Increase the establishment's received recovery cost by *cost*."""
    if cost <= 0:
        return
    await fan_out_shared_fields(
        db, tenant_id, esta_code, {RECEIVED_REC_COST: to_number(current) + cost},
    )


async def resum_cost_received(db: AsyncSession, tenant_id: str, esta_code: str) -> float:
    """Set received recovery cost to the sum over all of the establishment's entries."""
    entries = await repository.list_entries(db, tenant_id, esta_code)
    received = sum(to_number(entry.recovery_cost) for entry in entries)
    await fan_out_shared_fields(db, tenant_id, esta_code, {RECEIVED_REC_COST: received})
    return received


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

async def create_ledger_entry(
    db: AsyncSession,
    tenant_id: str,
    data: dict,
    *,
    manual_allocation: dict | None = None,
    regional_office_code: str | None = None,
) -> LedgerEntry:
    """Record a payment against a live certificate and reconcile its balances.

    Without *manual_allocation* the payment net of ``RECOVERY_COST`` is
    distributed by the allocation engine against the certificate's current
    outstanding.  With it, the supplied sub-account figures are stored as-is;
    the caller is expected to have validated them.

    Raises:
        ValidationError: missing reference, amount, dates or a bad instrument type.
        DuplicateEntryError: same reference and instrument date already recorded.
        NotFoundError: no live certificate for (ESTA_CODE, RRC_NO).
    """
    esta_code = text(data.get("ESTA_CODE"))
    rrc_no = text(data.get("RRC_NO"))
    reference_number = text(data.get("REFERENCE_NUMBER"))
    if not esta_code or not rrc_no:
        raise ValidationError("ESTA_CODE and RRC_NO are required")
    if not reference_number:
        raise ValidationError('Required field "REFERENCE_NUMBER" is empty')
    amount = to_number(data.get("RECOVERY_AMOUNT"))
    if amount <= 0:
        raise ValidationError("RECOVERY_AMOUNT must be greater than 0")
    cost = max(to_number(data.get("RECOVERY_COST")), 0.0)
    instrument_date = _required_date(data, "DD_TRRN_DATE")
    recovery_date = _required_date(data, "RECOVERY_DATE")
    instrument_type = _instrument_type(data.get("TRANSACTION_TYPE"))

    async with certificate_lock(tenant_id, esta_code, rrc_no):
        await _reject_duplicate(db, tenant_id, reference_number, instrument_date)
        certificate = await _require_certificate(db, tenant_id, esta_code, rrc_no)

        if manual_allocation is not None:
            breakdown = breakdown_from_accounts(manual_allocation)
        else:
            breakdown = allocate(
                _net_amount(amount, cost), _current_outstanding(certificate), certificate.u_s,
            )

        entry = LedgerEntry(
            tenant_id=tenant_id,
            regional_office_code=regional_office_code,
            esta_code=esta_code,
            rrc_no=rrc_no,
            recovery_amount=amount,
            recovery_date=recovery_date,
            dd_trrn_date=instrument_date,
            reference_number=reference_number,
            transaction_type=instrument_type,
            bank_name=text(data.get("BANK_NAME")),
            recovery_cost=cost,
            remark=text(data.get("REMARK")),
        )
        entry.apply(breakdown)
        await repository.add(db, entry)

        await _append_entry_remark(db, tenant_id, esta_code, entry.remark)
        await recalculate_certificate(db, tenant_id, certificate)
        await add_cost_received(
            db, tenant_id, esta_code, cost, certificate.get_field(RECEIVED_REC_COST),
        )
        await recompute_group_totals(db, tenant_id, esta_code)
        await db.commit()

    placed = total_allocated(breakdown)
    if placed + cost < amount - settings.allocation_tolerance:
        logger.info(
            "Entry %s on %s/%s left %.2f unallocated", reference_number, esta_code, rrc_no,
            amount - cost - placed,
        )
    logger.info("Recorded %s %s of %.2f on %s/%s", instrument_type.value, reference_number, amount, esta_code, rrc_no)
    return entry


_EDITABLE_TEXT = {"BANK_NAME": "bank_name", "REMARK": "remark"}


async def update_ledger_entry(
    db: AsyncSession,
    tenant_id: str,
    entry_id: int,
    patch: dict,
) -> LedgerEntry:
    """Edit a payment and re-allocate it against the certificate as if it were new.

    The allocation base is the certificate's demand minus every *other*
    entry, floored at zero.  Received recovery cost is re-summed over all
    of the establishment's entries.  ESTA_CODE and RRC_NO cannot change.
    """
    entry = await repository.get_entry(db, tenant_id, entry_id)
    if entry is None:
        raise NotFoundError("Recovery transaction not found")

    async with certificate_lock(tenant_id, entry.esta_code, entry.rrc_no):
        amount = to_number(patch["RECOVERY_AMOUNT"]) if "RECOVERY_AMOUNT" in patch else to_number(entry.recovery_amount)
        if amount <= 0:
            raise ValidationError("RECOVERY_AMOUNT must be greater than 0")
        cost = (
            max(to_number(patch["RECOVERY_COST"]), 0.0) if "RECOVERY_COST" in patch
            else to_number(entry.recovery_cost)
        )
        reference_number = (
            text(patch["REFERENCE_NUMBER"]) if "REFERENCE_NUMBER" in patch else entry.reference_number
        )
        if not reference_number:
            raise ValidationError('Required field "REFERENCE_NUMBER" is empty')
        instrument_date = (
            _required_date(patch, "DD_TRRN_DATE") if "DD_TRRN_DATE" in patch else entry.dd_trrn_date
        )
        if "RECOVERY_DATE" in patch:
            entry.recovery_date = _required_date(patch, "RECOVERY_DATE")
        if "TRANSACTION_TYPE" in patch:
            entry.transaction_type = _instrument_type(patch["TRANSACTION_TYPE"])

        await _reject_duplicate(db, tenant_id, reference_number, instrument_date, exclude_id=entry.id)
        certificate = await _require_certificate(db, tenant_id, entry.esta_code, entry.rrc_no)

        base = await _reversal_base(db, tenant_id, certificate, entry.id)
        breakdown = allocate(_net_amount(amount, cost), base, certificate.u_s)

        previous_remark = entry.remark
        entry.recovery_amount = amount
        entry.recovery_cost = cost
        entry.reference_number = reference_number
        entry.dd_trrn_date = instrument_date
        for name, attr in _EDITABLE_TEXT.items():
            if name in patch:
                setattr(entry, attr, text(patch[name]))
        entry.apply(breakdown)
        await repository.flush(db)

        if entry.remark != previous_remark:
            await _append_entry_remark(db, tenant_id, entry.esta_code, entry.remark)
        await recalculate_certificate(db, tenant_id, certificate)
        await resum_cost_received(db, tenant_id, entry.esta_code)
        await recompute_group_totals(db, tenant_id, entry.esta_code)
        await db.commit()

    logger.info("Updated recovery entry %s on %s/%s", entry_id, entry.esta_code, entry.rrc_no)
    return entry


async def delete_ledger_entry(db: AsyncSession, tenant_id: str, entry_id: int) -> None:
    entry = await repository.get_entry(db, tenant_id, entry_id)
    if entry is None:
        raise NotFoundError("Recovery transaction not found")
    esta_code, rrc_no = entry.esta_code, entry.rrc_no

    async with certificate_lock(tenant_id, esta_code, rrc_no):
        await repository.delete(db, entry)
        # A trashed certificate still carries balances that restore brings back.
        certificate = await repository.find_certificate(
            db, tenant_id, esta_code, rrc_no, include_deleted=True,
        )
        if certificate is not None:
            await recalculate_certificate(db, tenant_id, certificate)
        else:
            logger.warning("Deleted entry %s references missing RRC %s/%s", entry_id, esta_code, rrc_no)
        await resum_cost_received(db, tenant_id, esta_code)
        await recompute_group_totals(db, tenant_id, esta_code)
        await db.commit()

    logger.info("Deleted recovery entry %s on %s/%s", entry_id, esta_code, rrc_no)


async def recalculate(db: AsyncSession, tenant_id: str, esta_code: str, rrc_no: str) -> Certificate:
    """Rebuild one certificate's recovered figures from its ledger."""
    async with certificate_lock(tenant_id, esta_code, rrc_no):
        certificate = await _require_certificate(db, tenant_id, esta_code, rrc_no)
        await recalculate_certificate(db, tenant_id, certificate)
        await resum_cost_received(db, tenant_id, esta_code)
        await recompute_group_totals(db, tenant_id, esta_code)
        await db.commit()
    return certificate


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

async def preview_ledger_allocation(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    rrc_no: str,
    amount: Any,
    *,
    exclude_entry_id: int | None = None,
    recovery_cost: Any = 0,
) -> dict:
    """The allocation a create (or, with *exclude_entry_id*, an update) would store."""
    certificate = await _require_certificate(db, tenant_id, esta_code, rrc_no)
    if exclude_entry_id is not None:
        outstanding = await _reversal_base(db, tenant_id, certificate, exclude_entry_id)
    else:
        outstanding = _current_outstanding(certificate)

    gross = to_number(amount)
    cost = max(to_number(recovery_cost), 0.0)
    result = preview_allocation(_net_amount(gross, cost), outstanding, certificate.u_s)
    result["RECOVERY_AMOUNT"] = gross
    result["RECOVERY_COST"] = cost
    result["RRC_DETAILS"] = {
        "ESTA_CODE": certificate.esta_code,
        "ESTA_NAME": certificate.esta_name,
        "RRC_NO": certificate.rrc_no,
        "U_S": certificate.u_s,
        "outstanding": {name: to_number(value) for name, value in outstanding.items()},
        OUTSTAND_TOTAL: to_number(certificate.get_field(OUTSTAND_TOTAL)),
    }
    return result


async def list_entries(db: AsyncSession, tenant_id: str, esta_code: str | None = None) -> list[LedgerEntry]:
    return await repository.list_entries(db, tenant_id, esta_code)


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "ESTA_CODE": ("ESTA_CODE", "ESTA CODE"),
    "RRC_NO": ("RRC_NO", "RRC NO"),
    "RECOVERY_AMOUNT": ("RECOVERY_AMOUNT", "RECOVERY AMOUNT"),
    "BANK_NAME": ("BANK_NAME", "BANK NAME"),
    "RECOVERY_DATE": ("RECOVERY_DATE", "RECOVERY DATE"),
    "DD_TRRN_DATE": ("DD_TRRN_DATE", "DD TRRN DATE", "DD/TRRN_DATE", "DD/TRRN DATE"),
    "REFERENCE_NUMBER": ("REFERENCE_NUMBER", "REFERENCE NUMBER"),
    "TRANSACTION_TYPE": ("TRANSACTION_TYPE", "TRANSACTION TYPE"),
}

OPTIONAL_COLUMNS: dict[str, tuple[str, ...]] = {
    "RECOVERY_COST": ("RECOVERY_COST", "RECOVERY COST"),
    "REMARK": ("REMARK", "REMARKS"),
}


def _allocation_synonyms(section: str, account: str) -> tuple[str, ...]:
    suffix = account[len("ACCOUNT_"):]
    return (
        f"{section}_AC_{suffix}",
        account_field(ALLOCATED, section, account),
        f"ALLOCATED {section} ACCOUNT {suffix}",
        f"ALLOCATED_{section}_AC{suffix}",
    )


ALLOCATION_COLUMNS: dict[str, tuple[str, ...]] = {
    account_field(ALLOCATED, section, account): _allocation_synonyms(section, account)
    for section in SECTIONS
    for account in SECTION_ACCOUNTS[section]
}

TEMPLATE_COLUMNS = list(REQUIRED_COLUMNS) + list(ALLOCATION_COLUMNS) + list(OPTIONAL_COLUMNS)


def map_ledger_row(row: dict) -> tuple[dict, dict]:
    """Split a workbook row into entry fields and its manual allocation."""
    data = {name: pick(row, *synonyms) for name, synonyms in REQUIRED_COLUMNS.items()}
    data.update({name: pick(row, *synonyms) for name, synonyms in OPTIONAL_COLUMNS.items()})
    for name in ("ESTA_CODE", "RRC_NO", "REFERENCE_NUMBER", "BANK_NAME", "REMARK"):
        data[name] = text(data[name])
    allocation = {
        name: to_number(pick(row, *synonyms)) for name, synonyms in ALLOCATION_COLUMNS.items()
    }
    return data, allocation


def validate_ledger_row(data: dict, allocation: dict, tolerance: float | None = None) -> None:
    """Per-row checks applied before the create path runs.

    Raises:
        ValidationError: blank required field, bad type, non-positive amount,
            a negative allocation or a negative recovery cost.
        ArithmeticInconsistencyError: allocations plus cost differ from the
            amount by more than *tolerance*.
    """
    if tolerance is None:
        tolerance = settings.allocation_tolerance
    empty = [name for name in REQUIRED_COLUMNS if is_blank(data.get(name))]
    if empty:
        raise ValidationError(f"Missing required field(s): {', '.join(empty)}")

    _instrument_type(data["TRANSACTION_TYPE"])
    amount = to_number(data["RECOVERY_AMOUNT"])
    if amount <= 0:
        raise ValidationError("RECOVERY_AMOUNT must be greater than 0")
    if any(value < 0 for value in allocation.values()):
        raise ValidationError("Account allocations cannot be negative")
    cost = to_number(data.get("RECOVERY_COST"))
    if cost < 0:
        raise ValidationError("RECOVERY_COST cannot be negative")

    placed = sum(allocation.values())
    expected = placed + cost
    if abs(expected - amount) > tolerance:
        raise ArithmeticInconsistencyError(
            f"Sum of account allocations ({placed:.2f}) + RECOVERY_COST ({cost:.2f}) "
            f"= {expected:.2f}, but RECOVERY_AMOUNT is {amount:.2f}"
        )


async def bulk_import_ledger_entries(
    db: AsyncSession,
    tenant_id: str,
    rows: list[dict],
    *,
    regional_office_code: str | None = None,
) -> dict:
    """Import payments with their allocations supplied per row.

    Every row's certificate must exist before anything is written; otherwise
    the whole batch is rejected with :class:`BatchRRCValidationError`.  After
    that each row goes through :func:`create_ledger_entry` on its own and row
    failures are collected, never undoing rows already committed.
    """
    if not rows:
        raise ValidationError("Excel/CSV file is empty or could not be parsed")
    required = {**REQUIRED_COLUMNS, **ALLOCATION_COLUMNS}
    missing = missing_columns(rows, required)
    if missing:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing)}", missing_columns=missing,
        )

    mapped = [map_ledger_row(row) for row in rows]

    active = await repository.active_certificate_keys(db, tenant_id)
    invalid = [
        {"row": index + 2, "ESTA_CODE": data["ESTA_CODE"], "RRC_NO": data["RRC_NO"]}
        for index, (data, _) in enumerate(mapped)
        if data["ESTA_CODE"] and data["RRC_NO"] and (data["ESTA_CODE"], data["RRC_NO"]) not in active
    ]
    if invalid:
        logger.warning("Rejected recovery import for %s: %d row(s) reference unknown RRCs", tenant_id, len(invalid))
        raise BatchRRCValidationError(invalid)

    processed = 0
    errors: list[dict] = []
    for index, (data, allocation) in enumerate(mapped):
        row_number = index + 2
        try:
            validate_ledger_row(data, allocation)
            await create_ledger_entry(
                db, tenant_id, data,
                manual_allocation=allocation,
                regional_office_code=regional_office_code,
            )
            processed += 1
        except (RecoveryDeskError, SQLAlchemyError) as exc:
            await db.rollback()
            errors.append({"row": row_number, "message": str(exc)})
            logger.info("Recovery import row %d rejected: %s", row_number, exc)

    logger.info("Recovery import for %s: %d processed, %d failed", tenant_id, processed, len(errors))
    return {
        "records_processed": processed,
        "records_failed": len(errors),
        "total_records": len(rows),
        "errors": errors,
    }


def template_rows() -> list[dict]:
    sample = {
        "ESTA_CODE": "MHBAN0012345000",
        "RRC_NO": "RRC/2024/001",
        "RECOVERY_AMOUNT": 10000.50,
        "BANK_NAME": "State Bank of India",
        "RECOVERY_DATE": date(2024, 1, 15),
        "DD_TRRN_DATE": date(2024, 1, 10),
        "REFERENCE_NUMBER": "DD123456",
        "TRANSACTION_TYPE": InstrumentType.DD.value,
        "RECOVERY_COST": 500.0,
        "REMARK": "",
    }
    sample.update({name: 0.0 for name in ALLOCATION_COLUMNS})
    sample[account_field(ALLOCATED, "7A", "ACCOUNT_1_EE")] = 5000.0
    sample[account_field(ALLOCATED, "7A", "ACCOUNT_1_ER")] = 4500.50
    return [sample]
