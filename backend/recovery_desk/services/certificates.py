"""Certificate (RRC) maintenance: import, edit, trash and establishment fan-out.

Fields in ``SHARED_FIELDS`` belong to the establishment, not the certificate.
They are stored on every certificate of an ESTA_CODE and must stay identical
across all of them, so every write to one goes through
:func:`fan_out_shared_fields`, which writes the same values to each sibling
(trashed ones included) and refreshes the cost-derived columns.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.models.certificate import Certificate
from recovery_desk.services import repository
from recovery_desk.services.errors import InvalidStateError, NotFoundError, ValidationError
from recovery_desk.services.finance.calculator import (
    compute_certificate_financials,
    compute_cost_recovery,
    compute_group_totals,
)
from recovery_desk.services.finance.fields import (
    DEMAND,
    DEMAND_TOTAL,
    GROUP_TOTAL_FIELDS,
    OUTSTAND,
    OUTSTAND_REC_COST,
    OUTSTAND_TOT_WITH_REC,
    OUTSTAND_TOTAL,
    RECEIVED_REC_COST,
    RECOVERY,
    RECOVERY_COST,
    RECOVERY_TOTAL,
    SECTION_ACCOUNTS,
    SECTIONS,
    SHARED_FIELDS,
    account_field,
    metric_fields,
    section_field,
)
from recovery_desk.services.finance.numbers import to_number
from recovery_desk.services.spreadsheet import is_blank, missing_columns, parse_date, pick, text

logger = logging.getLogger(__name__)

COST_FIELDS = (RECOVERY_COST, RECEIVED_REC_COST)
DATE_FIELDS = ("RRC_DATE", "CP_1_DATE")

# Derived on every write; never accepted from a caller.
COMPUTED_FIELDS = frozenset(
    [DEMAND_TOTAL, RECOVERY_TOTAL, OUTSTAND_TOTAL, OUTSTAND_REC_COST, OUTSTAND_TOT_WITH_REC]
    + metric_fields(OUTSTAND)
    + list(GROUP_TOTAL_FIELDS)
)

# Certificate-level fields a manual edit may change.
CERTIFICATE_FIELDS = frozenset(
    ["ESTA_NAME", "RRC_DATE", "RRC_PERIOD", "IR_NIR", "U_S", "RACK_LOCATION"]
    + metric_fields(DEMAND)
    + metric_fields(RECOVERY)
)

# Establishment master column -> certificate column.
ESTABLISHMENT_SYNC_MAP = {
    "ADD1": "ADD1",
    "ADD2": "ADD2",
    "CITY": "CITY",
    "DIST": "DIST",
    "PIN_CODE": "PIN_CD",
    "CIRCLE": "CIRCLE",
    "MOBILE_NO": "MOBILE_NO",
    "EMAIL": "EMAIL",
    "STATUS": "STATUS",
    "ESTABLISHMENT_PAN": "ESTA_PAN",
}


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------

def refresh_cost_fields(certificate: Certificate) -> None:
    certificate.apply(compute_cost_recovery(
        certificate.snapshot((RECOVERY_COST, RECEIVED_REC_COST, OUTSTAND_TOTAL))
    ))


def recompute_financials(certificate: Certificate) -> None:
    """Re-derive totals, outstanding and cost columns from sub-account figures."""
    row = certificate.snapshot(
        metric_fields(DEMAND) + metric_fields(RECOVERY) + [RECOVERY_COST, RECEIVED_REC_COST]
    )
    # Section figures are re-summed from sub-accounts on manual edits.
    for metric in (DEMAND, RECOVERY):
        for section in SECTIONS:
            row[section_field(metric, section)] = 0
    certificate.apply(compute_certificate_financials(row))


def _group_record(certificate: Certificate) -> dict:
    record = certificate.snapshot(
        (DEMAND_TOTAL, RECOVERY_TOTAL, OUTSTAND_TOTAL, OUTSTAND_REC_COST, OUTSTAND_TOT_WITH_REC)
    )
    record["ESTA_CODE"] = certificate.esta_code
    return record


async def recompute_group_totals(db: AsyncSession, tenant_id: str, esta_code: str) -> dict:
    """Write the establishment rollup of live certificates onto every sibling."""
    siblings = await repository.list_siblings(db, tenant_id, esta_code)
    live = [c for c in siblings if not c.is_deleted]
    group = compute_group_totals([_group_record(c) for c in live]).get(esta_code, {})
    totals = {name: group.get(name, 0.0) for name in GROUP_TOTAL_FIELDS}
    for certificate in siblings:
        certificate.apply(totals)
    await repository.flush(db)
    logger.debug("Rollup for %s/%s over %d live certificates: %s", tenant_id, esta_code, len(live), totals)
    return totals


# ---------------------------------------------------------------------------
# Establishment-shared fields
# ---------------------------------------------------------------------------

async def fan_out_shared_fields(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    values: dict[str, Any],
) -> list[Certificate]:
    """Write establishment-level *values* to every certificate of *esta_code*."""
    unknown = set(values) - set(SHARED_FIELDS)
    if unknown:
        raise ValueError(f"Not establishment-level fields: {sorted(unknown)}")

    siblings = await repository.list_siblings(db, tenant_id, esta_code)
    touches_cost = any(name in COST_FIELDS for name in values)
    for certificate in siblings:
        certificate.apply(values)
        if touches_cost:
            refresh_cost_fields(certificate)
    await repository.flush(db)
    return siblings


def _format_remark(remark: str, source: str | None) -> str:
    if source and source.strip():
        stamp = datetime.now().strftime("%d/%m/%Y, %H:%M")
        return f"[{source.strip()} - {stamp}] {remark}"
    return remark


async def append_remark(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    remark: str | None,
    source: str | None = None,
) -> int:
    """Append a line to the establishment's remarks; returns certificates touched.

    Existing remarks are never rewritten.  With *source*, the line is prefixed
    ``[SOURCE - dd/mm/yyyy, HH:MM]``.
    """
    if not esta_code or remark is None or not remark.strip():
        return 0
    line = _format_remark(remark.strip(), source)

    siblings = await repository.list_siblings(db, tenant_id, esta_code)
    for certificate in siblings:
        existing = certificate.remarks or ""
        certificate.remarks = f"{existing}\n{line}" if existing.strip() else line
    await repository.flush(db)
    logger.info("Appended remark to %d certificate(s) of %s", len(siblings), esta_code)
    return len(siblings)


async def replace_remarks(db: AsyncSession, tenant_id: str, esta_code: str, remarks: str | None) -> int:
    """Overwrite the establishment's remarks (``None`` clears them)."""
    siblings = await fan_out_shared_fields(db, tenant_id, esta_code, {"REMARKS": remarks or ""})
    return len(siblings)


async def _harmonize_shared_fields(db: AsyncSession, tenant_id: str, esta_code: str) -> None:
    """Copy the most complete sibling's shared fields to all siblings."""
    siblings = await repository.list_siblings(db, tenant_id, esta_code)
    if not siblings:
        return

    def filled(certificate: Certificate) -> int:
        return sum(1 for name in SHARED_FIELDS if not is_blank(certificate.get_field(name)))

    best = siblings[0]
    for certificate in siblings[1:]:
        if filled(certificate) > filled(best):
            best = certificate
    values = {
        name: best.get_field(name)
        for name in SHARED_FIELDS
        if not is_blank(best.get_field(name))
    }
    if values:
        await fan_out_shared_fields(db, tenant_id, esta_code, values)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

REQUIRED_COLUMNS = {
    "ESTA CODE": ("ESTA CODE", "ESTA_CODE"),
    "ESTA NAME": ("ESTA NAME", "ESTA_NAME"),
    "RRC NO": ("RRC NO", "RRC_NO"),
    "RRC DATE": ("RRC DATE", "RRC_DATE"),
}

_TEXT_COLUMNS = {
    "IR_NIR": ("IR NIR", "IR_NIR"),
    "ESTA_NAME": ("ESTA NAME", "ESTA_NAME"),
    "RRC_PERIOD": ("RRC PERIOD", "RRC_PERIOD", "PERIOD"),
    "U_S": ("U/S", "U_S", "US"),
    "RO": ("RO",),
    "ADD1": ("ADD1",),
    "ADD2": ("ADD2",),
    "CITY": ("CITY",),
    "DIST": ("DIST", "DISTRICT"),
    "PIN_CD": ("PIN Cd", "PIN_CD", "PIN CD", "PINCD"),
    "CIRCLE": ("CIRCLE",),
    "MOBILE_NO": ("MOBILE NO", "MOBILE_NO", "MOBILENO"),
    "EMAIL": ("EMAIL",),
    "STATUS": ("STATUS",),
    "ESTA_PAN": ("ESTA PAN", "ESTA_PAN", "PAN"),
    "REMARKS": ("REMARKS",),
    "ENFORCEMENT_OFFICER": (
        "Enforcement Officer", "ENFORCEMENT_OFFICER", "ENFORCEMENT OFFICER", "EnforcementOfficer",
    ),
    "RACK_LOCATION": ("RACK LOCATION", "RACK_LOCATION", "FILE LOCATION", "FILE_LOCATION"),
}


def _account_synonyms(metric: str, section: str, account: str) -> tuple[str, ...]:
    suffix = account[len("ACCOUNT_"):]
    return (
        f"{metric}_{section}_AC{suffix}",
        f"{metric} {section} A/C {suffix}",
        account_field(metric, section, account),
    )


def map_certificate_row(row: dict) -> dict:
    """Normalise one workbook row to persisted field names."""
    record: dict[str, Any] = {
        "ESTA_CODE": text(pick(row, "ESTA CODE", "ESTA_CODE")),
        "RRC_NO": text(pick(row, "RRC NO", "RRC_NO")),
        "RRC_DATE": parse_date(pick(row, "RRC DATE", "RRC_DATE")),
        "CP_1_DATE": parse_date(pick(row, "CP-1 DATE", "CP_1_DATE", "CP-1_DATE", "CP1 DATE")),
    }
    for name, synonyms in _TEXT_COLUMNS.items():
        record[name] = text(pick(row, *synonyms))

    for metric in (DEMAND, RECOVERY):
        for section in SECTIONS:
            record[section_field(metric, section)] = to_number(
                pick(row, f"{metric} {section}", section_field(metric, section))
            )
            for account in SECTION_ACCOUNTS[section]:
                record[account_field(metric, section, account)] = to_number(
                    pick(row, *_account_synonyms(metric, section, account))
                )

    # Absent cost columns stay blank so an existing establishment value survives.
    for name in COST_FIELDS:
        raw = pick(row, name, name.replace("_", " "))
        record[name] = None if raw is None else to_number(raw)
    return record


async def import_certificates(
    db: AsyncSession,
    tenant_id: str,
    rows: list[dict],
    *,
    regional_office_code: str | None = None,
) -> dict:
    """Upsert certificates from workbook rows, keyed by RRC number.

    Raises:
        ValidationError: empty file, missing columns, or rows missing an
            establishment code or certificate number.  Nothing is written.
    """
    if not rows:
        raise ValidationError("Excel/CSV file is empty or could not be parsed")
    missing = missing_columns(rows, REQUIRED_COLUMNS)
    if missing:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing)}", missing_columns=missing,
        )

    records = []
    row_errors = []
    for index, row in enumerate(rows):
        record = map_certificate_row(row)
        for label, name in (("ESTA CODE", "ESTA_CODE"), ("RRC NO", "RRC_NO")):
            if not record[name]:
                row_errors.append({"row": index + 2, "message": f'Required field "{label}" is empty'})
        record.update(compute_certificate_financials(record))
        records.append(record)
    if row_errors:
        raise ValidationError(
            "; ".join(f"Row {e['row']}: {e['message']}" for e in row_errors), errors=row_errors,
        )

    saved: list[Certificate] = []
    esta_codes: list[str] = []
    for record in records:
        esta_code = record["ESTA_CODE"]
        siblings = await repository.list_siblings(db, tenant_id, esta_code)
        if siblings:
            for name in SHARED_FIELDS:
                if is_blank(record.get(name)) and not is_blank(siblings[0].get_field(name)):
                    record[name] = siblings[0].get_field(name)
        for name in COST_FIELDS:
            if record[name] is None:
                record[name] = 0.0
        record.update(compute_cost_recovery(record))

        certificate = await repository.find_certificate_by_number(db, tenant_id, record["RRC_NO"])
        if certificate is None:
            certificate = Certificate(tenant_id=tenant_id, is_deleted=False)
            certificate.apply(record)
            await repository.add(db, certificate)
        else:
            certificate.apply(record)
        certificate.regional_office_code = regional_office_code
        saved.append(certificate)
        if esta_code not in esta_codes:
            esta_codes.append(esta_code)
    await repository.flush(db)

    for esta_code in esta_codes:
        await _harmonize_shared_fields(db, tenant_id, esta_code)
        await recompute_group_totals(db, tenant_id, esta_code)

    try:
        await sync_establishment_data(db, tenant_id)
    except Exception:
        logger.warning("Establishment sync after certificate import failed", exc_info=True)

    logger.info("Imported %d certificate(s) across %d establishment(s) for %s",
                len(saved), len(esta_codes), tenant_id)
    return {"records_processed": len(saved), "certificates": saved}


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

async def get_certificate(db: AsyncSession, tenant_id: str, certificate_id: int) -> Certificate:
    certificate = await repository.get_certificate(db, tenant_id, certificate_id)
    if certificate is None:
        raise NotFoundError("RRC not found or access denied")
    return certificate


def _coerce(name: str, value: Any) -> Any:
    if name in DATE_FIELDS:
        return parse_date(value)
    if name.startswith((f"{DEMAND}_", f"{RECOVERY}_")) or name in COST_FIELDS:
        return to_number(value)
    return value


async def update_certificate(
    db: AsyncSession,
    tenant_id: str,
    certificate_id: int,
    patch: dict[str, Any],
) -> Certificate:
    """Apply a manual edit.

    Establishment-level fields are written to every sibling; ``REMARKS`` is
    replaced, not appended.  Computed fields in *patch* are ignored and
    re-derived from the sub-account figures.
    """
    certificate = await get_certificate(db, tenant_id, certificate_id)
    esta_code = certificate.esta_code

    shared_updates: dict[str, Any] = {}
    own_updates: dict[str, Any] = {}
    for name, value in patch.items():
        if name in COMPUTED_FIELDS:
            continue
        if name in SHARED_FIELDS:
            shared_updates[name] = _coerce(name, value)
        elif name in CERTIFICATE_FIELDS:
            own_updates[name] = _coerce(name, value)
        else:
            logger.debug("Ignoring non-editable field %s on certificate %s", name, certificate_id)

    certificate.apply(own_updates)
    remarks_given = "REMARKS" in shared_updates
    remarks = shared_updates.pop("REMARKS", None)
    if shared_updates:
        await fan_out_shared_fields(db, tenant_id, esta_code, shared_updates)
    if remarks_given:
        await replace_remarks(db, tenant_id, esta_code, remarks)

    recompute_financials(certificate)
    await repository.flush(db)
    await recompute_group_totals(db, tenant_id, esta_code)
    return certificate


# ---------------------------------------------------------------------------
# Trash
# ---------------------------------------------------------------------------

async def soft_delete_certificate(db: AsyncSession, tenant_id: str, certificate_id: int) -> Certificate:
    certificate = await get_certificate(db, tenant_id, certificate_id)
    if certificate.is_deleted:
        raise InvalidStateError("RRC is already in trash")
    certificate.is_deleted = True
    certificate.deleted_at = datetime.now(timezone.utc)
    await repository.flush(db)
    await recompute_group_totals(db, tenant_id, certificate.esta_code)
    return certificate


async def restore_certificate(db: AsyncSession, tenant_id: str, certificate_id: int) -> Certificate:
    certificate = await get_certificate(db, tenant_id, certificate_id)
    if not certificate.is_deleted:
        raise InvalidStateError("RRC is not in trash")
    certificate.is_deleted = False
    certificate.deleted_at = None
    await repository.flush(db)
    await recompute_group_totals(db, tenant_id, certificate.esta_code)
    return certificate


async def purge_certificate(db: AsyncSession, tenant_id: str, certificate_id: int) -> None:
    """Permanently delete a certificate that is already in trash."""
    certificate = await get_certificate(db, tenant_id, certificate_id)
    if not certificate.is_deleted:
        raise InvalidStateError("RRC is not in trash. Use regular delete first.")
    esta_code = certificate.esta_code
    await repository.delete(db, certificate)
    await recompute_group_totals(db, tenant_id, esta_code)


async def empty_trash(db: AsyncSession, tenant_id: str) -> int:
    trashed = await repository.list_certificates(db, tenant_id, deleted=True)
    esta_codes = {c.esta_code for c in trashed}
    for certificate in trashed:
        await repository.delete(db, certificate)
    for esta_code in esta_codes:
        await recompute_group_totals(db, tenant_id, esta_code)
    return len(trashed)


async def clear_all_certificates(db: AsyncSession, tenant_id: str) -> int:
    """Move every live certificate to trash."""
    live = await repository.list_certificates(db, tenant_id, deleted=False)
    now = datetime.now(timezone.utc)
    for certificate in live:
        certificate.is_deleted = True
        certificate.deleted_at = now
    await repository.flush(db)
    for esta_code in {c.esta_code for c in live}:
        await recompute_group_totals(db, tenant_id, esta_code)
    return len(live)


async def list_certificates(db: AsyncSession, tenant_id: str) -> list[Certificate]:
    return await repository.list_certificates(db, tenant_id, deleted=False)


async def list_trash(db: AsyncSession, tenant_id: str) -> list[Certificate]:
    return await repository.list_certificates(db, tenant_id, deleted=True)


# ---------------------------------------------------------------------------
# PIN codes / enforcement officers
# ---------------------------------------------------------------------------

async def list_pin_codes(db: AsyncSession, tenant_id: str) -> list[str]:
    live = await repository.list_certificates(db, tenant_id, deleted=False)
    return sorted({str(c.pin_cd).strip() for c in live if not is_blank(c.pin_cd)})


async def assign_enforcement_officer(
    db: AsyncSession, tenant_id: str, pin_code: str, officer: str | None,
) -> dict:
    """Set the enforcement officer for every establishment in a PIN code."""
    live = await repository.list_certificates(db, tenant_id, deleted=False)
    esta_codes = sorted({c.esta_code for c in live if (c.pin_cd or "").strip() == pin_code.strip()})
    modified = 0
    for esta_code in esta_codes:
        siblings = await fan_out_shared_fields(
            db, tenant_id, esta_code, {"ENFORCEMENT_OFFICER": officer or ""},
        )
        modified += len(siblings)
    return {"modified_count": modified, "pin_code": pin_code, "enforcement_officer": officer or ""}


# ---------------------------------------------------------------------------
# Establishment master sync
# ---------------------------------------------------------------------------

async def sync_establishment_data(db: AsyncSession, tenant_id: str) -> dict:
    """Push establishment address/contact fields onto matching certificates."""
    establishments = await repository.list_establishments(db, tenant_id)
    if not establishments:
        return {"synced": 0, "message": "No establishment data found"}

    synced = 0
    for establishment in establishments:
        if not establishment.esta_code:
            continue
        values = {
            target: establishment.get_field(source)
            for source, target in ESTABLISHMENT_SYNC_MAP.items()
            if establishment.get_field(source) is not None
        }
        if not values:
            continue
        siblings = await fan_out_shared_fields(db, tenant_id, establishment.esta_code, values)
        synced += len(siblings)

    logger.info("Synced establishment data onto %d certificate(s) for %s", synced, tenant_id)
    return {"synced": synced, "message": f"Synced establishment data to {synced} RRC record(s)"}


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------

def template_columns() -> list[str]:
    columns = [
        "ESTA CODE", "IR NIR", "ESTA NAME", "RRC NO", "RRC DATE", "RRC PERIOD", "U/S",
        "RO", "ADD1", "ADD2", "CITY", "DIST", "PIN Cd", "CIRCLE", "MOBILE NO", "EMAIL",
        "STATUS", "ESTA PAN", "CP-1 DATE", "RACK LOCATION", "Enforcement Officer", "REMARKS",
    ]
    for metric in (DEMAND, RECOVERY):
        for section in SECTIONS:
            columns.extend(_account_synonyms(metric, section, account)[0] for account in SECTION_ACCOUNTS[section])
    columns.extend(COST_FIELDS)
    return columns


def template_rows() -> list[dict]:
    sample: dict[str, Any] = {name: 0.0 for name in template_columns()}
    sample.update({
        "ESTA CODE": "MHBAN0012345000",
        "IR NIR": "IR",
        "ESTA NAME": "Sample Industries Pvt Ltd",
        "RRC NO": "RRC/2024/001",
        "RRC DATE": datetime(2024, 1, 1),
        "RRC PERIOD": "04/2022 - 03/2023",
        "U/S": "7A & 14B",
        "RO": "MH/BAN",
        "ADD1": "Plot 12, MIDC",
        "ADD2": "Andheri East",
        "CITY": "Mumbai",
        "DIST": "Mumbai Suburban",
        "PIN Cd": "400093",
        "CIRCLE": "Circle 3",
        "MOBILE NO": "9800000000",
        "EMAIL": "accounts@example.com",
        "STATUS": "LIVE",
        "ESTA PAN": "AAACS1234K",
        "CP-1 DATE": datetime(2024, 2, 1),
        "RACK LOCATION": "R-01",
        "Enforcement Officer": "",
        "REMARKS": "",
        "DEMAND_7A_AC1_EE": 10000.0,
        "DEMAND_7A_AC1_ER": 12000.0,
        "DEMAND_14B_AC1": 3000.0,
        RECOVERY_COST: 500.0,
    })
    return [sample]
