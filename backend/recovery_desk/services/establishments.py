"""Establishment master data: import, listing and push to certificates."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.models.establishment import Establishment
from recovery_desk.services import repository
from recovery_desk.services.certificates import sync_establishment_data
from recovery_desk.services.errors import ValidationError
from recovery_desk.services.spreadsheet import missing_columns, pick, text

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {
    "ESTA CODE": ("ESTA CODE", "ESTA_CODE", "EST_ID"),
}

COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "ESTA_CODE": ("ESTA CODE", "ESTA_CODE", "EST_ID"),
    "ESTA_NAME": ("ESTA NAME", "ESTA_NAME", "EST_NAME"),
    "ADD1": ("ADD1", "INCROP_ADDRESS1"),
    "ADD2": ("ADD2", "INCROP_ADDRESS2"),
    "CITY": ("CITY", "INCROP_CITY"),
    "DIST": ("DIST", "DISTRICT", "INCROP_DIST"),
    "PIN_CODE": ("PIN CODE", "PIN_CODE", "INCROP_PIN"),
    "CIRCLE": ("CIRCLE", "ENF_TASK_ID"),
    "MOBILE_NO": ("MOBILE NO", "MOBILE_NO", "MOBILE_SEEDED"),
    "EMAIL": ("EMAIL", "PRIMARY_EMAIL"),
    "STATUS": ("STATUS", "EST_STATUS_NAME"),
    "ESTABLISHMENT_PAN": ("ESTABLISHMENT PAN", "ESTABLISHMENT_PAN", "PAN"),
}


def map_establishment_row(row: dict) -> dict:
    return {name: text(pick(row, *synonyms)) for name, synonyms in COLUMN_SYNONYMS.items()}


async def import_establishments(
    db: AsyncSession,
    tenant_id: str,
    rows: list[dict],
    *,
    regional_office_code: str | None = None,
) -> dict:
    """Upsert establishment rows by code, then push them onto certificates.

    Rows without a code are skipped and reported.  A later row for the same
    code overwrites an earlier one.
    """
    if not rows:
        raise ValidationError("Excel/CSV file is empty or could not be parsed")
    missing = missing_columns(rows, REQUIRED_COLUMNS)
    if missing:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing)}", missing_columns=missing,
        )

    processed = 0
    errors = []
    for index, row in enumerate(rows):
        record = map_establishment_row(row)
        if not record["ESTA_CODE"]:
            errors.append({"row": index + 2, "message": 'Required field "ESTA CODE" is empty'})
            continue

        establishment = await repository.find_establishment(db, tenant_id, record["ESTA_CODE"])
        if establishment is None:
            establishment = Establishment(tenant_id=tenant_id)
            establishment.apply(record)
            await repository.add(db, establishment)
        else:
            establishment.apply(record)
        establishment.regional_office_code = regional_office_code
        processed += 1
    await repository.flush(db)

    sync = await sync_establishment_data(db, tenant_id)
    logger.info("Imported %d establishment(s) for %s, %d row(s) skipped", processed, tenant_id, len(errors))
    return {
        "records_processed": processed,
        "records_failed": len(errors),
        "total_records": len(rows),
        "errors": errors,
        "synced": sync["synced"],
    }


async def list_establishments(db: AsyncSession, tenant_id: str) -> list[Establishment]:
    return await repository.list_establishments(db, tenant_id)


async def clear_all_establishments(db: AsyncSession, tenant_id: str) -> int:
    establishments = await repository.list_establishments(db, tenant_id)
    for establishment in establishments:
        await repository.delete(db, establishment)
    logger.info("Deleted %d establishment(s) for %s", len(establishments), tenant_id)
    return len(establishments)


def template_rows() -> list[dict]:
    return [{
        "ESTA CODE": "MHBAN0012345000",
        "ESTA NAME": "Sample Industries Pvt Ltd",
        "ADD1": "Plot 12, MIDC",
        "ADD2": "Andheri East",
        "CITY": "Mumbai",
        "DIST": "Mumbai Suburban",
        "PIN CODE": "400093",
        "CIRCLE": "Circle 3",
        "MOBILE NO": "9800000000",
        "EMAIL": "accounts@example.com",
        "STATUS": "LIVE",
        "ESTABLISHMENT PAN": "AAACS1234K",
    }]


TEMPLATE_COLUMNS = list(template_rows()[0])
