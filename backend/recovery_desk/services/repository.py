"""Queries shared by the certificate, ledger and establishment services.

Every query is scoped to a tenant.  Services go through these helpers rather
than building statements inline so the reconciliation steps read as a
sequence of domain operations.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.models.certificate import Certificate
from recovery_desk.models.establishment import Establishment
from recovery_desk.models.ledger import LedgerEntry


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------

async def get_certificate(db: AsyncSession, tenant_id: str, certificate_id: int) -> Certificate | None:
    result = await db.execute(
        select(Certificate).where(
            Certificate.id == certificate_id,
            Certificate.tenant_id == tenant_id,
        )
    )
    return result.scalar_one_or_none()


async def find_certificate(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    rrc_no: str,
    *,
    include_deleted: bool = False,
) -> Certificate | None:
    stmt = select(Certificate).where(
        Certificate.tenant_id == tenant_id,
        Certificate.esta_code == esta_code,
        Certificate.rrc_no == rrc_no,
    )
    if not include_deleted:
        stmt = stmt.where(Certificate.is_deleted.is_(False))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def find_certificate_by_number(db: AsyncSession, tenant_id: str, rrc_no: str) -> Certificate | None:
    result = await db.execute(
        select(Certificate).where(
            Certificate.tenant_id == tenant_id,
            Certificate.rrc_no == rrc_no,
        )
    )
    return result.scalar_one_or_none()


async def list_siblings(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    *,
    include_deleted: bool = True,
) -> list[Certificate]:
    """Every certificate sharing an establishment code."""
    stmt = select(Certificate).where(
        Certificate.tenant_id == tenant_id,
        Certificate.esta_code == esta_code,
    )
    if not include_deleted:
        stmt = stmt.where(Certificate.is_deleted.is_(False))
    result = await db.execute(stmt.order_by(Certificate.id))
    return list(result.scalars().all())


async def list_certificates(db: AsyncSession, tenant_id: str, *, deleted: bool = False) -> list[Certificate]:
    """Live certificates by group outstanding (largest first), or trash by deletion time."""
    stmt = select(Certificate).where(
        Certificate.tenant_id == tenant_id,
        Certificate.is_deleted.is_(deleted),
    )
    if deleted:
        stmt = stmt.order_by(Certificate.deleted_at.desc())
    else:
        stmt = stmt.order_by(Certificate.outstand_tot_with_rec_rrc.desc(), Certificate.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def active_certificate_keys(db: AsyncSession, tenant_id: str) -> set[tuple[str, str]]:
    result = await db.execute(
        select(Certificate.esta_code, Certificate.rrc_no).where(
            Certificate.tenant_id == tenant_id,
            Certificate.is_deleted.is_(False),
        )
    )
    return {(esta_code, rrc_no) for esta_code, rrc_no in result.all()}


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------

async def get_entry(db: AsyncSession, tenant_id: str, entry_id: int) -> LedgerEntry | None:
    result = await db.execute(
        select(LedgerEntry).where(
            LedgerEntry.id == entry_id,
            LedgerEntry.tenant_id == tenant_id,
        )
    )
    return result.scalar_one_or_none()


async def find_duplicate_entry(
    db: AsyncSession,
    tenant_id: str,
    reference_number: str,
    instrument_date: date,
    *,
    exclude_id: int | None = None,
) -> LedgerEntry | None:
    """An entry with the same instrument reference on the same calendar day."""
    stmt = select(LedgerEntry).where(
        LedgerEntry.tenant_id == tenant_id,
        LedgerEntry.reference_number == reference_number,
        LedgerEntry.dd_trrn_date == instrument_date,
    )
    if exclude_id is not None:
        stmt = stmt.where(LedgerEntry.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalars().first()


async def list_entries_for_certificate(
    db: AsyncSession,
    tenant_id: str,
    esta_code: str,
    rrc_no: str,
    *,
    exclude_id: int | None = None,
) -> list[LedgerEntry]:
    stmt = select(LedgerEntry).where(
        LedgerEntry.tenant_id == tenant_id,
        LedgerEntry.esta_code == esta_code,
        LedgerEntry.rrc_no == rrc_no,
    )
    if exclude_id is not None:
        stmt = stmt.where(LedgerEntry.id != exclude_id)
    result = await db.execute(stmt.order_by(LedgerEntry.id))
    return list(result.scalars().all())


async def list_entries(db: AsyncSession, tenant_id: str, esta_code: str | None = None) -> list[LedgerEntry]:
    """Entries newest first, optionally for one establishment."""
    stmt = select(LedgerEntry).where(LedgerEntry.tenant_id == tenant_id)
    if esta_code is not None:
        stmt = stmt.where(LedgerEntry.esta_code == esta_code)
    result = await db.execute(
        stmt.order_by(LedgerEntry.recovery_date.desc(), LedgerEntry.id.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Establishments
# ---------------------------------------------------------------------------

async def find_establishment(db: AsyncSession, tenant_id: str, esta_code: str) -> Establishment | None:
    result = await db.execute(
        select(Establishment).where(
            Establishment.tenant_id == tenant_id,
            Establishment.esta_code == esta_code,
        )
    )
    return result.scalar_one_or_none()


async def list_establishments(db: AsyncSession, tenant_id: str) -> list[Establishment]:
    result = await db.execute(
        select(Establishment)
        .where(Establishment.tenant_id == tenant_id)
        .order_by(Establishment.esta_code)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def add(db: AsyncSession, instance) -> None:
    db.add(instance)
    await db.flush()


async def delete(db: AsyncSession, instance) -> None:
    await db.delete(instance)
    await db.flush()


async def flush(db: AsyncSession) -> None:
    await db.flush()
