"""Reconciliation against a real SQLAlchemy session (in-memory SQLite).

Tests cover:
- Manual certificate edits read back in full after the UPDATE is flushed
- Ledger create, update and delete through the repository queries
- Rebuilding drifted certificate balances from the ledger
- Duplicate instruments found by the SQL duplicate check
- Establishment rollups after a certificate is trashed
- Bulk import: a failed row is rolled back, committed rows stay
"""

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import recovery_desk.models  # noqa: F401  registers every table on Base.metadata
from recovery_desk.database import Base
from recovery_desk.models.certificate import Certificate
from recovery_desk.services import certificates, ledger, repository
from recovery_desk.services.errors import DuplicateEntryError
from recovery_desk.services.finance.calculator import compute_certificate_financials
from recovery_desk.services.finance.numbers import to_number
from recovery_desk.services.ledger import ALLOCATION_COLUMNS

from conftest import TENANT


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        yield db
    await engine.dispose()


async def _seed(db, rrc_no, demand, **fields):
    row = {**demand, **fields}
    certificate = Certificate(
        tenant_id=TENANT, esta_code="MHBAN001", rrc_no=rrc_no,
        esta_name="Bandra Textile Mills", is_deleted=False,
    )
    certificate.apply(row)
    certificate.apply(compute_certificate_financials(row))
    db.add(certificate)
    await db.commit()
    return certificate


@pytest_asyncio.fixture
async def seeded(session):
    first = await _seed(
        session, "RRC/1",
        {"DEMAND_7A_ACCOUNT_1_EE": 1000, "DEMAND_7A_ACCOUNT_1_ER": 500},
        RECOVERY_COST=200, RECEVIED_REC_COST=0,
    )
    second = await _seed(
        session, "RRC/2", {"DEMAND_7Q_ACCOUNT_1": 400},
        RECOVERY_COST=200, RECEVIED_REC_COST=0,
    )
    return first, second


def _payment(reference="DD1001", amount=1200, **overrides):
    data = {
        "ESTA_CODE": "MHBAN001",
        "RRC_NO": "RRC/1",
        "RECOVERY_AMOUNT": amount,
        "RECOVERY_DATE": date(2024, 3, 1),
        "DD_TRRN_DATE": date(2024, 2, 25),
        "REFERENCE_NUMBER": reference,
        "TRANSACTION_TYPE": "DD",
        "BANK_NAME": "State Bank of India",
    }
    data.update(overrides)
    return data


def _money(certificate, name):
    return to_number(certificate.get_field(name))


# ===================================================================
# Manual edits
# ===================================================================


class TestManualEdit:

    @pytest.mark.asyncio
    async def test_edited_certificate_reads_back_after_flush(self, session, seeded):
        cert, sibling = seeded

        updated = await certificates.update_certificate(
            session, TENANT, cert.id,
            {"ESTA_NAME": "Bandra Mills Ltd", "REMARKS": "Notice re-served", "DEMAND_7A_ACCOUNT_2": 250},
        )
        record = updated.to_record()
        await session.commit()

        assert record["ESTA_NAME"] == "Bandra Mills Ltd"
        assert record["REMARKS"] == "Notice re-served"
        assert record["updated_at"] is not None
        assert to_number(record["DEMAND_TOTAL"]) == 1750
        assert sibling.remarks == "Notice re-served"
        assert _money(sibling, "DEMAND_TOTAL_RRC") == 2150

    @pytest.mark.asyncio
    async def test_trash_and_restore_read_back(self, session, seeded):
        _, sibling = seeded

        trashed = await certificates.soft_delete_certificate(session, TENANT, sibling.id)
        assert trashed.to_record()["isDeleted"] is True

        restored = await certificates.restore_certificate(session, TENANT, sibling.id)
        assert restored.to_record()["deletedAt"] is None


# ===================================================================
# Ledger round trip
# ===================================================================


class TestLedgerRoundTrip:

    @pytest.mark.asyncio
    async def test_create_update_delete_restores_balances(self, session, seeded):
        cert, sibling = seeded

        entry = await ledger.create_ledger_entry(session, TENANT, _payment(amount=1300, RECOVERY_COST=100))
        assert entry.to_record()["created_at"] is not None
        assert _money(entry, "ALLOCATED_7A_ACCOUNT_1_EE") == 1000
        assert _money(entry, "ALLOCATED_7A_ACCOUNT_1_ER") == 200
        assert _money(cert, "RECOVERY_TOTAL") == 1200
        assert _money(sibling, "RECEVIED_REC_COST") == 100

        await ledger.update_ledger_entry(session, TENANT, entry.id, {"RECOVERY_AMOUNT": 600})
        assert _money(cert, "RECOVERY_TOTAL") == 500
        assert _money(cert, "OUTSTAND_7A_ACCOUNT_1_EE") == 500

        await ledger.delete_ledger_entry(session, TENANT, entry.id)

        assert await repository.list_entries(session, TENANT) == []
        assert _money(cert, "RECOVERY_TOTAL") == 0
        assert _money(cert, "OUTSTAND_TOTAL") == 1500
        for certificate in (cert, sibling):
            assert _money(certificate, "RECEVIED_REC_COST") == 0
            assert _money(certificate, "OUTSTAND_TOTAL_RRC") == 1900

    @pytest.mark.asyncio
    async def test_recalculate_repairs_drifted_balances(self, session, seeded):
        cert, sibling = seeded
        await ledger.create_ledger_entry(session, TENANT, _payment(amount=400))
        cert.apply({"RECOVERY_7A_ACCOUNT_1_EE": 0, "RECOVERY_TOTAL": 0})
        await session.commit()

        rebuilt = await ledger.recalculate(session, TENANT, "MHBAN001", "RRC/1")

        assert rebuilt is cert
        assert _money(cert, "RECOVERY_7A_ACCOUNT_1_EE") == 400
        assert _money(cert, "RECOVERY_TOTAL") == 400
        assert _money(sibling, "RECOVERY_TOTAL_RRC") == 400

    @pytest.mark.asyncio
    async def test_duplicate_instrument_found_by_query(self, session, seeded):
        await ledger.create_ledger_entry(session, TENANT, _payment("DD77", amount=100))

        with pytest.raises(DuplicateEntryError):
            await ledger.create_ledger_entry(
                session, TENANT, _payment("DD77", amount=50, RRC_NO="RRC/2"),
            )

        entries = await repository.list_entries_for_certificate(session, TENANT, "MHBAN001", "RRC/2")
        assert entries == []

    @pytest.mark.asyncio
    async def test_rollups_exclude_trashed_certificate(self, session, seeded):
        cert, sibling = seeded
        await ledger.create_ledger_entry(session, TENANT, _payment("DD1", amount=700))
        await ledger.create_ledger_entry(session, TENANT, _payment("DD2", amount=300, RRC_NO="RRC/2"))

        await certificates.soft_delete_certificate(session, TENANT, sibling.id)
        await session.commit()

        live = await repository.list_certificates(session, TENANT)
        trash = await repository.list_certificates(session, TENANT, deleted=True)
        assert [c.rrc_no for c in live] == ["RRC/1"]
        assert [c.rrc_no for c in trash] == ["RRC/2"]
        for certificate in (cert, sibling):
            assert _money(certificate, "DEMAND_TOTAL_RRC") == 1500
            assert _money(certificate, "RECOVERY_TOTAL_RRC") == 700
            assert _money(certificate, "OUTSTAND_TOTAL_RRC") == 800


# ===================================================================
# Bulk import
# ===================================================================


class TestBulkImport:

    @pytest.mark.asyncio
    async def test_failed_row_rolled_back_and_committed_rows_kept(self, session, seeded):
        def row(reference, amount, **allocation):
            values = {
                "ESTA_CODE": "MHBAN001",
                "RRC_NO": "RRC/1",
                "RECOVERY_AMOUNT": amount,
                "BANK_NAME": "Bank of Maharashtra",
                "RECOVERY_DATE": "01/03/2024",
                "DD_TRRN_DATE": "28/02/2024",
                "REFERENCE_NUMBER": reference,
                "TRANSACTION_TYPE": "TRRN",
            }
            values.update({name: 0 for name in ALLOCATION_COLUMNS})
            values.update(allocation)
            return values

        rows = [
            row("T1", 400, ALLOCATED_7A_ACCOUNT_1_EE=400),
            row("T1", 100, ALLOCATED_7A_ACCOUNT_1_EE=100),
            row("T3", 100, ALLOCATED_7A_ACCOUNT_1_EE=100, RECOVERY_COST=-50),
            row("T4", 250, ALLOCATED_7A_ACCOUNT_1_ER=250),
        ]

        result = await ledger.bulk_import_ledger_entries(session, TENANT, rows)

        assert result["records_processed"] == 2
        assert [error["row"] for error in result["errors"]] == [3, 4]
        entries = await repository.list_entries_for_certificate(session, TENANT, "MHBAN001", "RRC/1")
        assert sorted(e.reference_number for e in entries) == ["T1", "T4"]
        cert = await repository.find_certificate(session, TENANT, "MHBAN001", "RRC/1")
        assert _money(cert, "RECOVERY_TOTAL") == 650
        assert _money(cert, "OUTSTAND_TOTAL") == 850
