"""Shared fixtures: an in-memory stand-in for the query helpers and a mock session.

Service modules reach the database only through
``recovery_desk.services.repository``; the ``fake_repo`` fixture replaces
those coroutines with list-backed versions so reconciliation can be
exercised end to end without PostgreSQL.
"""

import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest

from recovery_desk.models.certificate import Certificate
from recovery_desk.models.establishment import Establishment
from recovery_desk.models.ledger import LedgerEntry
from recovery_desk.services import repository
from recovery_desk.services.finance.calculator import compute_certificate_financials

TENANT = "ro-mumbai"


class FakeRepository:
    """List-backed implementation of the repository coroutines."""

    def __init__(self):
        self.certificates: list[Certificate] = []
        self.entries: list[LedgerEntry] = []
        self.establishments: list[Establishment] = []
        self._ids = itertools.count(1)

    # Certificates

    async def get_certificate(self, db, tenant_id, certificate_id):
        return next(
            (c for c in self.certificates if c.id == certificate_id and c.tenant_id == tenant_id),
            None,
        )

    async def find_certificate(self, db, tenant_id, esta_code, rrc_no, *, include_deleted=False):
        for c in self.certificates:
            if (c.tenant_id, c.esta_code, c.rrc_no) == (tenant_id, esta_code, rrc_no):
                if include_deleted or not c.is_deleted:
                    return c
        return None

    async def find_certificate_by_number(self, db, tenant_id, rrc_no):
        return next(
            (c for c in self.certificates if c.tenant_id == tenant_id and c.rrc_no == rrc_no),
            None,
        )

    async def list_siblings(self, db, tenant_id, esta_code, *, include_deleted=True):
        return [
            c for c in self.certificates
            if c.tenant_id == tenant_id and c.esta_code == esta_code
            and (include_deleted or not c.is_deleted)
        ]

    async def list_certificates(self, db, tenant_id, *, deleted=False):
        return [
            c for c in self.certificates
            if c.tenant_id == tenant_id and bool(c.is_deleted) == deleted
        ]

    async def active_certificate_keys(self, db, tenant_id):
        return {
            (c.esta_code, c.rrc_no) for c in self.certificates
            if c.tenant_id == tenant_id and not c.is_deleted
        }

    # Ledger entries

    async def get_entry(self, db, tenant_id, entry_id):
        return next(
            (e for e in self.entries if e.id == entry_id and e.tenant_id == tenant_id),
            None,
        )

    async def find_duplicate_entry(self, db, tenant_id, reference_number, instrument_date, *, exclude_id=None):
        for e in self.entries:
            if (
                e.tenant_id == tenant_id
                and e.reference_number == reference_number
                and e.dd_trrn_date == instrument_date
                and e.id != exclude_id
            ):
                return e
        return None

    async def list_entries_for_certificate(self, db, tenant_id, esta_code, rrc_no, *, exclude_id=None):
        return [
            e for e in self.entries
            if (e.tenant_id, e.esta_code, e.rrc_no) == (tenant_id, esta_code, rrc_no)
            and (exclude_id is None or e.id != exclude_id)
        ]

    async def list_entries(self, db, tenant_id, esta_code=None):
        return [
            e for e in self.entries
            if e.tenant_id == tenant_id and (esta_code is None or e.esta_code == esta_code)
        ]

    # Establishments

    async def find_establishment(self, db, tenant_id, esta_code):
        return next(
            (e for e in self.establishments if e.tenant_id == tenant_id and e.esta_code == esta_code),
            None,
        )

    async def list_establishments(self, db, tenant_id):
        return [e for e in self.establishments if e.tenant_id == tenant_id]

    # Writes

    def _table_for(self, instance):
        if isinstance(instance, Certificate):
            return self.certificates
        if isinstance(instance, LedgerEntry):
            return self.entries
        return self.establishments

    async def add(self, db, instance):
        if instance.id is None:
            instance.id = next(self._ids)
        if isinstance(instance, Certificate) and instance.is_deleted is None:
            instance.is_deleted = False
        self._table_for(instance).append(instance)

    async def delete(self, db, instance):
        self._table_for(instance).remove(instance)

    async def flush(self, db):
        return None

    # Test helpers

    def make_certificate(self, esta_code, rrc_no, *, demand=None, u_s=None, tenant_id=TENANT, **fields):
        """A live certificate with financials derived from *demand*."""
        certificate = Certificate(
            id=next(self._ids), tenant_id=tenant_id, esta_code=esta_code, rrc_no=rrc_no,
            esta_name=f"Establishment {esta_code}", u_s=u_s, is_deleted=False,
        )
        certificate.apply(fields)
        row = dict(demand or {})
        row.update({k: v for k, v in fields.items() if k.isupper()})
        certificate.apply(demand or {})
        certificate.apply(compute_certificate_financials(row))
        self.certificates.append(certificate)
        return certificate


_REPOSITORY_FUNCTIONS = (
    "get_certificate",
    "find_certificate",
    "find_certificate_by_number",
    "list_siblings",
    "list_certificates",
    "active_certificate_keys",
    "get_entry",
    "find_duplicate_entry",
    "list_entries_for_certificate",
    "list_entries",
    "find_establishment",
    "list_establishments",
    "add",
    "delete",
    "flush",
)


@pytest.fixture
def fake_repo(monkeypatch):
    fake = FakeRepository()
    for name in _REPOSITORY_FUNCTIONS:
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    return session
