"""Tests for certificate maintenance.

Tests cover:
- Workbook import: derived financials, upsert by RRC number, shared-field
  inheritance from existing siblings, row and column validation
- Manual edits: establishment fan-out, REMARKS replacement, re-derivation
- Trash state machine and its effect on establishment rollups
- PIN codes, enforcement officer assignment and establishment master sync
"""

from datetime import date

import pytest

from recovery_desk.models.establishment import Establishment
from recovery_desk.services import certificates as svc
from recovery_desk.services.errors import InvalidStateError, NotFoundError, ValidationError

from conftest import TENANT


def _row(esta_code="MHBAN001", rrc_no="RRC/1", **extra):
    row = {
        "ESTA CODE": esta_code,
        "ESTA NAME": "Acme Textiles",
        "RRC NO": rrc_no,
        "RRC DATE": "15/01/2024",
    }
    row.update(extra)
    return row


# ===================================================================
# Import
# ===================================================================


class TestImportCertificates:

    @pytest.mark.asyncio
    async def test_creates_certificates_with_financials(self, db, fake_repo):
        rows = [_row(**{
            "U/S": "7A & 14B",
            "DEMAND_7A_AC1_EE": 1000,
            "DEMAND 14B A/C 1": "250",
            "RECOVERY_7A_AC1_EE": 200,
            "RECOVERY_COST": 100,
        })]

        result = await svc.import_certificates(db, TENANT, rows, regional_office_code="MH/BAN")

        assert result["records_processed"] == 1
        cert = fake_repo.certificates[0]
        assert cert.rrc_date == date(2024, 1, 15)
        assert cert.u_s == "7A & 14B"
        assert cert.regional_office_code == "MH/BAN"
        assert cert.get_field("DEMAND_TOTAL") == 1250
        assert cert.get_field("OUTSTAND_7A_ACCOUNT_1_EE") == 800
        assert cert.get_field("OUTSTAND_TOTAL") == 1050
        assert cert.get_field("OUTSTAND_TOT_WITH_REC") == 1150
        assert cert.get_field("DEMAND_TOTAL_RRC") == 1250

    @pytest.mark.asyncio
    async def test_reimport_updates_existing_rrc(self, db, fake_repo):
        await svc.import_certificates(db, TENANT, [_row(DEMAND_7A_AC1_EE=100)])
        await svc.import_certificates(db, TENANT, [_row(DEMAND_7A_AC1_EE=900)])

        assert len(fake_repo.certificates) == 1
        assert fake_repo.certificates[0].get_field("DEMAND_TOTAL") == 900

    @pytest.mark.asyncio
    async def test_new_certificate_inherits_establishment_fields(self, db, fake_repo):
        fake_repo.make_certificate("MHBAN001", "RRC/1", CITY="Pune", RECOVERY_COST=300)

        await svc.import_certificates(db, TENANT, [_row(rrc_no="RRC/2")])

        new = next(c for c in fake_repo.certificates if c.rrc_no == "RRC/2")
        assert new.city == "Pune"
        assert new.get_field("RECOVERY_COST") == 300

    @pytest.mark.asyncio
    async def test_shared_fields_harmonized_across_batch(self, db, fake_repo):
        rows = [
            _row(rrc_no="RRC/1", CITY="Nashik", EMAIL="hr@acme.in"),
            _row(rrc_no="RRC/2"),
        ]

        await svc.import_certificates(db, TENANT, rows)

        assert {c.city for c in fake_repo.certificates} == {"Nashik"}
        assert {c.email for c in fake_repo.certificates} == {"hr@acme.in"}

    @pytest.mark.asyncio
    async def test_rollup_spans_batch(self, db, fake_repo):
        rows = [
            _row(rrc_no="RRC/1", DEMAND_7A_AC1_EE=100),
            _row(rrc_no="RRC/2", DEMAND_7Q_AC1=300),
        ]
        await svc.import_certificates(db, TENANT, rows)

        assert [c.get_field("DEMAND_TOTAL_RRC") for c in fake_repo.certificates] == [400, 400]

    @pytest.mark.asyncio
    async def test_empty_file(self, db, fake_repo):
        with pytest.raises(ValidationError, match="empty"):
            await svc.import_certificates(db, TENANT, [])

    @pytest.mark.asyncio
    async def test_missing_columns_listed(self, db, fake_repo):
        with pytest.raises(ValidationError) as exc_info:
            await svc.import_certificates(db, TENANT, [{"ESTA CODE": "X", "RRC NO": "1"}])
        assert exc_info.value.missing_columns == ["ESTA NAME", "RRC DATE"]

    @pytest.mark.asyncio
    async def test_blank_key_rejects_whole_file(self, db, fake_repo):
        rows = [_row(), _row(rrc_no=None)]

        with pytest.raises(ValidationError) as exc_info:
            await svc.import_certificates(db, TENANT, rows)

        assert exc_info.value.errors == [{"row": 3, "message": 'Required field "RRC NO" is empty'}]
        assert fake_repo.certificates == []


# ===================================================================
# Establishment fan-out
# ===================================================================


class TestSharedFields:

    @pytest.mark.asyncio
    async def test_fan_out_reaches_trashed_siblings(self, db, fake_repo):
        live = fake_repo.make_certificate("E1", "R1")
        trashed = fake_repo.make_certificate("E1", "R2", is_deleted=True)
        other = fake_repo.make_certificate("E2", "R3")

        await svc.fan_out_shared_fields(db, TENANT, "E1", {"MOBILE_NO": "9811111111"})

        assert live.mobile_no == trashed.mobile_no == "9811111111"
        assert other.mobile_no is None

    @pytest.mark.asyncio
    async def test_cost_change_refreshes_outstanding_cost(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", demand={"DEMAND_7A_ACCOUNT_1_EE": 500})

        await svc.fan_out_shared_fields(db, TENANT, "E1", {"RECOVERY_COST": 120})

        assert cert.get_field("OUTSTAND_REC_COST") == 120
        assert cert.get_field("OUTSTAND_TOT_WITH_REC") == 620

    @pytest.mark.asyncio
    async def test_rejects_certificate_level_field(self, db, fake_repo):
        with pytest.raises(ValueError):
            await svc.fan_out_shared_fields(db, TENANT, "E1", {"DEMAND_7A": 1})

    @pytest.mark.asyncio
    async def test_append_remark_plain(self, db, fake_repo):
        first = fake_repo.make_certificate("E1", "R1", REMARKS="Old note")
        second = fake_repo.make_certificate("E1", "R2", REMARKS="Old note")

        count = await svc.append_remark(db, TENANT, "E1", "  Follow up in March  ")

        assert count == 2
        assert first.remarks == second.remarks == "Old note\nFollow up in March"

    @pytest.mark.asyncio
    async def test_blank_remark_is_ignored(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", REMARKS="Kept")
        assert await svc.append_remark(db, TENANT, "E1", "   ") == 0
        assert cert.remarks == "Kept"


# ===================================================================
# Manual edit
# ===================================================================


class TestUpdateCertificate:

    @pytest.mark.asyncio
    async def test_shared_field_written_to_siblings(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1")
        sibling = fake_repo.make_certificate("E1", "R2")

        await svc.update_certificate(db, TENANT, cert.id, {"CITY": "Thane", "ESTA_NAME": "Renamed"})

        assert sibling.city == "Thane"
        assert cert.esta_name == "Renamed"
        assert sibling.esta_name == "Establishment E1"

    @pytest.mark.asyncio
    async def test_remarks_replaced_not_appended(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", REMARKS="first\nsecond")
        sibling = fake_repo.make_certificate("E1", "R2", REMARKS="first\nsecond")

        await svc.update_certificate(db, TENANT, cert.id, {"REMARKS": "rewritten"})
        assert sibling.remarks == "rewritten"

        await svc.update_certificate(db, TENANT, cert.id, {"REMARKS": None})
        assert cert.remarks == sibling.remarks == ""

    @pytest.mark.asyncio
    async def test_demand_edit_rederives_balances(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", demand={"DEMAND_7A_ACCOUNT_1_EE": 1000})
        sibling = fake_repo.make_certificate("E1", "R2", demand={"DEMAND_14B_ACCOUNT_1": 50})

        await svc.update_certificate(db, TENANT, cert.id, {
            "DEMAND_7A_ACCOUNT_1_EE": "1500",
            "OUTSTAND_TOTAL": 1,
            "DEMAND_TOTAL_RRC": 1,
        })

        assert cert.get_field("DEMAND_7A") == 1500
        assert cert.get_field("OUTSTAND_TOTAL") == 1500
        assert sibling.get_field("DEMAND_TOTAL_RRC") == 1550

    @pytest.mark.asyncio
    async def test_missing_certificate(self, db, fake_repo):
        with pytest.raises(NotFoundError, match="access denied"):
            await svc.update_certificate(db, TENANT, 404, {"CITY": "x"})

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_edit(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1")
        with pytest.raises(NotFoundError):
            await svc.update_certificate(db, "ro-pune", cert.id, {"CITY": "x"})


# ===================================================================
# Trash
# ===================================================================


class TestTrash:

    @pytest.mark.asyncio
    async def test_soft_delete_drops_certificate_from_rollup(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", demand={"DEMAND_7A_ACCOUNT_1_EE": 100})
        sibling = fake_repo.make_certificate("E1", "R2", demand={"DEMAND_7A_ACCOUNT_1_EE": 40})

        await svc.soft_delete_certificate(db, TENANT, cert.id)

        assert cert.is_deleted is True
        assert cert.deleted_at is not None
        assert sibling.get_field("DEMAND_TOTAL_RRC") == 40
        assert await svc.list_certificates(db, TENANT) == [sibling]
        assert await svc.list_trash(db, TENANT) == [cert]

    @pytest.mark.asyncio
    async def test_restore_brings_rollup_back(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", demand={"DEMAND_7A_ACCOUNT_1_EE": 100})
        sibling = fake_repo.make_certificate("E1", "R2", demand={"DEMAND_7A_ACCOUNT_1_EE": 40})
        await svc.soft_delete_certificate(db, TENANT, cert.id)

        await svc.restore_certificate(db, TENANT, cert.id)

        assert cert.is_deleted is False
        assert cert.deleted_at is None
        assert sibling.get_field("DEMAND_TOTAL_RRC") == 140

    @pytest.mark.asyncio
    async def test_invalid_transitions(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1")

        with pytest.raises(InvalidStateError, match="not in trash"):
            await svc.restore_certificate(db, TENANT, cert.id)
        with pytest.raises(InvalidStateError, match="Use regular delete first"):
            await svc.purge_certificate(db, TENANT, cert.id)

        await svc.soft_delete_certificate(db, TENANT, cert.id)
        with pytest.raises(InvalidStateError, match="already in trash"):
            await svc.soft_delete_certificate(db, TENANT, cert.id)

    @pytest.mark.asyncio
    async def test_purge_removes_trashed(self, db, fake_repo):
        cert = fake_repo.make_certificate("E1", "R1", is_deleted=True)
        await svc.purge_certificate(db, TENANT, cert.id)
        assert fake_repo.certificates == []

    @pytest.mark.asyncio
    async def test_clear_all_then_empty_trash(self, db, fake_repo):
        fake_repo.make_certificate("E1", "R1")
        fake_repo.make_certificate("E2", "R2")
        fake_repo.make_certificate("E3", "R3", tenant_id="ro-pune")

        assert await svc.clear_all_certificates(db, TENANT) == 2
        assert await svc.list_certificates(db, TENANT) == []
        assert await svc.empty_trash(db, TENANT) == 2
        assert [c.rrc_no for c in fake_repo.certificates] == ["R3"]


# ===================================================================
# PIN codes / officers / establishment sync
# ===================================================================


class TestPinCodesAndOfficers:

    @pytest.mark.asyncio
    async def test_pin_codes_sorted_unique_live_only(self, db, fake_repo):
        fake_repo.make_certificate("E1", "R1", PIN_CD="411001")
        fake_repo.make_certificate("E2", "R2", PIN_CD=" 400093 ")
        fake_repo.make_certificate("E3", "R3", PIN_CD="411001")
        fake_repo.make_certificate("E4", "R4", PIN_CD="")
        fake_repo.make_certificate("E5", "R5", PIN_CD="110001", is_deleted=True)

        assert await svc.list_pin_codes(db, TENANT) == ["400093", "411001"]

    @pytest.mark.asyncio
    async def test_assign_officer_by_pin(self, db, fake_repo):
        a = fake_repo.make_certificate("E1", "R1", PIN_CD="411001")
        b = fake_repo.make_certificate("E1", "R2", PIN_CD="411001")
        c = fake_repo.make_certificate("E2", "R3", PIN_CD="400093")

        result = await svc.assign_enforcement_officer(db, TENANT, "411001", "S. Kulkarni")

        assert result == {"modified_count": 2, "pin_code": "411001", "enforcement_officer": "S. Kulkarni"}
        assert a.enforcement_officer == b.enforcement_officer == "S. Kulkarni"
        assert c.enforcement_officer is None


class TestEstablishmentSync:

    @pytest.mark.asyncio
    async def test_no_master_data(self, db, fake_repo):
        fake_repo.make_certificate("E1", "R1")
        assert await svc.sync_establishment_data(db, TENANT) == {
            "synced": 0, "message": "No establishment data found",
        }

    @pytest.mark.asyncio
    async def test_master_fields_pushed_to_certificates(self, db, fake_repo):
        first = fake_repo.make_certificate("E1", "R1", CITY="Old")
        second = fake_repo.make_certificate("E1", "R2")
        fake_repo.establishments.append(Establishment(
            tenant_id=TENANT, esta_code="E1", city="Nagpur", pin_code="440001",
            establishment_pan="AAACN1111K",
        ))

        result = await svc.sync_establishment_data(db, TENANT)

        assert result["synced"] == 2
        assert result["message"] == "Synced establishment data to 2 RRC record(s)"
        for cert in (first, second):
            assert cert.city == "Nagpur"
            assert cert.pin_cd == "440001"
            assert cert.esta_pan == "AAACN1111K"


# ===================================================================
# Template
# ===================================================================


def test_template_columns_are_importable():
    columns = svc.template_columns()
    row = {column: None for column in columns}
    row.update(svc.template_rows()[0])

    record = svc.map_certificate_row(row)

    assert record["ESTA_CODE"] == "MHBAN0012345000"
    assert record["DEMAND_7A_ACCOUNT_1_EE"] == 10000
    assert record["U_S"] == "7A & 14B"
    assert record["RECOVERY_COST"] == 500
