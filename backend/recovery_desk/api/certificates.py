"""RRC (recovery certificate) endpoints: import, edit, trash and fan-out updates."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.api.deps import (
    get_regional_office,
    get_tenant_id,
    http_error,
    read_upload,
    workbook_response,
)
from recovery_desk.database import get_db
from recovery_desk.schemas import (
    CertificateImportResult,
    CountResult,
    EnforcementOfficerResult,
    EnforcementOfficerUpdate,
    RemarkAppend,
    SyncResult,
)
from recovery_desk.services import certificates
from recovery_desk.services.error_logger import log_error
from recovery_desk.services.errors import RecoveryDeskError
from recovery_desk.services.spreadsheet import build_workbook

router = APIRouter()


@router.post("/upload", response_model=CertificateImportResult)
async def upload_certificates(
    file: UploadFile = File(...),
    tenant_id: str = Depends(get_tenant_id),
    regional_office: Optional[str] = Depends(get_regional_office),
    db: AsyncSession = Depends(get_db),
):
    """Upsert certificates from a workbook, keyed by RRC number."""
    rows = await read_upload(file)
    try:
        try:
            result = await certificates.import_certificates(
                db, tenant_id, rows, regional_office_code=regional_office,
            )
        except RecoveryDeskError as e:
            raise http_error(e)
        count = result["records_processed"]
        return {"records_processed": count, "message": f"Successfully uploaded {count} RRC records"}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="upload_certificates", tenant_id=tenant_id)
        raise


@router.get("/template")
async def download_template():
    content = build_workbook(certificates.template_columns(), certificates.template_rows(), sheet_name="RRC")
    return workbook_response(content, "rrc_template.xlsx")


@router.get("/")
async def list_certificates(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Live certificates, largest establishment outstanding first."""
    return [c.to_record() for c in await certificates.list_certificates(db, tenant_id)]


@router.get("/pin-codes", response_model=list[str])
async def list_pin_codes(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await certificates.list_pin_codes(db, tenant_id)


@router.get("/trash")
async def list_trash(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return [c.to_record() for c in await certificates.list_trash(db, tenant_id)]


@router.delete("/trash/clear-all", response_model=CountResult)
async def empty_trash(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        count = await certificates.empty_trash(db, tenant_id)
        return {"count": count, "message": f"Permanently deleted {count} RRC record(s) from trash"}
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="empty_trash", tenant_id=tenant_id)
        raise


@router.put("/update-enforcement-officer", response_model=EnforcementOfficerResult)
async def update_enforcement_officer(
    data: EnforcementOfficerUpdate,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Assign one enforcement officer to every establishment in a PIN code."""
    try:
        return await certificates.assign_enforcement_officer(
            db, tenant_id, data.pin_code, data.enforcement_officer,
        )
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="update_enforcement_officer", tenant_id=tenant_id)
        raise


@router.delete("/clear-all", response_model=CountResult)
async def clear_all(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Move every live certificate to trash."""
    try:
        count = await certificates.clear_all_certificates(db, tenant_id)
        return {"count": count, "message": f"Moved {count} RRC record(s) to trash"}
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="clear_all", tenant_id=tenant_id)
        raise


@router.post("/sync-establishment-data", response_model=SyncResult)
async def sync_establishment_data(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await certificates.sync_establishment_data(db, tenant_id)
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="sync_establishment_data", tenant_id=tenant_id)
        raise


@router.post("/{rrc_id}/remark")
async def append_remark(
    rrc_id: int,
    data: RemarkAppend,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Append a line to the establishment's remarks on every sibling certificate."""
    try:
        try:
            certificate = await certificates.get_certificate(db, tenant_id, rrc_id)
        except RecoveryDeskError as e:
            raise http_error(e)
        updated = await certificates.append_remark(
            db, tenant_id, certificate.esta_code, data.remark, source=data.source,
        )
        return {"modified_count": updated, "REMARKS": certificate.remarks}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="append_remark", tenant_id=tenant_id)
        raise


@router.put("/{rrc_id}")
async def update_certificate(
    rrc_id: int,
    patch: dict[str, Any] = Body(...),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Manual edit; establishment-level fields are applied to all siblings."""
    try:
        try:
            certificate = await certificates.update_certificate(db, tenant_id, rrc_id, patch)
        except RecoveryDeskError as e:
            raise http_error(e)
        return certificate.to_record()
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="update_certificate", tenant_id=tenant_id)
        raise


@router.delete("/{rrc_id}")
async def soft_delete(
    rrc_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        try:
            await certificates.soft_delete_certificate(db, tenant_id, rrc_id)
        except RecoveryDeskError as e:
            raise http_error(e)
        return {"message": "RRC moved to trash"}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="soft_delete", tenant_id=tenant_id)
        raise


@router.post("/{rrc_id}/restore")
async def restore(
    rrc_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        try:
            await certificates.restore_certificate(db, tenant_id, rrc_id)
        except RecoveryDeskError as e:
            raise http_error(e)
        return {"message": "RRC restored from trash"}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="restore", tenant_id=tenant_id)
        raise


@router.delete("/{rrc_id}/permanent")
async def purge(
    rrc_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        try:
            await certificates.purge_certificate(db, tenant_id, rrc_id)
        except RecoveryDeskError as e:
            raise http_error(e)
        return {"message": "RRC permanently deleted"}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.certificates", function_name="purge", tenant_id=tenant_id)
        raise
