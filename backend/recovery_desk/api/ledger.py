"""Recovery ledger endpoints: payments recorded against certificates."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
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
    AllocationPreviewRequest,
    AllocationPreviewResponse,
    BulkImportResult,
    CertificateRef,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerEntryUpdate,
)
from recovery_desk.services import ledger
from recovery_desk.services.error_logger import log_error
from recovery_desk.services.errors import RecoveryDeskError
from recovery_desk.services.spreadsheet import build_workbook

router = APIRouter()


@router.post("/preview", response_model=AllocationPreviewResponse)
async def preview_allocation(
    data: AllocationPreviewRequest,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Show how a payment would be split before it is recorded."""
    try:
        try:
            return await ledger.preview_ledger_allocation(
                db, tenant_id, data.ESTA_CODE, data.RRC_NO, data.RECOVERY_AMOUNT,
                exclude_entry_id=data.recovery_id,
                recovery_cost=data.RECOVERY_COST,
            )
        except RecoveryDeskError as e:
            raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        await log_error(
            e, db=db, module="api.ledger", function_name="preview_allocation",
            tenant_id=tenant_id, esta_code=data.ESTA_CODE, rrc_no=data.RRC_NO,
        )
        raise


@router.post("/add", response_model=LedgerEntryResponse, status_code=201)
async def add_entry(
    data: LedgerEntryCreate,
    tenant_id: str = Depends(get_tenant_id),
    regional_office: Optional[str] = Depends(get_regional_office),
    db: AsyncSession = Depends(get_db),
):
    """Record a payment; the allocation is computed from current outstanding."""
    try:
        try:
            entry = await ledger.create_ledger_entry(
                db, tenant_id, data.model_dump(), regional_office_code=regional_office,
            )
        except RecoveryDeskError as e:
            raise http_error(e)
        return LedgerEntryResponse.from_entry(entry)
    except HTTPException:
        raise
    except Exception as e:
        await log_error(
            e, db=db, module="api.ledger", function_name="add_entry", tenant_id=tenant_id,
            regional_office_code=regional_office, esta_code=data.ESTA_CODE, rrc_no=data.RRC_NO,
        )
        raise


@router.get("/by-esta/{esta_code}", response_model=list[LedgerEntryResponse])
async def list_by_establishment(
    esta_code: str,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    entries = await ledger.list_entries(db, tenant_id, esta_code)
    return [LedgerEntryResponse.from_entry(entry) for entry in entries]


@router.get("/all", response_model=list[LedgerEntryResponse])
async def list_all(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    entries = await ledger.list_entries(db, tenant_id)
    return [LedgerEntryResponse.from_entry(entry) for entry in entries]


@router.post("/recalculate")
async def recalculate_certificate(
    data: CertificateRef,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Rebuild a certificate's recovered, outstanding and rollup figures from its ledger."""
    try:
        try:
            certificate = await ledger.recalculate(db, tenant_id, data.ESTA_CODE, data.RRC_NO)
        except RecoveryDeskError as e:
            raise http_error(e)
        return certificate.to_record()
    except HTTPException:
        raise
    except Exception as e:
        await log_error(
            e, db=db, module="api.ledger", function_name="recalculate_certificate",
            tenant_id=tenant_id, esta_code=data.ESTA_CODE, rrc_no=data.RRC_NO,
        )
        raise


@router.put("/{entry_id}", response_model=LedgerEntryResponse)
async def update_entry(
    entry_id: int,
    data: LedgerEntryUpdate,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Edit a payment and re-allocate it against the certificate."""
    try:
        try:
            entry = await ledger.update_ledger_entry(
                db, tenant_id, entry_id, data.model_dump(exclude_unset=True),
            )
        except RecoveryDeskError as e:
            raise http_error(e)
        return LedgerEntryResponse.from_entry(entry)
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.ledger", function_name="update_entry", tenant_id=tenant_id)
        raise


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        try:
            await ledger.delete_ledger_entry(db, tenant_id, entry_id)
        except RecoveryDeskError as e:
            raise http_error(e)
        return {"message": "Recovery transaction deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.ledger", function_name="delete_entry", tenant_id=tenant_id)
        raise


@router.post("/upload", response_model=BulkImportResult)
async def upload_entries(
    file: UploadFile = File(...),
    tenant_id: str = Depends(get_tenant_id),
    regional_office: Optional[str] = Depends(get_regional_office),
    db: AsyncSession = Depends(get_db),
):
    """Import payments with their sub-account allocations from a workbook."""
    rows = await read_upload(file)
    try:
        try:
            return await ledger.bulk_import_ledger_entries(
                db, tenant_id, rows, regional_office_code=regional_office,
            )
        except RecoveryDeskError as e:
            raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.ledger", function_name="upload_entries", tenant_id=tenant_id)
        raise


@router.get("/template")
async def download_template(
    esta_code: Optional[str] = Query(None, description="Prefill the sample row with this ESTA_CODE"),
):
    rows = ledger.template_rows()
    if esta_code:
        rows[0]["ESTA_CODE"] = esta_code
    content = build_workbook(ledger.TEMPLATE_COLUMNS, rows, sheet_name="Recovery")
    return workbook_response(content, "recovery_template.xlsx")
