"""Establishment master data endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.api.deps import (
    get_regional_office,
    get_tenant_id,
    http_error,
    read_upload,
    workbook_response,
)
from recovery_desk.database import get_db
from recovery_desk.schemas import CountResult, EstablishmentImportResult, EstablishmentResponse
from recovery_desk.services import establishments
from recovery_desk.services.error_logger import log_error
from recovery_desk.services.errors import RecoveryDeskError
from recovery_desk.services.spreadsheet import build_workbook

router = APIRouter()


@router.post("/upload", response_model=EstablishmentImportResult)
async def upload_establishments(
    file: UploadFile = File(...),
    tenant_id: str = Depends(get_tenant_id),
    regional_office: Optional[str] = Depends(get_regional_office),
    db: AsyncSession = Depends(get_db),
):
    """Upsert establishment rows and push their details onto certificates."""
    rows = await read_upload(file)
    try:
        try:
            return await establishments.import_establishments(
                db, tenant_id, rows, regional_office_code=regional_office,
            )
        except RecoveryDeskError as e:
            raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        await log_error(e, db=db, module="api.establishments", function_name="upload_establishments", tenant_id=tenant_id)
        raise


@router.get("/template")
async def download_template():
    content = build_workbook(
        establishments.TEMPLATE_COLUMNS, establishments.template_rows(), sheet_name="Establishments",
    )
    return workbook_response(content, "establishment_template.xlsx")


@router.get("/", response_model=list[EstablishmentResponse])
async def list_establishments(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return [e.to_record() for e in await establishments.list_establishments(db, tenant_id)]


@router.delete("/clear-all", response_model=CountResult)
async def clear_all(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        count = await establishments.clear_all_establishments(db, tenant_id)
        return {"count": count, "message": f"Deleted {count} establishment record(s)"}
    except Exception as e:
        await log_error(e, db=db, module="api.establishments", function_name="clear_all", tenant_id=tenant_id)
        raise
