"""Request dependencies and domain-error translation shared by the routers."""

import io

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from recovery_desk.config import settings
from recovery_desk.services.errors import (
    ArithmeticInconsistencyError,
    BatchRRCValidationError,
    DuplicateEntryError,
    InvalidStateError,
    NotFoundError,
    RecoveryDeskError,
    ValidationError,
)
from recovery_desk.services.spreadsheet import read_rows


def get_tenant_id(request: Request) -> str:
    """Tenant key set by the authenticating proxy."""
    tenant_id = (request.headers.get(settings.tenant_header) or "").strip()
    if not tenant_id:
        raise HTTPException(status_code=400, detail=f"{settings.tenant_header} header is required")
    return tenant_id


def get_regional_office(request: Request) -> str | None:
    return request.headers.get("X-Regional-Office") or None


def http_error(exc: RecoveryDeskError) -> HTTPException:
    """Map a domain exception to the HTTP error the client sees."""
    if isinstance(exc, BatchRRCValidationError):
        return HTTPException(
            status_code=400,
            detail={"message": str(exc), "invalid_rows": exc.invalid_rows},
        )
    if isinstance(exc, ValidationError):
        if exc.missing_columns or exc.errors:
            return HTTPException(
                status_code=400,
                detail={
                    "message": str(exc),
                    "missing_columns": exc.missing_columns,
                    "errors": exc.errors,
                },
            )
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ArithmeticInconsistencyError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (DuplicateEntryError, InvalidStateError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def read_upload(file: UploadFile) -> list[dict]:
    """Read an uploaded workbook into rows, enforcing the size limit."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {settings.max_upload_size_mb} MB upload limit",
        )
    try:
        return read_rows(content, file.filename or "")
    except ValidationError as e:
        raise http_error(e)


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def workbook_response(content: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
