"""Persist exceptions to the ``error_logs`` table as well as the Python logger.

Routes call :func:`log_error` with their request session from a broad
``except`` before re-raising; the middleware uses
:func:`log_error_standalone`, which opens its own session.
"""

from __future__ import annotations

import logging
import traceback as tb_module
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recovery_desk.models.error_log import ErrorLog, ErrorSeverity

logger = logging.getLogger("recovery_desk.errors")


def _clip(value: object, max_len: int) -> str:
    """Printable text, truncated to the column width."""
    text = "".join(ch if (ch >= " " or ch in "\n\r\t") else " " for ch in str(value))
    return text[:max_len]


def _origin(exc: Exception) -> tuple[str | None, str | None, int | None]:
    tb = exc.__traceback__
    if tb is None:
        return None, None, None
    while tb.tb_next:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_frame.f_code.co_name, tb.tb_lineno


async def log_error(
    exc: Exception,
    *,
    db: Optional[AsyncSession] = None,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    module: Optional[str] = None,
    function_name: Optional[str] = None,
    request_method: Optional[str] = None,
    request_path: Optional[str] = None,
    request_body: Optional[str] = None,
    status_code: Optional[int] = None,
    response_time_ms: Optional[float] = None,
    tenant_id: Optional[str] = None,
    regional_office_code: Optional[str] = None,
    esta_code: Optional[str] = None,
    rrc_no: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[ErrorLog]:
    """Record *exc*; returns the stored row, or ``None`` without a usable session."""
    error_type = type(exc).__name__
    message = _clip(exc, 2000)

    line_number = None
    if not module:
        module, detected_function, line_number = _origin(exc)
        function_name = function_name or detected_function

    summary = f"[{severity.value.upper()}] {error_type}: {message}"
    if request_path:
        summary = f"{request_method or '?'} {request_path} -> {summary}"
    if tenant_id:
        summary = f"{summary} (tenant {tenant_id})"
    if esta_code or rrc_no:
        summary = f"{summary} [RRC {esta_code or '?'}/{rrc_no or '?'}]"
    logger.error(summary, exc_info=exc)

    if db is None:
        return None

    entry = ErrorLog(
        severity=severity,
        error_type=error_type,
        message=message,
        traceback=_clip("".join(tb_module.format_exception(type(exc), exc, exc.__traceback__)), 10000),
        module=_clip(module, 300) if module else None,
        function_name=_clip(function_name, 200) if function_name else None,
        line_number=line_number,
        request_method=request_method,
        request_path=_clip(request_path, 500) if request_path else None,
        request_body=_clip(request_body, 5000) if request_body else None,
        status_code=status_code,
        response_time_ms=response_time_ms,
        tenant_id=_clip(tenant_id, 100) if tenant_id else None,
        regional_office_code=_clip(regional_office_code, 50) if regional_office_code else None,
        esta_code=_clip(esta_code, 50) if esta_code else None,
        rrc_no=_clip(rrc_no, 100) if rrc_no else None,
        ip_address=_clip(ip_address, 45) if ip_address else None,
    )
    try:
        db.add(entry)
        await db.flush()
    except Exception as db_err:
        # The request's own error is already on its way up.
        logger.warning("Failed to persist error log to DB: %s", db_err)
        return None
    return entry


async def log_error_standalone(exc: Exception, **context) -> Optional[ErrorLog]:
    """:func:`log_error` in a session of its own, committed immediately."""
    from recovery_desk.database import async_session

    try:
        async with async_session() as db:
            entry = await log_error(exc, db=db, **context)
            await db.commit()
            return entry
    except Exception as db_err:
        logger.warning("Failed standalone error log: %s", db_err)
        return None
