"""FastAPI middleware that records failed requests in the error_logs table.

5xx responses and unhandled exceptions are stored as errors, other 4xx
responses as warnings.  Request bodies are kept for JSON requests only;
spreadsheet uploads are never stored.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from recovery_desk.config import settings
from recovery_desk.models.error_log import ErrorSeverity
from recovery_desk.services.error_logger import log_error_standalone

logger = logging.getLogger("recovery_desk.middleware")

# Max body size to capture
_MAX_BODY_SIZE = 4096


async def _capture_body(request: Request) -> Optional[str]:
    if request.method not in ("POST", "PUT", "PATCH"):
        return None
    if not request.headers.get("content-type", "").startswith("application/json"):
        return None
    body_bytes = await request.body()
    if len(body_bytes) > _MAX_BODY_SIZE:
        return None
    return body_bytes.decode("utf-8", errors="replace")


class ErrorCaptureMiddleware(BaseHTTPMiddleware):
    """Catches unhandled exceptions, returns 500, and persists the error."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        request_body = await _capture_body(request)
        context = {
            "module": "middleware.error_capture",
            "request_method": request.method,
            "request_path": str(request.url.path),
            "request_body": request_body,
            "tenant_id": request.headers.get(settings.tenant_header),
            "regional_office_code": request.headers.get("X-Regional-Office"),
            "ip_address": request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except HTTPException:
            raise
        except Exception as exc:
            elapsed_ms = round((time.time() - start) * 1000, 2)
            await log_error_standalone(
                exc,
                severity=ErrorSeverity.CRITICAL if "database" in str(exc).lower() else ErrorSeverity.ERROR,
                status_code=500,
                response_time_ms=elapsed_ms,
                **context,
            )
            logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

        if response.status_code >= 400:
            elapsed_ms = round((time.time() - start) * 1000, 2)
            severity = ErrorSeverity.ERROR if response.status_code >= 500 else ErrorSeverity.WARNING
            await log_error_standalone(
                Exception(f"HTTP {response.status_code} on {request.method} {request.url.path}"),
                severity=severity,
                function_name="dispatch",
                status_code=response.status_code,
                response_time_ms=elapsed_ms,
                **context,
            )
        return response
