"""Recovery Desk API - FastAPI entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recovery_desk import models  # noqa: F401  (registers tables on Base.metadata)
from recovery_desk.api import certificates, establishments, ledger
from recovery_desk.config import settings
from recovery_desk.database import Base, engine
from recovery_desk.middleware.error_capture import ErrorCaptureMiddleware

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup (dev only); in prod use Alembic migrations."""
    if settings.environment == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Development schema ensured on %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()


app = FastAPI(
    title="Recovery Desk API",
    description="RRC allocation and reconciliation backend for wage-recovery offices",
    version=VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# Error capture middleware
app.add_middleware(ErrorCaptureMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", settings.tenant_header, "X-Regional-Office"],
)

# Routers
app.include_router(ledger.router, prefix="/api/recovery", tags=["Recovery Ledger"])
app.include_router(certificates.router, prefix="/api/rrc", tags=["RRC"])
app.include_router(establishments.router, prefix="/api/establishment", tags=["Establishments"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "recovery-desk-api", "version": VERSION}
