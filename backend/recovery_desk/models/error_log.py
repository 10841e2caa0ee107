"""Failed operations kept for the recovery desk's support review."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from recovery_desk.database import Base


class ErrorSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorLog(Base):
    """One failure, written by a route's ``log_error`` or by the capture middleware.

    ``esta_code``/``rrc_no`` identify the certificate a ledger or RRC
    operation was touching when it failed, so a support query can pull
    every failure for one recovery case.
    """
    __tablename__ = "error_logs"
    __table_args__ = (
        Index("ix_error_logs_tenant_created", "tenant_id", "created_at"),
        Index("ix_error_logs_certificate", "esta_code", "rrc_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    severity: Mapped[ErrorSeverity] = mapped_column(
        Enum(ErrorSeverity), default=ErrorSeverity.ERROR, nullable=False, index=True,
    )
    error_type: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    traceback: Mapped[str | None] = mapped_column(Text, nullable=True)
    module: Mapped[str | None] = mapped_column(String(300), nullable=True)
    function_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    line_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    tenant_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    regional_office_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    esta_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rrc_no: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # set by the middleware only
    request_method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    request_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    request_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_time_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
