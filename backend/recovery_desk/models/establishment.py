"""Establishment master record: the employer behind one or more certificates."""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from recovery_desk.database import Base
from recovery_desk.models.mixins import PersistedFieldsMixin


class Establishment(PersistedFieldsMixin, Base):
    __tablename__ = "establishments"
    __table_args__ = (
        UniqueConstraint("tenant_id", "ESTA_CODE", name="uq_establishment_tenant_code"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    regional_office_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    esta_code: Mapped[str] = mapped_column("ESTA_CODE", String(50), nullable=False)
    esta_name: Mapped[str | None] = mapped_column("ESTA_NAME", String(300), nullable=True)
    add1: Mapped[str | None] = mapped_column("ADD1", String(300), nullable=True)
    add2: Mapped[str | None] = mapped_column("ADD2", String(300), nullable=True)
    city: Mapped[str | None] = mapped_column("CITY", String(100), nullable=True)
    dist: Mapped[str | None] = mapped_column("DIST", String(100), nullable=True)
    pin_code: Mapped[str | None] = mapped_column("PIN_CODE", String(20), nullable=True)
    circle: Mapped[str | None] = mapped_column("CIRCLE", String(100), nullable=True)
    mobile_no: Mapped[str | None] = mapped_column("MOBILE_NO", String(50), nullable=True)
    email: Mapped[str | None] = mapped_column("EMAIL", String(200), nullable=True)
    status: Mapped[str | None] = mapped_column("STATUS", String(100), nullable=True)
    establishment_pan: Mapped[str | None] = mapped_column("ESTABLISHMENT_PAN", String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True,
    )
