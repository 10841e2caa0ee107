"""Ledger entry model: one demand draft or bank transfer applied to a certificate."""

import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Index, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from recovery_desk.database import Base
from recovery_desk.models.mixins import PersistedFieldsMixin
from recovery_desk.services.finance.fields import ALLOCATED, metric_fields

MONEY = Numeric(14, 2)


class InstrumentType(str, enum.Enum):
    DD = "DD"
    TRRN = "TRRN"


class LedgerEntry(PersistedFieldsMixin, Base):
    """A recorded payment and how it was split across sub-accounts.

    The certificate is referenced by value (tenant, ESTA_CODE, RRC_NO), not
    by foreign key, so entries survive a certificate being re-imported.
    """
    __tablename__ = "recovery_entries"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "REFERENCE_NUMBER", "DD_TRRN_DATE", name="uq_recovery_instrument",
        ),
        Index("ix_recovery_certificate", "tenant_id", "ESTA_CODE", "RRC_NO"),
        Index("ix_recovery_tenant_date", "tenant_id", "RECOVERY_DATE"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    regional_office_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    esta_code: Mapped[str] = mapped_column("ESTA_CODE", String(50), nullable=False)
    rrc_no: Mapped[str] = mapped_column("RRC_NO", String(100), nullable=False)

    recovery_amount: Mapped[float] = mapped_column("RECOVERY_AMOUNT", MONEY, nullable=False)
    recovery_date: Mapped[date] = mapped_column("RECOVERY_DATE", Date, nullable=False)
    dd_trrn_date: Mapped[date] = mapped_column("DD_TRRN_DATE", Date, nullable=False)
    reference_number: Mapped[str] = mapped_column("REFERENCE_NUMBER", String(100), nullable=False)
    transaction_type: Mapped[InstrumentType] = mapped_column(
        "TRANSACTION_TYPE", Enum(InstrumentType), nullable=False,
    )
    bank_name: Mapped[str | None] = mapped_column("BANK_NAME", String(200), nullable=True)
    recovery_cost: Mapped[float] = mapped_column("RECOVERY_COST", MONEY, default=0)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Allocation breakdown
    allocated_7a_account_1_ee: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_1_EE", MONEY, default=0)
    allocated_7a_account_1_er: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_1_ER", MONEY, default=0)
    allocated_7a_account_10: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_10", MONEY, default=0)
    allocated_7a_account_21: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_21", MONEY, default=0)
    allocated_7a_account_2: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_2", MONEY, default=0)
    allocated_7a_account_22: Mapped[float] = mapped_column("ALLOCATED_7A_ACCOUNT_22", MONEY, default=0)
    allocated_14b_account_1: Mapped[float] = mapped_column("ALLOCATED_14B_ACCOUNT_1", MONEY, default=0)
    allocated_14b_account_10: Mapped[float] = mapped_column("ALLOCATED_14B_ACCOUNT_10", MONEY, default=0)
    allocated_14b_account_21: Mapped[float] = mapped_column("ALLOCATED_14B_ACCOUNT_21", MONEY, default=0)
    allocated_14b_account_2: Mapped[float] = mapped_column("ALLOCATED_14B_ACCOUNT_2", MONEY, default=0)
    allocated_14b_account_22: Mapped[float] = mapped_column("ALLOCATED_14B_ACCOUNT_22", MONEY, default=0)
    allocated_7q_account_1: Mapped[float] = mapped_column("ALLOCATED_7Q_ACCOUNT_1", MONEY, default=0)
    allocated_7q_account_10: Mapped[float] = mapped_column("ALLOCATED_7Q_ACCOUNT_10", MONEY, default=0)
    allocated_7q_account_21: Mapped[float] = mapped_column("ALLOCATED_7Q_ACCOUNT_21", MONEY, default=0)
    allocated_7q_account_2: Mapped[float] = mapped_column("ALLOCATED_7Q_ACCOUNT_2", MONEY, default=0)
    allocated_7q_account_22: Mapped[float] = mapped_column("ALLOCATED_7Q_ACCOUNT_22", MONEY, default=0)
    allocated_7a: Mapped[float] = mapped_column("ALLOCATED_7A", MONEY, default=0)
    allocated_14b: Mapped[float] = mapped_column("ALLOCATED_14B", MONEY, default=0)
    allocated_7q: Mapped[float] = mapped_column("ALLOCATED_7Q", MONEY, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True,
    )

    @property
    def allocation(self) -> dict[str, float]:
        return {name: float(value or 0) for name, value in self.snapshot(metric_fields(ALLOCATED)).items()}
