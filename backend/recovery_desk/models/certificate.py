"""Recovery certificate (RRC) model.

One row per certificate number per tenant.  Financial columns use the
workbook field names so imports and exports round-trip without a mapping
table; the Python attributes are their lower-case forms.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from recovery_desk.database import Base
from recovery_desk.models.mixins import PersistedFieldsMixin

MONEY = Numeric(14, 2)


class Certificate(PersistedFieldsMixin, Base):
    """A recovery certificate issued against one establishment."""
    __tablename__ = "rrc_certificates"
    __table_args__ = (
        UniqueConstraint("tenant_id", "RRC_NO", name="uq_rrc_tenant_number"),
        Index("ix_rrc_tenant_esta", "tenant_id", "ESTA_CODE"),
    )
    # Fetch server-side timestamps on flush; an expired column cannot lazy-load under AsyncSession.
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    regional_office_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Identity
    esta_code: Mapped[str] = mapped_column("ESTA_CODE", String(50), nullable=False)
    esta_name: Mapped[str | None] = mapped_column("ESTA_NAME", String(300), nullable=True)
    rrc_no: Mapped[str] = mapped_column("RRC_NO", String(100), nullable=False)
    rrc_date: Mapped[date | None] = mapped_column("RRC_DATE", Date, nullable=True)
    rrc_period: Mapped[str | None] = mapped_column("RRC_PERIOD", String(100), nullable=True)
    ir_nir: Mapped[str | None] = mapped_column("IR_NIR", String(20), nullable=True)
    u_s: Mapped[str | None] = mapped_column("U_S", String(100), nullable=True)
    rack_location: Mapped[str | None] = mapped_column("RACK_LOCATION", String(100), nullable=True)

    # Establishment-shared fields (identical across every certificate of one ESTA_CODE)
    ro: Mapped[str | None] = mapped_column("RO", String(100), nullable=True)
    add1: Mapped[str | None] = mapped_column("ADD1", String(300), nullable=True)
    add2: Mapped[str | None] = mapped_column("ADD2", String(300), nullable=True)
    city: Mapped[str | None] = mapped_column("CITY", String(100), nullable=True)
    dist: Mapped[str | None] = mapped_column("DIST", String(100), nullable=True)
    pin_cd: Mapped[str | None] = mapped_column("PIN_CD", String(20), nullable=True)
    circle: Mapped[str | None] = mapped_column("CIRCLE", String(100), nullable=True)
    mobile_no: Mapped[str | None] = mapped_column("MOBILE_NO", String(50), nullable=True)
    email: Mapped[str | None] = mapped_column("EMAIL", String(200), nullable=True)
    status: Mapped[str | None] = mapped_column("STATUS", String(100), nullable=True)
    esta_pan: Mapped[str | None] = mapped_column("ESTA_PAN", String(20), nullable=True)
    cp_1_date: Mapped[date | None] = mapped_column("CP_1_DATE", Date, nullable=True)
    remarks: Mapped[str | None] = mapped_column("REMARKS", Text, nullable=True)
    enforcement_officer: Mapped[str | None] = mapped_column("ENFORCEMENT_OFFICER", String(200), nullable=True)

    # Demand
    demand_7a_account_1_ee: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_1_EE", MONEY, default=0)
    demand_7a_account_1_er: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_1_ER", MONEY, default=0)
    demand_7a_account_10: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_10", MONEY, default=0)
    demand_7a_account_21: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_21", MONEY, default=0)
    demand_7a_account_2: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_2", MONEY, default=0)
    demand_7a_account_22: Mapped[float] = mapped_column("DEMAND_7A_ACCOUNT_22", MONEY, default=0)
    demand_14b_account_1: Mapped[float] = mapped_column("DEMAND_14B_ACCOUNT_1", MONEY, default=0)
    demand_14b_account_10: Mapped[float] = mapped_column("DEMAND_14B_ACCOUNT_10", MONEY, default=0)
    demand_14b_account_21: Mapped[float] = mapped_column("DEMAND_14B_ACCOUNT_21", MONEY, default=0)
    demand_14b_account_2: Mapped[float] = mapped_column("DEMAND_14B_ACCOUNT_2", MONEY, default=0)
    demand_14b_account_22: Mapped[float] = mapped_column("DEMAND_14B_ACCOUNT_22", MONEY, default=0)
    demand_7q_account_1: Mapped[float] = mapped_column("DEMAND_7Q_ACCOUNT_1", MONEY, default=0)
    demand_7q_account_10: Mapped[float] = mapped_column("DEMAND_7Q_ACCOUNT_10", MONEY, default=0)
    demand_7q_account_21: Mapped[float] = mapped_column("DEMAND_7Q_ACCOUNT_21", MONEY, default=0)
    demand_7q_account_2: Mapped[float] = mapped_column("DEMAND_7Q_ACCOUNT_2", MONEY, default=0)
    demand_7q_account_22: Mapped[float] = mapped_column("DEMAND_7Q_ACCOUNT_22", MONEY, default=0)
    demand_7a: Mapped[float] = mapped_column("DEMAND_7A", MONEY, default=0)
    demand_14b: Mapped[float] = mapped_column("DEMAND_14B", MONEY, default=0)
    demand_7q: Mapped[float] = mapped_column("DEMAND_7Q", MONEY, default=0)
    demand_total: Mapped[float] = mapped_column("DEMAND_TOTAL", MONEY, default=0)

    # Recovered (re-summed from ledger entries)
    recovery_7a_account_1_ee: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_1_EE", MONEY, default=0)
    recovery_7a_account_1_er: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_1_ER", MONEY, default=0)
    recovery_7a_account_10: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_10", MONEY, default=0)
    recovery_7a_account_21: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_21", MONEY, default=0)
    recovery_7a_account_2: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_2", MONEY, default=0)
    recovery_7a_account_22: Mapped[float] = mapped_column("RECOVERY_7A_ACCOUNT_22", MONEY, default=0)
    recovery_14b_account_1: Mapped[float] = mapped_column("RECOVERY_14B_ACCOUNT_1", MONEY, default=0)
    recovery_14b_account_10: Mapped[float] = mapped_column("RECOVERY_14B_ACCOUNT_10", MONEY, default=0)
    recovery_14b_account_21: Mapped[float] = mapped_column("RECOVERY_14B_ACCOUNT_21", MONEY, default=0)
    recovery_14b_account_2: Mapped[float] = mapped_column("RECOVERY_14B_ACCOUNT_2", MONEY, default=0)
    recovery_14b_account_22: Mapped[float] = mapped_column("RECOVERY_14B_ACCOUNT_22", MONEY, default=0)
    recovery_7q_account_1: Mapped[float] = mapped_column("RECOVERY_7Q_ACCOUNT_1", MONEY, default=0)
    recovery_7q_account_10: Mapped[float] = mapped_column("RECOVERY_7Q_ACCOUNT_10", MONEY, default=0)
    recovery_7q_account_21: Mapped[float] = mapped_column("RECOVERY_7Q_ACCOUNT_21", MONEY, default=0)
    recovery_7q_account_2: Mapped[float] = mapped_column("RECOVERY_7Q_ACCOUNT_2", MONEY, default=0)
    recovery_7q_account_22: Mapped[float] = mapped_column("RECOVERY_7Q_ACCOUNT_22", MONEY, default=0)
    recovery_7a: Mapped[float] = mapped_column("RECOVERY_7A", MONEY, default=0)
    recovery_14b: Mapped[float] = mapped_column("RECOVERY_14B", MONEY, default=0)
    recovery_7q: Mapped[float] = mapped_column("RECOVERY_7Q", MONEY, default=0)
    recovery_total: Mapped[float] = mapped_column("RECOVERY_TOTAL", MONEY, default=0)

    # Outstanding (derived)
    outstand_7a_account_1_ee: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_1_EE", MONEY, default=0)
    outstand_7a_account_1_er: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_1_ER", MONEY, default=0)
    outstand_7a_account_10: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_10", MONEY, default=0)
    outstand_7a_account_21: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_21", MONEY, default=0)
    outstand_7a_account_2: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_2", MONEY, default=0)
    outstand_7a_account_22: Mapped[float] = mapped_column("OUTSTAND_7A_ACCOUNT_22", MONEY, default=0)
    outstand_14b_account_1: Mapped[float] = mapped_column("OUTSTAND_14B_ACCOUNT_1", MONEY, default=0)
    outstand_14b_account_10: Mapped[float] = mapped_column("OUTSTAND_14B_ACCOUNT_10", MONEY, default=0)
    outstand_14b_account_21: Mapped[float] = mapped_column("OUTSTAND_14B_ACCOUNT_21", MONEY, default=0)
    outstand_14b_account_2: Mapped[float] = mapped_column("OUTSTAND_14B_ACCOUNT_2", MONEY, default=0)
    outstand_14b_account_22: Mapped[float] = mapped_column("OUTSTAND_14B_ACCOUNT_22", MONEY, default=0)
    outstand_7q_account_1: Mapped[float] = mapped_column("OUTSTAND_7Q_ACCOUNT_1", MONEY, default=0)
    outstand_7q_account_10: Mapped[float] = mapped_column("OUTSTAND_7Q_ACCOUNT_10", MONEY, default=0)
    outstand_7q_account_21: Mapped[float] = mapped_column("OUTSTAND_7Q_ACCOUNT_21", MONEY, default=0)
    outstand_7q_account_2: Mapped[float] = mapped_column("OUTSTAND_7Q_ACCOUNT_2", MONEY, default=0)
    outstand_7q_account_22: Mapped[float] = mapped_column("OUTSTAND_7Q_ACCOUNT_22", MONEY, default=0)
    outstand_7a: Mapped[float] = mapped_column("OUTSTAND_7A", MONEY, default=0)
    outstand_14b: Mapped[float] = mapped_column("OUTSTAND_14B", MONEY, default=0)
    outstand_7q: Mapped[float] = mapped_column("OUTSTAND_7Q", MONEY, default=0)
    outstand_total: Mapped[float] = mapped_column("OUTSTAND_TOTAL", MONEY, default=0)

    # Recovery cost (establishment level)
    recovery_cost: Mapped[float] = mapped_column("RECOVERY_COST", MONEY, default=0)
    recevied_rec_cost: Mapped[float] = mapped_column("RECEVIED_REC_COST", MONEY, default=0)
    outstand_rec_cost: Mapped[float] = mapped_column("OUTSTAND_REC_COST", MONEY, default=0)
    outstand_tot_with_rec: Mapped[float] = mapped_column("OUTSTAND_TOT_WITH_REC", MONEY, default=0)

    # Establishment rollups across live certificates
    demand_total_rrc: Mapped[float] = mapped_column("DEMAND_TOTAL_RRC", MONEY, default=0)
    recovery_total_rrc: Mapped[float] = mapped_column("RECOVERY_TOTAL_RRC", MONEY, default=0)
    outstand_total_rrc: Mapped[float] = mapped_column("OUTSTAND_TOTAL_RRC", MONEY, default=0)
    outstand_tot_with_rec_rrc: Mapped[float] = mapped_column("OUTSTAND_TOT_WITH_REC_RRC", MONEY, default=0)

    # Trash
    is_deleted: Mapped[bool] = mapped_column("isDeleted", Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column("deletedAt", DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True,
    )
