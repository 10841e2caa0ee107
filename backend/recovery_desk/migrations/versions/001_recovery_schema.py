"""Recovery certificates, ledger entries, establishments and error logs.

Revision ID: 001
"""

import sqlalchemy as sa
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "rrc_certificates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("regional_office_code", sa.String(50), nullable=True),
        sa.Column("ESTA_CODE", sa.String(50), nullable=False),
        sa.Column("ESTA_NAME", sa.String(300), nullable=True),
        sa.Column("RRC_NO", sa.String(100), nullable=False),
        sa.Column("RRC_DATE", sa.Date(), nullable=True),
        sa.Column("RRC_PERIOD", sa.String(100), nullable=True),
        sa.Column("IR_NIR", sa.String(20), nullable=True),
        sa.Column("U_S", sa.String(100), nullable=True),
        sa.Column("RACK_LOCATION", sa.String(100), nullable=True),
        sa.Column("RO", sa.String(100), nullable=True),
        sa.Column("ADD1", sa.String(300), nullable=True),
        sa.Column("ADD2", sa.String(300), nullable=True),
        sa.Column("CITY", sa.String(100), nullable=True),
        sa.Column("DIST", sa.String(100), nullable=True),
        sa.Column("PIN_CD", sa.String(20), nullable=True),
        sa.Column("CIRCLE", sa.String(100), nullable=True),
        sa.Column("MOBILE_NO", sa.String(50), nullable=True),
        sa.Column("EMAIL", sa.String(200), nullable=True),
        sa.Column("STATUS", sa.String(100), nullable=True),
        sa.Column("ESTA_PAN", sa.String(20), nullable=True),
        sa.Column("CP_1_DATE", sa.Date(), nullable=True),
        sa.Column("REMARKS", sa.Text(), nullable=True),
        sa.Column("ENFORCEMENT_OFFICER", sa.String(200), nullable=True),
        sa.Column("DEMAND_7A_ACCOUNT_1_EE", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A_ACCOUNT_1_ER", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7A", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_14B", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_7Q", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_TOTAL", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_1_EE", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_1_ER", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7A", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_14B", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_7Q", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_TOTAL", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_1_EE", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_1_ER", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7A", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_14B", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_7Q", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_TOTAL", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_COST", MONEY, nullable=False, server_default="0"),
        sa.Column("RECEVIED_REC_COST", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_REC_COST", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_TOT_WITH_REC", MONEY, nullable=False, server_default="0"),
        sa.Column("DEMAND_TOTAL_RRC", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_TOTAL_RRC", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_TOTAL_RRC", MONEY, nullable=False, server_default="0"),
        sa.Column("OUTSTAND_TOT_WITH_REC_RRC", MONEY, nullable=False, server_default="0"),
        sa.Column("isDeleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deletedAt", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "RRC_NO", name="uq_rrc_tenant_number"),
    )
    op.create_index("ix_rrc_certificates_tenant_id", "rrc_certificates", ["tenant_id"])
    op.create_index("ix_rrc_tenant_esta", "rrc_certificates", ["tenant_id", "ESTA_CODE"])

    op.create_table(
        "recovery_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("regional_office_code", sa.String(50), nullable=True),
        sa.Column("ESTA_CODE", sa.String(50), nullable=False),
        sa.Column("RRC_NO", sa.String(100), nullable=False),
        sa.Column("RECOVERY_AMOUNT", MONEY, nullable=False, server_default="0"),
        sa.Column("RECOVERY_DATE", sa.Date(), nullable=False),
        sa.Column("DD_TRRN_DATE", sa.Date(), nullable=False),
        sa.Column("REFERENCE_NUMBER", sa.String(100), nullable=False),
        sa.Column("TRANSACTION_TYPE", sa.Enum("DD", "TRRN", name="instrumenttype"), nullable=False),
        sa.Column("BANK_NAME", sa.String(200), nullable=True),
        sa.Column("RECOVERY_COST", MONEY, nullable=False, server_default="0"),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("ALLOCATED_7A_ACCOUNT_1_EE", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A_ACCOUNT_1_ER", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q_ACCOUNT_1", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q_ACCOUNT_10", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q_ACCOUNT_21", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q_ACCOUNT_2", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q_ACCOUNT_22", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7A", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_14B", MONEY, nullable=False, server_default="0"),
        sa.Column("ALLOCATED_7Q", MONEY, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "tenant_id", "REFERENCE_NUMBER", "DD_TRRN_DATE", name="uq_recovery_instrument",
        ),
    )
    op.create_index("ix_recovery_entries_tenant_id", "recovery_entries", ["tenant_id"])
    op.create_index("ix_recovery_certificate", "recovery_entries", ["tenant_id", "ESTA_CODE", "RRC_NO"])
    op.create_index("ix_recovery_tenant_date", "recovery_entries", ["tenant_id", "RECOVERY_DATE"])

    op.create_table(
        "establishments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("regional_office_code", sa.String(50), nullable=True),
        sa.Column("ESTA_CODE", sa.String(50), nullable=False),
        sa.Column("ESTA_NAME", sa.String(300), nullable=True),
        sa.Column("ADD1", sa.String(300), nullable=True),
        sa.Column("ADD2", sa.String(300), nullable=True),
        sa.Column("CITY", sa.String(100), nullable=True),
        sa.Column("DIST", sa.String(100), nullable=True),
        sa.Column("PIN_CODE", sa.String(20), nullable=True),
        sa.Column("CIRCLE", sa.String(100), nullable=True),
        sa.Column("MOBILE_NO", sa.String(50), nullable=True),
        sa.Column("EMAIL", sa.String(200), nullable=True),
        sa.Column("STATUS", sa.String(100), nullable=True),
        sa.Column("ESTABLISHMENT_PAN", sa.String(20), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "ESTA_CODE", name="uq_establishment_tenant_code"),
    )
    op.create_index("ix_establishments_tenant_id", "establishments", ["tenant_id"])

    op.create_table(
        "error_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "severity",
            sa.Enum("INFO", "WARNING", "ERROR", "CRITICAL", name="errorseverity"),
            nullable=False,
        ),
        sa.Column("error_type", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("traceback", sa.Text(), nullable=True),
        sa.Column("module", sa.String(300), nullable=True),
        sa.Column("function_name", sa.String(200), nullable=True),
        sa.Column("line_number", sa.Integer(), nullable=True),
        sa.Column("request_method", sa.String(10), nullable=True),
        sa.Column("request_path", sa.String(500), nullable=True),
        sa.Column("request_body", sa.Text(), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_time_ms", sa.Float(), nullable=True),
        sa.Column("tenant_id", sa.String(100), nullable=True),
        sa.Column("regional_office_code", sa.String(50), nullable=True),
        sa.Column("esta_code", sa.String(50), nullable=True),
        sa.Column("rrc_no", sa.String(100), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_error_logs_tenant_created", "error_logs", ["tenant_id", "created_at"])
    op.create_index("ix_error_logs_certificate", "error_logs", ["esta_code", "rrc_no"])
    op.create_index("ix_error_logs_severity", "error_logs", ["severity"])


def downgrade() -> None:
    op.drop_table("error_logs")
    op.drop_table("establishments")
    op.drop_table("recovery_entries")
    op.drop_table("rrc_certificates")
    sa.Enum(name="instrumenttype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="errorseverity").drop(op.get_bind(), checkfirst=True)
