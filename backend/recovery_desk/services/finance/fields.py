"""Statutory sections, sub-accounts and the persisted field names built from them.

Every monetary field on a certificate or ledger entry is named
``<METRIC>_<SECTION>_<ACCOUNT>`` (sub-account level) or ``<METRIC>_<SECTION>``
(section level).  These names are the import/export schema, so they are
generated here once and never spelled out by hand elsewhere.
"""

SECTION_7A = "7A"
SECTION_14B = "14B"
SECTION_7Q = "7Q"

# Storage and report order.
SECTIONS: tuple[str, ...] = (SECTION_7A, SECTION_14B, SECTION_7Q)

# Statutory precedence when a payment is distributed.
ALLOCATION_PRIORITY: tuple[str, ...] = (SECTION_7A, SECTION_7Q, SECTION_14B)

# Sub-accounts per section, listed in allocation order.
SECTION_ACCOUNTS: dict[str, tuple[str, ...]] = {
    SECTION_7A: (
        "ACCOUNT_1_EE",
        "ACCOUNT_1_ER",
        "ACCOUNT_10",
        "ACCOUNT_21",
        "ACCOUNT_2",
        "ACCOUNT_22",
    ),
    SECTION_7Q: ("ACCOUNT_1", "ACCOUNT_10", "ACCOUNT_21", "ACCOUNT_2", "ACCOUNT_22"),
    SECTION_14B: ("ACCOUNT_1", "ACCOUNT_10", "ACCOUNT_21", "ACCOUNT_2", "ACCOUNT_22"),
}

DEMAND = "DEMAND"
RECOVERY = "RECOVERY"
OUTSTAND = "OUTSTAND"
ALLOCATED = "ALLOCATED"

DEMAND_TOTAL = "DEMAND_TOTAL"
RECOVERY_TOTAL = "RECOVERY_TOTAL"
OUTSTAND_TOTAL = "OUTSTAND_TOTAL"

RECOVERY_COST = "RECOVERY_COST"
RECEIVED_REC_COST = "RECEVIED_REC_COST"  # spelling matches existing workbooks
OUTSTAND_REC_COST = "OUTSTAND_REC_COST"
OUTSTAND_TOT_WITH_REC = "OUTSTAND_TOT_WITH_REC"

DEMAND_TOTAL_RRC = "DEMAND_TOTAL_RRC"
RECOVERY_TOTAL_RRC = "RECOVERY_TOTAL_RRC"
OUTSTAND_TOTAL_RRC = "OUTSTAND_TOTAL_RRC"
OUTSTAND_TOT_WITH_REC_RRC = "OUTSTAND_TOT_WITH_REC_RRC"

GROUP_TOTAL_FIELDS: tuple[str, ...] = (
    DEMAND_TOTAL_RRC,
    RECOVERY_TOTAL_RRC,
    OUTSTAND_TOTAL_RRC,
    OUTSTAND_TOT_WITH_REC_RRC,
)

# Fields shared by every certificate of one establishment.
SHARED_FIELDS: tuple[str, ...] = (
    "RO",
    "ADD1",
    "ADD2",
    "CITY",
    "DIST",
    "PIN_CD",
    "CIRCLE",
    "MOBILE_NO",
    "EMAIL",
    "STATUS",
    "ESTA_PAN",
    "CP_1_DATE",
    "REMARKS",
    "ENFORCEMENT_OFFICER",
    RECOVERY_COST,
    RECEIVED_REC_COST,
)


def section_field(metric: str, section: str) -> str:
    return f"{metric}_{section}"


def account_field(metric: str, section: str, account: str) -> str:
    return f"{metric}_{section}_{account}"


def account_fields(metric: str, section: str | None = None) -> list[str]:
    """All sub-account field names for a metric, in allocation order per section."""
    sections = (section,) if section else SECTIONS
    return [
        account_field(metric, sec, account)
        for sec in sections
        for account in SECTION_ACCOUNTS[sec]
    ]


def section_fields(metric: str) -> list[str]:
    return [section_field(metric, sec) for sec in SECTIONS]


def metric_fields(metric: str) -> list[str]:
    """Sub-account plus section field names for one metric."""
    return account_fields(metric) + section_fields(metric)

