"""Balance arithmetic for certificates.

All functions take flat records keyed by persisted field name and return the
derived fields; they never mutate their input.  Outstanding balances are
``demand - recovered`` with no floor, so an overpaid sub-account goes
negative.  The single exception is :func:`compute_reversal_base`, used when a
ledger entry is being re-allocated, which floors every figure at zero.  The
two modes are kept as separate functions on purpose; do not merge them.
"""

from recovery_desk.services.finance.fields import (
    DEMAND,
    DEMAND_TOTAL,
    DEMAND_TOTAL_RRC,
    OUTSTAND,
    OUTSTAND_REC_COST,
    OUTSTAND_TOT_WITH_REC,
    OUTSTAND_TOT_WITH_REC_RRC,
    OUTSTAND_TOTAL,
    OUTSTAND_TOTAL_RRC,
    RECEIVED_REC_COST,
    RECOVERY,
    RECOVERY_COST,
    RECOVERY_TOTAL,
    RECOVERY_TOTAL_RRC,
    SECTION_ACCOUNTS,
    SECTIONS,
    account_field,
    section_field,
)
from recovery_desk.services.finance.numbers import to_number


# ---------------------------------------------------------------------------
# Demand / recovery totals
# ---------------------------------------------------------------------------

def _section_totals(row: dict, metric: str, grand_total_key: str) -> dict:
    """Explicit section figure when non-zero, else the sum of its sub-accounts."""
    result: dict[str, float] = {}
    grand_total = 0.0
    for section in SECTIONS:
        explicit = to_number(row.get(section_field(metric, section)))
        if explicit:
            total = explicit
        else:
            total = sum(
                to_number(row.get(account_field(metric, section, account)))
                for account in SECTION_ACCOUNTS[section]
            )
        result[section_field(metric, section)] = total
        grand_total += total
    result[grand_total_key] = grand_total
    return result


def compute_demand_totals(row: dict) -> dict:
    return _section_totals(row, DEMAND, DEMAND_TOTAL)


def compute_recovery_totals(row: dict) -> dict:
    return _section_totals(row, RECOVERY, RECOVERY_TOTAL)


# ---------------------------------------------------------------------------
# Outstanding balances
# ---------------------------------------------------------------------------

def compute_outstanding(demand: dict, recovery: dict) -> dict:
    """Sub-account, section and grand outstanding, unclamped.

    Section outstanding is always the sum of its sub-accounts, never the
    difference of section-level demand and recovery.
    """
    result: dict[str, float] = {}
    grand_total = 0.0
    for section in SECTIONS:
        section_total = 0.0
        for account in SECTION_ACCOUNTS[section]:
            owed = (
                to_number(demand.get(account_field(DEMAND, section, account)))
                - to_number(recovery.get(account_field(RECOVERY, section, account)))
            )
            result[account_field(OUTSTAND, section, account)] = owed
            section_total += owed
        result[section_field(OUTSTAND, section)] = section_total
        grand_total += section_total
    result[OUTSTAND_TOTAL] = grand_total
    return result


def compute_reversal_base(demand: dict, recovered_excluding: dict) -> dict:
    """Outstanding balances with one ledger entry backed out, floored at zero.

    *recovered_excluding* carries ``RECOVERY_*`` sums of every other entry on
    the certificate.  Section figures come from section-level demand and
    recovery, each floored independently.
    """
    result: dict[str, float] = {}
    for section in SECTIONS:
        for account in SECTION_ACCOUNTS[section]:
            owed = (
                to_number(demand.get(account_field(DEMAND, section, account)))
                - to_number(recovered_excluding.get(account_field(RECOVERY, section, account)))
            )
            result[account_field(OUTSTAND, section, account)] = max(0.0, owed)
        section_owed = (
            to_number(demand.get(section_field(DEMAND, section)))
            - to_number(recovered_excluding.get(section_field(RECOVERY, section)))
        )
        result[section_field(OUTSTAND, section)] = max(0.0, section_owed)
    return result


# ---------------------------------------------------------------------------
# Recovery cost (establishment level)
# ---------------------------------------------------------------------------

def compute_cost_recovery(row: dict) -> dict:
    outstanding_cost = to_number(row.get(RECOVERY_COST)) - to_number(row.get(RECEIVED_REC_COST))
    return {
        OUTSTAND_REC_COST: outstanding_cost,
        OUTSTAND_TOT_WITH_REC: to_number(row.get(OUTSTAND_TOTAL)) + outstanding_cost,
    }


def compute_certificate_financials(row: dict) -> dict:
    """Every derived field of one certificate from its sub-account figures."""
    derived = {}
    derived.update(compute_demand_totals(row))
    derived.update(compute_recovery_totals(row))
    derived.update(compute_outstanding(row, row))
    derived.update(compute_cost_recovery({**row, OUTSTAND_TOTAL: derived[OUTSTAND_TOTAL]}))
    return derived


# ---------------------------------------------------------------------------
# Establishment rollups
# ---------------------------------------------------------------------------

def compute_group_totals(records: list[dict]) -> dict[str, dict]:
    """Sum certificate totals per establishment code.

    Records without an ``ESTA_CODE`` are skipped.  ``OUTSTAND_REC_COST`` is
    establishment-level, so it is read from the first member rather than
    summed.  ``OUTSTAND_TOT_WITH_REC`` is summed like the other totals.
    """
    groups: dict[str, list[dict]] = {}
    for record in records:
        esta_code = record.get("ESTA_CODE")
        if not esta_code:
            continue
        groups.setdefault(esta_code, []).append(record)

    totals: dict[str, dict] = {}
    for esta_code, members in groups.items():
        totals[esta_code] = {
            DEMAND_TOTAL_RRC: sum(to_number(m.get(DEMAND_TOTAL)) for m in members),
            RECOVERY_TOTAL_RRC: sum(to_number(m.get(RECOVERY_TOTAL)) for m in members),
            OUTSTAND_TOTAL_RRC: sum(to_number(m.get(OUTSTAND_TOTAL)) for m in members),
            "OUTSTAND_REC_COST_RRC": to_number(members[0].get(OUTSTAND_REC_COST)),
            OUTSTAND_TOT_WITH_REC_RRC: sum(
                to_number(m.get(OUTSTAND_TOT_WITH_REC)) for m in members
            ),
        }
    return totals
