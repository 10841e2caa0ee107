"""Statutory allocation of a payment across sections and sub-accounts.

A payment is distributed greedily: sections are visited in fixed legal
precedence (7A, then 7Q, then 14B) and, inside a section, sub-accounts are
filled in their fixed order.  Each bucket takes ``min(remaining, outstanding)``
until the payment is exhausted.  Sections the certificate's eligibility
directive does not permit are skipped entirely; whatever cannot be placed is
left unallocated for the caller to account for.

The functions here are pure: no I/O, no exceptions for malformed numbers.
"""

import logging

from recovery_desk.services.finance.fields import (
    ALLOCATED,
    ALLOCATION_PRIORITY,
    OUTSTAND,
    SECTION_ACCOUNTS,
    SECTIONS,
    account_field,
    metric_fields,
    section_field,
)
from recovery_desk.services.finance.numbers import to_number

logger = logging.getLogger(__name__)

ALL_SECTIONS = frozenset(SECTIONS)

AllocationBreakdown = dict[str, float]


def parse_eligibility(directive: str | None) -> frozenset[str]:
    """Return the sections a certificate's ``U/S`` directive permits.

    The directive is free legal-citation text such as ``"7A & 14B"``.  A label
    counts as present when it appears anywhere in the text (case-insensitive).
    Blank text permits every section.  Text that names none of the labels also
    permits every section; this fallback is kept for compatibility with
    existing certificates and is logged so it can be reviewed.
    """
    if directive is None:
        return ALL_SECTIONS
    text = str(directive).strip().upper()
    if not text:
        return ALL_SECTIONS

    named = frozenset(label for label in SECTIONS if label in text)
    if not named:
        logger.warning(
            "Eligibility directive %r names no known section; allowing all sections",
            directive,
        )
        return ALL_SECTIONS
    return named


def empty_breakdown() -> AllocationBreakdown:
    return {field: 0.0 for field in metric_fields(ALLOCATED)}


def _section_open(section: str, outstanding: dict) -> bool:
    """A section whose recorded total is not positive takes nothing.

    Snapshots built only from sub-accounts carry no section total; those are
    judged by their sub-accounts alone.
    """
    key = section_field(OUTSTAND, section)
    if key in outstanding:
        return to_number(outstanding[key]) > 0
    return True


def allocate(amount, outstanding: dict, eligibility: str | None) -> AllocationBreakdown:
    """Distribute *amount* over the outstanding balances by statutory priority.

    Args:
        amount: payment to distribute; coerced, negatives allocate nothing.
        outstanding: ``OUTSTAND_*`` snapshot keyed by persisted field name.
        eligibility: the certificate's ``U_S`` directive.

    Returns:
        ``ALLOCATED_*`` amounts for every sub-account and section.  The sum
        of the sub-accounts never exceeds *amount*.
    """
    breakdown = empty_breakdown()
    remaining = to_number(amount)
    allowed = parse_eligibility(eligibility)

    for section in ALLOCATION_PRIORITY:
        if remaining <= 0:
            break
        if section not in allowed or not _section_open(section, outstanding):
            continue

        section_total = 0.0
        for account in SECTION_ACCOUNTS[section]:
            if remaining <= 0:
                break
            owed = to_number(outstanding.get(account_field(OUTSTAND, section, account)))
            if owed <= 0:
                continue
            share = min(remaining, owed)
            breakdown[account_field(ALLOCATED, section, account)] = share
            section_total += share
            remaining -= share
        breakdown[section_field(ALLOCATED, section)] = section_total

    return breakdown


def total_allocated(breakdown: dict) -> float:
    """Sum of the sub-account allocations (section subtotals excluded)."""
    return sum(
        to_number(breakdown.get(account_field(ALLOCATED, section, account)))
        for section in SECTIONS
        for account in SECTION_ACCOUNTS[section]
    )


def preview_allocation(amount, outstanding: dict, eligibility: str | None) -> dict:
    """Allocation plus what was placed and what was left over."""
    breakdown = allocate(amount, outstanding, eligibility)
    placed = total_allocated(breakdown)
    return {
        "allocation": breakdown,
        "total_allocated": round(placed, 2),
        "unallocated": round(max(to_number(amount) - placed, 0.0), 2),
        "eligible_sections": sorted(parse_eligibility(eligibility)),
    }


def breakdown_from_accounts(values: dict) -> AllocationBreakdown:
    """Build a full breakdown from sub-account ``ALLOCATED_*`` figures.

    Section subtotals are always re-derived from the sub-accounts, ignoring
    any section figure supplied.
    """
    breakdown = empty_breakdown()
    for section in SECTIONS:
        section_total = 0.0
        for account in SECTION_ACCOUNTS[section]:
            key = account_field(ALLOCATED, section, account)
            share = to_number(values.get(key))
            breakdown[key] = share
            section_total += share
        breakdown[section_field(ALLOCATED, section)] = section_total
    return breakdown
