"""Tests for certificate balance arithmetic (pure functions, no DB)."""

import pytest

from recovery_desk.services.finance.calculator import (
    compute_certificate_financials,
    compute_cost_recovery,
    compute_demand_totals,
    compute_group_totals,
    compute_outstanding,
    compute_recovery_totals,
    compute_reversal_base,
)
from recovery_desk.services.finance.fields import (
    DEMAND,
    OUTSTAND,
    RECOVERY,
    account_field,
)


def D(section, account):
    return account_field(DEMAND, section, account)


def R(section, account):
    return account_field(RECOVERY, section, account)


def O(section, account):
    return account_field(OUTSTAND, section, account)


class TestSectionTotals:

    def test_sum_of_sub_accounts(self):
        row = {D("7A", "ACCOUNT_1_EE"): 100, D("7A", "ACCOUNT_22"): 50, D("14B", "ACCOUNT_1"): "25"}
        totals = compute_demand_totals(row)
        assert totals["DEMAND_7A"] == 150
        assert totals["DEMAND_14B"] == 25
        assert totals["DEMAND_7Q"] == 0
        assert totals["DEMAND_TOTAL"] == 175

    def test_explicit_section_figure_wins(self):
        row = {"DEMAND_7A": 1000, D("7A", "ACCOUNT_1_EE"): 100}
        assert compute_demand_totals(row)["DEMAND_7A"] == 1000

    def test_zero_section_figure_falls_back_to_accounts(self):
        row = {"RECOVERY_7Q": 0, R("7Q", "ACCOUNT_10"): 40}
        totals = compute_recovery_totals(row)
        assert totals["RECOVERY_7Q"] == 40
        assert totals["RECOVERY_TOTAL"] == 40


class TestOutstanding:

    def test_identity_without_clamp(self):
        demand = {D("7A", "ACCOUNT_1_EE"): 100, D("7Q", "ACCOUNT_1"): 50}
        recovery = {R("7A", "ACCOUNT_1_EE"): 130, R("7Q", "ACCOUNT_1"): 20}
        result = compute_outstanding(demand, recovery)
        assert result[O("7A", "ACCOUNT_1_EE")] == -30
        assert result[O("7Q", "ACCOUNT_1")] == 30
        assert result["OUTSTAND_7A"] == -30
        assert result["OUTSTAND_7Q"] == 30
        assert result["OUTSTAND_14B"] == 0
        assert result["OUTSTAND_TOTAL"] == 0

    def test_section_is_sum_of_accounts_not_section_difference(self):
        demand = {"DEMAND_7A": 5000, D("7A", "ACCOUNT_1_EE"): 100}
        result = compute_outstanding(demand, {})
        assert result["OUTSTAND_7A"] == 100


class TestReversalBase:

    def test_clamps_each_figure_at_zero(self):
        demand = {D("7A", "ACCOUNT_1_EE"): 100, D("7A", "ACCOUNT_1_ER"): 100, "DEMAND_7A": 200}
        recovered = {R("7A", "ACCOUNT_1_EE"): 150, R("7A", "ACCOUNT_1_ER"): 40, "RECOVERY_7A": 190}
        base = compute_reversal_base(demand, recovered)
        assert base[O("7A", "ACCOUNT_1_EE")] == 0
        assert base[O("7A", "ACCOUNT_1_ER")] == 60
        assert base["OUTSTAND_7A"] == 10

    def test_section_floor_independent_of_accounts(self):
        demand = {D("14B", "ACCOUNT_1"): 100, "DEMAND_14B": 100}
        recovered = {R("14B", "ACCOUNT_1"): 300, "RECOVERY_14B": 300}
        base = compute_reversal_base(demand, recovered)
        assert base["OUTSTAND_14B"] == 0
        assert base[O("14B", "ACCOUNT_1")] == 0


class TestCostRecovery:

    def test_outstanding_cost_added_to_total(self):
        result = compute_cost_recovery({"RECOVERY_COST": 500, "RECEVIED_REC_COST": 200, "OUTSTAND_TOTAL": 1000})
        assert result["OUTSTAND_REC_COST"] == 300
        assert result["OUTSTAND_TOT_WITH_REC"] == 1300

    def test_blank_cost_fields(self):
        result = compute_cost_recovery({"OUTSTAND_TOTAL": "750"})
        assert result == {"OUTSTAND_REC_COST": 0, "OUTSTAND_TOT_WITH_REC": 750}


class TestCertificateFinancials:

    def test_full_derivation(self):
        row = {
            D("7A", "ACCOUNT_1_EE"): 1000,
            D("14B", "ACCOUNT_2"): 400,
            R("7A", "ACCOUNT_1_EE"): 250,
            "RECOVERY_COST": 100,
            "RECEVIED_REC_COST": 0,
        }
        result = compute_certificate_financials(row)
        assert result["DEMAND_TOTAL"] == 1400
        assert result["RECOVERY_TOTAL"] == 250
        assert result[O("7A", "ACCOUNT_1_EE")] == 750
        assert result["OUTSTAND_TOTAL"] == 1150
        assert result["OUTSTAND_TOT_WITH_REC"] == 1250

    def test_does_not_mutate_input(self):
        row = {D("7A", "ACCOUNT_1_EE"): 10}
        compute_certificate_financials(row)
        assert row == {D("7A", "ACCOUNT_1_EE"): 10}


class TestGroupTotals:

    def test_sums_per_establishment(self):
        records = [
            {"ESTA_CODE": "E1", "DEMAND_TOTAL": 100, "RECOVERY_TOTAL": 40, "OUTSTAND_TOTAL": 60,
             "OUTSTAND_REC_COST": 30, "OUTSTAND_TOT_WITH_REC": 90},
            {"ESTA_CODE": "E1", "DEMAND_TOTAL": 200, "RECOVERY_TOTAL": 0, "OUTSTAND_TOTAL": 200,
             "OUTSTAND_REC_COST": 30, "OUTSTAND_TOT_WITH_REC": 230},
            {"ESTA_CODE": "E2", "DEMAND_TOTAL": 5, "RECOVERY_TOTAL": 5, "OUTSTAND_TOTAL": 0,
             "OUTSTAND_REC_COST": 0, "OUTSTAND_TOT_WITH_REC": 0},
        ]
        totals = compute_group_totals(records)
        assert totals["E1"]["DEMAND_TOTAL_RRC"] == 300
        assert totals["E1"]["RECOVERY_TOTAL_RRC"] == 40
        assert totals["E1"]["OUTSTAND_TOTAL_RRC"] == 260
        assert totals["E1"]["OUTSTAND_REC_COST_RRC"] == 30
        assert totals["E1"]["OUTSTAND_TOT_WITH_REC_RRC"] == pytest.approx(320)
        assert totals["E2"]["DEMAND_TOTAL_RRC"] == 5

    def test_records_without_code_skipped(self):
        assert compute_group_totals([{"ESTA_CODE": "", "DEMAND_TOTAL": 10}, {"DEMAND_TOTAL": 5}]) == {}
