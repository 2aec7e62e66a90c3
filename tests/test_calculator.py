"""Salary breakdown arithmetic — pure Decimal, no database."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from hr_payroll.common.constants import AdjustmentType
from hr_payroll.common.exceptions import ComputationError
from hr_payroll.salary.calculator import (
    Adjustment,
    SalaryInputs,
    SalaryPolicy,
    calculate_salary_breakdown,
    money,
)

POLICY = SalaryPolicy(late_grace_count=3, overtime_rate_multiplier=Decimal("1.5"))


def breakdown(**kw):
    values = dict(base_salary=Decimal("26000"), cycle_days=26, shift_work_hours=Decimal("10"))
    values.update(kw)
    return calculate_salary_breakdown(SalaryInputs(**values), POLICY)


# ── Reference scenarios ─────────────────────────────────────────────

def test_full_attendance_above_tax_threshold():
    result = breakdown(base_salary=Decimal("18000"), shift_work_hours=Decimal("9"))
    assert result.per_day_rate == Decimal("692.31")
    assert result.tds_deduction == Decimal("0")
    assert result.professional_tax == Decimal("200.00")
    assert result.gross_salary == Decimal("18000.00")
    assert result.net_salary == Decimal("17800.00")


def test_absences_below_tax_threshold_attract_tds():
    result = breakdown(
        base_salary=Decimal("12000"),
        shift_work_hours=Decimal("9"),
        absent_days=Decimal("2"),
    )
    assert result.absent_deduction == Decimal("923.08")
    assert result.tds_deduction == Decimal("1200.00")
    assert result.professional_tax == Decimal("0.00")
    assert result.net_salary == Decimal("9876.92")


def test_late_by_30_costs_half_a_day():
    on_time = breakdown()
    late = breakdown(late_by_30_minutes_days=1)
    assert late.late_deduction == Decimal("500.00")
    assert late.absent_deduction == Decimal("0.00")
    assert on_time.net_salary - late.net_salary == Decimal("500.00")


# ── Individual terms ────────────────────────────────────────────────

def test_half_day_costs_half_the_day_rate():
    assert breakdown(half_days=Decimal("3")).half_day_deduction == Decimal("1500.00")


def test_tier_one_late_days_have_a_grace_count():
    assert breakdown(late_by_10_minutes_days=3).late_deduction == Decimal("0.00")
    # Two days beyond the grace count at a quarter day each
    assert breakdown(late_by_10_minutes_days=5).late_deduction == Decimal("500.00")


def test_grace_count_comes_from_policy():
    strict = SalaryPolicy(late_grace_count=0)
    inputs = SalaryInputs(
        base_salary=Decimal("26000"), cycle_days=26, shift_work_hours=Decimal("10"),
        late_by_10_minutes_days=2,
    )
    assert calculate_salary_breakdown(inputs, strict).late_deduction == Decimal("500.00")


def test_overtime_only_when_enabled():
    assert breakdown(overtime_hours=Decimal("4")).overtime_amount == Decimal("0.00")
    result = breakdown(overtime_enabled=True, overtime_hours=Decimal("4"))
    # 1000/day over 10h = 100/h, at 1.5x
    assert result.overtime_amount == Decimal("600.00")
    assert result.gross_salary == Decimal("26600.00")


def test_lop_weekoff_and_inactive_days_are_deducted():
    result = breakdown(
        lop_days=Decimal("1.5"),
        unpaid_weekoff_days=Decimal("2"),
        inactive_days=Decimal("3"),
    )
    assert result.lop_deduction == Decimal("1500.00")
    assert result.weekoff_deduction == Decimal("2000.00")
    assert result.inactive_deduction == Decimal("3000.00")
    assert result.total_deductions == Decimal("6700.00")


def test_adjustments_split_into_incentive_additions_and_deductions():
    result = breakdown(adjustments=(
        Adjustment(AdjustmentType.addition, "incentive", Decimal("1000")),
        Adjustment(AdjustmentType.addition, "BONUS", Decimal("250")),
        Adjustment(AdjustmentType.deduction, "ADVANCE", Decimal("400")),
        Adjustment(AdjustmentType.deduction, "INCENTIVE", Decimal("100")),
    ))
    assert result.incentive_amount == Decimal("1000.00")
    assert result.adjustment_additions == Decimal("250.00")
    assert result.adjustment_deductions == Decimal("500.00")
    assert result.gross_salary == Decimal("27000.00")
    assert result.total_additions == Decimal("1250.00")
    # 27000 - (500 + 200 PT) + 250
    assert result.net_salary == Decimal("26550.00")


def test_each_term_is_rounded_before_summing():
    result = breakdown(base_salary=Decimal("10000"), cycle_days=30, absent_days=Decimal("1"),
                       half_days=Decimal("1"))
    assert result.absent_deduction == Decimal("333.33")
    assert result.half_day_deduction == Decimal("166.67")
    assert result.total_deductions == Decimal("1500.00")


def test_money_rounds_half_up():
    assert money(Decimal("0.005")) == Decimal("0.01")
    assert money(Decimal("2.675")) == Decimal("2.68")


# ── Properties ──────────────────────────────────────────────────────

def test_each_extra_absence_lowers_net():
    nets = [breakdown(absent_days=Decimal(n)).net_salary for n in range(0, 27)]
    assert all(a > b for a, b in zip(nets, nets[1:]))


def test_each_extra_absence_lowers_net_for_uneven_rates():
    nets = [
        breakdown(base_salary=Decimal("18000"), cycle_days=28, absent_days=Decimal(n)).net_salary
        for n in range(0, 29)
    ]
    assert all(a > b for a, b in zip(nets, nets[1:]))


def test_net_never_increases_with_more_late_days():
    nets = [breakdown(late_by_10_minutes_days=n).net_salary for n in range(0, 10)]
    assert nets == sorted(nets, reverse=True)
    # Strict once the grace count is used up
    assert all(a > b for a, b in zip(nets[3:], nets[4:]))


def test_breakdown_json_is_canonical():
    inputs = dict(absent_days=Decimal("1"), overtime_enabled=True, overtime_hours=Decimal("2.5"))
    first, second = breakdown(**inputs).to_json(), breakdown(**inputs).to_json()
    assert first == second
    parsed = json.loads(first)
    assert list(parsed) == sorted(parsed)
    assert parsed["net_salary"] == str(breakdown(**inputs).net_salary)


# ── Invalid inputs ──────────────────────────────────────────────────

@pytest.mark.parametrize("overrides", [
    {"base_salary": Decimal("0")},
    {"base_salary": Decimal("-100")},
    {"cycle_days": 0},
    {"shift_work_hours": Decimal("0")},
])
def test_invalid_inputs_raise(overrides):
    with pytest.raises(ComputationError):
        breakdown(**overrides)
