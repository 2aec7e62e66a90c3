"""Salary service — DRAFT/FINALIZED lifecycle, holds, batches, payslips."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hr_payroll.common.constants import AdjustmentType, HoldType, SalaryStatus
from hr_payroll.common.cycle import DateRange
from hr_payroll.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_payroll.database import Capabilities
from hr_payroll.leave.service import LeaveLedger
from hr_payroll.salary.models import MonthlySalary, SalaryHold
from hr_payroll.salary.service import SalaryService
from tests.conftest import (
    MONTH,
    add_punches,
    create_employee,
    create_shift,
    punch_working_days,
)

NEXT_MONTH = "2026-04"


async def _employee_with_full_month(db, code="E001", **kw):
    await create_employee(db, code, **kw)
    await punch_working_days(db, code)


# ── Calculation ─────────────────────────────────────────────────────

async def test_full_month_salary(db):
    await create_shift(db)
    await _employee_with_full_month(db)

    salary = await SalaryService.calculate_salary(db, "E001", MONTH, calculated_by="ADMIN01")
    assert salary.status == int(SalaryStatus.draft)
    assert salary.net_salary == Decimal("17800.00")
    assert salary.per_day_rate == Decimal("642.86")
    assert salary.paid_days == Decimal("28")
    assert salary.professional_tax == Decimal("200.00")
    breakdown = json.loads(salary.breakdown_json)
    assert breakdown["net_salary"] == "17800.00"
    assert breakdown["cycle_days"] == 28


async def test_late_day_is_deducted_separately_from_absence(db):
    await create_shift(db)
    await create_employee(db, base_salary=Decimal("28000"))
    await punch_working_days(db, "E001", skip=[date(2026, 3, 5)])
    await add_punches(db, "E001", datetime(2026, 3, 5, 10, 35), datetime(2026, 3, 5, 19, 35))

    _, breakdown = await SalaryService.compute(db, "E001", MONTH)
    # 28000 / 28 days = 1000 per day, half a day for one 30-minute late
    assert breakdown.late_deduction == Decimal("500.00")
    assert breakdown.absent_deduction == Decimal("0.00")
    assert breakdown.net_salary == Decimal("27300.00")


async def test_recalculating_a_draft_overwrites_it(db):
    await create_shift(db)
    await _employee_with_full_month(db)

    first = await SalaryService.calculate_salary(db, "E001", MONTH)
    await SalaryService.upsert_adjustment(
        db, "E001", MONTH,
        adjustment_type=AdjustmentType.addition, category="incentive", amount=Decimal("500"),
    )
    second = await SalaryService.calculate_salary(db, "E001", MONTH)
    assert second.id == first.id
    assert second.incentive_amount == Decimal("500.00")
    assert second.net_salary == Decimal("18300.00")
    count = await db.scalar(select(func.count()).select_from(MonthlySalary))
    assert count == 1


async def test_recalculation_is_byte_identical(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    first = (await SalaryService.calculate_salary(db, "E001", MONTH)).breakdown_json
    second = (await SalaryService.calculate_salary(db, "E001", MONTH)).breakdown_json
    assert first == second


async def test_missing_base_salary_is_not_found(db):
    await create_shift(db)
    await create_employee(db, base_salary=None)
    with pytest.raises(NotFoundException):
        await SalaryService.calculate_salary(db, "E001", MONTH)


async def test_leave_beyond_quota_becomes_lop(db):
    await create_shift(db)
    await create_employee(db)
    await punch_working_days(db, "E001", skip=[date(2026, 3, 2), date(2026, 3, 3)])
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("1"))
    await LeaveLedger.save_monthly_usage(
        db, "E001", MONTH,
        [{"date": "2026-03-02", "value": 1.0}, {"date": "2026-03-03", "value": 1.0}], [],
    )
    _, breakdown = await SalaryService.compute(db, "E001", MONTH)
    assert breakdown.lop_days == Decimal("1.0")
    assert breakdown.absent_days == Decimal("0")


# ── Finalization ────────────────────────────────────────────────────

async def test_finalize_then_recalculate_conflicts(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await SalaryService.calculate_salary(db, "E001", MONTH)

    salary = await SalaryService.finalize(db, "E001", MONTH, "ADMIN01")
    assert salary.status == int(SalaryStatus.finalized)
    assert salary.finalized_by == "ADMIN01"

    with pytest.raises(ConflictError):
        await SalaryService.finalize(db, "E001", MONTH, "ADMIN01")
    with pytest.raises(ConflictError):
        await SalaryService.calculate_salary(db, "E001", MONTH)
    still = await SalaryService.get_salary(db, "E001", MONTH)
    assert still.status == int(SalaryStatus.finalized)


async def test_finalize_without_salary_is_not_found(db):
    with pytest.raises(NotFoundException):
        await SalaryService.finalize(db, "E001", MONTH, "ADMIN01")


async def test_finalize_all_only_touches_drafts(db):
    await create_shift(db)
    await _employee_with_full_month(db, "E001")
    await _employee_with_full_month(db, "E002")
    await SalaryService.calculate_salary(db, "E001", MONTH)
    await SalaryService.calculate_salary(db, "E002", MONTH)
    await SalaryService.finalize(db, "E001", MONTH, "ADMIN01")

    assert await SalaryService.finalize_all(db, MONTH, "ADMIN01") == ["E002"]
    assert await SalaryService.finalize_all(db, MONTH, "ADMIN01") == []


# ── Batch ───────────────────────────────────────────────────────────

async def test_batch_isolates_failures(db):
    await create_shift(db)
    await _employee_with_full_month(db, "E001")
    await create_employee(db, "E002", base_salary=None)
    await create_employee(db, "E003", shift_name="GHOST")
    await _employee_with_full_month(db, "E004")
    await create_employee(db, "E005", is_active=False)

    outcome = await SalaryService.calculate_all(db, MONTH, calculated_by="ADMIN01")
    assert outcome.succeeded == ["E001", "E004"]
    assert {f.employee_code for f in outcome.failed} == {"E002", "E003"}
    assert all(f.error_type == "not-found" for f in outcome.failed)

    rows = await SalaryService.list_salaries(db, MONTH)
    assert [r.employee_code for r in rows] == ["E001", "E004"]


async def test_batch_skips_employees_outside_the_cycle(db):
    await create_shift(db)
    await _employee_with_full_month(db, "E001")
    await create_employee(db, "E002", exit_date=date(2026, 2, 1))
    await create_employee(db, "E003", joining_date=date(2026, 4, 1))

    outcome = await SalaryService.calculate_all(db, MONTH)
    assert outcome.succeeded == ["E001"]
    assert outcome.failed == []


# ── Holds and payslips ──────────────────────────────────────────────

async def test_hold_blocks_payslip_until_released(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await SalaryService.calculate_salary(db, "E001", MONTH)
    await SalaryService.finalize(db, "E001", MONTH, "ADMIN01")

    await SalaryService.create_hold(db, "E001", MONTH, reason="Pending clearance", action_by="ADMIN01")
    with pytest.raises(ForbiddenException):
        await SalaryService.get_payslip(db, "E001", MONTH)

    await SalaryService.release_hold(db, "E001", MONTH, action_by="ADMIN01")
    payslip = await SalaryService.get_payslip(db, "E001", MONTH)
    assert payslip.salary.net_salary == Decimal("17800.00")
    assert payslip.salary.is_held is False
    assert payslip.breakdown["net_salary"] == "17800.00"


async def test_second_active_hold_conflicts(db):
    await SalaryService.create_hold(db, "E001", MONTH)
    with pytest.raises(ConflictError):
        await SalaryService.create_hold(db, "E001", MONTH)
    await SalaryService.release_hold(db, "E001", MONTH)
    await SalaryService.create_hold(db, "E001", MONTH, reason="Again")
    holds = await SalaryService.list_holds(db, MONTH, include_released=True)
    assert len(holds) == 2


async def test_release_without_hold_is_not_found(db):
    with pytest.raises(NotFoundException):
        await SalaryService.release_hold(db, "E001", MONTH)


async def test_hold_is_mirrored_on_the_salary_row(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await SalaryService.create_hold(db, "E001", MONTH, reason="Audit")
    salary = await SalaryService.calculate_salary(db, "E001", MONTH)
    assert salary.is_held is True
    assert salary.hold_reason == "Audit"


async def test_draft_payslip_is_not_found(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await SalaryService.calculate_salary(db, "E001", MONTH)
    with pytest.raises(NotFoundException):
        await SalaryService.get_payslip(db, "E001", MONTH)


async def test_holds_unavailable_without_table(db):
    with pytest.raises(ConflictError):
        await SalaryService.create_hold(
            db, "E001", MONTH, capabilities=Capabilities(salary_holds=False),
        )


# ── Automatic holds ─────────────────────────────────────────────────

async def test_absence_early_next_month_places_auto_hold(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    # Nothing punched on Apr 1-4; Apr 5 is a Sunday
    hold = await SalaryService.check_auto_hold(db, "E001", MONTH, today=date(2026, 4, 10))
    assert hold is not None
    assert hold.month == NEXT_MONTH
    assert hold.hold_type == HoldType.auto.value
    assert hold.action_by == "SYSTEM"
    assert "2026-04-01" in hold.reason

    again = await SalaryService.check_auto_hold(db, "E001", MONTH, today=date(2026, 4, 10))
    assert again.id == hold.id


async def test_leave_early_next_month_prevents_auto_hold(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    # April leave is booked against the April cycle (Mar 26 - Apr 25)
    await LeaveLedger.save_monthly_usage(
        db, "E001", NEXT_MONTH,
        [{"date": f"2026-04-0{d}", "value": 1.0} for d in (1, 2, 3, 4)], [],
    )
    assert await SalaryService.check_auto_hold(db, "E001", MONTH, today=date(2026, 4, 10)) is None


async def test_no_auto_hold_before_the_window_closes(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    assert await SalaryService.check_auto_hold(db, "E001", MONTH, today=date(2026, 4, 3)) is None


async def test_no_auto_hold_when_present(db):
    await create_shift(db)
    await _employee_with_full_month(db)
    await punch_working_days(db, "E001", DateRange(date(2026, 4, 1), date(2026, 4, 5)))
    assert await SalaryService.check_auto_hold(db, "E001", MONTH, today=date(2026, 4, 10)) is None
    count = await db.scalar(select(func.count()).select_from(SalaryHold))
    assert count == 0


async def test_auto_hold_batch(db):
    await create_shift(db)
    await _employee_with_full_month(db, "E001")
    await _employee_with_full_month(db, "E002")
    holds, outcome = await SalaryService.check_auto_holds(db, MONTH, today=date(2026, 4, 10))
    assert sorted(h.employee_code for h in holds) == ["E001", "E002"]
    assert outcome.failed == []


# ── Adjustments ─────────────────────────────────────────────────────

async def test_adjustment_upsert_and_delete(db):
    first = await SalaryService.upsert_adjustment(
        db, "E001", MONTH,
        adjustment_type=AdjustmentType.deduction, category=" advance ", amount=Decimal("400"),
    )
    assert first.category == "ADVANCE"
    second = await SalaryService.upsert_adjustment(
        db, "E001", MONTH,
        adjustment_type=AdjustmentType.deduction, category="ADVANCE", amount=Decimal("250"),
    )
    assert second.id == first.id
    assert second.amount == Decimal("250.00")

    await SalaryService.delete_adjustment(db, "E001", MONTH, AdjustmentType.deduction, "advance")
    assert await SalaryService.get_adjustments(db, "E001", MONTH) == []
    with pytest.raises(NotFoundException):
        await SalaryService.delete_adjustment(db, "E001", MONTH, AdjustmentType.deduction, "ADVANCE")


async def test_adjustment_validation(db):
    with pytest.raises(ValidationException):
        await SalaryService.upsert_adjustment(
            db, "E001", MONTH,
            adjustment_type=AdjustmentType.addition, category="  ", amount=Decimal("10"),
        )
    with pytest.raises(ValidationException):
        await SalaryService.upsert_adjustment(
            db, "E001", MONTH,
            adjustment_type=AdjustmentType.addition, category="BONUS", amount=Decimal("-1"),
        )
