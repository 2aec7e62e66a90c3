"""Leave ledger — entitlements, monthly usage, loss of pay."""

from __future__ import annotations

from decimal import Decimal

import pytest

from hr_payroll.common.exceptions import NotFoundException, ValidationException
from hr_payroll.leave.service import (
    LeaveBalance,
    LeaveDate,
    LeaveLedger,
    MonthUsage,
    leave_year_of,
    loss_of_pay_days,
)
from tests.conftest import MONTH


def day(value: str, amount: float = 1.0) -> dict:
    return {"date": value, "value": amount}


# ── Pure helpers ────────────────────────────────────────────────────

def test_loss_of_pay_is_excess_over_quota():
    assert loss_of_pay_days(Decimal("12"), Decimal("10"), Decimal("1")) == Decimal("0")
    assert loss_of_pay_days(Decimal("12"), Decimal("10"), Decimal("3.5")) == Decimal("1.5")


def test_balance_remaining_never_negative():
    balance = LeaveBalance("E001", 2026, Decimal("2"), Decimal("2"), Decimal("1"))
    assert balance.remaining == Decimal("0")
    assert balance.is_exceeded
    assert balance.loss_of_pay_days == Decimal("1")


def test_month_loss_of_pay_is_capped_by_month_usage():
    usage = MonthUsage(MONTH, paid=(LeaveDate.parse(day("2026-03-02", 0.5)),))
    balance = LeaveBalance("E001", 2026, Decimal("2"), Decimal("3.5"), Decimal("0"), usage)
    assert balance.loss_of_pay_days == Decimal("1.5")
    assert balance.month_loss_of_pay_days == Decimal("0.5")


def test_paid_wins_when_a_date_is_in_both_lists():
    usage = MonthUsage(
        MONTH,
        paid=(LeaveDate.parse(day("2026-03-02")),),
        casual=(LeaveDate.parse(day("2026-03-02", 0.5)),),
    )
    kind, value = usage.marks()[LeaveDate.parse(day("2026-03-02")).date]
    assert kind.value == "paid"
    assert value == Decimal("1.0")


@pytest.mark.parametrize("raw", [
    {"date": "2026-03-02", "value": 0.75},
    {"date": "2026-3-2", "value": 1},
    "2026-03-02",
])
def test_leave_date_validation(raw):
    with pytest.raises(ValidationException):
        LeaveDate.parse(raw)


def test_leave_year_is_the_salary_month_year():
    assert leave_year_of("2026-01") == 2026


# ── Ledger ──────────────────────────────────────────────────────────

async def test_missing_entitlement_reads_as_zero(db):
    balance = await LeaveLedger.get_balance(db, "E001", 2026)
    assert balance.allowed == Decimal("0")
    assert balance.used_total == Decimal("0")


async def test_saving_usage_moves_running_totals(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    await LeaveLedger.save_monthly_usage(
        db, "E001", MONTH,
        [day("2026-03-02"), day("2026-03-03", 0.5)],
        [day("2026-03-04")],
        updated_by="ADMIN01",
    )
    balance = await LeaveLedger.get_balance(db, "E001", 2026, MONTH)
    assert balance.used_paid == Decimal("1.5")
    assert balance.used_casual == Decimal("1.0")
    assert balance.remaining == Decimal("9.5")
    assert balance.month_usage.total_days == Decimal("2.5")


async def test_resaving_the_same_month_is_idempotent(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    for _ in range(2):
        await LeaveLedger.save_monthly_usage(db, "E001", MONTH, [day("2026-03-02")], [])
    balance = await LeaveLedger.get_balance(db, "E001", 2026)
    assert balance.used_paid == Decimal("1.0")


async def test_shrinking_a_month_gives_days_back(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    await LeaveLedger.save_monthly_usage(
        db, "E001", MONTH, [day("2026-03-02"), day("2026-03-03")], [],
    )
    await LeaveLedger.save_monthly_usage(db, "E001", MONTH, [day("2026-03-02")], [])
    balance = await LeaveLedger.get_balance(db, "E001", 2026)
    assert balance.used_paid == Decimal("1.0")


async def test_entitlement_change_keeps_running_totals(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    await LeaveLedger.save_monthly_usage(db, "E001", MONTH, [day("2026-03-02")], [])
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("0.5"))
    balance = await LeaveLedger.get_balance(db, "E001", 2026, MONTH)
    assert balance.used_paid == Decimal("1.0")
    assert balance.loss_of_pay_days == Decimal("0.5")
    assert balance.month_loss_of_pay_days == Decimal("0.5")


async def test_usage_requires_an_entitlement(db):
    with pytest.raises(NotFoundException):
        await LeaveLedger.save_monthly_usage(db, "E001", MONTH, [day("2026-03-02")], [])


async def test_usage_outside_the_cycle_is_rejected(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    with pytest.raises(ValidationException) as exc_info:
        await LeaveLedger.save_monthly_usage(db, "E001", MONTH, [day("2026-03-26")], [])
    assert "paid_leave_dates" in exc_info.value.errors


async def test_duplicate_dates_are_rejected(db):
    await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("12"))
    with pytest.raises(ValidationException):
        await LeaveLedger.save_monthly_usage(
            db, "E001", MONTH, [day("2026-03-02")], [day("2026-03-02")],
        )


async def test_negative_entitlement_is_rejected(db):
    with pytest.raises(ValidationException):
        await LeaveLedger.set_entitlement(db, "E001", 2026, Decimal("-1"))
