"""Leave Pydantic v2 schemas — request/response validation."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from hr_payroll.leave.service import LeaveBalance, LeaveDate, MonthUsage


class LeaveDateIn(BaseModel):
    date: str = Field(..., examples=["2026-03-02"])
    value: Decimal = Decimal("1.0")


class LeaveDateOut(BaseModel):
    date: str
    value: Decimal

    @classmethod
    def from_leave_date(cls, item: LeaveDate) -> "LeaveDateOut":
        return cls(date=item.date.isoformat(), value=item.value)


class MonthlyUsageIn(BaseModel):
    paid_leave_dates: List[LeaveDateIn] = []
    casual_leave_dates: List[LeaveDateIn] = []


class MonthlyUsageOut(BaseModel):
    month: str
    paid_leave_dates: List[LeaveDateOut] = []
    casual_leave_dates: List[LeaveDateOut] = []
    paid_leave_days: Decimal
    casual_leave_days: Decimal

    @classmethod
    def from_usage(cls, usage: MonthUsage) -> "MonthlyUsageOut":
        return cls(
            month=usage.month,
            paid_leave_dates=[LeaveDateOut.from_leave_date(d) for d in usage.paid],
            casual_leave_dates=[LeaveDateOut.from_leave_date(d) for d in usage.casual],
            paid_leave_days=usage.paid_days,
            casual_leave_days=usage.casual_days,
        )


class EntitlementIn(BaseModel):
    allowed_leaves: Decimal = Field(..., ge=0, le=366)


class LeaveBalanceOut(BaseModel):
    employee_code: str
    year: int
    allowed_leaves: Decimal
    used_paid_leaves: Decimal
    used_casual_leaves: Decimal
    remaining_leaves: Decimal
    is_exceeded: bool
    loss_of_pay_days: Decimal
    month_usage: Optional[MonthlyUsageOut] = None
    month_loss_of_pay_days: Optional[Decimal] = None

    @classmethod
    def from_balance(cls, balance: LeaveBalance) -> "LeaveBalanceOut":
        usage = balance.month_usage
        return cls(
            employee_code=balance.employee_code,
            year=balance.year,
            allowed_leaves=balance.allowed,
            used_paid_leaves=balance.used_paid,
            used_casual_leaves=balance.used_casual,
            remaining_leaves=balance.remaining,
            is_exceeded=balance.is_exceeded,
            loss_of_pay_days=balance.loss_of_pay_days,
            month_usage=MonthlyUsageOut.from_usage(usage) if usage is not None else None,
            month_loss_of_pay_days=balance.month_loss_of_pay_days if usage is not None else None,
        )
