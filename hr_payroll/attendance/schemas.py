"""Attendance Pydantic v2 schemas — request/response validation."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_payroll.attendance.aggregator import MonthlyAttendance
from hr_payroll.common.constants import DayStatus, WeekoffType


# ═════════════════════════════════════════════════════════════════════
# Daily / monthly attendance
# ═════════════════════════════════════════════════════════════════════


class DailyRecordOut(BaseModel):
    """One classified day."""

    model_config = ConfigDict(from_attributes=True)

    date: date
    status: DayStatus
    first_entry: Optional[datetime] = None
    last_exit: Optional[datetime] = None
    total_hours: float = 0.0
    is_late: bool = False
    minutes_late: int = 0
    is_late_by_30_minutes: bool = False
    is_early_exit: bool = False
    log_count: int = 0
    shift_name: Optional[str] = None
    original_status: Optional[DayStatus] = None
    is_regularized: bool = False
    leave_value: Optional[Decimal] = None
    weekoff_type: Optional[WeekoffType] = None


class MonthlyAttendanceOut(BaseModel):
    employee_code: str
    month: str
    cycle_start: date
    cycle_end: date
    cycle_days: int
    full_days: int
    half_days: int
    absent_days: int
    late_days: int
    late_by_30_minutes_days: int
    late_by_10_minutes_days: int
    early_exits: int
    total_worked_hours: Decimal
    holidays: int
    paid_leave_days: Decimal
    casual_leave_days: Decimal
    sundays_in_month: int
    unpaid_weekoff_days: int
    inactive_days: int
    expected_working_days: int
    expected_hours: Decimal
    actual_days_worked: Decimal
    total_payable_days: Decimal
    overtime_enabled: bool
    overtime_hours: Decimal
    failed_days: List[date] = []
    days: List[DailyRecordOut] = []

    @classmethod
    def from_summary(cls, summary: MonthlyAttendance) -> "MonthlyAttendanceOut":
        return cls(
            employee_code=summary.employee_code,
            month=summary.month,
            cycle_start=summary.cycle.start,
            cycle_end=summary.cycle.end,
            cycle_days=summary.cycle_days,
            full_days=summary.full_days,
            half_days=summary.half_days,
            absent_days=summary.absent_days,
            late_days=summary.late_days,
            late_by_30_minutes_days=summary.late_by_30_minutes_days,
            late_by_10_minutes_days=summary.late_by_10_minutes_days,
            early_exits=summary.early_exits,
            total_worked_hours=summary.total_worked_hours,
            holidays=summary.holidays,
            paid_leave_days=summary.paid_leave_days,
            casual_leave_days=summary.casual_leave_days,
            sundays_in_month=summary.sundays_in_month,
            unpaid_weekoff_days=summary.unpaid_weekoff_days,
            inactive_days=summary.inactive_days,
            expected_working_days=summary.expected_working_days,
            expected_hours=summary.expected_hours,
            actual_days_worked=summary.actual_days_worked,
            total_payable_days=summary.total_payable_days,
            overtime_enabled=summary.overtime_enabled,
            overtime_hours=summary.overtime_hours,
            failed_days=summary.failed_days,
            days=[DailyRecordOut.model_validate(d) for d in summary.days],
        )


# ═════════════════════════════════════════════════════════════════════
# Regularization
# ═════════════════════════════════════════════════════════════════════


class RegularizationEntryIn(BaseModel):
    date: str = Field(..., examples=["2026-03-02"])
    original_status: str = Field(..., examples=["absent"])
    regularized_status: str = Field(..., examples=["full-day"])
    reason: Optional[str] = Field(None, max_length=1000)


class RegularizationBatchIn(BaseModel):
    entries: List[RegularizationEntryIn] = Field(..., min_length=1)
    requested_by: Optional[str] = None


class RegularizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    attendance_date: date
    original_status: str
    regularized_status: str
    reason: Optional[str] = None
    requested_by: Optional[str] = None
    approved_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class RegularizationListResponse(BaseModel):
    data: List[RegularizationOut]
    total: int


# ═════════════════════════════════════════════════════════════════════
# Holidays
# ═════════════════════════════════════════════════════════════════════


class HolidayCreate(BaseModel):
    holiday_date: date
    name: str = Field(..., min_length=1, max_length=200)


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    holiday_date: date
    name: str
