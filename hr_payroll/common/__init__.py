"""Common module — shared enums, errors and cycle helpers for HR Payroll."""

from hr_payroll.common.constants import (
    DATE_FORMAT,
    MONTH_FORMAT,
    AdjustmentType,
    DayStatus,
    HoldType,
    LeaveKind,
    OriginalStatus,
    PunchDirection,
    RegularizedStatus,
    SalaryStatus,
    UserRole,
    WeekoffType,
)
from hr_payroll.common.cycle import DateRange, parse_date, parse_month, salary_cycle
from hr_payroll.common.exceptions import (
    AppException,
    ComputationError,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)

__all__ = [
    # Constants / Enums
    "AdjustmentType",
    "DayStatus",
    "HoldType",
    "LeaveKind",
    "OriginalStatus",
    "PunchDirection",
    "RegularizedStatus",
    "SalaryStatus",
    "UserRole",
    "WeekoffType",
    "DATE_FORMAT",
    "MONTH_FORMAT",
    # Cycle
    "DateRange",
    "parse_date",
    "parse_month",
    "salary_cycle",
    # Exceptions
    "AppException",
    "ComputationError",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
]
