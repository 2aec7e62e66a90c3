"""Enums and constants for HR Payroll."""

from __future__ import annotations

import enum
from decimal import Decimal


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    admin = "admin"


# ── Attendance ──────────────────────────────────────────────────────

class DayStatus(str, enum.Enum):
    full_day = "full-day"
    half_day = "half-day"
    absent = "absent"
    paid_leave = "paid-leave"
    casual_leave = "casual-leave"
    weekoff = "weekoff"
    holiday = "holiday"
    not_active = "not-active"


class WeekoffType(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"


class PunchDirection(str, enum.Enum):
    punch_in = "in"
    punch_out = "out"


class OriginalStatus(str, enum.Enum):
    """Day statuses an admin may regularize."""

    absent = "absent"
    half_day = "half-day"


class RegularizedStatus(str, enum.Enum):
    half_day = "half-day"
    full_day = "full-day"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveKind(str, enum.Enum):
    paid = "paid"
    casual = "casual"


LEAVE_VALUES = (Decimal("0.5"), Decimal("1.0"))


# ── Salary ──────────────────────────────────────────────────────────

class SalaryStatus(int, enum.Enum):
    draft = 0
    finalized = 1


class AdjustmentType(str, enum.Enum):
    deduction = "DEDUCTION"
    addition = "ADDITION"


class HoldType(str, enum.Enum):
    manual = "MANUAL"
    auto = "AUTO"


INCENTIVE_CATEGORY = "INCENTIVE"

# Statutory rules (fixed, not settings)
TDS_BASE_THRESHOLD = Decimal("15000")
TDS_RATE = Decimal("0.10")
PROFESSIONAL_TAX_BASE_THRESHOLD = Decimal("15000")
PROFESSIONAL_TAX_AMOUNT = Decimal("200")

LATE_TIER_2_DAY_FRACTION = Decimal("0.50")
LATE_TIER_1_DAY_FRACTION = Decimal("0.25")

# ── Misc constants ──────────────────────────────────────────────────

MONTH_FORMAT = "%Y-%m"
DATE_FORMAT = "%Y-%m-%d"
CYCLE_START_DAY = 26
CYCLE_END_DAY = 25
SYSTEM_ACTOR = "SYSTEM"
