"""Salary Pydantic v2 schemas — request/response validation."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_payroll.attendance.schemas import MonthlyAttendanceOut
from hr_payroll.common.constants import AdjustmentType, HoldType


# ═════════════════════════════════════════════════════════════════════
# Monthly salary
# ═════════════════════════════════════════════════════════════════════


class MonthlySalaryOut(BaseModel):
    """Persisted salary snapshot (breakdown text excluded)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    month: str
    base_salary: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    per_day_rate: Decimal
    paid_days: Decimal
    absent_days: Decimal
    leave_days: Decimal
    total_deductions: Decimal
    total_additions: Decimal
    total_worked_hours: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    tds_deduction: Decimal
    professional_tax: Decimal
    incentive_amount: Decimal
    is_held: bool
    hold_reason: Optional[str] = None
    status: int
    calculated_at: Optional[datetime] = None
    calculated_by: Optional[str] = None
    finalized_at: Optional[datetime] = None
    finalized_by: Optional[str] = None


class MonthlySalaryListResponse(BaseModel):
    data: List[MonthlySalaryOut]
    total: int


class PayslipOut(BaseModel):
    salary: MonthlySalaryOut
    breakdown: dict[str, Any]


class SalaryPreviewOut(BaseModel):
    """Computed but unsaved salary for one employee."""

    attendance: MonthlyAttendanceOut
    breakdown: dict[str, Any]


# ═════════════════════════════════════════════════════════════════════
# Batch operations
# ═════════════════════════════════════════════════════════════════════


class BatchFailureOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    error_type: str
    detail: str


class BatchResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    succeeded: List[str] = []
    failed: List[BatchFailureOut] = []


class FinalizeIn(BaseModel):
    finalized_by: Optional[str] = Field(None, max_length=100)


class FinalizeAllOut(BaseModel):
    month: str
    finalized: List[str]
    total: int


# ═════════════════════════════════════════════════════════════════════
# Holds
# ═════════════════════════════════════════════════════════════════════


class HoldCreate(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class HoldOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    month: str
    hold_type: HoldType
    reason: Optional[str] = None
    is_released: bool
    released_at: Optional[datetime] = None
    action_by: Optional[str] = None
    created_at: Optional[datetime] = None


class HoldListResponse(BaseModel):
    data: List[HoldOut]
    total: int


class AutoHoldBatchOut(BaseModel):
    """Holds placed by a batch check plus the employees that could not be checked."""

    data: List[HoldOut]
    total: int
    checked: List[str] = []
    failed: List[BatchFailureOut] = []


# ═════════════════════════════════════════════════════════════════════
# Adjustments / overtime
# ═════════════════════════════════════════════════════════════════════


class AdjustmentIn(BaseModel):
    adjustment_type: AdjustmentType
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=1000)


class AdjustmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    month: str
    adjustment_type: AdjustmentType
    category: str
    amount: Decimal
    description: Optional[str] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class AdjustmentListResponse(BaseModel):
    data: List[AdjustmentOut]
    total: int


class OvertimeIn(BaseModel):
    enabled: bool


class OvertimeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    month: str
    is_overtime_enabled: bool
    updated_by: Optional[str] = None
