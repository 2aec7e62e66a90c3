"""Payroll router — calculate, finalize, hold, adjust, payslips.

All endpoints are admin only. Employees read their own payslips through
the ``/me`` router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.schemas import MonthlyAttendanceOut
from hr_payroll.auth.dependencies import CurrentUser, require_admin
from hr_payroll.common.constants import AdjustmentType, SalaryStatus
from hr_payroll.database import Capabilities, get_capabilities, get_db
from hr_payroll.salary.schemas import (
    AdjustmentIn,
    AdjustmentListResponse,
    AdjustmentOut,
    AutoHoldBatchOut,
    BatchFailureOut,
    BatchResultOut,
    FinalizeAllOut,
    HoldCreate,
    HoldListResponse,
    HoldOut,
    MonthlySalaryListResponse,
    MonthlySalaryOut,
    OvertimeIn,
    OvertimeOut,
    PayslipOut,
    SalaryPreviewOut,
)
from hr_payroll.salary.service import SalaryService

router = APIRouter(prefix="", tags=["payroll"])


# ── Month-wide operations ────────────────────────────────────────────

@router.get("/{month}", response_model=MonthlySalaryListResponse)
async def list_salaries(
    month: str,
    status: Optional[SalaryStatus] = Query(None),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    salaries = await SalaryService.list_salaries(db, month, status)
    return MonthlySalaryListResponse(
        data=[MonthlySalaryOut.model_validate(s) for s in salaries],
        total=len(salaries),
    )


@router.post("/{month}/calculate", response_model=BatchResultOut)
async def calculate_all(
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Calculate DRAFT salaries for every employee; failures are listed."""
    outcome = await SalaryService.calculate_all(
        db, month, calculated_by=user.employee_code, capabilities=capabilities,
    )
    return BatchResultOut.model_validate(outcome)


@router.post("/{month}/finalize", response_model=FinalizeAllOut)
async def finalize_all(
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Finalize every DRAFT salary of the month."""
    codes = await SalaryService.finalize_all(db, month, user.employee_code)
    return FinalizeAllOut(month=month, finalized=codes, total=len(codes))


@router.get("/{month}/holds", response_model=HoldListResponse)
async def list_holds(
    month: str,
    include_released: bool = Query(False),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    holds = await SalaryService.list_holds(db, month, include_released)
    return HoldListResponse(
        data=[HoldOut.model_validate(h) for h in holds],
        total=len(holds),
    )


@router.post("/{month}/auto-holds", response_model=AutoHoldBatchOut)
async def check_auto_holds(
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Place AUTO holds on next month for early-month absences."""
    holds, outcome = await SalaryService.check_auto_holds(db, month, capabilities=capabilities)
    return AutoHoldBatchOut(
        data=[HoldOut.model_validate(h) for h in holds],
        total=len(holds),
        checked=outcome.succeeded,
        failed=[BatchFailureOut.model_validate(f) for f in outcome.failed],
    )


# ── Single employee ──────────────────────────────────────────────────

@router.get("/{month}/employees/{employee_code}", response_model=MonthlySalaryOut)
async def get_salary(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    salary = await SalaryService.get_salary(db, employee_code, month)
    return MonthlySalaryOut.model_validate(salary)


@router.get("/{month}/employees/{employee_code}/preview", response_model=SalaryPreviewOut)
async def preview_salary(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Compute without saving."""
    attendance, breakdown = await SalaryService.compute(
        db, employee_code, month, capabilities=capabilities,
    )
    return SalaryPreviewOut(
        attendance=MonthlyAttendanceOut.from_summary(attendance),
        breakdown=breakdown.to_dict(),
    )


@router.post("/{month}/employees/{employee_code}/calculate", response_model=MonthlySalaryOut)
async def calculate_salary(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    salary = await SalaryService.calculate_salary(
        db, employee_code, month,
        calculated_by=user.employee_code,
        capabilities=capabilities,
    )
    return MonthlySalaryOut.model_validate(salary)


@router.post("/{month}/employees/{employee_code}/finalize", response_model=MonthlySalaryOut)
async def finalize_salary(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    salary = await SalaryService.finalize(db, employee_code, month, user.employee_code)
    return MonthlySalaryOut.model_validate(salary)


@router.get("/{month}/employees/{employee_code}/payslip", response_model=PayslipOut)
async def get_payslip(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    payslip = await SalaryService.get_payslip(db, employee_code, month, capabilities)
    return PayslipOut(
        salary=MonthlySalaryOut.model_validate(payslip.salary),
        breakdown=payslip.breakdown,
    )


# ── Holds ────────────────────────────────────────────────────────────

@router.post("/{month}/employees/{employee_code}/hold", response_model=HoldOut, status_code=201)
async def create_hold(
    month: str,
    employee_code: str,
    body: Optional[HoldCreate] = None,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    hold = await SalaryService.create_hold(
        db, employee_code, month,
        reason=body.reason if body is not None else None,
        action_by=user.employee_code,
        capabilities=capabilities,
    )
    return HoldOut.model_validate(hold)


@router.delete("/{month}/employees/{employee_code}/hold", response_model=HoldOut)
async def release_hold(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    hold = await SalaryService.release_hold(
        db, employee_code, month, action_by=user.employee_code,
    )
    return HoldOut.model_validate(hold)


@router.post("/{month}/employees/{employee_code}/auto-hold", response_model=Optional[HoldOut])
async def check_auto_hold(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    hold = await SalaryService.check_auto_hold(
        db, employee_code, month, capabilities=capabilities,
    )
    return HoldOut.model_validate(hold) if hold is not None else None


# ── Adjustments / overtime ───────────────────────────────────────────

@router.get(
    "/{month}/employees/{employee_code}/adjustments",
    response_model=AdjustmentListResponse,
)
async def list_adjustments(
    month: str,
    employee_code: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await SalaryService.get_adjustments(db, employee_code, month)
    return AdjustmentListResponse(
        data=[AdjustmentOut.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.put("/{month}/employees/{employee_code}/adjustments", response_model=AdjustmentOut)
async def upsert_adjustment(
    month: str,
    employee_code: str,
    body: AdjustmentIn,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add or replace the amount for one (type, category)."""
    row = await SalaryService.upsert_adjustment(
        db, employee_code, month,
        adjustment_type=body.adjustment_type,
        category=body.category,
        amount=body.amount,
        description=body.description,
        created_by=user.employee_code,
    )
    return AdjustmentOut.model_validate(row)


@router.delete(
    "/{month}/employees/{employee_code}/adjustments/{adjustment_type}/{category}",
    status_code=204,
)
async def delete_adjustment(
    month: str,
    employee_code: str,
    adjustment_type: AdjustmentType,
    category: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await SalaryService.delete_adjustment(db, employee_code, month, adjustment_type, category)


@router.put("/{month}/employees/{employee_code}/overtime", response_model=OvertimeOut)
async def set_overtime(
    month: str,
    employee_code: str,
    body: OvertimeIn,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    toggle = await SalaryService.set_overtime(
        db, employee_code, month, body.enabled,
        updated_by=user.employee_code,
        capabilities=capabilities,
    )
    return OvertimeOut.model_validate(toggle)
