"""Self-service router — an employee's own attendance, leave and payslips."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.aggregator import AttendanceService
from hr_payroll.attendance.schemas import MonthlyAttendanceOut
from hr_payroll.auth.dependencies import CurrentUser, get_current_user
from hr_payroll.common.rate_limit import limiter
from hr_payroll.config import settings
from hr_payroll.database import Capabilities, get_capabilities, get_db
from hr_payroll.leave.schemas import LeaveBalanceOut
from hr_payroll.leave.service import LeaveLedger
from hr_payroll.salary.schemas import MonthlySalaryOut, PayslipOut
from hr_payroll.salary.service import SalaryService

router = APIRouter(prefix="", tags=["me"])


@router.get("/attendance/{month}", response_model=MonthlyAttendanceOut)
async def my_attendance(
    month: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """The caller's attendance for one salary cycle."""
    summary = await AttendanceService.aggregate_month(
        db, user.employee_code, month, capabilities=capabilities,
    )
    return MonthlyAttendanceOut.from_summary(summary)


@router.get("/leave/balance", response_model=LeaveBalanceOut)
async def my_leave_balance(
    year: int = Query(..., ge=2000, le=2100),
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await LeaveLedger.get_balance(db, user.employee_code, year, month)
    return LeaveBalanceOut.from_balance(balance)


@router.get("/payslips/{month}", response_model=PayslipOut)
@limiter.limit(settings.PAYSLIP_RATE_LIMIT)
async def my_payslip(
    request: Request,
    month: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Finalized payslip; blocked while the salary is on hold."""
    payslip = await SalaryService.get_payslip(db, user.employee_code, month, capabilities)
    return PayslipOut(
        salary=MonthlySalaryOut.model_validate(payslip.salary),
        breakdown=payslip.breakdown,
    )
