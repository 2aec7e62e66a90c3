"""Leave router — entitlements, monthly usage, balances (admin only)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.auth.dependencies import CurrentUser, require_admin
from hr_payroll.database import get_db
from hr_payroll.leave.schemas import (
    EntitlementIn,
    LeaveBalanceOut,
    MonthlyUsageIn,
    MonthlyUsageOut,
)
from hr_payroll.leave.service import LeaveLedger

router = APIRouter(prefix="", tags=["leave"])


@router.get("/{employee_code}/balance", response_model=LeaveBalanceOut)
async def get_balance(
    employee_code: str,
    year: int = Query(..., ge=2000, le=2100),
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Annual entitlement vs. usage, optionally with one month's usage."""
    balance = await LeaveLedger.get_balance(db, employee_code, year, month)
    return LeaveBalanceOut.from_balance(balance)


@router.put("/{employee_code}/entitlements/{year}", response_model=LeaveBalanceOut)
async def set_entitlement(
    employee_code: str,
    year: int,
    body: EntitlementIn,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Set the annual leave quota."""
    await LeaveLedger.set_entitlement(db, employee_code, year, body.allowed_leaves)
    balance = await LeaveLedger.get_balance(db, employee_code, year)
    return LeaveBalanceOut.from_balance(balance)


@router.get("/{employee_code}/usage/{month}", response_model=MonthlyUsageOut)
async def get_usage(
    employee_code: str,
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    usage = await LeaveLedger.get_month_usage(db, employee_code, month)
    return MonthlyUsageOut.from_usage(usage)


@router.put("/{employee_code}/usage/{month}", response_model=MonthlyUsageOut)
async def save_usage(
    employee_code: str,
    month: str,
    body: MonthlyUsageIn,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Approve a month's paid/casual leave dates (replaces the previous set)."""
    usage = await LeaveLedger.save_monthly_usage(
        db,
        employee_code,
        month,
        [d.model_dump(mode="json") for d in body.paid_leave_dates],
        [d.model_dump(mode="json") for d in body.casual_leave_dates],
        updated_by=user.employee_code,
    )
    return MonthlyUsageOut.from_usage(usage)
