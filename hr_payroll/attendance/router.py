"""Attendance router — monthly attendance, regularizations, holidays.

All endpoints require authentication; everything except the holiday list
is admin only.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.aggregator import AttendanceService
from hr_payroll.attendance.regularization import RegularizationService
from hr_payroll.attendance.schemas import (
    HolidayCreate,
    HolidayOut,
    MonthlyAttendanceOut,
    RegularizationBatchIn,
    RegularizationListResponse,
    RegularizationOut,
)
from hr_payroll.auth.dependencies import CurrentUser, get_current_user, require_admin
from hr_payroll.database import Capabilities, get_capabilities, get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── Holidays ─────────────────────────────────────────────────────────

@router.get("/holidays", response_model=list[HolidayOut])
async def list_holidays(
    year: int = Query(..., ge=2000, le=2100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    holidays = await AttendanceService.list_holidays(db, year)
    return [HolidayOut.model_validate(h) for h in holidays]


@router.post("/holidays", response_model=HolidayOut, status_code=201)
async def add_holiday(
    body: HolidayCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    holiday = await AttendanceService.add_holiday(db, body.holiday_date, body.name)
    return HolidayOut.model_validate(holiday)


# ── GET /{employee_code}/{month} ─────────────────────────────────────

@router.get("/{employee_code}/{month}", response_model=MonthlyAttendanceOut)
async def monthly_attendance(
    employee_code: str,
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Daily records and monthly counts for one salary cycle."""
    summary = await AttendanceService.aggregate_month(
        db, employee_code, month, capabilities=capabilities,
    )
    return MonthlyAttendanceOut.from_summary(summary)


# ── Regularizations ──────────────────────────────────────────────────

@router.get(
    "/{employee_code}/{month}/regularizations",
    response_model=RegularizationListResponse,
)
async def list_regularizations(
    employee_code: str,
    month: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    rows = await RegularizationService.list_regularizations(
        db, employee_code, month, capabilities=capabilities,
    )
    return RegularizationListResponse(
        data=[RegularizationOut.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.put(
    "/{employee_code}/{month}/regularizations",
    response_model=RegularizationListResponse,
)
async def save_regularizations(
    employee_code: str,
    month: str,
    body: RegularizationBatchIn,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Upsert a batch of regularizations; same date replaces the prior one."""
    rows = await RegularizationService.save_regularizations(
        db,
        employee_code,
        month,
        [e.model_dump() for e in body.entries],
        approved_by=user.employee_code,
        requested_by=body.requested_by,
        capabilities=capabilities,
    )
    return RegularizationListResponse(
        data=[RegularizationOut.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.delete("/{employee_code}/regularizations/{day}", status_code=204)
async def delete_regularization(
    employee_code: str,
    day: date,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    capabilities: Capabilities = Depends(get_capabilities),
):
    """Remove an override; the day reverts to its computed status."""
    await RegularizationService.delete_regularization(
        db, employee_code, day, capabilities=capabilities,
    )
