"""Shifts router — shift definitions, assignments, effective shift lookup.

All endpoints require authentication; writes are admin only.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.auth.dependencies import CurrentUser, get_current_user, require_admin
from hr_payroll.database import get_db
from hr_payroll.shifts.resolver import resolve_shift
from hr_payroll.shifts.schemas import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentOut,
    ResolvedShiftOut,
    ShiftCreate,
    ShiftListResponse,
    ShiftOut,
)
from hr_payroll.shifts.service import ShiftService

router = APIRouter(prefix="", tags=["shifts"])


# ── GET / ────────────────────────────────────────────────────────────

@router.get("", response_model=ShiftListResponse)
async def list_shifts(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List all shifts."""
    shifts = await ShiftService.list_shifts(db)
    return ShiftListResponse(
        data=[ShiftOut.model_validate(s) for s in shifts],
        total=len(shifts),
    )


# ── POST / ───────────────────────────────────────────────────────────

@router.post("", response_model=ShiftOut, status_code=201)
async def create_shift(
    body: ShiftCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a shift (admin only)."""
    shift = await ShiftService.create_shift(db, body.model_dump())
    return ShiftOut.model_validate(shift)


# ── Assignments ──────────────────────────────────────────────────────

@router.get("/assignments", response_model=AssignmentListResponse)
async def list_assignments(
    employee_code: str = Query(..., min_length=1),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List an employee's shift assignments (admin only)."""
    assignments = await ShiftService.list_assignments(db, employee_code, from_date, to_date)
    return AssignmentListResponse(
        data=[AssignmentOut.model_validate(a) for a in assignments],
        total=len(assignments),
    )


@router.post("/assignments", response_model=AssignmentOut, status_code=201)
async def create_assignment(
    body: AssignmentCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Assign a shift over an inclusive date range (admin only)."""
    assignment = await ShiftService.create_assignment(
        db,
        employee_code=body.employee_code,
        shift_name=body.shift_name,
        from_date=body.from_date,
        to_date=body.to_date,
        created_by=user.employee_code,
    )
    return AssignmentOut.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", status_code=204)
async def delete_assignment(
    assignment_id: uuid.UUID,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a shift assignment (admin only)."""
    await ShiftService.delete_assignment(db, assignment_id)


# ── GET /resolve ─────────────────────────────────────────────────────

@router.get("/resolve", response_model=ResolvedShiftOut)
async def resolve(
    employee_code: str = Query(..., min_length=1),
    on: date = Query(..., alias="date"),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Effective shift for an employee on a date (admin only)."""
    timing = await resolve_shift(db, employee_code, on)
    return ResolvedShiftOut(
        employee_code=employee_code,
        date=on,
        name=timing.name,
        start=timing.start,
        end=timing.end,
        is_split=timing.is_split,
        slots=[{"start": s.start, "end": s.end} for s in timing.slots],
        work_hours=timing.work_hours,
        late_threshold_minutes=timing.late_threshold_minutes,
    )
