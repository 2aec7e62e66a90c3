"""Shift service layer — shifts and date-ranged shift assignments."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from hr_payroll.shifts.models import Shift, ShiftAssignment
from hr_payroll.shifts.resolver import ShiftTiming

logger = logging.getLogger(__name__)


class ShiftService:
    """Business logic for shift configuration."""

    @staticmethod
    async def list_shifts(db: AsyncSession) -> list[Shift]:
        result = await db.execute(select(Shift).order_by(Shift.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_shift(db: AsyncSession, name: str) -> Shift:
        result = await db.execute(select(Shift).where(Shift.name == name))
        shift = result.scalar_one_or_none()
        if shift is None:
            raise NotFoundException("Shift", name)
        return shift

    @staticmethod
    async def create_shift(db: AsyncSession, data: dict) -> Shift:
        """Create a shift; the timing must validate before it is stored."""
        shift = Shift(**data)
        # Raises ComputationError for an inconsistent configuration
        ShiftTiming.from_shift(shift)
        try:
            async with db.begin_nested():
                db.add(shift)
                await db.flush()
        except IntegrityError:
            raise ConflictError(f"Shift '{shift.name}' already exists.")
        logger.info("Created shift %s", shift.name)
        return shift

    @staticmethod
    async def list_assignments(
        db: AsyncSession,
        employee_code: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[ShiftAssignment]:
        stmt = select(ShiftAssignment).where(ShiftAssignment.employee_code == employee_code)
        if from_date is not None:
            stmt = stmt.where(ShiftAssignment.to_date >= from_date)
        if to_date is not None:
            stmt = stmt.where(ShiftAssignment.from_date <= to_date)
        stmt = stmt.order_by(ShiftAssignment.from_date, ShiftAssignment.created_at)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_assignment(
        db: AsyncSession,
        employee_code: str,
        shift_name: str,
        from_date: date,
        to_date: date,
        created_by: Optional[str] = None,
    ) -> ShiftAssignment:
        if from_date > to_date:
            raise ValidationException.on("to_date", "to_date must not be before from_date.")
        await ShiftService.get_shift(db, shift_name)
        assignment = ShiftAssignment(
            employee_code=employee_code,
            shift_name=shift_name,
            from_date=from_date,
            to_date=to_date,
            created_by=created_by,
        )
        db.add(assignment)
        await db.flush()
        logger.info(
            "Assigned shift %s to %s for %s..%s",
            shift_name, employee_code, from_date, to_date,
        )
        return assignment

    @staticmethod
    async def delete_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> None:
        assignment = await db.get(ShiftAssignment, assignment_id)
        if assignment is None:
            raise NotFoundException("ShiftAssignment", str(assignment_id))
        await db.delete(assignment)
        await db.flush()
