"""Regularization overlay — admin overrides of day-level attendance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.models import Regularization
from hr_payroll.common.constants import OriginalStatus, RegularizedStatus
from hr_payroll.common.cycle import format_date, parse_date, parse_month, salary_cycle
from hr_payroll.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from hr_payroll.database import Capabilities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegularizationEntry:
    date: date
    original_status: OriginalStatus
    regularized_status: RegularizedStatus
    reason: Optional[str] = None


def parse_entries(month: str, raw_entries: Iterable[dict[str, Any]]) -> list[RegularizationEntry]:
    """Validate a batch; every problem is reported, keyed by entry index."""
    cycle = salary_cycle(month)
    errors: dict[str, list[str]] = {}
    entries: list[RegularizationEntry] = []
    seen: set[date] = set()

    for i, raw in enumerate(raw_entries):
        key = f"entries.{i}"
        problems: list[str] = []
        try:
            day = parse_date(raw.get("date"), key)
        except ValidationException as exc:
            errors.setdefault(key, []).extend(exc.errors[key])
            continue
        if day not in cycle:
            problems.append(
                f"{format_date(day)} is outside the {month} salary cycle "
                f"({format_date(cycle.start)} to {format_date(cycle.end)})."
            )
        if day in seen:
            problems.append(f"{format_date(day)} is listed more than once.")
        seen.add(day)
        try:
            original = OriginalStatus(raw.get("original_status"))
        except ValueError:
            problems.append("original_status must be 'absent' or 'half-day'.")
        try:
            regularized = RegularizedStatus(raw.get("regularized_status"))
        except ValueError:
            problems.append("regularized_status must be 'half-day' or 'full-day'.")
        if problems:
            errors.setdefault(key, []).extend(problems)
            continue
        entries.append(RegularizationEntry(day, original, regularized, raw.get("reason")))

    if errors:
        raise ValidationException(errors)
    return entries


class RegularizationService:
    """Business logic for attendance regularizations."""

    @staticmethod
    def _require(capabilities: Optional[Capabilities]) -> None:
        if capabilities is not None and not capabilities.regularizations:
            raise ConflictError("Regularizations are not available on this database.")

    @staticmethod
    async def save_regularizations(
        db: AsyncSession,
        employee_code: str,
        month: str,
        entries: Iterable[dict[str, Any]],
        *,
        approved_by: Optional[str] = None,
        requested_by: Optional[str] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> list[Regularization]:
        """Upsert a batch keyed by (employee_code, date)."""
        RegularizationService._require(capabilities)
        parse_month(month)
        parsed = parse_entries(month, entries)
        if not parsed:
            return []

        result = await db.execute(
            select(Regularization).where(
                Regularization.employee_code == employee_code,
                Regularization.attendance_date.in_([e.date for e in parsed]),
            )
        )
        existing = {r.attendance_date: r for r in result.scalars().all()}

        saved = []
        for entry in parsed:
            row = existing.get(entry.date)
            if row is None:
                row = Regularization(employee_code=employee_code, attendance_date=entry.date)
                db.add(row)
            row.original_status = entry.original_status.value
            row.regularized_status = entry.regularized_status.value
            row.reason = entry.reason
            row.approved_by = approved_by
            row.requested_by = requested_by
            saved.append(row)
        await db.flush()
        logger.info(
            "Saved %d regularizations for %s %s (approved by %s)",
            len(saved), employee_code, month, approved_by,
        )
        return saved

    @staticmethod
    async def list_regularizations(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        capabilities: Optional[Capabilities] = None,
    ) -> list[Regularization]:
        if capabilities is not None and not capabilities.regularizations:
            return []
        cycle = salary_cycle(month)
        result = await db.execute(
            select(Regularization)
            .where(
                Regularization.employee_code == employee_code,
                Regularization.attendance_date >= cycle.start,
                Regularization.attendance_date <= cycle.end,
            )
            .order_by(Regularization.attendance_date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_regularization(
        db: AsyncSession,
        employee_code: str,
        day: date,
        *,
        capabilities: Optional[Capabilities] = None,
    ) -> None:
        RegularizationService._require(capabilities)
        result = await db.execute(
            delete(Regularization).where(
                Regularization.employee_code == employee_code,
                Regularization.attendance_date == day,
            )
        )
        if result.rowcount == 0:
            raise NotFoundException("Regularization", f"{employee_code}/{format_date(day)}")
        logger.info("Deleted regularization for %s on %s", employee_code, day)
