"""Shift resolution — which shift timing applies to an employee on a date.

Order of precedence for a given day:

1. Date-ranged ``ShiftAssignment`` rows covering the day; when several
   overlap, the most recently *created* one wins.
2. The employee's own ``shift_name``.
3. The system default shift (``DEFAULT_SHIFT_NAME``), else the first
   shift by name.

Bad time configuration on the chosen shift raises ``ComputationError``;
it is never defaulted to zero hours.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.common.cycle import DateRange
from hr_payroll.common.exceptions import ComputationError, NotFoundException
from hr_payroll.config import settings
from hr_payroll.employees.models import Employee
from hr_payroll.shifts.models import Shift, ShiftAssignment

logger = logging.getLogger(__name__)

_TIME_FORMATS = ("%H:%M:%S", "%H:%M")


# ── Value objects ───────────────────────────────────────────────────

@dataclass(frozen=True)
class TimeSlot:
    start: time
    end: time

    @property
    def minutes(self) -> int:
        return _minutes(self.end) - _minutes(self.start)


@dataclass(frozen=True)
class ShiftTiming:
    """Validated, immutable view of a Shift row."""

    name: str
    work_hours: float
    late_threshold_minutes: int
    start: time
    end: time
    slots: tuple[TimeSlot, ...] = ()

    @property
    def is_split(self) -> bool:
        return len(self.slots) == 2

    @property
    def crosses_midnight(self) -> bool:
        return not self.is_split and self.end <= self.start

    @classmethod
    def from_shift(cls, shift: Shift) -> "ShiftTiming":
        """Map a Shift row, rejecting inconsistent configuration."""
        name = shift.name
        raw_hours = shift.work_hours
        if raw_hours is None:
            raw_hours = settings.DEFAULT_WORK_HOURS_PER_DAY
        try:
            work_hours = float(raw_hours)
        except (TypeError, ValueError):
            raise ComputationError(f"Shift '{name}' has invalid work_hours {shift.work_hours!r}.")
        if not 0 < work_hours <= 24:
            raise ComputationError(f"Shift '{name}' work_hours must be in (0, 24], got {work_hours}.")
        threshold = shift.late_threshold_minutes or 0
        if threshold < 0:
            raise ComputationError(f"Shift '{name}' has a negative late threshold.")

        if shift.is_split_shift:
            s1 = _parse_time(shift.slot1_start, name, "slot1_start")
            e1 = _parse_time(shift.slot1_end, name, "slot1_end")
            s2 = _parse_time(shift.slot2_start, name, "slot2_start")
            e2 = _parse_time(shift.slot2_end, name, "slot2_end")
            if not (s1 < e1 <= s2 < e2):
                raise ComputationError(
                    f"Shift '{name}' split slots must be ordered "
                    f"slot1_start < slot1_end <= slot2_start < slot2_end."
                )
            return cls(
                name=name,
                work_hours=work_hours,
                late_threshold_minutes=threshold,
                start=s1,
                end=e2,
                slots=(TimeSlot(s1, e1), TimeSlot(s2, e2)),
            )

        if any(v is not None for v in (shift.slot1_start, shift.slot1_end,
                                       shift.slot2_start, shift.slot2_end)):
            raise ComputationError(
                f"Shift '{name}' is not a split shift but has slot times set."
            )
        start = _parse_time(shift.start_time, name, "start_time")
        end = _parse_time(shift.end_time, name, "end_time")
        if start == end:
            raise ComputationError(f"Shift '{name}' start and end times are equal.")
        return cls(
            name=name,
            work_hours=work_hours,
            late_threshold_minutes=threshold,
            start=start,
            end=end,
        )


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _parse_time(value: Any, shift_name: str, field: str) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        for fmt in _TIME_FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise ComputationError(
        f"Shift '{shift_name}' has an unparseable {field}: {value!r}."
    )


# ── Pure helpers ────────────────────────────────────────────────────

def pick_assignment(
    assignments: Iterable[ShiftAssignment],
    day: date,
) -> Optional[ShiftAssignment]:
    """Return the most recently created assignment covering ``day``."""
    covering = [a for a in assignments if a.from_date <= day <= a.to_date]
    if not covering:
        return None
    return max(covering, key=lambda a: a.created_at)


# ── Resolver ────────────────────────────────────────────────────────

class ShiftResolver:
    """Resolve shifts for one employee over a date range without further I/O."""

    def __init__(
        self,
        employee: Employee,
        assignments: Sequence[ShiftAssignment],
        shifts: Sequence[Shift],
        default_shift_name: Optional[str] = None,
    ) -> None:
        self.employee = employee
        self.assignments = list(assignments)
        self._shifts = {s.name: s for s in shifts}
        self._default_shift_name = default_shift_name or settings.DEFAULT_SHIFT_NAME
        self._timings: dict[str, ShiftTiming] = {}

    @classmethod
    async def load(
        cls,
        db: AsyncSession,
        employee_code: str,
        period: DateRange,
    ) -> "ShiftResolver":
        result = await db.execute(
            select(Employee).where(Employee.employee_code == employee_code)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundException("Employee", employee_code)

        result = await db.execute(
            select(ShiftAssignment).where(
                ShiftAssignment.employee_code == employee_code,
                ShiftAssignment.from_date <= period.end,
                ShiftAssignment.to_date >= period.start,
            )
        )
        assignments = list(result.scalars().all())

        result = await db.execute(select(Shift).order_by(Shift.name))
        shifts = list(result.scalars().all())
        return cls(employee, assignments, shifts)

    def shift_name_for(self, day: date) -> str:
        assignment = pick_assignment(self.assignments, day)
        if assignment is not None:
            return assignment.shift_name
        if self.employee.shift_name:
            return self.employee.shift_name
        return self._default_name()

    def _default_name(self) -> str:
        if self._default_shift_name in self._shifts:
            return self._default_shift_name
        if not self._shifts:
            raise NotFoundException("Shift", self._default_shift_name)
        first = sorted(self._shifts)[0]
        logger.info(
            "Default shift %r not found; falling back to %r",
            self._default_shift_name, first,
        )
        return first

    def resolve(self, day: date) -> ShiftTiming:
        name = self.shift_name_for(day)
        timing = self._timings.get(name)
        if timing is None:
            shift = self._shifts.get(name)
            if shift is None:
                raise NotFoundException("Shift", name)
            timing = ShiftTiming.from_shift(shift)
            self._timings[name] = timing
        return timing


async def resolve_shift(
    db: AsyncSession,
    employee_code: str,
    day: date,
) -> ShiftTiming:
    """Effective shift timing for one employee on one date."""
    resolver = await ShiftResolver.load(db, employee_code, DateRange(day, day))
    return resolver.resolve(day)
