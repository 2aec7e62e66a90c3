"""Monthly attendance aggregation over a salary cycle.

``AttendanceService.aggregate_month`` fetches everything one employee's
cycle needs in a handful of queries, classifies each day with
``classify_day`` and reduces the records with ``summarize_month``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.classifier import (
    ClassifierPolicy,
    DailyRecord,
    LeaveMark,
    PunchLog,
    RegularizationMark,
    classify_day,
)
from hr_payroll.attendance.models import Holiday, RawPunchLog, Regularization
from hr_payroll.common.constants import DayStatus, WeekoffType
from hr_payroll.common.cycle import DateRange, salary_cycle
from hr_payroll.common.exceptions import ConflictError
from hr_payroll.config import settings
from hr_payroll.database import Capabilities
from hr_payroll.leave.service import LeaveLedger
from hr_payroll.salary.models import MonthlyOvertime
from hr_payroll.shifts.resolver import ShiftResolver

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HALF = Decimal("0.5")
ONE = Decimal("1")
# Days looked back from a weekly off for evidence of work
WEEKOFF_LOOKBACK_DAYS = 6

_LEAVE_STATUSES = (DayStatus.paid_leave, DayStatus.casual_leave)


@dataclass(frozen=True)
class AggregatorPolicy:
    late_tier_1_minutes: int = 10
    late_tier_2_minutes: int = 30
    late_penalty_on_half_days: bool = False
    unpaid_weekoff_lop_days: Decimal = Decimal("5")
    day_rollover_hour: int = 5
    overnight_exit_grace_minutes: int = 120

    @classmethod
    def from_settings(cls) -> "AggregatorPolicy":
        return cls(
            late_tier_1_minutes=settings.LATE_TIER_1_MINUTES,
            late_tier_2_minutes=settings.LATE_TIER_2_MINUTES,
            late_penalty_on_half_days=settings.LATE_PENALTY_ON_HALF_DAYS,
            unpaid_weekoff_lop_days=Decimal(str(settings.UNPAID_WEEKOFF_LOP_DAYS)),
            day_rollover_hour=settings.DAY_ROLLOVER_HOUR,
            overnight_exit_grace_minutes=settings.OVERNIGHT_EXIT_GRACE_MINUTES,
        )


@dataclass
class MonthlyAttendance:
    employee_code: str
    month: str
    cycle: DateRange
    active: DateRange
    full_days: int = 0
    half_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    late_by_30_minutes_days: int = 0
    late_by_10_minutes_days: int = 0
    early_exits: int = 0
    total_worked_hours: Decimal = ZERO
    holidays: int = 0
    paid_leave_days: Decimal = ZERO
    casual_leave_days: Decimal = ZERO
    sundays_in_month: int = 0
    unpaid_weekoff_days: int = 0
    inactive_days: int = 0
    expected_working_days: int = 0
    expected_hours: Decimal = ZERO
    actual_days_worked: Decimal = ZERO
    total_payable_days: Decimal = ZERO
    overtime_enabled: bool = False
    overtime_hours: Decimal = ZERO
    shift_work_hours: Decimal = ZERO
    failed_days: list[date] = field(default_factory=list)
    days: list[DailyRecord] = field(default_factory=list)

    @property
    def cycle_days(self) -> int:
        return self.cycle.days

    @property
    def leave_days(self) -> Decimal:
        return self.paid_leave_days + self.casual_leave_days

    @property
    def lop_equivalent_days(self) -> Decimal:
        return Decimal(self.absent_days) + HALF * self.half_days


@dataclass
class DailyRecords:
    """Per-day classification of a period, before monthly reduction."""

    active: DateRange
    records: list[DailyRecord] = field(default_factory=list)
    # Shift hours owed on each working day
    expected_hours: dict[date, float] = field(default_factory=dict)
    failed_days: list[date] = field(default_factory=list)


# ── Pure reduction ──────────────────────────────────────────────────

def workday_of(
    at: datetime,
    rollover_hour: int,
    overnight_end: Optional[time] = None,
    exit_grace_minutes: int = 0,
) -> date:
    """Workday a punch belongs to.

    Punches before ``rollover_hour`` belong to the previous workday. When the
    previous workday's shift runs past midnight and ends at ``overnight_end``,
    punches up to that end plus ``exit_grace_minutes`` belong to it as well.
    """
    if overnight_end is not None:
        cutoff = datetime.combine(at.date(), overnight_end) + timedelta(minutes=exit_grace_minutes)
        if at < cutoff:
            return at.date() - timedelta(days=1)
    return (at - timedelta(hours=rollover_hour)).date()


def group_punches(
    logs: Iterable[PunchLog],
    rollover_hour: int,
    overnight_end_for: Optional[Callable[[date], Optional[time]]] = None,
    exit_grace_minutes: int = 0,
) -> dict[date, list[PunchLog]]:
    """Group punches by workday.

    ``overnight_end_for(day)`` returns the end time of ``day``'s shift when
    that shift crosses midnight, else ``None``.
    """
    grouped: dict[date, list[PunchLog]] = defaultdict(list)
    for log in logs:
        overnight_end = None
        if overnight_end_for is not None:
            overnight_end = overnight_end_for(log.at.date() - timedelta(days=1))
        day = workday_of(log.at, rollover_hour, overnight_end, exit_grace_minutes)
        grouped[day].append(log)
    return grouped


def _pre_leave_lop(record: DailyRecord) -> Decimal:
    if record.attendance_status == DayStatus.absent:
        return ONE
    if record.attendance_status == DayStatus.half_day:
        return HALF
    return ZERO


def _shows_presence(record: DailyRecord) -> bool:
    return (
        record.is_worked
        or record.status in _LEAVE_STATUSES
        or record.status == DayStatus.holiday
    )


def tag_weekoffs(
    records: Sequence[DailyRecord],
    policy: AggregatorPolicy,
) -> list[DailyRecord]:
    """Mark every weekly-off record paid or unpaid.

    A weekly off is unpaid when the month's absences (before leave) reach
    the LOP threshold, or when none of the active days in the six days
    before it shows work, leave or a holiday.
    """
    month_lop = sum((_pre_leave_lop(r) for r in records), ZERO)
    month_unpaid = month_lop >= policy.unpaid_weekoff_lop_days
    by_day = {r.date: r for r in records}

    tagged = []
    for record in records:
        if record.status != DayStatus.weekoff:
            tagged.append(record)
            continue
        if month_unpaid:
            weekoff_type = WeekoffType.unpaid
        else:
            window = [
                by_day[d]
                for d in (record.date - timedelta(days=n) for n in range(1, WEEKOFF_LOOKBACK_DAYS + 1))
                if d in by_day and by_day[d].status not in (DayStatus.not_active, DayStatus.weekoff)
            ]
            if window and not any(_shows_presence(r) for r in window):
                weekoff_type = WeekoffType.unpaid
            else:
                weekoff_type = WeekoffType.paid
        tagged.append(replace(record, weekoff_type=weekoff_type))
    return tagged


def summarize_month(
    employee_code: str,
    month: str,
    cycle: DateRange,
    active: DateRange,
    records: Sequence[DailyRecord],
    expected_hours_by_day: dict[date, float],
    *,
    shift_work_hours: float,
    overtime_enabled: bool = False,
    failed_days: Sequence[date] = (),
    policy: Optional[AggregatorPolicy] = None,
) -> MonthlyAttendance:
    """Reduce a cycle's daily records to the monthly counts."""
    policy = policy or AggregatorPolicy.from_settings()
    records = tag_weekoffs(records, policy)
    summary = MonthlyAttendance(
        employee_code=employee_code,
        month=month,
        cycle=cycle,
        active=active,
        overtime_enabled=overtime_enabled,
        shift_work_hours=Decimal(str(shift_work_hours)),
        failed_days=list(failed_days),
        days=list(records),
    )

    worked_hours = 0.0
    worked_half_days = 0
    payable = ZERO
    for record in records:
        status = record.status
        worked_hours += record.total_hours

        if status == DayStatus.not_active:
            summary.inactive_days += 1
            continue

        if status == DayStatus.full_day:
            summary.full_days += 1
            payable += ONE
        elif status == DayStatus.half_day:
            summary.half_days += 1
            worked_half_days += 1
            payable += HALF
        elif status == DayStatus.absent:
            summary.absent_days += 1
        elif status == DayStatus.holiday:
            summary.holidays += 1
            payable += ONE
        elif status == DayStatus.weekoff:
            if record.weekoff_type == WeekoffType.unpaid:
                summary.unpaid_weekoff_days += 1
            else:
                summary.sundays_in_month += 1
                payable += ONE
        elif status in _LEAVE_STATUSES:
            value = record.leave_value or ONE
            if status == DayStatus.paid_leave:
                summary.paid_leave_days += value
            else:
                summary.casual_leave_days += value
            if record.attendance_status == DayStatus.half_day:
                # Any leave on a half day covers the other half
                worked_half_days += 1
                payable += ONE
            elif value < ONE:
                # Half a day of leave on an absence leaves half a day to deduct
                summary.half_days += 1
                payable += value
            else:
                payable += ONE

        if record.is_regularized or status not in (DayStatus.full_day, DayStatus.half_day):
            continue
        if record.is_early_exit:
            summary.early_exits += 1
        if status == DayStatus.half_day and not policy.late_penalty_on_half_days:
            continue
        if record.is_late:
            summary.late_days += 1
            if record.minutes_late >= policy.late_tier_2_minutes:
                summary.late_by_30_minutes_days += 1
            elif record.minutes_late >= policy.late_tier_1_minutes:
                summary.late_by_10_minutes_days += 1

    summary.expected_working_days = len(expected_hours_by_day)
    summary.expected_hours = Decimal(str(round(sum(expected_hours_by_day.values()), 2)))
    summary.total_worked_hours = Decimal(str(round(worked_hours, 2)))
    summary.actual_days_worked = Decimal(summary.full_days) + HALF * worked_half_days
    summary.total_payable_days = payable
    if overtime_enabled:
        summary.overtime_hours = max(ZERO, summary.total_worked_hours - summary.expected_hours)
    return summary


# ── Service ─────────────────────────────────────────────────────────

class AttendanceService:
    """Daily records and monthly aggregates backed by the database."""

    @staticmethod
    async def get_punches(
        db: AsyncSession,
        employee_code: str,
        period: DateRange,
    ) -> list[PunchLog]:
        """Punches from the first day of ``period`` through the day after it.

        The extra day carries exits of an overnight shift on the last day.
        """
        window_start = datetime.combine(period.start, time.min)
        window_end = datetime.combine(period.end + timedelta(days=2), time.min)
        result = await db.execute(
            select(RawPunchLog)
            .where(
                RawPunchLog.employee_code == employee_code,
                RawPunchLog.punched_at >= window_start,
                RawPunchLog.punched_at < window_end,
            )
            .order_by(RawPunchLog.punched_at)
        )
        return [PunchLog.from_model(row) for row in result.scalars().all()]

    @staticmethod
    async def get_holidays(db: AsyncSession, period: DateRange) -> set[date]:
        result = await db.execute(
            select(Holiday.holiday_date).where(
                Holiday.holiday_date >= period.start,
                Holiday.holiday_date <= period.end,
            )
        )
        return set(result.scalars().all())

    @staticmethod
    async def get_regularization_marks(
        db: AsyncSession,
        employee_code: str,
        period: DateRange,
    ) -> dict[date, RegularizationMark]:
        result = await db.execute(
            select(Regularization).where(
                Regularization.employee_code == employee_code,
                Regularization.attendance_date >= period.start,
                Regularization.attendance_date <= period.end,
            )
        )
        return {
            row.attendance_date: RegularizationMark.from_model(row)
            for row in result.scalars().all()
        }

    @staticmethod
    async def is_overtime_enabled(
        db: AsyncSession,
        employee_code: str,
        month: str,
        capabilities: Capabilities,
    ) -> bool:
        if not capabilities.overtime_tracking:
            return False
        result = await db.execute(
            select(MonthlyOvertime.is_overtime_enabled).where(
                MonthlyOvertime.employee_code == employee_code,
                MonthlyOvertime.month == month,
            )
        )
        return bool(result.scalar_one_or_none())

    @staticmethod
    async def classify_period(
        db: AsyncSession,
        resolver: ShiftResolver,
        period: DateRange,
        leave_month: str,
        *,
        capabilities: Optional[Capabilities] = None,
        classifier_policy: Optional[ClassifierPolicy] = None,
        policy: Optional[AggregatorPolicy] = None,
    ) -> DailyRecords:
        """Classify each day of ``period`` for the resolver's employee.

        Days outside employment are ``not-active``. Shift errors propagate;
        any other failure classifying a day is logged and the day counts
        as absent.
        """
        capabilities = capabilities or Capabilities()
        classifier_policy = classifier_policy or ClassifierPolicy.from_settings()
        policy = policy or AggregatorPolicy.from_settings()

        employee = resolver.employee
        employee_code = employee.employee_code
        active = period.clip(employee.joining_date, employee.exit_date)

        def overnight_end(day: date) -> Optional[time]:
            if day not in active:
                return None
            shift = resolver.resolve(day)
            return shift.end if shift.crosses_midnight else None

        logs = await AttendanceService.get_punches(db, employee_code, active)
        punches = group_punches(
            logs,
            policy.day_rollover_hour,
            overnight_end,
            policy.overnight_exit_grace_minutes,
        )
        holidays = await AttendanceService.get_holidays(db, active)
        regularizations: dict[date, RegularizationMark] = {}
        if capabilities.regularizations:
            regularizations = await AttendanceService.get_regularization_marks(
                db, employee_code, active,
            )
        usage = await LeaveLedger.get_month_usage(db, employee_code, leave_month)
        leave_marks = {
            day: LeaveMark(kind, value) for day, (kind, value) in usage.marks().items()
        }
        weekly_off = employee.weekly_off_day if employee.weekly_off_day is not None else 6

        out = DailyRecords(active=active)
        for day in period:
            if day not in active:
                out.records.append(DailyRecord(
                    date=day,
                    status=DayStatus.not_active,
                    attendance_status=DayStatus.not_active,
                ))
                continue

            shift = resolver.resolve(day)
            is_holiday = day in holidays
            is_weekoff = day.weekday() == weekly_off
            if not is_holiday and not is_weekoff:
                out.expected_hours[day] = shift.work_hours
            try:
                record = classify_day(
                    day,
                    shift,
                    punches.get(day, ()),
                    is_holiday=is_holiday,
                    is_weekoff=is_weekoff,
                    regularization=regularizations.get(day),
                    leave=leave_marks.get(day),
                    policy=classifier_policy,
                )
            except Exception:
                logger.warning(
                    "Classification failed for %s on %s; counting the day as absent",
                    employee_code, day, exc_info=True,
                )
                out.failed_days.append(day)
                record = DailyRecord(
                    date=day,
                    status=DayStatus.absent,
                    attendance_status=DayStatus.absent,
                    shift_name=shift.name,
                    notes=("classification failed",),
                )
            out.records.append(record)
        return out

    @staticmethod
    async def aggregate_month(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        capabilities: Optional[Capabilities] = None,
        resolver: Optional[ShiftResolver] = None,
    ) -> MonthlyAttendance:
        """Classify every day of the salary cycle and reduce to counts."""
        capabilities = capabilities or Capabilities()
        policy = AggregatorPolicy.from_settings()

        cycle = salary_cycle(month)
        if resolver is None:
            resolver = await ShiftResolver.load(db, employee_code, cycle)

        daily = await AttendanceService.classify_period(
            db,
            resolver,
            cycle,
            month,
            capabilities=capabilities,
            policy=policy,
        )
        overtime_enabled = await AttendanceService.is_overtime_enabled(
            db, employee_code, month, capabilities,
        )

        last_day = daily.active.end if daily.active.days else cycle.end
        shift_work_hours = resolver.resolve(last_day).work_hours

        summary = summarize_month(
            employee_code,
            month,
            cycle,
            daily.active,
            daily.records,
            daily.expected_hours,
            shift_work_hours=shift_work_hours,
            overtime_enabled=overtime_enabled,
            failed_days=daily.failed_days,
            policy=policy,
        )
        logger.debug(
            "Aggregated %s %s: full=%d half=%d absent=%d payable=%s",
            employee_code, month, summary.full_days, summary.half_days,
            summary.absent_days, summary.total_payable_days,
        )
        return summary

    # ── Holidays ──────────────────────────────────────────────────────

    @staticmethod
    async def list_holidays(db: AsyncSession, year: int) -> list[Holiday]:
        result = await db.execute(
            select(Holiday)
            .where(
                Holiday.holiday_date >= date(year, 1, 1),
                Holiday.holiday_date <= date(year, 12, 31),
            )
            .order_by(Holiday.holiday_date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_holiday(db: AsyncSession, holiday_date: date, name: str) -> Holiday:
        if holiday_date in await AttendanceService.get_holidays(
            db, DateRange(holiday_date, holiday_date),
        ):
            raise ConflictError(f"A holiday on {holiday_date} already exists.")
        holiday = Holiday(holiday_date=holiday_date, name=name)
        db.add(holiday)
        await db.flush()
        return holiday
