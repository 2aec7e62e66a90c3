"""Daily attendance classification.

Pure and synchronous: everything the classifier needs (shift timing, the
day's punches, holiday / weekly-off flags, regularization and leave marks)
is passed in, so the function can be unit tested without a database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from hr_payroll.attendance.models import RawPunchLog, Regularization
from hr_payroll.common.constants import (
    DayStatus,
    LeaveKind,
    PunchDirection,
    WeekoffType,
)
from hr_payroll.config import settings
from hr_payroll.shifts.resolver import ShiftTiming, TimeSlot

# Hours per slot may overrun the slot length by at most this much
SPLIT_SLOT_GRACE_HOURS = 1.0
# A split slot's first punch counts for lateness only this close to its start
SPLIT_LATE_WINDOW_MINUTES = 60
MAX_DAY_HOURS = 24.0

_IN_WORDS = {"in", "i", "entry", "checkin", "check-in"}
_OUT_WORDS = {"out", "o", "exit", "checkout", "check-out"}


# ── Inputs ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PunchLog:
    at: datetime
    direction: Optional[PunchDirection] = None

    @classmethod
    def from_model(cls, row: RawPunchLog) -> "PunchLog":
        return cls(at=row.punched_at, direction=normalize_direction(row.direction))


def normalize_direction(value: Optional[str]) -> Optional[PunchDirection]:
    if value is None:
        return None
    word = str(value).strip().lower()
    if word in _IN_WORDS:
        return PunchDirection.punch_in
    if word in _OUT_WORDS:
        return PunchDirection.punch_out
    return None


@dataclass(frozen=True)
class RegularizationMark:
    original_status: DayStatus
    regularized_status: DayStatus
    reason: Optional[str] = None

    @classmethod
    def from_model(cls, row: Regularization) -> "RegularizationMark":
        return cls(
            original_status=DayStatus(row.original_status),
            regularized_status=DayStatus(row.regularized_status),
            reason=row.reason,
        )


@dataclass(frozen=True)
class LeaveMark:
    kind: LeaveKind
    value: Decimal

    @property
    def status(self) -> DayStatus:
        return DayStatus.paid_leave if self.kind == LeaveKind.paid else DayStatus.casual_leave


@dataclass(frozen=True)
class ClassifierPolicy:
    early_exit_threshold_minutes: int = 30
    full_day_ratio: float = 0.97
    half_day_ratio: float = 0.5
    single_punch_exit_hour: int = 14
    late_tier_2_minutes: int = 30

    @classmethod
    def from_settings(cls) -> "ClassifierPolicy":
        return cls(
            early_exit_threshold_minutes=settings.EARLY_EXIT_THRESHOLD_MINUTES,
            full_day_ratio=settings.FULL_DAY_HOURS_RATIO,
            half_day_ratio=settings.HALF_DAY_HOURS_RATIO,
            single_punch_exit_hour=settings.SINGLE_PUNCH_EXIT_HOUR,
            late_tier_2_minutes=settings.LATE_TIER_2_MINUTES,
        )


# ── Output ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DailyRecord:
    date: date
    status: DayStatus
    # Status after regularization, before leave is applied
    attendance_status: DayStatus
    first_entry: Optional[datetime] = None
    last_exit: Optional[datetime] = None
    total_hours: float = 0.0
    is_late: bool = False
    minutes_late: int = 0
    is_late_by_30_minutes: bool = False
    is_early_exit: bool = False
    log_count: int = 0
    shift_name: Optional[str] = None
    original_status: Optional[DayStatus] = None
    is_regularized: bool = False
    leave_value: Optional[Decimal] = None
    weekoff_type: Optional[WeekoffType] = None
    notes: tuple[str, ...] = field(default=())

    @property
    def is_worked(self) -> bool:
        return self.attendance_status in (DayStatus.full_day, DayStatus.half_day)


# ── Helpers ─────────────────────────────────────────────────────────

def dedupe_punches(logs: Iterable[PunchLog]) -> list[PunchLog]:
    """Collapse punches sharing a timestamp and sort ascending.

    When duplicates disagree, a punch with a known direction wins.
    """
    by_time: dict[datetime, PunchLog] = {}
    for log in logs:
        seen = by_time.get(log.at)
        if seen is None or (seen.direction is None and log.direction is not None):
            by_time[log.at] = log
    return [by_time[t] for t in sorted(by_time)]


def _hours(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / 3600.0)


def _at(day: date, value: time) -> datetime:
    return datetime.combine(day, value)


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _split_midpoint(day: date, slots: Sequence[TimeSlot]) -> datetime:
    gap_start = _at(day, slots[0].end)
    gap_end = _at(day, slots[1].start)
    return gap_start + (gap_end - gap_start) / 2


def _status_for_hours(hours: float, shift: ShiftTiming, policy: ClassifierPolicy) -> DayStatus:
    if hours >= shift.work_hours * policy.full_day_ratio:
        return DayStatus.full_day
    if hours >= shift.work_hours * policy.half_day_ratio:
        return DayStatus.half_day
    return DayStatus.absent


def _single_punch(
    day: date,
    punch: PunchLog,
    policy: ClassifierPolicy,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Place a lone punch on the entry or exit side."""
    if punch.direction == PunchDirection.punch_out:
        return None, punch.at
    if punch.direction == PunchDirection.punch_in:
        return punch.at, None
    if punch.at.date() > day or punch.at.hour >= policy.single_punch_exit_hour:
        return None, punch.at
    return punch.at, None


# ── Per-shift-shape computations ────────────────────────────────────

@dataclass
class _Worked:
    first_entry: Optional[datetime]
    last_exit: Optional[datetime]
    hours: float
    minutes_late: int


def _work_normal(
    day: date,
    punches: list[PunchLog],
    shift: ShiftTiming,
    policy: ClassifierPolicy,
) -> _Worked:
    if len(punches) == 1:
        first_entry, last_exit = _single_punch(day, punches[0], policy)
        hours = 0.0
    else:
        first_entry, last_exit = punches[0].at, punches[-1].at
        hours = min(MAX_DAY_HOURS, _hours(first_entry, last_exit))

    minutes_late = 0
    if first_entry is not None:
        minutes_late = max(0, _whole_minutes(first_entry - _at(day, shift.start)))
    return _Worked(first_entry, last_exit, hours, minutes_late)


def _work_split(
    day: date,
    punches: list[PunchLog],
    shift: ShiftTiming,
    policy: ClassifierPolicy,
) -> _Worked:
    midpoint = _split_midpoint(day, shift.slots)
    groups = (
        [p for p in punches if p.at < midpoint],
        [p for p in punches if p.at >= midpoint],
    )

    hours = 0.0
    minutes_late = 0
    for slot, group in zip(shift.slots, groups):
        if len(group) >= 2:
            cap = slot.minutes / 60.0 + SPLIT_SLOT_GRACE_HOURS
            hours += min(cap, _hours(group[0].at, group[-1].at))
        if group:
            offset = _whole_minutes(group[0].at - _at(day, slot.start))
            if -SPLIT_LATE_WINDOW_MINUTES <= offset <= SPLIT_LATE_WINDOW_MINUTES:
                minutes_late = max(minutes_late, offset)

    if len(punches) == 1:
        first_entry, last_exit = _single_punch(day, punches[0], policy)
    else:
        first_entry, last_exit = punches[0].at, punches[-1].at
    return _Worked(first_entry, last_exit, min(MAX_DAY_HOURS, hours), minutes_late)


# ── Public API ──────────────────────────────────────────────────────

def classify_day(
    day: date,
    shift: ShiftTiming,
    logs: Iterable[PunchLog],
    *,
    is_holiday: bool = False,
    is_weekoff: bool = False,
    regularization: Optional[RegularizationMark] = None,
    leave: Optional[LeaveMark] = None,
    policy: Optional[ClassifierPolicy] = None,
) -> DailyRecord:
    """Derive one day's attendance record from its punches."""
    policy = policy or ClassifierPolicy.from_settings()
    punches = dedupe_punches(logs)

    rest_status: Optional[DayStatus] = None
    if is_holiday:
        rest_status = DayStatus.holiday
    elif is_weekoff:
        rest_status = DayStatus.weekoff

    if not punches and rest_status is not None:
        return DailyRecord(
            date=day,
            status=rest_status,
            attendance_status=rest_status,
            shift_name=shift.name,
        )

    if punches:
        work_fn = _work_split if shift.is_split else _work_normal
        worked = work_fn(day, punches, shift, policy)
    else:
        worked = _Worked(None, None, 0.0, 0)

    computed = _status_for_hours(worked.hours, shift, policy)

    # Stray punches on a rest day do not turn it into an absence
    if rest_status is not None:
        if computed == DayStatus.absent:
            return DailyRecord(
                date=day,
                status=rest_status,
                attendance_status=rest_status,
                first_entry=worked.first_entry,
                last_exit=worked.last_exit,
                total_hours=round(worked.hours, 2),
                log_count=len(punches),
                shift_name=shift.name,
            )
        return DailyRecord(
            date=day,
            status=computed,
            attendance_status=computed,
            first_entry=worked.first_entry,
            last_exit=worked.last_exit,
            total_hours=round(worked.hours, 2),
            log_count=len(punches),
            shift_name=shift.name,
            notes=(f"worked on {rest_status.value}",),
        )

    is_late = worked.minutes_late > shift.late_threshold_minutes
    minutes_late = worked.minutes_late if is_late else 0

    is_early_exit = False
    if worked.last_exit is None:
        is_early_exit = worked.first_entry is not None
    else:
        shift_end = _at(day, shift.end)
        if shift.crosses_midnight:
            shift_end += timedelta(days=1)
        cutoff = shift_end - timedelta(minutes=policy.early_exit_threshold_minutes)
        is_early_exit = worked.last_exit < cutoff

    status = computed
    original_status = None
    is_regularized = False
    if regularization is not None:
        original_status = computed
        status = regularization.regularized_status
        is_regularized = True

    attendance_status = status
    leave_value = None
    if leave is not None and status in (DayStatus.absent, DayStatus.half_day):
        status = leave.status
        leave_value = leave.value

    return DailyRecord(
        date=day,
        status=status,
        attendance_status=attendance_status,
        first_entry=worked.first_entry,
        last_exit=worked.last_exit,
        total_hours=round(worked.hours, 2),
        is_late=is_late,
        minutes_late=minutes_late,
        is_late_by_30_minutes=is_late and minutes_late >= policy.late_tier_2_minutes,
        is_early_exit=is_early_exit,
        log_count=len(punches),
        shift_name=shift.name,
        original_status=original_status,
        is_regularized=is_regularized,
        leave_value=leave_value,
    )
