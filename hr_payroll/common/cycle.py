"""Salary cycle and date helpers.

The salary cycle for month ``YYYY-MM`` runs from the 26th of the previous
month through the 25th of ``YYYY-MM`` (inclusive on both ends).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from hr_payroll.common.constants import (
    CYCLE_END_DAY,
    CYCLE_START_DAY,
    DATE_FORMAT,
)
from hr_payroll.common.exceptions import ValidationException

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1 if self.end >= self.start else 0

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def clip(self, start: Optional[date], end: Optional[date]) -> "DateRange":
        """Intersect with an optional [start, end] window (e.g. join/exit)."""
        lo = max(self.start, start) if start else self.start
        hi = min(self.end, end) if end else self.end
        return DateRange(lo, hi)


def parse_month(value: str, field: str = "month") -> tuple[int, int]:
    """Validate ``YYYY-MM`` and return (year, month)."""
    if not isinstance(value, str) or not _MONTH_RE.match(value):
        raise ValidationException.on(field, f"Invalid month '{value}'. Use YYYY-MM.")
    year, month = (int(p) for p in value.split("-"))
    if not (2000 <= year <= 2100 and 1 <= month <= 12):
        raise ValidationException.on(field, f"Month '{value}' is out of range.")
    return year, month


def parse_date(value: str, field: str = "date") -> date:
    """Validate ``YYYY-MM-DD`` and return a date."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationException.on(field, f"Invalid date '{value}'. Use YYYY-MM-DD.")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationException.on(field, f"Invalid date '{value}'.")


def salary_cycle(month: str) -> DateRange:
    """26th of the previous month → 25th of ``month``."""
    year, mon = parse_month(month)
    end = date(year, mon, CYCLE_END_DAY)
    if mon == 1:
        start = date(year - 1, 12, CYCLE_START_DAY)
    else:
        start = date(year, mon - 1, CYCLE_START_DAY)
    return DateRange(start, end)


def month_of_cycle_date(day: date) -> str:
    """The salary month whose cycle contains ``day``."""
    if day.day >= CYCLE_START_DAY:
        if day.month == 12:
            return f"{day.year + 1}-01"
        return f"{day.year}-{day.month + 1:02d}"
    return f"{day.year}-{day.month:02d}"


def next_month(month: str) -> str:
    year, mon = parse_month(month)
    if mon == 12:
        return f"{year + 1}-01"
    return f"{year}-{mon + 1:02d}"


def format_date(day: date) -> str:
    return day.strftime(DATE_FORMAT)
