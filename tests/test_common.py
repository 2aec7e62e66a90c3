"""Salary cycle helpers and RFC 7807 error shape."""

from __future__ import annotations

from datetime import date

import pytest

from hr_payroll.common.cycle import (
    DateRange,
    month_of_cycle_date,
    next_month,
    parse_date,
    parse_month,
    salary_cycle,
)
from hr_payroll.common.exceptions import (
    ComputationError,
    NotFoundException,
    ValidationException,
    problem_detail,
)


# ── Salary cycle ────────────────────────────────────────────────────

def test_cycle_runs_26th_to_25th():
    cycle = salary_cycle("2026-03")
    assert cycle.start == date(2026, 2, 26)
    assert cycle.end == date(2026, 3, 25)
    assert cycle.days == 28


def test_january_cycle_starts_in_previous_year():
    cycle = salary_cycle("2026-01")
    assert cycle.start == date(2025, 12, 26)
    assert cycle.end == date(2026, 1, 25)
    assert cycle.days == 31


def test_leap_year_february_is_counted():
    assert salary_cycle("2024-03").days == 29


def test_cycle_membership_and_iteration():
    cycle = salary_cycle("2026-03")
    assert date(2026, 2, 26) in cycle
    assert date(2026, 3, 25) in cycle
    assert date(2026, 3, 26) not in cycle
    days = list(cycle)
    assert len(days) == cycle.days
    assert days[0] == cycle.start and days[-1] == cycle.end


def test_clip_to_employment_window():
    cycle = salary_cycle("2026-03")
    active = cycle.clip(date(2026, 3, 10), None)
    assert active.start == date(2026, 3, 10)
    assert active.end == cycle.end
    assert cycle.clip(None, date(2026, 2, 1)).days == 0


def test_month_of_cycle_date():
    assert month_of_cycle_date(date(2026, 3, 25)) == "2026-03"
    assert month_of_cycle_date(date(2026, 3, 26)) == "2026-04"
    assert month_of_cycle_date(date(2025, 12, 28)) == "2026-01"


def test_next_month_wraps_year():
    assert next_month("2026-03") == "2026-04"
    assert next_month("2025-12") == "2026-01"


@pytest.mark.parametrize("value", ["2026-3", "26-03", "2026-13", "2026/03", "", None])
def test_parse_month_rejects_bad_input(value):
    with pytest.raises(ValidationException) as exc_info:
        parse_month(value)
    assert "month" in exc_info.value.errors


def test_parse_date_rejects_impossible_day():
    with pytest.raises(ValidationException):
        parse_date("2026-02-30")
    assert parse_date("2026-02-28") == date(2026, 2, 28)


def test_empty_range_has_no_days():
    assert DateRange(date(2026, 3, 5), date(2026, 3, 4)).days == 0


# ── Exceptions ──────────────────────────────────────────────────────

def test_not_found_exception_fields():
    exc = NotFoundException("Employee", "E404")
    assert exc.status_code == 404
    assert exc.error_type == "not-found"
    assert "E404" in exc.detail


def test_not_found_problem_names_the_entity():
    body = problem_detail(NotFoundException("Shift", "MISSING"), "/api/v1/shifts/MISSING")
    assert body["type"].endswith("/not-found")
    assert body["status"] == 404
    assert body["entity"] == "Shift"
    assert body["entity_id"] == "MISSING"
    assert body["instance"] == "/api/v1/shifts/MISSING"
    assert "errors" not in body


def test_single_field_validation_error():
    body = problem_detail(ValidationException.on("month", "Use YYYY-MM."), "/x")
    assert body["status"] == 422
    assert body["errors"] == {"month": ["Use YYYY-MM."]}


def test_computation_error_is_a_server_problem():
    exc = ComputationError("Shift 'N' start and end times are equal.")
    assert exc.status_code == 500
    assert problem_detail(exc, "/x")["type"].endswith("/computation-error")
