"""Regularization batches and their effect on monthly attendance."""

from __future__ import annotations

from datetime import date

import pytest

from hr_payroll.attendance.aggregator import AttendanceService
from hr_payroll.attendance.regularization import RegularizationService, parse_entries
from hr_payroll.common.constants import DayStatus, OriginalStatus, RegularizedStatus
from hr_payroll.common.exceptions import ConflictError, NotFoundException, ValidationException
from hr_payroll.database import Capabilities
from tests.conftest import MONTH, create_employee, create_shift, punch_working_days


def entry(day="2026-03-03", original="absent", regularized="full-day", reason="Device offline"):
    return {
        "date": day,
        "original_status": original,
        "regularized_status": regularized,
        "reason": reason,
    }


# ── Batch validation ────────────────────────────────────────────────

def test_parse_entries_maps_enums():
    [parsed] = parse_entries(MONTH, [entry()])
    assert parsed.date == date(2026, 3, 3)
    assert parsed.original_status == OriginalStatus.absent
    assert parsed.regularized_status == RegularizedStatus.full_day


def test_parse_entries_reports_every_bad_entry():
    with pytest.raises(ValidationException) as exc_info:
        parse_entries(MONTH, [
            entry(),
            entry(day="2026-04-01"),
            entry(day="2026-03-03"),
            entry(day="2026-03-05", original="full-day"),
            entry(day="not-a-date"),
        ])
    errors = exc_info.value.errors
    assert set(errors) == {"entries.1", "entries.2", "entries.3", "entries.4"}


# ── Service ─────────────────────────────────────────────────────────

async def test_regularization_turns_absence_into_full_day(db):
    await create_shift(db)
    await create_employee(db)
    await punch_working_days(db, "E001", skip=[date(2026, 3, 3)])

    await RegularizationService.save_regularizations(
        db, "E001", MONTH, [entry()], approved_by="ADMIN01",
    )
    summary = await AttendanceService.aggregate_month(db, "E001", MONTH)
    record = {d.date: d for d in summary.days}[date(2026, 3, 3)]
    assert record.status == DayStatus.full_day
    assert record.original_status == DayStatus.absent
    assert record.is_regularized
    assert summary.absent_days == 0


async def test_saving_twice_updates_in_place(db):
    await RegularizationService.save_regularizations(db, "E001", MONTH, [entry()])
    await RegularizationService.save_regularizations(
        db, "E001", MONTH, [entry(regularized="half-day", reason="Partial")],
    )
    rows = await RegularizationService.list_regularizations(db, "E001", MONTH)
    assert len(rows) == 1
    assert rows[0].regularized_status == "half-day"
    assert rows[0].reason == "Partial"


async def test_delete_regularization(db):
    await RegularizationService.save_regularizations(db, "E001", MONTH, [entry()])
    await RegularizationService.delete_regularization(db, "E001", date(2026, 3, 3))
    assert await RegularizationService.list_regularizations(db, "E001", MONTH) == []
    with pytest.raises(NotFoundException):
        await RegularizationService.delete_regularization(db, "E001", date(2026, 3, 3))


async def test_regularizations_unavailable_without_table(db):
    no_table = Capabilities(regularizations=False)
    with pytest.raises(ConflictError):
        await RegularizationService.save_regularizations(
            db, "E001", MONTH, [entry()], capabilities=no_table,
        )
    assert await RegularizationService.list_regularizations(
        db, "E001", MONTH, capabilities=no_table,
    ) == []
