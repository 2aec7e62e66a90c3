"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL. Every
test gets a fresh in-memory database behind its own ``Database`` handle.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

from datetime import date, datetime, time
from decimal import Decimal
from typing import AsyncGenerator, Iterable, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from hr_payroll.attendance.models import Holiday, RawPunchLog
from hr_payroll.auth.service import create_access_token
from hr_payroll.common.constants import UserRole
from hr_payroll.common.cycle import DateRange
from hr_payroll.common.rate_limit import limiter
from hr_payroll.database import Base, Database
from hr_payroll.employees.models import Employee
from hr_payroll.main import create_app
from hr_payroll.shifts.models import Shift

# Import ALL model modules so every table lands in Base.metadata
import hr_payroll.attendance.models  # noqa: F401
import hr_payroll.employees.models  # noqa: F401
import hr_payroll.leave.models  # noqa: F401
import hr_payroll.salary.models  # noqa: F401
import hr_payroll.shifts.models  # noqa: F401

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Salary month used across the suite: 2026-02-26 (Thu) .. 2026-03-25 (Wed),
# 28 days, Sundays on Mar 1, 8, 15 and 22.
MONTH = "2026-03"
CYCLE = DateRange(date(2026, 2, 26), date(2026, 3, 25))
SUNDAY = 6


def _enable_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy drive BEGIN so SAVEPOINTs behave on pysqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ── Database ────────────────────────────────────────────────────────

@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Connected handle over a fresh in-memory schema."""
    handle = Database(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await handle.connect(detect_capabilities=False)
    _enable_savepoints(handle.engine)
    async with handle.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await handle.refresh_capabilities()
    yield handle
    await handle.close()


@pytest.fixture
async def db(database) -> AsyncGenerator[AsyncSession, None]:
    """Session for direct service calls; commits on teardown.

    The in-memory database has a single connection, so a test must not
    hold this session open while it also sends HTTP requests.
    """
    async with database.session() as session:
        yield session


@pytest.fixture
def capabilities(database):
    return database.capabilities


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app(database):
    """Create a fresh app instance bound to the test database."""
    yield create_app(database)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Auth helpers ────────────────────────────────────────────────────

def auth_headers(employee_code: str, role: UserRole = UserRole.employee) -> dict[str, str]:
    token, _ = create_access_token(employee_code, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers("ADMIN01", UserRole.admin)


# ── Model factories ─────────────────────────────────────────────────

async def create_shift(
    db: AsyncSession,
    name: str = "D",
    *,
    start_time: Optional[time] = time(10, 0),
    end_time: Optional[time] = time(19, 0),
    work_hours: Decimal = Decimal("9.00"),
    late_threshold_minutes: int = 10,
    **extra,
) -> Shift:
    shift = Shift(
        name=name,
        start_time=start_time,
        end_time=end_time,
        work_hours=work_hours,
        late_threshold_minutes=late_threshold_minutes,
        **extra,
    )
    db.add(shift)
    await db.flush()
    return shift


async def create_employee(
    db: AsyncSession,
    code: str = "E001",
    *,
    base_salary: Optional[Decimal] = Decimal("18000"),
    shift_name: Optional[str] = None,
    weekly_off_day: int = SUNDAY,
    joining_date: Optional[date] = None,
    exit_date: Optional[date] = None,
    is_active: bool = True,
) -> Employee:
    employee = Employee(
        employee_code=code,
        name=f"Employee {code}",
        base_salary=base_salary,
        shift_name=shift_name,
        weekly_off_day=weekly_off_day,
        joining_date=joining_date,
        exit_date=exit_date,
        is_active=is_active,
    )
    db.add(employee)
    await db.flush()
    return employee


async def add_punches(db: AsyncSession, code: str, *stamps: datetime) -> None:
    for stamp in stamps:
        db.add(RawPunchLog(employee_code=code, punched_at=stamp))
    await db.flush()


async def punch_working_days(
    db: AsyncSession,
    code: str,
    period: DateRange = CYCLE,
    *,
    skip: Iterable[date] = (),
    entry_at: time = time(10, 0),
    exit_at: time = time(19, 0),
    weekly_off_day: int = SUNDAY,
) -> None:
    """Full-shift punches on every non-weekly-off day except ``skip``."""
    skipped = set(skip)
    for day in period:
        if day.weekday() == weekly_off_day or day in skipped:
            continue
        db.add(RawPunchLog(employee_code=code, punched_at=datetime.combine(day, entry_at)))
        db.add(RawPunchLog(employee_code=code, punched_at=datetime.combine(day, exit_at)))
    await db.flush()


async def add_holiday(db: AsyncSession, day: date, name: str = "Holiday") -> None:
    db.add(Holiday(holiday_date=day, name=name))
    await db.flush()
