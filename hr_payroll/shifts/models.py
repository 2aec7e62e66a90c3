"""Shift ORM models: Shift, ShiftAssignment."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.database import Base


class Shift(Base):
    """A named shift: one continuous period or two split slots."""

    __tablename__ = "shifts"
    __table_args__ = (
        sa.CheckConstraint(
            "work_hours > 0 AND work_hours <= 24", name="ck_shift_work_hours",
        ),
        sa.CheckConstraint(
            "late_threshold_minutes >= 0", name="ck_shift_late_threshold",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    start_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    end_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    is_split_shift: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    slot1_start: Mapped[Optional[time]] = mapped_column(sa.Time)
    slot1_end: Mapped[Optional[time]] = mapped_column(sa.Time)
    slot2_start: Mapped[Optional[time]] = mapped_column(sa.Time)
    slot2_end: Mapped[Optional[time]] = mapped_column(sa.Time)
    # NULL falls back to DEFAULT_WORK_HOURS_PER_DAY
    work_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(4, 2))
    late_threshold_minutes: Mapped[int] = mapped_column(sa.Integer, default=10)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Shift {self.name!r}>"


class ShiftAssignment(Base):
    """Date-ranged shift override for one employee (inclusive range)."""

    __tablename__ = "employee_shift_assignments"
    __table_args__ = (
        sa.CheckConstraint("from_date <= to_date", name="ck_shift_assignment_range"),
        sa.Index("ix_shift_assignment_emp_range", "employee_code", "from_date", "to_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    shift_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    from_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    to_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<ShiftAssignment {self.employee_code} {self.shift_name} "
            f"{self.from_date}..{self.to_date}>"
        )
