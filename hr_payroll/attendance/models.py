"""Attendance ORM models: RawPunchLog, Holiday, Regularization."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.database import REGULARIZATION_TABLE, Base


class RawPunchLog(Base):
    """Biometric device punch, ingested externally. Append-only."""

    __tablename__ = "raw_punch_logs"
    __table_args__ = (
        sa.Index("ix_raw_punch_logs_emp_time", "employee_code", "punched_at"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    # Device-local wall clock, no timezone
    punched_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=False), nullable=False)
    direction: Mapped[Optional[str]] = mapped_column(sa.String(10))
    device_id: Mapped[Optional[str]] = mapped_column(sa.String(100))

    def __repr__(self) -> str:
        return f"<RawPunchLog {self.employee_code} {self.punched_at}>"


class Holiday(Base):
    __tablename__ = "holidays"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    holiday_date: Mapped[date] = mapped_column(sa.Date, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<Holiday {self.holiday_date} {self.name!r}>"


class Regularization(Base):
    """Admin override of one employee's day-level status."""

    __tablename__ = REGULARIZATION_TABLE
    __table_args__ = (
        sa.UniqueConstraint("employee_code", "attendance_date", name="uq_regularization_emp_date"),
        sa.CheckConstraint(
            "original_status IN ('absent', 'half-day')", name="ck_regularization_original",
        ),
        sa.CheckConstraint(
            "regularized_status IN ('half-day', 'full-day')", name="ck_regularization_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False, index=True)
    attendance_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    original_status: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    regularized_status: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    requested_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    approved_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Regularization {self.employee_code} {self.attendance_date}>"
