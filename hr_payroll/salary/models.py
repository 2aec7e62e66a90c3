"""Salary ORM models: MonthlySalary, SalaryAdjustment, SalaryHold, MonthlyOvertime."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.database import HOLD_TABLE, OVERTIME_TABLE, Base


def _money() -> sa.Numeric:
    return sa.Numeric(12, 2)


class MonthlySalary(Base):
    """Persisted salary snapshot — the system of record for a month."""

    __tablename__ = "monthly_salaries"
    __table_args__ = (
        sa.UniqueConstraint("employee_code", "month", name="uq_monthly_salary"),
        sa.CheckConstraint("status IN (0, 1)", name="ck_monthly_salary_status"),
        sa.Index("ix_monthly_salary_month_status", "month", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)

    base_salary: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    per_day_rate: Mapped[Decimal] = mapped_column(_money(), nullable=False)

    paid_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)
    absent_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)

    total_deductions: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    total_additions: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    total_worked_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(sa.Numeric(7, 2), nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    tds_deduction: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    professional_tax: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    incentive_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)

    is_held: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    hold_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    breakdown_json: Mapped[str] = mapped_column(sa.Text, nullable=False)

    # 0 = DRAFT, 1 = FINALIZED
    status: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, default=0)
    calculated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    calculated_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    finalized_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    finalized_by: Mapped[Optional[str]] = mapped_column(sa.String(100))

    def __repr__(self) -> str:
        return f"<MonthlySalary {self.employee_code} {self.month} status={self.status}>"


class SalaryAdjustment(Base):
    __tablename__ = "salary_adjustments"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_code", "month", "adjustment_type", "category",
            name="uq_salary_adjustment",
        ),
        sa.CheckConstraint("amount >= 0", name="ck_salary_adjustment_amount"),
        sa.CheckConstraint(
            "adjustment_type IN ('DEDUCTION', 'ADDITION')",
            name="ck_salary_adjustment_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    adjustment_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    category: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class SalaryHold(Base):
    """Payslip block for an employee and month.

    At most one unreleased hold per (employee_code, month), enforced by a
    partial unique index.
    """

    __tablename__ = HOLD_TABLE
    __table_args__ = (
        sa.Index(
            "uq_salary_hold_active",
            "employee_code", "month",
            unique=True,
            postgresql_where=sa.text("is_released = false"),
            sqlite_where=sa.text("is_released = 0"),
        ),
        sa.CheckConstraint("hold_type IN ('MANUAL', 'AUTO')", name="ck_salary_hold_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    hold_type: Mapped[str] = mapped_column(sa.String(10), nullable=False, default="MANUAL")
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_released: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    released_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    action_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )


class MonthlyOvertime(Base):
    """Per-employee, per-month overtime toggle."""

    __tablename__ = OVERTIME_TABLE
    __table_args__ = (
        sa.UniqueConstraint("employee_code", "month", name="uq_monthly_overtime"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    is_overtime_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    updated_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
