"""Employee ORM model — the payroll-relevant slice of employee details."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.database import Base


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(
        sa.String(50), unique=True, nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(sa.String(100))
    designation: Mapped[Optional[str]] = mapped_column(sa.String(100))
    base_salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    # Default shift name; date-ranged assignments take precedence
    shift_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    # 0=Monday … 6=Sunday
    weekly_off_day: Mapped[int] = mapped_column(sa.Integer, default=6)
    joining_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    exit_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code!r}>"
