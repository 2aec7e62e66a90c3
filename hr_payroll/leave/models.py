"""Leave ORM models: LeaveEntitlement, MonthlyLeaveUsage."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.database import Base, JSONType


class LeaveEntitlement(Base):
    """Annual quota plus running totals of leave granted so far."""

    __tablename__ = "leave_entitlements"
    __table_args__ = (
        sa.UniqueConstraint("employee_code", "leave_year", name="uq_leave_entitlement"),
        sa.CheckConstraint("used_paid_leaves >= 0", name="ck_entitlement_used_paid"),
        sa.CheckConstraint("used_casual_leaves >= 0", name="ck_entitlement_used_casual"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    leave_year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    allowed_leaves: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, server_default=sa.text("0")
    )
    used_paid_leaves: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, server_default=sa.text("0")
    )
    used_casual_leaves: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, server_default=sa.text("0")
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<LeaveEntitlement {self.employee_code} {self.leave_year}>"


class MonthlyLeaveUsage(Base):
    """Approved leave dates for one employee and salary month.

    ``paid_leave_dates`` / ``casual_leave_dates`` hold lists of
    ``{"date": "YYYY-MM-DD", "value": 0.5 | 1.0}``.
    """

    __tablename__ = "monthly_leave_usage"
    __table_args__ = (
        sa.UniqueConstraint("employee_code", "month", name="uq_monthly_leave_usage"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    paid_leave_dates: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    casual_leave_dates: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    paid_leave_days: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, server_default=sa.text("0")
    )
    casual_leave_days: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, server_default=sa.text("0")
    )
    updated_by: Mapped[Optional[str]] = mapped_column(sa.String(100))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<MonthlyLeaveUsage {self.employee_code} {self.month}>"
