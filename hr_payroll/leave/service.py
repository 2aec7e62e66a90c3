"""Leave ledger — annual entitlement vs. monthly usage, loss-of-pay.

Used totals are the running figures stored on ``LeaveEntitlement``; they
are moved by ``save_monthly_usage`` and never recomputed by summing all
months, so historical gaps in monthly records do not change balances.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.common.constants import LEAVE_VALUES, LeaveKind
from hr_payroll.common.cycle import format_date, parse_date, parse_month, salary_cycle
from hr_payroll.common.exceptions import NotFoundException, ValidationException
from hr_payroll.leave.models import LeaveEntitlement, MonthlyLeaveUsage

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ── Value objects ───────────────────────────────────────────────────

@dataclass(frozen=True)
class LeaveDate:
    date: date
    value: Decimal

    @classmethod
    def parse(cls, raw: Any, field: str = "date") -> "LeaveDate":
        if not isinstance(raw, dict):
            raise ValidationException.on(field, "Expected an object with 'date' and 'value'.")
        day = parse_date(raw.get("date"), field)
        try:
            value = Decimal(str(raw.get("value", "1.0")))
        except ArithmeticError:
            raise ValidationException.on(field, f"Invalid leave value {raw.get('value')!r}.")
        if value not in LEAVE_VALUES:
            raise ValidationException.on(field, "Leave value must be 0.5 or 1.0.")
        return cls(day, value)

    @classmethod
    def parse_list(cls, raw: Optional[Iterable[Any]], field: str = "dates") -> list["LeaveDate"]:
        return [cls.parse(item, f"{field}.{i}") for i, item in enumerate(raw or [])]

    def to_json(self) -> dict[str, Any]:
        return {"date": format_date(self.date), "value": float(self.value)}


@dataclass(frozen=True)
class MonthUsage:
    month: str
    paid: tuple[LeaveDate, ...] = ()
    casual: tuple[LeaveDate, ...] = ()

    @property
    def paid_days(self) -> Decimal:
        return sum((d.value for d in self.paid), ZERO)

    @property
    def casual_days(self) -> Decimal:
        return sum((d.value for d in self.casual), ZERO)

    @property
    def total_days(self) -> Decimal:
        return self.paid_days + self.casual_days

    def marks(self) -> dict[date, tuple[LeaveKind, Decimal]]:
        """Leave kind and value per date (paid wins if listed twice)."""
        result = {d.date: (LeaveKind.casual, d.value) for d in self.casual}
        result.update({d.date: (LeaveKind.paid, d.value) for d in self.paid})
        return result

    @classmethod
    def from_model(cls, row: Optional[MonthlyLeaveUsage], month: str) -> "MonthUsage":
        if row is None:
            return cls(month)
        return cls(
            month=month,
            paid=tuple(LeaveDate.parse_list(row.paid_leave_dates, "paid_leave_dates")),
            casual=tuple(LeaveDate.parse_list(row.casual_leave_dates, "casual_leave_dates")),
        )


@dataclass(frozen=True)
class LeaveBalance:
    employee_code: str
    year: int
    allowed: Decimal
    used_paid: Decimal
    used_casual: Decimal
    month_usage: Optional[MonthUsage] = None

    @property
    def used_total(self) -> Decimal:
        return self.used_paid + self.used_casual

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.allowed - self.used_total)

    @property
    def is_exceeded(self) -> bool:
        return self.used_total > self.allowed

    @property
    def loss_of_pay_days(self) -> Decimal:
        return loss_of_pay_days(self.allowed, self.used_paid, self.used_casual)

    @property
    def month_loss_of_pay_days(self) -> Decimal:
        """Excess attributable to this month's grant (never above it)."""
        if self.month_usage is None:
            return ZERO
        return min(self.month_usage.total_days, self.loss_of_pay_days)


def loss_of_pay_days(allowed: Decimal, used_paid: Decimal, used_casual: Decimal) -> Decimal:
    return max(ZERO, used_paid + used_casual - allowed)


def leave_year_of(month: str) -> int:
    year, _ = parse_month(month)
    return year


# ── Service ─────────────────────────────────────────────────────────

class LeaveLedger:
    """Business logic for leave entitlements and monthly usage."""

    @staticmethod
    async def _get_entitlement(
        db: AsyncSession,
        employee_code: str,
        year: int,
        *,
        for_update: bool = False,
    ) -> Optional[LeaveEntitlement]:
        stmt = select(LeaveEntitlement).where(
            LeaveEntitlement.employee_code == employee_code,
            LeaveEntitlement.leave_year == year,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_usage_row(
        db: AsyncSession,
        employee_code: str,
        month: str,
    ) -> Optional[MonthlyLeaveUsage]:
        result = await db.execute(
            select(MonthlyLeaveUsage).where(
                MonthlyLeaveUsage.employee_code == employee_code,
                MonthlyLeaveUsage.month == month,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_month_usage(
        db: AsyncSession,
        employee_code: str,
        month: str,
    ) -> MonthUsage:
        parse_month(month)
        row = await LeaveLedger._get_usage_row(db, employee_code, month)
        return MonthUsage.from_model(row, month)

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        employee_code: str,
        year: int,
        month: Optional[str] = None,
    ) -> LeaveBalance:
        """Entitlement running totals, with this month's usage if asked.

        A missing entitlement row reads as a zero quota with nothing used.
        """
        entitlement = await LeaveLedger._get_entitlement(db, employee_code, year)
        month_usage = None
        if month is not None:
            month_usage = await LeaveLedger.get_month_usage(db, employee_code, month)
        if entitlement is None:
            return LeaveBalance(employee_code, year, ZERO, ZERO, ZERO, month_usage)
        return LeaveBalance(
            employee_code=employee_code,
            year=year,
            allowed=Decimal(entitlement.allowed_leaves),
            used_paid=Decimal(entitlement.used_paid_leaves),
            used_casual=Decimal(entitlement.used_casual_leaves),
            month_usage=month_usage,
        )

    @staticmethod
    async def set_entitlement(
        db: AsyncSession,
        employee_code: str,
        year: int,
        allowed_leaves: Decimal,
    ) -> LeaveEntitlement:
        """Create or update the annual quota (running totals untouched)."""
        if allowed_leaves < 0:
            raise ValidationException.on("allowed_leaves", "Must be zero or more.")
        entitlement = await LeaveLedger._get_entitlement(
            db, employee_code, year, for_update=True,
        )
        if entitlement is None:
            entitlement = LeaveEntitlement(
                employee_code=employee_code,
                leave_year=year,
                allowed_leaves=allowed_leaves,
                used_paid_leaves=ZERO,
                used_casual_leaves=ZERO,
            )
            db.add(entitlement)
        else:
            entitlement.allowed_leaves = allowed_leaves
        await db.flush()
        return entitlement

    @staticmethod
    def _validate_usage(
        month: str,
        paid: list[LeaveDate],
        casual: list[LeaveDate],
    ) -> None:
        cycle = salary_cycle(month)
        errors: dict[str, list[str]] = {}
        seen: set[date] = set()
        for field, entries in (("paid_leave_dates", paid), ("casual_leave_dates", casual)):
            for entry in entries:
                if entry.date not in cycle:
                    errors.setdefault(field, []).append(
                        f"{format_date(entry.date)} is outside the {month} salary cycle "
                        f"({format_date(cycle.start)} to {format_date(cycle.end)})."
                    )
                if entry.date in seen:
                    errors.setdefault(field, []).append(
                        f"{format_date(entry.date)} is listed more than once."
                    )
                seen.add(entry.date)
        if errors:
            raise ValidationException(errors)

    @staticmethod
    async def save_monthly_usage(
        db: AsyncSession,
        employee_code: str,
        month: str,
        paid_leave_dates: Iterable[Any],
        casual_leave_dates: Iterable[Any],
        updated_by: Optional[str] = None,
    ) -> MonthUsage:
        """Upsert one month's approved leave and move the running totals.

        Idempotent per (employee, month): saving the same lists twice moves
        the totals once.
        """
        parse_month(month)
        paid = LeaveDate.parse_list(paid_leave_dates, "paid_leave_dates")
        casual = LeaveDate.parse_list(casual_leave_dates, "casual_leave_dates")
        LeaveLedger._validate_usage(month, paid, casual)

        year = leave_year_of(month)
        entitlement = await LeaveLedger._get_entitlement(
            db, employee_code, year, for_update=True,
        )
        if entitlement is None:
            raise NotFoundException("LeaveEntitlement", f"{employee_code}/{year}")

        row = await LeaveLedger._get_usage_row(db, employee_code, month)
        previous = MonthUsage.from_model(row, month)
        current = MonthUsage(month, tuple(paid), tuple(casual))

        paid_delta = current.paid_days - previous.paid_days
        casual_delta = current.casual_days - previous.casual_days
        entitlement.used_paid_leaves = max(
            ZERO, Decimal(entitlement.used_paid_leaves) + paid_delta,
        )
        entitlement.used_casual_leaves = max(
            ZERO, Decimal(entitlement.used_casual_leaves) + casual_delta,
        )

        if row is None:
            row = MonthlyLeaveUsage(employee_code=employee_code, month=month)
            db.add(row)
        row.paid_leave_dates = [d.to_json() for d in paid]
        row.casual_leave_dates = [d.to_json() for d in casual]
        row.paid_leave_days = current.paid_days
        row.casual_leave_days = current.casual_days
        row.updated_by = updated_by
        await db.flush()

        if loss_of_pay_days(
            Decimal(entitlement.allowed_leaves),
            Decimal(entitlement.used_paid_leaves),
            Decimal(entitlement.used_casual_leaves),
        ) > 0:
            logger.info(
                "Leave quota exceeded for %s in %s; excess becomes loss of pay",
                employee_code, year,
            )
        return current
