"""Salary service layer — calculate, finalize, hold and release salaries.

States per (employee, month)::

    NOT_GENERATED ──calculate──▶ DRAFT ──finalize──▶ FINALIZED

with an orthogonal held flag. Finalize and hold release are single
conditional UPDATEs; the DRAFT upsert only overwrites rows still in DRAFT.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.attendance.aggregator import AttendanceService, MonthlyAttendance
from hr_payroll.common.constants import (
    SYSTEM_ACTOR,
    AdjustmentType,
    DayStatus,
    HoldType,
    SalaryStatus,
)
from hr_payroll.common.cycle import (
    DateRange,
    format_date,
    month_of_cycle_date,
    next_month,
    parse_month,
    salary_cycle,
)
from hr_payroll.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_payroll.config import settings
from hr_payroll.database import Capabilities
from hr_payroll.employees.models import Employee
from hr_payroll.leave.service import LeaveLedger, leave_year_of
from hr_payroll.salary.calculator import (
    Adjustment,
    SalaryBreakdown,
    SalaryInputs,
    SalaryPolicy,
    calculate_salary_breakdown,
)
from hr_payroll.salary.models import (
    MonthlyOvertime,
    MonthlySalary,
    SalaryAdjustment,
    SalaryHold,
)
from hr_payroll.shifts.resolver import ShiftResolver

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


# ── Batch results ───────────────────────────────────────────────────

@dataclass
class BatchFailure:
    employee_code: str
    error_type: str
    detail: str


@dataclass
class BatchResult:
    month: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)


@dataclass(frozen=True)
class Payslip:
    salary: MonthlySalary
    breakdown: dict[str, Any]


class SalaryService:
    """Business logic for monthly salary snapshots."""

    # ── Reads ─────────────────────────────────────────────────────────

    @staticmethod
    async def get_salary(
        db: AsyncSession,
        employee_code: str,
        month: str,
    ) -> MonthlySalary:
        parse_month(month)
        result = await db.execute(
            select(MonthlySalary).where(
                MonthlySalary.employee_code == employee_code,
                MonthlySalary.month == month,
            )
        )
        salary = result.scalar_one_or_none()
        if salary is None:
            raise NotFoundException("MonthlySalary", f"{employee_code}/{month}")
        return salary

    @staticmethod
    async def list_salaries(
        db: AsyncSession,
        month: str,
        status: Optional[SalaryStatus] = None,
    ) -> list[MonthlySalary]:
        parse_month(month)
        stmt = select(MonthlySalary).where(MonthlySalary.month == month)
        if status is not None:
            stmt = stmt.where(MonthlySalary.status == int(status))
        result = await db.execute(stmt.order_by(MonthlySalary.employee_code))
        return list(result.scalars().all())

    @staticmethod
    async def get_adjustments(
        db: AsyncSession,
        employee_code: str,
        month: str,
    ) -> list[SalaryAdjustment]:
        result = await db.execute(
            select(SalaryAdjustment)
            .where(
                SalaryAdjustment.employee_code == employee_code,
                SalaryAdjustment.month == month,
            )
            .order_by(SalaryAdjustment.adjustment_type, SalaryAdjustment.category)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_active_hold(
        db: AsyncSession,
        employee_code: str,
        month: str,
        capabilities: Optional[Capabilities] = None,
    ) -> Optional[SalaryHold]:
        if capabilities is not None and not capabilities.salary_holds:
            return None
        result = await db.execute(
            select(SalaryHold).where(
                SalaryHold.employee_code == employee_code,
                SalaryHold.month == month,
                SalaryHold.is_released.is_(False),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_holds(
        db: AsyncSession,
        month: str,
        include_released: bool = False,
    ) -> list[SalaryHold]:
        parse_month(month)
        stmt = select(SalaryHold).where(SalaryHold.month == month)
        if not include_released:
            stmt = stmt.where(SalaryHold.is_released.is_(False))
        result = await db.execute(stmt.order_by(SalaryHold.employee_code, SalaryHold.created_at))
        return list(result.scalars().all())

    # ── Calculation ───────────────────────────────────────────────────

    @staticmethod
    async def compute(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        capabilities: Optional[Capabilities] = None,
    ) -> tuple[MonthlyAttendance, SalaryBreakdown]:
        """Aggregate attendance and compute the breakdown without writing."""
        parse_month(month)
        cycle = salary_cycle(month)
        resolver = await ShiftResolver.load(db, employee_code, cycle)
        employee = resolver.employee
        if employee.base_salary is None or Decimal(employee.base_salary) <= 0:
            raise NotFoundException("Base salary", employee_code)

        attendance = await AttendanceService.aggregate_month(
            db, employee_code, month, capabilities=capabilities, resolver=resolver,
        )
        balance = await LeaveLedger.get_balance(
            db, employee_code, leave_year_of(month), month,
        )
        adjustments = await SalaryService.get_adjustments(db, employee_code, month)

        inputs = SalaryInputs(
            base_salary=Decimal(employee.base_salary),
            cycle_days=attendance.cycle_days,
            shift_work_hours=attendance.shift_work_hours,
            absent_days=Decimal(attendance.absent_days),
            half_days=Decimal(attendance.half_days),
            late_by_30_minutes_days=attendance.late_by_30_minutes_days,
            late_by_10_minutes_days=attendance.late_by_10_minutes_days,
            overtime_enabled=attendance.overtime_enabled,
            overtime_hours=attendance.overtime_hours,
            lop_days=balance.month_loss_of_pay_days,
            unpaid_weekoff_days=Decimal(attendance.unpaid_weekoff_days),
            inactive_days=Decimal(attendance.inactive_days),
            adjustments=tuple(
                Adjustment(AdjustmentType(a.adjustment_type), a.category, Decimal(a.amount))
                for a in adjustments
            ),
        )
        breakdown = calculate_salary_breakdown(inputs, SalaryPolicy.from_settings())
        return attendance, breakdown

    @staticmethod
    async def calculate_salary(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        calculated_by: Optional[str] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> MonthlySalary:
        """Compute and upsert the DRAFT snapshot for one employee.

        Re-running overwrites a DRAFT. A FINALIZED row is left untouched
        and the call is rejected with ``ConflictError``.
        """
        attendance, breakdown = await SalaryService.compute(
            db, employee_code, month, capabilities=capabilities,
        )
        hold = await SalaryService.get_active_hold(db, employee_code, month, capabilities)

        values = {
            "employee_code": employee_code,
            "month": month,
            "base_salary": breakdown.base_salary,
            "gross_salary": breakdown.gross_salary,
            "net_salary": breakdown.net_salary,
            "per_day_rate": breakdown.per_day_rate,
            "paid_days": attendance.total_payable_days - breakdown.lop_days,
            "absent_days": Decimal(attendance.absent_days),
            "leave_days": attendance.leave_days,
            "total_deductions": breakdown.total_deductions,
            "total_additions": breakdown.total_additions,
            "total_worked_hours": attendance.total_worked_hours,
            "overtime_hours": breakdown.overtime_hours,
            "overtime_amount": breakdown.overtime_amount,
            "tds_deduction": breakdown.tds_deduction,
            "professional_tax": breakdown.professional_tax,
            "incentive_amount": breakdown.incentive_amount,
            "is_held": hold is not None,
            "hold_reason": hold.reason if hold is not None else None,
            "breakdown_json": breakdown.to_json(),
            "status": int(SalaryStatus.draft),
            "calculated_at": _now(),
            "calculated_by": calculated_by,
        }
        insert = _insert_for(db)
        stmt = insert(MonthlySalary).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[MonthlySalary.employee_code, MonthlySalary.month],
            set_={
                key: stmt.excluded[key]
                for key in values
                if key not in ("employee_code", "month")
            },
            where=MonthlySalary.status == int(SalaryStatus.draft),
        ).returning(MonthlySalary.id)
        written = (await db.execute(stmt)).first()
        if written is None:
            raise ConflictError(
                f"Salary for {employee_code} in {month} is already finalized "
                f"and cannot be recalculated."
            )

        result = await db.execute(
            select(MonthlySalary)
            .where(MonthlySalary.id == written[0])
            .execution_options(populate_existing=True)
        )
        salary = result.scalar_one()
        logger.info(
            "Calculated DRAFT salary for %s %s: net=%s",
            employee_code, month, salary.net_salary,
        )
        return salary

    @staticmethod
    async def _employees_for_cycle(db: AsyncSession, cycle: DateRange) -> list[str]:
        result = await db.execute(
            select(Employee.employee_code)
            .where(
                Employee.is_active.is_(True),
                (Employee.joining_date.is_(None)) | (Employee.joining_date <= cycle.end),
                (Employee.exit_date.is_(None)) | (Employee.exit_date >= cycle.start),
            )
            .order_by(Employee.employee_code)
        )
        return list(result.scalars().all())

    @staticmethod
    async def calculate_all(
        db: AsyncSession,
        month: str,
        *,
        calculated_by: Optional[str] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> BatchResult:
        """Calculate every employee; one failure never blocks the others.

        Each employee runs inside its own SAVEPOINT so a failure rolls back
        only that employee's writes.
        """
        parse_month(month)
        outcome = BatchResult(month=month)
        for code in await SalaryService._employees_for_cycle(db, salary_cycle(month)):
            try:
                async with db.begin_nested():
                    await SalaryService.calculate_salary(
                        db, code, month,
                        calculated_by=calculated_by,
                        capabilities=capabilities,
                    )
            except AppException as exc:
                logger.warning("Salary calculation failed for %s %s: %s", code, month, exc.detail)
                outcome.failed.append(BatchFailure(code, exc.error_type, exc.detail))
            except Exception as exc:
                logger.exception("Unexpected error calculating salary for %s %s", code, month)
                outcome.failed.append(BatchFailure(code, "internal-error", str(exc)))
            else:
                outcome.succeeded.append(code)
        logger.info(
            "Salary batch %s: %d succeeded, %d failed",
            month, len(outcome.succeeded), len(outcome.failed),
        )
        return outcome

    # ── Finalization ──────────────────────────────────────────────────

    @staticmethod
    async def finalize(
        db: AsyncSession,
        employee_code: str,
        month: str,
        finalized_by: str,
    ) -> MonthlySalary:
        """DRAFT → FINALIZED as one conditional UPDATE."""
        parse_month(month)
        result = await db.execute(
            update(MonthlySalary)
            .where(
                MonthlySalary.employee_code == employee_code,
                MonthlySalary.month == month,
                MonthlySalary.status == int(SalaryStatus.draft),
            )
            .values(
                status=int(SalaryStatus.finalized),
                finalized_at=_now(),
                finalized_by=finalized_by,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            existing = await SalaryService.get_salary(db, employee_code, month)
            raise ConflictError(
                f"Salary for {employee_code} in {month} is not in DRAFT "
                f"(status={SalaryStatus(existing.status).name.upper()})."
            )
        logger.info("Finalized salary for %s %s by %s", employee_code, month, finalized_by)
        salary = await SalaryService.get_salary(db, employee_code, month)
        await db.refresh(salary)
        return salary

    @staticmethod
    async def finalize_all(
        db: AsyncSession,
        month: str,
        finalized_by: str,
    ) -> list[str]:
        """Finalize every DRAFT row of the month; returns the employee codes."""
        parse_month(month)
        result = await db.execute(
            update(MonthlySalary)
            .where(
                MonthlySalary.month == month,
                MonthlySalary.status == int(SalaryStatus.draft),
            )
            .values(
                status=int(SalaryStatus.finalized),
                finalized_at=_now(),
                finalized_by=finalized_by,
            )
            .returning(MonthlySalary.employee_code)
            .execution_options(synchronize_session=False)
        )
        codes = sorted(result.scalars().all())
        logger.info("Finalized %d salaries for %s by %s", len(codes), month, finalized_by)
        return codes

    # ── Holds ─────────────────────────────────────────────────────────

    @staticmethod
    async def _mirror_hold(
        db: AsyncSession,
        employee_code: str,
        month: str,
        reason: Optional[str],
        is_held: bool,
    ) -> None:
        await db.execute(
            update(MonthlySalary)
            .where(
                MonthlySalary.employee_code == employee_code,
                MonthlySalary.month == month,
            )
            .values(is_held=is_held, hold_reason=reason if is_held else None)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def create_hold(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        reason: Optional[str] = None,
        hold_type: HoldType = HoldType.manual,
        action_by: Optional[str] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> SalaryHold:
        """Place a hold; fails if an unreleased hold already exists."""
        parse_month(month)
        if capabilities is not None and not capabilities.salary_holds:
            raise ConflictError("Salary holds are not available on this database.")
        if await SalaryService.get_active_hold(db, employee_code, month) is not None:
            raise ConflictError(f"Salary for {employee_code} in {month} is already on hold.")

        hold = SalaryHold(
            employee_code=employee_code,
            month=month,
            hold_type=hold_type.value,
            reason=reason,
            is_released=False,
            action_by=action_by,
        )
        try:
            async with db.begin_nested():
                db.add(hold)
                await db.flush()
        except IntegrityError:
            raise ConflictError(f"Salary for {employee_code} in {month} is already on hold.")

        await SalaryService._mirror_hold(db, employee_code, month, reason, True)
        logger.info("%s hold placed on %s %s by %s", hold_type.value, employee_code, month, action_by)
        return hold

    @staticmethod
    async def release_hold(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        action_by: Optional[str] = None,
    ) -> SalaryHold:
        """Release the active hold as one conditional UPDATE."""
        parse_month(month)
        result = await db.execute(
            update(SalaryHold)
            .where(
                SalaryHold.employee_code == employee_code,
                SalaryHold.month == month,
                SalaryHold.is_released.is_(False),
            )
            .values(is_released=True, released_at=_now(), action_by=action_by)
            .returning(SalaryHold.id)
            .execution_options(synchronize_session=False)
        )
        released_id = result.scalar_one_or_none()
        if released_id is None:
            raise NotFoundException("SalaryHold", f"{employee_code}/{month}")

        await SalaryService._mirror_hold(db, employee_code, month, None, False)
        logger.info("Hold released on %s %s by %s", employee_code, month, action_by)
        hold = await db.get(SalaryHold, released_id, populate_existing=True)
        return hold

    @staticmethod
    async def check_auto_hold(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        capabilities: Optional[Capabilities] = None,
        today: Optional[date] = None,
    ) -> Optional[SalaryHold]:
        """AUTO hold next month's salary for an absence early in next month.

        Looks at the first ``AUTO_HOLD_CHECK_DAYS`` calendar days of the
        month after ``month``. Weekly offs and holidays are skipped. The
        check only runs once those days are over.
        """
        following = next_month(month)
        year, mon = parse_month(following)
        window = DateRange(
            date(year, mon, 1),
            date(year, mon, settings.AUTO_HOLD_CHECK_DAYS),
        )
        today = today or date.today()
        if window.end >= today:
            logger.debug("Auto-hold window for %s %s not over yet", employee_code, following)
            return None

        existing = await SalaryService.get_active_hold(db, employee_code, following, capabilities)
        if existing is not None:
            return existing

        resolver = await ShiftResolver.load(db, employee_code, window)
        daily = await AttendanceService.classify_period(
            db, resolver, window, month_of_cycle_date(window.start), capabilities=capabilities,
        )
        absent = [r.date for r in daily.records if r.status == DayStatus.absent]
        if not absent:
            return None

        reason = (
            f"Automatic hold: absent on {', '.join(format_date(d) for d in absent)} "
            f"(days 1-{settings.AUTO_HOLD_CHECK_DAYS} of {following})"
        )
        return await SalaryService.create_hold(
            db,
            employee_code,
            following,
            reason=reason,
            hold_type=HoldType.auto,
            action_by=SYSTEM_ACTOR,
            capabilities=capabilities,
        )

    @staticmethod
    async def check_auto_holds(
        db: AsyncSession,
        month: str,
        *,
        capabilities: Optional[Capabilities] = None,
        today: Optional[date] = None,
    ) -> tuple[list[SalaryHold], BatchResult]:
        """Run ``check_auto_hold`` for every employee of the month."""
        parse_month(month)
        holds: list[SalaryHold] = []
        outcome = BatchResult(month=month)
        for code in await SalaryService._employees_for_cycle(db, salary_cycle(month)):
            try:
                async with db.begin_nested():
                    hold = await SalaryService.check_auto_hold(
                        db, code, month, capabilities=capabilities, today=today,
                    )
            except AppException as exc:
                logger.warning("Auto-hold check failed for %s %s: %s", code, month, exc.detail)
                outcome.failed.append(BatchFailure(code, exc.error_type, exc.detail))
                continue
            except Exception as exc:
                logger.exception("Unexpected error checking auto-hold for %s %s", code, month)
                outcome.failed.append(BatchFailure(code, "internal-error", str(exc)))
                continue
            outcome.succeeded.append(code)
            if hold is not None:
                holds.append(hold)
        logger.info(
            "Auto-hold batch %s: %d held, %d checked, %d failed",
            month, len(holds), len(outcome.succeeded), len(outcome.failed),
        )
        return holds, outcome

    # ── Payslip ───────────────────────────────────────────────────────

    @staticmethod
    async def get_payslip(
        db: AsyncSession,
        employee_code: str,
        month: str,
        capabilities: Optional[Capabilities] = None,
    ) -> Payslip:
        """A finalized, unheld salary with its parsed breakdown."""
        parse_month(month)
        hold = await SalaryService.get_active_hold(db, employee_code, month, capabilities)
        result = await db.execute(
            select(MonthlySalary)
            .where(
                MonthlySalary.employee_code == employee_code,
                MonthlySalary.month == month,
            )
            .execution_options(populate_existing=True)
        )
        salary = result.scalar_one_or_none()
        if hold is not None or (salary is not None and salary.is_held):
            raise ForbiddenException(
                f"Salary for {month} is on hold and the payslip cannot be released."
            )
        if salary is None or salary.status != int(SalaryStatus.finalized):
            raise NotFoundException("Payslip", f"{employee_code}/{month}")
        return Payslip(salary=salary, breakdown=json.loads(salary.breakdown_json))

    # ── Adjustments ───────────────────────────────────────────────────

    @staticmethod
    async def upsert_adjustment(
        db: AsyncSession,
        employee_code: str,
        month: str,
        *,
        adjustment_type: AdjustmentType,
        category: str,
        amount: Decimal,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> SalaryAdjustment:
        """Insert or replace the amount for (employee, month, type, category)."""
        parse_month(month)
        category = (category or "").strip().upper()
        if not category:
            raise ValidationException.on("category", "Category is required.")
        if amount < 0:
            raise ValidationException.on("amount", "Amount must be zero or more.")

        values = {
            "employee_code": employee_code,
            "month": month,
            "adjustment_type": adjustment_type.value,
            "category": category,
            "amount": amount,
            "description": description,
            "created_by": created_by,
            "updated_at": _now(),
        }
        insert = _insert_for(db)
        stmt = insert(SalaryAdjustment).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                SalaryAdjustment.employee_code,
                SalaryAdjustment.month,
                SalaryAdjustment.adjustment_type,
                SalaryAdjustment.category,
            ],
            set_={
                "amount": stmt.excluded.amount,
                "description": stmt.excluded.description,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(SalaryAdjustment.id)
        adjustment_id = (await db.execute(stmt)).scalar_one()
        return await db.get(SalaryAdjustment, adjustment_id, populate_existing=True)

    @staticmethod
    async def delete_adjustment(
        db: AsyncSession,
        employee_code: str,
        month: str,
        adjustment_type: AdjustmentType,
        category: str,
    ) -> None:
        category = category.strip().upper()
        result = await db.execute(
            delete(SalaryAdjustment).where(
                SalaryAdjustment.employee_code == employee_code,
                SalaryAdjustment.month == month,
                SalaryAdjustment.adjustment_type == adjustment_type.value,
                SalaryAdjustment.category == category,
            )
        )
        if result.rowcount == 0:
            raise NotFoundException(
                "SalaryAdjustment", f"{employee_code}/{month}/{adjustment_type.value}/{category}",
            )

    # ── Overtime toggle ───────────────────────────────────────────────

    @staticmethod
    async def set_overtime(
        db: AsyncSession,
        employee_code: str,
        month: str,
        enabled: bool,
        *,
        updated_by: Optional[str] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> MonthlyOvertime:
        parse_month(month)
        if capabilities is not None and not capabilities.overtime_tracking:
            raise ConflictError("Overtime tracking is not available on this database.")
        values = {
            "employee_code": employee_code,
            "month": month,
            "is_overtime_enabled": enabled,
            "updated_by": updated_by,
            "updated_at": _now(),
        }
        insert = _insert_for(db)
        stmt = insert(MonthlyOvertime).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[MonthlyOvertime.employee_code, MonthlyOvertime.month],
            set_={
                "is_overtime_enabled": stmt.excluded.is_overtime_enabled,
                "updated_by": stmt.excluded.updated_by,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(MonthlyOvertime.id)
        toggle_id = (await db.execute(stmt)).scalar_one()
        return await db.get(MonthlyOvertime, toggle_id, populate_existing=True)
