"""Salary computation — pure ``Decimal`` arithmetic, no I/O.

Every money term is rounded half-up to paise on its own before it is
summed, and the breakdown serializes to canonical JSON so a re-run with
the same inputs stores byte-identical text.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from hr_payroll.common.constants import (
    INCENTIVE_CATEGORY,
    LATE_TIER_1_DAY_FRACTION,
    LATE_TIER_2_DAY_FRACTION,
    PROFESSIONAL_TAX_AMOUNT,
    PROFESSIONAL_TAX_BASE_THRESHOLD,
    TDS_BASE_THRESHOLD,
    TDS_RATE,
    AdjustmentType,
)
from hr_payroll.common.exceptions import ComputationError
from hr_payroll.config import settings

PAISE = Decimal("0.01")
ZERO = Decimal("0")
HALF = Decimal("0.5")


def money(value: Decimal) -> Decimal:
    return value.quantize(PAISE, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Adjustment:
    adjustment_type: AdjustmentType
    category: str
    amount: Decimal

    @property
    def is_incentive(self) -> bool:
        return (
            self.adjustment_type == AdjustmentType.addition
            and self.category.strip().upper() == INCENTIVE_CATEGORY
        )


@dataclass(frozen=True)
class SalaryPolicy:
    late_grace_count: int = 3
    overtime_rate_multiplier: Decimal = Decimal("1.5")

    @classmethod
    def from_settings(cls) -> "SalaryPolicy":
        return cls(
            late_grace_count=settings.LATE_GRACE_COUNT,
            overtime_rate_multiplier=Decimal(str(settings.OVERTIME_RATE_MULTIPLIER)),
        )


@dataclass(frozen=True)
class SalaryInputs:
    base_salary: Decimal
    cycle_days: int
    shift_work_hours: Decimal
    absent_days: Decimal = ZERO
    half_days: Decimal = ZERO
    late_by_30_minutes_days: int = 0
    late_by_10_minutes_days: int = 0
    overtime_enabled: bool = False
    overtime_hours: Decimal = ZERO
    lop_days: Decimal = ZERO
    unpaid_weekoff_days: Decimal = ZERO
    inactive_days: Decimal = ZERO
    adjustments: tuple[Adjustment, ...] = field(default=())


@dataclass(frozen=True)
class SalaryBreakdown:
    base_salary: Decimal
    cycle_days: int
    per_day_rate: Decimal
    hourly_rate: Decimal
    absent_days: Decimal
    absent_deduction: Decimal
    half_days: Decimal
    half_day_deduction: Decimal
    late_by_30_minutes_days: int
    late_by_10_minutes_days: int
    late_grace_count: int
    late_deduction: Decimal
    overtime_enabled: bool
    overtime_hours: Decimal
    overtime_amount: Decimal
    lop_days: Decimal
    lop_deduction: Decimal
    unpaid_weekoff_days: Decimal
    weekoff_deduction: Decimal
    inactive_days: Decimal
    inactive_deduction: Decimal
    tds_deduction: Decimal
    professional_tax: Decimal
    incentive_amount: Decimal
    adjustment_additions: Decimal
    adjustment_deductions: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    total_additions: Decimal
    net_salary: Decimal

    def to_dict(self) -> dict[str, Any]:
        def _plain(value: Any) -> Any:
            if isinstance(value, Decimal):
                return str(value)
            return value
        return {key: _plain(value) for key, value in asdict(self).items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def calculate_salary_breakdown(
    inputs: SalaryInputs,
    policy: Optional[SalaryPolicy] = None,
) -> SalaryBreakdown:
    """Compute every salary term for one employee and month."""
    policy = policy or SalaryPolicy.from_settings()
    base = Decimal(inputs.base_salary)
    if base <= 0:
        raise ComputationError(f"Base salary must be positive, got {base}.")
    if inputs.cycle_days <= 0:
        raise ComputationError("Salary cycle has no days.")
    work_hours = Decimal(inputs.shift_work_hours)
    if work_hours <= 0:
        raise ComputationError("Shift work hours must be positive.")

    day_rate = base / inputs.cycle_days
    hour_rate = day_rate / work_hours

    absent_deduction = money(Decimal(inputs.absent_days) * day_rate)
    half_day_deduction = money(Decimal(inputs.half_days) * day_rate * HALF)

    tier_1_days = max(0, inputs.late_by_10_minutes_days - policy.late_grace_count)
    late_deduction = money(
        inputs.late_by_30_minutes_days * day_rate * LATE_TIER_2_DAY_FRACTION
        + tier_1_days * day_rate * LATE_TIER_1_DAY_FRACTION
    )

    overtime_hours = Decimal(inputs.overtime_hours) if inputs.overtime_enabled else ZERO
    overtime_amount = money(overtime_hours * hour_rate * policy.overtime_rate_multiplier)

    lop_deduction = money(Decimal(inputs.lop_days) * day_rate)
    weekoff_deduction = money(Decimal(inputs.unpaid_weekoff_days) * day_rate)
    inactive_deduction = money(Decimal(inputs.inactive_days) * day_rate)

    tds = money(base * TDS_RATE) if base < TDS_BASE_THRESHOLD else ZERO
    professional_tax = (
        PROFESSIONAL_TAX_AMOUNT if base >= PROFESSIONAL_TAX_BASE_THRESHOLD else ZERO
    )

    incentive = money(_sum(a.amount for a in inputs.adjustments if a.is_incentive))
    additions = money(_sum(
        a.amount for a in inputs.adjustments
        if a.adjustment_type == AdjustmentType.addition and not a.is_incentive
    ))
    adjustment_deductions = money(_sum(
        a.amount for a in inputs.adjustments
        if a.adjustment_type == AdjustmentType.deduction
    ))

    gross = money(base + overtime_amount + incentive)
    total_deductions = money(
        absent_deduction
        + half_day_deduction
        + late_deduction
        + lop_deduction
        + weekoff_deduction
        + inactive_deduction
        + tds
        + professional_tax
        + adjustment_deductions
    )
    net = money(gross - total_deductions + additions)

    return SalaryBreakdown(
        base_salary=money(base),
        cycle_days=inputs.cycle_days,
        per_day_rate=money(day_rate),
        hourly_rate=money(hour_rate),
        absent_days=Decimal(inputs.absent_days),
        absent_deduction=absent_deduction,
        half_days=Decimal(inputs.half_days),
        half_day_deduction=half_day_deduction,
        late_by_30_minutes_days=inputs.late_by_30_minutes_days,
        late_by_10_minutes_days=inputs.late_by_10_minutes_days,
        late_grace_count=policy.late_grace_count,
        late_deduction=late_deduction,
        overtime_enabled=inputs.overtime_enabled,
        overtime_hours=overtime_hours,
        overtime_amount=overtime_amount,
        lop_days=Decimal(inputs.lop_days),
        lop_deduction=lop_deduction,
        unpaid_weekoff_days=Decimal(inputs.unpaid_weekoff_days),
        weekoff_deduction=weekoff_deduction,
        inactive_days=Decimal(inputs.inactive_days),
        inactive_deduction=inactive_deduction,
        tds_deduction=tds,
        professional_tax=money(professional_tax),
        incentive_amount=incentive,
        adjustment_additions=additions,
        adjustment_deductions=adjustment_deductions,
        gross_salary=gross,
        total_deductions=total_deductions,
        total_additions=money(additions + incentive),
        net_salary=net,
    )
