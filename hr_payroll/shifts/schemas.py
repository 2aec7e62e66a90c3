"""Shift Pydantic v2 schemas — request/response validation."""

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ═════════════════════════════════════════════════════════════════════
# Shift
# ═════════════════════════════════════════════════════════════════════


class ShiftCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_split_shift: bool = False
    slot1_start: Optional[time] = None
    slot1_end: Optional[time] = None
    slot2_start: Optional[time] = None
    slot2_end: Optional[time] = None
    work_hours: Optional[Decimal] = Field(None, gt=0, le=24)
    late_threshold_minutes: int = Field(10, ge=0, le=240)

    @model_validator(mode="after")
    def _one_timing_shape(self) -> "ShiftCreate":
        slots = (self.slot1_start, self.slot1_end, self.slot2_start, self.slot2_end)
        if self.is_split_shift:
            if any(s is None for s in slots):
                raise ValueError("A split shift needs all four slot times.")
            if self.start_time is not None or self.end_time is not None:
                raise ValueError("A split shift must not set start_time/end_time.")
        else:
            if self.start_time is None or self.end_time is None:
                raise ValueError("start_time and end_time are required.")
            if any(s is not None for s in slots):
                raise ValueError("Slot times are only allowed on split shifts.")
        return self


class ShiftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_split_shift: bool = False
    slot1_start: Optional[time] = None
    slot1_end: Optional[time] = None
    slot2_start: Optional[time] = None
    slot2_end: Optional[time] = None
    work_hours: Optional[Decimal] = None
    late_threshold_minutes: int


class ShiftListResponse(BaseModel):
    data: List[ShiftOut]
    total: int


# ═════════════════════════════════════════════════════════════════════
# Assignment
# ═════════════════════════════════════════════════════════════════════


class AssignmentCreate(BaseModel):
    employee_code: str = Field(..., min_length=1, max_length=50)
    shift_name: str = Field(..., min_length=1, max_length=100)
    from_date: date
    to_date: date


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    shift_name: str
    from_date: date
    to_date: date
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class AssignmentListResponse(BaseModel):
    data: List[AssignmentOut]
    total: int


# ═════════════════════════════════════════════════════════════════════
# Resolved timing
# ═════════════════════════════════════════════════════════════════════


class TimeSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: time
    end: time


class ResolvedShiftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    date: date
    name: str
    start: time
    end: time
    is_split: bool
    slots: List[TimeSlotOut] = []
    work_hours: float
    late_threshold_minutes: int
