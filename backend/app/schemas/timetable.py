from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.conflict import EntryConflict

DAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
MIN_DAY = 0
MAX_DAY = 6

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def time_label(value: str | None) -> str:
    if not value:
        return ""
    return str(value)[:5]


def day_label(day_of_week: int) -> str:
    if MIN_DAY <= day_of_week <= MAX_DAY:
        return DAY_LABELS[day_of_week]
    return str(day_of_week)


def _normalize_time(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()[:5]
    if not stripped:
        return None
    if not TIME_PATTERN.match(stripped):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return stripped


def _strip_label(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("Label must not be blank")
    return stripped


class PeriodBase(BaseModel):
    label: str = Field(min_length=1, max_length=100)
    sort_order: int = Field(default=0, ge=0, le=1000)
    start_time: str | None = None
    end_time: str | None = None
    is_break: bool = False

    @field_validator("label")
    @classmethod
    def strip_label(cls, value: str) -> str:
        return _strip_label(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        return _normalize_time(value)

    @model_validator(mode="after")
    def validate_order(self) -> "PeriodBase":
        if self.start_time and self.end_time:
            if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
                raise ValueError("end_time must be after start_time")
        return self


class PeriodCreate(PeriodBase):
    pass


class PeriodUpdate(BaseModel):
    label: str | None = Field(default=None, min_length=1, max_length=100)
    sort_order: int | None = Field(default=None, ge=0, le=1000)
    start_time: str | None = None
    end_time: str | None = None
    is_break: bool | None = None

    @field_validator("label")
    @classmethod
    def strip_label(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _strip_label(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        return _normalize_time(value)


class PeriodOut(PeriodBase):
    id: str

    model_config = {"from_attributes": True}


class EntryOut(BaseModel):
    id: str
    class_section_id: str
    day_of_week: int
    period_id: str
    subject_name: str
    teacher_user_id: str | None = None
    room: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_published: bool = False
    published_at: datetime | None = None

    model_config = {"from_attributes": True}


class AssignSlotRequest(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)


class OverrideSlotRequest(BaseModel):
    """Only the fields present in the request body are changed."""

    teacher_user_id: str | None = Field(default=None, max_length=36)
    room: str | None = Field(default=None, max_length=100)


class PublicationStatusOut(BaseModel):
    state: Literal["empty", "draft", "partial", "published"]
    published_count: int
    total_count: int


class BulkRoomFillRequest(BaseModel):
    room: str = Field(min_length=1, max_length=100)
    day_of_week: int | None = Field(default=None, ge=MIN_DAY, le=MAX_DAY)
    only_empty: bool = True

    @field_validator("room")
    @classmethod
    def strip_room(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Enter a room name.")
        return stripped


class CopyTimetableRequest(BaseModel):
    source_section_id: str = Field(min_length=1, max_length=36)
    mode: Literal["week", "day"] = "week"
    source_day: int = Field(default=1, ge=MIN_DAY, le=MAX_DAY)
    target_day: int = Field(default=1, ge=MIN_DAY, le=MAX_DAY)


class ToolResult(BaseModel):
    affected: int


class FlatRowOut(BaseModel):
    day: str
    period: str
    start_time: str
    end_time: str
    subject: str
    teacher: str
    room: str


class GridCellOut(BaseModel):
    period_id: str
    is_break: bool = False
    entry: EntryOut | None = None
    teacher_label: str | None = None


class GridDayOut(BaseModel):
    day_of_week: int
    label: str
    cells: list[GridCellOut]


class DayWorkloadOut(BaseModel):
    day_of_week: int
    label: str
    periods: int
    hours: float


class WorkloadOut(BaseModel):
    days: list[DayWorkloadOut]
    total_periods: int
    total_hours: float
    average_hours_per_active_day: float


class EligibleSubjectOut(BaseModel):
    id: str
    name: str
    teacher_user_id: str | None = None
    teacher_label: str | None = None


class SectionTimetableOut(BaseModel):
    section_id: str
    section_label: str
    can_edit: bool
    subjects: list[EligibleSubjectOut]
    periods: list[PeriodOut]
    entries: list[EntryOut]
    conflicts: dict[str, list[EntryConflict]]
    publication: PublicationStatusOut
    workload: WorkloadOut
