from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def parse_hour(value: str) -> int:
    return parse_time_to_minutes(value) // 60


class CatalogModel(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class Subject(CatalogModel):
    id: int
    name: str = Field(min_length=1, max_length=200)
    code: str | None = Field(default=None, max_length=50)
    department_id: int
    semester: int = Field(ge=1, le=20)
    credits: int = Field(ge=0, le=40)
    hours_per_week: int = Field(ge=0, le=60)
    type: Literal["theory", "practical", "tutorial"] = "theory"
    requires_lab: bool = False


class Faculty(CatalogModel):
    id: int
    name: str = Field(min_length=1, max_length=200)
    department_id: int
    max_hours_per_day: int = Field(default=6, ge=0, le=24)
    max_hours_per_week: int = Field(default=30, ge=0, le=168)
    is_available: bool = True


class Classroom(CatalogModel):
    id: int
    name: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=1, le=5000)
    type: str = "classroom"
    department_id: int | None = None
    is_available: bool = True


class Batch(CatalogModel):
    id: int
    name: str = Field(min_length=1, max_length=100)
    department_id: int
    semester: int = Field(ge=1, le=20)
    student_count: int = Field(ge=0, le=5000)
    shift: str = "morning"
    academic_year: str | None = None


class EligibilityMapping(CatalogModel):
    faculty_id: int
    subject_id: int
    preference_level: int = Field(default=1, ge=1, le=100)


class FixedSlot(CatalogModel):
    id: int | None = None
    day_of_week: int | str
    start_time: str
    end_time: str
    subject_id: int | None = None
    faculty_id: int | None = None
    classroom_id: int | None = None
    batch_id: int | None = None
    description: str | None = None
    is_active: bool = True


class OptimizationParams(CatalogModel):
    max_classes_per_day: int = Field(default=6, ge=1, le=24)
    min_break_duration: int = Field(default=15, ge=0, le=240)
    start_time: str = "09:00"
    end_time: str = "17:00"
    lunch_break_start: str = "13:00"
    lunch_break_end: str = "14:00"
    working_days: int = Field(default=5, ge=1, le=7)

    @field_validator("start_time", "end_time", "lunch_break_start", "lunch_break_end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        value = value.strip()
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value


class CatalogSnapshot(CatalogModel):
    """Read-only view of everything one generation run needs from the catalog."""

    department_id: int
    semester: int = Field(ge=1, le=20)
    academic_year: str | None = None
    params: OptimizationParams = Field(default_factory=OptimizationParams)
    subjects: tuple[Subject, ...] = ()
    faculty: tuple[Faculty, ...] = ()
    classrooms: tuple[Classroom, ...] = ()
    batches: tuple[Batch, ...] = ()
    eligibility: tuple[EligibilityMapping, ...] = ()
    fixed_slots: tuple[FixedSlot, ...] = ()

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "CatalogSnapshot":
        for label, items in (
            ("subject", self.subjects),
            ("faculty", self.faculty),
            ("classroom", self.classrooms),
            ("batch", self.batches),
        ):
            seen: set[int] = set()
            duplicates: set[int] = set()
            for item in items:
                if item.id in seen:
                    duplicates.add(item.id)
                seen.add(item.id)
            if duplicates:
                raise ValueError(f"Duplicate {label} id(s): {', '.join(str(i) for i in sorted(duplicates))}")
        return self
