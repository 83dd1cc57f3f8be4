from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator, model_validator

from campus_scheduler.schemas.catalog import TIME_PATTERN, OptimizationParams, parse_time_to_minutes

if TYPE_CHECKING:
    from campus_scheduler.core.config import Settings


class GenerationSettings(BaseModel):
    base_attempts: int = Field(default=100, ge=1, le=100_000)
    attempts_per_variation: int = Field(default=50, ge=0, le=10_000)
    reshuffle_interval: int = Field(default=20, ge=1, le=10_000)
    top_k: int = Field(default=3, ge=1, le=50)
    max_attempts: int | None = Field(default=None, ge=1, le=1_000_000)
    time_budget_seconds: float | None = Field(default=None, gt=0)
    option_workers: int = Field(default=4, ge=1, le=64)
    enforce_faculty_hour_caps: bool = False
    enforce_max_classes_per_day: bool = False
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)

    @classmethod
    def from_app_settings(cls, settings: "Settings") -> "GenerationSettings":
        return cls(
            base_attempts=settings.scheduler_base_attempts,
            attempts_per_variation=settings.scheduler_attempts_per_variation,
            reshuffle_interval=settings.scheduler_reshuffle_interval,
            top_k=settings.scheduler_top_k,
            time_budget_seconds=settings.scheduler_time_budget_seconds,
            option_workers=settings.scheduler_option_workers,
            enforce_faculty_hour_caps=settings.enforce_faculty_hour_caps,
            enforce_max_classes_per_day=settings.enforce_max_classes_per_day,
        )

    def attempt_count(self, variation: int) -> int:
        count = self.base_attempts
        if variation > 0:
            count += self.attempts_per_variation * variation
        if self.max_attempts is not None:
            count = min(count, self.max_attempts)
        return count


class Placement(BaseModel):
    id: str | None = Field(default=None, max_length=64)
    day_of_week: int = Field(ge=0, le=6)
    day: str | None = None
    slot_index: int | None = Field(default=None, ge=0)
    start_time: str
    end_time: str
    subject_id: int | None = None
    faculty_id: int | None = None
    classroom_id: int | None = None
    batch_id: int | None = None
    is_fixed: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "Placement":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class OptimizationParamsOverride(BaseModel):
    max_classes_per_day: int | None = None
    min_break_duration: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    lunch_break_start: str | None = None
    lunch_break_end: str | None = None
    working_days: int | None = None

    def apply(self, params: OptimizationParams) -> OptimizationParams:
        overrides = self.model_dump(exclude_none=True)
        if not overrides:
            return params
        return OptimizationParams.model_validate({**params.model_dump(), **overrides})


class OptimizationOptions(BaseModel):
    variation: int = Field(default=0, ge=0, le=100)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)
    params: OptimizationParamsOverride | None = None


class GenerateTimetableRequest(BaseModel):
    department_id: int
    semester: int = Field(ge=1, le=20)
    academic_year: str = Field(min_length=1, max_length=20)
    optimization_options: OptimizationOptions = Field(default_factory=OptimizationOptions)


class GenerateOptionsRequest(GenerateTimetableRequest):
    num_options: int = Field(default=3, ge=1, le=10)


class GeneratedTimetable(BaseModel):
    placements: list[Placement]
    score: float
    variation: int = 0
    attempts_run: int
    successful_attempts: int
    requirement_count: int
    runtime_ms: int


class RankedOption(BaseModel):
    option: int
    score: int
    placements: list[Placement]
    evaluation_score: float | None = None


class GenerateOptionsResponse(BaseModel):
    message: str
    options: list[RankedOption]
    requested: int
    runtime_ms: int
