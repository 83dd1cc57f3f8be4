from __future__ import annotations

from dataclasses import dataclass

from campus_scheduler.schemas.catalog import DAY_NAMES, OptimizationParams, parse_hour, parse_time_to_minutes

DAY_SHORT_MAP = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}


def minutes_to_time(value: int) -> str:
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


def hour_to_time(hour: int) -> str:
    return minutes_to_time(hour * 60)


def normalize_day(value: str) -> str:
    cleaned = value.strip()
    return DAY_SHORT_MAP.get(cleaned.lower(), cleaned.capitalize())


@dataclass(frozen=True)
class TimeSlot:
    index: int
    start_time: str
    end_time: str


def working_day_names(params: OptimizationParams) -> list[str]:
    return list(DAY_NAMES[: params.working_days])


def build_time_slots(params: OptimizationParams) -> list[TimeSlot]:
    """One-hour slots from start to end, skipping any hour that starts inside lunch.

    Only the hour part of each boundary is used. An end at or before the start
    yields an empty grid rather than an error.
    """
    start_hour = parse_hour(params.start_time)
    end_hour = parse_hour(params.end_time)
    lunch_start = parse_hour(params.lunch_break_start)
    lunch_end = parse_hour(params.lunch_break_end)

    slots: list[TimeSlot] = []
    for hour in range(start_hour, end_hour):
        if lunch_start <= hour < lunch_end:
            continue
        slots.append(
            TimeSlot(
                index=len(slots),
                start_time=hour_to_time(hour),
                end_time=hour_to_time(hour + 1),
            )
        )
    return slots


def slot_index_for_start(time_slots: list[TimeSlot], start_time: str) -> int | None:
    for slot in time_slots:
        if slot.start_time == start_time:
            return slot.index
    return None


def slots_overlapping(time_slots: list[TimeSlot], start_time: str, end_time: str) -> list[int]:
    """Indexes of every slot sharing time with the half-open interval [start, end)."""
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    return [
        slot.index
        for slot in time_slots
        if parse_time_to_minutes(slot.start_time) < end and parse_time_to_minutes(slot.end_time) > start
    ]
