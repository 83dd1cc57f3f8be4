from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from campus_scheduler.schemas.catalog import FixedSlot
from campus_scheduler.schemas.generator import Placement
from campus_scheduler.services.availability import AvailabilityState, ResourceIndexes
from campus_scheduler.services.calendar_grid import TimeSlot, normalize_day, slot_index_for_start, slots_overlapping

logger = logging.getLogger(__name__)


def resolve_day_index(value: int | str, day_names: list[str]) -> int | None:
    if isinstance(value, int):
        return value if 0 <= value < len(day_names) else None
    cleaned = value.strip()
    if cleaned.isdigit():
        return resolve_day_index(int(cleaned), day_names)
    name = normalize_day(cleaned)
    if name in day_names:
        return day_names.index(name)
    return None


def preload_fixed_slots(
    fixed_slots: Iterable[FixedSlot],
    *,
    time_slots: list[TimeSlot],
    day_names: list[str],
    indexes: ResourceIndexes,
) -> AvailabilityState:
    """Seed fresh occupancy grids and the output schedule with pinned sessions.

    Slots whose day or start time does not land on the calendar are skipped.
    A pinned session blocks every slot its interval overlaps, not only the first.
    Resource ids unknown to this run still produce a placement but mark no grid.
    """
    state = AvailabilityState.empty(indexes, days=len(day_names), slots=len(time_slots))
    skipped = 0
    for fixed in fixed_slots:
        if not fixed.is_active:
            continue
        day = resolve_day_index(fixed.day_of_week, day_names)
        slot = slot_index_for_start(time_slots, fixed.start_time.strip())
        if day is None or slot is None:
            skipped += 1
            logger.warning(
                "Skipping fixed slot id=%s day=%r start=%s: not on the calendar grid",
                fixed.id,
                fixed.day_of_week,
                fixed.start_time,
            )
            continue
        try:
            placement = Placement(
                id=f"fixed-{fixed.id}" if fixed.id is not None else None,
                day_of_week=day,
                day=day_names[day],
                slot_index=slot,
                start_time=fixed.start_time.strip(),
                end_time=fixed.end_time.strip(),
                subject_id=fixed.subject_id,
                faculty_id=fixed.faculty_id,
                classroom_id=fixed.classroom_id,
                batch_id=fixed.batch_id,
                is_fixed=True,
            )
        except ValidationError:
            skipped += 1
            logger.warning("Skipping fixed slot id=%s: invalid end time %r", fixed.id, fixed.end_time)
            continue
        positions = {
            "faculty_pos": indexes.faculty.get(fixed.faculty_id),
            "classroom_pos": indexes.classrooms.get(fixed.classroom_id),
            "batch_pos": indexes.batches.get(fixed.batch_id),
        }
        for covered in slots_overlapping(time_slots, placement.start_time, placement.end_time):
            if covered != slot:
                state.reserve(day, covered, **positions)
        state.commit(placement, day=day, slot=slot, **positions)
    if skipped:
        logger.info("Preloaded %s fixed slot(s), skipped %s", len(state.placements), skipped)
    return state
