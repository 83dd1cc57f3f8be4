from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from campus_scheduler.schemas.catalog import DAY_NAMES, parse_time_to_minutes
from campus_scheduler.schemas.conflict import ConflictDetail, ConflictReport
from campus_scheduler.schemas.generator import Placement
from campus_scheduler.services.calendar_grid import minutes_to_time

# (conflict type, placement attribute, id prefix, label)
RESOURCE_KINDS = (
    ("faculty_conflict", "faculty_id", "fac", "Faculty"),
    ("classroom_conflict", "classroom_id", "room", "Classroom"),
    ("batch_conflict", "batch_id", "batch", "Batch"),
)


class ConflictService:
    """Finds double-booked faculty, classrooms and batches in a committed schedule.

    Works on any placement list, however it was produced, so manual edits and
    bypassed fixed slots are caught as well.
    """

    def __init__(
        self,
        placements: Sequence[Placement],
        faculty_names: Optional[Dict[int, str]] = None,
        classroom_names: Optional[Dict[int, str]] = None,
        batch_names: Optional[Dict[int, str]] = None,
    ):
        self.placements = list(placements)
        self.names = {
            "faculty_id": faculty_names or {},
            "classroom_id": classroom_names or {},
            "batch_id": batch_names or {},
        }

    def _slot_id(self, index: int) -> str:
        return self.placements[index].id or f"p{index}"

    def detect_conflicts(self) -> ConflictReport:
        conflicts: List[ConflictDetail] = []

        slots_by_day = defaultdict(list)
        for index, slot in enumerate(self.placements):
            slots_by_day[slot.day_of_week].append(index)

        for day in sorted(slots_by_day):
            day_slots = slots_by_day[day]
            n = len(day_slots)
            for i in range(n):
                s1 = self.placements[day_slots[i]]
                start1, end1 = parse_time_to_minutes(s1.start_time), parse_time_to_minutes(s1.end_time)

                for j in range(i + 1, n):
                    s2 = self.placements[day_slots[j]]
                    start2, end2 = parse_time_to_minutes(s2.start_time), parse_time_to_minutes(s2.end_time)

                    if not (start1 < end2 and end1 > start2):
                        continue
                    overlap_start = minutes_to_time(max(start1, start2))
                    overlap_end = minutes_to_time(min(end1, end2))
                    id1, id2 = self._slot_id(day_slots[i]), self._slot_id(day_slots[j])

                    for conflict_type, attribute, prefix, label in RESOURCE_KINDS:
                        resource_id = getattr(s1, attribute)
                        if resource_id is None or resource_id != getattr(s2, attribute):
                            continue
                        name = self.names[attribute].get(resource_id, str(resource_id))
                        day_name = s1.day or (DAY_NAMES[day] if day < len(DAY_NAMES) else None)
                        conflicts.append(ConflictDetail(
                            id=f"{prefix}-{id1}-{id2}",
                            conflict_type=conflict_type,
                            resource_id=resource_id,
                            resource_name=name,
                            day_of_week=day,
                            day=day_name,
                            start_time=overlap_start,
                            end_time=overlap_end,
                            description=(
                                f"{label} overlap for {name} on {day_name}: "
                                f"{s1.start_time}-{s1.end_time} and {s2.start_time}-{s2.end_time}"
                            ),
                            severity="hard",
                            affected_slots=[id1, id2],
                        ))

        return ConflictReport(conflicts=conflicts, has_conflicts=bool(conflicts))
