from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from campus_scheduler.schemas.generator import Placement


class ResourceIndex:
    """Dense position for every resource id, assigned once per generation call."""

    def __init__(self, ids: Iterable[int]) -> None:
        self.ids: list[int] = []
        self._positions: dict[int, int] = {}
        for resource_id in ids:
            if resource_id in self._positions:
                continue
            self._positions[resource_id] = len(self.ids)
            self.ids.append(resource_id)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._positions

    def position(self, resource_id: int) -> int:
        return self._positions[resource_id]

    def get(self, resource_id: int | None) -> int | None:
        if resource_id is None:
            return None
        return self._positions.get(resource_id)


@dataclass(frozen=True)
class ResourceIndexes:
    faculty: ResourceIndex
    classrooms: ResourceIndex
    batches: ResourceIndex


class OccupancyGrid:
    """Boolean resource x day x slot occupancy stored in one flat bytearray."""

    __slots__ = ("resources", "days", "slots", "_cells")

    def __init__(self, resources: int, days: int, slots: int, cells: bytearray | None = None) -> None:
        self.resources = resources
        self.days = days
        self.slots = slots
        self._cells = cells if cells is not None else bytearray(resources * days * slots)

    def _offset(self, position: int, day: int, slot: int) -> int:
        return (position * self.days + day) * self.slots + slot

    def is_busy(self, position: int, day: int, slot: int) -> bool:
        return self._cells[self._offset(position, day, slot)] != 0

    def occupy(self, position: int, day: int, slot: int) -> None:
        self._cells[self._offset(position, day, slot)] = 1

    def day_load(self, position: int, day: int) -> int:
        start = self._offset(position, day, 0)
        return sum(self._cells[start:start + self.slots])

    def week_load(self, position: int) -> int:
        start = self._offset(position, 0, 0)
        return sum(self._cells[start:start + self.days * self.slots])

    def copy(self) -> "OccupancyGrid":
        return OccupancyGrid(self.resources, self.days, self.slots, bytearray(self._cells))


@dataclass
class AvailabilityState:
    faculty: OccupancyGrid
    classrooms: OccupancyGrid
    batches: OccupancyGrid
    placements: list[Placement] = field(default_factory=list)

    @classmethod
    def empty(cls, indexes: ResourceIndexes, *, days: int, slots: int) -> "AvailabilityState":
        return cls(
            faculty=OccupancyGrid(len(indexes.faculty), days, slots),
            classrooms=OccupancyGrid(len(indexes.classrooms), days, slots),
            batches=OccupancyGrid(len(indexes.batches), days, slots),
        )

    def copy(self) -> "AvailabilityState":
        return AvailabilityState(
            faculty=self.faculty.copy(),
            classrooms=self.classrooms.copy(),
            batches=self.batches.copy(),
            placements=list(self.placements),
        )

    def reserve(
        self,
        day: int,
        slot: int,
        *,
        faculty_pos: int | None,
        classroom_pos: int | None,
        batch_pos: int | None,
    ) -> None:
        if faculty_pos is not None:
            self.faculty.occupy(faculty_pos, day, slot)
        if classroom_pos is not None:
            self.classrooms.occupy(classroom_pos, day, slot)
        if batch_pos is not None:
            self.batches.occupy(batch_pos, day, slot)

    def commit(
        self,
        placement: Placement,
        *,
        day: int,
        slot: int,
        faculty_pos: int | None,
        classroom_pos: int | None,
        batch_pos: int | None,
    ) -> None:
        self.reserve(day, slot, faculty_pos=faculty_pos, classroom_pos=classroom_pos, batch_pos=batch_pos)
        self.placements.append(placement)
