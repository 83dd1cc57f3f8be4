from __future__ import annotations

from collections import Counter
import math
from typing import Iterable

from campus_scheduler.schemas.generator import Placement

ATTEMPT_BASELINE = 1000.0
OPTION_BASELINE = 100.0


def _variance(values: list[int]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


def _mean(values: list[int]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def workload_profile(placements: Iterable[Placement]) -> tuple[float, float]:
    """(faculty-hour variance, mean sessions per classroom used)."""
    faculty_hours: Counter[int] = Counter()
    classroom_hours: Counter[int] = Counter()
    for placement in placements:
        if placement.faculty_id is not None:
            faculty_hours[placement.faculty_id] += 1
        if placement.classroom_id is not None:
            classroom_hours[placement.classroom_id] += 1
    return _variance(list(faculty_hours.values())), _mean(list(classroom_hours.values()))


def evaluate_solution(placements: Iterable[Placement]) -> float:
    variance, utilization = workload_profile(placements)
    return ATTEMPT_BASELINE - variance * 10 + utilization * 5


def score_option(placements: Iterable[Placement]) -> int:
    variance, utilization = workload_profile(placements)
    raw = OPTION_BASELINE - variance * 2 + utilization * 2
    # Half-up rounding; round() sends .5 to the even neighbour.
    return max(0, math.floor(raw + 0.5))
