import random

import pytest

from campus_scheduler.core.exceptions import InfeasibleScheduleError
from campus_scheduler.schemas.catalog import (
    Batch,
    CatalogSnapshot,
    Classroom,
    EligibilityMapping,
    Faculty,
    FixedSlot,
    OptimizationParams,
    Subject,
)
from campus_scheduler.schemas.generator import GenerationSettings
from campus_scheduler.services.availability import AvailabilityState
from campus_scheduler.services.conflict_service import ConflictService
from campus_scheduler.services.placement_search import Candidate, PlacementSearch, generate_timetable


def _data_structures_snapshot(**overrides):
    """Department 1, semester 3: DataStructures x3h, batch CSE-A, Dr. X, Room 101."""
    values = {
        "department_id": 1,
        "semester": 3,
        "subjects": (
            Subject(id=1, name="DataStructures", department_id=1, semester=3, credits=4, hours_per_week=3),
        ),
        "faculty": (Faculty(id=11, name="Dr. X", department_id=1),),
        "classrooms": (Classroom(id=21, name="Room 101", capacity=70, department_id=1),),
        "batches": (Batch(id=31, name="CSE-A", department_id=1, semester=3, student_count=60),),
        "eligibility": (EligibilityMapping(faculty_id=11, subject_id=1),),
    }
    values.update(overrides)
    return CatalogSnapshot(**values)


def _two_subject_snapshot(**overrides):
    values = {
        "department_id": 1,
        "semester": 3,
        "subjects": (
            Subject(id=1, name="Data Structures", department_id=1, semester=3, credits=4, hours_per_week=4),
            Subject(id=2, name="Algorithms", department_id=1, semester=3, credits=3, hours_per_week=3),
            Subject(id=3, name="Networks", department_id=1, semester=5, credits=3, hours_per_week=3),
        ),
        "faculty": (
            Faculty(id=11, name="Alice", department_id=1),
            Faculty(id=12, name="Bob", department_id=1),
            Faculty(id=13, name="Chen", department_id=1),
        ),
        "classrooms": (
            Classroom(id=21, name="A-101", capacity=70, department_id=1),
            Classroom(id=22, name="Hall", capacity=200),
        ),
        "batches": (
            Batch(id=31, name="CSE-A", department_id=1, semester=3, student_count=60),
            Batch(id=32, name="CSE-B", department_id=1, semester=3, student_count=58),
        ),
        "eligibility": (
            EligibilityMapping(faculty_id=11, subject_id=1, preference_level=3),
            EligibilityMapping(faculty_id=12, subject_id=1),
            EligibilityMapping(faculty_id=13, subject_id=2),
        ),
    }
    values.update(overrides)
    return CatalogSnapshot(**values)


def _assert_no_double_booking(placements):
    for attribute in ("faculty_id", "classroom_id", "batch_id"):
        booked = [
            (getattr(item, attribute), item.day_of_week, item.slot_index)
            for item in placements
            if getattr(item, attribute) is not None
        ]
        assert len(booked) == len(set(booked)), attribute


def test_single_subject_is_spread_over_distinct_slots():
    result = generate_timetable(_data_structures_snapshot())

    assert len(result.placements) == 3
    assert {(p.faculty_id, p.classroom_id, p.batch_id, p.subject_id) for p in result.placements} == {(11, 21, 31, 1)}
    assert len({(p.day_of_week, p.slot_index) for p in result.placements}) == 3
    # Fresh mornings beat a second session on a loaded day.
    assert sorted((p.day_of_week, p.slot_index) for p in result.placements) == [(0, 0), (1, 0), (2, 0)]
    assert result.attempts_run == 1
    assert result.successful_attempts == 1
    assert result.requirement_count == 3


def test_every_requirement_is_covered_without_conflicts():
    snapshot = _two_subject_snapshot()
    result = generate_timetable(snapshot)

    tally = {}
    for placement in result.placements:
        key = (placement.subject_id, placement.batch_id)
        tally[key] = tally.get(key, 0) + 1
    assert tally == {(1, 31): 4, (1, 32): 4, (2, 31): 3, (2, 32): 3}
    _assert_no_double_booking(result.placements)


def test_only_eligible_faculty_teach_each_subject():
    result = generate_timetable(_two_subject_snapshot())

    allowed = {1: {11, 12}, 2: {13}}
    for placement in result.placements:
        assert placement.faculty_id in allowed[placement.subject_id]


def test_competing_batches_beyond_capacity_are_infeasible():
    snapshot = _data_structures_snapshot(
        subjects=(Subject(id=1, name="DataStructures", department_id=1, semester=3, credits=4, hours_per_week=18),),
        batches=(
            Batch(id=31, name="CSE-A", department_id=1, semester=3, student_count=60),
            Batch(id=32, name="CSE-B", department_id=1, semester=3, student_count=60),
        ),
    )

    with pytest.raises(InfeasibleScheduleError) as exc_info:
        generate_timetable(snapshot)

    assert exc_info.value.status_code == 422
    assert exc_info.value.details["requirements"] == 36


def test_subject_without_eligible_faculty_fails_up_front():
    snapshot = _data_structures_snapshot(eligibility=())

    with pytest.raises(InfeasibleScheduleError) as exc_info:
        generate_timetable(snapshot)

    assert exc_info.value.details == {"unstaffed_subject_ids": [1]}


def test_unavailable_faculty_do_not_count_as_eligible():
    snapshot = _data_structures_snapshot(
        faculty=(Faculty(id=11, name="Dr. X", department_id=1, is_available=False),),
    )

    with pytest.raises(InfeasibleScheduleError) as exc_info:
        generate_timetable(snapshot)

    assert exc_info.value.details["unstaffed_subject_ids"] == [1]


def test_empty_calendar_is_infeasible():
    snapshot = _data_structures_snapshot(params=OptimizationParams(start_time="17:00", end_time="09:00"))

    with pytest.raises(InfeasibleScheduleError, match="No bookable time slots"):
        generate_timetable(snapshot)


def test_nothing_to_place_returns_empty_schedule():
    snapshot = _data_structures_snapshot(subjects=())

    result = generate_timetable(snapshot)

    assert result.placements == []
    assert result.score == 1000.0


def test_fixed_slots_are_preserved_and_respected():
    snapshot = _data_structures_snapshot(
        fixed_slots=(
            FixedSlot(id=7, day_of_week=0, start_time="09:00", end_time="10:00", faculty_id=11, batch_id=31),
            FixedSlot(id=8, day_of_week="Tuesday", start_time="09:00", end_time="10:00", classroom_id=21),
        ),
    )

    result = generate_timetable(snapshot)

    fixed = [p for p in result.placements if p.is_fixed]
    assert [p.id for p in fixed] == ["fixed-7", "fixed-8"]
    for placement, source in zip(fixed, snapshot.fixed_slots):
        assert (placement.start_time, placement.end_time) == (source.start_time, source.end_time)
        assert (placement.faculty_id, placement.classroom_id, placement.batch_id) == (
            source.faculty_id,
            source.classroom_id,
            source.batch_id,
        )
    assert [(p.day_of_week, p.day) for p in fixed] == [(0, "Monday"), (1, "Tuesday")]
    generated = [p for p in result.placements if not p.is_fixed]
    assert len(generated) == 3
    assert (0, 0) not in {(p.day_of_week, p.slot_index) for p in generated}
    assert (1, 0) not in {(p.day_of_week, p.slot_index) for p in generated}
    _assert_no_double_booking(result.placements)


def test_variation_zero_is_deterministic():
    snapshot = _two_subject_snapshot()

    first = generate_timetable(snapshot)
    second = generate_timetable(snapshot)

    assert [p.model_dump() for p in first.placements] == [p.model_dump() for p in second.placements]
    assert first.score == second.score


def test_seeded_variation_is_reproducible():
    snapshot = _two_subject_snapshot()
    settings = GenerationSettings(base_attempts=10, attempts_per_variation=5, reshuffle_interval=3)

    first = generate_timetable(snapshot, variation=2, settings=settings, rng=random.Random(7))
    second = generate_timetable(snapshot, variation=2, settings=settings, rng=random.Random(7))

    assert first.attempts_run == 20
    assert [p.model_dump() for p in first.placements] == [p.model_dump() for p in second.placements]
    _assert_no_double_booking(first.placements)


def test_max_attempts_caps_the_search():
    settings = GenerationSettings(max_attempts=3)

    result = generate_timetable(_two_subject_snapshot(), variation=10, settings=settings, rng=random.Random(1))

    assert result.attempts_run == 3


def test_time_budget_stops_after_first_attempt():
    settings = GenerationSettings(time_budget_seconds=1e-9)

    result = generate_timetable(_two_subject_snapshot(), variation=5, settings=settings, rng=random.Random(1))

    assert result.attempts_run == 1


def test_faculty_hour_caps_are_only_enforced_when_enabled():
    snapshot = _data_structures_snapshot(
        faculty=(Faculty(id=11, name="Dr. X", department_id=1, max_hours_per_week=2),),
    )

    assert len(generate_timetable(snapshot).placements) == 3
    with pytest.raises(InfeasibleScheduleError):
        generate_timetable(snapshot, settings=GenerationSettings(enforce_faculty_hour_caps=True))


def test_daily_class_limit_is_only_enforced_when_enabled():
    snapshot = _data_structures_snapshot(params=OptimizationParams(max_classes_per_day=1, working_days=2))

    assert len(generate_timetable(snapshot).placements) == 3
    with pytest.raises(InfeasibleScheduleError):
        generate_timetable(snapshot, settings=GenerationSettings(enforce_max_classes_per_day=True))


def test_placement_score_rewards_preference_and_mornings():
    search = PlacementSearch(_two_subject_snapshot())
    mapping = search.eligible_by_subject[1][0]
    position = search.indexes.faculty.position(mapping.faculty_id)
    state = AvailabilityState.empty(search.indexes, days=len(search.day_names), slots=len(search.time_slots))

    assert search.placement_score(mapping, position, 0, 0, state.faculty) == 100 + 3 * 20 + 5
    assert search.placement_score(mapping, position, 0, 3, state.faculty) == 160

    state.faculty.occupy(position, 0, 2)
    assert search.placement_score(mapping, position, 0, 3, state.faculty) == 160 - 5 - 10


class _PickLast(random.Random):
    def __init__(self):
        super().__init__(0)
        self.choice_sizes = []

    def choice(self, seq):
        self.choice_sizes.append(len(seq))
        return seq[-1]


class _RecordingRandom(random.Random):
    def __init__(self, seed):
        super().__init__(seed)
        self.shuffled = []

    def shuffle(self, x):
        self.shuffled.append(list(x))
        super().shuffle(x)


def _candidate(score, slot):
    return Candidate(day=0, slot=slot, faculty_id=11, faculty_pos=0, classroom_id=21, classroom_pos=0, score=score)


def test_two_hour_fixed_slot_blocks_every_slot_it_covers():
    snapshot = _data_structures_snapshot(
        fixed_slots=(FixedSlot(id=7, day_of_week=0, start_time="09:00", end_time="11:00", batch_id=31),),
    )

    result = generate_timetable(snapshot)

    generated = {(p.day_of_week, p.slot_index) for p in result.placements if not p.is_fixed}
    assert len(generated) == 3
    assert not generated & {(0, 0), (0, 1)}
    assert not ConflictService(result.placements).detect_conflicts().has_conflicts


def test_diversified_selection_samples_within_top_k():
    rng = _PickLast()
    search = PlacementSearch(_data_structures_snapshot(), settings=GenerationSettings(top_k=3), rng=rng)
    candidates = [_candidate(100, 0), _candidate(70, 1), _candidate(90, 2), _candidate(80, 3)]

    assert search._select(candidates, diversify=True).score == 80
    assert rng.choice_sizes == [3]
    assert search._select(candidates, diversify=False).score == 100
    assert rng.choice_sizes == [3]


def test_variation_changes_the_schedule():
    settings = GenerationSettings(base_attempts=1, attempts_per_variation=0, top_k=3)

    result = generate_timetable(_data_structures_snapshot(), variation=1, settings=settings, rng=_PickLast())

    # Third-best each time instead of the earliest free morning.
    assert sorted((p.day_of_week, p.slot_index) for p in result.placements) == [(2, 0), (3, 0), (4, 0)]


def test_requirement_order_is_reshuffled_every_interval():
    settings = GenerationSettings(base_attempts=10, attempts_per_variation=0, reshuffle_interval=3)
    rng = _RecordingRandom(3)

    result = generate_timetable(_two_subject_snapshot(), variation=1, settings=settings, rng=rng)

    assert result.attempts_run == 10
    assert len(rng.shuffled) == 10 // 3
    assert all(len(order) == result.requirement_count for order in rng.shuffled)
    assert not ConflictService(result.placements).detect_conflicts().has_conflicts
