from __future__ import annotations

from collections import defaultdict
import logging
import random
from dataclasses import dataclass
from time import perf_counter

from campus_scheduler.core.exceptions import InfeasibleScheduleError
from campus_scheduler.schemas.catalog import CatalogSnapshot, Classroom, EligibilityMapping, Faculty
from campus_scheduler.schemas.generator import GeneratedTimetable, GenerationSettings, Placement
from campus_scheduler.services.availability import AvailabilityState, OccupancyGrid, ResourceIndex, ResourceIndexes
from campus_scheduler.services.calendar_grid import build_time_slots, working_day_names
from campus_scheduler.services.fixed_slots import preload_fixed_slots
from campus_scheduler.services.requirements import Requirement, expand_requirements, order_by_constraint
from campus_scheduler.services.solution_scorer import evaluate_solution

logger = logging.getLogger(__name__)

BASE_PLACEMENT_SCORE = 100
PREFERENCE_WEIGHT = 20
DAY_LOAD_PENALTY = 5
MORNING_BONUS = 5
MORNING_SLOTS = 2
ADJACENT_PENALTY = 10


@dataclass(frozen=True)
class Candidate:
    day: int
    slot: int
    faculty_id: int
    faculty_pos: int
    classroom_id: int
    classroom_pos: int
    score: int


@dataclass
class SearchResult:
    placements: list[Placement]
    score: float
    variation: int
    attempts_run: int
    successful_attempts: int
    requirement_count: int
    runtime_ms: int

    def to_schema(self) -> GeneratedTimetable:
        return GeneratedTimetable(
            placements=self.placements,
            score=self.score,
            variation=self.variation,
            attempts_run=self.attempts_run,
            successful_attempts=self.successful_attempts,
            requirement_count=self.requirement_count,
            runtime_ms=self.runtime_ms,
        )


class PlacementSearch:
    """Greedy multi-restart placement of one-hour requirements.

    Each attempt walks the requirements in priority order, enumerates every free
    (day, slot, faculty, classroom) tuple, and commits the best-scoring one. An
    attempt that meets a requirement with no candidate is abandoned; the best
    complete attempt wins. There is no backtracking inside an attempt.
    """

    def __init__(
        self,
        snapshot: CatalogSnapshot,
        *,
        settings: GenerationSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.settings = settings or GenerationSettings()
        self.random = rng if rng is not None else random.Random(self.settings.random_seed)
        self.params = snapshot.params

        self.day_names = working_day_names(self.params)
        self.time_slots = build_time_slots(self.params)

        department_id = snapshot.department_id
        self.subjects = [
            item for item in snapshot.subjects
            if item.department_id == department_id and item.semester == snapshot.semester
        ]
        self.batches = [
            item for item in snapshot.batches
            if item.department_id == department_id and item.semester == snapshot.semester
        ]
        self.faculty: dict[int, Faculty] = {
            item.id: item for item in snapshot.faculty
            if item.department_id == department_id and item.is_available
        }
        self.classrooms: list[Classroom] = [
            item for item in snapshot.classrooms
            if item.is_available and item.department_id in (None, department_id)
        ]
        self.indexes = ResourceIndexes(
            faculty=ResourceIndex(self.faculty),
            classrooms=ResourceIndex(item.id for item in self.classrooms),
            batches=ResourceIndex(item.id for item in self.batches),
        )
        self.eligible_by_subject = self._build_eligibility(snapshot.eligibility)
        self.requirements = expand_requirements(self.subjects, self.batches)

    def _build_eligibility(self, mappings: tuple[EligibilityMapping, ...]) -> dict[int, list[EligibilityMapping]]:
        eligible: dict[int, list[EligibilityMapping]] = defaultdict(list)
        for mapping in mappings:
            if mapping.faculty_id not in self.faculty:
                logger.debug(
                    "Ignoring eligibility of unavailable faculty %s for subject %s",
                    mapping.faculty_id,
                    mapping.subject_id,
                )
                continue
            eligible[mapping.subject_id].append(mapping)
        return dict(eligible)

    def _faculty_counts(self) -> dict[int, int]:
        return {subject_id: len(items) for subject_id, items in self.eligible_by_subject.items()}

    def _unstaffed_subject_ids(self) -> list[int]:
        return sorted({req.subject_id for req in self.requirements if not self.eligible_by_subject.get(req.subject_id)})

    def placement_score(
        self,
        mapping: EligibilityMapping,
        faculty_pos: int,
        day: int,
        slot: int,
        faculty_grid: OccupancyGrid,
    ) -> int:
        score = BASE_PLACEMENT_SCORE
        score += (mapping.preference_level or 1) * PREFERENCE_WEIGHT
        score -= faculty_grid.day_load(faculty_pos, day) * DAY_LOAD_PENALTY
        if slot < MORNING_SLOTS:
            score += MORNING_BONUS
        if slot > 0 and faculty_grid.is_busy(faculty_pos, day, slot - 1):
            score -= ADJACENT_PENALTY
        if slot < len(self.time_slots) - 1 and faculty_grid.is_busy(faculty_pos, day, slot + 1):
            score -= ADJACENT_PENALTY
        return score

    def _within_hour_caps(self, faculty_id: int, faculty_pos: int, day: int, grid: OccupancyGrid) -> bool:
        faculty = self.faculty[faculty_id]
        if grid.day_load(faculty_pos, day) >= faculty.max_hours_per_day:
            return False
        return grid.week_load(faculty_pos) < faculty.max_hours_per_week

    def candidates(self, req: Requirement, state: AvailabilityState) -> list[Candidate]:
        batch_pos = self.indexes.batches.position(req.batch_id)
        mappings = self.eligible_by_subject.get(req.subject_id, [])
        found: list[Candidate] = []
        for day in range(len(self.day_names)):
            if (
                self.settings.enforce_max_classes_per_day
                and state.batches.day_load(batch_pos, day) >= self.params.max_classes_per_day
            ):
                continue
            for time_slot in self.time_slots:
                slot = time_slot.index
                if state.batches.is_busy(batch_pos, day, slot):
                    continue
                for mapping in mappings:
                    faculty_pos = self.indexes.faculty.position(mapping.faculty_id)
                    if state.faculty.is_busy(faculty_pos, day, slot):
                        continue
                    if self.settings.enforce_faculty_hour_caps and not self._within_hour_caps(
                        mapping.faculty_id, faculty_pos, day, state.faculty
                    ):
                        continue
                    # Classroom choice does not affect the score.
                    score = self.placement_score(mapping, faculty_pos, day, slot, state.faculty)
                    for classroom_pos, classroom in enumerate(self.classrooms):
                        if state.classrooms.is_busy(classroom_pos, day, slot):
                            continue
                        found.append(
                            Candidate(
                                day=day,
                                slot=slot,
                                faculty_id=mapping.faculty_id,
                                faculty_pos=faculty_pos,
                                classroom_id=classroom.id,
                                classroom_pos=classroom_pos,
                                score=score,
                            )
                        )
        return found

    def _select(self, candidates: list[Candidate], diversify: bool) -> Candidate:
        if diversify and len(candidates) > 1:
            ranked = sorted(candidates, key=lambda item: item.score, reverse=True)
            return self.random.choice(ranked[: self.settings.top_k])
        # max() keeps the first of equal scores, i.e. enumeration order.
        return max(candidates, key=lambda item: item.score)

    def _run_attempt(
        self,
        order: list[Requirement],
        base_state: AvailabilityState,
        diversify: bool,
    ) -> list[Placement] | None:
        state = base_state.copy()
        for req in order:
            candidates = self.candidates(req, state)
            if not candidates:
                logger.debug("No placement for subject=%s batch=%s", req.subject_id, req.batch_id)
                return None
            chosen = self._select(candidates, diversify)
            time_slot = self.time_slots[chosen.slot]
            placement = Placement(
                day_of_week=chosen.day,
                day=self.day_names[chosen.day],
                slot_index=chosen.slot,
                start_time=time_slot.start_time,
                end_time=time_slot.end_time,
                subject_id=req.subject_id,
                faculty_id=chosen.faculty_id,
                classroom_id=chosen.classroom_id,
                batch_id=req.batch_id,
                is_fixed=False,
            )
            state.commit(
                placement,
                day=chosen.day,
                slot=chosen.slot,
                faculty_pos=chosen.faculty_pos,
                classroom_pos=chosen.classroom_pos,
                batch_pos=self.indexes.batches.position(req.batch_id),
            )
        return state.placements

    def run(self, variation: int = 0) -> SearchResult:
        start = perf_counter()
        requirement_count = len(self.requirements)
        logger.info(
            "Placement search department=%s semester=%s requirements=%s variation=%s",
            self.snapshot.department_id,
            self.snapshot.semester,
            requirement_count,
            variation,
        )

        unstaffed = self._unstaffed_subject_ids()
        if unstaffed:
            raise InfeasibleScheduleError(
                "Some subjects have no eligible faculty",
                details={"unstaffed_subject_ids": unstaffed},
            )
        if requirement_count and not self.time_slots:
            raise InfeasibleScheduleError(
                "No bookable time slots between start and end time",
                details={"start_time": self.params.start_time, "end_time": self.params.end_time},
            )

        base_state = preload_fixed_slots(
            self.snapshot.fixed_slots,
            time_slots=self.time_slots,
            day_names=self.day_names,
            indexes=self.indexes,
        )
        order = order_by_constraint(self.requirements, self._faculty_counts())
        diversify = variation > 0
        max_attempts = self.settings.attempt_count(variation)
        budget = self.settings.time_budget_seconds
        deadline = start + budget if budget is not None else None

        best: list[Placement] | None = None
        best_score: float | None = None
        attempts_run = 0
        successful = 0
        for attempt in range(max_attempts):
            if deadline is not None and attempt > 0 and perf_counter() >= deadline:
                logger.warning("Time budget of %.2fs exhausted after %s attempt(s)", budget, attempts_run)
                break
            placements = self._run_attempt(order, base_state, diversify)
            attempts_run += 1
            if placements is not None:
                successful += 1
                score = evaluate_solution(placements)
                if best_score is None or score > best_score:
                    best = placements
                    best_score = score
            if not diversify:
                # Without randomness every further attempt repeats this one.
                break
            if (attempt + 1) % self.settings.reshuffle_interval == 0:
                self.random.shuffle(order)

        runtime_ms = int((perf_counter() - start) * 1000)
        if best is None or best_score is None:
            raise InfeasibleScheduleError(
                details={
                    "attempts": attempts_run,
                    "requirements": requirement_count,
                    "variation": variation,
                },
            )
        logger.info(
            "Placement search finished score=%.2f attempts=%s successful=%s runtime_ms=%s",
            best_score,
            attempts_run,
            successful,
            runtime_ms,
        )
        return SearchResult(
            placements=best,
            score=best_score,
            variation=variation,
            attempts_run=attempts_run,
            successful_attempts=successful,
            requirement_count=requirement_count,
            runtime_ms=runtime_ms,
        )


def generate_timetable(
    snapshot: CatalogSnapshot,
    *,
    variation: int = 0,
    settings: GenerationSettings | None = None,
    rng: random.Random | None = None,
) -> SearchResult:
    return PlacementSearch(snapshot, settings=settings, rng=rng).run(variation)
